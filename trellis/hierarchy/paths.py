"""
Materialized path index for the content tree.

Each node stores its ancestor chain twice: as an ordered id list and as a
comma-delimited path string (",root,child,") that descendant queries match
by prefix. Both are derived here and nowhere else.
"""

from typing import List, NamedTuple, Optional

from ..errors import InvariantViolation
from ..models import Content

PATH_DELIMITER = ","


class PathInfo(NamedTuple):
    """Ancestor metadata for a node placed under some parent."""

    parent_path: Optional[str]
    ancestors: List[str]


def derive_path(parent: Optional[Content]) -> PathInfo:
    """
    Compute the ancestor metadata of a child placed under ``parent``.

    Args:
        parent: The parent node, or None for a root node

    Returns:
        The child's parent path and a fresh ancestor list

    Raises:
        InvariantViolation: If the parent has no id or a malformed path
    """
    if parent is None:
        return PathInfo(None, [])

    check_content_id(parent.id)

    if parent.parent_path is None:
        parent_path = f"{PATH_DELIMITER}{parent.id}{PATH_DELIMITER}"
    else:
        _check_path(parent.parent_path)
        parent_path = f"{parent.parent_path}{parent.id}{PATH_DELIMITER}"

    ancestors = list(parent.ancestors)
    ancestors.append(parent.id)
    return PathInfo(parent_path, ancestors)


def descendant_prefix(content: Content) -> str:
    """
    Return the path prefix shared by every descendant of ``content``.

    A descendant query must anchor this prefix at the start of the stored
    path; a substring match would also hit nodes whose ids merely end with
    this node's id.
    """
    parent_path = derive_path(content).parent_path
    if parent_path is None:
        raise InvariantViolation(f"No descendant path for content '{content.id}'")
    return parent_path


def check_content_id(content_id: Optional[str]) -> None:
    """
    Reject ids that cannot be embedded in a materialized path.

    Raises:
        InvariantViolation: If the id is empty or contains the path delimiter
    """
    if not content_id:
        raise InvariantViolation("Content id must not be empty")
    if PATH_DELIMITER in content_id:
        raise InvariantViolation(f"Content id '{content_id}' contains the path delimiter")


def _check_path(path: str) -> None:
    if len(path) < 3 or not path.startswith(PATH_DELIMITER) or not path.endswith(PATH_DELIMITER):
        raise InvariantViolation(f"Malformed parent path: {path!r}")
    if "" in path[1:-1].split(PATH_DELIMITER):
        raise InvariantViolation(f"Malformed parent path: {path!r}")
