"""
Reference kind mapping.

Child references carry a kind tag. When a node is prepared for publication
its child references are rewritten to point at the published counterpart of
each kind.
"""

from typing import Dict, List

from ..models import ChildItem

PAGE = "page"
BLOCK = "block"
MEDIA = "media"

PUBLISHED_PAGE = "publishedPage"
PUBLISHED_BLOCK = "publishedBlock"
PUBLISHED_MEDIA = "publishedMedia"

PUBLISHED_REF_KINDS: Dict[str, str] = {
    PAGE: PUBLISHED_PAGE,
    BLOCK: PUBLISHED_BLOCK,
    MEDIA: PUBLISHED_MEDIA,
}


def map_to_published_kind(ref_kind: str) -> str:
    """Return the published counterpart of a kind; unknown kinds pass through."""
    return PUBLISHED_REF_KINDS.get(ref_kind, ref_kind)


def to_published_child_items(child_items: List[ChildItem]) -> List[ChildItem]:
    """
    Rewrite child references into their publishable form.

    Args:
        child_items: References as edited on the working node

    Returns:
        New references in the same order with kinds mapped to published kinds
    """
    return [
        ChildItem(content_ref=item.content_ref, ref_kind=map_to_published_kind(item.ref_kind))
        for item in child_items
    ]
