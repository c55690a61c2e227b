"""Tree hierarchy helpers: materialized paths and reference kinds."""

from .paths import PathInfo, check_content_id, derive_path, descendant_prefix
from .references import PUBLISHED_REF_KINDS, map_to_published_kind, to_published_child_items

__all__ = [
    "PathInfo",
    "check_content_id",
    "derive_path",
    "descendant_prefix",
    "PUBLISHED_REF_KINDS",
    "map_to_published_kind",
    "to_published_child_items",
]
