"""
Trellis: hierarchical, versioned content with a draft/publish lifecycle.

Content nodes live in a tree with materialized paths. Publishing appends an
immutable version and replaces the node's public snapshot; deleting is a
cascading soft delete.
"""

__version__ = "0.1.0"

from .errors import AlreadyExists, InvariantViolation, NotFound, PartialDeleteFailure, StoreFailure, TrellisError
from .models import ChildItem, Content, ContentVersion, PublishedContent, UpdateRequest
from .database import DatabaseManager, DocumentStore, StoreFilter
from .lifecycle import ContentLifecycleEngine, ContentRegistry

__all__ = [
    "AlreadyExists",
    "ChildItem",
    "Content",
    "ContentLifecycleEngine",
    "ContentRegistry",
    "ContentVersion",
    "DatabaseManager",
    "DocumentStore",
    "InvariantViolation",
    "NotFound",
    "PartialDeleteFailure",
    "PublishedContent",
    "StoreFailure",
    "StoreFilter",
    "TrellisError",
    "UpdateRequest",
]
