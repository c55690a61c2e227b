"""Data models for Trellis."""

from .content import (
    BulkUpdateResult,
    ChildItem,
    Content,
    ContentVersion,
    DeleteResult,
    PopulatedContent,
    PublishedContent,
    ResolvedChild,
    UpdateRequest,
)

__all__ = [
    "BulkUpdateResult",
    "ChildItem",
    "Content",
    "ContentVersion",
    "DeleteResult",
    "PopulatedContent",
    "PublishedContent",
    "ResolvedChild",
    "UpdateRequest",
]
