"""
Content models for Trellis.

This module defines the working content node, its immutable version snapshots,
the current published snapshot, and the command and result types exchanged
with the lifecycle engine.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ChildItem(BaseModel):
    """
    A kind-tagged reference from a content node to one of its children.
    """

    content_ref: str = Field(
        ...,
        description="Id of the referenced content node"
    )

    ref_kind: str = Field(
        ...,
        description="Kind of the referenced node (e.g., 'page', 'publishedBlock')"
    )


class Content(BaseModel):
    """
    A working (draft) node in the content tree.
    """

    id: Optional[str] = Field(
        None,
        description="Server-assigned identity, set on create"
    )

    name: str = Field(
        "",
        description="Display name of the node"
    )

    properties: Dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque kind-specific payload"
    )

    parent_id: Optional[str] = Field(
        None,
        description="Id of the owning parent node, None at root"
    )

    parent_path: Optional[str] = Field(
        None,
        description="Materialized ancestor path such as ',a,b,', None at root"
    )

    ancestors: List[str] = Field(
        default_factory=list,
        description="Ancestor ids ordered from the root"
    )

    child_items: List[ChildItem] = Field(
        default_factory=list,
        description="Ordered references to child nodes"
    )

    published_child_items: List[ChildItem] = Field(
        default_factory=list,
        description="Child references rewritten to their published kinds"
    )

    has_children: bool = Field(
        False,
        description="Cached flag telling whether any child was created under this node"
    )

    is_published: bool = False
    is_deleted: bool = False

    created: Optional[datetime] = None
    changed: Optional[datetime] = None
    published: Optional[datetime] = None
    deleted: Optional[datetime] = None


class ContentVersion(Content):
    """
    An immutable snapshot of a content node taken at publish time.
    """

    content_id: str = Field(
        ...,
        description="Id of the content node this version was taken from"
    )


class PublishedContent(Content):
    """
    The current public snapshot of a content node, keyed by the node's id.
    """

    content_id: str = Field(
        ...,
        description="Id of the source content node"
    )

    content_version_id: str = Field(
        ...,
        description="Id of the version created by the same publish"
    )


class UpdateRequest(BaseModel):
    """
    An editorial update, with explicit flags for what the engine should do.
    """

    name: str = ""
    properties: Dict[str, Any] = Field(default_factory=dict)
    child_items: List[ChildItem] = Field(default_factory=list)

    apply_changes: bool = Field(
        False,
        description="Overwrite name, properties and child items on the node"
    )

    request_publish: bool = Field(
        False,
        description="Publish the node if it has unpublished changes"
    )


class ResolvedChild(BaseModel):
    """A child reference together with the node it points at."""

    item: ChildItem
    content: Content


class PopulatedContent(BaseModel):
    """A content node with its direct children resolved inline."""

    content: Content
    children: List[ResolvedChild] = Field(default_factory=list)


class BulkUpdateResult(BaseModel):
    """Summary of a multi-record update."""

    matched_count: int = 0


class DeleteResult(BaseModel):
    """
    Outcome of the delete flow.
    """

    content: Content
    published: Optional[PublishedContent] = None
    descendants: BulkUpdateResult = Field(default_factory=BulkUpdateResult)
