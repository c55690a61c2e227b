"""
Content lifecycle engine for Trellis.

This module orchestrates the content, version and published stores through
the create, update/publish and delete workflows and keeps them consistent.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..database import DocumentStore, StoreFilter
from ..errors import AlreadyExists, NotFound, PartialDeleteFailure
from ..hierarchy import check_content_id, derive_path, descendant_prefix, to_published_child_items
from ..models import (
    ChildItem,
    Content,
    ContentVersion,
    DeleteResult,
    PopulatedContent,
    PublishedContent,
    ResolvedChild,
    UpdateRequest,
)
from ..support import SystemClock, generate_id

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ContentLifecycleEngine:
    """
    Runs the lifecycle workflows of one content kind.

    Publishing is a sequence of three independent writes (mark the node
    published, append a version, replace the published snapshot). A crash
    between them leaves a node marked published without a snapshot;
    find_publish_gaps() and reconcile_publish_gaps() repair that state.

    Concurrent publishes of the same id are not serialized unless
    ``serialize_publish`` is set: each appends its own version and the last
    writer's snapshot wins.
    """

    def __init__(
        self,
        contents: DocumentStore[Content],
        versions: DocumentStore[ContentVersion],
        published: DocumentStore[PublishedContent],
        resolver: Optional[Mapping[str, DocumentStore]] = None,
        clock: Optional[Any] = None,
        id_generator: Callable[[], str] = generate_id,
        serialize_publish: bool = False,
    ):
        """
        Initialize the engine.

        Args:
            contents: Store of working content nodes
            versions: Append-only store of content versions
            published: Store of current published snapshots
            resolver: Stores to resolve child references with, keyed by ref kind
            clock: Object with a now() method (defaults to the system clock)
            id_generator: Produces ids for new nodes and versions
            serialize_publish: Hold a per-id lock while publishing
        """
        self.contents = contents
        self.versions = versions
        self.published = published
        self.resolver: Mapping[str, DocumentStore] = resolver or {}
        self.clock = clock or SystemClock()
        self.id_generator = id_generator
        self.serialize_publish = serialize_publish
        self._publish_locks: Dict[str, asyncio.Lock] = {}
        self._publish_waiters: Dict[str, int] = {}

    # Reads

    async def get_content(self, content_id: Optional[str]) -> Content:
        """
        Load a working node.

        Raises:
            NotFound: If no node has this id
        """
        content = await self.contents.find_by_id(content_id)
        if content is None:
            raise NotFound(self.contents.collection, content_id)
        return content

    async def get_populated_by_id(self, content_id: Optional[str]) -> Optional[PopulatedContent]:
        """
        Fetch a working node with its direct children resolved.

        Args:
            content_id: Node id; an empty id matches nothing

        Returns:
            The populated node, or None if not found
        """
        content = await self.contents.find_by_id(content_id or None)
        if content is None:
            return None
        return await self._populate(content, content.child_items)

    async def get_populated_published_by_id(self, content_id: Optional[str]) -> Optional[PopulatedContent]:
        """
        Fetch a published snapshot with its direct published children resolved.

        Args:
            content_id: Node id; an empty id matches nothing

        Returns:
            The populated snapshot, or None if not found
        """
        snapshot = await self.published.find_by_id(content_id or None)
        if snapshot is None:
            return None
        return await self._populate(snapshot, snapshot.published_child_items)

    async def _populate(self, content: Content, items: List[ChildItem]) -> PopulatedContent:
        targets = await asyncio.gather(*(self._resolve(item) for item in items))
        children = [
            ResolvedChild(item=item, content=target)
            for item, target in zip(items, targets)
            if target is not None and not target.is_deleted
        ]
        return PopulatedContent(content=content, children=children)

    async def _resolve(self, item: ChildItem) -> Optional[Content]:
        store = self.resolver.get(item.ref_kind)
        if store is None:
            logging.warning(f"No store registered for reference kind '{item.ref_kind}'; leaving {item.content_ref} unresolved")
            return None
        return await store.find_by_id(item.content_ref)

    async def get_children(self, parent_id: Optional[str]) -> List[Content]:
        """
        List the live direct children of a node, oldest first.

        Args:
            parent_id: Parent node id, or None for root nodes
        """
        if parent_id:
            children = await self.contents.find_many(StoreFilter(parent_id=parent_id, is_deleted=False))
        else:
            roots = await self.contents.find_many(StoreFilter(is_deleted=False))
            children = [content for content in roots if content.parent_id is None]
        return sorted(children, key=lambda c: (c.created or _EPOCH, c.name))

    async def list_versions(self, content_id: str) -> List[ContentVersion]:
        """Return the version history of a node, oldest first."""
        versions = await self.versions.find_many(StoreFilter(content_id=content_id))
        return sorted(versions, key=lambda v: v.published or _EPOCH)

    # Create

    async def execute_create(self, content: Content) -> Content:
        """
        Create a node under its parent.

        Args:
            content: The new node; parent_id selects the parent (None for a root)

        Returns:
            The saved node with id, timestamps and ancestor metadata set

        Raises:
            NotFound: If parent_id refers to a missing or deleted node
            AlreadyExists: If the given id is already taken
            InvariantViolation: If the given id cannot be used in a path
        """
        parent = None
        if content.parent_id:
            parent = await self.contents.find_by_id(content.parent_id)
            if parent is None or parent.is_deleted:
                raise NotFound(self.contents.collection, content.parent_id)

        saved = await self.create_content(content, parent)
        logging.info(f"Created {self.contents.collection} {saved.id} under {saved.parent_id or 'root'}")
        return saved

    async def create_content(self, new_content: Content, parent: Optional[Content]) -> Content:
        now = self.clock.now()
        path = derive_path(parent)

        content = new_content.model_copy(deep=True)
        if content.id:
            check_content_id(content.id)
            if await self.contents.find_by_id(content.id) is not None:
                raise AlreadyExists(self.contents.collection, content.id)
        else:
            content.id = self.id_generator()
        content.created = now
        content.changed = now
        content.parent_id = parent.id if parent else None
        content.parent_path = path.parent_path
        content.ancestors = path.ancestors
        return await self.contents.save(content)

    async def update_has_children(self, content: Optional[Content]) -> bool:
        """
        Flag a node as having children.

        Args:
            content: The node to flag; None is tolerated

        Returns:
            The node's has_children value, False when no node was given
        """
        if content is None:
            return False
        if content.has_children:
            return True

        content.changed = self.clock.now()
        content.has_children = True
        saved = await self.contents.save(content)
        return saved.has_children

    # Update and publish

    async def update_and_publish(self, content_id: str, request: UpdateRequest) -> Union[Content, PublishedContent]:
        """
        Apply an editorial update and publish if requested.

        Args:
            content_id: Id of the node to update
            request: New values and the apply/publish flags

        Returns:
            The new published snapshot if publishing ran, otherwise the node

        Raises:
            NotFound: If no node has this id
        """
        current = await self.get_content(content_id)
        if request.apply_changes:
            current = await self._update_content(current, request)

        if request.request_publish and (
            current.published is None or (current.changed is not None and current.changed > current.published)
        ):
            return await self.execute_publish(current)
        return current

    async def _update_content(self, current: Content, request: UpdateRequest) -> Content:
        current.changed = self.clock.now()
        current.name = request.name
        current.properties = dict(request.properties)
        current.child_items = [item.model_copy() for item in request.child_items]
        current.published_child_items = to_published_child_items(request.child_items)
        return await self.contents.save(current)

    async def execute_publish(self, current: Content) -> PublishedContent:
        """
        Publish a node: mark it published, append a version, replace its snapshot.

        Args:
            current: The node to publish

        Returns:
            The new published snapshot
        """
        if not self.serialize_publish:
            return await self._publish(current)
        lock = self._publish_locks.setdefault(current.id, asyncio.Lock())
        self._publish_waiters[current.id] = self._publish_waiters.get(current.id, 0) + 1
        try:
            async with lock:
                return await self._publish(current)
        finally:
            self._publish_waiters[current.id] -= 1
            if not self._publish_waiters[current.id]:
                del self._publish_waiters[current.id]
                del self._publish_locks[current.id]

    async def _publish(self, current: Content) -> PublishedContent:
        updated = await self._mark_published(current)
        version = await self._create_version(updated)
        snapshot = await self._create_published_content(updated, version.id)
        logging.info(f"Published {self.contents.collection} {updated.id} as version {version.id}")
        return snapshot

    async def _mark_published(self, current: Content) -> Content:
        current.is_published = True
        current.published = self.clock.now()
        return await self.contents.save(current)

    async def _create_version(self, current: Content) -> ContentVersion:
        version = ContentVersion.model_validate({
            **current.model_dump(),
            "id": self.id_generator(),
            "content_id": current.id,
        })
        return await self.versions.save(version)

    async def _create_published_content(self, current: Content, content_version_id: str) -> PublishedContent:
        await self.published.delete_by_id(current.id)
        snapshot = PublishedContent.model_validate({
            **current.model_dump(),
            "content_id": current.id,
            "content_version_id": content_version_id,
        })
        return await self.published.save(snapshot)

    # Delete

    async def execute_delete(self, content_id: str) -> DeleteResult:
        """
        Soft-delete a node, its published snapshot and all of its descendants.

        The three soft-deletes run concurrently. Version history is kept.

        Args:
            content_id: Id of the node to delete

        Returns:
            The deleted node, its deleted snapshot (if any) and the descendant count

        Raises:
            NotFound: If no node has this id
            PartialDeleteFailure: If any of the soft-deletes failed; the others stay applied
        """
        current = await self.get_content(content_id)

        names = ("content", "published", "descendants")
        results = await asyncio.gather(
            self._soft_delete_content(current),
            self._soft_delete_published_content(current),
            self._soft_delete_descendants(current),
            return_exceptions=True,
        )
        outcome = dict(zip(names, results))
        failures = {name: result for name, result in outcome.items() if isinstance(result, BaseException)}
        if failures:
            completed = {name: result for name, result in outcome.items() if name not in failures}
            logging.error(f"Delete of {self.contents.collection} {current.id} left partial state; failed: {sorted(failures)}")
            raise PartialDeleteFailure(current.id, failures, completed)

        logging.info(
            f"Deleted {self.contents.collection} {current.id} and "
            f"{outcome['descendants'].matched_count} descendants"
        )
        return DeleteResult(
            content=outcome["content"],
            published=outcome["published"],
            descendants=outcome["descendants"],
        )

    async def _soft_delete_content(self, current: Content) -> Content:
        current.deleted = self.clock.now()
        current.is_deleted = True
        return await self.contents.save(current)

    async def _soft_delete_published_content(self, current: Content) -> Optional[PublishedContent]:
        snapshot = await self.published.find_by_id(current.id)
        if snapshot is None:
            return None
        snapshot.deleted = self.clock.now()
        snapshot.is_deleted = True
        return await self.published.save(snapshot)

    async def _soft_delete_descendants(self, current: Content):
        return await self.contents.bulk_update(
            StoreFilter(parent_path_prefix=descendant_prefix(current)),
            {"is_deleted": True, "deleted": self.clock.now()},
        )

    # Reconciliation

    async def find_publish_gaps(self) -> List[Content]:
        """Return live nodes marked published that have no published snapshot."""
        gaps = []
        for content in await self.contents.find_many(StoreFilter(is_deleted=False)):
            if content.is_published and await self.published.find_by_id(content.id) is None:
                gaps.append(content)
        return gaps

    async def reconcile_publish_gaps(self) -> List[str]:
        """
        Re-run publishing for every node left without a snapshot.

        Returns:
            Ids of the republished nodes
        """
        republished = []
        for content in await self.find_publish_gaps():
            logging.warning(f"Republishing {self.contents.collection} {content.id}: marked published without snapshot")
            await self.execute_publish(content)
            republished.append(content.id)
        return republished
