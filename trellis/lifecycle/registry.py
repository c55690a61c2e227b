"""
Content kind registry for Trellis.

Each content kind (page, block, media) is stored in three collections and
served by its own lifecycle engine. The registry builds them over one
database and shares a resolver so child references of any kind can be
populated from any engine.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..database import DatabaseManager, DocumentStore
from ..hierarchy import PUBLISHED_REF_KINDS
from ..models import Content, ContentVersion, PublishedContent
from ..support import generate_id
from .engine import ContentLifecycleEngine


@dataclass
class ContentKind:
    """
    Storage layout of a content kind.
    """
    name: str
    published_kind: str

    @property
    def content_collection(self) -> str:
        return self.name

    @property
    def version_collection(self) -> str:
        return f"{self.name}_version"

    @property
    def published_collection(self) -> str:
        return f"published_{self.name}"

    @property
    def collections(self) -> List[str]:
        return [self.content_collection, self.version_collection, self.published_collection]


class ContentRegistry:
    """
    Registry of content kinds and their lifecycle engines.
    """

    def __init__(
        self,
        database: DatabaseManager,
        kinds: Iterable[str] = tuple(PUBLISHED_REF_KINDS),
        clock: Optional[Any] = None,
        id_generator: Callable[[], str] = generate_id,
        serialize_publish: bool = False,
    ):
        """
        Initialize the registry and create the tables of every kind.

        Args:
            database: Connected database manager
            kinds: Names of the content kinds to register
            clock: Clock shared by all engines
            id_generator: Id generator shared by all engines
            serialize_publish: Serialize concurrent publishes of the same id

        Raises:
            ValueError: If a kind has no published counterpart
        """
        self.database = database
        self._kinds: Dict[str, ContentKind] = {}
        self._engines: Dict[str, ContentLifecycleEngine] = {}
        self._resolver: Dict[str, DocumentStore] = {}

        for name in kinds:
            if name not in PUBLISHED_REF_KINDS:
                raise ValueError(f"Unknown content kind: '{name}'")
            self.register_kind(ContentKind(name=name, published_kind=PUBLISHED_REF_KINDS[name]),
                               clock=clock, id_generator=id_generator,
                               serialize_publish=serialize_publish)

    def register_kind(self, kind: ContentKind, **engine_options: Any) -> ContentLifecycleEngine:
        """
        Register a content kind and build its engine.

        Args:
            kind: The kind to register
            engine_options: Extra keyword arguments for the engine

        Returns:
            The engine serving this kind
        """
        self.database.initialize_database(kind.collections)

        contents = self.database.collection(kind.content_collection, Content)
        versions = self.database.collection(kind.version_collection, ContentVersion)
        published = self.database.collection(kind.published_collection, PublishedContent)

        self._resolver[kind.name] = contents
        self._resolver[kind.published_kind] = published

        engine = ContentLifecycleEngine(contents, versions, published, resolver=self._resolver, **engine_options)
        self._kinds[kind.name] = kind
        self._engines[kind.name] = engine
        return engine

    def get_engine(self, name: str) -> ContentLifecycleEngine:
        """
        Get the lifecycle engine of a kind.

        Raises:
            KeyError: If the kind is not registered
        """
        if name not in self._engines:
            raise KeyError(f"Content kind not registered: '{name}'")
        return self._engines[name]

    def get_kind(self, name: str) -> Optional[ContentKind]:
        return self._kinds.get(name)

    def list_kinds(self) -> List[str]:
        """
        Get a list of all registered kind names.

        Returns:
            List of kind names
        """
        return list(self._kinds.keys())
