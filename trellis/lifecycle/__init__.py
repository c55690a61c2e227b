"""Content lifecycle workflows."""

from .engine import ContentLifecycleEngine
from .registry import ContentKind, ContentRegistry

__all__ = ["ContentLifecycleEngine", "ContentKind", "ContentRegistry"]
