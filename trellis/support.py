"""Clock and identity helpers injected into the lifecycle engine."""

import uuid
from datetime import datetime, timezone


class SystemClock:
    """Wall clock returning timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def generate_id() -> str:
    """Return a new globally unique id."""
    return uuid.uuid4().hex
