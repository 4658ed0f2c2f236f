from __future__ import annotations

import contextlib
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from contextlib import AbstractContextManager


class LockMode(Enum):
    """Select how a provider guards its instance cache.

    ``THREAD`` wraps every check-construct-insert sequence in a re-entrant lock,
    so a singleton (or a scoped instance within one scope) is built at most once
    even when several threads resolve it for the first time together.

    ``NONE`` skips locking. Concurrent first resolutions may then construct the
    same service twice, with the last write winning the cache slot.
    """

    THREAD = "thread"
    NONE = "none"

    def new_lock(self) -> AbstractContextManager[Any]:
        if self is LockMode.THREAD:
            return threading.RLock()
        return contextlib.nullcontext()
