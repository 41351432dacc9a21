"""
Polling-based subscriptions.

Devices whose upstream offers no push channel implement ``subscribe_<name>``
by re-running the matching query on an interval and emitting its records only
when they changed since the previous poll.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

DEFAULT_POLL_INTERVAL = 60.0


@dataclass(slots=True)
class PollingSubscription:
    """
    Iterator over changed query results.

    Parameters
    ----------
    fetch:
        Callable returning the current output records.
    interval:
        Seconds to wait between polls.
    sleep:
        Sleep function, replaceable in tests.
    """

    fetch: Callable[[], Sequence[Dict[str, Any]]]
    interval: float = DEFAULT_POLL_INTERVAL
    sleep: Callable[[float], None] = time.sleep
    _last: Optional[List[Dict[str, Any]]] = field(default=None, init=False, repr=False)
    _stopped: bool = field(default=False, init=False, repr=False)

    @property
    def stopped(self) -> bool:
        return self._stopped

    def poll(self) -> List[Dict[str, Any]]:
        """Fetch once; return the records if they differ from the last poll, else ``[]``."""

        current = list(self.fetch())
        if current == self._last:
            return []
        self._last = current
        return current

    def stop(self) -> None:
        self._stopped = True

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        while not self._stopped:
            yield from self.poll()
            if self._stopped:
                break
            self.sleep(self.interval)
