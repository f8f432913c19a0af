from __future__ import annotations

from typing import Dict, Iterator


class CooldownTracker:
    """
    id -> remaining ticks.

    An id that is not present is ready. Entries are deleted as soon as their
    remaining time drops to 0 or below, so remaining() never goes negative.
    """

    def __init__(self) -> None:
        self._cds: Dict[int, int] = {}

    def set(self, cd_id: int, ticks: int) -> None:
        ticks = int(ticks)
        if ticks <= 0:
            self._cds.pop(cd_id, None)
            return
        self._cds[cd_id] = ticks

    def remaining(self, cd_id: int) -> int:
        return self._cds.get(cd_id, 0)

    def is_ready(self, cd_id: int) -> bool:
        return self.remaining(cd_id) <= 0

    def advance(self, ticks: int) -> None:
        if ticks <= 0:
            return
        expired = []
        for k in self._cds:
            self._cds[k] -= ticks
            if self._cds[k] <= 0:
                expired.append(k)
        for k in expired:
            del self._cds[k]

    def clear(self) -> None:
        self._cds.clear()

    def items(self):
        return self._cds.items()

    def __contains__(self, cd_id: int) -> bool:
        return cd_id in self._cds

    def __len__(self) -> int:
        return len(self._cds)

    def __iter__(self) -> Iterator[int]:
        return iter(self._cds)
