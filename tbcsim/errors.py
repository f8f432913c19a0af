from __future__ import annotations

from typing import Any, Optional


class SimConfigError(ValueError):
    """Bad input detected before any trial runs."""


class SimInvariantError(RuntimeError):
    """
    A modelling bug: state that must never happen did happen.

    Carries the simulated tick and the last agent action so a failed batch
    can be traced back to the offending trial.
    """

    def __init__(self, message: str, tick: Optional[int] = None, last_action: Any = None) -> None:
        self.message = message
        self.tick = tick
        self.last_action = last_action
        detail = message
        if tick is not None:
            detail += f" (tick={tick}"
            if last_action is not None:
                detail += f", last_action={last_action}"
            detail += ")"
        super().__init__(detail)

    def __reduce__(self):
        # keep tick and last action when raised inside a worker process
        return (type(self), (self.message, self.tick, self.last_action))


class NegativeManaError(SimInvariantError):
    pass


class SnapshotOverflowError(SimInvariantError):
    pass


class AuraInvariantError(SimInvariantError):
    pass


class BatchTimeoutError(RuntimeError):
    """A batch that must run in full hit its deadline."""
