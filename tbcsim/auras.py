from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator, List, Optional

from tbcsim.errors import AuraInvariantError
from tbcsim.magic import aura_name

if TYPE_CHECKING:
    from tbcsim.sim import Simulation
    from tbcsim.spells import Cast


# expiration tick of permanent auras
NEVER = 2 ** 31 - 1

# hook points, in the order a cast meets them
ON_CAST = "on_cast"
ON_CAST_COMPLETE = "on_cast_complete"
ON_SPELL_HIT = "on_spell_hit"


@dataclass
class Aura:
    """
    A timed effect. Subclasses override the hooks they need and keep their
    own mutable state (charges, stacks, last proc tick) as fields.
    """

    id: int
    expires: int = NEVER

    removed: bool = field(default=False, init=False, repr=False, compare=False)
    expire_fired: bool = field(default=False, init=False, repr=False, compare=False)

    @property
    def name(self) -> str:
        return aura_name(self.id)

    def on_cast(self, sim: "Simulation", cast: "Cast") -> None:
        pass

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        pass

    def on_spell_hit(self, sim: "Simulation", cast: "Cast") -> None:
        pass

    def on_struck(self, sim: "Simulation", cast: "Cast") -> None:
        pass

    def on_expire(self, sim: "Simulation", cast: Optional["Cast"] = None) -> None:
        pass


class AuraRegistry:
    """
    Live auras in registration order.

    - add() replaces an aura with the same id in its existing slot; the old
      instance is dropped without its on_expire hook.
    - expire() fires on_expire newest-first, so a removal that depends on
      an older aura still being present sees it.
    """

    def __init__(self) -> None:
        self._auras: List[Aura] = []

    # ----------------------------
    # membership
    # ----------------------------

    def _index(self, aura_id: int) -> int:
        for i, a in enumerate(self._auras):
            if a.id == aura_id:
                return i
        return -1

    def has(self, aura_id: int) -> bool:
        return self._index(aura_id) >= 0

    def get(self, aura_id: int) -> Optional[Aura]:
        i = self._index(aura_id)
        return self._auras[i] if i >= 0 else None

    def ids(self) -> List[int]:
        return [a.id for a in self._auras]

    def __len__(self) -> int:
        return len(self._auras)

    def __iter__(self) -> Iterator[Aura]:
        return iter(list(self._auras))

    # ----------------------------
    # mutation
    # ----------------------------

    def add(self, aura: Aura) -> None:
        if aura.removed:
            raise AuraInvariantError(f"cannot re-add removed aura {aura.name}")
        i = self._index(aura.id)
        if i < 0:
            self._auras.append(aura)
            return
        old = self._auras[i]
        if old is aura:
            return
        old.removed = True
        self._auras[i] = aura

    def remove_by_id(self, aura_id: int, sim: "Simulation") -> bool:
        i = self._index(aura_id)
        if i < 0:
            return False
        aura = self._auras.pop(i)
        aura.removed = True
        self._fire_expire(aura, sim)
        return True

    def expire(self, upto_tick: int, sim: "Simulation") -> None:
        due = [a for a in self._auras if a.expires <= upto_tick]
        for aura in reversed(due):
            if aura.removed:
                # an earlier on_expire already took it out
                continue
            self._auras = [a for a in self._auras if a is not aura]
            aura.removed = True
            self._fire_expire(aura, sim)

    def clear(self) -> None:
        for a in self._auras:
            a.removed = True
        self._auras.clear()

    def _fire_expire(self, aura: Aura, sim: "Simulation") -> None:
        if aura.expire_fired:
            raise AuraInvariantError(
                f"aura {aura.name} expired twice",
                tick=getattr(sim, "current_tick", None),
            )
        aura.expire_fired = True
        aura.on_expire(sim, None)

    # ----------------------------
    # hooks
    # ----------------------------

    def dispatch(self, hook: str, sim: "Simulation", cast: "Cast") -> None:
        blocked = cast.triggered_by
        for aura in list(self._auras):
            if aura.removed or aura.id in blocked:
                continue
            getattr(aura, hook)(sim, cast)
