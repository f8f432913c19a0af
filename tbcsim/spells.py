from __future__ import annotations

import math
import random
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Mapping, Optional

from tbcsim.magic import MagicID
from tbcsim.stats import CRIT_RATING_PER_PCT, HASTE_RATING_PER_PCT, TICKS_PER_SECOND

# the global cooldown is the floor for any hasted cast
MIN_CAST_SECONDS = 1.0


@dataclass(frozen=True)
class Spell:
    id: int
    name: str
    # seconds, already reduced by Lightning Mastery for LB/CL
    cast_time: float
    mana: float
    min_dmg: float
    max_dmg: float
    coeff: float
    cooldown: float = 0.0  # seconds
    crit_multiplier: float = 2.0  # 1.5 base, Elemental Fury raises the bonus to 100%

    def __post_init__(self) -> None:
        if self.cast_time < 0:
            raise ValueError("cast_time must be >= 0")
        if self.mana < 0:
            raise ValueError("mana must be >= 0")
        if self.max_dmg < self.min_dmg:
            raise ValueError("max_dmg must be >= min_dmg")

    @property
    def cooldown_ticks(self) -> int:
        return int(round(self.cooldown * TICKS_PER_SECOND))

    def cast_ticks(self, haste_rating: float) -> int:
        if self.cast_time <= 0:
            return 0
        secs = self.cast_time / (1.0 + haste_rating / (HASTE_RATING_PER_PCT * 100.0))
        secs = max(MIN_CAST_SECONDS, secs)
        return int(math.ceil(secs * TICKS_PER_SECOND - 1e-9))

    def base_damage(self, rng: random.Random, spellpower: float) -> float:
        dmg = self.min_dmg
        if self.max_dmg > self.min_dmg:
            dmg += rng.random() * (self.max_dmg - self.min_dmg)
        return dmg + spellpower * self.coeff

    @staticmethod
    def crit_chance(crit_rating: float) -> float:
        return crit_rating / (CRIT_RATING_PER_PCT * 100.0)


LB12 = Spell(
    id=MagicID.LB12, name="LB12", cast_time=2.0, mana=300,
    min_dmg=571, max_dmg=652, coeff=0.794,
)
CL6 = Spell(
    id=MagicID.CL6, name="CL6", cast_time=1.5, cooldown=6.0, mana=760,
    min_dmg=734, max_dmg=838, coeff=0.651,
)
# Lightning Capacitor discharge; only ever resolved as a proc
TLC_LB = Spell(
    id=MagicID.TLC_LB, name="TLC-LB", cast_time=0.0, mana=0,
    min_dmg=694, max_dmg=807, coeff=0.0, crit_multiplier=1.5,
)

SPELLS: Dict[int, Spell] = {s.id: s for s in (LB12, CL6, TLC_LB)}

# spells affected by elemental talents (Convection, Concussion, Elemental Focus, LO)
LIGHTNING_SPELLS: FrozenSet[int] = frozenset({MagicID.LB12, MagicID.CL6})


def spell_catalog(overrides: Optional[Mapping[int, Spell]] = None) -> Dict[int, Spell]:
    catalog = dict(SPELLS)
    if overrides:
        catalog.update(overrides)
    return catalog


@dataclass
class Cast:
    """One resolving invocation of a Spell; hooks mutate it in place."""

    spell: Spell
    mana_cost: float
    ticks_until_cast: int = 0
    spellpower: float = 0.0
    hit: float = 0.0
    crit: float = 0.0
    crit_bonus: float = 1.0
    damage_multiplier: float = 1.0

    damage: float = 0.0
    did_hit: bool = False
    did_crit: bool = False

    is_clone: bool = False
    # aura ids that spawned this cast chain; those auras never see it
    triggered_by: FrozenSet[int] = field(default_factory=frozenset)

    def clone(self, trigger_id: int, damage_multiplier: float = 1.0, spell: Optional[Spell] = None) -> "Cast":
        """A free, instant copy used by procs (Lightning Overload, capacitor)."""
        return Cast(
            spell=spell or self.spell,
            mana_cost=0.0,
            damage_multiplier=damage_multiplier,
            is_clone=True,
            triggered_by=self.triggered_by | {int(trigger_id)},
        )

    def __str__(self) -> str:
        return f"Cast({self.spell.name}, mana={self.mana_cost:.1f}, ticks={self.ticks_until_cast})"
