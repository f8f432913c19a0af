from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import Dict

from tbcsim.agents import AgentType
from tbcsim.errors import SimConfigError
from tbcsim.stats import TICKS_PER_SECOND, Stat


class RaceBonus(IntEnum):
    # values match the race dropdown of the web UI
    NONE = 0
    DRAENEI = 1
    TROLL10 = 2
    TROLL30 = 3
    ORC = 4


@dataclass(frozen=True)
class Encounter:
    duration: float = 300.0  # seconds
    # chance to hit a raid boss before hit rating, and the hard cap
    base_hit: float = 0.83
    hit_cap: float = 0.99
    partial_resists: bool = True

    def __post_init__(self) -> None:
        if round(self.duration * TICKS_PER_SECOND) < 1:
            raise SimConfigError(f"encounter duration must be at least one tick, got {self.duration}s")
        if not (0.0 <= self.base_hit <= 1.0):
            raise SimConfigError(f"base_hit must be in [0, 1], got {self.base_hit}")
        if not (0.0 <= self.hit_cap <= 1.0):
            raise SimConfigError(f"hit_cap must be in [0, 1], got {self.hit_cap}")


@dataclass(frozen=True)
class Buffs:
    # raid buffs
    arcane_int: bool = False
    gift_of_the_wild: bool = False
    blessing_of_kings: bool = False
    improved_blessing_of_wisdom: bool = False
    improved_divine_spirit: bool = False

    # party buffs
    moonkin: bool = False
    moonkin_raven_goddess: bool = False
    spriest_dps: int = 0
    eye_of_night: bool = False
    twilight_owl: bool = False

    # self buffs
    water_shield: bool = False
    race: RaceBonus = RaceBonus.NONE

    # target debuffs
    judgement_of_wisdom: bool = False
    misery: bool = False

    custom: Dict[Stat, float] = field(default_factory=dict)


@dataclass(frozen=True)
class Consumes:
    brilliant_wizard_oil: bool = False
    major_mageblood: bool = False
    flask_of_blinding_light: bool = False
    flask_of_mighty_restoration: bool = False
    blackened_basilisk: bool = False

    # used during the fight
    destruction_potion: bool = False
    super_mana_potion: bool = False
    dark_rune: bool = False


@dataclass(frozen=True)
class Talents:
    lightning_overload: int = 0
    elemental_precision: int = 0
    natures_guidance: int = 0
    tidal_mastery: int = 0
    elemental_mastery: bool = False
    unrelenting_storm: int = 0
    call_of_thunder: int = 0
    convection: int = 0
    concussion: int = 0

    def __post_init__(self) -> None:
        for name, v, hi in [
            ("lightning_overload", self.lightning_overload, 5),
            ("elemental_precision", self.elemental_precision, 3),
            ("natures_guidance", self.natures_guidance, 3),
            ("tidal_mastery", self.tidal_mastery, 5),
            ("unrelenting_storm", self.unrelenting_storm, 5),
            ("call_of_thunder", self.call_of_thunder, 5),
            ("convection", self.convection, 5),
            ("concussion", self.concussion, 5),
        ]:
            if not (0 <= v <= hi):
                raise SimConfigError(f"talent {name} must be in [0, {hi}], got {v}")


@dataclass(frozen=True)
class Totems:
    totem_of_wrath: int = 0
    wrath_of_air: bool = False
    mana_stream: bool = False
    cyclone_2pc: bool = False


@dataclass(frozen=True)
class Options:
    agent_type: AgentType = AgentType.ADAPTIVE
    encounter: Encounter = field(default_factory=Encounter)
    exit_on_oom: bool = False

    num_bloodlust: int = 0
    num_drums: int = 0

    buffs: Buffs = field(default_factory=Buffs)
    consumes: Consumes = field(default_factory=Consumes)
    talents: Talents = field(default_factory=Talents)
    totems: Totems = field(default_factory=Totems)

    def __post_init__(self) -> None:
        if self.num_bloodlust < 0:
            raise SimConfigError("num_bloodlust must be >= 0")
        if not (0 <= self.num_drums <= 4):
            raise SimConfigError("num_drums must be in [0, 4]")

    def with_duration(self, seconds: float) -> "Options":
        return replace(self, encounter=replace(self.encounter, duration=float(seconds)))

    def with_agent(self, agent_type: AgentType) -> "Options":
        return replace(self, agent_type=agent_type)


# Talent build used by the CLI and web defaults (standard 41/0/20 elemental).
STANDARD_TALENTS = Talents(
    lightning_overload=5,
    elemental_precision=3,
    natures_guidance=3,
    tidal_mastery=5,
    elemental_mastery=True,
    unrelenting_storm=3,
    call_of_thunder=5,
    convection=5,
    concussion=5,
)
