"""
Concrete auras: talents, debuffs, consumables, trinkets, gems and set bonuses.

Re-application policy differs per effect and is kept explicit:
  - StatBuff           : re-applying refreshes the expiration, the stat is added once
  - SpellPowerBonus    : re-applying replaces (new expiration)
  - ElementalFocus     : re-applying replaces with fresh charges
  - DarkmoonCardCrusade: stacks live on the parent aura, only the bonus expiry aura is replaced
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, FrozenSet, Optional

from tbcsim.auras import Aura
from tbcsim.magic import MagicID
from tbcsim.spells import LIGHTNING_SPELLS
from tbcsim.stats import TICKS_PER_SECOND, Stat

if TYPE_CHECKING:
    from tbcsim.sim import Simulation
    from tbcsim.spells import Cast


# "never procced yet" for internal cooldown bookkeeping
NO_PROC = -(2 ** 31)


def seconds_to_ticks(seconds: float) -> int:
    return int(round(seconds * TICKS_PER_SECOND))


# ----------------------------
# Generic building blocks
# ----------------------------

@dataclass
class StatBuff(Aura):
    """Temporary stat delta; the buff vector gets it back on expiry."""

    stat: Stat = Stat.SPELL_DMG
    amount: float = 0.0

    def on_expire(self, sim: "Simulation", cast: Optional["Cast"] = None) -> None:
        sim.debug_log(f" -{self.amount:.0f} {self.stat.name} from {self.name}")
        sim.buffs[self.stat] -= self.amount


@dataclass
class SpellPowerBonus(Aura):
    """+spellpower on every cast completing while active (on-use trinkets, set procs)."""

    amount: float = 0.0

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        cast.spellpower += self.amount


@dataclass
class ProcStatBuff(Aura):
    """Chance on cast complete to grant a StatBuff, gated by an internal cooldown."""

    buff_id: int = MagicID.UNKNOWN
    stat: Stat = Stat.HASTE
    amount: float = 0.0
    chance: float = 0.0
    duration: float = 0.0  # seconds
    icd: float = 0.0  # seconds
    spells: Optional[FrozenSet[int]] = None
    last_activation: int = NO_PROC

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        if self.spells is not None and cast.spell.id not in self.spells:
            return
        if self.last_activation + seconds_to_ticks(self.icd) >= sim.current_tick:
            return
        if sim.rng.random() < self.chance:
            sim.debug_log(f" +{self.name} proc")
            sim.apply_stat_buff(self.buff_id, self.stat, self.amount, self.duration)
            self.last_activation = sim.current_tick


@dataclass
class SpellPowerProc(Aura):
    """Chance on cast complete to gain a SpellPowerBonus aura (set bonuses)."""

    bonus_id: int = MagicID.UNKNOWN
    amount: float = 0.0
    chance: float = 0.0
    duration: float = 0.0

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        if sim.rng.random() < self.chance:
            sim.debug_log(f" +{self.name} proc")
            sim.auras.add(SpellPowerBonus(
                id=self.bonus_id,
                expires=sim.current_tick + seconds_to_ticks(self.duration),
                amount=self.amount,
            ))


# ----------------------------
# Talents
# ----------------------------

@dataclass
class LightningOverload(Aura):
    id: int = MagicID.LO_TALENT
    level: int = 5

    def on_spell_hit(self, sim: "Simulation", cast: "Cast") -> None:
        if cast.spell.id not in LIGHTNING_SPELLS:
            return
        if sim.rng.random() < 0.04 * self.level:
            sim.debug_log(" +Lightning Overload")
            sim.cast(cast.clone(self.id, damage_multiplier=0.5))


@dataclass
class ElementalFocus(Aura):
    """Clearcasting: the next two non-free casts cost 40% less."""

    id: int = MagicID.ELE_FOCUS
    charges: int = 2

    def on_cast(self, sim: "Simulation", cast: "Cast") -> None:
        cast.mana_cost *= 0.6

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        if cast.mana_cost <= 0:
            return
        self.charges -= 1
        if self.charges <= 0:
            sim.auras.remove_by_id(self.id, sim)


@dataclass
class ElementalMastery(Aura):
    """Next cast is free and guaranteed to crit."""

    id: int = MagicID.ELE_MASTERY

    def on_cast(self, sim: "Simulation", cast: "Cast") -> None:
        cast.mana_cost = 0.0
        sim.cooldowns.set(self.id, 180 * TICKS_PER_SECOND)

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        cast.crit += 1.01
        sim.auras.remove_by_id(self.id, sim)


# ----------------------------
# Debuffs / group effects
# ----------------------------

@dataclass
class JudgementOfWisdom(Aura):
    id: int = MagicID.JOW
    mana: float = 74.0

    def on_spell_hit(self, sim: "Simulation", cast: "Cast") -> None:
        sim.debug_log(f" +Judgement Of Wisdom: {self.mana:.0f} mana")
        sim.restore_mana(self.mana)


# ----------------------------
# Items
# ----------------------------

@dataclass
class NaturalAlignmentCrystal(Aura):
    id: int = MagicID.NAC

    def on_cast(self, sim: "Simulation", cast: "Cast") -> None:
        cast.mana_cost *= 1.2

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        cast.spellpower += 250


@dataclass
class DarkmoonCardCrusade(Aura):
    id: int = MagicID.DCC
    bonus: float = 18.0
    max_stacks: int = 10
    stacks: int = 0

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        if self.stacks < self.max_stacks:
            self.stacks += 1
            sim.buffs[Stat.SPELL_DMG] += self.bonus
        # refreshed every cast; only the newest expiry strips the stacks
        sim.auras.add(CrusadeBonus(expires=sim.current_tick + 10 * TICKS_PER_SECOND, card=self))


@dataclass
class CrusadeBonus(Aura):
    id: int = MagicID.DCC_BONUS
    card: Optional[DarkmoonCardCrusade] = None

    def on_expire(self, sim: "Simulation", cast: Optional["Cast"] = None) -> None:
        if self.card is None:
            return
        sim.buffs[Stat.SPELL_DMG] -= self.card.bonus * self.card.stacks
        self.card.stacks = 0


@dataclass
class LightningCapacitor(Aura):
    """Spell crits build charges; the third releases a free TLC-LB."""

    id: int = MagicID.TLC
    icd: float = 2.5
    charges: int = 0
    last_activation: int = NO_PROC

    def on_spell_hit(self, sim: "Simulation", cast: "Cast") -> None:
        if self.last_activation + seconds_to_ticks(self.icd) >= sim.current_tick:
            return
        if not cast.did_crit:
            return
        self.last_activation = sim.current_tick
        self.charges += 1
        sim.debug_log(f" Lightning Capacitor Charges: {self.charges}")
        if self.charges >= 3:
            sim.debug_log(" Lightning Capacitor Triggered!")
            self.charges = 0
            sim.cast(cast.clone(self.id, spell=sim.spells[MagicID.TLC_LB]))


# ----------------------------
# Meta gems
# ----------------------------

@dataclass
class ChaoticSkyfire(Aura):
    id: int = MagicID.CHAOTIC_SKYFIRE

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        cast.crit_bonus *= 1.03


@dataclass
class InsightfulEarthstorm(Aura):
    id: int = MagicID.INSIGHTFUL_EARTHSTORM
    icd: float = 15.0
    last_activation: int = NO_PROC

    def on_cast_complete(self, sim: "Simulation", cast: "Cast") -> None:
        if self.last_activation + seconds_to_ticks(self.icd) >= sim.current_tick:
            return
        if sim.rng.random() < 0.04:
            self.last_activation = sim.current_tick
            sim.debug_log(" *Insightful Earthstorm Mana Restore - 300")
            sim.restore_mana(300)


# ----------------------------
# Factories used by the equipment table
# ----------------------------

def quags_eye() -> ProcStatBuff:
    return ProcStatBuff(
        id=MagicID.QUAGS_EYE, buff_id=MagicID.FUNGAL_FRENZY, stat=Stat.HASTE,
        amount=320.0, chance=0.1, duration=6, icd=45,
    )


def nexus_horn() -> ProcStatBuff:
    return ProcStatBuff(
        id=MagicID.NEXUS_HORN, buff_id=MagicID.CALL_OF_THE_NEXUS, stat=Stat.SPELL_DMG,
        amount=225.0, chance=0.2, duration=10, icd=45,
    )


def mystical_skyfire() -> ProcStatBuff:
    return ProcStatBuff(
        id=MagicID.MYSTIC_SKYFIRE, buff_id=MagicID.MYSTIC_FOCUS, stat=Stat.HASTE,
        amount=320.0, chance=0.15, duration=4, icd=35,
    )


def skycall() -> ProcStatBuff:
    return ProcStatBuff(
        id=MagicID.SKYCALL, buff_id=MagicID.ENERGIZED, stat=Stat.HASTE,
        amount=101.0, chance=0.15, duration=10, icd=0,
        spells=frozenset({MagicID.LB12}),
    )


def spellstrike() -> SpellPowerProc:
    return SpellPowerProc(
        id=MagicID.SPELLSTRIKE, bonus_id=MagicID.SPELLSTRIKE_INFUSION,
        amount=92.0, chance=0.05, duration=10,
    )


def mana_etched() -> SpellPowerProc:
    return SpellPowerProc(
        id=MagicID.MANA_ETCHED, bonus_id=MagicID.MANA_ETCHED_INSIGHT,
        amount=110.0, chance=0.02, duration=15,
    )


def spell_power_bonus(aura_id: int, amount: float, seconds: float, current_tick: int) -> SpellPowerBonus:
    return SpellPowerBonus(id=aura_id, expires=current_tick + seconds_to_ticks(seconds), amount=amount)
