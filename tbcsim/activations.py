"""
Things the driver pops while idle, before asking the agent for a spell:
group cooldowns, talents, racials, consumables and on-use items.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from tbcsim.auras import Aura
from tbcsim.effects import ElementalMastery
from tbcsim.magic import MagicID
from tbcsim.options import RaceBonus
from tbcsim.stats import TICKS_PER_SECOND, Stat

if TYPE_CHECKING:
    from tbcsim.sim import Simulation


# cooldown marker for equipment whose effect is always on
PASSIVE = -1

SLOT_TRINKET = "trinket"

# only one on-use trinket may be popped per window
ALL_TRINKET_WINDOW = 30  # seconds

DRUM_IDS = (MagicID.DRUM1, MagicID.DRUM2, MagicID.DRUM3, MagicID.DRUM4)


@dataclass(frozen=True)
class Activation:
    """One row of the equipment activation table."""

    id: int  # cooldown id
    name: str
    activate: Callable[["Simulation"], Aura]
    cooldown: float = PASSIVE  # seconds, PASSIVE = applied once at trial start
    slot: str = "other"

    @property
    def passive(self) -> bool:
        return self.cooldown == PASSIVE


# ----------------------------
# group cooldowns
# ----------------------------

def activate_drums(sim: "Simulation") -> None:
    opts = sim.options
    if opts.num_drums <= 0 or not sim.cooldowns.is_ready(MagicID.DRUMS):
        return
    # each party member has their own drum on a 2 minute cooldown
    for i, drum_id in enumerate(DRUM_IDS):
        if i == opts.num_drums:
            break
        if sim.cooldowns.is_ready(drum_id):
            sim.cooldowns.set(drum_id, 120 * TICKS_PER_SECOND)
            sim.cooldowns.set(MagicID.DRUMS, 30 * TICKS_PER_SECOND)
            sim.apply_stat_buff(MagicID.DRUMS, Stat.HASTE, 80.0, 30)
            sim.debug_log(f"Drums of Battle #{i + 1}")
            break


def activate_bloodlust(sim: "Simulation") -> None:
    if sim.options.num_bloodlust <= sim.bloodlust_casts:
        return
    if not sim.cooldowns.is_ready(MagicID.BLOODLUST):
        return
    # multiple bloodlusts come from different shamans, back to back
    sim.cooldowns.set(MagicID.BLOODLUST, 40 * TICKS_PER_SECOND)
    sim.apply_stat_buff(MagicID.BLOODLUST, Stat.HASTE, 472.8, 40)
    sim.bloodlust_casts += 1
    sim.debug_log(f"Bloodlust #{sim.bloodlust_casts}")


def activate_elemental_mastery(sim: "Simulation") -> None:
    if not sim.options.talents.elemental_mastery:
        return
    if sim.cooldowns.is_ready(MagicID.ELE_MASTERY) and not sim.auras.has(MagicID.ELE_MASTERY):
        sim.auras.add(ElementalMastery())


def activate_racial(sim: "Simulation") -> None:
    race = sim.options.buffs.race
    if race == RaceBonus.ORC:
        if sim.cooldowns.is_ready(MagicID.ORC_BLOOD_FURY):
            sim.apply_stat_buff(MagicID.ORC_BLOOD_FURY, Stat.SPELL_DMG, 143.0, 15)
            sim.cooldowns.set(MagicID.ORC_BLOOD_FURY, 120 * TICKS_PER_SECOND)
            sim.debug_log("Blood Fury")
    elif race in (RaceBonus.TROLL10, RaceBonus.TROLL30):
        haste = 472.8 if race == RaceBonus.TROLL30 else 157.6
        if sim.cooldowns.is_ready(MagicID.TROLL_BERSERKING):
            sim.apply_stat_buff(MagicID.TROLL_BERSERKING, Stat.HASTE, haste, 10)
            sim.cooldowns.set(MagicID.TROLL_BERSERKING, 180 * TICKS_PER_SECOND)
            sim.debug_log("Berserking")


# ----------------------------
# consumables
# ----------------------------

def activate_destruction_potion(sim: "Simulation") -> None:
    cons = sim.options.consumes
    if not cons.destruction_potion or not sim.cooldowns.is_ready(MagicID.POTION):
        return
    # when mana potions are in the bag, destruction is only used on the pull
    if cons.super_mana_potion and sim.destruction_potion_used:
        return
    sim.apply_stat_buff(MagicID.DESTRUCTION_POTION, Stat.SPELL_DMG, 120.0, 15)
    sim.apply_stat_buff(MagicID.DESTRUCTION_POTION_CRIT, Stat.SPELL_CRIT, 44.16, 15)
    sim.cooldowns.set(MagicID.POTION, 120 * TICKS_PER_SECOND)
    sim.destruction_potion_used = True
    sim.debug_log("Used Destruction Potion")


def use_mana_consumables(sim: "Simulation") -> bool:
    """Rune / potion when the missing mana (plus one mp5 tick) covers the best roll."""
    cons = sim.options.consumes
    total_regen = sim.stats[Stat.MP5] + sim.buffs[Stat.MP5]
    deficit = sim.stats[Stat.MANA] - sim.current_mana + total_regen
    did_pot = False

    if cons.dark_rune and deficit >= 1500 and sim.cooldowns.is_ready(MagicID.RUNE):
        # restores 900 to 1500 mana
        sim.restore_mana(900 + sim.rng.random() * 600)
        sim.cooldowns.set(MagicID.RUNE, 120 * TICKS_PER_SECOND)
        did_pot = True
        sim.debug_log("Used Dark Rune")
        deficit = sim.stats[Stat.MANA] - sim.current_mana + total_regen

    if cons.super_mana_potion and deficit >= 3000 and sim.cooldowns.is_ready(MagicID.POTION):
        # restores 1800 to 3000 mana
        sim.restore_mana(1800 + sim.rng.random() * 1200)
        sim.cooldowns.set(MagicID.POTION, 120 * TICKS_PER_SECOND)
        did_pot = True
        sim.debug_log("Used Mana Potion")

    return did_pot


# ----------------------------
# equipment
# ----------------------------

def activate_items(sim: "Simulation") -> None:
    for item in sim.activations:
        if item.passive:
            continue
        if not sim.cooldowns.is_ready(item.id):
            continue
        is_trinket = item.slot == SLOT_TRINKET
        if is_trinket and not sim.cooldowns.is_ready(MagicID.ALL_TRINKET):
            continue
        sim.auras.add(item.activate(sim))
        sim.cooldowns.set(item.id, int(round(item.cooldown * TICKS_PER_SECOND)))
        if is_trinket:
            sim.cooldowns.set(MagicID.ALL_TRINKET, ALL_TRINKET_WINDOW * TICKS_PER_SECOND)
        sim.debug_log(f"Activated {item.name}")


def apply_passive_items(sim: "Simulation") -> None:
    for item in sim.activations:
        if item.passive:
            sim.auras.add(item.activate(sim))


def run_activations(sim: "Simulation") -> bool:
    """Fixed order; returns whether a mana consumable was used."""
    activate_drums(sim)
    activate_bloodlust(sim)
    activate_elemental_mastery(sim)
    activate_racial(sim)
    activate_destruction_potion(sim)
    did_pot = use_mana_consumables(sim)
    activate_items(sim)
    return did_pot
