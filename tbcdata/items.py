"""
Small equipment table: stats of the pieces a caster shaman actually wears,
plus the on-use and proc effects of trinkets, meta gems, totems and sets.

Every activation callable is a module-level function or a functools.partial
of one, so an activation list can be shipped to worker processes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

import numpy as np

from tbcsim.activations import PASSIVE, SLOT_TRINKET, Activation
from tbcsim.auras import Aura
from tbcsim.effects import (
    ChaoticSkyfire,
    DarkmoonCardCrusade,
    InsightfulEarthstorm,
    LightningCapacitor,
    NaturalAlignmentCrystal,
    mana_etched,
    mystical_skyfire,
    nexus_horn,
    quags_eye,
    seconds_to_ticks,
    skycall,
    spell_power_bonus,
    spellstrike,
)
from tbcsim.errors import SimConfigError
from tbcsim.magic import MagicID
from tbcsim.stats import Stat, new_stats, stats_to_dict

logger = logging.getLogger(__name__)


# ----------------------------
# activation callables
# ----------------------------

def _passive(factory: Callable[[], Aura], sim) -> Aura:
    return factory()


def _on_use_spell_power(aura_id: int, amount: float, seconds: float, sim) -> Aura:
    return spell_power_bonus(aura_id, amount, seconds, sim.current_tick)


def _on_use_stat(aura_id: int, stat: Stat, amount: float, seconds: float, sim) -> Aura:
    return sim.apply_stat_buff(aura_id, stat, amount, seconds)


def _on_use_nac(sim) -> Aura:
    return NaturalAlignmentCrystal(expires=sim.current_tick + seconds_to_ticks(20))


def passive(aura_id: int, name: str, factory: Callable[[], Aura], slot: str = "other") -> Activation:
    return Activation(id=aura_id, name=name, activate=partial(_passive, factory), cooldown=PASSIVE, slot=slot)


def on_use_spell_power(cd_id: int, aura_id: int, name: str, amount: float, seconds: float, cooldown: float) -> Activation:
    return Activation(
        id=cd_id, name=name, slot=SLOT_TRINKET, cooldown=cooldown,
        activate=partial(_on_use_spell_power, aura_id, amount, seconds),
    )


# ----------------------------
# table
# ----------------------------

@dataclass(frozen=True)
class Item:
    name: str
    slot: str
    stats: Dict[Stat, float] = field(default_factory=dict)
    activation: Optional[Activation] = None
    # intellect multiplier applied with the other percentage buffs
    int_multiplier: float = 1.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "slot": self.slot,
            "stats": {k: v for k, v in stats_to_dict(new_stats(self.stats)).items() if v},
            "activation": None if self.activation is None else {
                "name": self.activation.name,
                "cooldown": self.activation.cooldown,
            },
        }


@dataclass(frozen=True)
class ItemSet:
    name: str
    pieces: FrozenSet[str]
    required: int
    activation: Activation


_ITEM_LIST: List[Item] = [
    # head
    Item("Tidefury Helm", "head", {Stat.STM: 15, Stat.INT: 26, Stat.SPELL_DMG: 32, Stat.MP5: 6}),
    Item("Spellstrike Hood", "head", {Stat.STM: 16, Stat.INT: 12, Stat.SPELL_CRIT: 24, Stat.SPELL_HIT: 16, Stat.SPELL_DMG: 46}),
    Item("Mana-Etched Crown", "head", {Stat.STM: 27, Stat.INT: 20, Stat.SPELL_DMG: 34, Stat.SPELL_PEN: 15}),
    # neck
    Item("Charlotte's Ivy", "neck", {Stat.STM: 15, Stat.INT: 19, Stat.SPELL_DMG: 23}),
    # shoulders
    Item("Pauldrons of Wild Magic", "shoulder", {Stat.STM: 21, Stat.INT: 28, Stat.SPELL_CRIT: 23, Stat.SPELL_DMG: 33}),
    Item("Mana-Etched Spaulders", "shoulder", {Stat.STM: 25, Stat.INT: 17, Stat.SPELL_CRIT: 16, Stat.SPELL_DMG: 20}),
    # back
    Item("Ogre Slayer's Cover", "back", {Stat.STM: 18, Stat.INT: 16, Stat.SPELL_DMG: 20, Stat.MP5: 4}),
    # chest
    Item("Tidefury Chestpiece", "chest", {Stat.STM: 28, Stat.INT: 22, Stat.SPELL_HIT: 10, Stat.SPELL_DMG: 36, Stat.MP5: 4}),
    Item("Mana-Etched Vestments", "chest", {Stat.STM: 25, Stat.INT: 25, Stat.SPELL_CRIT: 17, Stat.SPELL_DMG: 29}),
    # wrist
    Item("World's End Bracers", "wrist", {Stat.STM: 18, Stat.INT: 19, Stat.SPELL_CRIT: 17, Stat.SPELL_DMG: 22}),
    # hands
    Item("Earth Mantle Handwraps", "hands", {Stat.STM: 18, Stat.INT: 21, Stat.SPELL_CRIT: 16, Stat.SPELL_DMG: 19}),
    Item("Mana-Etched Gloves", "hands", {Stat.STM: 25, Stat.INT: 17, Stat.SPELL_DMG: 20, Stat.SPELL_PEN: 15}),
    # waist
    Item("Netherstrike Belt", "waist", {Stat.STM: 10, Stat.INT: 17, Stat.SPELL_CRIT: 16, Stat.SPELL_DMG: 30, Stat.MP5: 9}),
    # legs
    Item("Stormsong Kilt", "legs", {Stat.STM: 30, Stat.INT: 25, Stat.SPELL_CRIT: 26, Stat.SPELL_DMG: 35}),
    Item("Spellstrike Pants", "legs", {Stat.STM: 12, Stat.INT: 8, Stat.SPELL_CRIT: 26, Stat.SPELL_HIT: 22, Stat.SPELL_DMG: 46}),
    Item("Mana-Etched Pantaloons", "legs", {Stat.STM: 34, Stat.INT: 32, Stat.SPELL_CRIT: 21, Stat.SPELL_DMG: 33, Stat.SPELL_PEN: 18}),
    # feet
    Item("Magma Plume Boots", "feet", {Stat.STM: 24, Stat.INT: 26, Stat.SPELL_HIT: 14, Stat.SPELL_DMG: 29}),
    # fingers
    Item("Cobalt Band of Tyrigosa", "finger", {Stat.STM: 19, Stat.INT: 17, Stat.SPELL_DMG: 35}),
    Item("Sparking Arcanite Ring", "finger", {Stat.STM: 14, Stat.INT: 14, Stat.SPELL_CRIT: 14, Stat.SPELL_HIT: 10, Stat.SPELL_DMG: 22}),
    # weapons
    Item("Mazthoril Honor Shield", "offhand", {Stat.STM: 16, Stat.INT: 17, Stat.SPELL_CRIT: 21, Stat.SPELL_DMG: 23}),
    Item("Gavel of Unearthed Secrets", "mainhand", {Stat.STM: 24, Stat.INT: 16, Stat.SPELL_CRIT: 15, Stat.SPELL_DMG: 159}),
    # totems
    Item("Totem of the Void", "totem", {Stat.SPELL_DMG: 55}),
    Item("Skycall Totem", "totem", activation=passive(MagicID.SKYCALL, "Skycall Totem", skycall, slot="totem")),

    # trinkets
    Item(
        "Icon of the Silver Crescent", SLOT_TRINKET, {Stat.SPELL_DMG: 43},
        activation=on_use_spell_power(
            MagicID.ISC_TRINK, MagicID.BLESSING_SILVER_CRESCENT, "Icon of the Silver Crescent",
            amount=155, seconds=20, cooldown=120,
        ),
    ),
    Item(
        "Scryer's Bloodgem", SLOT_TRINKET, {Stat.SPELL_HIT: 32},
        activation=on_use_spell_power(
            MagicID.SCRYER_TRINK, MagicID.SCRYER_BLOODGEM, "Scryer's Bloodgem",
            amount=150, seconds=15, cooldown=90,
        ),
    ),
    Item(
        "Xiri's Gift", SLOT_TRINKET, {Stat.SPELL_CRIT: 32},
        activation=on_use_spell_power(
            MagicID.XIRI_TRINK, MagicID.XIRI_INFUSION, "Xiri's Gift",
            amount=150, seconds=15, cooldown=90,
        ),
    ),
    Item(
        "Figurine - Living Ruby Serpent", SLOT_TRINKET, {Stat.STM: 33, Stat.INT: 22},
        activation=on_use_spell_power(
            MagicID.RUBY_SERPENT_TRINK, MagicID.RUBY_SERPENT, "Figurine - Living Ruby Serpent",
            amount=150, seconds=20, cooldown=300,
        ),
    ),
    Item(
        "Natural Alignment Crystal", SLOT_TRINKET,
        activation=Activation(
            id=MagicID.NAC_TRINK, name="Natural Alignment Crystal", activate=_on_use_nac,
            cooldown=300, slot=SLOT_TRINKET,
        ),
    ),
    Item(
        "The Skull of Gul'dan", SLOT_TRINKET, {Stat.SPELL_HIT: 25, Stat.SPELL_DMG: 55},
        activation=Activation(
            id=MagicID.SKULL_GULDAN_TRINK, name="The Skull of Gul'dan",
            activate=partial(_on_use_stat, MagicID.SKULL_GULDAN, Stat.HASTE, 175.0, 20),
            cooldown=120, slot=SLOT_TRINKET,
        ),
    ),
    Item(
        "Quagmirran's Eye", SLOT_TRINKET, {Stat.SPELL_DMG: 37},
        activation=passive(MagicID.QUAGS_EYE, "Quagmirran's Eye", quags_eye, slot=SLOT_TRINKET),
    ),
    Item(
        "Shiffar's Nexus-Horn", SLOT_TRINKET, {Stat.SPELL_CRIT: 30},
        activation=passive(MagicID.NEXUS_HORN, "Shiffar's Nexus-Horn", nexus_horn, slot=SLOT_TRINKET),
    ),
    Item(
        "Darkmoon Card: Crusade", SLOT_TRINKET,
        activation=passive(MagicID.DCC, "Darkmoon Card: Crusade", DarkmoonCardCrusade, slot=SLOT_TRINKET),
    ),
    Item(
        "The Lightning Capacitor", SLOT_TRINKET,
        activation=passive(MagicID.TLC, "The Lightning Capacitor", LightningCapacitor, slot=SLOT_TRINKET),
    ),

    # meta gems
    Item(
        "Chaotic Skyfire Diamond", "meta", {Stat.SPELL_CRIT: 12},
        activation=passive(MagicID.CHAOTIC_SKYFIRE, "Chaotic Skyfire Diamond", ChaoticSkyfire, slot="meta"),
    ),
    Item(
        "Insightful Earthstorm Diamond", "meta", {Stat.INT: 12},
        activation=passive(MagicID.INSIGHTFUL_EARTHSTORM, "Insightful Earthstorm Diamond", InsightfulEarthstorm, slot="meta"),
    ),
    Item(
        "Mystical Skyfire Diamond", "meta",
        activation=passive(MagicID.MYSTIC_SKYFIRE, "Mystical Skyfire Diamond", mystical_skyfire, slot="meta"),
    ),
    Item("Ember Skyfire Diamond", "meta", {Stat.SPELL_DMG: 14}, int_multiplier=1.02),
]

ITEMS: Dict[str, Item] = {it.name: it for it in _ITEM_LIST}

SETS: List[ItemSet] = [
    ItemSet(
        "Spellstrike",
        frozenset({"Spellstrike Hood", "Spellstrike Pants"}),
        required=2,
        activation=passive(MagicID.SPELLSTRIKE, "Spellstrike Set", spellstrike, slot="set"),
    ),
    ItemSet(
        "Mana-Etched",
        frozenset({
            "Mana-Etched Crown", "Mana-Etched Spaulders", "Mana-Etched Vestments",
            "Mana-Etched Gloves", "Mana-Etched Pantaloons",
        }),
        required=4,
        activation=passive(MagicID.MANA_ETCHED, "Mana-Etched Set", mana_etched, slot="set"),
    ),
]

DEFAULT_GEAR: List[str] = [
    "Tidefury Helm",
    "Charlotte's Ivy",
    "Pauldrons of Wild Magic",
    "Ogre Slayer's Cover",
    "Tidefury Chestpiece",
    "World's End Bracers",
    "Earth Mantle Handwraps",
    "Netherstrike Belt",
    "Stormsong Kilt",
    "Magma Plume Boots",
    "Cobalt Band of Tyrigosa",
    "Sparking Arcanite Ring",
    "Mazthoril Honor Shield",
    "Gavel of Unearthed Secrets",
    "Natural Alignment Crystal",
    "Icon of the Silver Crescent",
    "Totem of the Void",
]


def lookup(name: str) -> Item:
    it = ITEMS.get(name)
    if it is not None:
        return it
    key = str(name).strip().lower()
    for n, it in ITEMS.items():
        if n.lower() == key:
            return it
    raise SimConfigError(f"unknown item: {name!r}")


def resolve(names: Iterable[str]) -> List[Item]:
    items = [lookup(n) for n in names]
    # two of the same trinket or ring would double its on-use
    seen = set()
    out = []
    for it in items:
        if it.name in seen and it.activation is not None:
            logger.warning("duplicate item %r ignored", it.name)
            continue
        seen.add(it.name)
        out.append(it)
    return out


def gear_stats(names: Iterable[str]) -> np.ndarray:
    st = new_stats()
    for it in resolve(names):
        st += new_stats(it.stats)
    return st


def int_multipliers(names: Iterable[str]) -> List[float]:
    return [it.int_multiplier for it in resolve(names) if it.int_multiplier != 1.0]


def equipment_activations(names: Iterable[str]) -> List[Activation]:
    items = resolve(names)
    out = [it.activation for it in items if it.activation is not None]
    worn = {it.name for it in items}
    for s in SETS:
        if len(worn & s.pieces) >= s.required:
            out.append(s.activation)
    return out


def items_table() -> List[Dict[str, Any]]:
    return [it.to_dict() for it in _ITEM_LIST]
