from __future__ import annotations

from enum import IntEnum
from typing import Dict, Optional

import numpy as np


TICKS_PER_SECOND = 30

# rating needed for 1% of the effect
CRIT_RATING_PER_PCT = 22.08
HIT_RATING_PER_PCT = 12.6
HASTE_RATING_PER_PCT = 15.76


class Stat(IntEnum):
    INT = 0
    STM = 1
    SPELL_CRIT = 2
    SPELL_HIT = 3
    SPELL_DMG = 4
    HASTE = 5
    MP5 = 6
    MANA = 7
    SPELL_PEN = 8
    SPIRIT = 9


STAT_LEN = len(Stat)

_STAT_NAMES = {
    Stat.INT: "StatInt",
    Stat.STM: "StatStm",
    Stat.SPELL_CRIT: "StatSpellCrit",
    Stat.SPELL_HIT: "StatSpellHit",
    Stat.SPELL_DMG: "StatSpellDmg",
    Stat.HASTE: "StatHaste",
    Stat.MP5: "StatMP5",
    Stat.MANA: "StatMana",
    Stat.SPELL_PEN: "StatSpellPen",
    Stat.SPIRIT: "StatSpirit",
}


def stat_name(stat: int) -> str:
    try:
        return _STAT_NAMES[Stat(stat)]
    except ValueError:
        return "none"


def parse_stat(name: str) -> Stat:
    """Accepts 'SPELL_DMG', 'spell_dmg', 'StatSpellDmg' or an index."""
    key = str(name).strip()
    if key.isdigit():
        return Stat(int(key))
    for st, display in _STAT_NAMES.items():
        if key.lower() in (st.name.lower(), display.lower(), display[4:].lower()):
            return st
    raise ValueError(f"unknown stat: {name!r}")


def new_stats(values: Optional[Dict[Stat, float]] = None, **kwargs: float) -> np.ndarray:
    """
    Build a stat vector.

      new_stats({Stat.INT: 290}, spell_dmg=653)
    """
    st = np.zeros(STAT_LEN, dtype=np.float64)
    for k, v in (values or {}).items():
        st[int(k)] += float(v)
    for k, v in kwargs.items():
        st[int(Stat[k.upper()])] += float(v)
    return st


def stats_to_dict(st: np.ndarray) -> Dict[str, float]:
    return {stat_name(i): float(v) for i, v in enumerate(st)}


def format_stats(st: np.ndarray, pretty: bool = False) -> str:
    parts = []
    for i, v in enumerate(st):
        name = stat_name(i)
        if name == "none":
            continue
        # small values are percentages / ratings that need decimals
        if v < 50:
            val = f"{v:.3f}"
        else:
            val = f"{v:.0f}"
        parts.append(("\t" if pretty else "") + f'"{name}": {val}')
    sep = ",\n" if pretty else ","
    return "{ " + sep.join(parts) + " }"
