from __future__ import annotations

from typing import Iterable, Optional

import numpy as np

from tbcsim.options import Buffs, Consumes, Options, RaceBonus, Talents, Totems
from tbcsim.stats import CRIT_RATING_PER_PCT, HIT_RATING_PER_PCT, Stat, new_stats


def base_stats() -> np.ndarray:
    """Naked level 70 shaman."""
    return new_stats({
        Stat.INT: 104,
        Stat.MANA: 2678,
        Stat.SPIRIT: 135,
        Stat.SPELL_CRIT: 48.576,
    })


def add_totems(tt: Totems, st: np.ndarray) -> np.ndarray:
    st[Stat.SPELL_CRIT] += 3 * CRIT_RATING_PER_PCT * tt.totem_of_wrath
    st[Stat.SPELL_HIT] += 3 * HIT_RATING_PER_PCT * tt.totem_of_wrath
    if tt.wrath_of_air:
        st[Stat.SPELL_DMG] += 101
        if tt.cyclone_2pc:
            st[Stat.SPELL_DMG] += 20
    if tt.mana_stream:
        st[Stat.MP5] += 50
    return st


def add_talents(t: Talents, st: np.ndarray) -> np.ndarray:
    st[Stat.SPELL_HIT] += 2 * HIT_RATING_PER_PCT * t.elemental_precision
    st[Stat.SPELL_HIT] += HIT_RATING_PER_PCT * t.natures_guidance
    st[Stat.SPELL_CRIT] += CRIT_RATING_PER_PCT * t.tidal_mastery
    st[Stat.SPELL_CRIT] += CRIT_RATING_PER_PCT * t.call_of_thunder
    return st


def add_buffs(b: Buffs, st: np.ndarray) -> np.ndarray:
    if b.arcane_int:
        st[Stat.INT] += 40
    if b.gift_of_the_wild:
        st[Stat.INT] += 18
    if b.improved_blessing_of_wisdom:
        st[Stat.MP5] += 42
    if b.moonkin:
        st[Stat.SPELL_CRIT] += 5 * CRIT_RATING_PER_PCT
        if b.moonkin_raven_goddess:
            st[Stat.SPELL_CRIT] += 20
    if b.twilight_owl:
        st[Stat.SPELL_CRIT] += 2 * CRIT_RATING_PER_PCT
    if b.eye_of_night:
        st[Stat.SPELL_DMG] += 34
    if b.water_shield:
        st[Stat.MP5] += 50
    if b.race == RaceBonus.DRAENEI:
        st[Stat.SPELL_HIT] += HIT_RATING_PER_PCT
    # shadow priest vampiric touch, ~25% of their dps as mp5
    st[Stat.MP5] += b.spriest_dps * 0.25

    for k, v in b.custom.items():
        st[int(k)] += float(v)
    return st


def add_consumes(c: Consumes, st: np.ndarray) -> np.ndarray:
    if c.brilliant_wizard_oil:
        st[Stat.SPELL_CRIT] += 14
        st[Stat.SPELL_DMG] += 36
    if c.major_mageblood:
        st[Stat.MP5] += 16
    if c.flask_of_blinding_light:
        st[Stat.SPELL_DMG] += 80
    if c.flask_of_mighty_restoration:
        st[Stat.MP5] += 25
    if c.blackened_basilisk:
        st[Stat.SPELL_DMG] += 23
    return st


def stat_total(options: Options, gear: Optional[np.ndarray] = None, int_multipliers: Iterable[float] = ()) -> np.ndarray:
    """
    Static additive aggregation of everything that is on for the whole fight.

    int_multipliers lets gear (Ember Skyfire) scale intellect next to Kings.
    """
    st = base_stats()
    if gear is not None:
        st += np.asarray(gear, dtype=np.float64)

    st = add_talents(options.talents, add_buffs(options.buffs, add_consumes(options.consumes, add_totems(options.totems, st))))

    if options.buffs.blessing_of_kings:
        st[Stat.INT] *= 1.1
    for m in int_multipliers:
        st[Stat.INT] *= m
    if options.buffs.improved_divine_spirit:
        st[Stat.SPELL_DMG] += st[Stat.SPIRIT] * 0.1

    # derived from intellect
    st[Stat.SPELL_CRIT] += (st[Stat.INT] / 80) * CRIT_RATING_PER_PCT
    st[Stat.MANA] += st[Stat.INT] * 15
    st[Stat.MP5] += st[Stat.INT] * (0.02 * options.talents.unrelenting_storm)
    return st
