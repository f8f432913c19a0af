import pytest

from tbcsim.options import STANDARD_TALENTS, Buffs, Consumes, Options, RaceBonus, Totems
from tbcsim.stats import CRIT_RATING_PER_PCT, HIT_RATING_PER_PCT, Stat, new_stats

from tbcdata.buffs import base_stats, stat_total


def test_naked_shaman():
    st = stat_total(Options())
    assert st[Stat.INT] == pytest.approx(104)
    assert st[Stat.SPELL_CRIT] == pytest.approx(48.576 + 104 / 80 * CRIT_RATING_PER_PCT)
    assert st[Stat.MANA] == pytest.approx(2678 + 104 * 15)
    assert st[Stat.MP5] == 0


def test_base_stats_are_fresh():
    a = base_stats()
    a[Stat.INT] = 0
    assert base_stats()[Stat.INT] == 104


def test_gear_and_kings_scale_intellect():
    opts = Options(buffs=Buffs(blessing_of_kings=True, arcane_int=True))
    st = stat_total(opts, new_stats(int=96))
    assert st[Stat.INT] == pytest.approx((104 + 96 + 40) * 1.1)
    assert st[Stat.MANA] == pytest.approx(2678 + st[Stat.INT] * 15)


def test_int_multipliers_stack_with_kings():
    opts = Options(buffs=Buffs(blessing_of_kings=True))
    st = stat_total(opts, int_multipliers=[1.02])
    assert st[Stat.INT] == pytest.approx(104 * 1.1 * 1.02)


def test_talents():
    st = stat_total(Options(talents=STANDARD_TALENTS))
    t = STANDARD_TALENTS
    assert st[Stat.SPELL_HIT] == pytest.approx(
        (2 * t.elemental_precision + t.natures_guidance) * HIT_RATING_PER_PCT
    )
    assert st[Stat.MP5] == pytest.approx(104 * 0.02 * t.unrelenting_storm)


def test_totems_and_consumes():
    opts = Options(
        totems=Totems(totem_of_wrath=1, wrath_of_air=True, cyclone_2pc=True, mana_stream=True),
        consumes=Consumes(brilliant_wizard_oil=True, flask_of_blinding_light=True, blackened_basilisk=True),
    )
    st = stat_total(opts)
    assert st[Stat.SPELL_DMG] == pytest.approx(101 + 20 + 36 + 80 + 23)
    assert st[Stat.SPELL_HIT] == pytest.approx(3 * HIT_RATING_PER_PCT)
    assert st[Stat.MP5] == pytest.approx(50)


def test_draenei_adds_hit():
    st = stat_total(Options(buffs=Buffs(race=RaceBonus.DRAENEI)))
    assert st[Stat.SPELL_HIT] == pytest.approx(HIT_RATING_PER_PCT)


def test_divine_spirit_and_custom():
    opts = Options(buffs=Buffs(improved_divine_spirit=True, custom={Stat.SPELL_DMG: 10, Stat.SPIRIT: 15}))
    st = stat_total(opts)
    assert st[Stat.SPELL_DMG] == pytest.approx(10 + (135 + 15) * 0.1)
