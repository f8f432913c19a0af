import pytest

from conftest import FixedRandom

from tbcsim.effects import (
    DarkmoonCardCrusade,
    ElementalFocus,
    ElementalMastery,
    JudgementOfWisdom,
    LightningCapacitor,
    LightningOverload,
    quags_eye,
)
from tbcsim.magic import MagicID
from tbcsim.options import Options, Talents
from tbcsim.sim import Simulation
from tbcsim.stats import TICKS_PER_SECOND, Stat, new_stats


@pytest.fixture
def sim(deep_pool, plain_options, flat_spells):
    s = Simulation(deep_pool, (), plain_options, seed=1, spells=flat_spells)
    s.reset()
    return s


def test_elemental_focus_discount_and_charges(sim):
    sim.auras.add(ElementalFocus())
    lb = sim.spells[MagicID.LB12]

    first = sim.new_cast(lb)
    assert first.mana_cost == pytest.approx(180)
    sim.begin_cast(first)
    sim.cast(first)
    assert sim.auras.get(MagicID.ELE_FOCUS).charges == 1

    second = sim.new_cast(lb)
    sim.begin_cast(second)
    sim.cast(second)
    assert not sim.auras.has(MagicID.ELE_FOCUS)


def test_elemental_mastery_is_free_and_crits(sim):
    sim.auras.add(ElementalMastery())
    cast = sim.new_cast(sim.spells[MagicID.LB12])
    assert cast.mana_cost == 0
    assert sim.cooldowns.remaining(MagicID.ELE_MASTERY) == 180 * TICKS_PER_SECOND

    sim.begin_cast(cast)
    sim.cast(cast)
    assert cast.did_crit
    assert cast.damage == pytest.approx(1200)
    assert not sim.auras.has(MagicID.ELE_MASTERY)
    # a lightning crit leaves clearcasting behind
    assert sim.auras.get(MagicID.ELE_FOCUS).charges == 2


def test_lightning_overload_does_not_chain(sim):
    sim.rng = FixedRandom(0.0)
    sim.auras.add(LightningOverload(level=5))
    cast = sim.new_cast(sim.spells[MagicID.LB12])
    sim.begin_cast(cast)
    sim.cast(cast)

    lb = sim.metrics.casts[MagicID.LB12]
    assert lb.count == 2
    assert lb.damage == pytest.approx(600 + 300)


def test_judgement_of_wisdom_is_clamped(sim):
    sim.auras.add(JudgementOfWisdom())
    cast = sim.new_cast(sim.spells[MagicID.LB12])
    sim.begin_cast(cast)
    sim.cast(cast)
    assert sim.current_mana == sim.stats[Stat.MANA] - 300 + 74
    assert sim.metrics.mana_gained == pytest.approx(74)

    full = sim.stats[Stat.MANA]
    sim.current_mana = full
    assert sim.restore_mana(500) == 0
    assert sim.current_mana == full


def test_crusade_stacks_and_strips(sim):
    sim.auras.add(DarkmoonCardCrusade())
    lb = sim.spells[MagicID.LB12]
    for _ in range(12):
        c = sim.new_cast(lb)
        sim.begin_cast(c)
        sim.cast(c)
    assert sim.auras.get(MagicID.DCC).stacks == 10
    assert sim.buffs[Stat.SPELL_DMG] == pytest.approx(180)

    sim.advance(10 * TICKS_PER_SECOND)
    assert sim.buffs[Stat.SPELL_DMG] == pytest.approx(0)
    assert sim.auras.get(MagicID.DCC).stacks == 0
    assert not sim.auras.has(MagicID.DCC_BONUS)


def test_proc_respects_internal_cooldown(sim):
    sim.rng = FixedRandom(0.0)
    sim.auras.add(quags_eye())
    lb = sim.spells[MagicID.LB12]

    c = sim.new_cast(lb)
    sim.cast(c)
    assert sim.buffs[Stat.HASTE] == pytest.approx(320)

    sim.advance(6 * TICKS_PER_SECOND)
    assert sim.buffs[Stat.HASTE] == pytest.approx(0)

    # 45s icd: no new proc yet
    sim.current_tick += 6 * TICKS_PER_SECOND
    c = sim.new_cast(lb)
    sim.cast(c)
    assert sim.buffs[Stat.HASTE] == pytest.approx(0)


def test_stat_buff_refresh_does_not_stack(sim):
    sim.apply_stat_buff(MagicID.BLOODLUST, Stat.HASTE, 472.8, 40)
    sim.current_tick = 300
    buff = sim.apply_stat_buff(MagicID.BLOODLUST, Stat.HASTE, 472.8, 40)
    assert sim.buffs[Stat.HASTE] == pytest.approx(472.8)
    assert buff.expires == 300 + 40 * TICKS_PER_SECOND

    sim.advance(buff.expires - sim.current_tick)
    assert sim.buffs[Stat.HASTE] == pytest.approx(0)


def test_lightning_capacitor_discharges_on_third_crit(sure_hit, flat_spells):
    stats = new_stats(mana=100000, spell_crit=22.08 * 100)  # always crit
    sim = Simulation(stats, (), Options(encounter=sure_hit, talents=Talents()), seed=1, spells=flat_spells)
    sim.reset()
    sim.auras.add(LightningCapacitor())
    lb = sim.spells[MagicID.LB12]
    for i in range(3):
        sim.current_tick = i * 3 * TICKS_PER_SECOND
        c = sim.new_cast(lb)
        sim.cast(c)
    assert MagicID.TLC_LB in sim.metrics.casts
    assert sim.metrics.casts[MagicID.TLC_LB].count == 1
    assert sim.auras.get(MagicID.TLC).charges == 0
