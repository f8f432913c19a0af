from types import SimpleNamespace

import pytest

from tbcsim.agents import (
    AdaptiveAgent,
    AgentType,
    CLOnClearcastAgent,
    FixedRotationAgent,
    new_agent,
    parse_agent_type,
)
from tbcsim.effects import ElementalFocus, StatBuff
from tbcsim.errors import SimConfigError, SnapshotOverflowError
from tbcsim.magic import MagicID
from tbcsim.sim import Simulation
from tbcsim.stats import Stat


@pytest.fixture
def sim(deep_pool, plain_options, flat_spells):
    s = Simulation(deep_pool, (), plain_options, seed=1, spells=flat_spells)
    s.reset()
    return s


@pytest.mark.parametrize("value, expected", [
    ("3LB1CL", AgentType.FIXED_3LB_1CL),
    ("10lb1cl", AgentType.FIXED_10LB_1CL),
    ("LB", AgentType.FIXED_LB_ONLY),
    ("Adaptive", AgentType.ADAPTIVE),
    ("CLOnCC", AgentType.CL_ON_CLEARCAST),
    ("cl_on_clearcast", AgentType.CL_ON_CLEARCAST),
    (9, AgentType.ADAPTIVE),
])
def test_parse_agent_type(value, expected):
    assert parse_agent_type(value) == expected


@pytest.mark.parametrize("value", ["2LB1CL", "", 42, "nope"])
def test_unknown_agent_type(value):
    with pytest.raises(SimConfigError):
        parse_agent_type(value)


def test_new_agent_ratios():
    assert new_agent(AgentType.FIXED_3LB_1CL).num_lb_per_cl == 3
    assert new_agent(AgentType.FIXED_10LB_1CL).num_lb_per_cl == 10
    assert new_agent(AgentType.FIXED_LB_ONLY).num_lb_per_cl == -1
    assert isinstance(new_agent("Adaptive"), AdaptiveAgent)
    assert isinstance(new_agent("CLOnCC"), CLOnClearcastAgent)


def test_fixed_agent_opens_with_cl(sim):
    agent = FixedRotationAgent(3)
    agent.reset(sim)
    action = agent.choose_action(sim)
    assert action.cast.spell.id == MagicID.CL6


def test_fixed_agent_waits_for_cl_when_not_hasted(sim):
    agent = FixedRotationAgent(3)
    sim.cooldowns.set(MagicID.CL6, 100)
    action = agent.choose_action(sim)
    assert action.cast is None
    assert action.wait == 100


def test_fixed_agent_fills_with_lb_under_haste(sim):
    agent = FixedRotationAgent(3)
    sim.cooldowns.set(MagicID.CL6, 100)
    sim.auras.add(StatBuff(id=MagicID.BLOODLUST, expires=1000, stat=Stat.HASTE, amount=0))
    action = agent.choose_action(sim)
    assert action.cast.spell.id == MagicID.LB12


def test_fixed_agent_counts_lbs(sim):
    agent = FixedRotationAgent(2)
    cl = agent.choose_action(sim)
    agent.on_action_accepted(sim, cl)
    picks = []
    for _ in range(2):
        a = agent.choose_action(sim)
        agent.on_action_accepted(sim, a)
        picks.append(a.cast.spell.id)
    assert picks == [MagicID.LB12, MagicID.LB12]
    assert agent.choose_action(sim).cast.spell.id == MagicID.CL6


def test_cl_on_clearcast_needs_two_clearcast_casts(sim):
    agent = CLOnClearcastAgent()
    agent.reset(sim)
    first = agent.choose_action(sim)
    assert first.cast.spell.id == MagicID.CL6

    # no clearcasting up when this cast was accepted
    agent.on_action_accepted(sim, first)
    assert agent.choose_action(sim).cast.spell.id == MagicID.LB12

    sim.auras.add(ElementalFocus())
    agent.on_action_accepted(sim, first)
    assert agent.choose_action(sim).cast.spell.id == MagicID.LB12
    agent.on_action_accepted(sim, first)
    assert agent.choose_action(sim).cast.spell.id == MagicID.CL6


def _fake_sim(tick=0, spent=0.0):
    return SimpleNamespace(
        current_tick=tick,
        end_tick=9000,
        current_mana=1000.0,
        last_action=None,
        metrics=SimpleNamespace(mana_spent=spent),
        debug_log=lambda msg: None,
    )


def test_adaptive_snapshot_overflow():
    agent = AdaptiveAgent(capacity=2)
    s = _fake_sim()
    agent.take_snapshot(s)
    agent.take_snapshot(s)
    with pytest.raises(SnapshotOverflowError) as exc:
        agent.take_snapshot(s)
    assert exc.value.tick == 0


def test_adaptive_purges_old_snapshots():
    agent = AdaptiveAgent(capacity=4, window=100)
    for tick in (0, 50, 150):
        agent.take_snapshot(_fake_sim(tick=tick, spent=tick))
    agent.purge_expired_snapshots(_fake_sim(tick=160))
    assert agent.num_snapshots == 1
    assert agent.snapshots[agent.first_snapshot_index].tick == 150


def test_adaptive_projection():
    agent = AdaptiveAgent()
    agent.take_snapshot(_fake_sim(tick=0, spent=0))
    s = _fake_sim(tick=600, spent=1200)  # 60 mana/s
    projected = agent.projected_mana_cost(s)
    # (9000 - 600) ticks left at 2 mana per tick
    assert projected == pytest.approx(16800)
    assert agent.last_projected_cost == projected
