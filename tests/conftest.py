"""
Shared pytest fixtures for the simulator test suite.

- flat spell catalog (min == max damage, no spellpower scaling)
- encounter that always hits and never partially resists
- a debug trace collector
"""

import os
import sys

import pytest

_project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, _project_root)

from tbcsim.agents import AgentType
from tbcsim.magic import MagicID
from tbcsim.options import Encounter, Options
from tbcsim.spells import Spell
from tbcsim.stats import new_stats


FLAT_LB = Spell(id=MagicID.LB12, name="LB12", cast_time=2.0, mana=300, min_dmg=600, max_dmg=600, coeff=0.0)
FLAT_CL = Spell(id=MagicID.CL6, name="CL6", cast_time=1.5, cooldown=6.0, mana=760, min_dmg=800, max_dmg=800, coeff=0.0)


class FixedRandom:
    """Stands in for random.Random when a test needs every roll to succeed (0.0) or fail (0.999)."""

    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def flat_spells():
    return {FLAT_LB.id: FLAT_LB, FLAT_CL.id: FLAT_CL}


@pytest.fixture
def sure_hit():
    return Encounter(duration=61, base_hit=1.0, hit_cap=1.0, partial_resists=False)


@pytest.fixture
def plain_options(sure_hit):
    """No talents, no buffs, guaranteed hits."""
    return Options(agent_type=AgentType.FIXED_3LB_1CL, encounter=sure_hit)


@pytest.fixture
def deep_pool():
    """Enough mana for any test fight, no regen, no crit."""
    return new_stats(mana=100000)


@pytest.fixture
def trace():
    lines = []

    def _debug(tick, message):
        lines.append((tick, message))

    _debug.lines = lines
    return _debug


def started_casts(lines):
    """Spell names in the order the driver accepted them."""
    out = []
    for _tick, msg in lines:
        if msg.startswith("Start Casting "):
            out.append(msg.split()[2])
    return out


@pytest.fixture
def fixed_random():
    return FixedRandom
