"""
Rotation policies ("agents"): the player's decision making.

Each tick the driver is idle it asks the agent for the next action, which is
either a wait of N ticks or a cast. If the driver actually executes the cast
it calls on_action_accepted() so the agent can update its own state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING, Dict, List, Optional

from tbcsim.errors import SimConfigError, SnapshotOverflowError
from tbcsim.magic import MagicID
from tbcsim.stats import TICKS_PER_SECOND

if TYPE_CHECKING:
    from tbcsim.sim import Simulation
    from tbcsim.spells import Cast


@dataclass(frozen=True)
class Action:
    # exactly one of these is set
    wait: int = 0  # ticks
    cast: Optional["Cast"] = None

    @staticmethod
    def wait_for(ticks: int) -> "Action":
        return Action(wait=max(1, int(ticks)))

    @staticmethod
    def cast_spell(cast: "Cast") -> "Action":
        return Action(cast=cast)

    def __str__(self) -> str:
        if self.cast is not None:
            return f"cast {self.cast.spell.name}"
        return f"wait {self.wait}"


class Agent:
    """Base for rotation policies; subclasses keep only their own state."""

    def choose_action(self, sim: "Simulation") -> Action:
        raise NotImplementedError

    def on_action_accepted(self, sim: "Simulation", action: Action) -> None:
        pass

    def reset(self, sim: "Simulation") -> None:
        pass


# auras that shorten casts for a limited time
TEMPORARY_HASTE_AURAS = (
    MagicID.BLOODLUST,
    MagicID.DRUMS,
    MagicID.TROLL_BERSERKING,
    MagicID.SKULL_GULDAN,
    MagicID.FUNGAL_FRENZY,
    MagicID.MYSTIC_FOCUS,
    MagicID.ENERGIZED,
)


def temporary_haste_active(sim: "Simulation") -> bool:
    return any(sim.auras.has(a) for a in TEMPORARY_HASTE_AURAS)


# ----------------------------
# Fixed ratio
# ----------------------------

class FixedRotationAgent(Agent):
    """N x LB per CL. num_lb_per_cl = -1 casts LB only."""

    def __init__(self, num_lb_per_cl: int) -> None:
        if num_lb_per_cl < -1:
            raise SimConfigError(f"num_lb_per_cl must be >= -1, got {num_lb_per_cl}")
        self.num_lb_per_cl = num_lb_per_cl
        # starting "full" lets the first cast be CL
        self.num_lb_since_last_cl = num_lb_per_cl

    def choose_action(self, sim: "Simulation") -> Action:
        lb = sim.spells[MagicID.LB12]
        if self.num_lb_per_cl == -1 or self.num_lb_since_last_cl < self.num_lb_per_cl:
            return Action.cast_spell(sim.new_cast(lb))

        if sim.cooldowns.is_ready(MagicID.CL6):
            return Action.cast_spell(sim.new_cast(sim.spells[MagicID.CL6]))

        # while hasted, extra bolts beat standing still
        if temporary_haste_active(sim):
            return Action.cast_spell(sim.new_cast(lb))

        return Action.wait_for(sim.cooldowns.remaining(MagicID.CL6))

    def on_action_accepted(self, sim: "Simulation", action: Action) -> None:
        if action.cast is None:
            return
        if action.cast.spell.id == MagicID.LB12:
            self.num_lb_since_last_cl += 1
        elif action.cast.spell.id == MagicID.CL6:
            self.num_lb_since_last_cl = 0

    def reset(self, sim: "Simulation") -> None:
        self.num_lb_since_last_cl = self.num_lb_per_cl


# ----------------------------
# CL on clearcast
# ----------------------------

class CLOnClearcastAgent(Agent):
    """CL only when the two previously accepted casts both went out under fresh clearcasting."""

    def __init__(self) -> None:
        self.prev_cast_procced_cc = True
        self.prev_prev_cast_procced_cc = True

    def choose_action(self, sim: "Simulation") -> Action:
        procced = self.prev_cast_procced_cc and self.prev_prev_cast_procced_cc
        if not sim.cooldowns.is_ready(MagicID.CL6) or not procced:
            return Action.cast_spell(sim.new_cast(sim.spells[MagicID.LB12]))
        return Action.cast_spell(sim.new_cast(sim.spells[MagicID.CL6]))

    def on_action_accepted(self, sim: "Simulation", action: Action) -> None:
        focus = sim.auras.get(MagicID.ELE_FOCUS)
        self.prev_prev_cast_procced_cc = self.prev_cast_procced_cc
        self.prev_cast_procced_cc = focus is not None and getattr(focus, "charges", 0) == 2

    def reset(self, sim: "Simulation") -> None:
        # lets us cast CL first
        self.prev_cast_procced_cc = True
        self.prev_prev_cast_procced_cc = True


# ----------------------------
# Adaptive
# ----------------------------

MANA_SPENDING_WINDOW_SECONDS = 60
MANA_SPENDING_WINDOW = MANA_SPENDING_WINDOW_SECONDS * TICKS_PER_SECOND
# 2 * (# of seconds) is plenty: no cast is shorter than the 1s GCD
MANA_SNAPSHOTS_BUFFER_SIZE = MANA_SPENDING_WINDOW_SECONDS * 2


@dataclass
class ManaSnapshot:
    tick: int
    mana_spent: float  # total mana spent up to this tick


class AdaptiveAgent(Agent):
    """
    Spends mana at whatever rate the fight allows.

    Keeps a ring buffer of (tick, total mana spent) covering the last 60s.
    When CL is ready it projects the mana cost of the rest of the fight at
    the recent spending rate and only casts CL if that projection fits in
    the current mana pool.
    """

    def __init__(self, capacity: int = MANA_SNAPSHOTS_BUFFER_SIZE, window: int = MANA_SPENDING_WINDOW) -> None:
        self.capacity = capacity
        self.window = window
        self.snapshots: List[Optional[ManaSnapshot]] = [None] * capacity
        self.num_snapshots = 0
        self.first_snapshot_index = 0
        self.last_projected_cost: Optional[float] = None

    def _oldest_snapshot(self, sim: "Simulation") -> ManaSnapshot:
        if self.num_snapshots == 0:
            return ManaSnapshot(tick=sim.current_tick, mana_spent=sim.metrics.mana_spent)
        return self.snapshots[self.first_snapshot_index]

    def purge_expired_snapshots(self, sim: "Simulation") -> None:
        cutoff = sim.current_tick - self.window
        idx = self.first_snapshot_index
        while self.num_snapshots > 0 and self.snapshots[idx].tick < cutoff:
            self.snapshots[idx] = None
            idx = (idx + 1) % self.capacity
            self.num_snapshots -= 1
        self.first_snapshot_index = idx

    def take_snapshot(self, sim: "Simulation") -> None:
        if self.num_snapshots >= self.capacity:
            raise SnapshotOverflowError(
                f"agent snapshot buffer full ({self.capacity})",
                tick=sim.current_tick,
                last_action=sim.last_action,
            )
        nxt = (self.first_snapshot_index + self.num_snapshots) % self.capacity
        self.snapshots[nxt] = ManaSnapshot(tick=sim.current_tick, mana_spent=sim.metrics.mana_spent)
        self.num_snapshots += 1

    def projected_mana_cost(self, sim: "Simulation") -> float:
        self.purge_expired_snapshots(sim)
        oldest = self._oldest_snapshot(sim)

        mana_spent = sim.metrics.mana_spent - oldest.mana_spent
        time_delta = sim.current_tick - oldest.tick
        if time_delta == 0:
            time_delta = 1

        time_remaining = sim.end_tick - sim.current_tick
        projected = mana_spent * (time_remaining / time_delta)

        sim.debug_log(
            f"[AI] CL Ready: Mana/s: {mana_spent / time_delta * TICKS_PER_SECOND:0.1f}, "
            f"Est Mana Cost: {projected:0.1f}, CurrentMana: {sim.current_mana:0.1f}"
        )
        self.last_projected_cost = projected
        return projected

    def choose_action(self, sim: "Simulation") -> Action:
        if not sim.cooldowns.is_ready(MagicID.CL6):
            return Action.cast_spell(sim.new_cast(sim.spells[MagicID.LB12]))

        # enough mana to burn and CL is up: use it
        if self.projected_mana_cost(sim) < sim.current_mana:
            return Action.cast_spell(sim.new_cast(sim.spells[MagicID.CL6]))

        return Action.cast_spell(sim.new_cast(sim.spells[MagicID.LB12]))

    def on_action_accepted(self, sim: "Simulation", action: Action) -> None:
        self.take_snapshot(sim)

    def reset(self, sim: "Simulation") -> None:
        self.snapshots = [None] * self.capacity
        self.first_snapshot_index = 0
        self.num_snapshots = 0
        self.last_projected_cost = None


# ----------------------------
# Selection
# ----------------------------

class AgentType(IntEnum):
    # kept in sync with the rotation dropdown of the web UI
    FIXED_3LB_1CL = 0
    FIXED_4LB_1CL = 1
    FIXED_5LB_1CL = 2
    FIXED_6LB_1CL = 3
    FIXED_7LB_1CL = 4
    FIXED_8LB_1CL = 5
    FIXED_9LB_1CL = 6
    FIXED_10LB_1CL = 7
    FIXED_LB_ONLY = 8
    ADAPTIVE = 9
    CL_ON_CLEARCAST = 10


AGENT_TYPES_BY_NAME: Dict[str, AgentType] = {
    "3LB1CL": AgentType.FIXED_3LB_1CL,
    "4LB1CL": AgentType.FIXED_4LB_1CL,
    "5LB1CL": AgentType.FIXED_5LB_1CL,
    "6LB1CL": AgentType.FIXED_6LB_1CL,
    "7LB1CL": AgentType.FIXED_7LB_1CL,
    "8LB1CL": AgentType.FIXED_8LB_1CL,
    "9LB1CL": AgentType.FIXED_9LB_1CL,
    "10LB1CL": AgentType.FIXED_10LB_1CL,
    "LB": AgentType.FIXED_LB_ONLY,
    "Adaptive": AgentType.ADAPTIVE,
    "CLOnCC": AgentType.CL_ON_CLEARCAST,
}


def parse_agent_type(value) -> AgentType:
    """Accepts a selector name ('3LB1CL', 'Adaptive', ...), an enum name or its int value."""
    if isinstance(value, AgentType):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        try:
            return AgentType(value)
        except ValueError:
            raise SimConfigError(f"unknown agent type: {value!r}") from None
    key = str(value).strip()
    if key in AGENT_TYPES_BY_NAME:
        return AGENT_TYPES_BY_NAME[key]
    for name, at in AGENT_TYPES_BY_NAME.items():
        if name.lower() == key.lower():
            return at
    try:
        return AgentType[key.upper()]
    except KeyError:
        raise SimConfigError(
            f"unknown agent type: {value!r} (expected one of {', '.join(AGENT_TYPES_BY_NAME)})"
        ) from None


def new_agent(agent_type: AgentType) -> Agent:
    agent_type = parse_agent_type(agent_type)
    if AgentType.FIXED_3LB_1CL <= agent_type <= AgentType.FIXED_10LB_1CL:
        return FixedRotationAgent(int(agent_type) + 3)
    if agent_type == AgentType.FIXED_LB_ONLY:
        return FixedRotationAgent(-1)
    if agent_type == AgentType.ADAPTIVE:
        return AdaptiveAgent()
    if agent_type == AgentType.CL_ON_CLEARCAST:
        return CLOnClearcastAgent()
    raise SimConfigError(f"no rotation for agent type {agent_type!r}")
