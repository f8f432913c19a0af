#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Sequence

import numpy as np

from tbcsim.activations import Activation, apply_passive_items, run_activations
from tbcsim.agents import Action, Agent, new_agent
from tbcsim.auras import ON_CAST, ON_CAST_COMPLETE, ON_SPELL_HIT, AuraRegistry
from tbcsim.cooldowns import CooldownTracker
from tbcsim.effects import ElementalFocus, JudgementOfWisdom, LightningOverload, StatBuff, seconds_to_ticks
from tbcsim.errors import NegativeManaError, SimConfigError, SimInvariantError
from tbcsim.magic import MagicID
from tbcsim.options import Options
from tbcsim.spells import LIGHTNING_SPELLS, Cast, Spell, spell_catalog
from tbcsim.stats import HIT_RATING_PER_PCT, STAT_LEN, TICKS_PER_SECOND, Stat, new_stats

logger = logging.getLogger(__name__)

# (tick, message)
DebugFn = Callable[[int, str], None]

# clearcasting lasts 15s
ELEMENTAL_FOCUS_SECONDS = 15

# (cumulative roll, fraction resisted); level 73 boss vs. 0 resistance
PARTIAL_RESISTS = ((0.01, 0.75), (0.05, 0.50), (0.18, 0.25))


@dataclass
class CastMetric:
    count: int = 0
    damage: float = 0.0
    crits: int = 0
    misses: int = 0
    mana: float = 0.0


@dataclass
class TrialMetrics:
    duration_ticks: int
    total_damage: float = 0.0
    casts: Dict[int, CastMetric] = field(default_factory=dict)
    mana_spent: float = 0.0
    mana_gained: float = 0.0
    oom_at_tick: Optional[int] = None
    damage_at_oom: float = 0.0
    mana_at_end: float = 0.0

    def cast_metric(self, spell_id: int) -> CastMetric:
        cm = self.casts.get(spell_id)
        if cm is None:
            cm = CastMetric()
            self.casts[spell_id] = cm
        return cm

    @property
    def dps(self) -> float:
        secs = self.duration_ticks / TICKS_PER_SECOND
        return self.total_damage / secs if secs > 0 else 0.0

    @property
    def oom_at(self) -> Optional[float]:
        """Seconds into the fight of the first failed cast, None if never."""
        if self.oom_at_tick is None:
            return None
        return self.oom_at_tick / TICKS_PER_SECOND

    @property
    def dps_at_oom(self) -> Optional[float]:
        if self.oom_at_tick is None:
            return None
        if self.oom_at_tick <= 0:
            return 0.0
        return self.damage_at_oom / (self.oom_at_tick / TICKS_PER_SECOND)


class Simulation:
    """
    One shaman, one target, one fight.

    The loop only wakes up when something can change: a cast finishing, a
    wait requested by the agent, or regen catching up after going OOM.
    """

    def __init__(
        self,
        stats: np.ndarray,
        activations: Sequence[Activation] = (),
        options: Optional[Options] = None,
        seed: Optional[int] = None,
        spells: Optional[Mapping[int, Spell]] = None,
        debug: Optional[DebugFn] = None,
        agent: Optional[Agent] = None,
    ) -> None:
        self.stats = np.array(stats, dtype=np.float64)
        if self.stats.shape != (STAT_LEN,):
            raise SimConfigError(f"stats must have {STAT_LEN} entries, got shape {self.stats.shape}")
        self.activations = list(activations)
        self.options = options or Options()
        self.spells: Dict[int, Spell] = spell_catalog(spells)
        self.debug = debug
        self.seed = seed
        self.rng = random.Random(seed)
        self.agent = agent if agent is not None else new_agent(self.options.agent_type)

        self.end_tick = int(round(self.options.encounter.duration * TICKS_PER_SECOND))
        self.cooldowns = CooldownTracker()
        self.auras = AuraRegistry()
        self.buffs = new_stats()

        self.current_tick = 0
        self.current_mana = 0.0
        self.casting: Optional[Cast] = None
        self.last_action: Optional[Action] = None
        self.metrics = TrialMetrics(duration_ticks=self.end_tick)

        self.bloodlust_casts = 0
        self.destruction_potion_used = False

    # ----------------------------
    # setup
    # ----------------------------

    def reset(self) -> None:
        """Back to the pull. The rng is not reseeded."""
        self.current_tick = 0
        self.current_mana = float(self.stats[Stat.MANA])
        self.buffs = new_stats()
        self.cooldowns.clear()
        self.auras.clear()
        self.casting = None
        self.last_action = None
        self.metrics = TrialMetrics(duration_ticks=self.end_tick)
        self.bloodlust_casts = 0
        self.destruction_potion_used = False

        talents = self.options.talents
        if talents.lightning_overload > 0:
            self.auras.add(LightningOverload(level=talents.lightning_overload))
        if self.options.buffs.judgement_of_wisdom:
            self.auras.add(JudgementOfWisdom())
        apply_passive_items(self)

        self.agent.reset(self)

    # ----------------------------
    # main loop
    # ----------------------------

    def run(self) -> TrialMetrics:
        self.reset()

        tick = 0
        while tick < self.end_tick:
            self.current_tick = tick
            self._check_mana()
            ticks = self.spellcasting()
            if self.options.exit_on_oom and self.metrics.oom_at_tick is not None:
                break
            self.advance(ticks)
            tick += ticks

        self.current_tick = tick
        self.metrics.mana_at_end = self.current_mana
        return self.metrics

    def spellcasting(self) -> int:
        """Returns how many ticks until something needs to happen."""
        if self.casting is not None:
            if self.casting.ticks_until_cast > 0:
                return self.casting.ticks_until_cast
            self.cast(self.casting)

        run_activations(self)
        return self.choose_spell()

    def choose_spell(self) -> int:
        action = self.agent.choose_action(self)
        if action.cast is None:
            if action.wait <= 0:
                # a zero wait would never move the clock
                raise SimInvariantError(
                    f"agent chose neither a cast nor a positive wait: {action}",
                    tick=self.current_tick, last_action=self.last_action,
                )
            self.debug_log(f"Waiting {action.wait / TICKS_PER_SECOND:0.1f}s")
            return action.wait

        cast = action.cast
        if self.current_mana >= cast.mana_cost:
            self.last_action = action
            self.agent.on_action_accepted(self, action)
            self.begin_cast(cast)
            self.debug_log(
                f"Start Casting {cast.spell.name} Cast Time: {cast.ticks_until_cast / TICKS_PER_SECOND:0.1f}s"
            )
            return cast.ticks_until_cast

        # not enough mana for what the agent wants
        if self.metrics.oom_at_tick is None:
            self.metrics.oom_at_tick = self.current_tick
            self.metrics.damage_at_oom = self.metrics.total_damage
            self.debug_log(f"Ran out of mana ({self.current_mana:0.1f} < {cast.mana_cost:0.1f})")
        return self._ticks_until_affordable(cast.mana_cost)

    def _ticks_until_affordable(self, mana_cost: float) -> int:
        remaining = max(1, self.end_tick - self.current_tick)
        regen = self.mana_regen_per_tick()
        if regen > 0:
            return min(remaining, int((mana_cost - self.current_mana) / regen) + 1)

        # no regen: only a consumable coming off cooldown can help
        wake = remaining
        cons = self.options.consumes
        for enabled, cd_id in ((cons.super_mana_potion, MagicID.POTION), (cons.dark_rune, MagicID.RUNE)):
            if enabled and not self.cooldowns.is_ready(cd_id):
                wake = min(wake, self.cooldowns.remaining(cd_id))
        return wake

    def advance(self, ticks: int) -> None:
        if ticks <= 0:
            return
        if self.casting is not None:
            self.casting.ticks_until_cast -= ticks

        regen = self.mana_regen_per_tick() * ticks
        if regen > 0:
            self.restore_mana(regen, track=False)

        self.cooldowns.advance(ticks)
        self.auras.expire(self.current_tick + ticks, self)

    # ----------------------------
    # casting
    # ----------------------------

    def new_cast(self, spell: Spell) -> Cast:
        haste = self.stats[Stat.HASTE] + self.buffs[Stat.HASTE]
        cast = Cast(
            spell=spell,
            mana_cost=float(spell.mana),
            ticks_until_cast=max(1, spell.cast_ticks(haste)),
        )
        self.auras.dispatch(ON_CAST, self, cast)
        if spell.id in LIGHTNING_SPELLS:
            cast.mana_cost *= 1.0 - 0.02 * self.options.talents.convection
        return cast

    def begin_cast(self, cast: Cast) -> None:
        self.current_mana -= cast.mana_cost
        self._check_mana()
        self.metrics.mana_spent += cast.mana_cost
        self.metrics.cast_metric(cast.spell.id).mana += cast.mana_cost
        self.casting = cast

    def cast(self, cast: Cast) -> None:
        """Resolve a cast whose cast time is over (or a proc clone)."""
        spell = cast.spell
        opts = self.options
        enc = opts.encounter

        self.auras.dispatch(ON_CAST_COMPLETE, self, cast)

        hit_rating = self.stats[Stat.SPELL_HIT] + self.buffs[Stat.SPELL_HIT]
        hit = min(enc.hit_cap, enc.base_hit + hit_rating / (HIT_RATING_PER_PCT * 100.0) + cast.hit)

        if self.rng.random() < hit:
            cast.did_hit = True
            spellpower = self.stats[Stat.SPELL_DMG] + self.buffs[Stat.SPELL_DMG] + cast.spellpower
            dmg = spell.base_damage(self.rng, spellpower) * cast.damage_multiplier
            if spell.id in LIGHTNING_SPELLS:
                dmg *= 1.0 + 0.01 * opts.talents.concussion
            if opts.buffs.misery:
                dmg *= 1.05

            crit = Spell.crit_chance(self.stats[Stat.SPELL_CRIT] + self.buffs[Stat.SPELL_CRIT]) + cast.crit
            if self.rng.random() < crit:
                cast.did_crit = True
                dmg *= spell.crit_multiplier * cast.crit_bonus
                if spell.id in LIGHTNING_SPELLS:
                    self.auras.add(ElementalFocus(
                        expires=self.current_tick + ELEMENTAL_FOCUS_SECONDS * TICKS_PER_SECOND,
                    ))

            if enc.partial_resists:
                roll = self.rng.random()
                for threshold, resisted in PARTIAL_RESISTS:
                    if roll < threshold:
                        dmg *= 1.0 - resisted
                        break

            cast.damage = dmg
            self.debug_log(
                f"Completed Cast {spell.name} {'CRIT ' if cast.did_crit else ''}for {dmg:0.0f}"
            )
            self.auras.dispatch(ON_SPELL_HIT, self, cast)
        else:
            self.debug_log(f"Completed Cast {spell.name} MISS")

        cm = self.metrics.cast_metric(spell.id)
        cm.count += 1
        cm.damage += cast.damage
        if cast.did_crit:
            cm.crits += 1
        if not cast.did_hit:
            cm.misses += 1
        self.metrics.total_damage += cast.damage

        if spell.cooldown > 0 and not cast.is_clone:
            self.cooldowns.set(spell.id, spell.cooldown_ticks)
        if not cast.is_clone:
            self.casting = None

    # ----------------------------
    # resources
    # ----------------------------

    def mana_regen_per_tick(self) -> float:
        mp5 = self.stats[Stat.MP5] + self.buffs[Stat.MP5]
        return mp5 / 5.0 / TICKS_PER_SECOND

    def restore_mana(self, amount: float, track: bool = True) -> float:
        """The only way mana goes up. Clamped to the pool; returns what was actually gained."""
        before = self.current_mana
        self.current_mana = min(float(self.stats[Stat.MANA]), self.current_mana + amount)
        gained = self.current_mana - before
        if track:
            self.metrics.mana_gained += gained
        return gained

    def apply_stat_buff(self, aura_id: int, stat: Stat, amount: float, seconds: float) -> StatBuff:
        """
        Add a temporary stat delta. If the same buff is already up its
        expiration is refreshed and the amount is not added again.
        """
        expires = self.current_tick + seconds_to_ticks(seconds)
        existing = self.auras.get(aura_id)
        if isinstance(existing, StatBuff) and existing.stat == stat:
            existing.expires = expires
            return existing

        if existing is not None:
            self.auras.remove_by_id(aura_id, self)
        buff = StatBuff(id=aura_id, expires=expires, stat=stat, amount=amount)
        self.buffs[stat] += amount
        self.auras.add(buff)
        self.debug_log(f" +{amount:.0f} {stat.name} from {buff.name}")
        return buff

    def _check_mana(self) -> None:
        if self.current_mana < 0:
            raise NegativeManaError(
                f"mana went negative: {self.current_mana:0.3f}",
                tick=self.current_tick,
                last_action=self.last_action,
            )

    # ----------------------------
    # debug
    # ----------------------------

    def debug_log(self, message: str) -> None:
        if self.debug is not None:
            self.debug(self.current_tick, message)


def make_log_debug(log: logging.Logger = logger, level: int = logging.DEBUG) -> DebugFn:
    """Route the per-tick debug trace to a logger: '[12.3] Start Casting LB12 ...'."""

    def _debug(tick: int, message: str) -> None:
        log.log(level, "[%0.1f] %s", tick / TICKS_PER_SECOND, message)

    return _debug


def run_trial(
    stats: np.ndarray,
    activations: Sequence[Activation],
    options: Options,
    seed: Optional[int],
    spells: Optional[Mapping[int, Spell]] = None,
    debug: Optional[DebugFn] = None,
) -> TrialMetrics:
    """One independent trial; same inputs and seed give identical metrics."""
    sim = Simulation(stats, activations, options, seed=seed, spells=spells, debug=debug)
    return sim.run()
