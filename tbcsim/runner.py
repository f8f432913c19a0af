#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import argparse
import logging
import math
import time
from concurrent.futures import FIRST_COMPLETED, Future, ProcessPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from tbcsim.activations import Activation
from tbcsim.agents import AGENT_TYPES_BY_NAME, parse_agent_type
from tbcsim.errors import BatchTimeoutError, SimConfigError
from tbcsim.magic import aura_name
from tbcsim.options import Options
from tbcsim.sim import TrialMetrics, make_log_debug, run_trial
from tbcsim.spells import Spell
from tbcsim.stats import STAT_LEN, Stat, format_stats, stat_name

from tbcdata.buffs import stat_total
from tbcdata.config_loader import SimRequest, load_request
from tbcdata.items import equipment_activations, gear_stats, int_multipliers

logger = logging.getLogger(__name__)

# trials per unit of work handed to a worker
DEFAULT_CHUNK_SIZE = 250

DEFAULT_WEIGHT_STATS: Tuple[Stat, ...] = (
    Stat.INT,
    Stat.SPELL_DMG,
    Stat.SPELL_CRIT,
    Stat.SPELL_HIT,
    Stat.HASTE,
    Stat.MP5,
)
DEFAULT_DELTA = 50.0

HIST_BUCKET = 10


# ----------------------------
# aggregation
# ----------------------------

@dataclass
class CastSummary:
    # means per trial
    count: float = 0.0
    damage: float = 0.0
    crits: float = 0.0


@dataclass
class BatchResult:
    trials: int
    duration: float
    dps_avg: float = 0.0
    dps_stdev: float = 0.0
    dps_max: float = 0.0
    dps_hist: Dict[int, int] = field(default_factory=dict)
    num_oom: int = 0
    oom_at_avg: float = 0.0
    dps_at_oom_avg: float = 0.0
    casts: Dict[int, CastSummary] = field(default_factory=dict)
    execution_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trials": self.trials,
            "duration": self.duration,
            "dpsAvg": self.dps_avg,
            "dpsStDev": self.dps_stdev,
            "dpsMax": self.dps_max,
            "dpsHist": {str(k): v for k, v in sorted(self.dps_hist.items())},
            "numOom": self.num_oom,
            "oomAtAvg": self.oom_at_avg,
            "dpsAtOomAvg": self.dps_at_oom_avg,
            "casts": {
                aura_name(k): {"count": c.count, "damage": c.damage, "crits": c.crits}
                for k, c in sorted(self.casts.items())
            },
            "executionSeconds": self.execution_seconds,
        }


@dataclass
class BatchAccumulator:
    """Running sums over trials; chunks are reduced locally and merged."""

    trials: int = 0
    dps_sum: float = 0.0
    dps_sq_sum: float = 0.0
    dps_max: float = 0.0
    hist: Dict[int, int] = field(default_factory=dict)
    num_oom: int = 0
    oom_at_sum: float = 0.0
    dps_at_oom_sum: float = 0.0
    cast_count: Dict[int, int] = field(default_factory=dict)
    cast_damage: Dict[int, float] = field(default_factory=dict)
    cast_crits: Dict[int, int] = field(default_factory=dict)

    def add(self, m: TrialMetrics) -> None:
        dps = m.dps
        self.trials += 1
        self.dps_sum += dps
        self.dps_sq_sum += dps * dps
        if dps > self.dps_max:
            self.dps_max = dps
        bucket = int(round(dps / HIST_BUCKET)) * HIST_BUCKET
        self.hist[bucket] = self.hist.get(bucket, 0) + 1

        if m.oom_at_tick is not None:
            self.num_oom += 1
            self.oom_at_sum += m.oom_at
            self.dps_at_oom_sum += m.dps_at_oom

        for spell_id, cm in m.casts.items():
            self.cast_count[spell_id] = self.cast_count.get(spell_id, 0) + cm.count
            self.cast_damage[spell_id] = self.cast_damage.get(spell_id, 0.0) + cm.damage
            self.cast_crits[spell_id] = self.cast_crits.get(spell_id, 0) + cm.crits

    def merge(self, other: "BatchAccumulator") -> None:
        self.trials += other.trials
        self.dps_sum += other.dps_sum
        self.dps_sq_sum += other.dps_sq_sum
        self.dps_max = max(self.dps_max, other.dps_max)
        for k, v in other.hist.items():
            self.hist[k] = self.hist.get(k, 0) + v
        self.num_oom += other.num_oom
        self.oom_at_sum += other.oom_at_sum
        self.dps_at_oom_sum += other.dps_at_oom_sum
        for k, v in other.cast_count.items():
            self.cast_count[k] = self.cast_count.get(k, 0) + v
        for k, v in other.cast_damage.items():
            self.cast_damage[k] = self.cast_damage.get(k, 0.0) + v
        for k, v in other.cast_crits.items():
            self.cast_crits[k] = self.cast_crits.get(k, 0) + v

    def result(self, duration: float, execution_seconds: float = 0.0) -> BatchResult:
        n = self.trials
        res = BatchResult(trials=n, duration=duration, execution_seconds=execution_seconds)
        if n == 0:
            return res

        mean = self.dps_sum / n
        # sample variance
        if n >= 2:
            var = max(0.0, (self.dps_sq_sum - n * mean * mean) / (n - 1))
        else:
            var = 0.0

        res.dps_avg = mean
        res.dps_stdev = math.sqrt(var)
        res.dps_max = self.dps_max
        res.dps_hist = dict(self.hist)
        res.num_oom = self.num_oom
        if self.num_oom > 0:
            res.oom_at_avg = self.oom_at_sum / self.num_oom
            res.dps_at_oom_avg = self.dps_at_oom_sum / self.num_oom
        res.casts = {
            k: CastSummary(
                count=self.cast_count[k] / n,
                damage=self.cast_damage.get(k, 0.0) / n,
                crits=self.cast_crits.get(k, 0) / n,
            )
            for k in self.cast_count
        }
        return res


# ----------------------------
# batches
# ----------------------------

def _run_chunk(
    stats: np.ndarray,
    activations: Sequence[Activation],
    options: Options,
    seeds: Sequence[int],
    spells: Optional[Mapping[int, Spell]],
) -> BatchAccumulator:
    acc = BatchAccumulator()
    for s in seeds:
        acc.add(run_trial(stats, activations, options, s, spells=spells))
    return acc


def _chunks(seed: int, trials: int, size: int) -> List[List[int]]:
    return [list(range(seed + start, seed + min(start + size, trials))) for start in range(0, trials, size)]


def _validate(stats: np.ndarray, options: Options, trials: int, workers: int) -> np.ndarray:
    if trials <= 0:
        raise SimConfigError("trials must be > 0")
    if workers <= 0:
        raise SimConfigError("workers must be > 0")
    st = np.array(stats, dtype=np.float64)
    if st.shape != (STAT_LEN,):
        raise SimConfigError(f"stats must have {STAT_LEN} entries, got shape {st.shape}")
    parse_agent_type(options.agent_type)
    return st


def run_batch(
    stats: np.ndarray,
    activations: Sequence[Activation],
    options: Options,
    trials: int,
    seed: Optional[int] = None,
    workers: int = 1,
    timeout: Optional[float] = None,
    spells: Optional[Mapping[int, Spell]] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> BatchResult:
    """
    Run `trials` independent trials; trial i uses seed + i.

    With a timeout no new chunk is started after the deadline; the result
    covers the trials that actually finished.
    """
    st = _validate(stats, options, trials, workers)
    if seed is None:
        seed = int(time.time())
    activations = list(activations)

    start = time.perf_counter()
    deadline = None if timeout is None else time.monotonic() + timeout
    chunks = _chunks(seed, trials, max(1, chunk_size))
    done: Dict[int, BatchAccumulator] = {}

    if workers == 1:
        for i, seeds in enumerate(chunks):
            if deadline is not None and time.monotonic() >= deadline:
                logger.warning("timeout: stopped after %d of %d chunks", i, len(chunks))
                break
            done[i] = _run_chunk(st, activations, options, seeds, spells)
    else:
        _run_pool(st, activations, options, chunks, spells, workers, deadline, done)

    # merge in chunk order so the sums do not depend on scheduling
    acc = BatchAccumulator()
    for i in sorted(done):
        acc.merge(done[i])

    elapsed = time.perf_counter() - start
    logger.info("ran %d trials in %.2fs (workers=%d)", acc.trials, elapsed, workers)
    return acc.result(options.encounter.duration, elapsed)


def _run_pool(
    stats: np.ndarray,
    activations: List[Activation],
    options: Options,
    chunks: List[List[int]],
    spells: Optional[Mapping[int, Spell]],
    workers: int,
    deadline: Optional[float],
    done: Dict[int, BatchAccumulator],
) -> None:
    todo = iter(enumerate(chunks))
    with ProcessPoolExecutor(max_workers=workers) as ex:
        pending: Dict[Future, int] = {}

        def submit_next() -> bool:
            if deadline is not None and time.monotonic() >= deadline:
                return False
            nxt = next(todo, None)
            if nxt is None:
                return False
            i, seeds = nxt
            pending[ex.submit(_run_chunk, stats, activations, options, seeds, spells)] = i
            return True

        for _ in range(workers * 2):
            if not submit_next():
                break

        while pending:
            finished, _ = wait(list(pending), return_when=FIRST_COMPLETED)
            for fut in finished:
                i = pending.pop(fut)
                try:
                    done[i] = fut.result()
                except Exception:
                    for other in pending:
                        other.cancel()
                    raise
                submit_next()

        if len(done) < len(chunks):
            logger.warning("timeout: stopped after %d of %d chunks", len(done), len(chunks))


def stat_weights(
    stats: np.ndarray,
    activations: Sequence[Activation],
    options: Options,
    trials: int,
    stats_of_interest: Iterable[Stat] = DEFAULT_WEIGHT_STATS,
    delta: Any = DEFAULT_DELTA,
    seed: Optional[int] = None,
    workers: int = 1,
    spells: Optional[Mapping[int, Spell]] = None,
    perturb: Optional[Callable[[Stat, float], np.ndarray]] = None,
    timeout: Optional[float] = None,
) -> Dict[Stat, float]:
    """
    DPS gained per point of each stat, by finite differences.

    Every batch reuses the same seeds, so a stat that changes nothing gets
    a weight of exactly 0. `delta` is a number or a {Stat: delta} mapping;
    `perturb(stat, delta)` can rebuild the stat vector when a raw stat feeds
    derived ones.

    `timeout` bounds the whole computation. Batches are never compared at
    different sizes, so a batch cut short raises BatchTimeoutError.
    """
    st = _validate(stats, options, trials, workers)
    if seed is None:
        seed = int(time.time())
    deadline = None if timeout is None else time.monotonic() + timeout

    def full_batch(vec: np.ndarray) -> BatchResult:
        left = None if deadline is None else max(0.0, deadline - time.monotonic())
        r = run_batch(vec, activations, options, trials, seed=seed, workers=workers, timeout=left, spells=spells)
        if r.trials < trials:
            raise BatchTimeoutError(f"stat weights did not finish within {timeout}s ({r.trials}/{trials} trials in a batch)")
        return r

    def delta_for(s: Stat) -> float:
        d = delta.get(s, DEFAULT_DELTA) if isinstance(delta, Mapping) else delta
        if d == 0:
            raise SimConfigError(f"delta for {stat_name(s)} must be non-zero")
        return float(d)

    def perturbed(s: Stat, d: float) -> np.ndarray:
        if perturb is not None:
            return perturb(s, d)
        out = st.copy()
        out[s] += d
        return out

    base = full_batch(st)
    weights: Dict[Stat, float] = {}
    for s in stats_of_interest:
        s = Stat(s)
        d = delta_for(s)
        r = full_batch(perturbed(s, d))
        weights[s] = (r.dps_avg - base.dps_avg) / d
        logger.debug("weight %s: %.3f", stat_name(s), weights[s])
    return weights


# ----------------------------
# requests (gear names + options)
# ----------------------------

def request_stats(request: SimRequest, options: Optional[Options] = None) -> np.ndarray:
    opts = options or request.options
    return stat_total(opts, gear_stats(request.gear), int_multipliers(request.gear))


def run_simulation(request: SimRequest, timeout: Optional[float] = None) -> BatchResult:
    stats = request_stats(request)
    activations = equipment_activations(request.gear)
    if request.include_logs:
        # one fully logged trial
        metrics = run_trial(stats, activations, request.options, request.seed, debug=make_log_debug(logger))
        acc = BatchAccumulator()
        acc.add(metrics)
        return acc.result(request.options.encounter.duration)
    return run_batch(
        stats, activations, request.options, request.iterations,
        seed=request.seed, workers=request.workers, timeout=timeout,
    )


def compute_stat_weights(
    request: SimRequest,
    stats_of_interest: Iterable[Stat] = DEFAULT_WEIGHT_STATS,
    delta: Any = DEFAULT_DELTA,
    timeout: Optional[float] = None,
) -> Dict[Stat, float]:
    """Perturbs the custom buff stats so intellect also moves crit, mana and mp5."""
    opts = request.options

    def perturb(s: Stat, d: float) -> np.ndarray:
        custom = dict(opts.buffs.custom)
        custom[s] = custom.get(s, 0.0) + d
        return request_stats(request, replace(opts, buffs=replace(opts.buffs, custom=custom)))

    return stat_weights(
        request_stats(request),
        equipment_activations(request.gear),
        opts,
        request.iterations,
        stats_of_interest=stats_of_interest,
        delta=delta,
        seed=request.seed,
        workers=request.workers,
        perturb=perturb,
        timeout=timeout,
    )


# ----------------------------
# output
# ----------------------------

def format_weights(weights: Mapping[Stat, float]) -> str:
    return "Weights: [\n" + "\t".join(f"{stat_name(s)}: {v:0.2f}" for s, v in weights.items()) + "\n]"


def format_result(request: SimRequest, result: BatchResult) -> str:
    agent = parse_agent_type(request.options.agent_type)
    lines = [
        f"Agent Type: {agent.name}",
        f"DPS:\tMean: {result.dps_avg:0.1f} +/- {result.dps_stdev:0.1f}",
        f"\tMax: {result.dps_max:0.1f}",
        "Total Casts:",
    ]
    for spell_id, c in sorted(result.casts.items()):
        lines.append(f"\t{aura_name(spell_id)}: {c.count:0.1f}")
    lines.append(f"Went OOM: {result.num_oom}/{result.trials} sims")
    if result.num_oom > 0:
        lines.append(f"Avg OOM Time: {result.oom_at_avg:0.1f} seconds")
        lines.append(f"Avg DPS At OOM: {result.dps_at_oom_avg:0.0f}")
    lines.append(f"Sim execution took {result.execution_seconds:0.3f}s")
    return "\n".join(lines)


def _build_argparser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Elemental shaman DPS Monte Carlo simulator (tick-based)")
    ap.add_argument("--config", type=str, default=None, help="JSON sim request (options + gear)")
    ap.add_argument(
        "--agent-type", type=str, default=None,
        help=f"rotation to simulate, one of: {', '.join(AGENT_TYPES_BY_NAME)}",
    )
    ap.add_argument("--duration", type=float, default=None, help="fight duration in seconds")
    ap.add_argument("--iter", type=int, default=None, help="number of Monte Carlo trials")
    ap.add_argument("--seed", type=int, default=None, help="random seed")
    ap.add_argument("--workers", type=int, default=None, help="worker processes")
    ap.add_argument("--timeout", type=float, default=None, help="stop starting new trials after N seconds")
    ap.add_argument("--noopt", action="store_true", help="skip stat weights")
    ap.add_argument("--debug", action="store_true", help="log a single trial tick by tick")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = _build_argparser()
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    try:
        request = load_request(args.config) if args.config else SimRequest()
        opts = request.options
        if args.agent_type is not None:
            opts = opts.with_agent(parse_agent_type(args.agent_type))
        if args.duration is not None:
            opts = opts.with_duration(args.duration)
        request = replace(
            request,
            options=opts,
            iterations=args.iter if args.iter is not None else request.iterations,
            seed=args.seed if args.seed is not None else (request.seed if request.seed is not None else int(time.time())),
            workers=args.workers if args.workers is not None else request.workers,
        )
        if args.debug:
            request = replace(request, iterations=1, include_logs=True)

        print(f"\nSim Duration: {request.options.encounter.duration:0.1f} sec\nNum Simulations: {request.iterations}\n")
        print(f"Final Stats: {format_stats(request_stats(request))}")

        if not args.noopt and not args.debug:
            print(format_weights(compute_stat_weights(request, timeout=args.timeout)))

        result = run_simulation(request, timeout=args.timeout)
    except (SimConfigError, BatchTimeoutError) as e:
        logger.error("%s", e)
        return 2

    print(f"\n{format_result(request, result)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
