import math
import pickle

import numpy as np
import pytest

from tbcsim.agents import AgentType
from tbcsim.errors import BatchTimeoutError, NegativeManaError, SimConfigError
from tbcsim.magic import MagicID
from tbcsim.runner import (
    BatchAccumulator,
    format_result,
    main,
    run_batch,
    run_simulation,
    stat_weights,
)
from tbcsim.sim import CastMetric, TrialMetrics
from tbcsim.spells import Spell
from tbcsim.stats import TICKS_PER_SECOND, Stat, new_stats

from tbcdata.config_loader import SimRequest


def _metrics(dps, oom_tick=None, lb=0):
    m = TrialMetrics(duration_ticks=100 * TICKS_PER_SECOND, total_damage=dps * 100)
    if oom_tick is not None:
        m.oom_at_tick = oom_tick
        m.damage_at_oom = dps * oom_tick / TICKS_PER_SECOND
    if lb:
        m.casts[MagicID.LB12] = CastMetric(count=lb, damage=dps * 100, crits=1)
    return m


def test_accumulator_statistics():
    acc = BatchAccumulator()
    for dps in (100, 200, 304):
        acc.add(_metrics(dps, lb=10))
    res = acc.result(duration=100)

    assert res.trials == 3
    assert res.dps_avg == pytest.approx(604 / 3)
    mean = 604 / 3
    var = sum((x - mean) ** 2 for x in (100, 200, 304)) / 2
    assert res.dps_stdev == pytest.approx(math.sqrt(var))
    assert res.dps_max == pytest.approx(304)
    assert res.dps_hist == {100: 1, 200: 1, 300: 1}
    assert res.casts[MagicID.LB12].count == pytest.approx(10)
    assert res.casts[MagicID.LB12].crits == pytest.approx(1)
    assert res.num_oom == 0


def test_accumulator_merge_matches_single_pass():
    trials = [_metrics(d, oom_tick=(300 if d > 150 else None), lb=d // 10) for d in (90, 120, 180, 240)]
    whole = BatchAccumulator()
    for m in trials:
        whole.add(m)

    left, right = BatchAccumulator(), BatchAccumulator()
    for m in trials[:1]:
        left.add(m)
    for m in trials[1:]:
        right.add(m)
    left.merge(right)

    a, b = whole.result(100), left.result(100)
    assert a.trials == b.trials == 4
    assert a.dps_avg == pytest.approx(b.dps_avg)
    assert a.dps_stdev == pytest.approx(b.dps_stdev)
    assert a.dps_hist == b.dps_hist
    assert a.num_oom == b.num_oom == 2
    assert a.oom_at_avg == pytest.approx(10.0)
    assert a.dps_at_oom_avg == pytest.approx(b.dps_at_oom_avg)


def test_empty_batch_result():
    res = BatchAccumulator().result(60)
    assert res.trials == 0
    assert res.dps_avg == 0


def test_run_batch_is_reproducible(deep_pool, plain_options):
    opts = plain_options.with_duration(30)
    a = run_batch(deep_pool, (), opts, trials=12, seed=5, chunk_size=5)
    b = run_batch(deep_pool, (), opts, trials=12, seed=5, chunk_size=4)
    assert a.trials == b.trials == 12
    assert a.dps_avg == pytest.approx(b.dps_avg)
    assert a.dps_hist == b.dps_hist


def test_workers_match_serial(deep_pool, plain_options):
    opts = plain_options.with_duration(30)
    serial = run_batch(deep_pool, (), opts, trials=8, seed=3, chunk_size=2)
    pooled = run_batch(deep_pool, (), opts, trials=8, seed=3, workers=2, chunk_size=2)
    assert pooled.trials == 8
    assert pooled.dps_avg == serial.dps_avg
    assert pooled.dps_stdev == serial.dps_stdev


def test_timeout_reports_completed_trials(deep_pool, plain_options):
    res = run_batch(deep_pool, (), plain_options, trials=10, seed=1, timeout=0)
    assert res.trials == 0


@pytest.mark.parametrize("kwargs", [{"trials": 0}, {"trials": 5, "workers": 0}])
def test_bad_batch_arguments(deep_pool, plain_options, kwargs):
    with pytest.raises(SimConfigError):
        run_batch(deep_pool, (), plain_options, **kwargs)


def test_bad_stat_vector(plain_options):
    with pytest.raises(SimConfigError):
        run_batch(np.zeros(3), (), plain_options, trials=1)


def test_stat_weight_of_linear_spell(plain_options):
    # LB only, 500 + 1.0 * spellpower, 60s fight: bolts resolve at 2s .. 58s
    linear = Spell(id=MagicID.LB12, name="LB12", cast_time=2.0, mana=0, min_dmg=500, max_dmg=500, coeff=1.0)
    opts = plain_options.with_agent(AgentType.FIXED_LB_ONLY).with_duration(60)
    stats = new_stats(mana=1000, spell_dmg=300)

    weights = stat_weights(
        stats, (), opts, trials=3,
        stats_of_interest=(Stat.SPELL_DMG, Stat.SPIRIT),
        delta=50, seed=1, spells={linear.id: linear},
    )
    assert weights[Stat.SPELL_DMG] == pytest.approx(29 / 60)
    assert weights[Stat.SPIRIT] == 0.0


def test_zero_delta_rejected(deep_pool, plain_options):
    with pytest.raises(SimConfigError):
        stat_weights(deep_pool, (), plain_options, trials=1, stats_of_interest=(Stat.INT,), delta=0, seed=1)


def test_run_simulation_from_request():
    req = SimRequest(iterations=4, seed=2)
    res = run_simulation(req)
    assert res.trials == 4
    assert res.dps_avg > 0
    text = format_result(req, res)
    assert "Agent Type: ADAPTIVE" in text
    assert "Went OOM:" in text
    assert "LB12" in text


def test_cli_runs(capsys):
    code = main(["--noopt", "--iter", "3", "--seed", "1", "--duration", "20", "--agent-type", "LB"])
    out = capsys.readouterr().out
    assert code == 0
    assert "Num Simulations: 3" in out
    assert "Agent Type: FIXED_LB_ONLY" in out


def test_cli_rejects_unknown_agent(capsys):
    assert main(["--noopt", "--iter", "1", "--agent-type", "bogus"]) == 2


@pytest.mark.parametrize("workers", [1, 2])
def test_invariant_in_one_trial_aborts_the_batch(plain_options, workers):
    with pytest.raises(NegativeManaError) as exc:
        run_batch(new_stats(mana=-5), (), plain_options, trials=6, seed=1, workers=workers, chunk_size=2)
    assert exc.value.tick == 0


def test_invariant_error_keeps_context_across_processes():
    err = pickle.loads(pickle.dumps(NegativeManaError("mana went negative", tick=12, last_action="cast LB12")))
    assert isinstance(err, NegativeManaError)
    assert err.tick == 12
    assert err.last_action == "cast LB12"
    assert "tick=12" in str(err)


def test_stat_weights_never_compare_cut_batches(deep_pool, plain_options):
    with pytest.raises(BatchTimeoutError):
        stat_weights(deep_pool, (), plain_options, trials=4, stats_of_interest=(Stat.SPELL_DMG,), seed=1, timeout=0)


def test_stat_weights_within_deadline(deep_pool, plain_options):
    weights = stat_weights(
        deep_pool, (), plain_options.with_duration(10), trials=2,
        stats_of_interest=(Stat.SPIRIT,), seed=1, timeout=600,
    )
    assert weights == {Stat.SPIRIT: 0.0}
