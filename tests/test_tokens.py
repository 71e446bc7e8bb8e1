"""
tests/test_tokens.py - Tests for Token Pacing Plan and Token Optimizer

Validates:
- Token plan rates, per-option timings and best picks
- Leading/trailing count helpers
- Coordinate ascent never ends below its baseline
- Evaluation count and progress offsets
- Failure handling (isolated failures, whole-batch EvaluationError)
"""

import math

import pytest

from coopsim import ContractParameters, PlayerConfig, run_scenario
from coopsim.scoring import calc_boost_multi
from receipts import EvaluationError, StopRule
from tokens import (
    build_token_plan,
    count_tokens_from_end,
    count_tokens_from_start,
    optimization_steps,
    optimize_tokens,
    tokens_for_prediction,
)


CANDIDATES = (0, 2, 4)


@pytest.fixture
def contract():
    return ContractParameters(
        players=2,
        duration_seconds=2 * 3600,
        target_eggs=2.0e9,
        token_timer_minutes=30,
        gift_minutes=10,
    )


@pytest.fixture
def configs():
    config = PlayerConfig(
        max_chickens=2.0e6,
        elr_per_chicken_no_stones=40.0,
        elr_per_chicken_with_stones=42.0,
        sr_no_stones=1.0e8,
        sr_with_stones=1.05e8,
        siab_percent=100,
    )
    return (config, config)


def run_optimizer(contract, configs, **kwargs):
    params = dict(
        baseline_deflectors=(20, 20),
        display_deflectors=(20, 0),
        base_ihr=5000,
        base_tokens=2,
        candidates=CANDIDATES,
    )
    params.update(kwargs)
    return optimize_tokens(contract, configs, **params)


# =============================================================================
# TOKEN PLAN TESTS
# =============================================================================

class TestBuildTokenPlan:
    """Tests for build_token_plan."""

    def test_token_rate(self):
        plan = build_token_plan(90, 20, False, 4, 50000, 1.0e10)
        assert plan.token_rate == pytest.approx(4 / 90 + 4 / 20)

    def test_double_gift_rate(self):
        plan = build_token_plan(90, 20, True, 4, 50000, 1.0e10)
        assert plan.token_rate == pytest.approx(4 / 90 + 2 * 4 / 20)

    def test_option_timings(self):
        plan = build_token_plan(90, 20, False, 4, 50000, 1.0e10)
        assert [option.tokens for option in plan.results] == [4, 5, 6, 8]
        for option in plan.results:
            assert option.boost_multi == calc_boost_multi(option.tokens)
            assert option.minutes_to_tokens == pytest.approx(option.tokens / plan.token_rate)
            assert option.minutes_to_max == pytest.approx(1.0e10 / (50000 * 12 * option.boost_multi))
            assert option.total_minutes == pytest.approx(option.minutes_to_tokens + option.minutes_to_max)
            assert option.efficiency == pytest.approx(option.boost_multi / option.tokens)

    def test_best_picks(self):
        plan = build_token_plan(90, 20, False, 4, 50000, 1.0e10)
        assert plan.best_time.total_minutes == min(o.total_minutes for o in plan.results)
        assert plan.best_efficiency.efficiency == max(o.efficiency for o in plan.results)
        assert tokens_for_prediction(plan) == plan.best_time.tokens

    def test_empty_options_fall_back_to_default(self):
        plan = build_token_plan(90, 20, False, 4, 50000, 1.0e10, options=())
        assert plan.best_time is None
        assert tokens_for_prediction(plan) == 6


# =============================================================================
# COUNT HELPER TESTS
# =============================================================================

class TestCountTokens:
    """Leading/trailing run lengths."""

    def test_from_start(self):
        assert count_tokens_from_start([8, 8, 4, 8], 8) == 2

    def test_from_end(self):
        assert count_tokens_from_end([4, 8, 8, 8], 8) == 3

    def test_none(self):
        assert count_tokens_from_start([4, 8], 8) == 0
        assert count_tokens_from_end([], 8) == 0


# =============================================================================
# OPTIMIZER TESTS
# =============================================================================

class TestOptimizeTokens:
    """Tests for optimize_tokens."""

    def test_never_below_baseline(self, contract, configs):
        result = run_optimizer(contract, configs)
        assert result.best_score >= result.baseline_score
        assert len(result.tokens_by_player) == 2
        assert set(result.tokens_by_player) <= set(CANDIDATES) | {2}

    def test_score_is_player_one_adjusted_cs(self, contract, configs):
        result = run_optimizer(contract, configs)
        assert result.best_score == result.adjusted.summaries[0].cs
        assert result.adjusted.summaries[1].deflector == 0
        assert result.scenario.tokens_per_player == result.tokens_by_player

    def test_evaluation_count(self, contract, configs):
        result = run_optimizer(contract, configs)
        assert result.evaluations == optimization_steps(2, CANDIDATES)
        assert optimization_steps(2, CANDIDATES) == 1 + 2 * 3 * 2

    def test_trailing_and_leading_counts(self, contract, configs):
        result = run_optimizer(contract, configs)
        assert result.late_max_count == count_tokens_from_end(result.tokens_by_player, max(CANDIDATES))
        assert result.early_max_count == count_tokens_from_start(result.tokens_by_player, max(CANDIDATES))

    def test_deterministic(self, contract, configs):
        first = run_optimizer(contract, configs)
        second = run_optimizer(contract, configs)
        assert first.tokens_by_player == second.tokens_by_player
        assert first.best_score == second.best_score

    def test_receipts(self, contract, configs):
        result = run_optimizer(contract, configs)
        types = [r["receipt_type"] for r in result.receipts]
        assert types.count("token_sweep_step") == 2 * 2
        assert types.count("scenario") == 1
        assert types[-2] == "scenario"
        assert types[-1] == "token_optimization"
        assert result.receipts[-1]["tokens_per_player"] == list(result.tokens_by_player)
        assert result.receipts[-2]["tokens_per_player"] == list(result.tokens_by_player)
        assert result.receipts[-2]["max_cs"] == result.scenario.max_cs

    def test_improvements_counted(self, contract, configs):
        result = run_optimizer(contract, configs)
        adopted = [r for r in result.receipts if r["receipt_type"] == "token_sweep_step" and r["adopted"]]
        assert result.improvements == len(adopted)
        if result.improvements == 0:
            assert result.best_score == result.baseline_score

    def test_progress_offset(self, contract, configs):
        updates = []
        result = run_optimizer(contract, configs, on_progress=updates.append, progress_offset=100, progress_interval=0)
        completed = [u.completed for u in updates]
        assert min(completed) == 100
        assert completed[-1] == 100 + result.evaluations
        assert completed == sorted(completed)


class TestOptimizeTokensFailures:
    """Failure handling inside the optimizer."""

    def test_all_failures_raise(self, contract, configs):
        def always_fail(request):
            raise RuntimeError("simulator down")

        with pytest.raises(EvaluationError) as exc_info:
            run_optimizer(contract, configs, evaluate=always_fail)
        assert isinstance(exc_info.value, StopRule)
        assert isinstance(exc_info.value.last_error, RuntimeError)

    def test_partial_failures_score_minus_infinity(self, contract, configs):
        def fail_on_four(request):
            if 4 in request.tokens_per_player:
                raise RuntimeError("bad candidate")
            return run_scenario(request)

        result = run_optimizer(contract, configs, evaluate=fail_on_four)
        failures = [r for r in result.receipts if r["receipt_type"] == "evaluation_failure"]

        assert failures
        assert 4 not in result.tokens_by_player
        assert math.isfinite(result.best_score)

    def test_last_error_follows_submission_order(self, contract, configs):
        def only_baseline(request):
            if request.tokens_per_player != (1, 1):
                raise RuntimeError(str(request.tokens_per_player))
            return run_scenario(request)

        with pytest.raises(EvaluationError) as exc_info:
            run_optimizer(contract, configs, base_tokens=1, evaluate=only_baseline)
        assert str(exc_info.value.last_error) == "(1, 4)"
