"""
tests/test_model.py - Tests for the Max CS Prediction Pipeline

Validates:
- End-to-end prediction for a 4 player / 3 day contract
- Base rates (collectibles, modifier, swap bonus)
- Player configs for the SIAB variant
- SIAB override and variant selection
- Contract validation before any simulation
- Progress across both variants, receipts ledger
"""

import pytest

from config_schema import PredictorConfig
from coopsim import ContractParameters, TOKEN_CANDIDATES
from coopsim.constants import BASES, BOOSTED_SET, COLLECTIBLES
from coopsim.scoring import contribution_score
from model import (
    build_model,
    build_player_configs,
    compute_base_rates,
    ihr_stone_slots,
    swap_chicken_jump,
)
from receipts import ContractValidationError
from tokens import optimization_steps


@pytest.fixture(scope="module")
def four_player_contract():
    return ContractParameters(
        players=4,
        duration_seconds=3 * 86400,
        target_eggs=1.0e13,
        token_timer_minutes=90,
        gift_minutes=20,
        double_gift=False,
    )


@pytest.fixture(scope="module")
def four_player_report(four_player_contract):
    return build_model(four_player_contract)


@pytest.fixture
def small_contract():
    return ContractParameters(
        players=2,
        duration_seconds=86400,
        target_eggs=1.0e12,
        token_timer_minutes=60,
        gift_minutes=15,
    )


# =============================================================================
# END-TO-END TESTS
# =============================================================================

class TestBuildModelEndToEnd:
    """4 players, 3 days, 1e13 eggs, 90 min timer, 20 min gifts."""

    def test_tokens_per_player(self, four_player_report):
        assert len(four_player_report.tokens_by_player) == 4
        assert all(t in TOKEN_CANDIDATES for t in four_player_report.tokens_by_player)

    def test_max_score_is_positive_integer(self, four_player_report):
        max_cs = four_player_report.max_cs
        assert max_cs > 0
        assert max_cs == int(max_cs)
        assert max_cs == max(s.cs for s in four_player_report.summaries)

    def test_scores_follow_formula(self, four_player_report, four_player_contract):
        for summary in four_player_report.summaries:
            assert summary.cs == contribution_score(
                summary.contribution_ratio,
                four_player_contract.duration_seconds,
                summary.completion_time,
                summary.teamwork,
            )

    def test_optimizer_not_below_baseline(self, four_player_report):
        optimization = four_player_report.optimization
        assert optimization.best_score >= optimization.baseline_score

    def test_report_shape(self, four_player_report):
        report = four_player_report
        assert len(report.stone_layouts) == 4
        assert len(report.deflector_display.display_deflectors) == 4
        assert isinstance(report.siab_score_delta, int)
        assert report.required_deflector >= 0
        assert report.tokens_for_prediction == 6
        assert report.has_fixed_tokens is True
        assert report.min_cs <= report.mean_cs <= report.max_cs

    def test_stone_layouts_use_budget(self, four_player_report):
        for index, layout in enumerate(four_player_report.stone_layouts):
            expected = 9 if index == 0 and four_player_report.use_player1_siab else 10
            assert layout.num_tach + layout.num_quant == expected

    def test_receipts_ledger(self, four_player_report):
        types = [r["receipt_type"] for r in four_player_report.receipts]
        assert types[-1] == "prediction"
        assert types.count("stone_allocation") == 8
        assert types.count("deflector_display") == 2
        assert types.count("token_optimization") == 2
        assert types.count("scenario") == 2


# =============================================================================
# BASE RATE TESTS
# =============================================================================

class TestComputeBaseRates:
    """Tests for compute_base_rates."""

    def test_default_rates(self, small_contract):
        rates = compute_base_rates(small_contract, PredictorConfig())
        assert rates.max_chickens == pytest.approx(
            BASES["base_chickens"] * BOOSTED_SET["gusset"]["chick_mult"] * COLLECTIBLES["chicken_mult"]
        )
        assert rates.elr_per_chicken == pytest.approx(BASES["base_elr"] * 1.35 * 1.05)
        assert rates.ship_rate == pytest.approx(BASES["base_ship"] * 1.5 * 1.1025)
        assert rates.ihr == pytest.approx(7440 * 1.01 ** 100 * 1.05 * 1.4 * 1.3 * 1.04 ** 10)
        assert rates.total_slots == 10

    def test_ihr_stone_slots(self):
        assert ihr_stone_slots() == 10

    def test_modifier_scales_its_dimension(self, small_contract):
        plain = compute_base_rates(small_contract, PredictorConfig())
        boosted = compute_base_rates(
            ContractParameters(
                players=2,
                duration_seconds=86400,
                target_eggs=1.0e12,
                token_timer_minutes=60,
                gift_minutes=15,
                modifier_type="egg_laying_rate",
                modifier_value=2.0,
            ),
            PredictorConfig(),
        )
        assert boosted.elr_per_chicken == pytest.approx(plain.elr_per_chicken * 2)
        assert boosted.ship_rate == plain.ship_rate

    def test_swap_bonus(self, small_contract):
        plain = compute_base_rates(small_contract, PredictorConfig())
        swapped = compute_base_rates(small_contract, PredictorConfig(swap_bonus=True))
        assert swapped.max_chickens == pytest.approx(plain.max_chickens + 5e8)
        assert swap_chicken_jump(1) == 0

    def test_trust_equity_raises_ihr(self, small_contract):
        low = compute_base_rates(small_contract, PredictorConfig(average_te=0))
        high = compute_base_rates(small_contract, PredictorConfig(average_te=100))
        assert high.ihr == pytest.approx(low.ihr * 1.01 ** 100)


class TestBuildPlayerConfigs:
    """Tests for build_player_configs."""

    def test_siab_player_penalty(self, small_contract):
        config = PredictorConfig()
        rates = compute_base_rates(small_contract, config)
        configs, receipts = build_player_configs(2, rates, 20, True, config)

        penalty = BASES["base_chickens"] * COLLECTIBLES["chicken_mult"] * 0.25
        assert configs[0].max_chickens == pytest.approx(rates.max_chickens - penalty)
        assert configs[0].stone_layout.total_slots == 9
        assert configs[0].siab_always_on is True
        assert configs[1].max_chickens == rates.max_chickens
        assert configs[1].stone_layout.total_slots == 10
        assert configs[1].siab_always_on is False
        assert len(receipts) == 2

    def test_base_variant_has_no_always_on(self, small_contract):
        config = PredictorConfig()
        rates = compute_base_rates(small_contract, config)
        configs, _ = build_player_configs(2, rates, 20, False, config)
        assert not any(c.siab_always_on for c in configs)
        assert all(c.siab_percent == 100 for c in configs)

    def test_rates_with_stones(self, small_contract):
        config = PredictorConfig()
        rates = compute_base_rates(small_contract, config)
        configs, _ = build_player_configs(2, rates, 20, False, config)
        layout = configs[0].stone_layout
        assert configs[0].elr_per_chicken_with_stones == pytest.approx(rates.elr_per_chicken * 1.05 ** layout.num_tach)
        assert configs[0].sr_with_stones == pytest.approx(rates.ship_rate * 1.05 ** layout.num_quant)


# =============================================================================
# VARIANT SELECTION TESTS
# =============================================================================

class TestSiabOverride:
    """Forcing the player-1 SIAB variant."""

    def test_force_on(self, small_contract):
        report = build_model(small_contract, siab_override=True)
        assert report.use_player1_siab is True
        assert report.player_configs[0].siab_always_on is True

    def test_force_off(self, small_contract):
        report = build_model(small_contract, siab_override=False)
        assert report.use_player1_siab is False
        assert report.player_configs[0].stone_layout.total_slots == 10

    def test_automatic_pick_matches_delta(self, small_contract):
        report = build_model(small_contract)
        if report.siab_score_delta > 0:
            assert report.use_player1_siab is True
        if report.siab_score_delta < 0:
            assert report.use_player1_siab is False

    def test_token_plan_fallback(self, small_contract):
        report = build_model(small_contract, PredictorConfig(tokens_per_player=None))
        assert report.has_fixed_tokens is False
        assert report.tokens_for_prediction == report.token_plan.best_time.tokens


# =============================================================================
# VALIDATION AND PROGRESS TESTS
# =============================================================================

class TestBuildModelValidation:
    """Invalid contracts fail before simulating."""

    def test_lists_every_invalid_field(self):
        updates = []
        contract = ContractParameters(
            players=0,
            duration_seconds=-1,
            target_eggs=1.0e13,
            token_timer_minutes=0,
            gift_minutes=20,
        )
        with pytest.raises(ContractValidationError) as exc_info:
            build_model(contract, on_progress=updates.append)

        assert exc_info.value.fields == ["players", "duration", "token_timer"]
        assert "players, duration, token_timer" in str(exc_info.value)
        assert updates == []

    def test_bad_modifier(self, small_contract):
        contract = ContractParameters(
            players=2,
            duration_seconds=86400,
            target_eggs=1.0e12,
            token_timer_minutes=60,
            gift_minutes=15,
            modifier_type="gravity",
            modifier_value=0,
        )
        with pytest.raises(ContractValidationError) as exc_info:
            build_model(contract)
        assert exc_info.value.fields == ["modifier_type", "modifier_value"]


class TestBuildModelProgress:
    """Progress counts run across both variants."""

    def test_monotonic_across_variants(self, small_contract):
        updates = []
        build_model(small_contract, on_progress=updates.append, progress_interval=0)
        completed = [u.completed for u in updates]

        assert completed == sorted(completed)
        assert completed[-1] == 2 * optimization_steps(2)
        assert optimization_steps(2) in completed
