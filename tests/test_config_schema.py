"""
tests/test_config_schema.py - Tests for PredictorConfig

Validates:
- Defaults
- JSON and YAML loading
- Strict validation errors
- Self-healing with warnings
- Content hash
"""

import json

import pytest
import yaml

import config_schema
from config_schema import PredictorConfig, collectible_multipliers


# =============================================================================
# DEFAULT TESTS
# =============================================================================

class TestDefault:
    """Tests for default()."""

    def test_default_assumptions(self):
        config = config_schema.default()
        assert config.average_te == 100
        assert config.tokens_per_player == 6
        assert config.swap_bonus is False
        assert config.new_teamwork_mode is True
        assert config.siab_percent == 100
        assert config.has_fixed_tokens is True

    def test_default_collectibles(self):
        assert collectible_multipliers(config_schema.default()) == (1.05, 1.1025, 1.05, 1.05)

    def test_frozen(self):
        config = config_schema.default()
        with pytest.raises(Exception):
            config.average_te = 50

    def test_partial_collectibles_are_filled(self):
        config = PredictorConfig(collectibles={"elr_mult": 1.1})
        assert config.collectibles["elr_mult"] == 1.1
        assert config.collectibles["ship_mult"] == 1.1025

    def test_no_fixed_tokens(self):
        assert PredictorConfig(tokens_per_player=None).has_fixed_tokens is False
        assert PredictorConfig(tokens_per_player=0).has_fixed_tokens is False


# =============================================================================
# LOAD TESTS
# =============================================================================

class TestLoad:
    """Tests for load()."""

    def test_load_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"average_te": 50, "swap_bonus": True, "max_workers": 2}))
        config = config_schema.load(str(path))
        assert config.average_te == 50
        assert config.swap_bonus is True
        assert config.max_workers == 2
        assert config.tokens_per_player == 6

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"tokens_per_player": None, "collectibles": {"ihr_mult": 1.1}}))
        config = config_schema.load(str(path))
        assert config.tokens_per_player is None
        assert config.collectibles["ihr_mult"] == 1.1

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert config_schema.load(str(path)) == config_schema.default()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            config_schema.load(str(tmp_path / "nope.json"))

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "saved.yaml"
        original = PredictorConfig(average_te=42, swap_bonus=True)
        original.save(str(path))
        assert config_schema.load(str(path)) == original


# =============================================================================
# VALIDATION TESTS
# =============================================================================

class TestValidation:
    """Strict and self-healing validation."""

    def test_strict_rejects_invalid(self):
        with pytest.raises(ValueError, match="average_te"):
            config_schema.from_dict({"average_te": -1}, strict=True)

    def test_strict_rejects_unknown(self):
        with pytest.raises(ValueError):
            config_schema.from_dict({"mystery": 1}, strict=True)

    def test_heal_unknown_field(self):
        with pytest.warns(UserWarning, match="unknown field: mystery"):
            config = config_schema.from_dict({"mystery": 1, "average_te": 80})
        assert config.average_te == 80

    def test_heal_invalid_value(self):
        with pytest.warns(UserWarning, match="progress_interval"):
            config = config_schema.from_dict({"progress_interval": -5})
        assert config.progress_interval == 0.5

    def test_heal_bad_collectibles(self):
        with pytest.warns(UserWarning):
            config = config_schema.from_dict({"collectibles": {"elr_mult": 0}})
        assert config.collectibles["elr_mult"] == 1.05

    def test_non_mapping(self):
        with pytest.raises(ValueError):
            config_schema.from_dict(["not", "a", "mapping"])

    def test_schema_property(self):
        schema = config_schema.default().schema
        assert schema["title"] == "PredictorConfig"
        assert "average_te" in schema["properties"]


# =============================================================================
# HASH TESTS
# =============================================================================

class TestConfigHash:
    """Content hash."""

    def test_stable(self):
        assert PredictorConfig().config_hash == PredictorConfig().config_hash

    def test_changes_with_content(self):
        assert PredictorConfig().config_hash != PredictorConfig(average_te=99).config_hash

    def test_length(self):
        assert len(PredictorConfig().config_hash) == 16
