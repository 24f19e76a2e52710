"""
Tests for configuration precedence and loading.
"""
import os
import tempfile
from pathlib import Path

import pytest

from griefscan.config.loader import ConfigLoader, compute_config_hash, dump_config
from griefscan.config.settings import ExtractionSettings, RuleSettings, Settings
from griefscan.core.errors import ConfigurationError
from griefscan.core.models import Severity

TOML_CONTENT = """
[rules]
disabled = ["minimum-amount"]

[rules.severity_overrides]
reentrancy = "critical"

[extraction]
minimum_amount_floor = 100
max_constant_loop_bound = 256

[engine]
max_workers = 2
"""


def write_toml(directory: Path, name: str, content: str) -> Path:
    path = directory / name
    path.write_text(content)
    return path


def test_defaults_without_config(tmp_path):
    config, warnings = ConfigLoader(tmp_path).load_config()

    assert config == Settings()
    assert config.rules.enabled is None
    assert config.extraction.minimum_amount_floor == 0
    assert warnings == []


def test_config_precedence_env_over_defaults(tmp_path):
    """Test that environment variables override defaults."""
    os.environ["GRIEFSCAN_RULES_DISABLED"] = "push-payment, category:arithmetic"
    os.environ["GRIEFSCAN_SEVERITY_OVERRIDES"] = "reentrancy=critical,minimum-amount=info"

    try:
        config, warnings = ConfigLoader(tmp_path).load_config()

        assert config.rules.disabled == ["push-payment", "category:arithmetic"]
        assert config.rules.override_for("reentrancy") == Severity.CRITICAL
        assert config.rules.override_for("minimum-amount") == Severity.INFO
        assert warnings == []

    finally:
        os.environ.pop("GRIEFSCAN_RULES_DISABLED", None)
        os.environ.pop("GRIEFSCAN_SEVERITY_OVERRIDES", None)


def test_config_precedence_toml_over_defaults():
    """Test that TOML config overrides defaults."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
        f.write(TOML_CONTENT)
        toml_path = Path(f.name)

    try:
        config, warnings = ConfigLoader().load_config(toml_path)

        assert config.rules.disabled == ["minimum-amount"]
        assert config.rules.severity_overrides == {"reentrancy": "CRITICAL"}
        assert config.extraction.minimum_amount_floor == 100
        assert config.extraction.max_constant_loop_bound == 256
        assert config.engine.max_workers == 2

    finally:
        toml_path.unlink()


def test_config_precedence_env_over_toml(tmp_path, monkeypatch):
    """Test that environment variables override TOML config."""
    toml_path = write_toml(tmp_path, "custom.toml", TOML_CONTENT)
    monkeypatch.setenv("GRIEFSCAN_MINIMUM_AMOUNT_FLOOR", "5")
    monkeypatch.setenv("GRIEFSCAN_MAX_WORKERS", "8")

    config, _ = ConfigLoader(tmp_path).load_config(toml_path)

    assert config.extraction.minimum_amount_floor == 5
    assert config.engine.max_workers == 8
    # Untouched TOML values survive the merge.
    assert config.extraction.max_constant_loop_bound == 256
    assert config.rules.disabled == ["minimum-amount"]


def test_default_config_file_discovery(tmp_path):
    write_toml(tmp_path, "griefscan.toml", '[rules]\nenabled = ["reentrancy"]\n')
    config, _ = ConfigLoader(tmp_path).load_config()
    assert config.rules.enabled == ["reentrancy"]


def test_pyproject_tool_section(tmp_path):
    write_toml(tmp_path, "pyproject.toml", """
[project]
name = "my-contracts"

[tool.griefscan.extraction]
reward_variable_pattern = "(bonus|reward)"
""")
    config, _ = ConfigLoader(tmp_path).load_config()
    assert config.extraction.reward_variable_pattern == "(bonus|reward)"


def test_broken_default_file_is_a_warning(tmp_path):
    write_toml(tmp_path, "griefscan.toml", "[rules\n")
    config, warnings = ConfigLoader(tmp_path).load_config()

    assert config == Settings()
    assert any("Failed to load config" in warning for warning in warnings)


def test_explicit_file_errors(tmp_path):
    with pytest.raises(ConfigurationError):
        ConfigLoader(tmp_path).load_config(tmp_path / "missing.toml")

    broken = write_toml(tmp_path, "broken.toml", "engine = [")
    with pytest.raises(ConfigurationError):
        ConfigLoader(tmp_path).load_config(broken)


def test_invalid_values(tmp_path, monkeypatch):
    """Invalid environment values warn; values failing validation raise."""
    monkeypatch.setenv("GRIEFSCAN_MAX_WORKERS", "lots")
    config, warnings = ConfigLoader(tmp_path).load_config()
    assert config.engine.max_workers == 4
    assert any("GRIEFSCAN_MAX_WORKERS" in warning for warning in warnings)

    monkeypatch.setenv("GRIEFSCAN_MAX_WORKERS", "0")
    config, _ = ConfigLoader(tmp_path).load_config()
    assert config.engine.max_workers == 4

    monkeypatch.setenv("GRIEFSCAN_REWARD_VARIABLE_PATTERN", "(unclosed")
    with pytest.raises(ConfigurationError):
        ConfigLoader(tmp_path).load_config()


def test_invalid_severity_override_is_dropped():
    settings = RuleSettings(severity_overrides={"reentrancy": "urgent", "push-payment": "Informational"})
    assert settings.severity_overrides == {"push-payment": "INFO"}


def test_negative_floor_rejected():
    with pytest.raises(ValueError):
        ExtractionSettings(minimum_amount_floor=-1)


def test_config_hash_stability():
    """Test that config hash is stable and order-independent."""
    config1 = Settings(rules=RuleSettings(enabled=["reentrancy", "push-payment"]))
    config2 = Settings(rules=RuleSettings(enabled=["push-payment", "reentrancy"]))

    hash1 = compute_config_hash(config1)
    hash2 = compute_config_hash(config2)

    # Hashes should be identical despite different selector order
    assert hash1 == hash2
    assert len(hash1) == 64  # SHA256 hex string


def test_config_hash_changes_with_content():
    """Test that config hash changes when config content changes."""
    config1 = Settings()
    config2 = Settings(extraction=ExtractionSettings(minimum_amount_floor=1))

    assert compute_config_hash(config1) != compute_config_hash(config2)


def test_dump_config_round_trips():
    settings = Settings(rules=RuleSettings(disabled=["reentrancy"]))
    assert Settings.model_validate_json(dump_config(settings)) == settings
