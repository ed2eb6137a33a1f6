"""Configuration loading and structured logging helpers."""

import json
import logging
from datetime import time

import pytest

from mirror_app.config import MirrorConfig
from mirror_app.logging_config import JsonFormatter, log_event, operation_context, redact_for_log
from models.taxonomy import NoteStyle


def test_defaults_match_documented_tunables() -> None:
    config = MirrorConfig()
    options = config.resilience_options()
    settings = config.engine_settings()
    learner = config.learner_settings()

    assert options.max_retries == 3
    assert options.circuit_failure_threshold == 5
    assert options.circuit_cooldown == 30.0
    assert options.per_call_timeout == 0.75
    assert settings.short_sleeve_min_temp == 12.0
    assert settings.heavy_outerwear_max_temp == 18.0
    assert settings.note_style is NoteStyle.ENCOURAGING
    assert learner.learning_rate == 0.2
    assert learner.disliked_pattern_occurrences == 3


def test_from_env_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("APP_CONFIG_PATH", raising=False)
    monkeypatch.setenv("MAX_RETRIES", "1")
    monkeypatch.setenv("NOTE_STYLE", "Poetic")
    monkeypatch.setenv("PER_CALL_TIMEOUT_SECONDS", "off")
    monkeypatch.setenv("VARIETY_SEED", "11")
    monkeypatch.setenv("DEFAULT_LOCATION", "Porto")

    config = MirrorConfig.from_env()

    assert config.max_retries == 1
    assert config.note_style == "poetic"
    assert config.per_call_timeout_seconds is None
    assert config.variety_seed == 11
    assert config.default_location == "Porto"


def test_from_env_merges_file_below_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    config_file = tmp_path / "staging.yaml"
    config_file.write_text(
        "# staging overrides\n"
        "circuit_failure_threshold: 7\n"
        "learning_rate: 0.5\n"
        'openweather_api_key: "file-key"\n'
    )
    monkeypatch.setenv("APP_CONFIG_PATH", str(config_file))
    monkeypatch.setenv("LEARNING_RATE", "0.3")
    monkeypatch.delenv("CIRCUIT_FAILURE_THRESHOLD", raising=False)
    monkeypatch.delenv("OPENWEATHER_API_KEY", raising=False)

    config = MirrorConfig.from_env()

    assert config.circuit_failure_threshold == 7
    assert config.learning_rate == 0.3
    assert config.weather_api_key == "file-key"


def test_invalid_values_are_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    with pytest.raises(ValueError):
        MirrorConfig(learning_rate=0.0)
    with pytest.raises(ValueError):
        MirrorConfig(note_style="sarcastic")
    with pytest.raises(ValueError):
        MirrorConfig(formality_tolerance=9)

    monkeypatch.setenv("MAX_RETRIES", "many")
    with pytest.raises(ValueError, match="max_retries"):
        MirrorConfig.from_env()


def test_redaction_masks_personal_fields() -> None:
    scrubbed = redact_for_log(
        {"user_id": "u-1", "nested": {"location": "Lisbon", "contact": "me@example.com"}, "count": 3}
    )
    assert scrubbed == {"user_id": "[redacted]", "nested": {"location": "[redacted]", "contact": "[redacted-email]"}, "count": 3}


def test_log_event_emits_json_with_operation(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("tests.structured")
    with caplog.at_level(logging.INFO, logger="tests.structured"):
        with operation_context("build_context", correlation_id="abc123"):
            log_event(logger, logging.INFO, "context_built", item_count=4, user_id="u-1")
            payload = json.loads(JsonFormatter().format(caplog.records[-1]))

    assert payload["event"] == "context_built"
    assert payload["correlation_id"] == "abc123"
    assert payload["operation"] == "build_context"
    assert payload["item_count"] == 4
    assert payload["user_id"] == "[redacted]"


def test_operation_context_logs_duration_and_failures(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="mirror_app.logging_config"):
        with operation_context("refresh_cache"):
            pass
        with pytest.raises(KeyError):
            with operation_context("load_profile"):
                raise KeyError("user-1")

    records = [record for record in caplog.records if record.name == "mirror_app.logging_config"]
    assert [(record.event, getattr(record, "error_type", None)) for record in records] == [
        ("operation_completed", None),
        ("operation_failed", "KeyError"),
    ]
    assert all(record.duration_ms >= 0 for record in records)


def test_session_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("APP_ENV", raising=False)
    monkeypatch.delenv("APP_CONFIG_PATH", raising=False)
    monkeypatch.setenv("SESSION_TIME", "07:15")
    monkeypatch.setenv("SESSION_WEEKENDS", "off")

    config = MirrorConfig.from_env()

    assert config.session_clock() == time(7, 15)
    assert config.session_weekends is False

    monkeypatch.setenv("SESSION_WEEKENDS", "sometimes")
    with pytest.raises(ValueError, match="session_weekends"):
        MirrorConfig.from_env()


def test_malformed_session_time_is_rejected() -> None:
    assert MirrorConfig().session_clock() == time(6, 0)
    with pytest.raises(ValueError, match="session_time"):
        MirrorConfig(session_time="breakfast")
