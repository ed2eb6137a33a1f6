"""Configuration helpers for the Daily Mirror service."""

from dataclasses import dataclass
from datetime import time
from pathlib import Path
import os
from typing import Callable, Optional

from models.taxonomy import FormalityLevel, NoteStyle

DEFAULT_PROFILE_STORE_PATH = "data/profiles"
DEFAULT_WARDROBE_DB_PATH = "data/wardrobe.db"


@dataclass
class MirrorConfig:
    """Every tunable the recommendation core recognises.

    Values come from environment variables merged over an optional
    environment file, so a deployment can override only what it needs.
    """

    # resilience
    max_retries: int = 3
    base_delay_seconds: float = 0.25
    max_delay_seconds: float = 10.0
    per_call_timeout_seconds: Optional[float] = 0.75
    circuit_failure_threshold: int = 5
    circuit_window_seconds: float = 60.0
    circuit_cooldown_seconds: float = 30.0
    soft_deadline_seconds: float = 1.0

    # recommendation gates
    short_sleeve_min_temp_c: float = 12.0
    heavy_outerwear_max_temp_c: float = 18.0
    outerwear_min_temp_c: float = 15.0
    formality_tolerance: int = 0
    note_style: str = NoteStyle.ENCOURAGING.value
    neglect_days: int = 30
    variety_seed: Optional[int] = None
    variety_weight: float = 0.0

    # feedback learning
    learning_rate: float = 0.2
    low_rating_threshold: float = 3.0
    disliked_pattern_occurrences: int = 3
    disliked_decay_cycles: int = 10

    # caches
    weather_cache_ttl_seconds: float = 2 * 60 * 60
    wardrobe_cache_ttl_seconds: float = 7 * 24 * 60 * 60
    profile_cache_ttl_seconds: float = 24 * 60 * 60

    # morning session
    session_time: str = "06:00"
    session_weekends: bool = True

    # collaborators
    weather_api_key: Optional[str] = None
    calendar_project_id: Optional[str] = None
    calendar_id: Optional[str] = None
    google_credentials_path: Optional[str] = None
    default_location: Optional[str] = None
    wardrobe_db_path: str = DEFAULT_WARDROBE_DB_PATH
    profile_store_path: str = DEFAULT_PROFILE_STORE_PATH
    environment: str | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.circuit_failure_threshold < 1:
            raise ValueError("circuit_failure_threshold must be at least 1")
        if not 0.0 < self.learning_rate <= 1.0:
            raise ValueError("learning_rate must be in (0, 1]")
        if self.formality_tolerance < 0 or self.formality_tolerance >= len(FormalityLevel):
            raise ValueError("formality_tolerance out of range")
        self.note_style = NoteStyle.parse(self.note_style).value
        try:
            time.fromisoformat(self.session_time)
        except ValueError as exc:
            raise ValueError(f"session_time must be HH:MM, got {self.session_time!r}") from exc

    @classmethod
    def from_env(cls) -> "MirrorConfig":
        """Build a config from environment variables or an environment YAML file.

        Environment specific YAML lives in ``config/environments/<env>.yaml`` by
        default and is merged with environment variables so that secrets can be
        injected by the runtime environment.
        """

        env_name = os.getenv("APP_ENV")
        config_path = os.getenv("APP_CONFIG_PATH")
        config_dir = Path(os.getenv("MIRROR_CONFIG_DIR", "config/environments"))
        yaml_config: dict = {}

        if config_path:
            path = Path(config_path)
        elif env_name:
            path = config_dir / f"{env_name}.yaml"
        else:
            path = None

        if path and path.exists():
            yaml_config = cls._load_yaml_config(path)

        def get_value(key: str, default: Optional[str] = None) -> Optional[str]:
            env_key = key.upper()
            return os.getenv(env_key, yaml_config.get(key, default))

        def typed(key: str, cast: Callable, default):
            raw = get_value(key)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except ValueError as exc:
                raise ValueError(f"Invalid value for {key}: {raw!r}") from exc

        def optional_float(raw: str) -> Optional[float]:
            return None if raw.lower() in {"none", "off"} else float(raw)

        def flag(raw: str) -> bool:
            lowered = raw.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
            raise ValueError(raw)

        defaults = cls()
        return cls(
            max_retries=typed("max_retries", int, defaults.max_retries),
            base_delay_seconds=typed("base_delay_seconds", float, defaults.base_delay_seconds),
            max_delay_seconds=typed("max_delay_seconds", float, defaults.max_delay_seconds),
            per_call_timeout_seconds=typed(
                "per_call_timeout_seconds", optional_float, defaults.per_call_timeout_seconds
            ),
            circuit_failure_threshold=typed(
                "circuit_failure_threshold", int, defaults.circuit_failure_threshold
            ),
            circuit_window_seconds=typed("circuit_window_seconds", float, defaults.circuit_window_seconds),
            circuit_cooldown_seconds=typed(
                "circuit_cooldown_seconds", float, defaults.circuit_cooldown_seconds
            ),
            soft_deadline_seconds=typed("soft_deadline_seconds", float, defaults.soft_deadline_seconds),
            short_sleeve_min_temp_c=typed("short_sleeve_min_temp_c", float, defaults.short_sleeve_min_temp_c),
            heavy_outerwear_max_temp_c=typed(
                "heavy_outerwear_max_temp_c", float, defaults.heavy_outerwear_max_temp_c
            ),
            outerwear_min_temp_c=typed("outerwear_min_temp_c", float, defaults.outerwear_min_temp_c),
            formality_tolerance=typed("formality_tolerance", int, defaults.formality_tolerance),
            note_style=str(get_value("note_style", defaults.note_style)),
            neglect_days=typed("neglect_days", int, defaults.neglect_days),
            variety_seed=typed("variety_seed", int, defaults.variety_seed),
            variety_weight=typed("variety_weight", float, defaults.variety_weight),
            learning_rate=typed("learning_rate", float, defaults.learning_rate),
            low_rating_threshold=typed("low_rating_threshold", float, defaults.low_rating_threshold),
            disliked_pattern_occurrences=typed(
                "disliked_pattern_occurrences", int, defaults.disliked_pattern_occurrences
            ),
            disliked_decay_cycles=typed("disliked_decay_cycles", int, defaults.disliked_decay_cycles),
            weather_cache_ttl_seconds=typed(
                "weather_cache_ttl_seconds", float, defaults.weather_cache_ttl_seconds
            ),
            wardrobe_cache_ttl_seconds=typed(
                "wardrobe_cache_ttl_seconds", float, defaults.wardrobe_cache_ttl_seconds
            ),
            profile_cache_ttl_seconds=typed(
                "profile_cache_ttl_seconds", float, defaults.profile_cache_ttl_seconds
            ),
            session_time=str(get_value("session_time", defaults.session_time)),
            session_weekends=typed("session_weekends", flag, defaults.session_weekends),
            weather_api_key=get_value("openweather_api_key"),
            calendar_project_id=get_value("calendar_project_id"),
            calendar_id=get_value("calendar_id"),
            google_credentials_path=get_value("google_credentials_path"),
            default_location=get_value("default_location"),
            wardrobe_db_path=str(get_value("wardrobe_db_path", DEFAULT_WARDROBE_DB_PATH)),
            profile_store_path=str(get_value("profile_store_path", DEFAULT_PROFILE_STORE_PATH)),
            environment=env_name,
        )

    def resilience_options(self):
        from resilience.options import ResilienceOptions

        return ResilienceOptions(
            max_retries=self.max_retries,
            base_delay=self.base_delay_seconds,
            max_delay=self.max_delay_seconds,
            per_call_timeout=self.per_call_timeout_seconds,
            circuit_failure_threshold=self.circuit_failure_threshold,
            circuit_window=self.circuit_window_seconds,
            circuit_cooldown=self.circuit_cooldown_seconds,
        )

    def engine_settings(self):
        from logic.recommendation_engine import EngineSettings

        return EngineSettings(
            short_sleeve_min_temp=self.short_sleeve_min_temp_c,
            heavy_outerwear_max_temp=self.heavy_outerwear_max_temp_c,
            outerwear_min_temp=self.outerwear_min_temp_c,
            formality_tolerance=self.formality_tolerance,
            note_style=NoteStyle.parse(self.note_style),
            neglect_days=self.neglect_days,
            variety_seed=self.variety_seed,
            variety_weight=self.variety_weight,
        )

    def session_clock(self) -> time:
        return time.fromisoformat(self.session_time)

    def learner_settings(self):
        from logic.feedback_learner import LearnerSettings

        return LearnerSettings(
            learning_rate=self.learning_rate,
            low_rating_threshold=self.low_rating_threshold,
            disliked_pattern_occurrences=self.disliked_pattern_occurrences,
            disliked_decay_cycles=self.disliked_decay_cycles,
        )

    @staticmethod
    def _load_yaml_config(path: Path) -> dict:
        """Parse a minimal YAML/INI-style config without external dependencies."""

        config: dict[str, str] = {}
        for line in path.read_text().splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if ":" not in stripped:
                continue
            key, raw_value = stripped.split(":", 1)
            value = raw_value.strip()
            if (value.startswith("\"") and value.endswith("\"")) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            config[key.strip()] = value
        return config
