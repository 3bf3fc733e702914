"""Configuration management for recall-kg using pydantic-settings.

This module provides the RecallConfig class for managing application
settings from environment variables and .env files. All configuration is
type-safe and validated using Pydantic models.

Settings priority (highest to lowest):
1. CLI flags (applied after RecallConfig creation)
2. Environment variables (RECALL_* prefix)
3. .env file
4. recall.yaml project config
5. Default values
"""

import logging
from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from recall_kg.relationships.models import ScoringConfig
from recall_kg.resolve.models import DEFAULT_ENTITY_TYPES
from recall_kg.resolve.variants import NicknameTable

logger = logging.getLogger(__name__)

# Map recall.yaml keys to RecallConfig field names
_YAML_TO_FIELD = {
    "data": "data_path",
    "nicknames": "nicknames_path",
    "auto_apply_threshold": "auto_apply_threshold",
    "min_confidence": "min_suggestion_confidence",
    "scan_limit": "scan_limit",
    "entity_types": "entity_types",
    "blocking": "use_blocking",
    "scoring": None,  # Nested section, flattened below
}

_SCORING_FIELDS = set(ScoringConfig.model_fields)


class _ProjectYamlSource(PydanticBaseSettingsSource):
    """Read project config from recall.yaml (lower priority than env vars)."""

    def get_field_value(self, field, field_name):  # type: ignore[override]
        return None, field_name, False

    def __call__(self) -> dict:
        project_file = Path("recall.yaml")
        if not project_file.exists():
            return {}

        raw = yaml.safe_load(project_file.read_text()) or {}

        result: dict = {}
        for yaml_key, field_name in _YAML_TO_FIELD.items():
            if yaml_key not in raw:
                continue
            if field_name is None:
                for key, value in (raw[yaml_key] or {}).items():
                    if key in _SCORING_FIELDS:
                        result[key] = value
                    else:
                        logger.warning(f"Ignoring unknown scoring setting in recall.yaml: {key}")
                continue
            result[field_name] = raw[yaml_key]
        return result


class RecallConfig(BaseSettings):
    """Configuration settings for recall-kg loaded from environment variables.

    Settings are loaded from:
    1. Environment variables (with RECALL_ prefix)
    2. .env file in current directory
    3. recall.yaml in current directory
    4. Default values defined in field definitions

    All environment variables should be prefixed with RECALL_ (e.g.,
    RECALL_AUTO_APPLY_THRESHOLD). Empty string values in environment
    variables are treated as unset.

    Example:
        >>> config = RecallConfig()
        >>> scorer_config = config.scoring_config()
        >>> print(config.data_path)
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RECALL_",
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _ProjectYamlSource(settings_cls),
            file_secret_settings,
        )

    data_path: Path = Field(
        default=Path("recall_data.yaml"),
        description="Snapshot file with users' entities, relationships and merge suggestions"
    )

    nicknames_path: Path | None = Field(
        default=None,
        description="YAML nickname table replacing the bundled one"
    )

    auto_apply_threshold: float = Field(
        default=0.95,
        description="Merge suggestions at or above this confidence are applied without review"
    )

    min_suggestion_confidence: float = Field(
        default=0.7,
        description="Duplicates below this confidence are not turned into suggestions"
    )

    scan_limit: int = Field(
        default=1000,
        gt=0,
        description="Max entities fetched per type when scanning for duplicates"
    )

    entity_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ENTITY_TYPES),
        description="Entity types scanned for duplicates"
    )

    use_blocking: bool = Field(
        default=False,
        description="Only score entity pairs sharing a blocking key (faster on large sets)"
    )

    # Relationship scoring, mirrored into ScoringConfig
    email_weight: float = 0.3
    calendar_weight: float = 0.3
    recency_weight: float = 0.25
    sentiment_weight: float = 0.15
    recency_half_life_days: float = 30.0
    max_email_frequency: float = 20.0
    max_calendar_frequency: float = 10.0
    top_relationships_fetch_limit: int = 5000
    batch_fetch_limit: int = 10000

    @field_validator("auto_apply_threshold", "min_suggestion_confidence")
    @classmethod
    def check_unit_interval(cls, v: float) -> float:
        """Thresholds are confidences and must lie in [0, 1]."""
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"must be between 0 and 1, got {v}")
        return v

    @field_validator("entity_types", mode="before")
    @classmethod
    def split_entity_types(cls, v: str | list[str]) -> list[str]:
        """Accept a comma-separated string (e.g. ``entity_types: person, company`` in recall.yaml).

        From the environment, pass a JSON list: RECALL_ENTITY_TYPES='["person"]'.
        """
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        return v

    def scoring_config(self) -> ScoringConfig:
        """Relationship scoring settings as a validated ScoringConfig.

        Raises:
            ValueError: If the weights do not sum to 1
        """
        return ScoringConfig(
            **{name: getattr(self, name) for name in _SCORING_FIELDS}
        )

    def nickname_table(self) -> NicknameTable:
        """The configured nickname table, or the bundled default."""
        if self.nicknames_path:
            return NicknameTable.from_yaml(self.nicknames_path)
        return NicknameTable.default()
