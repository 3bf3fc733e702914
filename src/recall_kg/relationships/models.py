"""Pydantic models for relationship strength scoring."""

import math
from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class InferredRelationship(BaseModel):
    """A relationship between two entities, inferred upstream."""

    from_entity_type: str
    from_entity_value: str
    to_entity_type: str
    to_entity_value: str
    relationship_type: str  # WORKS_WITH, MANAGES, ATTENDED, ...
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    evidence: str | None = None
    source_id: str = ""  # Message or calendar event the relationship came from
    inferred_at: datetime
    status: str = "active"
    start_date: datetime | None = None
    end_date: datetime | None = None

    @field_validator("inferred_at", "start_date", "end_date", mode="after")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        """Naive timestamps are taken to be UTC."""
        return _as_utc(v)


class RelationshipFactors(BaseModel):
    """Breakdown of the inputs to a strength score."""

    email_frequency: float = 0.0  # Emails per month
    calendar_frequency: float = 0.0  # Calendar events per month
    recency: float = math.inf  # Days since last interaction
    sentiment: float = 0.5  # Mean relationship confidence, 0-1


class RelationshipScore(BaseModel):
    """Strength of a user's relationship with one entity."""

    entity_id: str
    entity_type: str
    entity_value: str
    strength: float = Field(ge=0.0, le=1.0)
    last_interaction: datetime = EPOCH
    interaction_count: int = 0
    factors: RelationshipFactors = Field(default_factory=RelationshipFactors)


class ScoringConfig(BaseModel):
    """Weights and normalization constants for strength scoring."""

    email_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    calendar_weight: float = Field(default=0.3, ge=0.0, le=1.0)
    recency_weight: float = Field(default=0.25, ge=0.0, le=1.0)
    sentiment_weight: float = Field(default=0.15, ge=0.0, le=1.0)
    recency_half_life_days: float = Field(default=30.0, gt=0.0)
    max_email_frequency: float = Field(default=20.0, gt=0.0)  # per month
    max_calendar_frequency: float = Field(default=10.0, gt=0.0)  # per month
    top_relationships_fetch_limit: int = Field(default=5000, gt=0)
    batch_fetch_limit: int = Field(default=10000, gt=0)

    @model_validator(mode="after")
    def _weights_sum_to_one(self) -> "ScoringConfig":
        total = self.email_weight + self.calendar_weight + self.recency_weight + self.sentiment_weight
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.4f}")
        return self


class RelationshipScoreStats(BaseModel):
    """Distribution of a user's relationship strengths."""

    total_entities: int = 0
    avg_strength: float = 0.0
    strong_relationships: int = 0  # strength > 0.7
    medium_relationships: int = 0  # 0.3 <= strength <= 0.7
    weak_relationships: int = 0  # strength < 0.3
    top_entity_types: dict[str, int] = Field(default_factory=dict)
