"""Relationship strength scoring from decay-weighted interaction history."""

from recall_kg.relationships.models import (
    InferredRelationship,
    RelationshipScore,
    RelationshipScoreStats,
    ScoringConfig,
)
from recall_kg.relationships.scoring import RelationshipScorer

__all__ = [
    "InferredRelationship",
    "RelationshipScore",
    "RelationshipScoreStats",
    "RelationshipScorer",
    "ScoringConfig",
]
