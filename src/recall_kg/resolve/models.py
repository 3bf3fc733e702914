"""Pydantic models for entity resolution.

Three layers:
  1. Entities as produced by upstream extraction (read-only here)
  2. Transient match candidates from the duplicate finder
  3. Persisted merge suggestions and their review lifecycle
"""

import re
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MatchFactor = Literal[
    "same_email",
    "similar_name",
    "same_company",
    "same_domain",
    "nickname_match",
    "abbreviation_match",
    "co_occurrence",
]

SuggestionStatus = Literal["pending", "auto_applied", "accepted", "rejected"]

DEFAULT_ENTITY_TYPES = ("person", "company", "project", "topic", "location")

# type-index-value, as assigned by the duplicate scan
_SCAN_ID_RE = re.compile(r"^([^-:]+)-\d+-(.*)$", re.DOTALL)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Entities
# ============================================================================


class Entity(BaseModel):
    """An entity extracted upstream from email, calendar or documents."""

    model_config = ConfigDict(frozen=True)

    entity_type: str  # person, company, project, topic, location, ...
    value: str
    normalized: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    source: str = ""  # email, calendar, document
    source_id: str = ""
    context: str | None = None  # Surrounding text, e.g. "Bob <bob@acme.com>"
    extracted_at: datetime | None = None


class EntityRef(BaseModel):
    """Reference to an entity by type and (normalized) value.

    Merges address entities through this pair instead of a run-local
    positional identifier.
    """

    model_config = ConfigDict(frozen=True)

    entity_type: str
    value: str

    @property
    def key(self) -> str:
        return f"{self.entity_type}:{self.value}"

    def __str__(self) -> str:
        return self.key

    @classmethod
    def parse(cls, text: str) -> "EntityRef | None":
        """Parse the scan id ``type-index-value`` or ``type:value``.

        The scan id form is tried first, so values containing ":" survive.
        Returns None when the text carries no usable type and value.
        """
        if not text:
            return None
        scan_id = _SCAN_ID_RE.match(text)
        if scan_id:
            entity_type, value = scan_id.groups()
        elif ":" in text:
            entity_type, _, value = text.partition(":")
        else:
            return None
        if not entity_type or not value:
            return None
        return cls(entity_type=entity_type, value=value)


class ScoredEntity(BaseModel):
    """An entity paired with the identifier assigned for one scan."""

    id: str
    entity: Entity

    @property
    def ref(self) -> EntityRef:
        return EntityRef(
            entity_type=self.entity.entity_type,
            value=self.entity.normalized or self.entity.value,
        )


# ============================================================================
# Match candidates
# ============================================================================


class EntityMatch(BaseModel):
    """Two entities that are likely the same real-world thing."""

    entity1_id: str
    entity2_id: str
    entity1_value: str
    entity2_value: str
    entity_type: str
    confidence: float = Field(ge=0.0, le=1.0)
    match_factors: list[MatchFactor] = Field(default_factory=list)
    entity1: EntityRef
    entity2: EntityRef

    @property
    def reason(self) -> str:
        """Human-readable explanation built from the match factors."""
        return ", ".join(f.replace("_", " ") for f in self.match_factors)


# ============================================================================
# Merge suggestions
# ============================================================================


class MergeSuggestion(BaseModel):
    """A proposed merge of entity2 into entity1, owned by one user."""

    id: str = ""  # Assigned by the suggestion store on insert
    user_id: str
    entity1_type: str
    entity1_value: str  # Kept
    entity2_type: str
    entity2_value: str  # Merged into entity1 and deleted
    confidence: float = Field(ge=0.0, le=1.0)
    match_reason: str = ""
    status: SuggestionStatus = "pending"
    applied_at: datetime | None = None
    applied_by: str | None = None  # "system_auto" or the reviewing user
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def keep_ref(self) -> EntityRef:
        return EntityRef(entity_type=self.entity1_type, value=self.entity1_value)

    @property
    def merge_ref(self) -> EntityRef:
        return EntityRef(entity_type=self.entity2_type, value=self.entity2_value)


class MergeResult(BaseModel):
    """Outcome of a merge execution."""

    success: bool
    message: str
    deleted: int = 0


class MergeStats(BaseModel):
    """Per-user aggregate of merge suggestions by status."""

    total_suggestions: int = 0
    pending_suggestions: int = 0
    auto_applied: int = 0
    manually_accepted: int = 0
    rejected: int = 0
    auto_apply_rate: float = 0.0
