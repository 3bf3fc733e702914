"""Heuristic match scoring between two entities of the same type.

Each rule adds to a running score and, except for the surname boost,
records a match factor explaining itself. Scores are clamped to [0, 1].
"""

import logging

from recall_kg.resolve.models import EntityMatch, MatchFactor, ScoredEntity
from recall_kg.resolve.normalize import (
    extract_domain,
    extract_email,
    is_freemail,
    normalize_name,
)
from recall_kg.resolve.similarity import jaro_winkler_similarity
from recall_kg.resolve.variants import NicknameTable, are_abbreviation_variants

logger = logging.getLogger(__name__)

# Below this a candidate is noise, not a suggestion
MIN_MATCH_SCORE = 0.5

SAME_EMAIL_WEIGHT = 0.9
SAME_DOMAIN_WEIGHT = 0.2
NICKNAME_WEIGHT = 0.4
SURNAME_WEIGHT = 0.3
MIN_SURNAME_LENGTH = 3
PERSON_NAME_THRESHOLD = 0.85
PERSON_NAME_WEIGHT = 0.5

ABBREVIATION_WEIGHT = 0.7
COMPANY_NAME_THRESHOLD = 0.8
COMPANY_NAME_WEIGHT = 0.6

GENERIC_NAME_THRESHOLD = 0.85
GENERIC_NAME_WEIGHT = 0.5


def calculate_match_score(
    entity1: ScoredEntity,
    entity2: ScoredEntity,
    nicknames: NicknameTable | None = None,
) -> EntityMatch | None:
    """Score how likely two entities are the same real-world thing.

    Args:
        entity1: First entity with its scan identifier
        entity2: Second entity with its scan identifier
        nicknames: Nickname table for person names (default: bundled table)

    Returns:
        EntityMatch, or None if the pair is not comparable (different types,
        same identity, identical normalized values) or scores below
        MIN_MATCH_SCORE with no explaining factor.
    """
    e1, e2 = entity1.entity, entity2.entity
    if e1.entity_type != e2.entity_type:
        return None
    if entity1.id == entity2.id:
        return None

    n1 = normalize_name(e1.value)
    n2 = normalize_name(e2.value)
    # Already the same entity, nothing to surface
    if n1 == n2:
        return None

    factors: list[MatchFactor] = []
    if e1.entity_type == "person":
        score = _score_person(entity1, entity2, n1, n2, factors, nicknames or NicknameTable.default())
    elif e1.entity_type == "company":
        score = _score_company(e1.value, e2.value, n1, n2, factors)
    else:
        score = _score_generic(n1, n2, factors)

    score = max(0.0, min(1.0, score))

    if score < MIN_MATCH_SCORE or not factors:
        return None

    logger.debug(f"Match {e1.value!r} ~ {e2.value!r}: {score:.3f} ({', '.join(factors)})")

    return EntityMatch(
        entity1_id=entity1.id,
        entity2_id=entity2.id,
        entity1_value=e1.value,
        entity2_value=e2.value,
        entity_type=e1.entity_type,
        confidence=score,
        match_factors=factors,
        entity1=entity1.ref,
        entity2=entity2.ref,
    )


def _score_person(
    entity1: ScoredEntity,
    entity2: ScoredEntity,
    n1: str,
    n2: str,
    factors: list[MatchFactor],
    nicknames: NicknameTable,
) -> float:
    e1, e2 = entity1.entity, entity2.entity
    score = 0.0

    email1 = extract_email(e1.value) or extract_email(e1.context)
    email2 = extract_email(e2.value) or extract_email(e2.context)

    if email1 and email2 and email1 == email2:
        factors.append("same_email")
        score += SAME_EMAIL_WEIGHT
    elif email1 and email2:
        domain1 = extract_domain(email1)
        domain2 = extract_domain(email2)
        if domain1 and domain1 == domain2 and not is_freemail(domain1):
            factors.append("same_domain")
            score += SAME_DOMAIN_WEIGHT

    if nicknames.are_variants(e1.value, e2.value):
        factors.append("nickname_match")
        score += NICKNAME_WEIGHT

    similarity = jaro_winkler_similarity(n1, n2)
    if similarity > PERSON_NAME_THRESHOLD:
        factors.append("similar_name")
        score += similarity * PERSON_NAME_WEIGHT

    # Shared surname boosts the score but is not enough to explain a match
    parts1 = n1.split(" ")
    parts2 = n2.split(" ")
    if len(parts1) > 1 and len(parts2) > 1:
        if parts1[-1] == parts2[-1] and len(parts1[-1]) >= MIN_SURNAME_LENGTH:
            score += SURNAME_WEIGHT

    return score


def _score_company(
    value1: str, value2: str, n1: str, n2: str, factors: list[MatchFactor]
) -> float:
    score = 0.0

    if are_abbreviation_variants(value1, value2):
        factors.append("abbreviation_match")
        score += ABBREVIATION_WEIGHT

    similarity = jaro_winkler_similarity(n1, n2)
    if similarity > COMPANY_NAME_THRESHOLD:
        factors.append("similar_name")
        score += similarity * COMPANY_NAME_WEIGHT

    return score


def _score_generic(n1: str, n2: str, factors: list[MatchFactor]) -> float:
    similarity = jaro_winkler_similarity(n1, n2)
    if similarity > GENERIC_NAME_THRESHOLD:
        factors.append("similar_name")
        return similarity * GENERIC_NAME_WEIGHT
    return 0.0
