"""Find likely duplicate entities for a user.

Fetches entities per type from the entity store and scores pairs with the
match scorer. By default every unordered pair within a type is scored
(O(n^2) per type). With blocking enabled, only pairs sharing a canopy key
are scored; see ``_blocking_keys``.
"""

import logging
from collections import defaultdict
from collections.abc import Iterator, Sequence

from recall_kg.resolve.base import EntityStore
from recall_kg.resolve.models import DEFAULT_ENTITY_TYPES, EntityMatch, ScoredEntity
from recall_kg.resolve.normalize import extract_email, name_tokens
from recall_kg.resolve.scorer import calculate_match_score
from recall_kg.resolve.variants import NicknameTable, acronym

logger = logging.getLogger(__name__)

# Max entities fetched per type in one scan
DEFAULT_SCAN_LIMIT = 1000

DEFAULT_MIN_CONFIDENCE = 0.7


async def find_potential_duplicates(
    entity_store: EntityStore,
    user_id: str,
    entity_type: str | None = None,
    *,
    entity_types: Sequence[str] = DEFAULT_ENTITY_TYPES,
    limit: int = DEFAULT_SCAN_LIMIT,
    use_blocking: bool = False,
    nicknames: NicknameTable | None = None,
) -> list[EntityMatch]:
    """Find pairs of a user's entities that likely refer to the same thing.

    Args:
        entity_store: Where the user's entities live
        user_id: Owner of the entities
        entity_type: Only scan this type (default: every type in entity_types)
        entity_types: Types scanned when entity_type is not given
        limit: Max entities fetched per type
        use_blocking: Score only pairs sharing a blocking key
        nicknames: Nickname table for person names (default: bundled table)

    Returns:
        Matches across all scanned types, highest confidence first
    """
    types_to_check = [entity_type] if entity_type else list(entity_types)
    nicknames = nicknames or NicknameTable.default()

    logger.info(f"Finding potential duplicates for user {user_id} ({', '.join(types_to_check)})")

    matches: list[EntityMatch] = []
    for etype in types_to_check:
        try:
            entities = await entity_store.list_entities_by_type(user_id, etype, limit)
        except Exception as e:
            logger.warning(f"Skipping {etype} entities, fetch failed: {e}")
            continue

        # Scan ids are positional and only meaningful within this run
        scored = [
            ScoredEntity(id=f"{etype}-{idx}-{e.normalized or e.value}", entity=e)
            for idx, e in enumerate(entities)
        ]
        if len(scored) < 2:
            continue

        pairs = _candidate_pairs(scored, nicknames) if use_blocking else _all_pairs(scored)
        logger.info(
            f"Checking {len(scored)} {etype} entities for duplicates"
            + (" (blocked)" if use_blocking else "")
        )

        type_matches = 0
        for first, second in pairs:
            match = calculate_match_score(first, second, nicknames)
            if match is not None:
                matches.append(match)
                type_matches += 1
        if type_matches:
            logger.debug(f"  {etype}: {type_matches} candidate duplicates")

    matches.sort(key=lambda m: m.confidence, reverse=True)

    logger.info(f"Found {len(matches)} potential duplicates")
    return matches


async def get_suggested_merges(
    entity_store: EntityStore,
    user_id: str,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    **kwargs,
) -> list[EntityMatch]:
    """Duplicates at or above a confidence floor, highest first.

    Extra keyword arguments are passed to find_potential_duplicates.
    """
    matches = await find_potential_duplicates(entity_store, user_id, **kwargs)
    return [m for m in matches if m.confidence >= min_confidence]


def _all_pairs(entities: list[ScoredEntity]) -> Iterator[tuple[ScoredEntity, ScoredEntity]]:
    for i in range(len(entities)):
        for j in range(i + 1, len(entities)):
            yield entities[i], entities[j]


def _blocking_keys(entity: ScoredEntity, nicknames: NicknameTable) -> set[str]:
    """Canopy keys: entities sharing any key are compared.

    Keys mirror the scoring rules so that blocking keeps the pairs that
    can clear the match floor: shared initial (similar names), shared
    surname, shared email, acronym/single-token equality (abbreviations)
    and shared nickname-canonical first name.
    """
    e = entity.entity
    tokens = name_tokens(e.value)
    keys: set[str] = set()
    if not tokens:
        return keys

    keys.add(f"initial:{tokens[0][0]}")
    if len(tokens) > 1:
        keys.add(f"acronym:{acronym(e.value)}")
        if len(tokens[-1]) > 2:
            keys.add(f"surname:{tokens[-1]}")
    else:
        keys.add(f"acronym:{tokens[0]}")

    email = extract_email(e.value) or extract_email(e.context)
    if email:
        keys.add(f"email:{email}")

    if e.entity_type == "person":
        for canonical in nicknames.canonical_forms(tokens[0]):
            keys.add(f"first:{canonical}")
    return keys


def _candidate_pairs(
    entities: list[ScoredEntity], nicknames: NicknameTable
) -> Iterator[tuple[ScoredEntity, ScoredEntity]]:
    """Pairs sharing at least one blocking key, each yielded once, in scan order."""
    blocks: dict[str, list[int]] = defaultdict(list)
    for idx, entity in enumerate(entities):
        for key in _blocking_keys(entity, nicknames):
            blocks[key].append(idx)

    pairs: set[tuple[int, int]] = set()
    for members in blocks.values():
        for a in range(len(members)):
            for b in range(a + 1, len(members)):
                pairs.add((members[a], members[b]))

    for i, j in sorted(pairs):
        yield entities[i], entities[j]
