"""Merge suggestions and merge execution.

Every candidate merge is recorded as a MergeSuggestion. Suggestions at or
above the auto-apply threshold are merged immediately; the rest wait for a
human to accept or reject them.

A merge keeps entity1 and deletes every record of entity2. Relationships
that reference entity2's value are left as they are.

Merge execution is serialized per (user, entity type) within one
MergeService instance. Separate processes sharing a store still need
their own coordination.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Literal

from recall_kg.resolve.base import EntityStore, SuggestionStore
from recall_kg.resolve.models import (
    EntityMatch,
    EntityRef,
    MergeResult,
    MergeStats,
    MergeSuggestion,
    SuggestionStatus,
)
from recall_kg.resolve.normalize import match_key

logger = logging.getLogger(__name__)

PairKey = tuple[str, frozenset[str]]

# Suggestions at or above this confidence are merged without review
AUTO_APPLY_THRESHOLD = 0.95

AUTO_APPLIED_BY = "system_auto"

MAX_LIST_LIMIT = 200

ReviewDecision = Literal["accepted", "rejected"]


class MergeExecutionError(RuntimeError):
    """A merge that was supposed to run reported failure."""

    def __init__(self, message: str, suggestion_id: str | None = None) -> None:
        super().__init__(message)
        self.suggestion_id = suggestion_id


class SuggestionRollbackError(RuntimeError):
    """Reverting an auto-applied suggestion after a failed merge also failed.

    The suggestion is left marked auto_applied although no merge happened.
    """

    def __init__(self, suggestion_id: str, message: str) -> None:
        super().__init__(message)
        self.suggestion_id = suggestion_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _pair_key(entity_type: str, value1: str, value2: str) -> PairKey:
    """Identity of a suggested pair, independent of which side is kept."""
    return entity_type, frozenset((match_key(value1), match_key(value2)))


class MergeService:
    """Creates, reviews and applies merge suggestions for a user's entities."""

    def __init__(
        self,
        entity_store: EntityStore,
        suggestion_store: SuggestionStore,
        auto_apply_threshold: float = AUTO_APPLY_THRESHOLD,
    ) -> None:
        if not 0.0 <= auto_apply_threshold <= 1.0:
            raise ValueError(f"auto_apply_threshold must be in [0, 1], got {auto_apply_threshold}")
        self.entity_store = entity_store
        self.suggestion_store = suggestion_store
        self.auto_apply_threshold = auto_apply_threshold
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[str, str], int] = {}

    @asynccontextmanager
    async def _type_lock(self, user_id: str, entity_type: str):
        """Hold the (user, type) merge lock, dropping it once nobody uses it."""
        key = (user_id, entity_type)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    async def create_merge_suggestion(
        self,
        user_id: str,
        entity1_type: str,
        entity1_value: str,
        entity2_type: str,
        entity2_value: str,
        confidence: float,
        match_reason: str,
    ) -> MergeSuggestion:
        """Record a merge suggestion, applying it at once if confident enough.

        entity1 is kept; entity2 is merged into it and deleted.

        Returns:
            The stored suggestion, ``auto_applied`` or ``pending``

        Raises:
            MergeExecutionError: Auto-apply ran but the merge failed. The
                suggestion has been reverted to pending.
            SuggestionRollbackError: The revert after a failed merge failed
                too; the suggestion is still marked auto_applied.
        """
        auto_apply = confidence >= self.auto_apply_threshold
        now = _utcnow()

        logger.info(
            f"Creating merge suggestion: {entity2_value} -> {entity1_value} "
            f"(confidence: {confidence:.3f}, auto-apply: {auto_apply})"
        )

        suggestion = await self.suggestion_store.insert(MergeSuggestion(
            user_id=user_id,
            entity1_type=entity1_type,
            entity1_value=entity1_value,
            entity2_type=entity2_type,
            entity2_value=entity2_value,
            confidence=confidence,
            match_reason=match_reason,
            status="auto_applied" if auto_apply else "pending",
            applied_at=now if auto_apply else None,
            applied_by=AUTO_APPLIED_BY if auto_apply else None,
        ))

        if not auto_apply:
            return suggestion

        try:
            await self._apply(suggestion)
        except Exception as e:
            logger.error(f"Failed to auto-apply merge {suggestion.id}: {e}")
            try:
                await self.suggestion_store.update_status(suggestion.id, "pending", None, None)
            except Exception as rollback_error:
                logger.exception(
                    f"Could not revert suggestion {suggestion.id} to pending; "
                    f"it stays auto_applied without a merge"
                )
                raise SuggestionRollbackError(
                    suggestion.id,
                    f"Merge failed ({e}) and reverting suggestion {suggestion.id} failed: {rollback_error}",
                ) from e
            raise

        logger.info(f"Auto-applied merge: {entity2_value} -> {entity1_value}")
        return suggestion

    async def create_suggestions_from_matches(
        self, user_id: str, matches: list[EntityMatch]
    ) -> list[MergeSuggestion]:
        """Record one suggestion per match (entity1 kept, entity2 merged).

        A failed auto-apply is logged and the match stays a pending
        suggestion; the remaining matches are still processed. A pair
        already suggested for the user, in either order and whatever its
        status, is skipped, so a rejected pair is never suggested again.
        """
        seen = {
            _pair_key(s.entity1_type, s.entity1_value, s.entity2_value)
            for s in await self.suggestion_store.list_for_user(user_id)
        }
        suggestions = []
        for match in matches:
            key = _pair_key(match.entity_type, match.entity1.value, match.entity2.value)
            if key in seen:
                logger.debug(f"Already suggested: {match.entity2_value} -> {match.entity1_value}")
                continue
            seen.add(key)
            try:
                suggestion = await self.create_merge_suggestion(
                    user_id,
                    match.entity1.entity_type,
                    match.entity1.value,
                    match.entity2.entity_type,
                    match.entity2.value,
                    match.confidence,
                    match.reason,
                )
            except MergeExecutionError as e:
                logger.warning(f"Kept {match.entity2_value!r} pending: {e}")
                suggestion = await self.suggestion_store.get(e.suggestion_id) if e.suggestion_id else None
                if suggestion is None:
                    continue
            suggestions.append(suggestion)
        return suggestions

    async def list_suggestions(
        self,
        user_id: str,
        status: SuggestionStatus | Literal["all"] = "pending",
        limit: int = 50,
        offset: int = 0,
    ) -> list[MergeSuggestion]:
        """A user's suggestions, most confident (then newest) first."""
        suggestions = await self.suggestion_store.list_for_user(
            user_id, None if status == "all" else status
        )
        suggestions.sort(key=lambda s: (s.confidence, s.created_at), reverse=True)
        limit = max(0, min(limit, MAX_LIST_LIMIT))
        return suggestions[offset:offset + limit]

    async def review_suggestion(
        self,
        user_id: str,
        suggestion_id: str,
        decision: ReviewDecision,
        reviewer: str | None = None,
    ) -> MergeSuggestion:
        """Accept or reject a pending suggestion.

        Accepting executes the merge before the status changes, so a failed
        merge leaves the suggestion pending.

        Raises:
            KeyError: Unknown suggestion, or owned by another user
            ValueError: Invalid decision, or the suggestion is not pending
            MergeExecutionError: The accepted merge failed
        """
        if decision not in ("accepted", "rejected"):
            raise ValueError(f"Invalid review decision: {decision!r}. Choose from: accepted, rejected")

        suggestion = await self.suggestion_store.get(suggestion_id)
        if suggestion is None or suggestion.user_id != user_id:
            raise KeyError(suggestion_id)
        if suggestion.status != "pending":
            raise ValueError(
                f"Suggestion {suggestion_id} is {suggestion.status}; only pending suggestions can be reviewed"
            )

        if decision == "rejected":
            logger.info(f"Rejected merge suggestion {suggestion_id}")
            return await self.suggestion_store.update_status(suggestion_id, "rejected", None, None)

        await self._apply(suggestion)
        logger.info(f"Accepted merge suggestion {suggestion_id}")
        return await self.suggestion_store.update_status(
            suggestion_id, "accepted", _utcnow(), reviewer or user_id
        )

    async def get_merge_stats(self, user_id: str) -> MergeStats:
        """Count a user's suggestions by status."""
        suggestions = await self.suggestion_store.list_for_user(user_id)
        total = len(suggestions)

        counts: dict[str, int] = {}
        for s in suggestions:
            counts[s.status] = counts.get(s.status, 0) + 1

        auto_applied = counts.get("auto_applied", 0)
        return MergeStats(
            total_suggestions=total,
            pending_suggestions=counts.get("pending", 0),
            auto_applied=auto_applied,
            manually_accepted=counts.get("accepted", 0),
            rejected=counts.get("rejected", 0),
            auto_apply_rate=auto_applied / total if total else 0.0,
        )

    # ------------------------------------------------------------------
    # Merge execution
    # ------------------------------------------------------------------

    async def _apply(self, suggestion: MergeSuggestion) -> None:
        logger.info(
            f"Applying merge: {suggestion.merge_ref} -> {suggestion.keep_ref} "
            f"(suggestion: {suggestion.id})"
        )
        result = await self.merge_entities(
            suggestion.user_id, suggestion.keep_ref, suggestion.merge_ref
        )
        if not result.success:
            raise MergeExecutionError(f"Merge failed: {result.message}", suggestion.id)
        logger.info(f"Merge completed: {result.message}")

    async def merge_entities(
        self,
        user_id: str,
        keep: EntityRef | str,
        merge: EntityRef | str,
    ) -> MergeResult:
        """Merge one entity into another by deleting the duplicate.

        Args:
            user_id: Owner of both entities
            keep: Entity to keep (EntityRef, "type:value" or a scan id)
            merge: Entity to delete, same forms

        Returns:
            MergeResult; expected failures (bad ids, type mismatch,
            nothing to delete) come back with success=False. Store errors
            propagate.
        """
        keep_ref = EntityRef.parse(keep) if isinstance(keep, str) else keep
        merge_ref = EntityRef.parse(merge) if isinstance(merge, str) else merge

        if keep_ref is None or merge_ref is None:
            return MergeResult(success=False, message="Invalid entity IDs")
        if keep_ref.entity_type != merge_ref.entity_type:
            return MergeResult(success=False, message="Cannot merge entities of different types")
        # Deleting the duplicate would delete the kept entity too
        if match_key(keep_ref.value) == match_key(merge_ref.value):
            return MergeResult(success=False, message="Cannot merge an entity into itself")

        logger.info(f"Merging {merge_ref} into {keep_ref}")

        async with self._type_lock(user_id, merge_ref.entity_type):
            deleted = await self.entity_store.delete_entities_matching(
                user_id, merge_ref.entity_type, merge_ref.value
            )

        if deleted == 0:
            return MergeResult(success=False, message="Entity to merge not found")

        logger.info(f"Deleted {deleted} merged {merge_ref.entity_type} records")
        return MergeResult(
            success=True,
            message=f"Merged {deleted} entities into {keep_ref}",
            deleted=deleted,
        )
