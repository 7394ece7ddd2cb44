"""
Match lifecycle: pending -> locked -> in_progress -> completed.

Locks are lock documents acquired by compare-and-swap, one per match. Only
the holder may start, complete or abandon (unlock) the match. Completing a
match advances the winner, checks whether the category's repechage is due and
releases the lock, in that order.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ijf_bracket.errors import (
    BracketError,
    InputValidationError,
    InvalidTransitionError,
    LockConflictError,
)
from ijf_bracket.models.bracket import LockRecord, utcnow
from ijf_bracket.models.match import Match, MatchStatus
from ijf_bracket.services.advancement_service import (
    AdvancementResult,
    apply_advancement_for_completed_match,
    complete_by_bye,
    resolve_all_dependencies,
)
from ijf_bracket.services.bracket_repository import BracketRepository
from ijf_bracket.services.repechage_builder import RepechageOutcome, ensure_repechage

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (MatchStatus.locked, MatchStatus.in_progress)


@dataclass
class CompletionResult:
    match: Match
    advancement: Optional[AdvancementResult] = None
    repechage: Optional[RepechageOutcome] = None


@dataclass
class ByeSweepResult:
    category: str
    resolved: List[str] = field(default_factory=list)
    repechage: Optional[RepechageOutcome] = None


class ProgressionEngine:
    def __init__(self, repository: BracketRepository):
        self.repository = repository

    # -- transitions ----------------------------------------------------------

    def lock_match(self, match_id: str, holder_id: str, holder_name: Optional[str] = None) -> Match:
        match = self.repository.get_match(match_id)
        if match.status != MatchStatus.pending:
            if match.status in ACTIVE_STATUSES:
                raise LockConflictError(
                    f"Match {match_id} is already held by {match.holder_name or match.holder_id}",
                    rule="ALREADY_LOCKED",
                    match_ids=[match_id],
                )
            raise InvalidTransitionError(
                f"Cannot lock match {match_id} in status {match.status.value}",
                rule="LOCK_STATUS",
                match_ids=[match_id],
            )
        if not match.is_playable:
            raise InvalidTransitionError(
                f"Match {match_id} does not have two competitors yet",
                rule="NOT_READY",
                match_ids=[match_id],
            )
        self._check_competitors_free(match)

        lock = LockRecord(match_id=match_id, holder_id=holder_id, holder_name=holder_name)
        if not self.repository.acquire_lock(lock):
            current = self.repository.get_lock(match_id)
            holder = (current.holder_name or current.holder_id) if current else "another actor"
            raise LockConflictError(
                f"Match {match_id} is already locked by {holder}", rule="ALREADY_LOCKED", match_ids=[match_id]
            )

        match.status = MatchStatus.locked
        match.holder_id = holder_id
        match.holder_name = holder_name
        match.locked_at = lock.acquired_at
        self.repository.update_fields(match, "status", "holder_id", "holder_name", "locked_at")
        logger.info("Match %s locked by %s", match_id, holder_id)
        return match

    def start_match(self, match_id: str, holder_id: str, mat: Optional[str] = None) -> Match:
        match = self.repository.get_match(match_id)
        self._check_holder(match_id, holder_id)
        if match.status != MatchStatus.locked:
            raise InvalidTransitionError(
                f"Match {match_id} must be locked before it starts (status {match.status.value})",
                rule="START_STATUS",
                match_ids=[match_id],
            )
        match.status = MatchStatus.in_progress
        match.started_at = utcnow()
        if mat is not None:
            match.mat = mat
        self.repository.update_fields(match, "status", "started_at", "mat")
        logger.info("Match %s started on mat %s", match_id, match.mat or "-")
        return match

    def complete_match(
        self,
        match_id: str,
        winner_id: str,
        holder_id: str,
        score: Optional[Dict[str, Any]] = None,
    ) -> CompletionResult:
        """
        Declare the winner of an in-progress match.

        The winner must occupy one of the two slots. A completed match cannot
        be re-decided. Repechage problems are reported on the result and
        never fail the completion.
        """
        match = self.repository.get_match(match_id)
        if match.status == MatchStatus.completed:
            raise InvalidTransitionError(
                f"Match {match_id} is already completed (winner {match.winner})",
                rule="ALREADY_COMPLETED",
                match_ids=[match_id],
            )
        self._check_holder(match_id, holder_id)
        if match.status != MatchStatus.in_progress:
            raise InvalidTransitionError(
                f"Match {match_id} is not in progress (status {match.status.value})",
                rule="COMPLETE_STATUS",
                match_ids=[match_id],
            )
        if winner_id not in match.occupant_ids():
            raise InputValidationError(
                f"Competitor {winner_id} is not in match {match_id}",
                rule="WINNER_NOT_IN_MATCH",
                match_ids=[match_id],
            )

        loser_ids = [cid for cid in match.occupant_ids() if cid != winner_id]
        match.winner = winner_id
        match.loser = loser_ids[0] if loser_ids else None
        match.status = MatchStatus.completed
        match.completed_at = utcnow()
        if score is not None:
            match.score = score
        self.repository.update_fields(match, "winner", "loser", "status", "completed_at", "score")
        logger.info("Match %s completed: winner %s", match_id, winner_id)

        # The result is recorded; the lock goes even when advancement fails
        try:
            advancement = apply_advancement_for_completed_match(self.repository, match_id)
            repechage = self._check_repechage(match.category)
        finally:
            self.repository.release_lock(match_id)

        return CompletionResult(match=match, advancement=advancement, repechage=repechage)

    def unlock_match(self, match_id: str, holder_id: str) -> Match:
        """Abandon a locked or running match; it returns to pending."""
        match = self.repository.get_match(match_id)
        if match.status not in ACTIVE_STATUSES:
            raise InvalidTransitionError(
                f"Match {match_id} is not locked (status {match.status.value})",
                rule="UNLOCK_STATUS",
                match_ids=[match_id],
            )
        self._check_holder(match_id, holder_id)

        match.status = MatchStatus.pending
        match.holder_id = None
        match.holder_name = None
        match.locked_at = None
        match.started_at = None
        match.mat = None
        self.repository.update_fields(match, "status", "holder_id", "holder_name", "locked_at", "started_at", "mat")
        self.repository.release_lock(match_id, holder_id)
        logger.info("Match %s unlocked by %s", match_id, holder_id)
        return match

    # -- category-wide passes -------------------------------------------------

    def process_byes(self, category: str) -> ByeSweepResult:
        """Auto-complete every pending competitor-vs-BYE match and advance its winner."""
        result = ByeSweepResult(category=category)
        for match in self.repository.load_bracket(category).all_matches():
            if match.status != MatchStatus.pending or not match.is_bye_walkover:
                continue
            complete_by_bye(match)
            self.repository.update_fields(match, "winner", "loser", "status", "win_by_bye", "completed_at")
            result.resolved.append(match.id)
            advancement = apply_advancement_for_completed_match(self.repository, match.id)
            if advancement is not None:
                result.resolved.extend(advancement.walkover_ids)
        if result.resolved:
            logger.info("Resolved %d BYE matches in %s", len(result.resolved), category)
        result.repechage = self._check_repechage(category)
        return result

    def reconcile(self, category: str) -> Dict[str, Any]:
        """Repair pass after a partial failure; see resolve_all_dependencies."""
        report = resolve_all_dependencies(self.repository, category)
        outcome = self._check_repechage(category)
        report["repechage_created"] = bool(outcome and outcome.created)
        logger.info("Reconciled %s: %s", category, report)
        return report

    # -- helpers --------------------------------------------------------------

    def _check_holder(self, match_id: str, holder_id: str) -> LockRecord:
        lock = self.repository.get_lock(match_id)
        if lock is None:
            raise InvalidTransitionError(
                f"Match {match_id} must be locked first", rule="NOT_LOCKED", match_ids=[match_id]
            )
        if lock.holder_id != holder_id:
            raise LockConflictError(
                f"Match {match_id} is held by {lock.holder_name or lock.holder_id}",
                rule="NOT_LOCK_HOLDER",
                match_ids=[match_id],
            )
        return lock

    def _check_competitors_free(self, match: Match) -> None:
        """A competitor may only be on the mat in one match of a category at a time."""
        occupant_ids = set(match.occupant_ids())
        for other in self.repository.load_bracket(match.category).all_matches():
            if other.id == match.id or other.status not in ACTIVE_STATUSES:
                continue
            busy = occupant_ids.intersection(other.occupant_ids())
            if busy:
                raise LockConflictError(
                    f"Competitor {sorted(busy)[0]} is already in active match {other.id}",
                    rule="COMPETITOR_BUSY",
                    match_ids=[match.id, other.id],
                )

    def _check_repechage(self, category: str) -> Optional[RepechageOutcome]:
        try:
            return ensure_repechage(self.repository, category)
        except BracketError as exc:
            logger.warning("Repechage check for %s failed: %s", category, exc.detail())
            return None
