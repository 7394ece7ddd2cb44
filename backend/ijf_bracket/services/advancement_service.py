"""
Winner advancement: when a match completes, its winner fills the linked slot of
the next match.

The primary path is the `winner_to` slot recorded at build time. When it is
missing, the slot is recovered from feeder order (first feeder -> A, second ->
B); that path is a repair heuristic and is logged.

Slot fills are keyed writes on the next match only, so the two feeders of a
match may complete in either order. Every function here is idempotent.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from ijf_bracket.errors import AdvancementConflictError, StructuralError
from ijf_bracket.models.match import Competitor, Match, MatchStatus, MatchType, Slot, SlotSide

if TYPE_CHECKING:
    from ijf_bracket.services.bracket_repository import BracketRepository

logger = logging.getLogger(__name__)


@dataclass
class AdvancementResult:
    source_match_id: str
    target_match_id: str
    side: SlotSide
    competitor_id: str
    filled: bool  # False when the slot already held this competitor
    walkover_ids: List[str]  # downstream matches auto-completed by BYE


# -----------------------------------------------------------------------------
# Pure helpers (shared by the bracket/repechage builders and the persisted path)
# -----------------------------------------------------------------------------

def resolve_target_side(match: Match, feeders: Sequence[Match]) -> SlotSide:
    """Slot of `match.next_match_id` that the winner of `match` fills."""
    if match.winner_to is not None:
        return match.winner_to

    feeder_ids = [f.id for f in feeders]
    logger.warning(
        "Match %s has no winner_to; recovering slot from feeder order %s of %s",
        match.id,
        feeder_ids,
        match.next_match_id,
    )
    if match.id not in feeder_ids or len(feeder_ids) > 2:
        raise StructuralError(
            f"Cannot recover target slot: {len(feeder_ids)} feeders found for {match.next_match_id}",
            rule="WINNER_TO_RECOVERY",
            match_ids=[match.id, match.next_match_id or ""],
        )
    return SlotSide.A if feeder_ids.index(match.id) == 0 else SlotSide.B


def check_slot_free(target: Match, side: SlotSide, competitor: Competitor, source_id: str) -> bool:
    """
    True if the slot must be written, False if it already holds `competitor`.

    A slot holding somebody else means two completed matches claim it.
    """
    current = target.slot(side).competitor
    if current is None:
        return True
    if current.id == competitor.id:
        return False
    raise AdvancementConflictError(
        f"Slot {side.value} of {target.id} already holds {current.id}; {source_id} advances {competitor.id}",
        rule="SLOT_ALREADY_SET",
        match_ids=[source_id, target.id],
    )


def complete_by_bye(match: Match) -> Competitor:
    """Zero-actor completion of a competitor-vs-BYE match."""
    if not match.is_bye_walkover:
        raise StructuralError(
            f"Match {match.id} is not a BYE walkover", rule="NOT_A_BYE", match_ids=[match.id]
        )
    competitor = match.occupants()[0]
    match.winner = competitor.id
    match.loser = None
    match.status = MatchStatus.completed
    match.win_by_bye = True
    match.completed_at = datetime.now(timezone.utc)
    return competitor


def propagate_in_memory(matches: List[Match]) -> None:
    """
    Resolve BYE walkovers and advance winners across an unsaved match set.

    Used by the builders so a freshly built bracket already has every
    BYE-derived slot filled. Runs until nothing changes.
    """
    by_id = {m.id: m for m in matches}
    changed = True
    while changed:
        changed = False
        for match in matches:
            if match.status == MatchStatus.pending and match.is_bye_walkover:
                complete_by_bye(match)
                changed = True
            if match.status != MatchStatus.completed or match.next_match_id is None:
                continue
            winner = match.winner_competitor
            if winner is None:
                continue
            target = by_id.get(match.next_match_id)
            if target is None:
                raise StructuralError(
                    f"Match {match.id} links to unknown match {match.next_match_id}",
                    rule="DANGLING_NEXT_MATCH",
                    match_ids=[match.id],
                )
            feeders = [m for m in matches if m.next_match_id == target.id]
            side = resolve_target_side(match, feeders)
            if check_slot_free(target, side, winner, match.id):
                target.set_slot(side, Slot.of(winner))
                changed = True


# -----------------------------------------------------------------------------
# Persisted path
# -----------------------------------------------------------------------------

def apply_advancement_for_completed_match(
    repository: "BracketRepository", match_id: str
) -> Optional[AdvancementResult]:
    """
    Given a completed match, advance its winner into the next match.

    Writes only the target slot of the next match (plus a BYE walkover of
    that match when its other side is a BYE). Returns None when there is
    nothing to advance (not completed, no winner, terminal match).
    Idempotent: a second call finds the slot already set and writes nothing.
    """
    match = repository.get_match(match_id)
    if match.status != MatchStatus.completed or match.next_match_id is None:
        return None
    winner = match.winner_competitor
    if winner is None:
        return None

    target = repository.get_match(match.next_match_id)
    if match.winner_to is not None:
        side = match.winner_to
    else:
        bracket = repository.load_bracket(match.category)
        side = resolve_target_side(match, bracket.feeders(target.id))

    filled = check_slot_free(target, side, winner, match.id)
    if filled:
        slot = Slot.of(winner)
        repository.fill_slot(target.id, side, slot)
        target.set_slot(side, slot)
        logger.info("Advanced %s from %s to %s slot %s", winner.id, match.id, target.id, side.value)

    walkover_ids: List[str] = []
    if target.status == MatchStatus.pending and target.is_bye_walkover:
        complete_by_bye(target)
        repository.update_fields(target, "winner", "loser", "status", "win_by_bye", "completed_at")
        walkover_ids.append(target.id)
        logger.info("Match %s resolved by BYE", target.id)
        downstream = apply_advancement_for_completed_match(repository, target.id)
        if downstream is not None:
            walkover_ids.extend(downstream.walkover_ids)

    return AdvancementResult(
        source_match_id=match.id,
        target_match_id=target.id,
        side=side,
        competitor_id=winner.id,
        filled=filled,
        walkover_ids=walkover_ids,
    )


def resolve_all_dependencies(repository: "BracketRepository", category: str) -> Dict:
    """
    Repair pass: re-derive missing advancements from completed matches.

    Covers an actor that crashed between writing the winner and writing the
    next slot, and BYE walkovers that were never resolved.

    Returns:
        Dict with:
        - matches_processed: completed matches with a forward link examined
        - slots_filled: downstream slots written by this pass
        - unknown_before: matches with an unfilled (non-BYE) slot before
        - unknown_after: same count after

    Guarantees:
        - Idempotent (safe to call multiple times)
        - Deterministic ordering (bracket order: main rounds, then repechage)
    """
    unknown_before = _count_unknown(repository.load_bracket(category).all_matches())

    matches_processed = 0
    slots_filled = 0

    for match in repository.load_bracket(category).all_matches():
        if match.status == MatchStatus.pending and match.is_bye_walkover:
            complete_by_bye(match)
            repository.update_fields(match, "winner", "loser", "status", "win_by_bye", "completed_at")

    for match in repository.load_bracket(category).all_matches():
        if match.status != MatchStatus.completed or match.next_match_id is None:
            continue
        result = apply_advancement_for_completed_match(repository, match.id)
        matches_processed += 1
        if result is not None and result.filled:
            slots_filled += 1

    unknown_after = _count_unknown(repository.load_bracket(category).all_matches())

    return {
        "matches_processed": matches_processed,
        "slots_filled": slots_filled,
        "unknown_before": unknown_before,
        "unknown_after": unknown_after,
    }


def _count_unknown(matches: Sequence[Match]) -> int:
    return sum(
        1
        for m in matches
        if m.match_type != MatchType.empty
        and any(not s.is_filled and not s.is_bye for s in (m.slot_a, m.slot_b))
    )
