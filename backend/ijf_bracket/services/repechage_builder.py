"""
IJF repechage and bronze matches, derived once both finalists are known.

Pool A is the half feeding final slot A, pool B the half feeding slot B.
Each pool's two quarterfinal losers meet in a repechage line. Bronze pairing
crosses the halves:

    Bronze 1: pool-B semifinal loser vs pool-A repechage winner
    Bronze 2: pool-A semifinal loser vs pool-B repechage winner

Repechage winners reach slot B of their bronze match through the normal
advancement link.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ijf_bracket.errors import BracketError, StructuralError
from ijf_bracket.models.bracket import Bracket
from ijf_bracket.models.match import Competitor, Match, MatchStatus, MatchType, Slot, SlotSide
from ijf_bracket.services.advancement_service import propagate_in_memory
from ijf_bracket.services.bracket_repository import BracketRepository

logger = logging.getLogger(__name__)

REPECHAGE_POOLS = ("A", "B")


@dataclass
class RepechageOutcome:
    created: bool
    matches: List[Match] = field(default_factory=list)
    reason: Optional[str] = None


def repechage_match_id(line: int, category: str) -> str:
    return f"repechage_{line}_{category}"


def bronze_match_id(line: int, category: str) -> str:
    return f"bronze_{line}_{category}"


def _by_slot(matches: List[Match]) -> List[Match]:
    # Feeder of slot A first; discovery order for anything without winner_to
    return sorted(matches, key=lambda m: 0 if m.winner_to == SlotSide.A else 1 if m.winner_to == SlotSide.B else 2)


def find_semifinals_and_quarterfinals(bracket: Bracket) -> Tuple[Match, List[Match], List[List[Match]]]:
    """(final, [sf pool A, sf pool B], [[qf, qf] of pool A, [qf, qf] of pool B])."""
    final = bracket.final()
    if final is None:
        raise StructuralError(f"No final match in {bracket.category}", rule="NO_FINAL")

    semifinals = _by_slot([m for m in bracket.main if m.next_match_id == final.id])
    if len(semifinals) != 2:
        raise StructuralError(
            f"Expected 2 semifinals feeding {final.id}, found {len(semifinals)}",
            rule="SEMIFINAL_COUNT",
            match_ids=[final.id, *[m.id for m in semifinals]],
        )

    quarterfinals = [_by_slot([m for m in bracket.main if m.next_match_id == sf.id]) for sf in semifinals]
    found = sum(len(q) for q in quarterfinals)
    if found != 4 or any(len(q) != 2 for q in quarterfinals):
        raise StructuralError(
            f"Expected 4 quarterfinals (2 per semifinal), found {found}",
            rule="QUARTERFINAL_COUNT",
            match_ids=[sf.id for sf in semifinals],
        )
    return final, semifinals, quarterfinals


def _semifinal_loser(semifinal: Match) -> Competitor:
    loser = semifinal.loser_competitor
    if semifinal.status != MatchStatus.completed or loser is None:
        raise StructuralError(
            f"Semifinal {semifinal.id} has no loser yet", rule="SEMIFINAL_NOT_DECIDED", match_ids=[semifinal.id]
        )
    return loser


def _quarterfinal_losers(quarterfinals: List[Match]) -> List[Competitor]:
    losers = []
    for qf in quarterfinals:
        if not qf.is_done:
            raise StructuralError(
                f"Quarterfinal {qf.id} is not decided", rule="QUARTERFINAL_NOT_DECIDED", match_ids=[qf.id]
            )
        if qf.loser_competitor is not None:  # BYE and empty quarterfinals have no loser
            losers.append(qf.loser_competitor)
    return losers


def build_repechage(bracket: Bracket) -> List[Match]:
    """
    The two repechage lines and two bronze matches, in that order.

    A line with a single quarterfinal loser is a BYE walkover; a line with
    none is an `empty` placeholder and its bronze match is won by BYE.
    Raises StructuralError when the main bracket does not have the needed
    shape or the semifinals are not decided.
    """
    category = bracket.category
    _, semifinals, quarterfinals = find_semifinals_and_quarterfinals(bracket)
    sf_losers = [_semifinal_loser(sf) for sf in semifinals]

    lines: List[Match] = []
    for number, (pool, qfs) in enumerate(zip(REPECHAGE_POOLS, quarterfinals), start=1):
        losers = _quarterfinal_losers(qfs)
        bronze_id = bronze_match_id(number, category)
        if not losers:
            lines.append(
                Match(
                    id=repechage_match_id(number, category),
                    category=category,
                    round="repechage",
                    round_name="Repechage",
                    match_type=MatchType.empty,
                    status=MatchStatus.skipped,
                    pool=pool,
                    next_match_id=bronze_id,
                    winner_to=SlotSide.B,
                )
            )
            continue
        lines.append(
            Match(
                id=repechage_match_id(number, category),
                category=category,
                round="repechage",
                round_name="Repechage",
                match_type=MatchType.repechage,
                pool=pool,
                slot_a=Slot.of(losers[0]),
                slot_b=Slot.of(losers[1]) if len(losers) > 1 else Slot.bye(),
                next_match_id=bronze_id,
                winner_to=SlotSide.B,
            )
        )

    # Cross-pool: bronze 1 takes the pool-B semifinal loser, bronze 2 the pool-A one
    bronzes: List[Match] = []
    for number, (sf_loser, line) in enumerate(zip((sf_losers[1], sf_losers[0]), lines), start=1):
        bronzes.append(
            Match(
                id=bronze_match_id(number, category),
                category=category,
                round="bronze",
                round_name="Bronze Medal",
                match_type=MatchType.bronze,
                pool=line.pool,
                slot_a=Slot.of(sf_loser),
                slot_b=Slot.bye() if line.match_type == MatchType.empty else Slot.tbd(),
            )
        )

    matches = [*lines, *bronzes]
    propagate_in_memory(matches)
    return matches


def ensure_repechage(repository: BracketRepository, category: str) -> RepechageOutcome:
    """
    Create the category's repechage set if it is due and does not exist yet.

    Safe to call any number of times. Never raises for bracket-shape problems:
    those abort creation, are logged and come back as the outcome's reason.
    """
    index = repository.get_index(category)
    if not index.metadata.repechage_enabled:
        return RepechageOutcome(created=False, reason="Repechage not held for fewer than 6 competitors")
    if index.repechage:
        return RepechageOutcome(created=False, reason="Repechage already exists")

    bracket = repository.load_bracket(category)
    final = bracket.final()
    if final is None or len(final.occupants()) < 2:
        return RepechageOutcome(created=False, reason="Finalists not yet determined")

    try:
        matches = build_repechage(bracket)
    except BracketError as exc:
        logger.warning("Repechage for %s aborted: %s", category, exc.detail())
        return RepechageOutcome(created=False, reason=exc.detail())

    if not repository.add_repechage(category, matches):
        logger.info("Repechage for %s created concurrently; nothing to do", category)
        return RepechageOutcome(created=False, reason="Repechage already exists")

    logger.info("Created %d repechage/bronze matches for %s", len(matches), category)
    return RepechageOutcome(created=True, matches=matches)
