"""
Single-elimination match tree from a placed slot array.

Round 1 pairs slots (0,1), (2,3), ...; each later round halves the previous
one and links every match forward (first parent -> slot A, second -> slot B).
The last match is the final. Competitor-vs-BYE pairings complete on build and
their winners are already advanced in the returned tree.
"""
import math
import uuid
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from ijf_bracket.errors import InputValidationError, StructuralError
from ijf_bracket.models.match import Competitor, Match, MatchStatus, MatchType, Slot, SlotSide
from ijf_bracket.services.advancement_service import propagate_in_memory
from ijf_bracket.services.seed_placement import is_power_of_two

POOLS = ("A", "B", "C", "D")

IdFactory = Callable[[], str]


def new_match_id() -> str:
    return f"match_{uuid.uuid4().hex[:12]}"


def round_name(players_remaining: int, bracket_size: int) -> str:
    if players_remaining == 2:
        return "Final"
    if players_remaining == 4:
        return "Semifinals"
    if players_remaining == 8:
        return "Quarterfinals"
    if players_remaining == 16:
        return "Round of 16"
    if players_remaining == 32:
        return "Round of 32"
    return f"Round {int(math.log2(bracket_size) - math.log2(players_remaining)) + 1}"


def pool_for_position(position: int, bracket_size: int) -> str:
    """Quadrant (A-D) of a first-round slot index."""
    return POOLS[min(position * 4 // bracket_size, 3)]


@dataclass
class BracketBuild:
    main: List[Match]


def build(
    seeded_slots: Sequence[Optional[Competitor]],
    category: str,
    id_factory: IdFactory = new_match_id,
    allow_empty: bool = False,
) -> BracketBuild:
    """
    Expand a placed slot array into every round of the main bracket.

    A first-round pairing with no competitor is a structural error unless
    `allow_empty` is set, in which case it becomes an `empty`/`skipped`
    placeholder and the match it feeds sees a BYE on that side.
    """
    size = len(seeded_slots)
    if size < 2 or not is_power_of_two(size):
        raise InputValidationError(
            f"Slot array length must be a power of two >= 2, got {size}", rule="BRACKET_SIZE"
        )

    final_round_size = 2
    matches: List[Match] = []
    match_number = 0

    current: List[Match] = []
    for i in range(size // 2):
        player_a = seeded_slots[i * 2]
        player_b = seeded_slots[i * 2 + 1]
        if player_a is None and player_b is None:
            if not allow_empty:
                raise StructuralError(
                    f"First-round pairing {i + 1} (slots {i * 2}-{i * 2 + 1}) has no competitor",
                    rule="DOUBLE_BYE",
                )
            placeholder = _empty_match(id_factory(), category, 1, pool_for_position(i * 2, size))
            current.append(placeholder)
            continue

        match_number += 1
        current.append(
            Match(
                id=id_factory(),
                category=category,
                round=1,
                round_name=round_name(size, size),
                match_number=match_number,
                match_type=MatchType.final if size == final_round_size else MatchType.main,
                pool=pool_for_position(i * 2, size),
                slot_a=Slot.of(player_a) if player_a is not None else Slot.bye(),
                slot_b=Slot.of(player_b) if player_b is not None else Slot.bye(),
            )
        )
    matches.extend(current)

    round_number = 2
    players_remaining = size // 2
    while len(current) > 1:
        next_round: List[Match] = []
        for i in range(len(current) // 2):
            parent_a, parent_b = current[i * 2], current[i * 2 + 1]
            pool = parent_a.pool if parent_a.pool == parent_b.pool else None

            if parent_a.match_type == MatchType.empty and parent_b.match_type == MatchType.empty:
                match = _empty_match(id_factory(), category, round_number, pool)
            else:
                match_number += 1
                match = Match(
                    id=id_factory(),
                    category=category,
                    round=round_number,
                    round_name=round_name(players_remaining, size),
                    match_number=match_number,
                    match_type=MatchType.final if len(current) == 2 else MatchType.main,
                    pool=pool,
                    slot_a=Slot.bye() if parent_a.match_type == MatchType.empty else Slot.tbd(),
                    slot_b=Slot.bye() if parent_b.match_type == MatchType.empty else Slot.tbd(),
                )

            parent_a.next_match_id = match.id
            parent_a.winner_to = SlotSide.A
            parent_b.next_match_id = match.id
            parent_b.winner_to = SlotSide.B
            next_round.append(match)

        matches.extend(next_round)
        current = next_round
        round_number += 1
        players_remaining //= 2

    propagate_in_memory(matches)
    return BracketBuild(main=matches)


def _empty_match(match_id: str, category: str, round_number: int, pool: Optional[str]) -> Match:
    return Match(
        id=match_id,
        category=category,
        round=round_number,
        match_type=MatchType.empty,
        status=MatchStatus.skipped,
        pool=pool,
    )
