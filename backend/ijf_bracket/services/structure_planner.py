"""
Tournament structure for a category: bracket size, rounds, match counts and
whether repechage is held. `generate_bracket` composes placement and building.
"""
import logging
import random
from typing import List, Optional, Sequence

from pydantic import BaseModel

from ijf_bracket.errors import InputValidationError
from ijf_bracket.models.bracket import Bracket, BracketMetadata
from ijf_bracket.models.match import Competitor
from ijf_bracket.services import bracket_builder, seed_placement

logger = logging.getLogger(__name__)

MIN_PLAYERS = 1
MAX_PLAYERS = 64
REPECHAGE_MIN_PLAYERS = 6  # IJF: no repechage below six competitors


class RoundInfo(BaseModel):
    round: int
    name: str
    matches: int
    players_remaining: int


class TournamentPlan(BaseModel):
    num_players: int
    bracket_size: int
    byes: int
    rounds: List[RoundInfo]
    main_matches: int
    repechage_matches: int
    total_matches: int
    repechage_enabled: bool


def next_power_of_two(n: int) -> int:
    power = 2
    while power < n:
        power *= 2
    return power


def repechage_match_count(bracket_size: int) -> int:
    """Two repechage lines' internal matches plus two bronze matches; 0 below 8."""
    if bracket_size < 8:
        return 0
    quarterfinal_lines = bracket_size // 4
    per_side = quarterfinal_lines // 2 - 1
    return 2 * per_side + 2


def plan(player_count: int) -> TournamentPlan:
    if player_count < MIN_PLAYERS:
        raise InputValidationError(
            f"At least {MIN_PLAYERS} competitor required, got {player_count}", rule="PLAYER_COUNT"
        )
    if player_count > MAX_PLAYERS:
        raise InputValidationError(
            f"At most {MAX_PLAYERS} competitors supported, got {player_count}", rule="PLAYER_COUNT"
        )

    bracket_size = next_power_of_two(player_count)
    repechage_enabled = player_count >= REPECHAGE_MIN_PLAYERS

    rounds: List[RoundInfo] = []
    remaining = bracket_size
    round_number = 1
    while remaining > 1:
        rounds.append(
            RoundInfo(
                round=round_number,
                name=bracket_builder.round_name(remaining, bracket_size),
                matches=remaining // 2,
                players_remaining=remaining,
            )
        )
        remaining //= 2
        round_number += 1

    main_matches = bracket_size - 1
    repechage_matches = repechage_match_count(bracket_size) if repechage_enabled else 0

    return TournamentPlan(
        num_players=player_count,
        bracket_size=bracket_size,
        byes=bracket_size - player_count,
        rounds=rounds,
        main_matches=main_matches,
        repechage_matches=repechage_matches,
        total_matches=main_matches + repechage_matches,
        repechage_enabled=repechage_enabled,
    )


def generate_bracket(
    competitors: Sequence[Competitor],
    seed_order: Optional[Sequence[str]],
    category: str,
    rng: Optional[random.Random] = None,
    id_factory: bracket_builder.IdFactory = bracket_builder.new_match_id,
) -> Bracket:
    """Plan, place and build a category's main bracket. Pure apart from `rng`."""
    ids = [c.id for c in competitors]
    if len(set(ids)) != len(ids):
        raise InputValidationError("Competitor ids must be unique within a category", rule="DUPLICATE_COMPETITOR")

    structure = plan(len(competitors))
    slots = seed_placement.place(competitors, seed_order, structure.bracket_size, rng=rng)
    built = bracket_builder.build(slots, category, id_factory=id_factory)

    logger.info(
        "Generated %s: %d competitors, bracket %d, %d main matches, repechage %s",
        category,
        structure.num_players,
        structure.bracket_size,
        structure.main_matches,
        "on" if structure.repechage_enabled else "off",
    )

    return Bracket(
        category=category,
        main=built.main,
        repechage=[],
        metadata=BracketMetadata(
            num_players=structure.num_players,
            bracket_size=structure.bracket_size,
            total_matches=structure.total_matches,
            repechage_enabled=structure.repechage_enabled,
        ),
    )
