"""Shared builders for bracket tests."""
import random
from typing import Callable, List, Optional

from ijf_bracket.models.bracket import Bracket
from ijf_bracket.models.match import Competitor, Match
from ijf_bracket.services.progression_engine import CompletionResult, ProgressionEngine

HOLDER = "mat-1"


def make_competitors(count: int, seeded: int = 0) -> List[Competitor]:
    return [
        Competitor(
            id=f"p{i}",
            name=f"Judoka {i}",
            club=f"Club {i % 4}",
            seed=i if i <= seeded else None,
            country="JPN" if i % 2 else "FRA",
        )
        for i in range(1, count + 1)
    ]


def play(
    progression: ProgressionEngine,
    match_id: str,
    winner_id: Optional[str] = None,
    holder_id: str = HOLDER,
) -> CompletionResult:
    """Lock, start and complete a match; slot A wins unless told otherwise."""
    match = progression.repository.get_match(match_id)
    winner = winner_id or match.occupant_ids()[0]
    progression.lock_match(match_id, holder_id, holder_name="Mat 1")
    progression.start_match(match_id, holder_id, mat="1")
    return progression.complete_match(match_id, winner, holder_id)


def play_all(
    progression: ProgressionEngine,
    category: str,
    rng: Optional[random.Random] = None,
    pick_winner: Optional[Callable[[Match], str]] = None,
) -> List[str]:
    """Play every ready match until none is left; returns the match ids in play order."""
    rng = rng or random.Random(0)
    played: List[str] = []
    while True:
        bracket = progression.repository.load_bracket(category)
        ready = [m for m in bracket.all_matches() if m.is_playable]
        if not ready:
            return played
        match = rng.choice(ready)
        winner = pick_winner(match) if pick_winner else rng.choice(match.occupant_ids())
        play(progression, match.id, winner)
        played.append(match.id)


def main_round(bracket: Bracket, round_number: int) -> List[Match]:
    return [m for m in bracket.main if m.round == round_number]
