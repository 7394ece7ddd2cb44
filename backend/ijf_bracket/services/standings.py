"""
Read-only views over a loaded bracket: medal standings, progress statistics
and the matches that can be called to a mat now.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from ijf_bracket.models.bracket import Bracket
from ijf_bracket.models.match import Competitor, Match, MatchStatus, MatchType


class Standings(BaseModel):
    category: str
    gold: Optional[Competitor] = None
    silver: Optional[Competitor] = None
    bronze: List[Competitor] = Field(default_factory=list)
    fifth: List[Competitor] = Field(default_factory=list)


class CategoryStats(BaseModel):
    category: str
    total: int
    completed: int
    in_progress: int
    locked: int
    pending: int  # ready to play
    not_ready: int
    tournament_complete: bool
    champion: Optional[Competitor] = None


def _visible(bracket: Bracket) -> List[Match]:
    return [m for m in bracket.all_matches() if m.match_type != MatchType.empty]


def final_standings(bracket: Bracket) -> Standings:
    """
    Medal positions decided so far.

    Bronze goes to the two bronze-match winners; when no repechage is held it
    goes to both losing semifinalists. Fifth place is the two bronze-match
    losers. Undecided positions are left out.
    """
    standings = Standings(category=bracket.category)
    final = bracket.final()
    if final is None:
        return standings
    if final.status == MatchStatus.completed:
        standings.gold = final.winner_competitor
        standings.silver = final.loser_competitor

    repechage_enabled = bracket.metadata.repechage_enabled if bracket.metadata else bool(bracket.repechage)
    if not repechage_enabled:
        for semifinal in bracket.feeders(final.id):
            if semifinal.status == MatchStatus.completed and semifinal.loser_competitor is not None:
                standings.bronze.append(semifinal.loser_competitor)
        return standings

    for bronze in bracket.repechage:
        if bronze.match_type != MatchType.bronze or bronze.status != MatchStatus.completed:
            continue
        if bronze.winner_competitor is not None:
            standings.bronze.append(bronze.winner_competitor)
        if bronze.loser_competitor is not None:
            standings.fifth.append(bronze.loser_competitor)
    return standings


def category_stats(bracket: Bracket) -> CategoryStats:
    matches = _visible(bracket)
    final = bracket.final()
    complete = final is not None and final.status == MatchStatus.completed
    return CategoryStats(
        category=bracket.category,
        total=len(matches),
        completed=sum(1 for m in matches if m.status == MatchStatus.completed),
        in_progress=sum(1 for m in matches if m.status == MatchStatus.in_progress),
        locked=sum(1 for m in matches if m.status == MatchStatus.locked),
        pending=sum(1 for m in matches if m.is_playable),
        not_ready=sum(1 for m in matches if m.status == MatchStatus.pending and len(m.occupants()) < 2),
        tournament_complete=complete,
        champion=final.winner_competitor if complete else None,
    )


def ready_matches(bracket: Bracket) -> List[Match]:
    """Pending matches with both competitors known, in bracket order."""
    return [m for m in bracket.all_matches() if m.is_playable]
