from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ijf_bracket.database import get_repository
from ijf_bracket.models.bracket import Bracket
from ijf_bracket.models.match import Competitor, Match
from ijf_bracket.services.bracket_repository import BracketRepository
from ijf_bracket.services.draw_service import create_draw
from ijf_bracket.services.standings import (
    CategoryStats,
    Standings,
    category_stats,
    final_standings,
    ready_matches,
)
from ijf_bracket.services.structure_planner import TournamentPlan, plan
from ijf_bracket.utils.guards import http_errors, require_bracket

router = APIRouter()


class DrawRequest(BaseModel):
    competitors: List[Competitor]
    seed_order: Optional[List[str]] = None


@router.get("/plans/{player_count}", response_model=TournamentPlan)
def get_plan(player_count: int) -> TournamentPlan:
    """Bracket size, rounds and match counts for a number of competitors"""
    with http_errors():
        return plan(player_count)


@router.get("/categories", response_model=List[str])
def list_categories(repository: BracketRepository = Depends(get_repository)) -> List[str]:
    return repository.categories()


@router.post("/categories/{category}/draw", response_model=Bracket, status_code=201)
def draw_category(
    category: str,
    payload: DrawRequest,
    repository: BracketRepository = Depends(get_repository),
) -> Bracket:
    """Draw the main bracket for a category. Re-drawing discards the previous draw and its locks."""
    with http_errors():
        return create_draw(repository, category, payload.competitors, seed_order=payload.seed_order)


@router.get("/categories/{category}/bracket", response_model=Bracket)
def get_bracket(category: str, repository: BracketRepository = Depends(get_repository)) -> Bracket:
    return require_bracket(repository, category)


@router.get("/categories/{category}/standings", response_model=Standings)
def get_standings(category: str, repository: BracketRepository = Depends(get_repository)) -> Standings:
    return final_standings(require_bracket(repository, category))


@router.get("/categories/{category}/stats", response_model=CategoryStats)
def get_stats(category: str, repository: BracketRepository = Depends(get_repository)) -> CategoryStats:
    return category_stats(require_bracket(repository, category))


@router.get("/categories/{category}/ready-matches", response_model=List[Match])
def get_ready_matches(category: str, repository: BracketRepository = Depends(get_repository)) -> List[Match]:
    """Matches that can be called to a mat now, in bracket order"""
    return ready_matches(require_bracket(repository, category))
