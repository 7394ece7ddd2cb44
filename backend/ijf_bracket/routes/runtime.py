"""
Match runtime: lock, start, complete and unlock, plus category repair passes.
Completing a match advances the winner and creates the repechage set once
both finalists are known.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ijf_bracket.database import get_repository
from ijf_bracket.models.match import Match
from ijf_bracket.services.bracket_repository import BracketRepository
from ijf_bracket.services.progression_engine import ProgressionEngine
from ijf_bracket.services.repechage_builder import ensure_repechage
from ijf_bracket.utils.guards import http_errors

router = APIRouter()


def get_engine(repository: BracketRepository = Depends(get_repository)) -> ProgressionEngine:
    return ProgressionEngine(repository)


class LockRequest(BaseModel):
    holder_id: str
    holder_name: Optional[str] = None


class StartRequest(BaseModel):
    holder_id: str
    mat: Optional[str] = None


class CompleteRequest(BaseModel):
    holder_id: str
    winner_id: str
    score: Optional[Dict[str, Any]] = None


class UnlockRequest(BaseModel):
    holder_id: str


class RepechageState(BaseModel):
    created: bool
    reason: Optional[str] = None
    match_ids: List[str] = []


class MatchCompletionResponse(BaseModel):
    match: Match
    advanced_to: Optional[str] = None
    walkover_ids: List[str] = []
    repechage: Optional[RepechageState] = None


class ByeSweepResponse(BaseModel):
    category: str
    resolved: List[str]
    repechage: Optional[RepechageState] = None


def _repechage_state(outcome) -> Optional[RepechageState]:
    if outcome is None:
        return None
    return RepechageState(created=outcome.created, reason=outcome.reason, match_ids=[m.id for m in outcome.matches])


@router.post("/matches/{match_id}/lock", response_model=Match)
def lock_match(match_id: str, payload: LockRequest, engine: ProgressionEngine = Depends(get_engine)) -> Match:
    """Claim a match for one device. 409 when another device holds it or a competitor is busy."""
    with http_errors():
        return engine.lock_match(match_id, payload.holder_id, payload.holder_name)


@router.post("/matches/{match_id}/start", response_model=Match)
def start_match(match_id: str, payload: StartRequest, engine: ProgressionEngine = Depends(get_engine)) -> Match:
    with http_errors():
        return engine.start_match(match_id, payload.holder_id, mat=payload.mat)


@router.post("/matches/{match_id}/complete", response_model=MatchCompletionResponse)
def complete_match(
    match_id: str,
    payload: CompleteRequest,
    engine: ProgressionEngine = Depends(get_engine),
) -> MatchCompletionResponse:
    """Declare the winner. Advancement and repechage creation happen before the lock is released."""
    with http_errors():
        result = engine.complete_match(match_id, payload.winner_id, payload.holder_id, score=payload.score)

    return MatchCompletionResponse(
        match=result.match,
        advanced_to=result.advancement.target_match_id if result.advancement else None,
        walkover_ids=result.advancement.walkover_ids if result.advancement else [],
        repechage=_repechage_state(result.repechage),
    )


@router.post("/matches/{match_id}/unlock", response_model=Match)
def unlock_match(match_id: str, payload: UnlockRequest, engine: ProgressionEngine = Depends(get_engine)) -> Match:
    """Abandon a match: back to pending, holder fields cleared."""
    with http_errors():
        return engine.unlock_match(match_id, payload.holder_id)


@router.post("/categories/{category}/process-byes", response_model=ByeSweepResponse)
def process_byes(category: str, engine: ProgressionEngine = Depends(get_engine)) -> ByeSweepResponse:
    with http_errors():
        result = engine.process_byes(category)
    return ByeSweepResponse(
        category=result.category,
        resolved=result.resolved,
        repechage=_repechage_state(result.repechage),
    )


@router.post("/categories/{category}/reconcile", response_model=Dict[str, Any])
def reconcile_category(category: str, engine: ProgressionEngine = Depends(get_engine)) -> Dict[str, Any]:
    """Re-derive advancements missing after a partial failure. Safe to call repeatedly."""
    with http_errors():
        return engine.reconcile(category)


@router.post("/categories/{category}/repechage", response_model=RepechageState)
def create_repechage(category: str, repository: BracketRepository = Depends(get_repository)) -> RepechageState:
    """Create the repechage set if it is due. A no-op when it already exists."""
    with http_errors():
        outcome = ensure_repechage(repository, category)
    return _repechage_state(outcome)
