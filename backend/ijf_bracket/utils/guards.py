"""
Route guards: translate engine errors into HTTP responses.

- NotFoundError: 404
- LockConflictError: 409 (retryable; the client may try again)
- StructuralError: 422, detail prefixed with STRUCTURAL_ERROR
- Any other input error: 422
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from ijf_bracket.errors import BracketError, LockConflictError, NotFoundError, StructuralError
from ijf_bracket.models.bracket import Bracket
from ijf_bracket.services.bracket_repository import BracketRepository


def to_http_exception(exc: BracketError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.detail())
    if isinstance(exc, LockConflictError):
        return HTTPException(status_code=409, detail=f"LOCK_CONFLICT: {exc.detail()}")
    if isinstance(exc, StructuralError):
        return HTTPException(status_code=422, detail=f"STRUCTURAL_ERROR: {exc.detail()}")
    return HTTPException(status_code=422, detail=exc.detail())


@contextmanager
def http_errors() -> Iterator[None]:
    """Run a service call, re-raising any BracketError as an HTTPException."""
    try:
        yield
    except BracketError as exc:
        raise to_http_exception(exc) from exc


def require_bracket(repository: BracketRepository, category: str) -> Bracket:
    """
    Load a category's bracket or fail.

    Raises:
        HTTPException 404: Category has not been drawn
        HTTPException 422: Stored bracket is inconsistent
    """
    with http_errors():
        return repository.load_bracket(category)
