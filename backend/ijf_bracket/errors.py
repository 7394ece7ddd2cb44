"""
Bracket engine error taxonomy.

- Input validation: bad caller input, rejected immediately.
- Structural: the bracket does not have the shape an operation needs; the
  operation is aborted and nothing partial is persisted.
- Lock conflict: another actor holds the match; retryable.

Every error carries a human-readable reason, the rule that failed and the
match ids involved, so callers can render a message without re-deriving it.
"""
from typing import Iterable, Optional, Tuple


class BracketError(Exception):
    retryable = False

    def __init__(self, reason: str, *, rule: Optional[str] = None, match_ids: Iterable[str] = ()):
        super().__init__(reason)
        self.reason = reason
        self.rule = rule
        self.match_ids: Tuple[str, ...] = tuple(match_ids)

    def detail(self) -> str:
        """Reason string with rule code and match ids, e.g. for an HTTP detail."""
        parts = []
        if self.rule:
            parts.append(f"{self.rule}: ")
        parts.append(self.reason)
        if self.match_ids:
            parts.append(f" (matches: {', '.join(self.match_ids)})")
        return "".join(parts)


class InputValidationError(BracketError):
    pass


class InvalidTransitionError(InputValidationError):
    pass


class NotFoundError(InputValidationError):
    pass


class StructuralError(BracketError):
    pass


class AdvancementConflictError(StructuralError):
    pass


class LockConflictError(BracketError):
    retryable = True
