from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from ijf_bracket.models.match import Match, MatchType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LockRecord(BaseModel):
    """Exclusive right of one actor (device) to run a match."""

    match_id: str
    holder_id: str
    holder_name: Optional[str] = None
    acquired_at: datetime = Field(default_factory=utcnow)


class BracketMetadata(BaseModel):
    num_players: int
    bracket_size: int
    total_matches: int
    repechage_enabled: bool
    generated_at: datetime = Field(default_factory=utcnow)


class BracketIndex(BaseModel):
    """Persisted per-category index: which match documents make up the bracket."""

    category: str
    main: List[str] = Field(default_factory=list)
    repechage: List[str] = Field(default_factory=list)
    metadata: BracketMetadata


class Bracket(BaseModel):
    category: str
    main: List[Match] = Field(default_factory=list)
    repechage: List[Match] = Field(default_factory=list)
    metadata: Optional[BracketMetadata] = None

    def all_matches(self) -> List[Match]:
        return [*self.main, *self.repechage]

    def final(self) -> Optional[Match]:
        for m in self.main:
            if m.match_type == MatchType.final:
                return m
        return None

    def feeders(self, match_id: str) -> List[Match]:
        """Matches whose winner advances into `match_id`, in discovery order."""
        return [m for m in self.all_matches() if m.next_match_id == match_id]

    def index(self) -> BracketIndex:
        if self.metadata is None:
            raise ValueError(f"bracket {self.category} has no metadata")
        return BracketIndex(
            category=self.category,
            main=[m.id for m in self.main],
            repechage=[m.id for m in self.repechage],
            metadata=self.metadata,
        )
