from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MatchType(str, Enum):
    main = "main"
    final = "final"
    repechage = "repechage"
    bronze = "bronze"
    empty = "empty"


class MatchStatus(str, Enum):
    pending = "pending"
    locked = "locked"
    in_progress = "in_progress"
    completed = "completed"
    skipped = "skipped"  # only for MatchType.empty placeholders


class SlotSide(str, Enum):
    A = "A"
    B = "B"


class Placeholder(str, Enum):
    BYE = "BYE"
    TBD = "TBD"


class Competitor(BaseModel):
    """A judoka entered in one category. Immutable once the draw is made."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    club: str = ""
    seed: Optional[int] = None  # 1-based rank, unique among seeded competitors
    country: Optional[str] = None


class Slot(BaseModel):
    competitor: Optional[Competitor] = None
    placeholder: Optional[Placeholder] = None

    @classmethod
    def of(cls, competitor: Optional[Competitor]) -> "Slot":
        if competitor is None:
            return cls()
        return cls(competitor=competitor)

    @classmethod
    def bye(cls) -> "Slot":
        return cls(placeholder=Placeholder.BYE)

    @classmethod
    def tbd(cls) -> "Slot":
        return cls(placeholder=Placeholder.TBD)

    @property
    def is_filled(self) -> bool:
        return self.competitor is not None

    @property
    def is_bye(self) -> bool:
        return self.competitor is None and self.placeholder == Placeholder.BYE


class Match(BaseModel):
    id: str
    category: str
    round: Union[int, Literal["repechage", "bronze"]]
    round_name: Optional[str] = None
    match_number: Optional[int] = None
    match_type: MatchType = MatchType.main
    pool: Optional[str] = None  # A/B/C/D quadrant; A/B line for repechage

    slot_a: Slot = Field(default_factory=Slot)
    slot_b: Slot = Field(default_factory=Slot)

    status: MatchStatus = MatchStatus.pending
    winner: Optional[str] = None  # competitor id
    loser: Optional[str] = None
    win_by_bye: bool = False

    # Forward link: winner fills slot `winner_to` of `next_match_id`
    next_match_id: Optional[str] = None
    winner_to: Optional[SlotSide] = None

    holder_id: Optional[str] = None
    holder_name: Optional[str] = None
    locked_at: Optional[datetime] = None
    mat: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    score: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def _check_invariants(self) -> "Match":
        if self.match_type == MatchType.final and self.next_match_id is not None:
            raise ValueError(f"final match {self.id} cannot link to a next match")
        occupants = self.occupant_ids()
        for field_name in ("winner", "loser"):
            value = getattr(self, field_name)
            if value is not None and value not in occupants:
                raise ValueError(f"{field_name} {value} is not an occupant of match {self.id}")
        return self

    def slot(self, side: SlotSide) -> Slot:
        return self.slot_a if side == SlotSide.A else self.slot_b

    def set_slot(self, side: SlotSide, slot: Slot) -> None:
        if side == SlotSide.A:
            self.slot_a = slot
        else:
            self.slot_b = slot

    def occupants(self) -> List[Competitor]:
        return [s.competitor for s in (self.slot_a, self.slot_b) if s.competitor is not None]

    def occupant_ids(self) -> List[str]:
        return [c.id for c in self.occupants()]

    def competitor(self, competitor_id: Optional[str]) -> Optional[Competitor]:
        for c in self.occupants():
            if c.id == competitor_id:
                return c
        return None

    @property
    def winner_competitor(self) -> Optional[Competitor]:
        return self.competitor(self.winner)

    @property
    def loser_competitor(self) -> Optional[Competitor]:
        return self.competitor(self.loser)

    @property
    def is_done(self) -> bool:
        return self.status in (MatchStatus.completed, MatchStatus.skipped)

    @property
    def is_playable(self) -> bool:
        """Two real competitors, nothing decided yet."""
        return self.status == MatchStatus.pending and len(self.occupants()) == 2

    @property
    def is_bye_walkover(self) -> bool:
        """One competitor against a BYE: resolves without an actor."""
        filled = [s for s in (self.slot_a, self.slot_b) if s.is_filled]
        byes = [s for s in (self.slot_a, self.slot_b) if s.is_bye]
        return len(filled) == 1 and len(byes) == 1
