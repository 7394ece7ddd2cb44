from ijf_bracket.models.bracket import Bracket, BracketIndex, BracketMetadata, LockRecord
from ijf_bracket.models.document import Document
from ijf_bracket.models.match import (
    Competitor,
    Match,
    MatchStatus,
    MatchType,
    Placeholder,
    Slot,
    SlotSide,
)

__all__ = [
    "Bracket",
    "BracketIndex",
    "BracketMetadata",
    "Competitor",
    "Document",
    "LockRecord",
    "Match",
    "MatchStatus",
    "MatchType",
    "Placeholder",
    "Slot",
    "SlotSide",
]
