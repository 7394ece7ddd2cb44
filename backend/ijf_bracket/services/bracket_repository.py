"""
Bracket persistence over a DocumentStore.

Layout:
    tournament/brackets/{category}  -> BracketIndex (match ids + metadata)
    tournament/matches/{match_id}   -> Match
    tournament/locks/{match_id}     -> LockRecord
    tournament/categories           -> {"keys": [...]}

One document per match keeps slot A and slot B fills independent writes.
"""
import logging
from typing import Callable, List, Optional

from pydantic import ValidationError

from ijf_bracket.errors import NotFoundError, StructuralError
from ijf_bracket.models.bracket import Bracket, BracketIndex, LockRecord
from ijf_bracket.models.match import Match, Slot, SlotSide
from ijf_bracket.store.base import DocumentStore

logger = logging.getLogger(__name__)

BRACKETS_ROOT = "tournament/brackets"
MATCHES_ROOT = "tournament/matches"
LOCKS_ROOT = "tournament/locks"
CATEGORIES_PATH = "tournament/categories"


def bracket_path(category: str) -> str:
    return f"{BRACKETS_ROOT}/{category}"


def match_path(match_id: str) -> str:
    return f"{MATCHES_ROOT}/{match_id}"


def lock_path(match_id: str) -> str:
    return f"{LOCKS_ROOT}/{match_id}"


class BracketRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    # -- brackets -------------------------------------------------------------

    def find_index(self, category: str) -> Optional[BracketIndex]:
        data = self.store.get(bracket_path(category))
        return BracketIndex.model_validate(data) if data is not None else None

    def get_index(self, category: str) -> BracketIndex:
        index = self.find_index(category)
        if index is None:
            raise NotFoundError(f"No bracket drawn for category {category}", rule="BRACKET_NOT_FOUND")
        return index

    def load_bracket(self, category: str) -> Bracket:
        index = self.get_index(category)
        return Bracket(
            category=category,
            main=[self._load_member(match_id, category) for match_id in index.main],
            repechage=[self._load_member(match_id, category) for match_id in index.repechage],
            metadata=index.metadata,
        )

    def replace_bracket(self, bracket: Bracket) -> None:
        """Write a freshly drawn bracket, discarding any previous draw of the category."""
        previous = self.find_index(bracket.category)
        if previous is not None:
            for match_id in [*previous.main, *previous.repechage]:
                self.store.delete(match_path(match_id))
                self.store.delete(lock_path(match_id))
            logger.info("Discarded previous draw of %s", bracket.category)

        for match in bracket.all_matches():
            self.save_match(match)
        # Index last: readers never see an index pointing at missing matches
        self.store.set(bracket_path(bracket.category), bracket.index().model_dump(mode="json"))
        self._register_category(bracket.category)

    def add_repechage(self, category: str, matches: List[Match]) -> bool:
        """
        Attach the repechage set to a category exactly once.

        Match documents are create-if-absent; the index swap decides the
        winner of a race. Returns False when a repechage set already exists.
        """
        current = self.store.get(bracket_path(category))
        if current is None:
            raise NotFoundError(f"No bracket drawn for category {category}", rule="BRACKET_NOT_FOUND")
        index = BracketIndex.model_validate(current)
        if index.repechage:
            return False

        for match in matches:
            self.store.compare_and_swap(match_path(match.id), None, match.model_dump(mode="json"))

        updated = index.model_copy(update={"repechage": [m.id for m in matches]})
        return self.store.compare_and_swap(bracket_path(category), current, updated.model_dump(mode="json"))

    def categories(self) -> List[str]:
        data = self.store.get(CATEGORIES_PATH) or {}
        return list(data.get("keys", []))

    def _register_category(self, category: str) -> None:
        keys = self.categories()
        if category not in keys:
            self.store.set(CATEGORIES_PATH, {"keys": [*keys, category]})

    def _load_member(self, match_id: str, category: str) -> Match:
        data = self.store.get(match_path(match_id))
        if data is None:
            raise StructuralError(
                f"Bracket {category} lists match {match_id} but no such document exists",
                rule="MISSING_MATCH",
                match_ids=[match_id],
            )
        return Match.model_validate(data)

    # -- matches --------------------------------------------------------------

    def get_match(self, match_id: str) -> Match:
        data = self.store.get(match_path(match_id))
        if data is None:
            raise NotFoundError(f"Match {match_id} not found", rule="MATCH_NOT_FOUND", match_ids=[match_id])
        try:
            return Match.model_validate(data)
        except ValidationError as exc:
            raise StructuralError(
                f"Match {match_id} is malformed: {exc}", rule="MALFORMED_MATCH", match_ids=[match_id]
            ) from exc

    def save_match(self, match: Match) -> None:
        self.store.set(match_path(match.id), match.model_dump(mode="json"))

    def update_fields(self, match: Match, *field_names: str) -> None:
        """Merge-write only the named fields of `match`."""
        self.store.update(match_path(match.id), match.model_dump(mode="json", include=set(field_names)))

    def fill_slot(self, match_id: str, side: SlotSide, slot: Slot) -> None:
        field_name = "slot_a" if side == SlotSide.A else "slot_b"
        self.store.update(match_path(match_id), {field_name: slot.model_dump(mode="json")})

    # -- locks ----------------------------------------------------------------

    def get_lock(self, match_id: str) -> Optional[LockRecord]:
        data = self.store.get(lock_path(match_id))
        return LockRecord.model_validate(data) if data is not None else None

    def acquire_lock(self, lock: LockRecord) -> bool:
        return self.store.compare_and_swap(lock_path(lock.match_id), None, lock.model_dump(mode="json"))

    def release_lock(self, match_id: str, holder_id: Optional[str] = None) -> bool:
        """Remove the lock; with `holder_id`, only if that actor holds it."""
        current = self.store.get(lock_path(match_id))
        if current is None:
            return True
        if holder_id is not None and current.get("holder_id") != holder_id:
            return False
        return self.store.compare_and_swap(lock_path(match_id), current, None)

    # -- subscriptions --------------------------------------------------------

    def watch_match(self, match_id: str, callback: Callable[[Optional[Match]], None]) -> Callable[[], None]:
        return self.store.subscribe(
            match_path(match_id),
            lambda data: callback(Match.model_validate(data) if data is not None else None),
        )

    def watch_bracket(
        self, category: str, callback: Callable[[Optional[BracketIndex]], None]
    ) -> Callable[[], None]:
        return self.store.subscribe(
            bracket_path(category),
            lambda data: callback(BracketIndex.model_validate(data) if data is not None else None),
        )
