"""
IJF seed placement: seeded competitors at fixed positions, the rest shuffled in.

The position tables keep seed 1 and seed 2 in opposite halves, seeds 3-4 in the
remaining quarters, seeds 5-8 in separate eighths, and so on. Index k of a
table is the bracket position of seed k+1.
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from ijf_bracket.errors import InputValidationError, StructuralError
from ijf_bracket.models.match import Competitor

logger = logging.getLogger(__name__)

MAX_BYE_SWAP_ATTEMPTS = 100

IJF_SEED_POSITIONS: Dict[int, List[int]] = {
    2: [0, 1],
    4: [0, 3, 2, 1],
    8: [0, 7, 4, 3, 2, 5, 6, 1],
    16: [0, 15, 8, 7, 4, 11, 12, 3, 2, 13, 10, 5, 6, 9, 14, 1],
    32: [
        0, 31, 16, 15, 8, 23, 24, 7, 4, 27, 20, 11, 12, 19, 28, 3,
        2, 29, 18, 13, 10, 21, 26, 5, 6, 25, 22, 9, 14, 17, 30, 1,
    ],
    64: [
        0, 63, 32, 31, 16, 47, 48, 15, 8, 55, 40, 23, 24, 39, 56, 7,
        4, 59, 36, 27, 20, 43, 52, 11, 12, 51, 44, 19, 28, 35, 60, 3,
        2, 61, 34, 29, 18, 45, 50, 13, 10, 53, 42, 21, 26, 37, 58, 5,
        6, 57, 38, 25, 22, 41, 54, 9, 14, 49, 46, 17, 30, 33, 62, 1,
    ],
}

SlotArray = List[Optional[Competitor]]


def is_power_of_two(n: int) -> bool:
    return n >= 1 and (n & (n - 1)) == 0


def seed_positions(bracket_size: int) -> List[int]:
    positions = IJF_SEED_POSITIONS.get(bracket_size)
    if positions is None:
        logger.warning("No IJF seed table for bracket size %d; using the 8-slot table", bracket_size)
        return IJF_SEED_POSITIONS[8]
    return positions


def resolve_seed_order(competitors: Sequence[Competitor], seed_order: Optional[Sequence[str]]) -> List[Competitor]:
    """
    Seeded competitors, best first.

    An explicit `seed_order` (competitor ids) wins; otherwise competitors with
    a `seed` rank are ordered by it. Duplicate ids/ranks and unknown ids are
    rejected.
    """
    by_id = {c.id: c for c in competitors}

    if seed_order is not None:
        if len(set(seed_order)) != len(seed_order):
            raise InputValidationError("Seed order lists a competitor more than once", rule="DUPLICATE_SEED")
        unknown = [cid for cid in seed_order if cid not in by_id]
        if unknown:
            raise InputValidationError(
                f"Seed order references unknown competitors: {', '.join(unknown)}",
                rule="UNKNOWN_SEED",
            )
        return [by_id[cid] for cid in seed_order]

    ranked = [c for c in competitors if c.seed is not None]
    ranks = [c.seed for c in ranked]
    if any(r < 1 for r in ranks):
        raise InputValidationError("Seed ranks must be positive integers", rule="INVALID_SEED_RANK")
    if len(set(ranks)) != len(ranks):
        raise InputValidationError("Seed ranks must be unique within a category", rule="DUPLICATE_SEED")
    return sorted(ranked, key=lambda c: c.seed)


def place(
    competitors: Sequence[Competitor],
    seed_order: Optional[Sequence[str]],
    bracket_size: int,
    rng: Optional[random.Random] = None,
) -> SlotArray:
    """
    Place competitors into `bracket_size` first-round slots.

    Seeds go to their IJF positions (and carry their final seed number);
    unseeded competitors fill the remaining slots in shuffled order. Empty
    slots are BYEs. No first-round pairing is left with two BYEs.
    """
    if not is_power_of_two(bracket_size) or bracket_size < 2:
        raise InputValidationError(f"Bracket size must be a power of two >= 2, got {bracket_size}", rule="BRACKET_SIZE")
    if len(competitors) > bracket_size:
        raise InputValidationError(
            f"{len(competitors)} competitors do not fit a bracket of {bracket_size}", rule="BRACKET_SIZE"
        )
    rng = rng or random.Random()

    seeded = resolve_seed_order(competitors, seed_order)
    seeded_ids = {c.id for c in seeded}
    unseeded = [
        c.model_copy(update={"seed": None}) if c.seed is not None else c
        for c in competitors
        if c.id not in seeded_ids
    ]
    rng.shuffle(unseeded)

    slots: SlotArray = [None] * bracket_size
    positions = seed_positions(bracket_size)
    for index, competitor in enumerate(seeded):
        if index >= len(positions):
            # More seeds than table entries: treat the rest as unseeded
            unseeded.append(competitor.model_copy(update={"seed": None}))
            continue
        slots[positions[index]] = competitor.model_copy(update={"seed": index + 1})

    remaining = iter(unseeded)
    for i in range(bracket_size):
        if slots[i] is None:
            slots[i] = next(remaining, None)

    return fix_double_byes(slots)


def double_bye_pairings(slots: SlotArray) -> List[int]:
    """First-round pairing indexes whose two slots are both empty."""
    return [i // 2 for i in range(0, len(slots), 2) if slots[i] is None and slots[i + 1] is None]


def fix_double_byes(slots: SlotArray, max_attempts: int = MAX_BYE_SWAP_ATTEMPTS) -> SlotArray:
    """
    Swap BYEs out of BYE-vs-BYE pairings.

    Each attempt moves the lowest-index unseeded competitor that currently
    has a real opponent into the first double-BYE pairing; a seeded competitor
    is moved only when no unseeded one can be. Raises StructuralError if
    pairings remain after max_attempts.
    """
    slots = list(slots)
    for _ in range(max_attempts):
        broken = double_bye_pairings(slots)
        if not broken:
            return slots
        target = broken[0] * 2

        donor = _find_donor(slots, target // 2)
        if donor is None:
            break
        slots[target], slots[donor] = slots[donor], slots[target]
        logger.debug("Moved slot %d into BYE-vs-BYE pairing at %d-%d", donor, target, target + 1)

    broken = double_bye_pairings(slots)
    if broken:
        raise StructuralError(
            f"Could not remove BYE-vs-BYE pairings {broken} after {max_attempts} attempts",
            rule="DOUBLE_BYE",
        )
    return slots


def _find_donor(slots: SlotArray, skip_pairing: int) -> Optional[int]:
    fallback = None
    for j, competitor in enumerate(slots):
        if competitor is None or j // 2 == skip_pairing:
            continue
        if slots[j ^ 1] is None:
            continue  # taking it would leave a new BYE-vs-BYE
        if competitor.seed is None:
            return j
        if fallback is None:
            fallback = j
    return fallback
