import logging
import random
from typing import Optional, Sequence

from ijf_bracket.errors import InputValidationError
from ijf_bracket.models.bracket import Bracket
from ijf_bracket.models.match import Competitor
from ijf_bracket.services.bracket_repository import BracketRepository
from ijf_bracket.services.structure_planner import generate_bracket

logger = logging.getLogger(__name__)


def validate_category(category: str) -> str:
    key = (category or "").strip()
    if not key or "/" in key:
        raise InputValidationError(f"Invalid category key {category!r}", rule="CATEGORY_KEY")
    return key


def create_draw(
    repository: BracketRepository,
    category: str,
    competitors: Sequence[Competitor],
    seed_order: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> Bracket:
    """Draw a category and persist it, replacing any earlier draw of the same category."""
    category = validate_category(category)
    blank = [c for c in competitors if not c.id.strip()]
    if blank:
        raise InputValidationError("Every competitor needs a non-empty id", rule="COMPETITOR_ID")

    bracket = generate_bracket(competitors, seed_order, category, rng=rng)
    repository.replace_bracket(bracket)
    logger.info("Draw saved for %s (%d matches)", category, len(bracket.main))
    return bracket
