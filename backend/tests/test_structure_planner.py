"""Tournament structure: bracket size, rounds, match counts, repechage threshold."""
import pytest

from ijf_bracket.errors import InputValidationError
from ijf_bracket.models.match import MatchType
from ijf_bracket.services.structure_planner import (
    generate_bracket,
    next_power_of_two,
    plan,
    repechage_match_count,
)
from tests.helpers import make_competitors


@pytest.mark.parametrize("player_count", range(1, 65))
def test_bracket_size_is_smallest_power_of_two(player_count):
    structure = plan(player_count)
    size = structure.bracket_size

    assert size >= max(player_count, 2)
    assert size & (size - 1) == 0
    assert size // 2 < player_count or size == 2
    assert structure.byes == size - player_count


@pytest.mark.parametrize("player_count", range(1, 65))
def test_total_matches_counts_main_bracket_and_repechage(player_count):
    structure = plan(player_count)
    size = structure.bracket_size

    if player_count < 6 or size < 8:
        expected_repechage = 0
    else:
        expected_repechage = 2 * ((size // 4) // 2 - 1) + 2

    assert structure.main_matches == size - 1
    assert structure.repechage_matches == expected_repechage
    assert structure.total_matches == size - 1 + expected_repechage
    assert structure.repechage_enabled == (player_count >= 6)


def test_repechage_match_count_values():
    assert repechage_match_count(4) == 0
    assert repechage_match_count(8) == 2
    assert repechage_match_count(16) == 4
    assert repechage_match_count(32) == 8
    assert repechage_match_count(64) == 16


def test_five_competitors_plan():
    structure = plan(5)

    assert structure.bracket_size == 8
    assert structure.byes == 3
    assert structure.repechage_enabled is False
    assert structure.total_matches == 7


def test_round_names_for_sixteen():
    structure = plan(16)

    assert [r.name for r in structure.rounds] == ["Round of 16", "Quarterfinals", "Semifinals", "Final"]
    assert [r.matches for r in structure.rounds] == [8, 4, 2, 1]


def test_round_names_for_sixty_four_start_counting_from_one():
    names = [r.name for r in plan(64).rounds]

    assert names[0] == "Round 1"
    assert names[1:] == ["Round of 32", "Round of 16", "Quarterfinals", "Semifinals", "Final"]


def test_single_competitor_still_gets_two_slot_bracket():
    structure = plan(1)

    assert structure.bracket_size == 2
    assert structure.main_matches == 1


@pytest.mark.parametrize("player_count", [0, -3, 65, 200])
def test_out_of_range_player_count_rejected(player_count):
    with pytest.raises(InputValidationError) as exc:
        plan(player_count)
    assert exc.value.rule == "PLAYER_COUNT"


def test_next_power_of_two():
    assert [next_power_of_two(n) for n in (1, 2, 3, 5, 9, 33)] == [2, 2, 4, 8, 16, 64]


def test_generate_bracket_records_metadata():
    bracket = generate_bracket(make_competitors(11), None, "M-73")

    assert bracket.metadata.num_players == 11
    assert bracket.metadata.bracket_size == 16
    assert bracket.metadata.total_matches == 19
    assert bracket.metadata.repechage_enabled is True
    assert bracket.repechage == []
    assert sum(1 for m in bracket.main if m.match_type == MatchType.final) == 1


def test_generate_bracket_rejects_duplicate_competitor_ids():
    competitors = make_competitors(4)
    competitors.append(competitors[0])

    with pytest.raises(InputValidationError) as exc:
        generate_bracket(competitors, None, "M-73")
    assert exc.value.rule == "DUPLICATE_COMPETITOR"
