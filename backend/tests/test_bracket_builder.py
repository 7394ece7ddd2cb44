"""Main bracket tree: rounds, forward links, BYE walkovers and empty placeholders."""
import itertools
import random

import pytest

from ijf_bracket.errors import InputValidationError, StructuralError
from ijf_bracket.models.match import MatchStatus, MatchType, SlotSide
from ijf_bracket.services import bracket_builder
from ijf_bracket.services.seed_placement import place
from ijf_bracket.services.structure_planner import next_power_of_two
from tests.helpers import make_competitors


def _sequential_ids():
    counter = itertools.count(1)
    return lambda: f"m{next(counter)}"


def _build(player_count, seeded=0, rng_seed=0):
    size = next_power_of_two(player_count)
    slots = place(make_competitors(player_count, seeded=seeded), None, size, rng=random.Random(rng_seed))
    return bracket_builder.build(slots, "W-57", id_factory=_sequential_ids()).main


@pytest.mark.parametrize("player_count", [2, 3, 5, 6, 8, 12, 16, 23, 32, 47, 64])
def test_main_bracket_forms_single_tree(player_count):
    matches = _build(player_count, seeded=min(player_count, 4))
    size = next_power_of_two(player_count)
    by_id = {m.id: m for m in matches}

    playable = [m for m in matches if m.match_type != MatchType.empty]
    finals = [m for m in matches if m.match_type == MatchType.final]
    assert len(playable) == size - 1
    assert len(finals) == 1

    final = finals[0]
    for match in matches:
        hops = 0
        current = match
        while current.next_match_id is not None:
            current = by_id[current.next_match_id]
            hops += 1
            assert hops < 10
        assert current.id == final.id

    for target in matches:
        feeders = [m for m in matches if m.next_match_id == target.id]
        assert len(feeders) in (0, 2)
        if feeders:
            assert {f.winner_to for f in feeders} == {SlotSide.A, SlotSide.B}


def test_bye_pairings_complete_and_advance_on_build():
    matches = _build(5, seeded=1)
    by_id = {m.id: m for m in matches}

    walkovers = [m for m in matches if m.round == 1 and m.win_by_bye]
    assert len(walkovers) == 3
    for match in walkovers:
        assert match.status == MatchStatus.completed
        assert match.loser is None
        target = by_id[match.next_match_id]
        assert target.slot(match.winner_to).competitor.id == match.winner


def test_first_parent_feeds_slot_a():
    matches = _build(8)
    round_one = [m for m in matches if m.round == 1]
    round_two = [m for m in matches if m.round == 2]

    assert round_one[0].next_match_id == round_two[0].id
    assert round_one[0].winner_to == SlotSide.A
    assert round_one[1].next_match_id == round_two[0].id
    assert round_one[1].winner_to == SlotSide.B


def test_round_names_and_pools():
    matches = _build(16)

    assert {m.round_name for m in matches if m.round == 1} == {"Round of 16"}
    assert {m.round_name for m in matches if m.round == 2} == {"Quarterfinals"}
    assert [m.pool for m in matches if m.round == 1] == ["A", "A", "B", "B", "C", "C", "D", "D"]
    assert [m.pool for m in matches if m.round == 2] == ["A", "B", "C", "D"]
    final = next(m for m in matches if m.match_type == MatchType.final)
    assert final.pool is None
    assert final.next_match_id is None


def test_two_slot_bracket_is_a_single_final():
    matches = _build(2, seeded=2)

    assert len(matches) == 1
    assert matches[0].match_type == MatchType.final
    assert matches[0].round_name == "Final"
    assert matches[0].is_playable


def test_single_competitor_wins_by_bye():
    matches = _build(1)

    assert matches[0].status == MatchStatus.completed
    assert matches[0].winner == "p1"


def test_double_empty_pairing_is_structural_error():
    a, b = make_competitors(2)

    with pytest.raises(StructuralError) as exc:
        bracket_builder.build([a, b, None, None], "W-57")
    assert exc.value.rule == "DOUBLE_BYE"


def test_allow_empty_creates_skipped_placeholder():
    a, b = make_competitors(2)
    matches = bracket_builder.build([a, b, None, None], "W-57", id_factory=_sequential_ids(), allow_empty=True).main

    empty = [m for m in matches if m.match_type == MatchType.empty]
    assert len(empty) == 1
    assert empty[0].status == MatchStatus.skipped
    final = next(m for m in matches if m.match_type == MatchType.final)
    assert final.slot_b.is_bye
    assert not final.slot_a.is_filled


def test_slot_array_length_must_be_power_of_two():
    with pytest.raises(InputValidationError):
        bracket_builder.build(make_competitors(3), "W-57")


def test_pool_for_position_quadrants():
    assert [bracket_builder.pool_for_position(i, 8) for i in range(8)] == list("AABBCCDD")
    assert bracket_builder.pool_for_position(0, 2) == "A"
    assert bracket_builder.pool_for_position(1, 2) == "C"
