"""Read-only category views: statistics, ready matches, medal standings."""
import random

from ijf_bracket.services.draw_service import create_draw
from ijf_bracket.services.standings import category_stats, final_standings, ready_matches
from tests.helpers import HOLDER, main_round, make_competitors, play, play_all


def test_stats_for_fresh_eight_player_draw(repository):
    bracket = create_draw(repository, "M-100", make_competitors(8), rng=random.Random(0))

    stats = category_stats(bracket)

    assert stats.total == 7
    assert stats.pending == 4
    assert stats.not_ready == 3
    assert stats.completed == 0
    assert stats.tournament_complete is False
    assert stats.champion is None


def test_stats_track_locked_and_running_matches(progression, repository):
    bracket = create_draw(repository, "M-100", make_competitors(8), rng=random.Random(0))
    first, second = main_round(bracket, 1)[:2]
    progression.lock_match(first.id, HOLDER)
    progression.lock_match(second.id, "mat-2")
    progression.start_match(second.id, "mat-2")

    stats = category_stats(repository.load_bracket("M-100"))

    assert stats.locked == 1
    assert stats.in_progress == 1
    assert stats.pending == 2


def test_stats_count_byes_as_completed(repository):
    bracket = create_draw(repository, "W-44", make_competitors(5), rng=random.Random(0))

    stats = category_stats(bracket)

    assert stats.completed == 3
    assert stats.pending + stats.not_ready == 4
    assert stats.total == 7


def test_ready_matches_in_bracket_order(progression, repository):
    bracket = create_draw(repository, "M-100", make_competitors(8), rng=random.Random(0))
    round_one = main_round(bracket, 1)
    play(progression, round_one[0].id)

    ready = ready_matches(repository.load_bracket("M-100"))

    assert [m.id for m in ready] == [m.id for m in round_one[1:]]


def test_complete_category_has_champion_and_full_podium(progression, repository):
    create_draw(repository, "W-78", make_competitors(8, seeded=2), rng=random.Random(12))

    play_all(progression, "W-78", rng=random.Random(12))

    bracket = repository.load_bracket("W-78")
    stats = category_stats(bracket)
    standings = final_standings(bracket)
    final = bracket.final()

    assert stats.tournament_complete is True
    assert stats.total == 11
    assert stats.completed == 11
    assert stats.champion.id == final.winner
    assert standings.gold.id == final.winner
    assert standings.silver.id == final.loser
    bronze_matches = [m for m in bracket.repechage if m.round == "bronze"]
    assert {c.id for c in standings.bronze} == {m.winner for m in bronze_matches}
    assert {c.id for c in standings.fifth} == {m.loser for m in bronze_matches}


def test_partial_standings_leave_undecided_positions_out(progression, repository):
    create_draw(repository, "W-78", make_competitors(8), rng=random.Random(0))

    standings = final_standings(repository.load_bracket("W-78"))

    assert standings.gold is None
    assert standings.silver is None
    assert standings.bronze == []
    assert standings.fifth == []
