from types import SimpleNamespace

import pytest

from volleyqueue.services.rotation.errors import InvalidInput
from volleyqueue.services.rotation.teams import balance_teams


def _players(*levels):
    return [SimpleNamespace(name=f'{level[0]}{i}', skill_level=level) for i, level in enumerate(levels)]


def _names(team):
    return [p.name for p in team.players]


def test_two_advanced_four_intermediate_six_beginners():
    players = _players(*(['advanced'] * 2 + ['intermediate'] * 4 + ['beginner'] * 6))
    team_a, team_b = balance_teams(players)

    assert len(team_a.players) == len(team_b.players) == 6
    assert abs(team_a.average_skill - team_b.average_skill) <= 0.5
    # Alternation restarts with team A in every tier
    assert _names(team_a) == ['a0', 'i2', 'i4', 'b6', 'b8', 'b10']
    assert _names(team_b) == ['a1', 'i3', 'i5', 'b7', 'b9', 'b11']


def test_oversized_team_hands_players_from_its_end():
    players = _players(*(['advanced'] * 3 + ['intermediate'] * 3 + ['beginner'] * 6))
    team_a, team_b = balance_teams(players)

    # A was dealt a0 a2 i3 i5 b6 b8 b10; its last player moves over
    assert _names(team_a) == ['a0', 'a2', 'i3', 'i5', 'b6', 'b8']
    assert _names(team_b) == ['a1', 'i4', 'b7', 'b9', 'b11', 'b10']
    assert team_a.average_skill == pytest.approx(2.0)
    assert team_b.average_skill == pytest.approx(1.5)


def test_order_of_input_decides_the_split():
    players = _players(*(['beginner'] * 12))
    first = balance_teams(players)
    again = balance_teams(players)
    assert [_names(t) for t in first] == [_names(t) for t in again]


@pytest.mark.parametrize('count', [0, 11, 13])
def test_requires_exactly_twelve(count):
    with pytest.raises(InvalidInput):
        balance_teams(_players(*(['beginner'] * count)))


def test_unknown_skill_level_is_rejected():
    players = _players(*(['beginner'] * 11 + ['expert']))
    with pytest.raises(InvalidInput):
        balance_teams(players)
