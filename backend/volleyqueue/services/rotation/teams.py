from dataclasses import dataclass, field
from typing import Sequence

from volleyqueue.models import SKILL_ADVANCED, SKILL_BEGINNER, SKILL_INTERMEDIATE, SKILL_SCORES
from .errors import InvalidInput

TEAM_SIZE = 6
TIER_ORDER = (SKILL_ADVANCED, SKILL_INTERMEDIATE, SKILL_BEGINNER)


@dataclass
class Team:
    players: list = field(default_factory=list)

    @property
    def average_skill(self) -> float:
        if not self.players:
            return 0.0
        return sum(SKILL_SCORES.get(p.skill_level, 1) for p in self.players) / len(self.players)

    def to_dict(self):
        return {
            'players': [p.to_dict() for p in self.players],
            'average_skill': round(self.average_skill, 2),
        }


def balance_teams(players: Sequence) -> tuple:
    """Split exactly twelve players into two teams of six.

    Each skill tier, strongest first, is dealt alternately to team A and
    team B in roster order; an oversized team then hands players from the
    end of its list to the other one. Deterministic for a given order.
    """
    if len(players) != TEAM_SIZE * 2:
        raise InvalidInput(f'Exactly {TEAM_SIZE * 2} confirmed players are needed to build teams')
    if any(p.skill_level not in TIER_ORDER for p in players):
        raise InvalidInput('Every player needs a known skill level')

    team_a, team_b = Team(), Team()
    for tier in TIER_ORDER:
        tier_players = [p for p in players if p.skill_level == tier]
        for index, player in enumerate(tier_players):
            (team_a if index % 2 == 0 else team_b).players.append(player)

    while len(team_a.players) > TEAM_SIZE:
        team_b.players.append(team_a.players.pop())
    while len(team_b.players) > TEAM_SIZE:
        team_a.players.append(team_b.players.pop())
    return team_a, team_b
