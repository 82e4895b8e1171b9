"""
Game Rules
==========

Rules for each supported game, looked up by game kind.

Version: 0.1.0
"""

from zkarena.games.arena import ArenaRules
from zkarena.games.base import GameAction, GameRules
from zkarena.games.draw import DrawRules
from zkarena.games.duel import DuelRules
from zkarena.games.poker import PokerRules
from zkarena.ledger.models import GameKind

_RULES: dict[GameKind, GameRules] = {
    rules.kind: rules for rules in (ArenaRules(), DuelRules(), PokerRules(), DrawRules())
}


def get_rules(game: GameKind | str) -> GameRules:
    """
    Raises:
        ValueError: If the game kind is unknown
    """
    return _RULES[GameKind(game)]


__all__ = [
    "GameAction",
    "GameRules",
    "ArenaRules",
    "DuelRules",
    "PokerRules",
    "DrawRules",
    "get_rules",
]
