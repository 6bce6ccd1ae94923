from pickpool import db  # noqa: F401 - imported for model imports

from .game_result import GameResult
from .pick import Pick
from .player import Player
from .week import Week

__all__ = [
    "Player",
    "Week",
    "Pick",
    "GameResult",
]
