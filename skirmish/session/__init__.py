"""
Session Module - Manages ephemeral battle sessions.

A session represents one battle:
- Created when the player starts a battle
- Holds the current battle state
- Plays the AI side's turns
- Destroyed when the battle ends

Sessions are EPHEMERAL:
- No persistence to database
- Ends cleanly when the battle completes
"""

from .manager import SessionManager, Session, SessionState
from .game_loop import GameLoop, LoopState, TurnResult

__all__ = [
    "SessionManager",
    "Session",
    "SessionState",
    "GameLoop",
    "LoopState",
    "TurnResult",
]
