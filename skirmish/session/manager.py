"""
Session Manager - Creates and manages battle sessions.

LIFECYCLE:
1. Client starts a battle -> session created with the opening state
2. During the battle:
   - Player intents go through the reducer
   - The AI side's turn is planned and replayed step by step
3. Battle ends or is abandoned -> session destroyed, state deleted

PERSISTENCE RULES:
- NO database
- Battle state is ephemeral (session-scoped only)
- Each session owns its rng, so a seeded battle replays the same rolls
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable
import logging
import random
import time
import uuid

from ..bots import ActionPlanner, personality_for
from ..engine_core.setup import start_battle
from ..engine_core.state import BattleState, Creature, Difficulty, Side, Spell, Tool

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """State of a battle session."""
    ACTIVE = "active"  # Waiting for the player
    AI_TURN = "ai_turn"  # Processing the AI side's turn
    GAME_OVER = "game_over"  # Battle completed
    ABANDONED = "abandoned"  # Player quit


@dataclass
class Session:
    """
    An ephemeral battle session.

    Contains:
    - Current battle state
    - The planner playing the enemy side
    - The rng shared by combat rolls and the planner
    - Session metadata

    The session is destroyed when the battle ends.
    State is NOT persisted.
    """
    session_id: str
    battle: BattleState
    created_at: float
    planner: ActionPlanner
    rng: random.Random

    state: SessionState = SessionState.ACTIVE
    seed: int | None = None

    # Session metadata
    metadata: dict[str, Any] = field(default_factory=dict)

    def is_active(self) -> bool:
        """Check if session is still active."""
        return self.state in {SessionState.ACTIVE, SessionState.AI_TURN}

    def is_player_turn(self) -> bool:
        return not self.battle.is_over and self.battle.active_side is Side.PLAYER

    def update(self, battle: BattleState) -> None:
        """Store a new battle state and track game over."""
        self.battle = battle
        if battle.is_over:
            self.state = SessionState.GAME_OVER


class SessionManager:
    """
    Manages battle sessions.

    Responsibilities:
    - Create sessions with a fresh battle
    - Track active sessions
    - Clean up completed sessions

    No persistence - sessions are in-memory only.
    """

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def create_session(
        self,
        player_creatures: Iterable[Creature],
        difficulty: Difficulty | str = Difficulty.MEDIUM,
        tools: Iterable[Tool] = (),
        spells: Iterable[Spell] = (),
        seed: int | None = None,
    ) -> Session:
        """
        Create a new battle session.

        Raises ValueError for an empty or inconsistent player roster.
        """
        session_id = str(uuid.uuid4())
        battle = start_battle(
            player_creatures,
            difficulty,
            tools=tools,
            spells=spells,
            seed=seed,
            battle_id=session_id,
        )

        rng = random.Random(seed)
        planner = ActionPlanner(personality=personality_for(battle.difficulty), rng=rng)
        session = Session(
            session_id=session_id,
            battle=battle,
            created_at=time.time(),
            planner=planner,
            rng=rng,
            seed=seed,
        )

        self._sessions[session_id] = session
        logger.info("Created session %s (%s)", session_id, battle.difficulty.value)
        return session

    def get_session(self, session_id: str) -> Session | None:
        """Get a session by ID."""
        return self._sessions.get(session_id)

    def end_session(self, session_id: str, reason: str = "completed") -> bool:
        """
        End a session and clean up.

        The session is removed from memory.
        Returns False when no such session exists.
        """
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        if reason == "completed":
            session.state = SessionState.GAME_OVER
        else:
            session.state = SessionState.ABANDONED
        logger.info("Ended session %s (%s)", session_id, reason)
        return True

    def list_active_sessions(self) -> list[str]:
        """List IDs of active sessions."""
        return [
            sid for sid, session in self._sessions.items()
            if session.is_active()
        ]

    def cleanup_stale_sessions(self, max_age_seconds: int = 3600) -> int:
        """
        Clean up finished sessions older than max_age.

        Called periodically to free memory.
        """
        current_time = time.time()
        to_remove = [
            session_id for session_id, session in self._sessions.items()
            if current_time - session.created_at > max_age_seconds and not session.is_active()
        ]
        for session_id in to_remove:
            self.end_session(session_id, reason="stale")
        return len(to_remove)
