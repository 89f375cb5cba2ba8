"""
API Module - Battle client interface.

Exposes the engine via REST API.
A client:
1. Starts a battle with its creature roster
2. Submits player intents
3. Receives the AI side's turn and the new state

All state is session-scoped. No persistent user accounts required.
"""

from .schemas import (
    # Requests
    ActionRequest,
    CreateBattleRequest,
    CreatureTemplate,
    SpellTemplate,
    ToolTemplate,
    # Responses
    ActionResponse,
    AITurnResponse,
    BattleStateResponse,
    ErrorResponse,
    PlanResponse,
    # Enums
    ErrorCode,
)
from .service import APIService
from .app import create_app

__all__ = [
    # Requests
    "ActionRequest",
    "CreateBattleRequest",
    "CreatureTemplate",
    "SpellTemplate",
    "ToolTemplate",
    # Responses
    "ActionResponse",
    "AITurnResponse",
    "BattleStateResponse",
    "ErrorResponse",
    "PlanResponse",
    "ErrorCode",
    # Service
    "APIService",
    "create_app",
]
