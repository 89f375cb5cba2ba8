"""
FastAPI Application - REST API for battle clients.

Endpoints:
    POST   /api/v1/battles                  Start a battle
    GET    /api/v1/battles                  List active battles
    GET    /api/v1/battles/{id}             Get battle state
    DELETE /api/v1/battles/{id}             End a battle
    POST   /api/v1/battles/{id}/actions     Submit a player intent
    GET    /api/v1/battles/{id}/plan        Preview the planner's move
    POST   /api/v1/battles/{id}/ai-turn     Run the AI side's turn
    WS     /api/v1/battles/{id}/ws          WebSocket for real-time updates

AI Turn Flow:
    1. POST /actions with {"intent": {"type": "end_turn"}}
    2. The AI side plans once, each step is re-validated and applied,
       then the AI ends its turn
    3. Response includes ai_actions, skipped_actions and the new state

All responses are JSON with explicit Pydantic schemas.
"""

from typing import Optional, Union
import json
import logging
import os

# Environment configuration
SKIRMISH_ENV = os.getenv("SKIRMISH_ENV", "development")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

API_VERSION = "0.1.0"

logger = logging.getLogger(__name__)


def create_app(service=None):
    """
    Create the FastAPI application.

    Args:
        service: Optional APIService instance (creates new if not provided)

    Returns:
        FastAPI application instance
    """
    from fastapi import FastAPI, Query, WebSocket, WebSocketDisconnect
    from fastapi.middleware.cors import CORSMiddleware
    from fastapi.responses import JSONResponse

    from .service import APIService
    from .schemas import (
        # Request models
        ActionRequest,
        CreateBattleRequest,
        # Response models
        ActionResponse,
        AITurnResponse,
        BattleStateResponse,
        EndBattleResponse,
        ErrorResponse,
        HealthResponse,
        PlanResponse,
        # Enums
        ErrorCode,
    )

    app = FastAPI(
        title="Skirmish Battle API",
        description="""
Creature battle engine with a ranked-tactic AI opponent.

## Turn Flow

1. Submit player intents via `POST /actions`
2. Ending the turn (`{"type": "end_turn"}`) runs the AI side's whole turn
3. The response carries the AI's applied and skipped steps

## Error Codes

| Code | Description |
|------|-------------|
| `SESSION_NOT_FOUND` | Battle does not exist |
| `VALIDATION_ERROR` | Roster or request body is invalid |
| `INSUFFICIENT_ENERGY` | Not enough energy for the intent |
| `NOT_FOUND` | Creature or item not found |
| `FIELD_FULL` | No space left on the field |
| `ALREADY_ACTED` | Creature is defending |
| `WRONG_PHASE` | Not the player's turn |
| `GAME_OVER` | Battle already decided |
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api_service = service or APIService()

    # WebSocket connections
    ws_connections: dict[str, list[WebSocket]] = {}

    # =========================================================================
    # Error helpers
    # =========================================================================

    def make_error_response(
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Optional[dict] = None,
    ) -> JSONResponse:
        """Create a standardized error response."""
        return JSONResponse(
            status_code=status_code,
            content=ErrorResponse(
                error=message,
                error_code=error_code,
                details=details,
            ).model_dump(mode="json"),
        )

    def error_to_response(response: ErrorResponse) -> JSONResponse:
        status_code = 404 if response.error_code == ErrorCode.SESSION_NOT_FOUND else 400
        return make_error_response(response.error_code, response.error, status_code, response.details)

    async def broadcast_to_battle(battle_id: str, message: dict):
        """Broadcast a message to all WebSocket connections for a battle."""
        if battle_id in ws_connections:
            dead_connections = []
            for ws in ws_connections[battle_id]:
                try:
                    await ws.send_json(message)
                except (RuntimeError, WebSocketDisconnect):
                    dead_connections.append(ws)
            for ws in dead_connections:
                ws_connections[battle_id].remove(ws)

    # =========================================================================
    # Battle Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/battles",
        response_model=BattleStateResponse,
        status_code=201,
        responses={422: {"model": ErrorResponse, "description": "Invalid roster"}},
        tags=["Battles"],
        summary="Start a new battle",
    )
    async def create_battle(body: CreateBattleRequest) -> Union[BattleStateResponse, JSONResponse]:
        """
        Start a battle against a generated opponent.

        The first three creatures form the opening hand, the rest the deck.
        Pass `seed` for a reproducible opponent and reproducible rolls.
        """
        try:
            return api_service.create_battle(body)
        except ValueError as e:
            return make_error_response(ErrorCode.VALIDATION_ERROR, str(e), status_code=422)

    @app.get(
        "/api/v1/battles",
        response_model=list[str],
        tags=["Battles"],
        summary="List active battles",
    )
    async def list_battles() -> list[str]:
        return api_service.list_battles()

    @app.get(
        "/api/v1/battles/{battle_id}",
        response_model=BattleStateResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Battles"],
        summary="Get battle state",
    )
    async def get_battle(battle_id: str) -> Union[BattleStateResponse, JSONResponse]:
        """Get the current state of a battle. The enemy hand is hidden."""
        response = api_service.get_battle(battle_id)
        if hasattr(response, "error"):
            return error_to_response(response)
        return response

    @app.delete(
        "/api/v1/battles/{battle_id}",
        response_model=EndBattleResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Battles"],
        summary="End a battle",
    )
    async def end_battle(
        battle_id: str,
        reason: str = Query("user_ended", description="Reason for ending"),
    ) -> Union[EndBattleResponse, JSONResponse]:
        """End a battle and release its state."""
        response = api_service.end_battle(battle_id, reason)
        if hasattr(response, "error"):
            return error_to_response(response)
        return response

    # =========================================================================
    # Turn Endpoints
    # =========================================================================

    @app.post(
        "/api/v1/battles/{battle_id}/actions",
        response_model=ActionResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Intent rejected"},
            404: {"model": ErrorResponse, "description": "Battle not found"},
        },
        tags=["Turns"],
        summary="Submit a player intent",
    )
    async def submit_action(battle_id: str, body: ActionRequest) -> Union[ActionResponse, JSONResponse]:
        """
        Submit one player intent.

        **Request Body:**
        ```json
        {"intent": {"type": "attack", "attacker_id": "c1", "target_id": "enemy_0"}}
        ```

        Ending the turn runs the AI side's turn before responding.
        """
        response = api_service.apply_action(battle_id, body)
        if hasattr(response, "error"):
            return error_to_response(response)

        await broadcast_to_battle(battle_id, {
            "type": "state_update",
            "payload": response.battle.model_dump(mode="json"),
        })
        if response.battle.winner:
            await broadcast_to_battle(battle_id, {"type": "game_over", "payload": {"winner": response.battle.winner}})
        return response

    @app.get(
        "/api/v1/battles/{battle_id}/plan",
        response_model=PlanResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Turns"],
        summary="Preview the planner's move",
    )
    async def get_plan(battle_id: str) -> Union[PlanResponse, JSONResponse]:
        """What the planner would do for the active side. Nothing is applied."""
        response = api_service.plan(battle_id)
        if hasattr(response, "error"):
            return error_to_response(response)
        return response

    @app.post(
        "/api/v1/battles/{battle_id}/ai-turn",
        response_model=AITurnResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Not the AI side's turn"},
            404: {"model": ErrorResponse, "description": "Battle not found"},
        },
        tags=["Turns"],
        summary="Run the AI side's turn",
    )
    async def run_ai_turn(battle_id: str) -> Union[AITurnResponse, JSONResponse]:
        """Run the AI side's turn when a client drives the loop itself."""
        response = api_service.run_ai_turn(battle_id)
        if hasattr(response, "error"):
            return error_to_response(response)

        await broadcast_to_battle(battle_id, {
            "type": "ai_turn",
            "payload": {"ai_actions": response.ai_actions, "skipped_actions": response.skipped_actions},
        })
        return response

    # =========================================================================
    # WebSocket Endpoint
    # =========================================================================

    @app.websocket("/api/v1/battles/{battle_id}/ws")
    async def websocket_endpoint(websocket: WebSocket, battle_id: str):
        """
        WebSocket for real-time updates.

        Messages from server:
        - state_update: Battle state changed
        - ai_turn: The AI side played its turn
        - game_over: Battle decided
        - error: Error occurred

        Messages from client:
        - ping: Keep-alive
        """
        await websocket.accept()
        ws_connections.setdefault(battle_id, []).append(websocket)

        try:
            response = api_service.get_battle(battle_id)
            if not hasattr(response, "error"):
                await websocket.send_json({
                    "type": "state_update",
                    "payload": response.model_dump(mode="json"),
                })

            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                    if message.get("type") == "ping":
                        await websocket.send_json({"type": "pong"})
                except json.JSONDecodeError:
                    await websocket.send_json({
                        "type": "error",
                        "payload": {"message": "Invalid JSON"},
                    })

        except WebSocketDisconnect:
            logger.debug("WebSocket for battle %s disconnected", battle_id)
        finally:
            if websocket in ws_connections.get(battle_id, []):
                ws_connections[battle_id].remove(websocket)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get(
        "/api/v1/health",
        response_model=HealthResponse,
        tags=["System"],
        summary="Health check",
    )
    async def health_check() -> HealthResponse:
        """Health check endpoint for load balancers."""
        return HealthResponse(
            status="healthy",
            service="skirmish",
            version=API_VERSION,
            environment=SKIRMISH_ENV,
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Skirmish Battle API",
            "version": API_VERSION,
            "docs": "/api/docs",
            "health": "/api/v1/health",
        }

    return app


# For running directly: uvicorn skirmish.api.app:app
app = create_app()
