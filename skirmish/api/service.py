"""
API Service - Business logic layer between API and engine.

The service:
1. Validates requests into engine records
2. Manages battle sessions and their game loops
3. Formats battle state for clients

This layer is framework-agnostic (can be used with FastAPI, Flask, etc.)
"""

from __future__ import annotations
from dataclasses import dataclass, field
import logging
import random

from .schemas import (
    # Requests
    ActionRequest,
    CreateBattleRequest,
    # Responses
    ActionResponse,
    AITurnResponse,
    BattleStateResponse,
    EndBattleResponse,
    ErrorResponse,
    PlanResponse,
    # Shared
    AttackInfo,
    CreatureInfo,
    EffectInfo,
    ItemInfo,
    LogEntryInfo,
    PlannedActionInfo,
    SideInfo,
    # Enums
    DifficultyLevel,
    ErrorCode,
    ItemEffectName,
    RarityLevel,
    SessionStatus,
)
from ..bots import plan_ai_action
from ..engine_core.action import Action
from ..engine_core.combat import AttackResult
from ..engine_core.energy import EnergyLedger
from ..engine_core.state import Creature, Item, Side, SideState
from ..session import GameLoop, Session, SessionManager

logger = logging.getLogger(__name__)


LOG_TAIL = 50


def session_not_found(battle_id: str) -> ErrorResponse:
    return ErrorResponse(
        error=f"Battle {battle_id} not found",
        error_code=ErrorCode.SESSION_NOT_FOUND,
        details={"battle_id": battle_id},
    )


@dataclass
class APIService:
    """
    Main API service for battle clients.

    Usage:
        service = APIService()

        # Start a battle
        battle = service.create_battle(request)

        # Player intent, followed by the AI turn when the player ends theirs
        response = service.apply_action(battle.battle_id, ActionRequest(...))
    """
    session_manager: SessionManager = field(default_factory=SessionManager)

    # Game loops per session
    _game_loops: dict[str, GameLoop] = field(default_factory=dict)

    def create_battle(self, request: CreateBattleRequest) -> BattleStateResponse:
        """
        Start a new battle against a generated opponent.

        Raises ValueError when the roster cannot form a battle.
        """
        session = self.session_manager.create_session(
            player_creatures=[c.to_engine() for c in request.creatures],
            difficulty=request.difficulty.value,
            tools=[t.to_engine() for t in request.tools],
            spells=[s.to_engine() for s in request.spells],
            seed=request.seed,
        )
        self._game_loops[session.session_id] = GameLoop(session)
        return self._build_battle_state(session)

    def get_battle(self, battle_id: str) -> BattleStateResponse | ErrorResponse:
        session = self.session_manager.get_session(battle_id)
        if not session:
            return session_not_found(battle_id)
        return self._build_battle_state(session)

    def apply_action(self, battle_id: str, request: ActionRequest) -> ActionResponse | ErrorResponse:
        """
        Apply a player intent.

        Engine rejections come back as an ErrorResponse carrying the
        reducer's error code; the battle is left unchanged.
        """
        session = self.session_manager.get_session(battle_id)
        game_loop = self._game_loops.get(battle_id)
        if not session or not game_loop:
            return session_not_found(battle_id)

        action = request.intent.to_action(Side.PLAYER)
        result = game_loop.submit_player_action(action)
        if not result.success:
            return ErrorResponse(
                error=result.error or "Action rejected",
                error_code=ErrorCode.from_engine(result.error_code),
                details={"battle_id": battle_id, "action": action.describe(), "log": result.log},
            )

        return ActionResponse(
            success=True,
            log=result.log,
            attack=self._convert_attack(result.attack),
            ai_actions=result.ai_actions,
            skipped_actions=result.skipped_actions,
            battle=self._build_battle_state(session),
        )

    def plan(self, battle_id: str) -> PlanResponse | ErrorResponse:
        """
        Preview what the planner would do for the active side.

        Planning runs on a copy of the session's rng, so previews never
        change later rolls.
        """
        session = self.session_manager.get_session(battle_id)
        if not session:
            return session_not_found(battle_id)

        rng = random.Random()
        rng.setstate(session.rng.getstate())
        plan = plan_ai_action(session.battle, rng=rng)
        actions = plan if isinstance(plan, list) else [plan]
        return PlanResponse(
            battle_id=battle_id,
            side=session.battle.active_side.value,
            is_sequence=isinstance(plan, list),
            actions=[self._convert_planned(a) for a in actions],
        )

    def run_ai_turn(self, battle_id: str) -> AITurnResponse | ErrorResponse:
        session = self.session_manager.get_session(battle_id)
        game_loop = self._game_loops.get(battle_id)
        if not session or not game_loop:
            return session_not_found(battle_id)

        result = game_loop.run_ai_turn()
        if not result.success:
            return ErrorResponse(
                error=result.error or "AI turn failed",
                error_code=ErrorCode.from_engine(result.error_code),
                details={"battle_id": battle_id},
            )
        return AITurnResponse(
            success=True,
            log=result.log,
            ai_actions=result.ai_actions,
            skipped_actions=result.skipped_actions,
            battle=self._build_battle_state(session),
        )

    def end_battle(self, battle_id: str, reason: str = "user_ended") -> EndBattleResponse | ErrorResponse:
        """
        End a battle and drop its state.
        """
        ended = self.session_manager.end_session(battle_id, reason)
        self._game_loops.pop(battle_id, None)
        if not ended:
            return session_not_found(battle_id)
        return EndBattleResponse(success=True, battle_id=battle_id)

    def list_battles(self) -> list[str]:
        return self.session_manager.list_active_sessions()

    # =========================================================================
    # Helper methods
    # =========================================================================

    def _status(self, session: Session) -> SessionStatus:
        if session.battle.is_over:
            return SessionStatus.GAME_OVER
        if session.battle.active_side is Side.PLAYER:
            return SessionStatus.YOUR_TURN
        return SessionStatus.AI_TURN

    def _build_battle_state(self, session: Session) -> BattleStateResponse:
        """Build complete battle state response."""
        battle = session.battle
        ledger = EnergyLedger.for_difficulty(battle.difficulty)
        return BattleStateResponse(
            battle_id=battle.battle_id,
            status=self._status(session),
            difficulty=DifficultyLevel(battle.difficulty.value),
            turn=battle.turn,
            active_side=battle.active_side.value,
            phase=battle.phase.value,
            player=self._convert_side(battle.player, ledger, reveal=True),
            enemy=self._convert_side(battle.enemy, ledger, reveal=False),
            log=[
                LogEntryInfo(turn=entry.turn, side=entry.side.value if entry.side else None, message=entry.message)
                for entry in battle.log[-LOG_TAIL:]
            ],
            winner=battle.winner.value if battle.winner else None,
        )

    def _convert_side(self, side: SideState, ledger: EnergyLedger, reveal: bool) -> SideInfo:
        """Convert one side; the hidden side shows only its field and counts."""
        return SideInfo(
            side=side.side.value,
            energy=side.energy,
            max_energy=ledger.max_energy(side.field),
            field=[self._convert_creature(c) for c in side.field],
            hand=[self._convert_creature(c) for c in side.hand] if reveal else [],
            hand_count=len(side.hand),
            deck_count=len(side.deck),
            tools=[self._convert_item(t) for t in side.tools] if reveal else [],
            spells=[self._convert_item(s) for s in side.spells] if reveal else [],
            defeated=side.defeated,
        )

    def _convert_creature(self, creature: Creature) -> CreatureInfo:
        stats = creature.battle_stats
        return CreatureInfo(
            creature_id=creature.creature_id,
            species_id=creature.species_id,
            name=creature.name,
            rarity=RarityLevel(creature.rarity.value),
            form=creature.form,
            current_health=creature.current_health,
            max_health=creature.max_health,
            physical_attack=stats.physical_attack if stats else 0,
            magical_attack=stats.magical_attack if stats else 0,
            physical_defense=stats.physical_defense if stats else 0,
            magical_defense=stats.magical_defense if stats else 0,
            deployment_cost=creature.deployment_cost,
            is_defending=creature.is_defending,
            next_attack_bonus=creature.next_attack_bonus,
            effects=[
                EffectInfo(
                    effect_id=effect.effect_id,
                    name=effect.name,
                    kind=effect.kind.value,
                    duration=effect.duration,
                    stat_modifications=dict(effect.stat_modifications),
                    health_over_time=effect.health_over_time,
                )
                for effect in creature.effects
            ],
        )

    def _convert_item(self, item: Item) -> ItemInfo:
        return ItemInfo(
            item_id=item.item_id,
            name=item.name,
            item_type=item.item_type,
            effect=ItemEffectName(item.effect.value),
            rarity=RarityLevel(item.rarity.value),
            energy_cost=item.energy_cost,
        )

    def _convert_attack(self, attack: AttackResult | None) -> AttackInfo | None:
        if attack is None:
            return None
        return AttackInfo(
            attacker_id=attack.attacker.creature_id,
            defender_id=attack.defender.creature_id,
            damage=attack.damage,
            attack_type=attack.attack_type,
            effectiveness=attack.effectiveness,
            effectiveness_text=attack.effectiveness_text,
            is_critical=attack.is_critical,
            is_dodged=attack.is_dodged,
            defeated=attack.defeated,
        )

    def _convert_planned(self, action: Action) -> PlannedActionInfo:
        return PlannedActionInfo(
            action_type=action.action_type.value,
            description=action.describe(),
            energy_cost=action.energy_cost,
            creature_id=action.payload.creature_id,
            target_id=action.payload.target_id,
            item_id=action.payload.item_id,
        )
