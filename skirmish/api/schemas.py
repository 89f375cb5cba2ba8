"""
Pydantic Schemas for API - Request/response models for OpenAPI.

These models are the validation boundary between clients and the engine.
Creature, tool and spell templates are checked here; the engine only ever
sees well-formed records.

Error Codes:
- SESSION_NOT_FOUND: Battle does not exist or has ended
- VALIDATION_ERROR: Request body or template is invalid
- Engine codes (INVALID_ACTION, INSUFFICIENT_ENERGY, NOT_FOUND, FIELD_FULL,
  ALREADY_ACTED, EFFECTS_ALREADY_APPLIED, WRONG_PHASE, GAME_OVER, ...)
  are passed through from the reducer
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

from ..engine_core.action import Action
from ..engine_core.setup import PLAYER_INITIAL_HAND
from ..engine_core.state import Attributes, ItemEffect, Rarity, Side, Spell, Tool
from ..engine_core.stats import build_creature


AttributeName = Literal["energy", "strength", "magic", "stamina", "speed"]


# =============================================================================
# Enums
# =============================================================================

class SessionStatus(str, Enum):
    """Battle session status values."""
    YOUR_TURN = "your_turn"
    AI_TURN = "ai_turn"
    GAME_OVER = "game_over"


class DifficultyLevel(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    EXPERT = "expert"


class RarityLevel(str, Enum):
    COMMON = "Common"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"


class ItemEffectName(str, Enum):
    SURGE = "Surge"
    SHIELD = "Shield"
    ECHO = "Echo"
    DRAIN = "Drain"
    CHARGE = "Charge"


class AttackTypeName(str, Enum):
    PHYSICAL = "physical"
    MAGICAL = "magical"
    AUTO = "auto"


class ErrorCode(str, Enum):
    """Structured error codes."""
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    # Engine codes
    INVALID_ACTION = "INVALID_ACTION"
    INSUFFICIENT_ENERGY = "INSUFFICIENT_ENERGY"
    NOT_FOUND = "NOT_FOUND"
    FIELD_FULL = "FIELD_FULL"
    ALREADY_ACTED = "ALREADY_ACTED"
    DUPLICATE_ACTION = "DUPLICATE_ACTION"
    EFFECTS_ALREADY_APPLIED = "EFFECTS_ALREADY_APPLIED"
    WRONG_PHASE = "WRONG_PHASE"
    GAME_OVER = "GAME_OVER"
    NO_HANDLER = "NO_HANDLER"
    HANDLER_ERROR = "HANDLER_ERROR"

    @classmethod
    def from_engine(cls, code: Optional[str]) -> "ErrorCode":
        try:
            return cls(code)
        except ValueError:
            return cls.INTERNAL_ERROR


# =============================================================================
# Templates (validated input records)
# =============================================================================

class AttributesModel(BaseModel):
    """Base attributes of a creature."""
    energy: int = Field(5, ge=0, le=50)
    strength: int = Field(5, ge=0, le=50)
    magic: int = Field(5, ge=0, le=50)
    stamina: int = Field(5, ge=0, le=50)
    speed: int = Field(5, ge=0, le=50)

    model_config = {"from_attributes": True}


class CreatureTemplate(BaseModel):
    """A player creature as submitted by a client."""
    creature_id: str = Field(..., min_length=1)
    species_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    rarity: RarityLevel = RarityLevel.COMMON
    form: int = Field(0, ge=0, le=3)
    attributes: AttributesModel = Field(default_factory=AttributesModel)
    specialties: list[AttributeName] = Field(default_factory=list, max_length=2)
    combination_level: int = Field(0, ge=0, le=5)

    @field_validator("specialties")
    @classmethod
    def unique_specialties(cls, value: list[str]) -> list[str]:
        if len(set(value)) != len(value):
            raise ValueError("specialties must not repeat")
        return value

    def to_engine(self):
        return build_creature(
            creature_id=self.creature_id,
            species_id=self.species_id,
            name=self.name,
            attributes=Attributes(**self.attributes.model_dump()),
            rarity=Rarity(self.rarity.value),
            form=self.form,
            specialties=list(self.specialties),
            combination_level=self.combination_level,
        )


class ItemTemplate(BaseModel):
    """A tool or spell as submitted by a client."""
    item_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    item_type: AttributeName
    effect: ItemEffectName
    rarity: RarityLevel = RarityLevel.COMMON


class ToolTemplate(ItemTemplate):
    def to_engine(self) -> Tool:
        return Tool(
            item_id=self.item_id,
            name=self.name,
            item_type=self.item_type,
            effect=ItemEffect(self.effect.value),
            rarity=Rarity(self.rarity.value),
        )


class SpellTemplate(ItemTemplate):
    def to_engine(self) -> Spell:
        return Spell(
            item_id=self.item_id,
            name=self.name,
            item_type=self.item_type,
            effect=ItemEffect(self.effect.value),
            rarity=Rarity(self.rarity.value),
        )


# =============================================================================
# Request Models
# =============================================================================

class CreateBattleRequest(BaseModel):
    """Request to start a new battle."""
    creatures: list[CreatureTemplate] = Field(
        ..., min_length=1, description=f"Player roster; the first {PLAYER_INITIAL_HAND} form the hand"
    )
    difficulty: DifficultyLevel = DifficultyLevel.MEDIUM
    tools: list[ToolTemplate] = Field(default_factory=list)
    spells: list[SpellTemplate] = Field(default_factory=list)
    seed: Optional[int] = Field(None, description="Seed for reproducible battles")

    @field_validator("creatures")
    @classmethod
    def unique_creature_ids(cls, value: list[CreatureTemplate]) -> list[CreatureTemplate]:
        ids = [c.creature_id for c in value]
        if len(set(ids)) != len(ids):
            raise ValueError("creature ids must be unique")
        return value


class DeployIntent(BaseModel):
    type: Literal["deploy"] = "deploy"
    creature_id: str

    def to_action(self, side: Side) -> Action:
        return Action.deploy(side, self.creature_id)


class AttackIntent(BaseModel):
    type: Literal["attack"] = "attack"
    attacker_id: str
    target_id: str
    attack_type: AttackTypeName = AttackTypeName.AUTO

    def to_action(self, side: Side) -> Action:
        return Action.attack(side, self.attacker_id, self.target_id, self.attack_type.value)


class UseToolIntent(BaseModel):
    type: Literal["use_tool"] = "use_tool"
    tool_id: str
    target_id: str

    def to_action(self, side: Side) -> Action:
        return Action.use_tool(side, self.tool_id, self.target_id)


class UseSpellIntent(BaseModel):
    type: Literal["use_spell"] = "use_spell"
    spell_id: str
    caster_id: str
    target_id: str

    def to_action(self, side: Side) -> Action:
        return Action.use_spell(side, self.spell_id, self.caster_id, self.target_id)


class DefendIntent(BaseModel):
    type: Literal["defend"] = "defend"
    creature_id: str

    def to_action(self, side: Side) -> Action:
        return Action.defend(side, self.creature_id)


class EndTurnIntent(BaseModel):
    type: Literal["end_turn"] = "end_turn"

    def to_action(self, side: Side) -> Action:
        return Action.end_turn(side)


Intent = Annotated[
    Union[DeployIntent, AttackIntent, UseToolIntent, UseSpellIntent, DefendIntent, EndTurnIntent],
    Field(discriminator="type"),
]


class ActionRequest(BaseModel):
    """A player intent, tagged by its type field."""
    intent: Intent


# =============================================================================
# Shared Models
# =============================================================================

class EffectInfo(BaseModel):
    effect_id: str
    name: str
    kind: str
    duration: int
    stat_modifications: dict[str, int] = Field(default_factory=dict)
    health_over_time: int = 0


class CreatureInfo(BaseModel):
    """Creature information for display."""
    creature_id: str
    species_id: str
    name: str
    rarity: RarityLevel
    form: int
    current_health: int
    max_health: int
    physical_attack: int = 0
    magical_attack: int = 0
    physical_defense: int = 0
    magical_defense: int = 0
    deployment_cost: int
    is_defending: bool = False
    next_attack_bonus: int = 0
    effects: list[EffectInfo] = Field(default_factory=list)


class ItemInfo(BaseModel):
    item_id: str
    name: str
    item_type: str
    effect: ItemEffectName
    rarity: RarityLevel
    energy_cost: int = 0


class SideInfo(BaseModel):
    """One side of the battle. The enemy hand and deck are only counted."""
    side: str
    energy: int
    max_energy: int
    field: list[CreatureInfo] = Field(default_factory=list)
    hand: list[CreatureInfo] = Field(default_factory=list)
    hand_count: int = 0
    deck_count: int = 0
    tools: list[ItemInfo] = Field(default_factory=list)
    spells: list[ItemInfo] = Field(default_factory=list)
    defeated: int = 0


class LogEntryInfo(BaseModel):
    turn: int
    side: Optional[str] = None
    message: str


class AttackInfo(BaseModel):
    """Typed outcome of an attack."""
    attacker_id: str
    defender_id: str
    damage: int
    attack_type: str
    effectiveness: float
    effectiveness_text: str
    is_critical: bool
    is_dodged: bool
    defeated: bool


class PlannedActionInfo(BaseModel):
    action_type: str
    description: str
    energy_cost: int
    creature_id: Optional[str] = None
    target_id: Optional[str] = None
    item_id: Optional[str] = None


# =============================================================================
# Response Models
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Human-readable error message")
    error_code: ErrorCode = Field(..., description="Machine-readable error code")
    details: Optional[dict[str, Any]] = Field(None, description="Additional error context")
    api_version: str = Field("v1", description="API version")


class BattleStateResponse(BaseModel):
    """Complete battle state for display."""
    battle_id: str
    status: SessionStatus
    difficulty: DifficultyLevel
    turn: int
    active_side: str
    phase: str
    player: SideInfo
    enemy: SideInfo
    log: list[LogEntryInfo] = Field(default_factory=list)
    winner: Optional[str] = None
    api_version: str = "v1"


class ActionResponse(BaseModel):
    """Result of a player intent, including the AI turn it may trigger."""
    success: bool
    log: list[str] = Field(default_factory=list)
    attack: Optional[AttackInfo] = None
    ai_actions: list[str] = Field(default_factory=list)
    skipped_actions: list[str] = Field(default_factory=list)
    battle: BattleStateResponse
    api_version: str = "v1"


class PlanResponse(BaseModel):
    """What the planner would do for the active side right now."""
    battle_id: str
    side: str
    is_sequence: bool
    actions: list[PlannedActionInfo]
    api_version: str = "v1"


class AITurnResponse(BaseModel):
    """Result of running the AI side's turn."""
    success: bool
    log: list[str] = Field(default_factory=list)
    ai_actions: list[str] = Field(default_factory=list)
    skipped_actions: list[str] = Field(default_factory=list)
    battle: BattleStateResponse
    api_version: str = "v1"


class EndBattleResponse(BaseModel):
    """Response after ending a battle."""
    success: bool
    battle_id: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    service: str
    version: str
    environment: str
