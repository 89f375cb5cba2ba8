"""
Engine Core - Deterministic battle state management and combat resolution.

The engine is the runtime that:
1. Derives battle stats from creature attributes
2. Manages BattleState
3. Resolves attacks, tools, spells and defends
4. Applies actions via the reducer
5. Advances effects once per side per turn
"""

from .state import (
    Attributes,
    BattleState,
    BattleStats,
    Creature,
    Difficulty,
    Phase,
    Rarity,
    Side,
    SideState,
    Spell,
    Tool,
)
from .action import Action, ActionType, ActionPayload, ActionResult
from .reducer import Reducer, apply_action, apply_player_action
from .combat import AttackResult, resolve_attack, resolve_defend, resolve_spell, resolve_tool
from .energy import EnergyLedger
from .stats import build_creature, derive_stats
from .setup import start_battle

__all__ = [
    "Attributes",
    "BattleState",
    "BattleStats",
    "Creature",
    "Difficulty",
    "Phase",
    "Rarity",
    "Side",
    "SideState",
    "Spell",
    "Tool",
    "Action",
    "ActionType",
    "ActionPayload",
    "ActionResult",
    "Reducer",
    "apply_action",
    "apply_player_action",
    "AttackResult",
    "resolve_attack",
    "resolve_defend",
    "resolve_spell",
    "resolve_tool",
    "EnergyLedger",
    "build_creature",
    "derive_stats",
    "start_battle",
]
