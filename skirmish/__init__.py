"""
Skirmish - Creature Battle Engine

A deterministic, turn-based engine for creature battles against an AI opponent.
The engine provides:
- Battle stat derivation
- Immutable battle state and a single reducer
- Combat, item and effect resolution
- A difficulty-tiered action planner for the enemy side
"""

__version__ = "0.1.0"
