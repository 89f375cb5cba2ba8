"""
Skirmish CLI - Command-line interface for the battle engine.

Usage:
    skirmish simulate [--roster FILE] [--difficulty D] [--seed N]   Bot vs planner battle
    skirmish plan [--roster FILE] [--difficulty D] [--seed N]       Show the AI's opening plan
    skirmish odds <roster_file> <attacker_id> <defender_id>          Matchup odds and team rating

Rosters are JSON files holding a battle request:
    {"creatures": [...], "tools": [...], "spells": [...]}
"""

import argparse
import json
import logging
import os
import sys

from pydantic import ValidationError

logger = logging.getLogger("skirmish")


MAX_SIMULATED_STEPS = 2000

DEMO_ROSTER = {
    "creatures": [
        {
            "creature_id": "ember",
            "species_id": "emberfox",
            "name": "Ember",
            "rarity": "Rare",
            "form": 1,
            "attributes": {"energy": 6, "strength": 9, "magic": 4, "stamina": 6, "speed": 8},
            "specialties": ["strength"],
        },
        {
            "creature_id": "mistral",
            "species_id": "mistowl",
            "name": "Mistral",
            "rarity": "Epic",
            "form": 1,
            "attributes": {"energy": 7, "strength": 4, "magic": 10, "stamina": 5, "speed": 7},
            "specialties": ["magic"],
        },
        {
            "creature_id": "bulwark",
            "species_id": "stonehide",
            "name": "Bulwark",
            "attributes": {"energy": 5, "strength": 6, "magic": 3, "stamina": 10, "speed": 3},
            "specialties": ["stamina"],
        },
        {
            "creature_id": "flicker",
            "species_id": "sparkmite",
            "name": "Flicker",
            "attributes": {"energy": 6, "strength": 5, "magic": 6, "stamina": 4, "speed": 9},
        },
    ],
    "tools": [
        {"item_id": "ward", "name": "Stone Ward", "item_type": "stamina", "effect": "Shield"},
        {"item_id": "tonic", "name": "Quick Tonic", "item_type": "speed", "effect": "Surge"},
    ],
    "spells": [
        {"item_id": "bolt", "name": "Arc Bolt", "item_type": "magic", "effect": "Surge", "rarity": "Rare"},
    ],
}


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Skirmish - Creature battle engine",
        prog="skirmish",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("SKIRMISH_LOG_LEVEL", "WARNING"),
        help="Logging level (default: SKIRMISH_LOG_LEVEL or WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    def add_battle_options(sub):
        sub.add_argument("--roster", help="Path to a JSON battle request (default: demo roster)")
        sub.add_argument(
            "--difficulty",
            choices=["easy", "medium", "hard", "expert"],
            default=None,
            help="Opponent difficulty (overrides the roster file)",
        )
        sub.add_argument(
            "--seed",
            type=int,
            default=int(os.environ["SKIRMISH_SEED"]) if os.getenv("SKIRMISH_SEED") else None,
            help="Seed for reproducible battles (default: SKIRMISH_SEED)",
        )

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play a full battle with bots on both sides")
    add_battle_options(simulate_parser)
    simulate_parser.add_argument(
        "--player-bot",
        choices=["random", "first", "planner"],
        default="planner",
        help="Policy driving the player side",
    )
    simulate_parser.add_argument("--quiet", action="store_true", help="Only print the outcome")

    # Plan command
    plan_parser = subparsers.add_parser("plan", help="Show the AI's plan for its first turn")
    add_battle_options(plan_parser)

    # Odds command
    odds_parser = subparsers.add_parser("odds", help="Estimate a one-on-one matchup")
    odds_parser.add_argument("roster_file", help="Path to a JSON battle request")
    odds_parser.add_argument("attacker_id", help="Attacking creature id")
    odds_parser.add_argument("defender_id", help="Defending creature id")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "simulate":
        return cmd_simulate(args)
    elif args.command == "plan":
        return cmd_plan(args)
    elif args.command == "odds":
        return cmd_odds(args)
    else:
        parser.print_help()
        sys.exit(1)


def load_request(path, difficulty=None, seed=None):
    """Load and validate a battle request, falling back to the demo roster."""
    from .api.schemas import CreateBattleRequest

    data = dict(DEMO_ROSTER)
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            print(f"Error: File not found: {path}")
            sys.exit(1)
        except json.JSONDecodeError as e:
            print(f"Error: {path} is not valid JSON: {e}")
            sys.exit(1)
    if difficulty:
        data["difficulty"] = difficulty
    if seed is not None:
        data["seed"] = seed

    try:
        return CreateBattleRequest.model_validate(data)
    except ValidationError as e:
        print(f"Error: invalid roster:\n{e}")
        sys.exit(1)


def new_session(args):
    from .session import SessionManager

    request = load_request(args.roster, args.difficulty, args.seed)
    manager = SessionManager()
    return manager.create_session(
        player_creatures=[c.to_engine() for c in request.creatures],
        difficulty=request.difficulty.value,
        tools=[t.to_engine() for t in request.tools],
        spells=[s.to_engine() for s in request.spells],
        seed=request.seed,
    )


def player_policy(name, seed):
    from .bots import ActionPlanner, FirstLegalPolicy, RandomPolicy
    import random

    if name == "random":
        return RandomPolicy(seed=seed)
    if name == "first":
        return FirstLegalPolicy()
    return ActionPlanner(rng=random.Random(seed))


def cmd_simulate(args):
    """Play a battle: a bot drives the player side, the planner the enemy side."""
    from .engine_core.action import Action
    from .engine_core.state import Side
    from .session import GameLoop

    session = new_session(args)
    loop = GameLoop(session)
    policy = player_policy(args.player_bot, args.seed)

    print(f"Battle {session.session_id} ({session.battle.difficulty.value}), player bot: {policy.get_name()}")

    steps = 0
    while not session.battle.is_over and steps < MAX_SIMULATED_STEPS:
        steps += 1
        decision = policy.select_action(session.battle)
        actions = decision.actions
        for action in actions:
            result = loop.submit_player_action(action)
            if not args.quiet:
                for line in result.log:
                    print(f"  [{session.battle.turn}] {line}")
                for skipped in result.skipped_actions:
                    print(f"  (skipped AI step: {skipped})")
            if not result.success:
                logger.info("Player step rejected: %s", result.error)
                loop.submit_player_action(Action.end_turn(Side.PLAYER))
                break
            if session.battle.is_over or session.battle.active_side is not Side.PLAYER:
                break

    battle = session.battle
    if battle.winner:
        print(f"Winner: {battle.winner.value} after {battle.turn} turns")
        return 0
    print(f"No winner after {steps} steps (turn {battle.turn})")
    return 1


def cmd_plan(args):
    """Hand the turn to the AI and print what it would do."""
    from .bots import ActionPlanner, personality_for
    from .engine_core.action import Action
    from .engine_core.reducer import apply_player_action
    from .engine_core.state import Side

    session = new_session(args)
    result = apply_player_action(session.battle, Action.end_turn(Side.PLAYER), rng=session.rng)
    state = result.new_state

    planner = ActionPlanner(personality=personality_for(state.difficulty), rng=session.rng)
    personality = planner.personality
    print(f"Personality: {personality.name} - {personality.description}")
    print(f"Enemy energy: {state.enemy.energy}, hand: {[c.name for c in state.enemy.hand]}")

    actions = planner.plan(state)
    if not actions:
        print("Plan: end turn")
        return 0
    print("Plan:")
    for i, action in enumerate(actions, 1):
        print(f"  {i}. {action.describe()} (cost {action.energy_cost})")
    return 0


def cmd_odds(args):
    """Print combat ratings and odds for two roster creatures, plus the roster's team rating."""
    from .bots import battle_odds, combat_rating, team_rating

    request = load_request(args.roster_file)
    creatures = {c.creature_id: c.to_engine() for c in request.creatures}
    missing = [cid for cid in (args.attacker_id, args.defender_id) if cid not in creatures]
    if missing:
        print(f"Error: unknown creature id(s): {', '.join(missing)}")
        return 1

    attacker = creatures[args.attacker_id]
    defender = creatures[args.defender_id]
    print(f"{attacker.name}: rating {combat_rating(attacker)}")
    print(f"{defender.name}: rating {combat_rating(defender)}")
    print(f"Odds {attacker.name} beats {defender.name}: {battle_odds(attacker, defender):.0%}")
    print(f"Team rating ({len(creatures)} creatures): {team_rating(list(creatures.values()))}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
