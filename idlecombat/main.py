"""
Demo entry point for the idle combat core.

Loads the bundled catalog and characters, wires the in-memory stores around a
CombatManager and plays rounds for one character, either a fixed number of
automatic rounds or one round per command typed at an interactive prompt.
"""

import argparse
from pathlib import Path
from typing import Optional

from rich.table import Table

from idlecombat.catalog import ContentRepository
from idlecombat.combat.combat_manager import CombatManager
from idlecombat.core.config import get_settings
from idlecombat.core.error_handling import CombatError, PreconditionError
from idlecombat.core.logging import setup_logging
from idlecombat.core.rng import SeededRandom
from idlecombat.core.utils import cprint, crule
from idlecombat.models.results import OutcomeKind
from idlecombat.potions import ThresholdPotionPolicy
from idlecombat.storage import (
    InMemoryCharacterDirectory,
    InMemoryCombatLog,
    InMemoryCombatStateStore,
)
from idlecombat.ui.arena_view import print_outcome, render_arena
from idlecombat.ui.prompt import CommandPrompt

# Get the path to the data folder.
DATA_DIR = Path(__file__).parent / "data"


def build_manager(
    data_dir: Path, seed: Optional[int] = None
) -> tuple[CombatManager, InMemoryCharacterDirectory, InMemoryCombatLog]:
    """
    Builds a combat manager over the in-memory stores.

    Args:
        data_dir (Path): Folder holding the catalog and characters files.
        seed (Optional[int]): Seed of the random source.

    Returns:
        tuple: The manager, the character directory and the combat log book.

    """
    settings = get_settings()
    content = ContentRepository(data_dir)
    directory = InMemoryCharacterDirectory(content, settings)
    directory.load(data_dir / "characters.json")
    combat_log = InMemoryCombatLog()
    manager = CombatManager(
        stats=directory,
        skills=directory,
        monsters=content,
        store=InMemoryCombatStateStore(),
        potions=ThresholdPotionPolicy(directory, settings),
        combat_log=combat_log,
        rewards=directory,
        loot_factory=directory,
        rng=SeededRandom(seed),
        settings=settings,
    )
    return manager, directory, combat_log


def print_summary(
    directory: InMemoryCharacterDirectory, combat_log: InMemoryCombatLog, character_id: int
) -> None:
    record = directory.get(character_id)
    stats = combat_log.stats(character_id)

    table = Table(title=f"{record.profile.name} after {stats.total_rounds} rounds")
    table.add_column("Stat", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Victories", str(stats.victories))
    table.add_row("Defeats", str(stats.defeats))
    table.add_row("Damage dealt", str(stats.total_damage_dealt))
    table.add_row("Damage taken", str(stats.total_damage_taken))
    table.add_row("Experience", str(record.experience))
    table.add_row("Copper", str(record.copper))
    table.add_row("Items", str(len(record.items)))
    table.add_row("Potions", ", ".join(f"{p.name} x{p.quantity}" for p in record.potions))
    table.add_row("Discovered", str(len(record.discovered_monsters)))
    cprint(table)


def run_rounds(manager: CombatManager, character_id: int, rounds: int) -> None:
    """Plays up to ``rounds`` rounds, stopping at the first defeat."""
    for _ in range(rounds):
        outcome = manager.execute_round(character_id)
        print_outcome(outcome)
        if outcome.kind != OutcomeKind.ROUND:
            break


def run_interactive(
    manager: CombatManager, directory: InMemoryCharacterDirectory, character_id: int
) -> None:
    """Plays one round per command until the user quits."""
    profile = directory.get(character_id).profile
    prompt = CommandPrompt(directory.get_active_skills(profile))
    cprint(
        "Press enter for a round, type a skill name to cast it, or one of "
        "[bold]auto, stop, status, reset, quit[/].",
        style="dim",
    )
    while True:
        command = prompt.ask()
        if command.name == "quit":
            return
        if command.name == "stop":
            status = manager.stop(character_id)
            cprint(f"Stopped after {status.rounds} rounds.")
            continue
        if command.name == "reset":
            manager.reset(character_id, restore_resources=True)
            cprint("Combat state reset.", style="yellow")
            continue
        if command.name == "status":
            status = manager.get_status(character_id)
            cprint(
                f"{status.phase.display_name}: HP {status.current_hp}/{status.combat_stats.max_hp} "
                f"MP {status.current_mana}/{status.combat_stats.max_mana}"
            )
            continue
        if command.name == "auto":
            run_rounds(manager, character_id, 10)
            continue
        try:
            print_outcome(manager.execute_round(character_id, command.skill_ids))
        except PreconditionError as e:
            cprint(f"[red]{e.message}[/]")


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Idle arena combat demo.")
    parser.add_argument("--character", type=int, default=1, help="Character id.")
    parser.add_argument("--rounds", type=int, default=20, help="Automatic rounds to play.")
    parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    parser.add_argument("--data-dir", type=Path, default=DATA_DIR, help="Data folder.")
    parser.add_argument(
        "--interactive", action="store_true", help="Play one round per command."
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level.")
    parser.add_argument(
        "--round-log-level", default=None, help="Level of the per-round log lines."
    )
    args = parser.parse_args(argv)

    try:
        setup_logging(args.log_level, args.round_log_level)
    except ValueError as e:
        parser.error(str(e))

    crule("Idle Combat", style="bold green")
    manager, directory, combat_log = build_manager(args.data_dir, args.seed)

    try:
        if args.interactive:
            run_interactive(manager, directory, args.character)
        else:
            run_rounds(manager, args.character, args.rounds)
    except CombatError as e:
        cprint(f"[bold red]{e.message}[/]")
        return 1
    except (KeyboardInterrupt, EOFError):
        cprint("Interrupted.", style="yellow")

    state = manager.store.load(args.character)
    if state.has_roster():
        cprint(render_arena(manager.arena.format_monsters_for_response(state)))
    crule("Summary", style="bold green")
    print_summary(directory, combat_log, args.character)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
