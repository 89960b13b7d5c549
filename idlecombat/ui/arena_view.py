"""
Console rendering of the arena and of round outcomes.

A thin adapter over the result records: it formats, it never decides.
"""

from typing import Optional

from rich.table import Table

from idlecombat.combat.arena import ArenaView
from idlecombat.core.constants import NOT_ATTACKED
from idlecombat.core.utils import ccapture, cprint
from idlecombat.models.monster import MonsterInstance
from idlecombat.models.results import CombatOutcome, OutcomeKind


def _hp_bar(monster: MonsterInstance, width: int = 10) -> str:
    filled = round(monster.hp_ratio * width)
    color = "green" if monster.hp_ratio > 0.5 else "yellow" if monster.hp_ratio > 0.3 else "red"
    return f"[{color}]{'█' * filled}[/][dim]{'░' * (width - filled)}[/]"


def _slot_row(index: int, monster: Optional[MonsterInstance]) -> list[str]:
    if monster is None:
        return [str(index), "[dim]empty[/]", "", "", "", ""]
    if monster.is_dead():
        name = f"[dim strike]{monster.name}[/]"
    else:
        name = monster.type.colorize(f"{monster.type.emoji} {monster.name}")
    hit = "" if monster.damage_taken == NOT_ATTACKED else f"[red]-{monster.damage_taken}[/]"
    return [
        str(index),
        name,
        str(monster.level),
        f"{_hp_bar(monster)} {monster.hp}/{monster.max_hp}",
        hit,
        monster.instance_id[-6:],
    ]


def arena_table(view: ArenaView, title: str = "Arena") -> Table:
    """
    Builds a table with one row per arena slot.

    Args:
        view (ArenaView): The five slots and the first alive monster.
        title (str): The table title.

    Returns:
        Table: The rich table.

    """
    table = Table(title=title, pad_edge=False)
    table.add_column("#", style="cyan", no_wrap=True)
    table.add_column("Monster", style="bold")
    table.add_column("Lvl", justify="right")
    table.add_column("HP")
    table.add_column("Hit", justify="right")
    table.add_column("Id", style="dim")
    for index, monster in enumerate(view.monsters):
        table.add_row(*_slot_row(index, monster))
    return table


def describe_outcome(outcome: CombatOutcome) -> str:
    """One line summary of a round request."""
    if outcome.kind == OutcomeKind.AUTO_STOPPED:
        return "[bold red]Not enough HP to fight, combat stopped.[/]"
    if outcome.kind == OutcomeKind.DEFEAT:
        return (
            f"[bold red]Defeated on round {outcome.rounds}[/] after dealing "
            f"{outcome.damage_dealt} and taking {outcome.damage_taken} damage."
        )
    parts = [
        f"[bold]Round {outcome.rounds}[/]",
        f"dealt [green]{outcome.damage_dealt}[/]",
        f"took [red]{outcome.damage_taken}[/]",
        f"HP {outcome.current_hp} MP {outcome.current_mana}",
    ]
    if outcome.skills_used:
        parts.append("cast " + ", ".join(s.name for s in outcome.skills_used))
    if outcome.experience_gained or outcome.copper_gained:
        parts.append(f"+{outcome.experience_gained} xp +{outcome.copper_gained} copper")
    if outcome.loot.item is not None or outcome.loot.potion is not None:
        parts.append("[magenta]loot![/]")
    if outcome.potion_used.hp is not None:
        parts.append(f"drank {outcome.potion_used.hp.name}")
    if outcome.potion_used.mp is not None:
        parts.append(f"drank {outcome.potion_used.mp.name}")
    if outcome.victory:
        parts.append("[bold green]all monsters down[/]")
    return " | ".join(parts)


def print_outcome(outcome: CombatOutcome) -> None:
    """Prints the arena after a round and its summary line."""
    if outcome.monsters:
        view = ArenaView(monsters=outcome.monsters, first_alive=outcome.monster)
        cprint(arena_table(view, title=f"Round {outcome.rounds}"))
    cprint(describe_outcome(outcome))


def render_arena(view: ArenaView) -> str:
    """Returns the arena table as a string."""
    return ccapture(arena_table(view))
