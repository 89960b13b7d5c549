"""
Logging setup for the combat core.

Everything goes through one rich handler on the root logger. The round
resolver and the combat manager emit a line per round, so their loggers
can be held at a separate level from the rest of the package.
"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

# Loggers that write at least one line every round.
ROUND_LOGGERS = ("idlecombat.combat.resolver", "idlecombat.combat.combat_manager")


def resolve_level(level: Union[int, str]) -> int:
    """
    Turns a level given as a number or a name ("debug", "INFO") into a number.

    Raises:
        ValueError: The name is not a logging level.

    """
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown logging level: {level}")
    return resolved


def setup_logging(
    level: Union[int, str] = logging.INFO,
    round_level: Optional[Union[int, str]] = None,
    console: Optional[Console] = None,
) -> RichHandler:
    """
    Installs a rich handler on the root logger, replacing existing handlers.

    Args:
        level (Union[int, str]): Level of the root logger.
        round_level (Optional[Union[int, str]]): Level of the per-round
            loggers. Defaults to ``level``.
        console (Optional[Console]): Console to write to, stderr by default.

    Returns:
        RichHandler: The installed handler.

    """
    root_level = resolve_level(level)
    handler = RichHandler(
        console=console or Console(stderr=True, width=120),
        show_path=False,
        markup=True,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(name)s - %(message)s", datefmt="[%X]"))
    logging.basicConfig(level=root_level, handlers=[handler], force=True)

    per_round = root_level if round_level is None else resolve_level(round_level)
    for name in ROUND_LOGGERS:
        logging.getLogger(name).setLevel(per_round)
    return handler


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
