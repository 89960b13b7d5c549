"""
Interactive command prompt for the demo.

Reads one command per round with prompt_toolkit, offering completion on the
known commands and the learned skill names.
"""

from typing import Optional

from prompt_toolkit import ANSI, PromptSession
from prompt_toolkit.completion import WordCompleter
from pydantic import BaseModel, Field

from idlecombat.models.catalog import SkillDefinition

# Commands understood by the prompt; anything else is read as a skill name.
COMMANDS = ["next", "auto", "stop", "status", "reset", "quit"]


class DemoCommand(BaseModel):
    """A parsed prompt answer."""

    name: str = Field(description="The command.")
    skill_ids: list[int] = Field(
        default_factory=list, description="Skill shortlist for the next round."
    )


def parse_command(answer: str, skills: list[SkillDefinition]) -> Optional[DemoCommand]:
    """
    Parses a prompt answer.

    An empty answer plays the next round with every skill allowed. A skill
    name plays the next round with that skill as the only candidate.

    Args:
        answer (str): The text typed by the user.
        skills (list[SkillDefinition]): The learned skills.

    Returns:
        Optional[DemoCommand]: The command, or None if it is not understood.

    """
    text = answer.strip().lower()
    if not text:
        return DemoCommand(name="next")
    if text in COMMANDS:
        return DemoCommand(name=text)
    for skill in skills:
        if skill.name.lower() == text:
            return DemoCommand(name="next", skill_ids=[skill.id])
    return None


class CommandPrompt:
    """Keeps one prompt session, and its history, for the whole demo."""

    def __init__(self, skills: list[SkillDefinition]) -> None:
        self.skills = skills
        self.session: PromptSession = PromptSession(erase_when_done=True)
        self.completer = WordCompleter(
            COMMANDS + [s.name for s in skills], ignore_case=True
        )

    def ask(self, message: str = "Command > ") -> DemoCommand:
        """Prompts until a valid command is typed."""
        while True:
            answer = self.session.prompt(
                ANSI(message),
                completer=self.completer,
                complete_while_typing=True,
            )
            command = parse_command(answer, self.skills)
            if command is not None:
                return command
