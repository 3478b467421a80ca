"""
Interactive console prompts.

Questions are plain dictionaries with a ``type`` (``list``, ``password``,
``confirm`` or ``input``), a ``name`` under which the answer is returned, a
``message`` and, depending on the type, ``choices`` and ``default``.
"""

import getpass
from typing import Any, Callable, Dict, List, Optional


class ConsolePrompter:
    """Asks questions on the terminal."""

    def __init__(self, input_func: Callable[[str], str] = input,
                 password_func: Callable[[str], str] = getpass.getpass,
                 output_func: Callable[..., None] = print):
        self._input = input_func
        self._password = password_func
        self._print = output_func

    def prompt(self, questions: List[Dict[str, Any]]) -> Dict[str, Any]:
        answers: Dict[str, Any] = {}
        for question in questions:
            kind = question.get("type", "input")
            if kind == "list":
                answer = self._select(question["message"], question["choices"], question.get("default"))
            elif kind == "password":
                answer = self._password(f"{question['message']} ")
            elif kind == "confirm":
                answer = self._confirm(question["message"], bool(question.get("default", False)))
            elif kind == "input":
                answer = self._text(question["message"], question.get("default"))
            else:
                raise ValueError(f"Unknown question type: {kind}")
            answers[question["name"]] = answer
        return answers

    def _select(self, message: str, choices: List[str], default: Optional[str]) -> str:
        self._print(message)
        for index, choice in enumerate(choices, start=1):
            marker = "*" if choice == default else " "
            self._print(f" {marker} {index}) {choice}")

        while True:
            suffix = f" [{default}]" if default is not None else ""
            raw = self._input(f"Choose 1-{len(choices)}{suffix}: ").strip()
            if not raw and default is not None:
                return default
            if raw.isdigit() and 1 <= int(raw) <= len(choices):
                return choices[int(raw) - 1]
            if raw in choices:
                return raw
            self._print(f"Please enter a number between 1 and {len(choices)}.")

    def _confirm(self, message: str, default: bool) -> bool:
        hint = "Y/n" if default else "y/N"
        while True:
            raw = self._input(f"{message} ({hint}): ").lower().strip()
            if not raw:
                return default
            if raw in ['y', 'yes']:
                return True
            if raw in ['n', 'no']:
                return False
            self._print("Please enter 'y' for yes or 'n' for no.")

    def _text(self, message: str, default: Optional[str]) -> str:
        suffix = f" [{default}]" if default else ""
        raw = self._input(f"{message}{suffix}: ").strip()
        return raw or (default or "")
