from __future__ import annotations

import builtins
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

"""User interaction surface for the export wizard.

The wizard only sees the Prompter protocol: one request/response per step.
ConsolePrompter implements it with input()/print() for the terminal.
"""

__all__ = [
    "WizardAction",
    "SiteStep",
    "SiteAnswer",
    "ExportPlan",
    "Prompter",
    "ConsolePrompter",
]

BACK_TOKENS = {"<", "b", "back"}
CANCEL_TOKENS = {"q", "quit", "cancel"}


class WizardAction(Enum):
    NEXT = "next"
    BACK = "back"
    CANCEL = "cancel"


@dataclass(frozen=True)
class SiteStep:
    """What the NewSite page shows: which site, progress, and known values."""
    site_id: int
    index: int  # 0 始まり
    total: int
    animal_id: str
    projects: tuple[str, ...] = ()
    locations: tuple[str, ...] = ()


@dataclass(frozen=True)
class SiteAnswer:
    action: WizardAction
    project: str = ""
    location: str = ""
    depth: str = ""


@dataclass(frozen=True)
class ExportPlan:
    animal_id: str
    record_count: int
    new_site_ids: tuple[int, ...]
    created_site_ids: tuple[int, ...]


class Prompter(Protocol):
    def select_pi(self, pis: Sequence[str]) -> str | None: ...

    def select_animal(self, pi: str, animals: Sequence[str]) -> str | None: ...

    def ask_site(self, step: SiteStep) -> SiteAnswer: ...

    def confirm_export(self, plan: ExportPlan) -> WizardAction: ...

    def show_error(self, message: str) -> None: ...


class ConsolePrompter:
    """Terminal prompter.

    Lists are shown numbered; the user picks by number or types a new value.
    '<' goes back one page, 'q' abandons the export.
    """

    def __init__(
        self,
        input_fn: Callable[[str], str] = builtins.input,
        output_fn: Callable[[str], None] = builtins.print,
    ) -> None:
        self._input = input_fn
        self._print = output_fn

    def _ask(self, prompt: str) -> str:
        try:
            return self._input(prompt).strip()
        except EOFError:
            # 入力終端はキャンセル扱い
            return "q"

    def _choose(self, title: str, options: Sequence[str], allow_new: bool) -> str | None:
        """Return the chosen/typed value, '' for no choice, None for cancel, '<' for back."""
        self._print(title)
        for i, opt in enumerate(options, start=1):
            self._print(f"  {i}) {opt}")
        hint = "number or new value" if allow_new else "number"
        answer = self._ask(f"{title} ({hint}, '<' back, 'q' cancel): ")
        lowered = answer.lower()
        if lowered in CANCEL_TOKENS:
            return None
        if lowered in BACK_TOKENS:
            return "<"
        if answer.isdigit() and 1 <= int(answer) <= len(options):
            return options[int(answer) - 1]
        if not allow_new and answer:
            self._print(f"Invalid choice: {answer}")
            return ""
        return answer

    def select_pi(self, pis: Sequence[str]) -> str | None:
        while True:
            choice = self._choose("PI", pis, allow_new=False)
            if choice is None or choice == "<":
                return None
            if choice:
                return choice

    def select_animal(self, pi: str, animals: Sequence[str]) -> str | None:
        if not animals:
            self._print(f"No animals found for PI '{pi}'.")
            return None
        while True:
            choice = self._choose(f"Animal ({pi})", animals, allow_new=False)
            if choice is None or choice == "<":
                return None
            if choice:
                return choice

    def ask_site(self, step: SiteStep) -> SiteAnswer:
        self._print(f"New site {step.index + 1}/{step.total}: SiteID {step.site_id} (animal {step.animal_id})")
        project = self._choose("Project", step.projects, allow_new=True)
        if project is None:
            return SiteAnswer(WizardAction.CANCEL)
        if project == "<":
            return SiteAnswer(WizardAction.BACK)
        location = self._choose("Location", step.locations, allow_new=True)
        if location is None:
            return SiteAnswer(WizardAction.CANCEL)
        if location == "<":
            return SiteAnswer(WizardAction.BACK)
        depth = self._ask("Depth (optional): ")
        if depth.lower() in CANCEL_TOKENS:
            return SiteAnswer(WizardAction.CANCEL)
        if depth.lower() in BACK_TOKENS:
            return SiteAnswer(WizardAction.BACK)
        return SiteAnswer(WizardAction.NEXT, project=project, location=location, depth=depth)

    def confirm_export(self, plan: ExportPlan) -> WizardAction:
        self._print(f"Export {plan.record_count} row(s) for animal '{plan.animal_id}'.")
        if plan.created_site_ids:
            self._print(f"  Sites created: {', '.join(str(s) for s in plan.created_site_ids)}")
        answer = self._ask("Confirm export? [y]es / '<' back / [n]o: ").lower()
        if answer in ("y", "yes"):
            return WizardAction.NEXT
        if answer in BACK_TOKENS:
            return WizardAction.BACK
        return WizardAction.CANCEL

    def show_error(self, message: str) -> None:
        self._print(f"ERROR {message}")
