"""Test helpers shared by unit, contract and integration tests."""
from __future__ import annotations

from collections.abc import Sequence

from explog.services.prompts import ExportPlan, SiteAnswer, SiteStep, WizardAction

HEADER = "| Date | Time | StackID | ExpID | SiteID | Paradigm | Comment |"
SEPARATOR = "| --- | --- | --- | --- | --- | --- | --- |"


def make_note(rows: Sequence[str], animal_id: str | None = "M001", prose: str = "Notes.") -> str:
    """Build a note: optional front matter, prose and the ExpLog table."""
    parts = []
    if animal_id is not None:
        parts.append(f"---\nAnimalID: {animal_id}\n---\n")
    parts.append(prose)
    parts.append("")
    parts.append(HEADER)
    parts.append(SEPARATOR)
    parts.extend(rows)
    return "\n".join(parts) + "\n"


def site(project: str = "ProjA", location: str = "V1", depth: str = "") -> SiteAnswer:
    return SiteAnswer(WizardAction.NEXT, project=project, location=location, depth=depth)


class ScriptedPrompter:
    """Prompter replaying pre-recorded answers (one list per kind of request)."""

    def __init__(
        self,
        site_answers: Sequence[SiteAnswer] = (),
        confirms: Sequence[WizardAction] = (WizardAction.NEXT,),
        pi: str | None = None,
        animal: str | None = None,
    ) -> None:
        self.site_answers = list(site_answers)
        self.confirms = list(confirms)
        self.pi = pi
        self.animal = animal
        self.steps: list[SiteStep] = []
        self.plans: list[ExportPlan] = []
        self.errors: list[str] = []

    def select_pi(self, pis):
        return self.pi

    def select_animal(self, pi, animals):
        return self.animal

    def ask_site(self, step: SiteStep) -> SiteAnswer:
        self.steps.append(step)
        if not self.site_answers:
            return SiteAnswer(WizardAction.CANCEL)
        return self.site_answers.pop(0)

    def confirm_export(self, plan: ExportPlan) -> WizardAction:
        self.plans.append(plan)
        if not self.confirms:
            return WizardAction.CANCEL
        return self.confirms.pop(0)

    def show_error(self, message: str) -> None:
        self.errors.append(message)
