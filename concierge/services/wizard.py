"""Four-step symptom intake wizard.

Describe -> Upload -> Review -> Next Steps, strictly linear. The state is an
explicit pydantic model; the transition functions below are pure and return
a new state. ``IntakeWizard`` wraps one state for a UI session and adds the
asynchronous parts: classification on entering Review and the final submit,
each guarded against re-entry.
"""
from __future__ import annotations

import asyncio
import logging
import os
from enum import IntEnum
from typing import Callable, List, Optional

from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from concierge.schemas.symptoms import IntakeFields
from concierge.services import triage
from concierge.services.attachments import PendingAttachment, accept_attachment
from concierge.services.history import HistoryViewer
from concierge.services.intake import SubmitResult, submit_intake
from concierge.services.storage import BlobStorage
from concierge.services.validation import validate_intake
from concierge.utils.exceptions import IntakeError, ValidationError

logger = logging.getLogger("concierge")

ASSESSMENT_DELAY_SECONDS = float(os.getenv("ASSESSMENT_DELAY_SECONDS", "1.5"))


class WizardStep(IntEnum):
    DESCRIBE = 0
    UPLOAD = 1
    REVIEW = 2
    NEXT_STEPS = 3


STEP_LABELS = {
    WizardStep.DESCRIBE: "Describe your symptoms",
    WizardStep.UPLOAD: "Upload evidence (optional)",
    WizardStep.REVIEW: "AI assessment",
    WizardStep.NEXT_STEPS: "Recommendations",
}


class WizardState(BaseModel):
    step: WizardStep = WizardStep.DESCRIBE
    fields: IntakeFields = Field(default_factory=IntakeFields)
    attachments: List[PendingAttachment] = Field(default_factory=list)
    assessment: Optional[triage.Assessment] = None
    error: Optional[str] = None


# ---------------- Pure transitions ----------------
def validate_describe(state: WizardState) -> None:
    f = state.fields
    validate_intake(f.symptoms, f.severity, f.onset_date)


def next_step(state: WizardState) -> WizardState:
    """One step forward. Leaving Describe requires valid fields; past Next Steps is a no-op."""
    if state.step == WizardStep.DESCRIBE:
        validate_describe(state)
    if state.step == WizardStep.NEXT_STEPS:
        return state
    update = {"step": WizardStep(state.step + 1), "error": None}
    if update["step"] == WizardStep.REVIEW:
        # stale until the classifier reports back
        update["assessment"] = None
    return state.model_copy(update=update)


def prev_step(state: WizardState) -> WizardState:
    if state.step == WizardStep.DESCRIBE:
        return state
    return state.model_copy(update={"step": WizardStep(state.step - 1), "error": None})


def go_to_step(state: WizardState, step: WizardStep) -> WizardState:
    """Jump back to any earlier step, or forward by exactly one."""
    step = WizardStep(step)
    if step <= state.step:
        return state.model_copy(update={"step": step, "error": None})
    if step == state.step + 1:
        return next_step(state)
    raise ValidationError(f"Cannot skip ahead to {STEP_LABELS[step]}", field="step")


def update_fields(state: WizardState, **changes) -> WizardState:
    fields = state.fields.model_copy(update=changes)
    return state.model_copy(update={"fields": fields})


def append_dictation(state: WizardState, text: str) -> WizardState:
    """Append transcribed voice input to the symptom description."""
    extra = (text or "").strip()
    if not extra:
        return state
    current = state.fields.symptoms or ""
    joined = f"{current} {extra}" if current else extra
    return update_fields(state, symptoms=joined)


def add_attachments(state: WizardState, attachments: List[PendingAttachment]) -> WizardState:
    return state.model_copy(update={"attachments": [*state.attachments, *attachments]})


def remove_attachment(state: WizardState, index: int) -> WizardState:
    if not 0 <= index < len(state.attachments):
        return state
    remaining = [a for i, a in enumerate(state.attachments) if i != index]
    return state.model_copy(update={"attachments": remaining})


# ---------------- Session orchestrator ----------------
class IntakeWizard:
    """Drives one member's wizard session against a DB session and blob store."""

    def __init__(
        self,
        db: Session,
        storage: BlobStorage,
        owner_id: Optional[str],
        *,
        classifier: Callable[..., triage.Assessment] = triage.assess,
        assessment_delay: Optional[float] = None,
        history: Optional[HistoryViewer] = None,
    ) -> None:
        self.db = db
        self.storage = storage
        self.owner_id = owner_id
        self.classifier = classifier
        self.assessment_delay = ASSESSMENT_DELAY_SECONDS if assessment_delay is None else assessment_delay
        self.history = history
        self.state = WizardState()
        self.classifying = False
        self.submitting = False

    # --- field editing ---
    def edit(self, **changes) -> WizardState:
        self.state = update_fields(self.state, **changes)
        return self.state

    def dictate(self, text: str) -> WizardState:
        self.state = append_dictation(self.state, text)
        return self.state

    def attach(self, file_name: str, content_type: str, data: bytes) -> WizardState:
        """Accept one file at the input boundary; rejected files leave the list unchanged."""
        try:
            item = accept_attachment(file_name, content_type, data)
        except ValidationError as exc:
            self.state = self.state.model_copy(update={"error": exc.message})
            return self.state
        self.state = add_attachments(self.state, [item])
        return self.state

    def detach(self, index: int) -> WizardState:
        self.state = remove_attachment(self.state, index)
        return self.state

    # --- navigation ---
    def back(self) -> WizardState:
        self.state = prev_step(self.state)
        return self.state

    async def advance(self) -> WizardState:
        """Move forward one step; entering Review starts classification.

        While a classification is running the wizard cannot leave Review, and
        re-entering Review joins the running classification instead of
        starting a second one. Earlier steps still advance one at a time.
        """
        if self.classifying and self.state.step == WizardStep.REVIEW:
            return self.state
        try:
            new_state = next_step(self.state)
        except ValidationError as exc:
            self.state = self.state.model_copy(update={"error": exc.message})
            return self.state
        self.state = new_state
        if new_state.step == WizardStep.REVIEW and not self.classifying:
            await self._classify()
        return self.state

    async def _classify(self) -> None:
        """Classify the current fields once they are stable.

        A result is only kept if the wizard is still on Review with the fields
        it was computed from; edits made meanwhile restart the wait.
        """
        self.classifying = True
        try:
            while True:
                fields = self.state.fields
                if self.assessment_delay:
                    await asyncio.sleep(self.assessment_delay)
                if self.state.step != WizardStep.REVIEW:
                    # left Review; the next entry classifies again
                    return
                if self.state.fields != fields:
                    continue
                result = self.classifier(fields.symptoms, fields.severity, fields.duration)
                self.state = self.state.model_copy(update={"assessment": result})
                return
        finally:
            self.classifying = False

    # --- terminal action ---
    async def submit(self) -> SubmitResult:
        if self.state.step != WizardStep.NEXT_STEPS:
            return SubmitResult(
                success=False,
                error=ValidationError("Complete the review before submitting", field="step"),
            )
        if self.submitting:
            return SubmitResult(
                success=False,
                error=IntakeError("Submission already in progress"),
            )
        self.submitting = True
        try:
            # yield once so a concurrent double-click observes the in-flight flag
            await asyncio.sleep(0)
            result = submit_intake(
                self.db,
                self.storage,
                self.owner_id,
                self.state.fields,
                self.state.attachments,
                self.state.assessment,
            )
        except IntakeError as exc:
            logger.warning({"function": "IntakeWizard.submit", "status": "rejected", "error": type(exc).__name__})
            result = SubmitResult(success=False, error=exc)
        finally:
            self.submitting = False

        if result.success:
            self.state = WizardState()
        else:
            self.state = self.state.model_copy(update={"error": result.message})
        if self.history is not None:
            self.history.refresh()
        return result


__all__ = [
    "IntakeWizard",
    "WizardState",
    "WizardStep",
    "add_attachments",
    "append_dictation",
    "go_to_step",
    "next_step",
    "prev_step",
    "remove_attachment",
    "update_fields",
    "validate_describe",
]
