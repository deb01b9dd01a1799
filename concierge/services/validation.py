"""Input-boundary checks shared by the wizard and the repository."""
from __future__ import annotations

from datetime import date
from typing import Optional

from concierge.utils.exceptions import ValidationError

SEVERITY_MIN = 1
SEVERITY_MAX = 10


def validate_intake(
    symptoms: Optional[str],
    severity: Optional[int] = None,
    onset_date: Optional[date] = None,
    *,
    today: Optional[date] = None,
) -> None:
    if not (symptoms or "").strip():
        raise ValidationError("Please describe your symptoms", field="symptoms")
    if severity is not None and not (SEVERITY_MIN <= int(severity) <= SEVERITY_MAX):
        raise ValidationError(
            f"Severity must be between {SEVERITY_MIN} and {SEVERITY_MAX}", field="severity"
        )
    if onset_date is not None and onset_date > (today or date.today()):
        raise ValidationError("Onset date cannot be in the future", field="onset_date")


__all__ = ["validate_intake", "SEVERITY_MIN", "SEVERITY_MAX"]
