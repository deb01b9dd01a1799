"""Rule-based advisory triage for member symptom reports.

Two independent classifications are produced from the same input:

- the urgency flag (Low/Medium/High) uses severity thresholds plus keywords;
- the risk label (Mild/Moderate/Needs Review) uses keywords alone.

They are not reconciled: "fever" at severity 3 is Medium
urgency but a Mild risk label. The assessment text is templated and always
ends with the fixed disclaimer; it is never a diagnosis.
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from concierge.models.symptom_submission import DurationCategory, RiskLabel, UrgencyFlag

DISCLAIMER = "This is not a diagnosis. Your care team will review and follow up."

RULES_PATH = Path(__file__).parent.parent / "config" / "triage_rules.yaml"


def load_rules(path: Path = RULES_PATH) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


RULES = load_rules()


@dataclass(frozen=True)
class Assessment:
    assessment_text: str
    risk_label: RiskLabel
    confidence: float
    session_id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _contains_any(text: str, keywords) -> bool:
    return any(k in text for k in keywords)


def _effective_severity(severity: Optional[int]) -> int:
    return RULES["default_severity"] if severity is None else int(severity)


def compute_urgency(symptoms: str, severity: Optional[int] = None) -> UrgencyFlag:
    text = (symptoms or "").lower()
    level = _effective_severity(severity)
    high = RULES["urgency"]["high"]
    if level >= high["min_severity"] or _contains_any(text, high["keywords"]):
        return UrgencyFlag.HIGH
    medium = RULES["urgency"]["medium"]
    if level >= medium["min_severity"] or _contains_any(text, medium["keywords"]):
        return UrgencyFlag.MEDIUM
    return UrgencyFlag.LOW


def compute_risk_label(symptoms: str) -> RiskLabel:
    # case-sensitive, unlike the urgency keywords
    text = symptoms or ""
    if _contains_any(text, RULES["risk_label"]["needs_review"]["keywords"]):
        return RiskLabel.NEEDS_REVIEW
    if _contains_any(text, RULES["risk_label"]["moderate"]["keywords"]):
        return RiskLabel.MODERATE
    return RiskLabel.MILD


def assessment_text(symptoms: str) -> str:
    text = symptoms or ""
    phrase = RULES["assessment"]["fallback"]
    for cond in RULES["assessment"]["conditions"]:
        if cond["keyword"] in text:
            phrase = cond["phrase"]
            break
    return f"This may be consistent with {phrase}. {DISCLAIMER}"


def new_session_id(rng: Optional[random.Random] = None) -> str:
    """Display-only reference shown to the member; never used as a key."""
    r = rng or random
    return f"SYM-{r.randint(1000, 9999)}"


def assess(
    symptoms: str,
    severity: Optional[int] = None,
    duration: Optional[DurationCategory] = None,
    *,
    rng: Optional[random.Random] = None,
) -> Assessment:
    # duration is accepted for interface parity; no rule keys off it yet
    return Assessment(
        assessment_text=assessment_text(symptoms),
        risk_label=compute_risk_label(symptoms),
        confidence=float(RULES["assessment"]["confidence"]),
        session_id=new_session_id(rng),
    )


__all__ = [
    "DISCLAIMER",
    "Assessment",
    "assess",
    "assessment_text",
    "compute_risk_label",
    "compute_urgency",
    "new_session_id",
]
