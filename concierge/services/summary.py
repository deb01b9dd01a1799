"""Plain-text downloads. Pure formatting, no I/O, no clock reads."""
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

AUTOMATED_NOTICE = (
    "This is an automated assessment and not a medical diagnosis.\n"
    "Please consult with a healthcare professional for proper evaluation."
)


def _fmt_ts(ts: datetime) -> str:
    return ts.strftime("%Y-%m-%d %H:%M:%S")


def _value(v) -> str:
    if v is None or v == "":
        return "Not specified"
    if isinstance(v, date):
        return v.isoformat()
    return str(getattr(v, "value", v))


def summary_filename(session_id: str) -> str:
    return f"symptom-assessment-{session_id}.txt"


def render_assessment_summary(
    session_id: str,
    timestamp: datetime,
    symptoms: str,
    assessment: str,
    risk,
    duration=None,
    severity: Optional[int] = None,
    onset_date: Optional[date] = None,
) -> str:
    lines = [
        "SYMPTOM ASSESSMENT SUMMARY",
        "-------------------------",
        f"Session ID: {session_id}",
        f"Date: {_fmt_ts(timestamp)}",
        "",
        "SYMPTOMS:",
        symptoms.strip(),
        "",
        f"Duration: {_value(duration)}",
        f"Severity: {f'{severity}/10' if severity is not None else 'Not specified'}",
        f"Onset Date: {_value(onset_date)}",
        "",
        "AI ASSESSMENT:",
        assessment.strip(),
        "",
        f"Risk Level: {_value(risk)}",
        "",
        AUTOMATED_NOTICE,
    ]
    return "\n".join(lines) + "\n"


def render_submission_report(submission, files: Iterable, notes: Iterable, generated_at: datetime) -> str:
    """Provider-facing report for one submission, its notes and attached files."""
    lines = [
        "SYMPTOM SUBMISSION REPORT",
        "-------------------------",
        f"ID: {submission.id}",
        f"Date: {_fmt_ts(submission.created_at)}",
        f"Status: {_value(submission.status)}",
        f"Urgency: {_value(submission.urgency_flag)}",
        "",
        "SYMPTOMS:",
        (submission.symptoms or "").strip(),
        "",
    ]
    if submission.duration:
        lines.append(f"Duration: {_value(submission.duration)}")
    if submission.severity:
        lines.append(f"Severity: {submission.severity}/10")
    if submission.onset_date:
        lines.append(f"Onset Date: {_value(submission.onset_date)}")
    lines += ["", "AI ASSESSMENT:", submission.ai_assessment or "No AI assessment available"]
    if submission.ai_risk_level:
        lines.append(f"Risk Level: {_value(submission.ai_risk_level)}")
    if submission.ai_confidence:
        lines.append(f"Confidence: {submission.ai_confidence * 100:.0f}%")

    notes = list(notes)
    lines += ["", "PROVIDER NOTES:"]
    if notes:
        lines.append("\n\n".join(f"[{_fmt_ts(n.created_at)}]\n{n.content}" for n in notes))
    else:
        lines.append("No provider notes available")

    files = list(files)
    lines += ["", "FILES:"]
    if files:
        lines += [f"- {f.file_name} ({f.file_type}): {f.file_url}" for f in files]
    else:
        lines.append("No files attached")

    lines += ["", f"Generated on: {_fmt_ts(generated_at)}"]
    return "\n".join(lines) + "\n"


__all__ = ["render_assessment_summary", "render_submission_report", "summary_filename"]
