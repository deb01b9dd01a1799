from datetime import date, timedelta

import pytest

from concierge.services.validation import validate_intake
from concierge.utils.exceptions import ValidationError


@pytest.mark.parametrize("symptoms", ["", "   ", None])
def test_blank_symptoms_rejected(symptoms):
    with pytest.raises(ValidationError) as ei:
        validate_intake(symptoms)
    assert ei.value.field == "symptoms"
    assert ei.value.status_code == 422


@pytest.mark.parametrize("severity", [0, 11, -3])
def test_severity_out_of_range(severity):
    with pytest.raises(ValidationError) as ei:
        validate_intake("cough", severity)
    assert ei.value.field == "severity"


def test_future_onset_rejected():
    today = date(2024, 5, 1)
    with pytest.raises(ValidationError) as ei:
        validate_intake("cough", 4, today + timedelta(days=1), today=today)
    assert ei.value.field == "onset_date"


def test_valid_input_passes():
    today = date(2024, 5, 1)
    validate_intake("cough", 1, today, today=today)
    validate_intake("cough", 10)
    validate_intake("cough")
