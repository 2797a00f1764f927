# tests/test_models.py
import pytest

from lambdas.forward_logs.models import AppSettings


@pytest.mark.parametrize("value, expected", [
    (True, True),
    ("true", True),
    ("TRUE", True),
    (False, False),
    ("false", False),
    ("", False),
    ("1", False),
    ("yes", False),
    ("on", False),
    ("t", False),
    ("y", False),
])
def test_only_true_enables_success_notifications(value, expected):
    settings = AppSettings(SLACK_SEND_SUCCESS=value)
    assert settings.slack_send_success is expected


def test_log_types_are_split_from_csv():
    settings = AppSettings(LOG_TYPES=" s, f ,fp,,")
    assert settings.log_types == ["s", "f", "fp"]


def test_blank_log_types_mean_all_types():
    assert AppSettings(LOG_TYPES="").log_types == []
