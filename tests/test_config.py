"""Tests for settings loading and the derived alert policy."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from wattsense.config import Settings
from wattsense.services.budget_monitor import AlertPolicy


def test_defaults():
    s = Settings(_env_file=None)
    assert s.kwh_rate == 1444
    assert s.alert_threshold_percent == 90.0
    assert s.alert_throttle == timedelta(hours=24)
    assert s.smtp_host == ""


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("WATTSENSE_KWH_RATE", "1699.53")
    monkeypatch.setenv("WATTSENSE_ALERT_THROTTLE_HOURS", "12")
    monkeypatch.setenv("WATTSENSE_SMTP_HOST", "smtp.example.com")
    s = Settings(_env_file=None)
    assert s.kwh_rate == 1699.53
    assert s.alert_throttle == timedelta(hours=12)
    assert s.smtp_host == "smtp.example.com"


def test_explicit_database_url_wins():
    s = Settings(database_url="postgresql://u:p@db/wattsense", _env_file=None)
    assert s.effective_database_url == "postgresql://u:p@db/wattsense"


def test_default_database_is_local_sqlite(tmp_path):
    s = Settings(repo_root=tmp_path, _env_file=None)
    assert s.effective_database_url == f"sqlite:///{tmp_path / 'local' / 'data' / 'wattsense.db'}"
    assert (tmp_path / "local" / "data").is_dir()


def test_policy_from_settings():
    policy = AlertPolicy.from_settings(
        Settings(alert_threshold_percent=80, alert_throttle_hours=6, _env_file=None)
    )
    assert policy.threshold_percent == 80
    assert policy.throttle == timedelta(hours=6)


@pytest.mark.parametrize("field,value", [
    ("kwh_rate", 0),
    ("kwh_rate", -1444),
    ("alert_threshold_percent", 0),
    ("alert_throttle_hours", -1),
    ("smtp_max_attempts", 0),
    ("smtp_retry_delay", -0.5),
])
def test_out_of_range_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: value})


def test_zero_throttle_is_allowed():
    assert Settings(alert_throttle_hours=0, _env_file=None).alert_throttle == timedelta(0)
