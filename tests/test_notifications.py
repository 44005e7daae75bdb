"""Tests for email dispatch, message rendering, and tip generation."""

import json
import smtplib
import urllib.error
from unittest.mock import MagicMock, patch

from wattsense.config import Settings
from wattsense.services.alerts import (
    DisabledNotifier,
    EmailConfig,
    SmtpNotifier,
    build_notifier,
    render_budget_warning,
    render_monthly_summary,
)
from wattsense.services.tips import (
    FALLBACK_TIPS,
    GeminiTipGenerator,
    ensure_tips,
    parse_tips,
)


# ── Email ─────────────────────────────────────────────────────────────────


def _config(**overrides) -> EmailConfig:
    values = dict(smtp_host="smtp.test", smtp_port=2525, username="bot", password="pw", email_from="a@b.c")
    values.update(overrides)
    return EmailConfig(**values)


@patch("wattsense.services.alerts.smtplib.SMTP")
def test_smtp_send_success(mock_smtp):
    smtp = mock_smtp.return_value.__enter__.return_value
    result = SmtpNotifier(_config()).send("ana@example.com", "Hello", "Body")

    assert result.success is True
    assert result.error is None
    mock_smtp.assert_called_once_with("smtp.test", 2525, timeout=30)
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("bot", "pw")
    msg = smtp.send_message.call_args[0][0]
    assert msg["To"] == "ana@example.com"
    assert msg["Subject"] == "Hello"


@patch("wattsense.services.alerts.smtplib.SMTP")
def test_smtp_without_tls_or_login(mock_smtp):
    smtp = mock_smtp.return_value.__enter__.return_value
    SmtpNotifier(_config(use_tls=False, username="")).send("ana@example.com", "Hi", "Body")
    smtp.starttls.assert_not_called()
    smtp.login.assert_not_called()


@patch("wattsense.services.alerts.time.sleep")
@patch("wattsense.services.alerts.smtplib.SMTP")
def test_smtp_failure_is_reported_not_raised(mock_smtp, mock_sleep):
    mock_smtp.side_effect = smtplib.SMTPConnectError(421, "busy")
    result = SmtpNotifier(_config()).send("ana@example.com", "Hello", "Body")

    assert result.success is False
    assert "busy" in result.error
    assert mock_smtp.call_count == 2  # one retry
    mock_sleep.assert_called_once()


@patch("wattsense.services.alerts.time.sleep")
@patch("wattsense.services.alerts.smtplib.SMTP")
def test_smtp_attempts_follow_config(mock_smtp, mock_sleep):
    smtp = mock_smtp.return_value.__enter__.return_value
    smtp.send_message.side_effect = [ConnectionResetError("reset"), ConnectionResetError("reset"), {}]
    result = SmtpNotifier(_config(max_attempts=3, retry_delay=0.25)).send("ana@example.com", "Hi", "Body")

    assert result.success is True
    assert mock_smtp.call_count == 3
    assert mock_sleep.call_count == 2
    mock_sleep.assert_called_with(0.25)


@patch("wattsense.services.alerts.time.sleep")
@patch("wattsense.services.alerts.smtplib.SMTP")
def test_smtp_non_transport_error_is_not_retried(mock_smtp, mock_sleep):
    mock_smtp.return_value.__enter__.return_value.send_message.side_effect = ValueError("bad header")
    result = SmtpNotifier(_config(max_attempts=3)).send("ana@example.com", "Hi", "Body")

    assert result.success is False
    assert result.error == "bad header"
    assert mock_smtp.call_count == 1
    mock_sleep.assert_not_called()


def test_disabled_notifier_fails():
    result = DisabledNotifier().send("ana@example.com", "Hi", "Body")
    assert result.success is False
    assert result.error == "email transport not configured"


def test_build_notifier_follows_settings():
    assert isinstance(build_notifier(Settings(smtp_host="", _env_file=None)), DisabledNotifier)
    notifier = build_notifier(Settings(smtp_host="smtp.test", smtp_port=25, _env_file=None))
    assert isinstance(notifier, SmtpNotifier)
    assert notifier.config.smtp_port == 25

    tuned = build_notifier(Settings(
        smtp_host="smtp.test", smtp_max_attempts=4, smtp_retry_delay=0.5, _env_file=None,
    ))
    assert tuned.config.max_attempts == 4
    assert tuned.config.retry_delay == 0.5


def test_render_budget_warning():
    subject, body = render_budget_warning("Ana", 95.0, 100_000, 95_000)
    assert subject == "Budget warning: 95.0% used"
    assert body.startswith("Hi Ana,")
    assert "Rp 95.000 (65.79 kWh) of Rp 100.000 (69.25 kWh) used." in body
    assert "crossed 90%" in body


def test_render_budget_warning_default_name():
    _, body = render_budget_warning(None, 91.25, 100_000, 91_250)
    assert body.startswith("Hi Customer,")


def test_render_monthly_summary():
    subject, body = render_monthly_summary("Ana", "January", 123_456, 85.499, ["Tip one", "Tip two"])
    assert subject == "January Summary - Energy usage overview"
    assert "Rp 123.456" in body
    assert "85.50 kWh" in body
    assert "  - Tip one" in body
    assert "  - Tip two" in body


# ── Tips ──────────────────────────────────────────────────────────────────


def test_parse_tips_strips_bullets():
    text = "* Turn off lights.\n\n- Use fans.\n• Unplug chargers.\n- Fourth tip."
    assert parse_tips(text) == ["Turn off lights.", "Use fans.", "Unplug chargers."]


def test_parse_tips_empty():
    assert parse_tips("") == []
    assert parse_tips(None) == []


def test_gemini_without_key_returns_nothing():
    with patch("wattsense.services.tips.urllib.request.urlopen") as mock_open:
        assert GeminiTipGenerator(None).generate_tips("prompt") == []
        mock_open.assert_not_called()


@patch("wattsense.services.tips.urllib.request.urlopen")
def test_gemini_parses_response(mock_open):
    payload = {"candidates": [{"content": {"parts": [{"text": "- A\n- B\n- C\n- D"}]}}]}
    resp = MagicMock()
    resp.read.return_value = json.dumps(payload).encode()
    mock_open.return_value.__enter__.return_value = resp

    tips = GeminiTipGenerator("secret", model="gemini-test").generate_tips("prompt")

    assert tips == ["A", "B", "C"]
    req = mock_open.call_args[0][0]
    assert "models/gemini-test:generateContent?key=secret" in req.full_url
    assert json.loads(req.data)["contents"][0]["parts"][0]["text"] == "prompt"


@patch("wattsense.services.tips.urllib.request.urlopen")
def test_gemini_failure_returns_nothing(mock_open):
    mock_open.side_effect = urllib.error.URLError("offline")
    assert GeminiTipGenerator("secret").generate_tips("prompt") == []


def test_ensure_tips_fallback_has_three(tips_factory):
    assert len(FALLBACK_TIPS) == 3
    assert ensure_tips(None) == FALLBACK_TIPS
    assert ensure_tips(tips_factory([])) == FALLBACK_TIPS


def test_ensure_tips_when_generator_raises():
    broken = MagicMock()
    broken.generate_tips.side_effect = RuntimeError("quota")
    assert ensure_tips(broken) == FALLBACK_TIPS


def test_ensure_tips_caps_at_three(tips_factory):
    assert ensure_tips(tips_factory(["1", "2", "3", "4"])) == ["1", "2", "3"]
    assert ensure_tips(tips_factory(["only"])) == ["only"]
