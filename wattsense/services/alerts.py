"""Alert dispatch — email notifications for budget warnings and monthly summaries."""

from __future__ import annotations

import logging
import smtplib
import time
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Protocol

from ..config import Settings
from .units import KWH_RATE_IDR, energy_label, format_idr

logger = logging.getLogger(__name__)


@dataclass
class NotificationResult:
    success: bool
    error: str | None = None


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> NotificationResult: ...


@dataclass
class EmailConfig:
    """SMTP destination configuration."""

    smtp_host: str = ""
    smtp_port: int = 587
    username: str = ""
    password: str = ""
    use_tls: bool = True
    email_from: str = "Energy Monitor <no-reply@wattsense.local>"
    max_attempts: int = 2
    retry_delay: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailConfig":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            email_from=settings.email_from,
            max_attempts=settings.smtp_max_attempts,
            retry_delay=settings.smtp_retry_delay,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)


class SmtpNotifier:
    """Sends plain-text email over SMTP. Never raises past ``send``.

    Connection and protocol errors are retried up to ``max_attempts`` times,
    ``retry_delay`` seconds apart; anything else fails the send at once.
    """

    def __init__(self, config: EmailConfig):
        self.config = config

    def send(self, to: str, subject: str, body: str) -> NotificationResult:
        msg = self._message(to, subject, body)
        attempts = max(1, self.config.max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                self._deliver(msg)
                return NotificationResult(success=True)
            except (smtplib.SMTPException, OSError) as e:
                if attempt == attempts:
                    logger.error("Email to %s undeliverable after %d attempt(s): %s", to, attempt, e)
                    return NotificationResult(success=False, error=str(e))
                logger.warning(
                    "SMTP hiccup sending to %s (attempt %d of %d): %s",
                    to, attempt, attempts, e,
                )
                time.sleep(self.config.retry_delay)
            except Exception as e:
                logger.error("Email to %s rejected: %s", to, e)
                return NotificationResult(success=False, error=str(e))

    def _message(self, to: str, subject: str, body: str) -> MIMEText:
        msg = MIMEText(body)
        msg["Subject"] = subject
        msg["From"] = self.config.email_from
        msg["To"] = to
        return msg

    def _deliver(self, msg: MIMEText) -> None:
        with smtplib.SMTP(self.config.smtp_host, self.config.smtp_port, timeout=30) as smtp:
            if self.config.use_tls:
                smtp.starttls()
            if self.config.username:
                smtp.login(self.config.username, self.config.password)
            smtp.send_message(msg)


class DisabledNotifier:
    """Stand-in used when no SMTP host is configured; every send is a failure."""

    def send(self, to: str, subject: str, body: str) -> NotificationResult:
        logger.warning("SMTP not configured; skipping email to %s: %s", to, subject)
        return NotificationResult(success=False, error="email transport not configured")


def build_notifier(settings: Settings) -> Notifier:
    config = EmailConfig.from_settings(settings)
    if not config.enabled:
        return DisabledNotifier()
    return SmtpNotifier(config)


# ---------------------------------------------------------------------------
# Message bodies
# ---------------------------------------------------------------------------


def render_budget_warning(
    name: str | None,
    percent_used: float,
    budget_amount: float,
    usage: float,
    threshold_percent: float = 90.0,
    rate: float = KWH_RATE_IDR,
) -> tuple[str, str]:
    """Return (subject, body) for a budget warning email."""
    subject = f"Budget warning: {percent_used:.1f}% used"
    body = "\n".join([
        f"Hi {name or 'Customer'},",
        "",
        f"Your energy budget is almost fully used ({percent_used:.1f}%).",
        "",
        "Current status:",
        f"  {energy_label(usage, rate)} of {energy_label(budget_amount, rate)} used.",
        "",
        "Add more kWh to avoid interruptions in tracking and alerts.",
        "",
        f"You are receiving this warning because your energy budget usage crossed {threshold_percent:g}%.",
    ])
    return subject, body


def render_monthly_summary(
    name: str | None,
    month_label: str,
    total_cost: float,
    total_energy: float,
    tips: list[str],
) -> tuple[str, str]:
    """Return (subject, body) for the monthly usage summary email."""
    subject = f"{month_label} Summary - Energy usage overview"
    lines = [
        f"Hi {name or 'Customer'},",
        "",
        f"{month_label} Summary",
        f"  Total cost:   {format_idr(total_cost)}",
        f"  Total energy: {total_energy:.2f} kWh",
        "",
        "Tips to reduce your usage:",
    ]
    lines.extend(f"  - {tip}" for tip in tips)
    return subject, "\n".join(lines)
