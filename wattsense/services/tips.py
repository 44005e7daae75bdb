"""Energy-saving tips — Gemini generateContent over REST, with a fixed fallback."""

from __future__ import annotations

import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import Protocol

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

TIPS_PROMPT = (
    "Give exactly 3 concise tips (2 sentences max each) to reduce home or small-office "
    "energy usage. Return as bullet points without numbering."
)

FALLBACK_TIPS = [
    "Unplug idle chargers and devices; they draw standby power. Use a power strip to switch them off together.",
    "Run appliances off-peak and only with full loads. Keep filters and coils clean for better efficiency.",
    "Use fans and natural light before AC and overhead lights. Close curtains in midday heat to cut cooling load.",
]

_BULLET = re.compile(r"^\s*[-*•]\s*")


class TipGenerator(Protocol):
    def generate_tips(self, prompt: str) -> list[str]: ...


def parse_tips(text: str, limit: int = 3) -> list[str]:
    """Split model output into at most ``limit`` bullet-free lines."""
    lines = [_BULLET.sub("", line).strip() for line in (text or "").splitlines()]
    return [line for line in lines if line][:limit]


class GeminiTipGenerator:
    """Calls the Gemini REST API. Returns [] without an API key or on any failure."""

    def __init__(self, api_key: str | None, model: str = "gemini-1.5-flash", timeout: float = 15.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def generate_tips(self, prompt: str) -> list[str]:
        if not self.api_key:
            return []
        try:
            return parse_tips(self._generate(prompt))
        except Exception as e:
            logger.error("Gemini tips generation failed: %s", e)
            return []

    def _generate(self, prompt: str) -> str:
        url = GEMINI_ENDPOINT.format(model=urllib.parse.quote(self.model))
        url = f"{url}?key={urllib.parse.quote(self.api_key or '')}"
        data = json.dumps({"contents": [{"parts": [{"text": prompt}]}]}).encode()
        req = urllib.request.Request(
            url, data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(req, timeout=self.timeout) as resp:
            payload = json.loads(resp.read().decode())

        candidates = payload.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "\n".join(p.get("text", "") for p in parts)


def ensure_tips(generator: TipGenerator | None, prompt: str = TIPS_PROMPT) -> list[str]:
    """Generated tips (max 3), or exactly the three fallback tips."""
    tips: list[str] = []
    if generator is not None:
        try:
            tips = generator.generate_tips(prompt) or []
        except Exception as e:
            logger.error("Tip generator failed: %s", e)
            tips = []
    if not isinstance(tips, list) or not tips:
        return list(FALLBACK_TIPS)
    return tips[:3]
