from __future__ import annotations

"""Gemini API client and task suggestion pipeline.

This provides a thin wrapper with retries + backoff and a suggester that
proposes tags, a category, a priority and a pomodoro estimate for a new task
title. When no key is configured or the call fails, simple keyword rules fill
in so the task dialog always gets an answer.

Network calls are kept minimal; tests mock HTTP transport.
"""

from dataclasses import dataclass, field
import json
import logging
import threading
import time

import httpx
from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash:generateContent"

CATEGORIES = ("Work", "Personal", "Study", "Health", "Finance", "Shopping", "Home", "Other")
PRIORITIES = ("High", "Medium", "Low")


class GeminiError(Exception):
    pass


@dataclass(slots=True)
class GeminiClientConfig:
    api_key: str
    timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.75


@dataclass(slots=True)
class TaskSuggestion:
    tags: list[str] = field(default_factory=lambda: ["📝 Task"])
    category: str = "Other"
    priority: str = "Medium"
    estimated_pomodoros: int = 1
    source: str = "rules"  # rules|model


class GeminiClient:
    def __init__(self, config: GeminiClientConfig, transport: httpx.BaseTransport | None = None):
        self._config = config
        self._client = httpx.Client(timeout=config.timeout, transport=transport)

    def close(self):  # pragma: no cover simple
        self._client.close()

    # Public API ---------------------------------------------------------
    def suggest_task(self, title: str) -> TaskSuggestion:
        """Return a model suggestion for ``title`` or raise GeminiError."""
        prompt = (
            "Analyze this task and return ONLY JSON with keys "
            "'tags' (2-4 short emoji+word tags), "
            f"'category' (one of {', '.join(CATEGORIES)}), "
            f"'priority' (one of {', '.join(PRIORITIES)}) and "
            "'estimatedPomodoros' (1-8, one pomodoro is 25 minutes). "
            f"Task: '{title}'."
        )
        text = self._generate(prompt)
        return parse_suggestion(text)

    # Internal -----------------------------------------------------------
    def _generate(self, prompt: str) -> str:
        api_key = self._config.api_key
        if not api_key:
            raise GeminiError("API key missing")
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        params = {"key": api_key}
        attempt = 0
        while True:
            try:
                resp = self._client.post(GEMINI_ENDPOINT, params=params, json=body)
                if resp.status_code == 429:
                    raise GeminiError("rate_limited")
                if resp.status_code >= 400:
                    raise GeminiError(f"HTTP {resp.status_code}: {resp.text[:200]}")
                data = resp.json()
                text_blocks = []
                for c in data.get("candidates", []):
                    for part in c.get("content", {}).get("parts", []):
                        t = part.get("text")
                        if t:
                            text_blocks.append(t)
                return "\n".join(text_blocks)
            except GeminiError:
                attempt += 1
                if attempt > self._config.max_retries:
                    raise
                time.sleep(self._config.backoff_base * (2 ** (attempt - 1)))
            except Exception as e:  # network or JSON
                attempt += 1
                if attempt > self._config.max_retries:
                    raise GeminiError(str(e)) from e
                time.sleep(self._config.backoff_base * (2 ** (attempt - 1)))


def parse_suggestion(text: str) -> TaskSuggestion:
    """Parse the model's JSON answer, tolerating markdown fences around it."""
    cleaned = text.replace("```json", "").replace("```", "").strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1:
        raise GeminiError("no JSON object in model output")
    try:
        obj = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise GeminiError(f"invalid JSON in model output: {e}") from e
    tags = [str(t) for t in obj.get("tags", []) if str(t).strip()] or ["📝 Task"]
    category = str(obj.get("category", "Other"))
    if category not in CATEGORIES:
        category = "Other"
    priority = str(obj.get("priority", "Medium")).capitalize()
    if priority not in PRIORITIES:
        priority = "Medium"
    try:
        estimate = int(obj.get("estimatedPomodoros", 1))
    except (TypeError, ValueError):
        estimate = 1
    return TaskSuggestion(
        tags=tags[:4],
        category=category,
        priority=priority,
        estimated_pomodoros=min(8, max(1, estimate)),
        source="model",
    )


_KEYWORD_RULES: list[tuple[tuple[str, ...], list[str], str]] = [
    (("meeting", "reunión", "call"), ["👥 Meeting", "💼 Work"], "Work"),
    (("email", "correo"), ["📧 Email", "💼 Work"], "Work"),
    (("study", "estudiar", "learn"), ["📚 Study", "🎯 Learning"], "Study"),
    (("exercise", "gym", "ejercicio"), ["💪 Exercise", "❤️ Health"], "Health"),
    (("buy", "comprar", "shop"), ["🛒 Shopping"], "Shopping"),
]


def rule_based_suggestion(title: str) -> TaskSuggestion:
    lower = title.lower()
    for keywords, tags, category in _KEYWORD_RULES:
        if any(k in lower for k in keywords):
            return TaskSuggestion(tags=list(tags), category=category)
    return TaskSuggestion()


# Suggestion Service ---------------------------------------------------------

class TaskSuggester(QObject):
    suggestion_ready = pyqtSignal(str, object)  # original_title, TaskSuggestion
    error = pyqtSignal(str)

    def __init__(self, client: GeminiClient | None):
        super().__init__()
        self._client = client

    def suggest(self, title: str) -> TaskSuggestion:
        title = title.strip()
        if not title:
            return TaskSuggestion()
        if self._client is None:
            return rule_based_suggestion(title)
        try:
            return self._client.suggest_task(title)
        except GeminiError as e:
            logger.warning("task suggestion failed, using rules: %s", e)
            self.error.emit(str(e))
            return rule_based_suggestion(title)

    def suggest_async(self, title: str) -> None:  # pragma: no cover thread timing
        def worker():
            self.suggestion_ready.emit(title, self.suggest(title))

        threading.Thread(target=worker, daemon=True).start()


__all__ = [
    "GeminiClient",
    "GeminiClientConfig",
    "GeminiError",
    "TaskSuggestion",
    "TaskSuggester",
    "parse_suggestion",
    "rule_based_suggestion",
]
