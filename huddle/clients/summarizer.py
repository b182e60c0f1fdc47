from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

import httpx

from ..config import get_settings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a helpful assistant that analyzes poll results and provides concise insights. "
    "Keep responses under 200 words and focus on key trends and interesting findings."
)


class SummarizerError(RuntimeError):
    """Raised when the summarization collaborator cannot produce a summary."""


class PollSummarizer(Protocol):
    def summarize(self, aggregate: Any) -> str:
        ...


def build_prompt(aggregate: Any) -> str:
    """Render a poll aggregate as the user prompt sent to the model."""

    lines: Sequence[str] = [
        f"- {option.text}: {option.votes} votes ({', '.join(option.voters)})" for option in aggregate.options
    ]
    results = "\n".join(lines)
    return (
        "Analyze this poll and provide insights:\n\n"
        f"Question: {aggregate.question}\n\n"
        f"Results:\n{results}\n\n"
        f"Total responses: {aggregate.total_responses}/{aggregate.total_members} members"
    )


class ChatCompletionSummarizer:
    """Summarize poll results through an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> None:
        settings = get_settings()
        self._endpoint = f"{(base_url or settings.summarizer_base_url).rstrip('/')}/chat/completions"
        self._api_key = api_key if api_key is not None else settings.summarizer_api_key
        self._model = model or settings.summarizer_model
        self._timeout = timeout or settings.summarizer_timeout
        self._max_tokens = settings.summarizer_max_tokens
        self._temperature = settings.summarizer_temperature

    def summarize(self, aggregate: Any) -> str:
        if not self._api_key:
            raise SummarizerError("Summarizer API key is not configured")

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(aggregate)},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            with httpx.Client(timeout=self._timeout) as client:
                response = client.post(self._endpoint, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error(
                "Summarizer timeout | endpoint=%s timeout=%s error=%s",
                self._endpoint,
                self._timeout,
                type(exc).__name__,
            )
            raise SummarizerError("Summarizer request timed out") from exc
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code if exc.response is not None else None
            logger.error(
                "Summarizer HTTP status error | endpoint=%s status=%s",
                self._endpoint,
                status_code or "unknown",
            )
            raise SummarizerError("Summarizer request failed") from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Summarizer transport error | endpoint=%s error=%s",
                self._endpoint,
                type(exc).__name__,
            )
            raise SummarizerError("Summarizer request failed") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise SummarizerError("Summarizer response was not valid JSON") from exc

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SummarizerError("Invalid summarizer response format") from exc
        if not isinstance(content, str) or not content.strip():
            raise SummarizerError("Summarizer returned an empty reply")
        return content.strip()


_summarizer: PollSummarizer | None = None


def set_poll_summarizer(summarizer: PollSummarizer | None) -> None:
    """Override the poll summarizer (useful for tests)."""

    global _summarizer
    _summarizer = summarizer


def get_poll_summarizer() -> PollSummarizer:
    global _summarizer
    if _summarizer is None:
        _summarizer = ChatCompletionSummarizer()
    return _summarizer


__all__ = [
    "PollSummarizer",
    "ChatCompletionSummarizer",
    "SummarizerError",
    "build_prompt",
    "set_poll_summarizer",
    "get_poll_summarizer",
]
