"""Chat-completion client for Oracle readings.

Wraps the OpenAI SDK pointed at an OpenAI-compatible endpoint
(OpenRouter by default). Ordinary failures come back as values, not
exceptions, so the caller decides what a failed reading looks like.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Optional

import httpx
from openai import APIConnectionError, APIResponseValidationError, APIStatusError, OpenAI

from .config import OracleConfig

log = logging.getLogger("oracle.completion")

ErrorKind = Literal["api_error", "empty_response", "transport"]


@dataclass(frozen=True)
class CompletionError:
    kind: ErrorKind
    message: str
    status: Optional[int] = None

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.kind} ({self.status}): {self.message}"
        return f"{self.kind}: {self.message}"


@dataclass(frozen=True)
class CompletionResult:
    text: Optional[str] = None
    error: Optional[CompletionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text)

    @classmethod
    def success(cls, text: str) -> "CompletionResult":
        return cls(text=text)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str, status: Optional[int] = None) -> "CompletionResult":
        return cls(error=CompletionError(kind=kind, message=message, status=status))


class CompletionClient:
    """One request per call, no retries.

    Raises ConfigurationError at construction when no API key is configured.
    """

    def __init__(self, config: OracleConfig, http_client: Optional[httpx.Client] = None):
        api_key = config.require_api_key()
        self.config = config

        headers = {}
        if config.app_url:
            headers["HTTP-Referer"] = config.app_url
        if config.app_title:
            headers["X-Title"] = config.app_title

        self._client = OpenAI(
            api_key=api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
            default_headers=headers or None,
            http_client=http_client,
        )
        log.info("Completion client initialized (base_url=%s, model=%s)", config.base_url, config.model)

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        log.info(
            "Sending prompt (model=%s, length=%d, max_tokens=%d)",
            self.config.model,
            len(user_prompt),
            max_tokens,
        )
        try:
            response = self._client.chat.completions.create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except APIStatusError as e:
            log.warning("Completion API returned %s: %s", e.status_code, e.message)
            return CompletionResult.failure("api_error", e.message, e.status_code)
        except APIResponseValidationError as e:
            log.warning("Completion API returned an unreadable body: %s", e.message)
            return CompletionResult.failure("api_error", e.message, e.response.status_code)
        except APIConnectionError as e:
            # also covers APITimeoutError
            log.warning("Completion API unreachable: %s", e)
            return CompletionResult.failure("transport", str(e) or type(e).__name__)
        except ValueError as e:
            log.warning("Completion API returned malformed JSON: %s", e)
            return CompletionResult.failure("api_error", f"Malformed response body: {e}")

        text = _first_choice_text(response)
        if not text:
            log.error("Completion response contained no text")
            return CompletionResult.failure("empty_response", "No content in completion response")

        log.info("Completion received (length=%d)", len(text))
        return CompletionResult.success(text)

    def close(self) -> None:
        self._client.close()


def _first_choice_text(response) -> Optional[str]:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        return None
    return content.strip()
