# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Summarization of oversized tool responses via Azure OpenAI.

Unlike a best-effort helper that hands the input back on failure, the
summarizer raises ``SummarizerError``; the response shaper treats that as
the signal to fall back to truncation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from openai import APIError, APIStatusError, AsyncAzureOpenAI

from ..core.exceptions import SummarizerError

if TYPE_CHECKING:
    from ..core.config import SearchwireSettings

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 50000

SYSTEM_PROMPT = """You are a technical documentation summarizer. Summarize the following content concisely, \
preserving key technical details, structure, and important values. Focus on:
1. Main purpose/functionality
2. Key configuration or settings
3. Important errors or issues
4. Critical data points or metrics
Keep the summary structured and easy to scan."""


class AzureOpenAISummarizer:
    """Callable ``async (text, max_tokens) -> summary``.

    The client does not retry: the shaper runs the call under its own
    deadline and truncates when it fails.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        deployment: str = "gpt-4o-mini",
        api_version: str = "2024-08-01-preview",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.deployment = deployment
        self.api_version = api_version
        self.client = AsyncAzureOpenAI(
            azure_endpoint=self.endpoint,
            api_key=api_key,
            api_version=api_version,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    async def __call__(self, text: str, max_tokens: int) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.deployment,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": f"Summarize this technical content:\n\n{text[:MAX_INPUT_CHARS]}"},
                ],
                max_tokens=max_tokens,
                temperature=0.3,
                top_p=0.95,
            )
        except APIStatusError as e:
            logger.error(f"Summarizer API error ({e.status_code}): {e.message[:500]}")
            raise SummarizerError(f"Summarizer API error ({e.status_code})", status_code=e.status_code) from e
        except APIError as e:
            raise SummarizerError(f"Summarizer request failed: {e}") from e

        if not response.choices:
            raise SummarizerError("Summarizer returned no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise SummarizerError("Summarizer returned an empty summary")
        logger.debug("Summarizer: received %d chars (deployment=%s)", len(content), self.deployment)
        return content.strip()

    async def aclose(self) -> None:
        await self.client.close()


def build_summarizer(
    settings: SearchwireSettings, http_client: httpx.AsyncClient | None = None
) -> AzureOpenAISummarizer | None:
    """Create the summarizer, or None when summarization is not configured."""
    if not settings.summarization_enabled:
        logger.info("Summarization disabled: AZURE_OPENAI_ENDPOINT/AZURE_OPENAI_API_KEY not set")
        return None
    return AzureOpenAISummarizer(
        endpoint=settings.openai_endpoint,
        api_key=settings.openai_api_key,
        deployment=settings.openai_deployment,
        api_version=settings.openai_api_version,
        http_client=http_client,
    )
