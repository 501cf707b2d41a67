"""Plain-English translation through an external text-generation service.

The service is an OpenAI-compatible chat-completions endpoint (OpenRouter by
default). It is treated as text in, text out: build a prompt from the bill
context, return the first choice's message content.
"""

import asyncio
import logging

import aiohttp

from congressiq.config import Settings
from congressiq.errors import TranslationError
from congressiq.schemas.models import TranslateRequest

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are an expert at translating legal and government text into plain English."

MAX_TOKENS = 1024
TEMPERATURE = 0.4
REQUEST_TIMEOUT = 60


def build_prompt(request: TranslateRequest) -> str:
    """Assemble the user prompt; full text wins over the summary when present."""
    context_text = request.full_text or request.summary
    parts = []
    if request.title:
        parts.append(f"Title: {request.title}")
    if request.sponsor:
        parts.append(f"Sponsor: {request.sponsor}")
    if request.actions:
        parts.append(f"Recent Actions: {'; '.join(request.actions)}")
    parts.append(f"Bill Text: {context_text}")
    context_block = "\n".join(parts)
    return (
        "Here is the official title, sponsor, recent actions, and full text for a "
        "U.S. Congressional bill.\n"
        "Please provide a detailed, plain-English analysis, including:\n"
        "- Main objectives and key provisions\n"
        "- Potential impact on businesses and the public\n"
        "- Any controversial or noteworthy aspects\n\n"
        f"{context_block}"
    )


class TranslationService:
    """Client for the chat-completions collaborator."""

    def __init__(self, settings: Settings, config: dict | None = None):
        section = (config or {}).get("translation", {})
        self.api_url = settings.translation_api_url
        self.api_key = settings.translation_api_key
        self.model = settings.translation_model
        self.max_tokens = section.get("max_tokens", MAX_TOKENS)
        self.temperature = section.get("temperature", TEMPERATURE)
        self.timeout = aiohttp.ClientTimeout(total=section.get("request_timeout", REQUEST_TIMEOUT))

    def create_session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(timeout=self.timeout)

    async def translate(self, session: aiohttp.ClientSession, request: TranslateRequest) -> str:
        """Return the plain-English analysis for one bill.

        Raises:
            TranslationError: Not configured, transport failure, or non-200 reply.
        """
        if not self.api_key:
            raise TranslationError("Translation API key is not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(request)},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with session.post(self.api_url, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    detail = await resp.text()
                    logger.error("Translation API error %d: %s", resp.status, detail[:500])
                    raise TranslationError(f"LLM API error: {detail}")
                data = await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TranslationError(f"LLM API request failed: {e}") from e

        choices = data.get("choices") or []
        if not choices:
            return ""
        message = (choices[0] or {}).get("message") or {}
        return message.get("content") or ""
