"""
Explanations from an OpenAI-compatible chat completions endpoint.
"""
import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from quantscore.explain.base import Explainer
from quantscore.explain.template import build_summary
from quantscore.providers.exceptions import (
    AuthenticationError,
    MalformedResponse,
    ProviderUnavailable,
    RateLimitError,
)
from quantscore.signals.scoring.types import CompositeResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an equity analyst. Explain quantitative trading signals to an "
    "informed retail investor in plain language. Do not give personal advice."
)


class ChatCompletionExplainer(Explainer):
    name = "openai"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.openai.com/v1/chat/completions",
        model: str = "gpt-4o-mini",
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config) -> "ChatCompletionExplainer":
        return cls(
            api_key=config.openai_api_key,
            api_url=config.openai_api_url,
            model=config.openai_model,
            timeout=config.request_timeout,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    def build_prompt(self, record: CompositeResult) -> str:
        components = [
            {k: v for k, v in c.to_dict().items() if k != "group"}
            for c in record.components
        ]
        return (
            f"{build_summary(record)}\n\n"
            f"Component detail:\n{json.dumps(components, indent=2)}\n\n"
            "In at most five sentences, explain what drives this signal and "
            "what would change it."
        )

    async def explain(self, record: CompositeResult) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self.build_prompt(record)},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        session = await self._get_session()

        try:
            async with session.post(self.api_url, json=payload, headers=headers) as response:
                if response.status == 429:
                    raise RateLimitError(self.name)
                if response.status in (401, 403):
                    raise AuthenticationError(self.name, "API key rejected", status=response.status)
                if response.status >= 400:
                    body = await response.text()
                    raise ProviderUnavailable(
                        self.name, f"API call failed with status {response.status}: {body[:200]}",
                        status=response.status,
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ProviderUnavailable(self.name, f"request failed: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise MalformedResponse(self.name, f"no completion in response: {e!r}") from e
        logger.debug(f"Explanation for {record.symbol}: {len(content)} chars")
        return content.strip()
