from __future__ import annotations

import logging
from typing import Optional

from openai import OpenAI

from pantry_chef.config import OPENAI_API_KEY, OPENAI_MODEL

log = logging.getLogger("pantry_chef.ai")


class AIClient:
    """Text completion over the OpenAI Responses API: prompt in, plain text out."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        model: str = OPENAI_MODEL,
        client: Optional[OpenAI] = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise RuntimeError("OPENAI_API_KEY is not set")
            client = OpenAI(api_key=api_key)
        self._client = client
        self.model = model

    def complete(self, prompt: str, system: Optional[str] = None) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        resp = self._client.responses.create(model=self.model, input=messages)
        text = resp.output_text or ""
        log.debug("Model %s returned %d chars", self.model, len(text))
        return text
