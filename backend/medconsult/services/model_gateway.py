# backend/medconsult/services/model_gateway.py

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from openai import AsyncOpenAI

from medconsult.core.config import Settings
from .canned_responses import canned_response_for

logger = logging.getLogger(__name__)

DEMO_MODE = "demo_mode"
CONNECTED = "connected"
DISCONNECTED = "disconnected"


@dataclass
class ModelReply:
    text: str
    degraded: bool
    model: str


class ModelGateway:
    """
    Single entry point for remote model calls.

    Two models sit behind it: the reasoner for diagnostic work and the chat
    model for lighter tasks. Whenever a model has no key, raises, times out or
    answers with empty content, the reply is the canned demo payload for the
    prompt and is marked degraded. Callers never see an exception from here.
    """

    def __init__(
        self,
        settings: Settings,
        reasoner_client: Optional[AsyncOpenAI] = None,
        chat_client: Optional[AsyncOpenAI] = None,
    ):
        self.settings = settings
        self._clients: Dict[str, Optional[AsyncOpenAI]] = {
            "reasoner": reasoner_client,
            "chat": chat_client,
        }

    def _api_key(self, role: str) -> str:
        if role == "reasoner":
            return self.settings.GROQ_API_KEY_REASONER
        return self.settings.GROQ_API_KEY_CHAT

    def _model_name(self, role: str) -> str:
        if role == "reasoner":
            return self.settings.REASONER_MODEL
        return self.settings.CHAT_MODEL

    def has_credentials(self, role: str) -> bool:
        return bool(self._api_key(role))

    def _client(self, role: str) -> AsyncOpenAI:
        client = self._clients[role]
        if client is None:
            client = AsyncOpenAI(
                api_key=self._api_key(role),
                base_url=self.settings.GROQ_BASE_URL,
                timeout=self.settings.MODEL_TIMEOUT_SECONDS,
            )
            self._clients[role] = client
        return client

    async def generate(self, prompt: str, use_reasoner: bool = True) -> ModelReply:
        role = "reasoner" if use_reasoner else "chat"
        model = self._model_name(role)

        if not self.has_credentials(role):
            logger.info(f"No API key for {role} model, returning demo response")
            return ModelReply(text=canned_response_for(prompt), degraded=True, model=model)

        try:
            completion = await self._client(role).chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.settings.MODEL_TEMPERATURE,
                max_tokens=self.settings.MODEL_MAX_TOKENS,
                top_p=self.settings.MODEL_TOP_P,
            )
            content = completion.choices[0].message.content if completion.choices else None
        except Exception as e:
            logger.warning(f"{role} model call failed ({model}): {e}")
            return ModelReply(text=canned_response_for(prompt), degraded=True, model=model)

        if not content or not content.strip():
            logger.warning(f"{role} model returned empty content ({model})")
            return ModelReply(text=canned_response_for(prompt), degraded=True, model=model)

        return ModelReply(text=content, degraded=False, model=model)

    async def complete(self, prompt: str, use_reasoner: bool = True) -> str:
        reply = await self.generate(prompt, use_reasoner=use_reasoner)
        return reply.text

    async def _probe(self, role: str) -> str:
        if not self.has_credentials(role):
            return DEMO_MODE
        try:
            await self._client(role).chat.completions.create(
                model=self._model_name(role),
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=1,
            )
            return CONNECTED
        except Exception as e:
            logger.warning(f"Health probe for {role} model failed: {e}")
            return DISCONNECTED

    async def check_health(self) -> Dict[str, str]:
        return {"reasoner": await self._probe("reasoner"), "chat": await self._probe("chat")}
