"""Message rewriting via Google Gemini (google-genai SDK)."""

import logging

from google import genai
from google.genai import types

from giftpage.core.errors import InternalError, TextAssistError


logger = logging.getLogger("giftpage.rewrite")

SYSTEM_INSTRUCTION = (
    "You are a creative writing assistant helping someone write a warm, personal, "
    "and heartfelt message to a friend or family member. You refine their words to be "
    "more poetic and touching while preserving the core message. Return only the "
    "rewritten text, without any additional commentary or quotation marks."
)


def build_prompt(text: str) -> str:
    return (
        "Rewrite the following message for a gift to make it more heartfelt and eloquent. "
        "Keep the original sentiment and key memories. "
        f'Here is the original text: "{text}"'
    )


class MessageRewriter:
    def __init__(self, api_key: str, model: str = "gemini-2.5-flash", temperature: float = 0.7) -> None:
        self.model = model
        self.temperature = temperature
        self._api_key = api_key
        self._client: genai.Client | None = None

    def _get_client(self) -> genai.Client:
        if not self._api_key:
            raise InternalError("Gemini API key is not configured on the server.")
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def rewrite(self, text: str) -> str:
        client = self._get_client()
        try:
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=build_prompt(text),
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_INSTRUCTION,
                    temperature=self.temperature,
                ),
            )
        except Exception as exc:
            logger.error("Gemini rewrite failed model=%s error=%s", self.model, exc, exc_info=True)
            raise TextAssistError() from exc

        rewritten = (response.text or "").strip()
        if not rewritten:
            logger.warning("Gemini returned an empty rewrite model=%s", self.model)
            raise TextAssistError()
        return rewritten
