"""Structured-output LLM oracle over an OpenAI-compatible chat API."""

import logging
from typing import TypeVar

from openai import AsyncOpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from statgraph.config.settings import Settings
from statgraph.errors import OracleResponseError, OracleUnavailableError
from statgraph.utils.json_parser import JSONParseError, JSONParser

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_JSON_ONLY_INSTRUCTION = (
    "IMPORTANT: respond with a single valid JSON object only, without any additional text."
)


def create_llm_client(settings: Settings) -> AsyncOpenAI:
    """Build the chat client. Retries are disabled: callers never retry oracle calls."""
    return AsyncOpenAI(
        api_key=settings.llm_api_key or None,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout,
        max_retries=0,
    )


class LLMOracle:
    """Answers a prompt with a JSON object validated against a pydantic schema."""

    def __init__(self, client: AsyncOpenAI, settings: Settings):
        self.client = client
        self.model = settings.llm_model
        self.max_tokens = settings.llm_max_tokens

    async def chat(self, system_prompt: str, user_message: str, temperature: float) -> str:
        """Send one chat completion and return the trimmed text content."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                temperature=temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            logger.error("LLM call failed: %s", e)
            raise OracleUnavailableError(f"LLM call failed: {e}") from e

        if not response.choices:
            raise OracleResponseError("LLM returned a response without choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise OracleResponseError("LLM returned empty content")
        return content.strip()

    async def chat_json(
        self,
        system_prompt: str,
        user_message: str,
        schema: type[T],
        temperature: float,
    ) -> T:
        """
        Ask for a JSON answer and validate it.

        Args:
            system_prompt: Stage instructions
            user_message: The question and stage context
            schema: Pydantic model the answer must satisfy
            temperature: Sampling temperature for this stage

        Returns:
            A validated instance of ``schema``

        Raises:
            OracleUnavailableError: transport failure or timeout
            OracleResponseError: invalid JSON or schema mismatch
        """
        full_prompt = f"{system_prompt}\n\n{_JSON_ONLY_INSTRUCTION}"
        raw = await self.chat(full_prompt, user_message, temperature)

        try:
            parsed = JSONParser.parse_object(raw)
        except JSONParseError as e:
            raise OracleResponseError(f"LLM returned malformed JSON: {e}", raw_response=raw) from e

        try:
            return schema.model_validate(parsed)
        except ValidationError as e:
            details = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise OracleResponseError(
                f"LLM returned JSON that does not match {schema.__name__}: {details}",
                raw_response=raw,
            ) from e
