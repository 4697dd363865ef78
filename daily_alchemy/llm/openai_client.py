import logging

import openai
from openai import AsyncOpenAI

from daily_alchemy.core.config import settings
from daily_alchemy.llm.errors import OracleTransportError

logger = logging.getLogger(__name__)

# errors worth another attempt
RETRYABLE_ERRORS = (
    openai.APIConnectionError,
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIClient:
    def __init__(self, model_name="gpt-4o-mini", api_key=None):
        self.client = AsyncOpenAI(api_key=api_key or settings.OPENAI_API_KEY)
        self.model_name = model_name


    async def complete_json(self, prompt: dict) -> str:
        """ Ask for a JSON object (structured output) and return the raw text"""
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "system", "content": prompt.get("system_prompt")},
                          {"role": "user", "content": prompt.get("user_prompt")}],
                response_format={"type": "json_object"},
            )
        except RETRYABLE_ERRORS as e:
            raise OracleTransportError(f"{type(e).__name__}: {e}", retryable=True) from e
        except openai.OpenAIError as e:
            raise OracleTransportError(f"{type(e).__name__}: {e}", retryable=False) from e

        # ---------- TOKEN USAGE ----------
        if response.usage:
            usage = response.usage
            logger.info(
                "Oracle token usage (%s): prompt=%s completion=%s total=%s",
                self.model_name, usage.prompt_tokens, usage.completion_tokens, usage.total_tokens,
            )

        content = response.choices[0].message.content
        if not content:
            raise OracleTransportError("Empty completion", retryable=True)
        return content
