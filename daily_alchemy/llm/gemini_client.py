from google import genai
from google.genai import errors as genai_errors

from daily_alchemy.core.config import settings
from daily_alchemy.llm.errors import OracleTransportError


class GeminiClient:
    def __init__(self, model_name="gemini-2.5-flash", api_key=None):
        self.client = genai.Client(api_key=api_key or settings.GEMINI_KEY)
        self.model_name = model_name

    async def complete_json(self, prompt: dict) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt["user_prompt"],
                config={
                    "system_instruction": prompt["system_prompt"],
                    "response_mime_type": "application/json",
                },
            )
        except genai_errors.ServerError as e:
            raise OracleTransportError(str(e), retryable=True) from e
        except genai_errors.APIError as e:
            # 429 is worth retrying, other client errors are not
            raise OracleTransportError(str(e), retryable=getattr(e, "code", None) == 429) from e

        if not response.text:
            raise OracleTransportError("Empty completion", retryable=True)
        return response.text
