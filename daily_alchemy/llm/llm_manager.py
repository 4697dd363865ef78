from daily_alchemy.llm.openai_client import OpenAIClient
from daily_alchemy.llm.gemini_client import GeminiClient


def get_llm(model_name: str):

    if model_name.startswith("gpt"):
        return OpenAIClient(model_name)
    elif model_name.startswith("gemini"):
        return GeminiClient(model_name)
    raise ValueError(f"Unsupported oracle model: {model_name}")
