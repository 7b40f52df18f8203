"""Provider construction helpers."""

from codeagent.config import Settings
from codeagent.providers.base import ModelProvider
from codeagent.providers.openai import OpenAIChatProvider


def build_provider(settings: Settings) -> ModelProvider:
    return OpenAIChatProvider(
        settings.model_name,
        base_url=settings.model_base_url,
        api_key=settings.model_api_key,
        timeout_seconds=settings.model_timeout_seconds,
    )
