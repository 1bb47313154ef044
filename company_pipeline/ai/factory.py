from typing import Dict, Optional, Type

from company_pipeline.ai.base import AIModel
from company_pipeline.ai.openai_model import OpenAIModel
from company_pipeline.config import AI_MAX_TOKENS, AI_MODEL, AI_PROVIDER, AI_TEMPERATURE, OPENAI_API_KEY
from company_pipeline.models import AIModelConfig

PROVIDERS: Dict[str, Type[AIModel]] = {
    OpenAIModel.provider: OpenAIModel,
}


def default_config() -> AIModelConfig:
    """AI model configuration from the environment."""
    return AIModelConfig(
        provider=AI_PROVIDER,
        model=AI_MODEL,
        temperature=AI_TEMPERATURE,
        max_tokens=AI_MAX_TOKENS,
        api_key=OPENAI_API_KEY,
    )


def create_model(config: Optional[AIModelConfig] = None, **kwargs) -> AIModel:
    """
    Build the AI model for `config.provider`.

    Extra keyword arguments are forwarded to the provider class (e.g. a shared client).

    Raises:
        ValueError: If the provider is not registered.
    """
    config = config or default_config()
    try:
        model_cls = PROVIDERS[config.provider]
    except KeyError:
        raise ValueError(f"Unsupported AI provider: {config.provider}") from None
    return model_cls(config, **kwargs)
