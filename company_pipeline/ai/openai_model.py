import json
from typing import Dict, Optional

from loguru import logger

from company_pipeline.ai.base import AIModel
from company_pipeline.clients import OpenAIClient
from company_pipeline.models import AIModelConfig, CompletionRequest, CompletionResponse

# USD per 1M tokens
PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4o": {"input": 2.5, "output": 10.0},
    "gpt-4o-mini": {"input": 0.15, "output": 0.6},
    "gpt-4-turbo": {"input": 10.0, "output": 30.0},
    "gpt-3.5-turbo": {"input": 0.5, "output": 1.5},
}


class OpenAIModel(AIModel):
    """Chat-completions provider running in JSON-object response mode."""

    provider = "openai"

    def __init__(self, config: AIModelConfig, client: Optional[OpenAIClient] = None):
        super().__init__(config)
        self.client = client or OpenAIClient(api_key=config.api_key)

    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        try:
            completion = await self.client.chat_completions_create(
                model=self.config.model,
                messages=[
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": request.user_prompt},
                ],
                response_format={"type": "json_object"},
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except Exception as e:
            return CompletionResponse(success=False, error=str(e) or type(e).__name__)

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            return CompletionResponse(success=False, error="No response from model")

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.debug(f"⚠️ Invalid JSON response from model: {e}")
            return CompletionResponse(success=False, error="Invalid JSON response from model")

        usage = getattr(completion, "usage", None)
        tokens = getattr(usage, "total_tokens", None) or 0
        return CompletionResponse(
            success=True,
            data=data,
            tokens_used=tokens,
            cost=self.get_cost_estimate(tokens),
        )

    def get_cost_estimate(self, tokens: int) -> float:
        pricing = PRICING.get(self.config.model)
        if not pricing:
            return 0.0
        # Assume a 70/30 input/output split
        input_tokens = tokens * 0.7
        output_tokens = tokens * 0.3
        return (input_tokens * pricing["input"] + output_tokens * pricing["output"]) / 1_000_000
