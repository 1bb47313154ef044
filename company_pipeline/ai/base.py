from abc import ABC, abstractmethod

from company_pipeline.models import AIModelConfig, CompletionRequest, CompletionResponse


class AIModel(ABC):
    """
    Capability every AI provider implements.

    `complete` never raises for provider failures: they come back as
    unsuccessful CompletionResponse objects so callers can record them per item.
    """

    provider: str = ""

    def __init__(self, config: AIModelConfig):
        self.config = config

    @property
    def model(self) -> str:
        return self.config.model

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one strict-JSON completion."""

    @abstractmethod
    def get_cost_estimate(self, tokens: int) -> float:
        """Dollar estimate for `tokens` total tokens on this model."""
