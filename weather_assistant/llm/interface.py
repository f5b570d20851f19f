import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel

from ..exceptions import ProviderError

logger = logging.getLogger(__name__)

# Generic type variable for the Pydantic model expected in structured responses.
T = TypeVar("T", bound=BaseModel)


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class Completion(BaseModel):
    """Plain-text reply from the model."""
    text: str
    model: Optional[str] = None
    token_usage: Optional[TokenUsage] = None


class LLMProvider(ABC):
    """
    Abstract Base Class interface that defines the contract for any LLM provider
    (OpenAI, Anthropic, Local LLaMA, etc.)

    Implementations make a single request per call (no internal retry) and
    raise ProviderError for any failure of the underlying API.
    """

    @abstractmethod
    async def complete(
        self,
        messages: List[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Completion:
        """
        Generates a free-form text reply for the given chat messages.
        """
        pass

    @abstractmethod
    async def generate_structured_output(
        self,
        messages: List[dict],
        response_model: Type[T],
        temperature: float = 0.0
    ) -> T:
        """
        Generates a response from the LLM strictly matching the Pydantic 'response_model'.
        """
        pass

    async def check_health(self) -> bool:
        """Cheap round trip used by the health endpoint."""
        try:
            await self.complete([{"role": "user", "content": "Hello"}], max_tokens=5)
            return True
        except ProviderError as e:
            logger.warning(f"LLM health check failed: {e}")
            return False
