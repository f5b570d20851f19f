import logging
from typing import List, Optional, Type, TypeVar

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from ..interface import Completion, LLMProvider, TokenUsage
from ...exceptions import ConfigurationError, ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

PROVIDER_NAME = "openai"


class OpenAIAdapter(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model_name: str = "gpt-3.5-turbo",
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 30.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        if client is None and not api_key:
            raise ConfigurationError("OpenAI API key is required.")

        # Retries are disabled: each step makes exactly one request.
        self.client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model_name = model_name
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def complete(
        self,
        messages: List[dict],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Completion:
        logger.info(f"OpenAI chat: {self.model_name}, messages: {len(messages)}")
        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                max_tokens=self.max_tokens if max_tokens is None else max_tokens,
            )
        except openai.OpenAIError as e:
            raise _translate_error(e) from e

        # We unwrap the specific OpenAI response structure here
        content = response.choices[0].message.content if response.choices else None
        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
            logger.info(f"OpenAI reply received, tokens: {usage.total_tokens}")

        return Completion(text=content or "", model=response.model, token_usage=usage)

    async def generate_structured_output(
        self,
        messages: List[dict],
        response_model: Type[T],
        temperature: float = 0.0
    ) -> T:
        try:
            completion = await self.client.beta.chat.completions.parse(
                model=self.model_name,
                messages=messages,
                response_format=response_model,
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            raise _translate_error(e) from e

        parsed = completion.choices[0].message.parsed
        if parsed is None:
            raise ProviderError(
                "Model returned no structured content.",
                kind="bad_response",
                provider=PROVIDER_NAME,
            )
        return parsed


def _translate_error(error: openai.OpenAIError) -> ProviderError:
    """Maps OpenAI SDK exceptions onto ProviderError categories."""
    if isinstance(error, openai.APITimeoutError):
        kind = "timeout"
    elif isinstance(error, openai.APIConnectionError):
        kind = "network"
    elif isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
        kind = "auth"
    elif isinstance(error, openai.RateLimitError):
        kind = "rate_limit"
    elif isinstance(error, openai.NotFoundError):
        kind = "not_found"
    else:
        kind = "api_error"

    logger.error(f"OpenAI API call failed ({kind}): {error}")
    return ProviderError(f"OpenAI API error: {error}", kind=kind, provider=PROVIDER_NAME)
