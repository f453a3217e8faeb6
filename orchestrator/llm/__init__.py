from .client import (
    LLMClient,
    LLMClientError,
    LLMResponse,
    MockLLMClient,
    OpenAIChatClient,
    create_llm_client,
)

__all__ = [
    "LLMClient",
    "LLMClientError",
    "LLMResponse",
    "MockLLMClient",
    "OpenAIChatClient",
    "create_llm_client",
]
