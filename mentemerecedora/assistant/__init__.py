"""
LUZ IA Assistant Module

Components:
- Multi-provider LLM generation with retry
- Prompt template registry
- BM25 knowledge base over course transcripts
- Chat service with conversation persistence
"""

from mentemerecedora.assistant.generator import (
    LLMProvider,
    GeneratedResponse,
    BaseLLMClient,
    MockLLMClient,
    ResponseGenerator,
    create_generator,
)
from mentemerecedora.assistant.prompts import PromptTemplates, DEFAULT_PROMPT
from mentemerecedora.assistant.knowledge import BM25Index, KnowledgeBase, split_text
from mentemerecedora.assistant.service import (
    AssistantError,
    AssistantSettings,
    ChatResult,
    LuzIAService,
)

__all__ = [
    "LLMProvider",
    "GeneratedResponse",
    "BaseLLMClient",
    "MockLLMClient",
    "ResponseGenerator",
    "create_generator",
    "PromptTemplates",
    "DEFAULT_PROMPT",
    "BM25Index",
    "KnowledgeBase",
    "split_text",
    "AssistantError",
    "AssistantSettings",
    "ChatResult",
    "LuzIAService",
]
