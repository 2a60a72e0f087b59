"""
LUZ IA Service

Ties together retrieval, prompt selection, generation and conversation
persistence for the chat endpoint.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from loguru import logger

from mentemerecedora.assistant.generator import (
    LLMProvider,
    ResponseGenerator,
    create_generator,
)
from mentemerecedora.assistant.knowledge import KnowledgeBase
from mentemerecedora.assistant.prompts import PromptTemplates
from mentemerecedora.storage.conversation_repository import (
    ConversationRepository,
    MessageRole,
    StoredConversation,
)

MASKED_API_KEY = "•" * 23
PERSONALITY_LEVELS = ("suave", "equilibrado", "intenso")


class AssistantError(Exception):
    """Raised when the language model cannot produce an answer."""


@dataclass
class AssistantSettings:
    """Runtime-editable generation settings."""

    provider: str = LLMProvider.OPENAI.value
    model: str = "gpt-4o-mini"
    max_tokens: int = 2000
    temperature: float = 0.7
    personality_level: str = "equilibrado"
    api_key: Optional[str] = None

    def public_dict(self) -> dict:
        data = asdict(self)
        data["api_key"] = MASKED_API_KEY if self.api_key else ""
        return data


@dataclass
class ChatResult:
    response: str
    conversation_id: str
    prompt_type: str
    model: str


class LuzIAService:
    """
    LUZ IA chat orchestration.

    Usage:
        service = LuzIAService(settings, prompts, knowledge_base, conversations)
        result = await service.chat(user_id, "Como elevar minha vibração?", "financeiro")
    """

    def __init__(
        self,
        settings: AssistantSettings,
        prompts: PromptTemplates,
        knowledge_base: KnowledgeBase,
        conversations: ConversationRepository,
        generator: Optional[ResponseGenerator] = None,
        max_retries: int = 2,
        history_turns: int = 6,
    ):
        self.settings = settings
        self.prompts = prompts
        self.knowledge_base = knowledge_base
        self.conversations = conversations
        self.max_retries = max_retries
        self.history_turns = history_turns
        self.generator = generator or self._build_generator()

    def _build_generator(self) -> ResponseGenerator:
        return create_generator(
            provider=self.settings.provider,
            api_key=self.settings.api_key,
            model=self.settings.model,
            max_tokens=self.settings.max_tokens,
            temperature=self.settings.temperature,
            max_retries=self.max_retries,
        )

    def configure(
        self,
        model: str,
        max_tokens: int,
        temperature: float,
        personality_level: str,
        api_key: Optional[str] = None,
    ) -> AssistantSettings:
        """Apply new generation settings and rebuild the client."""
        self.settings.model = model
        self.settings.max_tokens = max_tokens
        self.settings.temperature = temperature
        self.settings.personality_level = personality_level
        if api_key:
            self.settings.api_key = api_key

        self.generator = self._build_generator()
        logger.info(
            f"LUZ IA settings updated: model={model}, max_tokens={max_tokens}, "
            f"temperature={temperature}, personality={personality_level}"
        )
        return self.settings

    async def answer(
        self,
        question: str,
        prompt_type: str,
        history: Optional[list[tuple[str, str]]] = None,
    ) -> str:
        """
        Generate an answer grounded on the knowledge base.

        Raises:
            AssistantError: When every generation attempt fails
        """
        context = self.knowledge_base.context_for(question)
        system_prompt, user_prompt = self.prompts.build_prompt(
            question=question,
            context=context,
            history=history,
            prompt_type=prompt_type,
        )

        try:
            generated = await self.generator.generate_with_retry(system_prompt, user_prompt)
        except Exception as e:
            logger.error(f"LUZ IA generation failed: {e}")
            raise AssistantError(str(e)) from e

        return generated.content

    async def chat(self, user_id: str, question: str, prompt_type: Optional[str] = None) -> ChatResult:
        """
        Answer a question inside the user's active conversation.

        The conversation is created on first use. Both messages are stored
        only after the model answered.
        """
        prompt_name = self.prompts.resolve_name(prompt_type)
        conversation: Optional[StoredConversation] = self.conversations.get_active(user_id)
        history = conversation.history(self.history_turns) if conversation else None

        response = await self.answer(question, prompt_name, history)

        if conversation is None:
            conversation = self.conversations.create(user_id)

        now = datetime.utcnow()
        self.conversations.add_messages(
            conversation.id,
            [
                {
                    "role": MessageRole.USER,
                    "content": question,
                    "prompt_type": prompt_name,
                    "timestamp": now,
                },
                {
                    "role": MessageRole.ASSISTANT,
                    "content": response,
                    "prompt_type": prompt_name,
                    "timestamp": datetime.utcnow(),
                },
            ],
        )

        logger.info(f"LUZ IA answered user {user_id} ({prompt_name}) in conversation {conversation.id}")
        return ChatResult(
            response=response,
            conversation_id=conversation.id,
            prompt_type=prompt_name,
            model=self.generator.model,
        )
