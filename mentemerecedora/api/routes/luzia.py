"""
LUZ IA API Routes

Chat with the assistant and manage the caller's conversations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from loguru import logger

from mentemerecedora.api.dependencies import (
    get_assistant,
    get_conversation_repository,
    get_current_user,
)
from mentemerecedora.api.middleware import NotFoundError, ProcessingError
from mentemerecedora.api.schemas import (
    AppendMessageRequest,
    ChatRequest,
    ChatResponse,
    ConversationCreate,
    ConversationResponse,
    DataResponse,
    ListResponse,
    MessageResponse,
)
from mentemerecedora.assistant.service import AssistantError
from mentemerecedora.storage.user_repository import StoredUser


router = APIRouter(prefix="/luz-ia", tags=["luz-ia"])


def get_owned_conversation(conversation_id: str, user: StoredUser, repo):
    """Caller's conversation; other users' conversations read as missing."""
    conversation = repo.get(conversation_id)
    if not conversation or conversation.user_id != user.id:
        raise NotFoundError("Conversa", conversation_id)
    return conversation


@router.post("/chat", response_model=DataResponse[ChatResponse])
async def chat(
    request: ChatRequest,
    current_user: StoredUser = Depends(get_current_user),
    assistant=Depends(get_assistant),
):
    """
    Ask LUZ IA a question.

    The exchange is appended to the caller's active conversation, which is
    created on first use. Nothing is stored when generation fails.
    """
    logger.info(f"LUZ IA question from {current_user.id} ({request.prompt_type})")

    try:
        result = await assistant.chat(current_user.id, request.question, request.prompt_type)
    except AssistantError as e:
        raise ProcessingError("Erro ao processar sua pergunta", detail=str(e))

    return {
        "data": ChatResponse(
            response=result.response,
            conversation_id=result.conversation_id,
            prompt_type=result.prompt_type,
        )
    }


@router.get("/prompts", response_model=DataResponse[list[str]])
def list_prompt_types(
    current_user: StoredUser = Depends(get_current_user),
    assistant=Depends(get_assistant),
):
    return {"data": assistant.prompts.names()}


# =============================================================================
# Conversations
# =============================================================================

@router.get("/conversations", response_model=ListResponse[ConversationResponse])
def list_conversations(
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    conversations = repo.list_for_user(current_user.id)
    return {"count": len(conversations), "data": conversations}


@router.post(
    "/conversations",
    response_model=DataResponse[ConversationResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_conversation(
    payload: Optional[ConversationCreate] = None,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    """Start a new active conversation, ending the previous one."""
    conversation = repo.create(current_user.id, title=payload.title if payload else None)
    return {"data": conversation}


@router.get("/conversations/current", response_model=DataResponse[Optional[ConversationResponse]])
def get_current_conversation(
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    return {"data": repo.get_active(current_user.id)}


@router.put("/conversations/current/end", response_model=DataResponse[ConversationResponse])
def end_current_conversation(
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    conversation = repo.end_active(current_user.id)
    if not conversation:
        raise NotFoundError("Conversa ativa")
    logger.info(f"Conversation {conversation.id} ended by {current_user.id}")
    return {"data": conversation, "message": "Conversa finalizada"}


@router.get("/conversations/{conversation_id}", response_model=DataResponse[ConversationResponse])
def get_conversation(
    conversation_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    return {"data": get_owned_conversation(conversation_id, current_user, repo)}


@router.delete("/conversations/{conversation_id}", response_model=MessageResponse)
def delete_conversation(
    conversation_id: str,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    get_owned_conversation(conversation_id, current_user, repo)
    repo.delete(conversation_id)
    logger.info(f"Conversation deleted: {conversation_id}")
    return MessageResponse(message="Conversa removida com sucesso", data={})


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=DataResponse[ConversationResponse],
    status_code=status.HTTP_201_CREATED,
)
def append_message(
    conversation_id: str,
    payload: AppendMessageRequest,
    current_user: StoredUser = Depends(get_current_user),
    repo=Depends(get_conversation_repository),
):
    get_owned_conversation(conversation_id, current_user, repo)
    message = payload.message
    conversation = repo.add_messages(
        conversation_id,
        [
            {
                "role": message.type,
                "content": message.content,
                "prompt_type": message.prompt_type,
                "timestamp": message.timestamp,
            }
        ],
    )
    return {"data": conversation}
