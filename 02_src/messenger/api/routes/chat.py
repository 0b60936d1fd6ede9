"""Chat API routes."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from ...errors import ChatError
from ...transport import Identity
from ..deps import bearer_identity, to_http_error


class ConversationResponse(BaseModel):
    """Response model for a single conversation."""

    conversation: dict[str, Any]
    message: str | None = None


class ConversationListResponse(BaseModel):
    """Response model for the conversation list."""

    conversations: list[dict[str, Any]]
    count: int


class Pagination(BaseModel):
    page: int
    limit: int
    total: int


class MessagesResponse(BaseModel):
    """Response model for a page of messages."""

    messages: list[dict[str, Any]]
    pagination: Pagination


def create_chat_router(app) -> APIRouter:
    """Create chat router."""
    router = APIRouter(prefix="/api/chat", tags=["chat"])
    current_identity = bearer_identity(app)

    @router.get("/conversation/user/{user_id}", response_model=ConversationResponse)
    async def get_or_create_conversation(
        user_id: str, identity: Identity = Depends(current_identity)
    ) -> dict:
        """Get or create the conversation with another user."""
        try:
            conversation = await app.conversations.get_or_create(
                identity.user_id, user_id
            )
        except ChatError as e:
            raise to_http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {
            "conversation": conversation,
            "message": "Conversation retrieved successfully",
        }

    @router.get("/conversations", response_model=ConversationListResponse)
    async def get_conversations(
        identity: Identity = Depends(current_identity),
    ) -> dict:
        """List the current user's active conversations."""
        try:
            conversations = await app.conversations.list_for_user(identity.user_id)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"conversations": conversations, "count": len(conversations)}

    @router.get("/conversation/{conversation_id}", response_model=ConversationResponse)
    async def get_conversation(
        conversation_id: str, identity: Identity = Depends(current_identity)
    ) -> dict:
        """Get one conversation the current user takes part in."""
        try:
            conversation = await app.conversations.get_for_user(
                conversation_id, identity.user_id
            )
        except ChatError as e:
            raise to_http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"conversation": conversation}

    @router.get(
        "/conversation/{conversation_id}/messages", response_model=MessagesResponse
    )
    async def get_messages(
        conversation_id: str,
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=100),
        identity: Identity = Depends(current_identity),
    ) -> dict:
        """Get a page of a conversation's messages."""
        try:
            return await app.conversations.get_messages(
                conversation_id, identity.user_id, page=page, limit=limit
            )
        except ChatError as e:
            raise to_http_error(e)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
