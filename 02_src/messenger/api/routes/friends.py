"""Friend API routes."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ...transport import Identity
from ..deps import bearer_identity


class RemoveFriendResponse(BaseModel):
    """Response model for friend removal."""

    message: str
    deactivatedConversations: int


def create_friends_router(app) -> APIRouter:
    """Create friends router."""
    router = APIRouter(prefix="/api/friends", tags=["friends"])
    current_identity = bearer_identity(app)

    @router.delete("/{friend_id}", response_model=RemoveFriendResponse)
    async def remove_friend(
        friend_id: str, identity: Identity = Depends(current_identity)
    ) -> dict:
        """Remove a friend and deactivate the shared conversation."""
        try:
            deactivated = await app.conversations.remove_friend(
                identity.user_id, friend_id
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {
            "message": "Friend removed successfully",
            "deactivatedConversations": deactivated,
        }

    return router
