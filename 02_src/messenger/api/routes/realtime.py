"""WebSocket endpoint for the real-time chat channel."""

from fastapi import APIRouter, WebSocket


def create_realtime_router(app) -> APIRouter:
    """Create router exposing the chat WebSocket."""
    router = APIRouter(tags=["realtime"])

    @router.websocket("/ws")
    async def chat_socket(websocket: WebSocket) -> None:
        """Authenticated bidirectional chat channel."""
        await app.gateway.serve(websocket)

    return router
