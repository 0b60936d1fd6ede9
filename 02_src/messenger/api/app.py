"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from ..config import load_settings
from .routes import chat, friends, observability, realtime


def create_fastapi_app(application: Application | None = None) -> FastAPI:
    """Create and configure FastAPI application."""
    if application is None:
        application = Application(settings=load_settings())

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        """Manage application lifespan."""
        await application.start()
        yield
        await application.stop()

    fastapi_app = FastAPI(
        title="Messenger API",
        description="Real-time chat for the social network",
        version="0.1.0",
        lifespan=lifespan,
    )
    fastapi_app.state.application = application

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=application.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @fastapi_app.get("/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    fastapi_app.include_router(chat.create_chat_router(application))
    fastapi_app.include_router(friends.create_friends_router(application))
    fastapi_app.include_router(observability.create_observability_router(application))
    fastapi_app.include_router(realtime.create_realtime_router(application))

    return fastapi_app
