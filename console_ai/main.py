"""Main FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from console_ai import __version__
from console_ai.api.endpoints import router
from console_ai.clients.anthropic import get_anthropic_client
from console_ai.config import AgentSettings
from console_ai.services.agent import AgentLoop, build_agent_loop
from console_ai.utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, "agent_loop", None) is None:
        app.state.agent_loop = build_agent_loop(get_anthropic_client(), AgentSettings.from_env())
    yield


def create_app(agent_loop: AgentLoop | None = None) -> FastAPI:
    """Create the application, optionally around a prebuilt agent loop."""
    setup_logging()

    application = FastAPI(
        title="Console AI Assistant",
        description="Tool-calling AI assistant for the operations console, with streamed responses.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "Conversation",
                "description": (
                    "Conversations with the assistant. Tools are filtered and authorized "
                    "against the caller's role and tenant overrides."
                ),
            },
            {
                "name": "Health",
                "description": "Service health monitoring and status checks.",
            },
        ],
    )
    application.state.agent_loop = agent_loop

    # Add CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("console_ai.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
