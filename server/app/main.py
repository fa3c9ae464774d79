"""FastAPI application entrypoint for the Parlance translation server."""
from pathlib import Path
import sys

# Ensure the server directory (parent of this file's directory) is on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_SERVER_DIR = _THIS_DIR.parent
if str(_SERVER_DIR) not in sys.path:
    sys.path.insert(0, str(_SERVER_DIR))

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import settings
from app.routers import chat, realtime, speech, translation

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; OpenAI-backed routes will fail")
    yield


def create_app() -> FastAPI:
    """Instantiate and configure the FastAPI application."""
    application = FastAPI(
        title="Parlance",
        description=(
            "Translation server proxying speech-to-text, text-to-speech, chat and "
            "realtime voice signaling to cloud APIs."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    application.include_router(realtime.router)
    application.include_router(translation.router)
    application.include_router(speech.router)
    application.include_router(chat.router)

    @application.get("/")
    async def root() -> dict[str, str]:
        """Lightweight health endpoint for service discovery."""
        return {"service": "parlance", "status": "ok"}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
