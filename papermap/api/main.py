"""PaperMap API - research paper mind maps.

Turns uploaded papers into hierarchical mind maps and lets an editor
rework individual nodes:
- Upload a PDF: metadata extraction plus full-tree generation
- Redo a node's description, remake its subtree, or go one level deeper
- List, fetch and delete stored mind maps

Each request runs against one backend pair, chosen with ?backend=:
- aws: DynamoDB + Claude on Bedrock
- gcp: Firestore + Gemini
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from papermap import __version__
from papermap.api.routes import auth, mindmaps
from papermap.backends import BackendRegistry
from papermap.config import Settings
from papermap.prompts.registry import PromptRegistry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    prompts: PromptRegistry = app.state.prompts
    logger.info(f"Loaded {prompts.count} prompt templates")
    logger.info(
        f"PaperMap API ready (default backend: {settings.default_backend}, "
        f"request timeout: {settings.request_timeout_seconds}s)"
    )
    yield
    logger.info("Shutting down PaperMap API")


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors: 400, not 422."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


def create_app(
    settings: Optional[Settings] = None,
    *,
    backends: Optional[BackendRegistry] = None,
    prompts: Optional[PromptRegistry] = None,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Defaults to Settings.from_env()
        backends: Backend pair registry (defaults to one built from settings)
        prompts: Prompt templates (defaults to the packaged definitions)
    """
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="PaperMap API",
        description="Research paper mind maps backed by AWS or GCP.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.prompts = prompts or PromptRegistry()
    app.state.backends = backends or BackendRegistry(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(auth.router)
    app.include_router(mindmaps.router)

    @app.get("/health")
    def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": __version__,
            "default_backend": settings.default_backend,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "papermap.api.main:app",
        host="0.0.0.0",
        port=app.state.settings.port,
        reload=True,
    )
