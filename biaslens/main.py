"""Main FastAPI application."""

from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Must run before settings are first read
load_dotenv(dotenv_path=Path(__file__).parent.parent / ".env")

from fastapi import FastAPI  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402

from biaslens.api.routes import router  # noqa: E402
from biaslens.core.ai_config import get_ai_config  # noqa: E402
from biaslens.core.config import get_settings  # noqa: E402
from biaslens.core.logging import logger, setup_logging  # noqa: E402

settings = get_settings()
setup_logging(settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting %s v%s", settings.api_title, settings.api_version)
    logger.info("Debug mode: %s", settings.debug)
    if get_ai_config().is_configured():
        logger.info("OpenAI configuration verified; coaching uses the LLM")
    yield
    logger.info("Shutting down application")


app = FastAPI(
    title=settings.api_title,
    version=settings.api_version,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "biaslens.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
