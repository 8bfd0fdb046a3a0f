import inspect
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from google import genai
from openai import AsyncOpenAI

from dal.session_dal import SessionDAL
from routes.image_route import router as image_router
from routes.session_route import router as session_router
from services.annotator import ClickAnnotator
from services.browser_flow import BrowserFlow
from services.gemini.input_detector import InputFieldDetector
from services.gemini.pre_search import PreSearchService
from services.openai.click_analyzer import ClickAnalyzer
from services.openai.click_classifier import ClickClassifier
from services.providers.flux_provider import FluxImageProvider
from services.providers.gateway import ProviderGateway
from services.providers.gemini_provider import GeminiImageProvider
from services.providers.openai_provider import OpenAIImageProvider
from services.session_store import SessionStore
from utils.database_init import AsyncDatabaseInitializer
from utils.settings import Settings

BASE_DIR = Path(__file__).resolve().parent
PUBLIC_DIR = BASE_DIR / "public"

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file if present

LOGGER = logging.getLogger(__name__)


def build_providers(settings: Settings, http: httpx.AsyncClient, openai_client, genai_client) -> dict:
    """Register one adapter per provider whose credentials are configured."""
    providers = {}
    if openai_client is not None:
        providers["openai"] = OpenAIImageProvider(openai_client, http, model=settings.openai_image_model)
    if genai_client is not None:
        providers["gemini"] = GeminiImageProvider(genai_client, model=settings.gemini_image_model)
    if settings.replicate_api_token:
        providers["flux"] = FluxImageProvider(http, settings.replicate_api_token, model=settings.flux_model)
    return providers


async def _close_quietly(client) -> None:
    aclose = getattr(client, "aclose", None) or getattr(client, "close", None)
    if aclose is None:
        return
    try:
        if inspect.iscoroutinefunction(aclose):
            await aclose()
        else:
            result = aclose()
            if inspect.isawaitable(result):
                await result
    except Exception:
        # Ignore shutdown errors to avoid masking more important issues.
        LOGGER.debug("Error while closing %r", client, exc_info=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan manager to initialize:
      - settings from the environment
      - the shared httpx client and the OpenAI / google-genai clients
      - the provider gateway, session store and browsing flow
      - the optional SQLite session mirror (only when DATABASE_DIR is set)
    and attach them to `app.state`.
    """
    settings = Settings.from_env()
    logging.getLogger().setLevel(settings.log_level)
    app.state.settings = settings

    http = httpx.AsyncClient(timeout=settings.generation_timeout)
    app.state.http_client = http

    openai_client = None
    if settings.openai_api_key:
        try:
            openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize OpenAI Async client") from exc
    app.state.openai_client = openai_client

    genai_client = None
    if settings.gemini_api_key:
        try:
            genai_client = genai.Client(api_key=settings.gemini_api_key)
        except Exception as exc:
            raise RuntimeError("Failed to initialize google-genai client") from exc
    app.state.genai_client = genai_client

    providers = build_providers(settings, http, openai_client, genai_client)
    if not providers:
        await http.aclose()
        raise RuntimeError(
            "No image provider is configured; set OPENAI_API_KEY, GEMINI_API_KEY or REPLICATE_API_TOKEN"
        )
    gateway = ProviderGateway(providers, timeout=settings.generation_timeout)
    app.state.gateway = gateway
    LOGGER.info("Configured image providers: %s (default %s)", gateway.available, settings.default_provider)

    session_dal = None
    if settings.database_dir:
        # This will delete any existing DB and create a fresh one.
        db_initializer = AsyncDatabaseInitializer(settings.database_dir)
        await db_initializer.ensure_database()
        app.state.db_initializer = db_initializer
        session_dal = SessionDAL(db_initializer)
    app.state.session_dal = session_dal

    app.state.session_store = SessionStore()
    app.state.click_classifier = ClickClassifier(
        openai_client, model=settings.openai_vision_model, timeout=settings.enrichment_timeout
    )
    app.state.click_analyzer = ClickAnalyzer(
        openai_client, model=settings.openai_vision_model, timeout=settings.enrichment_timeout
    )
    app.state.input_detector = InputFieldDetector(
        genai_client, model=settings.gemini_text_model, timeout=settings.enrichment_timeout
    )
    app.state.pre_search = PreSearchService(
        genai_client, model=settings.gemini_search_model, timeout=settings.enrichment_timeout
    )
    app.state.browser_flow = BrowserFlow(
        app.state.session_store,
        gateway,
        ClickAnnotator(),
        app.state.click_classifier,
        app.state.input_detector,
        app.state.pre_search,
        app.state.click_analyzer,
        default_provider=settings.default_provider,
        session_dal=session_dal,
    )

    try:
        yield
    finally:
        await _close_quietly(http)
        if openai_client is not None:
            await _close_quietly(openai_client)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application instance.
    """
    app = FastAPI(lifespan=lifespan)

    # Serve static assets from the public directory, if it exists.
    if PUBLIC_DIR.exists():
        app.mount("/public", StaticFiles(directory=PUBLIC_DIR), name="public")

    @app.get("/", include_in_schema=False)
    async def serve_index():
        """
        Serve the frontend index page from the public directory.
        """
        index_path = PUBLIC_DIR / "index.html"
        if not index_path.exists():
            raise HTTPException(status_code=404, detail="Frontend not found")
        return FileResponse(index_path)

    @app.get("/health")
    async def health(request: Request):
        """
        Simple health check that reports configured providers and persistence.
        """
        gateway = getattr(request.app.state, "gateway", None)
        return {
            "ok": True,
            "providers": gateway.available if gateway is not None else [],
            "persistence": getattr(request.app.state, "session_dal", None) is not None,
        }

    # Register application routers
    app.include_router(image_router)
    app.include_router(session_router)

    return app


logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()
