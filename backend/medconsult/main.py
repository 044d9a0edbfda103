import logging
import time
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from medconsult.api.routes.consultation import router as consultation_routes
from medconsult.api.routes.enhanced import router as enhanced_routes
from medconsult.api.routes.health import router as health_routes
from medconsult.api.routes.sessions import router as session_routes
from medconsult.core.config import Settings, settings as default_settings
from medconsult.core.logging_config import setup_logging
from medconsult.services.consultation_orchestrator import ConsultationOrchestrator
from medconsult.services.model_gateway import ModelGateway
from medconsult.services.session_store import SessionStore, build_session_store

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[SessionStore] = None,
    gateway: Optional[ModelGateway] = None,
) -> FastAPI:
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Consultation backend: follow-up questions, differential diagnosis and enhanced features",
        version=settings.VERSION,
    )

    # Enable CORS so the frontend dev servers can talk to the backend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        if request.url.path.startswith(settings.API_PREFIX):
            elapsed_ms = (time.perf_counter() - start) * 1000
            logger.info(f"{request.method} {request.url.path} {response.status_code} in {elapsed_ms:.0f}ms")
        return response

    store = store or build_session_store(settings.DATABASE_URL)
    gateway = gateway or ModelGateway(settings)
    app.state.settings = settings
    app.state.orchestrator = ConsultationOrchestrator(
        store, gateway, min_symptom_length=settings.MIN_SYMPTOM_LENGTH
    )

    app.include_router(session_routes, prefix=settings.API_PREFIX)
    app.include_router(consultation_routes, prefix=settings.API_PREFIX)
    app.include_router(enhanced_routes, prefix=settings.API_PREFIX)
    app.include_router(health_routes, prefix=settings.API_PREFIX)

    logger.info(
        f"{settings.PROJECT_NAME} {settings.VERSION} ready "
        f"(reasoner={settings.REASONER_MODEL}, chat={settings.CHAT_MODEL})"
    )
    return app


app = create_app()
