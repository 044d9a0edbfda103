# backend/medconsult/api/routes/health.py

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from medconsult.api.dependencies import get_orchestrator, get_settings
from medconsult.core.config import Settings
from medconsult.services.consultation_orchestrator import ConsultationOrchestrator

router = APIRouter(tags=["health"])

DEFAULT_TEST_PROMPT = "Hello, please respond with 'AI service is working'"


@router.get("/health")
async def health(
    orchestrator: ConsultationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_settings),
):
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.VERSION,
        "models": await orchestrator.gateway.check_health(),
        "database": orchestrator.store.health(),
    }


@router.get("/test-ai")
async def test_ai(prompt: str = DEFAULT_TEST_PROMPT, orchestrator: ConsultationOrchestrator = Depends(get_orchestrator)):
    reply = await orchestrator.gateway.generate(prompt, use_reasoner=False)
    return {
        "status": "success",
        "prompt": prompt,
        "response": reply.text,
        "degraded": reply.degraded,
        "model": reply.model,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
