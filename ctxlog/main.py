from __future__ import annotations

from fastapi import FastAPI

from ctxlog.api.orders import router as orders_router
from ctxlog.config import Settings, get_settings
from ctxlog.observability.logging import configure_logging
from ctxlog.observability.middleware import EnrichContext, RequestContextMiddleware
from ctxlog.services.enrichment import enrich_from_headers


def create_app(settings: Settings | None = None, enrich_context: EnrichContext | None = enrich_from_headers) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level, fmt=settings.log_format)

    app = FastAPI(title=settings.service_name, version="0.1.0")
    app.add_middleware(RequestContextMiddleware, settings=settings, enrich_context=enrich_context)
    app.include_router(orders_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
