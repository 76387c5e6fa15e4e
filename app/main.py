"""FastAPI application serving localized restaurant content and translations."""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fastapi import FastAPI, HTTPException

from app.config.i18n import TRANSLATION_COALESCE_REQUESTS
from app.config.supabase_client import SUPABASE_ANON_KEY, SUPABASE_URL
from app.api.routes.content import router as content_router
from app.api.routes.translate import router as translate_router
from app.services.translation_cache import TranslationCache, Translator
from app.services.translation_client import build_translator

logger = logging.getLogger(__name__)


def create_app(translator: Optional[Translator] = None) -> FastAPI:
    """Build the application; each instance owns one translation cache."""

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        application.state.translation_cache = TranslationCache(
            translator or build_translator(),
            coalesce_requests=TRANSLATION_COALESCE_REQUESTS,
        )
        logger.info("Translation cache ready (coalescing=%s)", TRANSLATION_COALESCE_REQUESTS)
        yield
        cache = application.state.translation_cache
        logger.info("Discarding translation cache with %d entries", len(cache))
        application.state.translation_cache = None

    application = FastAPI(title="Restaurant Content Translation", lifespan=lifespan)
    application.include_router(translate_router, prefix="/api", tags=["Translation"])
    application.include_router(content_router, prefix="/api", tags=["Content"])

    @application.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "ok"}

    @application.get("/api/config")
    def supabase_config() -> Dict[str, str]:
        if not SUPABASE_URL or not SUPABASE_ANON_KEY:
            raise HTTPException(status_code=500, detail="Supabase configuration missing.")
        return {"supabaseUrl": SUPABASE_URL, "supabaseAnonKey": SUPABASE_ANON_KEY}

    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="127.0.0.1", port=8000, reload=True)
