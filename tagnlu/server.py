"""
FastAPI HTTP server for tagnlu.

Exposes the classification engine to remote clients.
"""

import logging
from typing import Optional, Callable, AsyncContextManager
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from tagnlu.core.config import Config
from tagnlu.core.nlu.engine import NLUEngine

logger = logging.getLogger("server")


# Engine is created on first request unless one is injected
_engine: Optional[NLUEngine] = None


def get_engine() -> NLUEngine:
    """Get or create the shared engine instance."""
    global _engine
    if _engine is None:
        try:
            _engine = Config.get_nlu_engine()
        except Exception as e:
            logger.exception("Could not create NLU engine: %s", e)
            raise HTTPException(status_code=503, detail=f"NLU service unavailable: {e}")
    return _engine


def create_app(
    engine: Optional[NLUEngine] = None,
    lifespan: Optional[Callable[[FastAPI], AsyncContextManager]] = None,
) -> FastAPI:
    """
    Create FastAPI app.

    Args:
        engine: Engine to serve; defaults to one built lazily from Config
        lifespan: Optional lifespan context manager for startup/shutdown

    Returns:
        FastAPI app instance
    """
    app_kwargs = {
        "title": "tagnlu API",
        "description": "Intent and slot classification",
        "version": "0.1.0"
    }

    if lifespan:
        app_kwargs["lifespan"] = lifespan

    app = FastAPI(**app_kwargs)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "tagnlu"}

    @app.post("/api/nlu/classify")
    async def classify(request: dict):
        """
        Classify an utterance.

        Accepts JSON with:
        {
            "text": "utterance to classify"
        }

        Returns the classification result. Operational failures (token
        limit, inference errors) come back with status 200 and a populated
        "error" field.
        """
        text = request.get("text", "")
        if not isinstance(text, str) or not text.strip():
            raise HTTPException(status_code=400, detail="Text cannot be empty")

        nlu = engine or get_engine()
        logger.info("Classifying: %d chars", len(text))
        result = await nlu.classify(text)
        if result.error is not None:
            logger.warning("Classification error: %s", result.error)
        return JSONResponse(content=result.dict())

    return app
