"""
FastAPI application factory for the live KYC session.

Routes:
- /api/kyc/verify            -> verify a face photo against an ID photo
- /api/session[...]          -> operator controls (countdown, reset, captured images)
- /api/agent/stream.mjpg     -> masked agent view
- /api/client/stream.mjpg    -> raw client feed
- /api/health                -> component status
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from models.errors import CameraUnavailableError
from runtime.context import RuntimeContext
from verification.orchestrator import VerificationOrchestrator
from .routes import api


def create_app(
    ctx: Optional[RuntimeContext] = None,
    orchestrator: Optional[VerificationOrchestrator] = None,
    manage_runtime: bool = True,
) -> FastAPI:
    """
    Create the FastAPI app.

    Args:
        ctx: Live session runtime. Without one, only /api/kyc/verify and
            /api/health are served.
        orchestrator: Verifier for /api/kyc/verify; defaults to ctx's.
        manage_runtime: Start and stop ctx with the app lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if ctx is not None and manage_runtime:
            try:
                await ctx.start()
            except CameraUnavailableError as e:
                # Keep serving so the operator sees the error via /api/health
                logging.error(f"Live session not started: {e}")
        try:
            yield
        finally:
            if ctx is not None and manage_runtime:
                await ctx.stop()

    app = FastAPI(
        title="KYC Live",
        version="0.1.0",
        description="Live identity verification with masked agent view",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.ctx = ctx
    app.state.orchestrator = orchestrator or (ctx.orchestrator if ctx is not None else None)

    app.include_router(api.router, prefix="/api")

    return app
