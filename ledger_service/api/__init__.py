"""
Ledger Service API Application Factory
"""

from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .accounts import router as accounts_router
from .dependencies import LedgerSystem, get_ledger_system, shutdown_ledger_system
from .errors import register_error_handlers
from ..logging_config import get_logger


logger = get_logger("ledger.api")


def create_app(system: Optional[LedgerSystem] = None) -> FastAPI:
    """
    Create and configure the FastAPI application

    Args:
        system: Ledger system to serve; built from configuration on first
            request when omitted
    """
    app = FastAPI(
        title="Ledger Service API",
        description="Account balances and money movements with double-entry bookkeeping",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    if system is not None:
        app.dependency_overrides[get_ledger_system] = lambda: system

    app.include_router(accounts_router, prefix="/accounts", tags=["Accounts"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return app


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 3000, debug: bool = False,
               log_level: str = "info"):
    """Run the FastAPI server"""
    logger.info("Ledger service starting", extra={"extra": {"host": host, "port": port}})
    try:
        uvicorn.run(
            "ledger_service.api:app",
            host=host,
            port=port,
            reload=debug,
            log_level=log_level.lower()
        )
    finally:
        shutdown_ledger_system()
