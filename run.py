#!/usr/bin/env python3
"""
Ledger Service Entry Point

Starts the FastAPI server with settings taken from the environment
(PORT, HOST, DATABASE_URL, ENVIRONMENT, LOG_LEVEL).
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from ledger_service.api import run_server
from ledger_service.config import get_config
from ledger_service.errors import ConfigurationError
from ledger_service.logging_config import setup_logging


def main() -> int:
    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"❌ {e.message}", file=sys.stderr)
        for field, problem in (e.details or {}).items():
            print(f"   {field}: {problem}", file=sys.stderr)
        return 1

    logger = setup_logging(config.effective_log_level)
    logger.info("Ledger service configured", extra={"extra": {
        "environment": config.environment, "port": config.port
    }})

    print(f"🏦 Ledger service running on http://localhost:{config.port}")
    print(f"💓 Health check: http://localhost:{config.port}/health")

    try:
        run_server(
            host=config.host,
            port=config.port,
            debug=config.is_development,
            log_level="debug" if config.effective_log_level == "DEBUG" else "info"
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down ledger service...")
    return 0


if __name__ == "__main__":
    sys.exit(main())
