"""
Main entry point for hybrid-rerank.

Creates the FastAPI application instance for uvicorn. Running the module
directly serves it on SERVICE_HOST:SERVICE_PORT:

    python -m hybrid_rerank.main
"""

import uvicorn

from hybrid_rerank.api.app import create_app
from hybrid_rerank.core.config import Settings, get_settings
from hybrid_rerank.core.logging import setup_structured_logging

settings = get_settings()
setup_structured_logging(log_level=settings.log_level.upper())

# Create application instance
app = create_app(settings=settings)


def run(settings: Settings = settings) -> None:
    """Serve the application with uvicorn on the configured address."""
    uvicorn.run(
        "hybrid_rerank.main:app",
        host=settings.service_host,
        port=settings.service_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
