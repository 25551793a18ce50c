"""Application entry point for the document intelligence API server."""

import uvicorn

from docintel.api.app import app
from docintel.utils.config import load_config
from docintel.utils.logger import setup_logging


def main() -> None:
    """Start the FastAPI application server using the configured bind address."""
    config = load_config()
    setup_logging(config.log_level)
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
