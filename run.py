"""Entry point for the National Pokedex API.

Starts the FastAPI application under Uvicorn.  Host, port and log level
are read from the same environment variables as the application
settings (``HOST``, ``PORT``, ``LOG_LEVEL``); put them in the
environment before launching.

Usage:
    python run.py
"""

from uvicorn import Config, Server

from pokedex_api.app.core.config import settings


def main() -> None:
    """Serve the API until interrupted."""
    config = Config(
        app="pokedex_api.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )
    Server(config).run()


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
