"""Entry point for the Home Bonzenga API server.

Starts the FastAPI application with Uvicorn.  Host, port and reload
mode are read from the ``HOST``, ``PORT`` and ``RELOAD`` environment
variables; all other configuration (database path, secret key,
bootstrap accounts) is read by ``bonzenga_api.app.core.config``.

Usage:
    python run.py
"""
import logging
import os

from uvicorn import Config, Server


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    reload = os.getenv("RELOAD", "false").lower() in {"1", "true", "yes"}
    log_level = os.getenv("LOG_LEVEL", "info").lower()
    if reload:
        # Reload needs an import string rather than an app object.
        import uvicorn

        uvicorn.run("bonzenga_api.app.main:app", host=host, port=port, reload=True, log_level=log_level)
        return
    from bonzenga_api.app.main import app

    config = Config(app=app, host=host, port=port, reload=False, log_level=log_level)
    server = Server(config)
    server.run()


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        logging.getLogger(__name__).info("Server stopped")
