"""Web server runner for CropAI."""

import logging
from typing import Optional
import uvicorn

from cropai.orchestrator import CropAIOrchestrator
from modules.web.app import create_app
from modules.web.state import AppState

logger = logging.getLogger(__name__)


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    config_path: str = None,
    orchestrator: Optional[CropAIOrchestrator] = None,
):
    """Run the CropAI web server.

    Args:
        host: Host to bind to (defaults to server.host from config)
        port: Port to bind to (defaults to server.port from config)
        config_path: Path to configuration file
        orchestrator: Already started orchestrator (optional)

    Returns:
        False if the orchestrator could not be started
    """
    if orchestrator is None:
        orchestrator = CropAIOrchestrator(config_path=config_path)
        if not orchestrator.start():
            logger.error("Failed to start CropAI components")
            return False

    server_settings = orchestrator.settings.server
    host = host or server_settings.host
    port = port or server_settings.port

    app = create_app(AppState(orchestrator))

    logger.info(f"Starting CropAI web server on {host}:{port}")
    try:
        uvicorn.run(
            app,
            host=host,
            port=port,
            log_level="info"
        )
    finally:
        orchestrator.stop()
    return True


def main():
    """Standalone server entry point."""
    import argparse
    from core.logging_setup import setup_logging

    parser = argparse.ArgumentParser(description="CropAI Web Server")
    parser.add_argument("--host", help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument("--config", help="Path to configuration file")

    args = parser.parse_args()

    setup_logging()
    if not run_server(host=args.host, port=args.port, config_path=args.config):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
