"""
This module is the entry point for running the gateway with uvicorn.
"""
import logging

import uvicorn

from .app import create_app
from .config import GatewaySettings


def main():
    """Starts the gateway on all interfaces at ``GATEWAY_PORT``."""
    logging.basicConfig(level=logging.INFO)
    settings = GatewaySettings()
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.gateway_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
