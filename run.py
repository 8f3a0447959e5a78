#!/usr/bin/env python3
"""
NeoBank Entry Point

Starts the FastAPI server with the configured host, port and storage.
"""

import sys

import uvicorn

from neobank.api import create_app
from neobank.config import get_config
from neobank.logging_config import setup_logging


def run_server(host: str, port: int, log_level: str = "info"):
    """Run the FastAPI server"""
    uvicorn.run(create_app(), host=host, port=port, log_level=log_level)


if __name__ == "__main__":
    config = get_config()
    setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    print("🏦 Starting NeoBank...")
    print("💰 All monetary values use Decimal precision")
    print(f"🗄️  Storage: {config.database_path if config.use_sqlite else 'in-memory'}")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(config.api_host, config.api_port, config.log_level.lower())
    except KeyboardInterrupt:
        print("\n👋 Shutting down NeoBank...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
