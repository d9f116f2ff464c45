#!/usr/bin/env python3
"""
Featured Assets Ledger Entry Point

Starts the FastAPI server with the configured host and port.
"""

import sys

from featured_assets.api import run_server
from featured_assets.config import get_config


if __name__ == "__main__":
    config = get_config()
    print("Starting Featured Assets ledger...")
    print(f"Storage: {config.database_url}")
    print(f"API available at: http://localhost:{config.api_port}")
    print(f"Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Featured Assets ledger...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)
