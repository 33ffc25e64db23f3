#!/usr/bin/env python3
"""Launcher for the Cecilefy proxy and its frontend page."""
from __future__ import annotations

import sys

import uvicorn

from api.config import load_settings


def main():
    """Start the FastAPI app on the configured port (env PORT, default 3000)."""
    settings = load_settings()
    print(f"Proxy + frontend running at http://localhost:{settings.port}/proxy")

    try:
        uvicorn.run(
            "api.main:app",
            host=settings.host,
            port=settings.port,
            log_level=settings.log_level.lower(),
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0
    except Exception as e:
        print(f"\nError starting server: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
