#!/usr/bin/env python
"""
Run the SmartBin API server.

Usage:
    uv run python run_api.py
    uv run python run_api.py --reload                 # Development mode
    uv run python run_api.py --store supabase         # Persist to the Supabase kv_store
    uv run python run_api.py --credentials supabase   # Use Supabase Auth for credentials
"""

import argparse
import logging
import os

import uvicorn

from shared.config import get_settings

logger = logging.getLogger(__name__)

BACKENDS = ("memory", "supabase")


def main():
    parser = argparse.ArgumentParser(description="Run SmartBin API server")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    parser.add_argument("--host", type=str, help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to bind to")
    parser.add_argument("--store", choices=BACKENDS, help="Store backend (overrides STORE_BACKEND)")
    parser.add_argument("--credentials", choices=BACKENDS, help="Credential backend (overrides CREDENTIAL_BACKEND)")
    parser.add_argument("--log-level", type=str, help="Log level (overrides LOG_LEVEL)")
    args = parser.parse_args()

    # Environment, not arguments: the reloader re-imports the app in a child process
    if args.store:
        os.environ["STORE_BACKEND"] = args.store
    if args.credentials:
        os.environ["CREDENTIAL_BACKEND"] = args.credentials
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level.upper()
    get_settings.cache_clear()
    settings = get_settings()

    if settings.store_backend == "memory":
        logger.warning("Using the in-memory store; data is lost on restart")

    uvicorn.run(
        "api:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload or settings.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
