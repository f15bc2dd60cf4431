#!/usr/bin/env python
"""
Server Entry Point

Starts the reporting API with uvicorn.
Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py
    Sample data:  python run_server.py --generate-data
"""

import argparse
import os


def run_dev_server(port: int):
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        "gold_analytics.main:app",
        host="0.0.0.0",
        port=port,
        reload=True,
        reload_dirs=["gold_analytics"],
        log_level="debug",
        access_log=True,
    )


def run_prod_server(port: int):
    """Run production server with Uvicorn directly."""
    import uvicorn

    uvicorn.run(
        "gold_analytics.main:app",
        host="0.0.0.0",
        port=port,
        workers=int(os.getenv("WORKERS", 4)),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        access_log=True,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
        date_header=True,
    )


def generate_data():
    """Write a synthetic gold dataset to the configured data path."""
    from gold_analytics.config.logging import configure_logging
    from gold_analytics.data import GoldDatasetGenerator

    configure_logging()
    GoldDatasetGenerator().generate_all()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Gold Analytics Reporting API Server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Run in development mode with auto-reload"
    )
    parser.add_argument(
        "--generate-data",
        action="store_true",
        help="Generate a synthetic gold dataset and exit"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run on (default: 8000)"
    )

    args = parser.parse_args()

    if args.generate_data:
        generate_data()
    elif args.dev:
        print("🚀 Starting development server...")
        run_dev_server(args.port)
    else:
        print("🚀 Starting production server with Uvicorn...")
        run_prod_server(args.port)
