#!/usr/bin/env python3
"""
Start the DTF quote backend.

Usage:
    python -m dtf_backend.run_server [--config config/config.yaml] [--port 3000] [--verbose]
"""

import argparse
import sys

import uvicorn

from dtf_backend.audit import setup_audit_logging
from dtf_backend.config_loader import DEFAULT_CONFIG_PATH, get_server_settings, load_config_or_default
from dtf_backend.logging_utils import get_logger, setup_logging
from dtf_backend.server import create_app


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the DTF quote backend API server.")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("--host", help="Bind address (overrides config)")
    parser.add_argument("--port", type=int, help="Port (overrides config and PORT)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point for the API server."""
    args = parse_args(argv)
    config = load_config_or_default(args.config)

    logging_config = config.get("logging") or {}
    setup_logging(verbose=args.verbose or logging_config.get("verbose", False), log_file=logging_config.get("log_file"))
    if logging_config.get("audit_file"):
        setup_audit_logging(logging_config["audit_file"])

    logger = get_logger(__name__)
    settings = get_server_settings(config)
    host = args.host or settings["host"]
    port = args.port or settings["port"]

    app = create_app(config)
    logger.info(f"DTF Backend API running on port {port}")
    logger.info(f"Health check: http://localhost:{port}/health")

    # log_config=None keeps the handlers installed by setup_logging
    uvicorn.run(app, host=host, port=port, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
