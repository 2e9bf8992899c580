"""pwahost - Progressive Web App host for static sites."""

import argparse
import logging
import signal
import sys
from threading import Event
from typing import Optional

__version__ = "0.1.0"

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _cmd_run(args: argparse.Namespace) -> None:
    """Execute the run command - start the PWA host."""
    global _shutdown_event

    _setup_logging(args.verbose)

    logger.info("pwahost %s starting...", __version__)

    # Import here to allow logging setup first
    from .config import load_config, ConfigError
    from .server import PwaServer, ServerError

    # 1. Load configuration
    try:
        config = load_config(args.config)
        logger.info("Configuration loaded from %s", args.config)
        logger.info(
            "Serving service worker at %s (strategy: %s, environment: %s)",
            config.pwa.service_worker_path,
            config.pwa.strategy,
            config.environment,
        )
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    if config.server.web_root is None:
        logger.warning("No web_root configured: only the PWA endpoints will be served")

    # 2. Setup shutdown handler
    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)

    # 3. Start server
    server = PwaServer(config)
    try:
        server.start()
    except ServerError as e:
        logger.error("Failed to start server: %s", e)
        sys.exit(1)

    try:
        logger.info("Waiting for shutdown signal...")
        _shutdown_event.wait()
    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.info("Keyboard interrupt received")
    finally:
        server.stop()
        logger.info("Shutdown complete")


def _cmd_check(args: argparse.Namespace) -> None:
    """Execute the check command - verify the endpoints of a running host."""
    from pathlib import Path

    from .checker import check_endpoints
    from .config import Config, ConfigError, load_config

    # 1. Load configuration (defaults when no config file exists)
    if Path(args.config).exists():
        try:
            config = load_config(args.config)
        except ConfigError as e:
            print(f"Error: {e}")
            sys.exit(1)
    else:
        config = Config()

    # 2. Fetch every endpoint
    print(f"Checking PWA endpoints at {args.url}...\n")
    results = check_endpoints(args.url, config.pwa, timeout=args.timeout)

    # 3. Display results
    success_count = sum(1 for result in results.values() if result.ok)
    total_count = len(results)

    for result in results.values():
        if result.ok:
            print(f"✓ OK: {result.path} ({result.content_type})")
        else:
            print(f"✗ FAILED: {result.path} - {result.error}")

    print(f"\nResult: {success_count}/{total_count} endpoints OK")

    if success_count < total_count:
        sys.exit(1)


def main() -> None:
    """Main entry point for the pwahost package."""
    parser = argparse.ArgumentParser(
        description="pwahost - Progressive Web App host for static sites"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"pwahost {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")

    # Run subcommand (default behavior)
    run_parser = subparsers.add_parser(
        "run",
        help="Start the PWA host (default)",
    )
    run_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    run_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )
    run_parser.set_defaults(func=_cmd_run)

    # Check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Verify the PWA endpoints of a running host",
    )
    check_parser.add_argument(
        "--url",
        required=True,
        help="Origin of the host to check, e.g. https://example.com",
    )
    check_parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file for route paths (default: config.yaml)",
    )
    check_parser.add_argument(
        "--timeout",
        type=int,
        default=10,
        help="Request timeout in seconds (default: 10)",
    )
    check_parser.set_defaults(func=_cmd_check)

    args = parser.parse_args()

    # Default to 'run' if no command specified
    if args.command is None:
        args.config = "config.yaml"
        args.verbose = False
        args.func = _cmd_run

    args.func(args)
