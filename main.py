"""
Command-line entry points for the common-api service.

Usage:
    # Run the FastAPI app with Uvicorn
    python main.py api [--reload]

    # List the entity classes a namespace would register
    python main.py discover app.dto --package app
"""

from __future__ import annotations

import argparse
import os
import sys


def run_api(reload: bool) -> int:
    """Run the FastAPI application factory with Uvicorn."""
    try:
        import uvicorn

        from common_api.config import get_settings

        settings = get_settings()

        host = os.getenv("SERVER__HOST", "0.0.0.0")
        port = int(os.getenv("SERVER__PORT", "8000"))

        print(f"Starting Uvicorn on {host}:{port}...")

        uvicorn.run(
            "common_api.api.main:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload,
            log_level="debug" if settings.app.debug else "info",
        )
        return 0
    except ImportError as exc:
        print(f"Error: {exc}. Install with: pip install '.[server]'", file=sys.stderr)
        return 1


def run_discover(namespace: str, packages: list[str]) -> int:
    """Print the registrations discovery would produce for ``namespace``."""
    from common_api.api.registry import RepositoryRegistry
    from common_api.config import get_settings
    from common_api.logger import setup_logging

    setup_logging(get_settings(), to_file=False)

    registry = RepositoryRegistry()
    try:
        registrations = registry.discover(namespace, packages=packages)
    except (ValueError, ImportError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for registration in registrations:
        entity = registration.entity_type
        print(f"{entity.__module__}.{entity.__name__} -> {registration.implementation}")
    print(f"{len(registrations)} repository registration(s)")
    return 0 if registrations else 2


def main() -> int:
    """Main entry point with subcommand routing."""
    parser = argparse.ArgumentParser(
        description="Generic repository service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    api_parser = subparsers.add_parser("api", help="Run FastAPI server")
    api_parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server on code changes (development mode)",
    )

    discover_parser = subparsers.add_parser(
        "discover", help="List entity classes registered for a namespace"
    )
    discover_parser.add_argument("namespace", help="Module name holding the entity classes")
    discover_parser.add_argument(
        "--package",
        action="append",
        default=[],
        dest="packages",
        help="Package to import before matching (repeatable)",
    )

    args = parser.parse_args()

    if args.command == "api":
        return run_api(args.reload)
    elif args.command == "discover":
        return run_discover(args.namespace, args.packages)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
