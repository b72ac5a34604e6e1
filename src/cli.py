#!/usr/bin/env python3
"""
OpenShelf Command Line Interface.

Provides commands for running and managing an OpenShelf catalog:
    - serve: Start the API server
    - init: Initialize the catalog as the configured super admin
    - status: Show catalog state, transfer and recovery status
    - check: Verify installation and configuration
    - info: Display system information

Usage:
    openshelf serve [--host HOST] [--port PORT] [--debug] [--production]
    openshelf init --caller HEX
    openshelf status
    openshelf check
    openshelf info
    openshelf --version
"""

import argparse
import json
import os
import sys

# Ensure src is in path when running from source
if os.path.exists(os.path.join(os.path.dirname(__file__), "catalog_service.py")):
    sys.path.insert(0, os.path.dirname(__file__))

from dotenv import load_dotenv  # noqa: E402

__version__ = "0.1.0"


def _get_service():
    from catalog_service import CatalogService

    return CatalogService()


def cmd_serve(args):
    """Start the OpenShelf API server."""
    from api import create_app

    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = args.port or int(os.getenv("PORT", 5000))
    debug = args.debug or os.getenv("FLASK_DEBUG", "").lower() == "true"

    print(f"Starting OpenShelf API server on {host}:{port}")

    flask_app = create_app()

    if args.production:
        # Use gunicorn for production
        try:
            import gunicorn.app.base
        except ImportError:
            print("Error: gunicorn not installed. Install with: pip install openshelf[production]")
            return 1

        class StandaloneApplication(gunicorn.app.base.BaseApplication):
            """Gunicorn WSGI application wrapper for production deployment."""

            def __init__(self, app, options=None):
                self.options = options or {}
                self.application = app
                super().__init__()

            def load_config(self):
                for key, value in self.options.items():
                    if key in self.cfg.settings and value is not None:
                        self.cfg.set(key.lower(), value)

            def load(self):
                return self.application

        # One worker: the service lock serializes operations within a process
        options = {
            "bind": f"{host}:{port}",
            "workers": 1,
            "threads": args.threads or int(os.getenv("THREADS", 4)),
            "worker_class": "gthread",
            "timeout": 120,
            "accesslog": "-",
            "errorlog": "-",
        }
        StandaloneApplication(flask_app, options).run()
    else:
        flask_app.run(host=host, port=port, debug=debug)
    return 0


def cmd_init(args):
    """Initialize the catalog."""
    from errors import CatalogError
    from principal import Principal

    try:
        caller = Principal.from_hex(args.caller.strip().lower())
        state = _get_service().initialize(caller)
    except CatalogError as e:
        print(f"Error [{e.code}]: {e.message}")
        return 1

    print("Catalog initialized")
    print(f"  Super admin: {state.super_admin.to_hex()}")
    print(f"  Transfer timelock: {state.transfer_timelock}s")
    print(f"  Recovery threshold: {state.emergency_recovery_threshold}")
    return 0


def cmd_status(args):
    """Show catalog state and protocol status."""
    from errors import CatalogError

    try:
        service = _get_service()
        state = service.get_state()
        status = {
            "state": state.to_dict(),
            "transfer": service.transfer_status(),
            "recovery": service.recovery_status(),
        }
    except CatalogError as e:
        print(f"Error [{e.code}]: {e.message}")
        return 1

    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    print("OpenShelf Catalog Status")
    print("=" * 40)
    print(f"Super admin: {state.super_admin.to_hex()}")
    print(f"Admins ({len(state.admins)}/{state.admins.capacity}):")
    for admin in state.admins.to_list():
        print(f"  {admin}")
    print(f"Curators ({len(state.curators)}/{state.curators.capacity}):")
    for curator in state.curators.to_list():
        print(f"  {curator}")
    print(f"Entries: {state.catalog_count}")
    print(f"Paused: {state.paused}")

    transfer = status["transfer"]
    if transfer["pending"]:
        print(f"Transfer pending to {transfer['candidate']} (confirmable at {transfer['confirmable_at']})")
    recovery = status["recovery"]
    if recovery["pending"]:
        print(
            f"Recovery pending to {recovery['candidate']} "
            f"({len(recovery['votes'])}/{recovery['threshold']} votes)"
        )
    return 0


def cmd_check(args):
    """Check installation and configuration."""
    print("OpenShelf Installation Check")
    print("=" * 40)

    checks = []

    try:
        from flask import Flask  # noqa: F401

        checks.append(("Flask", "OK"))
    except ImportError as e:
        checks.append(("Flask", f"FAIL: {e}"))

    try:
        from config import CatalogConfig
        from errors import CatalogError

        config = CatalogConfig.from_env().validate()
        if config.super_admin is None:
            checks.append(("Configuration", "WARN (OPENSHELF_SUPER_ADMIN not set)"))
        else:
            checks.append(("Configuration", "OK"))
    except CatalogError as e:
        checks.append(("Configuration", f"FAIL: {e.message}"))

    try:
        from storage import StorageError, get_storage_backend

        storage = get_storage_backend()
        backend_name = storage.__class__.__name__
        status = "OK" if storage.is_available() else "WARN (not available)"
        checks.append((f"Storage ({backend_name})", status))
    except StorageError as e:
        checks.append(("Storage", f"FAIL: {e}"))

    try:
        import gunicorn  # noqa: F401

        checks.append(("Production server", "OK"))
    except ImportError:
        checks.append(("Production server", "SKIP (gunicorn not installed)"))

    print()
    all_ok = True
    for name, status in checks:
        icon = "✓" if status == "OK" else ("○" if status.startswith(("SKIP", "WARN")) else "✗")
        print(f"  {icon} {name}: {status}")
        if "FAIL" in status:
            all_ok = False

    print()
    if all_ok:
        print("All checks passed!")
        return 0
    else:
        print("Some checks failed. See above for details.")
        return 1


def cmd_info(args):
    """Display system information."""
    import platform

    from errors import CatalogError
    from storage import StorageError

    print("OpenShelf System Information")
    print("=" * 40)
    print(f"Version: {__version__}")
    print(f"Python: {platform.python_version()}")
    print(f"Platform: {platform.platform()}")

    print()
    print("Configuration:")
    print(f"  OPENSHELF_SUPER_ADMIN: {'configured' if os.getenv('OPENSHELF_SUPER_ADMIN') else 'not set'}")
    print(f"  STORAGE_BACKEND: {os.getenv('STORAGE_BACKEND', 'json (default)')}")
    print(f"  CATALOG_DATA_FILE: {os.getenv('CATALOG_DATA_FILE', 'catalog_data.json (default)')}")
    print(f"  LOG_LEVEL: {os.getenv('LOG_LEVEL', 'INFO (default)')}")
    print(f"  LOG_FORMAT: {os.getenv('LOG_FORMAT', 'console (default)')}")

    print()
    print("Catalog:")
    try:
        info = _get_service().get_info()
    except (CatalogError, StorageError) as e:
        print(f"  Error: {e}")
        return 1

    for key, value in info.items():
        if key in ("storage", "config"):
            continue
        print(f"  {key}: {value}")

    print()
    print("Storage:")
    for key, value in info["storage"].items():
        print(f"  {key}: {value}")

    return 0


def main():
    """Main CLI entry point."""
    load_dotenv()

    from monitoring import configure_logging

    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    parser = argparse.ArgumentParser(
        prog="openshelf",
        description="OpenShelf - Permissioned catalog governance core",
    )
    parser.add_argument("--version", "-v", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", help="Host to bind to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, help="Port to bind to (default: 5000)")
    serve_parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    serve_parser.add_argument(
        "--production", action="store_true", help="Use gunicorn for production"
    )
    serve_parser.add_argument("--threads", type=int, help="Worker threads (production mode)")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize the catalog")
    init_parser.add_argument(
        "--caller", required=True, help="Caller principal (64 hex chars, the configured super admin)"
    )

    # status command
    status_parser = subparsers.add_parser("status", help="Show catalog status")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # check command
    subparsers.add_parser("check", help="Check installation and configuration")

    # info command
    subparsers.add_parser("info", help="Display system information")

    args = parser.parse_args()

    commands = {
        "serve": cmd_serve,
        "init": cmd_init,
        "status": cmd_status,
        "check": cmd_check,
        "info": cmd_info,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)

    sys.exit(commands[args.command](args))


if __name__ == "__main__":
    main()
