#!/usr/bin/env python3
"""
OpenShelf API Server Launcher
"""

import os
import sys

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from api import create_app  # noqa: E402
from monitoring import configure_logging  # noqa: E402


def run_server():
    """Run the Flask development server."""
    app = create_app()
    configure_logging(level=os.getenv("LOG_LEVEL", "INFO"))

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5000))

    print(f"\n{'='*60}")
    print("OpenShelf API Server")
    print(f"{'='*60}")
    print(f"Listening on: http://{host}:{port}")
    print(f"{'='*60}\n")

    app.run(host=host, port=port, debug=os.getenv("FLASK_DEBUG", "").lower() == "true")


if __name__ == '__main__':
    run_server()
