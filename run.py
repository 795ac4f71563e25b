#!/usr/bin/env python3
"""GeoMapper - Moroccan Lambert export service.

Starts the Flask API and opens the browser on it.
"""

import os
import threading
import webbrowser

from geomapper.logging_config import setup_logging
from geomapper.server import app

PORT = int(os.environ.get("PORT", 5050))
HOST = os.environ.get("HOST", "127.0.0.1")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


def open_browser():
    webbrowser.open(f"http://127.0.0.1:{PORT}/api/crs")


if __name__ == "__main__":
    setup_logging(LOG_LEVEL)
    # Only open browser in local development mode
    if HOST == "127.0.0.1" and os.environ.get("FLASK_ENV") != "production":
        threading.Timer(1.0, open_browser).start()
    app.run(host=HOST, port=PORT, debug=False)
