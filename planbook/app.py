#!/usr/bin/env python3
"""
Planbook - Answer Sheet Grading & Lesson Scheduling API
=======================================================
Run: python3 -m planbook.app
Then POST to: http://localhost:3000/api/...
"""

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from planbook import __version__
from planbook.config import HOST, PORT, DEBUG
from planbook.routes import register_routes


def create_app():
    """Build the Flask app with every blueprint registered."""
    app = Flask(__name__)
    CORS(app)
    register_routes(app)

    @app.route('/api/health')
    def health():
        return jsonify({"status": "ok", "version": __version__})

    return app


# ══════════════════════════════════════════════════════════════
# MAIN
# ══════════════════════════════════════════════════════════════

if __name__ == '__main__':
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    print()
    print("+" + "=" * 50 + "+")
    print("|  Planbook - Grading & Scheduling API             |")
    print("+" + "=" * 50 + "+")
    print(f"|  Listening on http://{HOST}:{PORT}".ljust(51) + "|")
    print("+" + "=" * 50 + "+")
    print()

    create_app().run(host=HOST, port=PORT, debug=DEBUG)
