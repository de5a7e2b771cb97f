"""
SiteTime API development server.

Usage:
    python backend/run.py

Environment variables:
    PORT - Port to listen on (default: 5000)
    FLASK_DEBUG - Enable the debugger and reloader when "1" or "true" (default: off)
"""
import os

from dotenv import load_dotenv
load_dotenv()

from app import create_app

app = create_app()

if __name__ == "__main__":
    debug = os.environ.get("FLASK_DEBUG", "0").lower() in ("1", "true")
    # Threaded so the clock and report screens can poll in parallel
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "5000")), debug=debug, threaded=True)
