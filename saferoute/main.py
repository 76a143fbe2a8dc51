"""
SafeRoute Backend — FastAPI
Modular entry point. All logic is split across:
  config.py, models.py, data_fetchers.py, scoring.py, ranking.py, planner.py, pins.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

from saferoute.config import APP_HOST, APP_PORT  # noqa: E402
from saferoute.routes import app  # noqa: E402,F401


def run():
    import uvicorn
    uvicorn.run(app, host=APP_HOST, port=APP_PORT)


if __name__ == "__main__":
    run()
