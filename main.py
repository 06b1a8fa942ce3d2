"""
main.py

Flask host for the content share backend. Serves the health endpoint; the
cleanup job runs in the Celery worker/beat (see celery_app.py) or through
``python -m contentshare.jobs.run_cleanup``.

Dependencies:
  - Python packages: Flask, redis, celery, google-cloud-storage, cryptography
  - Infrastructure: Redis server
"""

import logging
import os

from app_factory import create_app

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()

if __name__ == "__main__":
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", 8000))
    debug = os.getenv("FLASK_DEBUG", "false").lower() == "true"

    app.run(host=host, port=port, debug=debug)
