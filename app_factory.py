"""
Application Factory

Creates and configures the Flask application that hosts the dependency
container, the Celery instance and the health endpoint.
"""

import logging
import os
from typing import Optional

from flask import Flask, jsonify

from contentshare.config.celery_config import make_celery
from contentshare.config.redis_config import init_redis, redis_health_check
from contentshare.container import build_container
from contentshare.domain.cleanup import CleanupStateRepository
from contentshare.domain.file_sharing import IBlobStorageRepository

logger = logging.getLogger(__name__)


class AppConfig:
    """Application configuration."""

    def __init__(self):
        self.flask_env = os.getenv("FLASK_ENV", "development")
        self.is_production = self.flask_env == "production"


def create_app(config: Optional[AppConfig] = None) -> Flask:
    """
    Create and configure Flask application.

    Args:
        config: Application configuration, uses default if None

    Returns:
        Configured Flask application
    """
    if config is None:
        config = AppConfig()

    app = Flask(__name__)
    app.config["ENV_NAME"] = config.flask_env

    _initialize_infrastructure(app)
    _initialize_services(app)
    _register_health_endpoint(app)

    return app


def _initialize_infrastructure(app: Flask) -> None:
    """
    Initialize infrastructure components (Redis, Celery).

    Args:
        app: Flask application
    """
    try:
        init_redis()
        logger.info("Redis initialized successfully")

        app.celery = make_celery(app)
        logger.info("Celery initialized successfully")
    except Exception as e:
        logger.warning(f"Could not initialize infrastructure: {e}")
        app.celery = None


def _initialize_services(app: Flask) -> None:
    """
    Build the DependencyContainer and attach it to the app.

    Tasks resolve services through ``flask_app.container``.

    Args:
        app: Flask application
    """
    try:
        app.container = build_container()
        logger.info("Application services initialized successfully with DependencyContainer")
    except Exception as e:
        logger.warning(f"Could not initialize services: {e}")
        app.container = None


def _get_health_status(app: Flask) -> tuple:
    """
    Get health status of all system components.

    Checks Redis, blob storage and Celery availability and reports the
    last persisted cleanup run.

    Args:
        app: Flask application instance

    Returns:
        Tuple of (health_status_dict, http_status_code)
    """
    health_status = {
        "status": "ok",
        "redis": "unknown",
        "blob_storage": "unknown",
        "celery": "unknown",
        "cleanup": None,
    }

    # Check Redis connectivity
    try:
        if redis_health_check():
            health_status["redis"] = "connected"
        else:
            health_status["redis"] = "disconnected"
            health_status["status"] = "degraded"
    except Exception as e:
        health_status["redis"] = f"error: {str(e)}"
        health_status["status"] = "degraded"

    container = getattr(app, "container", None)

    # Check blob storage
    if container is not None and container.is_registered(IBlobStorageRepository):
        blob_storage = container.resolve(IBlobStorageRepository)
        try:
            healthy = blob_storage.health_check()
        except Exception as e:
            logger.warning(f"Blob storage health check failed: {e}")
            healthy = False
        health_status["blob_storage"] = "available" if healthy else "unavailable"
        if not healthy:
            health_status["status"] = "degraded"
    else:
        health_status["blob_storage"] = "not_configured"
        health_status["status"] = "degraded"

    # Check Celery availability
    if getattr(app, "celery", None) is not None:
        health_status["celery"] = "available"
    else:
        health_status["celery"] = "unavailable"
        health_status["status"] = "degraded"

    # Report the last cleanup run (not critical)
    if (
        health_status["redis"] == "connected"
        and container is not None
        and container.is_registered(CleanupStateRepository)
    ):
        try:
            checkpoint = container.resolve(CleanupStateRepository).get_state()
            health_status["cleanup"] = {
                "high_water_mark": checkpoint.high_water_mark.isoformat(),
                "last_run_at": checkpoint.last_run_at.isoformat() if checkpoint.last_run_at else None,
                "last_run_processed_count": checkpoint.last_run_processed_count,
            }
        except Exception as e:
            logger.warning(f"Could not read cleanup checkpoint: {e}")
            health_status["cleanup"] = f"error: {str(e)}"

    status_code = 200 if health_status["status"] == "ok" else 503
    return health_status, status_code


def _register_health_endpoint(app: Flask) -> None:
    """
    Register health check endpoint.

    Args:
        app: Flask application
    """

    @app.route("/health", methods=["GET"])
    def health():
        """
        Health check endpoint.
        Returns overall health status of the application and its dependencies.
        """
        health_status, status_code = _get_health_status(app)
        return jsonify(health_status), status_code
