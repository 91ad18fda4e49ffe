from __future__ import annotations

import logging

import firebase_admin
from firebase_admin import credentials

from smart_lunch.config import Settings
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def get_firebase_app(settings: Settings) -> firebase_admin.App:
    """Initialise the default Firebase app once per process and reuse it."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass
    try:
        if settings.firebase_credentials_file:
            cred = credentials.Certificate(settings.firebase_credentials_file)
        else:
            cred = credentials.ApplicationDefault()
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        app = firebase_admin.initialize_app(cred, options)
    except (ValueError, IOError) as e:
        raise ConfigurationError(f"Could not initialise Firebase: {e}") from e
    logger.info("Firebase app initialised (project=%s)", settings.firebase_project_id or "default")
    return app
