from __future__ import annotations

import logging
from typing import Mapping, Optional

from firebase_admin import auth as firebase_auth

from smart_lunch.config import Settings
from .exceptions import ServiceError
from .firebase import get_firebase_app

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"


class AuthError(ServiceError):
    """Missing or invalid caller identity."""


def _bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    value = headers.get("Authorization") or headers.get("authorization") or ""
    scheme, _, token = value.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def resolve_caller_id(headers: Mapping[str, str], settings: Settings) -> str:
    """
    Stable user identifier of the caller.

    `firebase` mode verifies a Firebase ID token from the Authorization header;
    `header` mode trusts X-User-Id and is meant for local development only.
    """
    if settings.auth_mode == "header":
        uid = (headers.get(USER_HEADER) or "").strip()
        if not uid:
            raise AuthError(f"Missing {USER_HEADER} header")
        return uid

    token = _bearer_token(headers)
    if token is None:
        raise AuthError("Missing bearer token")
    try:
        decoded = firebase_auth.verify_id_token(token, app=get_firebase_app(settings))
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
        logger.info("Rejected ID token: %s", e)
        raise AuthError("Invalid or expired ID token") from e
    return decoded["uid"]
