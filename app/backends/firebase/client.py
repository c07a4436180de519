"""
Firebase Admin SDK initialisation.

Credentials arrive base64-encoded in ``FIREBASE_CREDENTIALS`` so they can
live in a single environment variable.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass

import firebase_admin
from firebase_admin import credentials, firestore_async, storage

from app.core.config import Settings

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ["type", "project_id", "private_key_id", "private_key", "client_email", "client_id"]
_APP_NAME = "fieldlog"


@dataclass
class FirebaseClient:
    """Handles onto the initialised app; built once per process."""

    app: firebase_admin.App
    db: object  # google.cloud.firestore.AsyncClient
    bucket: object  # google.cloud.storage.Bucket
    api_key: str


def _decode_credentials(encoded: str) -> dict:
    try:
        cred_data = json.loads(base64.b64decode(encoded).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RuntimeError("FIREBASE_CREDENTIALS is not valid base64-encoded JSON") from exc
    if not all(field in cred_data for field in _REQUIRED_FIELDS):
        raise RuntimeError("Firebase credentials are incomplete or invalid")
    return cred_data


def initialize_firebase(settings: Settings) -> FirebaseClient:
    if not settings.FIREBASE_CREDENTIALS:
        raise RuntimeError("FIREBASE_CREDENTIALS is required when BACKEND=firebase")
    if not settings.FIREBASE_API_KEY:
        raise RuntimeError("FIREBASE_API_KEY is required when BACKEND=firebase")

    cred_data = _decode_credentials(settings.FIREBASE_CREDENTIALS)
    bucket_name = settings.FIREBASE_STORAGE_BUCKET or f"{cred_data['project_id']}.appspot.com"

    try:
        app = firebase_admin.get_app(_APP_NAME)
    except ValueError:
        app = firebase_admin.initialize_app(
            credentials.Certificate(cred_data),
            {"projectId": cred_data["project_id"], "storageBucket": bucket_name},
            name=_APP_NAME,
        )
        logger.info("Firebase Admin SDK initialised for project %s", cred_data["project_id"])

    return FirebaseClient(
        app=app,
        db=firestore_async.client(app),
        bucket=storage.bucket(app=app),
        api_key=settings.FIREBASE_API_KEY,
    )
