"""
auth/firebase.py -- Firebase Admin SDK bootstrap.

Initializes a NAMED firebase_admin App once at process start and hands it
back to the caller. The App is passed explicitly to every SDK call
(auth.create_user(..., app=app), firestore.client(app)) instead of relying on
the SDK's process-wide default app.

Credentials:
  GOOGLE_APPLICATION_CREDENTIALS set -> service account certificate.
  Otherwise                         -> Application Default Credentials (ADC).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import os
import threading

import firebase_admin
from firebase_admin import credentials

from core.config import Settings

logger = logging.getLogger("authgate.auth.firebase")

_init_lock = threading.Lock()


def init_firebase_app(settings: Settings) -> firebase_admin.App:
    """Return the named Firebase App, initializing it on first call.

    Raises RuntimeError when credentials cannot be loaded -- a process that
    cannot talk to Firebase has nothing useful to serve.
    """
    name = settings.firebase_app_name
    with _init_lock:
        try:
            return firebase_admin.get_app(name)
        except ValueError:
            pass  # not initialized yet

        try:
            if settings.google_application_credentials:
                cred = credentials.Certificate(settings.google_application_credentials)
            else:
                cred = credentials.ApplicationDefault()
        except Exception as e:
            raise RuntimeError(
                "Failed to load Firebase credentials. Set GOOGLE_APPLICATION_CREDENTIALS to a "
                "service account file, or run `gcloud auth application-default login` locally."
            ) from e

        if settings.firebase_auth_emulator_host:
            # The Admin SDK only reads the emulator host from the process environment.
            os.environ.setdefault("FIREBASE_AUTH_EMULATOR_HOST", settings.firebase_auth_emulator_host)

        options: dict[str, str] = {}
        if settings.firebase_project_id:
            options["projectId"] = settings.firebase_project_id

        app = firebase_admin.initialize_app(cred, options, name=name)
        logger.info(
            "Firebase app '%s' initialized (project=%s, auth_emulator=%s)",
            name,
            settings.firebase_project_id or "<from credentials>",
            settings.firebase_auth_emulator_host or "off",
        )
        return app


def delete_firebase_app(app: firebase_admin.App) -> None:
    """Release the App's resources on shutdown."""
    firebase_admin.delete_app(app)

