import logging

import firebase_admin
from firebase_admin import credentials

from notifier.config import Settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings) -> firebase_admin.App | None:
  """Initializes the Firebase Admin SDK and returns the default app.

  Credential sources are tried in order: inline service account JSON, a service account
  file, then Google Application Default Credentials. Returns None when initialization
  fails so callers can degrade to a disabled gateway.
  """
  if firebase_admin._apps:
    return firebase_admin.get_app()

  options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None

  try:
    if settings.firebase_service_account:
      cred = credentials.Certificate(settings.firebase_service_account)
      app = firebase_admin.initialize_app(cred, options)
    elif settings.firebase_service_account_json_path:
      cred = credentials.Certificate(settings.firebase_service_account_json_path)
      app = firebase_admin.initialize_app(cred, options)
    else:
      # Use default credentials (e.g. Google Application Default Credentials)
      app = firebase_admin.initialize_app(credentials.ApplicationDefault(), options)
  except Exception as e:  # noqa: BLE001
    logger.error("Failed to initialize Firebase Admin SDK: %s", e)
    logger.warning("Push notifications will not be delivered until Firebase credentials are configured.")
    return None

  logger.info("Firebase Admin SDK initialized successfully app=%s", app.name)
  return app
