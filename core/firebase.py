import json
import logging
import os
from functools import lru_cache

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials, firestore

import core.config  # noqa: F401  loads .env before credentials are read

logger = logging.getLogger(__name__)


def initialize_firebase():
    """Initialize Firebase Admin SDK with production-ready credential handling"""

    if firebase_admin._apps:
        return

    # Method 1: Service Account Key from Environment Variable (Recommended for production)
    service_account_key_json = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY")

    if service_account_key_json:
        try:
            service_account_info = json.loads(service_account_key_json)
            cred = credentials.Certificate(service_account_info)
            firebase_admin.initialize_app(cred)
            logger.info("Firebase initialized with service account key from environment.")
            return
        except (json.JSONDecodeError, ValueError) as e:
            logger.error("Error parsing FIREBASE_SERVICE_ACCOUNT_KEY: %s", e)

    # Method 2: Service Account Key File (for local development only)
    service_account_key_path = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY_PATH")
    if service_account_key_path and os.path.exists(service_account_key_path):
        cred = credentials.Certificate(service_account_key_path)
        firebase_admin.initialize_app(cred)
        logger.info("Firebase initialized with service account key file %s.", service_account_key_path)
        return

    # Method 3: GOOGLE_APPLICATION_CREDENTIALS (Cloud environments)
    if os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        firebase_admin.initialize_app()
        logger.info("Firebase initialized with GOOGLE_APPLICATION_CREDENTIALS.")
        return

    # Method 4: Default Application Default Credentials (fallback)
    firebase_admin.initialize_app()
    logger.warning("Firebase initialized with default Application Default Credentials.")


@lru_cache(maxsize=1)
def get_firestore_client():
    """Firestore client, initializing the Admin SDK on first use."""
    initialize_firebase()
    return firestore.client()


def verify_id_token(token: str) -> dict:
    initialize_firebase()
    return firebase_auth.verify_id_token(token)
