"""
============================================================
 Acuity Check — Firebase Firestore Integration
 Remote store for completed vision tests.

 Firestore Structure:
   visionTests/{docId} — one document per completed screening
============================================================
"""

import logging
import os
from datetime import datetime, timezone

import firebase_admin
from firebase_admin import credentials, firestore

import config

log = logging.getLogger(__name__)


class FirebaseDB:
    """Thin Firestore wrapper. Writes are synchronous; callers thread them."""

    def __init__(self, collection: str = config.FIREBASE_COLLECTION) -> None:
        self._db = None
        self._initialized = False
        self.collection = collection

    def initialize(self, cred_path: str | None = None) -> bool:
        """
        Initialize Firebase Admin SDK with service account credentials.
        Returns True if successful, False otherwise.
        """
        if self._initialized:
            return True

        if cred_path is None:
            search_paths = [
                config.FIREBASE_CREDENTIALS,
                os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "firebase-credentials.json"),
            ]
            for p in search_paths:
                if p and os.path.isfile(p):
                    cred_path = p
                    break

        if not cred_path or not os.path.isfile(cred_path):
            log.warning("[FIREBASE] Firebase config missing. Results will be stored locally.")
            return False

        try:
            cred = credentials.Certificate(cred_path)
            try:
                firebase_admin.get_app()
            except ValueError:
                firebase_admin.initialize_app(cred)

            self._db = firestore.client()
            self._initialized = True
            log.info("[FIREBASE] Connected to Firestore (collection=%s)", self.collection)
            return True
        except Exception as e:
            log.warning("[FIREBASE] Firebase init failed: %s", e)
            return False

    @property
    def is_active(self) -> bool:
        return self._initialized and self._db is not None

    @staticmethod
    def _safe_data(data: dict) -> dict:
        """Clean data for Firestore (drop None, convert datetime, NaN → 0.0)."""
        clean = {}
        for k, v in data.items():
            if v is None:
                continue
            if isinstance(v, datetime):
                clean[k] = v.isoformat()
            elif isinstance(v, float) and (v != v):
                clean[k] = 0.0
            else:
                clean[k] = v
        return clean

    def add_vision_test(self, record: dict) -> str:
        """Add one screening to the collection. Returns the document id; raises on failure."""
        if not self.is_active:
            raise RuntimeError("Firestore is not initialized")
        safe = self._safe_data(record)
        safe["_written_at"] = datetime.now(timezone.utc).isoformat()
        _, doc_ref = self._db.collection(self.collection).add(safe)
        log.info("[FIREBASE] Stored vision test %s", doc_ref.id)
        return doc_ref.id
