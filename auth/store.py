"""
auth/store.py -- Firestore persistence for UserRecord documents.

Pattern: Repository + Data Mapper. UserRecordStore is the repository;
UserRecord.from_document is the mapper. Route and service code never touches
Firestore directly.

Idempotent upsert:
  document.create() only succeeds when the document does not exist yet, so
  the defaults (createdAt server timestamp, subscriptionStatus "free", null
  billing fields) are written exactly once. When the document already exists
  only userId + email are merged in -- createdAt, subscriptionStatus and the
  billing fields written by other collaborators are left alone. Each branch is
  a single-document write, atomic on the Firestore side; no locking here.

Errors:
  Any google-api-core error becomes core.errors.StoreError, including
  NotFound for a missing database or project. A missing document is NOT an
  error -- get() returns None, decided by DocumentSnapshot.exists.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import firestore
from google.api_core import exceptions as gexc

from auth.models import DEFAULT_SUBSCRIPTION_STATUS, UserRecord
from core.errors import StoreError

logger = logging.getLogger("authgate.auth.store")


class UserRecordStore:
    """Repository for UserRecord documents, keyed by account id.

    Usage:
        store = UserRecordStore.from_app(app)
        record = store.upsert("uid123", "a@x.com")
        same = store.get("uid123")
    """

    def __init__(self, client: Any, collection: str = "users") -> None:
        self._client = client
        self._collection = collection

    @classmethod
    def from_app(cls, app: firebase_admin.App, collection: str = "users") -> "UserRecordStore":
        return cls(firestore.client(app), collection)

    def _doc(self, account_id: str):
        return self._client.collection(self._collection).document(account_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, account_id: str) -> Optional[UserRecord]:
        """Return the stored record, or None when no document exists."""
        try:
            snap = self._doc(account_id).get()
        except gexc.GoogleAPIError as e:
            raise StoreError(f"Failed to read user document {account_id}: {e}") from e
        if not snap.exists:
            return None
        return UserRecord.from_document(account_id, snap.to_dict() or {})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, account_id: str, email: str) -> UserRecord:
        """Create the document with defaults, or merge the email into an existing one.

        Returns the record as stored after the write.
        """
        ref = self._doc(account_id)
        try:
            try:
                ref.create(_new_document(account_id, email))
                logger.info("Created user document %s", account_id)
            except gexc.AlreadyExists:
                ref.set({"userId": account_id, "email": email}, merge=True)
                logger.info("User document %s already existed, merged email", account_id)
            snap = ref.get()
        except gexc.GoogleAPIError as e:
            raise StoreError(f"Failed to write user document {account_id}: {e}") from e

        if not snap.exists:
            # Deleted between the write and the read-back.
            raise StoreError(f"User document {account_id} missing after write")
        return UserRecord.from_document(account_id, snap.to_dict() or {})


def _new_document(account_id: str, email: str) -> dict[str, Any]:
    return {
        "userId": account_id,
        "email": email,
        "createdAt": firestore.SERVER_TIMESTAMP,
        "subscriptionStatus": DEFAULT_SUBSCRIPTION_STATUS,
        "stripeCustomerId": None,
        "subscriptionEndDate": None,
    }
