"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, almost no logic). Stores and the
account service do the work; api/models.py owns the HTTP contract.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

# Subscription status every new user document starts with. The signup
# response, the login fallback and the /auth/me fallback all read it from here.
DEFAULT_SUBSCRIPTION_STATUS = "free"

@dataclass
class UserRecord:
    """Application-owned document for one identity-provider account.

    user_id equals the Firestore document id. created_at is assigned by the
    server on first creation and never overwritten. stripe_customer_id and
    subscription_end_date belong to the billing collaborator -- this service
    writes them as null once, at creation, and never touches them again.

    document is the stored document exactly as read, for /auth/me. It is None
    for a record synthesized without a stored document.
    """

    user_id: str
    email: Optional[str]
    subscription_status: str = DEFAULT_SUBSCRIPTION_STATUS
    created_at: Any = None  # datetime from Firestore
    stripe_customer_id: Any = None
    subscription_end_date: Any = None
    document: Optional[dict[str, Any]] = None

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "UserRecord":
        return cls(
            user_id=data.get("userId") or doc_id,
            email=data.get("email"),
            subscription_status=data.get("subscriptionStatus") or DEFAULT_SUBSCRIPTION_STATUS,
            created_at=data.get("createdAt"),
            stripe_customer_id=data.get("stripeCustomerId"),
            subscription_end_date=data.get("subscriptionEndDate"),
            document=dict(data),
        )

    @property
    def stored(self) -> bool:
        return self.document is not None

    def summary(self) -> dict[str, Any]:
        """The three fields signup, login and the /auth/me fallback return."""
        return {"userId": self.user_id, "email": self.email, "subscriptionStatus": self.subscription_status}


@dataclass
class SignInResult:
    """Payload of a successful password-grant sign-in."""

    account_id: str  # "localId"
    id_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None  # seconds
    email: Optional[str] = None


@dataclass
class CallerContext:
    """Identity of the caller, derived from a verified bearer token.

    Lives on request.state for the duration of one request only.
    """

    account_id: str
    email: Optional[str] = None
    claims: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: dict[str, Any]) -> "CallerContext":
        uid = str(claims.get("uid") or claims.get("sub") or "").strip()
        return cls(account_id=uid, email=claims.get("email"), claims=dict(claims))


@dataclass
class AuthResult:
    """What signup and login hand back to the route layer."""

    token: str
    user: UserRecord
