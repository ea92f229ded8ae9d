"""Caller identity as seen by the service layer.

Views turn ``request.user`` into an :class:`Identity`; services never
touch the request.  ``uid == GUEST_UID`` marks an anonymous checkout
that supplied a contact email.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

GUEST_UID = "guest"


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str = ""
    email_verified: bool = False
    is_admin: bool = False

    @property
    def is_guest(self) -> bool:
        return self.uid == GUEST_UID

    @classmethod
    def guest(cls, email: str) -> Identity:
        return cls(uid=GUEST_UID, email=(email or "").strip().lower())

    @classmethod
    def from_user(cls, user: Any) -> Optional[Identity]:
        """Map a DRF ``request.user`` to an identity (``None`` when anonymous).

        Identity-token users carry their claims; SimpleJWT staff users are
        trusted accounts, so their email counts as verified.
        """
        if user is None or not getattr(user, "is_authenticated", False):
            return None
        if hasattr(user, "uid"):
            return cls(
                uid=user.uid,
                email=user.email,
                email_verified=user.email_verified,
                is_admin=user.is_admin,
            )
        return cls(
            uid=str(user.pk),
            email=(user.email or "").strip().lower(),
            email_verified=True,
            is_admin=bool(user.is_staff),
        )
