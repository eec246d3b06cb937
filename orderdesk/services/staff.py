"""
Staff Directory

Verifies staff credentials against Argon2 hashes. Plaintext passwords
are only seen once, when the seed account is hashed at startup.
"""

import logging
from typing import Iterable, Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from orderdesk.core.config import Settings
from orderdesk.core.exceptions import AuthenticationError
from orderdesk.models import StaffMember

logger = logging.getLogger(__name__)


class StaffDirectory:
    """Static set of staff accounts with hash-and-compare login."""

    def __init__(self, members: Iterable[StaffMember], hasher: Optional[PasswordHasher] = None):
        self._hasher = hasher or PasswordHasher()
        self._members = {m.id: m for m in members}
        # Verified against when the id is unknown so both failure paths cost the same.
        self._dummy_hash = self._hasher.hash("orderdesk-unknown-staff")

    @classmethod
    def from_settings(cls, settings: Settings, hasher: Optional[PasswordHasher] = None) -> "StaffDirectory":
        hasher = hasher or PasswordHasher()
        seed = StaffMember(
            id=settings.staff_id,
            name=settings.staff_name,
            role=settings.staff_role,
            password_hash=hasher.hash(settings.staff_password),
        )
        return cls([seed], hasher=hasher)

    def hash_password(self, password: str) -> str:
        return self._hasher.hash(password)

    def get(self, staff_id: str) -> Optional[StaffMember]:
        return self._members.get(staff_id)

    def authenticate(self, staff_id: str, password: str) -> StaffMember:
        """Return the staff member or raise AuthenticationError."""
        member = self._members.get(staff_id)
        password_hash = member.password_hash if member else self._dummy_hash

        try:
            self._hasher.verify(password_hash, password)
        except VerifyMismatchError:
            member = None
        except (VerificationError, InvalidHashError) as e:
            logger.error(f"Could not verify password hash for staff {staff_id!r}: {e}")
            member = None

        if member is None:
            logger.warning(f"Failed login attempt for staff id {staff_id!r}")
            raise AuthenticationError()

        logger.info(f"Staff {member.id} logged in")
        return member
