"""
Which mentor's credential a request acts on.

A caller always acts on their own credential. Acting on another mentor's credential
(an explicit mentorUid that is not the caller) requires the admin flag on the caller's profile.
"""
import logging

from sqlalchemy.orm import sessionmaker

from calcom_proxy.errors import NotAuthorized
from calcom_proxy.models import UserProfile

logger = logging.getLogger(__name__)


class ProfileStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def is_admin(self, uid: str) -> bool:
        """roles.admin is checked first, then the older top-level admin flag. Missing profile -> False."""
        with self._session_factory() as db:
            profile = db.get(UserProfile, uid)
            if profile is None:
                return False
            return profile.get_roles().get("admin") is True or profile.admin is True


def resolve_target_uid(caller_uid: str, requested_uid: str | None, profiles: ProfileStore) -> str:
    """
    Return the effective mentor uid for this request.
    Raises NotAuthorized when a non-admin asks for someone else's credential.
    """
    if not requested_uid or requested_uid == caller_uid:
        return caller_uid
    if not profiles.is_admin(caller_uid):
        logger.warning("Mentor %s denied access to mentor %s", caller_uid, requested_uid)
        raise NotAuthorized()
    logger.debug("Admin %s acting on behalf of mentor %s", caller_uid, requested_uid)
    return requested_uid
