"""
Credential store: one Cal.com API key + username per mentor.

Writes merge into the existing record (read-modify-write) instead of replacing it.
Records still in the legacy table are migrated lazily on first read, then the legacy row is deleted.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from calcom_proxy.errors import CredentialNotConfigured
from calcom_proxy.models import CalcomToken, LegacyCalcomToken

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class StoredCredential:
    mentor_uid: str
    api_key: str
    cal_com_username: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
    migrated_from_legacy: bool = False

    @property
    def usable(self) -> bool:
        """Both the key and the username are needed to call Cal.com."""
        return bool(self.api_key) and bool(self.cal_com_username)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored here is UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_credential(row: CalcomToken) -> StoredCredential:
    return StoredCredential(
        mentor_uid=row.mentor_uid,
        api_key=row.api_key or "",
        cal_com_username=row.cal_com_username or "",
        created_at=_as_utc(row.created_at),
        updated_at=_as_utc(row.updated_at),
        migrated_from_legacy=bool(row.migrated_from_legacy),
    )


class TokenStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def load(self, mentor_uid: str) -> StoredCredential | None:
        """
        Return the usable credential for mentor_uid, or None.
        Falls back to the legacy table and migrates a complete legacy record in one transaction.
        """
        with self._session_factory() as db:
            row = db.get(CalcomToken, mentor_uid)
            if row is not None:
                credential = _to_credential(row)
                return credential if credential.usable else None
            return self._migrate_legacy(db, mentor_uid)

    def _migrate_legacy(self, db: Session, mentor_uid: str) -> StoredCredential | None:
        legacy = db.get(LegacyCalcomToken, mentor_uid)
        if legacy is None:
            return None
        if not legacy.api_key or not legacy.cal_com_username:
            return None

        now = _utc_now()
        row = CalcomToken(
            mentor_uid=mentor_uid,
            api_key=legacy.api_key,
            cal_com_username=legacy.cal_com_username,
            created_at=now,
            updated_at=now,
            migrated_from_legacy=True,
        )
        db.add(row)
        db.delete(legacy)
        try:
            db.commit()
        except IntegrityError:
            # A concurrent first read migrated the same record
            db.rollback()
            current = db.get(CalcomToken, mentor_uid)
            if current is None:
                raise
            credential = _to_credential(current)
            return credential if credential.usable else None
        logger.info("Migrated legacy Cal.com token for mentor: %s", mentor_uid)
        return _to_credential(row)

    def require(self, mentor_uid: str) -> StoredCredential:
        """Like load(), but raises CredentialNotConfigured instead of returning None."""
        credential = self.load(mentor_uid)
        if credential is None:
            raise CredentialNotConfigured()
        return credential

    def store(self, mentor_uid: str, api_key: str, cal_com_username: str) -> StoredCredential:
        """Upsert the credential. created_at is set once; updated_at on every write."""
        now = _utc_now()
        with self._session_factory() as db:
            row = db.get(CalcomToken, mentor_uid)
            if row is None:
                row = CalcomToken(mentor_uid=mentor_uid, migrated_from_legacy=False)
                db.add(row)
            if row.created_at is None:
                row.created_at = now
            row.api_key = api_key
            row.cal_com_username = cal_com_username
            row.updated_at = now
            db.commit()
            return _to_credential(row)

    def remove(self, mentor_uid: str) -> None:
        """Delete the current record. Removing a missing record is not an error."""
        with self._session_factory() as db:
            row = db.get(CalcomToken, mentor_uid)
            if row is not None:
                db.delete(row)
                db.commit()
