import logging
from typing import Optional

import pydantic

from app.core.errors import AuthenticationError, StorageCorruption
from app.schemas.claim import Session, UserRole
from app.storage.adapter import SESSION_KEY, Storage

logger = logging.getLogger(__name__)

ADMIN_DISPLAY_NAME = "Finance Operations"


def authenticate(role: UserRole, credential: str, admin_token: str) -> Session:
    """
    Employees are whoever they type; no verification happens.
    Admins must present the shared access token, a stand-in for a real identity provider.
    """
    if role == "employee":
        name = (credential or "").strip()
        if not name:
            raise AuthenticationError("Full identification required.")
        return Session(name=name, role="employee")

    if role == "admin":
        if credential != admin_token:
            raise AuthenticationError("Unauthorized administrative credential.")
        return Session(name=ADMIN_DISPLAY_NAME, role="admin")

    raise AuthenticationError(f"Unknown role '{role}'.")


class SessionGate:
    """Holds the single active session and mirrors it to storage."""

    def __init__(self, storage: Storage, admin_token: str):
        self.storage = storage
        self.admin_token = admin_token
        self.current: Optional[Session] = self._load()

    def _load(self) -> Optional[Session]:
        raw = self.storage.load(SESSION_KEY)
        if raw is None:
            return None
        try:
            return Session.model_validate(raw)
        except pydantic.ValidationError as e:
            logger.warning(str(StorageCorruption.for_key(SESSION_KEY, e)))
            return None

    def login(self, role: UserRole, credential: str) -> Session:
        try:
            session = authenticate(role, credential, self.admin_token)
        except AuthenticationError as e:
            logger.info(f"Refused {role} login: {e.message}")
            raise
        self.current = session
        self.storage.save(SESSION_KEY, session.model_dump())
        logger.info(f"Session started for '{session.name}' ({session.role})")
        return session

    def logout(self) -> Optional[Session]:
        ended = self.current
        self.current = None
        self.storage.remove(SESSION_KEY)
        if ended:
            logger.info(f"Session ended for '{ended.name}'")
        return ended
