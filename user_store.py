"""
User Store: in-memory, insertion-ordered collection of user records.

Records are kept in a dict keyed by id (dicts preserve insertion order, so
listing returns users in creation order). One RLock guards every read and
write because FastAPI runs sync endpoints on a thread pool.
"""

import logging
import threading
import uuid
from typing import Annotated

from email_validator import SPECIAL_USE_DOMAIN_NAMES, EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, StringConstraints
from pydantic import ValidationError

logger = logging.getLogger(__name__)

Name = Annotated[str, StringConstraints(min_length=2, max_length=100)]


def _check_email(value: str) -> str:
    """Syntax-only address check; the submitted string is kept as is."""
    if "<" in value or ">" in value or any(c.isspace() for c in value):
        raise ValueError("value is not a valid email address")
    local, _, domain = value.rpartition("@")
    labels = domain.split(".")
    # Reserved TLDs (.local, .localhost, ...) are a delivery policy, not syntax.
    if labels[-1].lower() in SPECIAL_USE_DOMAIN_NAMES:
        labels[-1] = "test"
    try:
        validate_email(f"{local}@{'.'.join(labels)}", check_deliverability=False, test_environment=True)
    except EmailNotValidError as exc:
        raise ValueError(f"value is not a valid email address: {exc}") from exc
    return value


Email = Annotated[str, AfterValidator(_check_email)]


# ── Models ────────────────────────────────────────────────────────────────────

class User(BaseModel):
    id:    str
    name:  str
    email: str


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name:  Name
    email: Email


class UserUpdate(BaseModel):
    # Omitted fields stay unset; an explicit null is rejected like any bad value.
    model_config = ConfigDict(extra="ignore")

    name:  Name     = None
    email: Email    = None


# ── Errors ────────────────────────────────────────────────────────────────────

class UserStoreError(Exception):
    pass


class UserNotFound(UserStoreError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id!r} not found")
        self.user_id = user_id


class UserValidationError(UserStoreError):
    """Bad, missing or malformed user fields. ``fields`` maps field -> message."""

    def __init__(self, fields: dict[str, str]):
        super().__init__("Invalid " + ", ".join(sorted(fields)))
        self.fields = fields

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "UserValidationError":
        fields: dict[str, str] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "body"
            fields.setdefault(field, err["msg"])
        return cls(fields)


def _validate(model: type[BaseModel], data: dict) -> BaseModel:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise UserValidationError.from_pydantic(exc) from exc


# ── Store ─────────────────────────────────────────────────────────────────────

class UserStore:
    def __init__(self):
        self._users: dict[str, User] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._users

    def list(self) -> list[User]:
        """All users in creation order."""
        with self._lock:
            return list(self._users.values())

    def get(self, user_id: str) -> User:
        with self._lock:
            user = self._users.get(user_id)
        if user is None:
            raise UserNotFound(user_id)
        return user

    def create(self, **fields) -> User:
        """Validate ``name``/``email`` (both required) and append a new user."""
        data = _validate(UserCreate, fields)
        with self._lock:
            user_id = str(uuid.uuid4())
            while user_id in self._users:
                user_id = str(uuid.uuid4())
            user = User(id=user_id, name=data.name, email=data.email)
            self._users[user_id] = user
        logger.debug("Created user %s", user_id)
        return user

    def update(self, user_id: str, **changes) -> User:
        """Partial update: only the supplied fields are validated and changed."""
        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                raise UserNotFound(user_id)
            data = _validate(UserUpdate, changes)
            updated = current.model_copy(update=data.model_dump(exclude_unset=True))
            self._users[user_id] = updated
        logger.debug("Updated user %s fields=%s", user_id, sorted(data.model_fields_set))
        return updated

    def delete(self, user_id: str) -> None:
        with self._lock:
            if self._users.pop(user_id, None) is None:
                raise UserNotFound(user_id)
        logger.debug("Deleted user %s", user_id)

    def clear(self) -> None:
        with self._lock:
            self._users.clear()