"""Core domain models for the design request pipeline.

These models represent the business concepts and are independent of the
storage backends. Records travel between backends as plain dicts with
ISO8601 timestamp strings; to_record/from_record convert at the edge."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

# PocketBase accepts caller-supplied ids of 15 lowercase alphanumerics
RECORD_ID_LENGTH = 15
_ID_ALPHABET = string.ascii_lowercase + string.digits


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def new_record_id() -> str:
    """Generate an id usable verbatim by both the remote store and the local cache."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(RECORD_ID_LENGTH))


def format_timestamp(value: datetime) -> str:
    """Serialize a datetime as fixed-width UTC ISO8601 (lexically sortable)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp; naive values are taken as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).strip().replace(" ", "T").replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text else None


class RequestStatus(Enum):
    """Moderation status of a design request

    Note: values must match the remote `requests.status` select options.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MessageType(Enum):
    """Severity tag of a broadcast message"""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class RequestDraft:
    """Fields a client fills in before a request exists"""

    client_name: str
    email: str
    service_type: str
    description: str
    contact_info: str
    contact_handle: str = ""
    budget: str | None = None

    def to_request(self, request_id: str | None = None, now: datetime | None = None) -> DesignRequest:
        """Materialize the draft as a new pending request."""
        created = now or utcnow()
        return DesignRequest(
            id=request_id or new_record_id(),
            client_name=self.client_name.strip(),
            email=self.email.strip(),
            service_type=self.service_type.strip(),
            description=self.description.strip(),
            contact_info=self.contact_info.strip(),
            contact_handle=self.contact_handle.strip(),
            budget=_optional_text(self.budget.strip() if self.budget else None),
            status=RequestStatus.PENDING,
            created_at=created,
            updated_at=created,
        )


@dataclass
class DesignRequest:
    """A client's submitted job awaiting admin review"""

    id: str
    client_name: str
    email: str
    service_type: str
    description: str
    contact_info: str
    contact_handle: str = ""
    budget: str | None = None
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None
    admin_notes: str | None = None

    def with_status(self, status: RequestStatus, notes: str | None, now: datetime) -> DesignRequest:
        """Return a copy with a new status; notes only replace existing ones when non-empty."""
        return replace(
            self,
            status=status,
            updated_at=now,
            admin_notes=notes if notes else self.admin_notes,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "client_name": self.client_name,
            "email": self.email,
            "contact_handle": self.contact_handle,
            "service_type": self.service_type,
            "description": self.description,
            "budget": self.budget,
            "contact_info": self.contact_info,
            "status": self.status.value,
            "created_at": format_timestamp(self.created_at),
            "updated_at": format_timestamp(self.updated_at) if self.updated_at else None,
            "admin_notes": self.admin_notes,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> DesignRequest:
        created_at = parse_timestamp(data.get("created_at")) or utcnow()
        return cls(
            id=str(data["id"]),
            client_name=data.get("client_name") or "",
            email=data.get("email") or "",
            contact_handle=data.get("contact_handle") or "",
            service_type=data.get("service_type") or "",
            description=data.get("description") or "",
            budget=_optional_text(data.get("budget")),
            contact_info=data.get("contact_info") or "",
            status=RequestStatus(data.get("status") or RequestStatus.PENDING.value),
            created_at=created_at,
            updated_at=parse_timestamp(data.get("updated_at")),
            admin_notes=_optional_text(data.get("admin_notes")),
        )


@dataclass
class BroadcastMessage:
    """A system-wide, optionally time-limited announcement"""

    id: str
    message: str
    type: MessageType = MessageType.INFO
    title: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime | None = None
    is_active: bool = True

    def is_displayable(self, now: datetime) -> bool:
        """Active and not yet expired."""
        if not self.is_active:
            return False
        return self.expires_at is None or self.expires_at > now

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "created_at": format_timestamp(self.created_at),
            "expires_at": format_timestamp(self.expires_at) if self.expires_at else None,
            "is_active": self.is_active,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> BroadcastMessage:
        return cls(
            id=str(data["id"]),
            title=_optional_text(data.get("title")),
            message=data.get("message") or "",
            type=MessageType(data.get("type") or MessageType.INFO.value),
            created_at=parse_timestamp(data.get("created_at")) or utcnow(),
            expires_at=parse_timestamp(data.get("expires_at")),
            is_active=bool(data.get("is_active", True)),
        )


@dataclass(frozen=True)
class SubmissionIdentity:
    """Anti-spam identity: a submitter is known by email and contact handle"""

    email: str
    contact_handle: str = ""

    @classmethod
    def of(cls, email: str, contact_handle: str = "") -> SubmissionIdentity:
        return cls(email=email.strip().lower(), contact_handle=(contact_handle or "").strip().lower())

    @classmethod
    def from_draft(cls, draft: RequestDraft) -> SubmissionIdentity:
        return cls.of(draft.email, draft.contact_handle)


@dataclass
class SubmissionRecord:
    """Anti-spam ledger entry; never shown to end users"""

    email: str
    contact_handle: str
    submitted_at: datetime
    id: str = field(default_factory=new_record_id)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "contact_handle": self.contact_handle,
            "submitted_at": format_timestamp(self.submitted_at),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> SubmissionRecord:
        return cls(
            id=str(data.get("id") or new_record_id()),
            email=data.get("email") or "",
            contact_handle=data.get("contact_handle") or "",
            submitted_at=parse_timestamp(data.get("submitted_at")) or utcnow(),
        )


@dataclass(frozen=True)
class AdminSessionState:
    """Time-boxed admin authentication, persisted in the local cache.

    Validity is always recomputed against the clock; the stored flag alone
    never grants access.
    """

    is_authenticated: bool
    login_time: datetime
    expires_at: datetime

    @classmethod
    def start(cls, now: datetime, duration: timedelta) -> AdminSessionState:
        return cls(is_authenticated=True, login_time=now, expires_at=now + duration)

    def is_valid(self, now: datetime) -> bool:
        return self.is_authenticated and now < self.expires_at

    def extended(self, now: datetime, duration: timedelta) -> AdminSessionState:
        return replace(self, expires_at=now + duration)

    def to_record(self) -> dict[str, Any]:
        return {
            "is_authenticated": self.is_authenticated,
            "login_time": format_timestamp(self.login_time),
            "expires_at": format_timestamp(self.expires_at),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> AdminSessionState:
        login_time = parse_timestamp(data.get("login_time"))
        expires_at = parse_timestamp(data.get("expires_at"))
        if login_time is None or expires_at is None:
            raise ValueError("admin session record is missing timestamps")
        return cls(
            is_authenticated=bool(data.get("is_authenticated")),
            login_time=login_time,
            expires_at=expires_at,
        )


@dataclass
class OrderStatus:
    """Whether the studio currently accepts new requests"""

    accepting_orders: bool
    message: str | None = None
    updated_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_record_id)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "accepting_orders": self.accepting_orders,
            "message": self.message,
            "updated_at": format_timestamp(self.updated_at),
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> OrderStatus:
        return cls(
            id=str(data.get("id") or new_record_id()),
            accepting_orders=bool(data.get("accepting_orders", True)),
            message=_optional_text(data.get("message")),
            updated_at=parse_timestamp(data.get("updated_at")) or utcnow(),
        )
