"""Schema definitions for alert records and delivery payloads.

Alerts are captured runtime events (unhandled errors, API failures,
performance regressions) stored as one JSON collection. Each record carries
an optional ``ai_review`` written only by the background reviewer, and an
append-only list of notes.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

AlertSeverity = Literal["critical", "high", "medium", "low"]

VALID_SEVERITIES: frozenset[str] = frozenset({
    "critical",
    "high",
    "medium",
    "low",
})

AlertStatus = Literal["open", "investigating", "resolved", "dismissed"]

VALID_STATUSES: frozenset[str] = frozenset({
    "open",
    "investigating",
    "resolved",
    "dismissed",
})

ReviewStatus = Literal["pending", "completed", "failed"]

VALID_REVIEW_STATUSES: frozenset[str] = frozenset({
    "pending",
    "completed",
    "failed",
})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class AlertNote:
    """A single entry in an alert's append-only notes list."""

    text: str
    author: str = "system"
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "author": self.author,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> "AlertNote":
        # Older collections stored notes as bare strings
        if isinstance(data, str):
            return cls(text=data)
        return cls(
            text=data["text"],
            author=data.get("author", "system"),
            timestamp=_parse_datetime(data.get("timestamp")) or _utcnow(),
        )


@dataclass
class AIReview:
    """Outcome of the background AI diagnostic pass for one alert.

    Attributes:
        status: pending while a call is in flight, then completed or failed.
        provider: Label of the AI backend that produced the summary.
        summary: Diagnostic text returned by the provider.
        last_attempt: When the most recent review attempt started.
        error: Failure description when status is failed.
        attempts: Number of review attempts made so far.
    """

    status: str
    provider: str | None = None
    summary: str | None = None
    last_attempt: datetime | None = None
    error: str | None = None
    attempts: int = 0

    def __post_init__(self) -> None:
        if self.status not in VALID_REVIEW_STATUSES:
            raise ValueError(
                f"Invalid review status {self.status!r}. "
                f"Must be one of: {sorted(VALID_REVIEW_STATUSES)}"
            )

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "provider": self.provider,
            "summary": self.summary,
            "last_attempt": _isoformat(self.last_attempt),
            "error": self.error,
            "attempts": self.attempts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AIReview":
        return cls(
            status=data["status"],
            provider=data.get("provider"),
            summary=data.get("summary"),
            last_attempt=_parse_datetime(data.get("last_attempt")),
            error=data.get("error"),
            attempts=data.get("attempts", 0),
        )


@dataclass
class AlertPayload:
    """The body handed to a notification channel for one alert."""

    alert_type: str
    severity: str
    message: str
    alert_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "alert_type": self.alert_type,
            "severity": self.severity,
            "message": self.message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AlertPayload":
        return cls(
            alert_id=data.get("alert_id"),
            alert_type=data["alert_type"],
            severity=data["severity"],
            message=data["message"],
            details=data.get("details") or {},
            timestamp=_parse_datetime(data.get("timestamp")) or _utcnow(),
        )


@dataclass
class FailedDispatch:
    """A payload whose last delivery attempt did not succeed."""

    payload: AlertPayload
    failure_reason: str
    failure_time: datetime = field(default_factory=_utcnow)
    dispatch_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> dict[str, Any]:
        data = self.payload.to_dict()
        data.update({
            "dispatch_id": self.dispatch_id,
            "failure_reason": self.failure_reason,
            "failure_time": self.failure_time.isoformat(),
        })
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FailedDispatch":
        return cls(
            payload=AlertPayload.from_dict(data),
            failure_reason=data.get("failure_reason") or "unknown",
            failure_time=_parse_datetime(data.get("failure_time")) or _utcnow(),
            dispatch_id=data.get("dispatch_id") or str(uuid.uuid4()),
        )


@dataclass
class Alert:
    """A stored alert record.

    Attributes:
        type: Event category (e.g. "API Failure", "JavaScript Error").
        severity: Urgency level (critical, high, medium, low).
        title: Short human-readable summary.
        message: Detailed description of the event.
        id: UUID4 identifier.
        details: Context such as url, user_agent, stack_trace, user_id.
        status: Display-facing triage status, driven by a human reviewer.
        notes: Append-only list of notes.
        created_at: When the event was captured.
        updated_at: Last modification time.
        ai_review: Background reviewer outcome, if any.
    """

    type: str
    severity: str
    title: str
    message: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    details: dict[str, Any] = field(default_factory=dict)
    status: str = "open"
    notes: list[AlertNote] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
    ai_review: AIReview | None = None

    def __post_init__(self) -> None:
        if self.severity not in VALID_SEVERITIES:
            raise ValueError(
                f"Invalid severity {self.severity!r}. "
                f"Must be one of: {sorted(VALID_SEVERITIES)}"
            )
        if self.status not in VALID_STATUSES:
            raise ValueError(
                f"Invalid status {self.status!r}. "
                f"Must be one of: {sorted(VALID_STATUSES)}"
            )

    def add_note(self, text: str, author: str = "system") -> AlertNote:
        """Append a note and bump ``updated_at``."""
        note = AlertNote(text=text, author=author)
        self.notes.append(note)
        self.updated_at = note.timestamp
        return note

    def to_payload(self) -> AlertPayload:
        """Build the notification payload for this alert."""
        return AlertPayload(
            alert_id=self.id,
            alert_type=self.type,
            severity=self.severity,
            message=self.message,
            details=dict(self.details),
            timestamp=self.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity,
            "title": self.title,
            "message": self.message,
            "details": self.details,
            "status": self.status,
            "notes": [n.to_dict() for n in self.notes],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "ai_review": self.ai_review.to_dict() if self.ai_review else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Alert":
        """Create an Alert from a stored dictionary.

        Args:
            data: Dictionary with alert fields.

        Returns:
            Alert instance.
        """
        created_at = _parse_datetime(data.get("created_at")) or _utcnow()
        review = data.get("ai_review")

        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            type=data["type"],
            severity=data["severity"],
            title=data.get("title", data["type"]),
            message=data["message"],
            details=data.get("details") or {},
            status=data.get("status", "open"),
            notes=[AlertNote.from_dict(n) for n in data.get("notes") or []],
            created_at=created_at,
            updated_at=_parse_datetime(data.get("updated_at")) or created_at,
            ai_review=AIReview.from_dict(review) if review else None,
        )
