"""Document record shared by every store backend."""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

ALL_OWNERS = 0

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def next_timestamp(previous: datetime) -> datetime:
    """Return a timestamp strictly later than ``previous``.

    Two mutations landing on the same clock reading would otherwise share
    an ``updated_at`` value.
    """
    now = utcnow()
    return now if now > previous else previous + _TICK


@dataclass(frozen=True)
class Document:
    """A scanned document tying a file name to its extracted and edited text.

    Instances are immutable snapshots; stores hand out new copies on every
    mutation.
    """

    id: int
    file_name: str
    created_at: datetime
    updated_at: datetime
    original_text: str | None = None
    edited_text: str | None = None
    owner_id: int | None = None

    @property
    def display_text(self) -> str:
        """Text shown to the user: edits win over the OCR result."""
        if self.edited_text is not None:
            return self.edited_text
        if self.original_text is not None:
            return self.original_text
        return ""

    def with_edited_text(self, edited_text: str) -> "Document":
        return replace(
            self,
            edited_text=edited_text,
            updated_at=next_timestamp(self.updated_at),
        )

    def with_original_text(self, original_text: str) -> "Document":
        return replace(
            self,
            original_text=original_text,
            updated_at=next_timestamp(self.updated_at),
        )
