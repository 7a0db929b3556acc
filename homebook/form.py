import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from pydantic import ValidationError as PydanticValidationError

from homebook.errors import MalformedNavigationPayload, ValidationError
from homebook.schemas import FormMode, Importance, Note

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "content", "date", "importance")

_id_lock = threading.Lock()
_last_id = 0


# PUBLIC_INTERFACE
def mint_note_id() -> int:
    """Return the current time in milliseconds, strictly increasing within this process."""
    global _last_id
    with _id_lock:
        _last_id = max(int(time.time() * 1000), _last_id + 1)
        return _last_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def parse_navigation_payload(payload: Note | str | Mapping[str, Any] | None) -> Note | None:
    """
    Turn a note handed between surfaces into a Note.

    Returns None when there is no payload. Raises MalformedNavigationPayload when the
    payload is present but is not a well-formed note.
    """
    if payload is None or isinstance(payload, Note):
        return payload
    try:
        if isinstance(payload, (str, bytes)):
            if not payload.strip():
                return None
            return Note.model_validate_json(payload)
        return Note.model_validate(payload)
    except PydanticValidationError as exc:
        raise MalformedNavigationPayload(str(exc)) from exc


class NoteFormController:
    """
    Draft of one note being composed (create mode) or edited (edit mode).

    The controller validates and builds the Note but never writes it; the caller hands
    the result of submit() to NoteStore.upsert.
    """

    def __init__(
        self,
        note: Note | str | Mapping[str, Any] | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], int] = mint_note_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._created_at = clock()
        self.seed(note)

    @property
    def mode(self) -> FormMode:
        return FormMode.CREATE if self.editing_id is None else FormMode.EDIT

    # PUBLIC_INTERFACE
    def seed(self, note: Note | str | Mapping[str, Any] | None) -> None:
        """
        Load the draft from an existing note (edit mode) or reset it (create mode).

        A malformed payload falls back to create mode instead of raising, so a broken
        hand-off never prevents writing a new note.
        """
        try:
            parsed = parse_navigation_payload(note)
        except MalformedNavigationPayload as exc:
            logger.warning("Ignoring malformed note payload, starting a new note: %s", exc)
            parsed = None

        if parsed is not None and parsed.id:
            self.title = parsed.title
            self.content = parsed.content
            self.date = parsed.date
            self.importance = parsed.importance
            self.editing_id = parsed.id
            return

        self.title = ""
        self.content = ""
        self.date = self._created_at
        self.importance = Importance.LOW
        self.editing_id = None

    # PUBLIC_INTERFACE
    def update_field(self, field: str, value: Any) -> None:
        """Set one draft field. Values are checked at submit time."""
        if field not in EDITABLE_FIELDS:
            raise KeyError(field)
        setattr(self, field, value)

    # PUBLIC_INTERFACE
    def submit(self) -> Note:
        """
        Build the note to persist.

        Title and content are trimmed. Raises ValidationError when either is empty, or
        when the date or importance cannot be read.
        """
        if not isinstance(self.title, str) or not isinstance(self.content, str):
            raise ValidationError("empty title or content")
        title = self.title.strip()
        content = self.content.strip()
        if not title or not content:
            raise ValidationError("empty title or content")

        note_id = self.editing_id if self.editing_id is not None else self._id_factory()
        try:
            return Note(
                id=note_id,
                title=title,
                content=content,
                date=self.date,
                importance=self.importance,
            )
        except PydanticValidationError as exc:
            raise ValidationError(f"invalid date or importance: {exc.error_count()} error(s)") from exc

    def draft(self) -> dict:
        """Current draft fields, keyed like FormDraftOut."""
        return {
            "mode": self.mode,
            "editing_id": self.editing_id,
            "title": self.title,
            "content": self.content,
            "date": self.date,
            "importance": self.importance,
        }
