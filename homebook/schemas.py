import enum
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from homebook.errors import CorruptDataError


class Importance(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class FormMode(str, enum.Enum):
    CREATE = "create"
    EDIT = "edit"


class Note(BaseModel):
    """A persisted note. This is also the storage and navigation wire format."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Millisecond timestamp minted when the note was created.")
    title: str = Field(..., description="Note title.")
    content: str = Field(..., description="Note body text.")
    date: datetime = Field(..., description="Date attached to the note (ISO-8601 on the wire).")
    importance: Importance = Field(Importance.LOW, description="One of high, medium, low.")

    @field_validator("id", mode="before")
    @classmethod
    def _reject_bool_id(cls, value):
        if isinstance(value, bool):
            raise ValueError("id must be an integer")
        return value

    @field_validator("importance", mode="before")
    @classmethod
    def _default_importance(cls, value):
        return Importance.LOW if value is None else value


_collection_adapter = TypeAdapter(List[Note])


# PUBLIC_INTERFACE
def serialize_collection(collection: List[Note]) -> str:
    """Serialize a note collection into the JSON array stored under the notes key."""
    return _collection_adapter.dump_json(list(collection)).decode("utf-8")


# PUBLIC_INTERFACE
def deserialize_collection(raw: str) -> List[Note]:
    """
    Parse a stored JSON array back into notes, preserving order.

    Raises CorruptDataError when the payload is not valid JSON or any entry does not
    match the note shape.
    """
    try:
        return _collection_adapter.validate_json(raw)
    except PydanticValidationError as exc:
        raise CorruptDataError(f"stored notes could not be parsed: {exc.error_count()} error(s)") from exc


class NoteCreate(BaseModel):
    """Schema for creating a note. Emptiness is checked by the form controller."""
    title: str = Field(..., description="Short note title.")
    content: str = Field(..., description="Full note content.")
    date: datetime | None = Field(None, description="Note date; defaults to now.")
    importance: Importance | None = Field(None, description="Defaults to low.")


class NoteUpdate(BaseModel):
    """Schema for updating a note (partial update)."""
    title: str | None = Field(None, description="Updated title.")
    content: str | None = Field(None, description="Updated content.")
    date: datetime | None = Field(None, description="Updated date.")
    importance: Importance | None = Field(None, description="Updated importance.")


class FormDraftOut(BaseModel):
    """Schema describing a seeded form: its mode and the pre-filled draft fields."""
    mode: FormMode
    editing_id: int | None = Field(None, description="Id of the note being edited, if any.")
    title: str
    content: str
    date: datetime
    importance: Importance
