import logging
from typing import List

from homebook.errors import CorruptDataError
from homebook.schemas import Note, deserialize_collection, serialize_collection

logger = logging.getLogger(__name__)

NOTES_KEY = "notes"


class NoteStore:
    """
    Sole reader and writer of the note collection.

    The whole collection lives under one key and is always transferred whole. There is
    no cache: every operation reads storage first. Operations are load, mutate, save
    with no lock, so two concurrent writers race and the later save wins.

    `storage` is any object with get_item(key) and set_item(key, value); storage
    failures surface as StorageError and are never retried here.
    """

    def __init__(self, storage, key: str = NOTES_KEY) -> None:
        self._storage = storage
        self._key = key

    # PUBLIC_INTERFACE
    def load_all(self) -> List[Note]:
        """
        Return every stored note in insertion order.

        A missing key reads as an empty collection. A corrupt payload also reads as
        empty and is logged; the next save overwrites it, so its notes are lost.
        """
        try:
            return self._read()
        except CorruptDataError as exc:
            logger.warning("Discarding unreadable note collection key=%s: %s", self._key, exc)
            return []

    # PUBLIC_INTERFACE
    def save_all(self, collection: List[Note]) -> None:
        """Replace the stored collection with `collection`."""
        raw = serialize_collection(collection)
        logger.info("Saving notes count=%s payload_len=%s", len(collection), len(raw))
        self._storage.set_item(self._key, raw)

    # PUBLIC_INTERFACE
    def get(self, note_id: int) -> Note | None:
        """Return the first note with `note_id`, or None."""
        return next((n for n in self.load_all() if n.id == note_id), None)

    # PUBLIC_INTERFACE
    def upsert(self, note: Note) -> List[Note]:
        """Replace the first note sharing `note.id`, or append `note`; save and return the result."""
        notes = self.load_all()
        for index, existing in enumerate(notes):
            if existing.id == note.id:
                notes[index] = note
                logger.info("Updating note id=%s", note.id)
                break
        else:
            notes.append(note)
            logger.info("Creating note id=%s", note.id)
        self.save_all(notes)
        return notes

    # PUBLIC_INTERFACE
    def delete_by_id(self, note_id: int) -> List[Note]:
        """Remove every note with `note_id`; an unknown id leaves the collection as it was."""
        notes = self.load_all()
        remaining = [n for n in notes if n.id != note_id]
        logger.info("Deleting note id=%s removed=%s", note_id, len(notes) - len(remaining))
        self.save_all(remaining)
        return remaining

    def _read(self) -> List[Note]:
        raw = self._storage.get_item(self._key)
        if raw is None:
            return []
        return deserialize_collection(raw)
