import logging
import os
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from homebook.db import Base, engine, get_db
from homebook.errors import StorageError, ValidationError
from homebook.form import NoteFormController
from homebook.schemas import FormDraftOut, Note, NoteCreate, NoteUpdate
from homebook.storage import SqlKeyValueStorage
from homebook.store import NoteStore

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Service health and readiness endpoints."},
    {"name": "Notes", "description": "List, create, edit and delete notes."},
    {"name": "Form", "description": "Seed the note form from a navigation payload."},
]

app = FastAPI(
    title="HomeBook API",
    description="Personal notes with title, content, date and importance, stored as one collection.",
    version="1.0.0",
    openapi_tags=openapi_tags,
)


def _parse_allowed_origins() -> List[str]:
    """
    Parse comma-separated ALLOWED_ORIGINS from env.

    Falls back to localhost dev origins when not set.
    """
    raw = (os.getenv("ALLOWED_ORIGINS") or "").strip()
    if not raw:
        return ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:8081"]

    origins = [o.strip() for o in raw.split(",")]
    return [o for o in origins if o]


def _parse_allowed_origin_regex() -> str | None:
    """Return ALLOWED_ORIGIN_REGEX if set; no regex matching otherwise."""
    raw = (os.getenv("ALLOWED_ORIGIN_REGEX") or "").strip()
    return raw or None


app.add_middleware(
    CORSMiddleware,
    allow_origins=_parse_allowed_origins(),
    allow_origin_regex=_parse_allowed_origin_regex(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """The draft was rejected; nothing was written."""
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )


@app.exception_handler(StorageError)
async def _storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Report storage failures generically; the cause was already logged by the storage layer."""
    logger.error("Aborted %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Storage unavailable"},
    )


@app.exception_handler(Exception)
async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return JSON for unexpected errors."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.on_event("startup")
def _startup_create_tables() -> None:
    """
    Create database tables if they do not exist.

    Startup does not fail when the database is unavailable; /health/db reports it.
    """
    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Database initialization failed during startup (tables not created).")


def get_store(db: Session = Depends(get_db)) -> NoteStore:
    """FastAPI dependency returning a NoteStore bound to the request's session."""
    return NoteStore(SqlKeyValueStorage(db))


def _apply_fields(form: NoteFormController, payload: NoteCreate | NoteUpdate) -> None:
    for field, value in payload.model_dump(exclude_none=True).items():
        form.update_field(field, value)


# PUBLIC_INTERFACE
@app.get("/", tags=["Health"], summary="Health check", description="Returns a simple health payload.")
def health_check() -> Dict[str, str]:
    """Health check endpoint used by monitoring."""
    return {"message": "Healthy"}


# PUBLIC_INTERFACE
@app.get(
    "/health/db",
    tags=["Health"],
    summary="Database health check",
    description=(
        "Verifies database connectivity by running a lightweight read-only query (SELECT 1). "
        "Returns status=up when the query succeeds, otherwise status=down with error details."
    ),
)
def health_check_db(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Database readiness endpoint used to verify DB connectivity."""
    try:
        value = db.execute(text("SELECT 1")).scalar_one()
        return {"status": "up", "query": "SELECT 1", "result": int(value)}
    except Exception as exc:
        return {"status": "down", "error": str(exc)}


# PUBLIC_INTERFACE
@app.get(
    "/notes",
    response_model=List[Note],
    tags=["Notes"],
    summary="List notes",
    description="Return all notes in the order they were created.",
)
def list_notes(store: NoteStore = Depends(get_store)) -> List[Note]:
    """List all notes."""
    return store.load_all()


# PUBLIC_INTERFACE
@app.post(
    "/notes",
    response_model=Note,
    status_code=status.HTTP_201_CREATED,
    tags=["Notes"],
    summary="Create note",
    description="Create a new note. Title and content must not be blank.",
)
def create_note(payload: NoteCreate, store: NoteStore = Depends(get_store)) -> Note:
    """Create a note."""
    form = NoteFormController()
    _apply_fields(form, payload)
    note = form.submit()
    store.upsert(note)
    return note


# PUBLIC_INTERFACE
@app.get(
    "/notes/{note_id}",
    response_model=Note,
    tags=["Notes"],
    summary="Get note",
    description="Fetch a single note by ID.",
)
def get_note(note_id: int, store: NoteStore = Depends(get_store)) -> Note:
    """Get a note by id."""
    note = store.get(note_id)
    if note is None:
        raise HTTPException(status_code=404, detail="Note not found")
    return note


# PUBLIC_INTERFACE
@app.put(
    "/notes/{note_id}",
    response_model=Note,
    tags=["Notes"],
    summary="Update note",
    description="Update a note by ID; omitted fields keep their stored values.",
)
def update_note(note_id: int, payload: NoteUpdate, store: NoteStore = Depends(get_store)) -> Note:
    """Update a note by id."""
    existing = store.get(note_id)
    if existing is None:
        raise HTTPException(status_code=404, detail="Note not found")

    form = NoteFormController(existing)
    _apply_fields(form, payload)
    note = form.submit()
    store.upsert(note)
    return note


# PUBLIC_INTERFACE
@app.delete(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["Notes"],
    summary="Delete note",
    description="Delete a note by ID. Deleting an unknown ID succeeds and changes nothing.",
)
def delete_note(note_id: int, store: NoteStore = Depends(get_store)) -> Response:
    """Delete a note by id."""
    store.delete_by_id(note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@app.get(
    "/form",
    response_model=FormDraftOut,
    tags=["Form"],
    summary="Seed form",
    description=(
        "Return the draft a form starts from. `note` is a JSON-encoded note handed over from "
        "another screen; when it is absent or malformed the form starts a new note."
    ),
)
def seed_form(note: str | None = None) -> FormDraftOut:
    """Seed a form from an optional navigation payload."""
    return FormDraftOut(**NoteFormController(note).draft())
