import logging
from contextlib import asynccontextmanager
from typing import List

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notes_backend.api.config import get_settings, configure_logging
from notes_backend.api.deps import get_current_user_id, get_db
from notes_backend.api.errors import NotFoundError, register_exception_handlers
from notes_backend.api.schemas import (
    HealthOut,
    MessageOut,
    NoteCreate,
    NoteOut,
    NoteUpdate,
    ProfileOut,
)
from notes_database.init_db import init_db
from notes_database.models import Note, utcnow
from notes_database.users import count_notes, get_user

logger = logging.getLogger(__name__)

notes_router = APIRouter(prefix="/api/notes", tags=["Notes"])
user_router = APIRouter(prefix="/api/user", tags=["User"])


def get_owned_note(db, note_id: str, user_id: str) -> Note:
    """Loads a note of the given user; other users' notes look nonexistent."""
    note = db.query(Note).filter(Note.id == note_id, Note.user_id == user_id).first()
    if not note:
        raise NotFoundError()
    return note


#####################
# NOTES ENDPOINTS
#####################

# PUBLIC_INTERFACE
@notes_router.post("", response_model=NoteOut, status_code=201, summary="Create a new note")
def create_note(note: NoteCreate, db=Depends(get_db), user_id: str = Depends(get_current_user_id)):
    """
    Create a new note for the authenticated user.
    """
    now = utcnow()
    note_obj = Note(
        title=note.title,
        content=note.content,
        user_id=user_id,
        created_at=now,
        updated_at=now,
    )
    db.add(note_obj)
    db.commit()
    db.refresh(note_obj)
    logger.info("User %s created note %s", user_id, note_obj.id)
    return note_obj

# PUBLIC_INTERFACE
@notes_router.get("", response_model=List[NoteOut], summary="List all user notes")
def list_notes(db=Depends(get_db), user_id: str = Depends(get_current_user_id)):
    """
    Get all notes of the authenticated user, newest first.
    """
    return (
        db.query(Note)
        .filter(Note.user_id == user_id)
        .order_by(Note.created_at.desc(), Note.id)
        .all()
    )

# PUBLIC_INTERFACE
@notes_router.get("/{note_id}", response_model=NoteOut, summary="Get a single note")
def get_note(note_id: str, db=Depends(get_db), user_id: str = Depends(get_current_user_id)):
    """
    Retrieve a single note belonging to the authenticated user.
    """
    return get_owned_note(db, note_id, user_id)

# PUBLIC_INTERFACE
@notes_router.put("/{note_id}", response_model=NoteOut, summary="Update a note")
def update_note(
    note_id: str,
    note_update: NoteUpdate,
    db=Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """
    Update a note belonging to the authenticated user.
    Fields left out of the body keep their stored values.
    """
    note = get_owned_note(db, note_id, user_id)
    if note_update.title is not None:
        note.title = note_update.title
    if note_update.content is not None:
        note.content = note_update.content
    note.updated_at = utcnow()
    db.commit()
    db.refresh(note)
    logger.info("User %s updated note %s", user_id, note.id)
    return note

# PUBLIC_INTERFACE
@notes_router.delete("/{note_id}", response_model=MessageOut, summary="Delete a note")
def delete_note(note_id: str, db=Depends(get_db), user_id: str = Depends(get_current_user_id)):
    """
    Permanently delete a note belonging to the authenticated user.
    """
    note = get_owned_note(db, note_id, user_id)
    db.delete(note)
    db.commit()
    logger.info("User %s deleted note %s", user_id, note_id)
    return {"message": "Note deleted successfully"}


#####################
# USER ENDPOINTS
#####################

# PUBLIC_INTERFACE
@user_router.get("/profile", response_model=ProfileOut, summary="Get current user profile")
def get_profile(db=Depends(get_db), user_id: str = Depends(get_current_user_id)):
    """
    Get details about the current authed user, including how many notes they own.
    """
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found.")
    return ProfileOut(
        id=user.id,
        email=user.email,
        name=user.name,
        first_name=user.first_name,
        last_name=user.last_name,
        image_url=user.image_url,
        provider=user.provider,
        last_signed_in=user.last_signed_in,
        notes_count=count_notes(db, user.id),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# PUBLIC_INTERFACE
def create_app(settings=None) -> FastAPI:
    """Builds the API application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Personal Notes Backend API",
        description="Backend API for per-user rich-text notes, authenticated by an external identity provider.",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Notes", "description": "Create, update, view and delete notes"},
            {"name": "User", "description": "Profile of the signed-in user"},
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Health Check
    @app.get("/health", response_model=HealthOut, summary="Health Check", tags=["General"])
    def health_check():
        """Liveness probe."""
        return {"status": "ok", "timestamp": utcnow()}

    app.include_router(notes_router)
    app.include_router(user_router)
    return app


app = create_app()


# PUBLIC_INTERFACE
def run():
    """Serves the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
