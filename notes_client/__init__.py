"""Python client for the personal notes API."""
from notes_client.api import NotesApi, NotesApiError
from notes_client.state import NoteStore, SessionState, TokenUnavailableError

__all__ = ["NotesApi", "NotesApiError", "NoteStore", "SessionState", "TokenUnavailableError"]
