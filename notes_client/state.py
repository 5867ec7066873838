"""
Client-side note state: the fetched notes plus search, sort, and session flags.
"""
import logging
import time
from datetime import datetime

from notes_client.api import NotesApiError
from notes_client.text import is_blank, plain_text

logger = logging.getLogger(__name__)

SORT_BY_DATE = "date"
SORT_BY_TITLE = "title"
SORT_BY_LENGTH = "length"


class TokenUnavailableError(Exception):
    """The identity provider has no session token (yet)."""


# PUBLIC_INTERFACE
class SessionState:
    """
    Per-session key/value store with namespaced keys.

    Create one when a user signs in and call ``clear()`` when they sign out.
    """

    def __init__(self, namespace="notes"):
        self.namespace = namespace
        self._values = {}

    def _key(self, key):
        return f"{self.namespace}:{key}"

    def get(self, key, default=None):
        return self._values.get(self._key(key), default)

    def set(self, key, value):
        self._values[self._key(key)] = value

    def once(self, key):
        """True the first time it is called for ``key`` in this session."""
        if self.get(key):
            return False
        self.set(key, True)
        return True

    def clear(self):
        self._values.clear()


def _created_at(note):
    return datetime.fromisoformat(note["createdAt"].replace("Z", "+00:00"))


_SORT_KEYS = {
    SORT_BY_DATE: _created_at,
    SORT_BY_TITLE: lambda note: note["title"].casefold(),
    SORT_BY_LENGTH: lambda note: len(plain_text(note["content"])),
}


def matches(note, query):
    """Case-insensitive substring match over the title and the content's text."""
    query = query.strip().casefold()
    if not query:
        return True
    return query in note["title"].casefold() or query in plain_text(note["content"]).casefold()


def timestamp_title(now=None):
    """Title used for notes saved without one, e.g. ``Oct 19, 2026, 01:51 PM``."""
    return (now or datetime.now()).strftime("%b %d, %Y, %I:%M %p")


# PUBLIC_INTERFACE
class NoteStore:
    """In-memory list of the signed-in user's notes, kept in step with the API."""

    TOKEN_RETRY_DELAY = 1.0
    ERROR_RETRY_DELAY = 2.0

    def __init__(self, api, get_token, session_state=None, sleep=time.sleep):
        self.api = api
        self.get_token = get_token
        self.session_state = session_state or SessionState()
        self.sleep = sleep
        self.notes = []

    def _token(self):
        token = self.get_token()
        if not token:
            raise TokenUnavailableError("Authentication required")
        return token

    def fetch(self, retries=3):
        """
        Loads the notes from the API.

        Right after sign-in the identity provider may not have a token ready,
        so missing tokens and failed requests are retried ``retries`` times
        with a fixed delay before the error is raised.
        """
        while True:
            try:
                self.notes = list(self.api.list_notes(self._token()))
                if self.session_state.once("notes_loaded"):
                    logger.info("Notes loaded successfully")
                return self.notes
            except TokenUnavailableError:
                if retries <= 0:
                    raise
                delay = self.TOKEN_RETRY_DELAY
            except NotesApiError as exc:
                if retries <= 0:
                    logger.error("Failed to fetch notes: %s", exc)
                    raise
                delay = self.ERROR_RETRY_DELAY
            retries -= 1
            self.sleep(delay)

    def visible(self, query="", sort_by=SORT_BY_DATE, order="desc"):
        """The notes matching ``query``, sorted by ``sort_by`` in ``order``."""
        if sort_by not in _SORT_KEYS:
            raise ValueError(f"unknown sort key: {sort_by}")
        if order not in ("asc", "desc"):
            raise ValueError(f"unknown sort order: {order}")
        found = [note for note in self.notes if matches(note, query)]
        return sorted(found, key=_SORT_KEYS[sort_by], reverse=order == "desc")

    def create(self, title, content, now=None):
        """Creates a note; a blank title is replaced by the current date and time."""
        if is_blank(content):
            raise ValueError("Please add some content to your note")
        title = title.strip() or timestamp_title(now)
        note = self.api.create_note(title, content.strip(), self._token())
        self.notes.insert(0, note)
        return note

    def update(self, note_id, title=None, content=None):
        if content is not None and is_blank(content):
            raise ValueError("Please fill in both title and content")
        note = self.api.update_note(note_id, self._token(), title=title, content=content)
        self.notes = [note if n["id"] == note_id else n for n in self.notes]
        return note

    def delete(self, note_id):
        """
        Deletes a note. Returns False when the server no longer had it, in
        which case it is dropped from the local list all the same.
        """
        try:
            self.api.delete_note(note_id, self._token())
            deleted = True
        except NotesApiError as exc:
            if not exc.not_found:
                raise
            deleted = False
        self.notes = [n for n in self.notes if n["id"] != note_id]
        return deleted

    def welcome(self):
        """True once per session, for the dashboard's welcome notice."""
        return self.session_state.once("welcome")

    def sign_out(self):
        self.session_state.clear()
        self.notes = []
