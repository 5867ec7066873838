import pytest

from conftest import make_token
from notes_client import NotesApi, NotesApiError, NoteStore


@pytest.fixture
def api(client):
    return NotesApi(base_url="http://testserver", session=client)


@pytest.fixture
def token(user_data):
    return make_token(**user_data)


def test_api_client_round_trip(api, token):
    note = api.create_note("Groceries", "<p>Milk, eggs</p>", token)
    assert api.list_notes(token) == [note]
    assert api.get_note(note["id"], token) == note

    updated = api.update_note(note["id"], token, content="<p>Bread</p>")
    assert updated["title"] == "Groceries"
    assert updated["content"] == "<p>Bread</p>"

    assert api.get_profile(token)["notesCount"] == 1
    assert api.delete_note(note["id"], token) == {"message": "Note deleted successfully"}

    with pytest.raises(NotesApiError) as excinfo:
        api.delete_note(note["id"], token)
    assert excinfo.value.not_found
    assert excinfo.value.detail == "Note not found."

def test_api_client_reports_auth_failure(api):
    with pytest.raises(NotesApiError) as excinfo:
        api.list_notes("garbage")
    assert excinfo.value.status_code == 401

def test_store_against_live_api(api, token, clock):
    store = NoteStore(api, lambda: token, sleep=lambda seconds: None)
    assert store.fetch() == []
    store.create("Shopping", "<p>Milk</p>")
    store.create("Work", "<p>Quarterly <b>report</b></p>")

    store.fetch()
    assert [n["title"] for n in store.visible()] == ["Work", "Shopping"]
    assert [n["title"] for n in store.visible(query="REPORT")] == ["Work"]

    work = store.visible(query="report")[0]
    assert store.delete(work["id"]) is True
    assert store.delete(work["id"]) is False
    assert [n["title"] for n in store.notes] == ["Shopping"]
