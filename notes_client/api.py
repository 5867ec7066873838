import logging

import requests

logger = logging.getLogger(__name__)


class NotesApiError(Exception):
    """A request to the notes API did not succeed."""

    def __init__(self, status_code, detail):
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail

    @property
    def not_found(self):
        return self.status_code == 404


# PUBLIC_INTERFACE
class NotesApi:
    """
    Thin wrapper over the HTTP API.

    ``session`` defaults to a ``requests.Session``; any object offering the same
    ``request(method, url, json=..., headers=...)`` call can be used instead.
    """

    def __init__(self, base_url="http://localhost:5000", session=None, timeout=10):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method, path, token, json=None):
        kwargs = {"headers": {"Authorization": f"Bearer {token}"}, "timeout": self.timeout}
        if json is not None:
            kwargs["json"] = json
        try:
            response = self.session.request(method, f"{self.base_url}{path}", **kwargs)
        except requests.RequestException as exc:
            raise NotesApiError(None, str(exc)) from exc
        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            # Proxies may answer with HTML or JSON that is not an object.
            detail = body.get("detail") if isinstance(body, dict) else response.text
            logger.debug("%s %s failed with %s", method, path, response.status_code)
            raise NotesApiError(response.status_code, detail)
        return response.json()

    def create_note(self, title, content, token):
        return self._request("POST", "/api/notes", token, json={"title": title, "content": content})

    def list_notes(self, token):
        return self._request("GET", "/api/notes", token)

    def get_note(self, note_id, token):
        return self._request("GET", f"/api/notes/{note_id}", token)

    def update_note(self, note_id, token, title=None, content=None):
        body = {}
        if title is not None:
            body["title"] = title
        if content is not None:
            body["content"] = content
        return self._request("PUT", f"/api/notes/{note_id}", token, json=body)

    def delete_note(self, note_id, token):
        return self._request("DELETE", f"/api/notes/{note_id}", token)

    def get_profile(self, token):
        return self._request("GET", "/api/user/profile", token)
