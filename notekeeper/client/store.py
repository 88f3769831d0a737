"""
Remote Store Client.

Create, read, update, delete and list calls for note documents against the
store API (/api/v1/notes). Responses are unwrapped from the ApiResponse
envelope into frozen Note models.

No caching and no retries: every call goes over the network and every
failure is raised as RemoteStoreError.
"""

from typing import Any

import httpx
import pydantic

from notekeeper.backend.core.logging import get_logger
from notekeeper.client.api import APIClient
from notekeeper.client.errors import RemoteStoreError
from notekeeper.client.models import Note

logger = get_logger(__name__)

NOTES_PATH = "/api/v1/notes"
# At most the endpoint's own limit ceiling (1000)
LIST_PAGE_SIZE = 500


class RemoteStoreClient:
    """
    Client for the note store API.

    Usage:
        store = RemoteStoreClient(APIClient(frontend_id="tui"))
        note = await store.create("Untitled Note")
        notes = await store.list()
    """

    def __init__(self, api: APIClient, path: str = NOTES_PATH) -> None:
        self._api = api
        self._path = path.rstrip("/")

    async def create(self, title: str, content: str = "") -> Note:
        """Insert a note. The store assigns id and timestamps."""
        response = await self._send("POST", self._path, json={"title": title, "content": content})
        return self._to_note(self._unwrap(response, expected=201))

    async def get(self, note_id: str) -> Note:
        """Fetch a single note."""
        response = await self._send("GET", f"{self._path}/{note_id}")
        return self._to_note(self._unwrap(response))

    async def update(self, note_id: str, **fields: Any) -> Note:
        """
        Persist changed fields of a note.

        Args:
            note_id: Note to update
            **fields: title and/or content; None values are not sent

        Returns:
            The note with the store's refreshed updated_at
        """
        payload = {key: value for key, value in fields.items() if value is not None}
        response = await self._send("PATCH", f"{self._path}/{note_id}", json=payload)
        return self._to_note(self._unwrap(response))

    async def delete(self, note_id: str) -> None:
        """Delete a note."""
        response = await self._send("DELETE", f"{self._path}/{note_id}")
        self._unwrap(response, expected=204)

    async def list(self, page_size: int = LIST_PAGE_SIZE) -> list[Note]:
        """
        All notes, in the store's order (updated_at descending).

        The store caps a single listing, so pages are requested with an
        increasing offset until a short page comes back. A note that moves
        between pages while paging is kept once, at its first position.
        """
        if page_size < 1:
            raise ValueError("page_size must be positive")
        notes: list[Note] = []
        seen: set[str] = set()
        offset = 0
        while True:
            response = await self._send(
                "GET", self._path, params={"limit": page_size, "offset": offset}
            )
            page = self._unwrap(response) or []
            if not isinstance(page, list):
                raise RemoteStoreError(
                    "Note store returned an unexpected listing",
                    status_code=response.status_code,
                    code="STORE_INVALID_RESPONSE",
                )
            for item in page:
                note = self._to_note(item)
                if note.id not in seen:
                    seen.add(note.id)
                    notes.append(note)
            if len(page) < page_size:
                return notes
            offset += page_size

    @staticmethod
    def _to_note(data: Any) -> Note:
        try:
            return Note.model_validate(data)
        except pydantic.ValidationError as e:
            raise RemoteStoreError(
                "Note store returned a malformed note",
                code="STORE_INVALID_RESPONSE",
            ) from e

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._api.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteStoreError(
                f"Note store unreachable: {e}",
                code="STORE_UNREACHABLE",
            ) from e

    @staticmethod
    def _unwrap(response: httpx.Response, expected: int = 200) -> Any:
        """Return the envelope's data, or raise RemoteStoreError."""
        if response.status_code != expected:
            message = f"Note store returned {response.status_code}"
            code = "STORE_ERROR"
            try:
                body = response.json()
            except ValueError:
                body = None
            error = (body.get("error") if isinstance(body, dict) else None) or {}
            if isinstance(error, dict):
                message = error.get("message", message)
                code = error.get("code", code)
            logger.warning(
                "Note store request failed",
                extra={"status_code": response.status_code, "error_code": code},
            )
            raise RemoteStoreError(message, status_code=response.status_code, code=code)

        if response.status_code == 204 or not response.content:
            return None

        try:
            body = response.json()
        except ValueError as e:
            raise RemoteStoreError(
                "Note store returned invalid JSON",
                status_code=response.status_code,
                code="STORE_INVALID_RESPONSE",
            ) from e
        if not isinstance(body, dict):
            raise RemoteStoreError(
                "Note store returned an unexpected body",
                status_code=response.status_code,
                code="STORE_INVALID_RESPONSE",
            )
        return body.get("data")
