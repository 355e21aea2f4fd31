"""
Google Drive REST (v2) implementation of FileStore.

Drive v2 is used because its custom file properties carry a visibility
(PRIVATE/PUBLIC) and can be filtered on in listing queries
(``properties has {...}``), which is what the durable marker relies on.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote
import uuid

import httpx

from ..config import DriveConfig
from ..errors import DriveError
from ..http_utils import bearer_headers, google_error_message
from .base import FileFilter, FilePage, FileRef, FileStore, Property

_FILE_FIELDS = "id, title, mimeType, alternateLink, parents(id)"
_FILE_FIELDS_WITH_PROPERTIES = _FILE_FIELDS + ", properties(key, value, visibility)"


class DriveClient(FileStore):
    def __init__(
        self,
        cfg: DriveConfig,
        access_token: str | None,
        transport: httpx.BaseTransport | None = None,
    ):
        if not access_token:
            raise ValueError("Missing Google access token")
        self.cfg = cfg
        self.access_token = access_token
        self._transport = transport

    def list_page(
        self,
        folder_id: str,
        file_filter: FileFilter,
        page_token: str | None = None,
    ) -> FilePage:
        fields = _FILE_FIELDS_WITH_PROPERTIES if file_filter.include_properties else _FILE_FIELDS
        params: dict[str, Any] = {
            "q": build_query(folder_id, file_filter),
            "fields": f"nextPageToken, items({fields})",
            "maxResults": self.cfg.page_size,
        }
        if page_token:
            params["pageToken"] = page_token
        data = self._request_json("GET", self._api_url("/files"), params=params)
        items = [
            _file_from_json(item, with_properties=file_filter.include_properties)
            for item in data.get("items") or []
        ]
        return FilePage(items=items, next_page_token=data.get("nextPageToken") or None)

    def read(self, file_id: str) -> bytes:
        response = self._request("GET", self._file_url(file_id), params={"alt": "media"})
        return response.content

    def write(self, folder_id: str, name: str, data: bytes, mime_type: str) -> FileRef:
        metadata = {"title": name, "mimeType": mime_type, "parents": [{"id": folder_id}]}
        boundary = f"event_sync_{uuid.uuid4().hex}"
        body = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata, ensure_ascii=False)}\r\n"
            f"--{boundary}\r\n"
            f"Content-Type: {mime_type}\r\n\r\n"
        ).encode("utf-8") + data + f"\r\n--{boundary}--\r\n".encode("utf-8")
        response = self._request(
            "POST",
            f"{self.cfg.upload_url}/drive/v2/files",
            params={"uploadType": "multipart"},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        return _file_from_json(_json_body(response))

    def exists(self, folder_id: str, name: str) -> bool:
        query = (
            f"'{_escape(folder_id)}' in parents and title = '{_escape(name)}' and trashed = false"
        )
        data = self._request_json(
            "GET",
            self._api_url("/files"),
            params={"q": query, "fields": "items(id)", "maxResults": 1},
        )
        return bool(data.get("items"))

    def get_file(self, file_id: str) -> FileRef:
        data = self._request_json("GET", self._file_url(file_id), params={"fields": _FILE_FIELDS})
        return _file_from_json(data)

    def set_property(self, file_id: str, key: str, value: str, visibility: str) -> None:
        self._request(
            "POST",
            f"{self._file_url(file_id)}/properties",
            json_body={"key": key, "value": value, "visibility": visibility},
        )

    def has_property(self, file_id: str, key: str, value: str, visibility: str) -> bool:
        response = self._request(
            "GET",
            f"{self._file_url(file_id)}/properties/{quote(key, safe='')}",
            params={"visibility": visibility},
            allow_status=(404,),
        )
        if response.status_code == 404:
            return False
        return _json_body(response).get("value") == value

    def remove_property(self, file_id: str, key: str, visibility: str) -> None:
        self._request(
            "DELETE",
            f"{self._file_url(file_id)}/properties/{quote(key, safe='')}",
            params={"visibility": visibility},
            allow_status=(404,),
        )

    def _api_url(self, path: str) -> str:
        return f"{self.cfg.base_url}/drive/v2{path}"

    def _file_url(self, file_id: str) -> str:
        return self._api_url(f"/files/{quote(file_id, safe='')}")

    def _request_json(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        return _json_body(self._request(method, url, **kwargs))

    def _request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        allow_status: tuple[int, ...] = (),
    ) -> httpx.Response:
        request_headers = bearer_headers(self.access_token)
        if headers:
            request_headers.update(headers)
        try:
            with httpx.Client(
                timeout=self.cfg.timeout_seconds,
                trust_env=self.cfg.trust_env,
                transport=self._transport,
            ) as client:
                response = client.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    content=content,
                    headers=request_headers,
                )
        except httpx.HTTPError as exc:
            raise DriveError(f"Drive request failed: {exc}") from exc

        if response.status_code in allow_status:
            return response
        if response.status_code < 200 or response.status_code >= 300:
            raise DriveError(
                f"Drive API request failed ({response.status_code}): "
                f"{google_error_message(response)}",
                status_code=response.status_code,
            )
        return response


def build_query(folder_id: str, file_filter: FileFilter) -> str:
    """Build a Drive v2 search query for direct children of folder_id."""
    clauses = [f"'{_escape(folder_id)}' in parents"]
    if file_filter.mime_type:
        clauses.append(f"mimeType = '{_escape(file_filter.mime_type)}'")
    prop = file_filter.exclude_property
    if prop is not None:
        clauses.append(
            "not properties has { "
            f"key='{_escape(prop.key)}' and value='{_escape(prop.value)}' "
            f"and visibility='{_escape(prop.visibility)}' }}"
        )
    clauses.append("trashed = false")
    return " and ".join(clauses)


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if response.status_code == 204 or not response.content:
        return {}
    try:
        payload = response.json()
    except ValueError as exc:
        raise DriveError("Drive API returned invalid JSON", status_code=response.status_code) from exc
    if not isinstance(payload, dict):
        raise DriveError("Drive API returned an unexpected JSON payload shape")
    return payload


def _file_from_json(item: dict[str, Any], with_properties: bool = False) -> FileRef:
    properties = None
    if with_properties or "properties" in item:
        properties = [
            Property(
                key=str(p.get("key", "")),
                value=str(p.get("value", "")),
                visibility=str(p.get("visibility", "")),
            )
            for p in item.get("properties") or []
        ]
    return FileRef(
        id=str(item.get("id", "")),
        name=str(item.get("title", "")),
        mime_type=item.get("mimeType"),
        link=item.get("alternateLink"),
        parents=[str(p["id"]) for p in item.get("parents") or [] if p.get("id")],
        properties=properties,
    )
