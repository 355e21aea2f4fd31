"""Drive v2 client against a mocked API."""

from __future__ import annotations

import json

import httpx
import pytest

from event_sync.config import DriveConfig
from event_sync.drive.base import PDF_MIME_TYPE, FileFilter, Property
from event_sync.drive.client import DriveClient, build_query
from event_sync.errors import DriveError

MARKER = Property("processed", "true", "PRIVATE")


def _client(handler) -> DriveClient:
    return DriveClient(DriveConfig(page_size=2), "token", transport=httpx.MockTransport(handler))


def test_build_query_excludes_marked_files():
    query = build_query("root", FileFilter(mime_type=PDF_MIME_TYPE, exclude_property=MARKER))

    assert query == (
        "'root' in parents and mimeType = 'application/pdf' and "
        "not properties has { key='processed' and value='true' and visibility='PRIVATE' } "
        "and trashed = false"
    )


def test_build_query_escapes_quotes():
    assert build_query("it's", FileFilter()) == "'it\\'s' in parents and trashed = false"


def test_list_page_parses_items_and_defaults_properties():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["Authorization"]
        return httpx.Response(
            200,
            json={
                "nextPageToken": "next",
                "items": [
                    {
                        "id": "f1",
                        "title": "a.json",
                        "mimeType": "application/json",
                        "alternateLink": "https://drive.example.com/f1",
                        "parents": [{"id": "root"}],
                        "properties": [
                            {"key": "processed", "value": "true", "visibility": "PUBLIC"}
                        ],
                    },
                    {"id": "f2", "title": "b.json", "mimeType": "application/json"},
                ],
            },
        )

    page = _client(handler).list_page("root", FileFilter(include_properties=True))

    assert page.next_page_token == "next"
    assert page.items[0].has_property("processed", "true", "PUBLIC") is True
    assert page.items[0].parents == ["root"]
    assert page.items[1].properties == []
    assert "properties(key, value, visibility)" in seen["params"]["fields"]
    assert seen["params"]["maxResults"] == "2"
    assert seen["auth"] == "Bearer token"


def test_list_page_without_properties_leaves_them_unknown():
    client = _client(lambda request: httpx.Response(200, json={"items": [{"id": "f1", "title": "x"}]}))

    page = client.list_page("root", FileFilter())

    assert page.items[0].properties is None
    assert page.next_page_token is None


def test_has_property_treats_404_as_absent():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/f1/properties/processed"):
            return httpx.Response(200, json={"key": "processed", "value": "true"})
        return httpx.Response(404, json={"error": {"message": "Property not found"}})

    client = _client(handler)

    assert client.has_property("f1", "processed", "true", "PRIVATE") is True
    assert client.has_property("f2", "processed", "true", "PRIVATE") is False


def test_set_property_posts_visibility():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=seen["body"])

    _client(handler).set_property("f1", "processed", "true", "PUBLIC")

    assert seen["method"] == "POST"
    assert seen["body"] == {"key": "processed", "value": "true", "visibility": "PUBLIC"}


def test_set_property_failure_raises_drive_error():
    client = _client(lambda request: httpx.Response(500, json={"error": {"message": "boom"}}))

    with pytest.raises(DriveError) as excinfo:
        client.set_property("f1", "processed", "true", "PUBLIC")

    assert excinfo.value.status_code == 500


def test_remove_property_ignores_missing():
    client = _client(lambda request: httpx.Response(404, json={"error": {"message": "gone"}}))

    client.remove_property("f1", "processed", "PUBLIC")


def test_write_sends_multipart_upload():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200, json={"id": "new", "title": "a.json", "mimeType": "application/json"})

    ref = _client(handler).write("json-root", "a.json", b'{"title": "x"}', "application/json")

    assert ref.id == "new"
    assert "uploadType=multipart" in seen["url"]
    assert seen["content_type"].startswith("multipart/related; boundary=")
    assert b'"parents": [{"id": "json-root"}]' in seen["body"]
    assert b'{"title": "x"}' in seen["body"]


def test_get_parent_walks_first_parent():
    files = {
        "child": {"id": "child", "title": "c.pdf", "parents": [{"id": "folder"}]},
        "folder": {"id": "folder", "title": "Expo", "parents": []},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        file_id = request.url.path.rsplit("/", 1)[-1]
        return httpx.Response(200, json=files[file_id])

    client = _client(handler)

    assert client.get_parent("child").name == "Expo"
    assert client.get_parent("folder") is None


def test_transport_error_raises_drive_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline", request=request)

    with pytest.raises(DriveError):
        _client(handler).read("f1")
