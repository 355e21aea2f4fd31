"""JSON artifact naming and writing."""

from __future__ import annotations

import json

import pytest

from event_sync.core.types import ExtractedRecord, HierarchyPath, WorkItem
from event_sync.drive.base import JSON_MIME_TYPE, PDF_MIME_TYPE
from event_sync.errors import PublishTransient
from event_sync.publish.json_store import JsonArtifactPublisher, artifact_name

from conftest import FakeFileStore


@pytest.mark.parametrize(
    ("source", "expected"),
    [
        ("Notice.pdf", "Notice.json"),
        ("Notice.PDF", "Notice.json"),
        ("report.pdf.pdf", "report.pdf.json"),
        ("minutes", "minutes.json"),
    ],
)
def test_artifact_name(source, expected):
    assert artifact_name(source) == expected


def _item() -> WorkItem:
    return WorkItem(
        id="pdf-1",
        name="Notice.pdf",
        mime_type=PDF_MIME_TYPE,
        link="https://drive.example.com/pdf-1",
        path=HierarchyPath("Conferences", "Expo"),
    )


def test_publish_writes_record_with_source_and_path(store):
    store.add_folder("json-root", "json")
    record = ExtractedRecord(title="春の展示会", start_time="2026-05-01T10:00:00")

    ref = JsonArtifactPublisher(store, "json-root").publish(record, _item())

    assert ref.name == "Notice.json"
    assert ref.mime_type == JSON_MIME_TYPE
    raw = store.contents[ref.id].decode("utf-8")
    assert "春の展示会" in raw
    assert '\n  "title"' in raw
    data = json.loads(raw)
    assert data["category"] == "Conferences"
    assert data["subCategory"] == "Expo"
    assert data["sourcePdf"] == {
        "id": "pdf-1",
        "title": "Notice.pdf",
        "link": "https://drive.example.com/pdf-1",
    }


def test_publish_renames_on_collision(store):
    store.add_folder("json-root", "json")
    store.add_file("existing", "Notice.json", "json-root", JSON_MIME_TYPE)
    publisher = JsonArtifactPublisher(store, "json-root", clock=lambda: 1767225600.5)

    ref = publisher.publish(ExtractedRecord(title="Expo"), _item())

    assert ref.name == "Notice_1767225600500.json"
    assert store.files["existing"].name == "Notice.json"


def test_publish_write_failure_is_transient():
    class ReadOnlyStore(FakeFileStore):
        def write(self, folder_id, name, data, mime_type):
            raise OSError("quota exceeded")

    with pytest.raises(PublishTransient):
        JsonArtifactPublisher(ReadOnlyStore(), "json-root").publish(
            ExtractedRecord(title="Expo"), _item()
        )
