"""Tests for the JSON sidecar annotation file."""

import json
import math

import pytest

from boxmark.core.editor import AnnotationEditor
from boxmark.core.errors import AnnotationFileError, BoxmarkError
from boxmark.core.persistence import JsonAnnotationFile, sidecar_path


@pytest.fixture
def handler():
    return JsonAnnotationFile()


@pytest.fixture
def image_path(tmp_path):
    path = tmp_path / "street.jpg"
    path.write_bytes(b"")
    return path


class TestSidecarPath:
    """Tests for sidecar naming."""

    def test_next_to_image(self, tmp_path):
        assert sidecar_path(tmp_path / "street.jpg") == tmp_path / "street.annotations.json"

    def test_accepts_strings(self):
        assert sidecar_path("/data/a.b.png").name == "a.b.annotations.json"


class TestRead:
    """Tests for reading annotation files."""

    def test_missing_file(self, handler, image_path):
        assert not handler.exists(image_path)
        assert handler.read(image_path) == []

    def test_read_document(self, handler, image_path):
        sidecar_path(image_path).write_text(json.dumps({
            "image": "street.jpg",
            "width": 1600,
            "height": 1200,
            "annotations": [
                {"x": 200, "y": 200, "width": 400, "height": 400, "label": "car", "color": 65280},
            ],
        }))

        records = handler.read(image_path)

        assert records == [
            {"x": 200, "y": 200, "width": 400, "height": 400, "label": "car", "color": 65280}
        ]

    def test_read_bare_list(self, handler, image_path):
        sidecar_path(image_path).write_text(json.dumps([
            {"x": 1, "y": 2, "width": 3, "height": 4},
        ]))

        assert handler.read(image_path) == [{"x": 1, "y": 2, "width": 3, "height": 4}]

    def test_keeps_incomplete_records(self, handler, image_path):
        sidecar_path(image_path).write_text(json.dumps({"annotations": [
            {"x": 1, "y": 2, "width": 3},
            "not a record",
            {"x": "bad", "y": 2, "width": 3, "height": 4},
        ]}))

        records = handler.read(image_path)

        assert records == [
            {"x": 1, "y": 2, "width": 3},
            {"x": "bad", "y": 2, "width": 3, "height": 4},
        ]

    def test_invalid_json(self, handler, image_path):
        sidecar_path(image_path).write_text("{not json")

        with pytest.raises(AnnotationFileError):
            handler.read(image_path)

    def test_unexpected_structure(self, handler, image_path):
        sidecar_path(image_path).write_text(json.dumps({"boxes": []}))

        with pytest.raises(BoxmarkError):
            handler.read(image_path)


class TestWrite:
    """Tests for writing annotation files."""

    def test_write_and_read_back(self, handler, image_path):
        records = [
            {"x": 10.5, "y": 20, "width": 30, "height": 40, "label": "car", "color": 0x00FF00},
            {"x": 0, "y": 0, "width": 10, "height": 10, "label": "object", "color": 0xFF0000},
        ]

        path = handler.write(image_path, records, 1600, 1200)

        assert path == sidecar_path(image_path)
        assert handler.exists(image_path)
        data = json.loads(path.read_text())
        assert data["image"] == "street.jpg"
        assert (data["width"], data["height"]) == (1600, 1200)
        assert handler.read(image_path) == records

    def test_overwrite_leaves_no_temp_files(self, handler, image_path):
        handler.write(image_path, [], 10, 10)
        handler.write(image_path, [{"x": 1, "y": 1, "width": 5, "height": 5}], 10, 10)

        assert sorted(p.name for p in image_path.parent.iterdir()) == [
            "street.annotations.json", "street.jpg"
        ]

    def test_unserializable_keeps_previous_file(self, handler, image_path):
        handler.write(image_path, [{"x": 1, "y": 1, "width": 5, "height": 5}], 10, 10)

        with pytest.raises(AnnotationFileError):
            handler.write(image_path, [{"x": object(), "y": 1, "width": 5, "height": 5}], 10, 10)

        assert handler.read(image_path) == [{"x": 1, "y": 1, "width": 5, "height": 5}]
        assert len(list(image_path.parent.iterdir())) == 2

    def test_missing_directory(self, handler, tmp_path):
        with pytest.raises(AnnotationFileError):
            handler.write(tmp_path / "missing" / "a.png", [], 10, 10)

    def test_non_finite_geometry_written_as_null(self, handler, image_path):
        records = [{"x": math.nan, "y": 1, "width": math.inf, "height": 5, "label": "object"}]

        path = handler.write(image_path, records, 10, 10)

        text = path.read_text()
        assert "NaN" not in text and "Infinity" not in text
        data = json.loads(text)
        assert data["annotations"][0]["x"] is None
        assert data["annotations"][0]["width"] is None
        assert math.isnan(records[0]["x"])


class TestMalformedRecordsSurviveSave:
    """Malformed records go through the editor and back to disk."""

    def test_incomplete_record_is_written_back(self, qapp, make_timer, handler, image_path):
        sidecar_path(image_path).write_text(json.dumps([
            {"x": 1, "y": 1, "width": 20, "label": "kept"},
            {"x": 5, "y": 5, "width": 30, "height": 30, "label": "ok"},
        ]))
        editor = AnnotationEditor(resize_timer=make_timer(), render_timer=make_timer())
        editor.load_image(str(image_path), 100, 100)

        editor.set_annotations(handler.read(image_path))
        handler.write(image_path, editor.get_annotations(), 100, 100)

        records = handler.read(image_path)
        assert [r["label"] for r in records] == ["kept", "ok"]
        assert records[0]["height"] is None

        editor.set_annotations(records)
        assert math.isnan(editor.store[0].height)
        assert not editor.store[0].is_valid()
