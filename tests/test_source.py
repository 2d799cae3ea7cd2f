"""Tests for detection adapters and ReplaySource."""

import json

import numpy as np
import pytest

from conftest import eye_contour
from examwatch.errors import DetectorUnavailable
from examwatch.source import (
    ReplaySource,
    coco_label_to_class,
    face_from_corners,
    frame_from_dict,
    frame_size,
    frame_to_dict,
)
from examwatch.types import FaceLandmarks, FrameDetections, ObjectClass


class TestAdapters:
    @pytest.mark.parametrize("label,expected", [
        ("cell phone", ObjectClass.PHONE),
        ("Cell Phone", ObjectClass.PHONE),
        ("book", ObjectClass.NOTES),
        ("notes", ObjectClass.NOTES),
        ("laptop", ObjectClass.OTHER),
        ("person", ObjectClass.OTHER),
    ])
    def test_coco_label_to_class(self, label, expected):
        assert coco_label_to_class(label) == expected

    def test_face_from_corners(self):
        face = face_from_corners((100, 50), (200, 170), probability=0.8)
        assert face.bbox.width == 100
        assert face.bbox.height == 120
        assert face.center == (150.0, 110.0)
        assert face.probability == 0.8

    def test_frame_size_numpy(self):
        assert frame_size(np.zeros((480, 640, 3), dtype=np.uint8)) == (640, 480)

    def test_frame_size_detections(self):
        frame = FrameDetections(frame_width=1280, frame_height=720)
        assert frame_size(frame) == (1280, 720)

    def test_frame_size_unknown(self):
        assert frame_size(FrameDetections()) is None
        assert frame_size({"index": 1}) is None


class TestFrameDict:
    def test_parse_corner_faces_and_objects(self):
        frame = frame_from_dict({
            "faces": [{"top_left": [270, 190], "bottom_right": [370, 290], "probability": 0.9}],
            "objects": [{"class": "cell phone", "score": 0.7}],
            "frame_size": [640, 480],
        })
        assert len(frame.faces) == 1
        assert frame.faces[0].center == (320.0, 240.0)
        assert frame.objects[0].object_class == ObjectClass.PHONE
        assert frame.objects[0].confidence == 0.7
        assert (frame.frame_width, frame.frame_height) == (640, 480)

    def test_parse_empty(self):
        frame = frame_from_dict({})
        assert frame.faces == ()
        assert frame.objects == ()
        assert frame.frame_width is None

    def test_landmarks_survive_serialization(self):
        data = {
            "faces": [{
                "bbox": [270, 190, 100, 100],
                "landmarks": {
                    "left_eye": eye_contour(0.1).tolist(),
                    "right_eye": eye_contour(0.1).tolist(),
                    "nose": [320, 245],
                },
            }],
        }
        frame = frame_from_dict(json.loads(json.dumps(frame_to_dict(frame_from_dict(data)))))
        lm = frame.faces[0].landmarks
        assert isinstance(lm, FaceLandmarks)
        assert lm.left_eye.shape == (6, 2)
        assert lm.nose == (320.0, 245.0)
        assert frame.faces[0].center == (320.0, 240.0)


class TestReplaySource:
    def test_sequence(self):
        frames = [FrameDetections(), FrameDetections(frame_width=640, frame_height=480)]
        source = ReplaySource(frames)
        assert len(source) == 2
        assert source.is_ready()

        first = source.next_frame()
        assert source.detect_faces(first) == ()
        source.next_frame()
        assert source.exhausted
        assert not source.is_ready()
        with pytest.raises(DetectorUnavailable):
            source.next_frame()

        source.rewind()
        assert source.remaining == 2

    def test_from_jsonl(self, tmp_path):
        path = tmp_path / "session.jsonl"
        lines = [
            {"faces": [], "objects": []},
            {"faces": [{"bbox": [270, 190, 100, 100]}], "objects": [{"class": "book"}]},
        ]
        path.write_text("\n".join(json.dumps(l) for l in lines) + "\n\n")

        source = ReplaySource.from_jsonl(str(path))
        assert len(source) == 2
        assert source.frames[1].objects[0].object_class == ObjectClass.NOTES

    def test_from_jsonl_bad_line(self, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{"faces": []}\n{not json}\n')
        with pytest.raises(ValueError, match=":2:"):
            ReplaySource.from_jsonl(str(path))

    def test_from_jsonl_missing_bbox(self, tmp_path):
        path = tmp_path / "bad.jsonl"
        path.write_text('{"faces": [{"probability": 0.9}]}\n')
        with pytest.raises(ValueError, match=":1:"):
            ReplaySource.from_jsonl(str(path))


class TestFrameSizeValidation:
    @pytest.mark.parametrize("size", [[-640, 480], [640, 0]])
    def test_non_positive_frame_size(self, size):
        with pytest.raises(ValueError, match="frame_size"):
            frame_from_dict({"frame_size": size})
