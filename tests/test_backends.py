"""
Tests for the pretrained detector adapters.
"""

import threading
import time

import numpy as np
import pytest
from unittest.mock import MagicMock, Mock, patch

from conftest import FakeFaceBackend, FakeObjectBackend, make_buffer
from inference.backend import ModelLoadError, kind_for_class
from inference.cpu_backend import UltralyticsObjectBackend
from inference.face_backend import HaarFaceBackend, resolve_cascade_path
from models.config import FaceModelConfig, ObjectModelConfig
from models.detection import Detection, DetectionKind, DetectionSource


def _tensor(values):
    return Mock(cpu=Mock(return_value=Mock(numpy=Mock(return_value=np.array(values)))))


@pytest.fixture
def mock_yolo_model():
    """Mock YOLO model: person 0.9, car 0.8, dog 0.95, truck 0.2, bus 0.6."""
    model = MagicMock()
    result = MagicMock()
    result.names = {0: "person", 2: "car", 7: "truck", 5: "bus", 16: "dog"}
    result.boxes = MagicMock()
    result.boxes.xyxy = _tensor([
        [10, 10, 50, 100],
        [120, 30, 200, 150],
        [300, 40, 360, 90],
        [400, 50, 500, 180],
        [20, 200, 220, 300],
    ])
    result.boxes.conf = _tensor([0.9, 0.8, 0.95, 0.2, 0.6])
    result.boxes.cls = _tensor([0, 2, 16, 7, 5])
    model.predict.return_value = [result]
    return model


class TestKindForClass:
    def test_mapping(self):
        assert kind_for_class("person") == DetectionKind.PERSON
        assert kind_for_class("Car") == DetectionKind.VEHICLE
        assert kind_for_class("motorcycle") == DetectionKind.VEHICLE
        assert kind_for_class("dog") is None
        assert kind_for_class(None) is None


class TestUltralyticsObjectBackend:
    def test_vehicles_only(self, mock_yolo_model):
        backend = UltralyticsObjectBackend(ObjectModelConfig(), model=mock_yolo_model)

        dets = backend.detect_objects(make_buffer(640, 480), ["car", "truck", "bus", "motorcycle"])

        # truck is below the 0.3 score threshold
        assert [d.class_name for d in dets] == ["car", "bus"]
        assert all(d.kind == DetectionKind.VEHICLE for d in dets)
        assert dets[0].bbox.as_tuple() == (120.0, 30.0, 200.0, 150.0)
        assert dets[0].confidence == pytest.approx(0.8)

    def test_people_only(self, mock_yolo_model):
        backend = UltralyticsObjectBackend(ObjectModelConfig(), model=mock_yolo_model)

        dets = backend.detect_objects(make_buffer(640, 480), ["person"])

        assert len(dets) == 1
        assert dets[0].kind == DetectionKind.PERSON
        assert dets[0].source == DetectionSource.ML_ADAPTER

    def test_predict_receives_bgr_frame_and_thresholds(self, mock_yolo_model):
        cfg = ObjectModelConfig(conf_threshold=0.4, iou_threshold=0.5, max_detections=7)
        backend = UltralyticsObjectBackend(cfg, model=mock_yolo_model)

        backend.detect_objects(make_buffer(64, 48), ["person"])

        kwargs = mock_yolo_model.predict.call_args.kwargs
        assert kwargs["source"].shape == (48, 64, 3)
        assert kwargs["conf"] == 0.4
        assert kwargs["iou"] == 0.5
        assert kwargs["max_det"] == 7

    def test_inference_error_returns_empty(self, mock_yolo_model):
        mock_yolo_model.predict.side_effect = RuntimeError("CUDA out of memory")
        backend = UltralyticsObjectBackend(ObjectModelConfig(), model=mock_yolo_model)

        assert backend.detect_objects(make_buffer(64, 48), ["car"]) == []

    def test_no_results(self, mock_yolo_model):
        mock_yolo_model.predict.return_value = []
        backend = UltralyticsObjectBackend(ObjectModelConfig(), model=mock_yolo_model)
        assert backend.detect_objects(make_buffer(64, 48), ["car"]) == []

    def test_concurrent_stages_do_not_overlap_in_predict(self, mock_yolo_model):
        """Person and vehicle calls from two threads run the shared model one at a time."""
        results = mock_yolo_model.predict.return_value
        state = {"active": 0, "overlapped": False}
        guard = threading.Lock()

        def predict(**kwargs):
            with guard:
                state["active"] += 1
                if state["active"] > 1:
                    state["overlapped"] = True
            time.sleep(0.05)
            with guard:
                state["active"] -= 1
            return results

        mock_yolo_model.predict.side_effect = predict
        backend = UltralyticsObjectBackend(ObjectModelConfig(), model=mock_yolo_model)
        buf = make_buffer(64, 48)
        found = {}
        threads = [
            threading.Thread(target=lambda: found.update(people=backend.detect_objects(buf, ["person"]))),
            threading.Thread(target=lambda: found.update(vehicles=backend.detect_objects(buf, ["car", "bus"]))),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert state["overlapped"] is False
        assert mock_yolo_model.predict.call_count == 2
        assert [d.class_name for d in found["people"]] == ["person"]
        assert [d.class_name for d in found["vehicles"]] == ["car", "bus"]

    def test_model_load_failure(self):
        with patch("ultralytics.YOLO", side_effect=FileNotFoundError("missing.pt")):
            with pytest.raises(ModelLoadError):
                UltralyticsObjectBackend(ObjectModelConfig(model="missing.pt"))


class TestHaarFaceBackend:
    def test_boxes_are_normalised(self):
        classifier = MagicMock()
        classifier.detectMultiScale.return_value = np.array([[10, 20, 30, 40]])
        backend = HaarFaceBackend(FaceModelConfig(), classifier=classifier)

        faces = backend.detect_faces(make_buffer(100, 100))

        assert len(faces) == 1
        assert faces[0].kind == DetectionKind.FACE
        assert faces[0].bbox.as_tuple() == (10.0, 20.0, 40.0, 60.0)

    def test_classifier_gets_grayscale(self):
        classifier = MagicMock()
        classifier.detectMultiScale.return_value = ()
        backend = HaarFaceBackend(FaceModelConfig(min_size=32), classifier=classifier)

        assert backend.detect_faces(make_buffer(80, 60)) == []

        args, kwargs = classifier.detectMultiScale.call_args
        assert args[0].shape == (60, 80)
        assert kwargs["minSize"] == (32, 32)

    def test_bundled_cascade_loads(self):
        backend = HaarFaceBackend(FaceModelConfig())
        assert backend.detect_faces(make_buffer(64, 64)) == []

    def test_missing_cascade_raises(self, tmp_path):
        with pytest.raises(ModelLoadError):
            HaarFaceBackend(FaceModelConfig(cascade=str(tmp_path / "nope.xml")))

    def test_resolve_cascade_path(self, tmp_path):
        local = tmp_path / "custom.xml"
        local.write_text("<opencv_storage/>")
        assert resolve_cascade_path(str(local)) == str(local)
        assert resolve_cascade_path("haarcascade_frontalface_default.xml").endswith(
            "haarcascade_frontalface_default.xml"
        )


class TestAdapterContract:
    def test_face_backend_failure_is_empty(self):
        backend = FakeFaceBackend(error=RuntimeError("boom"))
        assert backend.detect_faces(make_buffer(10, 10)) == []
        assert backend.calls == 1

    def test_object_backend_filters_requested_classes(self):
        car = Detection.from_xyxy(DetectionKind.VEHICLE, 0, 0, 10, 10, class_name="car")
        person = Detection.from_xyxy(DetectionKind.PERSON, 0, 0, 10, 10, class_name="person")
        backend = FakeObjectBackend([car, person])

        assert backend.detect_objects(make_buffer(10, 10), ["CAR"]) == [car]
        assert backend.calls == [{"car"}]
