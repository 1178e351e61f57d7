"""
Tests for the region policy engine.
"""

import pytest

from models.config import PolicyConfig
from models.detection import Detection, DetectionKind
from models.region import PlateCandidate, RegionKind
from redaction.policy import RegionPolicyEngine


def person(x1, y1, x2, y2):
    return Detection.from_xyxy(DetectionKind.PERSON, x1, y1, x2, y2, confidence=0.8, class_name="person")


def vehicle(x1, y1, x2, y2, name="car"):
    return Detection.from_xyxy(DetectionKind.VEHICLE, x1, y1, x2, y2, confidence=0.8, class_name=name)


class TestFaceRegions:
    def test_face_is_expanded_around_centre(self, face_detection):
        regions = RegionPolicyEngine().build_regions([face_detection], 640, 480)

        assert len(regions) == 1
        r = regions[0]
        assert r.kind == RegionKind.FACE
        # 60px face grown by 10% -> 66px centred on (130, 110)
        assert (r.x, r.y, r.w, r.h) == (97, 77, 66, 66)
        assert r.blur_radius == 35

    def test_face_at_corner_is_clamped(self):
        face = Detection.from_xywh(DetectionKind.FACE, 0, 0, 40, 40)
        r = RegionPolicyEngine().build_regions([face], 100, 100)[0]
        assert r.x == 0 and r.y == 0
        assert r.is_within(100, 100)


class TestHeadRegions:
    def test_head_from_person_without_faces(self):
        regions = RegionPolicyEngine().build_regions([person(100, 50, 200, 350)], 640, 480)

        assert len(regions) == 1
        r = regions[0]
        assert r.kind == RegionKind.HEAD
        # head height 0.18 * 300 = 54, width min(50, 48.6) = 48.6, centred on x=150
        assert r.y == 50
        assert r.h == 54
        assert r.x == 125 and r.x2 == 175

    def test_face_suppresses_person_heads(self, face_detection):
        """One face plus an overlapping person gives exactly one region, from the face."""
        p = person(80, 60, 180, 400)

        regions = RegionPolicyEngine().build_regions([face_detection, p], 640, 480)

        assert len(regions) == 1
        assert regions[0].kind == RegionKind.FACE

    def test_faces_disabled_drops_heads_too(self):
        regions = RegionPolicyEngine().build_regions([person(100, 50, 200, 350)], 640, 480, include_faces=False)
        assert regions == []


class TestVehiclePlateRegions:
    def test_vehicle_gives_rear_and_front_plate(self):
        regions = RegionPolicyEngine().build_regions([vehicle(0, 0, 200, 100)], 640, 480)

        assert len(regions) == 2
        assert all(r.kind == RegionKind.PLATE for r in regions)
        assert all((r.w, r.h) == (40, 8) for r in regions)
        assert all(r.x == 80 for r in regions)
        rear, front = regions
        # rear: bottom minus plate height minus 5% margin; front: 75% down
        assert rear.y == 87
        assert front.y == 75
        assert all(r.is_within(640, 480) for r in regions)

    def test_vehicle_regions_are_unconditional(self, face_detection):
        regions = RegionPolicyEngine().build_regions(
            [face_detection, vehicle(300, 200, 500, 300)], 640, 480
        )
        kinds = [r.kind for r in regions]
        assert kinds.count(RegionKind.PLATE) == 2
        assert kinds.count(RegionKind.FACE) == 1

    def test_plates_disabled(self):
        regions = RegionPolicyEngine().build_regions([vehicle(0, 0, 200, 100)], 640, 480, include_plates=False)
        assert regions == []

    def test_vehicle_partly_outside_image(self):
        regions = RegionPolicyEngine().build_regions([vehicle(-100, 400, 300, 600)], 640, 480)
        assert all(r.is_within(640, 480) for r in regions)


class TestCandidateRegions:
    def test_candidate_is_padded(self):
        cand = PlateCandidate(x=300, y=350, w=150, h=40, confidence=0.25, aspect_ratio=3.75)

        regions = RegionPolicyEngine().build_regions([], 640, 480, plate_candidates=[cand])

        assert len(regions) == 1
        r = regions[0]
        assert (r.x, r.y, r.w, r.h) == (285, 344, 180, 52)
        assert r.blur_radius == 40

    def test_custom_radius(self):
        cfg = PolicyConfig(detected_plate_blur_radius=12)
        cand = PlateCandidate(x=10, y=10, w=60, h=20, confidence=0.2, aspect_ratio=3.0)
        r = RegionPolicyEngine(cfg).build_regions([], 100, 100, plate_candidates=[cand])[0]
        assert r.blur_radius == 12


@pytest.mark.parametrize(
    "det",
    [
        Detection.from_xywh(DetectionKind.FACE, 620, 470, 50, 50),
        Detection.from_xywh(DetectionKind.PERSON, -30, -30, 60, 300, class_name="person"),
        Detection.from_xywh(DetectionKind.VEHICLE, 500, 380, 300, 200, class_name="bus"),
    ],
)
def test_regions_always_within_bounds(det):
    for r in RegionPolicyEngine().build_regions([det], 640, 480):
        assert 0 <= r.x and 0 <= r.y
        assert r.x + r.w <= 640 and r.y + r.h <= 480
        assert r.w > 0 and r.h > 0
