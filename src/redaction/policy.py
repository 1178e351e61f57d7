"""
Region policy: which parts of each detection get blurred.

Faces are blurred with a small margin. People are only used to guess a head
when no face was found at all. Vehicles always get a rear and a front plate
region at the usual plate positions, whether or not a plate was seen.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from models.config import PolicyConfig
from models.detection import Detection, DetectionKind
from models.region import PlateCandidate, RedactionRegion, RegionKind


class RegionPolicyEngine:
    """
    Turns detections and plate candidates into clamped redaction regions.

    Every returned region lies inside the image; boxes that fall outside
    it entirely are dropped silently.
    """

    def __init__(self, cfg: Optional[PolicyConfig] = None):
        self.cfg = cfg or PolicyConfig()

    def build_regions(
        self,
        detections: Iterable[Detection],
        image_width: int,
        image_height: int,
        plate_candidates: Iterable[PlateCandidate] = (),
        include_faces: bool = True,
        include_plates: bool = True,
    ) -> List[RedactionRegion]:
        detections = list(detections)
        faces = [d for d in detections if d.kind == DetectionKind.FACE]
        people = [d for d in detections if d.kind == DetectionKind.PERSON]
        vehicles = [d for d in detections if d.kind == DetectionKind.VEHICLE]

        regions: List[Optional[RedactionRegion]] = []
        if include_faces:
            regions.extend(self.face_region(f, image_width, image_height) for f in faces)
            # a found face beats a guessed head
            if not faces:
                regions.extend(self.head_region(p, image_width, image_height) for p in people)
        if include_plates:
            for v in vehicles:
                regions.extend(self.vehicle_plate_regions(v, image_width, image_height))
            regions.extend(self.candidate_region(c, image_width, image_height) for c in plate_candidates)

        out = [r for r in regions if r is not None]
        logging.debug(
            f"Policy built {len(out)} region(s) from {len(faces)} face(s), "
            f"{len(people)} person(s), {len(vehicles)} vehicle(s)"
        )
        return out

    def face_region(self, face: Detection, image_width: int, image_height: int) -> Optional[RedactionRegion]:
        """Face box grown symmetrically around its centre."""
        scale = self.cfg.face_expansion
        w = face.bbox.width * scale
        h = face.bbox.height * scale
        cx, cy = face.center
        return RedactionRegion.from_float_box(
            cx - w / 2,
            cy - h / 2,
            w,
            h,
            image_width,
            image_height,
            self.cfg.face_blur_radius,
            RegionKind.FACE,
        )

    def head_region(self, person: Detection, image_width: int, image_height: int) -> Optional[RedactionRegion]:
        """Estimated head at the top centre of a person box."""
        bw, bh = person.bbox.width, person.bbox.height
        head_h = bh * self.cfg.head_height_ratio
        head_w = min(bw * self.cfg.head_width_ratio, head_h * self.cfg.head_aspect)
        cx = person.center[0]
        return RedactionRegion.from_float_box(
            cx - head_w / 2,
            person.y1,
            head_w,
            head_h,
            image_width,
            image_height,
            self.cfg.head_blur_radius,
            RegionKind.HEAD,
        )

    def vehicle_plate_regions(
        self,
        vehicle: Detection,
        image_width: int,
        image_height: int,
    ) -> List[Optional[RedactionRegion]]:
        """Rear plate near the bottom of the vehicle box and front plate at three quarters height."""
        bw, bh = vehicle.bbox.width, vehicle.bbox.height
        plate_w = bw * self.cfg.plate_width_ratio
        plate_h = bh * self.cfg.plate_height_ratio
        x = vehicle.center[0] - plate_w / 2

        rear_y = vehicle.y2 - plate_h - bh * self.cfg.rear_plate_margin_ratio
        front_y = vehicle.y1 + bh * self.cfg.front_plate_offset_ratio

        radius = self.cfg.vehicle_plate_blur_radius
        return [
            RedactionRegion.from_float_box(x, rear_y, plate_w, plate_h, image_width, image_height, radius, RegionKind.PLATE),
            RedactionRegion.from_float_box(x, front_y, plate_w, plate_h, image_width, image_height, radius, RegionKind.PLATE),
        ]

    def candidate_region(
        self,
        cand: PlateCandidate,
        image_width: int,
        image_height: int,
    ) -> Optional[RedactionRegion]:
        """Edge-search candidate padded on every side, since the window may clip characters."""
        pad_x = cand.w * self.cfg.candidate_pad_x_ratio
        pad_y = cand.h * self.cfg.candidate_pad_y_ratio
        return RedactionRegion.from_float_box(
            cand.x - pad_x,
            cand.y - pad_y,
            cand.w + 2 * pad_x,
            cand.h + 2 * pad_y,
            image_width,
            image_height,
            self.cfg.detected_plate_blur_radius,
            RegionKind.PLATE,
        )
