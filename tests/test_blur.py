"""
Tests for the in-place box blur.
"""

import numpy as np
import pytest

from conftest import make_buffer, noise_buffer, paint_stripes
from models.buffer import BufferBusyError
from models.config import BlurConfig
from models.region import RedactionRegion, RegionKind
from redaction.blur import BlurRenderer, box_mean


def region(x, y, w, h, kind=RegionKind.FACE, radius=35):
    return RedactionRegion(x=x, y=y, w=w, h=h, blur_radius=radius, kind=kind)


class TestBoxMean:
    def test_truncated_window_at_border(self):
        values = np.array([[0.0, 3.0, 6.0, 9.0]])
        out = box_mean(values, 1, axis=1)
        # edges average two samples, interior three
        assert np.allclose(out, [[1.5, 3.0, 6.0, 7.5]])

    def test_radius_zero_is_identity(self):
        values = np.arange(12, dtype=float).reshape(3, 4)
        assert np.array_equal(box_mean(values, 0, axis=0), values)

    def test_constant_is_preserved(self):
        values = np.full((5, 7, 3), 42.0)
        assert np.allclose(box_mean(values, 3, axis=0), 42.0)


class TestBlurRenderer:
    def test_reduces_variance(self):
        """Blurring a noisy region lowers per-channel variance."""
        buf = noise_buffer(100, 100)
        r = region(20, 20, 60, 60)
        before = buf.pixels[20:80, 20:80, :3].astype(float).var(axis=(0, 1))

        assert BlurRenderer().blur_region(buf, r)

        after = buf.pixels[20:80, 20:80, :3].astype(float).var(axis=(0, 1))
        assert np.all(after <= before + 1e-9)
        assert np.all(after < before / 2)

    def test_stripes_are_smoothed(self):
        buf = make_buffer(200, 100, (128, 128, 128))
        paint_stripes(buf, 20, 20, 180, 80)
        before = buf.pixels[20:80, 20:180, :3].astype(float).var()

        BlurRenderer().blur_region(buf, region(20, 20, 160, 60, RegionKind.PLATE, 40))

        assert buf.pixels[20:80, 20:180, :3].astype(float).var() < before

    def test_alpha_untouched(self):
        buf = noise_buffer(50, 50)
        buf.pixels[..., 3] = np.arange(50 * 50).reshape(50, 50) % 256
        alpha = buf.pixels[..., 3].copy()

        BlurRenderer().blur_region(buf, region(0, 0, 50, 50))

        assert np.array_equal(buf.pixels[..., 3], alpha)

    def test_outside_region_untouched(self):
        buf = noise_buffer(100, 100, seed=3)
        original = buf.pixels.copy()

        BlurRenderer().blur_region(buf, region(40, 40, 20, 20))

        mask = np.ones((100, 100), dtype=bool)
        mask[40:60, 40:60] = False
        assert np.array_equal(buf.pixels[mask], original[mask])

    def test_region_is_clamped(self):
        buf = noise_buffer(30, 30)
        assert BlurRenderer().blur_region(buf, region(20, 20, 50, 50))

    def test_empty_region_is_noop(self):
        buf = noise_buffer(30, 30)
        original = buf.data.copy()
        assert not BlurRenderer().blur_region(buf, region(40, 40, 10, 10))
        assert np.array_equal(buf.data, original)

    def test_uniform_region_unchanged(self, black_buffer):
        original = black_buffer.data.copy()
        BlurRenderer().blur_region(black_buffer, region(10, 10, 100, 100))
        assert np.array_equal(black_buffer.data, original)

    def test_radius_limited_by_region_size(self):
        renderer = BlurRenderer()
        assert renderer.effective_radius(region(0, 0, 40, 8, radius=35), 40, 8) == 2
        assert renderer.effective_radius(region(0, 0, 400, 400, radius=35), 400, 400) == 35

    def test_tiny_region_radius_is_at_least_one(self):
        renderer = BlurRenderer()
        assert renderer.effective_radius(region(0, 0, 3, 3), 3, 3) == 1
        assert renderer.effective_radius(region(0, 0, 40, 1), 40, 1) == 1

    def test_tiny_region_is_actually_blurred(self):
        """A region narrower than the radius divisor still gets its pixels changed."""
        buf = make_buffer(20, 20, (0, 0, 0))
        checker = (np.indices((3, 3)).sum(axis=0) % 2 * 255).astype(np.uint8)
        buf.pixels[10:13, 10:13, :3] = checker[:, :, None]
        before = buf.pixels[10:13, 10:13, :3].copy()

        assert BlurRenderer().blur_region(buf, region(10, 10, 3, 3))

        after = buf.pixels[10:13, 10:13, :3]
        assert not np.array_equal(after, before)
        assert after.astype(float).var() < before.astype(float).var()

    def test_passes_by_kind(self):
        renderer = BlurRenderer(BlurConfig(face_passes=2, plate_passes=7))
        assert renderer.passes_for(RegionKind.FACE) == 2
        assert renderer.passes_for(RegionKind.HEAD) == 2
        assert renderer.passes_for(RegionKind.PLATE) == 7

    def test_busy_buffer_raises(self):
        buf = noise_buffer(30, 30)
        with buf.exclusive_write():
            with pytest.raises(BufferBusyError):
                BlurRenderer().blur_region(buf, region(0, 0, 30, 30))
