"""
PixelBuffer model: the RGBA raster the redaction pipeline reads and writes.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Tuple

import cv2
import numpy as np


class BufferBusyError(RuntimeError):
    """Raised when a second writer tries to mutate a buffer that is being written."""


class PixelBuffer:
    """
    Mutable RGBA pixel buffer owned by the caller for one pipeline invocation.

    The pixel data is a flat uint8 array of length width * height * 4
    (R, G, B, A per pixel). `pixels` is an (height, width, 4) view of the
    same memory, so writes through either are visible in both.

    Only one writer may hold the buffer at a time; see `exclusive_write`.
    """

    CHANNELS = 4

    def __init__(self, width: int, height: int, data: np.ndarray):
        if width <= 0 or height <= 0:
            raise ValueError(f"Buffer dimensions must be positive, got {width}x{height}")
        if not isinstance(data, np.ndarray):
            raise ValueError(f"Buffer data must be a numpy array, got {type(data).__name__}")
        if data.dtype != np.uint8:
            raise ValueError(f"Buffer data must be uint8, got {data.dtype}")
        # flattening a strided view would copy, and writes would miss the caller's pixels
        if not data.flags["C_CONTIGUOUS"]:
            raise ValueError("Buffer data must be C-contiguous; pass a copy of cropped or strided views")
        if data.ndim != 1:
            data = data.reshape(-1)
        expected = width * height * self.CHANNELS
        if data.size != expected:
            raise ValueError(
                f"Buffer length {data.size} does not match {width}x{height}x{self.CHANNELS}={expected}"
            )
        self._width = int(width)
        self._height = int(height)
        self._data = data
        self._write_lock = threading.Lock()

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self._width, self._height)

    @property
    def data(self) -> np.ndarray:
        """Flat RGBA channel array."""
        return self._data

    @property
    def pixels(self) -> np.ndarray:
        """(height, width, 4) view over the flat channel array."""
        return self._data.reshape(self._height, self._width, self.CHANNELS)

    @property
    def rgb(self) -> np.ndarray:
        """(height, width, 3) view over the colour channels."""
        return self.pixels[:, :, :3]

    @property
    def is_writing(self) -> bool:
        return self._write_lock.locked()

    @contextmanager
    def exclusive_write(self) -> Iterator[np.ndarray]:
        """
        Hold the buffer's single write slot for the duration of the block.

        Yields the (height, width, 4) pixel view.

        Raises:
            BufferBusyError: If another write is already in progress
                (concurrent or reentrant use).
        """
        if not self._write_lock.acquire(blocking=False):
            raise BufferBusyError("PixelBuffer is already being written")
        try:
            yield self.pixels
        finally:
            self._write_lock.release()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self._width, self._height, self._data.copy())

    def to_bgr(self) -> np.ndarray:
        """Return a BGR copy for writing with OpenCV."""
        return cv2.cvtColor(self.pixels, cv2.COLOR_RGBA2BGR)

    @classmethod
    def blank(cls, width: int, height: int, rgba: Tuple[int, int, int, int] = (0, 0, 0, 255)) -> "PixelBuffer":
        """Create a buffer filled with one colour."""
        arr = np.empty((height, width, cls.CHANNELS), dtype=np.uint8)
        arr[:, :] = rgba
        return cls(width, height, arr.reshape(-1))

    @classmethod
    def from_rgba(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Adapter: Wrap an (height, width, 4) RGBA array without copying.

        The array must be C-contiguous uint8 so redaction writes land in the
        caller's memory. Cropped views are rejected rather than copied.

        Raises:
            ValueError: On wrong shape, dtype or memory layout.
        """
        if array.ndim != 3 or array.shape[2] != cls.CHANNELS:
            raise ValueError(f"Expected (h, w, 4) RGBA array, got shape {array.shape}")
        h, w = array.shape[:2]
        return cls(w, h, array)

    @classmethod
    def from_bytes(cls, width: int, height: int, raw: bytes) -> "PixelBuffer":
        """Adapter: Create from raw RGBA bytes (e.g. a canvas ImageData payload)."""
        return cls(width, height, np.frombuffer(bytearray(raw), dtype=np.uint8))

    @classmethod
    def from_bgr(cls, frame: np.ndarray) -> "PixelBuffer":
        """
        Adapter: Convert an OpenCV frame (BGR, BGRA or grayscale) to an RGBA buffer.
        """
        if frame.ndim == 2:
            rgba = cv2.cvtColor(frame, cv2.COLOR_GRAY2RGBA)
        elif frame.shape[2] == 4:
            rgba = cv2.cvtColor(frame, cv2.COLOR_BGRA2RGBA)
        else:
            rgba = cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)
        return cls.from_rgba(rgba)

    def __repr__(self) -> str:
        return f"PixelBuffer({self._width}x{self._height})"
