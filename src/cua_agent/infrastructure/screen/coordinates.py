"""
Coordinate pipeline.

The model sees a resized screenshot, input injection works in logical
display units, and the framebuffer is in physical pixels. ``CoordinateState``
remembers what the last screenshot looked like and turns the (x, y) the model
emitted into a logical point on the screen.

Model coordinates come in two flavours:

- normalized: a 0-1000 grid over the logical screen
- image pixels: pixels of the resized screenshot

Which one a pair is gets decided by ``classify`` with four ordered rules.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

NORMALIZED_MAX = 1000
DEFAULT_SCREEN_SIZE = (1920, 1080)


class CoordinateSpace(str, Enum):
    """How a model-emitted coordinate pair was interpreted."""

    NORMALIZED = "normalized"
    IMAGE_PIXELS = "image_pixels"


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def denormalize(value: float, size: int) -> int:
    """Map a 0-1000 value onto ``[0, size - 1]``."""
    if size <= 0:
        return 0
    return clamp(int(value / NORMALIZED_MAX * size + 0.5), 0, size - 1)


def normalize(value: float, size: int) -> int:
    """Map a pixel offset onto the 0-1000 grid."""
    if size <= 0:
        return 0
    return clamp(int(value * NORMALIZED_MAX / size + 0.5), 0, NORMALIZED_MAX)


def physical_to_logical(value: float, scale_factor: float) -> float:
    if scale_factor <= 0:
        return value
    return value / scale_factor


def logical_to_physical(value: float, scale_factor: float) -> float:
    if scale_factor <= 0:
        return value
    return value * scale_factor


@dataclass
class CoordinateSnapshot:
    """Immutable view of the coordinate state."""

    logical_size: Tuple[int, int]
    image_size: Tuple[int, int]
    effective_scale: float
    origin: Tuple[int, int]
    from_screenshot: bool


class CoordinateState:
    """
    Per-agent coordinate facts, set by the screenshot tool.

    Holds the logical size of the captured area, the size of the image the
    model saw, the effective image→logical scale and the screen origin of
    the captured area (display offset plus region offset).

    Example:
        state = CoordinateState()
        state.update(logical_size=(1512, 982), image_size=(1280, 831),
                     physical_width=3024, scale_factor=2.0)
        state.to_logical(500, 500)   # (756, 491, CoordinateSpace.NORMALIZED)
    """

    def __init__(self, fallback_size: Optional[Tuple[int, int]] = None) -> None:
        self._lock = threading.Lock()
        self._fallback_size = fallback_size or DEFAULT_SCREEN_SIZE
        self._logical_size: Optional[Tuple[int, int]] = None
        self._image_size: Optional[Tuple[int, int]] = None
        self._effective_scale = 1.0
        self._origin = (0, 0)

    def set_fallback_size(self, size: Tuple[int, int]) -> None:
        """Screen size to assume before the first screenshot (usually the primary display)."""
        with self._lock:
            self._fallback_size = size

    def update(
        self,
        logical_size: Tuple[int, int],
        image_size: Tuple[int, int],
        physical_width: Optional[int] = None,
        scale_factor: float = 1.0,
        origin: Tuple[int, int] = (0, 0),
    ) -> float:
        """
        Record the geometry of a new screenshot.

        Args:
            logical_size: Captured area in logical units
            image_size: Size of the (resized) image sent to the model
            physical_width: Width of the raw capture in physical pixels
            scale_factor: Display scale factor (physical / logical)
            origin: Screen position of the captured area's top-left corner

        Returns:
            The effective scale from image pixels to logical units
        """
        if physical_width is None:
            physical_width = int(logical_size[0] * scale_factor)
        image_width = image_size[0] or 1
        scale = scale_factor if scale_factor > 0 else 1.0
        effective = (physical_width / image_width) / scale

        with self._lock:
            self._logical_size = logical_size
            self._image_size = image_size
            self._effective_scale = effective
            self._origin = origin
        return effective

    def reset(self) -> None:
        with self._lock:
            self._logical_size = None
            self._image_size = None
            self._effective_scale = 1.0
            self._origin = (0, 0)

    def snapshot(self) -> CoordinateSnapshot:
        with self._lock:
            logical = self._logical_size or self._fallback_size
            return CoordinateSnapshot(
                logical_size=logical,
                image_size=self._image_size or logical,
                effective_scale=self._effective_scale,
                origin=self._origin,
                from_screenshot=self._logical_size is not None,
            )

    @property
    def effective_scale(self) -> float:
        with self._lock:
            return self._effective_scale

    def classify(self, x: float, y: float) -> CoordinateSpace:
        """Decide whether (x, y) is normalized or image pixels."""
        snap = self.snapshot()
        image_w, image_h = snap.image_size

        # 1. Beyond the normalized range: must be image pixels.
        if x > NORMALIZED_MAX or y > NORMALIZED_MAX:
            return CoordinateSpace.IMAGE_PIXELS
        # 2. Outside the image: cannot be image pixels.
        if x >= image_w or y >= image_h:
            return CoordinateSpace.NORMALIZED
        # 3. Large image with small coordinates: the model is using the grid.
        if image_w > NORMALIZED_MAX or image_h > NORMALIZED_MAX:
            return CoordinateSpace.NORMALIZED
        # 4. Small image: pixels.
        return CoordinateSpace.IMAGE_PIXELS

    def to_logical(self, x: float, y: float) -> Tuple[int, int, CoordinateSpace]:
        """
        Convert a model coordinate to a logical point inside the captured area.

        Never fails: out-of-range input is clamped to ``[0, size - 1]``.
        """
        snap = self.snapshot()
        width, height = snap.logical_size
        space = self.classify(x, y)

        if space == CoordinateSpace.NORMALIZED:
            return denormalize(x, width), denormalize(y, height), space

        lx = int(x * snap.effective_scale + 0.5)
        ly = int(y * snap.effective_scale + 0.5)
        return clamp(lx, 0, width - 1), clamp(ly, 0, height - 1), space

    def to_screen(self, x: float, y: float) -> Tuple[int, int, CoordinateSpace]:
        """Like ``to_logical`` but offset by the captured area's screen origin."""
        lx, ly, space = self.to_logical(x, y)
        ox, oy = self.snapshot().origin
        return lx + ox, ly + oy, space
