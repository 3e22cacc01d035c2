"""
Screen capture on top of mss and Pillow.

Displays are reported in logical units (what input injection uses). Captured
images are in physical pixels, so on HiDPI displays the image is larger than
the display bounds by the scale factor.
"""

import base64
import io
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Tuple

import mss
from mss.exception import ScreenShotError
from PIL import Image

from cua_agent.domain.errors import (
    CaptureFailedError,
    InvalidDisplayError,
    InvalidRectError,
    NoDisplaysError,
)

logger = logging.getLogger(__name__)


@dataclass
class Display:
    """A connected display in logical coordinates."""

    index: int
    x: int
    y: int
    width: int
    height: int
    scale_factor: float = 1.0
    is_primary: bool = False

    @property
    def physical_size(self) -> Tuple[int, int]:
        return int(self.width * self.scale_factor), int(self.height * self.scale_factor)

    def to_dict(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "scale_factor": self.scale_factor,
            "is_primary": self.is_primary,
        }


@dataclass
class Region:
    """A rectangle in logical coordinates relative to a display."""

    x: int
    y: int
    width: int
    height: int

    def validate(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise InvalidRectError()


class CaptureBackend(Protocol):
    """Protocol for screen capture backends."""

    def displays(self) -> List[Display]:
        """List connected displays, primary first."""
        ...

    def capture(self, display_index: int = 0, region: Optional[Region] = None) -> Image.Image:
        """Capture a display (or a region of it) in physical pixels."""
        ...


class MSSCapture:
    """
    Capture backend built on mss.

    mss opens a per-thread handle, so a fresh instance is created for every
    call. Scale factors are measured once per display and cached.
    """

    def __init__(self) -> None:
        self._scale_cache: Dict[int, float] = {}
        self._lock = threading.Lock()

    def displays(self) -> List[Display]:
        with mss.mss() as sct:
            monitors = sct.monitors[1:]
            if not monitors:
                raise NoDisplaysError()

            result = []
            for index, monitor in enumerate(monitors):
                result.append(
                    Display(
                        index=index,
                        x=monitor["left"],
                        y=monitor["top"],
                        width=monitor["width"],
                        height=monitor["height"],
                        scale_factor=self._scale_for(sct, index, monitor),
                        is_primary=index == 0,
                    )
                )
            return result

    def _scale_for(self, sct, index: int, monitor: Dict[str, int]) -> float:
        with self._lock:
            cached = self._scale_cache.get(index)
        if cached is not None:
            return cached

        # Grab a thin strip; its physical width over logical width is the scale.
        probe = {"left": monitor["left"], "top": monitor["top"], "width": monitor["width"], "height": 1}
        try:
            shot = sct.grab(probe)
            scale = shot.width / monitor["width"] if monitor["width"] else 1.0
        except ScreenShotError as e:
            logger.warning(f"Could not measure scale factor for display {index}: {e}")
            scale = 1.0

        with self._lock:
            self._scale_cache[index] = scale
        return scale

    def capture(self, display_index: int = 0, region: Optional[Region] = None) -> Image.Image:
        displays = self.displays()
        if display_index < 0 or display_index >= len(displays):
            raise InvalidDisplayError(
                f"screen: invalid display index {display_index} (have {len(displays)})"
            )
        display = displays[display_index]

        if region is not None:
            region.validate()
            area = {
                "left": display.x + region.x,
                "top": display.y + region.y,
                "width": region.width,
                "height": region.height,
            }
        else:
            area = {
                "left": display.x,
                "top": display.y,
                "width": display.width,
                "height": display.height,
            }

        try:
            with mss.mss() as sct:
                shot = sct.grab(area)
        except ScreenShotError as e:
            raise CaptureFailedError(f"screen: capture failed: {e}") from e

        return Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")


def resized_dimensions(width: int, height: int, max_dimension: int) -> Tuple[int, int]:
    """Dimensions after shrinking so the largest side is at most ``max_dimension``."""
    if width <= max_dimension and height <= max_dimension:
        return width, height
    if width > height:
        return max_dimension, max(1, int(height * max_dimension / width))
    return max(1, int(width * max_dimension / height)), max_dimension


def encode_screenshot(image: Image.Image, max_dimension: int = 1280, quality: int = 60) -> Tuple[str, int, int]:
    """
    Resize and JPEG-encode a captured image.

    Returns:
        Tuple of (base64 JPEG, width, height) of the encoded image
    """
    width, height = resized_dimensions(image.width, image.height, max_dimension)
    if (width, height) != image.size:
        image = image.resize((width, height), Image.Resampling.LANCZOS)
    if image.mode != "RGB":
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return base64.b64encode(buffer.getvalue()).decode("utf-8"), width, height


def display_at(backend: CaptureBackend, index: int) -> Display:
    """Look up one display, raising the screen taxonomy errors."""
    displays = backend.displays()
    if not displays:
        raise NoDisplaysError()
    if index < 0 or index >= len(displays):
        raise InvalidDisplayError(f"screen: invalid display index {index} (have {len(displays)})")
    return displays[index]


def primary_display(backend: CaptureBackend) -> Display:
    displays = backend.displays()
    if not displays:
        raise NoDisplaysError()
    for display in displays:
        if display.is_primary:
            return display
    return displays[0]
