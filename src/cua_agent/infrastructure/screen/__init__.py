"""Screen capture and the coordinate pipeline."""

from .capture import (
    CaptureBackend,
    Display,
    MSSCapture,
    Region,
    display_at,
    encode_screenshot,
    primary_display,
    resized_dimensions,
)
from .coordinates import (
    CoordinateSnapshot,
    CoordinateSpace,
    CoordinateState,
    denormalize,
    logical_to_physical,
    normalize,
    physical_to_logical,
)

__all__ = [
    "CaptureBackend",
    "Display",
    "MSSCapture",
    "Region",
    "display_at",
    "encode_screenshot",
    "primary_display",
    "resized_dimensions",
    "CoordinateSnapshot",
    "CoordinateSpace",
    "CoordinateState",
    "denormalize",
    "logical_to_physical",
    "normalize",
    "physical_to_logical",
]
