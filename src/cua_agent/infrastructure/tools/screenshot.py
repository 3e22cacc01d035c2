"""
Screenshot Tool.

Captures a display (or part of it), shrinks it for the model and records
the geometry so later coordinate tools can map model coordinates back to
the screen.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from cua_agent.domain.errors import CUAError, InvalidRectError
from cua_agent.infrastructure.screen import Region, display_at, encode_screenshot

from .base import CUATool, error_response, success_response
from .context import ToolContext

logger = logging.getLogger(__name__)


class ScreenshotRegion(BaseModel):
    x: int = Field(description="Left edge X coordinate")
    y: int = Field(description="Top edge Y coordinate")
    width: int = Field(description="Width in pixels")
    height: int = Field(description="Height in pixels")


class ScreenshotArgs(BaseModel):
    display_index: Optional[int] = Field(
        default=None, description="The display index to capture (0 for primary display)"
    )
    region: Optional[ScreenshotRegion] = Field(
        default=None, description="Optional region to capture instead of full screen"
    )


class ScreenshotTool(CUATool):
    """Tool for capturing screenshots."""

    args_schema = ScreenshotArgs

    def __init__(self):
        super().__init__(
            name="screenshot",
            description=(
                "Capture a screenshot of the screen. Can capture the full display or a "
                "specific region. Returns the image as base64-encoded JPEG plus its "
                "dimensions; use coordinates from this image for click, scroll and drag."
            ),
        )

    async def execute(self, ctx: ToolContext, args: ScreenshotArgs) -> str:
        index = ctx.screen_index if args.display_index is None else args.display_index

        try:
            display = display_at(ctx.capture, index)
            region = None
            if args.region is not None:
                region = Region(args.region.x, args.region.y, args.region.width, args.region.height)
                region.validate()
                logical_size = (region.width, region.height)
                origin = (display.x + region.x, display.y + region.y)
            else:
                logical_size = (display.width, display.height)
                origin = (display.x, display.y)

            image = ctx.capture.capture(index, region)
        except InvalidRectError as e:
            return error_response(str(e), "Use a region with positive width and height")
        except CUAError as e:
            logger.error(f"Screenshot capture failed: {e}")
            return error_response(f"failed to capture screen: {e}")

        try:
            image_b64, width, height = encode_screenshot(
                image, ctx.screenshot.max_dimension, ctx.screenshot.quality
            )
        except (OSError, ValueError) as e:
            logger.error(f"Screenshot encode failed: {e}")
            return error_response(f"failed to encode JPEG: {e}")

        effective_scale = ctx.coordinates.update(
            logical_size=logical_size,
            image_size=(width, height),
            physical_width=image.width,
            scale_factor=display.scale_factor,
            origin=origin,
        )
        logger.info(
            f"Screenshot {image.width}x{image.height} -> {width}x{height}, "
            f"logical {logical_size[0]}x{logical_size[1]}, scale {effective_scale:.3f}"
        )

        return success_response(
            image_base64=image_b64,
            width=width,
            height=height,
            scale_factor=effective_scale,
            display_scale_factor=display.scale_factor,
            display_index=index,
            coordinate_info=(
                f"Image dimensions: {width}x{height} pixels. For click/scroll/drag, use pixel "
                f"coordinates from this image: x range [0, {width - 1}], y range [0, {height - 1}]."
            ),
        )
