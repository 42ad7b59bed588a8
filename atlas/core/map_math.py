"""
Map Math Utilities.

Pure coordinate conversion between the three spaces used by the map view:

1. Client space: pixel coordinates of a pointer event, relative to some
   origin outside the viewport (window or screen).
2. Viewport space: pixel coordinates relative to the viewport's top-left.
3. Normalized space: (0.0, 0.0) top-left to (1.0, 1.0) bottom-right of the
   map image, independent of the image's pixel dimensions.

The camera maps image pixels to viewport pixels with a uniform scale followed
by a translation: ``viewport = image * scale + translate``.
"""

import math
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Camera:
    """
    Pan/zoom transform applied to the map image inside its viewport.

    Attributes:
        scale: Uniform zoom factor (1.0 = one image pixel per screen pixel).
        tx: Horizontal translation of the image's left edge, in viewport pixels.
        ty: Vertical translation of the image's top edge, in viewport pixels.
    """

    scale: float = 1.0
    tx: float = 0.0
    ty: float = 0.0


@dataclass(frozen=True)
class ImageSize:
    """Natural pixel dimensions of a map image."""

    width: int
    height: int

    @property
    def is_empty(self) -> bool:
        """True if either dimension is not positive."""
        return self.width <= 0 or self.height <= 0


@dataclass(frozen=True)
class ViewportSize:
    """Laid-out pixel dimensions of the widget showing the map."""

    width: float
    height: float

    @property
    def is_laid_out(self) -> bool:
        """True once both dimensions are positive."""
        return self.width > 0 and self.height > 0


def clamp01(value: float) -> float:
    """
    Clamps a normalized coordinate to [0.0, 1.0].

    NaN collapses to the map centre (0.5) rather than propagating.
    """
    if math.isnan(value):
        return 0.5
    return min(1.0, max(0.0, value))


def viewport_to_map(
    viewport_x: float, viewport_y: float, camera: Camera
) -> Tuple[float, float]:
    """
    Converts viewport-local pixel coordinates to image pixel coordinates.

    Args:
        viewport_x: X relative to the viewport's left edge.
        viewport_y: Y relative to the viewport's top edge.
        camera: Current camera.

    Returns:
        Tuple[float, float]: (map_x, map_y) in image pixels, unclamped.
    """
    return (
        (viewport_x - camera.tx) / camera.scale,
        (viewport_y - camera.ty) / camera.scale,
    )


def map_to_viewport(map_x: float, map_y: float, camera: Camera) -> Tuple[float, float]:
    """Inverse of viewport_to_map."""
    return (map_x * camera.scale + camera.tx, map_y * camera.scale + camera.ty)


def client_to_normalized(
    client_x: float,
    client_y: float,
    camera: Camera,
    image_size: ImageSize,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> Tuple[float, float]:
    """
    Converts a pointer position to normalized map coordinates.

    Args:
        client_x: Pointer X in client space.
        client_y: Pointer Y in client space.
        camera: Current camera.
        image_size: Natural size of the displayed map image.
        origin_x: Client X of the viewport's left edge.
        origin_y: Client Y of the viewport's top edge.

    Returns:
        Tuple[float, float]: (norm_x, norm_y) clamped to [0.0, 1.0].

    Raises:
        ValueError: If the image size is empty.
    """
    if image_size.is_empty:
        raise ValueError("Image dimensions must be positive")

    map_x, map_y = viewport_to_map(client_x - origin_x, client_y - origin_y, camera)
    return (clamp01(map_x / image_size.width), clamp01(map_y / image_size.height))


def normalized_to_viewport(
    norm_x: float, norm_y: float, camera: Camera, image_size: ImageSize
) -> Tuple[float, float]:
    """
    Converts normalized map coordinates to a viewport-local pixel position.

    Used to place pins on screen and to hit-test them.
    """
    return map_to_viewport(norm_x * image_size.width, norm_y * image_size.height, camera)


def normalized_to_client(
    norm_x: float,
    norm_y: float,
    camera: Camera,
    image_size: ImageSize,
    origin_x: float = 0.0,
    origin_y: float = 0.0,
) -> Tuple[float, float]:
    """Converts normalized coordinates back to client space."""
    x, y = normalized_to_viewport(norm_x, norm_y, camera, image_size)
    return (x + origin_x, y + origin_y)


def is_inside_image(
    viewport_x: float, viewport_y: float, camera: Camera, image_size: ImageSize
) -> bool:
    """True if the viewport point lies over the (unclamped) image area."""
    map_x, map_y = viewport_to_map(viewport_x, viewport_y, camera)
    return 0.0 <= map_x <= image_size.width and 0.0 <= map_y <= image_size.height


def distance_squared(x1: float, y1: float, x2: float, y2: float) -> float:
    """Squared Euclidean distance between two points."""
    dx = x2 - x1
    dy = y2 - y1
    return dx * dx + dy * dy
