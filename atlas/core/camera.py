"""
Camera Controller Module.

Owns the zoom/pan state of the map viewport:
- Centering the image at the default zoom once both sizes are known
- Clamping scale and translation so the map never leaves the viewport
- Zooming about a pivot point (mouse wheel)
- Panning relative to the translate recorded at drag start
"""

import logging
from dataclasses import replace
from typing import Optional

from atlas.core.map_math import Camera, ImageSize, ViewportSize, viewport_to_map

logger = logging.getLogger(__name__)

MIN_ZOOM = 0.1
MAX_ZOOM = 4.0
DEFAULT_ZOOM = 0.5
WHEEL_ZOOM_STEP = 1.15


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_scale(scale: float) -> float:
    """Hard-clamps a zoom factor to [MIN_ZOOM, MAX_ZOOM]."""
    return _clamp(scale, MIN_ZOOM, MAX_ZOOM)


def clamp_camera(
    camera: Camera, viewport: ViewportSize, image_size: Optional[ImageSize]
) -> Camera:
    """
    Projects a camera into the valid range.

    The scale is always clamped. Each translation axis is then bounded so that
    at least ``min(viewport / 2, scaled_image / 2)`` pixels of the image stay
    inside the viewport on that axis. Without a laid-out viewport or a known
    image size only the scale is clamped.

    The function is idempotent: the bounds depend only on the (already
    clamped) scale.

    Args:
        camera: Camera to project.
        viewport: Current viewport size.
        image_size: Natural size of the displayed image, if known.

    Returns:
        Camera: The clamped camera.
    """
    scale = clamp_scale(camera.scale)
    if not viewport.is_laid_out or image_size is None or image_size.is_empty:
        return replace(camera, scale=scale)

    tx = _clamp_axis(camera.tx, viewport.width, image_size.width * scale)
    ty = _clamp_axis(camera.ty, viewport.height, image_size.height * scale)
    return Camera(scale=scale, tx=tx, ty=ty)


def _clamp_axis(translate: float, viewport_extent: float, scaled_extent: float) -> float:
    allowance = min(viewport_extent / 2.0, scaled_extent / 2.0)
    # Far edge of the image must reach `allowance` into the viewport,
    # near edge must stay `allowance` short of the opposite side.
    low = allowance - scaled_extent
    high = viewport_extent - allowance
    return _clamp(translate, low, high)


class CameraController:
    """
    Zoom/pan state machine for one map view.

    The controller is re-initialized whenever the displayed image changes
    (natural size change or explicit reset) and otherwise only mutated by
    wheel and drag input. It is never persisted.
    """

    def __init__(self, default_scale: float = DEFAULT_ZOOM) -> None:
        """
        Initializes the controller with no viewport and no image.

        Args:
            default_scale: Zoom used when centering a newly shown map.
        """
        self.default_scale = clamp_scale(default_scale)
        self.camera = Camera(scale=self.default_scale)
        self.viewport = ViewportSize(0, 0)
        self.image_size: Optional[ImageSize] = None
        self.image_size_is_provisional = False
        self._initialized_for: Optional[ImageSize] = None
        self._pan_origin: Optional[Camera] = None

    @property
    def is_initialized(self) -> bool:
        """True once the camera has been centered for the current image."""
        return self._initialized_for is not None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(
        self,
        viewport: Optional[ViewportSize] = None,
        image_size: Optional[ImageSize] = None,
        default_scale: Optional[float] = None,
        force: bool = False,
    ) -> bool:
        """
        Centers the image in the viewport at the default scale.

        Runs once per map-changed event: calling it again for the same image
        is a no-op unless ``force`` is set. If either size is still unknown the
        call is deferred and returns False; a later size update retries.

        Args:
            viewport: New viewport size, or None to keep the current one.
            image_size: New image size, or None to keep the current one.
            default_scale: Overrides the default zoom for this and later resets.
            force: Re-center even if already initialized for this image.

        Returns:
            bool: True if the camera was (re)centered.
        """
        if viewport is not None:
            self.viewport = viewport
        if image_size is not None:
            self.image_size = image_size
        if default_scale is not None:
            self.default_scale = clamp_scale(default_scale)

        if (
            not self.viewport.is_laid_out
            or self.image_size is None
            or self.image_size.is_empty
        ):
            logger.debug("Camera init deferred: viewport or image size unknown")
            return False

        if not force and self._initialized_for == self.image_size:
            return False

        scale = self.default_scale
        tx = (self.viewport.width - self.image_size.width * scale) / 2.0
        ty = (self.viewport.height - self.image_size.height * scale) / 2.0
        self.camera = self.clamp(Camera(scale=scale, tx=tx, ty=ty))
        self._initialized_for = self.image_size
        self._pan_origin = None
        logger.debug(
            f"Camera centered for {self.image_size.width}x{self.image_size.height} "
            f"in {self.viewport.width}x{self.viewport.height}: {self.camera}"
        )
        return True

    def reset_view(self) -> bool:
        """Re-centers at the default zoom level."""
        return self.initialize(force=True)

    def set_viewport_size(self, viewport: ViewportSize) -> None:
        """
        Records a new viewport size (widget resize).

        Completes a deferred initialization, otherwise re-clamps the current
        camera against the new bounds.
        """
        self.viewport = viewport
        if not self.initialize():
            self.camera = self.clamp(self.camera)

    def set_provisional_image_size(self, image_size: ImageSize) -> None:
        """
        Uses a caller-supplied fallback size until the real image reports in.

        Ignored once a natural size has been reported for the current image.
        """
        if self.image_size is not None and not self.image_size_is_provisional:
            return
        self.image_size = image_size
        self.image_size_is_provisional = True
        self.initialize()

    def on_image_loaded(self, natural_size: ImageSize) -> bool:
        """
        Accepts the natural size reported by the rendered image.

        A size different from the one the camera was centered for means the
        map changed, so the camera is re-initialized. This also supersedes any
        provisional size without an explicit reset.

        Returns:
            bool: True if the camera was re-centered.
        """
        self.image_size_is_provisional = False
        self.image_size = natural_size
        if self._initialized_for != natural_size:
            self._initialized_for = None
        return self.initialize()

    def invalidate(self) -> None:
        """Marks the map as changed so the next size report re-centers."""
        self._initialized_for = None

    # ------------------------------------------------------------------
    # Clamping and zoom
    # ------------------------------------------------------------------

    def clamp(self, camera: Camera) -> Camera:
        """Clamps a camera against the current viewport and image."""
        return clamp_camera(camera, self.viewport, self.image_size)

    def zoom_at(self, target_scale: float, pivot_x: float, pivot_y: float) -> Camera:
        """
        Changes scale while keeping the map point under the pivot stationary.

        Args:
            target_scale: Requested zoom; clamped to the zoom range.
            pivot_x: Pivot X in viewport coordinates.
            pivot_y: Pivot Y in viewport coordinates.

        Returns:
            Camera: The new (clamped) camera.
        """
        new_scale = clamp_scale(target_scale)
        map_x, map_y = viewport_to_map(pivot_x, pivot_y, self.camera)
        candidate = Camera(
            scale=new_scale,
            tx=pivot_x - map_x * new_scale,
            ty=pivot_y - map_y * new_scale,
        )
        self.camera = self.clamp(candidate)
        return self.camera

    def wheel(self, delta_y: float, pivot_x: float, pivot_y: float) -> Camera:
        """
        Zooms one wheel step about the cursor.

        Args:
            delta_y: Wheel delta; positive zooms in, negative zooms out.
            pivot_x: Cursor X in viewport coordinates.
            pivot_y: Cursor Y in viewport coordinates.
        """
        if delta_y == 0:
            return self.camera
        factor = WHEEL_ZOOM_STEP if delta_y > 0 else 1.0 / WHEEL_ZOOM_STEP
        return self.zoom_at(self.camera.scale * factor, pivot_x, pivot_y)

    # ------------------------------------------------------------------
    # Panning
    # ------------------------------------------------------------------

    @property
    def is_panning(self) -> bool:
        """True between begin_pan and end_pan."""
        return self._pan_origin is not None

    def begin_pan(self) -> None:
        """Records the translate that later pan deltas are applied to."""
        self._pan_origin = self.camera

    def pan(self, delta_x: float, delta_y: float) -> Camera:
        """
        Moves the camera by a delta measured from the drag start.

        Clamps on every call so no intermediate frame is out of bounds.
        """
        origin = self._pan_origin or self.camera
        self.camera = self.clamp(
            Camera(
                scale=origin.scale,
                tx=origin.tx + delta_x,
                ty=origin.ty + delta_y,
            )
        )
        return self.camera

    def end_pan(self) -> None:
        """Forgets the drag-start translate."""
        self._pan_origin = None
