#!/usr/bin/env python3
"""
Image Sampler
Resizes and flips source images to a model's fixed input resolution
"""
import cv2
import numpy as np
from typing import Tuple

from .gpu_filter import Surface

Region = Tuple[int, int, int, int]


class ImageSampler:
    """
    Resize an arbitrary image into a cached surface of the target size.

    Sources are expected in display orientation (bottom-left origin, the
    first row is the bottom of the picture). The default vertical flip turns
    that into the top-left origin the models were trained on.
    """

    ASPECT_MODES = ('none', 'fit', 'fill')

    def __init__(self, width: int, height: int,
                 flip_horizontal: bool = False,
                 flip_vertical: bool = True,
                 aspect_mode: str = 'none',
                 interpolation: int = cv2.INTER_LINEAR):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid target size: {width}x{height}")
        if aspect_mode not in self.ASPECT_MODES:
            raise ValueError(f"Unknown aspect mode: {aspect_mode}")

        self.width = width
        self.height = height
        self.flip_horizontal = flip_horizontal
        self.flip_vertical = flip_vertical
        self.aspect_mode = aspect_mode
        self.interpolation = interpolation
        self.surface = None

    def sample(self, image: np.ndarray) -> np.ndarray:
        """Resize, then flip. Returns the cached surface, overwritten on every call."""
        rgb = self._to_rgb(image)

        if self.surface is None:
            self.surface = Surface(self.height, self.width, 3, np.uint8)

        resized = self._resize(rgb)
        out = self.surface.array
        out[...] = self._flip(resized)
        return out

    def layout(self, src_width: int, src_height: int) -> Tuple[Region, Region]:
        """
        Return (source_region, target_region) as (x, y, width, height).

        The source region is resized onto the target region; target pixels
        outside it stay black.
        """
        if src_width <= 0 or src_height <= 0:
            raise ValueError(f"Invalid source size: {src_width}x{src_height}")

        full_source = (0, 0, src_width, src_height)
        full_target = (0, 0, self.width, self.height)

        if self.aspect_mode == 'none':
            return full_source, full_target

        if self.aspect_mode == 'fit':
            scale = min(self.width / src_width, self.height / src_height)
            new_w = min(self.width, max(1, int(round(src_width * scale))))
            new_h = min(self.height, max(1, int(round(src_height * scale))))
            x0 = (self.width - new_w) // 2
            y0 = (self.height - new_h) // 2
            return full_source, (x0, y0, new_w, new_h)

        scale = max(self.width / src_width, self.height / src_height)
        crop_w = min(src_width, max(1, int(round(self.width / scale))))
        crop_h = min(src_height, max(1, int(round(self.height / scale))))
        x0 = (src_width - crop_w) // 2
        y0 = (src_height - crop_h) // 2
        return (x0, y0, crop_w, crop_h), full_target

    def to_source(self, values: np.ndarray, src_width: int, src_height: int) -> np.ndarray:
        """Map a per-pixel map in tensor space back onto the source image"""
        if values.shape[:2] != (self.height, self.width):
            raise ValueError(f"Expected a {self.height}x{self.width} map, got {values.shape[:2]}")

        (sx, sy, sw, sh), (tx, ty, tw, th) = self.layout(src_width, src_height)
        unflipped = self._flip(values)
        region = np.ascontiguousarray(unflipped[ty:ty + th, tx:tx + tw])

        resized = cv2.resize(region, (sw, sh), interpolation=self.interpolation)

        out = np.zeros((src_height, src_width) + values.shape[2:], dtype=values.dtype)
        # cv2 drops a single channel axis
        out[sy:sy + sh, sx:sx + sw] = resized.reshape((sh, sw) + values.shape[2:])
        return out

    def release(self):
        if self.surface is not None:
            self.surface.release()
            self.surface = None

    def _flip(self, image: np.ndarray) -> np.ndarray:
        if self.flip_horizontal and self.flip_vertical:
            return cv2.flip(image, -1)
        if self.flip_horizontal:
            return cv2.flip(image, 1)
        if self.flip_vertical:
            return cv2.flip(image, 0)
        return image

    def _to_rgb(self, image: np.ndarray) -> np.ndarray:
        if image is None or image.size == 0:
            raise ValueError("Cannot sample an empty image")
        if image.dtype != np.uint8:
            raise ValueError(f"Expected a uint8 image, got {image.dtype}")

        if image.ndim == 2:
            return cv2.cvtColor(image, cv2.COLOR_GRAY2RGB)
        if image.ndim == 3 and image.shape[2] == 1:
            return cv2.cvtColor(image[..., 0], cv2.COLOR_GRAY2RGB)
        if image.ndim == 3 and image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_RGBA2RGB)
        if image.ndim == 3 and image.shape[2] == 3:
            return image
        raise ValueError(f"Unsupported image shape: {image.shape}")

    def _resize(self, image: np.ndarray) -> np.ndarray:
        src_h, src_w = image.shape[:2]
        (sx, sy, sw, sh), (tx, ty, tw, th) = self.layout(src_w, src_h)

        source = image[sy:sy + sh, sx:sx + sw]
        resized = cv2.resize(source, (tw, th), interpolation=self.interpolation)
        if (tw, th) == (self.width, self.height):
            return resized

        # Letterbox
        canvas = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        canvas[ty:ty + th, tx:tx + tw] = resized
        return canvas
