#!/usr/bin/env python3
"""
GPU Filter Capability
Surfaces and the label-to-mask filter used by the segmentation task
"""
import cv2
import numpy as np
from typing import Dict, Optional, Tuple


class Surface:
    """Fixed-size pixel buffer with an explicit release"""

    def __init__(self, height: int, width: int, channels: int = 4, dtype=np.uint8):
        if height <= 0 or width <= 0 or channels <= 0:
            raise ValueError(f"Invalid surface size: {height}x{width}x{channels}")
        self.height = height
        self.width = width
        self.channels = channels
        self._array = np.zeros((height, width, channels), dtype=dtype)

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.height, self.width, self.channels)

    @property
    def released(self) -> bool:
        return self._array is None

    @property
    def array(self) -> np.ndarray:
        if self._array is None:
            raise RuntimeError("Surface has been released")
        return self._array

    def release(self):
        self._array = None


class GpuFilter:
    """
    Capability interface for the mask filter.

    Parameters are addressed by name, kernels by the index returned from
    find_kernel(). All state lives on the instance.
    """

    KERNELS = ('LabelToTex', 'BilateralFilter')
    FLOAT_PARAMETERS = ('sigmaColor', 'sigmaTexel')
    INT_PARAMETERS = ('Width', 'Height', 'step', 'radius')

    def __init__(self):
        self.parameters: Dict[str, float] = {}

    def find_kernel(self, name: str) -> int:
        if name not in self.KERNELS:
            raise ValueError(f"Unknown kernel: {name}")
        return self.KERNELS.index(name)

    def set_float(self, name: str, value: float):
        if name not in self.FLOAT_PARAMETERS:
            raise ValueError(f"Unknown float parameter: {name}")
        self.parameters[name] = float(value)

    def set_int(self, name: str, value: int):
        if name not in self.INT_PARAMETERS:
            raise ValueError(f"Unknown int parameter: {name}")
        self.parameters[name] = int(value)

    def get(self, name: str):
        if name not in self.parameters:
            raise ValueError(f"Parameter not set: {name}")
        return self.parameters[name]

    def create_texture(self, width: int, height: int) -> Surface:
        return Surface(height, width, 4, np.uint8)

    def dispatch(self, kernel: int, label_buffer: Optional[np.ndarray] = None,
                 input_texture: Optional[Surface] = None,
                 output_texture: Optional[Surface] = None):
        raise NotImplementedError

    def release(self):
        self.parameters.clear()


class OpenCVGpuFilter(GpuFilter):
    """GpuFilter backed by OpenCV, runs on the host"""

    def dispatch(self, kernel: int, label_buffer: Optional[np.ndarray] = None,
                 input_texture: Optional[Surface] = None,
                 output_texture: Optional[Surface] = None):
        if output_texture is None:
            raise ValueError("Kernel dispatch requires an output texture")

        name = self.KERNELS[kernel]
        if name == 'LabelToTex':
            if label_buffer is None:
                raise ValueError("LabelToTex requires a label buffer")
            self._label_to_tex(label_buffer, output_texture)
        else:
            if input_texture is None:
                raise ValueError("BilateralFilter requires an input texture")
            self._bilateral_filter(input_texture, output_texture)

    def _label_to_tex(self, label_buffer: np.ndarray, output_texture: Surface):
        width, height = self.get('Width'), self.get('Height')
        if label_buffer.size != width * height:
            raise ValueError(f"Label buffer has {label_buffer.size} values, expected {width * height}")

        labels = np.clip(label_buffer.reshape(height, width), 0.0, 1.0)
        # Flip to bottom-left origin
        value = np.flipud(labels * 255.0 + 0.5).astype(np.uint8)

        out = output_texture.array
        out[..., 0] = value
        out[..., 1] = value
        out[..., 2] = value
        out[..., 3] = 255

    def _bilateral_filter(self, input_texture: Surface, output_texture: Surface):
        width, height = self.get('Width'), self.get('Height')
        radius, step = self.get('radius'), self.get('step')
        sigma_color = self.get('sigmaColor')
        sigma_space = self.get('sigmaTexel') * max(width, height)

        labels = input_texture.array[..., 0].astype(np.float32) / 255.0
        filtered = cv2.bilateralFilter(labels, 2 * radius * step + 1, sigma_color, sigma_space)
        value = (np.clip(filtered, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

        out = output_texture.array
        out[..., 0] = value
        out[..., 1] = value
        out[..., 2] = value
        out[..., 3] = 255
