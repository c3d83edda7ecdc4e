#!/usr/bin/env python3
"""
Tensor Packer
Converts resized RGB pixels into the numeric layout a model expects
"""
import numpy as np
from typing import Optional, Tuple


def pack_int8(pixels: np.ndarray, out: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Reinterpret each byte as a signed 8-bit value.

    A byte b becomes b - 256 when b > 127, otherwise b. This is a bit
    reinterpretation, not (b - 128) and not a rescale to [-1, 1]; models
    quantized under this convention expect exactly this mapping.
    """
    if pixels.dtype != np.uint8:
        raise ValueError(f"Expected uint8 pixels, got {pixels.dtype}")

    signed = np.ascontiguousarray(pixels).view(np.int8)
    if out is None:
        return signed.copy()

    if out.shape != pixels.shape:
        raise ValueError(f"Tensor shape {out.shape} does not match pixels {pixels.shape}")
    np.copyto(out, signed)
    return out


def pack_float(pixels: np.ndarray, out: Optional[np.ndarray] = None,
               value_range: Tuple[float, float] = (0.0, 255.0)) -> np.ndarray:
    """Map [0, 255] linearly onto value_range. The default passes values through."""
    low, high = value_range
    scale = (high - low) / 255.0

    values = pixels.astype(np.float32)
    if scale != 1.0:
        values *= scale
    if low != 0.0:
        values += low

    if out is None:
        return values

    if out.shape != pixels.shape:
        raise ValueError(f"Tensor shape {out.shape} does not match pixels {pixels.shape}")
    np.copyto(out, values)
    return out


class TensorPacker:
    """Packs pixels into a fixed input buffer allocated once"""

    DTYPES = {
        'int8': np.int8,
        'float32': np.float32,
    }

    def __init__(self, height: int, width: int, channels: int = 3,
                 dtype: str = 'float32',
                 value_range: Tuple[float, float] = (0.0, 255.0)):
        if dtype not in self.DTYPES:
            raise ValueError(f"Unsupported tensor dtype: {dtype}")
        if height <= 0 or width <= 0 or channels <= 0:
            raise ValueError(f"Invalid tensor shape: {height}x{width}x{channels}")

        self.dtype = dtype
        self.value_range = tuple(value_range)
        self.inputs = np.zeros((height, width, channels), dtype=self.DTYPES[dtype])

    @property
    def shape(self) -> Tuple[int, int, int]:
        return self.inputs.shape

    def pack(self, pixels: np.ndarray) -> np.ndarray:
        if pixels.shape != self.inputs.shape:
            raise ValueError(f"Pixels {pixels.shape} do not match tensor {self.inputs.shape}")

        if self.dtype == 'int8':
            return pack_int8(pixels, self.inputs)
        return pack_float(pixels, self.inputs, self.value_range)
