#!/usr/bin/env python3
"""
Base Vision Task
Shared sample -> pack -> invoke flow and resource ownership
"""
import logging
import numpy as np
from typing import Optional, Sequence, Tuple

from .image_sampler import ImageSampler
from .interpreter import Interpreter
from .tensor_packer import TensorPacker


def squeeze_batch(shape: Sequence[int]) -> Tuple[int, ...]:
    """Drop a leading batch dimension of 1"""
    shape = tuple(int(d) for d in shape)
    if len(shape) > 1 and shape[0] == 1:
        return shape[1:]
    return shape


class BaseVisionTask:
    """
    Owns an interpreter, an image sampler and a tensor packer.

    Subclasses build themselves inside a try block and call dispose() before
    re-raising, so a failed construction never leaks an interpreter.
    """

    def __init__(self):
        self.interpreter: Optional[Interpreter] = None
        self.sampler: Optional[ImageSampler] = None
        self.packer: Optional[TensorPacker] = None
        self.width = 0
        self.height = 0
        self.channels = 0
        self.disposed = False
        self._setup_logging()

    def _setup_logging(self):
        """Setup logging configuration"""
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(logging.INFO)

        if not self.logger.handlers:
            formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

    def load(self, interpreter: Interpreter,
             input_dtype: str = 'float32',
             value_range: Tuple[float, float] = (0.0, 255.0),
             aspect_mode: str = 'none',
             flip_horizontal: bool = False,
             input_shape: Optional[Sequence[int]] = None):
        """Allocate tensors and size the sampler and packer from input tensor 0"""
        self.interpreter = interpreter

        if input_shape is not None:
            interpreter.resize_input_tensor(0, input_shape)
        interpreter.allocate_tensors()

        info = interpreter.get_input_tensor_info(0)
        shape = squeeze_batch(info.shape)
        if len(shape) != 3:
            raise ValueError(f"Expected an [1, H, W, C] input tensor, got {info.shape}")

        self.height, self.width, self.channels = shape
        if self.channels != 3:
            raise ValueError(f"Expected 3 input channels, got {self.channels}")

        self.sampler = ImageSampler(self.width, self.height,
                                    flip_horizontal=flip_horizontal,
                                    aspect_mode=aspect_mode)
        self.packer = TensorPacker(self.height, self.width, self.channels,
                                   input_dtype, value_range)

        self.logger.info(f"Model loaded: input {info.shape} {input_dtype}")

    def invoke(self, image: np.ndarray):
        """Run the model on an image in display orientation"""
        if self.disposed:
            raise RuntimeError(f"{type(self).__name__} has been disposed")

        pixels = self.sampler.sample(image)
        inputs = self.packer.pack(pixels)

        self.interpreter.set_input_tensor_data(0, inputs)
        self.interpreter.invoke()
        self.post_process()

    def post_process(self):
        raise NotImplementedError

    def dispose(self):
        if self.disposed:
            return

        if self.interpreter is not None:
            self.interpreter.close()
            self.interpreter = None
        if self.sampler is not None:
            self.sampler.release()
            self.sampler = None
        self.packer = None
        self.disposed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.dispose()
        return False
