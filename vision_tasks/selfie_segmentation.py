#!/usr/bin/env python3
"""
Selfie Segmentation
Person segmentation with an edge-preserving filtered mask
https://ai.google.dev/edge/mediapipe/solutions/vision/image_segmenter
"""
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .base_task import BaseVisionTask
from .config import SIGMA_COLOR_RANGE
from .gpu_filter import GpuFilter, OpenCVGpuFilter
from .interpreter import Interpreter, load_interpreter
from .post_processing import unpack_segmentation


@dataclass
class SegmentationOptions:
    model_file: str = ''
    num_threads: int = 2
    aspect_mode: str = 'fit'
    flip_horizontal: bool = False
    delegate: str = 'gpu'
    delegate_path: Optional[str] = None
    value_range: Tuple[float, float] = (0.0, 1.0)
    sigma_color: float = 1.0
    gpu_filter: Optional[GpuFilter] = None
    input_shapes: List[List[int]] = field(default_factory=lambda: [[1, 256, 256, 3]])
    output_shapes: List[List[int]] = field(default_factory=lambda: [[1, 256, 256, 1]])

    @classmethod
    def from_config(cls, model_file: str, config: Dict) -> 'SegmentationOptions':
        return cls(
            model_file=model_file,
            num_threads=config['num_threads'],
            aspect_mode=config['aspect_mode'],
            flip_horizontal=config['flip_horizontal'],
            delegate=config['delegate'],
            delegate_path=config.get('delegate_path'),
            value_range=tuple(config.get('value_range', (0.0, 1.0))),
            sigma_color=config['sigma_color'],
            input_shapes=config['input_shapes'],
            output_shapes=config['output_shapes']
        )

    def update_parameter(self, gpu_filter: GpuFilter):
        low, high = SIGMA_COLOR_RANGE
        if not low <= self.sigma_color <= high:
            raise ValueError(f"sigma_color must be within [{low}, {high}], got {self.sigma_color}")
        gpu_filter.set_float('sigmaColor', self.sigma_color)


class SelfieSegmentation(BaseVisionTask):
    """Segments people and smooths the label map into a display texture"""

    def __init__(self, options: SegmentationOptions, interpreter: Optional[Interpreter] = None):
        super().__init__()
        self.options = options
        self.gpu_filter = None
        self.label_buffer = None
        self.label_tex = None
        self.mask_tex = None

        try:
            if interpreter is None:
                interpreter = load_interpreter(
                    options.model_file, options.num_threads, options.delegate,
                    options.delegate_path, options.input_shapes, options.output_shapes
                )

            self.load(interpreter,
                      input_dtype='float32',
                      value_range=options.value_range,
                      aspect_mode=options.aspect_mode,
                      flip_horizontal=options.flip_horizontal)

            odim0 = self.interpreter.get_output_tensor_info(0).shape
            if (len(odim0) != 4 or odim0[1] != self.height
                    or odim0[2] != self.width or odim0[3] != 1):
                raise ValueError(f"Output shape {odim0} is not [1, {self.height}, {self.width}, 1]")

            self.output0 = np.zeros(odim0[1:], dtype=np.float32)  # height, width, 1

            self.gpu_filter = options.gpu_filter if options.gpu_filter is not None else OpenCVGpuFilter()
            gpu_filter = self.gpu_filter
            gpu_filter.set_int('Width', self.width)
            gpu_filter.set_int('Height', self.height)
            options.update_parameter(gpu_filter)
            gpu_filter.set_float('sigmaTexel', max(1.0 / self.width, 1.0 / self.height))
            gpu_filter.set_int('step', 1)
            gpu_filter.set_int('radius', 1)

            self.label_buffer = np.zeros(self.height * self.width, dtype=np.float32)
            self.label_tex = gpu_filter.create_texture(self.width, self.height)
            self.mask_tex = gpu_filter.create_texture(self.width, self.height)

            self.k_label_to_tex = gpu_filter.find_kernel('LabelToTex')
            self.k_bilateral_filter = gpu_filter.find_kernel('BilateralFilter')

        except Exception as e:
            self.logger.error(f"Failed to initialize SelfieSegmentation: {e}")
            self.dispose()
            raise

    def post_process(self):
        self.interpreter.get_output_tensor_data(0, self.output0)

    def get_label_texture(self) -> np.ndarray:
        """Unfiltered labels as an RGBA texture"""
        unpack_segmentation(self.output0, self.label_buffer)
        self.gpu_filter.dispatch(self.k_label_to_tex,
                                 label_buffer=self.label_buffer,
                                 output_texture=self.label_tex)
        return self.label_tex.array

    def get_result_texture(self) -> np.ndarray:
        """Labels smoothed by the bilateral filter as an RGBA texture"""
        self.get_label_texture()

        self.options.update_parameter(self.gpu_filter)
        self.gpu_filter.dispatch(self.k_bilateral_filter,
                                 input_texture=self.label_tex,
                                 output_texture=self.mask_tex)
        return self.mask_tex.array

    def dispose(self):
        if self.disposed:
            return

        self.output0 = None
        for texture in (self.label_tex, self.mask_tex):
            if texture is not None:
                texture.release()
        self.label_tex = None
        self.mask_tex = None
        self.label_buffer = None

        if self.gpu_filter is not None:
            self.gpu_filter.release()
            self.gpu_filter = None

        super().dispose()
