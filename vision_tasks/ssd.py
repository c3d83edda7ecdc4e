#!/usr/bin/env python3
"""
SSD Object Detection
MobileNet SSD with signed 8-bit input and a fixed number of detections
https://www.tensorflow.org/lite/models/object_detection/overview
"""
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base_task import BaseVisionTask
from .interpreter import Interpreter, load_interpreter
from .post_processing import DetectionResult, unpack_detections


@dataclass
class SSDOptions:
    model_file: str = ''
    width: int = 300
    height: int = 300
    channels: int = 3
    num_threads: int = 2
    max_detections: int = 10
    aspect_mode: str = 'none'
    flip_horizontal: bool = False
    delegate: str = 'cpu'
    delegate_path: Optional[str] = None
    input_shapes: List[List[int]] = field(default_factory=lambda: [[1, 300, 300, 3]])
    output_shapes: List[List[int]] = field(default_factory=lambda: [[1, 10, 4], [1, 10], [1, 10], [1]])

    @classmethod
    def from_config(cls, model_file: str, config: Dict) -> 'SSDOptions':
        return cls(
            model_file=model_file,
            width=config['width'],
            height=config['height'],
            channels=config['channels'],
            num_threads=config['num_threads'],
            max_detections=config['max_detections'],
            aspect_mode=config['aspect_mode'],
            flip_horizontal=config['flip_horizontal'],
            delegate=config['delegate'],
            delegate_path=config.get('delegate_path'),
            input_shapes=config['input_shapes'],
            output_shapes=config['output_shapes']
        )


class SSD(BaseVisionTask):
    """Object detector producing max_detections results per invoke"""

    def __init__(self, options: SSDOptions, interpreter: Optional[Interpreter] = None):
        super().__init__()
        self.options = options

        try:
            if interpreter is None:
                interpreter = load_interpreter(
                    options.model_file, options.num_threads, options.delegate,
                    options.delegate_path, options.input_shapes, options.output_shapes,
                    input_dtypes=['int8']
                )

            self.load(interpreter,
                      input_dtype='int8',
                      aspect_mode=options.aspect_mode,
                      flip_horizontal=options.flip_horizontal,
                      input_shape=[1, options.height, options.width, options.channels])

            count = options.max_detections
            self._check_output(0, count * 4)
            self._check_output(1, count)
            self._check_output(2, count)

            self.outputs0 = np.zeros((count, 4), dtype=np.float32)  # [top, left, bottom, right]
            self.outputs1 = np.zeros(count, dtype=np.float32)  # classes
            self.outputs2 = np.zeros(count, dtype=np.float32)  # scores

        except Exception as e:
            self.logger.error(f"Failed to initialize SSD: {e}")
            self.dispose()
            raise

    def _check_output(self, index: int, expected: int):
        if index >= self.interpreter.output_count:
            raise ValueError(f"Model has {self.interpreter.output_count} outputs, SSD needs output {index}")

        shape = self.interpreter.get_output_tensor_info(index).shape
        if int(np.prod(shape)) != expected:
            raise ValueError(f"Output {index} has shape {shape}, expected {expected} values")

    def post_process(self):
        self.interpreter.get_output_tensor_data(0, self.outputs0)
        self.interpreter.get_output_tensor_data(1, self.outputs1)
        self.interpreter.get_output_tensor_data(2, self.outputs2)

    def get_results(self) -> List[DetectionResult]:
        return unpack_detections(self.outputs0, self.outputs1, self.outputs2)
