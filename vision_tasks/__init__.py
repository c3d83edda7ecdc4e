"""
Vision Tasks Package
SSD detection and selfie segmentation around an external interpreter
"""

from .image_sampler import ImageSampler
from .tensor_packer import TensorPacker, pack_int8, pack_float
from .post_processing import (
    DetectionResult, PostProcessor, Rect, unpack_detections, unpack_segmentation
)
from .interpreter import Interpreter, TFLiteInterpreter, TorchInterpreter, load_interpreter
from .gpu_filter import GpuFilter, OpenCVGpuFilter, Surface
from .ssd import SSD, SSDOptions
from .selfie_segmentation import SegmentationOptions, SelfieSegmentation

__all__ = [
    'ImageSampler',
    'TensorPacker', 'pack_int8', 'pack_float',
    'DetectionResult', 'PostProcessor', 'Rect', 'unpack_detections', 'unpack_segmentation',
    'Interpreter', 'TFLiteInterpreter', 'TorchInterpreter', 'load_interpreter',
    'GpuFilter', 'OpenCVGpuFilter', 'Surface',
    'SSD', 'SSDOptions',
    'SegmentationOptions', 'SelfieSegmentation'
]
