#!/usr/bin/env python3
"""
Test Script for Vision Tasks
Verifies samplers, packers, unpackers and both task pipelines
"""
import json
import tempfile
from pathlib import Path

import cv2
import numpy as np
import pytest
import torch
import torch.nn as nn

from vision_tasks.config import get_task_configs, load_labels, load_task_config, validate_task_config
from vision_tasks.gpu_filter import GpuFilter, OpenCVGpuFilter, Surface
from vision_tasks.image_sampler import ImageSampler
from vision_tasks.inference import VisionTaskInference
from vision_tasks.interpreter import Interpreter, TensorInfo, TorchInterpreter, load_interpreter
from vision_tasks.post_processing import PostProcessor, Rect, unpack_detections, unpack_segmentation
from vision_tasks.selfie_segmentation import SegmentationOptions, SelfieSegmentation
from vision_tasks.ssd import SSD, SSDOptions
from vision_tasks.tensor_packer import TensorPacker, pack_float, pack_int8


class ScriptedInterpreter(Interpreter):
    """Returns fixed outputs and records what it was given"""

    def __init__(self, input_shape, outputs, input_dtype=np.float32):
        self.input_shape = tuple(input_shape)
        self.input_dtype = np.dtype(input_dtype)
        self.outputs = [np.asarray(o, dtype=np.float32) for o in outputs]
        self.resized_to = None
        self.allocated = False
        self.inputs = None
        self.invoke_count = 0
        self.closed = False

    @property
    def input_count(self):
        return 1

    @property
    def output_count(self):
        return len(self.outputs)

    def get_input_tensor_info(self, index):
        return TensorInfo('input', self.input_shape, self.input_dtype)

    def get_output_tensor_info(self, index):
        return TensorInfo(f'output_{index}', self.outputs[index].shape, np.dtype(np.float32))

    def resize_input_tensor(self, index, shape):
        self.resized_to = list(shape)
        self.input_shape = tuple(shape)

    def allocate_tensors(self):
        self.allocated = True

    def set_input_tensor_data(self, index, data):
        self.inputs = np.array(data)

    def invoke(self):
        self.invoke_count += 1

    def _get_output(self, index):
        return self.outputs[index]

    def close(self):
        self.closed = True


def ssd_outputs(count=10, box=(0.2, 0.1, 0.6, 0.4), class_id=3.9):
    boxes = np.tile(np.array(box, dtype=np.float32), (1, count, 1))
    classes = np.full((1, count), class_id, dtype=np.float32)
    scores = np.linspace(0.0, 0.9, count, dtype=np.float32).reshape(1, count)
    return [boxes, classes, scores, np.array([count], dtype=np.float32)]


def scripted_ssd():
    return ScriptedInterpreter((1, 300, 300, 3), ssd_outputs(), np.int8)


def scripted_segmentation(size=32, value=1.0):
    return ScriptedInterpreter((1, size, size, 3), [np.full((1, size, size, 1), value)])


# Tensor packer

def test_pack_int8_reinterprets_bytes():
    pixels = np.arange(256, dtype=np.uint8).reshape(16, 16, 1)
    packed = pack_int8(pixels)

    expected = np.where(pixels > 127, pixels.astype(np.int16) - 256, pixels.astype(np.int16))
    assert packed.dtype == np.int8
    assert np.array_equal(packed.astype(np.int16), expected)
    assert len(np.unique(packed)) == 256
    assert packed.min() == -128 and packed.max() == 127


def test_pack_int8_is_not_offset_quantization():
    pixels = np.array([[[0, 128, 255]]], dtype=np.uint8)
    assert pack_int8(pixels).tolist() == [[[0, -128, -1]]]


def test_pack_float_value_range():
    pixels = np.array([[[0, 51, 255]]], dtype=np.uint8)

    assert np.allclose(pack_float(pixels), [[[0.0, 51.0, 255.0]]])
    assert np.allclose(pack_float(pixels, value_range=(0.0, 1.0)), [[[0.0, 0.2, 1.0]]])
    assert np.allclose(pack_float(pixels, value_range=(-1.0, 1.0)), [[[-1.0, -0.6, 1.0]]])


def test_tensor_packer_reuses_buffer():
    packer = TensorPacker(2, 2, 3, 'int8')
    first = packer.pack(np.full((2, 2, 3), 200, dtype=np.uint8))
    second = packer.pack(np.full((2, 2, 3), 10, dtype=np.uint8))

    assert first is second
    assert np.all(second == 10)


def test_tensor_packer_rejects_mismatch():
    packer = TensorPacker(2, 2, 3, 'float32')
    with pytest.raises(ValueError):
        packer.pack(np.zeros((3, 2, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        TensorPacker(2, 2, 3, 'uint16')


# Result unpackers

def test_unpack_detections_flips_vertical_axis():
    results = unpack_detections(np.array([[0.2, 0.1, 0.6, 0.4]]), np.array([3.9]), np.array([0.75]))

    assert len(results) == 1
    rect = results[0].rect
    assert rect.x == pytest.approx(0.1, abs=1e-6)
    assert rect.y == pytest.approx(0.8, abs=1e-6)
    assert rect.width == pytest.approx(0.3, abs=1e-6)
    # top' - bottom' = 0.8 - 0.4
    assert rect.height == pytest.approx(0.4, abs=1e-6)
    assert results[0].class_id == 3
    assert results[0].score == pytest.approx(0.75)


def test_unpack_detections_keeps_every_row():
    results = unpack_detections(np.zeros((10, 4)), np.zeros(10), np.zeros(10))
    assert len(results) == 10
    assert all(r.score == 0.0 for r in results)


def test_unpack_detections_size_mismatch():
    with pytest.raises(ValueError):
        unpack_detections(np.zeros((10, 4)), np.zeros(9), np.zeros(10))


def test_unpack_segmentation_preserves_row_major_order():
    output = np.full((4, 6, 1), 0.25, dtype=np.float32)
    buffer = unpack_segmentation(output)
    assert buffer.shape == (24,)
    assert np.all(buffer == 0.25)

    ordered = np.arange(24, dtype=np.float32).reshape(1, 4, 6, 1)
    target = np.zeros(24, dtype=np.float32)
    unpack_segmentation(ordered, target)
    assert target.tolist() == list(range(24))

    with pytest.raises(ValueError):
        unpack_segmentation(ordered, np.zeros(10, dtype=np.float32))


# Image sampler

def test_image_sampler_rejects_invalid_size():
    for width, height in [(0, 10), (10, 0), (-1, 5)]:
        with pytest.raises(ValueError):
            ImageSampler(width, height)
    with pytest.raises(ValueError):
        ImageSampler(10, 10, aspect_mode='stretch')


def test_image_sampler_is_deterministic():
    rng = np.random.default_rng(0)
    image = rng.integers(0, 256, (120, 170, 3), dtype=np.uint8)
    sampler = ImageSampler(64, 48)

    first = sampler.sample(image).copy()
    second = sampler.sample(image)
    assert second.shape == (48, 64, 3)
    assert np.array_equal(first, second)


def test_image_sampler_flips():
    image = np.arange(4 * 4 * 3, dtype=np.uint8).reshape(4, 4, 3)

    assert np.array_equal(ImageSampler(4, 4).sample(image), image[::-1])
    assert np.array_equal(ImageSampler(4, 4, flip_vertical=False).sample(image), image)
    assert np.array_equal(ImageSampler(4, 4, flip_horizontal=True).sample(image), image[::-1, ::-1])


def test_image_sampler_converts_channels():
    sampler = ImageSampler(8, 8)
    assert sampler.sample(np.full((8, 8), 7, dtype=np.uint8)).shape == (8, 8, 3)
    assert np.all(sampler.sample(np.full((8, 8, 4), 9, dtype=np.uint8)) == 9)
    with pytest.raises(ValueError):
        sampler.sample(np.zeros((8, 8, 3), dtype=np.float32))
    with pytest.raises(ValueError):
        sampler.sample(np.zeros((0, 8, 3), dtype=np.uint8))


def test_image_sampler_fit_letterboxes():
    sampler = ImageSampler(64, 64, aspect_mode='fit')
    assert sampler.layout(100, 50) == ((0, 0, 100, 50), (0, 16, 64, 32))

    out = sampler.sample(np.full((50, 100, 3), 200, dtype=np.uint8))
    assert out[:16].max() == 0
    assert out[48:].max() == 0
    assert np.all(out[20:44] == 200)


def test_image_sampler_fill_crops():
    sampler = ImageSampler(64, 64, aspect_mode='fill')
    assert sampler.layout(100, 50) == ((25, 0, 50, 50), (0, 0, 64, 64))


def test_image_sampler_to_source():
    sampler = ImageSampler(64, 64, aspect_mode='fit')
    values = np.full((64, 64), 255, dtype=np.uint8)

    mask = sampler.to_source(values, 100, 50)
    assert mask.shape == (50, 100)
    assert np.all(mask == 255)

    with pytest.raises(ValueError):
        sampler.to_source(np.zeros((32, 32), dtype=np.uint8), 100, 50)


def test_image_sampler_to_source_keeps_channel_axis():
    sampler = ImageSampler(64, 64, aspect_mode='fit')
    values = np.full((64, 64, 1), 0.5, dtype=np.float32)

    mask = sampler.to_source(values, 100, 50)
    assert mask.shape == (50, 100, 1)
    assert np.allclose(mask, 0.5)


def test_image_sampler_release():
    sampler = ImageSampler(8, 8)
    sampler.sample(np.zeros((8, 8, 3), dtype=np.uint8))
    surface = sampler.surface
    sampler.release()

    assert surface.released
    assert sampler.surface is None


# GPU filter

def test_surface_release():
    surface = Surface(4, 4)
    assert surface.array.shape == (4, 4, 4)
    surface.release()
    with pytest.raises(RuntimeError):
        surface.array


def test_gpu_filter_rejects_unknown_names():
    gpu_filter = OpenCVGpuFilter()
    with pytest.raises(ValueError):
        gpu_filter.find_kernel('Sharpen')
    with pytest.raises(ValueError):
        gpu_filter.set_float('sigma', 1.0)
    with pytest.raises(ValueError):
        gpu_filter.set_int('sigmaColor', 1)
    with pytest.raises(NotImplementedError):
        GpuFilter().dispatch(0, output_texture=Surface(1, 1))


def configured_filter(width, height):
    gpu_filter = OpenCVGpuFilter()
    gpu_filter.set_int('Width', width)
    gpu_filter.set_int('Height', height)
    gpu_filter.set_float('sigmaColor', 1.0)
    gpu_filter.set_float('sigmaTexel', 1.0 / max(width, height))
    gpu_filter.set_int('step', 1)
    gpu_filter.set_int('radius', 1)
    return gpu_filter


def test_label_to_tex_flips_for_display():
    gpu_filter = configured_filter(4, 3)
    labels = np.zeros((3, 4), dtype=np.float32)
    labels[0] = 1.0
    texture = gpu_filter.create_texture(4, 3)

    gpu_filter.dispatch(gpu_filter.find_kernel('LabelToTex'),
                        label_buffer=labels.reshape(-1), output_texture=texture)

    assert np.all(texture.array[2, :, 0] == 255)
    assert np.all(texture.array[:2, :, 0] == 0)
    assert np.all(texture.array[..., 3] == 255)


def test_bilateral_filter_keeps_constant_mask():
    gpu_filter = configured_filter(8, 8)
    source = gpu_filter.create_texture(8, 8)
    target = gpu_filter.create_texture(8, 8)
    source.array[...] = 255

    gpu_filter.dispatch(gpu_filter.find_kernel('BilateralFilter'),
                        input_texture=source, output_texture=target)
    assert np.all(target.array[..., 0] == 255)


def test_bilateral_filter_smooths_outlier():
    gpu_filter = configured_filter(8, 8)
    kernel = gpu_filter.find_kernel('BilateralFilter')
    source = gpu_filter.create_texture(8, 8)
    target = gpu_filter.create_texture(8, 8)
    source.array[..., 3] = 255
    source.array[4, 4, :3] = 255

    gpu_filter.dispatch(kernel, input_texture=source, output_texture=target)
    near = int(target.array[4, 4, 0])
    assert 0 < near < 255
    assert target.array[4, 5, 0] > 0
    assert target.array[0, 0, 0] == 0

    # A wider window pulls in more background
    gpu_filter.set_int('radius', 2)
    gpu_filter.dispatch(kernel, input_texture=source, output_texture=target)
    assert int(target.array[4, 4, 0]) < near
    assert target.array[4, 6, 0] > 0


# SSD

def test_ssd_pipeline():
    interpreter = scripted_ssd()
    with SSD(SSDOptions(), interpreter=interpreter) as ssd:
        assert interpreter.resized_to == [1, 300, 300, 3]
        assert interpreter.allocated

        ssd.invoke(np.full((480, 640, 3), 200, dtype=np.uint8))
        assert interpreter.invoke_count == 1
        assert interpreter.inputs.shape == (300, 300, 3)
        assert interpreter.inputs.dtype == np.int8
        assert np.all(interpreter.inputs == -56)

        results = ssd.get_results()
        assert len(results) == 10
        assert results[0].class_id == 3
        assert results[0].score == 0.0
        assert results[0].rect.y == pytest.approx(0.8, abs=1e-6)

    assert interpreter.closed


def test_ssd_rejects_mismatched_outputs():
    interpreter = ScriptedInterpreter((1, 300, 300, 3), ssd_outputs(count=5), np.int8)
    with pytest.raises(ValueError):
        SSD(SSDOptions(), interpreter=interpreter)
    assert interpreter.closed


def test_ssd_dispose_is_idempotent():
    ssd = SSD(SSDOptions(), interpreter=scripted_ssd())
    ssd.dispose()
    ssd.dispose()
    with pytest.raises(RuntimeError):
        ssd.invoke(np.zeros((10, 10, 3), dtype=np.uint8))


def test_ssd_missing_model_file():
    with pytest.raises(FileNotFoundError):
        SSD(SSDOptions(model_file='does_not_exist.tflite'))


# Selfie segmentation

def test_segmentation_pipeline():
    interpreter = scripted_segmentation(32, 1.0)
    with SelfieSegmentation(SegmentationOptions(), interpreter=interpreter) as segmentation:
        segmentation.invoke(np.full((64, 64, 3), 255, dtype=np.uint8))

        assert interpreter.inputs.dtype == np.float32
        assert np.allclose(interpreter.inputs, 1.0)

        texture = segmentation.get_result_texture()
        assert texture.shape == (32, 32, 4)
        assert np.all(texture[..., 0] == 255)
        assert segmentation.gpu_filter.get('sigmaTexel') == pytest.approx(1.0 / 32)

    assert interpreter.closed
    assert segmentation.mask_tex is None


def test_segmentation_sigma_color_updates():
    options = SegmentationOptions()
    with SelfieSegmentation(options, interpreter=scripted_segmentation(16, 0.5)) as segmentation:
        segmentation.invoke(np.zeros((16, 16, 3), dtype=np.uint8))
        options.sigma_color = 2.5
        segmentation.get_result_texture()
        assert segmentation.gpu_filter.get('sigmaColor') == 2.5


def test_segmentation_rejects_mismatched_output():
    interpreter = ScriptedInterpreter((1, 32, 32, 3), [np.zeros((1, 16, 16, 1))])
    with pytest.raises(ValueError):
        SelfieSegmentation(SegmentationOptions(), interpreter=interpreter)
    assert interpreter.closed


def test_segmentation_rejects_extra_output_channels():
    interpreter = ScriptedInterpreter((1, 16, 16, 3), [np.zeros((1, 16, 16, 2))])
    with pytest.raises(ValueError):
        SelfieSegmentation(SegmentationOptions(), interpreter=interpreter)
    assert interpreter.closed


def test_segmentation_sigma_color_controls_edge_smoothing():
    edge = np.zeros((1, 16, 16, 1), dtype=np.float32)
    edge[:, :, :8] = 1.0
    interpreter = ScriptedInterpreter((1, 16, 16, 3), [edge])
    options = SegmentationOptions(sigma_color=0.1)

    with SelfieSegmentation(options, interpreter=interpreter) as segmentation:
        segmentation.invoke(np.zeros((16, 16, 3), dtype=np.uint8))

        sharp = segmentation.get_result_texture()[..., 0].astype(np.int16)
        labels = segmentation.label_tex.array[..., 0].astype(np.int16)
        assert np.abs(sharp - labels).max() <= 1

        options.sigma_color = 1.0
        smooth = segmentation.get_result_texture()[..., 0].astype(np.int16)
        assert np.all(smooth[:, 7] < 250)
        assert np.all(smooth[:, 8] > 5)
        assert np.all(smooth[:, 0] == 255)


def test_segmentation_rejects_sigma_color_out_of_range():
    interpreter = scripted_segmentation(16)
    with pytest.raises(ValueError):
        SelfieSegmentation(SegmentationOptions(sigma_color=5.0), interpreter=interpreter)
    assert interpreter.closed


# Torch interpreter

class TinySSD(nn.Module):
    def forward(self, x):
        boxes = torch.tensor([[0.2, 0.1, 0.6, 0.4]]).repeat(10, 1).unsqueeze(0)
        classes = torch.full((1, 10), 3.9)
        scores = torch.linspace(0.0, 0.9, 10).unsqueeze(0)
        count = torch.tensor([10.0])
        return boxes, classes, scores, count


class TinySegmenter(nn.Module):
    def forward(self, x):
        return x.float().mean(dim=3, keepdim=True)


def test_torch_interpreter_runs_ssd():
    interpreter = TorchInterpreter(TinySSD(), [[1, 300, 300, 3]],
                                   [[1, 10, 4], [1, 10], [1, 10], [1]], input_dtypes=['int8'])
    with SSD(SSDOptions(), interpreter=interpreter) as ssd:
        ssd.invoke(np.zeros((100, 100, 3), dtype=np.uint8))
        results = ssd.get_results()

    assert len(results) == 10
    assert results[9].score == pytest.approx(0.9)
    assert results[9].class_id == 3


def test_torch_interpreter_checks_output_shape():
    interpreter = TorchInterpreter(TinySegmenter(), [[1, 8, 8, 3]], [[1, 4, 4, 1]])
    interpreter.allocate_tensors()
    interpreter.set_input_tensor_data(0, np.zeros((8, 8, 3), dtype=np.float32))
    with pytest.raises(ValueError):
        interpreter.invoke()


def test_torch_interpreter_requires_invoke():
    interpreter = TorchInterpreter(TinySegmenter(), [[1, 8, 8, 3]], [[1, 8, 8, 1]])
    interpreter.allocate_tensors()
    with pytest.raises(RuntimeError):
        interpreter.get_output_tensor_data(0, np.zeros((8, 8, 1), dtype=np.float32))
    with pytest.raises(ValueError):
        interpreter.set_input_tensor_data(0, np.zeros((4, 4, 3), dtype=np.float32))


def test_torch_interpreter_reuses_input_buffer():
    interpreter = TorchInterpreter(TinySegmenter(), [[1, 8, 8, 3]], [[1, 8, 8, 1]])
    with pytest.raises(RuntimeError):
        interpreter.set_input_tensor_data(0, np.zeros((8, 8, 3), dtype=np.float32))

    interpreter.allocate_tensors()
    buffer = interpreter._inputs[0]
    interpreter.set_input_tensor_data(0, np.full((8, 8, 3), 2.0, dtype=np.float32))
    interpreter.set_input_tensor_data(0, np.full((8, 8, 3), 3.0, dtype=np.float32))

    assert interpreter._inputs[0] is buffer
    assert np.all(buffer == 3.0)

    interpreter.invoke()
    out = interpreter.get_output_tensor_data(0, np.zeros((8, 8, 1), dtype=np.float32))
    assert np.allclose(out, 3.0)


def test_load_interpreter_torchscript():
    with tempfile.TemporaryDirectory() as temp_dir:
        model_path = Path(temp_dir) / "segmenter.pt"
        torch.jit.script(TinySegmenter()).save(str(model_path))

        interpreter = load_interpreter(str(model_path), input_shapes=[[1, 16, 16, 3]],
                                       output_shapes=[[1, 16, 16, 1]])
        assert isinstance(interpreter, TorchInterpreter)

        with SelfieSegmentation(SegmentationOptions(delegate='cpu'), interpreter=interpreter) as segmentation:
            segmentation.invoke(np.full((16, 16, 3), 255, dtype=np.uint8))
            assert np.allclose(segmentation.output0, 1.0)


def test_load_interpreter_errors():
    with tempfile.TemporaryDirectory() as temp_dir:
        with pytest.raises(FileNotFoundError):
            load_interpreter(str(Path(temp_dir) / "missing.tflite"))

        onnx_path = Path(temp_dir) / "model.onnx"
        onnx_path.write_bytes(b"\x00")
        with pytest.raises(ValueError):
            load_interpreter(str(onnx_path))

        pt_path = Path(temp_dir) / "model.pt"
        pt_path.write_bytes(b"\x00")
        with pytest.raises(ValueError):
            load_interpreter(str(pt_path))


# Configuration

def test_presets_are_valid():
    for config in get_task_configs().values():
        validate_task_config(dict(config))


def test_load_task_config_override():
    with tempfile.TemporaryDirectory() as temp_dir:
        config_path = Path(temp_dir) / "override.json"
        config_path.write_text(json.dumps({'sigma_color': 2.0, 'aspect_mode': 'fill'}))

        config = load_task_config('selfie_segmentation', str(config_path))
        assert config['sigma_color'] == 2.0
        assert config['aspect_mode'] == 'fill'
        assert get_task_configs()['selfie_segmentation']['sigma_color'] == 1.0

        config_path.write_text(json.dumps({'sigma_color': 9.0}))
        with pytest.raises(ValueError):
            load_task_config('selfie_segmentation', str(config_path))

    with pytest.raises(ValueError):
        load_task_config('yolo')


def test_task_config_rejects_wrong_input_dtype():
    ssd_config = dict(get_task_configs()['ssd_mobilenet_v1'], input_dtype='float32')
    with pytest.raises(ValueError):
        validate_task_config(ssd_config)

    segmentation_config = dict(get_task_configs()['selfie_segmentation'], input_dtype='int8')
    with pytest.raises(ValueError):
        validate_task_config(segmentation_config)


def test_load_labels():
    with tempfile.TemporaryDirectory() as temp_dir:
        labels_path = Path(temp_dir) / "labels.txt"
        labels_path.write_text("person\n\nbicycle\ncar\n")
        assert load_labels(str(labels_path)) == ['person', 'bicycle', 'car']


# Display helpers and CLI pipeline

def test_rect_to_pixels():
    post_processor = PostProcessor()
    rect = unpack_detections(np.array([[0.2, 0.1, 0.6, 0.4]]), np.array([1.0]), np.array([0.9]))[0].rect
    assert post_processor.rect_to_pixels(rect, 100, 100) == (10, 20, 40, 60)
    assert post_processor.rect_to_pixels(Rect(0.0, 1.0, 1.0, 1.0), 50, 20) == (0, 0, 50, 20)


def test_draw_detections_filters_by_threshold():
    post_processor = PostProcessor()
    image = np.zeros((100, 100, 3), dtype=np.uint8)
    results = unpack_detections(np.array([[0.2, 0.1, 0.6, 0.4], [0.0, 0.0, 1.0, 1.0]]),
                                np.array([0.0, 1.0]), np.array([0.2, 0.9]))

    assert len(post_processor.filter_results(results, 0.5)) == 1
    drawn = post_processor.draw_detections(image, results, ['person', 'bicycle'], 0.5)
    assert drawn.shape == image.shape
    assert image.max() == 0
    assert drawn.max() > 0


def test_inference_ssd_single_image():
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        image_path = temp_path / "street.png"
        cv2.imwrite(str(image_path), np.full((120, 160, 3), 90, dtype=np.uint8))
        labels_path = temp_path / "labels.txt"
        labels_path.write_text("person\nbicycle\ncar\nmotorcycle\n")

        config = get_task_configs()['ssd_mobilenet_v1']
        task = SSD(SSDOptions(), interpreter=scripted_ssd())
        with VisionTaskInference("unused.tflite", config, str(labels_path), task=task) as pipeline:
            results = pipeline.process_single_image(str(image_path), str(temp_path / "output"))

        assert results['task'] == 'ssd'
        assert len(results['results']) == 10
        assert results['num_detections'] == 5

        with open(results['saved_paths']['results_path']) as f:
            saved = json.load(f)
        assert len(saved['detections']) == 10
        assert saved['detections'][0]['label'] == 'motorcycle'
        assert Path(results['saved_paths']['overlay_path']).exists()
        assert task.disposed


def test_inference_segmentation_batch():
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        for name in ("a.png", "b.jpg"):
            cv2.imwrite(str(temp_path / name), np.full((40, 60, 3), 180, dtype=np.uint8))
        (temp_path / "broken.png").write_bytes(b"not an image")

        config = get_task_configs()['selfie_segmentation']
        task = SelfieSegmentation(SegmentationOptions(), interpreter=scripted_segmentation(32, 1.0))
        with VisionTaskInference("unused.tflite", config, task=task) as pipeline:
            results = pipeline.process_batch(str(temp_path), str(temp_path / "output"))
            summary_path = pipeline.create_summary_report(results, str(temp_path / "output"))

        assert len(results) == 2
        assert results[0]['mask'].shape == (40, 60)
        assert results[0]['metrics']['foreground_percentage'] == pytest.approx(100.0)
        assert Path(results[0]['saved_paths']['comparison_path']).exists()

        with open(summary_path) as f:
            summary = json.load(f)
        assert summary['total_images_processed'] == 2


def main():
    """Run all tests"""
    print("=" * 60)
    print("VISION TASKS TESTING")
    print("=" * 60)

    tests = [(name, func) for name, func in globals().items()
             if name.startswith("test_") and callable(func)]

    passed = 0
    for test_name, test_func in tests:
        try:
            test_func()
            print(f"{test_name}: [PASS]")
            passed += 1
        except Exception as e:
            print(f"{test_name}: [FAIL] {e}")

    print(f"\nOverall: {passed}/{len(tests)} tests passed")
    return 0 if passed == len(tests) else 1


if __name__ == "__main__":
    exit(main())
