#!/usr/bin/env python3
"""
Task Configuration
Preset configurations, JSON overrides and label files
"""
import copy
import json
from pathlib import Path
from typing import Dict, List, Optional

TASK_TYPES = ('ssd', 'segmentation')
ASPECT_MODES = ('none', 'fit', 'fill')
INPUT_DTYPES = ('int8', 'float32')
TASK_INPUT_DTYPES = {'ssd': 'int8', 'segmentation': 'float32'}
DELEGATES = ('cpu', 'gpu')
SIGMA_COLOR_RANGE = (0.1, 4.0)


def get_task_configs() -> Dict:
    """Get predefined task configurations"""
    configs = {
        'ssd_mobilenet_v1': {
            'task': 'ssd',
            'width': 300,
            'height': 300,
            'channels': 3,
            'input_dtype': 'int8',
            'num_threads': 2,
            'max_detections': 10,
            'aspect_mode': 'none',
            'flip_horizontal': False,
            'delegate': 'cpu',
            'threshold': 0.5,
            'input_shapes': [[1, 300, 300, 3]],
            'output_shapes': [[1, 10, 4], [1, 10], [1, 10], [1]]
        },
        'selfie_segmentation': {
            'task': 'segmentation',
            'width': 256,
            'height': 256,
            'channels': 3,
            'input_dtype': 'float32',
            'value_range': [0.0, 1.0],
            'num_threads': 2,
            'aspect_mode': 'fit',
            'flip_horizontal': False,
            'delegate': 'gpu',
            'sigma_color': 1.0,
            'input_shapes': [[1, 256, 256, 3]],
            'output_shapes': [[1, 256, 256, 1]]
        }
    }

    return configs


def validate_task_config(config: Dict) -> Dict:
    """Raise ValueError for anything a task could not be built from"""
    task = config.get('task')
    if task not in TASK_TYPES:
        raise ValueError(f"Unknown task type: {task}")

    for key in ('width', 'height', 'channels', 'num_threads'):
        value = config.get(key)
        if not isinstance(value, int) or value <= 0:
            raise ValueError(f"'{key}' must be a positive integer, got {value!r}")

    if config.get('aspect_mode') not in ASPECT_MODES:
        raise ValueError(f"Unknown aspect mode: {config.get('aspect_mode')}")
    if config.get('input_dtype') not in INPUT_DTYPES:
        raise ValueError(f"Unsupported input dtype: {config.get('input_dtype')}")
    if config.get('delegate') not in DELEGATES:
        raise ValueError(f"Unknown delegate: {config.get('delegate')}")

    expected_dtype = TASK_INPUT_DTYPES[task]
    if config.get('input_dtype') != expected_dtype:
        raise ValueError(f"{task} models take {expected_dtype} input, got {config.get('input_dtype')}")

    if task == 'ssd':
        max_detections = config.get('max_detections')
        if not isinstance(max_detections, int) or max_detections <= 0:
            raise ValueError(f"'max_detections' must be a positive integer, got {max_detections!r}")

    if task == 'segmentation':
        sigma_color = config.get('sigma_color')
        low, high = SIGMA_COLOR_RANGE
        if not isinstance(sigma_color, (int, float)) or not low <= sigma_color <= high:
            raise ValueError(f"'sigma_color' must be within [{low}, {high}], got {sigma_color!r}")

    return config


def load_task_config(preset: str = 'ssd_mobilenet_v1', config_path: Optional[str] = None) -> Dict:
    """Load a preset, optionally overridden by a JSON file"""
    presets = get_task_configs()
    if preset not in presets:
        raise ValueError(f"Unknown preset '{preset}'. Available: {', '.join(presets)}")

    config = copy.deepcopy(presets[preset])

    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, 'r') as f:
            config.update(json.load(f))

    return validate_task_config(config)


def load_labels(labels_path: str) -> List[str]:
    """Read one label per line, skipping blank lines"""
    path = Path(labels_path)
    if not path.exists():
        raise FileNotFoundError(f"Labels file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]
