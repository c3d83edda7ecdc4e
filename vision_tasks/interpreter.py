#!/usr/bin/env python3
"""
Interpreter Adapters
Common tensor contract over TensorFlow Lite and PyTorch runtimes
"""
import logging
import numpy as np
import torch
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple


@dataclass
class TensorInfo:
    name: str
    shape: Tuple[int, ...]
    dtype: np.dtype


class Interpreter:
    """Tensors are addressed by index, as in the TFLite C API"""

    @property
    def input_count(self) -> int:
        raise NotImplementedError

    @property
    def output_count(self) -> int:
        raise NotImplementedError

    def get_input_tensor_info(self, index: int) -> TensorInfo:
        raise NotImplementedError

    def get_output_tensor_info(self, index: int) -> TensorInfo:
        raise NotImplementedError

    def resize_input_tensor(self, index: int, shape: Sequence[int]):
        raise NotImplementedError

    def allocate_tensors(self):
        raise NotImplementedError

    def set_input_tensor_data(self, index: int, data: np.ndarray):
        raise NotImplementedError

    def invoke(self):
        raise NotImplementedError

    def _get_output(self, index: int) -> np.ndarray:
        raise NotImplementedError

    def get_output_tensor_data(self, index: int, out: np.ndarray) -> np.ndarray:
        """Copy output tensor `index` into a caller-owned buffer"""
        data = self._get_output(index)
        if data.size != out.size:
            raise ValueError(f"Output {index} has {data.size} values, buffer holds {out.size}")
        np.copyto(out, data.reshape(out.shape), casting='unsafe')
        return out

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _check_size(index: int, data: np.ndarray, shape: Sequence[int]):
    expected = int(np.prod(shape))
    if data.size != expected:
        raise ValueError(f"Input {index} expects {expected} values {tuple(shape)}, got {data.size} {data.shape}")


class TFLiteInterpreter(Interpreter):
    """Wraps tensorflow.lite.Interpreter"""

    def __init__(self, model_content: bytes, num_threads: int = 2,
                 delegate_path: Optional[str] = None):
        import tensorflow as tf

        delegates = None
        if delegate_path:
            delegates = [tf.lite.experimental.load_delegate(delegate_path)]

        self._interpreter = tf.lite.Interpreter(
            model_content=model_content,
            num_threads=num_threads,
            experimental_delegates=delegates
        )

    @property
    def input_count(self) -> int:
        return len(self._interpreter.get_input_details())

    @property
    def output_count(self) -> int:
        return len(self._interpreter.get_output_details())

    def _info(self, detail) -> TensorInfo:
        return TensorInfo(detail['name'], tuple(int(d) for d in detail['shape']), np.dtype(detail['dtype']))

    def get_input_tensor_info(self, index: int) -> TensorInfo:
        return self._info(self._interpreter.get_input_details()[index])

    def get_output_tensor_info(self, index: int) -> TensorInfo:
        return self._info(self._interpreter.get_output_details()[index])

    def resize_input_tensor(self, index: int, shape: Sequence[int]):
        detail = self._interpreter.get_input_details()[index]
        self._interpreter.resize_tensor_input(detail['index'], list(shape))

    def allocate_tensors(self):
        self._interpreter.allocate_tensors()

    def set_input_tensor_data(self, index: int, data: np.ndarray):
        detail = self._interpreter.get_input_details()[index]
        _check_size(index, data, detail['shape'])
        tensor = np.asarray(data).reshape(detail['shape']).astype(detail['dtype'], copy=False)
        self._interpreter.set_tensor(detail['index'], tensor)

    def invoke(self):
        self._interpreter.invoke()

    def _get_output(self, index: int) -> np.ndarray:
        detail = self._interpreter.get_output_details()[index]
        return self._interpreter.get_tensor(detail['index'])

    def close(self):
        self._interpreter = None


class TorchInterpreter(Interpreter):
    """
    Wraps a TorchScript module or nn.Module.

    PyTorch modules carry no tensor shapes, so the shapes a flatbuffer model
    would declare are passed in. Outputs are checked against them after
    every invoke.
    """

    def __init__(self, module: torch.nn.Module,
                 input_shapes: Sequence[Sequence[int]],
                 output_shapes: Sequence[Sequence[int]],
                 device: Optional[torch.device] = None,
                 input_dtypes: Optional[Sequence[str]] = None):
        self.device = device if device is not None else torch.device('cpu')
        self.module = module.to(self.device)
        self.module.eval()

        self._input_shapes = [tuple(int(d) for d in s) for s in input_shapes]
        self._output_shapes = [tuple(int(d) for d in s) for s in output_shapes]
        dtypes = input_dtypes or ['float32'] * len(self._input_shapes)
        self._input_dtypes = [np.dtype(d) for d in dtypes]

        self._inputs: List[Optional[np.ndarray]] = [None] * len(self._input_shapes)
        self._outputs: List[Optional[np.ndarray]] = [None] * len(self._output_shapes)

    @property
    def input_count(self) -> int:
        return len(self._input_shapes)

    @property
    def output_count(self) -> int:
        return len(self._output_shapes)

    def get_input_tensor_info(self, index: int) -> TensorInfo:
        return TensorInfo(f"input_{index}", self._input_shapes[index], self._input_dtypes[index])

    def get_output_tensor_info(self, index: int) -> TensorInfo:
        return TensorInfo(f"output_{index}", self._output_shapes[index], np.dtype(np.float32))

    def resize_input_tensor(self, index: int, shape: Sequence[int]):
        self._input_shapes[index] = tuple(int(d) for d in shape)
        self._inputs[index] = None

    def allocate_tensors(self):
        self._inputs = [np.zeros(shape, dtype=dtype)
                        for shape, dtype in zip(self._input_shapes, self._input_dtypes)]
        self._outputs = [None] * len(self._output_shapes)

    def set_input_tensor_data(self, index: int, data: np.ndarray):
        shape = self._input_shapes[index]
        _check_size(index, data, shape)
        if self._inputs[index] is None:
            raise RuntimeError("allocate_tensors() must be called before setting inputs")
        np.copyto(self._inputs[index], np.asarray(data).reshape(shape), casting='unsafe')

    def invoke(self):
        if any(x is None for x in self._inputs):
            raise RuntimeError("All inputs must be set before invoke()")

        with torch.no_grad():
            tensors = [torch.from_numpy(x).to(self.device) for x in self._inputs]
            outputs = self.module(*tensors)

        if isinstance(outputs, torch.Tensor):
            outputs = [outputs]
        if len(outputs) != len(self._output_shapes):
            raise ValueError(f"Model returned {len(outputs)} outputs, expected {len(self._output_shapes)}")

        for i, (output, shape) in enumerate(zip(outputs, self._output_shapes)):
            array = output.detach().cpu().numpy()
            if array.size != int(np.prod(shape)):
                raise ValueError(f"Output {i} has shape {array.shape}, expected {shape}")
            self._outputs[i] = array.reshape(shape)

    def _get_output(self, index: int) -> np.ndarray:
        if self._outputs[index] is None:
            raise RuntimeError("invoke() has not been called")
        return self._outputs[index]

    def close(self):
        self._inputs = [None] * len(self._input_shapes)
        self._outputs = [None] * len(self._output_shapes)


def get_device(delegate: str = 'cpu') -> torch.device:
    """Select the torch device for a delegate, falling back to CPU"""
    logger = logging.getLogger(__name__)

    if delegate == 'gpu':
        if torch.cuda.is_available():
            torch.backends.cudnn.benchmark = True
            logger.info(f"Using GPU: {torch.cuda.get_device_name()}")
            return torch.device('cuda')
        logger.warning("GPU delegate requested but CUDA is not available, falling back to CPU")

    return torch.device('cpu')


def load_model_file(model_path: str) -> bytes:
    path = Path(model_path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")
    return path.read_bytes()


TFLITE_SUFFIXES = ('.tflite',)
TORCH_SUFFIXES = ('.pt', '.pth', '.ts')


def load_interpreter(model_path: str, num_threads: int = 2,
                     delegate: str = 'cpu',
                     delegate_path: Optional[str] = None,
                     input_shapes: Optional[Sequence[Sequence[int]]] = None,
                     output_shapes: Optional[Sequence[Sequence[int]]] = None,
                     input_dtypes: Optional[Sequence[str]] = None) -> Interpreter:
    """Create an interpreter for a model file, picking the backend by extension"""
    path = Path(model_path)
    if not path.exists():
        raise FileNotFoundError(f"Model file not found: {path}")

    suffix = path.suffix.lower()
    if suffix in TFLITE_SUFFIXES:
        return TFLiteInterpreter(load_model_file(model_path), num_threads,
                                 delegate_path if delegate == 'gpu' else None)

    if suffix in TORCH_SUFFIXES:
        if not input_shapes or not output_shapes:
            raise ValueError("TorchScript models need input_shapes and output_shapes")
        device = get_device(delegate)
        module = torch.jit.load(str(path), map_location=device)
        return TorchInterpreter(module, input_shapes, output_shapes, device, input_dtypes)

    raise ValueError(f"Unsupported model format: {suffix}")
