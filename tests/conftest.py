"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import Dict, List, Optional, Tuple

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.config import DenselineParam  # noqa: E402
from models.geometry import CameraGeometry  # noqa: E402


class FakeInference:
    """
    Engine double with deterministic tensor shapes and a no-op forward pass.

    Output tensors are filled with their index in ``output_names`` plus the
    number of forward passes, so tests can tell which tensor was published.
    """

    def __init__(
        self,
        output_names: List[str],
        input_names: List[str],
        call_log: List[str],
        known_names: Optional[List[str]] = None,
        input_shape_override: Optional[Tuple[int, ...]] = None,
        init_ok: bool = True,
        infer_ok: bool = True,
    ):
        self.output_names = list(output_names)
        self.input_names = list(input_names)
        self.call_log = call_log
        self.known_names = known_names
        self.input_shape_override = input_shape_override
        self.init_ok = init_ok
        self.infer_ok = infer_ok
        self.gpu_id = None
        self.infer_count = 0
        self.tensors: Dict[str, np.ndarray] = {}

    def bind_device(self, gpu_id: int) -> None:
        self.call_log.append("bind_device")
        self.gpu_id = gpu_id

    def _known(self, name: str) -> bool:
        return self.known_names is None or name in self.known_names

    def init(self, input_shapes) -> bool:
        self.call_log.append("init")
        if not self.init_ok:
            return False
        for name, shape in input_shapes.items():
            if self._known(name):
                shape = self.input_shape_override or shape
                self.tensors[name] = np.zeros(shape, dtype=np.float32)
        _, _, h, w = next(iter(input_shapes.values()))
        # Outputs are computed in reverse order on purpose
        for name in reversed(self.output_names):
            if self._known(name):
                self.tensors[name] = np.full((1, 4, h // 4, w // 4), -1.0, dtype=np.float32)
        return True

    def tensor(self, name: str):
        return self.tensors.get(name)

    def infer(self) -> bool:
        self.call_log.append("infer")
        if not self.infer_ok:
            return False
        self.infer_count += 1
        for index, name in reversed(list(enumerate(self.output_names))):
            if name in self.tensors:
                self.tensors[name][...] = index + self.infer_count
        return True


class FakeResizeKernel:
    """Kernel double recording the issue / synchronize order."""

    def __init__(self, call_log: List[str], fail: bool = False):
        self.call_log = call_log
        self.fail = fail
        self.issued = []

    def issue(self, src, dst, crop_width, mean, channel_order, scale=1.0):
        self.call_log.append("issue")
        if self.fail:
            raise RuntimeError("kernel launch failed")
        self.issued.append({
            "src_shape": src.shape,
            "dst_shape": dst.shape,
            "crop_width": crop_width,
            "mean": tuple(mean),
            "channel_order": channel_order,
        })

    def synchronize(self) -> None:
        self.call_log.append("synchronize")


@pytest.fixture
def call_log():
    return []


@pytest.fixture
def engines():
    """Every FakeInference built by ``fake_factory``, in creation order."""
    return []


@pytest.fixture
def engine_options():
    """Keyword overrides applied to the next FakeInference."""
    return {}


@pytest.fixture
def fake_factory(call_log, engines, engine_options):
    def factory(model_type, proto_file, weight_file, output_names, input_names, model_root):
        call_log.append("load")
        if model_type == "missing":
            raise ValueError(f"Unknown model_type '{model_type}'")
        engine = FakeInference(output_names, input_names, call_log, **engine_options)
        engine.paths = (proto_file, weight_file, model_root)
        engines.append(engine)
        return engine
    return factory


@pytest.fixture
def fake_kernel(call_log):
    return FakeResizeKernel(call_log)


@pytest.fixture
def descriptor():
    """Model descriptor dict for the 1920x1080 road camera."""
    return {
        "model_param": {
            "model_name": "denseline",
            "proto_file": "deploy.prototxt",
            "weight_file": "deploy.caffemodel",
            "model_type": "opencv",
            "resize_scale": 0.5,
            "input_offset_x": 0,
            "input_offset_y": 300,
            "crop_width": 1920,
            "crop_height": 480,
            "is_bgr": True,
            "mean_b": 95.0,
            "mean_g": 99.0,
            "mean_r": 96.0,
        },
        "net_param": {
            "in_blob": "data",
            "out_blob": "conv_out",
            "internal_blob_int8": [],
        },
    }


@pytest.fixture
def param(descriptor):
    return DenselineParam.from_dict(descriptor)


@pytest.fixture
def camera():
    return CameraGeometry(native_width=1920, native_height=1080)


@pytest.fixture
def valid_config():
    """Return a valid application configuration dictionary."""
    return {
        "camera": {
            "resolution": [1920, 1080],
        },
        "lane_detector": {
            "name": "DenselineLaneDetector",
            "root_dir": "data/models",
            "conf_file": "denseline/config.yaml",
            "gpu_id": -1,
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
