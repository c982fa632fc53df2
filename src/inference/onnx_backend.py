"""
ONNX Runtime inference engine.

onnxruntime is an optional dependency (``pip install .[onnx]``); it is
imported when the engine is constructed. ONNX models embed their
weights, so ``weight_file`` may point at the same file as ``proto_file``.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Tuple

import numpy as np

from .backend import InferenceEngine, register_inference


@register_inference("onnx")
class OnnxRuntimeInference(InferenceEngine):
    def __init__(
        self,
        proto_file: str,
        weight_file: str,
        output_names: List[str],
        input_names: List[str],
        model_root: str,
    ):
        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is not installed. Install with `pip install onnxruntime` "
                "or set model_param.model_type to 'opencv'."
            ) from e

        if not os.path.exists(proto_file):
            raise FileNotFoundError(f"Model file not found: {proto_file}")

        self._ort = ort
        self.model_path = proto_file
        self.output_names = list(output_names)
        self.input_names = list(input_names)
        self.model_root = model_root
        self._gpu_id = -1
        self._sess = None
        self._tensors: Dict[str, np.ndarray] = {}

    def bind_device(self, gpu_id: int) -> None:
        self._gpu_id = gpu_id

    def _providers(self):
        available = self._ort.get_available_providers()
        if self._gpu_id >= 0 and "CUDAExecutionProvider" in available:
            return [("CUDAExecutionProvider", {"device_id": self._gpu_id}), "CPUExecutionProvider"]
        if self._gpu_id >= 0:
            logging.warning(f"GPU {self._gpu_id} requested but CUDAExecutionProvider is unavailable")
        return ["CPUExecutionProvider"]

    def init(self, input_shapes: Dict[str, Tuple[int, ...]]) -> bool:
        try:
            self._sess = self._ort.InferenceSession(self.model_path, providers=self._providers())
        except Exception as e:
            logging.error(f"onnxruntime could not load {self.model_path}: {e}")
            return False

        session_inputs = {i.name for i in self._sess.get_inputs()}
        self._tensors = {
            name: np.zeros(shape, dtype=np.float32)
            for name, shape in input_shapes.items()
            if name in session_inputs
        }
        missing = [name for name in input_shapes if name not in session_inputs]
        if missing:
            # Unknown inputs stay out of the tensor map; the caller reports them by name
            logging.error(f"Inputs {missing} not found in {self.model_path}")
            return True

        if not self.infer():
            self._tensors = {}
            return False
        return True

    def tensor(self, name: str) -> Optional[np.ndarray]:
        return self._tensors.get(name)

    def infer(self) -> bool:
        if self._sess is None:
            logging.error("onnxruntime session not initialised")
            return False
        session_outputs = {o.name for o in self._sess.get_outputs()}
        outputs = [name for name in self.output_names if name in session_outputs]
        feeds = {name: self._tensors[name] for name in self.input_names if name in self._tensors}
        try:
            results = self._sess.run(outputs, feeds)
        except Exception as e:
            logging.error(f"onnxruntime run failed: {e}")
            return False

        for name, blob in zip(outputs, results):
            self._tensors[name] = np.asarray(blob)
        return True
