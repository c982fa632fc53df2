"""
OpenCV DNN inference engine.

Loads Caffe (prototxt + caffemodel), ONNX, TensorFlow or Darknet models
through ``cv2.dnn.readNet``. Runs on CUDA when OpenCV was built with it
and a device is bound, otherwise on the CPU.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Tuple

import cv2
import numpy as np

from .backend import InferenceEngine, register_inference


@register_inference("opencv", "caffe")
class OpenCvDnnInference(InferenceEngine):
    def __init__(
        self,
        proto_file: str,
        weight_file: str,
        output_names: List[str],
        input_names: List[str],
        model_root: str,
    ):
        self.output_names = list(output_names)
        self.input_names = list(input_names)
        self.model_root = model_root
        self._gpu_id = -1
        self._tensors: Dict[str, np.ndarray] = {}

        for path in (proto_file, weight_file):
            if not os.path.exists(path):
                raise FileNotFoundError(f"Model file not found: {path}")
        try:
            self._net = cv2.dnn.readNet(weight_file, proto_file)
        except cv2.error as e:
            raise RuntimeError(f"OpenCV could not read {proto_file} / {weight_file}: {e}") from e
        if self._net.empty():
            raise RuntimeError(f"OpenCV returned an empty network for {proto_file}")

    def bind_device(self, gpu_id: int) -> None:
        self._gpu_id = gpu_id
        if gpu_id < 0:
            logging.info("OpenCV DNN running on CPU")
            return
        if cv2.cuda.getCudaEnabledDeviceCount() <= gpu_id:
            logging.warning(
                f"GPU {gpu_id} requested but OpenCV has no matching CUDA device; running on CPU"
            )
            return
        cv2.cuda.setDevice(gpu_id)
        self._net.setPreferableBackend(cv2.dnn.DNN_BACKEND_CUDA)
        self._net.setPreferableTarget(cv2.dnn.DNN_TARGET_CUDA)
        logging.info(f"OpenCV DNN bound to CUDA device {gpu_id}")

    def _known_outputs(self) -> List[str]:
        return [name for name in self.output_names if self._net.getLayerId(name) >= 0]

    def init(self, input_shapes: Dict[str, Tuple[int, ...]]) -> bool:
        self._tensors = {}
        missing = []
        for name, shape in input_shapes.items():
            blob = np.zeros(shape, dtype=np.float32)
            try:
                self._net.setInput(blob, name)
            except cv2.error:
                missing.append(name)
                continue
            self._tensors[name] = blob
        if missing:
            # Unknown inputs stay out of the tensor map; the caller reports them by name
            logging.error(f"Inputs {missing} not found in the network")
            return True

        # One dry forward pass sizes every output tensor
        if not self.infer():
            self._tensors = {}
            return False
        return True

    def tensor(self, name: str) -> Optional[np.ndarray]:
        return self._tensors.get(name)

    def infer(self) -> bool:
        outputs = self._known_outputs()
        if not outputs:
            logging.error(f"None of the output layers {self.output_names} exist in the network")
            return False
        try:
            for name in self.input_names:
                self._net.setInput(self._tensors[name], name)
            results = self._net.forward(outputs)
        except (cv2.error, KeyError) as e:
            logging.error(f"OpenCV DNN forward failed: {e}")
            return False

        for name, blob in zip(outputs, results):
            self._tensors[name] = blob
        return True
