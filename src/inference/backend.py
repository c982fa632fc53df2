"""
Inference engine interface and registry.

Engines own the network's tensors. Tensors are float32 numpy arrays in
NCHW order; the input tensor is written in place by the preprocessing
kernel and read by ``infer()``.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np


class InferenceEngine(Protocol):
    def bind_device(self, gpu_id: int) -> None:
        ...

    def init(self, input_shapes: Dict[str, Tuple[int, ...]]) -> bool:
        ...

    def tensor(self, name: str) -> Optional[np.ndarray]:
        ...

    def infer(self) -> bool:
        ...


EngineFactory = Callable[..., InferenceEngine]

_ENGINES: Dict[str, EngineFactory] = {}


def register_inference(*model_types: str) -> Callable[[EngineFactory], EngineFactory]:
    """Class decorator registering an engine under one or more model types."""
    def wrap(factory: EngineFactory) -> EngineFactory:
        for model_type in model_types:
            _ENGINES[model_type.lower()] = factory
        return factory
    return wrap


def registered_inference_types() -> List[str]:
    return sorted(_ENGINES)


def create_inference_by_name(
    model_type: str,
    proto_file: str,
    weight_file: str,
    output_names: Sequence[str],
    input_names: Sequence[str],
    model_root: str,
) -> InferenceEngine:
    """
    Build an engine for ``model_type``.

    Raises:
        ValueError: If no engine is registered for the model type.
    """
    # Built-in engines register themselves on import
    from . import onnx_backend, opencv_backend  # noqa: F401

    factory = _ENGINES.get(model_type.lower())
    if factory is None:
        raise ValueError(
            f"Unknown model_type '{model_type}'. "
            f"Registered: {', '.join(registered_inference_types())}"
        )
    logging.info(f"Creating inference engine: model_type={model_type}, root={model_root}")
    return factory(
        proto_file=proto_file,
        weight_file=weight_file,
        output_names=list(output_names),
        input_names=list(input_names),
        model_root=model_root,
    )
