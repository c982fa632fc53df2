"""
Inference engines and preprocessing kernels.

Canonical imports:
- `from inference.backend import InferenceEngine, create_inference_by_name`
- `from inference.resize import ResizeKernel, CpuResizeKernel`
"""
