"""
Tests for the inference engine registry and built-in engines.
"""

import logging

import cv2
import numpy as np
import pytest

from detection.base import DetectorState, LaneDetectorInitOptions
from detection.denseline import DenselineLaneDetector
from detection.errors import ModelLoadError, UnknownTensorError
from inference import backend, onnx_backend, opencv_backend  # noqa: F401
from inference.backend import create_inference_by_name, register_inference, registered_inference_types
from inference.opencv_backend import OpenCvDnnInference
from models.config import DenselineParam
from models.frame import CameraFrame


@pytest.fixture
def restore_registry():
    saved = dict(backend._ENGINES)
    yield
    backend._ENGINES.clear()
    backend._ENGINES.update(saved)


# One average-pooling layer: needs no weights, so an empty caffemodel loads
TINY_PROTOTXT = """\
name: "tiny_lane"
input: "data"
input_shape { dim: 1 dim: 3 dim: 8 dim: 16 }
layer {
  name: "conv_out"
  type: "Pooling"
  bottom: "data"
  top: "conv_out"
  pooling_param { pool: AVE kernel_size: 4 stride: 4 }
}
"""


@pytest.fixture
def tiny_model(tmp_path):
    """Model root holding denseline/deploy.prototxt + an empty deploy.caffemodel."""
    model_dir = tmp_path / "denseline"
    model_dir.mkdir()
    (model_dir / "deploy.prototxt").write_text(TINY_PROTOTXT)
    (model_dir / "deploy.caffemodel").write_bytes(b"")
    return tmp_path


def tiny_engine(root, output_names=("conv_out",), input_names=("data",)):
    return OpenCvDnnInference(
        proto_file=str(root / "denseline" / "deploy.prototxt"),
        weight_file=str(root / "denseline" / "deploy.caffemodel"),
        output_names=list(output_names),
        input_names=list(input_names),
        model_root=str(root / "denseline"),
    )


class RecordingEngine:
    def __init__(self, **kwargs):
        self.kwargs = kwargs

    def bind_device(self, gpu_id):
        pass

    def init(self, input_shapes):
        return True

    def tensor(self, name):
        return None

    def infer(self):
        return True


class TestRegistry:
    def test_builtin_types(self, tmp_path):
        with pytest.raises(ValueError):
            create_inference_by_name("nope", "a", "b", ["out"], ["in"], str(tmp_path))
        types = registered_inference_types()
        assert "opencv" in types
        assert "caffe" in types
        assert "onnx" in types

    def test_unknown_type_lists_registered(self, tmp_path):
        with pytest.raises(ValueError, match="opencv"):
            create_inference_by_name("TensorRT", "a", "b", ["out"], ["in"], str(tmp_path))

    def test_custom_engine(self, restore_registry):
        register_inference("Recording")(RecordingEngine)

        engine = create_inference_by_name("recording", "net.pt", "net.bin", ["out"], ["in"], "/m")

        assert isinstance(engine, RecordingEngine)
        assert engine.kwargs == {
            "proto_file": "net.pt",
            "weight_file": "net.bin",
            "output_names": ["out"],
            "input_names": ["in"],
            "model_root": "/m",
        }


class TestOpenCvDnnInference:
    def test_missing_files(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            OpenCvDnnInference(
                proto_file=str(tmp_path / "deploy.prototxt"),
                weight_file=str(tmp_path / "deploy.caffemodel"),
                output_names=["conv_out"],
                input_names=["data"],
                model_root=str(tmp_path),
            )

    def test_detector_reports_load_error(self, tmp_path, param, camera):
        detector = DenselineLaneDetector()
        with pytest.raises(ModelLoadError, match="Model file not found"):
            detector.init(LaneDetectorInitOptions(
                root_dir=str(tmp_path), param=param, camera_geometry=camera,
            ))
        assert detector.state == DetectorState.FAILED


class TestOnnxRuntimeInference:
    def test_missing_model(self, tmp_path):
        pytest.importorskip("onnxruntime")
        from inference.onnx_backend import OnnxRuntimeInference

        with pytest.raises(FileNotFoundError):
            OnnxRuntimeInference(
                proto_file=str(tmp_path / "lane.onnx"),
                weight_file=str(tmp_path / "lane.onnx"),
                output_names=["out"],
                input_names=["in"],
                model_root=str(tmp_path),
            )


class TestOpenCvDnnNetwork:
    def test_dry_run_sizes_outputs(self, tiny_model):
        engine = tiny_engine(tiny_model)
        engine.bind_device(-1)

        assert engine.init({"data": (1, 3, 240, 960)})
        assert engine.tensor("data").shape == (1, 3, 240, 960)
        assert engine.tensor("conv_out").shape == (1, 3, 60, 240)

    def test_forward_reads_input_tensor(self, tiny_model):
        engine = tiny_engine(tiny_model)
        engine.bind_device(-1)
        engine.init({"data": (1, 3, 8, 16)})

        engine.tensor("data")[0, 1] = 2.0
        assert engine.infer()

        out = engine.tensor("conv_out")
        np.testing.assert_allclose(out[0, 0], 0.0)
        np.testing.assert_allclose(out[0, 1], 2.0)

    def test_unknown_outputs_are_filtered(self, tiny_model):
        engine = tiny_engine(tiny_model, output_names=("conv_out", "int8_a"))
        engine.bind_device(-1)

        assert engine.init({"data": (1, 3, 8, 16)})
        assert engine.tensor("conv_out") is not None
        assert engine.tensor("int8_a") is None

    def test_unknown_input_is_left_out(self, tiny_model):
        engine = tiny_engine(tiny_model, input_names=("image",))
        engine.bind_device(-1)

        assert engine.init({"image": (1, 3, 8, 16)})
        assert engine.tensor("image") is None

    def test_gpu_request_on_cpu_build(self, tiny_model, caplog):
        if cv2.cuda.getCudaEnabledDeviceCount() > 0:
            pytest.skip("OpenCV built with CUDA devices")
        engine = tiny_engine(tiny_model)
        with caplog.at_level(logging.WARNING):
            engine.bind_device(0)

        assert any("running on CPU" in r.message for r in caplog.records)
        assert engine.init({"data": (1, 3, 8, 16)})


class TestDetectorOnOpenCvDnn:
    def test_end_to_end(self, tiny_model, param, camera):
        detector = DenselineLaneDetector()
        detector.init(LaneDetectorInitOptions(
            root_dir=str(tiny_model), param=param, camera_geometry=camera,
        ))
        assert detector.state == DetectorState.READY

        image = np.full((1080, 1920, 3), 100, dtype=np.uint8)
        frame = CameraFrame.from_numpy(image, timestamp=0.0)
        blob = detector.detect(frame)

        assert blob is frame.lane_detected_blob
        assert blob.shape == (1, 3, 60, 240)
        np.testing.assert_allclose(blob[0, 0], 5.0, atol=1e-4)
        np.testing.assert_allclose(blob[0, 1], 1.0, atol=1e-4)
        np.testing.assert_allclose(blob[0, 2], 4.0, atol=1e-4)

    def test_unknown_in_blob(self, tiny_model, descriptor, camera):
        descriptor["net_param"]["in_blob"] = "image"
        param = DenselineParam.from_dict(descriptor)
        detector = DenselineLaneDetector()

        with pytest.raises(UnknownTensorError, match="image"):
            detector.init(LaneDetectorInitOptions(
                root_dir=str(tiny_model), param=param, camera_geometry=camera,
            ))
        assert detector.state == DetectorState.FAILED

    def test_unknown_int8_blob(self, tiny_model, descriptor, camera):
        descriptor["net_param"]["internal_blob_int8"] = ["int8_a"]
        param = DenselineParam.from_dict(descriptor)
        detector = DenselineLaneDetector()

        with pytest.raises(UnknownTensorError, match="int8_a"):
            detector.init(LaneDetectorInitOptions(
                root_dir=str(tiny_model), param=param, camera_geometry=camera,
            ))
