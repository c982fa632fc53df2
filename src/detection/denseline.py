"""
Dense-line lane detector.

Crops a band of the camera frame, resizes it onto the network input,
runs one forward pass and publishes the raw lane map on the frame for
the lane post-processing stage.

Lifecycle:
    1. Create the detector (state UNINITIALIZED)
    2. Call init() once per camera/model configuration (-> READY or FAILED)
    3. Call detect() per frame; one call in flight at a time

The detector is bound to a single camera size for its lifetime; frames
of any other size are rejected rather than rescaled.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

import numpy as np

from camera.data_provider import ImageOptions
from inference.backend import InferenceEngine, create_inference_by_name
from inference.resize import CpuResizeKernel, ResizeKernel
from models.config import DenselineParam
from models.frame import CameraFrame
from models.geometry import (
    DEFAULT_CAMERA_GEOMETRY,
    CameraGeometry,
    ColorSpec,
    ResolvedGeometry,
)
from ops.config import get_absolute_path, load_denseline_param
from .base import DetectorState, LaneDetector, LaneDetectorInitOptions, register_lane_detector
from .errors import (
    ConfigError,
    DetectorNotReadyError,
    FrameSizeMismatchError,
    InferenceError,
    LaneDetectorError,
    ModelLoadError,
    NullFrameError,
    PreprocessError,
    ShapeDriftError,
    UnknownTensorError,
)
from .geometry import expected_chw, resolve, validate_crop


@register_lane_detector("DenselineLaneDetector")
class DenselineLaneDetector(LaneDetector):
    def __init__(
        self,
        inference_factory: Callable[..., InferenceEngine] = create_inference_by_name,
        resize_kernel: Optional[ResizeKernel] = None,
        default_camera_geometry: CameraGeometry = DEFAULT_CAMERA_GEOMETRY,
    ):
        self._inference_factory = inference_factory
        self._resize_kernel = resize_kernel or CpuResizeKernel()
        self.default_camera_geometry = default_camera_geometry

        self.state = DetectorState.UNINITIALIZED
        self.last_error: Optional[LaneDetectorError] = None
        self.param: Optional[DenselineParam] = None
        self.geometry: Optional[ResolvedGeometry] = None
        self.color: Optional[ColorSpec] = None
        self.image_options: Optional[ImageOptions] = None
        self.using_default_geometry = False
        self.input_names: List[str] = []
        self.output_names: List[str] = []
        self._net: Optional[InferenceEngine] = None

    def name(self) -> str:
        return "DenselineLaneDetector"

    @property
    def is_ready(self) -> bool:
        return self.state == DetectorState.READY

    def _fail(self, error: LaneDetectorError) -> None:
        self.state = DetectorState.FAILED
        self.last_error = error
        logging.error(f"{self.name()} failed: {error}")

    def _require_ready(self) -> None:
        if self.state != DetectorState.READY:
            error = DetectorNotReadyError(f"{self.name()} is {self.state.value}, not ready")
            logging.warning(f"{self.name()} rejected call: {error}")
            raise error

    def _reset(self) -> None:
        self.state = DetectorState.UNINITIALIZED
        self.last_error = None
        self.param = None
        self.geometry = None
        self.color = None
        self.image_options = None
        self.using_default_geometry = False
        self.input_names = []
        self.output_names = []
        self._net = None

    # ------------------------------------------------------------------
    # init
    # ------------------------------------------------------------------

    def init(self, options: LaneDetectorInitOptions) -> None:
        """
        Validate configuration, resolve geometry and load the network.

        Raises:
            LaneDetectorError: Any validation or load failure. The detector
                is left FAILED; call init() again with corrected options.
        """
        # Drop state from a previous init before allocating anything new
        self._reset()

        try:
            self._init(options)
        except LaneDetectorError as e:
            self._net = None
            self._fail(e)
            raise

        self.state = DetectorState.READY
        logging.info(f"{self.name()} ready: {self.geometry.to_dict()}")

    def _init(self, options: LaneDetectorInitOptions) -> None:
        param = options.param
        if param is None:
            param = load_denseline_param(get_absolute_path(options.root_dir, options.conf_file))
        model_param = param.model_param
        net_param = param.net_param

        model_root = get_absolute_path(options.root_dir, model_param.model_name)
        proto_file = get_absolute_path(model_root, model_param.proto_file)
        weight_file = get_absolute_path(model_root, model_param.weight_file)

        camera = options.camera_geometry
        using_default = camera is None
        if camera is None:
            camera = self.default_camera_geometry
            logging.warning(
                f"No camera model supplied; assuming default resolution "
                f"{camera.native_width}x{camera.native_height}"
            )
        if camera.native_width <= 0 or camera.native_height <= 0:
            raise ConfigError(f"camera size {camera.size} must be positive")
        logging.info(f"input_width: {camera.native_width}, input_height: {camera.native_height}")

        try:
            crop = model_param.crop
            resize = model_param.resize
        except (ValueError, TypeError) as e:
            raise ConfigError(str(e)) from e
        validate_crop(camera, crop)

        color = model_param.color
        image_options = ImageOptions(
            target_color=color.channel_order,
            do_crop=True,
            crop_roi=crop.as_roi(),
        )

        geometry = resolve(camera, crop, resize)

        input_names = net_param.input_names
        output_names = net_param.output_names
        logging.info(f"net input blobs: {input_names}")
        logging.info(f"net output blobs: {output_names}")

        net = self._load_network(
            model_param.model_type,
            proto_file,
            weight_file,
            model_root,
            input_names,
            output_names,
            options.gpu_id,
            geometry,
        )
        self._check_tensors(net, input_names, output_names, geometry)

        # Publish the new configuration only once every check has passed
        self.param = param
        self.geometry = geometry
        self.color = color
        self.image_options = image_options
        self.using_default_geometry = using_default
        self.input_names = input_names
        self.output_names = output_names
        self._net = net

    def _load_network(
        self,
        model_type: str,
        proto_file: str,
        weight_file: str,
        model_root: str,
        input_names: List[str],
        output_names: List[str],
        gpu_id: int,
        geometry: ResolvedGeometry,
    ) -> InferenceEngine:
        logging.info(f"model_type: {model_type}")
        input_reshape = {input_names[0]: geometry.input_shape}
        logging.info(f"input_reshape: {input_reshape}")
        try:
            net = self._inference_factory(
                model_type,
                proto_file,
                weight_file,
                output_names,
                input_names,
                model_root,
            )
            net.bind_device(gpu_id)
            ok = net.init(input_reshape)
        except Exception as e:
            raise ModelLoadError(f"could not load '{model_type}' engine: {e}") from e
        if not ok:
            raise ModelLoadError(f"engine rejected input reshape {input_reshape}")
        return net

    def _check_tensors(
        self,
        net: InferenceEngine,
        input_names: List[str],
        output_names: List[str],
        geometry: ResolvedGeometry,
    ) -> None:
        for tensor_name in input_names + output_names:
            blob = net.tensor(tensor_name)
            if blob is None:
                raise UnknownTensorError(f"tensor '{tensor_name}' not found in the loaded network")
            logging.info(f"{tensor_name}: {tuple(blob.shape)}")

        actual = tuple(net.tensor(input_names[0]).shape[1:])
        if actual != expected_chw(geometry):
            raise ShapeDriftError(
                f"input tensor '{input_names[0]}' has shape {actual}, "
                f"expected {expected_chw(geometry)}"
            )

    # ------------------------------------------------------------------
    # detect
    # ------------------------------------------------------------------

    def detect(self, frame: Optional[CameraFrame]) -> np.ndarray:
        """
        Run the network on one frame and publish the primary output.

        Args:
            frame: Camera frame from the bound camera.

        Returns:
            The output tensor also stored in ``frame.lane_detected_blob``.

        Raises:
            DetectorNotReadyError: init() has not succeeded.
            NullFrameError, FrameSizeMismatchError, PreprocessError,
            InferenceError: Per-frame failures; the detector stays READY.
            ShapeDriftError: Network input no longer matches the geometry;
                the detector becomes FAILED.
        """
        self._require_ready()

        try:
            return self._detect(frame)
        except ShapeDriftError as e:
            self._fail(e)
            raise
        except LaneDetectorError as e:
            logging.warning(f"{self.name()} rejected frame: {e}")
            raise

    def _detect(self, frame: Optional[CameraFrame]) -> np.ndarray:
        if frame is None or frame.data_provider is None:
            raise NullFrameError("camera frame is empty")

        camera = self.geometry.camera
        provider = frame.data_provider
        src_size = (provider.src_width, provider.src_height)
        if src_size != camera.size:
            raise FrameSizeMismatchError(
                f"frame {frame.frame_index} size {src_size[0]}x{src_size[1]} does not match "
                f"camera {camera.native_width}x{camera.native_height}"
            )

        image_src = provider.get_image(self.image_options)
        if image_src is None:
            raise PreprocessError(f"data provider returned no image for {self.image_options}")

        input_blob = self._net.tensor(self.input_names[0])
        actual = None if input_blob is None else tuple(input_blob.shape[1:])
        if actual != expected_chw(self.geometry):
            raise ShapeDriftError(
                f"input tensor shape {actual} drifted from {expected_chw(self.geometry)}"
            )

        try:
            self._resize_kernel.issue(
                image_src,
                input_blob,
                self.geometry.crop.width,
                self.color.mean,
                self.color.channel_order,
            )
            self._resize_kernel.synchronize()
        except (ValueError, RuntimeError) as e:
            raise PreprocessError(f"resize kernel failed: {e}") from e
        logging.debug("resize finish")

        try:
            ok = self._net.infer()
        except Exception as e:
            raise InferenceError(f"forward pass failed: {e}") from e
        if not ok:
            raise InferenceError("forward pass failed")
        logging.debug("infer finish")

        # Publish only once every output is in hand
        outputs = self._collect_outputs()
        frame.lane_detected_blob = outputs[self.output_names[0]]
        for tensor_name in self.output_names[1:]:
            frame.extra[tensor_name] = outputs[tensor_name]
        logging.debug(f"lane_detected_blob: {tuple(frame.lane_detected_blob.shape)}")
        return frame.lane_detected_blob

    def _collect_outputs(self) -> Dict[str, np.ndarray]:
        outputs = {}
        for tensor_name in self.output_names:
            blob = self._net.tensor(tensor_name)
            if blob is None:
                raise InferenceError(f"output tensor '{tensor_name}' missing after inference")
            outputs[tensor_name] = blob
        return outputs

    def get_output(self, tensor_name: str) -> np.ndarray:
        """Return any configured output tensor from the last forward pass."""
        self._require_ready()
        if tensor_name not in self.output_names:
            raise UnknownTensorError(f"'{tensor_name}' is not a configured output")
        blob = self._net.tensor(tensor_name)
        if blob is None:
            raise UnknownTensorError(f"tensor '{tensor_name}' not found in the loaded network")
        return blob
