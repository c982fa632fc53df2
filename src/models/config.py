"""
Typed configuration models matching the YAML config structure.

Two files feed the detector:
- the application config (camera, lane_detector, logging)
- the model descriptor (model_param + net_param) referenced by
  lane_detector.conf_file
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .geometry import CameraGeometry, ColorSpec, CropSpec, ResizeSpec


@dataclass(frozen=True)
class ModelParam:
    """Network artifacts, crop box, resize scale and colour means."""
    model_name: str
    proto_file: str
    weight_file: str
    model_type: str = "opencv"
    resize_scale: float = 1.0
    input_offset_x: int = 0
    input_offset_y: int = 0
    crop_width: int = 0
    crop_height: int = 0
    is_bgr: bool = True
    mean_b: float = 0.0
    mean_g: float = 0.0
    mean_r: float = 0.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelParam":
        return cls(
            model_name=d.get("model_name", ""),
            proto_file=d.get("proto_file", ""),
            weight_file=d.get("weight_file", ""),
            model_type=d.get("model_type", "opencv"),
            resize_scale=d.get("resize_scale", 1.0),
            input_offset_x=d.get("input_offset_x", 0),
            input_offset_y=d.get("input_offset_y", 0),
            crop_width=d.get("crop_width", 0),
            crop_height=d.get("crop_height", 0),
            is_bgr=d.get("is_bgr", True),
            mean_b=d.get("mean_b", 0.0),
            mean_g=d.get("mean_g", 0.0),
            mean_r=d.get("mean_r", 0.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_name": self.model_name,
            "proto_file": self.proto_file,
            "weight_file": self.weight_file,
            "model_type": self.model_type,
            "resize_scale": self.resize_scale,
            "input_offset_x": self.input_offset_x,
            "input_offset_y": self.input_offset_y,
            "crop_width": self.crop_width,
            "crop_height": self.crop_height,
            "is_bgr": self.is_bgr,
            "mean_b": self.mean_b,
            "mean_g": self.mean_g,
            "mean_r": self.mean_r,
        }

    @property
    def crop(self) -> CropSpec:
        return CropSpec(
            offset_x=self.input_offset_x,
            offset_y=self.input_offset_y,
            width=self.crop_width,
            height=self.crop_height,
        )

    @property
    def resize(self) -> ResizeSpec:
        return ResizeSpec.from_value(self.resize_scale)

    @property
    def color(self) -> ColorSpec:
        return ColorSpec.from_means(self.is_bgr, self.mean_b, self.mean_g, self.mean_r)


@dataclass(frozen=True)
class NetParam:
    """Tensor names bound inside the network."""
    in_blob: str
    out_blob: str
    internal_blob_int8: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "NetParam":
        return cls(
            in_blob=d.get("in_blob", ""),
            out_blob=d.get("out_blob", ""),
            internal_blob_int8=list(d.get("internal_blob_int8") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "in_blob": self.in_blob,
            "out_blob": self.out_blob,
            "internal_blob_int8": list(self.internal_blob_int8),
        }

    @property
    def input_names(self) -> List[str]:
        return [self.in_blob]

    @property
    def output_names(self) -> List[str]:
        """Primary output first, then the extra int8 calibration blobs."""
        return [self.out_blob] + list(self.internal_blob_int8)


@dataclass(frozen=True)
class DenselineParam:
    """
    Parsed model descriptor.

    This is a typed representation of the descriptor YAML.
    """
    model_param: ModelParam
    net_param: NetParam

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DenselineParam":
        return cls(
            model_param=ModelParam.from_dict(d.get("model_param", {})),
            net_param=NetParam.from_dict(d.get("net_param", {})),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_param": self.model_param.to_dict(),
            "net_param": self.net_param.to_dict(),
        }


@dataclass
class CameraConfig:
    """Camera configuration. ``resolution`` is None when no camera model is known."""
    resolution: Optional[List[int]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        return cls(resolution=d.get("resolution"))

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        if self.resolution is not None:
            d["resolution"] = self.resolution
        return d

    def to_geometry(self) -> Optional[CameraGeometry]:
        if self.resolution is None:
            return None
        return CameraGeometry.from_resolution(self.resolution)


@dataclass
class LaneDetectorConfig:
    """Which detector to build and where its descriptor lives."""
    name: str = "DenselineLaneDetector"
    root_dir: str = "data/models"
    conf_file: str = "denseline/config.yaml"
    gpu_id: int = -1

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LaneDetectorConfig":
        return cls(
            name=d.get("name", "DenselineLaneDetector"),
            root_dir=d.get("root_dir", "data/models"),
            conf_file=d.get("conf_file", "denseline/config.yaml"),
            gpu_id=d.get("gpu_id", -1),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "root_dir": self.root_dir,
            "conf_file": self.conf_file,
            "gpu_id": self.gpu_id,
        }


@dataclass
class Config:
    """Complete application configuration."""
    camera: CameraConfig = field(default_factory=CameraConfig)
    lane_detector: LaneDetectorConfig = field(default_factory=LaneDetectorConfig)
    log_path: str = "logs/lane_detector.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            lane_detector=LaneDetectorConfig.from_dict(d.get("lane_detector") or {}),
            log_path=d.get("log_path", "logs/lane_detector.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "camera": self.camera.to_dict(),
            "lane_detector": self.lane_detector.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
