"""
Configuration loading and validation.

Application config is layered:
- `config/default.yaml` (checked in)
- `config/config.yaml` (local overrides)
- plus any explicitly provided `--config` path (treated as overrides)

The model descriptor is a separate YAML file referenced by
`lane_detector.conf_file`.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import yaml

from detection.errors import ConfigError
from models.config import DenselineParam

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def get_absolute_path(root_dir: str, path: str) -> str:
    """Join ``path`` onto ``root_dir`` unless it is already absolute."""
    if os.path.isabs(path):
        return path
    return os.path.join(root_dir, path)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(config_path: str) -> Dict[str, Any]:
    """Load the layered application config as a plain dictionary."""
    config_dir = os.path.dirname(config_path)
    base_path = os.path.join(config_dir, "default.yaml")
    local_overrides_path = os.path.join(config_dir, "config.yaml")

    merged: Dict[str, Any] = {}
    if os.path.exists(base_path):
        merged = _read_yaml(base_path)
    if os.path.exists(local_overrides_path):
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

    # Finally apply explicit config_path if it's not one of the layers above
    explicit = os.path.abspath(config_path)
    if explicit not in (os.path.abspath(base_path), os.path.abspath(local_overrides_path)):
        if not os.path.exists(config_path):
            raise ConfigError(f"Config file not found: {config_path}")
        merged = _deep_merge(merged, _read_yaml(config_path))

    return merged


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate application configuration structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['lane_detector', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    camera = config.get('camera') or {}
    resolution = camera.get('resolution')
    if resolution is not None:
        if not isinstance(resolution, list) or len(resolution) != 2:
            return False, "camera.resolution must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in resolution):
            return False, "camera.resolution values must be positive integers"

    detector = config.get('lane_detector') or {}
    for key in ('root_dir', 'conf_file'):
        if not isinstance(detector.get(key), str) or not detector.get(key):
            return False, f"lane_detector.{key} must be a non-empty string"
    gpu_id = detector.get('gpu_id', -1)
    if not isinstance(gpu_id, int) or isinstance(gpu_id, bool) or gpu_id < -1:
        return False, "lane_detector.gpu_id must be an integer >= -1"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def validate_denseline_param(d: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Check the model descriptor for missing fields and wrong types.

    Relationships between fields (crop vs frame, integral resize) are
    checked later by the detector, once the camera size is known.
    """
    model = d.get('model_param')
    if not isinstance(model, dict):
        return False, "Missing required section: model_param"
    net = d.get('net_param')
    if not isinstance(net, dict):
        return False, "Missing required section: net_param"

    for key in ('model_name', 'proto_file', 'weight_file'):
        if not isinstance(model.get(key), str) or not model.get(key):
            return False, f"model_param.{key} must be a non-empty string"
    if 'model_type' in model and not isinstance(model['model_type'], str):
        return False, "model_param.model_type must be a string"

    scale = model.get('resize_scale')
    if isinstance(scale, bool) or not isinstance(scale, (int, float)) or scale <= 0:
        return False, "model_param.resize_scale must be a positive number"

    for key in ('input_offset_x', 'input_offset_y'):
        value = model.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return False, f"model_param.{key} must be a non-negative integer"
    for key in ('crop_width', 'crop_height'):
        value = model.get(key)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            return False, f"model_param.{key} must be a positive integer"

    if 'is_bgr' in model and not isinstance(model['is_bgr'], bool):
        return False, "model_param.is_bgr must be a boolean"
    for key in ('mean_b', 'mean_g', 'mean_r'):
        value = model.get(key, 0.0)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False, f"model_param.{key} must be a number"

    for key in ('in_blob', 'out_blob'):
        if not isinstance(net.get(key), str) or not net.get(key):
            return False, f"net_param.{key} must be a non-empty string"
    extra = net.get('internal_blob_int8') or []
    if not isinstance(extra, list) or not all(isinstance(x, str) and x for x in extra):
        return False, "net_param.internal_blob_int8 must be a list of names"

    return True, None


def parse_denseline_param(d: Dict[str, Any]) -> DenselineParam:
    """Validate a descriptor dictionary and build the typed model."""
    is_valid, error = validate_denseline_param(d)
    if not is_valid:
        raise ConfigError(error)
    return DenselineParam.from_dict(d)


def load_denseline_param(path: str) -> DenselineParam:
    """Load and validate a model descriptor YAML file."""
    if not os.path.exists(path):
        raise ConfigError(f"Model descriptor not found: {path}")
    param = parse_denseline_param(_read_yaml(path))
    logging.info(f"Loaded model descriptor {path}: {param.to_dict()}")
    return param
