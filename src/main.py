"""
Run the dense-line lane network over an image or video file.

Loads the application config, initialises the lane detector for the
configured camera, feeds every frame through it and logs the shape of
the published lane map.

Usage:
    python src/main.py --config config/config.yaml --input road.mp4

Arguments:
    --config: Path to configuration file
    --input: Image or video file to process
    --max-frames: Stop after this many frames (0 = all)
"""

import argparse
import logging
import os
import sys
import time
from typing import Iterator, Optional

import cv2
import numpy as np

from detection.base import LaneDetectorInitOptions, create_lane_detector
from detection.errors import ConfigError, LaneDetectorError, ShapeDriftError
from models.config import Config
from models.frame import CameraFrame
from ops.config import load_config, validate_config
from ops.logging import setup_logging

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg', '.bmp')


def iter_frames(path: str, max_frames: int = 0) -> Iterator[np.ndarray]:
    """Yield BGR frames from an image or a video file."""
    if path.lower().endswith(IMAGE_EXTENSIONS):
        image = cv2.imread(path, cv2.IMREAD_COLOR)
        if image is None:
            raise IOError(f"Could not read image: {path}")
        yield image
        return

    cap = cv2.VideoCapture(path)
    if not cap.isOpened():
        raise IOError(f"Could not open video: {path}")
    count = 0
    try:
        while max_frames <= 0 or count < max_frames:
            ok, image = cap.read()
            if not ok:
                break
            count += 1
            yield image
    finally:
        cap.release()


def run(config: Config, input_path: str, max_frames: int = 0) -> int:
    """
    Process ``input_path`` and return the number of frames with output.

    Per-frame rejections are logged and skipped; shape drift stops the run.
    """
    detector = create_lane_detector(config.lane_detector.name)
    detector.init(LaneDetectorInitOptions(
        root_dir=config.lane_detector.root_dir,
        conf_file=config.lane_detector.conf_file,
        camera_geometry=config.camera.to_geometry(),
        gpu_id=config.lane_detector.gpu_id,
    ))

    processed = 0
    for index, image in enumerate(iter_frames(input_path, max_frames)):
        frame = CameraFrame.from_numpy(image, timestamp=time.time(), frame_index=index, source=input_path)
        started = time.perf_counter()
        try:
            blob = detector.detect(frame)
        except ShapeDriftError:
            logging.error("Network state corrupted, stopping")
            break
        except LaneDetectorError:
            continue
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        processed += 1
        logging.info(f"frame={index} lane_blob={tuple(blob.shape)} time={elapsed_ms:.1f}ms")

    logging.info(f"Processed {processed} frame(s) from {input_path}")
    return processed


def main(argv: Optional[list] = None) -> int:
    """Main application function."""
    parser = argparse.ArgumentParser(description='Dense-line lane detector')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--input', type=str, required=True,
                        help='Image or video file to process')
    parser.add_argument('--max-frames', type=int, default=0,
                        help='Stop after this many frames (0 = all)')
    args = parser.parse_args(argv)

    try:
        raw = load_config(args.config)
    except ConfigError as e:
        logging.error(f"Failed to load configuration: {e}")
        return 1

    is_valid, error_msg = validate_config(raw)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    config = Config.from_dict(raw)
    setup_logging(config.log_path, config.log_level)

    if not os.path.exists(args.input):
        logging.error(f"Input not found: {args.input}")
        return 1

    try:
        run(config, args.input, args.max_frames)
    except LaneDetectorError as e:
        logging.error(f"Lane detector init failed: {e}")
        return 1
    except IOError as e:
        logging.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
