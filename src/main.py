"""
Frame tracker: frame-indexed detection and single-object tracking over a video.

This script steps a video file frame by frame, runs the detection model on
each frame, optionally tracks one selected object, and keeps every per-frame
result in a timeline that can be replayed over the web API.

Usage:
    python src/main.py --config config/config.yaml --video clip.mp4 --model model.onnx

Arguments:
    --config: Path to configuration file
    --video: Video file (overrides video.path)
    --model: ONNX model file (overrides model.path)
    --start/--end: Processing range in seconds
    --mode: batch or realtime
    --track-id: Detection id on the first frame to track
    --display: Show the realtime overlay window
    --serve: Serve the replay API while processing
"""

import os
import sys
import argparse
import asyncio
import json
import logging
import threading
from typing import Dict, Any, Tuple, Optional

import cv2
import uvicorn
import yaml

from inference.backend import DnnModelConfig, OpenCVDnnModel
from models.config import Config
from models.errors import FrameTrackerError
from models.result import RunResult
from observation import OpenCVSourceConfig, OpenCVVideoSource, probe_video_info
from ops.logging import setup_logging
from pipeline.engine import MODES, create_driver_from_config
from render.overlay import draw_overlay
from timeline.cache import TimelineCache
from timeline.replay import replay
from tracking.tracker import select_detection
from web.app import create_app
from web.state import state as web_state

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
WINDOW_NAME = "Frame Tracker"


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary (after CLI overrides)

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['model', 'video', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Model
    model = config.get('model') or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path is required"
    input_size = model.get('input_size')
    if input_size is not None:
        if not isinstance(input_size, list) or len(input_size) != 2:
            return False, "model.input_size must be a list of [width, height]"
        if not all(isinstance(x, int) and x > 0 for x in input_size):
            return False, "model.input_size values must be positive integers"
    labels = model.get('labels')
    if labels is not None and (not isinstance(labels, list) or not all(isinstance(x, str) for x in labels)):
        return False, "model.labels must be a list of strings"

    # Video
    video = config.get('video') or {}
    if not isinstance(video.get('path'), str) or not video.get('path'):
        return False, "video.path is required"
    if 'seek_timeout' in video and (not _is_number(video['seek_timeout']) or video['seek_timeout'] <= 0):
        return False, "video.seek_timeout must be a positive number"
    if 'settle_delay' in video and (not _is_number(video['settle_delay']) or video['settle_delay'] < 0):
        return False, "video.settle_delay must be a non-negative number"

    # Suppression
    suppression = config.get('suppression') or {}
    if 'max_output_size' in suppression:
        mos = suppression['max_output_size']
        if not isinstance(mos, int) or mos <= 0:
            return False, "suppression.max_output_size must be a positive integer"
    for key in ('iou_threshold', 'score_threshold'):
        if key in suppression:
            value = suppression[key]
            if not _is_number(value) or not (0 <= value <= 1):
                return False, f"suppression.{key} must be between 0 and 1"

    # Tracking
    tracking = config.get('tracking') or {}
    if 'max_missed_frames' in tracking:
        mmf = tracking['max_missed_frames']
        if not isinstance(mmf, int) or mmf < 0:
            return False, "tracking.max_missed_frames must be a non-negative integer"
    for key in ('gating_distance', 'position_variance', 'velocity_variance',
                'process_noise', 'measurement_noise'):
        if key in tracking and (not _is_number(tracking[key]) or tracking[key] <= 0):
            return False, f"tracking.{key} must be a positive number"

    # Processing
    processing = config.get('processing') or {}
    if processing.get('mode', 'batch') not in MODES:
        return False, f"processing.mode must be one of: {', '.join(MODES)}"
    if 'frame_skip' in processing:
        skip = processing['frame_skip']
        if not isinstance(skip, int) or skip <= 0:
            return False, "processing.frame_skip must be a positive integer"
    start = processing.get('start', 0.0)
    end = processing.get('end')
    if not _is_number(start) or start < 0:
        return False, "processing.start must be a non-negative number"
    if end is not None and (not _is_number(end) or end <= start):
        return False, "processing.end must be a number greater than processing.start"

    # Web
    web = config.get('web') or {}
    if 'port' in web and (not isinstance(web['port'], int) or not (0 < web['port'] < 65536)):
        return False, "web.port must be a valid TCP port"

    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def apply_cli_overrides(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Fold command-line flags into the raw config dictionary."""
    overrides: Dict[str, Any] = {}
    if args.video:
        overrides.setdefault('video', {})['path'] = args.video
    if args.model:
        overrides.setdefault('model', {})['path'] = args.model
    if args.mode:
        overrides.setdefault('processing', {})['mode'] = args.mode
    if args.start is not None:
        overrides.setdefault('processing', {})['start'] = args.start
    if args.end is not None:
        overrides.setdefault('processing', {})['end'] = args.end
    if args.serve:
        overrides.setdefault('web', {})['enabled'] = True
    return _deep_merge(config, overrides)


def start_web_server(config: Config) -> threading.Thread:
    """Serve the replay API from a daemon thread."""
    def run_web_app():
        uvicorn.run(
            create_app(),
            host=config.web.host,
            port=config.web.port,
            log_level="info",
        )

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Web interface started on port {config.web.port}")
    return web_thread


def make_display_callback(cache: TimelineCache, config: Config, stop):
    """Show the overlay for every realtime frame; 'q' stops the run."""
    labels = config.model.labels
    draw_boxes = config.processing.draw_boxes

    def show(frame, result):
        view = replay(cache, result.time, draw_boxes=draw_boxes, labels=labels)
        canvas = draw_overlay(frame.frame, view.trail + view.track_trail, view.boxes)
        cv2.imshow(WINDOW_NAME, canvas)
        if cv2.waitKey(1) & 0xFF == ord('q'):
            logging.info("Display closed by user")
            stop()

    return show


def publish_run_stats(result: RunResult) -> None:
    """Mirror in-progress run stats into the web state for /api/status."""
    web_state.update_run_stats({
        "frames": result.stats.frame_count,
        "fps": round(result.stats.fps, 2),
        "last_time": result.last_time,
    })


async def run_session(
    config: Config,
    source: OpenCVVideoSource,
    model: OpenCVDnnModel,
    cache: TimelineCache,
    track_id: Optional[int] = None,
    display: bool = False,
) -> RunResult:
    """
    Run a detection pass, or select a detection on the first frame and track it.
    """
    driver = create_driver_from_config(config, source, model, cache)
    driver.add_stats_listener(publish_run_stats)
    if display:
        if config.processing.mode == "realtime":
            driver.add_callback(make_display_callback(cache, config, driver.stop))
        else:
            logging.warning("--display only applies to realtime mode; ignoring")

    start = config.processing.start
    end = config.processing.end
    web_state.update_run_stats({
        "running": True,
        "mode": config.processing.mode,
        "start": start,
        "end": end if end is not None else source.duration,
        "frames": 0,
        "fps": 0.0,
        "last_time": None,
        "outcome": None,
        "error": None,
    })

    try:
        if track_id is None:
            result = await driver.run(start=start, end=end)
        else:
            first = await driver.detect_at(start)
            logging.info(f"First frame t={first.time:.3f}: {len(first.detections)} detections")
            seed = select_detection(first, track_id)
            result = await driver.run(start=first.time, end=end, seed=seed, track=True)
    except FrameTrackerError as e:
        web_state.update_run_stats({"running": False, "error": str(e)})
        raise

    web_state.update_run_stats({
        "running": False,
        "frames": result.stats.frame_count,
        "fps": round(result.stats.fps, 2),
        "outcome": result.outcome.value,
    })
    return result


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Frame Tracker - frame-indexed detection and tracking')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--video', type=str, default=None,
                        help='Video file to process (overrides video.path)')
    parser.add_argument('--model', type=str, default=None,
                        help='ONNX model file (overrides model.path)')
    parser.add_argument('--start', type=float, default=None,
                        help='Start time in seconds')
    parser.add_argument('--end', type=float, default=None,
                        help='End time in seconds (default: video duration)')
    parser.add_argument('--mode', choices=MODES, default=None,
                        help='Processing mode')
    parser.add_argument('--track-id', type=int, default=None,
                        help='Detection id on the first frame to track')
    parser.add_argument('--display', action='store_true',
                        help='Enable visual display (realtime mode)')
    parser.add_argument('--serve', action='store_true',
                        help='Serve the replay API while processing')
    parser.add_argument('--info', action='store_true',
                        help='Print video metadata and exit')
    parser.add_argument('--output', type=str, default=None,
                        help='Write the processed timeline to a JSON file')
    args = parser.parse_args()

    raw_config = apply_cli_overrides(load_config(args.config), args)

    if args.info:
        info = probe_video_info((raw_config.get('video') or {}).get('path', ''))
        if info is None:
            sys.exit(1)
        print(json.dumps(info.__dict__, indent=2))
        return

    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    config = Config.from_dict(raw_config)
    setup_logging(config.log_path, config.log_level)
    logging.info("Starting Frame Tracker")

    cache = TimelineCache()
    web_state.set_cache(cache)
    web_state.set_config(config, args.config)
    if config.web.enabled:
        start_web_server(config)

    source = OpenCVVideoSource(OpenCVSourceConfig(
        source_id=os.path.basename(config.video.path),
        path=config.video.path,
    ))
    exit_code = 0
    try:
        source.open()
        model = OpenCVDnnModel(DnnModelConfig.from_config(config.model))

        result = asyncio.run(run_session(
            config,
            source,
            model,
            cache,
            track_id=args.track_id,
            display=args.display,
        ))
        logging.info(
            f"Run finished: outcome={result.outcome.value} frames={result.stats.frame_count} "
            f"detections={result.stats.detection_count} fps={result.stats.fps:.2f}"
        )

        if args.output:
            with open(args.output, "w") as f:
                json.dump([r.to_dict() for r in cache.snapshot()], f, indent=2)
            logging.info(f"Timeline written to {args.output}")

        if config.web.enabled:
            logging.info("Processing done; replay API still serving (Ctrl+C to exit)")
            threading.Event().wait()

    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    except FrameTrackerError as e:
        logging.error(f"Processing failed: {e}")
        exit_code = 1
    except RuntimeError as e:
        logging.error(f"Error: {e}")
        exit_code = 1
    finally:
        source.close()
        if args.display:
            cv2.destroyAllWindows()
        logging.info("Frame Tracker stopped")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
