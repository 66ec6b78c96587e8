"""
Live KYC session: masked agent view, timed capture and identity verification.

Starts the camera, the detection model and the session state machine, then
serves the HTTP API (default) or opens the local operator console.

Usage:
    python src/main.py --config config/config.yaml
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Open the operator console instead of the web server
    --host / --port: Override web.host / web.port
"""

import os
import sys
import argparse
import asyncio
import logging
import yaml
from typing import Dict, Any, Tuple, Optional

import uvicorn

from models.config import Config
from models.errors import CameraUnavailableError
from ops.logging import setup_logging, VALID_LOG_LEVELS
from runtime.context import RuntimeContext, build_runtime


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


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'detection', 'masking', 'session', 'verification', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Camera
    camera = config.get('camera') or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (URL/file)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    if 'resolution' in camera:
        res = camera['resolution']
        if not isinstance(res, list) or len(res) != 2 or not all(isinstance(x, int) and x > 0 for x in res):
            return False, "camera.resolution must be a list of two positive integers [width, height]"
    if 'fps' in camera and (not isinstance(camera['fps'], int) or camera['fps'] <= 0):
        return False, "camera.fps must be a positive integer"

    # Detection
    detection = config.get('detection') or {}
    if not isinstance(detection.get('model_path'), str) or not detection.get('model_path'):
        return False, "detection.model_path is required"
    if 'input_size' in detection and (not isinstance(detection['input_size'], int) or detection['input_size'] <= 0):
        return False, "detection.input_size must be a positive integer"
    if 'score_threshold' in detection:
        thr = detection['score_threshold']
        if not _is_number(thr) or not (0 <= thr < 1):
            return False, "detection.score_threshold must be a number in [0, 1)"

    # Masking
    masking = config.get('masking') or {}
    for key in ('reveal_width_ratio', 'reveal_height_ratio'):
        if key in masking and (not _is_number(masking[key]) or not (0 < masking[key] <= 1)):
            return False, f"masking.{key} must be in (0, 1]"
    if 'dim_alpha' in masking and (not _is_number(masking['dim_alpha']) or not (0 <= masking['dim_alpha'] < 1)):
        return False, "masking.dim_alpha must be in [0, 1)"
    if 'blur_sigma' in masking and (not _is_number(masking['blur_sigma']) or masking['blur_sigma'] <= 0):
        return False, "masking.blur_sigma must be positive"
    if 'refresh_hz' in masking and (not _is_number(masking['refresh_hz']) or masking['refresh_hz'] <= 0):
        return False, "masking.refresh_hz must be positive"

    # Session
    session = config.get('session') or {}
    if 'countdown_start' in session and (not isinstance(session['countdown_start'], int) or session['countdown_start'] < 0):
        return False, "session.countdown_start must be a non-negative integer"
    if 'countdown_interval_s' in session and (
        not _is_number(session['countdown_interval_s']) or session['countdown_interval_s'] <= 0
    ):
        return False, "session.countdown_interval_s must be positive"
    if 'capture_quality' in session and (
        not _is_number(session['capture_quality']) or not (0 < session['capture_quality'] <= 1)
    ):
        return False, "session.capture_quality must be in (0, 1]"

    # Verification
    verification = config.get('verification') or {}
    if not isinstance(verification.get('service_url'), str) or not verification.get('service_url'):
        return False, "verification.service_url is required"
    if verification.get('text_backend', 'remote') not in ('remote', 'vision'):
        return False, "verification.text_backend must be one of: remote, vision"
    if verification.get('face_backend', 'remote') not in ('remote', 'rekognition'):
        return False, "verification.face_backend must be one of: remote, rekognition"
    if 'similarity_threshold' in verification and (
        not _is_number(verification['similarity_threshold'])
        or not (0 <= verification['similarity_threshold'] <= 100)
    ):
        return False, "verification.similarity_threshold must be between 0 and 100"
    if 'match_threshold' in verification and (
        not _is_number(verification['match_threshold']) or not (0 <= verification['match_threshold'] <= 100)
    ):
        return False, "verification.match_threshold must be between 0 and 100"
    if 'timeout_s' in verification and (not _is_number(verification['timeout_s']) or verification['timeout_s'] <= 0):
        return False, "verification.timeout_s must be positive"

    # Logging
    if config['log_level'] not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def run_server(ctx: RuntimeContext, host: str, port: int) -> None:
    """Serve the HTTP API; the app lifespan starts and stops the runtime."""
    from web.app import create_app

    uvicorn.run(create_app(ctx), host=host, port=port, log_level="info")


async def run_console(ctx: RuntimeContext) -> None:
    """Run the local operator console until the operator quits."""
    from runtime.console import OperatorConsole

    try:
        await ctx.start()
    except CameraUnavailableError as e:
        logging.error(f"Cannot open operator console: {e}")
        return
    try:
        await OperatorConsole(ctx, refresh_hz=ctx.config.masking.refresh_hz).run()
    finally:
        await ctx.stop()


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='KYC Live - masked identity verification session')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Open the local operator console instead of the web server')
    parser.add_argument('--host', type=str, default=None,
                        help='Web server host (overrides web.host)')
    parser.add_argument('--port', type=int, default=None,
                        help='Web server port (overrides web.port)')
    args = parser.parse_args()

    raw = load_config(args.config)

    is_valid, error_msg = validate_config(raw)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(raw['log_path'], raw['log_level'])

    config = Config.from_dict(raw)
    logging.info("Starting KYC Live")

    ctx = build_runtime(config)

    try:
        if args.display:
            asyncio.run(run_console(ctx))
        else:
            run_server(ctx, args.host or config.web.host, args.port or config.web.port)
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
    finally:
        logging.info("KYC Live stopped")


if __name__ == "__main__":
    main()
