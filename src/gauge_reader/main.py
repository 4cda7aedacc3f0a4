"""Command-line entrypoint: read a scale display from an image or a camera grab."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Optional, Sequence, Tuple

import cv2

from gauge_reader.config import Config, load_config
from gauge_reader.core.detector import YoloDetector
from gauge_reader.core.entities import FrameData
from gauge_reader.core.reading import VocabularyRules
from gauge_reader.infra import configure_logging, install_exception_hook
from gauge_reader.services import capture_frame, load_image, rotate_image
from gauge_reader.state_machine import TwoStagePipeline
from gauge_reader.ui import OverlayRenderer, ReadingController

logger = logging.getLogger("app.main")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read the value and unit shown on a scale display.")
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("config/app.yaml"),
        help="Path to the YAML/JSON configuration file.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--image", type=Path, help="Image file to read (gallery pick).")
    source.add_argument(
        "--camera",
        nargs="?",
        const=-1,
        type=int,
        help="Capture one frame from a camera; defaults to camera.device_index.",
    )
    parser.add_argument(
        "--rotation",
        type=int,
        default=0,
        choices=(0, 90, 180, 270),
        help="Clockwise rotation applied before detection.",
    )
    parser.add_argument(
        "--display-size",
        type=_parse_size,
        default=None,
        help="Overlay window size as WIDTHxHEIGHT (defaults to overlay.display_size).",
    )
    parser.add_argument("--window", type=str, default="Gauge Reader", help="OpenCV window title.")
    parser.add_argument("--no-window", action="store_true", help="Headless: print the reading only.")
    return parser.parse_args(argv)


def _parse_size(value: str) -> Tuple[int, int]:
    try:
        width, height = (int(part) for part in value.lower().split("x", 1))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {value!r}") from exc
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError("Display size must be positive.")
    return width, height


def build_pipeline(config: Config) -> TwoStagePipeline:
    unit_detector = YoloDetector(config.detectors.unit, name="unit")
    measurement_detector = YoloDetector(config.detectors.measurement, name="measurement")
    return TwoStagePipeline(unit_detector, measurement_detector, config=config.pipeline)


def acquire_frame(args: argparse.Namespace, config: Config) -> FrameData:
    if args.image is not None:
        return load_image(args.image)
    device = config.camera.device_index if args.camera is None or args.camera < 0 else args.camera
    return capture_frame(device, config.camera.resolution, config.camera.warmup_frames)


def run(args: argparse.Namespace, config: Config) -> int:
    install_exception_hook()

    view_size = args.display_size or tuple(config.overlay.display_size)
    renderer = OverlayRenderer(config.overlay)
    pipeline = build_pipeline(config)
    controller = ReadingController(
        pipeline,
        renderer,
        rules=VocabularyRules.from_config(config.vocabulary),
        view_size=view_size,
    )

    try:
        try:
            frame = acquire_frame(args, config)
        except (FileNotFoundError, ValueError, RuntimeError) as exc:
            logger.error("Unable to acquire image: %s", exc)
            print(f"Error: {exc}", file=sys.stderr)
            return 1

        controller.select_image(frame)
        if not controller.predict(args.rotation):
            print(controller.result_text, file=sys.stderr)
            return 1

        while not controller.ui_enabled:
            pipeline.wait_idle(timeout=config.pipeline.poll_interval_s)
            controller.pump()

        print(controller.result_text)
        if controller.last_reading is None:
            return 1
        if controller.last_inference_ms is not None:
            logger.info("Total inference time: %d ms", controller.last_inference_ms)

        if not args.no_window:
            _show_overlay(args.window, frame, args.rotation, renderer, controller, view_size)
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user (Ctrl+C).")
        return 130
    finally:
        controller.close()
        logger.info("Shutdown complete.")


def _show_overlay(
    window_name: str,
    frame: FrameData,
    rotation: int,
    renderer: OverlayRenderer,
    controller: ReadingController,
    view_size: Tuple[int, int],
) -> None:
    image = rotate_image(frame.image, rotation)
    canvas = renderer.compose(image, controller.last_display_rect, view_size)
    cv2.putText(canvas, controller.result_text, (12, 36), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 255, 255), 2, cv2.LINE_AA)
    try:
        cv2.namedWindow(window_name, cv2.WINDOW_AUTOSIZE)
        cv2.imshow(window_name, canvas)
    except cv2.error as exc:
        logger.warning("OpenCV GUI unavailable (%s). Skipping overlay window.", exc)
        return

    logger.info("Press q or Esc to close the overlay window.")
    try:
        while True:
            key = cv2.waitKey(50) & 0xFF
            if key in (27, ord("q")):
                break
            if cv2.getWindowProperty(window_name, cv2.WND_PROP_VISIBLE) < 1:
                break
            time.sleep(0.01)
    finally:
        cv2.destroyAllWindows()


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        config = load_config(args.config) if args.config.exists() else Config()
    except Exception as exc:
        print(f"Unable to read configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    configure_logging(config.logging)
    if args.config.exists():
        logger.info("Configuration loaded from %s", args.config)
    else:
        logger.warning("Configuration %s not found; using defaults.", args.config)
    sys.exit(run(args, config))


if __name__ == "__main__":
    main()
