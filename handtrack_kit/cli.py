from __future__ import annotations

import argparse
import itertools
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import numpy as np

from .errors import ModelLoadError
from .params import DEFAULT_PARAMS, ModelParameters, load_model_params, merge_parameters
from .runtime import load_pipeline
from .video import VideoHandle, start_video, stop_video

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LOAD_FAILED = 1
EXIT_USAGE = 2


def setup_logging(level: str) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), handlers=[handler], force=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="handtrack", description="Real-time hand detection on images, video or webcam.")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image.")
    src.add_argument("--video", default=None, help="Path to an input video file or stream URL.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")

    parser.add_argument("--model", default=None, help="Model path (.onnx/.engine/.pt). Default: models/<model_type>.onnx")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / tensorrt / torchscript.")
    parser.add_argument(
        "--onnx-providers",
        default=None,
        help='Comma-separated ORT providers, e.g. "CUDAExecutionProvider,CPUExecutionProvider".',
    )
    parser.add_argument("--config", default=None, help="JSON file with model parameters.")
    parser.add_argument("--score-threshold", type=float, default=None, help="Minimum confidence to keep a box.")
    parser.add_argument("--iou-threshold", type=float, default=None, help="IoU threshold for NMS.")
    parser.add_argument("--max-boxes", type=int, default=None, help="Max detections per frame.")
    parser.add_argument("--no-flip", action="store_true", help="Do not mirror frames before inference.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--show", action="store_true", help="Show real-time window; press q/ESC to exit.")
    parser.add_argument("--json", action="store_true", help="Print one JSON line per frame.")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING...).")
    return parser


def resolve_params(args: argparse.Namespace) -> ModelParameters:
    """Config file first, then explicit CLI flags on top."""
    params = DEFAULT_PARAMS
    if args.config:
        params = load_model_params(Path(args.config))

    overrides: Dict[str, Any] = {}
    if args.score_threshold is not None:
        overrides["score_threshold"] = args.score_threshold
    if args.iou_threshold is not None:
        overrides["iou_threshold"] = args.iou_threshold
    if args.max_boxes is not None:
        overrides["max_num_boxes"] = args.max_boxes
    if args.no_flip:
        overrides["flip_horizontal"] = False
    return merge_parameters(params, overrides)


def open_source(args: argparse.Namespace) -> Tuple[Iterable[np.ndarray], Optional[VideoHandle]]:
    """
    Open the frame source before the model is loaded, so a bad path fails fast.

    Returns the frames and, for video/webcam, the handle to stop afterwards.
    """

    if args.image is not None:
        import cv2  # type: ignore

        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        return [img], None

    source = args.video if args.video is not None else int(args.webcam)
    handle = start_video(source)
    frames: Iterable[np.ndarray] = handle.frames()
    if args.max_frames:
        frames = itertools.islice(frames, int(args.max_frames))
    return frames, handle


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    try:
        params = resolve_params(args)
    except (ValueError, FileNotFoundError) as exc:
        logger.error("Invalid model parameters: %s", exc)
        return EXIT_USAGE

    onnx_providers = None
    if args.onnx_providers:
        onnx_providers = [p.strip() for p in str(args.onnx_providers).split(",") if p.strip()]

    try:
        frames, handle = open_source(args)
    except (FileNotFoundError, RuntimeError) as exc:
        logger.error("Invalid frame source: %s", exc)
        return EXIT_USAGE

    try:
        try:
            pipeline = load_pipeline(args.model, params=params, backend=args.backend, onnx_providers=onnx_providers)
        except ModelLoadError as exc:
            logger.error("%s", exc)
            return EXIT_LOAD_FAILED
        except ValueError as exc:
            logger.error("%s", exc)
            return EXIT_USAGE

        try:
            for frame_idx, frame in enumerate(frames):
                detections = pipeline.detect(frame)
                fps = pipeline.get_fps()
                logger.info("frame=%d hands=%d fps=%d", frame_idx, len(detections), fps)
                if args.json:
                    payload = {"frame": frame_idx, "fps": fps, "detections": [d.to_dict() for d in detections]}
                    print(json.dumps(payload), flush=True)

                if args.show:
                    import cv2  # type: ignore

                    from .visualize import render_predictions

                    vis = render_predictions(
                        frame, detections, fps=fps, flip_horizontal=pipeline.get_parameters().flip_horizontal
                    )
                    cv2.imshow("handtrack", vis)
                    key = cv2.waitKey(0 if args.image is not None else 1) & 0xFF
                    if key in (ord("q"), 27):
                        break
        finally:
            pipeline.dispose()
            if args.show:
                import cv2  # type: ignore

                cv2.destroyAllWindows()
    finally:
        if handle is not None:
            stop_video(handle)

    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
