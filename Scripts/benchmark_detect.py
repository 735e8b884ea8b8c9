from __future__ import annotations

import argparse
import itertools
import time
from typing import List

import cv2
import numpy as np

from handtrack_kit import load_pipeline, merge_parameters, start_video, stop_video


def main() -> int:
    parser = argparse.ArgumentParser(description="Benchmark hand detection latency (preprocess + inference + NMS).")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--image", default=None, help="Path to an input image (repeated N times).")
    src.add_argument("--video", default=None, help="Path to an input video file.")
    src.add_argument("--webcam", type=int, default=None, help="Webcam index (e.g., 0).")

    parser.add_argument("--model", default=None, help="Model path (.onnx/.engine/.pt).")
    parser.add_argument("--backend", default=None, help="Force backend: onnxruntime / tensorrt / torchscript.")
    parser.add_argument("--scale", type=float, default=0.7, help="Image scale factor before stride alignment.")
    parser.add_argument("--score", type=float, default=0.99, help="Score threshold.")
    parser.add_argument("--max-frames", type=int, default=0, help="Stop after N frames (0 = no limit).")
    parser.add_argument("--warmup", type=int, default=10, help="Frames to run but not record.")
    parser.add_argument("--repeats", type=int, default=50, help="For --image only: number of repeats.")
    args = parser.parse_args()

    handle = None
    if args.image is not None:
        img = cv2.imread(args.image)
        if img is None:
            raise FileNotFoundError(f"Could not read image at path: {args.image}")
        frames = itertools.repeat(img, max(1, args.repeats))
    else:
        handle = start_video(args.video if args.video is not None else args.webcam)
        frames = handle.frames()
    if args.max_frames:
        frames = itertools.islice(frames, args.max_frames)

    params = merge_parameters(image_scale_factor=args.scale, score_threshold=args.score)
    pipeline = load_pipeline(args.model, params=params, backend=args.backend)

    timings_ms: List[float] = []
    try:
        for i, frame in enumerate(frames):
            t0 = time.perf_counter()
            pipeline.detect(frame)
            if i >= args.warmup:
                timings_ms.append((time.perf_counter() - t0) * 1000.0)
    finally:
        pipeline.dispose()
        if handle is not None:
            stop_video(handle)

    if not timings_ms:
        raise RuntimeError("No samples collected (check input source / max-frames / warmup).")

    p50, p90, p95 = np.percentile(timings_ms, [50, 90, 95])
    print(
        f"detect: n={len(timings_ms)} mean={np.mean(timings_ms):.3f}ms "
        f"p50={p50:.3f}ms p90={p90:.3f}ms p95={p95:.3f}ms"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
