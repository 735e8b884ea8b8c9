"""
Real-time hand detection with a pretrained SSD network.

Load a model once, feed it frames, get pixel-space boxes back after non-max
suppression. Core pre/post-processing needs only NumPy and OpenCV; inference
runtimes live in `handtrack_kit.backends`.
"""

from .errors import HandtrackError, InferenceShapeError, InputDimensionError, InvalidStateError, ModelLoadError
from .nms import NMSConfig, nms
from .params import DEFAULT_PARAMS, ModelParameters, load_model_params, merge_parameters
from .postprocess import HandPostprocessor, build_detections, reduce_scores, to_pixel_box
from .resolution import frame_dimensions, preprocess_frame, valid_resolution
from .runtime import HandDetectionPipeline, PipelineState, find_project_root, load_pipeline, resolve_path
from .types import Detection, RawInferenceOutput
from .video import VideoHandle, start_video, stop_video
from .visualize import render_predictions

__all__ = [
    "HandtrackError",
    "InferenceShapeError",
    "InputDimensionError",
    "InvalidStateError",
    "ModelLoadError",
    "NMSConfig",
    "nms",
    "DEFAULT_PARAMS",
    "ModelParameters",
    "load_model_params",
    "merge_parameters",
    "HandPostprocessor",
    "build_detections",
    "reduce_scores",
    "to_pixel_box",
    "frame_dimensions",
    "preprocess_frame",
    "valid_resolution",
    "HandDetectionPipeline",
    "PipelineState",
    "find_project_root",
    "load_pipeline",
    "resolve_path",
    "Detection",
    "RawInferenceOutput",
    "VideoHandle",
    "start_video",
    "stop_video",
    "render_predictions",
]
