from __future__ import annotations


class HandtrackError(Exception):
    """
    Base class for errors raised by `handtrack_kit`.
    """


class ModelLoadError(HandtrackError, RuntimeError):
    """
    The model could not be acquired or the warm-up inference failed.

    Fatal for the load attempt: the pipeline moves to LOAD_FAILED and cannot be reused.
    """


class InvalidStateError(HandtrackError, RuntimeError):
    """
    An operation was called in a pipeline state that does not allow it
    (e.g. `detect` before `load` or after `dispose`).
    """


class InferenceShapeError(HandtrackError, ValueError):
    """
    The backend returned the wrong number of outputs, or outputs with unexpected shapes.
    """


class InputDimensionError(HandtrackError, ValueError):
    """
    A frame (or dimension) is zero or negative.
    """
