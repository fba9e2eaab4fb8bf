"""Exceptions raised by the face matching pipeline."""


class FaceMatchError(Exception):
    """Base exception for face matching errors."""


class ModelLoadError(FaceMatchError):
    """Raised when a model bundle cannot be loaded or is missing a module."""


class CameraError(FaceMatchError):
    """Raised when the capture device cannot be opened."""


class ReferenceImageError(FaceMatchError):
    """Raised when a reference image cannot be read."""
