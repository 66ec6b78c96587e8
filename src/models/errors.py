"""
Error taxonomy for the live KYC session.

None of these trigger automatic retries. Each is either surfaced to the
operator or absorbed into a best-effort default by the component that
catches it.
"""


class KycError(Exception):
    """Base class for session pipeline errors."""
    pass


class CameraUnavailableError(KycError):
    """The frame source could not be opened. Blocks session start."""
    pass


class ModelLoadError(KycError):
    """The detection model failed to load. Masking degrades to fail-safe."""
    pass


class InferenceError(KycError):
    """One inference cycle failed. Treated as an empty result for that tick."""
    pass


class EmptyImageBufferError(KycError):
    """A captured image buffer had zero length."""
    pass


class NoFaceDetectedError(KycError):
    """The verification service found no face in one of the images."""
    pass


class RemoteServiceError(KycError):
    """A call to the remote verification service failed."""
    pass
