class LCPhaseError(Exception):
    """Base class for all phase analysis errors."""


class FrameProcessingError(LCPhaseError):
    """A single frame could not be analyzed. Recoverable: the frame is recorded as ERROR."""

    def __init__(self, message, frame_index=None):
        super().__init__(message)
        self.frame_index = frame_index


class MaskConstructionError(LCPhaseError):
    """The electrode mask could not be built from the reference frame."""


class FrameAcquisitionError(LCPhaseError):
    """The frame source cannot produce frames at all."""


class SourceExhaustionBeforeStart(FrameAcquisitionError):
    """The frame source reached end of stream before yielding a single frame."""


class FrameSourceTimeout(LCPhaseError):
    """A single frame read exceeded the bounded wait."""


class ConfigurationError(LCPhaseError, ValueError):
    """Invalid analysis configuration, rejected before a session starts."""


class SessionStateError(LCPhaseError):
    """An operation is not allowed in the session's current state."""
