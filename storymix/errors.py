"""Exception hierarchy for the compositor."""


class StoryMixError(Exception):
    """Base class for all compositor errors."""


class InvalidInputError(StoryMixError):
    """Raised when descriptors or configuration are malformed."""


class ManifestError(StoryMixError):
    """Raised when a request manifest cannot be read."""


class RenderAllocationError(StoryMixError):
    """Raised when the mix buffer for a render cannot be allocated.

    Carries the computed duration so pathological timing values can be traced.
    """

    def __init__(self, duration_seconds: float, frames: int, reason: str = ""):
        self.duration_seconds = duration_seconds
        self.frames = frames
        message = f"Cannot allocate mix of {duration_seconds:.3f}s ({frames} frames)"
        if reason:
            message += f": {reason}"
        super().__init__(message)
