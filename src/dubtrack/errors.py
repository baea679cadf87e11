"""
Error types raised by the dub track pipeline.
"""

from __future__ import annotations

from .models import SpeechUnit


class DubError(RuntimeError):
    """Base error carrying the pipeline stage it was raised in."""

    fatal = True

    def __init__(self, message: str, stage: str) -> None:
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


class AcquisitionFailure(DubError):
    def __init__(self, message: str) -> None:
        super().__init__(message, stage="acquire")


class NoCaptionsAvailable(AcquisitionFailure):
    pass


class IncompleteTranslation(DubError):
    """Fewer units were translated than expected. Carries the partial result."""

    fatal = False

    def __init__(self, units: list[SpeechUnit], expected: int) -> None:
        super().__init__(
            f"only {len(units)} of {expected} units were translated", stage="translate"
        )
        self.units = units
        self.expected = expected
        self.mapped = len(units)


class SynthesisFailure(DubError):
    fatal = False

    def __init__(self, index: int, cause: BaseException) -> None:
        super().__init__(f"unit {index} failed after retry: {cause}", stage="synthesize")
        self.index = index


class NoUsableSegments(DubError):
    def __init__(self, expected: int) -> None:
        super().__init__(f"no usable clips out of {expected} units", stage="composite")
        self.expected = expected


class CompressionFailure(DubError):
    fatal = False

    def __init__(self, index: int, cause: BaseException) -> None:
        super().__init__(f"speed adjustment of unit {index} failed: {cause}", stage="timing")
        self.index = index


class NormalizationFailure(DubError):
    fatal = False

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"loudness normalization failed: {cause}", stage="normalize")


class CompositeFailure(DubError):
    def __init__(self, clip_count: int, cause: BaseException) -> None:
        super().__init__(f"mixing {clip_count} clips failed: {cause}", stage="composite")
        self.clip_count = clip_count


class RunCancelled(DubError):
    def __init__(self, stage: str) -> None:
        super().__init__("run cancelled", stage=stage)
