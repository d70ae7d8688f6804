"""Exceptions raised by the glyph recognition package."""


class PipelineError(Exception):
    """Base exception for pipeline processing errors."""

    pass


class InputError(PipelineError):
    """Exception raised when input data is invalid."""

    pass


class ProcessingError(PipelineError):
    """Exception raised when processing fails."""

    pass


class StepError(ProcessingError):
    """Exception raised by a step when processing of a system fails."""

    pass


class StepCancelledError(PipelineError):
    """Exception raised when a step gets interrupted while waiting on its systems."""

    pass


class ModelLoadError(PipelineError):
    """Exception raised when the trained shape model cannot be loaded."""

    pass
