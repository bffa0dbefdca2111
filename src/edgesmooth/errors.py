"""Custom exception hierarchy for EdgeSmooth."""


class EdgeSmoothError(Exception):
    """Base exception for all EdgeSmooth errors."""


class ImageError(EdgeSmoothError):
    """Errors related to image loading or processing."""


class ImageFormatError(ImageError):
    """Unsupported or corrupted image format."""


class ImageDimensionError(ImageError):
    """Image dimensions are empty, exceed limits, or are mismatched."""


class SolverError(EdgeSmoothError):
    """Errors during the linear system solve."""


class SolverDivergenceError(SolverError):
    """Solver broke down and produced no usable estimate."""


class ArgumentError(EdgeSmoothError):
    """Invalid operator arguments (unparsable literals, bad values)."""


class ArgumentCountError(ArgumentError):
    """Operator invoked with the wrong number of arguments."""


class PipelineError(EdgeSmoothError):
    """Errors during stack program execution."""


class StackUnderflowError(PipelineError):
    """Operator needed more images than the stack holds."""


class UnknownOperatorError(PipelineError):
    """Program referenced an operator that is not registered."""
