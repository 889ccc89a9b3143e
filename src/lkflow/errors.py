# Andy Zhao
"""
Exception types.

Only whole-call failures are exceptions. A point that cannot be tracked is
reported through FlowResult.status, never raised.
"""


class LKFlowError(Exception):
    """Base class for every error raised by lkflow."""


class InvalidParameterError(LKFlowError, ValueError):
    """
    A call was made with arguments it cannot work with
    (levels < 1, even window size, mismatched pyramids, bad point array, ...).

    Subclasses ValueError so existing `except ValueError` handlers still catch it.
    """
