# adaptive_codecs/errors.py
# Exceptions shared by every codec in the package.


class CodecError(Exception):
    """Base class for all codec failures."""


class StreamDecodeError(CodecError):
    """The bit stream could not be decoded to the end.

    ``decoded`` holds whatever was recovered before the failure point, for
    diagnostics only.
    """

    def __init__(self, message, decoded=None):
        super().__init__(message)
        self.decoded = list(decoded) if decoded is not None else []


class TruncatedStreamError(StreamDecodeError):
    """The bit stream ended in the middle of a code or a raw symbol field."""


class CorruptStreamError(StreamDecodeError):
    """The bit stream holds something no encoder could have produced."""


class InvariantViolation(CodecError):
    """Internal consistency failure in the tree bookkeeping."""


class SymbolRangeError(CodecError, ValueError):
    """A symbol does not fit the configured width or model."""
