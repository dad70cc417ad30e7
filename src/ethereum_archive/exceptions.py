"""
Error types raised while converting block archives.

Every error is fatal to the conversion in progress. The subclasses exist so
that callers can tell the kinds apart (for instance to pick an exit code).
"""


class ArchiveException(Exception):
    """
    Base class for all exceptions _expected_ to be thrown during a
    conversion.
    """


class MalformedInputError(ArchiveException):
    """
    Thrown when wire or archive bytes do not follow their grammar.
    """


class BlockDecodingError(MalformedInputError):
    """
    Thrown when a block in a wire stream cannot be decoded. `index` is the
    position of the block within the archive being accumulated.
    """

    index: int

    def __init__(self, index: int, message: str) -> None:
        super().__init__(f"decoding wire block {index}: {message}")
        self.index = index


class BoundsError(ArchiveException):
    """
    Thrown when a field or list is longer than its declared maximum.
    """


class ContiguityError(ArchiveException):
    """
    Thrown when block numbers are missing, duplicated or out of order.
    """


class ConsistencyError(ArchiveException):
    """
    Thrown when an archive header disagrees with its body.
    """


class ConfigurationError(ArchiveException):
    """
    Thrown when the requested conversion is not possible with the given
    options.
    """


def ensure(value: bool, exception: ArchiveException) -> None:
    """
    Raise `exception` unless `value` is truthy.
    """
    if not value:
        raise exception
