"""
Reading wire encoded blocks into archives.

Wire encoded block exports can be far larger than what fits in memory, and
the archive encoding needs a whole body in memory to lay out its offsets.
`ChunkedArchiveReader` therefore cuts the input into archives of roughly a
target size.
"""

import logging
from enum import Enum, auto
from typing import BinaryIO, Iterator, List, Optional, Sequence

from ethereum_types.bytes import Bytes

from .archive import BLOCK
from .blocks import ArchiveBody, Block
from .exceptions import (
    BlockDecodingError,
    BoundsError,
    MalformedInputError,
)
from .wire import decode_block


class CountingReader:
    """
    Wraps a binary stream, counting the bytes consumed from it and allowing
    the end of the stream to be detected without consuming anything.
    """

    stream: BinaryIO
    count: int
    _lookahead: Bytes

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream
        self.count = 0
        self._lookahead = b""

    def read(self, size: int = -1) -> Bytes:
        """
        Read up to `size` bytes (everything if `size` is negative).
        """
        if size == 0:
            return b""

        data = self._lookahead
        self._lookahead = b""
        if size < 0:
            data += self.stream.read()
        elif len(data) < size:
            data += self.stream.read(size - len(data))
        self.count += len(data)
        return data

    def at_end(self) -> bool:
        """
        Whether the underlying stream has been exhausted.
        """
        if not self._lookahead:
            self._lookahead = self.stream.read(1)
        return not self._lookahead


class MultiFileReader:
    """
    Presents several binary streams, read one after the other, as a single
    stream.
    """

    streams: List[BinaryIO]

    def __init__(self, streams: Sequence[BinaryIO]) -> None:
        self.streams = list(streams)

    def read(self, size: int = -1) -> Bytes:
        """
        Read up to `size` bytes, crossing stream boundaries as needed.
        """
        chunks = []
        remaining = size
        while self.streams and remaining != 0:
            data = self.streams[0].read(remaining)
            if not data or remaining < 0:
                self.streams.pop(0)
            chunks.append(data)
            if remaining > 0:
                remaining -= len(data)
        return b"".join(chunks)


class ReaderState(Enum):
    """
    States of a `ChunkedArchiveReader`.
    """

    ACCUMULATING = auto()
    ARCHIVE_READY = auto()
    END_OF_INPUT = auto()


class ChunkedArchiveReader:
    """
    Decodes a stream of wire encoded blocks into successive archive bodies.

    Every block is checked against the archive bounds as soon as it is
    decoded.

    Before each block, the reader stops if the input is exhausted or if at
    least `target_size` bytes have been consumed since the previous archive.
    A `target_size` of zero puts every block into a single archive.
    """

    input: CountingReader
    with_receipts: bool
    target_size: int
    state: ReaderState
    log: logging.Logger

    def __init__(
        self,
        stream: BinaryIO,
        with_receipts: bool,
        target_size: int = 0,
        log: Optional[logging.Logger] = None,
    ) -> None:
        self.input = CountingReader(stream)
        self.with_receipts = with_receipts
        self.target_size = target_size
        self.state = ReaderState.ACCUMULATING
        self.log = log if log is not None else logging.getLogger(__name__)

    def _target_reached(self) -> bool:
        return self.target_size > 0 and self.input.count >= self.target_size

    def read_one_archive(self) -> Optional[ArchiveBody]:
        """
        Decode the next archive from the input.

        Returns
        -------
        body : `Optional[ethereum_archive.blocks.ArchiveBody]`
            The next non-empty archive body, or `None` once the input has
            been exhausted.
        """
        if self.state == ReaderState.END_OF_INPUT:
            return None
        self.state = ReaderState.ACCUMULATING

        blocks: List[Block] = []
        while self.state == ReaderState.ACCUMULATING:
            if self.input.at_end():
                self.log.info(
                    "Read final archive (%d bytes)", self.input.count
                )
                self.state = ReaderState.END_OF_INPUT
            elif self._target_reached():
                self.log.info("Read one archive (%d bytes)", self.input.count)
                self.state = ReaderState.ARCHIVE_READY
            else:
                blocks.append(self._decode_block(len(blocks)))

        self.input.count = 0
        if not blocks:
            return None
        return ArchiveBody(blocks=tuple(blocks))

    def _decode_block(self, index: int) -> Block:
        try:
            block = decode_block(self.input, self.with_receipts)
            BLOCK.validate(block)
            return block
        except (MalformedInputError, BoundsError) as e:
            raise BlockDecodingError(index, str(e)) from e

    def __iter__(self) -> Iterator[ArchiveBody]:
        while True:
            body = self.read_one_archive()
            if body is None:
                return
            yield body
