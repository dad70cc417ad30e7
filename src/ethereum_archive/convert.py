"""
Conversion between wire encoded block exports and archive files.

Whichever direction a conversion runs in, the blocks it produces must cover
an unbroken range of block numbers, so every archive is checked against the
one before it.
"""

import logging
import os
from typing import (
    BinaryIO,
    Callable,
    ContextManager,
    Iterable,
    List,
    Optional,
    Tuple,
)

from ethereum_types.numeric import U64

from .archive import (
    check_archive,
    hash_tree_root,
    read_archive,
    read_archive_header,
    write_archive,
)
from .blocks import ArchiveHeader, make_archive_header
from .crypto.hash import Hash32
from .exceptions import ConsistencyError, ContiguityError, ensure
from .reader import ChunkedArchiveReader
from .wire import write_blocks

logger = logging.getLogger(__name__)

SinkFactory = Callable[[int], ContextManager[BinaryIO]]
"""
Opens the sink for the archive with the given (0-based) sequence number.
The sink is left when the archive has been written.
"""


class ContiguityTracker:
    """
    Checks that successive archives continue exactly where the previous one
    ended.
    """

    expected: Optional[int]

    def __init__(self) -> None:
        self.expected = None

    def check(self, head_block_number: U64, block_count: int) -> None:
        """
        Record an archive of `block_count` blocks starting at
        `head_block_number`, raising `ContiguityError` if it does not
        directly follow the previously recorded archive.
        """
        head = int(head_block_number)
        if self.expected is not None:
            ensure(
                head == self.expected,
                ContiguityError(
                    f"non-consecutive blocks ({head}, expected {self.expected})"
                ),
            )
        self.expected = head + block_count


def numbered_file_name(name: str, number: int) -> str:
    """
    Insert `-<number>` before the extension of `name`, so that `blocks.ssz`
    becomes `blocks-0.ssz`, `blocks-1.ssz`, and so on.
    """
    base, extension = os.path.splitext(name)
    return f"{base}-{number}{extension}"


def convert_wire_to_archive(
    source: BinaryIO,
    open_sink: SinkFactory,
    with_receipts: bool,
    target_size: int = 0,
) -> List[ArchiveHeader]:
    """
    Convert a stream of wire encoded blocks into one or more archives.

    Parameters
    ----------
    source :
        Wire encoded blocks, possibly several files read back to back.
    open_sink :
        Called with the sequence number of each archive; returns a context
        manager for where it should be written.
    with_receipts :
        Whether every block in `source` is followed by its receipts.
    target_size :
        Approximate number of input bytes per archive. Zero writes a single
        archive.

    Returns
    -------
    headers : `List[ethereum_archive.blocks.ArchiveHeader]`
        Headers of the archives written, in order.
    """
    reader = ChunkedArchiveReader(source, with_receipts, target_size)
    tracker = ContiguityTracker()
    headers = []
    for index, body in enumerate(reader):
        header = make_archive_header(body)
        tracker.check(header.head_block_number, len(body.blocks))
        check_archive(header, body)
        with open_sink(index) as sink:
            size = write_archive(sink, header, body)
        logger.info(
            "Wrote archive %d: blocks %d-%d (%d bytes)",
            index,
            int(header.head_block_number),
            int(header.last_block_number),
            size,
        )
        headers.append(header)
    return headers


def convert_archive_to_wire(
    archives: Iterable[Tuple[str, BinaryIO]],
    sink: BinaryIO,
    with_receipts: bool,
) -> int:
    """
    Write the blocks of every archive, in order, to `sink` in wire form.

    Archives are read one at a time, and each must continue where the
    previous one ended.

    Returns the number of blocks written.
    """
    tracker = ContiguityTracker()
    count = 0
    for name, stream in archives:
        logger.info("Reading archive file %s", name)
        header, body = read_archive(stream)
        tracker.check(header.head_block_number, len(body.blocks))
        size = write_blocks(sink, body.blocks, with_receipts)
        logger.info(
            "Wrote blocks %d-%d (%d bytes)",
            int(header.head_block_number),
            int(header.last_block_number),
            size,
        )
        count += len(body.blocks)
    return count


def archive_info(stream: BinaryIO) -> ArchiveHeader:
    """
    Read only the header of an archive file.
    """
    header = read_archive_header(stream)
    ensure(
        int(header.block_count) > 0,
        ConsistencyError("archive header declares no blocks"),
    )
    return header


def archive_hash_tree_root(stream: BinaryIO) -> Hash32:
    """
    Read and check an archive file, then compute the hash tree root of its
    body.
    """
    _, body = read_archive(stream)
    return hash_tree_root(body)
