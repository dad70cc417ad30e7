"""
Archive Files
^^^^^^^^^^^^^

.. contents:: Table of Contents
    :backlinks: none
    :local:

Introduction
------------

Layout of archive files. An archive file is an `ArchiveHeader` immediately
followed by an `ArchiveBody`, both in the fixed-offset container encoding
defined in `ethereum_archive.ssz`. There is no separator and no trailing
data.
"""

from typing import Any, BinaryIO, Dict, Tuple

from ethereum_types.bytes import Bytes, Bytes8, Bytes32
from ethereum_types.numeric import U32, U64

from .blocks import (
    MAX_BLOCKS_PER_ARCHIVE,
    MAX_EXTRA_DATA_SIZE,
    MAX_LOG_DATA_SIZE,
    MAX_LOGS_PER_RECEIPT,
    MAX_RECEIPTS_PER_BLOCK,
    MAX_TOPICS_PER_LOG,
    MAX_TRANSACTION_SIZE,
    MAX_TRANSACTIONS_PER_BLOCK,
    MAX_UNCLES_PER_BLOCK,
    Address,
    ArchiveBody,
    ArchiveHeader,
    Block,
    Bloom,
    Header,
    Log,
    Receipt,
    Root,
)
from .crypto.hash import Hash32
from .exceptions import (
    ConsistencyError,
    ContiguityError,
    MalformedInputError,
    ensure,
)
from .ssz import (
    ByteList,
    ByteVector,
    Container,
    List,
    UnsignedInteger,
)

Uint32 = UnsignedInteger(U32, 4)
Uint64 = UnsignedInteger(U64, 8)
Hash32Vector = ByteVector(Hash32)

HEADER = Container(
    Header,
    [
        ("parent_hash", Hash32Vector),
        ("ommers_hash", Hash32Vector),
        ("coinbase", ByteVector(Address)),
        ("state_root", ByteVector(Root)),
        ("transactions_root", ByteVector(Root)),
        ("receipt_root", ByteVector(Root)),
        ("bloom", ByteVector(Bloom)),
        ("difficulty", ByteVector(Bytes32)),
        ("number", Uint64),
        ("gas_limit", Uint64),
        ("gas_used", Uint64),
        ("timestamp", Uint64),
        ("extra_data", ByteList(MAX_EXTRA_DATA_SIZE)),
        ("base_fee_per_gas", ByteVector(Bytes32)),
        ("mix_digest", ByteVector(Bytes32)),
        ("nonce", ByteVector(Bytes8)),
    ],
)

LOG = Container(
    Log,
    [
        ("address", ByteVector(Address)),
        ("topics", List(Hash32Vector, MAX_TOPICS_PER_LOG)),
        ("data", ByteList(MAX_LOG_DATA_SIZE)),
    ],
)


class ReceiptContainer(Container):
    """
    Stores the outcome of a receipt as two fields: `post_state`, which is
    empty unless the receipt predates Byzantium, and `status`.
    """

    def to_fields(self, value: Receipt) -> Dict[str, Any]:
        if isinstance(value.outcome, bool):
            post_state = b""
            status = U64(1 if value.outcome else 0)
        else:
            post_state = value.outcome
            status = U64(0)
        return {
            "post_state": post_state,
            "status": status,
            "cumulative_gas_used": value.cumulative_gas_used,
            "logs": value.logs,
        }

    def from_fields(self, values: Dict[str, Any]) -> Receipt:
        post_state = values["post_state"]
        status = int(values["status"])
        if post_state:
            ensure(
                len(post_state) == Root.LENGTH,
                MalformedInputError(
                    f"post state must be {Root.LENGTH} bytes, "
                    f"got {len(post_state)}"
                ),
            )
            ensure(
                status == 0,
                MalformedInputError("receipt has both post state and status"),
            )
            outcome: Any = Root(post_state)
        else:
            ensure(
                status in (0, 1),
                MalformedInputError(f"invalid receipt status {status}"),
            )
            outcome = status == 1
        return Receipt(
            outcome=outcome,
            cumulative_gas_used=values["cumulative_gas_used"],
            logs=values["logs"],
        )


RECEIPT = ReceiptContainer(
    Receipt,
    [
        ("post_state", ByteList(Root.LENGTH)),
        ("status", Uint64),
        ("cumulative_gas_used", Uint64),
        ("logs", List(LOG, MAX_LOGS_PER_RECEIPT)),
    ],
)

BLOCK = Container(
    Block,
    [
        ("header", HEADER),
        (
            "transactions",
            List(ByteList(MAX_TRANSACTION_SIZE), MAX_TRANSACTIONS_PER_BLOCK),
        ),
        ("uncles", List(HEADER, MAX_UNCLES_PER_BLOCK)),
        ("receipts", List(RECEIPT, MAX_RECEIPTS_PER_BLOCK)),
    ],
)

ARCHIVE_BODY = Container(
    ArchiveBody,
    [("blocks", List(BLOCK, MAX_BLOCKS_PER_ARCHIVE))],
)

ARCHIVE_HEADER = Container(
    ArchiveHeader,
    [
        ("version", Uint64),
        ("head_block_number", Uint64),
        ("block_count", Uint32),
    ],
)

ARCHIVE_HEADER_SIZE = ARCHIVE_HEADER.fixed_size()


def encode_header(header: ArchiveHeader) -> Bytes:
    """
    Encode an archive header into its fixed size form.
    """
    return ARCHIVE_HEADER.encode(header)


def decode_header(data: Bytes) -> ArchiveHeader:
    """
    Decode an archive header from exactly `ARCHIVE_HEADER_SIZE` bytes.
    """
    return ARCHIVE_HEADER.deserialize(data)


def encode_body(body: ArchiveBody) -> Bytes:
    """
    Encode an archive body. Raises `BoundsError` if anything in the body is
    longer than its declared maximum.
    """
    return ARCHIVE_BODY.encode(body)


def decode_body(data: Bytes) -> ArchiveBody:
    """
    Decode an archive body that occupies all of `data`.
    """
    return ARCHIVE_BODY.deserialize(data)


def hash_tree_root(body: ArchiveBody) -> Hash32:
    """
    Compute the hash tree root of an archive body.

    Every list in the body is checked against its maximum length before
    anything is hashed.

    Parameters
    ----------
    body :
        Archive body to commit to.

    Returns
    -------
    root : `ethereum_archive.crypto.hash.Hash32`
        The 32-byte commitment.
    """
    return ARCHIVE_BODY.hash_tree_root(body)


def check_contiguous(body: ArchiveBody) -> None:
    """
    Ensure the blocks of `body` have consecutive numbers.
    """
    if not body.blocks:
        return
    head = int(body.blocks[0].header.number)
    for index, block in enumerate(body.blocks):
        number = int(block.header.number)
        ensure(
            number == head + index,
            ContiguityError(
                f"block {index} of archive has number {number}, "
                f"expected {head + index}"
            ),
        )


def check_archive(header: ArchiveHeader, body: ArchiveBody) -> None:
    """
    Ensure that `header` describes `body`, and that the blocks of `body` are
    contiguous.
    """
    ensure(
        len(body.blocks) > 0,
        ConsistencyError("archive body contains no blocks"),
    )
    first = body.blocks[0].header.number
    ensure(
        first == header.head_block_number,
        ConsistencyError(
            f"header has first block {header.head_block_number}, "
            f"but body has first block {first}"
        ),
    )
    ensure(
        len(body.blocks) == header.block_count,
        ConsistencyError(
            f"header has block count {header.block_count}, "
            f"but body has {len(body.blocks)} blocks"
        ),
    )
    check_contiguous(body)


def write_archive(
    sink: BinaryIO, header: ArchiveHeader, body: ArchiveBody
) -> int:
    """
    Write an archive file to `sink` and return the number of bytes written.

    Both parts are encoded before anything is written, so an archive that
    is out of bounds leaves `sink` untouched.
    """
    encoded_header = encode_header(header)
    encoded_body = encode_body(body)
    sink.write(encoded_header)
    sink.write(encoded_body)
    return len(encoded_header) + len(encoded_body)


def read_archive_header(stream: BinaryIO) -> ArchiveHeader:
    """
    Read the header at the start of an archive file, leaving `stream`
    positioned at the start of the body.
    """
    data = stream.read(ARCHIVE_HEADER_SIZE)
    ensure(
        len(data) == ARCHIVE_HEADER_SIZE,
        MalformedInputError(
            f"truncated archive header: expected {ARCHIVE_HEADER_SIZE} bytes, "
            f"got {len(data)}"
        ),
    )
    return decode_header(data)


def read_archive(stream: BinaryIO) -> Tuple[ArchiveHeader, ArchiveBody]:
    """
    Read a complete archive file and check that its header matches its
    body.
    """
    header = read_archive_header(stream)
    body = decode_body(stream.read())
    check_archive(header, body)
    return header, body
