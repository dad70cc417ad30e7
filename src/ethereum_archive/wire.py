"""
Wire Encoding
^^^^^^^^^^^^^

.. contents:: Table of Contents
    :backlinks: none
    :local:

Introduction
------------

Conversion between blocks and the RLP encoding used by execution clients to
export and import chains.

A block is encoded as the list `[header, transactions, uncles]`. When
receipts travel with the block, the list of receipts is written as a second
top-level item directly after it.
"""

from typing import BinaryIO, List, Optional, Sequence, Tuple

from ethereum_rlp import Extended, Simple, rlp
from ethereum_rlp.exceptions import RLPException
from ethereum_rlp.rlp import decode_item_length, deserialize_to
from ethereum_types.bytes import Bytes, Bytes8, Bytes32, FixedBytes
from ethereum_types.numeric import U64, Uint

from .blocks import (
    NO_BASE_FEE,
    Address,
    Block,
    Bloom,
    Header,
    Receipt,
    Root,
)
from .crypto.hash import Hash32
from .exceptions import MalformedInputError, ensure

HEADER_FIELD_COUNT = 15
"""
Number of fields in a header without a base fee.
"""

LEGACY_TRANSACTION_PREFIX = 0xC0
TRANSACTION_TYPE_LIMIT = 0x80


#
# Stream framing
#


def _read_exactly(stream: BinaryIO, size: int, what: str) -> Bytes:
    data = stream.read(size)
    if len(data) != size:
        raise MalformedInputError(
            f"truncated {what}: expected {size} bytes, got {len(data)}"
        )
    return data


def read_item(stream: BinaryIO) -> Optional[Bytes]:
    """
    Read exactly one top-level RLP item from `stream`.

    Parameters
    ----------
    stream :
        Binary stream positioned at the start of an item.

    Returns
    -------
    item : `Optional[Bytes]`
        The complete encoding of the item (prefix included), or `None` if
        the stream was already exhausted.
    """
    prefix = stream.read(1)
    if len(prefix) == 0:
        return None

    first = prefix[0]
    if first < 0x80:
        return Bytes(prefix)

    if first <= 0xB7:
        return prefix + _read_exactly(stream, first - 0x80, "string")
    elif first <= 0xBF:
        length_length = first - 0xB7
    elif first <= 0xF7:
        return prefix + _read_exactly(stream, first - 0xC0, "list")
    else:
        length_length = first - 0xF7

    length_bytes = _read_exactly(stream, length_length, "length prefix")
    ensure(
        length_bytes[0] != 0,
        MalformedInputError("length prefix has leading zero bytes"),
    )
    length = int(Uint.from_be_bytes(length_bytes))
    ensure(
        length >= 0x38,
        MalformedInputError("long form used for a short item"),
    )
    payload = _read_exactly(stream, length, "item")
    return prefix + length_bytes + payload


def _decode(encoded: Bytes, what: str) -> Simple:
    try:
        return rlp.decode(encoded)
    except RLPException as e:
        raise MalformedInputError(f"invalid {what}: {e}") from e


#
# Field conversion
#


def _list(value: Simple, what: str) -> Sequence[Simple]:
    if isinstance(value, bytes):
        raise MalformedInputError(f"expected list for {what}, got bytes")
    return value


def _bytes(value: Simple, what: str) -> Bytes:
    if not isinstance(value, bytes):
        raise MalformedInputError(f"expected bytes for {what}, got list")
    return Bytes(value)


def _fixed(cls: type, value: Simple, what: str) -> FixedBytes:
    raw = _bytes(value, what)
    ensure(
        len(raw) == cls.LENGTH,
        MalformedInputError(
            f"{what} must be {cls.LENGTH} bytes, got {len(raw)}"
        ),
    )
    return cls(raw)


def _uint(value: Simple, width: int, what: str) -> int:
    raw = _bytes(value, what)
    ensure(
        len(raw) <= width,
        MalformedInputError(f"{what} does not fit in {width} bytes"),
    )
    ensure(
        len(raw) == 0 or raw[0] != 0,
        MalformedInputError(f"{what} has leading zero bytes"),
    )
    return int.from_bytes(raw, "big")


def _u64(value: Simple, what: str) -> U64:
    return U64(_uint(value, 8, what))


def _word(value: Simple, what: str) -> Bytes32:
    return Bytes32(_uint(value, 32, what).to_bytes(32, "big"))


#
# Headers
#


def header_to_wire(header: Header) -> List[Extended]:
    """
    Return the RLP fields of `header`, in execution client order.

    The base fee is only present when it differs from `NO_BASE_FEE`.
    """
    fields: List[Extended] = [
        header.parent_hash,
        header.ommers_hash,
        header.coinbase,
        header.state_root,
        header.transactions_root,
        header.receipt_root,
        header.bloom,
        Uint.from_be_bytes(header.difficulty),
        header.number,
        header.gas_limit,
        header.gas_used,
        header.timestamp,
        header.extra_data,
        header.mix_digest,
        header.nonce,
    ]
    if header.base_fee_per_gas != NO_BASE_FEE:
        fields.append(Uint.from_be_bytes(header.base_fee_per_gas))
    return fields


def header_from_wire(value: Simple) -> Header:
    """
    Build a `Header` from its decoded RLP fields.
    """
    fields = _list(value, "header")
    ensure(
        len(fields) in (HEADER_FIELD_COUNT, HEADER_FIELD_COUNT + 1),
        MalformedInputError(
            f"header has {len(fields)} fields, expected "
            f"{HEADER_FIELD_COUNT} or {HEADER_FIELD_COUNT + 1}"
        ),
    )

    if len(fields) > HEADER_FIELD_COUNT:
        base_fee_per_gas = _word(fields[15], "base fee")
    else:
        base_fee_per_gas = NO_BASE_FEE

    return Header(
        parent_hash=_fixed(Hash32, fields[0], "parent hash"),
        ommers_hash=_fixed(Hash32, fields[1], "ommers hash"),
        coinbase=_fixed(Address, fields[2], "coinbase"),
        state_root=_fixed(Root, fields[3], "state root"),
        transactions_root=_fixed(Root, fields[4], "transactions root"),
        receipt_root=_fixed(Root, fields[5], "receipt root"),
        bloom=_fixed(Bloom, fields[6], "bloom"),
        difficulty=_word(fields[7], "difficulty"),
        number=_u64(fields[8], "number"),
        gas_limit=_u64(fields[9], "gas limit"),
        gas_used=_u64(fields[10], "gas used"),
        timestamp=_u64(fields[11], "timestamp"),
        extra_data=_bytes(fields[12], "extra data"),
        base_fee_per_gas=base_fee_per_gas,
        mix_digest=_fixed(Bytes32, fields[13], "mix digest"),
        nonce=_fixed(Bytes8, fields[14], "nonce"),
    )


#
# Transactions
#


def encode_transaction(tx: Bytes) -> Extended:
    """
    Wrap an opaque transaction so that it can be placed in a block's
    transaction list.

    Legacy transactions are already RLP lists and are embedded as such.
    Typed transactions are embedded as byte strings.
    """
    ensure(len(tx) > 0, MalformedInputError("empty transaction"))
    if tx[0] >= LEGACY_TRANSACTION_PREFIX:
        try:
            ensure(
                decode_item_length(tx) == len(tx),
                MalformedInputError("trailing bytes after legacy transaction"),
            )
            return rlp.decode(tx)
        except RLPException as e:
            raise MalformedInputError(f"invalid legacy transaction: {e}") from e
    elif tx[0] < TRANSACTION_TYPE_LIMIT:
        return tx
    else:
        raise MalformedInputError(
            f"transaction starts with invalid byte {tx[0]:#04x}"
        )


def decode_transaction(value: Simple) -> Bytes:
    """
    Return the canonical binary form of a transaction taken from a block's
    transaction list. The payload itself is never interpreted.
    """
    if isinstance(value, bytes):
        ensure(len(value) > 0, MalformedInputError("empty typed transaction"))
        ensure(
            value[0] < TRANSACTION_TYPE_LIMIT,
            MalformedInputError(f"invalid transaction type {value[0]:#04x}"),
        )
        return Bytes(value)
    return rlp.encode(value)


#
# Receipts
#


def receipts_from_wire(value: Simple) -> Tuple[Receipt, ...]:
    """
    Build receipts from a decoded RLP receipt list.

    The first field of each receipt is empty for a failed transaction,
    `0x01` for a successful one and a 32-byte state root for receipts that
    predate Byzantium.
    """
    receipts = []
    for index, item in enumerate(_list(value, "receipts")):
        try:
            receipts.append(deserialize_to(Receipt, item))
        except RLPException as e:
            raise MalformedInputError(f"invalid receipt {index}: {e}") from e
    return tuple(receipts)


#
# Blocks
#


def encode_block(block: Block, with_receipts: bool) -> Bytes:
    """
    Encode `block` into its wire form.

    Parameters
    ----------
    block :
        Block to encode.
    with_receipts :
        Whether to append the block's receipts after the block.

    Returns
    -------
    encoded : `ethereum_types.bytes.Bytes`
        The RLP encoded block, followed by its receipts if requested.
    """
    transactions = []
    for index, tx in enumerate(block.transactions):
        try:
            transactions.append(encode_transaction(tx))
        except MalformedInputError as e:
            raise MalformedInputError(f"transaction {index}: {e}") from e

    encoded = rlp.encode(
        [
            header_to_wire(block.header),
            transactions,
            [header_to_wire(uncle) for uncle in block.uncles],
        ]
    )
    if not with_receipts:
        return encoded
    return encoded + rlp.encode(block.receipts)


def decode_block(stream: BinaryIO, with_receipts: bool) -> Block:
    """
    Read the next block from a stream of wire encoded blocks.

    Parameters
    ----------
    stream :
        Binary stream positioned at the start of a block.
    with_receipts :
        Whether every block in the stream is followed by its receipts.

    Returns
    -------
    block : `ethereum_archive.blocks.Block`
        The decoded block. Its receipts are empty unless `with_receipts`.
    """
    encoded = read_item(stream)
    if encoded is None:
        raise MalformedInputError("unexpected end of input")

    items = _list(_decode(encoded, "block"), "block")
    ensure(
        len(items) == 3,
        MalformedInputError(f"block has {len(items)} fields, expected 3"),
    )
    header = header_from_wire(items[0])
    transactions = tuple(
        decode_transaction(tx) for tx in _list(items[1], "transactions")
    )
    uncles = tuple(
        header_from_wire(uncle) for uncle in _list(items[2], "uncles")
    )

    receipts: Tuple[Receipt, ...] = ()
    if with_receipts:
        encoded_receipts = read_item(stream)
        if encoded_receipts is None:
            raise MalformedInputError("missing receipts after block")
        receipts = receipts_from_wire(_decode(encoded_receipts, "receipts"))

    return Block(
        header=header,
        transactions=transactions,
        uncles=uncles,
        receipts=receipts,
    )


def write_blocks(
    sink: BinaryIO, blocks: Sequence[Block], with_receipts: bool
) -> int:
    """
    Write `blocks` to `sink` in wire form and return the number of bytes
    written.
    """
    written = 0
    for block in blocks:
        encoded = encode_block(block, with_receipts)
        sink.write(encoded)
        written += len(encoded)
    return written
