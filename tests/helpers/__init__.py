from io import BytesIO
from typing import Optional, Sequence, Tuple

from ethereum_rlp import rlp
from ethereum_types.bytes import Bytes, Bytes8, Bytes20, Bytes32, Bytes256
from ethereum_types.numeric import U64

from ethereum_archive.blocks import (
    NO_BASE_FEE,
    ArchiveBody,
    Block,
    Header,
    Log,
    Receipt,
)
from ethereum_archive.crypto.hash import Hash32
from ethereum_archive.wire import write_blocks

LEGACY_TRANSACTION = rlp.encode(
    [
        b"\x09",
        b"\x04\xa8\x17\xc8\x00",
        b"\x52\x08",
        b"\x35" * 20,
        b"\x0d\xe0\xb6\xb3\xa7\x64\x00\x00",
        b"",
        b"\x25",
        b"\x28" * 32,
        b"\x67" * 32,
    ]
)

ACCESS_LIST_TRANSACTION = b"\x01" + rlp.encode(
    [b"\x01", b"", b"\x01", b"\x52\x08", b"\x35" * 20, b"", b"", []]
)

DYNAMIC_FEE_TRANSACTION = b"\x02" + rlp.encode(
    [b"\x01", b"\x07", b"\x01", b"\x02", b"\x52\x08", b"", b"", b"", []]
)


def make_header(
    number: int,
    base_fee: Optional[int] = None,
    extra_data: Bytes = b"",
    difficulty: int = 0x20000,
) -> Header:
    """
    Build a header whose hashes are derived from `number`, so that headers of
    different blocks differ everywhere.
    """
    seed = number % 251
    if base_fee is None:
        base_fee_per_gas = NO_BASE_FEE
    else:
        base_fee_per_gas = Bytes32(base_fee.to_bytes(32, "big"))
    return Header(
        parent_hash=Hash32(bytes([seed]) * 32),
        ommers_hash=Hash32(b"\x1d" * 32),
        coinbase=Bytes20(bytes([seed + 1]) * 20),
        state_root=Hash32(bytes([seed + 2]) * 32),
        transactions_root=Hash32(bytes([seed + 3]) * 32),
        receipt_root=Hash32(bytes([seed + 4]) * 32),
        bloom=Bytes256(b"\x00" * 256),
        difficulty=Bytes32(difficulty.to_bytes(32, "big")),
        number=U64(number),
        gas_limit=U64(30_000_000),
        gas_used=U64(21_000),
        timestamp=U64(1_600_000_000 + 12 * number),
        extra_data=extra_data,
        base_fee_per_gas=base_fee_per_gas,
        mix_digest=Bytes32(b"\x6d" * 32),
        nonce=Bytes8(b"\x00\x00\x00\x00\x00\x00\x00\x2a"),
    )


def make_log(topic_count: int = 2, data: Bytes = b"\xca\xfe") -> Log:
    return Log(
        address=Bytes20(b"\xaa" * 20),
        topics=tuple(
            Hash32(bytes([index]) * 32) for index in range(topic_count)
        ),
        data=data,
    )


def make_receipt(
    outcome=True, cumulative_gas_used: int = 21_000, logs=()
) -> Receipt:
    return Receipt(
        outcome=outcome,
        cumulative_gas_used=U64(cumulative_gas_used),
        logs=tuple(logs),
    )


def make_block(
    number: int,
    with_receipts: bool = False,
    transactions: Sequence[Bytes] = (LEGACY_TRANSACTION,),
    uncles: Sequence[Header] = (),
    base_fee: Optional[int] = None,
) -> Block:
    """
    Build a block with one receipt per transaction when `with_receipts`.
    """
    receipts: Tuple[Receipt, ...] = ()
    if with_receipts:
        receipts = tuple(
            make_receipt(
                outcome=index % 2 == 0,
                cumulative_gas_used=21_000 * (index + 1),
                logs=(make_log(),) if index == 0 else (),
            )
            for index in range(len(transactions))
        )
    return Block(
        header=make_header(number, base_fee=base_fee),
        transactions=tuple(transactions),
        uncles=tuple(uncles),
        receipts=receipts,
    )


def make_body(
    head: int, count: int, with_receipts: bool = False
) -> ArchiveBody:
    return ArchiveBody(
        blocks=tuple(
            make_block(number, with_receipts)
            for number in range(head, head + count)
        )
    )


def wire_stream(blocks: Sequence[Block], with_receipts: bool) -> BytesIO:
    """
    Return a stream holding `blocks` in wire form.
    """
    stream = BytesIO()
    write_blocks(stream, blocks, with_receipts)
    stream.seek(0)
    return stream
