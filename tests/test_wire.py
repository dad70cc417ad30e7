from io import BytesIO

import pytest
from ethereum_rlp import rlp
from ethereum_types.bytes import Bytes32
from ethereum_types.numeric import U64

from ethereum_archive.blocks import NO_BASE_FEE
from ethereum_archive.crypto.hash import Hash32
from ethereum_archive.exceptions import MalformedInputError
from ethereum_archive.wire import (
    decode_block,
    decode_transaction,
    encode_block,
    encode_transaction,
    header_from_wire,
    header_to_wire,
    read_item,
    receipts_from_wire,
)

from tests.helpers import (
    ACCESS_LIST_TRANSACTION,
    DYNAMIC_FEE_TRANSACTION,
    LEGACY_TRANSACTION,
    make_block,
    make_header,
    make_log,
    make_receipt,
)


def test_read_item_short_forms() -> None:
    stream = BytesIO(b"\x05" + b"\x82\x01\x02" + b"\xc2\x01\x02")
    assert read_item(stream) == b"\x05"
    assert read_item(stream) == b"\x82\x01\x02"
    assert read_item(stream) == b"\xc2\x01\x02"
    assert read_item(stream) is None


def test_read_item_long_form() -> None:
    payload = rlp.encode([b"\x01" * 40, b"\x02" * 40])
    assert payload[0] == 0xF8
    stream = BytesIO(payload + payload)
    assert read_item(stream) == payload
    assert read_item(stream) == payload
    assert read_item(stream) is None


@pytest.mark.parametrize(
    "data",
    [
        b"\x83\x01\x02",
        b"\xc3\x01",
        b"\xb9\x01",
        b"\xb8\x00",
        b"\xb8\x05\x01\x02\x03\x04\x05",
    ],
    ids=[
        "truncated-string",
        "truncated-list",
        "truncated-length",
        "leading-zero-length",
        "long-form-for-short-item",
    ],
)
def test_read_item_rejects(data: bytes) -> None:
    with pytest.raises(MalformedInputError):
        read_item(BytesIO(data))


def test_header_wire_order() -> None:
    header = make_header(7)
    fields = header_to_wire(header)
    assert len(fields) == 15
    assert fields[13] == header.mix_digest
    assert fields[14] == header.nonce
    assert header_from_wire(rlp.decode(rlp.encode(fields))) == header


def test_header_with_base_fee() -> None:
    header = make_header(7, base_fee=1_000_000_000)
    fields = header_to_wire(header)
    assert len(fields) == 16
    decoded = header_from_wire(rlp.decode(rlp.encode(fields)))
    assert decoded == header
    assert decoded.base_fee_per_gas == Bytes32(
        (1_000_000_000).to_bytes(32, "big")
    )


def test_zero_base_fee_reads_back_as_absent() -> None:
    header = make_header(7, base_fee=0)
    fields = rlp.decode(rlp.encode(header_to_wire(header)))
    assert len(fields) == 15
    assert header_from_wire(fields).base_fee_per_gas == NO_BASE_FEE


def test_header_field_count() -> None:
    fields = rlp.decode(rlp.encode(header_to_wire(make_header(1))))
    with pytest.raises(MalformedInputError):
        header_from_wire(fields[:14])
    with pytest.raises(MalformedInputError):
        header_from_wire(list(fields) + [b"\x01", b"\x02"])


def test_header_rejects_bad_fields() -> None:
    fields = list(rlp.decode(rlp.encode(header_to_wire(make_header(1)))))
    too_short = list(fields)
    too_short[0] = b"\x01" * 31
    with pytest.raises(MalformedInputError):
        header_from_wire(too_short)

    too_wide = list(fields)
    too_wide[8] = b"\x01" * 9
    with pytest.raises(MalformedInputError):
        header_from_wire(too_wide)

    leading_zero = list(fields)
    leading_zero[8] = b"\x00\x01"
    with pytest.raises(MalformedInputError):
        header_from_wire(leading_zero)


def test_transactions() -> None:
    assert not isinstance(encode_transaction(LEGACY_TRANSACTION), bytes)
    assert encode_transaction(DYNAMIC_FEE_TRANSACTION) == (
        DYNAMIC_FEE_TRANSACTION
    )
    for tx in (LEGACY_TRANSACTION, ACCESS_LIST_TRANSACTION):
        embedded = rlp.decode(rlp.encode([encode_transaction(tx)]))[0]
        assert decode_transaction(embedded) == tx


@pytest.mark.parametrize(
    "tx",
    [b"", b"\x85\x01\x02\x03\x04\x05", LEGACY_TRANSACTION + b"\x00"],
    ids=["empty", "string-prefix", "trailing-bytes"],
)
def test_encode_transaction_rejects(tx: bytes) -> None:
    with pytest.raises(MalformedInputError):
        encode_transaction(tx)


def test_decode_transaction_rejects_bad_type() -> None:
    with pytest.raises(MalformedInputError):
        decode_transaction(b"\x99\x01")


def test_success_receipt_encoding() -> None:
    receipt = make_receipt(outcome=True, cumulative_gas_used=21000)
    assert rlp.encode(receipt) == bytes.fromhex("c501825208c0")


def test_receipt_outcomes() -> None:
    root = Hash32(b"\x42" * 32)
    receipts = (
        make_receipt(outcome=True),
        make_receipt(outcome=False, logs=(make_log(),)),
        make_receipt(outcome=root, logs=(make_log(0, b""),)),
    )
    decoded = receipts_from_wire(rlp.decode(rlp.encode(receipts)))
    assert decoded == receipts
    assert decoded[0].succeeded is True
    assert decoded[1].succeeded is False
    assert decoded[2].post_state == root
    assert decoded[2].succeeded is None


def test_receipt_rejects_bad_status() -> None:
    encoded = rlp.encode([[b"\x02", U64(1), []]])
    with pytest.raises(MalformedInputError):
        receipts_from_wire(rlp.decode(encoded))


@pytest.mark.parametrize("with_receipts", [False, True])
def test_block_round_trip(with_receipts: bool) -> None:
    block = make_block(
        5,
        with_receipts,
        transactions=(
            LEGACY_TRANSACTION,
            ACCESS_LIST_TRANSACTION,
            DYNAMIC_FEE_TRANSACTION,
        ),
        uncles=(make_header(4), make_header(3, base_fee=9)),
        base_fee=7,
    )
    stream = BytesIO(encode_block(block, with_receipts))
    assert decode_block(stream, with_receipts) == block
    assert stream.read() == b""


def test_block_without_receipts_has_none() -> None:
    block = make_block(5, with_receipts=True)
    stream = BytesIO(encode_block(block, with_receipts=False))
    assert decode_block(stream, with_receipts=False).receipts == ()


def test_block_missing_receipts() -> None:
    block = make_block(5, with_receipts=True)
    stream = BytesIO(encode_block(block, with_receipts=False))
    with pytest.raises(MalformedInputError):
        decode_block(stream, with_receipts=True)


def test_block_field_count() -> None:
    stream = BytesIO(rlp.encode([header_to_wire(make_header(1)), []]))
    with pytest.raises(MalformedInputError):
        decode_block(stream, with_receipts=False)


def test_block_not_a_list() -> None:
    with pytest.raises(MalformedInputError):
        decode_block(BytesIO(b"\x82\x01\x02"), with_receipts=False)
