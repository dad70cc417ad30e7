"""
Simple Serialize
^^^^^^^^^^^^^^^^

.. contents:: Table of Contents
    :backlinks: none
    :local:

Introduction
------------

Type descriptors for the fixed-offset container encoding used by archive
files.

Fixed size values are stored in place. Variable size values are replaced by
a 4-byte little-endian offset in the fixed part, and their contents follow
the fixed part in declaration order. Every variable size value has a
declared maximum length, which bounds decoding and fixes the shape of the
merkle tree used for `hash_tree_root`.
"""

from typing import (
    Any,
    Dict,
    Generic,
    List as ListType,
    Sequence,
    Tuple,
    Type,
    TypeVar,
)

from ethereum_types.bytes import Bytes, FixedBytes
from ethereum_types.numeric import FixedUnsigned

from .crypto.hash import Hash32
from .exceptions import BoundsError, MalformedInputError, ensure
from .merkle import chunk_count, merkleize, mix_in_length, pack

BYTES_PER_OFFSET = 4
MAX_OFFSET = 2 ** (8 * BYTES_PER_OFFSET)

T = TypeVar("T")


def encode_offset(offset: int) -> Bytes:
    """
    Encode an offset into the variable part of a container or list.
    """
    ensure(
        offset < MAX_OFFSET,
        BoundsError(f"offset {offset} does not fit in {BYTES_PER_OFFSET} bytes"),
    )
    return offset.to_bytes(BYTES_PER_OFFSET, "little")


def decode_offset(data: Bytes, position: int) -> int:
    """
    Decode the offset stored at `position` in `data`.
    """
    ensure(
        position + BYTES_PER_OFFSET <= len(data),
        MalformedInputError(f"truncated offset at {position}"),
    )
    return int.from_bytes(data[position : position + BYTES_PER_OFFSET], "little")


def _split_variable_parts(
    data: Bytes, offsets: Sequence[int], first_offset: int
) -> ListType[Bytes]:
    ensure(
        not offsets or offsets[0] == first_offset,
        MalformedInputError(
            f"first offset is {offsets[0] if offsets else 0}, "
            f"expected {first_offset}"
        ),
    )
    parts = []
    ends = list(offsets[1:]) + [len(data)]
    for start, end in zip(offsets, ends):
        ensure(
            start <= end <= len(data),
            MalformedInputError(f"offset {start} out of order or out of range"),
        )
        parts.append(data[start:end])
    return parts


class SSZType(Generic[T]):
    """
    Describes how values of one type are encoded, bounded and merkleized.
    """

    def is_fixed_size(self) -> bool:
        """
        Whether every value of this type encodes to the same length.
        """
        raise NotImplementedError

    def fixed_size(self) -> int:
        """
        Length of the encoding of a fixed size type.
        """
        raise NotImplementedError

    def serialize(self, value: T) -> Bytes:
        """
        Encode `value`. The value must already be within bounds.
        """
        raise NotImplementedError

    def deserialize(self, data: Bytes) -> T:
        """
        Decode a value that occupies all of `data`.
        """
        raise NotImplementedError

    def validate(self, value: T) -> None:
        """
        Raise `BoundsError` if `value`, or anything in it, is longer than
        its declared maximum.
        """

    def merkle_root(self, value: T) -> Hash32:
        """
        Hash tree root of a value that has already been validated.
        """
        raise NotImplementedError

    def encode(self, value: T) -> Bytes:
        """
        Validate and encode `value`.
        """
        self.validate(value)
        return self.serialize(value)

    def hash_tree_root(self, value: T) -> Hash32:
        """
        Validate `value` and compute its hash tree root.
        """
        self.validate(value)
        return self.merkle_root(value)


class UnsignedInteger(SSZType[FixedUnsigned]):
    """
    Little-endian unsigned integer of `size` bytes.
    """

    def __init__(self, cls: Type[FixedUnsigned], size: int) -> None:
        self.cls = cls
        self.size = size

    def is_fixed_size(self) -> bool:
        return True

    def fixed_size(self) -> int:
        return self.size

    def serialize(self, value: FixedUnsigned) -> Bytes:
        return int(value).to_bytes(self.size, "little")

    def deserialize(self, data: Bytes) -> FixedUnsigned:
        ensure(
            len(data) == self.size,
            MalformedInputError(
                f"integer must be {self.size} bytes, got {len(data)}"
            ),
        )
        return self.cls.from_le_bytes(data)

    def merkle_root(self, value: FixedUnsigned) -> Hash32:
        return merkleize(pack(self.serialize(value)))


class ByteVector(SSZType[FixedBytes]):
    """
    Byte string of exactly `cls.LENGTH` bytes.
    """

    def __init__(self, cls: Type[FixedBytes]) -> None:
        self.cls = cls

    def is_fixed_size(self) -> bool:
        return True

    def fixed_size(self) -> int:
        return self.cls.LENGTH

    def serialize(self, value: FixedBytes) -> Bytes:
        return bytes(value)

    def deserialize(self, data: Bytes) -> FixedBytes:
        ensure(
            len(data) == self.cls.LENGTH,
            MalformedInputError(
                f"expected {self.cls.LENGTH} bytes, got {len(data)}"
            ),
        )
        return self.cls(data)

    def validate(self, value: FixedBytes) -> None:
        ensure(
            len(value) == self.cls.LENGTH,
            BoundsError(f"expected {self.cls.LENGTH} bytes, got {len(value)}"),
        )

    def merkle_root(self, value: FixedBytes) -> Hash32:
        return merkleize(pack(value))


class ByteList(SSZType[Bytes]):
    """
    Byte string of at most `limit` bytes.
    """

    def __init__(self, limit: int) -> None:
        self.limit = limit

    def is_fixed_size(self) -> bool:
        return False

    def serialize(self, value: Bytes) -> Bytes:
        return bytes(value)

    def deserialize(self, data: Bytes) -> Bytes:
        ensure(
            len(data) <= self.limit,
            BoundsError(f"{len(data)} bytes exceed the limit of {self.limit}"),
        )
        return Bytes(data)

    def validate(self, value: Bytes) -> None:
        ensure(
            len(value) <= self.limit,
            BoundsError(f"{len(value)} bytes exceed the limit of {self.limit}"),
        )

    def merkle_root(self, value: Bytes) -> Hash32:
        root = merkleize(pack(value), chunk_count(self.limit))
        return mix_in_length(root, len(value))


class List(SSZType[Tuple[Any, ...]]):
    """
    Sequence of at most `limit` values of type `element`.
    """

    def __init__(self, element: SSZType, limit: int) -> None:
        self.element = element
        self.limit = limit

    def is_fixed_size(self) -> bool:
        return False

    def serialize(self, value: Tuple[Any, ...]) -> Bytes:
        parts = [self.element.serialize(item) for item in value]
        if self.element.is_fixed_size():
            return b"".join(parts)

        offsets = []
        offset = BYTES_PER_OFFSET * len(parts)
        for part in parts:
            offsets.append(encode_offset(offset))
            offset += len(part)
        return b"".join(offsets) + b"".join(parts)

    def deserialize(self, data: Bytes) -> Tuple[Any, ...]:
        if self.element.is_fixed_size():
            size = self.element.fixed_size()
            ensure(
                len(data) % size == 0,
                MalformedInputError(
                    f"list of {size}-byte items has length {len(data)}"
                ),
            )
            self._check_count(len(data) // size)
            return tuple(
                self.element.deserialize(data[start : start + size])
                for start in range(0, len(data), size)
            )

        if len(data) == 0:
            return ()

        first_offset = decode_offset(data, 0)
        ensure(
            first_offset % BYTES_PER_OFFSET == 0 and first_offset > 0,
            MalformedInputError(f"invalid first list offset {first_offset}"),
        )
        count = first_offset // BYTES_PER_OFFSET
        self._check_count(count)
        ensure(
            first_offset <= len(data),
            MalformedInputError(f"list offset table exceeds {len(data)} bytes"),
        )

        offsets = [
            decode_offset(data, index * BYTES_PER_OFFSET)
            for index in range(count)
        ]
        parts = _split_variable_parts(data, offsets, first_offset)
        return tuple(self.element.deserialize(part) for part in parts)

    def _check_count(self, count: int) -> None:
        ensure(
            count <= self.limit,
            BoundsError(f"{count} items exceed the limit of {self.limit}"),
        )

    def validate(self, value: Tuple[Any, ...]) -> None:
        self._check_count(len(value))
        for item in value:
            self.element.validate(item)

    def merkle_root(self, value: Tuple[Any, ...]) -> Hash32:
        roots = [self.element.merkle_root(item) for item in value]
        return mix_in_length(merkleize(roots, self.limit), len(value))


class Container(SSZType[Any]):
    """
    Ordered, named fields mapped onto the dataclass `cls`.

    Subclasses can override `to_fields` and `from_fields` when the Python
    representation does not have one attribute per encoded field.
    """

    def __init__(
        self, cls: type, fields: Sequence[Tuple[str, SSZType]]
    ) -> None:
        self.cls = cls
        self.fields = tuple(fields)

    def to_fields(self, value: Any) -> Dict[str, Any]:
        """
        Return the encoded field values of `value`, by name.
        """
        return {name: getattr(value, name) for name, _ in self.fields}

    def from_fields(self, values: Dict[str, Any]) -> Any:
        """
        Build a value from its decoded fields.
        """
        return self.cls(**values)

    def is_fixed_size(self) -> bool:
        return all(kind.is_fixed_size() for _, kind in self.fields)

    def fixed_size(self) -> int:
        return sum(kind.fixed_size() for _, kind in self.fields)

    def _fixed_part_size(self) -> int:
        size = 0
        for _, kind in self.fields:
            if kind.is_fixed_size():
                size += kind.fixed_size()
            else:
                size += BYTES_PER_OFFSET
        return size

    def serialize(self, value: Any) -> Bytes:
        values = self.to_fields(value)
        fixed_parts = []
        variable_parts = []
        offset = self._fixed_part_size()
        for name, kind in self.fields:
            encoded = kind.serialize(values[name])
            if kind.is_fixed_size():
                fixed_parts.append(encoded)
            else:
                fixed_parts.append(encode_offset(offset))
                variable_parts.append(encoded)
                offset += len(encoded)
        return b"".join(fixed_parts) + b"".join(variable_parts)

    def deserialize(self, data: Bytes) -> Any:
        fixed_part_size = self._fixed_part_size()
        ensure(
            len(data) >= fixed_part_size,
            MalformedInputError(
                f"{self.cls.__name__} needs at least {fixed_part_size} bytes, "
                f"got {len(data)}"
            ),
        )

        values: Dict[str, Any] = {}
        variable_names = []
        offsets = []
        position = 0
        for name, kind in self.fields:
            if kind.is_fixed_size():
                size = kind.fixed_size()
                values[name] = kind.deserialize(
                    data[position : position + size]
                )
                position += size
            else:
                variable_names.append(name)
                offsets.append(decode_offset(data, position))
                position += BYTES_PER_OFFSET

        if not variable_names:
            ensure(
                len(data) == fixed_part_size,
                MalformedInputError(
                    f"{self.cls.__name__} has {len(data) - fixed_part_size} "
                    "trailing bytes"
                ),
            )

        parts = _split_variable_parts(data, offsets, fixed_part_size)
        kinds = dict(self.fields)
        for name, part in zip(variable_names, parts):
            values[name] = kinds[name].deserialize(part)

        return self.from_fields(values)

    def validate(self, value: Any) -> None:
        values = self.to_fields(value)
        for name, kind in self.fields:
            kind.validate(values[name])

    def merkle_root(self, value: Any) -> Hash32:
        values = self.to_fields(value)
        return merkleize(
            [kind.merkle_root(values[name]) for name, kind in self.fields]
        )
