"""
Merkleization
^^^^^^^^^^^^^

.. contents:: Table of Contents
    :backlinks: none
    :local:

Introduction
------------

Binary merkle trees over 32-byte chunks, as used to compute the hash tree
root of archive contents.

Trees are padded with zero chunks up to the next power of two of their
limit. Padding is never materialised: a missing subtree of height `h` is
represented by `ZERO_HASHES[h]`.
"""

from typing import List, Optional, Sequence

from ethereum_types.bytes import Bytes

from .crypto.hash import Hash32, sha256
from .exceptions import BoundsError, ensure

BYTES_PER_CHUNK = 32
MAX_TREE_DEPTH = 64


def _zero_hashes(depth: int) -> List[Hash32]:
    hashes = [Hash32(b"\x00" * BYTES_PER_CHUNK)]
    for _ in range(depth):
        hashes.append(sha256(hashes[-1] + hashes[-1]))
    return hashes


ZERO_HASHES = _zero_hashes(MAX_TREE_DEPTH)
"""
`ZERO_HASHES[h]` is the root of a tree of height `h` whose leaves are all
zero chunks.
"""


def pack(serialized: Bytes) -> List[Hash32]:
    """
    Split `serialized` into 32-byte chunks, right padding the final chunk
    with zero bytes. An empty input produces no chunks.
    """
    chunks = []
    for start in range(0, len(serialized), BYTES_PER_CHUNK):
        chunk = serialized[start : start + BYTES_PER_CHUNK]
        chunks.append(Hash32(chunk.ljust(BYTES_PER_CHUNK, b"\x00")))
    return chunks


def chunk_count(size: int) -> int:
    """
    Number of chunks needed to hold `size` bytes.
    """
    return (size + BYTES_PER_CHUNK - 1) // BYTES_PER_CHUNK


def merkleize(chunks: Sequence[Hash32], limit: Optional[int] = None) -> Hash32:
    """
    Compute the root of the binary merkle tree with `chunks` as its leaves.

    Parameters
    ----------
    chunks :
        Leaves of the tree.
    limit :
        Maximum number of leaves the tree can hold. The depth of the tree is
        derived from the limit, not from the number of chunks. Defaults to
        `len(chunks)`.

    Returns
    -------
    root : `ethereum_archive.crypto.hash.Hash32`
        Root of the tree.
    """
    if limit is None:
        limit = len(chunks)
    ensure(
        len(chunks) <= limit,
        BoundsError(f"{len(chunks)} chunks exceed the limit of {limit}"),
    )

    depth = max(limit - 1, 0).bit_length()
    if not chunks:
        return ZERO_HASHES[depth]

    layer = list(chunks)
    for height in range(depth):
        if len(layer) % 2 == 1:
            layer.append(ZERO_HASHES[height])
        layer = [
            sha256(layer[i] + layer[i + 1]) for i in range(0, len(layer), 2)
        ]
    return layer[0]


def mix_in_length(root: Hash32, length: int) -> Hash32:
    """
    Bind the number of elements of a list into its root.
    """
    return sha256(root + length.to_bytes(BYTES_PER_CHUNK, "little"))
