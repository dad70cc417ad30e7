"""
Cryptographic Hash Functions
^^^^^^^^^^^^^^^^^^^^^^^^^^^^

.. contents:: Table of Contents
    :backlinks: none
    :local:

Introduction
------------

Cryptographic hashing functions.
"""

from hashlib import sha256 as _sha256

from ethereum_types.bytes import Bytes, Bytes32

Hash32 = Bytes32


def sha256(buffer: Bytes) -> Hash32:
    """
    Computes the sha256 hash of the input `buffer`.

    Parameters
    ----------
    buffer :
        Input for the hashing function.

    Returns
    -------
    hash : `ethereum_archive.crypto.hash.Hash32`
        Output of the hash function.
    """
    return Hash32(_sha256(buffer).digest())
