"""
Cryptographic primitives used by the archive converter.
"""
