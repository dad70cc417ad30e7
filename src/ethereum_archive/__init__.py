"""
Ethereum Block Archives
^^^^^^^^^^^^^^^^^^^^^^^

Historical blocks are exported by execution clients as a stream of RLP
encoded blocks, optionally each followed by its receipts. This package
converts such exports into archive files: fixed-offset, bounds checked
containers whose contents can be committed to with a merkle hash tree root,
and converts archive files back into the RLP form.
"""

__version__ = "0.1.0"
