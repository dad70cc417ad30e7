"""
A `Block` is a single link in the chain that is Ethereum. Each `Block` contains
a `Header`, zero or more transactions, zero or more uncle headers and, when
they travel with the block, the receipts produced by its transactions.

Blocks are grouped into archives. An `ArchiveBody` holds a contiguous run of
blocks and an `ArchiveHeader` describes which run that is, so that tools can
inspect an archive without decoding its body.

Transactions are kept as opaque byte strings in their canonical binary form:
the RLP encoding of the transaction for legacy transactions, and the type
byte followed by the payload for typed transactions.
"""
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from ethereum_types.bytes import Bytes, Bytes8, Bytes20, Bytes32, Bytes256
from ethereum_types.frozen import slotted_freezable
from ethereum_types.numeric import U32, U64
from typing_extensions import TypeAlias

from .crypto.hash import Hash32

Address = Bytes20
Root = Hash32
Bloom = Bytes256

ReceiptOutcome: TypeAlias = Union[Root, bool]
"""
Post-transaction state root (before Byzantium) or success flag (after it).
"""

ARCHIVE_FORMAT_VERSION = 0

MAX_EXTRA_DATA_SIZE = 32
MAX_TOPICS_PER_LOG = 4
MAX_LOG_DATA_SIZE = 2**24
MAX_LOGS_PER_RECEIPT = 2**20
MAX_TRANSACTIONS_PER_BLOCK = 2**20
MAX_TRANSACTION_SIZE = 2**30
MAX_UNCLES_PER_BLOCK = 16
MAX_RECEIPTS_PER_BLOCK = MAX_TRANSACTIONS_PER_BLOCK
MAX_BLOCKS_PER_ARCHIVE = 2**20

NO_BASE_FEE = Bytes32(b"\x00" * 32)
"""
Value of `Header.base_fee_per_gas` for blocks that predate the fee market.
A block whose base fee is really zero is stored the same way.
"""


@slotted_freezable
@dataclass
class Header:
    """
    Header portion of a block (or an uncle) on the chain.

    `difficulty` holds the proof-of-work difficulty before the merge and the
    beacon chain randomness after it; which one depends on the chain's
    transition block and is left to the reader. `base_fee_per_gas` is a
    32-byte big-endian integer, equal to `NO_BASE_FEE` when absent.
    """

    parent_hash: Hash32
    ommers_hash: Hash32
    coinbase: Address
    state_root: Root
    transactions_root: Root
    receipt_root: Root
    bloom: Bloom
    difficulty: Bytes32
    number: U64
    gas_limit: U64
    gas_used: U64
    timestamp: U64
    extra_data: Bytes
    base_fee_per_gas: Bytes32
    mix_digest: Bytes32
    nonce: Bytes8


@slotted_freezable
@dataclass
class Log:
    """
    Data record produced during the execution of a transaction.
    """

    address: Address
    topics: Tuple[Hash32, ...]
    data: Bytes


@slotted_freezable
@dataclass
class Receipt:
    """
    Result of a transaction.

    `outcome` is the post-transaction state root for receipts created before
    Byzantium, and a success flag for every receipt after it.
    """

    outcome: ReceiptOutcome
    cumulative_gas_used: U64
    logs: Tuple[Log, ...]

    @property
    def post_state(self) -> Optional[Root]:
        """
        State root of a legacy receipt, `None` for status receipts.
        """
        if isinstance(self.outcome, bool):
            return None
        return self.outcome

    @property
    def succeeded(self) -> Optional[bool]:
        """
        Status of a post-Byzantium receipt, `None` for legacy receipts.
        """
        if isinstance(self.outcome, bool):
            return self.outcome
        return None


@slotted_freezable
@dataclass
class Block:
    """
    A complete block. `receipts` is empty when receipts do not travel with
    the block.
    """

    header: Header
    transactions: Tuple[Bytes, ...]
    uncles: Tuple[Header, ...]
    receipts: Tuple[Receipt, ...]


@slotted_freezable
@dataclass
class ArchiveHeader:
    """
    Fixed size prefix of an archive file.
    """

    version: U64
    head_block_number: U64
    block_count: U32

    @property
    def last_block_number(self) -> U64:
        """
        Number of the final block in the archive.
        """
        return U64(int(self.head_block_number) + int(self.block_count) - 1)


@slotted_freezable
@dataclass
class ArchiveBody:
    """
    Contiguous run of blocks stored in one archive.
    """

    blocks: Tuple[Block, ...]


def make_archive_header(body: ArchiveBody) -> ArchiveHeader:
    """
    Build the header describing `body`, which must not be empty.
    """
    return ArchiveHeader(
        version=U64(ARCHIVE_FORMAT_VERSION),
        head_block_number=body.blocks[0].header.number,
        block_count=U32(len(body.blocks)),
    )
