"""Value types exchanged with a token ledger: amounts, accounts, transfers and blocks."""

from __future__ import annotations

import hashlib
import zlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Union

from certmap.principal import Principal

__all__ = [
    "U64_MAX",
    "Timestamp",
    "Tokens",
    "Subaccount",
    "AccountIdentifier",
    "AccountBalanceArgs",
    "Memo",
    "TransferArgs",
    "TransferError",
    "BadFee",
    "InsufficientFunds",
    "TxTooOld",
    "TxCreatedInFuture",
    "TxDuplicate",
    "Operation",
    "Mint",
    "Burn",
    "Transfer",
    "Approve",
    "TransferFrom",
    "Transaction",
    "Block",
    "GetBlocksArgs",
    "BlockRange",
    "GetBlocksError",
    "BadFirstBlockIndex",
    "OtherBlocksError",
    "QueryArchiveFn",
    "ArchivedBlockRange",
    "QueryBlocksResponse",
    "Symbol",
    "DEFAULT_SUBACCOUNT",
    "DEFAULT_FEE",
    "MAINNET_LEDGER_CANISTER_ID",
    "MAINNET_GOVERNANCE_CANISTER_ID",
    "MAINNET_CYCLES_MINTING_CANISTER_ID",
]

U64_MAX = 2**64 - 1
_ACCOUNT_ID_SIZE = 32
_SUBACCOUNT_SIZE = 32
_ACCOUNT_DOMAIN = b"\x0aaccount-id"


def _check_u64(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{what} must be an integer, got {type(value).__name__}")
    if not 0 <= value <= U64_MAX:
        raise ValueError(f"{what} must fit in an unsigned 64-bit integer, got {value}")
    return value


def _crc32_be(data: bytes) -> bytes:
    return (zlib.crc32(data) & 0xFFFFFFFF).to_bytes(4, "big")


@dataclass(frozen=True, order=True)
class Timestamp:
    """Nanoseconds since the UNIX epoch, UTC."""

    timestamp_nanos: int

    def __post_init__(self) -> None:
        _check_u64(self.timestamp_nanos, "timestamp_nanos")


@dataclass(frozen=True, order=True)
class Tokens:
    """An amount of tokens counted in units of 10^-8.

    Addition and subtraction raise OverflowError when the result leaves the
    unsigned 64-bit range.
    """

    e8s: int

    MAX: ClassVar["Tokens"]
    ZERO: ClassVar["Tokens"]
    SUBDIVIDABLE_BY: ClassVar[int] = 100_000_000

    def __post_init__(self) -> None:
        _check_u64(self.e8s, "e8s")

    @classmethod
    def from_e8s(cls, e8s: int) -> "Tokens":
        """Build an amount from a count of 10^-8 tokens."""
        return cls(e8s)

    def __add__(self, other: object) -> "Tokens":
        if not isinstance(other, Tokens):
            return NotImplemented
        total = self.e8s + other.e8s
        if total > U64_MAX:
            raise OverflowError(
                f"Add Tokens {self.e8s} + {other.e8s} failed because the "
                "underlying u64 overflowed"
            )
        return Tokens(total)

    def __sub__(self, other: object) -> "Tokens":
        if not isinstance(other, Tokens):
            return NotImplemented
        difference = self.e8s - other.e8s
        if difference < 0:
            raise OverflowError(
                f"Subtracting Tokens {self.e8s} - {other.e8s} failed because the "
                "underlying u64 underflowed"
            )
        return Tokens(difference)

    def __str__(self) -> str:
        whole, fraction = divmod(self.e8s, Tokens.SUBDIVIDABLE_BY)
        return f"{whole}.{fraction:08d}"


Tokens.MAX = Tokens(U64_MAX)
Tokens.ZERO = Tokens(0)


@dataclass(frozen=True, order=True)
class Subaccount:
    """An arbitrary 32-byte value selecting one of a principal's accounts."""

    data: bytes

    def __post_init__(self) -> None:
        data = bytes(self.data)
        if len(data) != _SUBACCOUNT_SIZE:
            raise ValueError(
                f"subaccount must be {_SUBACCOUNT_SIZE} bytes, got {len(data)}"
            )
        object.__setattr__(self, "data", data)

    @classmethod
    def from_principal(cls, principal: Principal) -> "Subaccount":
        """Encode a principal as a length byte followed by its bytes, zero padded."""
        raw = bytes(principal)
        if len(raw) + 1 > _SUBACCOUNT_SIZE:
            raise ValueError(f"principal of {len(raw)} bytes does not fit a subaccount")
        encoded = bytes([len(raw)]) + raw
        return cls(encoded.ljust(_SUBACCOUNT_SIZE, b"\x00"))

    def __bytes__(self) -> bytes:
        return self.data


@dataclass(frozen=True, order=True)
class AccountIdentifier:
    """A 32-byte account address: a big-endian CRC-32 of a 28-byte hash, then the hash."""

    data: bytes

    def __post_init__(self) -> None:
        data = bytes(self.data)
        if len(data) != _ACCOUNT_ID_SIZE:
            raise ValueError(
                f"account identifier must be {_ACCOUNT_ID_SIZE} bytes, got {len(data)}"
            )
        object.__setattr__(self, "data", data)

    @classmethod
    def new(cls, owner: Principal, subaccount: Subaccount) -> "AccountIdentifier":
        """Derive the account identifier of a principal's subaccount."""
        hasher = hashlib.sha224()
        hasher.update(_ACCOUNT_DOMAIN)
        hasher.update(bytes(owner))
        hasher.update(bytes(subaccount))
        digest = hasher.digest()
        return cls(_crc32_be(digest) + digest)

    @classmethod
    def from_bytes(cls, data: bytes) -> "AccountIdentifier":
        """Parse 32 bytes, verifying the leading checksum."""
        data = bytes(data)
        if len(data) != _ACCOUNT_ID_SIZE:
            raise ValueError(
                f"account identifier must be {_ACCOUNT_ID_SIZE} bytes, got {len(data)}"
            )
        if data[:4] != _crc32_be(data[4:]):
            raise ValueError("CRC-32 checksum failed to verify")
        return cls(data)

    def __bytes__(self) -> bytes:
        return self.data

    def __str__(self) -> str:
        return self.data.hex()


@dataclass(frozen=True)
class AccountBalanceArgs:
    """Arguments of an ``account_balance`` call."""

    account: AccountIdentifier


@dataclass(frozen=True, order=True)
class Memo:
    """A caller-chosen number attached to a transfer."""

    value: int

    def __post_init__(self) -> None:
        _check_u64(self.value, "memo")


@dataclass(frozen=True)
class TransferArgs:
    """Arguments of a ``transfer`` call."""

    memo: Memo
    amount: Tokens
    fee: Tokens
    to: AccountIdentifier
    from_subaccount: Optional[Subaccount] = None
    created_at_time: Optional[Timestamp] = None


class TransferError(ABC):
    """Why a transfer was refused."""

    @abstractmethod
    def __str__(self) -> str:
        """Describe the failure."""


@dataclass(frozen=True)
class BadFee(TransferError):
    """The fee given is not the one the ledger expects."""

    expected_fee: Tokens

    def __str__(self) -> str:
        return f"transaction fee should be {self.expected_fee}"


@dataclass(frozen=True)
class InsufficientFunds(TransferError):
    """The source account holds too little."""

    balance: Tokens

    def __str__(self) -> str:
        return (
            "the debit account doesn't have enough funds to complete the "
            f"transaction, current balance: {self.balance}"
        )


@dataclass(frozen=True)
class TxTooOld(TransferError):
    """The request was created too long ago."""

    allowed_window_nanos: int

    def __post_init__(self) -> None:
        _check_u64(self.allowed_window_nanos, "allowed_window_nanos")

    def __str__(self) -> str:
        seconds = self.allowed_window_nanos // 1_000_000_000
        return f"transaction is older than {seconds} seconds"


@dataclass(frozen=True)
class TxCreatedInFuture(TransferError):
    """The request's creation time lies in the future."""

    def __str__(self) -> str:
        return "transaction's created_at_time is in future"


@dataclass(frozen=True)
class TxDuplicate(TransferError):
    """The same request was already executed."""

    duplicate_of: int

    def __post_init__(self) -> None:
        _check_u64(self.duplicate_of, "duplicate_of")

    def __str__(self) -> str:
        return (
            "transaction is a duplicate of another transaction in block "
            f"{self.duplicate_of}"
        )


class Operation:
    """The content of a ledger transaction."""


@dataclass(frozen=True)
class Mint(Operation):
    """Tokens created and credited to an account."""

    to: AccountIdentifier
    amount: Tokens


@dataclass(frozen=True)
class Burn(Operation):
    """Tokens removed from an account."""

    from_: AccountIdentifier
    amount: Tokens


@dataclass(frozen=True)
class Transfer(Operation):
    """Tokens moved from one account to another."""

    from_: AccountIdentifier
    to: AccountIdentifier
    amount: Tokens
    fee: Tokens


@dataclass(frozen=True)
class Approve(Operation):
    """An account allowed another to spend on its behalf."""

    from_: AccountIdentifier
    spender: AccountIdentifier
    fee: Tokens
    expires_at: Optional[Timestamp] = None


@dataclass(frozen=True)
class TransferFrom(Operation):
    """A spender moved tokens out of an account under an approval."""

    from_: AccountIdentifier
    to: AccountIdentifier
    spender: AccountIdentifier
    amount: Tokens
    fee: Tokens


@dataclass(frozen=True)
class Transaction:
    """A recorded ledger transaction."""

    memo: Memo
    operation: Optional[Operation]
    created_at_time: Timestamp


@dataclass(frozen=True)
class Block:
    """One record of the ledger chain."""

    parent_hash: Optional[bytes]
    transaction: Transaction
    timestamp: Timestamp

    def __post_init__(self) -> None:
        if self.parent_hash is not None:
            parent = bytes(self.parent_hash)
            if len(parent) != 32:
                raise ValueError(f"parent hash must be 32 bytes, got {len(parent)}")
            object.__setattr__(self, "parent_hash", parent)


@dataclass(frozen=True)
class GetBlocksArgs:
    """Arguments of ``get_blocks``/``query_blocks``: a start index and a count."""

    start: int
    length: int

    def __post_init__(self) -> None:
        _check_u64(self.start, "start")
        _check_u64(self.length, "length")


@dataclass(frozen=True)
class BlockRange:
    """A prefix of a requested block range."""

    blocks: List[Block] = field(default_factory=list)


class GetBlocksError(ABC):
    """Why a block query was refused."""

    @abstractmethod
    def __str__(self) -> str:
        """Describe the failure."""


@dataclass(frozen=True)
class BadFirstBlockIndex(GetBlocksError):
    """The requested start lies before the first block served."""

    requested_index: int
    first_valid_index: int

    def __str__(self) -> str:
        return (
            f"invalid first block index: requested block = {self.requested_index}, "
            f"first valid block = {self.first_valid_index}"
        )


@dataclass(frozen=True)
class OtherBlocksError(GetBlocksError):
    """Any other failure, with a code and a message."""

    error_code: int
    error_message: str

    def __str__(self) -> str:
        return (
            f"failed to query blocks (error code {self.error_code}): "
            f"{self.error_message}"
        )


GetBlocksResult = Union[BlockRange, GetBlocksError]


@dataclass(frozen=True)
class QueryArchiveFn:
    """A reference to a query method that serves archived blocks."""

    principal: Principal
    method: str


@dataclass(frozen=True)
class ArchivedBlockRange:
    """A range of archived blocks and the function that fetches them."""

    start: int
    length: int
    callback: QueryArchiveFn

    def __post_init__(self) -> None:
        _check_u64(self.start, "start")
        _check_u64(self.length, "length")


@dataclass(frozen=True)
class QueryBlocksResponse:
    """The reply to ``query_blocks``."""

    chain_length: int
    first_block_index: int
    certificate: Optional[bytes] = None
    blocks: List[Block] = field(default_factory=list)
    archived_blocks: List[ArchivedBlockRange] = field(default_factory=list)


@dataclass(frozen=True)
class Symbol:
    """A token's trade symbol."""

    symbol: str


DEFAULT_SUBACCOUNT = Subaccount(bytes(_SUBACCOUNT_SIZE))
DEFAULT_FEE = Tokens(10_000)

MAINNET_LEDGER_CANISTER_ID = Principal(bytes([0, 0, 0, 0, 0, 0, 0, 2, 1, 1]))
MAINNET_GOVERNANCE_CANISTER_ID = Principal(bytes([0, 0, 0, 0, 0, 0, 0, 1, 1, 1]))
MAINNET_CYCLES_MINTING_CANISTER_ID = Principal(bytes([0, 0, 0, 0, 0, 0, 0, 4, 1, 1]))