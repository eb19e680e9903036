"""Core types for the escrow program and its host ledger model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Union

from .config import SYSTEM_PROGRAM_ID


class EscrowState(IntEnum):
    UNINITIALIZED = 0
    CREATED = 1
    INITIALIZED = 2
    FUNDED = 3
    SELLER_CONFIRMED = 4
    BUYER_CONFIRMED = 5  # reserved, never produced
    COMPLETED = 6
    CANCELLED = 7


TERMINAL_STATES = frozenset({EscrowState.COMPLETED, EscrowState.CANCELLED})
CUSTODY_STATES = frozenset({EscrowState.FUNDED, EscrowState.SELLER_CONFIRMED})


class Role(IntEnum):
    BUYER = 0
    SELLER = 1


class CommandType(IntEnum):
    CREATE_OFFER = 0
    JOIN_OFFER = 1
    FUND_ESCROW = 2
    CONFIRM_ESCROW = 3
    ARBITER_CONFIRM = 4
    ARBITER_CANCEL = 5
    CLOSE_ESCROW = 6
    GET_INFO = 7
    MUTUAL_CANCEL = 8
    SELLER_CONFIRM = 9


# --- Host ledger ---


@dataclass
class Account:
    address: bytes
    balance: int = 0
    owner: bytes = SYSTEM_PROGRAM_ID
    data: bytes = b""


@dataclass
class TokenAccount:
    address: bytes
    mint: bytes
    owner: bytes
    amount: int = 0


@dataclass
class LedgerState:
    accounts: dict[bytes, Account] = field(default_factory=dict)
    # Token-holding accounts, maintained by the token capability.
    token_accounts: dict[bytes, TokenAccount] = field(default_factory=dict)

    def account(self, address: bytes) -> Account:
        """Return the account at `address`, materializing an empty one."""
        acc = self.accounts.get(address)
        if acc is None:
            acc = Account(address=address)
            self.accounts[address] = acc
        return acc

    def balance_of(self, address: bytes) -> int:
        acc = self.accounts.get(address)
        return acc.balance if acc is not None else 0


@dataclass(frozen=True)
class AccountMeta:
    address: bytes
    is_signer: bool = False
    is_writable: bool = False


@dataclass
class Instruction:
    program_id: bytes
    accounts: List[AccountMeta]
    data: bytes


# --- Authorization evidence ---


@dataclass(frozen=True)
class SignerAuthority:
    """A party that signed the enclosing transaction."""

    address: bytes


@dataclass(frozen=True)
class DerivedAuthority:
    """Proof that the program can reproduce a derived address.

    Stands in for a signature when the debited holder is a program-owned
    slot such as the custody vault.
    """

    seeds: tuple[bytes, ...]
    nonce: int
    program_id: bytes

    def recompute(self) -> bytes:
        from .derivation import create_derived_address

        return create_derived_address(list(self.seeds), self.nonce, self.program_id)


Authority = Union[SignerAuthority, DerivedAuthority]


# --- Decoded commands ---


@dataclass(frozen=True)
class CreateOffer:
    role: Role
    amount: int
    arbiter: bytes
    asset_id: bytes
    fee_collector: bytes
    seed: bytes


@dataclass(frozen=True)
class JoinOffer:
    role: Role
    joiner: bytes


@dataclass(frozen=True)
class FundEscrow:
    pass


@dataclass(frozen=True)
class ConfirmEscrow:
    pass


@dataclass(frozen=True)
class ArbiterConfirm:
    pass


@dataclass(frozen=True)
class ArbiterCancel:
    pass


@dataclass(frozen=True)
class CloseEscrow:
    pass


@dataclass(frozen=True)
class GetInfo:
    pass


@dataclass(frozen=True)
class MutualCancel:
    pass


@dataclass(frozen=True)
class SellerConfirm:
    pass


Command = Union[
    CreateOffer,
    JoinOffer,
    FundEscrow,
    ConfirmEscrow,
    ArbiterConfirm,
    ArbiterCancel,
    CloseEscrow,
    GetInfo,
    MutualCancel,
    SellerConfirm,
]


@dataclass(frozen=True)
class EscrowInfo:
    address: bytes
    state: EscrowState
    buyer: bytes
    seller: bytes
    arbiter: bytes
    amount: int
    vault_nonce: int
    asset_id: bytes
    fee_collector: bytes
    vault_address: Optional[bytes] = None
