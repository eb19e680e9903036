"""Asset movement between ledger holders.

A transfer is one of two variants, chosen once per operation from the
escrow's asset id:

* `NativeTransfer` adjusts ledger balances directly.
* `TokenTransfer` builds one token instruction and hands it to the external
  token capability together with the authority evidence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from .config import TOKEN_TRANSFER_OPCODE, U64_MAX, ProgramConfig
from .errors import ErrorCode, SpecError
from .types import (
    AccountMeta,
    Authority,
    DerivedAuthority,
    Instruction,
    LedgerState,
    SignerAuthority,
)

logger = logging.getLogger(__name__)


class TokenProgram(Protocol):
    """External fungible-token transfer capability.

    `invoke` either applies the whole instruction to `state` or raises
    `SpecError` without mutating anything.
    """

    program_id: bytes

    def invoke(self, state: LedgerState, instruction: Instruction, authority: Authority) -> None:
        ...


@dataclass(frozen=True)
class NativeTransfer:
    source: bytes
    destination: bytes
    amount: int
    authority: Authority


@dataclass(frozen=True)
class TokenTransfer:
    source_token: bytes
    destination_token: bytes
    amount: int
    authority: Authority
    token_program: bytes


Transfer = Union[NativeTransfer, TokenTransfer]


@dataclass(frozen=True)
class TokenAccounts:
    """Auxiliary accounts a token-asset flow must supply."""

    mint: bytes
    source_token: bytes
    destination_token: bytes
    token_program: bytes


def authority_address(authority: Authority) -> bytes:
    if isinstance(authority, SignerAuthority):
        return authority.address
    return authority.recompute()


def build_token_transfer_instruction(
    program_id: bytes,
    source_token: bytes,
    destination_token: bytes,
    authority: Authority,
    amount: int,
) -> Instruction:
    """Canonical token transfer: data = opcode || amount (u64 LE)."""
    if not 0 <= amount <= U64_MAX:
        raise SpecError(ErrorCode.ARITHMETIC_OVERFLOW, "token amount must fit u64")
    data = bytes([TOKEN_TRANSFER_OPCODE]) + amount.to_bytes(8, "little")
    accounts = [
        AccountMeta(source_token, is_signer=False, is_writable=True),
        AccountMeta(destination_token, is_signer=False, is_writable=True),
        AccountMeta(
            authority_address(authority),
            is_signer=isinstance(authority, SignerAuthority),
            is_writable=False,
        ),
    ]
    return Instruction(program_id=program_id, accounts=accounts, data=data)


def plan_transfer(
    config: ProgramConfig,
    asset_id: bytes,
    source: bytes,
    destination: bytes,
    amount: int,
    authority: Authority,
    token_accounts: Optional[TokenAccounts],
) -> Transfer:
    """Select the strategy for `asset_id`."""
    if config.is_native(asset_id):
        return NativeTransfer(source, destination, amount, authority)
    if token_accounts is None:
        raise SpecError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "token accounts required for non-native asset")
    return TokenTransfer(
        source_token=token_accounts.source_token,
        destination_token=token_accounts.destination_token,
        amount=amount,
        authority=authority,
        token_program=token_accounts.token_program,
    )


def _check_native_authority(state: LedgerState, source: bytes, authority: Authority) -> None:
    if isinstance(authority, SignerAuthority):
        if authority.address != source:
            raise SpecError(ErrorCode.MISSING_SIGNATURE, "native debit requires the holder's signature")
        return
    if authority.recompute() != source:
        raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "derivation proof does not match source")
    if state.account(source).owner != authority.program_id:
        raise SpecError(ErrorCode.NOT_OWNED_BY_PROTOCOL, "derived source not owned by program")


def native_transfer(state: LedgerState, source: bytes, destination: bytes, amount: int) -> None:
    """Checked debit/credit; validates both sides before touching either."""
    if amount < 0 or amount > U64_MAX:
        raise SpecError(ErrorCode.ARITHMETIC_OVERFLOW, "amount must fit u64")
    src = state.account(source)
    dst = state.account(destination)
    if src.balance < amount:
        raise SpecError(
            ErrorCode.INSUFFICIENT_FUNDS,
            f"insufficient balance: have {src.balance}, need {amount}",
        )
    if source == destination:
        return
    if dst.balance + amount > U64_MAX:
        raise SpecError(ErrorCode.ARITHMETIC_OVERFLOW, "destination balance overflow")
    src.balance -= amount
    dst.balance += amount


def execute(
    state: LedgerState,
    config: ProgramConfig,
    transfer: Transfer,
    token_program: TokenProgram,
) -> None:
    if isinstance(transfer, NativeTransfer):
        _check_native_authority(state, transfer.source, transfer.authority)
        native_transfer(state, transfer.source, transfer.destination, transfer.amount)
        logger.debug("native transfer of %d", transfer.amount)
        return

    if transfer.token_program != config.token_program_id:
        raise SpecError(ErrorCode.WRONG_ASSET_PROGRAM, "unexpected token program")
    if token_program.program_id != config.token_program_id:
        raise SpecError(ErrorCode.WRONG_ASSET_PROGRAM, "token capability bound to another program id")
    if isinstance(transfer.authority, DerivedAuthority):
        if transfer.authority.program_id != config.program_id:
            raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "derivation proof for another program")
    ix = build_token_transfer_instruction(
        config.token_program_id,
        transfer.source_token,
        transfer.destination_token,
        transfer.authority,
        transfer.amount,
    )
    token_program.invoke(state, ix, transfer.authority)
    logger.debug("token transfer of %d", transfer.amount)
