"""Stateless validation predicates.

Each helper raises `SpecError` with one specific code. Instruction handlers
compose them in a fixed order: signer, ownership/derivation, state,
participant role, then fund movement.
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from .config import ProgramConfig
from .errors import ErrorCode, SpecError
from .record import EscrowRecord
from .transfer import TokenAccounts
from .types import AccountMeta, EscrowState, LedgerState
from .vault import find_escrow_address, find_vault_address, vault_address


def require_accounts(accounts: Sequence[AccountMeta], count: int, name: str) -> None:
    if len(accounts) < count:
        raise SpecError(
            ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS,
            f"{name} requires {count} accounts, got {len(accounts)}",
        )


def validate_signer(meta: AccountMeta, name: str) -> None:
    if not meta.is_signer:
        raise SpecError(ErrorCode.MISSING_SIGNATURE, f"{name} must be signer")


def validate_system_program(meta: AccountMeta, config: ProgramConfig) -> None:
    if meta.address != config.system_program_id:
        raise SpecError(ErrorCode.WRONG_ASSET_PROGRAM, "invalid system program")


def validate_program_account(state: LedgerState, address: bytes, program_id: bytes, name: str) -> None:
    acc = state.accounts.get(address)
    if acc is None or acc.owner != program_id:
        raise SpecError(ErrorCode.NOT_OWNED_BY_PROTOCOL, f"{name} must be owned by program")


def validate_escrow_address(address: bytes, seed: bytes, program_id: bytes) -> int:
    expected, nonce = find_escrow_address(seed, program_id)
    if expected != address:
        raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "escrow record address does not match seed")
    return nonce


def find_and_validate_vault(vault: bytes, record_address: bytes, program_id: bytes) -> int:
    expected, nonce = find_vault_address(record_address, program_id)
    if expected != vault:
        raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "invalid vault address")
    return nonce


def validate_vault(vault: bytes, record_address: bytes, record: EscrowRecord, program_id: bytes) -> None:
    if vault_address(record_address, record.vault_nonce, program_id) != vault:
        raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "invalid vault address")


def validate_state(record: EscrowRecord, allowed: Iterable[EscrowState], operation: str) -> None:
    allowed = tuple(allowed)
    if record.state not in allowed:
        names = " or ".join(s.name for s in allowed)
        raise SpecError(
            ErrorCode.WRONG_STATE,
            f"{operation} requires state {names}, escrow is {record.state.name}",
        )


def validate_participant(record: EscrowRecord, identity: bytes, role: str) -> None:
    expected = {
        "buyer": record.buyer,
        "seller": record.seller,
        "arbiter": record.arbiter,
    }.get(role)
    if expected is None or expected != identity:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, f"account is not the escrow {role}")


def validate_account_key(address: bytes, expected: bytes, name: str) -> None:
    if address != expected:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, f"invalid {name} account")


def validate_sufficient_balance(state: LedgerState, address: bytes, required: int, purpose: str) -> None:
    available = state.balance_of(address)
    if available < required:
        raise SpecError(
            ErrorCode.INSUFFICIENT_FUNDS,
            f"insufficient funds for {purpose}: required {required}, available {available}",
        )


def token_accounts_from(accounts: Sequence[AccountMeta], start: int) -> Optional[TokenAccounts]:
    """Trailing `mint, source_token, destination_token, token_program`, if all present."""
    tail = accounts[start:start + 4]
    if len(tail) < 4:
        return None
    return TokenAccounts(
        mint=tail[0].address,
        source_token=tail[1].address,
        destination_token=tail[2].address,
        token_program=tail[3].address,
    )


def validate_token_accounts(
    state: LedgerState,
    config: ProgramConfig,
    asset_id: bytes,
    token_accounts: Optional[TokenAccounts],
    source_holder: bytes,
    destination_holder: bytes,
) -> None:
    """Check the auxiliary accounts of a token-asset flow; no-op for native."""
    if config.is_native(asset_id):
        return
    if token_accounts is None:
        raise SpecError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "token accounts required for non-native asset")
    if token_accounts.token_program != config.token_program_id:
        raise SpecError(ErrorCode.WRONG_ASSET_PROGRAM, "invalid token program")
    if token_accounts.mint != asset_id:
        raise SpecError(ErrorCode.WRONG_ASSET_TYPE, "mint account does not match escrow asset")
    for address, holder, name in (
        (token_accounts.source_token, source_holder, "source"),
        (token_accounts.destination_token, destination_holder, "destination"),
    ):
        acc = state.token_accounts.get(address)
        if acc is None or acc.mint != asset_id:
            raise SpecError(ErrorCode.WRONG_ASSET_TYPE, f"{name} token account does not hold escrow asset")
        if acc.owner != holder:
            raise SpecError(ErrorCode.WRONG_PARTICIPANT, f"{name} token account has wrong holder")


def load_record(state: LedgerState, address: bytes, config: ProgramConfig) -> EscrowRecord:
    validate_program_account(state, address, config.program_id, "escrow_account")
    return EscrowRecord.from_bytes(state.accounts[address].data)
