"""Custody vault and escrow record slot addressing/allocation."""

from __future__ import annotations

import logging

from .config import ESCROW_SEED_TAG, VAULT_SEED_TAG, ProgramConfig
from .derivation import create_derived_address, find_derived_address
from .errors import ErrorCode, SpecError
from .transfer import native_transfer
from .types import DerivedAuthority, LedgerState

logger = logging.getLogger(__name__)


def escrow_seeds(seed: bytes) -> list[bytes]:
    return [ESCROW_SEED_TAG, seed]


def vault_seeds(record_address: bytes) -> list[bytes]:
    return [VAULT_SEED_TAG, record_address]


def find_escrow_address(seed: bytes, program_id: bytes) -> tuple[bytes, int]:
    return find_derived_address(escrow_seeds(seed), program_id)


def find_vault_address(record_address: bytes, program_id: bytes) -> tuple[bytes, int]:
    return find_derived_address(vault_seeds(record_address), program_id)


def vault_address(record_address: bytes, nonce: int, program_id: bytes) -> bytes:
    return create_derived_address(vault_seeds(record_address), nonce, program_id)


def vault_authority(record_address: bytes, nonce: int, program_id: bytes) -> DerivedAuthority:
    """Capability that lets the program debit the vault of `record_address`."""
    return DerivedAuthority(
        seeds=tuple(vault_seeds(record_address)),
        nonce=nonce,
        program_id=program_id,
    )


def custody_balance(state: LedgerState, config: ProgramConfig, vault: bytes) -> int:
    """Native units held in the vault above its own storage deposit."""
    return max(0, state.balance_of(vault) - config.minimum_balance(0))


def allocate_slot(
    state: LedgerState,
    config: ProgramConfig,
    payer: bytes,
    address: bytes,
    size: int,
) -> None:
    """Create a program-owned slot of `size` bytes funded by `payer`.

    The slot must not hold a balance yet.
    """
    slot = state.account(address)
    if slot.balance != 0:
        raise SpecError(ErrorCode.ALREADY_SET, "slot already allocated")
    native_transfer(state, payer, address, config.minimum_balance(size))
    slot.owner = config.program_id
    slot.data = bytes(size)


def ensure_vault(
    state: LedgerState,
    config: ProgramConfig,
    payer: bytes,
    record_address: bytes,
    nonce: int,
) -> bool:
    """Create the vault lazily; returns True when it was allocated now."""
    address = vault_address(record_address, nonce, config.program_id)
    if state.balance_of(address) != 0:
        if state.account(address).owner != config.program_id:
            raise SpecError(ErrorCode.NOT_OWNED_BY_PROTOCOL, "vault must be owned by program")
        return False
    allocate_slot(state, config, payer, address, 0)
    logger.debug("vault allocated")
    return True
