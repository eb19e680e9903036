"""Record teardown and read-only inspection (CloseEscrow, GetInfo)."""

from __future__ import annotations

import logging

from ..config import RECORD_LEN
from ..errors import ErrorCode, SpecError
from ..transfer import NativeTransfer, execute, native_transfer
from ..types import TERMINAL_STATES, CloseEscrow, EscrowInfo, GetInfo
from ..validation import load_record, require_accounts, validate_signer, validate_state, validate_vault
from ..vault import vault_address, vault_authority
from .common import InvocationContext

logger = logging.getLogger(__name__)


def close_escrow(ctx: InvocationContext, cmd: CloseEscrow) -> None:
    """Reclaim storage deposits of a settled escrow and zero its record.

    Accounts: closer [signer], escrow record, optional vault. When the vault
    is supplied its whole remaining balance goes to the closer as well.
    """
    require_accounts(ctx.accounts, 2, "CloseEscrow")
    closer, escrow = ctx.accounts[:2]
    vault = ctx.accounts[2] if len(ctx.accounts) > 2 else None

    validate_signer(closer, "closer")
    record = load_record(ctx.state, escrow.address, ctx.config)
    if vault is not None:
        validate_vault(vault.address, escrow.address, record, ctx.config.program_id)
    validate_state(record, sorted(TERMINAL_STATES), "CloseEscrow")
    if not record.is_participant(closer.address):
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "only buyer, seller or arbiter may close")

    reclaimed = ctx.state.balance_of(escrow.address)
    native_transfer(ctx.state, escrow.address, closer.address, reclaimed)

    if vault is not None:
        residual = ctx.state.balance_of(vault.address)
        if residual:
            authority = vault_authority(escrow.address, record.vault_nonce, ctx.config.program_id)
            execute(
                ctx.state,
                ctx.config,
                NativeTransfer(vault.address, closer.address, residual, authority),
                ctx.token_program,
            )
            reclaimed += residual

    ctx.state.account(escrow.address).data = bytes(RECORD_LEN)
    logger.info("escrow closed, %d reclaimed by %s", reclaimed, closer.address.hex())


def get_info(ctx: InvocationContext, cmd: GetInfo) -> EscrowInfo:
    """Report the stored record. Accounts: escrow record."""
    require_accounts(ctx.accounts, 1, "GetInfo")
    escrow = ctx.accounts[0]

    record = load_record(ctx.state, escrow.address, ctx.config)
    info = EscrowInfo(
        address=escrow.address,
        state=record.state,
        buyer=record.buyer,
        seller=record.seller,
        arbiter=record.arbiter,
        amount=record.amount,
        vault_nonce=record.vault_nonce,
        asset_id=record.asset_id,
        fee_collector=record.fee_collector,
        vault_address=vault_address(escrow.address, record.vault_nonce, ctx.config.program_id),
    )
    logger.info(
        "escrow %s: state=%s buyer=%s seller=%s arbiter=%s amount=%d asset=%s",
        escrow.address.hex(),
        record.state.name,
        record.buyer.hex(),
        record.seller.hex(),
        record.arbiter.hex(),
        record.amount,
        record.asset_id.hex(),
    )
    return info
