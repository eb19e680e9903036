"""Arbiter resolution and mutual cancellation."""

from __future__ import annotations

import logging

from ..errors import ErrorCode, SpecError
from ..types import CUSTODY_STATES, ArbiterCancel, ArbiterConfirm, EscrowState, MutualCancel
from ..validation import (
    load_record,
    require_accounts,
    token_accounts_from,
    validate_account_key,
    validate_participant,
    validate_signer,
    validate_state,
    validate_vault,
)
from .common import InvocationContext, release_from_vault, save_record

logger = logging.getLogger(__name__)

_ARBITRABLE = tuple(sorted(CUSTODY_STATES))


def arbiter_confirm(ctx: InvocationContext, cmd: ArbiterConfirm) -> None:
    """Arbiter rules for the seller.

    Accounts: arbiter [signer], escrow record, vault, seller, then token
    accounts (mint, vault token, seller token, token program) for token assets.
    """
    require_accounts(ctx.accounts, 4, "ArbiterConfirm")
    arbiter, escrow, vault, seller = ctx.accounts[:4]

    validate_signer(arbiter, "arbiter")
    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_vault(vault.address, escrow.address, record, ctx.config.program_id)
    validate_state(record, _ARBITRABLE, "ArbiterConfirm")
    validate_participant(record, arbiter.address, "arbiter")
    validate_account_key(seller.address, record.seller, "seller")

    release_from_vault(
        ctx, record, escrow.address, vault.address, seller.address, token_accounts_from(ctx.accounts, 4)
    )
    record.state = EscrowState.COMPLETED
    save_record(ctx, escrow.address, record)
    logger.info("escrow completed by arbiter")


def arbiter_cancel(ctx: InvocationContext, cmd: ArbiterCancel) -> None:
    """Arbiter rules for the buyer.

    Accounts: arbiter [signer], escrow record, vault, buyer, then token
    accounts (mint, vault token, buyer token, token program) for token assets.
    """
    require_accounts(ctx.accounts, 4, "ArbiterCancel")
    arbiter, escrow, vault, buyer = ctx.accounts[:4]

    validate_signer(arbiter, "arbiter")
    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_vault(vault.address, escrow.address, record, ctx.config.program_id)
    validate_state(record, _ARBITRABLE, "ArbiterCancel")
    validate_participant(record, arbiter.address, "arbiter")
    validate_account_key(buyer.address, record.buyer, "buyer")

    release_from_vault(
        ctx, record, escrow.address, vault.address, buyer.address, token_accounts_from(ctx.accounts, 4)
    )
    record.state = EscrowState.CANCELLED
    save_record(ctx, escrow.address, record)
    logger.info("escrow cancelled by arbiter")


def mutual_cancel(ctx: InvocationContext, cmd: MutualCancel) -> None:
    """Buyer and seller jointly cancel; funded escrows refund the buyer.

    Accounts: buyer [signer], seller [signer], escrow record, vault, then
    token accounts (mint, vault token, buyer token, token program).
    """
    require_accounts(ctx.accounts, 4, "MutualCancel")
    buyer, seller, escrow, vault = ctx.accounts[:4]

    if not (buyer.is_signer and seller.is_signer):
        raise SpecError(ErrorCode.MISSING_SIGNATURE, "both buyer and seller must sign")
    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_vault(vault.address, escrow.address, record, ctx.config.program_id)
    validate_state(record, (EscrowState.INITIALIZED, EscrowState.FUNDED), "MutualCancel")
    validate_participant(record, buyer.address, "buyer")
    validate_participant(record, seller.address, "seller")

    if record.state == EscrowState.FUNDED:
        release_from_vault(
            ctx, record, escrow.address, vault.address, buyer.address, token_accounts_from(ctx.accounts, 4)
        )
    record.state = EscrowState.CANCELLED
    save_record(ctx, escrow.address, record)
    logger.info("escrow mutually cancelled")
