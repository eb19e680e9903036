"""Happy-path settlement (FundEscrow, SellerConfirm, ConfirmEscrow)."""

from __future__ import annotations

import logging

from ..transfer import execute, plan_transfer
from ..types import EscrowState, FundEscrow, SellerConfirm, ConfirmEscrow, SignerAuthority
from ..validation import (
    load_record,
    require_accounts,
    token_accounts_from,
    validate_account_key,
    validate_participant,
    validate_signer,
    validate_state,
    validate_system_program,
    validate_token_accounts,
    validate_vault,
)
from .common import InvocationContext, release_from_vault, save_record

logger = logging.getLogger(__name__)


def fund_escrow(ctx: InvocationContext, cmd: FundEscrow) -> None:
    """Buyer deposits the escrowed amount into custody.

    Accounts: buyer [signer], escrow record, vault, system program, then for
    token assets: mint, buyer token account, vault token account, token program.
    """
    require_accounts(ctx.accounts, 4, "FundEscrow")
    buyer, escrow, vault, system_program = ctx.accounts[:4]

    validate_signer(buyer, "buyer")
    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_vault(vault.address, escrow.address, record, ctx.config.program_id)
    validate_system_program(system_program, ctx.config)
    validate_state(record, (EscrowState.INITIALIZED,), "FundEscrow")
    validate_participant(record, buyer.address, "buyer")

    token_accounts = token_accounts_from(ctx.accounts, 4)
    validate_token_accounts(
        ctx.state, ctx.config, record.asset_id, token_accounts, buyer.address, vault.address
    )
    transfer = plan_transfer(
        ctx.config,
        record.asset_id,
        buyer.address,
        vault.address,
        record.amount,
        SignerAuthority(buyer.address),
        token_accounts,
    )
    execute(ctx.state, ctx.config, transfer, ctx.token_program)

    record.state = EscrowState.FUNDED
    save_record(ctx, escrow.address, record)
    logger.info("escrow funded with %d", record.amount)


def seller_confirm(ctx: InvocationContext, cmd: SellerConfirm) -> None:
    """Seller claims fulfillment. Accounts: seller [signer], escrow record."""
    require_accounts(ctx.accounts, 2, "SellerConfirm")
    seller, escrow = ctx.accounts[:2]

    validate_signer(seller, "seller")
    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_state(record, (EscrowState.FUNDED,), "SellerConfirm")
    validate_participant(record, seller.address, "seller")

    record.state = EscrowState.SELLER_CONFIRMED
    save_record(ctx, escrow.address, record)
    logger.info("seller confirmed fulfillment")


def confirm_escrow(ctx: InvocationContext, cmd: ConfirmEscrow) -> None:
    """Buyer releases custody to the seller after the seller confirmed.

    Accounts: buyer [signer], escrow record, vault, system program, seller,
    then for token assets: mint, vault token account, seller token account,
    token program.
    """
    require_accounts(ctx.accounts, 5, "ConfirmEscrow")
    buyer, escrow, vault, system_program, seller = ctx.accounts[:5]

    validate_signer(buyer, "buyer")
    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_vault(vault.address, escrow.address, record, ctx.config.program_id)
    validate_system_program(system_program, ctx.config)
    validate_state(record, (EscrowState.SELLER_CONFIRMED,), "ConfirmEscrow")
    validate_participant(record, buyer.address, "buyer")
    validate_account_key(seller.address, record.seller, "seller")

    release_from_vault(
        ctx, record, escrow.address, vault.address, seller.address, token_accounts_from(ctx.accounts, 5)
    )
    record.state = EscrowState.COMPLETED
    save_record(ctx, escrow.address, record)
    logger.info("escrow confirmed by buyer, %d released to seller", record.amount)
