"""Offer creation and joining (CreateOffer, JoinOffer)."""

from __future__ import annotations

import logging

from ..config import RECORD_LEN, UNSET_IDENTITY
from ..errors import ErrorCode, SpecError
from ..record import EscrowRecord, read_state
from ..transfer import NativeTransfer, execute
from ..types import CreateOffer, EscrowState, JoinOffer, Role, SignerAuthority
from ..validation import (
    find_and_validate_vault,
    load_record,
    require_accounts,
    validate_account_key,
    validate_escrow_address,
    validate_signer,
    validate_state,
    validate_sufficient_balance,
    validate_system_program,
)
from ..vault import allocate_slot, ensure_vault
from .common import InvocationContext, save_record

logger = logging.getLogger(__name__)


def create_offer(ctx: InvocationContext, cmd: CreateOffer) -> None:
    """Open an offer; the initiator pays the service fee and storage deposits.

    Accounts: initiator [signer], escrow record, vault, system program,
    mint, fee collector.
    """
    require_accounts(ctx.accounts, 6, "CreateOffer")
    initiator, escrow, vault, system_program, mint, fee_collector = ctx.accounts[:6]
    state, config = ctx.state, ctx.config

    validate_signer(initiator, "initiator")
    validate_system_program(system_program, config)
    validate_account_key(fee_collector.address, cmd.fee_collector, "fee collector")
    if mint.address != cmd.asset_id:
        raise SpecError(ErrorCode.WRONG_ASSET_TYPE, "mint account does not match asset id")
    if cmd.arbiter == UNSET_IDENTITY:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "arbiter must be set")
    if cmd.arbiter == initiator.address:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "initiator cannot be arbiter")

    validate_escrow_address(escrow.address, cmd.seed, config.program_id)
    vault_nonce = find_and_validate_vault(vault.address, escrow.address, config.program_id)

    existing = state.accounts.get(escrow.address)
    allocate_record = existing is None or existing.balance == 0
    if not allocate_record:
        if existing.owner != config.program_id:
            raise SpecError(ErrorCode.NOT_OWNED_BY_PROTOCOL, "escrow_account must be owned by program")
        if len(existing.data) != RECORD_LEN:
            raise SpecError(ErrorCode.INVALID_RECORD_DATA, "escrow_account has wrong size")
        if read_state(existing.data) != EscrowState.UNINITIALIZED:
            raise SpecError(ErrorCode.ALREADY_SET, "escrow record already in use")
    allocate_vault = state.balance_of(vault.address) == 0

    required = config.service_fee
    if allocate_record:
        required += config.minimum_balance(RECORD_LEN)
    if allocate_vault:
        required += config.minimum_balance(0)
    validate_sufficient_balance(state, initiator.address, required, "service fee and storage deposits")

    execute(
        state,
        config,
        NativeTransfer(
            initiator.address,
            fee_collector.address,
            config.service_fee,
            SignerAuthority(initiator.address),
        ),
        ctx.token_program,
    )
    logger.info("service fee %d transferred to %s", config.service_fee, fee_collector.address.hex())

    if allocate_record:
        allocate_slot(state, config, initiator.address, escrow.address, RECORD_LEN)
    ensure_vault(state, config, initiator.address, escrow.address, vault_nonce)

    record = EscrowRecord.new_offer(
        initiator=initiator.address,
        role=cmd.role,
        arbiter=cmd.arbiter,
        amount=cmd.amount,
        vault_nonce=vault_nonce,
        asset_id=cmd.asset_id,
        fee_collector=cmd.fee_collector,
    )
    save_record(ctx, escrow.address, record)
    logger.info(
        "offer created by %s (%s), amount %d, arbiter %s",
        initiator.address.hex(),
        cmd.role.name.lower(),
        cmd.amount,
        cmd.arbiter.hex(),
    )


def join_offer(ctx: InvocationContext, cmd: JoinOffer) -> None:
    """Fill the missing party slot. Accounts: joiner [signer], escrow record."""
    require_accounts(ctx.accounts, 2, "JoinOffer")
    joiner, escrow = ctx.accounts[:2]

    validate_signer(joiner, "joiner")
    if joiner.address != cmd.joiner:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "joiner account does not match joiner identity")

    record = load_record(ctx.state, escrow.address, ctx.config)
    validate_state(record, (EscrowState.CREATED,), "JoinOffer")

    if record.party(cmd.role) != UNSET_IDENTITY:
        raise SpecError(ErrorCode.ALREADY_SET, f"{cmd.role.name.lower()} already set")
    other = Role.SELLER if cmd.role == Role.BUYER else Role.BUYER
    if cmd.joiner == UNSET_IDENTITY:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "joiner identity is unset")
    if cmd.joiner in (record.party(other), record.arbiter):
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "joiner already holds another role")

    record.set_party(cmd.role, cmd.joiner)
    record.state = EscrowState.INITIALIZED
    save_record(ctx, escrow.address, record)
    logger.info("offer joined by %s: %s", cmd.role.name.lower(), cmd.joiner.hex())
