"""Shared plumbing for escrow instruction handlers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import ProgramConfig
from ..record import EscrowRecord
from ..transfer import TokenAccounts, TokenProgram, execute, plan_transfer
from ..types import AccountMeta, LedgerState
from ..validation import validate_token_accounts
from ..vault import vault_authority


@dataclass
class InvocationContext:
    state: LedgerState
    config: ProgramConfig
    accounts: list[AccountMeta]
    token_program: TokenProgram


def save_record(ctx: InvocationContext, address: bytes, record: EscrowRecord) -> None:
    ctx.state.account(address).data = record.to_bytes()


def release_from_vault(
    ctx: InvocationContext,
    record: EscrowRecord,
    record_address: bytes,
    vault: bytes,
    recipient: bytes,
    token_accounts: Optional[TokenAccounts],
) -> None:
    """Move the escrowed amount out of custody to `recipient`."""
    validate_token_accounts(ctx.state, ctx.config, record.asset_id, token_accounts, vault, recipient)
    authority = vault_authority(record_address, record.vault_nonce, ctx.config.program_id)
    transfer = plan_transfer(
        ctx.config, record.asset_id, vault, recipient, record.amount, authority, token_accounts
    )
    execute(ctx.state, ctx.config, transfer, ctx.token_program)
