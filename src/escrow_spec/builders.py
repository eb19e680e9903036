"""Client-side instruction builders.

Each builder returns an `Instruction` whose account handles are in the order
the program expects. Token-asset flows append
`mint, source_token, destination_token, token_program` when `token_accounts`
is given.
"""

from __future__ import annotations

from typing import Optional

from . import vault as _vault
from .config import NATIVE_ASSET, ProgramConfig
from .encoding import encode_command
from .transfer import TokenAccounts
from .types import (
    AccountMeta,
    ArbiterCancel,
    ArbiterConfirm,
    CloseEscrow,
    Command,
    ConfirmEscrow,
    CreateOffer,
    FundEscrow,
    GetInfo,
    Instruction,
    JoinOffer,
    MutualCancel,
    Role,
    SellerConfirm,
)


def find_escrow_address(seed: bytes, config: Optional[ProgramConfig] = None) -> bytes:
    config = config or ProgramConfig.default()
    return _vault.find_escrow_address(seed, config.program_id)[0]


def find_vault_address(record: bytes, config: Optional[ProgramConfig] = None) -> bytes:
    config = config or ProgramConfig.default()
    return _vault.find_vault_address(record, config.program_id)[0]


def _signer(address: bytes) -> AccountMeta:
    return AccountMeta(address, is_signer=True, is_writable=True)


def _writable(address: bytes) -> AccountMeta:
    return AccountMeta(address, is_writable=True)


def _readonly(address: bytes) -> AccountMeta:
    return AccountMeta(address)


def _token_metas(token_accounts: Optional[TokenAccounts]) -> list[AccountMeta]:
    if token_accounts is None:
        return []
    return [
        _readonly(token_accounts.mint),
        _writable(token_accounts.source_token),
        _writable(token_accounts.destination_token),
        _readonly(token_accounts.token_program),
    ]


def _build(cmd: Command, accounts: list[AccountMeta], config: Optional[ProgramConfig]) -> Instruction:
    config = config or ProgramConfig.default()
    return Instruction(program_id=config.program_id, accounts=accounts, data=encode_command(cmd))


def create_offer(
    initiator: bytes,
    role: Role,
    amount: int,
    arbiter: bytes,
    seed: bytes,
    fee_collector: bytes,
    asset_id: bytes = NATIVE_ASSET,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    record = find_escrow_address(seed, config)
    accounts = [
        _signer(initiator),
        _writable(record),
        _writable(find_vault_address(record, config)),
        _readonly(config.system_program_id),
        _readonly(asset_id),
        _writable(fee_collector),
    ]
    cmd = CreateOffer(role, amount, arbiter, asset_id, fee_collector, seed)
    return _build(cmd, accounts, config)


def join_offer(
    joiner: bytes, record: bytes, role: Role, config: Optional[ProgramConfig] = None
) -> Instruction:
    return _build(JoinOffer(role, joiner), [_signer(joiner), _writable(record)], config)


def fund_escrow(
    buyer: bytes,
    record: bytes,
    token_accounts: Optional[TokenAccounts] = None,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    accounts = [
        _signer(buyer),
        _writable(record),
        _writable(find_vault_address(record, config)),
        _readonly(config.system_program_id),
    ]
    return _build(FundEscrow(), accounts + _token_metas(token_accounts), config)


def seller_confirm(seller: bytes, record: bytes, config: Optional[ProgramConfig] = None) -> Instruction:
    return _build(SellerConfirm(), [_signer(seller), _writable(record)], config)


def confirm_escrow(
    buyer: bytes,
    record: bytes,
    seller: bytes,
    token_accounts: Optional[TokenAccounts] = None,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    accounts = [
        _signer(buyer),
        _writable(record),
        _writable(find_vault_address(record, config)),
        _readonly(config.system_program_id),
        _writable(seller),
    ]
    return _build(ConfirmEscrow(), accounts + _token_metas(token_accounts), config)


def arbiter_confirm(
    arbiter: bytes,
    record: bytes,
    seller: bytes,
    token_accounts: Optional[TokenAccounts] = None,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    accounts = [
        _signer(arbiter),
        _writable(record),
        _writable(find_vault_address(record, config)),
        _writable(seller),
    ]
    return _build(ArbiterConfirm(), accounts + _token_metas(token_accounts), config)


def arbiter_cancel(
    arbiter: bytes,
    record: bytes,
    buyer: bytes,
    token_accounts: Optional[TokenAccounts] = None,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    accounts = [
        _signer(arbiter),
        _writable(record),
        _writable(find_vault_address(record, config)),
        _writable(buyer),
    ]
    return _build(ArbiterCancel(), accounts + _token_metas(token_accounts), config)


def mutual_cancel(
    buyer: bytes,
    seller: bytes,
    record: bytes,
    token_accounts: Optional[TokenAccounts] = None,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    accounts = [
        _signer(buyer),
        _signer(seller),
        _writable(record),
        _writable(find_vault_address(record, config)),
    ]
    return _build(MutualCancel(), accounts + _token_metas(token_accounts), config)


def close_escrow(
    closer: bytes,
    record: bytes,
    include_vault: bool = True,
    config: Optional[ProgramConfig] = None,
) -> Instruction:
    config = config or ProgramConfig.default()
    accounts = [_signer(closer), _writable(record)]
    if include_vault:
        accounts.append(_writable(find_vault_address(record, config)))
    return _build(CloseEscrow(), accounts, config)


def get_info(record: bytes, config: Optional[ProgramConfig] = None) -> Instruction:
    return _build(GetInfo(), [_readonly(record)], config)
