"""State transition entrypoints for the escrow program."""

from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import replace
from typing import Optional

from .config import ProgramConfig
from .encoding import COMMAND_TYPES, decode_command
from .errors import ErrorCode, SpecError
from .instructions import dispute, lifecycle, offer, settlement
from .instructions.common import InvocationContext
from .token_program import InMemoryTokenProgram
from .transfer import TokenProgram
from .types import AccountMeta, Command, CommandType, EscrowInfo, GetInfo, Instruction, LedgerState

logger = logging.getLogger(__name__)

_HANDLERS = {
    CommandType.CREATE_OFFER: offer.create_offer,
    CommandType.JOIN_OFFER: offer.join_offer,
    CommandType.FUND_ESCROW: settlement.fund_escrow,
    CommandType.SELLER_CONFIRM: settlement.seller_confirm,
    CommandType.CONFIRM_ESCROW: settlement.confirm_escrow,
    CommandType.ARBITER_CONFIRM: dispute.arbiter_confirm,
    CommandType.ARBITER_CANCEL: dispute.arbiter_cancel,
    CommandType.MUTUAL_CANCEL: dispute.mutual_cancel,
    CommandType.CLOSE_ESCROW: lifecycle.close_escrow,
    CommandType.GET_INFO: lifecycle.get_info,
}


class TransitionResult:
    """Thin wrapper for instruction results."""

    def __init__(self, ok: bool, error: Optional[SpecError] = None, info: Optional[EscrowInfo] = None):
        self.ok = ok
        self.error = error
        self.info = info

    @classmethod
    def success(cls, info: Optional[EscrowInfo] = None) -> "TransitionResult":
        return cls(True, None, info)

    @classmethod
    def failure(cls, error: SpecError) -> "TransitionResult":
        return cls(False, error)


def _normalize_signers(accounts: list[AccountMeta]) -> list[AccountMeta]:
    """A signature covers every handle of the same address in one instruction."""
    signed = {meta.address for meta in accounts if meta.is_signer}
    return [
        replace(meta, is_signer=True) if meta.address in signed and not meta.is_signer else meta
        for meta in accounts
    ]


def _dispatch(ctx: InvocationContext, cmd: Command) -> Optional[EscrowInfo]:
    tt = COMMAND_TYPES[type(cmd)]
    handler = _HANDLERS.get(tt)
    if handler is None:
        raise SpecError(ErrorCode.INVALID_COMMAND, f"no handler for {tt.name}")
    return handler(ctx, cmd)


def process_instruction(
    state: LedgerState,
    instruction: Instruction,
    config: Optional[ProgramConfig] = None,
    token_program: Optional[TokenProgram] = None,
) -> tuple[LedgerState, TransitionResult]:
    """Decode and execute one instruction.

    Failed-instruction semantics: the input state is returned untouched and
    the error is carried in the result.
    """
    config = config or ProgramConfig.default()
    token_program = token_program or InMemoryTokenProgram(config.token_program_id)

    try:
        if instruction.program_id != config.program_id:
            raise SpecError(ErrorCode.INVALID_COMMAND, "instruction addressed to another program")
        cmd = decode_command(instruction.data)
    except SpecError as exc:
        logger.info("instruction rejected: %s", exc)
        return state, TransitionResult.failure(exc)

    working = deepcopy(state)
    ctx = InvocationContext(
        state=working,
        config=config,
        accounts=_normalize_signers(list(instruction.accounts)),
        token_program=token_program,
    )
    try:
        info = _dispatch(ctx, cmd)
    except SpecError as exc:
        logger.info("%s rejected: %s", type(cmd).__name__, exc)
        return state, TransitionResult.failure(exc)

    if isinstance(cmd, GetInfo):
        return state, TransitionResult.success(info)
    return working, TransitionResult.success(info)


def process_transaction(
    state: LedgerState,
    instructions: list[Instruction],
    config: Optional[ProgramConfig] = None,
    token_program: Optional[TokenProgram] = None,
) -> tuple[LedgerState, TransitionResult]:
    """Apply instructions in order (transaction-atomic semantics).

    If any instruction fails, the whole transaction is rejected and the state
    is unchanged. The result carries the last reported `EscrowInfo`, if any.
    """
    working = state
    info = None
    for instruction in instructions:
        working, result = process_instruction(working, instruction, config, token_program)
        if not result.ok:
            return state, result
        info = result.info or info
    return working, TransitionResult.success(info)
