"""In-memory token transfer capability over `LedgerState.token_accounts`."""

from __future__ import annotations

from blake3 import blake3

from .config import TOKEN_PROGRAM_ID, TOKEN_TRANSFER_OPCODE, U64_MAX
from .errors import ErrorCode, SpecError
from .types import Authority, DerivedAuthority, Instruction, LedgerState, SignerAuthority, TokenAccount


class InMemoryTokenProgram:
    """Reference token capability.

    Supports the single transfer opcode. Holder authority is the token
    account's `owner`; it is satisfied by a signer with that address or by a
    derivation proof that recomputes it.
    """

    def __init__(self, program_id: bytes = TOKEN_PROGRAM_ID):
        self.program_id = program_id

    def invoke(self, state: LedgerState, instruction: Instruction, authority: Authority) -> None:
        if instruction.program_id != self.program_id:
            raise SpecError(ErrorCode.WRONG_ASSET_PROGRAM, "instruction addressed to another program")
        data = instruction.data
        if len(data) != 9 or data[0] != TOKEN_TRANSFER_OPCODE:
            raise SpecError(ErrorCode.INVALID_COMMAND, "unsupported token instruction")
        if len(instruction.accounts) != 3:
            raise SpecError(ErrorCode.NOT_ENOUGH_ACCOUNT_KEYS, "token transfer takes 3 accounts")
        amount = int.from_bytes(data[1:9], "little")
        src_meta, dst_meta, auth_meta = instruction.accounts

        src = _token_account(state, src_meta.address)
        dst = _token_account(state, dst_meta.address)
        if src.mint != dst.mint:
            raise SpecError(ErrorCode.WRONG_ASSET_TYPE, "token accounts hold different mints")
        _check_authority(src, auth_meta.address, auth_meta.is_signer, authority)
        if src.amount < amount:
            raise SpecError(
                ErrorCode.INSUFFICIENT_FUNDS,
                f"insufficient token balance: have {src.amount}, need {amount}",
            )
        if src is dst:
            return
        if dst.amount + amount > U64_MAX:
            raise SpecError(ErrorCode.ARITHMETIC_OVERFLOW, "token balance overflow")
        src.amount -= amount
        dst.amount += amount


def _token_account(state: LedgerState, address: bytes) -> TokenAccount:
    acc = state.token_accounts.get(address)
    if acc is None:
        raise SpecError(ErrorCode.WRONG_ASSET_TYPE, "not a token-holding account")
    return acc


def _check_authority(src: TokenAccount, claimed: bytes, is_signer: bool, authority: Authority) -> None:
    if isinstance(authority, SignerAuthority):
        if not is_signer or authority.address != claimed:
            raise SpecError(ErrorCode.MISSING_SIGNATURE, "token authority must sign")
        actual = authority.address
    elif isinstance(authority, DerivedAuthority):
        actual = authority.recompute()
        if actual != claimed:
            raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "derivation proof does not match authority")
    else:
        raise SpecError(ErrorCode.MISSING_SIGNATURE, "unknown authority evidence")
    if actual != src.owner:
        raise SpecError(ErrorCode.WRONG_PARTICIPANT, "authority does not own source token account")


def associated_token_address(holder: bytes, mint: bytes) -> bytes:
    """Conventional token-holding address for (`holder`, `mint`)."""
    return blake3(b"token-account" + holder + mint).digest()
