"""Escrow record storage layout (fixed 170 bytes)."""

from __future__ import annotations

from dataclasses import dataclass

from .config import IDENTITY_SIZE, RECORD_LEN, UNSET_IDENTITY
from .encoding import Reader, Writer
from .errors import ErrorCode, SpecError
from .types import EscrowState, Role

_STATE_OFFSET = 32 * 3 + 8


@dataclass
class EscrowRecord:
    buyer: bytes
    seller: bytes
    arbiter: bytes
    amount: int
    state: EscrowState
    vault_nonce: int
    asset_id: bytes
    fee_collector: bytes

    @classmethod
    def new_offer(
        cls,
        initiator: bytes,
        role: Role,
        arbiter: bytes,
        amount: int,
        vault_nonce: int,
        asset_id: bytes,
        fee_collector: bytes,
    ) -> "EscrowRecord":
        buyer, seller = (initiator, UNSET_IDENTITY) if role == Role.BUYER else (UNSET_IDENTITY, initiator)
        return cls(
            buyer=buyer,
            seller=seller,
            arbiter=arbiter,
            amount=amount,
            state=EscrowState.CREATED,
            vault_nonce=vault_nonce,
            asset_id=asset_id,
            fee_collector=fee_collector,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "EscrowRecord":
        """Decode a live record; zeroed storage fails closed."""
        if len(data) != RECORD_LEN:
            raise SpecError(
                ErrorCode.INVALID_RECORD_DATA,
                f"invalid record size: expected {RECORD_LEN}, got {len(data)}",
            )
        r = Reader(data)
        buyer = r.read_bytes(IDENTITY_SIZE)
        seller = r.read_bytes(IDENTITY_SIZE)
        arbiter = r.read_bytes(IDENTITY_SIZE)
        amount = r.read_u64()
        state = _parse_state(r.read_u8())
        vault_nonce = r.read_u8()
        asset_id = r.read_bytes(IDENTITY_SIZE)
        fee_collector = r.read_bytes(IDENTITY_SIZE)
        if state == EscrowState.UNINITIALIZED:
            raise SpecError(ErrorCode.UNINITIALIZED_RECORD, "escrow record is not initialized")
        return cls(buyer, seller, arbiter, amount, state, vault_nonce, asset_id, fee_collector)

    def to_bytes(self) -> bytes:
        w = Writer(bytearray())
        for value in (self.buyer, self.seller, self.arbiter):
            w.write_bytes(value)
        w.write_u64(self.amount)
        w.write_u8(self.state)
        w.write_u8(self.vault_nonce)
        w.write_bytes(self.asset_id)
        w.write_bytes(self.fee_collector)
        out = bytes(w.buf)
        if len(out) != RECORD_LEN:
            raise SpecError(ErrorCode.INTERNAL_ERROR, "record encodes to wrong size")
        return out

    def party(self, role: Role) -> bytes:
        return self.buyer if role == Role.BUYER else self.seller

    def set_party(self, role: Role, identity: bytes) -> None:
        if role == Role.BUYER:
            self.buyer = identity
        else:
            self.seller = identity

    def is_participant(self, identity: bytes) -> bool:
        return identity in (self.buyer, self.seller, self.arbiter)


def read_state(data: bytes) -> EscrowState:
    """State byte of a slot, without requiring it to be live."""
    if len(data) != RECORD_LEN:
        return EscrowState.UNINITIALIZED
    return _parse_state(data[_STATE_OFFSET])


def _parse_state(value: int) -> EscrowState:
    try:
        return EscrowState(value)
    except ValueError:
        raise SpecError(ErrorCode.INVALID_RECORD_DATA, f"invalid escrow state: {value}") from None
