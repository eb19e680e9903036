"""Canonical ledger state digest (v1)."""
from __future__ import annotations

from blake3 import blake3

from .types import LedgerState


def _u64_be(value: int) -> bytes:
    if value < 0:
        raise ValueError("u64 must be non-negative")
    return int(value).to_bytes(8, "big", signed=False)


def _check_address(addr: bytes) -> bytes:
    if len(addr) != 32:
        raise ValueError(f"address must be 32 bytes, got {len(addr)}")
    return addr


def compute_state_digest(state: LedgerState) -> str:
    """Compute state digest v1 of a ledger.

    Accounts, then token accounts, each sorted by address and encoded in
    canonical field order, hashed with BLAKE3-256. Empty system accounts
    are skipped so lazily materialized handles do not change the digest.
    """
    buf = bytearray()
    accounts = [
        acc
        for acc in state.accounts.values()
        if acc.balance or acc.data or acc.owner != bytes(32)
    ]
    buf += _u64_be(len(accounts))
    for acc in sorted(accounts, key=lambda a: a.address):
        buf += _check_address(acc.address)
        buf += _u64_be(acc.balance)
        buf += _check_address(acc.owner)
        buf += _u64_be(len(acc.data))
        buf += acc.data

    tokens = sorted(state.token_accounts.values(), key=lambda t: t.address)
    buf += _u64_be(len(tokens))
    for tok in tokens:
        buf += _check_address(tok.address)
        buf += _check_address(tok.mint)
        buf += _check_address(tok.owner)
        buf += _u64_be(tok.amount)

    return blake3(buf).hexdigest()
