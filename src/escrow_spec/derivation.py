"""Deterministic program-derived addresses.

An address is BLAKE3 over `seeds || nonce || program_id || marker`. The nonce
disambiguates addresses that would otherwise land on a reserved sentinel;
`find_derived_address` walks it from 255 downward.
"""

from __future__ import annotations

from blake3 import blake3

from .config import DERIVATION_MARKER, IDENTITY_SIZE, MAX_SEED_LEN, NATIVE_ASSET, UNSET_IDENTITY
from .errors import ErrorCode, SpecError

_RESERVED = frozenset({UNSET_IDENTITY, NATIVE_ASSET})


def create_derived_address(seeds: list[bytes], nonce: int, program_id: bytes) -> bytes:
    if not 0 <= nonce <= 0xFF:
        raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "derivation nonce must fit u8")
    if len(program_id) != IDENTITY_SIZE:
        raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "program id must be 32 bytes")
    h = blake3()
    for seed in seeds:
        if len(seed) > MAX_SEED_LEN:
            raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "derivation seed too long")
        h.update(seed)
    h.update(bytes([nonce]))
    h.update(program_id)
    h.update(DERIVATION_MARKER)
    return h.digest()


def is_usable_address(address: bytes) -> bool:
    return address not in _RESERVED


def find_derived_address(seeds: list[bytes], program_id: bytes) -> tuple[bytes, int]:
    """Return the first usable (address, nonce) pair, highest nonce first."""
    for nonce in range(0xFF, -1, -1):
        address = create_derived_address(seeds, nonce, program_id)
        if is_usable_address(address):
            return address, nonce
    raise SpecError(ErrorCode.INVALID_DERIVED_ADDRESS, "no usable derived address")
