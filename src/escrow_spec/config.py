"""Escrow program configuration.

Module-level constants describe fixed wire/storage layout. Values that the
deployment decides (fee, program identities, rent) live in `ProgramConfig`,
which callers build once and pass to every state transition.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from blake3 import blake3

# Sizes
IDENTITY_SIZE = 32
SEED_SIZE = 32
U64_MAX = (1 << 64) - 1

# Record layout: buyer | seller | arbiter | amount | state | vault_nonce | asset_id | fee_collector
RECORD_LEN = 32 + 32 + 32 + 8 + 1 + 1 + 32 + 32

# Command payload lengths (opcode byte included)
CREATE_OFFER_LEN = 1 + 1 + 8 + 32 + 32 + 32 + 32
JOIN_OFFER_LEN = 1 + 1 + 32
BARE_COMMAND_LEN = 1

# Derivation tags
ESCROW_SEED_TAG = b"escrow"
VAULT_SEED_TAG = b"vault"
DERIVATION_MARKER = b"ProgramDerivedAddress"
MAX_SEED_LEN = 32

# Unset party slot
UNSET_IDENTITY = bytes(IDENTITY_SIZE)

# Native asset sentinel
NATIVE_ASSET = bytes(IDENTITY_SIZE)

# Service fee charged once per CreateOffer (0.01 of the native unit)
SERVICE_FEE = 10_000_000

# Rent schedule
ACCOUNT_STORAGE_OVERHEAD = 128
UNITS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2

# Token capability opcode for a plain transfer
TOKEN_TRANSFER_OPCODE = 3


def _label_id(label: str) -> bytes:
    return blake3(label.encode()).digest()


DEFAULT_PROGRAM_ID = _label_id("escrow-spec/program")
SYSTEM_PROGRAM_ID = bytes(IDENTITY_SIZE)
TOKEN_PROGRAM_ID = _label_id("escrow-spec/token-program")


@dataclass(frozen=True)
class RentSchedule:
    storage_overhead: int = ACCOUNT_STORAGE_OVERHEAD
    units_per_byte_year: int = UNITS_PER_BYTE_YEAR
    exemption_threshold_years: int = EXEMPTION_THRESHOLD_YEARS

    def minimum_balance(self, data_len: int) -> int:
        """Deposit that keeps a slot of `data_len` bytes alive."""
        return (
            (self.storage_overhead + data_len)
            * self.units_per_byte_year
            * self.exemption_threshold_years
        )


@dataclass(frozen=True)
class ProgramConfig:
    """Deployment parameters of one escrow program instance."""

    program_id: bytes = DEFAULT_PROGRAM_ID
    service_fee: int = SERVICE_FEE
    token_program_id: bytes = TOKEN_PROGRAM_ID
    native_asset: bytes = NATIVE_ASSET
    system_program_id: bytes = SYSTEM_PROGRAM_ID
    rent: RentSchedule = field(default_factory=RentSchedule)

    def __post_init__(self) -> None:
        for name in ("program_id", "token_program_id", "native_asset", "system_program_id"):
            value = getattr(self, name)
            if not isinstance(value, bytes) or len(value) != IDENTITY_SIZE:
                raise ValueError(f"{name} must be {IDENTITY_SIZE} bytes")
        if not 0 <= self.service_fee <= U64_MAX:
            raise ValueError("service_fee must fit u64")

    @classmethod
    def default(cls) -> "ProgramConfig":
        return cls()

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ProgramConfig":
        kwargs: dict[str, Any] = {}
        for name in ("program_id", "token_program_id", "native_asset", "system_program_id"):
            value = data.get(name)
            if value is not None:
                kwargs[name] = _hex_id(name, value)
        if data.get("service_fee") is not None:
            kwargs["service_fee"] = int(data["service_fee"])
        rent = data.get("rent")
        if isinstance(rent, dict):
            kwargs["rent"] = RentSchedule(**{k: int(v) for k, v in rent.items()})
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Path) -> "ProgramConfig":
        """Load configuration from a YAML document (hex ids, integer amounts)."""
        data = yaml.safe_load(Path(path).read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: top-level YAML node must be a mapping")
        return cls.from_mapping(data)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "ProgramConfig":
        """Load configuration from ESCROW_* environment variables."""
        env = os.environ if environ is None else environ
        return cls.from_mapping(
            {
                "program_id": env.get("ESCROW_PROGRAM_ID"),
                "service_fee": env.get("ESCROW_SERVICE_FEE"),
                "token_program_id": env.get("ESCROW_TOKEN_PROGRAM_ID"),
                "native_asset": env.get("ESCROW_NATIVE_ASSET"),
            }
        )

    def minimum_balance(self, data_len: int) -> int:
        return self.rent.minimum_balance(data_len)

    def is_native(self, asset_id: bytes) -> bool:
        return asset_id == self.native_asset


def _hex_id(name: str, value: Any) -> bytes:
    if isinstance(value, bytes):
        return value
    v = str(value)
    v = v[2:] if v.startswith(("0x", "0X")) else v
    raw = bytes.fromhex(v)
    if len(raw) != IDENTITY_SIZE:
        raise ValueError(f"{name} must be {IDENTITY_SIZE} bytes, got {len(raw)}")
    return raw
