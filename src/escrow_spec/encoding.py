"""Command wire format.

Byte 0 selects the command; the remainder is fixed-width and little-endian:

* CreateOffer (138 bytes): role:u8 amount:u64 arbiter:32 asset_id:32
  fee_collector:32 seed:32
* JoinOffer (34 bytes): role:u8 joiner:32
* every other command: the opcode byte only
"""

from __future__ import annotations

from dataclasses import dataclass

from .config import BARE_COMMAND_LEN, CREATE_OFFER_LEN, IDENTITY_SIZE, JOIN_OFFER_LEN, SEED_SIZE, U64_MAX
from .errors import ErrorCode, SpecError
from .types import (
    ArbiterCancel,
    ArbiterConfirm,
    CloseEscrow,
    Command,
    CommandType,
    ConfirmEscrow,
    CreateOffer,
    FundEscrow,
    GetInfo,
    JoinOffer,
    MutualCancel,
    Role,
    SellerConfirm,
)

_BARE_COMMANDS = {
    CommandType.FUND_ESCROW: FundEscrow,
    CommandType.CONFIRM_ESCROW: ConfirmEscrow,
    CommandType.ARBITER_CONFIRM: ArbiterConfirm,
    CommandType.ARBITER_CANCEL: ArbiterCancel,
    CommandType.CLOSE_ESCROW: CloseEscrow,
    CommandType.GET_INFO: GetInfo,
    CommandType.MUTUAL_CANCEL: MutualCancel,
    CommandType.SELLER_CONFIRM: SellerConfirm,
}

COMMAND_TYPES = {cls: tt for tt, cls in _BARE_COMMANDS.items()}
COMMAND_TYPES[CreateOffer] = CommandType.CREATE_OFFER
COMMAND_TYPES[JoinOffer] = CommandType.JOIN_OFFER


@dataclass
class Writer:
    buf: bytearray

    def write_u8(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(1, "little", signed=False))

    def write_u64(self, v: int) -> None:
        self.buf.extend(int(v).to_bytes(8, "little", signed=False))

    def write_bytes(self, b: bytes) -> None:
        self.buf.extend(b)


@dataclass
class Reader:
    data: bytes
    pos: int = 0

    def _take(self, n: int) -> bytes:
        end = self.pos + n
        if end > len(self.data):
            raise SpecError(ErrorCode.INVALID_COMMAND, "unexpected end of data")
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def read_u8(self) -> int:
        return self._take(1)[0]

    def read_u64(self) -> int:
        return int.from_bytes(self._take(8), "little", signed=False)

    def read_bytes(self, n: int) -> bytes:
        return bytes(self._take(n))


def _expect_len(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise SpecError(ErrorCode.INVALID_COMMAND, f"{name} must be {size} bytes")


def _expect_data_len(name: str, data: bytes, size: int) -> None:
    if len(data) != size:
        raise SpecError(
            ErrorCode.INVALID_COMMAND,
            f"invalid data length for {name}: expected {size}, got {len(data)}",
        )


def _read_role(r: Reader) -> Role:
    value = r.read_u8()
    try:
        return Role(value)
    except ValueError:
        raise SpecError(ErrorCode.INVALID_COMMAND, f"unknown role {value}") from None


def decode_command(data: bytes) -> Command:
    if not data:
        raise SpecError(ErrorCode.INVALID_COMMAND, "empty command data")
    try:
        tt = CommandType(data[0])
    except ValueError:
        raise SpecError(ErrorCode.INVALID_COMMAND, f"unknown opcode {data[0]}") from None

    if tt == CommandType.CREATE_OFFER:
        _expect_data_len("CreateOffer", data, CREATE_OFFER_LEN)
        r = Reader(data, 1)
        role = _read_role(r)
        amount = r.read_u64()
        arbiter = r.read_bytes(IDENTITY_SIZE)
        asset_id = r.read_bytes(IDENTITY_SIZE)
        fee_collector = r.read_bytes(IDENTITY_SIZE)
        seed = r.read_bytes(SEED_SIZE)
        if amount == 0:
            raise SpecError(ErrorCode.INVALID_COMMAND, "escrow amount must be > 0")
        return CreateOffer(role, amount, arbiter, asset_id, fee_collector, seed)

    if tt == CommandType.JOIN_OFFER:
        _expect_data_len("JoinOffer", data, JOIN_OFFER_LEN)
        r = Reader(data, 1)
        role = _read_role(r)
        joiner = r.read_bytes(IDENTITY_SIZE)
        return JoinOffer(role, joiner)

    _expect_data_len(tt.name, data, BARE_COMMAND_LEN)
    return _BARE_COMMANDS[tt]()


def encode_command(cmd: Command) -> bytes:
    tt = COMMAND_TYPES.get(type(cmd))
    if tt is None:
        raise SpecError(ErrorCode.INVALID_COMMAND, f"not a command: {type(cmd).__name__}")
    w = Writer(bytearray())
    w.write_u8(tt)

    if isinstance(cmd, CreateOffer):
        if not 0 < cmd.amount <= U64_MAX:
            raise SpecError(ErrorCode.INVALID_COMMAND, "escrow amount must be in (0, u64 max]")
        w.write_u8(Role(cmd.role))
        w.write_u64(cmd.amount)
        for name, value in (
            ("arbiter", cmd.arbiter),
            ("asset_id", cmd.asset_id),
            ("fee_collector", cmd.fee_collector),
        ):
            _expect_len(name, value, IDENTITY_SIZE)
            w.write_bytes(value)
        _expect_len("seed", cmd.seed, SEED_SIZE)
        w.write_bytes(cmd.seed)
    elif isinstance(cmd, JoinOffer):
        w.write_u8(Role(cmd.role))
        _expect_len("joiner", cmd.joiner, IDENTITY_SIZE)
        w.write_bytes(cmd.joiner)

    return bytes(w.buf)
