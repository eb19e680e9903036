"""CreateOffer and JoinOffer fixtures."""

from __future__ import annotations

from dataclasses import replace

from escrow_spec import builders
from escrow_spec.config import RECORD_LEN, UNSET_IDENTITY, ProgramConfig
from escrow_spec.record import EscrowRecord
from escrow_spec.state_transition import process_instruction
from escrow_spec.test_accounts import ALICE, BOB, CAROL, DAVE, EVE, MINT
from escrow_spec.types import Account, AccountMeta, EscrowState, Instruction, LedgerState, Role

CONFIG = ProgramConfig.default()
START = 1_000_000_000
CREATE_COST = CONFIG.service_fee + CONFIG.minimum_balance(RECORD_LEN) + CONFIG.minimum_balance(0)


def _hash(byte: int) -> bytes:
    return bytes([byte]) * 32


SEED = _hash(7)
RECORD = builders.find_escrow_address(SEED)
VAULT = builders.find_vault_address(RECORD)


def _base_state() -> LedgerState:
    state = LedgerState()
    for addr in (ALICE, BOB, CAROL, EVE):
        state.accounts[addr] = Account(address=addr, balance=START)
    return state


def _create(role: Role = Role.BUYER, arbiter: bytes = CAROL) -> Instruction:
    return builders.create_offer(ALICE, role, 1000, arbiter, SEED, DAVE)


def _with_account(ix: Instruction, index: int, meta: AccountMeta) -> Instruction:
    accounts = list(ix.accounts)
    accounts[index] = meta
    return replace(ix, accounts=accounts)


def _stored(state: LedgerState) -> EscrowRecord:
    return EscrowRecord.from_bytes(state.accounts[RECORD].data)


def _created_state() -> LedgerState:
    state, result = process_instruction(_base_state(), _create())
    assert result.ok, result.error
    return state


# --- create_offer specs ---


def test_create_offer_as_buyer(escrow_case) -> None:
    post, result = escrow_case("escrow/create_offer.json", "create_offer_as_buyer", _base_state(), [_create()])
    assert result.ok
    rec = _stored(post)
    assert rec.buyer == ALICE
    assert rec.seller == UNSET_IDENTITY
    assert rec.arbiter == CAROL
    assert rec.amount == 1000
    assert rec.state == EscrowState.CREATED
    assert rec.fee_collector == DAVE
    assert post.accounts[RECORD].owner == CONFIG.program_id
    assert post.accounts[VAULT].owner == CONFIG.program_id
    assert post.balance_of(ALICE) == START - CREATE_COST


def test_create_offer_as_seller(escrow_case) -> None:
    post, result = escrow_case(
        "escrow/create_offer.json", "create_offer_as_seller", _base_state(), [_create(role=Role.SELLER)]
    )
    assert result.ok
    rec = _stored(post)
    assert rec.buyer == UNSET_IDENTITY
    assert rec.seller == ALICE


def test_create_offer_missing_signature(escrow_case) -> None:
    ix = _with_account(_create(), 0, AccountMeta(ALICE, is_signer=False, is_writable=True))
    post, result = escrow_case("escrow/create_offer.json", "create_offer_missing_signature", _base_state(), [ix])
    assert result.error.code.name == "MISSING_SIGNATURE"
    assert post.balance_of(DAVE) == 0


def test_create_offer_wrong_fee_collector(escrow_case) -> None:
    ix = _with_account(_create(), 5, AccountMeta(EVE, is_writable=True))
    post, result = escrow_case("escrow/create_offer.json", "create_offer_wrong_fee_collector", _base_state(), [ix])
    assert result.error.code.name == "WRONG_PARTICIPANT"
    assert post.balance_of(EVE) == START


def test_create_offer_wrong_system_program(escrow_case) -> None:
    ix = _with_account(_create(), 3, AccountMeta(_hash(2)))
    _, result = escrow_case("escrow/create_offer.json", "create_offer_wrong_system_program", _base_state(), [ix])
    assert result.error.code.name == "WRONG_ASSET_PROGRAM"


def test_create_offer_mint_mismatch(escrow_case) -> None:
    ix = _with_account(_create(), 4, AccountMeta(MINT))
    _, result = escrow_case("escrow/create_offer.json", "create_offer_mint_mismatch", _base_state(), [ix])
    assert result.error.code.name == "WRONG_ASSET_TYPE"


def test_create_offer_unset_arbiter(escrow_case) -> None:
    _, result = escrow_case(
        "escrow/create_offer.json", "create_offer_unset_arbiter", _base_state(), [_create(arbiter=UNSET_IDENTITY)]
    )
    assert result.error.code.name == "WRONG_PARTICIPANT"


def test_create_offer_self_arbiter(escrow_case) -> None:
    _, result = escrow_case(
        "escrow/create_offer.json", "create_offer_self_arbiter", _base_state(), [_create(arbiter=ALICE)]
    )
    assert result.error.code.name == "WRONG_PARTICIPANT"


def test_create_offer_record_not_derived_from_seed(escrow_case) -> None:
    ix = _with_account(_create(), 1, AccountMeta(builders.find_escrow_address(_hash(8)), is_writable=True))
    _, result = escrow_case("escrow/create_offer.json", "create_offer_wrong_record", _base_state(), [ix])
    assert result.error.code.name == "INVALID_DERIVED_ADDRESS"


def test_create_offer_wrong_vault(escrow_case) -> None:
    ix = _with_account(_create(), 2, AccountMeta(_hash(3), is_writable=True))
    _, result = escrow_case("escrow/create_offer.json", "create_offer_wrong_vault", _base_state(), [ix])
    assert result.error.code.name == "INVALID_DERIVED_ADDRESS"


def test_create_offer_insufficient_funds(escrow_case) -> None:
    state = _base_state()
    state.accounts[ALICE].balance = CREATE_COST - 1
    post, result = escrow_case("escrow/create_offer.json", "create_offer_insufficient_funds", state, [_create()])
    assert result.error.code.name == "INSUFFICIENT_FUNDS"
    assert post.balance_of(ALICE) == CREATE_COST - 1
    assert post.balance_of(DAVE) == 0


def test_create_offer_exact_funds(escrow_case) -> None:
    state = _base_state()
    state.accounts[ALICE].balance = CREATE_COST
    post, result = escrow_case("escrow/create_offer.json", "create_offer_exact_funds", state, [_create()])
    assert result.ok
    assert post.balance_of(ALICE) == 0


def test_create_offer_over_live_record(escrow_case) -> None:
    state = _created_state()
    post, result = escrow_case("escrow/create_offer.json", "create_offer_over_live_record", state, [_create()])
    assert result.error.code.name == "ALREADY_SET"
    assert post.balance_of(DAVE) == CONFIG.service_fee


def test_create_offer_slot_owned_elsewhere(escrow_case) -> None:
    state = _base_state()
    state.accounts[RECORD] = Account(address=RECORD, balance=1)
    _, result = escrow_case("escrow/create_offer.json", "create_offer_foreign_slot", state, [_create()])
    assert result.error.code.name == "NOT_OWNED_BY_PROTOCOL"


# --- join_offer specs ---


def test_join_offer_as_seller(escrow_case) -> None:
    post, result = escrow_case(
        "escrow/join_offer.json", "join_offer_as_seller", _created_state(), [builders.join_offer(BOB, RECORD, Role.SELLER)]
    )
    assert result.ok
    rec = _stored(post)
    assert rec.seller == BOB
    assert rec.state == EscrowState.INITIALIZED
    assert post.balance_of(BOB) == START


def test_join_offer_as_buyer() -> None:
    state, _ = process_instruction(_base_state(), _create(role=Role.SELLER))
    post, result = process_instruction(state, builders.join_offer(BOB, RECORD, Role.BUYER))
    assert result.ok
    assert _stored(post).buyer == BOB
    assert _stored(post).seller == ALICE


def test_join_offer_slot_taken(escrow_case) -> None:
    _, result = escrow_case(
        "escrow/join_offer.json", "join_offer_slot_taken", _created_state(), [builders.join_offer(BOB, RECORD, Role.BUYER)]
    )
    assert result.error.code.name == "ALREADY_SET"


def test_join_offer_joiner_mismatch(escrow_case) -> None:
    ix = _with_account(builders.join_offer(BOB, RECORD, Role.SELLER), 0, AccountMeta(EVE, is_signer=True, is_writable=True))
    _, result = escrow_case("escrow/join_offer.json", "join_offer_joiner_mismatch", _created_state(), [ix])
    assert result.error.code.name == "WRONG_PARTICIPANT"


def test_join_offer_missing_signature(escrow_case) -> None:
    ix = _with_account(builders.join_offer(BOB, RECORD, Role.SELLER), 0, AccountMeta(BOB, is_writable=True))
    _, result = escrow_case("escrow/join_offer.json", "join_offer_missing_signature", _created_state(), [ix])
    assert result.error.code.name == "MISSING_SIGNATURE"


def test_join_offer_by_arbiter(escrow_case) -> None:
    _, result = escrow_case(
        "escrow/join_offer.json", "join_offer_by_arbiter", _created_state(), [builders.join_offer(CAROL, RECORD, Role.SELLER)]
    )
    assert result.error.code.name == "WRONG_PARTICIPANT"


def test_join_offer_unset_joiner(escrow_case) -> None:
    pre = _created_state()
    ix = builders.join_offer(UNSET_IDENTITY, RECORD, Role.SELLER)
    assert ix.accounts[0].is_signer
    post, result = escrow_case("escrow/join_offer.json", "join_offer_unset_joiner", pre, [ix])
    assert result.error.code.name == "WRONG_PARTICIPANT"
    assert _stored(post).state == EscrowState.CREATED
    assert _stored(post).seller == UNSET_IDENTITY


def test_join_offer_twice(escrow_case) -> None:
    state, _ = process_instruction(_created_state(), builders.join_offer(BOB, RECORD, Role.SELLER))
    _, result = escrow_case(
        "escrow/join_offer.json", "join_offer_twice", state, [builders.join_offer(EVE, RECORD, Role.SELLER)]
    )
    assert result.error.code.name == "WRONG_STATE"


def test_join_offer_unknown_record(escrow_case) -> None:
    _, result = escrow_case(
        "escrow/join_offer.json", "join_offer_unknown_record", _base_state(), [builders.join_offer(BOB, RECORD, Role.SELLER)]
    )
    assert result.error.code.name == "NOT_OWNED_BY_PROTOCOL"
