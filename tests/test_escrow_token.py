"""Escrow lifecycles over a fungible token asset."""

from __future__ import annotations

import pytest

from escrow_spec import builders
from escrow_spec.config import TOKEN_PROGRAM_ID, ProgramConfig
from escrow_spec.record import EscrowRecord
from escrow_spec.state_transition import process_transaction
from escrow_spec.test_accounts import ALICE, BOB, CAROL, DAVE, EVE, MINT
from escrow_spec.token_program import InMemoryTokenProgram, associated_token_address
from escrow_spec.transfer import TokenAccounts
from escrow_spec.types import CUSTODY_STATES, Account, EscrowState, Instruction, LedgerState, Role, TokenAccount

CONFIG = ProgramConfig.default()
START = 1_000_000_000
AMOUNT = 1000


def _hash(byte: int) -> bytes:
    return bytes([byte]) * 32


SEED = _hash(11)
RECORD = builders.find_escrow_address(SEED)
VAULT = builders.find_vault_address(RECORD)

ALICE_TOKEN = associated_token_address(ALICE, MINT)
BOB_TOKEN = associated_token_address(BOB, MINT)
EVE_TOKEN = associated_token_address(EVE, MINT)
VAULT_TOKEN = associated_token_address(VAULT, MINT)


def _base_state() -> LedgerState:
    state = LedgerState()
    for addr in (ALICE, BOB, CAROL, EVE):
        state.accounts[addr] = Account(address=addr, balance=START)
    for addr, holder, amount in (
        (ALICE_TOKEN, ALICE, 5_000),
        (BOB_TOKEN, BOB, 0),
        (EVE_TOKEN, EVE, 0),
        (VAULT_TOKEN, VAULT, 0),
    ):
        state.token_accounts[addr] = TokenAccount(addr, MINT, holder, amount)
    return state


def _tokens(source: bytes, destination: bytes, program: bytes = TOKEN_PROGRAM_ID) -> TokenAccounts:
    return TokenAccounts(MINT, source, destination, program)


def _run(state: LedgerState, *instructions: Instruction) -> LedgerState:
    post, result = process_transaction(state, list(instructions))
    assert result.ok, result.error
    return post


def _initialized_state() -> LedgerState:
    return _run(
        _base_state(),
        builders.create_offer(ALICE, Role.BUYER, AMOUNT, CAROL, SEED, DAVE, asset_id=MINT),
        builders.join_offer(BOB, RECORD, Role.SELLER),
    )


def _funded_state() -> LedgerState:
    return _run(_initialized_state(), builders.fund_escrow(ALICE, RECORD, _tokens(ALICE_TOKEN, VAULT_TOKEN)))


def _state_of(state: LedgerState) -> EscrowState:
    return EscrowRecord.from_bytes(state.accounts[RECORD].data).state


def test_token_offer_charges_native_fee(escrow_case) -> None:
    post, result = escrow_case(
        "escrow/token_flow.json",
        "create_token_offer",
        _base_state(),
        [builders.create_offer(ALICE, Role.BUYER, AMOUNT, CAROL, SEED, DAVE, asset_id=MINT)],
    )
    assert result.ok
    assert post.balance_of(DAVE) == CONFIG.service_fee
    assert post.token_accounts[ALICE_TOKEN].amount == 5_000
    assert EscrowRecord.from_bytes(post.accounts[RECORD].data).asset_id == MINT


def test_token_fund_and_confirm(escrow_case) -> None:
    path = "escrow/token_flow.json"
    state = _initialized_state()
    state, result = escrow_case(
        path, "token_fund", state, [builders.fund_escrow(ALICE, RECORD, _tokens(ALICE_TOKEN, VAULT_TOKEN))]
    )
    assert result.ok
    assert state.token_accounts[ALICE_TOKEN].amount == 4_000
    assert state.token_accounts[VAULT_TOKEN].amount == AMOUNT
    assert state.balance_of(VAULT) == CONFIG.minimum_balance(0)
    assert _state_of(state) == EscrowState.FUNDED

    state = _run(state, builders.seller_confirm(BOB, RECORD))
    state, result = escrow_case(
        path, "token_confirm", state, [builders.confirm_escrow(ALICE, RECORD, BOB, _tokens(VAULT_TOKEN, BOB_TOKEN))]
    )
    assert result.ok
    assert state.token_accounts[VAULT_TOKEN].amount == 0
    assert state.token_accounts[BOB_TOKEN].amount == AMOUNT
    assert _state_of(state) == EscrowState.COMPLETED


@pytest.mark.parametrize(
    "release, seller_confirmed",
    [("confirm_escrow", True), ("arbiter_confirm", False), ("arbiter_confirm", True)],
)
def test_token_release_to_seller(escrow_case, release, seller_confirmed) -> None:
    state = _funded_state()
    if seller_confirmed:
        state = _run(state, builders.seller_confirm(BOB, RECORD))
    assert _state_of(state) in CUSTODY_STATES
    assert state.token_accounts[VAULT_TOKEN].amount == AMOUNT

    tokens = _tokens(VAULT_TOKEN, BOB_TOKEN)
    if release == "confirm_escrow":
        ix = builders.confirm_escrow(ALICE, RECORD, BOB, tokens)
    else:
        ix = builders.arbiter_confirm(CAROL, RECORD, BOB, tokens)
    name = f"token_{release}_" + ("seller_confirmed" if seller_confirmed else "funded")
    post, result = escrow_case("escrow/token_flow.json", name, state, [ix])
    assert result.ok, result.error
    assert post.token_accounts[VAULT_TOKEN].amount == 0
    assert post.token_accounts[BOB_TOKEN].amount == AMOUNT
    assert _state_of(post) == EscrowState.COMPLETED


def test_token_arbiter_cancel_refunds_buyer(escrow_case) -> None:
    post, result = escrow_case(
        "escrow/token_flow.json",
        "token_arbiter_cancel",
        _funded_state(),
        [builders.arbiter_cancel(CAROL, RECORD, ALICE, _tokens(VAULT_TOKEN, ALICE_TOKEN))],
    )
    assert result.ok
    assert post.token_accounts[ALICE_TOKEN].amount == 5_000
    assert _state_of(post) == EscrowState.CANCELLED


def test_token_mutual_cancel_refunds_buyer() -> None:
    post = _run(_funded_state(), builders.mutual_cancel(ALICE, BOB, RECORD, _tokens(VAULT_TOKEN, ALICE_TOKEN)))
    assert post.token_accounts[ALICE_TOKEN].amount == 5_000
    assert post.token_accounts[VAULT_TOKEN].amount == 0


def test_token_fund_without_token_accounts(escrow_case) -> None:
    post, result = escrow_case(
        "escrow/token_flow.json", "token_fund_missing_accounts", _initialized_state(), [builders.fund_escrow(ALICE, RECORD)]
    )
    assert result.error.code.name == "NOT_ENOUGH_ACCOUNT_KEYS"
    assert post.token_accounts[ALICE_TOKEN].amount == 5_000


def test_token_fund_wrong_token_program(escrow_case) -> None:
    ix = builders.fund_escrow(ALICE, RECORD, _tokens(ALICE_TOKEN, VAULT_TOKEN, program=_hash(4)))
    _, result = escrow_case("escrow/token_flow.json", "token_fund_wrong_program", _initialized_state(), [ix])
    assert result.error.code.name == "WRONG_ASSET_PROGRAM"


def test_token_fund_wrong_mint(escrow_case) -> None:
    state = _initialized_state()
    other = associated_token_address(ALICE, _hash(6))
    state.token_accounts[other] = TokenAccount(other, _hash(6), ALICE, 5_000)
    ix = builders.fund_escrow(ALICE, RECORD, _tokens(other, VAULT_TOKEN))
    _, result = escrow_case("escrow/token_flow.json", "token_fund_wrong_mint", state, [ix])
    assert result.error.code.name == "WRONG_ASSET_TYPE"


def test_token_fund_into_foreign_holding(escrow_case) -> None:
    ix = builders.fund_escrow(ALICE, RECORD, _tokens(ALICE_TOKEN, EVE_TOKEN))
    post, result = escrow_case("escrow/token_flow.json", "token_fund_foreign_destination", _initialized_state(), [ix])
    assert result.error.code.name == "WRONG_PARTICIPANT"
    assert post.token_accounts[EVE_TOKEN].amount == 0


def test_token_release_to_wrong_holder(escrow_case) -> None:
    state = _run(_funded_state(), builders.seller_confirm(BOB, RECORD))
    ix = builders.confirm_escrow(ALICE, RECORD, BOB, _tokens(VAULT_TOKEN, EVE_TOKEN))
    _, result = escrow_case("escrow/token_flow.json", "token_confirm_foreign_destination", state, [ix])
    assert result.error.code.name == "WRONG_PARTICIPANT"


def test_token_fund_insufficient_tokens(escrow_case) -> None:
    state = _initialized_state()
    state.token_accounts[ALICE_TOKEN].amount = AMOUNT - 1
    ix = builders.fund_escrow(ALICE, RECORD, _tokens(ALICE_TOKEN, VAULT_TOKEN))
    _, result = escrow_case("escrow/token_flow.json", "token_fund_insufficient", state, [ix])
    assert result.error.code.name == "INSUFFICIENT_FUNDS"


def test_token_capability_bound_to_other_program() -> None:
    ix = builders.fund_escrow(ALICE, RECORD, _tokens(ALICE_TOKEN, VAULT_TOKEN))
    post, result = process_transaction(
        _initialized_state(), [ix], token_program=InMemoryTokenProgram(_hash(4))
    )
    assert result.error.code.name == "WRONG_ASSET_PROGRAM"
    assert post.token_accounts[ALICE_TOKEN].amount == 5_000
