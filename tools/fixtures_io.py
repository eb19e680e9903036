"""Helpers to serialize/deserialize escrow fixtures."""

from __future__ import annotations

from typing import Any

from escrow_spec.state_digest import compute_state_digest
from escrow_spec.types import Account, AccountMeta, EscrowInfo, Instruction, LedgerState, TokenAccount


def _hex_to_bytes(v: str) -> bytes:
    return bytes.fromhex(v)


def _bytes_to_hex(v: bytes) -> str:
    return v.hex()


def state_to_json(state: LedgerState) -> dict[str, Any]:
    # Empty system handles materialized during execution are not exported.
    accounts_out = [
        {
            "address": _bytes_to_hex(a.address),
            "balance": a.balance,
            "owner": _bytes_to_hex(a.owner),
            "data": _bytes_to_hex(a.data),
        }
        for a in sorted(state.accounts.values(), key=lambda a: a.address)
        if a.balance or a.data or any(a.owner)
    ]
    tokens_out = [
        {
            "address": _bytes_to_hex(t.address),
            "mint": _bytes_to_hex(t.mint),
            "owner": _bytes_to_hex(t.owner),
            "amount": t.amount,
        }
        for t in sorted(state.token_accounts.values(), key=lambda t: t.address)
    ]
    result: dict[str, Any] = {"accounts": accounts_out}
    if tokens_out:
        result["token_accounts"] = tokens_out
    return result


def state_from_json(data: dict[str, Any]) -> LedgerState:
    state = LedgerState()
    for a in data.get("accounts", []):
        addr = _hex_to_bytes(a["address"])
        state.accounts[addr] = Account(
            address=addr,
            balance=int(a.get("balance", 0)),
            owner=_hex_to_bytes(a.get("owner", "00" * 32)),
            data=_hex_to_bytes(a.get("data", "")),
        )
    for t in data.get("token_accounts", []):
        addr = _hex_to_bytes(t["address"])
        state.token_accounts[addr] = TokenAccount(
            address=addr,
            mint=_hex_to_bytes(t["mint"]),
            owner=_hex_to_bytes(t["owner"]),
            amount=int(t.get("amount", 0)),
        )
    return state


def instruction_to_json(ix: Instruction) -> dict[str, Any]:
    return {
        "program_id": _bytes_to_hex(ix.program_id),
        "accounts": [
            {
                "address": _bytes_to_hex(m.address),
                "is_signer": m.is_signer,
                "is_writable": m.is_writable,
            }
            for m in ix.accounts
        ],
        "data": _bytes_to_hex(ix.data),
    }


def instruction_from_json(data: dict[str, Any]) -> Instruction:
    return Instruction(
        program_id=_hex_to_bytes(data["program_id"]),
        accounts=[
            AccountMeta(
                address=_hex_to_bytes(m["address"]),
                is_signer=bool(m.get("is_signer", False)),
                is_writable=bool(m.get("is_writable", False)),
            )
            for m in data.get("accounts", [])
        ],
        data=_hex_to_bytes(data["data"]),
    )


def info_to_json(info: EscrowInfo | None) -> dict[str, Any] | None:
    if info is None:
        return None
    return {
        "address": _bytes_to_hex(info.address),
        "state": info.state.name,
        "buyer": _bytes_to_hex(info.buyer),
        "seller": _bytes_to_hex(info.seller),
        "arbiter": _bytes_to_hex(info.arbiter),
        "amount": info.amount,
        "vault_nonce": info.vault_nonce,
        "asset_id": _bytes_to_hex(info.asset_id),
        "fee_collector": _bytes_to_hex(info.fee_collector),
    }


def expected_to_json(post_state: LedgerState, result: Any) -> dict[str, Any]:
    """Expected section of a case: outcome, error name, post-state and digest."""
    return {
        "ok": result.ok,
        "error": result.error.code.name if result.error else None,
        "info": info_to_json(result.info),
        "post_state": state_to_json(post_state),
        "state_digest": compute_state_digest(post_state),
    }
