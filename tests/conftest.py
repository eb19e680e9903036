"""Pytest hooks to generate escrow fixtures."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from escrow_spec.config import ProgramConfig
from escrow_spec.state_transition import TransitionResult, process_transaction
from escrow_spec.types import Instruction, LedgerState
from tools.fixtures_io import expected_to_json, instruction_to_json, state_to_json

_STATE_CASES: dict[str, list[dict[str, Any]]] = {}

EscrowCase = Callable[..., tuple[LedgerState, TransitionResult]]


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--output",
        action="store",
        default=None,
        help="Output directory for generated fixtures",
    )


@pytest.fixture
def escrow_case() -> EscrowCase:
    """Run an instruction sequence atomically and collect it as a fixture case.

    Cases run under a custom `config` are returned but not recorded, since
    fixture consumers replay with the default configuration.
    """

    def _escrow_case(
        rel_path: str,
        name: str,
        pre_state: LedgerState,
        instructions: list[Instruction],
        config: Optional[ProgramConfig] = None,
    ) -> tuple[LedgerState, TransitionResult]:
        post_state, result = process_transaction(pre_state, instructions, config)
        if config is None:
            _STATE_CASES.setdefault(rel_path, []).append(
                {
                    "name": name,
                    "pre_state": state_to_json(pre_state),
                    "instructions": [instruction_to_json(ix) for ix in instructions],
                    "expected": expected_to_json(post_state, result),
                }
            )
        return post_state, result

    return _escrow_case


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    output_dir = session.config.getoption("--output")
    if not output_dir:
        return

    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    for rel_path, cases in _STATE_CASES.items():
        if not cases:
            continue
        target = out / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps({"cases": cases}, indent=2))
