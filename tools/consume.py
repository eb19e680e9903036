"""Consume escrow fixtures and validate them against the Python model."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT / "tools"))

from escrow_spec.config import ProgramConfig  # noqa: E402
from escrow_spec.state_digest import compute_state_digest  # noqa: E402
from escrow_spec.state_transition import process_transaction  # noqa: E402
from fixtures_io import instruction_from_json, state_from_json  # noqa: E402
from yaml_dump import json_to_yaml  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def check_cases(path: Path, config: ProgramConfig) -> list[str]:
    failures: list[str] = []
    data = json.loads(path.read_text())

    for case in data.get("cases", []):
        name = case["name"]
        pre_state = state_from_json(case["pre_state"])
        instructions = [instruction_from_json(ix) for ix in case["instructions"]]
        post_state, result = process_transaction(pre_state, instructions, config)

        expected = case["expected"]
        if result.ok != expected["ok"]:
            failures.append(f"{name}: ok_mismatch")
            continue

        actual_err = result.error.code.name if result.error else None
        if actual_err != expected["error"]:
            failures.append(f"{name}: error_mismatch ({actual_err} != {expected['error']})")
            continue

        if compute_state_digest(post_state) != expected["state_digest"]:
            failures.append(f"{name}: state_digest_mismatch")
            continue

        logger.debug("%s: ok", name)

    return failures


@click.command()
@click.option(
    "--fixtures",
    "fixtures_dir",
    default=str(ROOT / "fixtures"),
    help="Directory of generated fixture files",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="YAML program configuration (defaults to ESCROW_* environment)",
)
@click.option(
    "--yaml",
    "emit_yaml",
    is_flag=True,
    help="Also write a YAML rendering next to each fixture file",
)
@click.option(
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
def main(fixtures_dir: str, config_path: Optional[str], emit_yaml: bool, verbose: bool) -> None:
    """Replay escrow fixtures and report mismatches."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = ProgramConfig.from_yaml(Path(config_path)) if config_path else ProgramConfig.from_env()

    files = sorted(Path(fixtures_dir).rglob("*.json"))
    if not files:
        logger.error("No fixture files found in %s", fixtures_dir)
        sys.exit(1)
    logger.info("Found %d fixture files", len(files))

    failures: list[str] = []
    for path in files:
        failures.extend(check_cases(path, config))
        if emit_yaml:
            json_to_yaml(path, path.with_suffix(".yaml"))

    if failures:
        for f in failures:
            logger.error("FAIL %s", f)
        sys.exit(1)

    logger.info("All fixtures passed")


if __name__ == "__main__":
    main()
