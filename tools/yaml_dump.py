"""Shared YAML dump helpers for fixture files."""

from __future__ import annotations

import json
from pathlib import Path

import yaml


class PlainDumper(yaml.SafeDumper):
    pass


def _str_representer(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style=None)


PlainDumper.add_representer(str, _str_representer)


def dump_yaml(data: dict) -> str:
    return yaml.dump(data, Dumper=PlainDumper, sort_keys=False, width=4096)


def write_yaml(path: Path, data: dict) -> None:
    path.write_text(dump_yaml(data))


def json_to_yaml(src: Path, dst: Path) -> None:
    """Re-render a JSON fixture file as YAML."""
    write_yaml(dst, json.loads(src.read_text()))
