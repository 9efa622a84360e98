"""
Artifact configuration for the wasm -> asm.js loader patch step.

The generated wasm-bindgen package ships two loader files that reference the
binary module by name, plus the binary itself. Defaults describe the
`cardano_message_signing` package under rust/pkg/; a JSON file can describe any
other layout:

  {
    "targets": ["rust/pkg/x_bg.js", "rust/pkg/x.js"],
    "remove": "rust/pkg/x_bg.wasm",
    "replace": {"old": "_bg.wasm", "new": ".asm.js"}
  }

Relative paths in a config file resolve against the working directory (or
--root), not against the directory the config file lives in.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any


WASM_TOKEN = "_bg.wasm"
ASM_TOKEN = ".asm.js"

PKG_DIR = Path("rust") / "pkg"
DEFAULT_PACKAGE = "cardano_message_signing"


class ArtifactError(Exception):
    """Fatal failure of the patch step (reported once, by the CLI)."""


class ConfigError(ArtifactError):
    pass


@dataclass(frozen=True)
class Rule:
    old: str = WASM_TOKEN
    new: str = ASM_TOKEN

    def apply(self, text: str) -> tuple[str, int]:
        count = text.count(self.old)
        if count == 0:
            return text, 0
        return text.replace(self.old, self.new), count


@dataclass(frozen=True)
class PatchTarget:
    path: Path
    rule: Rule = field(default_factory=Rule)


@dataclass(frozen=True)
class ArtifactConfig:
    targets: tuple[PatchTarget, ...]
    remove: Path | None
    root: Path = Path(".")

    def resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.root / path

    def with_root(self, root: Path) -> ArtifactConfig:
        return replace(self, root=root)


def package_config(name: str, rule: Rule | None = None) -> ArtifactConfig:
    """wasm-bindgen layout: <name>_bg.js and <name>.js patched, <name>_bg.wasm removed."""
    rule = rule or Rule()
    return ArtifactConfig(
        targets=(
            PatchTarget(PKG_DIR / f"{name}_bg.js", rule),
            PatchTarget(PKG_DIR / f"{name}.js", rule),
        ),
        remove=PKG_DIR / f"{name}_bg.wasm",
    )


DEFAULT_CONFIG = package_config(DEFAULT_PACKAGE)


def _parse_rule(raw: Any, source: Path) -> Rule:
    if raw is None:
        return Rule()
    if not isinstance(raw, dict):
        raise ConfigError(f"{source}: 'replace' must be an object with 'old' and 'new'")
    old = raw.get("old", WASM_TOKEN)
    new = raw.get("new", ASM_TOKEN)
    if not isinstance(old, str) or not isinstance(new, str):
        raise ConfigError(f"{source}: 'replace.old' and 'replace.new' must be strings")
    if not old:
        raise ConfigError(f"{source}: 'replace.old' must not be empty")
    return Rule(old=old, new=new)


def parse_config(data: Any, source: Path) -> ArtifactConfig:
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: expected a JSON object")

    targets = data.get("targets")
    if not isinstance(targets, list) or not targets:
        raise ConfigError(f"{source}: 'targets' must be a non-empty list of paths")
    if not all(isinstance(t, str) and t for t in targets):
        raise ConfigError(f"{source}: every entry in 'targets' must be a non-empty string")

    remove = data.get("remove")
    if remove is not None and (not isinstance(remove, str) or not remove):
        raise ConfigError(f"{source}: 'remove' must be a path or null")

    rule = _parse_rule(data.get("replace"), source)
    return ArtifactConfig(
        targets=tuple(PatchTarget(Path(t), rule) for t in targets),
        remove=Path(remove) if remove is not None else None,
    )


def load_config(path: Path) -> ArtifactConfig:
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{path}: invalid JSON: {e}") from e
    return parse_config(data, path)
