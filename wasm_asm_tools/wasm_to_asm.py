"""
Point the generated wasm-bindgen loaders at the asm.js fallback and drop the wasm binary.

Every `_bg.wasm` reference in the loader files becomes `.asm.js`. The binary is
removed only after all loaders were patched; if any loader could not be read or
written the binary stays on disk and the run fails.

Usage:
  uv run python -m wasm_asm_tools.wasm_to_asm
  uv run python -m wasm_asm_tools.wasm_to_asm --dry-run
  uv run python -m wasm_asm_tools.wasm_to_asm --package my_crate --root path/to/project
  uv run python -m wasm_asm_tools.wasm_to_asm --config wasm-to-asm.json
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from pathlib import Path

from wasm_asm_tools.asm_config import (
    DEFAULT_CONFIG,
    ArtifactConfig,
    ArtifactError,
    PatchTarget,
    Rule,
    load_config,
    package_config,
)


class PatchFailed(ArtifactError):
    def __init__(self, failures: list[PatchResult]):
        self.failures = failures
        lines = [f"  - {r.path}: {r.error}" for r in failures]
        super().__init__(
            f"{len(failures)} loader file(s) could not be patched; binary left in place:\n" + "\n".join(lines)
        )


class CleanupFailed(ArtifactError):
    pass


@dataclass(frozen=True)
class PatchResult:
    path: Path
    replacements: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _describe(e: Exception) -> str:
    if isinstance(e, OSError) and e.strerror:
        return e.strerror
    return str(e) or type(e).__name__


def _read_text(path: Path) -> str:
    # newline="" keeps CRLF/LF exactly as generated
    with path.open("r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: Path, text: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)


async def patch(path: Path, rule: Rule | None = None, *, dry_run: bool = False) -> PatchResult:
    """Replace every occurrence of the rule's token in `path`, in place.

    Read and write failures are printed and returned, never raised, so one bad
    loader cannot stop the others.
    """
    rule = rule or Rule()
    try:
        text = await asyncio.to_thread(_read_text, path)
    except (OSError, UnicodeDecodeError) as e:
        print(f"error: {path}: cannot read: {_describe(e)}", file=sys.stderr)
        return PatchResult(path=path, error=f"cannot read: {_describe(e)}")

    patched, count = rule.apply(text)
    if count == 0 or dry_run:
        return PatchResult(path=path, replacements=count)

    try:
        await asyncio.to_thread(_write_text, path, patched)
    except OSError as e:
        print(f"error: {path}: cannot write: {_describe(e)}", file=sys.stderr)
        return PatchResult(path=path, error=f"cannot write: {_describe(e)}")

    return PatchResult(path=path, replacements=count)


def cleanup(path: Path) -> None:
    try:
        path.unlink()
    except OSError as e:
        raise CleanupFailed(f"cannot remove {path}: {_describe(e)}") from e


async def patch_all(config: ArtifactConfig, *, dry_run: bool = False) -> list[PatchResult]:
    targets: list[PatchTarget] = list(config.targets)
    return list(
        await asyncio.gather(*(patch(config.resolve(t.path), t.rule, dry_run=dry_run) for t in targets))
    )


async def run(config: ArtifactConfig, *, dry_run: bool = False, keep_binary: bool = False) -> list[PatchResult]:
    results = await patch_all(config, dry_run=dry_run)

    failures = [r for r in results if not r.ok]
    if failures:
        raise PatchFailed(failures)

    for r in results:
        if dry_run:
            print(f"DRY: {r.path} ({r.replacements} replacements)")
        elif r.replacements:
            print(f"OK: patched {r.path} ({r.replacements} replacements)")
        else:
            print(f"OK: {r.path} already patched")

    if config.remove is None or keep_binary:
        return results

    binary = config.resolve(config.remove)
    if dry_run:
        state = "would remove" if binary.exists() else "missing"
        print(f"DRY: {binary} ({state})")
        return results

    cleanup(binary)
    print(f"OK: removed {binary}")
    return results


def _build_config(args: argparse.Namespace) -> ArtifactConfig:
    if args.config is not None:
        config = load_config(args.config)
    elif args.package:
        config = package_config(args.package)
    else:
        config = DEFAULT_CONFIG
    if args.root is not None:
        config = config.with_root(args.root)
    return config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Patch wasm-bindgen loaders to load the asm.js fallback and remove the wasm binary.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--config", type=Path, default=None, help="JSON file listing targets, binary and replacement.")
    source.add_argument("--package", default=None, help="wasm-bindgen package name under rust/pkg/.")
    parser.add_argument("--root", type=Path, default=None, help="Resolve relative paths against this directory (default: cwd).")
    parser.add_argument("--dry-run", action="store_true", help="Report what would change; touch nothing.")
    parser.add_argument("--keep-binary", action="store_true", help="Patch loaders but do not remove the wasm binary.")
    args = parser.parse_args(argv)

    try:
        config = _build_config(args)
        asyncio.run(run(config, dry_run=args.dry_run, keep_binary=args.keep_binary))
    except ArtifactError as e:
        raise SystemExit(f"FAIL: {e}") from e
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
