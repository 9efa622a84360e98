"""
Unified test runner for this repo.

Runs the pytest suite, then an end-to-end dry run of the patch step against a
throwaway wasm-bindgen package layout.

Usage (recommended):
  uv run python tests/run_all.py
  uv run python tests/run_all.py --skip-e2e
"""

from __future__ import annotations

import argparse
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class StepResult:
    name: str
    status: str  # PASS | FAIL | SKIP
    rc: int


def _run_step(*, name: str, argv: list[str], cwd: Path) -> StepResult:
    print("\n" + "=" * 70)
    print(f"[step] {name}")
    print("=" * 70)
    print(" ".join(argv))
    print("")

    proc = subprocess.run(argv, cwd=str(cwd), text=True)
    if proc.returncode == 0:
        return StepResult(name=name, status="PASS", rc=0)
    return StepResult(name=name, status="FAIL", rc=proc.returncode)


def _make_sample_pkg(root: Path) -> None:
    pkg = root / "rust" / "pkg"
    pkg.mkdir(parents=True, exist_ok=True)
    (pkg / "sample_bg.js").write_text('const path = "sample_bg.wasm";\n', encoding="utf-8")
    (pkg / "sample.js").write_text('import * as wasm from "./sample_bg.wasm";\n', encoding="utf-8")
    (pkg / "sample_bg.wasm").write_bytes(b"\x00asm\x01\x00\x00\x00")


def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Unified test runner (unit tests + e2e patch run).")
    parser.add_argument("--skip-unit", action="store_true")
    parser.add_argument("--skip-e2e", action="store_true")
    args = parser.parse_args(argv)

    py = sys.executable
    results: list[StepResult] = []

    if args.skip_unit:
        results.append(StepResult(name="pytest", status="SKIP", rc=0))
    else:
        results.append(_run_step(name="pytest", argv=[py, "-m", "pytest", "tests", "-q"], cwd=PROJECT_ROOT))

    if args.skip_e2e:
        results.append(StepResult(name="e2e", status="SKIP", rc=0))
    else:
        with tempfile.TemporaryDirectory(prefix="wasm_to_asm_") as tmp:
            _make_sample_pkg(Path(tmp))
            base = [py, "-m", "wasm_asm_tools.wasm_to_asm", "--package", "sample", "--root", tmp]
            results.append(_run_step(name="e2e dry run", argv=base + ["--dry-run"], cwd=PROJECT_ROOT))
            results.append(_run_step(name="e2e patch", argv=base, cwd=PROJECT_ROOT))
            results.append(_run_step(name="e2e re-run (binary gone, must fail)", argv=base, cwd=PROJECT_ROOT))
            # the third step is expected to fail
            last = results[-1]
            results[-1] = StepResult(name=last.name, status="PASS" if last.rc != 0 else "FAIL", rc=0 if last.rc != 0 else 1)

    print("\n" + "=" * 70)
    print("[summary]")
    print("=" * 70)
    for r in results:
        print(f"{r.status:4}  {r.name}" + (f" (rc={r.rc})" if r.status == "FAIL" else ""))

    return 1 if any(r.status == "FAIL" for r in results) else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
