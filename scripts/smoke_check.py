"""Smoke-check the walking guide: command interpretation via the CLI, then the test suite."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]

# Transcript -> expected intent, as printed by ``walkguide.cli --interpret``.
SAMPLE_COMMANDS = (
    ("ヘルプ", "help"),
    ("とまれ ジェミニ", "stop"),
    ("クロードにして", "switch_backend"),
    ("どのAI", "current_backend"),
    ("景色を説明して", "describe_in_detail"),
    ("こんにちは", "unknown"),
)


def interpret(text: str) -> str:
    completed = subprocess.run(
        [sys.executable, "-m", "walkguide.cli", "--interpret", text],
        cwd=REPO_ROOT,
        capture_output=True,
        text=True,
        check=True,
    )
    lines = completed.stdout.splitlines()
    return lines[0].strip() if lines else ""


def check_commands() -> list[str]:
    failures = []
    for text, expected in SAMPLE_COMMANDS:
        got = interpret(text)
        status = "ok" if got == expected else "FAIL"
        print(f"[{status}] {text!r} -> {got} (expected {expected})")
        if got != expected:
            failures.append(text)
    return failures


def main() -> int:
    failures = check_commands()
    if failures:
        print(f"{len(failures)} command(s) misinterpreted")
        return 1
    cmd = [sys.executable, "-m", "pytest", "-q", "tests"]
    return subprocess.call(cmd, cwd=REPO_ROOT)


if __name__ == "__main__":
    raise SystemExit(main())
