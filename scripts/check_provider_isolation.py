#!/usr/bin/env python3
"""Push service isolation validation script.

Enforces the architectural rule that core/, types/, and utils/ directories
stay gateway-agnostic. Gateway-specific code (endpoints, wire formats,
credential flows) belongs under plugins/<service>/ only.

This script scans for:
- Direct imports from push_relay.plugins.<service>
- Hardcoded gateway names in code, comments, or docstrings
- Gateway-specific endpoints

Exit codes:
    0: No violations found (clean)
    1: Violations detected (architectural rule broken)
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Final

# ANSI color codes for terminal output
RED: Final[str] = "\033[91m"
GREEN: Final[str] = "\033[92m"
YELLOW: Final[str] = "\033[93m"
RESET: Final[str] = "\033[0m"

# Directories that must remain gateway-agnostic
PROTECTED_DIRS: Final[tuple[str, ...]] = ("core", "types", "utils")

IMPORT_PATTERN: Final[re.Pattern[str]] = re.compile(r"from\s+push_relay\.plugins\.(?!registry\b)\w+|import\s+push_relay\.plugins\.\w+")

GATEWAY_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"\b(?:adm|amazon|amzn)\b", re.IGNORECASE)

ENDPOINT_PATTERN: Final[re.Pattern[str]] = re.compile(r"https?://api\.amazon\.com", re.IGNORECASE)


def check_file(file_path: Path) -> list[tuple[int, str]]:
    """Check a single Python file for isolation violations.

    Returns:
        List of (line_number, violation_description) tuples
    """
    violations: list[tuple[int, str]] = []

    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        print(f"{YELLOW}Warning: Could not read {file_path}: {e}{RESET}", file=sys.stderr)
        return violations

    for line_num, line in enumerate(lines, start=1):
        if IMPORT_PATTERN.search(line):
            violations.append((line_num, f"Direct import from push service plugin: {line.strip()}"))
        if ENDPOINT_PATTERN.search(line):
            violations.append((line_num, f"Gateway endpoint: {line.strip()}"))
        elif GATEWAY_NAME_PATTERN.search(line):
            violations.append((line_num, f"Hardcoded gateway name reference: {line.strip()}"))

    return violations


def scan_directory(base_path: Path, protected_dir: str) -> dict[Path, list[tuple[int, str]]]:
    """Scan one protected directory and return violations by file."""
    dir_path = base_path / protected_dir
    if not dir_path.exists():
        print(f"{YELLOW}Warning: Protected directory {dir_path} does not exist{RESET}", file=sys.stderr)
        return {}

    violations_by_file: dict[Path, list[tuple[int, str]]] = {}
    for py_file in dir_path.rglob("*.py"):
        if "__pycache__" in py_file.parts:
            continue
        file_violations = check_file(py_file)
        if file_violations:
            violations_by_file[py_file] = file_violations

    return violations_by_file


def main() -> int:
    """Return 0 when no violations are found, 1 otherwise."""
    project_root = Path(__file__).parent.parent
    src_path = project_root / "src" / "push_relay"

    if not src_path.exists():
        print(f"{RED}Error: Could not find src/push_relay directory{RESET}", file=sys.stderr)
        return 1

    print("Checking push service isolation in core, types, and utils modules...")
    print(f"Scanning: {src_path}\n")

    all_violations: dict[Path, list[tuple[int, str]]] = {}
    for protected_dir in PROTECTED_DIRS:
        all_violations.update(scan_directory(src_path, protected_dir))

    if not all_violations:
        print(f"{GREEN}✓ No isolation violations found{RESET}")
        return 0

    total_violations = sum(len(v) for v in all_violations.values())
    print(f"{RED}✗ Found {total_violations} isolation violations:{RESET}\n")

    for file_path, violations in sorted(all_violations.items()):
        try:
            rel_path = file_path.relative_to(project_root)
        except ValueError:
            rel_path = file_path

        print(f"{RED}{rel_path}{RESET}")
        for line_num, description in violations:
            print(f"  {line_num}: {description}")
        print()

    print(
        f"{RED}Isolation check failed!{RESET}"
        "\nMove gateway-specific code to the plugins/<service>/ directory."
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
