#!/usr/bin/env python3
"""Catwatch — Application Runner.

Checks that the environment can actually run a watcher (bot token,
settings file, writable data/ and logs/) before starting the long-running
mode. Exits non-zero without starting anything when a check fails.

Usage:
    python scripts/run.py
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

BANNER = r"""
   /\_/\    Catwatch v1.0
  ( o.o )   adoption listing watcher
   > ^ <
"""

# (variable, required, what happens without it)
ENV_CHECKS: list[tuple[str, bool, str]] = [
    ("TELEGRAM_BOT_TOKEN", True, "nothing can be sent"),
    ("TELEGRAM_CHAT_ID", False, "only chats that sent /start get notified"),
    ("CRON_SECRET", False, "the HTTP trigger will refuse every call"),
]

_PLACEHOLDERS = {"", "test", "your_token_here", "changeme"}

Check = Callable[[], list[str]]


def _mask(value: str) -> str:
    return f"{value[:6]}...{value[-4:]}" if len(value) > 10 else "***"


def check_env_file() -> list[str]:
    env_path = PROJECT_ROOT / ".env"
    if env_path.exists():
        from dotenv import load_dotenv
        load_dotenv(env_path)
        print("✅ .env loaded")
    else:
        print("⚠️  no .env file, relying on the process environment")
    return []


def check_env_vars() -> list[str]:
    problems = []
    for name, required, consequence in ENV_CHECKS:
        value = os.environ.get(name, "")
        if value not in _PLACEHOLDERS:
            print(f"✅ {name} = {_mask(value)}")
        elif required:
            problems.append(f"{name} is not set ({consequence})")
        else:
            print(f"⚠️  {name} not set: {consequence}")
    return problems


def check_settings() -> list[str]:
    settings = PROJECT_ROOT / "config" / "settings.yaml"
    if not settings.is_file():
        return ["config/settings.yaml is missing"]
    print("✅ config/settings.yaml found")
    return []


def check_directories() -> list[str]:
    problems = []
    for name in ("data", "logs"):
        path = PROJECT_ROOT / name
        try:
            path.mkdir(exist_ok=True)
        except OSError as e:
            problems.append(f"cannot create {name}/: {e}")
            continue
        if os.access(path, os.W_OK):
            print(f"✅ {name}/ writable")
        else:
            problems.append(f"{name}/ is not writable")
    return problems


PREFLIGHT: list[Check] = [check_env_file, check_env_vars, check_settings, check_directories]


def preflight_checks() -> list[str]:
    """Run every check from the project root.

    Returns:
        Problems that prevent startup; empty when everything is fine.
    """
    os.chdir(PROJECT_ROOT)
    problems: list[str] = []
    for check in PREFLIGHT:
        problems.extend(check())
    return problems


def main() -> None:
    print(BANNER)
    problems = preflight_checks()
    if problems:
        print()
        for problem in problems:
            print(f"❌ {problem}")
        print("\nFix the issues above (see .env.example) and try again.")
        sys.exit(1)

    print("\n═══ Starting Catwatch ═══\n")
    from catwatch.main import main as app_main
    app_main()


if __name__ == "__main__":
    main()
