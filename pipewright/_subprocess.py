"""Shared subprocess helpers for collaborator lookups."""

from __future__ import annotations

import os
import subprocess


class SubprocessTimeout(Exception):
    """Raised when a subprocess exceeds its timeout."""

    def __init__(self, timeout: int) -> None:
        self.timeout = timeout
        super().__init__(f"Execution timed out after {timeout}s")


DEFAULT_SENSITIVE_ENV_PREFIXES = (
    "AWS_SECRET",
    "AWS_SESSION_TOKEN",
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITLAB_TOKEN",
    "SLACK_TOKEN",
    "SLACK_WEBHOOK",
    "SENTRY_AUTH_TOKEN",
    "SENTRY_DSN",
)

DEFAULT_SENSITIVE_ENV_SUFFIXES = (
    "_KEY",
    "_SECRET",
    "_TOKEN",
    "_PASSWORD",
    "_CREDENTIALS",
)


def scrub_env(
    prefixes: tuple[str, ...] | list[str] = DEFAULT_SENSITIVE_ENV_PREFIXES,
    *,
    suffixes: tuple[str, ...] | list[str] = DEFAULT_SENSITIVE_ENV_SUFFIXES,
) -> dict[str, str]:
    """Return a copy of os.environ with sensitive keys removed."""
    env = dict(os.environ)
    upper_prefixes = tuple(p.upper() for p in prefixes)
    upper_suffixes = tuple(s.upper() for s in suffixes)
    to_remove = [
        k
        for k in env
        if any(k.upper().startswith(p) for p in upper_prefixes)
        or any(k.upper().endswith(s) for s in upper_suffixes)
    ]
    for k in to_remove:
        del env[k]
    return env


def run_subprocess_text(
    cmd: list[str],
    *,
    timeout: int,
    cwd: str | None = None,
) -> tuple[str, str, int]:
    """Run a subprocess and return ``(stdout, stderr, returncode)`` as decoded text.

    Raises:
        SubprocessTimeout: If the subprocess exceeds *timeout* seconds.
    """
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            timeout=timeout,
            cwd=cwd,
            env=scrub_env(),
        )
    except subprocess.TimeoutExpired:
        raise SubprocessTimeout(timeout) from None
    return (
        result.stdout.decode("utf-8", errors="replace"),
        result.stderr.decode("utf-8", errors="replace"),
        result.returncode,
    )
