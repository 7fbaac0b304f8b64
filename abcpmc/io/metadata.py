from __future__ import annotations

import platform
import subprocess
import sys
from importlib import metadata
from typing import Dict

from abcpmc.config import RunConfig


def _pkg_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "unknown"


def _git_commit() -> str:
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "HEAD"],
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


def build_run_metadata(cfg: RunConfig) -> Dict[str, str]:
    return {
        "python_version": sys.version.split()[0],
        "platform": platform.platform(),
        "numpy_version": _pkg_version("numpy"),
        "scipy_version": _pkg_version("scipy"),
        "pandas_version": _pkg_version("pandas"),
        "pydantic_version": _pkg_version("pydantic"),
        "abcpmc_version": _pkg_version("abc-pmc"),
        "git_commit": _git_commit(),
        "seed": str(cfg.seed),
        "method": cfg.method,
        "model": cfg.model.entry_point,
    }
