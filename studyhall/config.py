"""
studyhall.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for platform settings that are not secrets in the
environment sense (display name, upload destination, the admin elevation
passcode).  Database URL and JWT secret come from the environment.

Usage::

    from studyhall.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.platform_name)     # "StudyHall"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StudyHallConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    platform_name: str

    # API
    api_port: int

    # Admin elevation.  Compared verbatim against the submitted passcode;
    # there is no hashing or attempt limiting behind it.
    admin_passcode: str

    # Object storage
    upload_base_url: str
    max_upload_mb: int = 25


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> StudyHallConfig:
    """Read *path* and return a :class:`StudyHallConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh)

    return StudyHallConfig(
        platform_name=raw["platform_name"],
        api_port=int(raw["api_port"]),
        admin_passcode=str(raw["admin_passcode"]),
        upload_base_url=str(raw["upload_base_url"]).rstrip("/"),
        max_upload_mb=int(raw.get("max_upload_mb") or 25),
    )
