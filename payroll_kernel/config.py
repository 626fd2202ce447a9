"""
Configuration (``payroll_kernel.config``).

Responsibility
--------------
Loads a ledger's deployment settings from YAML into a frozen
``PayrollConfig``.

Example file::

    owner_identity: acct-owner
    treasury_account: payroll-treasury
    token_limit: 20
    payout_interval_days: 30
    cooldown_policy: shared
    database_url: sqlite:///payroll.db

Invariants enforced
-------------------
* Parse errors raise ``KeyError`` or ``ValueError`` with descriptive
  messages; the only required key is ``owner_identity``.
* ``DATABASE_URL`` in the environment overrides ``database_url``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``owner_identity``  -> ``KeyError``.
* Non-positive interval, negative limit or unknown cooldown policy
  -> ``ValueError``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping

import yaml

from payroll_kernel.domain.cadence import CooldownPolicy
from payroll_kernel.models.state import DEFAULT_TOKEN_LIMIT

DATABASE_URL_ENV = "DATABASE_URL"
DEFAULT_TREASURY_ACCOUNT = "payroll-treasury"
DEFAULT_PAYOUT_INTERVAL_DAYS = 30
DEFAULT_DATABASE_URL = "sqlite://"


@dataclass(frozen=True)
class PayrollConfig:
    """Deployment settings for one PayrollLedger."""

    owner_identity: str
    treasury_account: str = DEFAULT_TREASURY_ACCOUNT
    token_limit: int = DEFAULT_TOKEN_LIMIT
    payout_interval_days: int = DEFAULT_PAYOUT_INTERVAL_DAYS
    cooldown_policy: CooldownPolicy = CooldownPolicy.SHARED
    database_url: str = DEFAULT_DATABASE_URL

    @property
    def payout_interval(self) -> timedelta:
        return timedelta(days=self.payout_interval_days)


def _parse_int(data: Mapping[str, Any], key: str, default: int, minimum: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"{key} must be >= {minimum}, got {value}")
    return value


def config_from_dict(data: Mapping[str, Any]) -> PayrollConfig:
    """
    Build a PayrollConfig from a parsed mapping.

    Raises:
        KeyError: ``owner_identity`` is missing.
        ValueError: a value is out of range or of the wrong type.
    """
    owner = data["owner_identity"]
    if not isinstance(owner, str) or not owner:
        raise ValueError(f"owner_identity must be a non-empty string, got {owner!r}")

    raw_policy = data.get("cooldown_policy", CooldownPolicy.SHARED.value)
    try:
        policy = CooldownPolicy(raw_policy)
    except ValueError:
        choices = ", ".join(p.value for p in CooldownPolicy)
        raise ValueError(
            f"cooldown_policy must be one of {choices}, got {raw_policy!r}"
        ) from None

    database_url = os.environ.get(
        DATABASE_URL_ENV, data.get("database_url", DEFAULT_DATABASE_URL)
    )

    return PayrollConfig(
        owner_identity=owner,
        treasury_account=str(data.get("treasury_account", DEFAULT_TREASURY_ACCOUNT)),
        token_limit=_parse_int(data, "token_limit", DEFAULT_TOKEN_LIMIT, 0),
        payout_interval_days=_parse_int(
            data, "payout_interval_days", DEFAULT_PAYOUT_INTERVAL_DAYS, 1
        ),
        cooldown_policy=policy,
        database_url=database_url,
    )


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_config(path: str | Path) -> PayrollConfig:
    return config_from_dict(load_yaml_file(Path(path)))
