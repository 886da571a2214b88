"""
osmotic.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` into typed, immutable objects:

- **profiles**: named :class:`~osmotic.engine.decay.DecayParameters`.
  Values may be written at any integer scale (``scale: 10000000`` for the
  1e7 convention) or as decimal strings (``"0.9999999"``); everything is
  normalized to 1e18 and validated once, here.
- **networks**: per-chain address table, injected at startup.  Unknown
  chain ids fall back to ``default_chain_id``.

Usage::

    from osmotic.config import load_config

    cfg = load_config()                 # reads ./config.yaml by default
    params = cfg.get_profile("osmotic")
    network = cfg.get_network(100)      # xdai
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from osmotic.constants import ONE
from osmotic.engine.decay import DecayMode, DecayParameters
from osmotic.engine.fixed_point import rescale, to_decimals
from osmotic.errors import InvalidArgument, InvalidConfiguration


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """Contract addresses for one chain."""

    chain_id: int
    name: str
    cfav1: str
    host: str
    request_super_token: str
    governance: str | None = None


@dataclass(frozen=True, slots=True)
class OsmoticConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    profiles: dict[str, DecayParameters]
    default_profile: str
    networks: dict[int, NetworkConfig] = field(default_factory=dict)
    default_chain_id: int | None = None

    def get_profile(self, name: str | None = None) -> DecayParameters:
        """Return the profile called *name* (or the default profile)."""
        key = name or self.default_profile
        try:
            return self.profiles[key]
        except KeyError:
            raise InvalidConfiguration(
                f"Unknown profile {key!r}; known profiles: {sorted(self.profiles)}"
            ) from None

    def get_network(self, chain_id: int) -> NetworkConfig:
        """Addresses for *chain_id*, falling back to the default chain."""
        network = self.networks.get(chain_id)
        if network is not None:
            return network
        if self.default_chain_id is None or self.default_chain_id not in self.networks:
            raise InvalidConfiguration(f"No network configured for chain id {chain_id}")
        return self.networks[self.default_chain_id]


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def _parse_fixed(name: str, raw: Any, scale: int) -> int:
    """Read a fixed-point value written at *scale* or as a decimal string."""
    if isinstance(raw, bool):
        raise InvalidConfiguration(f"{name} must be a number, got {raw!r}")
    if isinstance(raw, int):
        return rescale(raw, scale, ONE)
    if isinstance(raw, str | float):
        try:
            return to_decimals(raw)
        except InvalidArgument as exc:
            raise InvalidConfiguration(f"{name} must be a number, got {raw!r}") from exc
    raise InvalidConfiguration(f"{name} must be a number, got {raw!r}")


def _parse_profile(name: str, raw: dict) -> DecayParameters:
    scale = int(raw.get("scale", ONE))
    if scale <= 0:
        raise InvalidConfiguration(f"profile {name!r}: scale must be positive")
    return DecayParameters(
        decay=_parse_fixed(f"{name}.decay", raw["decay"], scale),
        max_ratio=_parse_fixed(f"{name}.max_ratio", raw["max_ratio"], scale),
        min_stake_ratio=_parse_fixed(
            f"{name}.min_stake_ratio", raw.get("min_stake_ratio", 0), scale
        ),
        weight=_parse_fixed(f"{name}.weight", raw.get("weight", 0), scale),
        mode=raw.get("mode", DecayMode.RATE),
    )


def _parse_network(chain_id: int, raw: dict) -> NetworkConfig:
    return NetworkConfig(
        chain_id=chain_id,
        name=raw["name"],
        cfav1=raw["cfav1"],
        host=raw["host"],
        request_super_token=raw["request_super_token"],
        governance=raw.get("governance"),
    )


def parse_config(raw: dict) -> OsmoticConfig:
    """Build an :class:`OsmoticConfig` from an already-parsed mapping."""
    profiles = {
        name: _parse_profile(name, body) for name, body in raw["profiles"].items()
    }
    if not profiles:
        raise InvalidConfiguration("At least one profile is required")

    default_profile = raw.get("default_profile") or next(iter(profiles))
    if default_profile not in profiles:
        raise InvalidConfiguration(f"default_profile {default_profile!r} is not defined")

    networks = {
        int(chain_id): _parse_network(int(chain_id), body)
        for chain_id, body in (raw.get("networks") or {}).items()
    }
    default_chain_id = raw.get("default_chain_id")

    return OsmoticConfig(
        profiles=profiles,
        default_profile=default_profile,
        networks=networks,
        default_chain_id=int(default_chain_id) if default_chain_id is not None else None,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> OsmoticConfig:
    """Read *path* and return an :class:`OsmoticConfig` instance.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    InvalidConfiguration
        If a profile holds out-of-domain parameters.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh)

    return parse_config(raw)
