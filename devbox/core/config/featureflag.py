"""
Feature flags — opt-in switches for unfinished features.

Each flag has a compiled-in default and can be overridden with a
``DEVBOX_FEATURE_<NAME>`` environment variable holding a boolean
("1", "true", "0", "false", ...).

    from devbox.core.config import featureflag

    if featureflag.FLAKES.enabled():
        ...
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ENV_PREFIX = "DEVBOX_FEATURE_"

_TRUE = {"1", "t", "true", "yes", "on"}
_FALSE = {"0", "f", "false", "no", "off"}


def parse_bool(value: str | None) -> bool | None:
    """Parse a boolean env value.  Returns None if unset or unrecognized."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in _TRUE:
        return True
    if normalized in _FALSE:
        return False
    return None


@dataclass(frozen=True)
class Feature:
    """A named feature flag."""

    name: str
    default: bool = False

    @property
    def env_var(self) -> str:
        return f"{ENV_PREFIX}{self.name}"

    def enabled(self, environ: Mapping[str, str] | None = None) -> bool:
        env = os.environ if environ is None else environ
        raw = env.get(self.env_var)
        override = parse_bool(raw)
        if raw is not None and override is None:
            logger.warning("Ignoring %s=%r: not a boolean", self.env_var, raw)
        return self.default if override is None else override


_REGISTRY: dict[str, Feature] = {}


def _register(name: str, default: bool) -> Feature:
    feature = Feature(name=name, default=default)
    _REGISTRY[name] = feature
    return feature


def disabled(name: str) -> Feature:
    """Register a flag that is off unless its env var turns it on."""
    return _register(name, False)


def get(name: str) -> Feature:
    """Look up a registered flag by name."""
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(f"unknown feature flag: {name}") from None


# Generate a flake.nix alongside shell.nix
FLAKES = disabled("FLAKES")
