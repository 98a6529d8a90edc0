# jyotish/utils/config.py
from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

import yaml

from jyotish.core.ephemeris_adapter import AccessorConfig


class AttrDict(dict):
    """Config section readable as ``cfg.ephemeris.ayanamsa`` as well as by key."""

    def __getattr__(self, key: str) -> Any:
        if key in self:
            return self[key]
        raise AttributeError(f"config has no key '{key}'")

    __setattr__ = dict.__setitem__


def _to_attr(node: Any) -> Any:
    """Wrap nested YAML mappings; lists keep their order with wrapped items."""
    if isinstance(node, Mapping):
        return AttrDict((k, _to_attr(v)) for k, v in node.items())
    if isinstance(node, list):
        return list(map(_to_attr, node))
    return node


def load_config(path: str) -> AttrDict:
    """
    Load YAML config from `path`, e.g.::

        ephemeris:
          ayanamsa: lahiri
          ephe_path: /var/lib/jyotish/ephe
          node_model: mean
        house_system: placidus
        log_level: INFO

    Env overrides (applied after the file):
      - JYOTISH_AYANAMSA   → ephemeris.ayanamsa
      - JYOTISH_EPHE_PATH  → ephemeris.ephe_path
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"config root must be a mapping: {path}")

    eph = data.setdefault("ephemeris", {}) or {}
    data["ephemeris"] = eph
    ayanamsa = os.getenv("JYOTISH_AYANAMSA")
    if ayanamsa:
        eph["ayanamsa"] = ayanamsa
    ephe_path = os.getenv("JYOTISH_EPHE_PATH")
    if ephe_path:
        eph["ephe_path"] = ephe_path

    return _to_attr(data)


def accessor_config_from(cfg: Optional[Mapping[str, Any]]) -> AccessorConfig:
    """AccessorConfig from a loaded config; missing keys keep the env-backed defaults."""
    eph = dict((cfg or {}).get("ephemeris") or {})
    known = {k: eph[k] for k in ("ayanamsa", "ephe_path", "node_model") if k in eph}
    return AccessorConfig(**known).normalized()


def configure_logging(level: Optional[str] = None) -> None:
    """basicConfig for scripts; the library itself never installs handlers."""
    lvl = (level or os.getenv("JYOTISH_LOG_LEVEL") or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, lvl, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
