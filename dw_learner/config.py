"""Runtime configuration.

`load_config` merges `config.yaml` over `DEFAULT_CONFIG`, applies the
environment overrides and freezes the result into an `AppConfig` that is
built once at startup and handed to every collaborator.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Any, Mapping

import yaml


LOGGER = logging.getLogger(__name__)

DEFAULT_CONFIG: dict[str, Any] = {
    "feed": {
        "rss_url": "https://rss.dw.com/xml/dkpodcast_lgn_de",
        "graphql_url": "https://learngerman.dw.com/graphql",
        "graphql_hash": "284477e6a28a04c4abc8177b4c21a3f265db23ac3947b75fd0dd0ae015aeb183",
        "limit": 5,
        "retry_count": 3,
        "retry_delay": 1.5,
        "timeout_sec": 15,
        "fallback_policy": "warn",
    },
    "ai": {
        "endpoint": "https://models.inference.ai.azure.com",
        "token": "",
        "model": "gpt-4o",
        "temperature": 0.7,
        "max_tokens": 2000,
        "retry_count": 2,
        "retry_delay": 3.0,
    },
    "pipeline": {
        "limiter": "fixed",
        "delay_sec": 2.0,
        "rate_per_sec": 0.5,
        "burst": 1,
    },
    "paths": {
        "public_dir": "public",
        "data_dir": "data",
        "logs_dir": "logs",
    },
}

ENV_OVERRIDES = {
    "GITHUB_TOKEN": ("ai", "token"),
    "GITHUB_MODEL_ENDPOINT": ("ai", "endpoint"),
    "DW_RSS_URL": ("feed", "rss_url"),
}

FALLBACK_POLICIES = ("warn", "placeholder", "fail")


@dataclass(frozen=True)
class FeedConfig:
    rss_url: str
    graphql_url: str
    graphql_hash: str
    limit: int
    retry_count: int
    retry_delay: float
    timeout_sec: float
    fallback_policy: str


@dataclass(frozen=True)
class AIConfig:
    endpoint: str
    token: str
    model: str
    temperature: float
    max_tokens: int
    retry_count: int
    retry_delay: float


@dataclass(frozen=True)
class PipelineConfig:
    limiter: str
    delay_sec: float
    rate_per_sec: float
    burst: int


@dataclass(frozen=True)
class PathsConfig:
    public_dir: Path
    data_dir: Path
    logs_dir: Path


@dataclass(frozen=True)
class AppConfig:
    feed: FeedConfig
    ai: AIConfig
    pipeline: PipelineConfig
    paths: PathsConfig

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AppConfig":
        cfg = _deep_update(DEFAULT_CONFIG, dict(raw))
        feed, ai, pipe, paths = cfg["feed"], cfg["ai"], cfg["pipeline"], cfg["paths"]

        policy = str(feed["fallback_policy"]).lower()
        if policy not in FALLBACK_POLICIES:
            raise ValueError(f"Unknown fallback_policy: {policy!r} (expected one of {FALLBACK_POLICIES})")

        return cls(
            feed=FeedConfig(
                rss_url=str(feed["rss_url"]),
                graphql_url=str(feed["graphql_url"]),
                graphql_hash=str(feed["graphql_hash"]),
                limit=int(feed["limit"]),
                retry_count=max(1, int(feed["retry_count"])),
                retry_delay=float(feed["retry_delay"]),
                timeout_sec=float(feed["timeout_sec"]),
                fallback_policy=policy,
            ),
            ai=AIConfig(
                endpoint=str(ai["endpoint"]).rstrip("/"),
                token=str(ai["token"] or ""),
                model=str(ai["model"]),
                temperature=float(ai["temperature"]),
                max_tokens=int(ai["max_tokens"]),
                retry_count=max(1, int(ai["retry_count"])),
                retry_delay=float(ai["retry_delay"]),
            ),
            pipeline=PipelineConfig(
                limiter=str(pipe["limiter"]).lower(),
                delay_sec=float(pipe["delay_sec"]),
                rate_per_sec=float(pipe["rate_per_sec"]),
                burst=int(pipe["burst"]),
            ),
            paths=PathsConfig(
                public_dir=Path(paths["public_dir"]),
                data_dir=Path(paths["data_dir"]),
                logs_dir=Path(paths["logs_dir"]),
            ),
        )


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = deepcopy(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_update(out[k], v)
        else:
            out[k] = v
    return out


def _apply_env(cfg: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    out = deepcopy(cfg)
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var, "").strip()
        if value:
            out.setdefault(section, {})[key] = value
    return out


def _read_yaml(cfg_path: Path) -> dict[str, Any]:
    if not cfg_path.exists():
        LOGGER.warning("Config not found: %s. Using defaults.", cfg_path)
        return {}

    try:
        loaded = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        LOGGER.warning("Failed to parse config (%s). Using defaults.", exc)
        return {}

    if not isinstance(loaded, dict):
        LOGGER.warning("Config format invalid. Using defaults.")
        return {}
    return loaded


def load_config(config_path: str | Path, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Load YAML config, merge with defaults and apply environment overrides.

    If the config file is missing or unreadable, the defaults are used.
    `GITHUB_TOKEN`, `GITHUB_MODEL_ENDPOINT` and `DW_RSS_URL` take precedence
    over the file.
    """

    loaded = _read_yaml(Path(config_path))
    merged = _apply_env(_deep_update(DEFAULT_CONFIG, loaded), os.environ if environ is None else environ)
    return AppConfig.from_dict(merged)
