from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cardoctor.core.dtc.format import DEFAULT_DIGIT3_POLICY, validate_digit3_policy


log = logging.getLogger(__name__)

CONFIG_FILENAME = "cardoctor.json"


@dataclass(frozen=True)
class CardoctorDirs:
    config_dir: Path
    cache_dir: Path

    @property
    def config_file(self) -> Path:
        return self.config_dir / CONFIG_FILENAME


@dataclass(frozen=True)
class Settings:
    digit3_policy: str = DEFAULT_DIGIT3_POLICY
    scan_delay_ms: int = 0


def _env(name: str) -> str:
    return (os.getenv(name, "") or "").strip()


def _xdg_home(var: str, fallback: str) -> Path:
    env = _env(var)
    if env:
        return Path(env).expanduser()
    return Path(fallback).expanduser()


def load_dirs(
    *,
    config_dir: str | Path | None = None,
    cache_dir: str | Path | None = None,
) -> CardoctorDirs:
    """Resolve base directories.

    Precedence: explicit parameters, then CARDOCTOR_CONFIG_DIR / CARDOCTOR_CACHE_DIR,
    then XDG defaults (~/.config/cardoctor, ~/.cache/cardoctor).
    """

    if config_dir is not None:
        cfg = Path(config_dir).expanduser()
    elif _env("CARDOCTOR_CONFIG_DIR"):
        cfg = Path(_env("CARDOCTOR_CONFIG_DIR")).expanduser()
    else:
        cfg = _xdg_home("XDG_CONFIG_HOME", "~/.config") / "cardoctor"

    if cache_dir is not None:
        cache = Path(cache_dir).expanduser()
    elif _env("CARDOCTOR_CACHE_DIR"):
        cache = Path(_env("CARDOCTOR_CACHE_DIR")).expanduser()
    else:
        cache = _xdg_home("XDG_CACHE_HOME", "~/.cache") / "cardoctor"

    return CardoctorDirs(config_dir=cfg, cache_dir=cache)


def ensure_dirs(dirs: CardoctorDirs) -> None:
    dirs.config_dir.mkdir(parents=True, exist_ok=True)
    dirs.cache_dir.mkdir(parents=True, exist_ok=True)


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("Ignoring unreadable config file", extra={"path": str(path), "error": str(exc)})
        return {}
    if not isinstance(obj, dict):
        log.warning("Ignoring config file without a JSON object", extra={"path": str(path)})
        return {}
    return obj


def _parse_delay(value: Any) -> int:
    try:
        delay = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid scan_delay_ms: {value!r}") from exc
    if delay < 0:
        raise ValueError("scan_delay_ms must be >= 0")
    return delay


def load_settings(
    dirs: CardoctorDirs | None = None,
    *,
    digit3_policy: str | None = None,
    scan_delay_ms: int | None = None,
) -> Settings:
    """Resolve decoder and scanner settings.

    Precedence (highest to lowest):
    1) explicit parameters (typically CLI)
    2) env vars CARDOCTOR_DIGIT3_POLICY, CARDOCTOR_SCAN_DELAY_MS
    3) cardoctor.json in the config dir
    4) defaults
    """

    file_obj = _read_config_file((dirs or load_dirs()).config_file)

    policy: Any = digit3_policy
    if policy is None:
        policy = _env("CARDOCTOR_DIGIT3_POLICY") or file_obj.get("digit3_policy") or DEFAULT_DIGIT3_POLICY

    delay: Any = scan_delay_ms
    if delay is None:
        delay = _env("CARDOCTOR_SCAN_DELAY_MS") or file_obj.get("scan_delay_ms", 0)

    return Settings(digit3_policy=validate_digit3_policy(str(policy)), scan_delay_ms=_parse_delay(delay))


def write_default_config(path: Path, *, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, sort_keys=True, indent=2) + "\n", encoding="utf-8")
