"""Runtime configuration loader (config-first, flag-overrides)."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.toml"
DEFAULT_LOCAL_OVERRIDE_PATH = Path(__file__).resolve().parents[2] / "config" / "runtime.local.toml"


@dataclass(frozen=True)
class RuntimeConfig:
    """Materialized runtime configuration."""

    config_path: Path
    data_dir: Path
    slates_dir: Path
    reports_dir: Path
    rules_path: Path
    default_preset: str
    write_parquet: bool

    def with_path_overrides(
        self,
        *,
        data_dir: Path | None = None,
        reports_dir: Path | None = None,
        rules_path: Path | None = None,
    ) -> RuntimeConfig:
        """Return copy with explicit CLI path overrides applied."""
        resolved_data = data_dir or self.data_dir
        resolved_slates = self.slates_dir
        resolved_reports = reports_dir or self.reports_dir
        if data_dir is not None:
            resolved_slates = resolved_data / "slates"
            if reports_dir is None:
                resolved_reports = resolved_data / "reports"
        return replace(
            self,
            data_dir=resolved_data,
            slates_dir=resolved_slates,
            reports_dir=resolved_reports,
            rules_path=rules_path or self.rules_path,
        )


_CURRENT_RUNTIME_CONFIG: RuntimeConfig | None = None


def set_current_runtime_config(config: RuntimeConfig | None) -> None:
    global _CURRENT_RUNTIME_CONFIG
    _CURRENT_RUNTIME_CONFIG = config


def current_runtime_config() -> RuntimeConfig:
    config = _CURRENT_RUNTIME_CONFIG
    if config is not None:
        return config
    loaded = load_runtime_config()
    set_current_runtime_config(loaded)
    return loaded


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overlay.items():
        existing = out.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            out[key] = _deep_merge(existing, value)
        else:
            out[key] = value
    return out


def read_toml(path: Path, *, label: str = "runtime config") -> dict[str, Any]:
    try:
        payload = tomllib.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RuntimeError(f"failed reading {label}: {path}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise RuntimeError(f"invalid {label} TOML: {path}") from exc
    if not isinstance(payload, dict):
        raise RuntimeError(f"{label} root must be a table: {path}")
    return payload


def as_table(payload: dict[str, Any], key: str) -> dict[str, Any]:
    value = payload.get(key, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise RuntimeError(f"config section [{key}] must be a table")
    return value


def as_str(value: Any, *, default: str) -> str:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped:
            return stripped
    return default


def as_bool(value: Any, *, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    return default


def as_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def as_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _resolve_path(raw: Any, *, default: str, base_dir: Path) -> Path:
    value = as_str(raw, default=default)
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return path


def load_runtime_config(config_path: Path | None = None) -> RuntimeConfig:
    """Load runtime config from `config/runtime.toml` plus optional local override."""
    source = (config_path or DEFAULT_CONFIG_PATH).expanduser().resolve()
    if not source.exists():
        raise RuntimeError(f"runtime config file not found: {source}")

    payload = read_toml(source)
    if source == DEFAULT_CONFIG_PATH and DEFAULT_LOCAL_OVERRIDE_PATH.exists():
        payload = _deep_merge(payload, read_toml(DEFAULT_LOCAL_OVERRIDE_PATH))

    paths = as_table(payload, "paths")
    selection = as_table(payload, "selection")
    base_dir = source.parent

    data_dir = _resolve_path(paths.get("data_dir"), default="../data", base_dir=base_dir)
    return RuntimeConfig(
        config_path=source,
        data_dir=data_dir,
        slates_dir=_resolve_path(
            paths.get("slates_dir"),
            default=str(data_dir / "slates"),
            base_dir=base_dir,
        ),
        reports_dir=_resolve_path(
            paths.get("reports_dir"),
            default=str(data_dir / "reports"),
            base_dir=base_dir,
        ),
        rules_path=_resolve_path(
            paths.get("rules_path"),
            default="rules.toml",
            base_dir=base_dir,
        ),
        default_preset=as_str(selection.get("default_preset"), default="balanced"),
        write_parquet=as_bool(selection.get("write_parquet"), default=False),
    )
