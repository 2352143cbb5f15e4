from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping


CONFIG_FILE = Path("config.toml")
DEFAULT_BASE_URL = "https://api.getbee.io/v1"


@dataclass(slots=True)
class BatchConfig:
    default_parallelism: int = 1


@dataclass(slots=True)
class RemoteAPIConfig:
    base_url: str = DEFAULT_BASE_URL
    timeout_s: float = 30.0


@dataclass(slots=True)
class RuntimeConfig:
    organization_id: str = "default"
    max_html_size_mb: int = 2
    preserve_html: bool = True
    event_log: Path | None = None
    templates_dir: Path = Path("runs/templates")
    enable_local_api: bool = False
    batch: BatchConfig = field(default_factory=BatchConfig)

    @property
    def max_html_bytes(self) -> int:
        return self.max_html_size_mb * 1024 * 1024


@dataclass(slots=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    api: RemoteAPIConfig = field(default_factory=RemoteAPIConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _build_batch(data: Mapping[str, object] | None) -> BatchConfig:
    if not data:
        return BatchConfig()
    return BatchConfig(default_parallelism=int(data.get("default_parallelism", 1)))


def _optional_path(value: object | None) -> Path | None:
    if value is None or str(value).strip() == "":
        return None
    return Path(str(value))


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    batch = _build_batch(data.get("batch") if isinstance(data.get("batch"), Mapping) else None)
    return RuntimeConfig(
        organization_id=str(data.get("organization_id", "default")),
        max_html_size_mb=int(data.get("max_html_size_mb", 2)),
        preserve_html=bool(data.get("preserve_html", True)),
        event_log=_optional_path(data.get("event_log")),
        templates_dir=Path(str(data.get("templates_dir", "runs/templates"))),
        enable_local_api=bool(data.get("enable_local_api", False)),
        batch=batch,
    )


def _build_api(data: Mapping[str, object] | None) -> RemoteAPIConfig:
    if not data:
        return RemoteAPIConfig()
    return RemoteAPIConfig(
        base_url=str(data.get("base_url", DEFAULT_BASE_URL)).rstrip("/"),
        timeout_s=float(data.get("timeout_s", 30.0)),
    )


def _build_server(data: Mapping[str, object] | None) -> ServerConfig:
    if not data:
        return ServerConfig()
    return ServerConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def _section(raw: Mapping[str, object], name: str) -> Mapping[str, object] | None:
    value = raw.get(name)
    return value if isinstance(value, Mapping) else None


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_section(raw, "runtime")),
        api=_build_api(_section(raw, "api")),
        server=_build_server(_section(raw, "server")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "organization_id": config.runtime.organization_id,
            "max_html_size_mb": config.runtime.max_html_size_mb,
            "preserve_html": config.runtime.preserve_html,
            "event_log": str(config.runtime.event_log) if config.runtime.event_log else "",
            "templates_dir": str(config.runtime.templates_dir),
            "enable_local_api": config.runtime.enable_local_api,
            "batch": {
                "default_parallelism": config.runtime.batch.default_parallelism,
            },
        },
        "api": {
            "base_url": config.api.base_url,
            "timeout_s": config.api.timeout_s,
        },
        "server": {
            "host": config.server.host,
            "port": config.server.port,
        },
    }
    return json.dumps(payload, indent=2)
