from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from edurpg.core.config.models import AppConfigFile
from edurpg.core.errors import ConfigError


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any]
    error: Optional[str] = None


def read_json_file(path: str) -> ReadResult:
    if not os.path.exists(path):
        return ReadResult(ok=False, data={}, error="missing")
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            return ReadResult(ok=False, data={}, error="not_object")
        return ReadResult(ok=True, data=obj)
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, data={}, error=f"corrupt_json:{e.msg}")
    except OSError as e:
        return ReadResult(ok=False, data={}, error=type(e).__name__)


@dataclass(frozen=True)
class LoadedConfig:
    config: AppConfigFile
    source: str
    error: Optional[str] = None


def load_app_config(path: str = os.path.join("config", "edurpg.json")) -> LoadedConfig:
    """
    Missing or unreadable files fall back to defaults (reason kept in
    `error`); a readable file that fails validation raises ConfigError.
    """
    rr = read_json_file(path)
    raw: Dict[str, Any] = dict(rr.data) if rr.ok else {}
    try:
        cfg = AppConfigFile.model_validate(raw)
    except PydanticValidationError as e:
        fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in e.errors()})
        raise ConfigError("Configuration file is invalid.", path=path, fields=fields) from e

    env = os.environ.get("EDURPG_ENV")
    if env:
        cfg = cfg.model_copy(update={"logging": cfg.logging.model_copy(update={"environment": env})})
    return LoadedConfig(config=cfg, source=path if rr.ok else "defaults", error=rr.error)
