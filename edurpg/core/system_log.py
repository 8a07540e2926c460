from __future__ import annotations

import json
import os
import threading
import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from edurpg.core.redaction import RedactionOptions, safe_payload
from edurpg.core.redaction.markers import PAYLOAD_ERROR_MARKER


class LogType(str, Enum):
    AUTH_SUCCESS = "auth_success"
    AUTH_FAIL = "auth_fail"
    SYNC_OK = "sync_ok"
    SYNC_FAIL = "sync_fail"
    POLICY_ACK = "policy_ack"
    JOB_CREATE = "job_create"
    JOB_ASSIGN = "job_assign"
    JOB_REVIEW = "job_review"
    JOB_CLOSE = "job_close"
    XP_GRANT = "xp_grant"
    MONEY_TX = "money_tx"
    RBAC_DENY = "rbac_deny"


def _ts() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


class SystemLogStore:
    """
    Persistent system log (JSONL, one record per line).

    Two record kinds share the file:
    - "event": typed domain events (auth, sync, jobs, xp, ...)
    - "log":   leveled application log entries from log_service.Logger

    Every payload/metadata blob goes through safe_payload() before it is
    serialized. Ids and request ids are stored as plain columns.
    """

    def __init__(self, path: str = os.path.join("logs", "system_log.jsonl"), *, options: Optional[RedactionOptions] = None):
        self.path = path
        self.options = options
        self._lock = threading.Lock()

    def log_event(
        self,
        type: Union[LogType, str],
        actor_id: Optional[str] = None,
        target_id: Optional[str] = None,
        payload: Any = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        log_type = LogType(type)
        record: Dict[str, Any] = {
            "ts": _ts(),
            "kind": "event",
            "type": log_type.value,
            "actor_id": actor_id,
            "target_id": target_id,
            "payload": safe_payload(payload, self.options),
            "request_id": request_id,
        }
        self._append(record)
        return record

    def write_entry(self, entry: Dict[str, Any]) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "ts": entry.get("timestamp") or _ts(),
            "kind": "log",
            "level": entry.get("level"),
            "service": entry.get("service"),
            "environment": entry.get("environment"),
            "message": entry.get("message"),
            "user_id": entry.get("user_id"),
            "request_id": entry.get("request_id"),
            "tags": list(entry.get("tags") or []),
            "metadata": safe_payload(entry.get("metadata"), self.options),
        }
        self._append(record)
        return record

    def _append(self, record: Dict[str, Any]) -> None:
        try:
            line = json.dumps(record, ensure_ascii=False, default=str)
        except (ValueError, TypeError):
            # values past max_depth are kept as-is and may still close a cycle
            for k in ("payload", "metadata"):
                if k in record:
                    record[k] = PAYLOAD_ERROR_MARKER
            line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def _read_all(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        out: List[Dict[str, Any]] = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except ValueError:
                    continue
                if isinstance(obj, dict):
                    out.append(obj)
        return out

    def tail(self, n: int = 20) -> List[Dict[str, Any]]:
        return self._read_all()[-max(1, int(n)) :]

    def by_request_id(self, request_id: str) -> List[Dict[str, Any]]:
        return [r for r in self._read_all() if r.get("request_id") == request_id]
