from __future__ import annotations

import pytest

from edurpg.core.log_service import Logger
from edurpg.core.system_log import SystemLogStore


@pytest.fixture
def system_store(tmp_path):
    """
    System log store writing to an isolated JSONL file under tmp_path.
    """
    return SystemLogStore(path=str(tmp_path / "logs" / "system_log.jsonl"))


@pytest.fixture
def app_logger(system_store):
    return Logger("test", environment="development", store=system_store)
