# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture
def events(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Every log_event() emitted during the test, decoded."""
    captured: list[dict[str, Any]] = []

    def fake_print(line: str) -> None:
        captured.append(json.loads(line))

    monkeypatch.setattr(logger, "_print", fake_print)
    monkeypatch.setattr(logger, "_json_lines", True)
    monkeypatch.setattr(logger, "_min_level", logger.LEVELS["DEBUG"])
    return captured

