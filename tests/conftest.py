from __future__ import annotations

from pathlib import Path

import pytest

_ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_TEMPERATURE",
    "STACKPILOT_API_KEY",
    "STACKPILOT_API_BASE",
    "STACKPILOT_MODEL",
    "STACKPILOT_TEMPERATURE",
    "STACKPILOT_AUTO_DEPLOY",
    "STACKPILOT_HOME",
    "STACKPILOT_REGION",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env file out of the settings under test.
    monkeypatch.chdir(tmp_path)
