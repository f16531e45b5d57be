from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from askflow.config import Settings


def test_context_window_is_capped_at_ten() -> None:
    assert Settings(max_context=10).max_context == 10
    with pytest.raises(ValidationError):
        Settings(max_context=50)


def test_context_window_cap_applies_to_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ASKFLOW_MAX_CONTEXT", "50")

    with pytest.raises(ValidationError):
        Settings()


def test_storage_roots_follow_home(tmp_path: Path) -> None:
    settings = Settings(home=tmp_path)

    assert settings.chat_root() == tmp_path / "chats"
    assert settings.pending_root() == tmp_path / "pending"
    assert Settings(home=None).pending_root() is None
