"""Tests for the command line entry point."""

import os
from unittest.mock import patch

import pytest

from heuly.__main__ import APP_FACTORY, main


@pytest.fixture(autouse=True)
def restore_env_file(monkeypatch: pytest.MonkeyPatch) -> None:
    # main writes ENV_FILE for reload/worker mode, record it for restore
    monkeypatch.setenv("ENV_FILE", "")
    monkeypatch.delenv("ENV_FILE")


def test_runs_app_instance_by_default() -> None:
    """A single process serves the app object built from the env file."""
    with (
        patch("heuly.__main__.create_app") as create_app,
        patch("uvicorn.run") as run,
    ):
        main(["--env-file", "custom.env", "--port", "9000"])

    create_app.assert_called_once_with("custom.env")
    run.assert_called_once_with(
        create_app.return_value,
        host="127.0.0.1",
        port=9000,
    )


def test_reload_uses_factory_path() -> None:
    """Reload mode hands uvicorn the factory and the env file via ENV_FILE."""
    with (
        patch("heuly.__main__.create_app") as create_app,
        patch("uvicorn.run") as run,
    ):
        main(["--env-file", "dev.env", "--reload"])

    create_app.assert_not_called()
    run.assert_called_once_with(
        APP_FACTORY,
        factory=True,
        host="127.0.0.1",
        port=8000,
        reload=True,
        workers=1,
    )
    assert os.environ["ENV_FILE"] == "dev.env"


def test_workers_use_factory_path() -> None:
    with patch("uvicorn.run") as run:
        main(["--workers", "4"])

    assert run.call_args.args == (APP_FACTORY,)
    assert run.call_args.kwargs["workers"] == 4
    assert os.environ["ENV_FILE"] == ".env"
