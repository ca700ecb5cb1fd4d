"""Tests for the API launcher script."""

from unittest.mock import patch

from scripts import serve


def test_defaults_bind_localhost():
    with patch.object(serve.uvicorn, "run") as run:
        assert serve.main([]) == 0

    run.assert_called_once_with(
        "web.backend.main:app", host="127.0.0.1", port=8000, reload=False
    )


def test_custom_bind_and_reload():
    with patch.object(serve.uvicorn, "run") as run:
        serve.main(["--host", "0.0.0.0", "--port", "8080", "--reload"])

    run.assert_called_once_with(
        "web.backend.main:app", host="0.0.0.0", port=8080, reload=True
    )
