"""Pytest fixtures for DSPC provider tests."""

import json
from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import MagicMock

import pytest
import requests
import structlog

from dspc_provider.client import VirtualMachineClient
from dspc_provider.config import EndpointConfig
from dspc_provider.transport import Transport


@pytest.fixture(autouse=True)
def reset_structlog() -> Iterator[None]:
    """Undo logging configuration done by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Any) -> None:
    """Remove DSPC_* variables and run away from any .env file."""
    for var in ("DSPC_ENDPOINT", "DSPC_API_KEY", "DSPC_TIMEOUT"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def endpoint_config() -> EndpointConfig:
    """Create test endpoint configuration."""
    return EndpointConfig(endpoint="http://x", api_key="k", timeout_seconds=30)


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Build fake requests.Response objects."""

    def _make(status_code: int = 200, body: Any = None, raw: bytes | None = None) -> MagicMock:
        if raw is None:
            raw = json.dumps(body).encode() if body is not None else b""
        response = MagicMock(spec=requests.Response)
        response.status_code = status_code
        response.content = raw
        response.text = raw.decode()
        return response

    return _make


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock requests session."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def transport(endpoint_config: EndpointConfig, mock_session: MagicMock) -> Iterator[Transport]:
    """Create a transport that talks to the mock session."""
    transport = Transport(endpoint_config, session=mock_session)
    yield transport
    transport.close()


@pytest.fixture
def vm_client(transport: Transport) -> VirtualMachineClient:
    """Create a client on top of the mocked transport."""
    return VirtualMachineClient(transport)


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock VM client for reconciler tests."""
    return MagicMock(spec=VirtualMachineClient)
