"""End-to-end tests from the provider down to a mocked HTTP session."""

import threading
import time
from collections.abc import Iterator
from unittest.mock import MagicMock

import pytest
import requests

from dspc_provider.client import VirtualMachineClient
from dspc_provider.config import EndpointConfig
from dspc_provider.errors import APIError, NotFoundError, RequestCancelledError
from dspc_provider.models import ResourceState, VirtualMachineModel
from dspc_provider.provider import Provider
from dspc_provider.transport import RequestContext, Transport


@pytest.fixture
def provider(endpoint_config: EndpointConfig, vm_client: VirtualMachineClient) -> Provider:
    """Create a provider wired to the mocked session."""
    return Provider(endpoint_config, client=vm_client)


class TestLifecycle:
    """Full lifecycle scenarios."""

    def test_create_vm1(self, provider: Provider, mock_session: MagicMock, make_response) -> None:
        """Test create against a 200 acknowledgement."""
        mock_session.request.return_value = make_response(200, {"created": "vm1"})

        record = provider.reconciler.create(VirtualMachineModel.planned("vm1"))

        assert record == VirtualMachineModel(name="vm1", id="vm1", state=ResourceState.PRESENT)

    def test_create_existing(
        self, provider: Provider, mock_session: MagicMock, make_response
    ) -> None:
        """Test create against a 400 conflict."""
        mock_session.request.return_value = make_response(400, {"error": "exists"})

        with pytest.raises(APIError) as exc_info:
            provider.create("vm1")

        assert exc_info.value.status == 400
        assert "exists" in exc_info.value.body
        assert mock_session.request.call_count == 1

    def test_create_read_delete_read(
        self, provider: Provider, mock_session: MagicMock, make_response
    ) -> None:
        """Test a VM goes planned, present, absent."""
        mock_session.request.side_effect = [
            make_response(200, {"created": "vm1"}),
            make_response(200, [{"vmName": "vm1"}]),
            make_response(200, {"deleted": "vm1"}),
            make_response(200, raw=b"null"),
        ]
        reconciler = provider.reconciler

        created = reconciler.create(VirtualMachineModel.planned("vm1"))
        refreshed = reconciler.read(created)
        deleted = reconciler.delete(refreshed)
        after = reconciler.read(refreshed)

        assert created.state == refreshed.state == ResourceState.PRESENT
        assert deleted.state == ResourceState.ABSENT
        assert after.state == ResourceState.ABSENT
        methods = [c.args[0] for c in mock_session.request.call_args_list]
        assert methods == ["POST", "GET", "DELETE", "GET"]

    def test_delete_twice(
        self, provider: Provider, mock_session: MagicMock, make_response
    ) -> None:
        """Test the second delete of the same name fails."""
        mock_session.request.side_effect = [
            make_response(200, {"deleted": "vm1"}),
            make_response(404, {"error": "not found"}),
        ]

        provider.delete("vm1")
        with pytest.raises(APIError):
            provider.delete("vm1")

    def test_import_missing(
        self, provider: Provider, mock_session: MagicMock, make_response
    ) -> None:
        mock_session.request.return_value = make_response(200, raw=b"[]")

        with pytest.raises(NotFoundError):
            provider.import_by_name("ghost")


@pytest.fixture
def release() -> Iterator[threading.Event]:
    """Event that lets the slow session's pending calls return."""
    event = threading.Event()
    yield event
    event.set()


@pytest.fixture
def slow_provider(
    endpoint_config: EndpointConfig, release: threading.Event, make_response
) -> Iterator[tuple[Provider, MagicMock]]:
    """Create a provider whose session blocks until released."""
    session = MagicMock(spec=requests.Session)

    def _slow(method, *args, **kwargs):
        release.wait(5)
        return make_response(200, raw=b"null")

    session.request.side_effect = _slow
    transport = Transport(endpoint_config, session=session)
    provider = Provider(endpoint_config, client=VirtualMachineClient(transport))
    yield provider, session
    release.set()
    provider.close()


def _cancel_soon() -> RequestContext:
    context = RequestContext()
    threading.Timer(0.1, context.cancel).start()
    return context


class TestCancellation:
    """Cancellation never changes tracked state."""

    def test_cancelled_read_keeps_state(self, slow_provider: tuple[Provider, MagicMock]) -> None:
        """Test a read cancelled mid-flight leaves the record present."""
        provider, _ = slow_provider
        current = VirtualMachineModel(name="vm1", id="vm1", state=ResourceState.PRESENT)

        start = time.monotonic()
        with pytest.raises(RequestCancelledError):
            provider.refresh(current, _cancel_soon())

        assert time.monotonic() - start < 2
        assert current.state == ResourceState.PRESENT

    def test_cancelled_create_keeps_planned(
        self, slow_provider: tuple[Provider, MagicMock]
    ) -> None:
        """Test a create cancelled mid-flight leaves the record planned."""
        provider, session = slow_provider
        desired = VirtualMachineModel.planned("vm1")

        start = time.monotonic()
        with pytest.raises(RequestCancelledError):
            provider.reconciler.create(desired, _cancel_soon())

        assert time.monotonic() - start < 2
        assert desired.state == ResourceState.PLANNED
        assert desired.id is None
        assert session.request.call_args.args[0] == "POST"

    def test_cancelled_delete_keeps_present(
        self, slow_provider: tuple[Provider, MagicMock]
    ) -> None:
        """Test a delete cancelled mid-flight leaves the record present."""
        provider, session = slow_provider
        current = VirtualMachineModel(name="vm1", id="vm1", state=ResourceState.PRESENT)

        start = time.monotonic()
        with pytest.raises(RequestCancelledError):
            provider.reconciler.delete(current, _cancel_soon())

        assert time.monotonic() - start < 2
        assert current.state == ResourceState.PRESENT
        assert current.id == "vm1"
        assert session.request.call_args.args[0] == "DELETE"
