"""Typed client for the DSPC VM Deployer API."""

from typing import Any, TypeVar

import requests
import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from .config import EndpointConfig
from .errors import APIError, DecodeError, NotFoundError, TransportError
from .models import CreateVMResponse, DeleteVMResponse, VirtualMachine
from .transport import RequestContext, Transport

logger = structlog.get_logger()

VM_PATH = "/virtualmachine"

T = TypeVar("T")

_VM_LIST = TypeAdapter(list[VirtualMachine] | None)


class VirtualMachineClient:
    """Create, delete and list virtual machines through the DSPC API."""

    def __init__(self, transport: Transport) -> None:
        """Initialize client."""
        self.transport = transport

    @classmethod
    def from_config(cls, config: EndpointConfig) -> "VirtualMachineClient":
        return cls(Transport(config))

    def __enter__(self) -> "VirtualMachineClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.transport.close()

    def create_vm(self, name: str, context: RequestContext | None = None) -> VirtualMachine:
        """Create a VM and return it under the name the API accepted.

        The API may normalize the requested name, so callers must use the
        returned name as the VM identity.

        Raises:
            APIError: If the API rejects the request (e.g. the name exists)
            DecodeError: If the acknowledgement is malformed
            TransportError: If the call could not be made
        """
        body = VirtualMachine(name=name)
        response = self._call("create", name, "POST", body, context)
        created = self._decode(response, CreateVMResponse, "create", name)
        logger.info("Created VM", requested=name, created=created.created)
        return VirtualMachine(name=created.created)

    def delete_vm(self, name: str, context: RequestContext | None = None) -> DeleteVMResponse:
        """Delete a VM by name.

        Deleting a name that does not exist is reported by the API as an
        error and raised here, not ignored.
        """
        body = VirtualMachine(name=name)
        response = self._call("delete", name, "DELETE", body, context)
        try:
            deleted = DeleteVMResponse.model_validate_json(response.content or b"{}")
        except ValidationError:
            # A 200 is the acknowledgement; the body is informational only
            deleted = DeleteVMResponse()
        logger.info("Deleted VM", name=name, deleted=deleted.deleted)
        return deleted

    def list_vms(self, context: RequestContext | None = None) -> list[VirtualMachine]:
        """List all VMs. An empty or null payload is an empty list."""
        response = self._call("list", None, "GET", None, context)
        if not response.content.strip():
            return []
        vms = self._decode(response, _VM_LIST, "list", None)
        return vms or []

    def get_vm(self, name: str, context: RequestContext | None = None) -> VirtualMachine:
        """Find a VM by exact name.

        The API has no lookup endpoint, so this lists every VM and scans
        for a case-sensitive match.

        Raises:
            NotFoundError: If the listing succeeded but has no such name
        """
        for vm in self.list_vms(context):
            if vm.name == name:
                return vm
        logger.info("VM not found", name=name)
        raise NotFoundError(name)

    def _call(
        self,
        operation: str,
        name: str | None,
        method: str,
        body: BaseModel | None,
        context: RequestContext | None,
    ) -> requests.Response:
        """Send the request and raise APIError for anything but 200."""
        try:
            response = self.transport.request(method, VM_PATH, body, context)
        except TransportError as e:
            e.operation = operation
            e.name = name
            logger.warning("VM request failed", operation=operation, name=name, error=str(e))
            raise

        if response.status_code != requests.codes.ok:
            try:
                text = response.text
            except requests.RequestException as e:
                text = f"failed to read response body: {e}"
            logger.warning(
                "DSPC API rejected request",
                operation=operation,
                name=name,
                status=response.status_code,
            )
            raise APIError(response.status_code, text, operation=operation, name=name)
        return response

    def _decode(
        self,
        response: requests.Response,
        model: type[T] | TypeAdapter[T],
        operation: str,
        name: str | None,
    ) -> T:
        adapter: TypeAdapter[Any] = model if isinstance(model, TypeAdapter) else TypeAdapter(model)
        try:
            return adapter.validate_json(response.content)  # type: ignore[no-any-return]
        except ValidationError as e:
            raise DecodeError(
                f"failed to decode {operation} response: {e}", operation=operation, name=name
            ) from e
