"""Lifecycle reconciliation for DSPC virtual machines.

Maps the plan/apply operations of a declarative orchestrator onto the DSPC
API. A record moves PLANNED -> PRESENT on create and PRESENT -> ABSENT on
delete or when a refresh finds the VM gone. There is no update: the API
cannot change a VM, so any change is a destroy followed by a create.

Every operation returns a new record and only after the remote call
succeeded. On any exception the caller keeps its previous record.
"""

import structlog

from .client import VirtualMachineClient
from .errors import NotFoundError, UpdateNotSupportedError
from .models import VirtualMachineModel
from .transport import RequestContext

logger = structlog.get_logger()


class VirtualMachineReconciler:
    """Create/Read/Update/Delete/Import state machine for one resource type."""

    def __init__(self, client: VirtualMachineClient) -> None:
        """Initialize reconciler."""
        self.client = client

    def create(
        self, desired: VirtualMachineModel, context: RequestContext | None = None
    ) -> VirtualMachineModel:
        """Create the VM and return it as PRESENT under the echoed name.

        Failures, including name conflicts, propagate unchanged and are
        never retried.
        """
        vm = self.client.create_vm(desired.name, context)
        if vm.name != desired.name:
            logger.info("API normalized VM name", requested=desired.name, created=vm.name)
        return VirtualMachineModel.present(vm)

    def read(
        self, current: VirtualMachineModel, context: RequestContext | None = None
    ) -> VirtualMachineModel:
        """Refresh a tracked VM.

        Returns the record as ABSENT when a successful listing no longer
        contains the name, which tells the caller to drop it. Any other
        error propagates so that a transient failure never looks like a
        deletion.
        """
        try:
            vm = self.client.get_vm(current.name, context)
        except NotFoundError:
            logger.warning("VM removed outside of management, dropping from state", name=current.name)
            return current.absent()
        return VirtualMachineModel.present(vm)

    def update(
        self,
        current: VirtualMachineModel,
        desired: VirtualMachineModel,
        context: RequestContext | None = None,
    ) -> VirtualMachineModel:
        """Always fails: VMs must be destroyed and recreated instead."""
        raise UpdateNotSupportedError()

    def delete(
        self, current: VirtualMachineModel, context: RequestContext | None = None
    ) -> VirtualMachineModel:
        """Delete the VM remotely and return the record as ABSENT."""
        self.client.delete_vm(current.name, context)
        return current.absent()

    def import_state(
        self, external_id: str, context: RequestContext | None = None
    ) -> VirtualMachineModel:
        """Start tracking an existing VM, using the import ID as its name.

        Raises:
            NotFoundError: If no VM has that name; nothing is tracked
        """
        vm = self.client.get_vm(external_id, context)
        logger.info("Imported VM", name=vm.name)
        return VirtualMachineModel.present(vm)

    def lookup(self, name: str, context: RequestContext | None = None) -> VirtualMachineModel:
        """Read-only lookup by name; a missing VM is an error, not a drop."""
        return VirtualMachineModel.present(self.client.get_vm(name, context))

    def list_all(self, context: RequestContext | None = None) -> list[VirtualMachineModel]:
        """All VMs known to the API as PRESENT records."""
        return [VirtualMachineModel.present(vm) for vm in self.client.list_vms(context)]
