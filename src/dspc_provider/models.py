"""Data models for the DSPC provider."""

from dataclasses import dataclass, replace
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class VirtualMachine(BaseModel):
    """A virtual machine as the DSPC API represents it."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = Field(..., alias="vmName")


class CreateVMResponse(BaseModel):
    """Acknowledgement returned by POST /virtualmachine."""

    created: str


class DeleteVMResponse(BaseModel):
    """Acknowledgement returned by DELETE /virtualmachine."""

    deleted: str | None = None


class ResourceState(Enum):
    """Lifecycle state of a tracked VM from the caller's point of view."""

    PLANNED = "planned"
    PRESENT = "present"
    ABSENT = "absent"


@dataclass(frozen=True)
class VirtualMachineModel:
    """Locally tracked record of one remote VM, keyed by name."""

    name: str
    id: str | None = None
    state: ResourceState = ResourceState.PLANNED

    @classmethod
    def planned(cls, name: str) -> "VirtualMachineModel":
        """Create a desired record that does not exist remotely yet."""
        return cls(name=name)

    @classmethod
    def present(cls, vm: VirtualMachine) -> "VirtualMachineModel":
        """Create a record confirmed by the remote API."""
        # The API has no separate identifier, the name doubles as the ID
        return cls(name=vm.name, id=vm.name, state=ResourceState.PRESENT)

    def absent(self) -> "VirtualMachineModel":
        """Return this record marked as removed from tracking."""
        return replace(self, state=ResourceState.ABSENT)

    @property
    def is_present(self) -> bool:
        return self.state == ResourceState.PRESENT
