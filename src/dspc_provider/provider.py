"""Name-based operations for orchestrators and the CLI.

A ``Provider`` owns one immutable client and one reconciler. Build it once
per process with ``Provider.configure`` and pass it to whatever needs it.
"""

import structlog

from .client import VirtualMachineClient
from .config import EndpointConfig, Settings, load_config
from .models import ResourceState, VirtualMachineModel
from .reconciler import VirtualMachineReconciler
from .transport import RequestContext

logger = structlog.get_logger()


class Provider:
    """Configured DSPC provider exposing create/read/delete/list/import."""

    def __init__(self, config: EndpointConfig, client: VirtualMachineClient | None = None) -> None:
        """Initialize provider."""
        self.config = config
        self.client = client or VirtualMachineClient.from_config(config)
        self.reconciler = VirtualMachineReconciler(self.client)

    @classmethod
    def configure(
        cls,
        endpoint: str | None = None,
        api_key: str | None = None,
        timeout: int | None = None,
        settings: Settings | None = None,
    ) -> "Provider":
        """Resolve configuration and build the provider.

        Raises:
            ConfigurationError: If endpoint or API key cannot be resolved
        """
        config = load_config(endpoint=endpoint, api_key=api_key, timeout=timeout, settings=settings)
        logger.info(
            "Configured DSPC provider",
            endpoint=config.endpoint,
            timeout_seconds=config.timeout_seconds,
        )
        return cls(config)

    def __enter__(self) -> "Provider":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.client.close()

    def create(self, name: str, context: RequestContext | None = None) -> str:
        """Create a VM and return the name the API assigned."""
        record = self.reconciler.create(VirtualMachineModel.planned(name), context)
        return record.name

    def read(self, name: str, context: RequestContext | None = None) -> VirtualMachineModel:
        """Look up a VM; raises NotFoundError when it does not exist."""
        return self.reconciler.lookup(name, context)

    def refresh(
        self, current: VirtualMachineModel, context: RequestContext | None = None
    ) -> VirtualMachineModel:
        """Refresh tracked state; an ABSENT result means drop it."""
        return self.reconciler.read(current, context)

    def update(
        self,
        current: VirtualMachineModel,
        desired: VirtualMachineModel,
        context: RequestContext | None = None,
    ) -> VirtualMachineModel:
        return self.reconciler.update(current, desired, context)

    def delete(self, name: str, context: RequestContext | None = None) -> None:
        current = VirtualMachineModel(name=name, id=name, state=ResourceState.PRESENT)
        self.reconciler.delete(current, context)

    def import_by_name(self, name: str, context: RequestContext | None = None) -> VirtualMachineModel:
        return self.reconciler.import_state(name, context)

    def list_vms(self, context: RequestContext | None = None) -> list[VirtualMachineModel]:
        return self.reconciler.list_all(context)
