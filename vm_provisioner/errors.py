"""
VM Provisioner exception hierarchy.

Every platform-facing failure carries the operation name and the VM name so
callers can act on it without re-deriving context.
"""

from typing import Optional


class VmProvisionerError(Exception):
    """Base exception for VM lifecycle operations"""

    def __init__(self, message: str, operation: Optional[str] = None, vm_name: Optional[str] = None):
        self.message = message
        self.operation = operation
        self.vm_name = vm_name
        super().__init__(self._format())

    def _format(self) -> str:
        if self.operation and self.vm_name:
            return f"{self.operation} failed for VM '{self.vm_name}': {self.message}"
        if self.operation:
            return f"{self.operation} failed: {self.message}"
        return self.message


class ValidationError(VmProvisionerError):
    """Desired state is incomplete; raised before any vCenter call"""


class InventoryLookupError(VmProvisionerError, LookupError):
    """Datacenter, VM or other inventory object could not be resolved"""

    def __init__(self, kind: str, name: Optional[str], scope: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.scope = scope
        where = f" in {scope}" if scope else ""
        label = f"'{name}'" if name else "(default)"
        super().__init__(f"{kind} {label} not found{where}", operation=f"find_{kind}")


class ProvisioningError(VmProvisionerError):
    """Clone, create, reconfigure or power-on task failed"""


class TeardownError(VmProvisionerError):
    """Power-off or destroy task failed; the VM may be left powered off"""


class PropertyRetrievalError(VmProvisionerError):
    """PropertyCollector round trip failed"""


class AddressResolutionError(VmProvisionerError):
    """Guest IP did not converge within the configured polling bound"""


class OperationCancelledError(VmProvisionerError):
    """Cancel signal observed while waiting"""


class GuestAddressUnavailable(VmProvisionerError):
    """Guest has not reported an IP address yet; drives the retry loop"""


class VCenterConnectionError(VmProvisionerError):
    """vCenter session could not be established"""


class StateStoreError(VmProvisionerError):
    """Tracked-state record could not be read or written"""
