"""In-place update handler (CPU and memory)"""

import threading
from typing import Optional

from vm_provisioner import device_specs
from vm_provisioner.errors import ProvisioningError
from vm_provisioner.handlers.base import BaseHandler
from vm_provisioner.models import VirtualMachineSpec


class UpdateHandler(BaseHandler):
    """
    Reconfigures CPU count and memory size when they drift from the desired
    state. Disk, NIC and placement changes are not applied in place.
    """

    def update(self, spec: VirtualMachineSpec,
               cancel_event: Optional[threading.Event] = None) -> bool:
        """
        Returns:
            True when a reconfigure task ran, False when nothing changed
        """
        dc = self.executor.find_datacenter(spec.datacenter)
        vm = self.executor.find_vm(dc, spec.name)
        summary = self.executor.retrieve_summary(vm, vm_name=spec.name)

        vcpu = spec.vcpu if summary.get('num_cpu') != spec.vcpu else None
        memory_mb = spec.memory_mb if summary.get('memory_mb') != spec.memory_mb else None
        if vcpu is None and memory_mb is None:
            self.log(f"VM '{spec.name}' already matches desired CPU/memory", "DEBUG")
            return False

        self.log(f"Resizing VM '{spec.name}': vcpu {summary.get('num_cpu')} -> {spec.vcpu}, "
                 f"memory {summary.get('memory_mb')}MB -> {spec.memory_mb}MB")
        config = device_specs.build_resize_config_spec(vcpu=vcpu, memory_mb=memory_mb)
        self.executor.run_task(
            "reconfigure", spec.name,
            lambda: vm.ReconfigVM_Task(spec=config),
            ProvisioningError, cancel_event,
        )
        return True
