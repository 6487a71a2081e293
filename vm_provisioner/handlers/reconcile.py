"""Live state reconciliation handler"""

import threading
from typing import Dict, Optional

from vm_provisioner.handlers.base import BaseHandler
from vm_provisioner.models import LiveVirtualMachine


class ReconcileHandler(BaseHandler):
    """Reads a VM's summary and resolves its effective IP address."""

    def reconcile(
        self,
        name: str,
        datacenter: Optional[str] = None,
        static_ip: Optional[str] = None,
        boot_delay: int = 0,
        cancel_event: Optional[threading.Event] = None,
    ) -> LiveVirtualMachine:
        """
        Snapshot the live VM.

        Raises:
            InventoryLookupError: datacenter or VM not found; callers treat
                this as "deleted outside the controller"
        """
        dc = self.executor.find_datacenter(datacenter)
        vm = self.executor.find_vm(dc, name)

        summary = self.executor.retrieve_summary(vm, vm_name=name)
        ip_address = self.executor.convergence_handler.resolve_address(
            vm,
            static_ip=static_ip,
            boot_delay=boot_delay,
            cancel_event=cancel_event,
            summary=summary,
            vm_name=name,
        )

        live = LiveVirtualMachine(
            name=name,
            memory_mb=summary.get('memory_mb'),
            vcpu=summary.get('num_cpu'),
            boot_time=summary.get('boot_time'),
            ip_address=ip_address,
        )
        self.log(f"Reconciled '{name}': memory={live.memory_mb}MB, vcpu={live.vcpu}, ip={live.ip_address}")
        return live

    @staticmethod
    def connection_info(live: LiveVirtualMachine) -> Dict[str, str]:
        """Connection details for provisioners that need to reach the guest."""
        return {"host": live.ip_address or ""}
