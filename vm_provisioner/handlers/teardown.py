"""Power-off and destroy handler"""

import threading
from typing import Optional

from pyVmomi import vim

from vm_provisioner.errors import PropertyRetrievalError, TeardownError
from vm_provisioner.handlers.base import BaseHandler
from vm_provisioner.mixins.vcenter_errors import is_fault


class TeardownHandler(BaseHandler):
    """
    Strict two-phase teardown: power off, then destroy. Each phase is a
    submit-then-wait task; any failure aborts the sequence, possibly leaving
    the VM powered off but not destroyed. Re-running is safe.
    """

    def destroy(self, name: str, datacenter: Optional[str] = None,
                cancel_event: Optional[threading.Event] = None):
        """
        Raises:
            InventoryLookupError: VM not found (left to caller policy)
            TeardownError: power-off or destroy task failed
        """
        dc = self.executor.find_datacenter(datacenter)
        vm = self.executor.find_vm(dc, name)

        self.log(f"Deleting virtual machine: {name}")

        if self._is_powered_off(vm, name):
            self.log(f"VM '{name}' is already powered off - skipping power-off", "DEBUG")
        else:
            self._power_off(vm, name, cancel_event)

        self.check_cancelled(cancel_event, "destroy", name)
        self.executor.run_task(
            "destroy", name,
            lambda: vm.Destroy_Task(),
            TeardownError, cancel_event,
        )
        self.log(f"Deleted virtual machine: {name}")

    def _power_off(self, vm, name: str, cancel_event: Optional[threading.Event]):
        try:
            self.executor.run_task(
                "power_off", name,
                lambda: vm.PowerOffVM_Task(),
                TeardownError, cancel_event,
            )
        except TeardownError as e:
            # vCenter rejects powering off a VM that is already off
            if not is_fault(e.__cause__, 'vim.fault.InvalidPowerState'):
                raise
            self.log(f"VM '{name}' was already powered off: {e.message}", "WARN")

    def _is_powered_off(self, vm, name: str) -> bool:
        try:
            summary = self.executor.retrieve_summary(vm, vm_name=name)
        except PropertyRetrievalError as e:
            # Unknown state: attempt the power-off and let vCenter decide
            self.log(f"Could not read power state before teardown: {e}", "WARN")
            return False
        return summary.get('power_state') == vim.VirtualMachinePowerState.poweredOff
