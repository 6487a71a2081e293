"""
Virtual machine lifecycle controller.

Composes the vCenter mixins with the lifecycle handlers and keeps the
tracked-state record in step with what vCenter reports:

- create: provision, record the identity, then read back live state
- read: reconcile live state, or forget the identity if the VM is gone
- update: resize CPU/memory in place, then read back
- delete: power off and destroy, then forget the identity
"""

import logging
import threading
from datetime import datetime
from typing import Optional

from vm_provisioner.config import Settings, settings as default_settings
from vm_provisioner.errors import InventoryLookupError
from vm_provisioner.handlers import (
    ConvergenceHandler,
    ProvisioningHandler,
    ReconcileHandler,
    TeardownHandler,
    UpdateHandler,
)
from vm_provisioner.mixins import (
    VCenterLookupMixin,
    VCenterPropertyCollectorMixin,
    VCenterSessionMixin,
    VCenterTaskMixin,
)
from vm_provisioner.models import TrackedState, VirtualMachineSpec
from vm_provisioner.state_store import StateStore, build_state_store
from vm_provisioner.utils import _normalize_unicode, _safe_to_stdout

logger = logging.getLogger("vm_provisioner")

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


class VirtualMachineController(VCenterSessionMixin, VCenterLookupMixin,
                               VCenterPropertyCollectorMixin, VCenterTaskMixin):
    def __init__(self, settings: Optional[Settings] = None, state_store: Optional[StateStore] = None):
        self.settings = settings or default_settings
        self.state_store = state_store if state_store is not None else build_state_store(self.settings)
        self.vcenter_conn = None

        self.provisioning_handler = ProvisioningHandler(self)
        self.convergence_handler = ConvergenceHandler(self)
        self.reconcile_handler = ReconcileHandler(self)
        self.teardown_handler = TeardownHandler(self)
        self.update_handler = UpdateHandler(self)

    def log(self, message: str, level: str = "INFO"):
        """Log with timestamp"""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        msg = _safe_to_stdout(_normalize_unicode(message))
        logger.log(LOG_LEVELS.get(level, logging.INFO), f"[{timestamp}] [{level}] {msg}")

    def create(self, spec: VirtualMachineSpec,
               cancel_event: Optional[threading.Event] = None) -> TrackedState:
        """Provision the VM; the identity is recorded only once provisioning succeeded."""
        self.provisioning_handler.provision(spec, cancel_event=cancel_event)
        self.state_store.put(spec.name, TrackedState(id=spec.name))
        return self.read(spec, cancel_event=cancel_event)

    def read(self, spec: VirtualMachineSpec,
             cancel_event: Optional[threading.Event] = None) -> TrackedState:
        """
        Refresh the tracked record from vCenter.

        A VM deleted outside the controller clears the identity instead of
        failing, so the next apply recreates it.
        """
        try:
            live = self.reconcile_handler.reconcile(
                spec.name,
                datacenter=spec.datacenter,
                static_ip=spec.first_interface_ip,
                boot_delay=spec.boot_delay,
                cancel_event=cancel_event,
            )
        except InventoryLookupError as e:
            self.log(f"VM '{spec.name}' not found ({e}), clearing tracked identity", "WARN")
            self.state_store.clear(spec.name)
            return TrackedState()

        state = TrackedState(
            id=spec.name,
            memory_mb=live.memory_mb,
            vcpu=live.vcpu,
            ip_address=live.ip_address,
            connection_info=self.reconcile_handler.connection_info(live),
        )
        return self.state_store.put(spec.name, state)

    def update(self, spec: VirtualMachineSpec,
               cancel_event: Optional[threading.Event] = None) -> TrackedState:
        self.update_handler.update(spec, cancel_event=cancel_event)
        return self.read(spec, cancel_event=cancel_event)

    def delete(self, spec: VirtualMachineSpec,
               cancel_event: Optional[threading.Event] = None):
        """Tear the VM down; on failure the identity stays so a retry can finish the job."""
        self.teardown_handler.destroy(spec.name, datacenter=spec.datacenter, cancel_event=cancel_event)
        self.state_store.clear(spec.name)

    def apply(self, spec: VirtualMachineSpec,
              cancel_event: Optional[threading.Event] = None) -> TrackedState:
        """Create when untracked, otherwise read and converge CPU/memory."""
        tracked = self.state_store.get(spec.name)
        if not tracked.exists:
            return self.create(spec, cancel_event=cancel_event)

        current = self.read(spec, cancel_event=cancel_event)
        if not current.exists:
            return self.create(spec, cancel_event=cancel_event)
        if current.vcpu != spec.vcpu or current.memory_mb != spec.memory_mb:
            return self.update(spec, cancel_event=cancel_event)
        return current
