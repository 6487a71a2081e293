"""
VM Provisioning Handler

Handles:
- validation of the desired state before any vCenter call
- deploy: clone a template with CPU/memory/NIC overrides and guest
  customization, then reconfigure to add the extra disks
- create: build a fresh VM (SCSI controller, boot disk, extra disks, NICs)
- power-on of the new VM so the guest boots and reports its network state
"""

import threading
from typing import Any, Dict, List, Optional

from vm_provisioner import device_specs
from vm_provisioner.errors import ProvisioningError, ValidationError
from vm_provisioner.handlers.base import BaseHandler
from vm_provisioner.models import VirtualMachineSpec, VmHandle


class ProvisioningHandler(BaseHandler):
    """
    Decides between template deploy and build-from-scratch, submits the
    corresponding tasks and waits for them. No rollback is attempted on
    failure; a half-built VM is left for teardown.
    """

    def validate(self, spec: VirtualMachineSpec):
        """
        Check disk sizing rules.

        Without a template the first disk is the boot disk and must carry a
        size; with one the template supplies it. Every further disk needs a
        size either way.
        """
        if not spec.template and not spec.hard_disks[0].size:
            raise ValidationError("If template argument is not specified, size argument is required.",
                                  operation="validate", vm_name=spec.name)
        for index, disk in enumerate(spec.hard_disks[1:], start=1):
            if not disk.size:
                raise ValidationError(f"Size argument is required for disk {index}.",
                                      operation="validate", vm_name=spec.name)

    def provision(self, spec: VirtualMachineSpec,
                  cancel_event: Optional[threading.Event] = None) -> VmHandle:
        """
        Provision the VM described by ``spec`` and power it on.

        Returns:
            VmHandle; the VM name is the lookup key for later calls

        Raises:
            ValidationError: before any vCenter call
            InventoryLookupError: datacenter/template/pool/datastore/network missing
            ProvisioningError: a task failed to submit or complete
        """
        self.validate(spec)
        self.check_cancelled(cancel_event, "provision", spec.name)

        datacenter = self.executor.find_datacenter(spec.datacenter)

        if spec.template:
            self.log(f"Deploying VM '{spec.name}' from template '{spec.template}'")
            vm = self._deploy_from_template(spec, datacenter, cancel_event)
        else:
            self.log(f"Creating VM '{spec.name}' from scratch")
            vm = self._create_from_scratch(spec, datacenter, cancel_event)

        self.executor.run_task(
            "power_on", spec.name,
            lambda: vm.PowerOnVM_Task(),
            ProvisioningError, cancel_event,
        )

        self.log(f"Created virtual machine: {spec.name}")
        return VmHandle(name=spec.name, datacenter=spec.datacenter, moref=getattr(vm, '_moId', None))

    def guest_settings(self, spec: VirtualMachineSpec) -> Dict[str, Any]:
        """Spec values with the injected defaults filled in."""
        return {
            'domain': spec.domain or self.settings.default_domain,
            'time_zone': spec.time_zone or self.settings.default_time_zone,
            'dns_suffixes': list(spec.dns_suffixes) or list(self.settings.default_dns_suffixes),
            'dns_servers': list(spec.dns_servers) or list(self.settings.default_dns_servers),
        }

    def _resolve_networks(self, spec: VirtualMachineSpec, datacenter) -> List[Any]:
        return [self.executor.find_network(datacenter, nic.label) for nic in spec.network_interfaces]

    def _deploy_from_template(self, spec: VirtualMachineSpec, datacenter,
                              cancel_event: Optional[threading.Event]):
        template = self.executor.find_vm(datacenter, spec.template)
        pool = self.executor.find_resource_pool(datacenter, spec.cluster, spec.resource_pool)
        datastore, datastore_name = (None, None)
        if spec.datastore:
            datastore, datastore_name = self.executor.find_datastore(datacenter, spec.datastore)
        networks = self._resolve_networks(spec, datacenter)

        config = device_specs.build_clone_config_spec(spec, template.config.hardware.device, networks)
        customization = device_specs.build_customization_spec(spec, **self.guest_settings(spec))
        clone_spec = device_specs.build_clone_spec(pool, datastore, config, customization)
        self.log(f"Clone overrides for '{spec.name}': {device_specs.describe_device_changes(config)}", "DEBUG")

        vm = self.executor.run_task(
            "clone", spec.name,
            lambda: template.CloneVM_Task(folder=datacenter.vmFolder, name=spec.name, spec=clone_spec),
            ProvisioningError, cancel_event,
        )
        if vm is None:
            raise ProvisioningError("Clone task completed but no VM returned",
                                    operation="clone", vm_name=spec.name)

        extra_disks = spec.hard_disks[1:]
        if extra_disks:
            self.check_cancelled(cancel_event, "reconfigure", spec.name)
            try:
                reconfig = device_specs.build_extra_disks_config_spec(
                    extra_disks, vm.config.hardware.device, datastore_name)
            except ValueError as e:
                raise ProvisioningError(str(e), operation="reconfigure", vm_name=spec.name) from e
            self.executor.run_task(
                "reconfigure", spec.name,
                lambda: vm.ReconfigVM_Task(spec=reconfig),
                ProvisioningError, cancel_event,
            )
        return vm

    def _create_from_scratch(self, spec: VirtualMachineSpec, datacenter,
                             cancel_event: Optional[threading.Event]):
        pool = self.executor.find_resource_pool(datacenter, spec.cluster, spec.resource_pool)
        _, datastore_name = self.executor.find_datastore(datacenter, spec.datastore)
        networks = self._resolve_networks(spec, datacenter)

        try:
            config = device_specs.build_create_config_spec(
                spec, datastore_name, networks, self.settings.default_guest_id)
        except ValueError as e:
            raise ProvisioningError(str(e), operation="create", vm_name=spec.name) from e
        self.log(f"Create spec for '{spec.name}': {device_specs.describe_device_changes(config)}", "DEBUG")

        vm = self.executor.run_task(
            "create", spec.name,
            lambda: datacenter.vmFolder.CreateVM_Task(config=config, pool=pool),
            ProvisioningError, cancel_event,
        )
        if vm is None:
            raise ProvisioningError("Create task completed but no VM returned",
                                    operation="create", vm_name=spec.name)
        return vm
