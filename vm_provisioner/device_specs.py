"""
Builders for vSphere config, clone and customization specs.

Maps the desired-state models onto pyVmomi ``vim.vm.*`` data objects:
config specs for fresh VMs, clone/relocate specs for template deploys,
virtual disk and NIC device changes, and Linux guest customization.

Functions here never call vCenter; managed objects are only assigned into
the specs, never read, except for distributed port groups whose backing
needs the switch UUID.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence

from pyVmomi import vim

from vm_provisioner.models import DiskSpec, NetworkInterfaceSpec, VirtualMachineSpec

logger = logging.getLogger(__name__)


# Temporary negative device keys; vCenter assigns real keys on apply
SCSI_CONTROLLER_KEY = -100
DISK_KEY_BASE = -200
NIC_KEY_BASE = -300

# Unit 7 is reserved for the SCSI controller itself
SCSI_RESERVED_UNIT = 7
SCSI_MAX_UNIT = 15

ADAPTER_CLASSES = {
    "vmxnet3": vim.vm.device.VirtualVmxnet3,
    "vmxnet2": vim.vm.device.VirtualVmxnet2,
    "e1000": vim.vm.device.VirtualE1000,
    "e1000e": vim.vm.device.VirtualE1000e,
    "pcnet32": vim.vm.device.VirtualPCNet32,
}
DEFAULT_ADAPTER_TYPE = "vmxnet3"


# =============================================================================
# Device changes
# =============================================================================

def build_scsi_controller_spec(key: int = SCSI_CONTROLLER_KEY) -> vim.vm.device.VirtualDeviceSpec:
    """Add an LSI Logic parallel SCSI controller on bus 0."""
    controller = vim.vm.device.VirtualLsiLogicController()
    controller.key = key
    controller.busNumber = 0
    controller.sharedBus = vim.vm.device.VirtualSCSIController.Sharing.noSharing

    controller_spec = vim.vm.device.VirtualDeviceSpec()
    controller_spec.operation = vim.vm.device.VirtualDeviceSpec.Operation.add
    controller_spec.device = controller
    return controller_spec


def build_disk_spec(
    size_mb: int,
    controller_key: int,
    unit_number: int,
    key: int,
    datastore_name: Optional[str] = None,
    iops: Optional[int] = None,
) -> vim.vm.device.VirtualDeviceSpec:
    """
    Add a new thin-provisioned persistent disk.

    Args:
        size_mb: Capacity in MB
        controller_key: Key of the SCSI controller the disk attaches to
        unit_number: Free unit on that controller
        key: Temporary device key
        datastore_name: Place the VMDK on this datastore, else next to the VM
        iops: Optional storage I/O reservation
    """
    disk_spec = vim.vm.device.VirtualDeviceSpec()
    disk_spec.operation = vim.vm.device.VirtualDeviceSpec.Operation.add
    disk_spec.fileOperation = vim.vm.device.VirtualDeviceSpec.FileOperation.create

    backing = vim.vm.device.VirtualDisk.FlatVer2BackingInfo()
    backing.diskMode = 'persistent'
    backing.thinProvisioned = True
    backing.fileName = f"[{datastore_name}]" if datastore_name else ""

    disk = vim.vm.device.VirtualDisk()
    disk.key = key
    disk.backing = backing
    disk.controllerKey = controller_key
    disk.unitNumber = unit_number
    disk.capacityInKB = int(size_mb) * 1024

    if iops:
        disk.storageIOAllocation = vim.StorageResourceManager.IOAllocationInfo(reservation=int(iops))

    disk_spec.device = disk
    return disk_spec


def find_scsi_controller(devices: Iterable[Any]) -> Optional[Any]:
    """First SCSI controller in a device list."""
    for device in devices:
        if isinstance(device, vim.vm.device.VirtualSCSIController):
            return device
    return None


def next_unit_numbers(devices: Iterable[Any], controller_key: int, count: int) -> List[int]:
    """Return ``count`` free unit numbers on the controller, skipping unit 7."""
    used = {
        device.unitNumber
        for device in devices
        if getattr(device, 'controllerKey', None) == controller_key and getattr(device, 'unitNumber', None) is not None
    }
    used.add(SCSI_RESERVED_UNIT)

    free = []
    unit = 0
    while len(free) < count:
        if unit > SCSI_MAX_UNIT:
            raise ValueError(f"No free unit numbers left on SCSI controller {controller_key}")
        if unit not in used:
            free.append(unit)
        unit += 1
    return free


def build_nic_spec(nic: NetworkInterfaceSpec, network: Any, key: int) -> vim.vm.device.VirtualDeviceSpec:
    """Add a NIC connected to ``network`` (standard or distributed port group)."""
    adapter_type = nic.adapter_type or DEFAULT_ADAPTER_TYPE
    device = ADAPTER_CLASSES[adapter_type]()

    if isinstance(network, vim.dvs.DistributedVirtualPortgroup):
        backing = vim.vm.device.VirtualEthernetCard.DistributedVirtualPortBackingInfo()
        backing.port = vim.dvs.PortConnection(
            portgroupKey=network.key,
            switchUuid=network.config.distributedVirtualSwitch.uuid,
        )
    else:
        backing = vim.vm.device.VirtualEthernetCard.NetworkBackingInfo()
        backing.deviceName = nic.label
        if network is not None:
            backing.network = network

    device.key = key
    device.backing = backing
    device.addressType = 'generated'
    device.connectable = vim.vm.device.VirtualDevice.ConnectInfo()
    device.connectable.startConnected = True
    device.connectable.allowGuestControl = True
    device.connectable.connected = True

    nic_spec = vim.vm.device.VirtualDeviceSpec()
    nic_spec.operation = vim.vm.device.VirtualDeviceSpec.Operation.add
    nic_spec.device = device
    return nic_spec


def build_nic_remove_specs(devices: Iterable[Any]) -> List[vim.vm.device.VirtualDeviceSpec]:
    """Remove every NIC a template carries so the desired NICs replace them."""
    removals = []
    for device in devices:
        if isinstance(device, vim.vm.device.VirtualEthernetCard):
            nic_spec = vim.vm.device.VirtualDeviceSpec()
            nic_spec.operation = vim.vm.device.VirtualDeviceSpec.Operation.remove
            nic_spec.device = device
            removals.append(nic_spec)
    return removals


def build_nic_specs(
    interfaces: Sequence[NetworkInterfaceSpec],
    networks: Sequence[Any],
) -> List[vim.vm.device.VirtualDeviceSpec]:
    return [
        build_nic_spec(nic, network, NIC_KEY_BASE - index)
        for index, (nic, network) in enumerate(zip(interfaces, networks))
    ]


# =============================================================================
# Top-level specs
# =============================================================================

def build_create_config_spec(
    spec: VirtualMachineSpec,
    datastore_name: str,
    networks: Sequence[Any],
    guest_id: str,
) -> vim.vm.ConfigSpec:
    """
    Config spec for a VM built from scratch: CPU, memory, one SCSI
    controller, the boot disk plus any additional disks, and the NICs.
    """
    config_spec = vim.vm.ConfigSpec()
    config_spec.name = spec.name
    config_spec.numCPUs = spec.vcpu
    config_spec.memoryMB = spec.memory_mb
    config_spec.guestId = guest_id
    config_spec.files = vim.vm.FileInfo(vmPathName=f"[{datastore_name}]")

    device_changes = [build_scsi_controller_spec()]
    units = next_unit_numbers([], SCSI_CONTROLLER_KEY, len(spec.hard_disks))
    for index, (disk, unit) in enumerate(zip(spec.hard_disks, units)):
        device_changes.append(build_disk_spec(
            size_mb=disk.size,
            controller_key=SCSI_CONTROLLER_KEY,
            unit_number=unit,
            key=DISK_KEY_BASE - index,
            datastore_name=disk.datastore or datastore_name,
            iops=disk.iops,
        ))
    device_changes.extend(build_nic_specs(spec.network_interfaces, networks))

    config_spec.deviceChange = device_changes
    logger.debug("Create spec for %s: %d disk(s), %d nic(s)",
                 spec.name, len(spec.hard_disks), len(spec.network_interfaces))
    return config_spec


def build_clone_config_spec(
    spec: VirtualMachineSpec,
    template_devices: Iterable[Any],
    networks: Sequence[Any],
) -> vim.vm.ConfigSpec:
    """CPU/memory override and NIC replacement applied while cloning."""
    config_spec = vim.vm.ConfigSpec()
    config_spec.numCPUs = spec.vcpu
    config_spec.memoryMB = spec.memory_mb

    device_changes = build_nic_remove_specs(template_devices)
    device_changes.extend(build_nic_specs(spec.network_interfaces, networks))
    config_spec.deviceChange = device_changes
    return config_spec


def build_extra_disks_config_spec(
    disks: Sequence[DiskSpec],
    devices: Iterable[Any],
    datastore_name: Optional[str] = None,
) -> Optional[vim.vm.ConfigSpec]:
    """
    Reconfigure spec adding ``disks`` to an existing VM (template clone).

    Returns None when there is nothing to add.
    """
    if not disks:
        return None

    devices = list(devices)
    controller = find_scsi_controller(devices)
    if controller is None:
        raise ValueError("No SCSI controller found on VM")

    units = next_unit_numbers(devices, controller.key, len(disks))
    device_changes = [
        build_disk_spec(
            size_mb=disk.size,
            controller_key=controller.key,
            unit_number=unit,
            key=DISK_KEY_BASE - index,
            datastore_name=disk.datastore or datastore_name,
            iops=disk.iops,
        )
        for index, (disk, unit) in enumerate(zip(disks, units))
    ]
    return vim.vm.ConfigSpec(deviceChange=device_changes)


def build_customization_spec(
    spec: VirtualMachineSpec,
    domain: str,
    time_zone: str,
    dns_suffixes: Sequence[str],
    dns_servers: Sequence[str],
) -> vim.vm.customization.Specification:
    """
    Linux guest customization: hostname, domain, time zone, DNS lists and
    one adapter mapping per NIC (fixed IP or DHCP).
    """
    ident = vim.vm.customization.LinuxPrep()
    ident.hostName = vim.vm.customization.FixedName(name=spec.name.replace('_', '-')[:63])
    ident.domain = domain
    ident.timeZone = time_zone
    ident.hwClockUTC = True

    global_ip = vim.vm.customization.GlobalIPSettings()
    global_ip.dnsSuffixList = list(dns_suffixes)
    global_ip.dnsServerList = list(dns_servers)

    adapters = []
    for nic in spec.network_interfaces:
        ip_settings = vim.vm.customization.IPSettings()
        if nic.is_static:
            ip_settings.ip = vim.vm.customization.FixedIp(ipAddress=nic.ip_address)
            ip_settings.subnetMask = nic.subnet_mask or '255.255.255.0'
            if spec.gateway:
                ip_settings.gateway = [spec.gateway]
        else:
            ip_settings.ip = vim.vm.customization.DhcpIpGenerator()

        adapter = vim.vm.customization.AdapterMapping()
        adapter.adapter = ip_settings
        adapters.append(adapter)

    custom_spec = vim.vm.customization.Specification()
    custom_spec.identity = ident
    custom_spec.globalIPSettings = global_ip
    custom_spec.nicSettingMap = adapters
    return custom_spec


def build_clone_spec(
    pool: Any,
    datastore: Optional[Any],
    config: vim.vm.ConfigSpec,
    customization: Optional[vim.vm.customization.Specification] = None,
) -> vim.vm.CloneSpec:
    """Clone spec: placement, config overrides, customization; powered off."""
    relocate_spec = vim.vm.RelocateSpec()
    if pool is not None:
        relocate_spec.pool = pool
    if datastore is not None:
        relocate_spec.datastore = datastore

    clone_spec = vim.vm.CloneSpec()
    clone_spec.location = relocate_spec
    clone_spec.config = config
    clone_spec.powerOn = False
    clone_spec.template = False
    if customization is not None:
        clone_spec.customization = customization
    return clone_spec


def build_resize_config_spec(vcpu: Optional[int] = None, memory_mb: Optional[int] = None) -> vim.vm.ConfigSpec:
    """In-place CPU/memory reconfiguration; None leaves the value unchanged."""
    return vim.vm.ConfigSpec(numCPUs=vcpu, memoryMB=memory_mb)


def describe_device_changes(config_spec: vim.vm.ConfigSpec) -> List[Dict[str, Any]]:
    """Compact summary of a spec's device changes for debug logging and tests."""
    summary = []
    for change in config_spec.deviceChange or []:
        device = change.device
        summary.append({
            'operation': str(change.operation),
            'type': type(device).__name__.rsplit('.', 1)[-1],
            'key': device.key,
            'capacity_kb': getattr(device, 'capacityInKB', None),
            'unit': getattr(device, 'unitNumber', None),
        })
    return summary
