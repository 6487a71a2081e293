"""
Pydantic models for desired and observed virtual machine state.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ADAPTER_TYPES = ("vmxnet3", "vmxnet2", "e1000", "e1000e", "pcnet32")


class NetworkInterfaceSpec(BaseModel):
    """One NIC. Static addressing when ip_address is set, DHCP otherwise."""
    label: str = Field(..., min_length=1)
    ip_address: Optional[str] = None
    subnet_mask: Optional[str] = None
    adapter_type: Optional[str] = None

    @field_validator("ip_address", "subnet_mask", "adapter_type", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("adapter_type")
    @classmethod
    def _known_adapter(cls, value):
        if value is not None and value not in ADAPTER_TYPES:
            raise ValueError(f"adapter_type must be one of {', '.join(ADAPTER_TYPES)}")
        return value

    @property
    def is_static(self) -> bool:
        return bool(self.ip_address)


class DiskSpec(BaseModel):
    """One virtual disk. Size is in MB."""
    size: Optional[int] = Field(default=None, gt=0)
    iops: Optional[int] = Field(default=None, gt=0)
    datastore: Optional[str] = None
    template: Optional[str] = None

    @field_validator("size", "iops", mode="before")
    @classmethod
    def _zero_to_none(cls, value):
        # Unset ints arrive as 0 or "" from loosely typed config files
        if value in (0, ""):
            return None
        return value


class VirtualMachineSpec(BaseModel):
    """
    Desired state of a virtual machine.

    ``template`` and ``datastore`` may be given on the VM or on the first
    disk entry; the first-disk values are lifted when the VM-level ones are
    empty.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1)
    vcpu: int = Field(..., gt=0)
    memory_mb: int = Field(..., gt=0, alias="memory")
    boot_delay: int = Field(default=0, ge=0)

    datacenter: Optional[str] = None
    cluster: Optional[str] = None
    resource_pool: Optional[str] = None
    datastore: Optional[str] = None

    gateway: Optional[str] = None
    domain: Optional[str] = None
    time_zone: Optional[str] = None
    dns_suffixes: List[str] = Field(default_factory=list, alias="dns_suffix")
    dns_servers: List[str] = Field(default_factory=list, alias="dns_server")

    template: Optional[str] = None
    network_interfaces: List[NetworkInterfaceSpec] = Field(..., min_length=1, alias="network_interface")
    hard_disks: List[DiskSpec] = Field(..., min_length=1, alias="disk")

    @model_validator(mode="after")
    def _lift_first_disk_placement(self):
        first = self.hard_disks[0]
        if not self.template and first.template:
            self.template = first.template
        if not self.datastore and first.datastore:
            self.datastore = first.datastore
        return self

    @property
    def first_interface_ip(self) -> Optional[str]:
        return self.network_interfaces[0].ip_address

    @classmethod
    def from_config(cls, data: Dict[str, Any]) -> "VirtualMachineSpec":
        """Parse a resource configuration block (original attribute names)."""
        return cls.model_validate(data)


class VmHandle(BaseModel):
    """Opaque reference returned by provisioning; the name is the lookup key."""
    name: str
    datacenter: Optional[str] = None
    moref: Optional[str] = None


class LiveVirtualMachine(BaseModel):
    """Snapshot of platform truth for one VM."""
    model_config = ConfigDict(frozen=True)

    name: str
    memory_mb: Optional[int] = None
    vcpu: Optional[int] = None
    boot_time: Optional[datetime] = None
    ip_address: Optional[str] = None


class TrackedState(BaseModel):
    """Record kept by the external state store for one resource instance."""
    id: str = ""
    memory_mb: Optional[int] = None
    vcpu: Optional[int] = None
    ip_address: Optional[str] = None
    connection_info: Dict[str, str] = Field(default_factory=dict)
    updated_at: Optional[str] = None

    @property
    def exists(self) -> bool:
        return bool(self.id)
