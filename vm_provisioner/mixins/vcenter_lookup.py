"""vCenter inventory lookup mixin"""

from typing import Any, List, Optional, Tuple

from pyVmomi import vim

from vm_provisioner.errors import InventoryLookupError


class VCenterLookupMixin:
    """Mixin resolving inventory objects by name.

    VMs are addressed by name within a datacenter scope; vCenter guarantees
    VM name uniqueness per folder, the first match wins.
    """

    def _container_view(self, root, obj_types: List[Any]) -> List[Any]:
        """List objects of the given types below ``root`` via a ContainerView."""
        content = self.content
        view = content.viewManager.CreateContainerView(root or content.rootFolder, obj_types, True)
        try:
            return list(view.view)
        finally:
            view.Destroy()

    def _find_by_name(self, root, obj_types: List[Any], name: str) -> Optional[Any]:
        for obj in self._container_view(root, obj_types):
            if obj.name == name:
                return obj
        return None

    def find_datacenter(self, name: Optional[str] = None):
        """
        Resolve a datacenter by name, or the default one.

        The default is only defined when the inventory holds exactly one
        datacenter.

        Raises:
            InventoryLookupError: no match, or no unambiguous default
        """
        datacenters = self._container_view(None, [vim.Datacenter])
        if name:
            for dc in datacenters:
                if dc.name == name:
                    return dc
            raise InventoryLookupError("datacenter", name)

        if len(datacenters) == 1:
            return datacenters[0]
        self.log(f"Default datacenter is ambiguous ({len(datacenters)} found)", "WARN")
        raise InventoryLookupError("datacenter", None)

    def find_vm(self, datacenter, name: str):
        """Find a VM (or template) by name in the datacenter's VM folder."""
        vm = self._find_by_name(datacenter.vmFolder, [vim.VirtualMachine], name)
        if vm is None:
            raise InventoryLookupError("vm", name, scope=datacenter.name)
        return vm

    def find_resource_pool(self, datacenter, cluster: Optional[str] = None,
                           resource_pool: Optional[str] = None):
        """
        Resolve the target resource pool.

        Order: named pool (inside the named cluster when given), the named
        cluster's root pool, then the root pool of the datacenter's first
        compute resource.
        """
        compute = None
        if cluster:
            compute = self._find_by_name(datacenter.hostFolder, [vim.ComputeResource], cluster)
            if compute is None:
                raise InventoryLookupError("cluster", cluster, scope=datacenter.name)

        if resource_pool:
            root = compute.resourcePool if compute else datacenter.hostFolder
            pool = self._find_by_name(root, [vim.ResourcePool], resource_pool)
            if pool is None:
                raise InventoryLookupError("resource_pool", resource_pool, scope=datacenter.name)
            return pool

        if compute is not None:
            return compute.resourcePool

        for candidate in self._container_view(datacenter.hostFolder, [vim.ComputeResource]):
            if candidate.resourcePool is not None:
                return candidate.resourcePool
        raise InventoryLookupError("resource_pool", None, scope=datacenter.name)

    def find_datastore(self, datacenter, name: Optional[str] = None) -> Tuple[Any, str]:
        """
        Resolve a datastore by name, or the datacenter's first accessible one.

        Returns:
            (datastore object, datastore name)
        """
        for ds in datacenter.datastore:
            if name and ds.name == name:
                return ds, ds.name
            if not name and ds.summary.accessible:
                return ds, ds.name
        raise InventoryLookupError("datastore", name, scope=datacenter.name)

    def find_network(self, datacenter, label: str):
        """Find a standard network or distributed port group by name."""
        for network in datacenter.network:
            if network.name == label:
                return network
        raise InventoryLookupError("network", label, scope=datacenter.name)
