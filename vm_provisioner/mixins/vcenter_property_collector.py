"""
vCenter PropertyCollector access for single VMs.

Fetches the ``summary`` property bag of one VM in a single round trip
instead of walking the managed object attribute by attribute.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pyVmomi import vim

from vm_provisioner.errors import PropertyRetrievalError
from vm_provisioner.mixins.vcenter_errors import format_task_error

logger = logging.getLogger(__name__)


SUMMARY_PROPERTIES: List[str] = ["summary"]


def _parse_object_content(oc) -> Tuple[Any, Dict[str, Any]]:
    """
    Parse PropertyCollector ObjectContent into (obj, props) tuple.

    Args:
        oc: vim.PropertyCollector.ObjectContent

    Returns:
        Tuple of (vim_object, {property_name: property_value})
    """
    obj = oc.obj
    props = {p.name: p.val for p in (oc.propSet or [])}
    return obj, props


def _build_filter_spec(vm, path_set: List[str]) -> vim.PropertyCollector.FilterSpec:
    """FilterSpec selecting ``path_set`` on exactly one VM."""
    obj_spec = vim.PropertyCollector.ObjectSpec(obj=vm, skip=False)
    prop_spec = vim.PropertyCollector.PropertySpec(
        type=vim.VirtualMachine,
        pathSet=path_set,
        all=False
    )
    return vim.PropertyCollector.FilterSpec(objectSet=[obj_spec], propSet=[prop_spec])


def summary_to_dict(summary) -> Dict[str, Any]:
    """Flatten a vim.vm.Summary into the fields the controller tracks."""
    config = summary.config if summary else None
    runtime = summary.runtime if summary else None
    guest = summary.guest if summary else None
    return {
        'name': config.name if config else None,
        'memory_mb': config.memorySizeMB if config else None,
        'num_cpu': config.numCpu if config else None,
        'boot_time': runtime.bootTime if runtime else None,
        'power_state': str(runtime.powerState) if runtime and runtime.powerState else None,
        'guest_ip': (guest.ipAddress or "") if guest else "",
    }


class VCenterPropertyCollectorMixin:
    """Mixin retrieving VM summaries through the session's PropertyCollector."""

    def retrieve_summary(self, vm, vm_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Retrieve the summary property bag of one VM.

        Args:
            vm: VM managed object
            vm_name: Name used in errors; defaults to the managed object id

        Returns:
            {'name', 'memory_mb', 'num_cpu', 'boot_time', 'power_state', 'guest_ip'}

        Raises:
            PropertyRetrievalError: the collector call failed or returned nothing
        """
        vm_name = vm_name or getattr(vm, "_moId", None)
        try:
            collector = self.content.propertyCollector
            results = collector.RetrieveContents([_build_filter_spec(vm, SUMMARY_PROPERTIES)])
        except Exception as e:
            raise PropertyRetrievalError(format_task_error(e), operation="retrieve_summary",
                                         vm_name=vm_name) from e

        if not results:
            raise PropertyRetrievalError("no properties returned", operation="retrieve_summary",
                                         vm_name=vm_name)

        _, props = _parse_object_content(results[0])
        summary = summary_to_dict(props.get('summary'))
        logger.debug("Summary for %s: %s", summary.get('name'), summary)
        return summary
