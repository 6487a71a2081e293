"""
vCenter Error Code Mapping

Maps vCenter/vModl fault types raised by VM lifecycle tasks to
user-friendly messages.
"""

from typing import Optional, Dict, Tuple, Any
import re

# Mapping of vCenter fault patterns to user-friendly messages
VCENTER_ERROR_MESSAGES: Dict[str, Dict[str, Any]] = {
    'vmodl.fault.RequestCanceled': {
        'title': 'Task Cancelled',
        'message': 'The task was cancelled by a user in vCenter.',
        'severity': 'warning',
        'is_recoverable': True,
    },
    'vmodl.fault.ManagedObjectNotFound': {
        'title': 'Object Removed',
        'message': 'The virtual machine or one of its resources no longer exists in vCenter.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.DuplicateName': {
        'title': 'Duplicate Name',
        'message': 'A virtual machine with this name already exists in the target folder.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.InvalidPowerState': {
        'title': 'Invalid Power State',
        'message': 'The virtual machine is not in a power state that allows this operation.',
        'severity': 'warning',
        'is_recoverable': True,
    },
    'vim.fault.TaskInProgress': {
        'title': 'Task In Progress',
        'message': 'Another task is already running against this virtual machine.',
        'severity': 'warning',
        'is_recoverable': True,
    },
    'vim.fault.InsufficientResourcesFault': {
        'title': 'Insufficient Resources',
        'message': 'The resource pool or cluster cannot satisfy the requested CPU or memory.',
        'severity': 'error',
        'is_recoverable': True,
    },
    'vim.fault.NoDiskSpace': {
        'title': 'Datastore Full',
        'message': 'The target datastore does not have enough free space for the disks.',
        'severity': 'error',
        'is_recoverable': True,
    },
    'vim.fault.InvalidDatastore': {
        'title': 'Invalid Datastore',
        'message': 'The datastore is inaccessible or not valid for this placement.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.FileAlreadyExists': {
        'title': 'File Conflict',
        'message': 'VM files already exist at the target path. Remove the stale folder on the datastore.',
        'severity': 'error',
        'is_recoverable': True,
    },
    'vim.fault.CustomizationFault': {
        'title': 'Guest Customization Failed',
        'message': 'Guest customization could not be applied. Check VMware Tools and the template guest OS.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.VmConfigFault': {
        'title': 'VM Configuration Issue',
        'message': 'The requested hardware configuration is invalid for this virtual machine.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.Timedout': {
        'title': 'Operation Timeout',
        'message': 'The vCenter operation timed out. The host may be busy or resources constrained.',
        'severity': 'warning',
        'is_recoverable': True,
    },
    'vim.fault.InvalidLogin': {
        'title': 'Authentication Failed',
        'message': 'Invalid credentials for vCenter connection.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.NoPermission': {
        'title': 'Permission Denied',
        'message': 'Insufficient permissions to perform this operation.',
        'severity': 'error',
        'is_recoverable': False,
    },
    'vim.fault.NotSupported': {
        'title': 'Operation Not Supported',
        'message': 'This operation is not supported on the target host or cluster.',
        'severity': 'error',
        'is_recoverable': False,
    },
}


def parse_vcenter_error(error: Any) -> Tuple[str, Optional[Dict[str, Any]]]:
    """
    Parse a vCenter exception (or task ``info.error`` fault) and return a
    user-friendly message.

    Returns:
        Tuple of (friendly_message, error_info_dict or None)
    """
    error_str = str(error)
    error_type = type(error).__name__

    # Try to match by exception type name or fault pattern in error string
    for fault_pattern, info in VCENTER_ERROR_MESSAGES.items():
        if fault_pattern in error_type or fault_pattern in error_str:
            # Extract the actual message if present
            msg_match = re.search(r"msg\s*=\s*'([^']+)'", error_str)
            actual_msg = msg_match.group(1) if msg_match else getattr(error, 'msg', None)

            return info['message'], {
                'title': info['title'],
                'severity': info['severity'],
                'is_recoverable': info['is_recoverable'],
                'original_message': actual_msg,
                'fault_type': fault_pattern,
            }

    # Faults carry their text in .msg
    fault_msg = getattr(error, 'msg', None)
    if isinstance(fault_msg, str) and fault_msg:
        return fault_msg, None

    # For unknown errors, try to extract the msg field
    msg_match = re.search(r"msg\s*=\s*'([^']+)'", error_str)
    if msg_match:
        return msg_match.group(1), None

    # Return original error string
    return error_str, None


def format_task_error(error: Any) -> str:
    """
    Format a vCenter task error for user display.
    """
    friendly_msg, info = parse_vcenter_error(error)

    if info:
        detail = f" ({info['original_message']})" if info.get('original_message') else ""
        return f"{info['title']}: {friendly_msg}{detail}"

    return friendly_msg


def is_fault(error: Any, fault_pattern: str) -> bool:
    """True if ``error`` matches the given entry of the fault table."""
    _, info = parse_vcenter_error(error)
    return bool(info) and info['fault_type'] == fault_pattern
