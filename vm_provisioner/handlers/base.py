"""Base handler class for VM lifecycle operations"""

import threading
from typing import Optional

from vm_provisioner.errors import OperationCancelledError


class BaseHandler:
    """Base class for all lifecycle handlers with shared utilities"""

    def __init__(self, executor):
        """
        Initialize handler with reference to the controller

        Args:
            executor: VirtualMachineController providing vCenter mixins,
                settings and logging
        """
        self.executor = executor

    @property
    def settings(self):
        return self.executor.settings

    def log(self, message: str, level: str = "INFO"):
        """
        Log message with timestamp

        Args:
            message: Log message
            level: Log level (INFO, WARN, ERROR, DEBUG)
        """
        self.executor.log(message, level)

    def check_cancelled(self, cancel_event: Optional[threading.Event], operation: str,
                        vm_name: Optional[str] = None):
        """
        Raise if the caller's cancel signal fired.
        Use this between steps of long-running operations.
        """
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("cancelled by caller", operation=operation, vm_name=vm_name)

    def wait(self, seconds: float, cancel_event: Optional[threading.Event], operation: str,
             vm_name: Optional[str] = None):
        """Blocking, cancellable sleep on the calling thread."""
        if seconds <= 0:
            return
        if self.executor._wait_or_cancelled(seconds, cancel_event):
            raise OperationCancelledError("cancelled while waiting", operation=operation, vm_name=vm_name)
