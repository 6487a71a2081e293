"""vCenter task submission mixin"""

import time
import threading
from typing import Any, Callable, Optional, Type

from pyVmomi import vim

from vm_provisioner.errors import OperationCancelledError, VmProvisionerError
from vm_provisioner.mixins.vcenter_errors import format_task_error


class VCenterTaskMixin:
    """Mixin providing the single submit -> wait -> translate-failure path
    used by every mutating VM operation (clone, create, reconfigure,
    power-on, power-off, destroy).
    """

    def run_task(
        self,
        operation: str,
        vm_name: str,
        submit: Callable[[], Any],
        error_cls: Type[VmProvisionerError],
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """
        Submit a vCenter task and block until it reaches a terminal state.

        Args:
            operation: Operation name used in logs and errors (e.g. "clone")
            vm_name: VM the task acts on
            submit: Zero-arg callable returning a vim.Task
            error_cls: Exception raised on submit or task failure
            cancel_event: Optional signal aborting the wait

        Returns:
            task.info.result (e.g. the new VM for clone/create)
        """
        self.log(f"Submitting {operation} task for VM '{vm_name}'")
        try:
            task = submit()
        except Exception as e:
            raise error_cls(format_task_error(e), operation=operation, vm_name=vm_name) from e

        result = self.wait_for_task(task, operation, vm_name, error_cls, cancel_event=cancel_event)
        self.log(f"✓ {operation} task completed for VM '{vm_name}'")
        return result

    def wait_for_task(
        self,
        task: Any,
        operation: str,
        vm_name: str,
        error_cls: Type[VmProvisionerError],
        cancel_event: Optional[threading.Event] = None,
    ) -> Any:
        """Wait for vCenter task to complete"""
        timeout = self.settings.task_timeout
        interval = self.settings.task_poll_interval
        start_time = time.time()

        while time.time() - start_time < timeout:
            try:
                info = task.info
                state = info.state
            except Exception as e:
                raise error_cls(format_task_error(e), operation=operation, vm_name=vm_name) from e

            if state == vim.TaskInfo.State.success:
                return info.result
            elif state == vim.TaskInfo.State.error:
                fault = info.error
                error_msg = format_task_error(fault) if fault else "Unknown error"
                cause = fault if isinstance(fault, BaseException) else None
                raise error_cls(error_msg, operation=operation, vm_name=vm_name) from cause

            if info.progress:
                self.log(f"  {operation} progress: {info.progress}%", "DEBUG")

            if self._wait_or_cancelled(interval, cancel_event):
                self._cancel_task(task, operation, vm_name)
                raise OperationCancelledError("cancelled while waiting for task",
                                              operation=operation, vm_name=vm_name)

        raise error_cls(f"Task timed out after {timeout}s", operation=operation, vm_name=vm_name)

    @staticmethod
    def _wait_or_cancelled(seconds: float, cancel_event: Optional[threading.Event]) -> bool:
        """Block for ``seconds``; True if the cancel signal fired."""
        if cancel_event is None:
            time.sleep(seconds)
            return False
        return cancel_event.wait(seconds)

    def _cancel_task(self, task: Any, operation: str, vm_name: str):
        """Ask vCenter to cancel a running task; not every task is cancelable."""
        try:
            task.CancelTask()
            self.log(f"Requested cancellation of {operation} task for VM '{vm_name}'", "WARN")
        except Exception as e:
            self.log(f"{operation} task for VM '{vm_name}' could not be cancelled: {format_task_error(e)}", "WARN")
