"""
Guest network convergence.

After power-on a DHCP guest needs time before VMware Tools reports an IP.
The poller first honours the configured boot delay budget, then polls the
VM summary until a guest IP shows up, within a mandatory attempt bound.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Optional

from vm_provisioner.errors import (
    AddressResolutionError,
    GuestAddressUnavailable,
    PropertyRetrievalError,
)
from vm_provisioner.handlers.base import BaseHandler
from vm_provisioner.utils import seconds_since


class ConvergenceHandler(BaseHandler):
    """
    StaticKnown -> return the declared address, no polling.
    AwaitingBudget -> block for what is left of ``boot_delay`` since boot.
    Polling -> fetch the summary until the guest IP is non-empty.
    """

    def resolve_address(
        self,
        vm: Any,
        static_ip: Optional[str],
        boot_delay: int,
        cancel_event: Optional[threading.Event] = None,
        summary: Optional[Dict[str, Any]] = None,
        vm_name: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Resolve the VM's effective IP address.

        Args:
            vm: VM managed object
            static_ip: First NIC's declared address, if any
            boot_delay: Seconds after boot before polling starts
            cancel_event: Optional signal aborting waits
            summary: Summary already fetched by the caller (saves a round trip)
            vm_name: Name used in logs and errors
            now: Clock override for the boot budget

        Raises:
            AddressResolutionError: attempt bound or consecutive-error bound hit
            OperationCancelledError: cancel signal fired during a wait
        """
        if static_ip:
            self.log(f"Static IP of the first interface of '{vm_name}' is {static_ip}", "DEBUG")
            return static_ip

        self.log(f"DHCP is set on the first interface of '{vm_name}'", "DEBUG")
        if summary is None:
            summary = self.executor.retrieve_summary(vm, vm_name=vm_name)

        remaining = self.remaining_boot_delay(summary.get('boot_time'), boot_delay, now=now)
        if remaining > 0:
            self.log(f"Boot delay enabled for '{vm_name}', waiting another {remaining:.0f}s")
            self.wait(remaining, cancel_event, "resolve_address", vm_name)
            # Observation taken before the wait is stale
            summary = None
        else:
            self.log(f"Boot delay for '{vm_name}' has passed", "DEBUG")

        return self._poll_guest_ip(vm, summary, cancel_event, vm_name)

    def remaining_boot_delay(self, boot_time: Optional[datetime], boot_delay: int,
                             now: Optional[datetime] = None) -> float:
        """
        Seconds left of the boot delay budget.

        A VM without a boot timestamp (not powered on yet) is treated as
        having just booted.
        """
        elapsed = seconds_since(boot_time, now=now)
        remaining = float(boot_delay or 0) - elapsed
        self.log(f"Booted at {boot_time}, {elapsed:.1f}s ago; boot_delay={boot_delay}, "
                 f"remaining={remaining:.1f}s", "DEBUG")
        return remaining

    def _poll_guest_ip(self, vm: Any, summary: Optional[Dict[str, Any]],
                       cancel_event: Optional[threading.Event], vm_name: Optional[str]) -> str:
        max_attempts = self.settings.ip_poll_max_attempts
        max_errors = self.settings.ip_poll_max_consecutive_errors
        interval = self.settings.ip_poll_interval

        consecutive_errors = 0
        last_error = None
        for attempt in range(1, max_attempts + 1):
            try:
                ip_address = self._guest_ip(vm, summary, vm_name)
                self.log(f"Guest IP of '{vm_name}' is {ip_address} (attempt {attempt})", "DEBUG")
                return ip_address
            except GuestAddressUnavailable:
                consecutive_errors = 0
                self.log(f"Problem getting IP address of '{vm_name}', retrying ({attempt}/{max_attempts})", "DEBUG")
            except PropertyRetrievalError as e:
                consecutive_errors += 1
                last_error = e
                self.log(f"Property retrieval failed while polling '{vm_name}' "
                         f"({consecutive_errors}/{max_errors}): {e}", "WARN")
                if consecutive_errors >= max_errors:
                    raise AddressResolutionError(
                        f"{consecutive_errors} consecutive property retrieval failures",
                        operation="resolve_address", vm_name=vm_name) from e

            summary = None
            if attempt < max_attempts:
                self.wait(interval, cancel_event, "resolve_address", vm_name)

        raise AddressResolutionError(
            f"guest reported no IP address after {max_attempts} attempts",
            operation="resolve_address", vm_name=vm_name) from last_error

    def _guest_ip(self, vm: Any, summary: Optional[Dict[str, Any]], vm_name: Optional[str] = None) -> str:
        """Guest IP from ``summary`` or a fresh retrieval; raises when empty."""
        if summary is None:
            summary = self.executor.retrieve_summary(vm, vm_name=vm_name)
        ip_address = summary.get('guest_ip') or ""
        if not ip_address:
            raise GuestAddressUnavailable("guest IP not reported yet")
        return ip_address
