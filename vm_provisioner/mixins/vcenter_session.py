"""vCenter session mixin for the VM controller"""

import atexit
import socket
import ssl

from pyVim.connect import SmartConnect, Disconnect
from pyVmomi import vim

from vm_provisioner.errors import VCenterConnectionError
from vm_provisioner.mixins.vcenter_errors import format_task_error


class VCenterSessionMixin:
    """Mixin providing an authenticated, revalidated vCenter session.

    Expects ``self.settings`` and ``self.log``.
    """

    vcenter_conn = None

    def connect_vcenter(self, force_reconnect: bool = False):
        """Connect to vCenter if not already connected, with session validation.

        Args:
            force_reconnect: If True, disconnect existing connection and reconnect

        Returns:
            vCenter service instance

        Raises:
            VCenterConnectionError: login failed
        """
        if self.vcenter_conn and not force_reconnect:
            # Quick validation - check session is still authenticated
            try:
                content = self.vcenter_conn.RetrieveContent()
                if content.sessionManager.currentSession is not None:
                    return self.vcenter_conn
                self.log("vCenter session expired (no active session), reconnecting...", "WARN")
            except vim.fault.NotAuthenticated:
                self.log("vCenter session not authenticated, reconnecting...", "WARN")
            except Exception as e:
                self.log(f"vCenter connection lost ({e}), reconnecting...", "WARN")

        if self.vcenter_conn:
            self.disconnect_vcenter()

        host = self.settings.vcenter_host
        self.log(f"Attempting to connect to vCenter at {host}...")

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        if not self.settings.verify_ssl:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        # Add timeout to prevent indefinite hanging on login
        old_timeout = socket.getdefaulttimeout()
        socket.setdefaulttimeout(self.settings.connect_timeout)
        try:
            self.vcenter_conn = SmartConnect(
                host=host,
                user=self.settings.vcenter_user,
                pwd=self.settings.vcenter_password,
                port=self.settings.vcenter_port,
                sslContext=context,
            )
        except Exception as e:
            self.log(f"✗ Failed to connect to vCenter: {e}", "ERROR")
            raise VCenterConnectionError(format_task_error(e), operation="connect_vcenter") from e
        finally:
            socket.setdefaulttimeout(old_timeout)

        atexit.register(Disconnect, self.vcenter_conn)
        self.log(f"✓ Connected to vCenter at {host}")
        return self.vcenter_conn

    def ensure_vcenter_connection(self):
        """Return a live session, reconnecting if the current one went stale.

        Use this before operations that may follow a long wait (boot delay,
        IP polling) to prevent vim.fault.NotAuthenticated errors.
        """
        return self.connect_vcenter()

    def disconnect_vcenter(self):
        """Log out of vCenter; a failed logout only leaves the session to expire."""
        if not self.vcenter_conn:
            return
        try:
            Disconnect(self.vcenter_conn)
        except Exception as e:
            self.log(f"vCenter logout failed: {e}", "DEBUG")
        self.vcenter_conn = None

    @property
    def content(self):
        """ServiceContent of the current session."""
        return self.ensure_vcenter_connection().RetrieveContent()
