"""
VM Provisioner - vCenter virtual machine lifecycle controller.

Provides:
- Clone-from-template and build-from-scratch provisioning
- Guest network convergence (boot delay budget + bounded IP polling)
- Live state reconciliation and drift detection
- Ordered power-off/destroy teardown
"""

__version__ = "1.0.0"
