"""Lifecycle handlers for the VM controller"""

from .provisioning import ProvisioningHandler
from .convergence import ConvergenceHandler
from .reconcile import ReconcileHandler
from .teardown import TeardownHandler
from .update import UpdateHandler

__all__ = [
    'ProvisioningHandler',
    'ConvergenceHandler',
    'ReconcileHandler',
    'TeardownHandler',
    'UpdateHandler',
]
