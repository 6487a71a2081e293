"""vCenter access mixins for the VM controller"""

from .vcenter_session import VCenterSessionMixin
from .vcenter_lookup import VCenterLookupMixin
from .vcenter_property_collector import VCenterPropertyCollectorMixin
from .vcenter_tasks import VCenterTaskMixin

__all__ = ['VCenterSessionMixin', 'VCenterLookupMixin', 'VCenterPropertyCollectorMixin', 'VCenterTaskMixin']
