"""
Configuration for VM Provisioner.

Reads from environment variables (prefix ``VM_PROVISIONER_``) with sensible
defaults. The controller receives a ``Settings`` instance at construction so
tests can inject their own defaults.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_DNS_SUFFIXES = ("vsphere.local",)
DEFAULT_DNS_SERVERS = ("8.8.8.8", "8.8.4.4")


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_prefix="VM_PROVISIONER_", frozen=True)

    # vCenter connection
    vcenter_host: str = "vcenter.example.com"
    vcenter_user: str = "administrator@vsphere.local"
    vcenter_password: str = ""
    vcenter_port: int = 443
    verify_ssl: bool = False
    connect_timeout: int = 30  # seconds, applied to the initial SOAP login

    # Guest defaults applied when the desired state leaves them empty
    default_domain: str = "vsphere.local"
    default_time_zone: str = "Etc/UTC"
    default_dns_suffixes: List[str] = Field(default_factory=lambda: list(DEFAULT_DNS_SUFFIXES))
    default_dns_servers: List[str] = Field(default_factory=lambda: list(DEFAULT_DNS_SERVERS))
    default_guest_id: str = "otherLinux64Guest"

    # Task waits (clone, create, reconfigure, power-off, destroy)
    task_timeout: int = 1800
    task_poll_interval: float = 2.0

    # Guest IP convergence
    ip_poll_interval: float = 1.0
    ip_poll_max_attempts: int = Field(default=600, gt=0)
    ip_poll_max_consecutive_errors: int = Field(default=5, gt=0)

    # Tracked-state store (PostgREST-compatible endpoint); empty URL = in-memory
    state_store_url: str = ""
    state_store_key: str = ""
    state_store_table: str = "virtual_machines"

    # Logging
    log_level: str = "INFO"


settings = Settings()
