import os
import unittest
from unittest import mock

from pydantic import ValidationError

from vm_provisioner.config import Settings


class SettingsTests(unittest.TestCase):
    @mock.patch.dict(os.environ, {}, clear=True)
    def test_guest_defaults(self):
        settings = Settings()

        self.assertEqual(settings.default_domain, "vsphere.local")
        self.assertEqual(settings.default_time_zone, "Etc/UTC")
        self.assertEqual(settings.default_dns_suffixes, ["vsphere.local"])
        self.assertEqual(settings.default_dns_servers, ["8.8.8.8", "8.8.4.4"])
        self.assertEqual(settings.ip_poll_interval, 1.0)

    @mock.patch.dict(os.environ, {
        "VM_PROVISIONER_VCENTER_HOST": "vc01.lab",
        "VM_PROVISIONER_IP_POLL_MAX_ATTEMPTS": "30",
        "VM_PROVISIONER_DEFAULT_DNS_SERVERS": '["10.0.0.53"]',
    }, clear=True)
    def test_environment_overrides(self):
        settings = Settings()

        self.assertEqual(settings.vcenter_host, "vc01.lab")
        self.assertEqual(settings.ip_poll_max_attempts, 30)
        self.assertEqual(settings.default_dns_servers, ["10.0.0.53"])

    def test_poll_bound_must_be_positive(self):
        with self.assertRaises(ValidationError):
            Settings(ip_poll_max_attempts=0)

    def test_settings_are_immutable(self):
        settings = Settings()

        with self.assertRaises(ValidationError):
            settings.default_domain = "other.local"


if __name__ == "__main__":
    unittest.main()
