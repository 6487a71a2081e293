import unittest

from pydantic import ValidationError

from vm_provisioner.models import DiskSpec, NetworkInterfaceSpec, TrackedState, VirtualMachineSpec


BASE = {
    "name": "vm1",
    "vcpu": 2,
    "memory": 2048,
    "network_interface": [{"label": "eth0"}],
    "disk": [{"size": 20480}],
}


class VirtualMachineSpecTests(unittest.TestCase):
    def test_resource_attribute_names(self):
        spec = VirtualMachineSpec.from_config(dict(BASE, dns_server=["10.0.0.53"], dns_suffix=["corp"]))

        self.assertEqual(spec.memory_mb, 2048)
        self.assertEqual(spec.dns_servers, ["10.0.0.53"])
        self.assertEqual(spec.dns_suffixes, ["corp"])
        self.assertEqual(spec.boot_delay, 0)
        self.assertIsNone(spec.template)

    def test_python_field_names_accepted(self):
        spec = VirtualMachineSpec(
            name="vm1", vcpu=1, memory_mb=512,
            network_interfaces=[NetworkInterfaceSpec(label="eth0")],
            hard_disks=[DiskSpec(size=1024)],
        )

        self.assertEqual(spec.memory_mb, 512)

    def test_first_disk_template_and_datastore_are_lifted(self):
        spec = VirtualMachineSpec.from_config(dict(BASE, disk=[{"template": "tmpl", "datastore": "ds1"}]))

        self.assertEqual(spec.template, "tmpl")
        self.assertEqual(spec.datastore, "ds1")

    def test_vm_level_datastore_wins(self):
        spec = VirtualMachineSpec.from_config(dict(BASE, datastore="ds0", disk=[{"size": 1, "datastore": "ds1"}]))

        self.assertEqual(spec.datastore, "ds0")

    def test_requires_a_nic_and_a_disk(self):
        with self.assertRaises(ValidationError):
            VirtualMachineSpec.from_config(dict(BASE, network_interface=[]))
        with self.assertRaises(ValidationError):
            VirtualMachineSpec.from_config(dict(BASE, disk=[]))

    def test_rejects_non_positive_sizing(self):
        with self.assertRaises(ValidationError):
            VirtualMachineSpec.from_config(dict(BASE, vcpu=0))
        with self.assertRaises(ValidationError):
            VirtualMachineSpec.from_config(dict(BASE, boot_delay=-1))

    def test_first_interface_ip(self):
        spec = VirtualMachineSpec.from_config(dict(BASE, network_interface=[{"label": "eth0", "ip_address": "10.0.0.4"}]))

        self.assertEqual(spec.first_interface_ip, "10.0.0.4")
        self.assertTrue(spec.network_interfaces[0].is_static)


class NetworkInterfaceSpecTests(unittest.TestCase):
    def test_blank_address_means_dhcp(self):
        nic = NetworkInterfaceSpec(label="eth0", ip_address="", subnet_mask=" ")

        self.assertIsNone(nic.ip_address)
        self.assertIsNone(nic.subnet_mask)
        self.assertFalse(nic.is_static)

    def test_unknown_adapter_rejected(self):
        with self.assertRaises(ValidationError):
            NetworkInterfaceSpec(label="eth0", adapter_type="rtl8139")

    def test_empty_label_rejected(self):
        with self.assertRaises(ValidationError):
            NetworkInterfaceSpec(label="")


class DiskSpecTests(unittest.TestCase):
    def test_zero_size_is_unset(self):
        self.assertIsNone(DiskSpec(size=0).size)
        self.assertIsNone(DiskSpec(iops="").iops)


class TrackedStateTests(unittest.TestCase):
    def test_identity(self):
        self.assertFalse(TrackedState().exists)
        self.assertTrue(TrackedState(id="vm1").exists)


if __name__ == "__main__":
    unittest.main()
