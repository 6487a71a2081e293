import json
import os
import tempfile
import unittest
from unittest import mock

from vm_provisioner import cli
from vm_provisioner.errors import TeardownError
from vm_provisioner.models import TrackedState


class CliTests(unittest.TestCase):
    def setUp(self):
        handle, self.spec_path = tempfile.mkstemp(suffix=".json")
        with os.fdopen(handle, "w") as fh:
            json.dump({
                "name": "vm1", "vcpu": 2, "memory": 2048,
                "network_interface": [{"label": "eth0"}],
                "disk": [{"size": 20480}],
            }, fh)
        self.addCleanup(os.remove, self.spec_path)

    @mock.patch("vm_provisioner.cli.VirtualMachineController")
    def test_read_prints_state(self, controller_cls):
        controller_cls.return_value.read.return_value = TrackedState(id="vm1", ip_address="10.0.0.5")

        with mock.patch("builtins.print") as mock_print:
            code = cli.main(["read", self.spec_path])

        self.assertEqual(code, 0)
        self.assertIn("10.0.0.5", mock_print.call_args.args[0])
        controller_cls.return_value.disconnect_vcenter.assert_called_once_with()

    @mock.patch("vm_provisioner.cli.VirtualMachineController")
    def test_failure_exit_code(self, controller_cls):
        controller_cls.return_value.delete.side_effect = TeardownError("boom", operation="destroy", vm_name="vm1")

        self.assertEqual(cli.main(["destroy", self.spec_path]), 1)

    def test_invalid_spec_file(self):
        with open(self.spec_path, "w") as fh:
            json.dump({"name": "vm1"}, fh)

        with mock.patch("sys.stderr"):
            self.assertEqual(cli.main(["apply", self.spec_path]), 2)


if __name__ == "__main__":
    unittest.main()
