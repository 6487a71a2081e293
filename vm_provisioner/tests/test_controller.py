import unittest

from pyVmomi import vim

from vm_provisioner.errors import InventoryLookupError, PropertyRetrievalError, ProvisioningError, TeardownError
from vm_provisioner.models import TrackedState, VirtualMachineSpec
from vm_provisioner.tests.fakes import FakeController, make_vm, summary


def vm1_spec(**overrides):
    data = {
        "name": "vm1",
        "vcpu": 2,
        "memory": 2048,
        "boot_delay": 30,
        "network_interface": [{"label": "eth0"}],
        "disk": [{"size": 20480}],
    }
    data.update(overrides)
    return VirtualMachineSpec.from_config(data)


def task_names(controller):
    return [c[1] for c in controller.calls if c[0] == 'task']


class CreateLifecycleTests(unittest.TestCase):
    def test_create_dhcp_vm_end_to_end(self):
        controller = FakeController(summaries=[
            summary(ip="", booted_seconds_ago=5),
            summary(ip=""),
            summary(ip="10.0.0.5"),
        ])

        state = controller.create(vm1_spec())

        self.assertEqual(task_names(controller), ["create", "power_on"])
        budget_wait = [c[1] for c in controller.calls if c[0] == 'wait'][0]
        self.assertGreater(budget_wait, 20)
        self.assertLessEqual(budget_wait, 30)
        self.assertEqual(state.id, "vm1")
        self.assertEqual(state.memory_mb, 2048)
        self.assertEqual(state.vcpu, 2)
        self.assertEqual(state.ip_address, "10.0.0.5")
        self.assertEqual(state.connection_info, {"host": "10.0.0.5"})
        self.assertEqual(controller.state_store.get("vm1").id, "vm1")

    def test_failed_create_records_no_identity(self):
        controller = FakeController(task_failures={"create"})

        with self.assertRaises(ProvisioningError):
            controller.create(vm1_spec())

        self.assertFalse(controller.state_store.get("vm1").exists)

    def test_static_ip_read_does_not_poll(self):
        controller = FakeController(vms={"vm1": make_vm("vm1")}, summaries=[summary(ip="")])
        spec = vm1_spec(network_interface=[{"label": "eth0", "ip_address": "192.168.1.10"}])

        state = controller.read(spec)

        self.assertEqual(state.ip_address, "192.168.1.10")
        self.assertEqual(len([c for c in controller.calls if c[0] == 'retrieve_summary']), 1)
        self.assertNotIn('wait', [c[0] for c in controller.calls])


class ReadTests(unittest.TestCase):
    def test_reconcile_is_idempotent(self):
        controller = FakeController(vms={"vm1": make_vm("vm1")}, summaries=[summary(ip="10.0.0.5")])

        first = controller.reconcile_handler.reconcile("vm1", boot_delay=30)
        second = controller.reconcile_handler.reconcile("vm1", boot_delay=30)

        self.assertEqual(first, second)
        self.assertEqual(task_names(controller), [])

    def test_missing_vm_clears_identity(self):
        controller = FakeController()
        controller.state_store.put("vm1", TrackedState(id="vm1", memory_mb=2048))

        state = controller.read(vm1_spec())

        self.assertFalse(state.exists)
        self.assertFalse(controller.state_store.get("vm1").exists)

    def test_reconcile_of_absent_name_raises_lookup_error(self):
        controller = FakeController()

        with self.assertRaises(LookupError) as ctx:
            controller.reconcile_handler.reconcile("ghost")

        self.assertIsInstance(ctx.exception, InventoryLookupError)
        self.assertEqual(ctx.exception.name, "ghost")


class DeleteTests(unittest.TestCase):
    def setUp(self):
        self.vm = make_vm("vm1")

    def test_power_off_before_destroy(self):
        controller = FakeController(vms={"vm1": self.vm})
        controller.state_store.put("vm1", TrackedState(id="vm1"))

        controller.delete(vm1_spec())

        self.assertEqual(task_names(controller), ["power_off", "destroy"])
        self.assertFalse(controller.state_store.get("vm1").exists)

        controller.submitted["power_off"]()
        controller.submitted["destroy"]()
        self.vm.PowerOffVM_Task.assert_called_once_with()
        self.vm.Destroy_Task.assert_called_once_with()

    def test_power_off_failure_blocks_destroy(self):
        controller = FakeController(vms={"vm1": self.vm}, task_failures={"power_off"})
        controller.state_store.put("vm1", TrackedState(id="vm1"))

        with self.assertRaises(TeardownError):
            controller.delete(vm1_spec())

        self.assertEqual(task_names(controller), ["power_off"])
        self.assertTrue(controller.state_store.get("vm1").exists)

    def test_already_powered_off_skips_power_off(self):
        controller = FakeController(vms={"vm1": self.vm}, summaries=[summary(power_state="poweredOff")])

        controller.delete(vm1_spec())

        self.assertEqual(task_names(controller), ["destroy"])

    def test_invalid_power_state_on_power_off_still_destroys(self):
        fault = vim.fault.InvalidPowerState(msg="The attempted operation cannot be performed in the current state (Powered off).")
        controller = FakeController(vms={"vm1": self.vm}, task_failures={"power_off": fault})
        controller.state_store.put("vm1", TrackedState(id="vm1"))

        controller.delete(vm1_spec())

        self.assertEqual(task_names(controller), ["power_off", "destroy"])
        self.assertFalse(controller.state_store.get("vm1").exists)

    def test_other_power_off_fault_blocks_destroy(self):
        fault = vim.fault.TaskInProgress(msg="The operation is not allowed in the current state.")
        controller = FakeController(vms={"vm1": self.vm}, task_failures={"power_off": fault})

        with self.assertRaises(TeardownError) as ctx:
            controller.delete(vm1_spec())

        self.assertIs(ctx.exception.__cause__, fault)
        self.assertEqual(task_names(controller), ["power_off"])

    def test_unreadable_power_state_attempts_power_off(self):
        controller = FakeController(
            vms={"vm1": self.vm},
            summaries=[PropertyRetrievalError("session lost", operation="retrieve_summary")],
        )

        controller.delete(vm1_spec())

        self.assertEqual(task_names(controller), ["power_off", "destroy"])

    def test_missing_vm_is_a_hard_error(self):
        controller = FakeController()
        controller.state_store.put("vm1", TrackedState(id="vm1"))

        with self.assertRaises(InventoryLookupError):
            controller.delete(vm1_spec())

        self.assertTrue(controller.state_store.get("vm1").exists)


class UpdateTests(unittest.TestCase):
    def test_resize_when_cpu_differs(self):
        vm = make_vm("vm1")
        controller = FakeController(vms={"vm1": vm}, summaries=[summary(ip="10.0.0.5", num_cpu=2)])

        controller.update(vm1_spec(vcpu=4))

        self.assertEqual(task_names(controller), ["reconfigure"])
        controller.submitted["reconfigure"]()
        config = vm.ReconfigVM_Task.call_args.kwargs["spec"]
        self.assertEqual(config.numCPUs, 4)
        self.assertIsNone(config.memoryMB)

    def test_no_change_no_task(self):
        controller = FakeController(vms={"vm1": make_vm("vm1")}, summaries=[summary(ip="10.0.0.5")])

        changed = controller.update_handler.update(vm1_spec())

        self.assertFalse(changed)
        self.assertEqual(task_names(controller), [])


class ApplyTests(unittest.TestCase):
    def test_untracked_vm_is_created(self):
        controller = FakeController(summaries=[summary(ip="10.0.0.5")])

        state = controller.apply(vm1_spec(boot_delay=0))

        self.assertEqual(task_names(controller), ["create", "power_on"])
        self.assertEqual(state.id, "vm1")

    def test_tracked_vm_with_memory_drift_is_resized(self):
        controller = FakeController(vms={"vm1": make_vm("vm1")}, summaries=[summary(ip="10.0.0.5", memory_mb=1024)])
        controller.state_store.put("vm1", TrackedState(id="vm1"))

        controller.apply(vm1_spec(boot_delay=0))

        self.assertEqual(task_names(controller), ["reconfigure"])

    def test_vm_deleted_out_of_band_is_recreated(self):
        controller = FakeController(summaries=[summary(ip="10.0.0.5")])
        controller.state_store.put("vm1", TrackedState(id="vm1"))

        state = controller.apply(vm1_spec(boot_delay=0))

        self.assertEqual(task_names(controller), ["create", "power_on"])
        self.assertEqual(state.id, "vm1")


if __name__ == "__main__":
    unittest.main()
