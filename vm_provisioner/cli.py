"""Command line entrypoint: drive one VM's lifecycle from a JSON desired-state file."""

import argparse
import json
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError as SpecParseError

from vm_provisioner.config import Settings
from vm_provisioner.controller import VirtualMachineController
from vm_provisioner.errors import VmProvisionerError
from vm_provisioner.models import VirtualMachineSpec

COMMANDS = ("apply", "read", "update", "destroy")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vm-provisioner",
        description="Provision, reconcile and tear down vSphere virtual machines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  # Create the VM if untracked, otherwise converge CPU/memory
  %(prog)s apply vm1.json

  # Refresh memory, vCPU and IP address from vCenter
  %(prog)s read vm1.json

  # Power off and destroy
  %(prog)s destroy vm1.json

vCenter connection settings come from VM_PROVISIONER_* environment variables.
        '''
    )
    parser.add_argument('command', choices=COMMANDS, help='Lifecycle operation')
    parser.add_argument('spec_file', help='JSON file describing the desired VM state')
    parser.add_argument('--log-level', default=None,
                        help='Override VM_PROVISIONER_LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)')
    return parser


def load_spec(path: str) -> VirtualMachineSpec:
    with open(path, encoding="utf-8") as fh:
        return VirtualMachineSpec.from_config(json.load(fh))


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings()
    logging.basicConfig(level=(args.log_level or settings.log_level).upper(), format="%(message)s")

    try:
        spec = load_spec(args.spec_file)
    except (OSError, ValueError, SpecParseError) as e:
        print(f"✗ Invalid spec file {args.spec_file}: {e}", file=sys.stderr)
        return 2

    controller = VirtualMachineController(settings=settings)
    try:
        if args.command == "apply":
            state = controller.apply(spec)
        elif args.command == "read":
            state = controller.read(spec)
        elif args.command == "update":
            state = controller.update(spec)
        else:
            controller.delete(spec)
            state = None
    except KeyboardInterrupt:
        print("\n✗ Operation cancelled by user", file=sys.stderr)
        return 130
    except VmProvisionerError as e:
        controller.log(f"✗ {e}", "ERROR")
        return 1
    finally:
        controller.disconnect_vcenter()

    if state is not None:
        print(state.model_dump_json(indent=2))
    return 0
