#!/usr/bin/env python3
"""
VM Provisioner
==============

Manages the lifecycle of one vSphere virtual machine described by a JSON
desired-state file: create (from a template or from scratch), read back live
state including the guest IP, resize CPU/memory, and destroy.

Requirements:
- Python 3.9+
- pip install -e .

Usage:
1. Export VM_PROVISIONER_VCENTER_HOST, VM_PROVISIONER_VCENTER_USER and
   VM_PROVISIONER_VCENTER_PASSWORD
2. Run: python vm-provisioner.py apply vm1.json
"""

import sys

from vm_provisioner.cli import main

if __name__ == "__main__":
    sys.exit(main())
