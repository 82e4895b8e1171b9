#!/usr/bin/env python3
"""
Circuit Key Setup
=================

Generates local attestation keys for every transition circuit into the
configured build directory (ZK_BUILD_DIR).

Usage:
    python scripts/setup_keys.py [--circuit NAME ...] [--overwrite]

Groth16 keys for the snarkjs backend come from the circom toolchain
instead; this script only prints their status for that backend.
"""

import argparse
import sys

from zkarena.circuits import CircuitId, registered_circuits
from zkarena.config import ProofBackendKind, settings
from zkarena.logging import setup_logging
from zkarena.proofs import KeyStore, run_local_setup


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate circuit keys")
    parser.add_argument(
        "--circuit",
        "-c",
        action="append",
        choices=[c.value for c in CircuitId],
        help="Circuit to set up (repeatable; default: all)",
    )
    parser.add_argument("--overwrite", action="store_true", help="Replace existing keys")
    args = parser.parse_args()

    setup_logging(log_level=settings.log_level.value, service_name="setup_keys")

    circuits = [CircuitId(c) for c in args.circuit] if args.circuit else registered_circuits()
    key_store = KeyStore(settings.zk.build_dir)

    print("╔" + "═" * 58 + "╗")
    print("║  ZK ARENA KEY SETUP                                      ║")
    print("╚" + "═" * 58 + "╝")
    print(f"Build directory: {key_store.build_dir}")

    if settings.zk.backend == ProofBackendKind.SNARKJS:
        missing = [c.value for c in circuits if not key_store.has_keys(c)]
        for circuit_id in circuits:
            status = "✓" if key_store.has_keys(circuit_id) else "✗ missing"
            print(f"  {circuit_id.value:<22} {status}")
        sys.exit(1 if missing else 0)

    existing = {c for c in circuits if key_store.has_keys(c)}
    keys = run_local_setup(circuits, key_store=key_store, overwrite=args.overwrite)
    for circuit_id in circuits:
        fingerprint = keys[circuit_id].verification_key.fingerprint
        marker = "kept" if circuit_id in existing and not args.overwrite else "new"
        print(f"  {circuit_id.value:<22} {fingerprint[:16]}  ({marker})")


if __name__ == "__main__":
    main()
