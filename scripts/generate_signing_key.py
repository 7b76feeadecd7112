#!/usr/bin/env python3
"""Provision the Ed25519 review signing keypair ahead of the first boot.

Usage::

    python scripts/generate_signing_key.py                 # uses $STORAGE_PATH
    python scripts/generate_signing_key.py -d ./keys       # explicit directory
    python scripts/generate_signing_key.py -d ./keys --print-public

The service generates the keypair itself when none exists, so this is only
needed when the public key must be published before the API goes live. An
existing keypair is loaded (and validated) rather than replaced: rotating the
key invalidates every review attestation already handed out.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from sidestore_id.utils.signing_keys import KeyStoreError, acquire_signing_key


def main() -> None:  # noqa: D401
    parser = argparse.ArgumentParser(description="Generate or validate the review signing keypair")
    parser.add_argument(
        "-d",
        "--directory",
        type=Path,
        default=os.getenv("STORAGE_PATH"),
        help="Key storage directory (defaults to $STORAGE_PATH)",
    )
    parser.add_argument("--print-public", action="store_true", help="Print the public key PEM to stdout")
    args = parser.parse_args()

    if not args.directory:
        parser.error("no directory given and STORAGE_PATH is not set")

    try:
        keypair = acquire_signing_key(args.directory)
    except KeyStoreError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    print(f"Signing keypair ready in {Path(args.directory).resolve()}")
    if args.print_public:
        print(keypair.public_key_pem.decode("ascii"), end="")


if __name__ == "__main__":
    main()
