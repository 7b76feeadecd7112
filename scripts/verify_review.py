#!/usr/bin/env python3
"""Verify a review attestation offline, the way an independent client would.

Usage::

    python scripts/verify_review.py public_key.pem review.json

``review.json`` holds the signed fields plus the signature, e.g.::

    {
      "sidestore_user_id": "...", "status": "published", "sequence_number": 1,
      "source_identifier": "...", "app_bundle_identifier": "...",
      "version_number": "1.0", "review_rating": 5,
      "review_title": "...", "review_body": "...",
      "created_at": 1682007600, "updated_at": 1682007600,
      "signature": "base64..."
    }

The ``date`` field of ``GET /api/reviews`` items is accepted as ``updated_at``.
Exit status is 0 when the signature is valid and 1 otherwise.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from pydantic import ValidationError

from sidestore_id.utils.review_signing import (
    ReviewSignatureData,
    canonical_payload,
    verify_review_signature,
)
from sidestore_id.utils.signing_keys import load_public_key


def main() -> None:  # noqa: D401
    parser = argparse.ArgumentParser(description="Verify a SideStore review signature")
    parser.add_argument("public_key", type=Path, help="Path to the downloaded public_key.pem")
    parser.add_argument("review", type=Path, help="JSON file with the signed review fields and signature")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print the canonical payload")
    args = parser.parse_args()

    public_key = load_public_key(args.public_key.read_bytes())
    document = json.loads(args.review.read_text(encoding="utf-8"))

    signature = document.pop("signature", None)
    if not signature:
        print("review has no signature", file=sys.stderr)
        sys.exit(1)
    if "updated_at" not in document and "date" in document:
        document["updated_at"] = document.pop("date")

    fields = {name: document.get(name) for name in ReviewSignatureData.model_fields}
    try:
        data = ReviewSignatureData.model_validate(fields)
    except ValidationError as exc:
        print(f"review is malformed: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.verbose:
        print(canonical_payload(data).decode("utf-8"))

    if verify_review_signature(data, signature, public_key):
        print("OK: signature is valid")
        return
    print("FAIL: signature does not match", file=sys.stderr)
    sys.exit(1)


if __name__ == "__main__":
    main()
