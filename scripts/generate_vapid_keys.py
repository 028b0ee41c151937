#!/usr/bin/env python3
"""Print a fresh VAPID key pair as .env lines.

Usage:
    uv run scripts/generate_vapid_keys.py [--contact EMAIL]

Arguments:
    --contact — push contact address (written as mailto: URI)
"""

from __future__ import annotations

import argparse

from callrelay.config import normalize_contact
from callrelay.notifications.vapid import generate_vapid_keys


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--contact", default=None, help="push contact e-mail")
    args = parser.parse_args()

    keys = generate_vapid_keys()
    print(f"VAPID_PUBLIC_KEY={keys.public_key}")
    print(f"VAPID_PRIVATE_KEY={keys.private_key}")
    if args.contact:
        print(f"VAPID_CONTACT_EMAIL={normalize_contact(args.contact)}")


if __name__ == "__main__":
    main()
