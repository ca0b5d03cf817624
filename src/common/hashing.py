"""Hashing utilities."""

import hashlib
import os


def generate_asset_id() -> str:
    """Generate a random 40-char hex asset ID."""
    return hashlib.sha1(os.urandom(32)).hexdigest()
