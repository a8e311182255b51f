from __future__ import annotations

import hashlib
import random


def derive_seed(base_seed: int, *, battle_key: str, stream: str = "combat") -> int:
    payload = f"{base_seed}|{battle_key}|{stream}".encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=8).digest()
    return int.from_bytes(digest, "big")


def make_rng(seed: int | None) -> random.Random:
    """Battle-private generator. Never touches the global random state."""
    return random.Random(seed)
