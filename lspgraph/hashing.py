"""Content hashing used for content-addressed node ids."""

from __future__ import annotations

import base64
import hashlib
from typing import Protocol


class LocalitySensitiveHasher(Protocol):
    def hash(self, text: str) -> str: ...

class ExactHasher:
    """Digest of the exact text; any edit produces a different hash."""

    def __init__(self, digest_size: int = 12) -> None:
        self.digest_size = digest_size

    def hash(self, text: str) -> str:
        digest = hashlib.blake2b(text.encode("utf-8"), digest_size=self.digest_size).digest()
        return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class MinHasher:
    """MinHash signature over character shingles.

    Each component keeps the low byte of the minimum seeded digest, so small
    edits change only a few positions of the encoded signature.
    """

    def __init__(self, components: int = 32, shingle_size: int = 4) -> None:
        self.components = components
        self.shingle_size = shingle_size

    def hash(self, text: str) -> str:
        shingles = self._shingles(text)
        signature = bytearray()
        for component in range(self.components):
            salt = component.to_bytes(4, "little")
            minimum = min(
                int.from_bytes(
                    hashlib.blake2b(shingle, digest_size=8, salt=salt).digest(), "little"
                )
                for shingle in shingles
            )
            signature.append(minimum & 0xFF)
        return base64.urlsafe_b64encode(bytes(signature)).decode("ascii").rstrip("=")

    def _shingles(self, text: str) -> set[bytes]:
        normalized = " ".join(text.split())
        if len(normalized) <= self.shingle_size:
            return {normalized.encode("utf-8")}
        return {
            normalized[idx : idx + self.shingle_size].encode("utf-8")
            for idx in range(len(normalized) - self.shingle_size + 1)
        }


def path_hash(file_path: str) -> str:
    return hashlib.blake2b(file_path.encode("utf-8"), digest_size=4).hexdigest()


def create_hasher(name: str) -> LocalitySensitiveHasher:
    if name == "exact":
        return ExactHasher()
    if name == "minhash":
        return MinHasher()
    raise ValueError(f"Unknown hasher: {name}")
