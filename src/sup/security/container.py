"""Binary container holding one encrypted config blob.

Layout (all length prefixes are 4-byte big-endian unsigned ints):
- 4 bytes: len(ciphertext), then ciphertext
- 4 bytes: len(iv) (always 16), then iv
- 4 bytes: len(salt) (always 32), then salt
- 4 bytes: len(mac) (always 32), then mac

Nothing may follow the mac field. The mac is HMAC-SHA256 over
ciphertext || iv || salt, see :mod:`sup.security.crypt`.
"""
from __future__ import annotations

import struct
from dataclasses import dataclass

from ..core.exceptions import ContainerTooShort, MalformedContainer

BLOCK_SIZE = 16
IV_LEN = BLOCK_SIZE
SALT_LEN = 32
MAC_LEN = 32  # SHA-256 digest size
MIN_CONTAINER_LEN = IV_LEN + SALT_LEN + MAC_LEN

_LEN_PREFIX = struct.Struct(">I")


@dataclass(frozen=True)
class Container:
    ciphertext: bytes
    iv: bytes
    salt: bytes
    mac: bytes

    def authenticated_data(self) -> bytes:
        """Bytes covered by the mac, in their fixed order."""
        return self.ciphertext + self.iv + self.salt

    def to_bytes(self) -> bytes:
        out = bytearray()
        for field in (self.ciphertext, self.iv, self.salt, self.mac):
            out += _LEN_PREFIX.pack(len(field))
            out += field
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Container":
        """Parse serialized container bytes.

        Raises ContainerTooShort if ``data`` is shorter than the fixed-size
        fields alone, and MalformedContainer for any other encoding problem.
        """
        if len(data) < MIN_CONTAINER_LEN:
            raise ContainerTooShort(
                f"container is {len(data)} bytes, need at least {MIN_CONTAINER_LEN}"
            )

        fields = []
        offset = 0
        for name in ("ciphertext", "iv", "salt", "mac"):
            if offset + _LEN_PREFIX.size > len(data):
                raise MalformedContainer(f"truncated length prefix for {name}")
            (field_len,) = _LEN_PREFIX.unpack_from(data, offset)
            offset += _LEN_PREFIX.size
            if offset + field_len > len(data):
                raise MalformedContainer(f"truncated {name} field")
            fields.append(bytes(data[offset:offset + field_len]))
            offset += field_len

        if offset != len(data):
            raise MalformedContainer(f"{len(data) - offset} trailing bytes after mac")

        ciphertext, iv, salt, mac = fields
        for name, value, expected in (("iv", iv, IV_LEN), ("salt", salt, SALT_LEN), ("mac", mac, MAC_LEN)):
            if len(value) != expected:
                raise MalformedContainer(f"{name} must be {expected} bytes, got {len(value)}")

        return cls(ciphertext=ciphertext, iv=iv, salt=salt, mac=mac)
