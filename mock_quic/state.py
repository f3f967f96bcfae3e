"""
Mock QUIC Direction State
"""

from dataclasses import dataclass

from .constants import EncryptionLevel, MAX_CIPHER_SUITE


@dataclass
class DirectionState:
    """
    Key epoch for one direction of the transport.

    The read direction holds the values incoming records must carry,
    the write direction the values stamped on outgoing records.
    """
    level: EncryptionLevel = EncryptionLevel.INITIAL
    secret: bytes = b""
    cipher_suite: int = 0

    def install(self, level: int, cipher_suite: int, secret: bytes) -> None:
        """
        Switch to a new key epoch.

        Args:
            level: Encryption level
            cipher_suite: 16-bit cipher suite identifier
            secret: Traffic secret for this level
        """
        level = EncryptionLevel(level)
        if not 0 <= cipher_suite <= MAX_CIPHER_SUITE:
            raise ValueError(f"cipher suite out of range: {cipher_suite}")
        if not isinstance(secret, (bytes, bytearray, memoryview)):
            raise TypeError("secret must be bytes")
        self.level = level
        self.cipher_suite = cipher_suite
        self.secret = bytes(secret)

    def set_level(self, level: int) -> None:
        self.level = EncryptionLevel(level)
