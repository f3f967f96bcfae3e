"""
Mock QUIC Record Framing

Record format (all integers big-endian):
- Tag (1 byte): 'H' handshake, 'A' application data, 'L' alert
- Encryption level (1 byte)
- Cipher suite (2 bytes)
- Length (4 bytes): covers secret + plaintext only
- Secret
- Plaintext
"""

import struct
from dataclasses import dataclass

from .constants import (
    RecordType, ENCRYPTION_LEVEL_NAMES, TAG_NAMES,
    TAG_HANDSHAKE, TAG_APPLICATION, TAG_ALERT,
    RECORD_HEADER_SIZE, RECORD_HEADER_FORMAT,
    MAX_CIPHER_SUITE, MAX_RECORD_LENGTH,
)
from .exceptions import UnknownRecordTypeError, UnsupportedRecordTypeError


@dataclass(frozen=True)
class RecordHeader:
    """Fixed 8-byte record header."""
    tag: int
    level: int
    cipher_suite: int
    length: int


def tag_for_record_type(record_type: int) -> int:
    """
    Map a record type to the tag used when sending.

    Only handshake and application data records can be sent.

    Raises:
        UnsupportedRecordTypeError: For any other record type
    """
    if record_type == RecordType.HANDSHAKE:
        return TAG_HANDSHAKE
    if record_type == RecordType.APPLICATION_DATA:
        return TAG_APPLICATION
    raise UnsupportedRecordTypeError(record_type)


def record_type_for_tag(tag: int) -> RecordType:
    """Map a received tag to its record type."""
    if tag == TAG_HANDSHAKE:
        return RecordType.HANDSHAKE
    if tag == TAG_APPLICATION:
        return RecordType.APPLICATION_DATA
    if tag == TAG_ALERT:
        return RecordType.ALERT
    raise UnknownRecordTypeError(tag)


def build_record(tag: int, level: int, cipher_suite: int,
                 secret: bytes, data: bytes) -> bytes:
    """
    Build a complete record.

    Args:
        tag: Record tag byte
        level: Encryption level stamped on the record
        cipher_suite: 16-bit cipher suite identifier
        secret: Key material prefixed to the plaintext
        data: Plaintext

    Returns:
        bytes: Header, secret and plaintext
    """
    if not 0 <= cipher_suite <= MAX_CIPHER_SUITE:
        raise ValueError(f"cipher suite out of range: {cipher_suite}")
    length = len(secret) + len(data)
    if length > MAX_RECORD_LENGTH:
        raise ValueError(f"record too large: {length} bytes")

    header = struct.pack(RECORD_HEADER_FORMAT, tag, level, cipher_suite, length)
    return header + bytes(secret) + bytes(data)


def parse_record_header(header: bytes) -> RecordHeader:
    """
    Parse the fixed record header.

    Args:
        header: Exactly RECORD_HEADER_SIZE bytes

    Returns:
        RecordHeader
    """
    if len(header) != RECORD_HEADER_SIZE:
        raise ValueError(
            f"Header must be exactly {RECORD_HEADER_SIZE} bytes, got {len(header)}"
        )
    tag, level, cipher_suite, length = struct.unpack(RECORD_HEADER_FORMAT, header)
    return RecordHeader(tag, level, cipher_suite, length)


def split_record_value(value: bytes, secret_length: int) -> tuple:
    """Split a record body into (secret, plaintext)."""
    return value[:secret_length], value[secret_length:]


def describe_record(header: RecordHeader) -> str:
    """One-line summary of a record header for debug output."""
    tag = TAG_NAMES.get(header.tag, f"0x{header.tag:02x}")
    level = ENCRYPTION_LEVEL_NAMES.get(header.level, str(header.level))
    return (f"{tag} level={level} cipher=0x{header.cipher_suite:04x} "
            f"len={header.length}")


def level_name(level: int) -> str:
    if level in ENCRYPTION_LEVEL_NAMES:
        return ENCRYPTION_LEVEL_NAMES[level]
    return str(level)
