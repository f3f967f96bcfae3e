"""
Mock QUIC Transport Constants
"""

from enum import IntEnum


class EncryptionLevel(IntEnum):
    """QUIC encryption levels, encoded on the wire as their ordinal."""
    INITIAL = 0
    EARLY_DATA = 1
    HANDSHAKE = 2
    APPLICATION = 3


ENCRYPTION_LEVEL_NAMES = {
    0: "initial",
    1: "early_data",
    2: "handshake",
    3: "application",
}


class RecordType(IntEnum):
    """TLS record content types (RFC 8446 Section 5.1)"""
    ALERT = 21
    HANDSHAKE = 22
    APPLICATION_DATA = 23


# Record tags
TAG_HANDSHAKE = ord("H")
TAG_APPLICATION = ord("A")
TAG_ALERT = ord("L")            # Accepted on read only

TAG_NAMES = {
    TAG_HANDSHAKE: "H",
    TAG_APPLICATION: "A",
    TAG_ALERT: "L",
}

# tag(1) + level(1) + cipher_suite(2) + length(4)
RECORD_HEADER_SIZE = 8
RECORD_HEADER_FORMAT = ">BBHI"

MAX_CIPHER_SUITE = 0xFFFF
MAX_RECORD_LENGTH = 0xFFFFFFFF
