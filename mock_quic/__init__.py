"""
Mock QUIC Record Transport

Runs TLS records over an ordered byte stream as if it were QUIC:
- Record framing with encryption level, cipher suite and secret
- Per-direction key epoch validation
- Early data skipping after a 0-RTT rejection
"""

from .constants import EncryptionLevel, RecordType
from .exceptions import (
    MockQUICError,
    RecordReadError,
    LevelMismatchError,
    CipherSuiteMismatchError,
    InputTooShortError,
    SecretMismatchError,
    UnknownRecordTypeError,
    UnsupportedRecordTypeError,
    UnexpectedStreamAccess,
)
from .state import DirectionState
from .transport import MockQUICTransport, create_transport_pair
