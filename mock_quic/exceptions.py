"""
Mock QUIC Transport Exceptions
"""


class MockQUICError(Exception):
    """Base class for all mock QUIC framing and validation errors."""
    pass


class RecordReadError(MockQUICError):
    """Raised when the stream ends in the middle of a record body."""

    def __init__(self, message: str = "error reading record"):
        super().__init__(message)


class LevelMismatchError(MockQUICError):
    def __init__(self, received: int, expected: int):
        self.received = received
        self.expected = expected
        super().__init__(f"received level {received} does not match expected {expected}")


class CipherSuiteMismatchError(MockQUICError):
    def __init__(self, received: int, expected: int):
        self.received = received
        self.expected = expected
        super().__init__(
            f"received cipher suite {received} does not match expected {expected}"
        )


class InputTooShortError(MockQUICError):
    """Raised when a record body is shorter than the expected secret."""

    def __init__(self, message: str = "input length too short"):
        super().__init__(message)


class SecretMismatchError(MockQUICError):
    def __init__(self, received: bytes, expected: bytes):
        self.received = received
        self.expected = expected
        super().__init__(
            f"secrets don't match: got {received.hex()} but expected {expected.hex()}"
        )


class UnknownRecordTypeError(MockQUICError):
    def __init__(self, tag: int):
        self.tag = tag
        super().__init__(f"unknown type {tag}")


class UnsupportedRecordTypeError(MockQUICError):
    def __init__(self, record_type: int):
        self.record_type = record_type
        super().__init__(f"unsupported record type {record_type}")


class UnexpectedStreamAccess(BaseException):
    """
    Raised on any direct read or write of the underlying stream.

    Derives from BaseException so that ``except Exception`` handlers in the
    code under test cannot absorb it. Records are the only unit of I/O.
    """
    pass
