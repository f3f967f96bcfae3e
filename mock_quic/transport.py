"""
Mock QUIC Record Transport

A record layer for running TLS as if it were over QUIC, for testing only.
It runs over an in-order reliable stream, looks nothing like the QUIC wire
image and provides no confidentiality: every record carries the secret that
would have protected it, in the clear, so the peer can check that the right
keys were in use at each encryption level.
"""

import socket
from typing import Optional, Tuple

from utils.keylog import keylog_label, write_keylog

from .constants import EncryptionLevel, RecordType, RECORD_HEADER_SIZE
from .exceptions import (
    MockQUICError, RecordReadError, LevelMismatchError, CipherSuiteMismatchError,
    InputTooShortError, SecretMismatchError, UnexpectedStreamAccess,
)
from .frames import (
    RecordHeader, build_record, parse_record_header, split_record_value,
    record_type_for_tag, tag_for_record_type, describe_record, level_name,
)
from .state import DirectionState


class MockQUICTransport:
    """
    Record transport over a connected stream socket.

    Records are the only unit of I/O: the socket-style methods (recv, send,
    read, write, ...) raise UnexpectedStreamAccess.
    """

    def __init__(self, sock: socket.socket, is_client: bool = True, debug: bool = False,
                 keylog_file: str = None, client_random: bytes = None):
        self.sock = sock
        self.is_client = is_client
        self.debug = debug
        self.keylog_file = keylog_file
        self.client_random = client_random

        # Per-direction key epochs, set by the driver before each level change
        self.read_state = DirectionState()
        self.write_state = DirectionState()

        # Drop early data records until the first valid record
        self.skip_early_data = False

        # Statistics
        self.records_sent = 0
        self.records_received = 0
        self.early_data_skipped = 0

    # =========================================================================
    # Direction state
    # =========================================================================

    def set_read_secret(self, level: int, cipher_suite: int, secret: bytes) -> None:
        """Install the key epoch incoming records must match."""
        self.read_state.install(level, cipher_suite, secret)
        self._log_secret(level, not self.is_client, secret)
        if self.debug:
            print(f"    ✓ Read keys installed: level={level_name(level)} "
                  f"cipher=0x{cipher_suite:04x} secret={len(secret)} bytes")

    def set_write_secret(self, level: int, cipher_suite: int, secret: bytes) -> None:
        """Install the key epoch stamped on outgoing records."""
        self.write_state.install(level, cipher_suite, secret)
        self._log_secret(level, self.is_client, secret)
        if self.debug:
            print(f"    ✓ Write keys installed: level={level_name(level)} "
                  f"cipher=0x{cipher_suite:04x} secret={len(secret)} bytes")

    def set_read_level(self, level: int) -> None:
        self.read_state.set_level(level)

    def set_write_level(self, level: int) -> None:
        self.write_state.set_level(level)

    def _log_secret(self, level: int, is_client_secret: bool, secret: bytes) -> None:
        if not self.keylog_file or not self.client_random:
            return
        label = keylog_label(level, is_client_secret)
        if label:
            write_keylog(self.keylog_file, self.client_random, [(label, secret)])

    # =========================================================================
    # Records
    # =========================================================================

    def write_record(self, record_type: int, data: bytes) -> int:
        """
        Send one record at the current write level.

        Args:
            record_type: RecordType.HANDSHAKE or RecordType.APPLICATION_DATA
            data: Plaintext (may be empty)

        Returns:
            int: Number of plaintext bytes sent

        Raises:
            UnsupportedRecordTypeError: For alerts and unknown types; nothing is sent
        """
        tag = tag_for_record_type(record_type)
        state = self.write_state
        record = build_record(tag, state.level, state.cipher_suite, state.secret, data)
        self.sock.sendall(record)
        self.records_sent += 1

        if self.debug:
            header = RecordHeader(tag, state.level, state.cipher_suite,
                                  len(record) - RECORD_HEADER_SIZE)
            print(f"    → {describe_record(header)}")

        return len(data)

    def read_record(self, want_type: int = None) -> Tuple[RecordType, bytes]:
        """
        Receive the next accepted record.

        Early data records are dropped while skip_early_data is set. The
        record type is not checked against want_type; that is up to the caller.

        Args:
            want_type: Record type the caller expects (unused)

        Returns:
            tuple: (RecordType, plaintext with the secret removed)
        """
        while True:
            header = parse_record_header(self._recv_exact(RECORD_HEADER_SIZE))
            try:
                value = self._recv_exact(header.length)
            except OSError as e:
                raise RecordReadError() from e

            if self._should_skip(header):
                self.early_data_skipped += 1
                if self.debug:
                    print(f"    ↷ Skipped early data: {describe_record(header)}")
                continue

            plaintext = self._validate(header, value)

            # The stream is ordered, so no early data can follow a valid record
            self.skip_early_data = False
            self.records_received += 1

            if self.debug:
                print(f"    ← {describe_record(header)}")

            return record_type_for_tag(header.tag), plaintext

    def _should_skip(self, header: RecordHeader) -> bool:
        return (header.level != self.read_state.level
                and self.skip_early_data
                and header.level == EncryptionLevel.EARLY_DATA)

    def _validate(self, header: RecordHeader, value: bytes) -> bytes:
        state = self.read_state
        try:
            if header.level != state.level:
                raise LevelMismatchError(header.level, state.level)
            if header.cipher_suite != state.cipher_suite:
                raise CipherSuiteMismatchError(header.cipher_suite, state.cipher_suite)
            if len(state.secret) > len(value):
                raise InputTooShortError()
            secret, plaintext = split_record_value(value, len(state.secret))
            if secret != state.secret:
                raise SecretMismatchError(secret, state.secret)
        except MockQUICError as e:
            if self.debug:
                print(f"    ✗ Rejected {describe_record(header)}: {e}")
            raise
        return plaintext

    def _recv_exact(self, n: int) -> bytes:
        buffer = b""
        while len(buffer) < n:
            chunk = self.sock.recv(n - len(buffer))
            if not chunk:
                raise ConnectionError("Connection closed while receiving record")
            buffer += chunk
        return buffer

    # =========================================================================
    # Unstructured stream access (not supported)
    # =========================================================================

    def recv(self, bufsize: int, flags: int = 0) -> bytes:
        raise UnexpectedStreamAccess("unexpected call to recv")

    def recv_into(self, buffer, nbytes: int = 0, flags: int = 0) -> int:
        raise UnexpectedStreamAccess("unexpected call to recv_into")

    def read(self, n: int = -1) -> bytes:
        raise UnexpectedStreamAccess("unexpected call to read")

    def send(self, data: bytes, flags: int = 0) -> int:
        raise UnexpectedStreamAccess("unexpected call to send")

    def sendall(self, data: bytes, flags: int = 0) -> None:
        raise UnexpectedStreamAccess("unexpected call to sendall")

    def write(self, data: bytes) -> int:
        raise UnexpectedStreamAccess("unexpected call to write")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> None:
        self.sock.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def create_transport_pair(debug: bool = False, keylog_file: str = None,
                          client_random: Optional[bytes] = None) -> tuple:
    """
    Create a connected (client, server) transport pair over a socketpair.

    Args:
        debug: Enable debug output on both transports
        keylog_file: Path to log installed secrets (client side only)
        client_random: Client random used for keylog lines

    Returns:
        tuple: (client_transport, server_transport)
    """
    client_sock, server_sock = socket.socketpair()
    client = MockQUICTransport(client_sock, is_client=True, debug=debug,
                               keylog_file=keylog_file, client_random=client_random)
    server = MockQUICTransport(server_sock, is_client=False, debug=debug)
    return client, server
