"""Tests for the mock QUIC record transport over a loopback socket pair."""

import pytest

from mock_quic import (
    EncryptionLevel, RecordType, MockQUICTransport, create_transport_pair,
    RecordReadError, LevelMismatchError, CipherSuiteMismatchError,
    InputTooShortError, SecretMismatchError, UnknownRecordTypeError,
    UnsupportedRecordTypeError, UnexpectedStreamAccess, MockQUICError,
)
from mock_quic.frames import build_record


@pytest.fixture
def pair():
    client, server = create_transport_pair()
    yield client, server
    client.close()
    server.close()


def install(transport, level, cipher_suite, secret):
    transport.set_write_secret(level, cipher_suite, secret)
    transport.set_read_secret(level, cipher_suite, secret)


class TestRoundTrip:
    def test_handshake_record(self, pair):
        client, server = pair
        install(client, EncryptionLevel.HANDSHAKE, 0x1301, b"KEY")
        install(server, EncryptionLevel.HANDSHAKE, 0x1301, b"KEY")

        assert client.write_record(RecordType.HANDSHAKE, b"CLIENTHELLO") == 11
        record_type, data = server.read_record(RecordType.HANDSHAKE)
        assert record_type == RecordType.HANDSHAKE
        assert data == b"CLIENTHELLO"

    def test_application_data_both_directions(self, pair):
        client, server = pair
        install(client, EncryptionLevel.APPLICATION, 0x1303, b"c" * 32)
        install(server, EncryptionLevel.APPLICATION, 0x1303, b"c" * 32)

        client.write_record(RecordType.APPLICATION_DATA, b"request")
        server.write_record(RecordType.APPLICATION_DATA, b"response")
        assert server.read_record() == (RecordType.APPLICATION_DATA, b"request")
        assert client.read_record() == (RecordType.APPLICATION_DATA, b"response")

    def test_initial_defaults_and_empty_payload(self, pair):
        client, server = pair
        assert client.write_record(RecordType.HANDSHAKE, b"") == 0
        assert server.read_record() == (RecordType.HANDSHAKE, b"")

    def test_directions_are_independent(self, pair):
        client, server = pair
        client.set_write_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"client-hs")
        server.set_read_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"client-hs")
        # Server keeps writing at Initial
        client.write_record(RecordType.HANDSHAKE, b"finished")
        server.write_record(RecordType.HANDSHAKE, b"hello")

        assert server.read_record() == (RecordType.HANDSHAKE, b"finished")
        assert client.read_record() == (RecordType.HANDSHAKE, b"hello")

    def test_want_type_is_not_checked(self, pair):
        client, server = pair
        client.write_record(RecordType.HANDSHAKE, b"hs")
        record_type, _ = server.read_record(RecordType.APPLICATION_DATA)
        assert record_type == RecordType.HANDSHAKE

    def test_statistics(self, pair):
        client, server = pair
        client.write_record(RecordType.HANDSHAKE, b"a")
        client.write_record(RecordType.HANDSHAKE, b"b")
        server.read_record()
        assert client.records_sent == 2
        assert server.records_received == 1


class TestWriteRecord:
    def test_alert_is_rejected_without_writing(self, pair):
        client, server = pair
        with pytest.raises(UnsupportedRecordTypeError):
            client.write_record(RecordType.ALERT, b"\x02\x28")
        client.write_record(RecordType.HANDSHAKE, b"next")
        # The alert left nothing on the stream
        assert server.read_record() == (RecordType.HANDSHAKE, b"next")
        assert client.records_sent == 1

    def test_unknown_type_is_rejected(self, pair):
        client, _ = pair
        with pytest.raises(UnsupportedRecordTypeError, match="unsupported record type 99"):
            client.write_record(99, b"x")


class TestLevelValidation:
    def test_level_mismatch_consumes_one_record(self, pair):
        client, server = pair
        client.set_write_level(EncryptionLevel.HANDSHAKE)
        client.write_record(RecordType.HANDSHAKE, b"too early")
        client.set_write_level(EncryptionLevel.INITIAL)
        client.write_record(RecordType.HANDSHAKE, b"next")

        with pytest.raises(LevelMismatchError) as exc_info:
            server.read_record()
        assert exc_info.value.received == EncryptionLevel.HANDSHAKE
        assert exc_info.value.expected == EncryptionLevel.INITIAL
        assert "received level 2 does not match expected 0" in str(exc_info.value)

        assert server.read_record() == (RecordType.HANDSHAKE, b"next")

    def test_early_data_rejected_without_skip(self, pair):
        client, server = pair
        client.set_write_level(EncryptionLevel.EARLY_DATA)
        client.write_record(RecordType.APPLICATION_DATA, b"0-rtt")
        server.set_read_level(EncryptionLevel.HANDSHAKE)

        with pytest.raises(LevelMismatchError):
            server.read_record()


class TestSkipEarlyData:
    def test_skips_early_data_records(self, pair):
        client, server = pair
        client.set_write_secret(EncryptionLevel.EARLY_DATA, 0x1301, b"early")
        for i in range(3):
            client.write_record(RecordType.APPLICATION_DATA, f"early {i}".encode())
        client.set_write_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"hs")
        client.write_record(RecordType.HANDSHAKE, b"finished")
        client.write_record(RecordType.HANDSHAKE, b"after")

        server.set_read_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"hs")
        server.skip_early_data = True

        assert server.read_record() == (RecordType.HANDSHAKE, b"finished")
        assert server.early_data_skipped == 3
        assert server.skip_early_data is False
        # Exactly the skipped records were consumed
        assert server.read_record() == (RecordType.HANDSHAKE, b"after")

    def test_latch_clears_after_first_valid_record(self, pair):
        client, server = pair
        client.set_write_level(EncryptionLevel.HANDSHAKE)
        client.write_record(RecordType.HANDSHAKE, b"first")
        client.set_write_level(EncryptionLevel.EARLY_DATA)
        client.write_record(RecordType.APPLICATION_DATA, b"late 0-rtt")

        server.set_read_level(EncryptionLevel.HANDSHAKE)
        server.skip_early_data = True
        server.read_record()

        with pytest.raises(LevelMismatchError):
            server.read_record()

    def test_latch_clears_on_early_data_level_record(self, pair):
        client, server = pair
        client.set_write_level(EncryptionLevel.EARLY_DATA)
        client.write_record(RecordType.APPLICATION_DATA, b"accepted 0-rtt")

        server.set_read_level(EncryptionLevel.EARLY_DATA)
        server.skip_early_data = True
        assert server.read_record() == (RecordType.APPLICATION_DATA, b"accepted 0-rtt")
        assert server.skip_early_data is False
        assert server.early_data_skipped == 0

    def test_other_levels_are_not_skipped(self, pair):
        client, server = pair
        client.set_write_level(EncryptionLevel.APPLICATION)
        client.write_record(RecordType.APPLICATION_DATA, b"1-rtt")

        server.set_read_level(EncryptionLevel.HANDSHAKE)
        server.skip_early_data = True
        with pytest.raises(LevelMismatchError):
            server.read_record()
        # A failed record does not clear the latch
        assert server.skip_early_data is True


class TestCipherAndSecret:
    def test_cipher_suite_mismatch(self, pair):
        client, server = pair
        install(client, EncryptionLevel.HANDSHAKE, 0x1301, b"KEY")
        install(server, EncryptionLevel.HANDSHAKE, 0x1302, b"KEY")
        client.write_record(RecordType.HANDSHAKE, b"x")

        with pytest.raises(CipherSuiteMismatchError) as exc_info:
            server.read_record()
        assert exc_info.value.received == 0x1301
        assert exc_info.value.expected == 0x1302

    def test_secret_mismatch(self, pair):
        client, server = pair
        install(client, EncryptionLevel.HANDSHAKE, 0x1301, b"KEY")
        install(server, EncryptionLevel.HANDSHAKE, 0x1301, b"KEX")
        client.write_record(RecordType.HANDSHAKE, b"payload")

        with pytest.raises(SecretMismatchError) as exc_info:
            server.read_record()
        assert exc_info.value.received == b"KEY"
        assert exc_info.value.expected == b"KEX"
        assert "got 4b4559 but expected 4b4558" in str(exc_info.value)
        assert server.records_received == 0

    def test_input_too_short(self, pair):
        client, server = pair
        client.set_write_level(EncryptionLevel.HANDSHAKE)
        client.write_record(RecordType.HANDSHAKE, b"ab")
        server.set_read_secret(EncryptionLevel.HANDSHAKE, 0, b"LONGKEY")

        with pytest.raises(InputTooShortError):
            server.read_record()

    def test_secret_prefix_is_stripped(self, pair):
        client, server = pair
        # Reader secret shorter than writer secret: remainder is payload
        client.set_write_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"KEYPAYLOAD")
        server.set_read_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"KEY")
        client.write_record(RecordType.HANDSHAKE, b"")
        assert server.read_record() == (RecordType.HANDSHAKE, b"PAYLOAD")


class TestTags:
    def test_alert_tag_accepted_on_read(self, pair):
        client, server = pair
        client.sock.sendall(build_record(ord("L"), 0, 0, b"", b"\x02\x28"))
        assert server.read_record() == (RecordType.ALERT, b"\x02\x28")

    def test_unknown_tag(self, pair):
        client, server = pair
        server.skip_early_data = True
        client.sock.sendall(build_record(ord("X"), 0, 0, b"", b"?"))

        with pytest.raises(UnknownRecordTypeError, match="unknown type 88"):
            server.read_record()
        # Record itself was valid, so the latch is cleared
        assert server.skip_early_data is False


class TestTruncation:
    def test_closed_before_header(self, pair):
        client, server = pair
        client.close()
        with pytest.raises(ConnectionError):
            server.read_record()

    def test_short_header_is_io_error(self, pair):
        client, server = pair
        client.sock.sendall(b"H\x00\x13")
        client.close()
        with pytest.raises(ConnectionError):
            server.read_record()

    def test_short_value_is_record_read_error(self, pair):
        client, server = pair
        record = build_record(ord("H"), 0, 0, b"", b"0123456789")
        client.sock.sendall(record[:12])
        client.close()

        with pytest.raises(RecordReadError, match="error reading record"):
            server.read_record()

    def test_record_read_error_is_not_connection_error(self):
        assert issubclass(RecordReadError, MockQUICError)
        assert not issubclass(RecordReadError, ConnectionError)


class TestDirectAccess:
    @pytest.mark.parametrize("method, args", [
        ("recv", (1,)),
        ("recv_into", (bytearray(1),)),
        ("read", (1,)),
        ("send", (b"x",)),
        ("sendall", (b"x",)),
        ("write", (b"x",)),
    ])
    def test_unstructured_io_is_fatal(self, pair, method, args):
        client, _ = pair
        with pytest.raises(UnexpectedStreamAccess):
            getattr(client, method)(*args)

    def test_not_caught_by_exception_handlers(self, pair):
        client, _ = pair
        assert not issubclass(UnexpectedStreamAccess, Exception)
        with pytest.raises(UnexpectedStreamAccess):
            try:
                client.write(b"x")
            except Exception:
                pytest.fail("contract violation was caught as an Exception")


class TestDirectionSetters:
    def test_invalid_level(self, pair):
        client, _ = pair
        with pytest.raises(ValueError):
            client.set_read_secret(7, 0x1301, b"k")

    def test_cipher_suite_range(self, pair):
        client, _ = pair
        with pytest.raises(ValueError):
            client.set_write_secret(EncryptionLevel.HANDSHAKE, 0x10000, b"k")

    def test_secret_type(self, pair):
        client, _ = pair
        with pytest.raises(TypeError):
            client.set_write_secret(EncryptionLevel.HANDSHAKE, 0x1301, "key")

    def test_direct_field_access(self, pair):
        client, server = pair
        client.write_state.level = EncryptionLevel.APPLICATION
        client.write_state.cipher_suite = 0x1303
        client.write_state.secret = b"s"
        server.read_state.level = EncryptionLevel.APPLICATION
        server.read_state.cipher_suite = 0x1303
        server.read_state.secret = b"s"

        client.write_record(RecordType.APPLICATION_DATA, b"data")
        assert server.read_record() == (RecordType.APPLICATION_DATA, b"data")


class TestKeylog:
    def test_installed_secrets_are_logged(self, tmp_path):
        keylog = tmp_path / "keys.log"
        client_random = bytes(32)
        client, server = create_transport_pair(keylog_file=str(keylog),
                                               client_random=client_random)
        with client, server:
            client.set_write_secret(EncryptionLevel.INITIAL, 0, b"")
            client.set_write_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"\x01" * 32)
            client.set_read_secret(EncryptionLevel.HANDSHAKE, 0x1301, b"\x02" * 32)

        lines = keylog.read_text().splitlines()
        assert lines == [
            f"CLIENT_HANDSHAKE_TRAFFIC_SECRET {'00' * 32} {'01' * 32}",
            f"SERVER_HANDSHAKE_TRAFFIC_SECRET {'00' * 32} {'02' * 32}",
        ]


class FailingSocket:
    """Socket stand-in whose I/O fails the way a reset connection does."""

    def __init__(self, error):
        self.error = error

    def sendall(self, data):
        raise self.error

    def recv(self, n):
        raise self.error

    def close(self):
        pass


class TestStreamErrors:
    def test_write_error_propagates_unchanged(self):
        error = BrokenPipeError(32, "Broken pipe")
        transport = MockQUICTransport(FailingSocket(error))
        with pytest.raises(BrokenPipeError) as exc_info:
            transport.write_record(RecordType.HANDSHAKE, b"hello")
        assert exc_info.value is error
        assert transport.records_sent == 0

    def test_header_read_error_propagates_unchanged(self):
        error = ConnectionResetError(104, "Connection reset by peer")
        transport = MockQUICTransport(FailingSocket(error))
        with pytest.raises(ConnectionResetError) as exc_info:
            transport.read_record()
        assert exc_info.value is error

    def test_write_to_closed_peer(self, pair):
        client, server = pair
        server.close()
        with pytest.raises(OSError):
            # The first write may still be buffered; keep writing until the reset shows
            for _ in range(64):
                client.write_record(RecordType.HANDSHAKE, b"x" * 4096)

    def test_non_integer_record_type(self, pair):
        client, server = pair
        with pytest.raises(UnsupportedRecordTypeError, match="unsupported record type None"):
            client.write_record(None, b"x")
        client.write_record(RecordType.HANDSHAKE, b"next")
        assert server.read_record() == (RecordType.HANDSHAKE, b"next")
