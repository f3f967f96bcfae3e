#!/usr/bin/env python3
"""
Mock QUIC Transport - Main Entry Point

Drives a scripted TLS 1.3 exchange between a client and a server over a
loopback mock QUIC transport, installing real key-schedule secrets on both
directions at each encryption level.

Supports:
- All TLS 1.3 cipher suites (SHA-256 and SHA-384 key schedules)
- 0-RTT records, accepted or silently skipped after rejection
- Key logging for Wireshark (SSLKEYLOGFILE format)

Usage:
    python main.py [options]

Examples:
    # Plain 1-RTT handshake
    python main.py

    # Send 3 early data records, server accepts them
    python main.py --early-data 3

    # Server rejects 0-RTT and skips the early data records
    python main.py --early-data 3 --reject-early-data --debug

    # AES-256 suite with keylog
    python main.py --cipher-suite 0x1302 -k keys.log
"""

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from mock_quic import (
    EncryptionLevel, RecordType, MockQUICError, create_transport_pair,
)
from tls import (
    KeySchedule, perform_ecdh, find_extension, parse_tls_handshake,
    build_client_hello, build_server_hello, build_encrypted_extensions,
    build_certificate, build_certificate_verify, build_finished,
    CIPHER_SUITE_NAMES, EXT_KEY_SHARE, HANDSHAKE_FINISHED,
)


# Resumption PSK used for 0-RTT in the scripted exchange
DEMO_PSK = bytes(range(32))


def _public_bytes(private_key: X25519PrivateKey) -> bytes:
    return private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def _read_handshake(transport, expected_type: int = None) -> tuple:
    """Read one handshake record, returning (raw message, parsed dict)."""
    record_type, data = transport.read_record(RecordType.HANDSHAKE)
    if record_type != RecordType.HANDSHAKE:
        raise MockQUICError(f"expected handshake record, got {record_type.name}")
    message = parse_tls_handshake(data)[0]
    if expected_type is not None and message["type_id"] != expected_type:
        raise MockQUICError(f"unexpected handshake message {message['type']}")
    return data, message


def _run_client(client, cipher_suite: int, early_data: int, client_hello: bytes,
                client_key: X25519PrivateKey, debug: bool = False) -> dict:
    """
    Client side: ClientHello, optional 0-RTT, server flight, Finished, ping.

    Closes its transport on failure so the server side sees end of stream
    rather than waiting forever.
    """
    ks = KeySchedule(cipher_suite, debug=debug)
    result = {"early_data_sent": 0, "application_data": b""}

    try:
        # [1] ClientHello at Initial, then optional 0-RTT
        client.write_record(RecordType.HANDSHAKE, client_hello)
        if early_data:
            early_secret = ks.derive_early_secrets(DEMO_PSK, ks.transcript_hash(client_hello))
            client.set_write_secret(EncryptionLevel.EARLY_DATA, cipher_suite, early_secret)
            for i in range(early_data):
                client.write_record(RecordType.APPLICATION_DATA, f"early {i}".encode())
                result["early_data_sent"] += 1

        # [4] Server flight
        received_sh, parsed_sh = _read_handshake(client)
        server_share = find_extension(parsed_sh["extensions"], EXT_KEY_SHARE)
        transcript = [client_hello, received_sh]
        shared = perform_ecdh(client_key, server_share["key_exchange_bytes"])
        hs = ks.derive_handshake_secrets(shared, ks.transcript_hash(*transcript))
        client.set_read_secret(EncryptionLevel.HANDSHAKE, cipher_suite, hs["server"])

        while True:
            data, message = _read_handshake(client)
            if message["type_id"] == HANDSHAKE_FINISHED:
                expected = ks.finished_verify_data(hs["server"], ks.transcript_hash(*transcript))
                if message["verify_data"] != expected:
                    raise MockQUICError("server Finished verify_data mismatch")
                transcript.append(data)
                break
            transcript.append(data)

        app = ks.derive_application_secrets(ks.transcript_hash(*transcript))
        client.set_write_secret(EncryptionLevel.HANDSHAKE, cipher_suite, hs["client"])
        client_finished = build_finished(
            ks.finished_verify_data(hs["client"], ks.transcript_hash(*transcript))
        )
        client.write_record(RecordType.HANDSHAKE, client_finished)
        client.set_write_secret(EncryptionLevel.APPLICATION, cipher_suite, app["client"])
        client.set_read_secret(EncryptionLevel.APPLICATION, cipher_suite, app["server"])

        # [6] Application data round trip
        client.write_record(RecordType.APPLICATION_DATA, b"ping")
        _, result["application_data"] = client.read_record(RecordType.APPLICATION_DATA)
    except BaseException:
        client.close()
        raise

    return result


def _run_server(server, cipher_suite: int, early_data: int, reject_early_data: bool,
                server_key: X25519PrivateKey, debug: bool = False) -> dict:
    """Server side: ServerHello and flight, 0-RTT handling, client Finished, pong."""
    ks = KeySchedule(cipher_suite, debug=debug)
    result = {"early_data_received": 0, "early_data_skipped": 0}

    # [2] ClientHello and server flight
    received_hello, parsed_hello = _read_handshake(server)
    client_share = find_extension(parsed_hello["extensions"], EXT_KEY_SHARE)
    server_hello = build_server_hello(_public_bytes(server_key), cipher_suite)
    server.write_record(RecordType.HANDSHAKE, server_hello)

    transcript = [received_hello, server_hello]
    shared = perform_ecdh(server_key, client_share["key_exchange_bytes"])
    if early_data:
        ks.derive_early_secrets(DEMO_PSK, ks.transcript_hash(received_hello))
    hs = ks.derive_handshake_secrets(shared, ks.transcript_hash(*transcript))
    server.set_write_secret(EncryptionLevel.HANDSHAKE, cipher_suite, hs["server"])

    accept_early = early_data > 0 and not reject_early_data
    flight = [
        build_encrypted_extensions(early_data_accepted=accept_early),
        build_certificate(b"mock certificate"),
        build_certificate_verify(b"\x00" * 64),
    ]
    for message in flight:
        server.write_record(RecordType.HANDSHAKE, message)
        transcript.append(message)
    server_finished = build_finished(
        ks.finished_verify_data(hs["server"], ks.transcript_hash(*transcript))
    )
    server.write_record(RecordType.HANDSHAKE, server_finished)
    transcript.append(server_finished)
    app = ks.derive_application_secrets(ks.transcript_hash(*transcript))
    server.set_write_secret(EncryptionLevel.APPLICATION, cipher_suite, app["server"])

    # [3] Consume 0-RTT, or arm the skip before the client flight
    if accept_early:
        server.set_read_secret(EncryptionLevel.EARLY_DATA, cipher_suite,
                               ks.secrets_for_level(EncryptionLevel.EARLY_DATA)[0])
        for _ in range(early_data):
            server.read_record(RecordType.APPLICATION_DATA)
            result["early_data_received"] += 1
    elif early_data:
        server.skip_early_data = True
    server.set_read_secret(EncryptionLevel.HANDSHAKE, cipher_suite, hs["client"])

    # [5] Client Finished
    _, message = _read_handshake(server, HANDSHAKE_FINISHED)
    expected = ks.finished_verify_data(hs["client"], ks.transcript_hash(*transcript))
    if message["verify_data"] != expected:
        raise MockQUICError("client Finished verify_data mismatch")
    result["early_data_skipped"] = server.early_data_skipped
    server.set_read_secret(EncryptionLevel.APPLICATION, cipher_suite, app["client"])

    # [6] Echo application data
    _, request = server.read_record(RecordType.APPLICATION_DATA)
    server.write_record(RecordType.APPLICATION_DATA, request + b" pong")
    return result


def run_exchange(cipher_suite: int = 0x1301, early_data: int = 0,
                 reject_early_data: bool = False, debug: bool = False,
                 keylog_file: str = None) -> dict:
    """
    Run a complete scripted exchange over a loopback transport pair.

    The client runs on a worker thread and the server on the calling thread,
    so each peer blocks only on its own reads.

    Args:
        cipher_suite: TLS 1.3 cipher suite used for every protected level
        early_data: Number of 0-RTT application records the client sends
        reject_early_data: Server rejects 0-RTT and skips those records
        debug: Enable debug output
        keylog_file: Path to write client-side secrets in SSLKEYLOGFILE format

    Returns:
        dict: Summary of the exchange
    """
    if early_data < 0:
        raise ValueError(f"early_data must be >= 0, got {early_data}")
    # Validate the suite before any thread starts
    KeySchedule(cipher_suite)

    client_key = X25519PrivateKey.generate()
    server_key = X25519PrivateKey.generate()
    client_hello, client_random = build_client_hello(
        _public_bytes(client_key), [cipher_suite], early_data=early_data > 0
    )
    client, server = create_transport_pair(debug=debug, keylog_file=keylog_file,
                                           client_random=client_random)

    with ThreadPoolExecutor(max_workers=1) as pool:
        with client, server:
            future = pool.submit(_run_client, client, cipher_suite, early_data,
                                 client_hello, client_key, debug)
            try:
                server_result = _run_server(server, cipher_suite, early_data,
                                            reject_early_data, server_key, debug)
            except (MockQUICError, OSError):
                # End of stream for the client, then report its error if it failed first
                server.close()
                client_error = future.exception()
                if client_error is not None:
                    raise client_error
                raise
            client_result = future.result()

    summary = {"cipher_suite": cipher_suite}
    summary.update(client_result)
    summary.update(server_result)
    return summary


def main():
    parser = argparse.ArgumentParser(
        description="Run a scripted TLS 1.3 exchange over a mock QUIC transport"
    )
    parser.add_argument("--cipher-suite", type=lambda s: int(s, 0), default=0x1301,
                        help="TLS 1.3 cipher suite (default: 0x1301)")
    parser.add_argument("--early-data", type=int, default=0, metavar="N",
                        help="Number of 0-RTT records to send (default: 0)")
    parser.add_argument("--reject-early-data", action="store_true",
                        help="Server rejects 0-RTT and skips early data records")
    parser.add_argument("-k", "--keylog", dest="keylog_file", default=None,
                        help="Write secrets to this file (SSLKEYLOGFILE format)")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug output")
    args = parser.parse_args()

    suite_name = CIPHER_SUITE_NAMES.get(args.cipher_suite, f"0x{args.cipher_suite:04x}")
    print("=" * 60)
    print("Mock QUIC Transport Exchange")
    print("=" * 60)
    print(f"    Cipher suite: {suite_name}")
    print(f"    Early data records: {args.early_data}"
          f"{' (rejected)' if args.reject_early_data and args.early_data else ''}")
    if args.keylog_file:
        print(f"    Key log file: {args.keylog_file}")

    try:
        summary = run_exchange(
            cipher_suite=args.cipher_suite,
            early_data=args.early_data,
            reject_early_data=args.reject_early_data,
            debug=args.debug,
            keylog_file=args.keylog_file,
        )
    except (MockQUICError, ConnectionError, ValueError) as e:
        print(f"\n❌ Exchange failed: {e}")
        return 1

    print(f"\n    === Exchange Summary ===")
    print(f"    0-RTT sent: {summary['early_data_sent']}")
    print(f"    0-RTT received: {summary['early_data_received']}")
    print(f"    0-RTT skipped: {summary['early_data_skipped']}")
    print(f"    Application data: {summary['application_data']!r}")
    print("\n✅ Exchange complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
