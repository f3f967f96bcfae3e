"""
TLS 1.3 Handshake Message Building and Parsing (RFC 8446)
"""

import os
import struct
from .constants import (
    TLS_AES_128_GCM_SHA256, HANDSHAKE_TYPE_NAMES, CIPHER_SUITE_NAMES,
    HANDSHAKE_CLIENT_HELLO, HANDSHAKE_SERVER_HELLO, HANDSHAKE_ENCRYPTED_EXTENSIONS,
    HANDSHAKE_CERTIFICATE, HANDSHAKE_CERTIFICATE_VERIFY, HANDSHAKE_FINISHED,
    SIG_ED25519,
)
from .extensions import (
    build_key_share_extension, build_supported_versions_extension,
    build_early_data_extension, parse_tls_extensions,
)


def build_handshake_message(msg_type: int, body: bytes) -> bytes:
    """Prefix a handshake body with its type and 3-byte length."""
    return struct.pack(">B", msg_type) + struct.pack(">I", len(body))[1:] + body


def build_client_hello(x25519_public_key: bytes, cipher_suites: list = None,
                       early_data: bool = False) -> tuple:
    """
    Build TLS 1.3 ClientHello.

    Args:
        x25519_public_key: Client's X25519 public key
        cipher_suites: Offered cipher suites (default: TLS_AES_128_GCM_SHA256)
        early_data: Include the early_data extension

    Returns:
        tuple: (handshake_message, client_random)
    """
    if cipher_suites is None:
        cipher_suites = [TLS_AES_128_GCM_SHA256]

    extensions = b""
    extensions += build_key_share_extension(x25519_public_key)
    extensions += build_supported_versions_extension()
    if early_data:
        extensions += build_early_data_extension()

    client_random = os.urandom(32)  # Save for key logging
    client_hello = b""
    client_hello += struct.pack(">H", 0x0303)  # legacy_version: TLS 1.2
    client_hello += client_random              # random (32 bytes)
    client_hello += struct.pack("B", 0)         # session_id_length: 0

    suites = b"".join(struct.pack(">H", suite) for suite in cipher_suites)
    client_hello += struct.pack(">H", len(suites)) + suites

    # Compression methods (null only)
    client_hello += struct.pack("BB", 1, 0)

    client_hello += struct.pack(">H", len(extensions)) + extensions

    return build_handshake_message(HANDSHAKE_CLIENT_HELLO, client_hello), client_random


def build_server_hello(x25519_public_key: bytes, cipher_suite: int) -> bytes:
    """Build TLS 1.3 ServerHello selecting a cipher suite."""
    extensions = build_key_share_extension(x25519_public_key, is_server=True)
    extensions += build_supported_versions_extension(is_server=True)

    server_hello = struct.pack(">H", 0x0303)
    server_hello += os.urandom(32)
    server_hello += struct.pack("B", 0)
    server_hello += struct.pack(">H", cipher_suite)
    server_hello += struct.pack("B", 0)
    server_hello += struct.pack(">H", len(extensions)) + extensions
    return build_handshake_message(HANDSHAKE_SERVER_HELLO, server_hello)


def build_encrypted_extensions(early_data_accepted: bool = False) -> bytes:
    extensions = build_early_data_extension() if early_data_accepted else b""
    body = struct.pack(">H", len(extensions)) + extensions
    return build_handshake_message(HANDSHAKE_ENCRYPTED_EXTENSIONS, body)


def build_certificate(cert_data: bytes) -> bytes:
    """Build a Certificate message carrying a single opaque certificate."""
    entry = struct.pack(">I", len(cert_data))[1:] + cert_data + struct.pack(">H", 0)
    body = struct.pack("B", 0) + struct.pack(">I", len(entry))[1:] + entry
    return build_handshake_message(HANDSHAKE_CERTIFICATE, body)


def build_certificate_verify(signature: bytes, algorithm: int = SIG_ED25519) -> bytes:
    body = struct.pack(">HH", algorithm, len(signature)) + signature
    return build_handshake_message(HANDSHAKE_CERTIFICATE_VERIFY, body)


def build_finished(verify_data: bytes) -> bytes:
    return build_handshake_message(HANDSHAKE_FINISHED, verify_data)


def _parse_hello(msg_data: bytes, message: dict, is_server_hello: bool) -> None:
    message["random"] = msg_data[2:34]

    session_id_len = msg_data[34]
    idx = 35 + session_id_len

    if is_server_hello:
        cipher_suite = struct.unpack(">H", msg_data[idx:idx+2])[0]
        message["cipher_suite"] = CIPHER_SUITE_NAMES.get(cipher_suite, f"0x{cipher_suite:04x}")
        message["cipher_suite_id"] = cipher_suite
        idx += 3  # cipher suite + compression method
    else:
        suites_len = struct.unpack(">H", msg_data[idx:idx+2])[0]
        idx += 2
        message["cipher_suites"] = [
            struct.unpack(">H", msg_data[i:i+2])[0]
            for i in range(idx, idx + suites_len, 2)
        ]
        idx += suites_len
        compression_len = msg_data[idx]
        idx += 1 + compression_len

    if idx + 2 <= len(msg_data):
        ext_len = struct.unpack(">H", msg_data[idx:idx+2])[0]
        idx += 2
        message["extensions"] = parse_tls_extensions(
            msg_data[idx:idx+ext_len], is_server_hello=is_server_hello
        )


def parse_tls_handshake(data: bytes, debug: bool = False) -> list:
    """
    Parse TLS handshake messages.

    Args:
        data: Raw handshake data
        debug: Enable debug output

    Returns:
        list: List of parsed message dicts
    """
    messages = []
    offset = 0

    while offset + 4 <= len(data):
        msg_type = data[offset]
        length = struct.unpack(">I", b'\x00' + data[offset+1:offset+4])[0]

        # Incomplete message
        if offset + 4 + length > len(data):
            break

        msg_name = HANDSHAKE_TYPE_NAMES.get(msg_type, f"Unknown({msg_type})")
        msg_data = data[offset+4:offset+4+length]

        message = {
            "type": msg_name,
            "type_id": msg_type,
            "length": length,
        }

        if msg_type == HANDSHAKE_CLIENT_HELLO and len(msg_data) >= 35:
            _parse_hello(msg_data, message, is_server_hello=False)

        elif msg_type == HANDSHAKE_SERVER_HELLO and len(msg_data) >= 35:
            _parse_hello(msg_data, message, is_server_hello=True)

        elif msg_type == HANDSHAKE_ENCRYPTED_EXTENSIONS and len(msg_data) >= 2:
            ext_len = struct.unpack(">H", msg_data[0:2])[0]
            message["extensions"] = parse_tls_extensions(msg_data[2:2+ext_len])

        elif msg_type == HANDSHAKE_FINISHED:
            message["verify_data"] = msg_data

        if debug:
            print(f"    ✓ Parsed {msg_name} ({length} bytes)")

        messages.append(message)
        offset += 4 + length

    return messages
