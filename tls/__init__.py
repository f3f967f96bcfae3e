"""
TLS 1.3 Support for the Mock QUIC Transport

Provides:
- Handshake message building and parsing
- TLS extension building and parsing
- Key schedule for per-level traffic secrets
"""

from .constants import *
from .extensions import build_extension, parse_tls_extensions, find_extension
from .handshake import (
    build_handshake_message, build_client_hello, build_server_hello,
    build_encrypted_extensions, build_certificate, build_certificate_verify,
    build_finished, parse_tls_handshake,
)
from .key_schedule import KeySchedule, hkdf_extract, hkdf_expand_label, perform_ecdh
