"""
TLS 1.3 Extension Building and Parsing (RFC 8446)
"""

import struct
from .constants import (
    EXT_SUPPORTED_VERSIONS, EXT_KEY_SHARE, EXT_EARLY_DATA,
    GROUP_X25519, EXTENSION_NAMES, GROUP_NAMES
)


def build_extension(ext_type: int, data: bytes) -> bytes:
    """
    Build a TLS extension.

    Args:
        ext_type: Extension type
        data: Extension data

    Returns:
        bytes: Complete extension
    """
    return struct.pack(">HH", ext_type, len(data)) + data


def build_supported_versions_extension(is_server: bool = False) -> bytes:
    """Build supported_versions extension (TLS 1.3 only)."""
    versions = struct.pack(">H", 0x0304)  # TLS 1.3
    if is_server:
        # Server sends the selected version
        return build_extension(EXT_SUPPORTED_VERSIONS, versions)
    data = struct.pack("B", len(versions)) + versions
    return build_extension(EXT_SUPPORTED_VERSIONS, data)


def build_key_share_extension(public_key: bytes, is_server: bool = False) -> bytes:
    """Build key_share extension with x25519 public key."""
    # Key Share Entry: group (2) + length (2) + key
    key_entry = struct.pack(">HH", GROUP_X25519, len(public_key)) + public_key
    if is_server:
        return build_extension(EXT_KEY_SHARE, key_entry)
    # Client Key Share Length
    data = struct.pack(">H", len(key_entry)) + key_entry
    return build_extension(EXT_KEY_SHARE, data)


def build_early_data_extension() -> bytes:
    """Build empty early_data extension (ClientHello / EncryptedExtensions)."""
    return build_extension(EXT_EARLY_DATA, b"")


def parse_tls_extensions(data: bytes, is_server_hello: bool = False) -> list:
    """
    Parse TLS extensions.

    Args:
        data: Raw extensions data
        is_server_hello: True if parsing ServerHello extensions

    Returns:
        list: List of parsed extension dicts
    """
    extensions = []
    offset = 0

    while offset + 4 <= len(data):
        ext_type = struct.unpack(">H", data[offset:offset+2])[0]
        ext_len = struct.unpack(">H", data[offset+2:offset+4])[0]
        ext_data = data[offset+4:offset+4+ext_len]

        ext_name = EXTENSION_NAMES.get(ext_type, f"unknown(0x{ext_type:04x})")

        ext_info = {
            "type": ext_type,
            "name": ext_name,
            "length": ext_len,
        }

        if ext_type == EXT_SUPPORTED_VERSIONS:
            if is_server_hello and len(ext_data) >= 2:
                version = struct.unpack(">H", ext_data[0:2])[0]
                ext_info["version"] = f"0x{version:04x}"
            elif not is_server_hello and len(ext_data) >= 1:
                ver_len = ext_data[0]
                versions = []
                for i in range(1, 1 + ver_len, 2):
                    if i + 1 < len(ext_data):
                        v = struct.unpack(">H", ext_data[i:i+2])[0]
                        versions.append(f"0x{v:04x}")
                ext_info["versions"] = versions

        elif ext_type == EXT_KEY_SHARE:
            # ClientHello carries a list, ServerHello a single entry
            entry = ext_data if is_server_hello else ext_data[2:]
            if len(entry) >= 4:
                group = struct.unpack(">H", entry[0:2])[0]
                key_len = struct.unpack(">H", entry[2:4])[0]
                key_exchange = entry[4:4+key_len]

                ext_info["group"] = GROUP_NAMES.get(group, f"0x{group:04x}")
                ext_info["key_exchange_length"] = key_len
                ext_info["key_exchange_bytes"] = key_exchange  # Keep raw bytes for ECDH

        extensions.append(ext_info)
        offset += 4 + ext_len

    return extensions


def find_extension(extensions: list, ext_type: int) -> dict:
    """Return the first parsed extension of the given type, or None."""
    for ext in extensions:
        if ext["type"] == ext_type:
            return ext
    return None
