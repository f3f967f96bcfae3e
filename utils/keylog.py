"""
Key Logging Utilities for Wireshark/tshark

Writes TLS secrets in SSLKEYLOGFILE format for packet inspection.
"""

# Encryption levels as carried on the wire (0 = Initial has no keylog entry)
LEVEL_EARLY_DATA = 1
LEVEL_HANDSHAKE = 2
LEVEL_APPLICATION = 3

_CLIENT_LABELS = {
    LEVEL_EARLY_DATA: "CLIENT_EARLY_TRAFFIC_SECRET",
    LEVEL_HANDSHAKE: "CLIENT_HANDSHAKE_TRAFFIC_SECRET",
    LEVEL_APPLICATION: "CLIENT_TRAFFIC_SECRET_0",
}

_SERVER_LABELS = {
    LEVEL_HANDSHAKE: "SERVER_HANDSHAKE_TRAFFIC_SECRET",
    LEVEL_APPLICATION: "SERVER_TRAFFIC_SECRET_0",
}


def keylog_label(level: int, is_client: bool) -> str:
    """
    SSLKEYLOGFILE label for a traffic secret.

    Args:
        level: Encryption level the secret belongs to
        is_client: True for a secret the client sends with

    Returns:
        str: Label, or None if the level has no keylog entry (Initial)
    """
    labels = _CLIENT_LABELS if is_client else _SERVER_LABELS
    return labels.get(level)


def write_keylog(keylog_file: str, client_random: bytes, entries: list) -> list:
    """
    Append secrets to a keylog file in SSLKEYLOGFILE format.

    Format:
        <LABEL> <client_random_hex> <secret_hex>

    Args:
        keylog_file: Path to the keylog file
        client_random: 32-byte client random from ClientHello
        entries: List of (label, secret) tuples; empty secrets are skipped

    Returns:
        list: Lines that were written to the file
    """
    client_random_hex = client_random.hex()
    lines = []

    for label, secret in entries:
        if label and secret:
            lines.append(f"{label} {client_random_hex} {secret.hex()}")

    with open(keylog_file, "a") as f:
        for line in lines:
            f.write(line + "\n")

    return lines
