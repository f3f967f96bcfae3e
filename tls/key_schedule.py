"""
TLS 1.3 Key Schedule (RFC 8446 Section 7.1)

Derives the traffic secrets a driver installs on each direction of the
mock QUIC transport:
- Early (0-RTT) client traffic secret
- Client/Server handshake traffic secrets
- Client/Server application traffic secrets
"""

import hmac
import struct
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.kdf.hkdf import HKDFExpand

from mock_quic.constants import EncryptionLevel

from .constants import CIPHER_SUITE_HASHES, TLS_AES_128_GCM_SHA256


_HASH_ALGORITHMS = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
}


def hash_algorithm(cipher_suite: int) -> hashes.HashAlgorithm:
    """Hash algorithm of a TLS 1.3 cipher suite."""
    name = CIPHER_SUITE_HASHES.get(cipher_suite)
    if name is None:
        raise ValueError(f"Unsupported cipher suite: 0x{cipher_suite:04x}")
    return _HASH_ALGORITHMS[name]()


def hkdf_extract(salt: bytes, ikm: bytes, algorithm: hashes.HashAlgorithm = None) -> bytes:
    """
    HKDF-Extract.

    Args:
        salt: Salt value (zero-length means hash_len zero bytes)
        ikm: Input keying material
        algorithm: Hash algorithm (default SHA-256)

    Returns:
        bytes: Pseudorandom key
    """
    if algorithm is None:
        algorithm = hashes.SHA256()
    if not salt:
        salt = b"\x00" * algorithm.digest_size
    return hmac.new(salt, ikm, algorithm.name).digest()


def hkdf_expand_label(secret: bytes, label: bytes, context: bytes, length: int,
                      algorithm: hashes.HashAlgorithm = None) -> bytes:
    """
    HKDF-Expand-Label as defined in TLS 1.3 (RFC 8446 Section 7.1).

    HkdfLabel structure:
        uint16 length
        opaque label<7..255> = "tls13 " + Label
        opaque context<0..255>
    """
    if algorithm is None:
        algorithm = hashes.SHA256()

    hkdf_label = struct.pack(">H", length)  # length (2 bytes)
    full_label = b"tls13 " + label
    hkdf_label += struct.pack("B", len(full_label)) + full_label  # label
    hkdf_label += struct.pack("B", len(context)) + context  # context

    hkdf = HKDFExpand(algorithm=algorithm, length=length, info=hkdf_label)
    return hkdf.derive(secret)


def perform_ecdh(private_key: X25519PrivateKey, peer_public_key_bytes: bytes) -> bytes:
    """
    Perform X25519 ECDH key exchange.

    Returns:
        bytes: 32-byte shared secret
    """
    peer_public_key = X25519PublicKey.from_public_bytes(peer_public_key_bytes)
    return private_key.exchange(peer_public_key)


class KeySchedule:
    """
    TLS 1.3 key schedule for one connection.

    Secrets are derived in handshake order; each step needs the previous one.
    """

    def __init__(self, cipher_suite: int = TLS_AES_128_GCM_SHA256, debug: bool = False):
        self.cipher_suite = cipher_suite
        self.algorithm = hash_algorithm(cipher_suite)
        self.hash_len = self.algorithm.digest_size
        self.debug = debug

        self.early_secret = None
        self.handshake_secret = None
        self.master_secret = None

        # Traffic secrets by level: {level: (client, server)}
        self.traffic_secrets = {}

    def transcript_hash(self, *messages: bytes) -> bytes:
        """Hash of the concatenated handshake messages."""
        digest = hashes.Hash(self.algorithm)
        for message in messages:
            digest.update(message)
        return digest.finalize()

    def _expand(self, secret: bytes, label: bytes, context: bytes) -> bytes:
        return hkdf_expand_label(secret, label, context, self.hash_len, self.algorithm)

    def _derived(self, secret: bytes) -> bytes:
        return self._expand(secret, b"derived", self.transcript_hash())

    def derive_early_secrets(self, psk: bytes = None, client_hello_hash: bytes = None) -> bytes:
        """
        Compute the early secret and, given the ClientHello hash, the
        client early traffic secret.

        Returns:
            bytes: client_early_traffic_secret, or None without client_hello_hash
        """
        if not psk:
            psk = b"\x00" * self.hash_len
        self.early_secret = hkdf_extract(b"", psk, self.algorithm)

        if self.debug:
            print(f"    Early Secret: {self.early_secret.hex()}")

        if client_hello_hash is None:
            return None

        client_early = self._expand(self.early_secret, b"c e traffic", client_hello_hash)
        self.traffic_secrets[EncryptionLevel.EARLY_DATA] = (client_early, b"")

        if self.debug:
            print(f"    Client Early Traffic Secret: {client_early.hex()}")
        return client_early

    def derive_handshake_secrets(self, shared_secret: bytes, transcript_hash: bytes) -> dict:
        """
        Derive handshake traffic secrets.

        Args:
            shared_secret: ECDH shared secret
            transcript_hash: Hash of ClientHello + ServerHello

        Returns:
            dict: {client, server, handshake_secret}
        """
        if self.early_secret is None:
            self.derive_early_secrets()

        self.handshake_secret = hkdf_extract(
            self._derived(self.early_secret), shared_secret, self.algorithm
        )
        client = self._expand(self.handshake_secret, b"c hs traffic", transcript_hash)
        server = self._expand(self.handshake_secret, b"s hs traffic", transcript_hash)
        self.traffic_secrets[EncryptionLevel.HANDSHAKE] = (client, server)

        if self.debug:
            print(f"    Handshake Secret: {self.handshake_secret.hex()}")
            print(f"    Client HS Traffic Secret: {client.hex()}")
            print(f"    Server HS Traffic Secret: {server.hex()}")

        return {
            "client": client,
            "server": server,
            "handshake_secret": self.handshake_secret,
        }

    def derive_application_secrets(self, transcript_hash: bytes) -> dict:
        """
        Derive application traffic secrets.

        Args:
            transcript_hash: Hash of ClientHello through server Finished

        Returns:
            dict: {client, server, master_secret}
        """
        if self.handshake_secret is None:
            raise ValueError("Handshake secret must be computed before application secrets")

        self.master_secret = hkdf_extract(
            self._derived(self.handshake_secret), b"\x00" * self.hash_len, self.algorithm
        )
        client = self._expand(self.master_secret, b"c ap traffic", transcript_hash)
        server = self._expand(self.master_secret, b"s ap traffic", transcript_hash)
        self.traffic_secrets[EncryptionLevel.APPLICATION] = (client, server)

        if self.debug:
            print(f"    Master Secret: {self.master_secret.hex()}")
            print(f"    Client App Traffic Secret: {client.hex()}")
            print(f"    Server App Traffic Secret: {server.hex()}")

        return {
            "client": client,
            "server": server,
            "master_secret": self.master_secret,
        }

    def secrets_for_level(self, level: int) -> tuple:
        """
        (client, server) traffic secrets for an encryption level.

        Initial records carry no secret, so INITIAL is always (b"", b"").
        """
        if level == EncryptionLevel.INITIAL:
            return b"", b""
        if level not in self.traffic_secrets:
            raise ValueError(f"No secrets derived for level {level}")
        return self.traffic_secrets[level]

    def finished_verify_data(self, traffic_secret: bytes, transcript_hash: bytes) -> bytes:
        """
        Compute Finished verify_data.

        finished_key = HKDF-Expand-Label(traffic_secret, "finished", "", Hash.length)
        verify_data = HMAC(finished_key, transcript_hash)
        """
        finished_key = self._expand(traffic_secret, b"finished", b"")
        return hmac.new(finished_key, transcript_hash, self.algorithm.name).digest()
