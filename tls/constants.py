"""
TLS 1.3 Constants (RFC 8446)
"""

# TLS 1.3 cipher suite
TLS_AES_128_GCM_SHA256 = 0x1301
TLS_AES_256_GCM_SHA384 = 0x1302
TLS_CHACHA20_POLY1305_SHA256 = 0x1303

CIPHER_SUITE_NAMES = {
    0x1301: "TLS_AES_128_GCM_SHA256",
    0x1302: "TLS_AES_256_GCM_SHA384",
    0x1303: "TLS_CHACHA20_POLY1305_SHA256"
}

# Hash algorithm of each cipher suite (hashlib / cryptography names)
CIPHER_SUITE_HASHES = {
    0x1301: "sha256",
    0x1302: "sha384",
    0x1303: "sha256",
}

# TLS extensions
EXT_EARLY_DATA = 42
EXT_SUPPORTED_VERSIONS = 43
EXT_KEY_SHARE = 51

EXTENSION_NAMES = {
    42: "early_data",
    43: "supported_versions",
    51: "key_share",
}

# Named groups
GROUP_X25519 = 29

GROUP_NAMES = {
    23: "secp256r1",
    24: "secp384r1",
    25: "secp521r1",
    29: "x25519",
}

# Signature algorithms
SIG_ED25519 = 0x0807

# TLS handshake message types
HANDSHAKE_CLIENT_HELLO = 1
HANDSHAKE_SERVER_HELLO = 2
HANDSHAKE_ENCRYPTED_EXTENSIONS = 8
HANDSHAKE_CERTIFICATE = 11
HANDSHAKE_CERTIFICATE_VERIFY = 15
HANDSHAKE_FINISHED = 20

HANDSHAKE_TYPE_NAMES = {
    1: "ClientHello",
    2: "ServerHello",
    8: "EncryptedExtensions",
    11: "Certificate",
    15: "CertificateVerify",
    20: "Finished"
}
