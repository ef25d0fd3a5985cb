# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Artifact Codecs - Encryption, compression and checksums.
"""

from dbvault.codec.checksum import digest, digest_file, verify_checksum
from dbvault.codec.compression import compress, compress_file, decompress, decompress_file
from dbvault.codec.crypto import (
    decrypt_envelope,
    decrypt_file,
    derive_key,
    encrypt_envelope,
    encrypt_file,
    key_fingerprint,
)

__all__ = [
    # Crypto
    "derive_key",
    "key_fingerprint",
    "encrypt_envelope",
    "decrypt_envelope",
    "encrypt_file",
    "decrypt_file",
    # Compression
    "compress",
    "decompress",
    "compress_file",
    "decompress_file",
    # Checksum
    "digest",
    "digest_file",
    "verify_checksum",
]
