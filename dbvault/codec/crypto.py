# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
dbvault Crypto - Envelope encryption for backup artifacts.

Envelope layout (one contiguous byte string):

    bytes[0:16)   IV (random per artifact)
    bytes[16:32)  AES-GCM authentication tag
    bytes[32:)    ciphertext

The AES-256 key is derived from the configured key material with scrypt.
"""

import asyncio
import hashlib
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import aiofiles
import structlog
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from dbvault.exceptions import IntegrityError

logger = structlog.get_logger()

# Thread pool for CPU-bound cipher work
_executor = ThreadPoolExecutor(max_workers=2)

IV_LENGTH = 16
TAG_LENGTH = 16
HEADER_LENGTH = IV_LENGTH + TAG_LENGTH
KEY_LENGTH = 32

# Every existing artifact was written with this salt; see DESIGN.md before changing it.
KDF_SALT = b"salt"
SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

DERIVED_KEY_CACHE_SIZE = 8
_derived_keys: dict[str, bytes] = {}
_derived_keys_lock = threading.Lock()


def key_fingerprint(key_material: str) -> str:
    """SHA-256 of the key material; safe to hold where the material is not."""
    return hashlib.sha256(key_material.encode("utf-8")).hexdigest()


def derive_key(key_material: str) -> bytes:
    """
    Derive a 256-bit AES key from opaque key material.

    Derived keys are cached under the fingerprint of the material, never
    under the material itself.

    Args:
        key_material: Configured secret

    Returns:
        32-byte key
    """
    fingerprint = key_fingerprint(key_material)
    key = _derived_keys.get(fingerprint)
    if key is None:
        kdf = Scrypt(salt=KDF_SALT, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
        key = kdf.derive(key_material.encode("utf-8"))
        with _derived_keys_lock:
            if len(_derived_keys) >= DERIVED_KEY_CACHE_SIZE:
                _derived_keys.pop(next(iter(_derived_keys)))
            _derived_keys[fingerprint] = key
    return key


def encrypt_envelope(plaintext: bytes, key_material: str) -> bytes:
    """
    Encrypt bytes with AES-256-GCM and pack them as IV ‖ tag ‖ ciphertext.
    """
    iv = os.urandom(IV_LENGTH)
    encryptor = Cipher(algorithms.AES(derive_key(key_material)), modes.GCM(iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return iv + encryptor.tag + ciphertext


def decrypt_envelope(envelope: bytes, key_material: str) -> bytes:
    """
    Open an envelope produced by encrypt_envelope().

    Raises:
        IntegrityError: If the envelope is truncated or the tag does not verify
    """
    if len(envelope) < HEADER_LENGTH:
        raise IntegrityError(
            "Encrypted envelope is truncated",
            details={"length": len(envelope), "minimum": HEADER_LENGTH},
        )

    iv = envelope[:IV_LENGTH]
    tag = envelope[IV_LENGTH:HEADER_LENGTH]
    ciphertext = envelope[HEADER_LENGTH:]

    decryptor = Cipher(
        algorithms.AES(derive_key(key_material)), modes.GCM(iv, tag)
    ).decryptor()
    try:
        return decryptor.update(ciphertext) + decryptor.finalize()
    except InvalidTag as e:
        raise IntegrityError("Authentication tag mismatch; artifact altered or wrong key") from e


async def encrypt_file(source: Path, destination: Path, key_material: str) -> Path:
    """
    Encrypt a file into an envelope file.

    The destination is written to a temp name and renamed into place so a
    crash never leaves a partial envelope under the final name.
    """
    async with aiofiles.open(source, "rb") as f:
        plaintext = await f.read()

    loop = asyncio.get_running_loop()
    envelope = await loop.run_in_executor(_executor, encrypt_envelope, plaintext, key_material)

    temp_path = destination.with_name(destination.name + ".tmp")
    async with aiofiles.open(temp_path, "wb") as f:
        await f.write(envelope)
    temp_path.rename(destination)

    logger.debug(
        "artifact_encrypted",
        source=str(source),
        destination=str(destination),
        plaintext_size=len(plaintext),
        envelope_size=len(envelope),
    )
    return destination


async def decrypt_file(source: Path, destination: Path, key_material: str) -> Path:
    """Decrypt an envelope file into a plaintext file."""
    async with aiofiles.open(source, "rb") as f:
        envelope = await f.read()

    loop = asyncio.get_running_loop()
    plaintext = await loop.run_in_executor(_executor, decrypt_envelope, envelope, key_material)

    async with aiofiles.open(destination, "wb") as f:
        await f.write(plaintext)

    logger.debug("artifact_decrypted", source=str(source), destination=str(destination))
    return destination
