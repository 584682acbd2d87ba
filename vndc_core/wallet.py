"""
Wallet management for VNDC accounts.

A wallet wraps a secp256k1 key-pair and provides:
  - Ethereum-style address derivation (keccak-256 of the public key)
  - EIP-2612 permit signing for gasless approvals
  - signed claim / compound / unstake requests for the HTTP API
  - Encrypted import / export (PBKDF2-HMAC-SHA256 + AES-256-GCM)
"""

from __future__ import annotations

import hashlib
import os
from typing import Any

from ecdsa import SECP256k1

from vndc_core.crypto_utils import (
    address_from_public_key,
    domain_separator,
    generate_keypair,
    keccak256,
    permit_digest,
    public_key_from_private,
    sign_digest,
    stake_action_digest,
    staking_domain,
)

EXPORT_VERSION = 3
DEFAULT_KDF_ITERATIONS = 600_000


class Wallet:
    """Key-pair holder that can sign permits on behalf of its address."""

    def __init__(self, private_key: bytes, public_key: bytes | None = None):
        if len(private_key) != 32:
            raise ValueError("private key must be 32 bytes")
        self.private_key = private_key
        self.public_key = public_key or public_key_from_private(private_key)
        self.address = address_from_public_key(self.public_key)

    # ---- factory methods ----

    @classmethod
    def create(cls) -> Wallet:
        priv, pub = generate_keypair()
        return cls(priv, pub)

    @classmethod
    def from_seed(cls, seed: str) -> Wallet:
        """
        Derive a wallet deterministically from a seed string.

        Intended for test accounts and scenario actors; the seed is hashed
        with keccak-256 and reduced into the curve order.
        """
        digest = keccak256(b"VNDC/seed/v1/" + seed.encode("utf-8"))
        key_int = int.from_bytes(digest, "big") % (SECP256k1.order - 1) + 1
        return cls(key_int.to_bytes(32, "big"))

    # ---- signing ----

    def sign_digest(self, digest: bytes) -> bytes:
        return sign_digest(self.private_key, digest)

    def sign_permit(
        self,
        token: Any,
        spender: str,
        value: int,
        deadline: int,
        nonce: int | None = None,
    ) -> bytes:
        """Sign an EIP-2612 permit for *token* (uses its current nonce by default)."""
        if nonce is None:
            nonce = token.nonce_of(self.address)
        separator = domain_separator(
            token.name, token.version, token.chain_id, token.address,
        )
        digest = permit_digest(separator, self.address, spender, value, nonce, deadline)
        return self.sign_digest(digest)

    def sign_stake_action(
        self, ledger: Any, action: str, stake_id: int, deadline: int,
    ) -> bytes:
        """Authorise *action* (``claim``, ``compound``, ``unstake``) on one of our stakes."""
        separator = staking_domain(ledger.token.chain_id, ledger.address)
        digest = stake_action_digest(separator, action, self.address, stake_id, deadline)
        return self.sign_digest(digest)

    # ---- encrypted export / import ----

    def export_encrypted(
        self, passphrase: str, iterations: int = DEFAULT_KDF_ITERATIONS,
    ) -> dict:
        """Encrypt the private key with a passphrase-derived AES-256-GCM key."""
        salt = os.urandom(16)
        key = hashlib.pbkdf2_hmac("sha256", passphrase.encode("utf-8"), salt, iterations)
        ciphertext, nonce, tag = self._aes_gcm_encrypt(key, self.private_key)
        return {
            "version": EXPORT_VERSION,
            "address": self.address,
            "public_key": self.public_key.hex(),
            "encrypted_private_key": ciphertext.hex(),
            "salt": salt.hex(),
            "nonce": nonce.hex(),
            "tag": tag.hex(),
            "kdf": "pbkdf2-hmac-sha256",
            "kdf_iterations": iterations,
        }

    @classmethod
    def import_encrypted(cls, data: dict, passphrase: str) -> Wallet:
        """Inverse of :meth:`export_encrypted`.  Raises ``ValueError`` on tamper."""
        version = data.get("version", EXPORT_VERSION)
        if version != EXPORT_VERSION:
            raise ValueError(f"Unsupported wallet export version {version}")
        salt = bytes.fromhex(data["salt"])
        iterations = data.get("kdf_iterations", DEFAULT_KDF_ITERATIONS)
        key = hashlib.pbkdf2_hmac("sha256", passphrase.encode("utf-8"), salt, iterations)
        priv = cls._aes_gcm_decrypt(
            key,
            bytes.fromhex(data["nonce"]),
            bytes.fromhex(data["encrypted_private_key"]),
            bytes.fromhex(data["tag"]),
        )
        wallet = cls(priv)
        if data.get("address") and data["address"] != wallet.address:
            raise ValueError("Decrypted key does not match the exported address")
        return wallet

    # ---- AES-256-GCM authenticated encryption ----

    @staticmethod
    def _aes_gcm_encrypt(key: bytes, data: bytes) -> tuple[bytes, bytes, bytes]:
        """Encrypt *data* with AES-256-GCM. Returns (ciphertext, nonce, tag)."""
        from Crypto.Cipher import AES
        nonce = os.urandom(12)
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        ciphertext, tag = cipher.encrypt_and_digest(data)
        return ciphertext, nonce, tag

    @staticmethod
    def _aes_gcm_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, tag: bytes) -> bytes:
        from Crypto.Cipher import AES
        cipher = AES.new(key, AES.MODE_GCM, nonce=nonce)
        return cipher.decrypt_and_verify(ciphertext, tag)

    def __repr__(self) -> str:
        return f"Wallet({self.address})"
