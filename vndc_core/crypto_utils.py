"""
Hashing, address derivation and EIP-712 signing helpers.

- keccak-256 from ``pycryptodome``
- secp256k1 signing / public-key recovery from ``ecdsa``
- Ethereum-style 20-byte hex addresses
- EIP-712 / EIP-2612 ``Permit`` digests with 32-byte ABI word encoding
- EIP-712 ``StakeAction`` digests authorising HTTP claim / compound / unstake
"""

from __future__ import annotations

import hashlib
import os
import re

from Crypto.Hash import keccak
from ecdsa import SECP256k1, SigningKey, VerifyingKey
from ecdsa.util import sigdecode_string, sigencode_string

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

ZERO_ADDRESS = "0x" + "00" * 20


def keccak256(data: bytes) -> bytes:
    return keccak.new(digest_bits=256, data=data).digest()


# ── addresses ───────────────────────────────────────────────────────

def is_address(value: str) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def address_from_public_key(public_key: bytes) -> str:
    """Derive ``0x…`` address from a 64-byte (or 0x04-prefixed) public key."""
    if len(public_key) == 65 and public_key[0] == 4:
        public_key = public_key[1:]
    if len(public_key) != 64:
        raise ValueError("public key must be 64 raw bytes")
    return "0x" + keccak256(public_key)[-20:].hex()


def contract_address(label: str) -> str:
    """Deterministic pseudo-address for a named contract (token, staking)."""
    return "0x" + keccak256(label.encode("utf-8"))[-20:].hex()


# ── key handling ────────────────────────────────────────────────────

def generate_keypair() -> tuple[bytes, bytes]:
    """Return ``(private_key, public_key)``; public key is 64 raw bytes."""
    sk = SigningKey.generate(curve=SECP256k1, entropy=os.urandom)
    return sk.to_string(), sk.get_verifying_key().to_string()


def public_key_from_private(private_key: bytes) -> bytes:
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.get_verifying_key().to_string()


def sign_digest(private_key: bytes, digest: bytes) -> bytes:
    """Deterministic (RFC 6979) secp256k1 signature, 64 bytes ``r || s``."""
    sk = SigningKey.from_string(private_key, curve=SECP256k1)
    return sk.sign_digest_deterministic(
        digest, hashfunc=hashlib.sha256, sigencode=sigencode_string,
    )


def recover_addresses(digest: bytes, signature: bytes) -> list[str]:
    """
    Candidate signer addresses for *signature* over *digest*.

    Accepts 64-byte ``r || s`` or 65-byte ``r || s || v`` (``v`` is
    ignored; both recovery candidates are returned).  Malformed
    signatures yield an empty list.
    """
    if len(signature) == 65:
        signature = signature[:64]
    if len(signature) != 64:
        return []
    try:
        keys = VerifyingKey.from_public_key_recovery_with_digest(
            signature, digest, curve=SECP256k1,
            hashfunc=hashlib.sha256, sigdecode=sigdecode_string,
        )
    except Exception:
        return []
    return [address_from_public_key(vk.to_string()) for vk in keys]


# ── ABI / EIP-712 ───────────────────────────────────────────────────

def encode_uint(value: int) -> bytes:
    if value < 0 or value >= 2 ** 256:
        raise ValueError("uint256 out of range")
    return value.to_bytes(32, "big")


def encode_address(address: str) -> bytes:
    if not is_address(address):
        raise ValueError(f"not an address: {address!r}")
    return bytes(12) + bytes.fromhex(address[2:])


EIP712_DOMAIN_TYPEHASH = keccak256(
    b"EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)

PERMIT_TYPEHASH = keccak256(
    b"Permit(address owner,address spender,uint256 value,uint256 nonce,uint256 deadline)"
)


def domain_separator(name: str, version: str, chain_id: int, verifying_contract: str) -> bytes:
    return keccak256(
        EIP712_DOMAIN_TYPEHASH
        + keccak256(name.encode("utf-8"))
        + keccak256(version.encode("utf-8"))
        + encode_uint(chain_id)
        + encode_address(verifying_contract)
    )


def permit_digest(
    separator: bytes,
    owner: str,
    spender: str,
    value: int,
    nonce: int,
    deadline: int,
) -> bytes:
    """EIP-712 digest a holder signs to approve *spender* without a tx."""
    struct_hash = keccak256(
        PERMIT_TYPEHASH
        + encode_address(owner)
        + encode_address(spender)
        + encode_uint(value)
        + encode_uint(nonce)
        + encode_uint(deadline)
    )
    return keccak256(b"\x19\x01" + separator + struct_hash)


# ── signed staking requests ─────────────────────────────────────────

STAKING_DOMAIN_NAME = "VNDC Staking"
STAKING_DOMAIN_VERSION = "1"

STAKE_ACTION_TYPEHASH = keccak256(
    b"StakeAction(string action,address account,uint256 stakeId,uint256 deadline)"
)


def staking_domain(chain_id: int, staking_address: str) -> bytes:
    return domain_separator(
        STAKING_DOMAIN_NAME, STAKING_DOMAIN_VERSION, chain_id, staking_address,
    )


def stake_action_digest(
    separator: bytes,
    action: str,
    account: str,
    stake_id: int,
    deadline: int,
) -> bytes:
    """EIP-712 digest a staker signs to claim / compound / unstake over HTTP."""
    struct_hash = keccak256(
        STAKE_ACTION_TYPEHASH
        + keccak256(action.encode("utf-8"))
        + encode_address(account)
        + encode_uint(stake_id)
        + encode_uint(deadline)
    )
    return keccak256(b"\x19\x01" + separator + struct_hash)
