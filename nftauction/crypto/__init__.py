"""
Identities and hashing for the marketplace.

Every participant and contract is a 20-byte address:

- Accounts: last 20 bytes of keccak256 over a secp256k1 public key
  (x || y, 64 bytes), as Ethereum does it.
- Contracts: last 20 bytes of keccak256(deployer || nonce), where nonce is
  the deployer's count of earlier deployments as an 8-byte big-endian
  integer. Deterministic, so the same deployment sequence always yields
  the same addresses.

Keys are only used to mint identities; nothing is signed.
"""

import secrets
from dataclasses import dataclass

from Crypto.Hash import keccak
from py_ecc.secp256k1 import secp256k1


# secp256k1 group order
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

ADDRESS_LENGTH = 20


def keccak256(data: bytes) -> bytes:
    """Keccak-256 as used by Ethereum (not NIST SHA3-256)."""
    h = keccak.new(digest_bits=256)
    h.update(data)
    return h.digest()


# =============================================================================
# Keys
# =============================================================================


@dataclass(frozen=True)
class KeyPair:
    """
    A secp256k1 keypair backing an account address.

    Attributes:
        private_key: 32-byte scalar in [1, order-1]
        public_key: 64-byte uncompressed point, no 0x04 prefix
    """
    private_key: bytes
    public_key: bytes

    @property
    def address(self) -> bytes:
        return address_from_public_key(self.public_key)

    @property
    def address_hex(self) -> str:
        return bytes_to_hex(self.address)


def private_key_to_public_key(private_key: bytes) -> bytes:
    """
    Derive the 64-byte public key of a 32-byte private key.

    Raises:
        ValueError: wrong key length
    """
    if len(private_key) != 32:
        raise ValueError("Private key must be 32 bytes")

    x, y = secp256k1.privtopub(private_key)
    return x.to_bytes(32, "big") + y.to_bytes(32, "big")


def _keypair(scalar: int) -> KeyPair:
    private_key = scalar.to_bytes(32, "big")
    return KeyPair(private_key, private_key_to_public_key(private_key))


def generate_keypair() -> KeyPair:
    """Random keypair from the OS CSPRNG."""
    return _keypair(secrets.randbelow(SECP256K1_ORDER - 1) + 1)


def keypair_from_seed(seed: bytes) -> KeyPair:
    """
    Deterministic keypair for a seed, e.g. b"alice".

    Handy for demos and fixtures that want stable addresses across runs.
    Never use for real funds.
    """
    scalar = int.from_bytes(keccak256(seed), "big") % (SECP256K1_ORDER - 1) + 1
    return _keypair(scalar)


# =============================================================================
# Addresses
# =============================================================================


def address_from_public_key(public_key: bytes) -> bytes:
    """
    Account address of a public key.

    Raises:
        ValueError: public key is not 64 bytes
    """
    if len(public_key) != 64:
        raise ValueError("Public key must be 64 bytes")
    return keccak256(public_key)[-ADDRESS_LENGTH:]


def derive_contract_address(deployer: bytes, nonce: int) -> bytes:
    """Address of the `nonce`-th contract deployed by `deployer`."""
    return keccak256(deployer + nonce.to_bytes(8, "big"))[-ADDRESS_LENGTH:]


def bytes_to_hex(data: bytes) -> str:
    """0x-prefixed hex."""
    return "0x" + data.hex()


def is_valid_address(address: str) -> bool:
    """True for a 0x-prefixed, 40 hex digit string."""
    if not address.startswith("0x") or len(address) != 2 + 2 * ADDRESS_LENGTH:
        return False
    try:
        bytes.fromhex(address[2:])
    except ValueError:
        return False
    return True


def short(address: bytes) -> str:
    """Abbreviated hex form for log lines."""
    return bytes_to_hex(address)[:10] + "..."
