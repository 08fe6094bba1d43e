# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
secp256k1 ECDSA keys and signatures for Cosmos SDK accounts.

XION accounts, like every Cosmos SDK chain, sign with secp256k1 over a SHA-256
digest. Signatures are the 64-byte concatenation ``r || s`` and must be in
canonical low-S form, otherwise the ante handler rejects the transaction.
Public keys travel as 33-byte compressed SEC1 points, both inside
``/cosmos.crypto.secp256k1.PubKey`` and as the input to address derivation.

Examples:
    Sign and verify::

        from xion_sdk.secp256k1_ecdsa import PrivateKey

        private_key = PrivateKey.random()
        signature = private_key.sign(b"sign doc bytes")
        assert private_key.public_key().verify(b"sign doc bytes", signature)

    Restore from raw bytes (e.g. a BIP44-derived key)::

        private_key = PrivateKey.from_bytes(raw_32_bytes)
        print(private_key.public_key().hex())  # 02... or 03...
"""

from __future__ import annotations

import base64
import hashlib
import unittest

from ecdsa import SECP256k1, SigningKey, VerifyingKey, util


class PrivateKey:
    """secp256k1 private key producing canonical Cosmos signatures.

    Attributes:
        LENGTH: The byte length of secp256k1 private keys (32)
        key: The underlying ECDSA signing key object
    """

    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return self.hex()

    @staticmethod
    def from_bytes(value: bytes) -> PrivateKey:
        if len(value) != PrivateKey.LENGTH:
            raise Exception("Length mismatch")
        return PrivateKey(SigningKey.from_string(value, SECP256k1, hashlib.sha256))

    @staticmethod
    def from_hex(value: str) -> PrivateKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PrivateKey.from_bytes(bytes.fromhex(value))

    def hex(self) -> str:
        return f"0x{self.key.to_string().hex()}"

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verifying_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate(curve=SECP256k1, hashfunc=hashlib.sha256))

    def sign(self, data: bytes) -> Signature:
        """Sign data with deterministic (RFC 6979) ECDSA over SHA-256.

        The raw message is hashed here, so callers pass the sign doc bytes
        rather than a digest. The result is normalized to low-S.

        Args:
            data: Bytes to sign, e.g. a serialized ``SignDoc``.

        Returns:
            A 64-byte ``r || s`` signature with ``s <= n / 2``.
        """
        sig = self.key.sign_deterministic(data, hashfunc=hashlib.sha256)
        n = SECP256k1.generator.order()
        r, s = util.sigdecode_string(sig, n)
        # The signature is valid for both s and -s, normalization ensures that only s < n // 2 is valid
        if s > (n // 2):
            mod_s = (s * -1) % n
            sig = util.sigencode_string(r, mod_s, n)
        return Signature(sig)


class PublicKey:
    """secp256k1 public key, serialized in compressed form."""

    LENGTH: int = 33

    key: VerifyingKey

    def __init__(self, key: VerifyingKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return self.hex()

    @staticmethod
    def from_bytes(value: bytes) -> PublicKey:
        # Accepts compressed (33 byte) and uncompressed (65 byte) encodings.
        return PublicKey(VerifyingKey.from_string(value, SECP256k1, hashlib.sha256))

    @staticmethod
    def from_hex(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey.from_bytes(bytes.fromhex(value))

    @staticmethod
    def from_base64(value: str) -> PublicKey:
        return PublicKey.from_bytes(base64.b64decode(value))

    def to_bytes(self) -> bytes:
        return self.key.to_string("compressed")

    def hex(self) -> str:
        return self.to_bytes().hex()

    def base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode()

    def verify(self, data: bytes, signature: Signature) -> bool:
        """Check a signature over ``data``. High-S signatures are rejected."""
        n = SECP256k1.generator.order()
        try:
            _, s = util.sigdecode_string(signature.data(), n)
            if s > (n // 2):
                return False
            self.key.verify(signature.data(), data, hashfunc=hashlib.sha256)
        except Exception:
            return False
        return True


class Signature:
    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return self.hex()

    def hex(self) -> str:
        return f"0x{self.signature.hex()}"

    def base64(self) -> str:
        return base64.b64encode(self.signature).decode()

    @staticmethod
    def from_base64(value: str) -> Signature:
        return Signature(base64.b64decode(value))

    def data(self) -> bytes:
        return self.signature


class Test(unittest.TestCase):
    def test_generator_public_key(self):
        private_key = PrivateKey.from_hex(
            "0x0000000000000000000000000000000000000000000000000000000000000001"
        )
        self.assertEqual(
            private_key.public_key().hex(),
            "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798",
        )

    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertEqual(len(signature.data()), Signature.LENGTH)
        self.assertTrue(public_key.verify(in_value, signature))
        self.assertFalse(public_key.verify(b"other_message", signature))

    def test_deterministic_low_s(self):
        private_key = PrivateKey.random()
        n = SECP256k1.generator.order()
        for i in range(8):
            data = f"message {i}".encode()
            signature = private_key.sign(data)
            self.assertEqual(signature, private_key.sign(data))
            _, s = util.sigdecode_string(signature.data(), n)
            self.assertLessEqual(s, n // 2)

    def test_high_s_rejected(self):
        private_key = PrivateKey.random()
        n = SECP256k1.generator.order()
        signature = private_key.sign(b"data")
        r, s = util.sigdecode_string(signature.data(), n)
        high = Signature(util.sigencode_string(r, n - s, n))
        self.assertFalse(private_key.public_key().verify(b"data", high))

    def test_public_key_encodings(self):
        public_key = PrivateKey.random().public_key()
        self.assertEqual(len(public_key.to_bytes()), PublicKey.LENGTH)
        self.assertIn(public_key.to_bytes()[0], (2, 3))
        self.assertEqual(PublicKey.from_hex(public_key.hex()), public_key)
        self.assertEqual(PublicKey.from_base64(public_key.base64()), public_key)


if __name__ == "__main__":
    unittest.main()
