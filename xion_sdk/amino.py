# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Amino JSON sign documents and ADR-036 arbitrary message signing.

ADR-036 lets a wallet sign an arbitrary payload off chain by wrapping it in a
``sign/MsgSignData`` message inside an amino ``StdSignDoc`` whose chain id is
empty and whose account number, sequence and fee are zero. The signature is
produced over the canonical JSON encoding of that document: keys sorted at
every level, no whitespace, and ``&``, ``<`` and ``>`` escaped as ``\\u0026``,
``\\u003c`` and ``\\u003e``.

Examples:
    Sign and verify a message::

        sign_doc = make_adr36_sign_doc(str(account.address()), b"hello")
        std_signature = account.sign_amino(sign_doc)
        verify_adr36_signature(str(account.address()), b"hello", std_signature)
"""

from __future__ import annotations

import base64
import binascii
import json
import unittest
from typing import Any, Dict, List

from ecdsa.errors import MalformedPointError

from .account_address import AccountAddress, ParseAddressError
from .secp256k1_ecdsa import PrivateKey, PublicKey, Signature

PUBKEY_AMINO_TYPE = "tendermint/PubKeySecp256k1"
MSG_SIGN_DATA_TYPE = "sign/MsgSignData"


def make_sign_doc(
    msgs: List[Dict[str, Any]],
    fee: Dict[str, Any],
    chain_id: str,
    memo: str,
    account_number: int,
    sequence: int,
) -> Dict[str, Any]:
    return {
        "chain_id": chain_id,
        "account_number": str(account_number),
        "sequence": str(sequence),
        "fee": fee,
        "msgs": msgs,
        "memo": memo,
    }


def serialize_sign_doc(sign_doc: Dict[str, Any]) -> bytes:
    """Canonical amino JSON bytes of a sign document."""
    serialized = json.dumps(
        sign_doc, sort_keys=True, separators=(",", ":"), ensure_ascii=False
    )
    serialized = (
        serialized.replace("&", "\\u0026")
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
    )
    return serialized.encode("utf-8")


def make_adr36_sign_doc(signer: str, data: bytes) -> Dict[str, Any]:
    msg = {
        "type": MSG_SIGN_DATA_TYPE,
        "value": {
            "signer": signer,
            "data": base64.b64encode(data).decode(),
        },
    }
    return make_sign_doc([msg], {"gas": "0", "amount": []}, "", "", 0, 0)


def encode_signature(public_key: PublicKey, signature: Signature) -> Dict[str, Any]:
    return {
        "pub_key": {"type": PUBKEY_AMINO_TYPE, "value": public_key.base64()},
        "signature": signature.base64(),
    }


def verify_adr36_signature(
    signer: str, data: bytes, std_signature: Dict[str, Any]
) -> bool:
    """
    Checks an ADR-036 signature.

    The embedded public key must hash to ``signer`` and the signature must be
    valid over the canonical sign document for ``signer`` and ``data``.
    Malformed input yields ``False`` rather than an exception.
    """
    try:
        address = AccountAddress.from_str(signer)
        public_key = PublicKey.from_base64(std_signature["pub_key"]["value"])
        signature = Signature.from_base64(std_signature["signature"])
    except (
        KeyError,
        TypeError,
        ValueError,
        binascii.Error,
        MalformedPointError,
        ParseAddressError,
    ):
        return False
    if AccountAddress.from_key(public_key, address.prefix) != address:
        return False
    sign_bytes = serialize_sign_doc(make_adr36_sign_doc(signer, data))
    return public_key.verify(sign_bytes, signature)


class Test(unittest.TestCase):
    def test_serialize_sorts_and_escapes(self):
        doc = {"b": 1, "a": {"z": "<&>", "y": []}}
        self.assertEqual(
            serialize_sign_doc(doc),
            b'{"a":{"y":[],"z":"\\u003c\\u0026\\u003e"},"b":1}',
        )

    def test_adr36_sign_doc(self):
        doc = make_adr36_sign_doc("xion1signer", b"hello")
        self.assertEqual(doc["chain_id"], "")
        self.assertEqual(doc["account_number"], "0")
        self.assertEqual(doc["sequence"], "0")
        self.assertEqual(doc["fee"], {"gas": "0", "amount": []})
        self.assertEqual(doc["msgs"][0]["type"], "sign/MsgSignData")
        self.assertEqual(doc["msgs"][0]["value"]["data"], "aGVsbG8=")
        self.assertEqual(
            serialize_sign_doc(doc),
            b'{"account_number":"0","chain_id":"","fee":{"amount":[],"gas":"0"},'
            b'"memo":"","msgs":[{"type":"sign/MsgSignData","value":'
            b'{"data":"aGVsbG8=","signer":"xion1signer"}}],"sequence":"0"}',
        )

    def test_verify(self):
        private_key = PrivateKey.random()
        signer = str(AccountAddress.from_key(private_key.public_key(), "xion"))
        doc = make_adr36_sign_doc(signer, b"hello")
        std_signature = encode_signature(
            private_key.public_key(), private_key.sign(serialize_sign_doc(doc))
        )
        self.assertTrue(verify_adr36_signature(signer, b"hello", std_signature))
        self.assertFalse(verify_adr36_signature(signer, b"other", std_signature))

    def test_verify_rejects_foreign_key(self):
        private_key = PrivateKey.random()
        signer = str(AccountAddress.from_key(PrivateKey.random().public_key(), "xion"))
        doc = make_adr36_sign_doc(signer, b"hello")
        std_signature = encode_signature(
            private_key.public_key(), private_key.sign(serialize_sign_doc(doc))
        )
        self.assertFalse(verify_adr36_signature(signer, b"hello", std_signature))
        self.assertFalse(verify_adr36_signature(signer, b"hello", {}))

    def test_verify_rejects_malformed_input(self):
        private_key = PrivateKey.random()
        signer = str(AccountAddress.from_key(private_key.public_key(), "xion"))
        std_signature = encode_signature(
            private_key.public_key(),
            private_key.sign(serialize_sign_doc(make_adr36_sign_doc(signer, b"hi"))),
        )
        self.assertFalse(verify_adr36_signature("xion1notbech32", b"hi", std_signature))
        bad_key = {**std_signature, "pub_key": {"value": "AAAA"}}
        self.assertFalse(verify_adr36_signature(signer, b"hi", bad_key))
        bad_padding = {**std_signature, "signature": "abc"}
        self.assertFalse(verify_adr36_signature(signer, b"hi", bad_padding))
        self.assertFalse(verify_adr36_signature(signer, b"hi", {"pub_key": None}))


if __name__ == "__main__":
    unittest.main()
