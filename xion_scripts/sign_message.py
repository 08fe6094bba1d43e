# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signs an arbitrary message with the wallet key, off chain.

The signature follows ADR-036: the message is wrapped in a ``sign/MsgSignData``
amino document with an empty chain id, zero fee and zero sequence, so it can
never be replayed as a transaction. Anyone holding the message, the signature
and the public key can verify it, e.g. with
:func:`xion_sdk.amino.verify_adr36_signature`.

Usage::

    xion sign-message "Hello, XION blockchain!"
"""

import io
import json
import os
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk import amino
from xion_sdk.account import Account
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.signed_transaction import utc_timestamp

from . import common


@dataclass
class SignMessageParams:
    mnemonic: Optional[str]
    message: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> SignMessageParams:
    message = environ.get("MESSAGE") or " ".join(argv)
    if not message:
        raise common.UsageError(
            "Message not provided!",
            [
                "Usage: xion sign-message <message>",
                'Example: xion sign-message "Hello, XION blockchain!"',
                "Or set MESSAGE in .env file",
            ],
        )
    return SignMessageParams(environ.get("MNEMONIC"), message)


async def sign_message(network: NetworkConfig, params: SignMessageParams) -> int:
    print("Signing Message...\n")

    print("Loading wallet from environment...")
    account = Account.load_mnemonic(params.mnemonic, network.address_prefix)
    address = str(account.address())
    print(f"Wallet loaded: {address}\n")

    print("Signing Details:")
    print(f"   Signer: {address}")
    print(f'   Message: "{params.message}"')
    print(f"   Chain ID: {network.chain_id}")

    print("\nSigning message...")
    data = params.message.encode("utf-8")
    sign_doc = amino.make_adr36_sign_doc(address, data)
    std_signature = account.sign_amino(sign_doc)
    if not amino.verify_adr36_signature(address, data, std_signature):
        raise RuntimeError("Produced a signature that does not verify")
    signed = {"signed": sign_doc, "signature": std_signature}

    print("\n" + common.SEPARATOR)
    print("MESSAGE SIGNED SUCCESSFULLY")
    print(common.SEPARATOR)
    print(f'Original Message: "{params.message}"')
    print(f"Signer Address: {address}")
    print(f"Public Key: {account.public_key().base64()}")
    print(f"Signature: {std_signature['signature']}")
    print("Signature (JSON):")
    print(json.dumps(signed, indent=2))
    print(common.SEPARATOR)

    # Carries the chain id and a timestamp, so it is bound to this network and moment.
    print("\nAlternative: Direct Message Signing")
    print("   (Useful for raw data authentication)\n")
    timestamp = utc_timestamp()
    direct_data = {"message": params.message, "signer": address, "timestamp": timestamp}
    direct_doc = amino.make_sign_doc(
        [{"type": amino.MSG_SIGN_DATA_TYPE, "value": direct_data}],
        {"amount": [], "gas": "0"},
        network.chain_id,
        "",
        0,
        0,
    )
    direct_signature = account.sign_amino(direct_doc)
    print("Sign Data:")
    print(json.dumps(direct_data, indent=2))
    print(f"\nSignature: {direct_signature['signature']}")

    print("\nVERIFICATION INSTRUCTIONS:")
    print("   To verify this signature, you need:")
    print("   1. The original message")
    print("   2. The signature")
    print("   3. The public key or signer address")
    print("\n   Use a signature verification library with secp256k1:")
    print("   - xion_sdk.amino.verify_adr36_signature()")
    print("   - Or verify on-chain using a smart contract")

    print("\nEXPORT DATA (save this for verification):")
    export = {
        "message": params.message,
        "signer": address,
        "publicKey": account.public_key().base64(),
        "signature": std_signature["signature"],
        "signDoc": sign_doc,
        "chainId": network.chain_id,
        "timestamp": timestamp,
    }
    print(json.dumps(export, indent=2))
    print("\nTo save this signature to a file:")
    print(f"   echo '{json.dumps(export)}' > signature.json")
    print("")
    return common.EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, sign_message, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_signature_verifies(self):
        params = parse_params({"MNEMONIC": common.TEST_MNEMONIC}, ["Hello,", "XION!"])
        self.assertEqual(params.message, "Hello, XION!")

        out = io.StringIO()
        with redirect_stdout(out):
            status = await sign_message(TESTNET, params)
        output = out.getvalue()

        self.assertEqual(status, common.EXIT_SUCCESS)
        export_text = output.split("EXPORT DATA (save this for verification):\n")[1]
        export = json.loads(export_text.split("\nTo save this signature")[0])
        address = str(Account.from_mnemonic(common.TEST_MNEMONIC, "xion").address())
        self.assertEqual(export["signer"], address)
        self.assertEqual(export["message"], "Hello, XION!")
        self.assertEqual(export["signDoc"]["msgs"][0]["value"]["data"], "SGVsbG8sIFhJT04h")
        std_signature = {
            "pub_key": {"type": amino.PUBKEY_AMINO_TYPE, "value": export["publicKey"]},
            "signature": export["signature"],
        }
        self.assertTrue(
            amino.verify_adr36_signature(address, b"Hello, XION!", std_signature)
        )
        self.assertFalse(amino.verify_adr36_signature(address, b"Hello", std_signature))

    async def test_signatures_are_deterministic(self):
        params = parse_params({"MNEMONIC": common.TEST_MNEMONIC, "MESSAGE": "hi"}, ["ignored"])
        self.assertEqual(params.message, "hi")
        outputs = []
        for _ in range(2):
            out = io.StringIO()
            with redirect_stdout(out):
                await sign_message(TESTNET, params)
            signed = out.getvalue().split("Signature (JSON):")[1]
            outputs.append(signed.split(common.SEPARATOR)[0])
        self.assertEqual(outputs[0], outputs[1])

    def test_missing_message(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(os.environ, {}, clear=True):
                err = io.StringIO()
                with redirect_stdout(io.StringIO()), redirect_stderr(err):
                    status = main([])
        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("Message not provided!", err.getvalue())


if __name__ == "__main__":
    raise SystemExit(main())
