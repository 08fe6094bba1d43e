# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Creates a new wallet: a 24-word mnemonic and the account derived from it.

Nothing is saved. Copy the mnemonic into ``.env`` as ``MNEMONIC`` before the
terminal is closed.
"""

import io
import unittest
from contextlib import redirect_stdout
from typing import List, Mapping, Optional, Sequence

from xion_sdk.account import Account
from xion_sdk.config import MAINNET, TESTNET, NetworkConfig

from . import common


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> None:
    return None


async def create_wallet(network: NetworkConfig, params: None = None) -> int:
    print("Creating new XION wallet...\n")
    account = Account.generate(network.address_prefix, 24)
    address = str(account.address())

    print("Wallet created successfully!\n")
    common.print_banner("MNEMONIC PHRASE (Keep this secure and private!):")
    print(account.mnemonic)
    print(common.SEPARATOR)

    print("\nWALLET INFORMATION:")
    print(f"   Address: {address}")
    print(f"   Algorithm: {account.algo}")
    print(f"   Public Key: {account.public_key().hex()}")

    print("\nIMPORTANT SECURITY NOTES:")
    print("   1. Store your mnemonic phrase in a secure location")
    print("   2. Never share your mnemonic with anyone")
    print('   3. Add it to your .env file as MNEMONIC="your mnemonic phrase"')
    print("   4. Add .env to .gitignore to prevent accidental commits")

    print("\nFUNDING YOUR WALLET:")
    print(f"   Network: {network.chain_name}")
    print(f"   Chain ID: {network.chain_id}")
    if network.faucet_discord:
        print("   To get testnet tokens:")
    common.print_faucet_instructions(network, address)
    print("")
    return common.EXIT_SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, create_wallet, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_create_wallet(self):
        out = io.StringIO()
        with redirect_stdout(out):
            status = await create_wallet(TESTNET)
        output = out.getvalue()

        self.assertEqual(status, common.EXIT_SUCCESS)
        lines = output.splitlines()
        mnemonic = lines[lines.index("MNEMONIC PHRASE (Keep this secure and private!):") + 2]
        self.assertEqual(len(mnemonic.split()), 24)

        account = Account.from_mnemonic(mnemonic, "xion")
        self.assertIn(f"Address: {account.address()}", output)
        self.assertIn(f"Public Key: {account.public_key().hex()}", output)
        self.assertIn("Algorithm: secp256k1", output)
        self.assertIn(f"Use command: /faucet {account.address()}", output)

    async def test_mainnet_has_no_faucet(self):
        out = io.StringIO()
        with redirect_stdout(out):
            await create_wallet(MAINNET)
        self.assertIn("XION Mainnet has no public faucet", out.getvalue())
        self.assertNotIn("discord", out.getvalue())


if __name__ == "__main__":
    raise SystemExit(main())
