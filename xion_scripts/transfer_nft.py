# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Transfers an NFT from the configured wallet to another address.

Usage::

    xion transfer-nft <token_id> <recipient_address>
"""

import io
import os
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk.account import Account
from xion_sdk.account_address import AccountAddress, ParseAddressError
from xion_sdk.async_client import SigningClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.cw721_client import Cw721Client, TransferNftMsg
from xion_sdk.exceptions import BroadcastError
from xion_sdk.types import TxReceipt

from . import common

USAGE = "Usage: xion transfer-nft <token_id> <recipient_address>"


@dataclass
class TransferNftParams:
    mnemonic: Optional[str]
    contract: str
    token_id: str
    recipient: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> TransferNftParams:
    contract = environ.get("CONTRACT_ADDRESS")
    if not contract:
        raise common.UsageError(
            "CONTRACT_ADDRESS not set!", ["Please set CONTRACT_ADDRESS in your .env file"]
        )
    token_id = common.param(environ, "TOKEN_ID", argv, 0)
    if not token_id:
        raise common.UsageError(
            "TOKEN_ID not provided!", [USAGE, "Or set TOKEN_ID and RECIPIENT in .env file"]
        )
    recipient = common.param(environ, "RECIPIENT", argv, 1)
    if not recipient:
        raise common.UsageError(
            "RECIPIENT address not provided!", [USAGE, "Or set RECIPIENT in .env file"]
        )
    return TransferNftParams(environ.get("MNEMONIC"), contract, token_id, recipient)


async def transfer_nft(network: NetworkConfig, params: TransferNftParams) -> int:
    print("Transferring NFT...\n")
    AccountAddress.from_str(params.recipient, network.address_prefix)

    print("Loading wallet from environment...")
    account = Account.load_mnemonic(params.mnemonic, network.address_prefix)
    address = str(account.address())
    print(f"Wallet loaded: {address}\n")

    print("Connecting to XION network...")
    client = SigningClient(network.rest_endpoint, account, network)
    try:
        print(f"Connected to {network.chain_id}\n")

        msg = TransferNftMsg(params.recipient, params.token_id)
        print("Transfer Details:")
        print(f"   Contract: {params.contract}")
        print(f"   Token ID: {msg.token_id}")
        print(f"   From: {address}")
        print(f"   To: {msg.recipient}")

        print("\nExecuting transfer...")
        receipt = await Cw721Client(client).transfer_nft(params.contract, msg)

        print("\n" + common.SEPARATOR)
        print("NFT TRANSFERRED SUCCESSFULLY!")
        print(common.SEPARATOR)
        print(f"Token ID: {msg.token_id}")
        print(f"From: {address}")
        print(f"To: {msg.recipient}")
        print(f"Contract: {params.contract}")
        common.print_explorer_tx(network, receipt.transaction_hash)
        print(common.SEPARATOR)

        common.print_tx_result(receipt)

        print("\nNEXT STEPS:")
        print("   1. Run verify-ownership to confirm the new owner")
        print("   2. Run monitor-transaction to track transaction status")
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, transfer_nft, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=SigningClient)
        self.client.execute.return_value = TxReceipt("HASH", 10, 0)
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.transfer_nft.SigningClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.recipient = str(Account.generate("xion", 12).address())
        self.environ = {"MNEMONIC": common.TEST_MNEMONIC, "CONTRACT_ADDRESS": "xion1nft"}

    async def test_transfer(self):
        params = parse_params(self.environ, ["7", self.recipient])
        out = io.StringIO()
        with redirect_stdout(out):
            status = await transfer_nft(TESTNET, params)

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.client.execute.assert_awaited_once_with(
            "xion1nft",
            {"transfer_nft": {"recipient": self.recipient, "token_id": "7"}},
            f"Transferred NFT #7 to {self.recipient}",
        )
        self.assertIn("NFT TRANSFERRED SUCCESSFULLY!", out.getvalue())
        self.client.close.assert_awaited_once()

    async def test_rejected_transfer_still_closes(self):
        self.client.execute.side_effect = BroadcastError(5, "wasm", "unauthorized", "H")
        params = parse_params(self.environ, ["7", self.recipient])

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(BroadcastError):
                await transfer_nft(TESTNET, params)
        self.client.close.assert_awaited_once()

    async def test_invalid_recipient(self):
        params = parse_params(self.environ, ["7", "not-an-address"])
        with redirect_stdout(io.StringIO()):
            with self.assertRaises(ParseAddressError):
                await transfer_nft(TESTNET, params)
        self.client_class.assert_not_called()

    def test_missing_parameters(self):
        cases = [
            ({}, [], "CONTRACT_ADDRESS not set!"),
            ({"CONTRACT_ADDRESS": "xion1nft"}, [], "TOKEN_ID not provided!"),
            ({"CONTRACT_ADDRESS": "xion1nft"}, ["7"], "RECIPIENT address not provided!"),
        ]
        for environ, argv, message in cases:
            with unittest.mock.patch("xion_scripts.common.load_dotenv"):
                with unittest.mock.patch.dict(os.environ, environ, clear=True):
                    err = io.StringIO()
                    with redirect_stdout(io.StringIO()), redirect_stderr(err):
                        status = main(argv)
            self.assertEqual(status, common.EXIT_USAGE)
            self.assertIn(message, err.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
