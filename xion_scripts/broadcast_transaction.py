# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Broadcasts a transaction saved by ``xion sign-transaction``.

The signature is already inside the saved bytes, so no wallet is needed.

Usage::

    xion broadcast-transaction [signed_tx_file]
"""

import io
import os
import tempfile
import unittest
import unittest.mock
from contextlib import redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk.async_client import RestClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.exceptions import BroadcastError
from xion_sdk.signed_transaction import SignedTransactionFile
from xion_sdk.transactions import Coin, StdFee
from xion_sdk.types import TxReceipt

from . import common


@dataclass
class BroadcastParams:
    path: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> BroadcastParams:
    return BroadcastParams(common.param(environ, "SIGNED_TX_FILE", argv, 0, "signed-tx.json"))


async def broadcast_transaction(network: NetworkConfig, params: BroadcastParams) -> int:
    print("Broadcasting Signed Transaction...\n")

    signed = SignedTransactionFile.load(params.path)
    print("Loading signed transaction...")
    print(f"   File: {params.path}")
    print(f"   Type: {signed.tx_type}")
    print(f"   Signer: {signed.account_address}")
    print(f"   Sequence: {signed.sequence}")
    if signed.chain_id != network.chain_id:
        print(
            f"\nError: The transaction was signed for {signed.chain_id}, "
            f"not {network.chain_id}"
        )
        return common.EXIT_FAILURE

    client = RestClient(network.rest_endpoint)
    try:
        print("\nBroadcasting transaction...")
        try:
            receipt = await client.broadcast_tx(signed.tx_bytes())
        except BroadcastError as e:
            if "sequence mismatch" in e.raw_log:
                print("\nThe account sequence moved on since this file was signed.")
                print("   Sign the transaction again and broadcast the new file.")
            raise

        if not receipt.succeeded:
            common.print_tx_result(receipt)
            return common.EXIT_FAILURE

        print("\n" + common.SEPARATOR)
        print("TRANSACTION BROADCAST SUCCESSFULLY")
        print(common.SEPARATOR)
        print(f"Transaction Hash: {receipt.transaction_hash}")
        print(f"Height: {receipt.height}")
        print(f"Gas Used: {receipt.gas_used}")
        common.print_explorer_tx(network, receipt.transaction_hash)
        print(common.SEPARATOR)
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, broadcast_transaction, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=RestClient)
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.broadcast_transaction.RestClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)

        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        self.path = os.path.join(directory.name, "signed-tx.json")
        self.signed = SignedTransactionFile(
            chain_id="xion-testnet-2",
            account_address="xion1sender",
            account_number=42,
            sequence=7,
            tx_type="send-tokens",
            description="Send 1.0 XION to xion1to",
            memo="Send 1.0 XION",
            fee=StdFee([Coin("uxion", "5000")], 200000),
            messages=[],
            signed_tx_bytes=bytes([10, 1, 2, 3]),
        )
        self.signed.store(self.path)

    async def broadcast(self):
        out = io.StringIO()
        with redirect_stdout(out):
            status = await broadcast_transaction(TESTNET, parse_params({}, [self.path]))
        return status, out.getvalue()

    async def test_broadcast(self):
        self.client.broadcast_tx.return_value = TxReceipt("HASH", 12, 0, gas_used=80000)

        status, output = await self.broadcast()

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.client.broadcast_tx.assert_awaited_once_with(bytes([10, 1, 2, 3]))
        self.assertIn("Sequence: 7", output)
        self.assertIn("Transaction Hash: HASH", output)
        self.assertIn("https://www.mintscan.io/xion-testnet/tx/HASH", output)
        self.client.close.assert_awaited_once()

    async def test_stale_sequence(self):
        self.client.broadcast_tx.side_effect = BroadcastError(
            32, "sdk", "account sequence mismatch, expected 8, got 7", "HASH"
        )

        out = io.StringIO()
        with redirect_stdout(out):
            with self.assertRaises(BroadcastError):
                await broadcast_transaction(TESTNET, parse_params({}, [self.path]))

        self.assertIn("Sign the transaction again", out.getvalue())
        self.client.close.assert_awaited_once()

    async def test_wrong_chain(self):
        self.signed.chain_id = "xion-mainnet-1"
        self.signed.store(self.path)

        status, output = await self.broadcast()

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("signed for xion-mainnet-1", output)
        self.client_class.assert_not_called()

    async def test_failed_delivery(self):
        self.client.broadcast_tx.return_value = TxReceipt("HASH", 12, 5, raw_log="insufficient funds")

        status, output = await self.broadcast()

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Error Log: insufficient funds", output)


if __name__ == "__main__":
    raise SystemExit(main())
