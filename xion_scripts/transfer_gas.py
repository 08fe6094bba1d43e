# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sends native XION tokens to another address.

``AMOUNT`` is in display units (XION, not uxion). Digits past the sixth
decimal are dropped, not rounded. The fee reported afterwards is derived from
the balance difference, so it is only exact when nothing else moved funds in
the meantime.

Usage::

    xion transfer-gas <recipient_address> <amount_in_xion>
"""

import io
import os
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk.account import Account
from xion_sdk.account_address import AccountAddress
from xion_sdk.amounts import parse_amount
from xion_sdk.async_client import SigningClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.exceptions import BroadcastError
from xion_sdk.transactions import Coin
from xion_sdk.types import TxReceipt

from . import common

USAGE = [
    "Usage: xion transfer-gas <recipient_address> <amount_in_xion>",
    "Example: xion transfer-gas xion1abc... 1.5",
]


@dataclass
class TransferGasParams:
    mnemonic: Optional[str]
    recipient: str
    amount: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> TransferGasParams:
    recipient = common.param(environ, "RECIPIENT", argv, 0)
    if not recipient:
        raise common.UsageError(
            "RECIPIENT address not provided!",
            USAGE + ["Or set RECIPIENT and AMOUNT in .env file"],
        )
    amount = common.param(environ, "AMOUNT", argv, 1)
    if not amount:
        raise common.UsageError("AMOUNT not provided!", USAGE + ["Or set AMOUNT in .env file"])
    return TransferGasParams(environ.get("MNEMONIC"), recipient, amount)


async def transfer_gas(network: NetworkConfig, params: TransferGasParams) -> int:
    print("Transferring XION Tokens...\n")
    AccountAddress.from_str(params.recipient, network.address_prefix)
    base_units = parse_amount(params.amount, network.decimals)

    print("Loading wallet from environment...")
    account = Account.load_mnemonic(params.mnemonic, network.address_prefix)
    address = str(account.address())
    print(f"Wallet loaded: {address}\n")

    print("Connecting to XION network...")
    client = SigningClient(network.rest_endpoint, account, network)
    try:
        print(f"Connected to {network.chain_id}\n")

        balance = await client.balance(address, network.denom)
        print("Wallet Balance:")
        print(f"   Current: {common.describe_amount(network, balance.amount)}")
        if int(balance.amount) < int(base_units):
            print("\nError: Insufficient balance!")
            print(f"   Required: {common.describe_amount(network, base_units)}")
            print(f"   Available: {common.describe_amount(network, balance.amount)}")
            return common.EXIT_FAILURE

        print("\nTransfer Details:")
        print(f"   From: {address}")
        print(f"   To: {params.recipient}")
        print(f"   Amount: {common.describe_amount(network, base_units)}")

        print("\nSending tokens...")
        receipt = await client.send_tokens(
            params.recipient,
            [Coin(network.denom, base_units)],
            f"Transfer {params.amount} {network.display_denom} tokens",
        )
        if not receipt.succeeded:
            common.print_tx_result(receipt)
            return common.EXIT_FAILURE

        print("\n" + common.SEPARATOR)
        print("TOKENS TRANSFERRED SUCCESSFULLY!")
        print(common.SEPARATOR)
        print(f"Amount: {common.describe_amount(network, base_units)}")
        print(f"From: {address}")
        print(f"To: {params.recipient}")
        common.print_explorer_tx(network, receipt.transaction_hash)
        print(common.SEPARATOR)

        common.print_tx_result(receipt)

        new_balance = await client.balance(address, network.denom)
        fee = int(balance.amount) - int(new_balance.amount) - int(base_units)
        print("\nUpdated Balance:")
        print(f"   Previous: {common.describe_amount(network, balance.amount)}")
        print(f"   Current: {common.describe_amount(network, new_balance.amount)}")
        print(f"   Transferred: {common.describe_amount(network, base_units)}")
        print(f"   Gas Fee: {fee} {network.denom}")
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, transfer_gas, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=SigningClient)
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.transfer_gas.SigningClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.recipient = str(Account.generate("xion", 12).address())

    async def transfer(self, amount):
        params = parse_params({"MNEMONIC": common.TEST_MNEMONIC}, [self.recipient, amount])
        out = io.StringIO()
        with redirect_stdout(out):
            status = await transfer_gas(TESTNET, params)
        return status, out.getvalue()

    async def test_transfer_reports_fee(self):
        self.client.balance.side_effect = [
            Coin("uxion", "10000000"),
            Coin("uxion", "8495000"),
        ]
        self.client.send_tokens.return_value = TxReceipt("HASH", 10, 0)

        status, output = await self.transfer("1.5")

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.client.send_tokens.assert_awaited_once_with(
            self.recipient, [Coin("uxion", "1500000")], "Transfer 1.5 XION tokens"
        )
        self.assertIn("Amount: 1500000 uxion (1.500000 XION)", output)
        self.assertIn("Gas Fee: 5000 uxion", output)
        self.client.close.assert_awaited_once()

    async def test_amount_is_truncated(self):
        self.client.balance.side_effect = [Coin("uxion", "10000000"), Coin("uxion", "0")]
        self.client.send_tokens.return_value = TxReceipt("HASH", 10, 0)

        await self.transfer("1.9999995")

        _, coins, _ = self.client.send_tokens.await_args.args
        self.assertEqual(coins, [Coin("uxion", "1999999")])

    async def test_insufficient_balance(self):
        self.client.balance.return_value = Coin("uxion", "100")

        status, output = await self.transfer("1")

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Insufficient balance!", output)
        self.client.send_tokens.assert_not_called()
        self.client.close.assert_awaited_once()

    async def test_failed_delivery(self):
        self.client.balance.return_value = Coin("uxion", "10000000")
        self.client.send_tokens.return_value = TxReceipt("HASH", 10, 5, raw_log="out of gas")

        status, output = await self.transfer("1")

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Transaction failed! (Code: 5)", output)
        self.assertNotIn("TOKENS TRANSFERRED SUCCESSFULLY!", output)

    async def test_rejected_broadcast_closes(self):
        self.client.balance.return_value = Coin("uxion", "10000000")
        self.client.send_tokens.side_effect = BroadcastError(
            32, "sdk", "account sequence mismatch", "HASH"
        )
        with self.assertRaises(BroadcastError):
            await self.transfer("1")
        self.client.close.assert_awaited_once()

    def test_missing_amount(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(os.environ, {}, clear=True):
                err = io.StringIO()
                with redirect_stdout(io.StringIO()), redirect_stderr(err):
                    status = main([self.recipient])
        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("AMOUNT not provided!", err.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
