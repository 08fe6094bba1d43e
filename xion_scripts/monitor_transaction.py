# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Shows the status, messages, events and fee of a transaction by hash.

Right after a broadcast the node may not have indexed the transaction yet.
``--wait`` (or ``WAIT=true``) keeps asking for up to 20 seconds before giving
up.

Usage::

    xion monitor-transaction <transaction_hash> [--wait]
"""

import io
import json
import os
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from xion_sdk.amounts import format_amount
from xion_sdk.async_client import RestClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.exceptions import TransactionNotIndexedError
from xion_sdk.types import TxEvent, TxReceipt

from . import common

WAIT_FLAG = "--wait"


@dataclass
class MonitorParams:
    txn_hash: str
    wait: bool = False


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> MonitorParams:
    txn_hash = common.param(environ, "TX_HASH", argv, 0)
    if not txn_hash or txn_hash == WAIT_FLAG:
        raise common.UsageError(
            "Transaction hash not provided!",
            [
                "Usage: xion monitor-transaction <transaction_hash> [--wait]",
                "Or set TX_HASH in .env file",
                "",
                "Options:",
                "  --wait: Wait for transaction to be indexed if not found immediately",
            ],
        )
    wait = common.truthy(environ.get("WAIT")) or WAIT_FLAG in argv[1:]
    return MonitorParams(txn_hash, wait)


def _field(msg: Dict[str, Any], *names: str) -> Any:
    for name in names:
        if msg.get(name) is not None:
            return msg[name]
    return None


def print_message(network: NetworkConfig, index: int, msg: Dict[str, Any]):
    type_url = _field(msg, "@type", "typeUrl") or ""
    print(f"\n   Message {index}:")
    print(f"     Type: {type_url}")

    if "MsgSend" in type_url:
        print(f"     From: {_field(msg, 'from_address', 'fromAddress')}")
        print(f"     To: {_field(msg, 'to_address', 'toAddress')}")
        for coin in msg.get("amount") or []:
            print(f"     Amount: {common.describe_amount(network, coin['amount'])}")
    elif "MsgExecuteContract" in type_url:
        print(f"     Sender: {msg.get('sender')}")
        print(f"     Contract: {msg.get('contract')}")
        content = msg.get("msg")
        if content:
            if isinstance(content, str):
                try:
                    content = json.loads(content)
                except ValueError:
                    pass
            print(f"     Message: {json.dumps(content, indent=2)}")
        if msg.get("funds"):
            print(f"     Funds: {json.dumps(msg['funds'])}")
    elif "MsgInstantiateContract" in type_url:
        print(f"     Sender: {msg.get('sender')}")
        print(f"     Code ID: {_field(msg, 'code_id', 'codeId')}")
        print(f"     Label: {msg.get('label')}")
        if msg.get("admin"):
            print(f"     Admin: {msg['admin']}")


def print_receipt(network: NetworkConfig, receipt: TxReceipt):
    print("\n" + common.SEPARATOR)
    print("TRANSACTION FOUND")
    print(common.SEPARATOR)
    print(f"Hash: {receipt.transaction_hash}")
    print(f"Height: {receipt.height}")
    print(f"Gas Used: {receipt.gas_used}")
    print(f"Gas Wanted: {receipt.gas_wanted}")
    common.print_explorer_tx(network, receipt.transaction_hash)
    if receipt.succeeded:
        print("Status: SUCCESS")
    else:
        print(f"Status: FAILED (Code: {receipt.code})")
        if receipt.raw_log:
            print(f"Error Log: {receipt.raw_log}")
    print(common.SEPARATOR)

    messages = receipt.messages()
    if messages:
        print("\nTransaction Messages:")
        for i, msg in enumerate(messages, 1):
            print_message(network, i, msg)
    if receipt.memo():
        print(f"\nMemo: {receipt.memo()}")

    if receipt.events:
        print("\nTransaction Events:")
        for i, event in enumerate(receipt.events, 1):
            print(f"\n   Event {i}: {event.type}")
            for attribute in event.attributes:
                print(f"     {attribute['key']}: {attribute['value']}")

    fee = receipt.fee()
    if fee is not None:
        if fee.amount:
            print("\nTransaction Fee:")
            for coin in fee.amount:
                display = format_amount(coin.amount, network.decimals)
                print(f"   {coin.amount} {coin.denom} ({display} {network.display_denom})")
        if fee.gas:
            print(f"   Gas Limit: {fee.gas}")

    if receipt.gas_used and receipt.gas_wanted:
        efficiency = receipt.gas_used / receipt.gas_wanted * 100
        print(
            f"\nGas Efficiency: {efficiency:.2f}% "
            f"({receipt.gas_used}/{receipt.gas_wanted})"
        )


async def monitor_transaction(network: NetworkConfig, params: MonitorParams) -> int:
    print("Monitoring Transaction...\n")

    print("Connecting to XION network...")
    client = RestClient(network.rest_endpoint)
    try:
        print(f"Connected to {network.chain_id}\n")
        print("Query Details:")
        print(f"   Transaction Hash: {params.txn_hash}")
        print(f"   Wait for indexing: {'Yes' if params.wait else 'No'}")

        print("\nFetching transaction...")
        receipt: Optional[TxReceipt]
        if params.wait:
            attempts = client.client_config.transaction_wait_attempts
            print(f"   Waiting for transaction to be indexed (max {attempts} attempts)...")
            try:
                receipt = await client.wait_for_transaction(params.txn_hash)
            except TransactionNotIndexedError as e:
                print(f"\nTransaction not found after {e.attempts} attempts!")
                print("   Please verify the transaction hash and try again.")
                return common.EXIT_FAILURE
        else:
            receipt = await client.transaction_by_hash(params.txn_hash)

        if receipt is None:
            print("\nTransaction not found!")
            print("   The transaction may not be indexed yet.")
            print("   Try running with --wait flag to wait for indexing:")
            print(f"   xion monitor-transaction {params.txn_hash} --wait")
            return common.EXIT_FAILURE

        print_receipt(network, receipt)
        print("")
        return common.EXIT_SUCCESS if receipt.succeeded else common.EXIT_FAILURE
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, monitor_transaction, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=RestClient)
        self.client.client_config = unittest.mock.MagicMock(transaction_wait_attempts=20)
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.monitor_transaction.RestClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.receipt = TxReceipt(
            "ABC",
            99,
            0,
            gas_used=75000,
            gas_wanted=100000,
            events=[TxEvent("transfer", [{"key": "amount", "value": "5uxion"}])],
            tx={
                "body": {
                    "messages": [
                        {
                            "@type": "/cosmos.bank.v1beta1.MsgSend",
                            "from_address": "xion1from",
                            "to_address": "xion1to",
                            "amount": [{"denom": "uxion", "amount": "1500000"}],
                        },
                        {
                            "@type": "/cosmwasm.wasm.v1.MsgExecuteContract",
                            "sender": "xion1from",
                            "contract": "xion1nft",
                            "msg": {"transfer_nft": {"recipient": "xion1to", "token_id": "7"}},
                            "funds": [],
                        },
                    ],
                    "memo": "hello",
                },
                "auth_info": {
                    "fee": {
                        "amount": [{"denom": "uxion", "amount": "2500"}],
                        "gas_limit": "100000",
                    }
                },
            },
        )

    async def monitor(self, environ, argv):
        out = io.StringIO()
        with redirect_stdout(out):
            status = await monitor_transaction(TESTNET, parse_params(environ, argv))
        return status, out.getvalue()

    async def test_found(self):
        self.client.transaction_by_hash.return_value = self.receipt

        status, output = await self.monitor({}, ["ABC"])

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.client.wait_for_transaction.assert_not_called()
        self.assertIn("Status: SUCCESS", output)
        self.assertIn("Amount: 1500000 uxion (1.500000 XION)", output)
        self.assertIn('"token_id": "7"', output)
        self.assertIn("Memo: hello", output)
        self.assertIn("Event 1: transfer", output)
        self.assertIn("2500 uxion (0.002500 XION)", output)
        self.assertIn("Gas Limit: 100000", output)
        self.assertIn("Gas Efficiency: 75.00% (75000/100000)", output)
        self.client.close.assert_awaited_once()

    async def test_failed_transaction(self):
        self.receipt.code = 11
        self.receipt.raw_log = "out of gas"
        self.client.transaction_by_hash.return_value = self.receipt

        status, output = await self.monitor({}, ["ABC"])

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Status: FAILED (Code: 11)", output)
        self.assertIn("Error Log: out of gas", output)

    async def test_not_found(self):
        self.client.transaction_by_hash.return_value = None

        status, output = await self.monitor({}, ["ABC"])

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Transaction not found!", output)
        self.assertIn("xion monitor-transaction ABC --wait", output)

    async def test_wait(self):
        self.client.wait_for_transaction.return_value = self.receipt

        status, _ = await self.monitor({"WAIT": "true"}, ["ABC"])

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.client.wait_for_transaction.assert_awaited_once_with("ABC")

    async def test_wait_exhausted(self):
        self.client.wait_for_transaction.side_effect = TransactionNotIndexedError("ABC", 20)

        status, output = await self.monitor({}, ["ABC", "--wait"])

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("not found after 20 attempts", output)
        self.client.close.assert_awaited_once()

    def test_missing_hash(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(os.environ, {}, clear=True):
                err = io.StringIO()
                with redirect_stdout(io.StringIO()), redirect_stderr(err):
                    status = main(["--wait"])
        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("Transaction hash not provided!", err.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
