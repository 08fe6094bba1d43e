# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Estimates the fee of a transaction by simulating it; nothing is broadcast.

Supported transaction types are ``mint``, ``transfer-nft``, ``send-tokens``
and ``instantiate``. ``AMOUNT`` for ``send-tokens`` is in base units.

Usage::

    xion check-gas-fee <transaction-type>
"""

import io
import os
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence, Tuple

from xion_sdk.account import Account
from xion_sdk.amounts import calculate_fee
from xion_sdk.async_client import SigningClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.cw721_client import (
    Cw721Client,
    InstantiateMsg,
    Metadata,
    MintMsg,
    TransferNftMsg,
)
from xion_sdk.transactions import Coin, Message, MsgSend

from . import common

EXAMPLE_RECIPIENT = "xion1qka2er800suxsy7y9yz9wqgt8p3ktw5ptpf28s"

TX_TYPES = {
    "mint": "Estimate gas for minting an NFT",
    "transfer-nft": "Estimate gas for transferring an NFT",
    "send-tokens": "Estimate gas for sending XION tokens",
    "instantiate": "Estimate gas for deploying a contract",
}


@dataclass
class CheckGasParams:
    mnemonic: Optional[str]
    tx_type: str
    contract: Optional[str]
    amount: str
    recipient: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> CheckGasParams:
    tx_type = common.param(environ, "TX_TYPE", argv, 0, "mint").lower()
    contract = environ.get("CONTRACT_ADDRESS")
    if tx_type in ("mint", "transfer-nft") and not contract:
        raise common.UsageError(
            f"CONTRACT_ADDRESS required for {tx_type} simulation",
            ["Please set CONTRACT_ADDRESS in your .env file"],
        )
    return CheckGasParams(
        mnemonic=environ.get("MNEMONIC"),
        tx_type=tx_type,
        contract=contract,
        amount=common.param(environ, "AMOUNT", default="1000000"),
        recipient=common.param(environ, "RECIPIENT", default=EXAMPLE_RECIPIENT),
    )


def build_messages(
    network: NetworkConfig, params: CheckGasParams, cw721: Cw721Client, sender: str
) -> Optional[Tuple[str, List[Message]]]:
    """Sample messages for a transaction type, or ``None`` if the type is unknown."""
    if params.tx_type == "mint":
        msg = MintMsg(
            "1",
            sender,
            "ipfs://example",
            Metadata(name="Test NFT", description="Test", image="ipfs://example"),
        )
        return "Mint NFT", [cw721.mint_message(sender, params.contract, msg)]
    if params.tx_type == "transfer-nft":
        msg = TransferNftMsg(EXAMPLE_RECIPIENT, "1")
        return "Transfer NFT", [cw721.transfer_message(sender, params.contract, msg)]
    if params.tx_type == "send-tokens":
        message: Message = MsgSend(
            sender, params.recipient, [Coin(network.denom, params.amount)]
        )
        return "Send Tokens", [message]
    if params.tx_type == "instantiate":
        msg = InstantiateMsg("Test NFT Collection", "TEST", sender)
        code_id = network.cw721_metadata_onchain_code_id
        message = cw721.instantiate_message(
            sender, code_id, msg, "test-contract", admin=sender
        )
        return "Instantiate Contract", [message]
    return None


def print_tx_types():
    print("\nAvailable transaction types:")
    for name, description in TX_TYPES.items():
        print(f"   - {name}: {description}")
    print("\nUsage: xion check-gas-fee <transaction-type>")


async def check_gas_fee(network: NetworkConfig, params: CheckGasParams) -> int:
    print("Estimating Gas Fees...\n")
    if params.tx_type not in TX_TYPES:
        print(f"Unknown transaction type: {params.tx_type}")
        print_tx_types()
        return common.EXIT_FAILURE

    print("Loading wallet from environment...")
    account = Account.load_mnemonic(params.mnemonic, network.address_prefix)
    address = str(account.address())
    print(f"Wallet loaded: {address}\n")

    print("Connecting to XION network...")
    client = SigningClient(network.rest_endpoint, account, network)
    try:
        print(f"Connected to {network.chain_id}\n")

        description, messages = build_messages(
            network, params, Cw721Client(client), address
        )
        print(f"Simulating: {description}")
        print("Estimating gas...\n")

        gas = await client.simulate_messages(messages)
        fee = calculate_fee(gas, network.gas_price)
        fee_amount = int(fee.amount[0].amount)

        common.print_banner("GAS ESTIMATION RESULTS")
        print(f"Transaction Type: {description}")
        print(f"Estimated Gas: {gas} units")
        print(f"Gas Price: {network.gas_price}")
        print(f"Gas Adjustment: {network.gas_adjustment}x")
        print(f"Estimated Fee: {common.describe_amount(network, fee_amount)}")
        print(common.SEPARATOR)

        balance = await client.balance(address, network.denom)
        available = int(balance.amount)
        print("\nWallet Balance:")
        print(f"   Current: {common.describe_amount(network, available)}")
        if available < fee_amount:
            print(f"   Shortfall: {common.describe_amount(network, fee_amount - available)}")
            print("\nWarning: Insufficient balance for this transaction!")
            print("   Please fund your wallet with testnet tokens.")
        else:
            print(f"   After TX: {common.describe_amount(network, available - fee_amount)}")
            print("\nSufficient balance for this transaction")

        print("\nNOTE:")
        print("   - Gas estimates are approximate and may vary")
        print("   - Actual gas used may be different from the estimate")
        print("   - Fees are automatically calculated as: gas_used x gas_price")
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, check_gas_fee, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=SigningClient)
        self.client.simulate_messages.return_value = 200000
        self.client.balance.return_value = Coin("uxion", "1000000")
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.check_gas_fee.SigningClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)

    async def check(self, environ, argv=()):
        environ = {"MNEMONIC": common.TEST_MNEMONIC, **environ}
        out = io.StringIO()
        with redirect_stdout(out):
            status = await check_gas_fee(TESTNET, parse_params(environ, list(argv)))
        return status, out.getvalue()

    async def test_mint(self):
        status, output = await self.check({"CONTRACT_ADDRESS": "xion1nft"})

        self.assertEqual(status, common.EXIT_SUCCESS)
        (messages,) = self.client.simulate_messages.await_args.args
        self.assertEqual(messages[0].contract, "xion1nft")
        self.assertEqual(messages[0].msg["mint"]["extension"]["name"], "Test NFT")
        self.assertIn("Estimated Gas: 200000 units", output)
        self.assertIn("Estimated Fee: 5000 uxion (0.005000 XION)", output)
        self.assertIn("After TX: 995000 uxion (0.995000 XION)", output)
        self.assertIn("Sufficient balance", output)
        self.client.close.assert_awaited_once()

    async def test_send_tokens(self):
        status, _ = await self.check({"AMOUNT": "42"}, ["send-tokens"])

        self.assertEqual(status, common.EXIT_SUCCESS)
        (messages,) = self.client.simulate_messages.await_args.args
        self.assertEqual(messages[0].to_address, EXAMPLE_RECIPIENT)
        self.assertEqual(messages[0].amount, [Coin("uxion", "42")])

    async def test_instantiate(self):
        status, _ = await self.check({"TX_TYPE": "instantiate"})

        self.assertEqual(status, common.EXIT_SUCCESS)
        (messages,) = self.client.simulate_messages.await_args.args
        self.assertEqual(messages[0].code_id, 525)
        self.assertEqual(messages[0].admin, messages[0].sender)

    async def test_insufficient_balance(self):
        self.client.balance.return_value = Coin("uxion", "1000")
        status, output = await self.check({"TX_TYPE": "send-tokens"})

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.assertIn("Shortfall: 4000 uxion", output)
        self.assertIn("Warning: Insufficient balance", output)

    async def test_unknown_type(self):
        status, output = await self.check({}, ["burn"])

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Unknown transaction type: burn", output)
        self.assertIn("- transfer-nft:", output)
        self.client_class.assert_not_called()

    def test_mint_requires_contract(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(os.environ, {}, clear=True):
                err = io.StringIO()
                with redirect_stdout(io.StringIO()), redirect_stderr(err):
                    status = main(["mint"])
        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("CONTRACT_ADDRESS required for mint simulation", err.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
