# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Deploys a CW721 NFT collection by instantiating the network's pre-uploaded
cw721-metadata-onchain code. The wallet becomes both minter and admin.
"""

import io
import unittest
import unittest.mock
from contextlib import redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk.account import Account
from xion_sdk.async_client import SigningClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.cw721_client import Cw721Client, InstantiateMsg
from xion_sdk.transactions import Coin
from xion_sdk.types import InstantiateResult, TxEvent, TxReceipt

from . import common


@dataclass
class DeployParams:
    mnemonic: Optional[str]
    name: str
    symbol: str
    label: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> DeployParams:
    return DeployParams(
        mnemonic=environ.get("MNEMONIC"),
        name=common.param(environ, "NFT_NAME", default="My NFT Collection"),
        symbol=common.param(environ, "NFT_SYMBOL", default="MNFT"),
        label=common.param(environ, "CONTRACT_LABEL", default="my-nft-contract"),
    )


async def deploy_contract(network: NetworkConfig, params: DeployParams) -> int:
    print("Deploying CW721 NFT Contract...\n")

    print("Loading wallet from environment...")
    account = Account.load_mnemonic(params.mnemonic, network.address_prefix)
    address = str(account.address())
    print(f"Wallet loaded: {address}\n")

    print("Connecting to XION network...")
    client = SigningClient(network.rest_endpoint, account, network)
    try:
        print(f"Connected to {network.chain_id}\n")

        balance = await client.balance(address, network.denom)
        print(f"Wallet balance: {balance.amount} {balance.denom}")
        if int(balance.amount) == 0:
            print("\nWarning: Wallet has zero balance!")
            print("   Please fund your wallet with testnet tokens before deploying.")
            common.print_faucet_instructions(network, address)
            return common.EXIT_FAILURE

        msg = InstantiateMsg(params.name, params.symbol, address)
        code_id = network.cw721_metadata_onchain_code_id
        print("\nContract Configuration:")
        print(f"   Name: {msg.name}")
        print(f"   Symbol: {msg.symbol}")
        print(f"   Minter: {msg.minter}")
        print(f"   Code ID: {code_id}")
        print(f"   Label: {params.label}")

        print("\nInstantiating contract...")
        # Admin rights let the deployer migrate the contract later.
        result = await Cw721Client(client).instantiate(
            code_id, msg, params.label, admin=address
        )

        print("\n" + common.SEPARATOR)
        print("CONTRACT DEPLOYED SUCCESSFULLY!")
        print(common.SEPARATOR)
        print(f"Contract Address: {result.contract_address}")
        url = network.address_url(result.contract_address)
        if url:
            print(f"Explorer: {url}")
        print(common.SEPARATOR)

        common.print_tx_result(result.receipt)

        print("\nNEXT STEPS:")
        print(f'   1. Add CONTRACT_ADDRESS="{result.contract_address}" to your .env file')
        print("   2. Run mint-token to mint your first NFT")
        print("   3. Run transfer-nft to transfer NFTs between addresses")
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, deploy_contract, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=SigningClient)
        patcher = unittest.mock.patch(
            "xion_scripts.deploy_contract.SigningClient", return_value=self.client
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.params = parse_params({"MNEMONIC": common.TEST_MNEMONIC}, [])

    async def test_deploy(self):
        self.client.balance.return_value = Coin("uxion", "5000000")
        receipt = TxReceipt(
            "HASH",
            10,
            0,
            events=[
                TxEvent(
                    "instantiate",
                    [{"key": "_contract_address", "value": "xion1contract"}],
                )
            ],
        )
        self.client.instantiate.return_value = InstantiateResult("xion1contract", receipt)

        out = io.StringIO()
        with redirect_stdout(out):
            status = await deploy_contract(TESTNET, self.params)

        self.assertEqual(status, common.EXIT_SUCCESS)
        address = str(Account.from_mnemonic(common.TEST_MNEMONIC, "xion").address())
        self.client.instantiate.assert_awaited_once_with(
            525,
            {"name": "My NFT Collection", "symbol": "MNFT", "minter": address},
            "my-nft-contract",
            address,
            "",
        )
        self.assertIn("Contract Address: xion1contract", out.getvalue())
        self.assertIn(
            "https://www.mintscan.io/xion-testnet/address/xion1contract", out.getvalue()
        )
        self.client.close.assert_awaited_once()

    async def test_zero_balance_stops(self):
        self.client.balance.return_value = Coin("uxion", "0")

        out = io.StringIO()
        with redirect_stdout(out):
            status = await deploy_contract(TESTNET, self.params)

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("zero balance", out.getvalue())
        self.assertIn("/faucet xion1", out.getvalue())
        self.client.instantiate.assert_not_called()
        self.client.close.assert_awaited_once()

    def test_params(self):
        params = parse_params(
            {"NFT_NAME": "Cats", "NFT_SYMBOL": "CAT", "CONTRACT_LABEL": "cats"}, []
        )
        self.assertEqual((params.name, params.symbol, params.label), ("Cats", "CAT", "cats"))
        self.assertIsNone(params.mnemonic)


if __name__ == "__main__":
    raise SystemExit(main())
