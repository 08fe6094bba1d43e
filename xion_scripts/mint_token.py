# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Mints an NFT on a deployed CW721 collection.

With ``METADATA_STORAGE=onchain`` (the default) the full metadata is written
into the token's extension; with ``offchain`` only the image is kept on chain
and wallets resolve the rest from ``TOKEN_URI``.

Usage::

    xion mint-token [token_id] [owner_address] [token_uri]
"""

import io
import json
import logging
import os
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk.account import Account
from xion_sdk.async_client import SigningClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.cw721_client import Cw721Client, Metadata, MintMsg, parse_attributes
from xion_sdk.exceptions import ValidationError
from xion_sdk.types import TxReceipt

from . import common

ONCHAIN = "onchain"
OFFCHAIN = "offchain"

USAGE = [
    "Please set CONTRACT_ADDRESS in your .env file",
    "Or run: export CONTRACT_ADDRESS=xion1...",
    "Usage: xion mint-token [token_id] [owner_address] [token_uri]",
]


@dataclass
class MintParams:
    mnemonic: Optional[str]
    contract: str
    token_id: str
    owner: Optional[str]
    token_uri: str
    name: str
    description: str
    image: str
    storage: str
    attributes: Optional[str] = None
    animation_url: Optional[str] = None
    external_url: Optional[str] = None
    background_color: Optional[str] = None


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> MintParams:
    contract = environ.get("CONTRACT_ADDRESS")
    if not contract:
        raise common.UsageError("CONTRACT_ADDRESS not set!", USAGE)
    token_id = common.param(environ, "TOKEN_ID", argv, 0, "1")
    token_uri = common.param(environ, "TOKEN_URI", argv, 2, "ipfs://QmExample...")
    return MintParams(
        mnemonic=environ.get("MNEMONIC"),
        contract=contract,
        token_id=token_id,
        owner=common.param(environ, "OWNER_ADDRESS", argv, 1),
        token_uri=token_uri,
        name=common.param(environ, "TOKEN_NAME", default=f"NFT #{token_id}"),
        description=common.param(
            environ, "TOKEN_DESCRIPTION", default="An NFT from my collection"
        ),
        image=common.param(environ, "TOKEN_IMAGE", default=token_uri),
        storage=common.param(environ, "METADATA_STORAGE", default=ONCHAIN).lower(),
        attributes=environ.get("TOKEN_ATTRIBUTES"),
        animation_url=environ.get("TOKEN_ANIMATION_URL"),
        external_url=environ.get("TOKEN_EXTERNAL_URL"),
        background_color=environ.get("TOKEN_BACKGROUND_COLOR"),
    )


def build_metadata(params: MintParams) -> Metadata:
    """Token extension for the storage mode; a bad attributes value is skipped."""
    if params.storage != ONCHAIN:
        return Metadata(image=params.image)

    metadata = Metadata(
        name=params.name,
        description=params.description,
        image=params.image,
        animation_url=params.animation_url,
        external_url=params.external_url,
        background_color=params.background_color,
    )
    if params.attributes:
        try:
            metadata.attributes = parse_attributes(params.attributes)
        except ValidationError as e:
            logging.warning(f"Skipping TOKEN_ATTRIBUTES: {e}")
            print("Warning: Could not parse TOKEN_ATTRIBUTES JSON, skipping attributes")
    return metadata


def storage_info(params: MintParams) -> str:
    if params.storage == ONCHAIN:
        return "ON-CHAIN (Full metadata stored on blockchain)"
    return f"OFF-CHAIN (Metadata stored on IPFS: {params.token_uri})"


async def mint_token(network: NetworkConfig, params: MintParams) -> int:
    print("Minting new NFT...\n")

    print("Loading wallet from environment...")
    account = Account.load_mnemonic(params.mnemonic, network.address_prefix)
    address = str(account.address())
    print(f"Wallet loaded: {address}\n")

    print("Connecting to XION network...")
    client = SigningClient(network.rest_endpoint, account, network)
    try:
        print(f"Connected to {network.chain_id}\n")

        owner = params.owner or address
        metadata = build_metadata(params)
        msg = MintMsg(params.token_id, owner, params.token_uri, metadata)

        print("NFT Details:")
        print(f"   Contract: {params.contract}")
        print(f"   Token ID: {msg.token_id}")
        print(f"   Owner: {owner}")
        print(f"   Storage Mode: {params.storage.upper()}")
        print(f"   {storage_info(params)}")
        if params.storage == ONCHAIN:
            print(f"   Name: {metadata.name}")
            print(f"   Description: {metadata.description}")
            print(f"   Image: {metadata.image}")
            if metadata.attributes:
                attributes = [trait.to_dict() for trait in metadata.attributes]
                print(f"   Attributes: {json.dumps(attributes)}")
        print(f"   Token URI: {msg.token_uri}")

        print("\nMinting NFT...")
        receipt = await Cw721Client(client).mint(params.contract, msg)

        print("\n" + common.SEPARATOR)
        print("NFT MINTED SUCCESSFULLY!")
        print(common.SEPARATOR)
        print(f"Token ID: {msg.token_id}")
        print(f"Owner: {owner}")
        print(f"Contract: {params.contract}")
        print(f"Storage: {params.storage.upper()}")
        common.print_explorer_tx(network, receipt.transaction_hash)
        print(common.SEPARATOR)

        common.print_tx_result(receipt)

        print("\nMETADATA STORAGE:")
        if params.storage == ONCHAIN:
            print("   All metadata is stored ON-CHAIN in the contract")
            print("   Metadata can be queried directly from the contract")
            print("   No external dependencies (IPFS not required)")
        else:
            print("   Metadata is stored OFF-CHAIN on IPFS")
            print(f"   Token URI: {params.token_uri}")
            print("   Contract stores only the IPFS reference")
            print("   Wallets/apps will fetch metadata from IPFS")

        print("\nNEXT STEPS:")
        print("   1. Run verify-ownership to verify the NFT owner")
        print("   2. Run transfer-nft to transfer the NFT to another address")
        print("   3. Query NFT metadata using the contract address and token ID")
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, mint_token, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=SigningClient)
        self.client.execute.return_value = TxReceipt("HASH", 10, 0)
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.mint_token.SigningClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.address = str(Account.from_mnemonic(common.TEST_MNEMONIC, "xion").address())

    async def mint(self, environ, argv=()):
        environ = {"MNEMONIC": common.TEST_MNEMONIC, "CONTRACT_ADDRESS": "xion1nft", **environ}
        out = io.StringIO()
        with redirect_stdout(out):
            status = await mint_token(TESTNET, parse_params(environ, list(argv)))
        return status, out.getvalue()

    async def test_onchain_defaults(self):
        status, output = await self.mint({})

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.client.execute.assert_awaited_once_with(
            "xion1nft",
            {
                "mint": {
                    "token_id": "1",
                    "owner": self.address,
                    "token_uri": "ipfs://QmExample...",
                    "extension": {
                        "name": "NFT #1",
                        "description": "An NFT from my collection",
                        "image": "ipfs://QmExample...",
                    },
                }
            },
            "Minted NFT #1",
        )
        self.assertIn("NFT MINTED SUCCESSFULLY!", output)
        self.assertIn("https://www.mintscan.io/xion-testnet/tx/HASH", output)
        self.client.close.assert_awaited_once()

    async def test_positional_and_optional_fields(self):
        status, _ = await self.mint(
            {
                "TOKEN_ATTRIBUTES": '[{"trait_type": "Color", "value": "Red"}]',
                "TOKEN_EXTERNAL_URL": "https://example.com/7",
            },
            ["7", "xion1owner", "ipfs://Qm7"],
        )

        self.assertEqual(status, common.EXIT_SUCCESS)
        contract, msg, memo = self.client.execute.await_args.args
        self.assertEqual(memo, "Minted NFT #7")
        self.assertEqual(msg["mint"]["owner"], "xion1owner")
        self.assertEqual(msg["mint"]["token_uri"], "ipfs://Qm7")
        extension = msg["mint"]["extension"]
        self.assertEqual(extension["name"], "NFT #7")
        self.assertEqual(extension["image"], "ipfs://Qm7")
        self.assertEqual(extension["attributes"], [{"trait_type": "Color", "value": "Red"}])
        self.assertEqual(extension["external_url"], "https://example.com/7")
        self.assertNotIn("animation_url", extension)

    async def test_bad_attributes_are_skipped(self):
        with self.assertLogs(level="WARNING"):
            status, output = await self.mint({"TOKEN_ATTRIBUTES": "{not json"})

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.assertIn("Warning: Could not parse TOKEN_ATTRIBUTES JSON", output)
        _, msg, _ = self.client.execute.await_args.args
        self.assertNotIn("attributes", msg["mint"]["extension"])

    async def test_offchain(self):
        status, output = await self.mint(
            {"METADATA_STORAGE": "OFFCHAIN", "TOKEN_URI": "ipfs://QmMeta"}
        )

        self.assertEqual(status, common.EXIT_SUCCESS)
        _, msg, _ = self.client.execute.await_args.args
        self.assertEqual(msg["mint"]["extension"], {"image": "ipfs://QmMeta"})
        self.assertIn("Metadata is stored OFF-CHAIN on IPFS", output)

    def test_missing_contract_makes_no_calls(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(
                os.environ, {"MNEMONIC": common.TEST_MNEMONIC}, clear=True
            ):
                out, err = io.StringIO(), io.StringIO()
                with redirect_stdout(out), redirect_stderr(err):
                    status = main([])

        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("CONTRACT_ADDRESS not set!", err.getvalue())
        self.assertIn("Usage: xion mint-token", out.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
