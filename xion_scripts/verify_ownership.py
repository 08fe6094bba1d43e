# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Looks up who owns an NFT, optionally checking it against an expected owner.

Read-only: no wallet is loaded and nothing is signed. Metadata and the
owner's token list are best effort and only reported when unavailable.

Usage::

    xion verify-ownership <token_id> [expected_owner_address]
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

import httpx

from xion_sdk.async_client import RestClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.cw721_client import Cw721Client
from xion_sdk.exceptions import ContractQueryError, TokenNotFound, XionError

from . import common

DISPLAYED_FIELDS = ("name", "description", "image")


@dataclass
class VerifyParams:
    contract: str
    token_id: str
    expected_owner: Optional[str] = None


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> VerifyParams:
    contract = environ.get("CONTRACT_ADDRESS")
    if not contract:
        raise common.UsageError(
            "CONTRACT_ADDRESS not set!", ["Please set CONTRACT_ADDRESS in your .env file"]
        )
    token_id = common.param(environ, "TOKEN_ID", argv, 0)
    if not token_id:
        raise common.UsageError(
            "TOKEN_ID not provided!",
            [
                "Usage: xion verify-ownership <token_id> [expected_owner_address]",
                "Or set TOKEN_ID in .env file",
            ],
        )
    return VerifyParams(contract, token_id, common.param(environ, "EXPECTED_OWNER", argv, 1))


async def print_metadata(cw721: Cw721Client, params: VerifyParams):
    print("\nFetching NFT metadata...")
    try:
        info = await cw721.nft_info(params.contract, params.token_id)
    except (XionError, httpx.HTTPError) as e:
        logging.warning(f"nft_info query failed: {e}")
        print("\nCould not fetch metadata (may not be available)")
        return

    print("\nNFT Metadata:")
    print(f"   Token URI: {info.token_uri or 'Not set'}")
    if info.extension is None:
        return
    extension = info.extension.to_dict()
    for name in DISPLAYED_FIELDS:
        if extension.get(name):
            print(f"   {name.capitalize()}: {extension[name]}")
    others = [name for name in extension if name not in DISPLAYED_FIELDS]
    if others:
        print("   Additional metadata:")
        for name in others:
            print(f"     {name}: {json.dumps(extension[name])}")


async def print_owner_tokens(cw721: Cw721Client, params: VerifyParams, owner: str):
    print("\nChecking owner's total NFTs...")
    try:
        result = await cw721.tokens(params.contract, owner, limit=100)
    except (XionError, httpx.HTTPError) as e:
        logging.warning(f"tokens query failed: {e}")
        print("\nCould not fetch owner's token list")
        return

    print(f"\nTotal NFTs owned by {owner}: {len(result.tokens)}")
    if result.tokens:
        print(f"   Token IDs: {', '.join(result.tokens)}")


async def verify_ownership(network: NetworkConfig, params: VerifyParams) -> int:
    print("Verifying NFT Ownership...\n")

    print("Connecting to XION network...")
    client = RestClient(network.rest_endpoint)
    try:
        print(f"Connected to {network.chain_id}\n")
        print("Query Details:")
        print(f"   Contract: {params.contract}")
        print(f"   Token ID: {params.token_id}")

        print("\nQuerying NFT ownership...")
        cw721 = Cw721Client(client)
        try:
            ownership = await cw721.owner_of(params.contract, params.token_id)
        except TokenNotFound:
            print("\nError: Token not found!")
            print("   The specified token ID does not exist in this contract.")
            print("   Please check the token ID and contract address.")
            return common.EXIT_FAILURE

        print("\n" + common.SEPARATOR)
        print("OWNERSHIP VERIFICATION RESULT")
        print(common.SEPARATOR)
        print(f"Token ID: {params.token_id}")
        print(f"Owner: {ownership.owner}")
        if ownership.approvals:
            print(f"Approvals: {len(ownership.approvals)}")
            for i, approval in enumerate(ownership.approvals, 1):
                print(f"   {i}. {approval.spender} (expires: {json.dumps(approval.expires)})")
        else:
            print("Approvals: None")
        print(common.SEPARATOR)

        status = common.EXIT_SUCCESS
        if params.expected_owner:
            print("\nVerification Check:")
            print(f"   Expected: {params.expected_owner}")
            print(f"   Actual: {ownership.owner}")
            if ownership.owner == params.expected_owner:
                print("   MATCH - Ownership verified!")
            else:
                print("   MISMATCH - Owner does not match expected address")
                status = common.EXIT_FAILURE

        await print_metadata(cw721, params)
        await print_owner_tokens(cw721, params, ownership.owner)
        print("")
        return status
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, verify_ownership, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = unittest.mock.MagicMock(spec=RestClient)
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.verify_ownership.RestClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        self.responses = {
            "owner_of": {
                "owner": "xion1owner",
                "approvals": [{"spender": "xion1market", "expires": {"never": {}}}],
            },
            "nft_info": {
                "token_uri": "ipfs://Qm7",
                "extension": {
                    "name": "NFT #7",
                    "image": "ipfs://Qm7.png",
                    "attributes": [{"trait_type": "Color", "value": "Red"}],
                },
            },
            "tokens": {"tokens": ["3", "7"]},
        }
        self.client.query_contract_smart.side_effect = self.query

    async def query(self, contract, query):
        (name,) = query.keys()
        response = self.responses[name]
        if isinstance(response, Exception):
            raise response
        return response

    async def verify(self, argv):
        params = parse_params({"CONTRACT_ADDRESS": "xion1nft"}, argv)
        out = io.StringIO()
        with redirect_stdout(out):
            status = await verify_ownership(TESTNET, params)
        return status, out.getvalue()

    async def test_match(self):
        status, output = await self.verify(["7", "xion1owner"])

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.assertIn("Owner: xion1owner", output)
        self.assertIn('1. xion1market (expires: {"never": {}})', output)
        self.assertIn("MATCH - Ownership verified!", output)
        self.assertIn("Name: NFT #7", output)
        self.assertIn("Additional metadata:", output)
        self.assertIn("Total NFTs owned by xion1owner: 2", output)
        self.assertIn("Token IDs: 3, 7", output)
        self.client.query_contract_smart.assert_any_await(
            "xion1nft", {"tokens": {"owner": "xion1owner", "limit": 100}}
        )
        self.client.close.assert_awaited_once()

    async def test_mismatch(self):
        status, output = await self.verify(["7", "xion1someone"])
        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("MISMATCH", output)

    async def test_repeated_runs_are_identical(self):
        first = await self.verify(["7"])
        second = await self.verify(["7"])
        self.assertEqual(first, second)
        self.assertEqual(self.client.close.await_count, 2)

    async def test_token_not_found(self):
        self.responses["owner_of"] = ContractQueryError(
            "token_id 9 not found", 500, "xion1nft"
        )
        status, output = await self.verify(["9"])

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Error: Token not found!", output)
        self.assertNotIn("OWNERSHIP VERIFICATION RESULT", output)
        self.client.close.assert_awaited_once()

    async def test_optional_queries_are_soft_failures(self):
        self.responses["nft_info"] = ContractQueryError("unknown variant", 400, "xion1nft")
        self.responses["tokens"] = httpx.ConnectError("connection reset")

        with self.assertLogs(level="WARNING"):
            status, output = await self.verify(["7"])

        self.assertEqual(status, common.EXIT_SUCCESS)
        self.assertIn("Could not fetch metadata (may not be available)", output)
        self.assertIn("Could not fetch owner's token list", output)

    async def test_other_query_errors_propagate(self):
        self.responses["owner_of"] = ContractQueryError("contract missing", 404, "xion1nft")
        with self.assertRaises(ContractQueryError):
            await self.verify(["7"])
        self.client.close.assert_awaited_once()

    def test_missing_token_id(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(
                os.environ, {"CONTRACT_ADDRESS": "xion1nft"}, clear=True
            ):
                err = io.StringIO()
                with redirect_stdout(io.StringIO()), redirect_stderr(err):
                    status = main([])
        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("TOKEN_ID not provided!", err.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
