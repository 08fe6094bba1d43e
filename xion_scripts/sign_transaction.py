# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signs a transaction now and saves it so it can be broadcast later.

The transaction is signed against the account's current on-chain sequence.
It stays valid only while that sequence is unchanged: broadcasting any other
transaction from the same account first makes this one fail. Use
``xion broadcast-transaction`` to submit the saved file.

Usage::

    xion sign-transaction [send-tokens|mint-nft|transfer-nft] [output_file]
"""

import io
import os
import tempfile
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from xion_sdk.account import Account
from xion_sdk.amounts import parse_amount
from xion_sdk.async_client import SignerData, SigningClient
from xion_sdk.config import TESTNET, NetworkConfig
from xion_sdk.cw721_client import Cw721Client, Metadata, MintMsg, TransferNftMsg
from xion_sdk.exceptions import AccountNotFound
from xion_sdk.signed_transaction import SignedTransactionFile
from xion_sdk.transactions import Coin, Message, MsgSend, StdFee
from xion_sdk.types import AccountInfo

from . import common

DEFAULT_RECIPIENT = "xion1qka2er800suxsy7y9yz9wqgt8p3ktw5ptpf28s"

TX_TYPES = {
    "send-tokens": "Send XION tokens (requires RECIPIENT, AMOUNT)",
    "mint-nft": "Mint an NFT (requires CONTRACT_ADDRESS, TOKEN_ID, TOKEN_URI)",
    "transfer-nft": "Transfer an NFT (requires CONTRACT_ADDRESS, TOKEN_ID, RECIPIENT)",
}


@dataclass
class SignTxParams:
    mnemonic: Optional[str]
    tx_type: str
    output_file: str
    contract: Optional[str] = None
    token_id: str = "1"
    token_uri: str = "ipfs://example"
    recipient: Optional[str] = None
    amount: str = "1.0"


@dataclass
class UnsignedTransaction:
    messages: List[Message]
    memo: str
    description: str


def parse_params(environ: Mapping[str, str], argv: Sequence[str]) -> SignTxParams:
    params = SignTxParams(
        mnemonic=environ.get("MNEMONIC"),
        tx_type=common.param(environ, "TX_TYPE", argv, 0, "send-tokens").lower(),
        output_file=common.param(environ, "OUTPUT_FILE", argv, 1, "signed-tx.json"),
        contract=environ.get("CONTRACT_ADDRESS"),
        token_id=common.param(environ, "TOKEN_ID", default="1"),
        token_uri=common.param(environ, "TOKEN_URI", default="ipfs://example"),
        recipient=environ.get("RECIPIENT"),
        amount=common.param(environ, "AMOUNT", default="1.0"),
    )
    if params.tx_type in ("mint-nft", "transfer-nft") and not params.contract:
        raise common.UsageError(f"CONTRACT_ADDRESS required for {params.tx_type}")
    if params.tx_type == "transfer-nft" and not params.recipient:
        raise common.UsageError("RECIPIENT required for transfer-nft")
    return params


def build_transaction(
    network: NetworkConfig, params: SignTxParams, cw721: Cw721Client, sender: str
) -> UnsignedTransaction:
    if params.tx_type == "send-tokens":
        recipient = params.recipient or DEFAULT_RECIPIENT
        coins = [Coin(network.denom, parse_amount(params.amount, network.decimals))]
        amount = f"{params.amount} {network.display_denom}"
        return UnsignedTransaction(
            [MsgSend(sender, recipient, coins)],
            f"Send {amount}",
            f"Send {amount} to {recipient}",
        )
    if params.tx_type == "mint-nft":
        metadata = Metadata(
            name=f"NFT #{params.token_id}", description="NFT", image=params.token_uri
        )
        mint = MintMsg(params.token_id, sender, params.token_uri, metadata)
        return UnsignedTransaction(
            [cw721.mint_message(sender, params.contract, mint)],
            f"Mint NFT #{params.token_id}",
            f"Mint NFT #{params.token_id}",
        )
    transfer = TransferNftMsg(params.recipient, params.token_id)
    return UnsignedTransaction(
        [cw721.transfer_message(sender, params.contract, transfer)],
        f"Transfer NFT #{params.token_id}",
        f"Transfer NFT #{params.token_id} to {params.recipient}",
    )


def print_tx_types():
    print("\nAvailable transaction types:")
    for name, description in TX_TYPES.items():
        print(f"   - {name}: {description}")
    print("\nUsage: xion sign-transaction <transaction-type> [output-file]")


async def sign_transaction(network: NetworkConfig, params: SignTxParams) -> int:
    print("Signing Transaction for Later Broadcast...\n")
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

        try:
            info = await client.account(address)
        except AccountNotFound:
            print("Account not found on chain. Please fund your account first.")
            return common.EXIT_FAILURE

        unsigned = build_transaction(network, params, Cw721Client(client), address)
        print("Transaction Details:")
        print(f"   Type: {params.tx_type}")
        print(f"   Description: {unsigned.description}")
        print(f"   From: {address}")
        print(f"   Account Number: {info.account_number}")
        print(f"   Sequence: {info.sequence}")
        print(f"   Memo: {unsigned.memo}")

        print("\nSigning transaction...")
        fee = await client.estimate_fee(unsigned.messages, unsigned.memo)
        # Pin the sequence read above so the file records exactly what was signed.
        signer_data = SignerData(info.account_number, info.sequence, network.chain_id)
        tx_bytes = await client.sign(unsigned.messages, fee, unsigned.memo, signer_data)

        signed = SignedTransactionFile(
            chain_id=network.chain_id,
            account_address=address,
            account_number=info.account_number,
            sequence=info.sequence,
            tx_type=params.tx_type,
            description=unsigned.description,
            memo=unsigned.memo,
            fee=fee,
            messages=[message.to_encode_object() for message in unsigned.messages],
            signed_tx_bytes=tx_bytes,
        )

        print("\n" + common.SEPARATOR)
        print("TRANSACTION SIGNED SUCCESSFULLY")
        print(common.SEPARATOR)
        print(f"Transaction Type: {params.tx_type}")
        print(f"Description: {unsigned.description}")
        fee_coin = fee.amount[0]
        print(f"Fee: {fee_coin.amount} {fee_coin.denom} (Gas: {fee.gas})")
        print(f"Signed Tx Size: {len(tx_bytes)} bytes")
        print(common.SEPARATOR)

        output_path = os.path.abspath(params.output_file)
        signed.store(output_path)
        print(f"\nSigned transaction saved to: {output_path}")

        print("\nTO BROADCAST THIS TRANSACTION LATER:")
        print("   1. Use the broadcast script:")
        print(f"      xion broadcast-transaction {output_path}")
        print("\n   2. Or use CLI:")
        print(f"      xiond tx broadcast {output_path} --node {network.rpc_endpoint}")

        print("\nIMPORTANT NOTES:")
        print(f"   - This transaction is signed with sequence number: {info.sequence}")
        print(
            "   - If you broadcast other transactions first, "
            "this will fail due to sequence mismatch"
        )
        print(
            "   - The transaction must be broadcast before it expires "
            "(typically 24 hours)"
        )
        print(
            "   - Store this file securely as it represents a signed, "
            "ready-to-execute transaction"
        )
        print("")
        return common.EXIT_SUCCESS
    finally:
        await client.close()


def main(argv: Optional[List[str]] = None) -> int:
    return common.run(parse_params, sign_transaction, argv)


class Test(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.address = str(Account.from_mnemonic(common.TEST_MNEMONIC, "xion").address())
        self.client = unittest.mock.MagicMock(spec=SigningClient)
        self.client.account.return_value = AccountInfo(self.address, 42, 7)
        self.client.estimate_fee.return_value = StdFee([Coin("uxion", "5000")], 200000)
        self.client.sign.return_value = bytes([10, 1, 2, 3])
        self.client_class = unittest.mock.MagicMock(return_value=self.client)
        patcher = unittest.mock.patch(
            "xion_scripts.sign_transaction.SigningClient", self.client_class
        )
        patcher.start()
        self.addCleanup(patcher.stop)
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        self.output = os.path.join(directory.name, "signed-tx.json")

    async def sign(self, environ, argv=()):
        environ = {"MNEMONIC": common.TEST_MNEMONIC, "OUTPUT_FILE": self.output, **environ}
        out = io.StringIO()
        with redirect_stdout(out):
            status = await sign_transaction(TESTNET, parse_params(environ, list(argv)))
        return status, out.getvalue()

    async def test_send_tokens(self):
        status, output = await self.sign({"AMOUNT": "2.5"})

        self.assertEqual(status, common.EXIT_SUCCESS)
        messages, fee, memo, signer_data = self.client.sign.await_args.args
        self.assertEqual(memo, "Send 2.5 XION")
        self.assertEqual(signer_data, SignerData(42, 7, "xion-testnet-2"))
        self.client.broadcast_tx.assert_not_called()

        signed = SignedTransactionFile.load(self.output)
        self.assertEqual(signed.sequence, 7)
        self.assertEqual(signed.account_number, 42)
        self.assertEqual(signed.account_address, self.address)
        self.assertEqual(signed.tx_type, "send-tokens")
        self.assertEqual(signed.description, f"Send 2.5 XION to {DEFAULT_RECIPIENT}")
        self.assertEqual(signed.fee, StdFee([Coin("uxion", "5000")], 200000))
        self.assertEqual(signed.tx_bytes(), bytes([10, 1, 2, 3]))
        self.assertEqual(
            signed.messages[0]["value"]["amount"], [{"denom": "uxion", "amount": "2500000"}]
        )
        self.assertIn("Fee: 5000 uxion (Gas: 200000)", output)
        self.assertIn("Signed Tx Size: 4 bytes", output)
        self.assertIn("signed with sequence number: 7", output)
        self.client.close.assert_awaited_once()

    async def test_mint_nft(self):
        status, _ = await self.sign(
            {"CONTRACT_ADDRESS": "xion1nft", "TOKEN_ID": "3", "TOKEN_URI": "ipfs://Qm3"},
            ["mint-nft"],
        )

        self.assertEqual(status, common.EXIT_SUCCESS)
        signed = SignedTransactionFile.load(self.output)
        self.assertEqual(signed.memo, "Mint NFT #3")
        message = signed.messages[0]
        self.assertEqual(message["typeUrl"], "/cosmwasm.wasm.v1.MsgExecuteContract")
        self.assertEqual(
            message["value"]["msg"]["mint"]["extension"],
            {"name": "NFT #3", "description": "NFT", "image": "ipfs://Qm3"},
        )

    async def test_transfer_nft(self):
        status, _ = await self.sign(
            {"CONTRACT_ADDRESS": "xion1nft", "RECIPIENT": "xion1to", "TX_TYPE": "transfer-nft"}
        )

        self.assertEqual(status, common.EXIT_SUCCESS)
        signed = SignedTransactionFile.load(self.output)
        self.assertEqual(signed.memo, "Transfer NFT #1")
        self.assertEqual(signed.description, "Transfer NFT #1 to xion1to")

    async def test_unknown_type(self):
        status, output = await self.sign({}, ["stake"])

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Unknown transaction type: stake", output)
        self.assertIn("- mint-nft:", output)
        self.client_class.assert_not_called()
        self.assertFalse(os.path.exists(self.output))

    async def test_unfunded_account(self):
        self.client.account.side_effect = AccountNotFound("missing", self.address)

        status, output = await self.sign({})

        self.assertEqual(status, common.EXIT_FAILURE)
        self.assertIn("Please fund your account first", output)
        self.client.sign.assert_not_called()
        self.assertFalse(os.path.exists(self.output))

    def test_transfer_requires_recipient(self):
        with unittest.mock.patch("xion_scripts.common.load_dotenv"):
            with unittest.mock.patch.dict(
                os.environ, {"CONTRACT_ADDRESS": "xion1nft"}, clear=True
            ):
                err = io.StringIO()
                with redirect_stdout(io.StringIO()), redirect_stderr(err):
                    status = main(["transfer-nft"])
        self.assertEqual(status, common.EXIT_USAGE)
        self.assertIn("RECIPIENT required for transfer-nft", err.getvalue())
        self.client_class.assert_not_called()


if __name__ == "__main__":
    raise SystemExit(main())
