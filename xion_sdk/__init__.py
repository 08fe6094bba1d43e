# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
XION Python SDK - an async client library for the XION blockchain.

XION is a Cosmos SDK chain with CosmWasm smart contracts. This package talks
to a node's REST (LCD) gateway and signs transactions locally, so no node
software or wallet extension is needed.

Core Features:
- **Accounts**: BIP39 mnemonics, BIP44 derivation on ``m/44'/118'/0'/0/0``,
  bech32 ``xion1...`` addresses
- **Transactions**: protobuf ``TxRaw`` encoding, SIGN_MODE_DIRECT signing,
  gas simulation, fee calculation, offline signing
- **Contracts**: CosmWasm execute, instantiate and smart queries, with typed
  CW721 (NFT) messages
- **Polling**: a bounded, fixed-delay wait for transaction indexing
- **Off-chain signatures**: ADR-036 ``sign/MsgSignData`` documents

Supported Networks:
- **Testnet**: ``xion-testnet-2`` (default)
- **Mainnet**: ``xion-mainnet-1``

Quick Start:
    Send tokens from a mnemonic wallet::

        import asyncio
        from xion_sdk.account import Account
        from xion_sdk.async_client import SigningClient
        from xion_sdk.config import TESTNET
        from xion_sdk.transactions import Coin

        async def main():
            account = Account.from_mnemonic("...", TESTNET.address_prefix)
            client = SigningClient(TESTNET.rest_endpoint, account, TESTNET)
            try:
                receipt = await client.send_tokens(
                    "xion1...", [Coin(TESTNET.denom, "1000000")], "hello"
                )
                print(receipt.transaction_hash)
            finally:
                await client.close()

        asyncio.run(main())

Module Organization:
- :mod:`xion_sdk.async_client`: REST and signing clients
- :mod:`xion_sdk.account`: wallets and signing
- :mod:`xion_sdk.cw721_client`: NFT contract messages and queries
- :mod:`xion_sdk.transactions`: Cosmos messages and the transaction envelope
- :mod:`xion_sdk.amounts`: display/base unit conversion and fees
- :mod:`xion_sdk.transaction_poller`: waiting for a transaction to be indexed
- :mod:`xion_sdk.config`: network parameters
- :mod:`xion_sdk.exceptions`: the error hierarchy

Every client holds an open HTTP connection pool. Close it with ``close()`` or
use it as an async context manager.
"""
