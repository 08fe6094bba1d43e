# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Network configuration for XION.

A :class:`NetworkConfig` is built once, at the command entry point, and then
passed to everything that needs chain parameters. Library code never reads the
environment on its own; :meth:`NetworkConfig.from_env` is the single place
where environment variables are consulted.

Environment variables:
    XION_NETWORK: ``testnet`` (default) or ``mainnet``.
    XION_REST_ENDPOINT: Override the REST (LCD) endpoint.
    XION_RPC_ENDPOINT: Override the Tendermint RPC endpoint.
    XION_CHAIN_ID: Override the chain id.
"""

from __future__ import annotations

import dataclasses
import os
import unittest
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class NetworkConfig:
    chain_id: str
    chain_name: str
    rpc_endpoint: str
    rest_endpoint: str
    address_prefix: str
    gas_price: str
    gas_adjustment: float
    denom: str
    decimals: int
    cw721_metadata_onchain_code_id: int
    display_denom: str = "XION"
    explorer_url: Optional[str] = None
    faucet_discord: Optional[str] = None
    faucet_command: Optional[str] = None

    def tx_url(self, txn_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/tx/{txn_hash}"

    def address_url(self, address: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/address/{address}"

    def faucet_hint(self, address: str) -> Optional[str]:
        if not self.faucet_command:
            return None
        return self.faucet_command.replace("[your-xion-address]", address)

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> NetworkConfig:
        environ = os.environ if environ is None else environ
        network = environ.get("XION_NETWORK", "testnet").strip().lower() or "testnet"
        if network not in NETWORKS:
            raise ConfigurationError(
                f"Unknown XION_NETWORK {network}, expected one of {', '.join(NETWORKS)}",
                "XION_NETWORK",
            )
        config = NETWORKS[network]
        overrides = {}
        if environ.get("XION_REST_ENDPOINT"):
            overrides["rest_endpoint"] = environ["XION_REST_ENDPOINT"].rstrip("/")
        if environ.get("XION_RPC_ENDPOINT"):
            overrides["rpc_endpoint"] = environ["XION_RPC_ENDPOINT"]
        if environ.get("XION_CHAIN_ID"):
            overrides["chain_id"] = environ["XION_CHAIN_ID"]
        return dataclasses.replace(config, **overrides)


TESTNET = NetworkConfig(
    chain_id="xion-testnet-2",
    chain_name="XION Testnet",
    rpc_endpoint="https://rpc.xion-testnet-2.burnt.com:443",
    rest_endpoint="https://api.xion-testnet-2.burnt.com",
    address_prefix="xion",
    gas_price="0.025uxion",
    gas_adjustment=1.3,
    denom="uxion",
    decimals=6,
    cw721_metadata_onchain_code_id=525,
    explorer_url="https://www.mintscan.io/xion-testnet",
    faucet_discord="https://discord.gg/burnt",
    faucet_command="/faucet [your-xion-address]",
)

MAINNET = NetworkConfig(
    chain_id="xion-mainnet-1",
    chain_name="XION Mainnet",
    rpc_endpoint="https://rpc.xion-mainnet-1.burnt.com:443",
    rest_endpoint="https://api.xion-mainnet-1.burnt.com",
    address_prefix="xion",
    gas_price="0.025uxion",
    gas_adjustment=1.3,
    denom="uxion",
    decimals=6,
    cw721_metadata_onchain_code_id=28,
    explorer_url="https://www.mintscan.io/xion",
)

NETWORKS = {"testnet": TESTNET, "mainnet": MAINNET}


class Test(unittest.TestCase):
    def test_default_is_testnet(self):
        self.assertEqual(NetworkConfig.from_env({}), TESTNET)
        self.assertEqual(TESTNET.cw721_metadata_onchain_code_id, 525)

    def test_mainnet(self):
        config = NetworkConfig.from_env({"XION_NETWORK": "Mainnet"})
        self.assertEqual(config.chain_id, "xion-mainnet-1")
        self.assertEqual(config.cw721_metadata_onchain_code_id, 28)
        self.assertIsNone(config.faucet_hint("xion1abc"))

    def test_overrides(self):
        config = NetworkConfig.from_env(
            {
                "XION_REST_ENDPOINT": "http://localhost:1317/",
                "XION_CHAIN_ID": "localxion-1",
            }
        )
        self.assertEqual(config.rest_endpoint, "http://localhost:1317")
        self.assertEqual(config.chain_id, "localxion-1")
        self.assertEqual(config.rpc_endpoint, TESTNET.rpc_endpoint)

    def test_unknown_network(self):
        with self.assertRaises(ConfigurationError):
            NetworkConfig.from_env({"XION_NETWORK": "devnet"})

    def test_links(self):
        self.assertEqual(
            TESTNET.tx_url("ABC"), "https://www.mintscan.io/xion-testnet/tx/ABC"
        )
        self.assertEqual(
            TESTNET.address_url("xion1abc"),
            "https://www.mintscan.io/xion-testnet/address/xion1abc",
        )
        self.assertEqual(TESTNET.faucet_hint("xion1abc"), "/faucet xion1abc")


if __name__ == "__main__":
    unittest.main()
