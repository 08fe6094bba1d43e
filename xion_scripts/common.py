# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Shared plumbing for the command scripts: parameter lookup, console output and
the top-level dispatcher that turns an operation into an exit status.
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
import sys
import traceback
import unittest
import unittest.mock
from contextlib import redirect_stderr, redirect_stdout
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Sequence, TypeVar

import httpx
from dotenv import load_dotenv

from xion_sdk.account_address import ParseAddressError
from xion_sdk.amounts import format_amount
from xion_sdk.async_client import RestClient
from xion_sdk.config import NetworkConfig
from xion_sdk.exceptions import XionError
from xion_sdk.types import TxReceipt

P = TypeVar("P")

SEPARATOR = "=" * 80

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2

# Well-known BIP39 test vector, used by the script tests.
TEST_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])


class UsageError(Exception):
    """A required parameter is missing; nothing was sent to the chain."""

    usage: List[str]

    def __init__(self, message: str, usage: Optional[List[str]] = None):
        super().__init__(message)
        self.usage = usage or []


def param(
    environ: Mapping[str, str],
    name: str,
    argv: Sequence[str] = (),
    index: Optional[int] = None,
    default: Optional[str] = None,
) -> Optional[str]:
    """Environment value first, then the positional argument, then ``default``."""
    value = environ.get(name)
    if value:
        return value
    if index is not None and index < len(argv) and argv[index]:
        return argv[index]
    return default


def truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def log_level(value: Optional[str]) -> int:
    """Numeric logging level for a name like ``debug``; unknown names mean WARNING."""
    level = logging.getLevelName((value or "WARNING").strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def print_banner(title: str):
    print(SEPARATOR)
    print(title)
    print(SEPARATOR)


def describe_amount(network: NetworkConfig, base_units: Any) -> str:
    display = format_amount(base_units, network.decimals)
    return f"{base_units} {network.denom} ({display} {network.display_denom})"


def print_explorer_tx(network: NetworkConfig, txn_hash: str):
    url = network.tx_url(txn_hash)
    if url:
        print(f"Explorer: {url}")


def print_faucet_instructions(network: NetworkConfig, address: str, indent: str = "   "):
    if not network.faucet_discord:
        print(f"{indent}{network.chain_name} has no public faucet")
        return
    print(f"{indent}1. Join Discord: {network.faucet_discord}")
    print(f"{indent}2. Get @Builder role")
    print(f"{indent}3. Use command: {network.faucet_hint(address)}")


def print_tx_result(receipt: TxReceipt):
    if receipt.succeeded:
        print("\nTransaction successful!")
    else:
        print(f"\nTransaction failed! (Code: {receipt.code})")
        if receipt.raw_log:
            print(f"Error Log: {receipt.raw_log}")
    print(f"Transaction Hash: {receipt.transaction_hash}")
    print(f"Gas Used: {receipt.gas_used}")
    print(f"Gas Wanted: {receipt.gas_wanted}")
    print(f"Height: {receipt.height}")

    if receipt.events:
        print("\nEvents:")
        for event in receipt.events:
            print(f"  {event.type}:")
            for attribute in event.attributes:
                print(f"    {attribute.get('key')}: {attribute.get('value')}")


def print_usage(error: UsageError):
    print(f"Error: {error}", file=sys.stderr)
    for line in error.usage:
        print(f"   {line}")


def handle_error(error: BaseException, debug: bool = False):
    print("\nError occurred:", file=sys.stderr)
    print(str(error) or type(error).__name__, file=sys.stderr)
    if debug:
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exception(type(error), error, error.__traceback__)


def run(
    parse_params: Callable[[Mapping[str, str], Sequence[str]], P],
    operation: Callable[[NetworkConfig, P], Awaitable[int]],
    argv: Optional[Sequence[str]] = None,
) -> int:
    """
    Runs one script and returns its exit status.

    This is the only place where the process environment is read: ``.env`` is
    loaded, logging is configured from ``XION_LOG_LEVEL``, parameters are
    parsed and the network is selected. Errors from the SDK and the transport
    are reported here once; the operation itself only returns a status.
    """
    load_dotenv()
    environ = os.environ
    logging.basicConfig(level=log_level(environ.get("XION_LOG_LEVEL")))
    debug = truthy(environ.get("XION_DEBUG"))
    if argv is None:
        argv = sys.argv[1:]

    try:
        params = parse_params(environ, argv)
    except UsageError as e:
        print_usage(e)
        return EXIT_USAGE

    try:
        network = NetworkConfig.from_env(environ)
        return asyncio.run(operation(network, params))
    except (XionError, ParseAddressError, httpx.HTTPError, OSError) as e:
        logging.debug("Script failed", exc_info=True)
        handle_error(e, debug)
        return EXIT_FAILURE
    except Exception as e:
        logging.debug("Unexpected script failure", exc_info=True)
        handle_error(e, debug)
        return EXIT_FAILURE


class Test(unittest.TestCase):
    def setUp(self):
        patcher = unittest.mock.patch("xion_scripts.common.load_dotenv")
        patcher.start()
        self.addCleanup(patcher.stop)
        patcher = unittest.mock.patch.dict(os.environ, {}, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def run_quietly(self, *args, **kwargs):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            status = run(*args, **kwargs)
        return status, out.getvalue(), err.getvalue()

    def test_param_precedence(self):
        environ = {"TOKEN_ID": "9"}
        self.assertEqual(param(environ, "TOKEN_ID", ["3"], 0), "9")
        self.assertEqual(param({}, "TOKEN_ID", ["3"], 0), "3")
        self.assertEqual(param({}, "TOKEN_ID", [], 0, "1"), "1")
        self.assertEqual(param({"TOKEN_ID": ""}, "TOKEN_ID", [""], 0, "1"), "1")
        self.assertIsNone(param({}, "TOKEN_ID"))

    def test_usage_error_skips_operation(self):
        def parse(environ, argv):
            raise UsageError("CONTRACT_ADDRESS not set", ["Usage: xion mint-token"])

        operation = unittest.mock.AsyncMock()
        status, out, err = self.run_quietly(parse, operation, [])

        self.assertEqual(status, EXIT_USAGE)
        self.assertIn("CONTRACT_ADDRESS not set", err)
        self.assertIn("Usage: xion mint-token", out)
        operation.assert_not_called()

    def test_success_passes_status_through(self):
        async def operation(network, params):
            self.assertEqual(network.chain_id, "xion-testnet-2")
            self.assertEqual(params, ["a"])
            return EXIT_SUCCESS

        status, _, _ = self.run_quietly(lambda environ, argv: list(argv), operation, ["a"])
        self.assertEqual(status, EXIT_SUCCESS)

    def test_errors_become_failure_status(self):
        async def operation(network, params):
            raise XionError("insufficient funds")

        status, _, err = self.run_quietly(lambda environ, argv: None, operation, [])
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("insufficient funds", err)
        self.assertNotIn("Stack trace", err)

    def test_debug_prints_trace(self):
        os.environ["XION_DEBUG"] = "true"

        async def operation(network, params):
            raise httpx.ConnectError("connection refused")

        status, _, err = self.run_quietly(lambda environ, argv: None, operation, [])
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("Stack trace", err)

    def test_non_json_reply_becomes_failure_status(self):
        async def operation(network, params):
            client = RestClient(network.rest_endpoint)
            client.client = httpx.AsyncClient(
                transport=httpx.MockTransport(
                    lambda request: httpx.Response(200, text="<html>gateway</html>")
                )
            )
            try:
                await client.transaction_by_hash("ABCD")
            finally:
                await client.close()
            return EXIT_SUCCESS

        status, _, err = self.run_quietly(lambda environ, argv: None, operation, [])
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("Error occurred:", err)

    def test_unexpected_errors_become_failure_status(self):
        async def operation(network, params):
            raise RuntimeError("Produced a signature that does not verify")

        status, _, err = self.run_quietly(lambda environ, argv: None, operation, [])
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("does not verify", err)

    def test_log_level(self):
        self.assertEqual(log_level("debug"), logging.DEBUG)
        self.assertEqual(log_level(" Info "), logging.INFO)
        self.assertEqual(log_level(None), logging.WARNING)
        self.assertEqual(log_level("verbose"), logging.WARNING)

        os.environ["XION_LOG_LEVEL"] = "verbose"
        status, _, _ = self.run_quietly(
            lambda environ, argv: None, unittest.mock.AsyncMock(return_value=0), []
        )
        self.assertEqual(status, EXIT_SUCCESS)

    def test_unknown_network(self):
        os.environ["XION_NETWORK"] = "devnet"
        operation = unittest.mock.AsyncMock()

        status, _, err = self.run_quietly(lambda environ, argv: None, operation, [])
        self.assertEqual(status, EXIT_FAILURE)
        self.assertIn("XION_NETWORK", err)
        operation.assert_not_called()

    def test_print_tx_result(self):
        receipt = TxReceipt.from_dict(
            {
                "txhash": "ABC",
                "height": "12",
                "code": 0,
                "gas_used": "100",
                "gas_wanted": "200",
                "events": [
                    {"type": "transfer", "attributes": [{"key": "amount", "value": "5uxion"}]}
                ],
            }
        )
        out = io.StringIO()
        with redirect_stdout(out):
            print_tx_result(receipt)
        self.assertIn("Transaction successful!", out.getvalue())
        self.assertIn("Transaction Hash: ABC", out.getvalue())
        self.assertIn("    amount: 5uxion", out.getvalue())


if __name__ == "__main__":
    unittest.main()
