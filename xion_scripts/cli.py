# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Command-line interface bundling every XION script under one ``xion`` command.

Each subcommand is a thin dispatcher onto the matching script module in
:mod:`xion_scripts`; arguments after the subcommand name are handed to that
script untouched, so ``xion mint-token 7 xion1owner...`` behaves exactly like
``xion-mint-token 7 xion1owner...``.

Supported Commands:
    create-wallet: Generate a new 24-word mnemonic and XION address
    deploy-contract: Instantiate a CW721 NFT collection from a stored code id
    mint-token: Mint an NFT with on-chain or off-chain metadata
    transfer-nft: Transfer an NFT to another address
    transfer-gas: Send XION tokens to another address
    check-gas-fee: Estimate the fee of a transaction without broadcasting it
    verify-ownership: Look up (and optionally check) the owner of an NFT
    monitor-transaction: Show the status, events and fee of a transaction
    sign-message: Produce an ADR-036 off-chain signature
    sign-transaction: Sign a transaction and save it for later broadcast
    broadcast-transaction: Broadcast a transaction saved by sign-transaction

Configuration:
    Every script reads a ``.env`` file from the working directory first, then
    the process environment. ``MNEMONIC`` selects the wallet and
    ``XION_NETWORK`` (``testnet`` or ``mainnet``) the network; see
    :mod:`xion_scripts` for the full list.

Examples:
    Create a wallet and fund it::

        xion create-wallet

    Deploy a collection and mint into it::

        xion deploy-contract
        export CONTRACT_ADDRESS=xion1... TOKEN_NAME="My First NFT"
        xion mint-token 1 xion1owner... ipfs://Qm...

    Sign offline, broadcast later::

        export RECIPIENT=xion1recipient... AMOUNT=1.5
        xion sign-transaction send-tokens signed-tx.json
        xion broadcast-transaction signed-tx.json

Exit Status:
    0 on success, 1 when the operation failed or stopped early, 2 on a usage
    error (missing or malformed arguments).
"""

import argparse
import io
import sys
import unittest
import unittest.mock
from contextlib import redirect_stderr
from types import ModuleType
from typing import Dict, List, Optional, Tuple

from . import (
    broadcast_transaction,
    check_gas_fee,
    create_wallet,
    deploy_contract,
    mint_token,
    monitor_transaction,
    sign_message,
    sign_transaction,
    transfer_gas,
    transfer_nft,
    verify_ownership,
)

COMMANDS: Dict[str, Tuple[ModuleType, str]] = {
    "create-wallet": (create_wallet, "Generate a new wallet"),
    "deploy-contract": (deploy_contract, "Instantiate a CW721 NFT collection"),
    "mint-token": (mint_token, "Mint an NFT"),
    "transfer-nft": (transfer_nft, "Transfer an NFT to another address"),
    "transfer-gas": (transfer_gas, "Send XION tokens"),
    "check-gas-fee": (check_gas_fee, "Estimate the fee of a transaction"),
    "verify-ownership": (verify_ownership, "Look up the owner of an NFT"),
    "monitor-transaction": (monitor_transaction, "Show a transaction by hash"),
    "sign-message": (sign_message, "Sign a message off chain"),
    "sign-transaction": (sign_transaction, "Sign a transaction for later broadcast"),
    "broadcast-transaction": (broadcast_transaction, "Broadcast a signed transaction"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xion",
        description="XION blockchain scripts",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True
    for name, (module, help_text) in COMMANDS.items():
        subparser = subparsers.add_parser(
            name,
            help=help_text,
            description=module.__doc__,
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        subparser.add_argument(
            "args",
            nargs=argparse.REMAINDER,
            help="Arguments passed through to the script",
        )
    return parser


def main(args: Optional[List[str]] = None) -> int:
    """Parse the subcommand and run the matching script.

    Args:
        args: Command-line arguments without the program name. Defaults to
            ``sys.argv[1:]``.

    Returns:
        The script's exit status.

    Raises:
        SystemExit: If no subcommand, or an unknown one, is given.
    """
    parser = build_parser()
    parsed = parser.parse_args(sys.argv[1:] if args is None else args)
    module, _ = COMMANDS[parsed.command]
    return module.main(parsed.args)


class Test(unittest.TestCase):
    def test_dispatch(self):
        with unittest.mock.patch("xion_scripts.mint_token.main", return_value=0) as run:
            status = main(["mint-token", "7", "xion1owner", "ipfs://Qm7", "--flag"])
        self.assertEqual(status, 0)
        run.assert_called_once_with(["7", "xion1owner", "ipfs://Qm7", "--flag"])

    def test_documented_examples_match_parsers(self):
        params = sign_transaction.parse_params(
            {"RECIPIENT": "xion1recipient", "AMOUNT": "1.5"},
            ["send-tokens", "signed-tx.json"],
        )
        self.assertEqual(params.tx_type, "send-tokens")
        self.assertEqual(params.output_file, "signed-tx.json")
        self.assertEqual(params.recipient, "xion1recipient")
        self.assertEqual(params.amount, "1.5")

        params = mint_token.parse_params(
            {"CONTRACT_ADDRESS": "xion1nft", "TOKEN_NAME": "My First NFT"},
            ["1", "xion1owner", "ipfs://Qm1"],
        )
        self.assertEqual(params.token_id, "1")
        self.assertEqual(params.owner, "xion1owner")
        self.assertEqual(params.token_uri, "ipfs://Qm1")

    def test_status_is_forwarded(self):
        with unittest.mock.patch(
            "xion_scripts.monitor_transaction.main", return_value=1
        ) as run:
            status = main(["monitor-transaction", "ABC", "--wait"])
        self.assertEqual(status, 1)
        run.assert_called_once_with(["ABC", "--wait"])

    def test_no_arguments(self):
        with unittest.mock.patch("xion_scripts.create_wallet.main", return_value=0) as run:
            main(["create-wallet"])
        run.assert_called_once_with([])

    def test_every_script_is_registered(self):
        for module, _ in COMMANDS.values():
            self.assertTrue(callable(module.main))
            self.assertTrue(module.__doc__)
        self.assertEqual(len(COMMANDS), 11)

    def test_missing_command(self):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as cm:
                main([])
        self.assertEqual(cm.exception.code, 2)

    def test_unknown_command(self):
        err = io.StringIO()
        with redirect_stderr(err):
            with self.assertRaises(SystemExit) as cm:
                main(["mint"])
        self.assertEqual(cm.exception.code, 2)
        self.assertIn("invalid choice", err.getvalue())


if __name__ == "__main__":
    raise SystemExit(main())
