# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Exception hierarchy for the XION Python SDK.

Every error the SDK raises on purpose derives from :class:`XionError`, so a
command entry point can catch the whole family once and turn it into an exit
status. The classes map onto four broad categories:

- configuration problems (a required value such as a mnemonic is missing),
- validation problems (an optional input is malformed and can be skipped),
- not-found conditions (an account, transaction or token does not exist yet),
- remote failures (the REST gateway or the chain rejected a request).
"""

from __future__ import annotations

import unittest
from typing import Optional


class XionError(Exception):
    """Base class for all SDK errors."""


class ConfigurationError(XionError):
    """A required configuration value was not supplied"""

    name: str

    def __init__(self, message: str, name: str = ""):
        super().__init__(message)
        self.name = name


class ValidationError(XionError):
    """An input value could not be parsed"""

    value: Optional[str]

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class NotFoundError(XionError):
    """The requested resource does not exist on chain"""

    resource: str

    def __init__(self, message: str, resource: str):
        super().__init__(message)
        self.resource = resource


class AccountNotFound(NotFoundError):
    """The account was not found"""

    def __init__(self, message: str, account: str):
        super().__init__(message, account)

    @property
    def account(self) -> str:
        return self.resource


class TransactionNotFound(NotFoundError):
    """No transaction is indexed under the given hash"""

    def __init__(self, message: str, txn_hash: str):
        super().__init__(message, txn_hash)

    @property
    def txn_hash(self) -> str:
        return self.resource


class TokenNotFound(NotFoundError):
    """The NFT contract has no token with the given id"""

    contract: str

    def __init__(self, message: str, token_id: str, contract: str = ""):
        super().__init__(message, token_id)
        self.contract = contract

    @property
    def token_id(self) -> str:
        return self.resource


class ApiError(XionError):
    """The API returned a non-success status code, e.g., >= 400"""

    status_code: int

    def __init__(self, message: str, status_code: int):
        # Call the base class constructor with the parameters it needs
        super().__init__(message)
        self.status_code = status_code


class ContractQueryError(ApiError):
    """A smart contract query was rejected by the contract"""

    contract: str

    def __init__(self, message: str, status_code: int, contract: str):
        super().__init__(message, status_code)
        self.contract = contract


class BroadcastError(ApiError):
    """The chain refused a transaction during CheckTx"""

    code: int
    codespace: str
    raw_log: str
    txhash: str

    def __init__(self, code: int, codespace: str, raw_log: str, txhash: str):
        super().__init__(
            f"Transaction {txhash} failed with code {code} ({codespace}): {raw_log}",
            200,
        )
        self.code = code
        self.codespace = codespace
        self.raw_log = raw_log
        self.txhash = txhash


class TransactionNotIndexedError(XionError):
    """A submitted transaction did not show up before polling gave up"""

    txn_hash: str
    attempts: int

    def __init__(self, txn_hash: str, attempts: int):
        super().__init__(
            f"Transaction {txn_hash} was not indexed after {attempts} attempts"
        )
        self.txn_hash = txn_hash
        self.attempts = attempts


class Test(unittest.TestCase):
    def test_hierarchy(self):
        for error in [
            ConfigurationError("missing", "MNEMONIC"),
            ValidationError("bad"),
            AccountNotFound("missing", "xion1abc"),
            TokenNotFound("missing", "7", "xion1contract"),
            ContractQueryError("rejected", 500, "xion1contract"),
            BroadcastError(5, "sdk", "insufficient funds", "ABCD"),
            TransactionNotIndexedError("ABCD", 20),
        ]:
            self.assertIsInstance(error, XionError)

    def test_broadcast_error(self):
        error = BroadcastError(32, "sdk", "account sequence mismatch", "ABCD")
        self.assertIsInstance(error, ApiError)
        self.assertEqual(error.code, 32)
        self.assertIn("account sequence mismatch", str(error))

    def test_not_indexed(self):
        error = TransactionNotIndexedError("ABCD", 3)
        self.assertEqual(error.txn_hash, "ABCD")
        self.assertEqual(error.attempts, 3)
        self.assertIn("3 attempts", str(error))

    def test_token_not_found(self):
        error = TokenNotFound("missing", "7", "xion1contract")
        self.assertIsInstance(error, NotFoundError)
        self.assertEqual(error.token_id, "7")
        self.assertEqual(error.contract, "xion1contract")


if __name__ == "__main__":
    unittest.main()
