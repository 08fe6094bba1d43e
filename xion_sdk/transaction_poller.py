# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Bounded polling for transactions that have not been indexed yet.

Right after a transaction is accepted the REST gateway usually answers a lookup
by hash with "not found", even when the transaction will succeed. The
:class:`TransactionPoller` repeats the lookup a fixed number of times with a
delay between attempts and returns the first result that is not ``None``.

The poller is a small state machine:

    PENDING --lookup returns a value--> FOUND
    PENDING --max_attempts lookups returned None--> EXHAUSTED

It does not interpret the result. A transaction that failed on chain is still
FOUND; checking its result code is up to the caller.

Examples:
    Wait for a receipt::

        poller = TransactionPoller(client.transaction_by_hash, max_attempts=20)
        receipt = await poller.poll(txn_hash)

    Substitute a different delay policy::

        class LinearBackoff(FixedBackoff):
            def delay(self, attempt: int) -> float:
                return self.seconds * attempt

        poller = TransactionPoller(lookup, backoff=LinearBackoff(0.5))
"""

from __future__ import annotations

import asyncio
import logging
import unittest
import unittest.mock
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from .exceptions import TransactionNotIndexedError

T = TypeVar("T")


class PollState(Enum):
    PENDING = "pending"
    FOUND = "found"
    EXHAUSTED = "exhausted"


class FixedBackoff:
    """Waits the same number of seconds after every unsuccessful attempt."""

    seconds: float

    def __init__(self, seconds: float = 1.0):
        self.seconds = seconds

    def delay(self, attempt: int) -> float:
        return self.seconds


class TransactionPoller(Generic[T]):
    lookup: Callable[[str], Awaitable[Optional[T]]]
    max_attempts: int
    backoff: FixedBackoff
    sleep: Callable[[float], Awaitable[None]]
    state: PollState
    attempts: int

    def __init__(
        self,
        lookup: Callable[[str], Awaitable[Optional[T]]],
        max_attempts: int = 20,
        backoff: Optional[FixedBackoff] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.lookup = lookup
        self.max_attempts = max_attempts
        self.backoff = backoff or FixedBackoff()
        self.sleep = sleep
        self.state = PollState.PENDING
        self.attempts = 0

    async def poll(self, txn_hash: str) -> T:
        """
        Looks up ``txn_hash`` until it is found or the attempts run out.

        :param txn_hash: Hash of the submitted transaction.
        :return: The first non-``None`` lookup result.
        :raises TransactionNotIndexedError: If every attempt returned ``None``.
        """
        self.state = PollState.PENDING
        self.attempts = 0
        while self.attempts < self.max_attempts:
            self.attempts += 1
            result = await self.lookup(txn_hash)
            if result is not None:
                self.state = PollState.FOUND
                return result
            if self.attempts < self.max_attempts:
                delay = self.backoff.delay(self.attempts)
                logging.debug(
                    f"Transaction {txn_hash} not indexed yet, attempt {self.attempts}, "
                    f"retrying in {delay}s"
                )
                await self.sleep(delay)
        self.state = PollState.EXHAUSTED
        logging.warning(
            f"Transaction {txn_hash} not indexed after {self.attempts} attempts"
        )
        raise TransactionNotIndexedError(txn_hash, self.attempts)


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_found_after_retries(self):
        lookup = unittest.mock.AsyncMock(side_effect=[None, None, {"height": 5}])
        sleep = unittest.mock.AsyncMock()
        poller = TransactionPoller(lookup, 5, FixedBackoff(0.25), sleep)

        result = await poller.poll("ABCD")

        self.assertEqual(result, {"height": 5})
        self.assertEqual(lookup.await_count, 3)
        self.assertEqual(poller.attempts, 3)
        self.assertEqual(poller.state, PollState.FOUND)
        sleep.assert_has_awaits([unittest.mock.call(0.25), unittest.mock.call(0.25)])

    async def test_found_on_last_attempt(self):
        lookup = unittest.mock.AsyncMock(side_effect=[None, None, "receipt"])
        sleep = unittest.mock.AsyncMock()
        poller = TransactionPoller(lookup, 3, sleep=sleep)

        self.assertEqual(await poller.poll("ABCD"), "receipt")
        self.assertEqual(sleep.await_count, 2)

    async def test_exhausted(self):
        lookup = unittest.mock.AsyncMock(return_value=None)
        sleep = unittest.mock.AsyncMock()
        poller = TransactionPoller(lookup, 4, sleep=sleep)

        with self.assertRaises(TransactionNotIndexedError) as context:
            await poller.poll("ABCD")

        self.assertEqual(context.exception.txn_hash, "ABCD")
        self.assertEqual(context.exception.attempts, 4)
        self.assertEqual(lookup.await_count, 4)
        # No sleep after the final attempt.
        self.assertEqual(sleep.await_count, 3)
        self.assertEqual(poller.state, PollState.EXHAUSTED)

    async def test_falsy_result_counts_as_found(self):
        lookup = unittest.mock.AsyncMock(return_value={})
        poller = TransactionPoller(lookup, 2, sleep=unittest.mock.AsyncMock())
        self.assertEqual(await poller.poll("ABCD"), {})
        self.assertEqual(poller.attempts, 1)

    async def test_lookup_errors_propagate(self):
        lookup = unittest.mock.AsyncMock(side_effect=RuntimeError("boom"))
        poller = TransactionPoller(lookup, 3, sleep=unittest.mock.AsyncMock())
        with self.assertRaises(RuntimeError):
            await poller.poll("ABCD")
        self.assertEqual(lookup.await_count, 1)

    def test_invalid_attempts(self):
        with self.assertRaises(ValueError):
            TransactionPoller(unittest.mock.AsyncMock(), 0)


if __name__ == "__main__":
    unittest.main()
