# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Local sequence number tracking for a signing account.

The chain accepts a transaction only if its signer sequence equals the
account's current on-chain sequence, and increments it afterwards. When one
process signs several transactions back to back, the chain may not have
committed the first before the second is signed, so re-reading the sequence
from chain each time can hand out the same number twice.

:class:`AccountSequenceNumber` reads the sequence from chain once and then
hands out strictly increasing numbers under an ``asyncio.Lock``. It only
coordinates signers within one process; two processes signing for the same
account at once will still race, and the chain rejects the loser.

Examples:
    Sequence two transactions::

        sequence_number = AccountSequenceNumber(client, str(account.address()))
        first = await sequence_number.next_sequence_number()
        second = await sequence_number.next_sequence_number()  # first + 1

    Recover after the chain rejected a transaction::

        await sequence_number.reset()
"""

from __future__ import annotations

import asyncio
import logging
import typing
import unittest
import unittest.mock

if typing.TYPE_CHECKING:
    from .async_client import RestClient


class AccountSequenceNumber:
    _client: RestClient
    _account: str
    _lock: asyncio.Lock

    _current_number: int = 0
    _initialized = False

    def __init__(self, client: RestClient, account: str):
        self._client = client
        self._account = account
        self._lock = asyncio.Lock()

    async def next_sequence_number(self) -> int:
        """
        Returns the next sequence number to sign with.

        The first call reads the account's sequence from chain. Every later
        call returns one more than the previous call.
        """
        async with self._lock:
            if not self._initialized:
                await self._initialize()
            next_number = self._current_number
            self._current_number += 1
        return next_number

    async def synchronize(self):
        """Re-reads the chain, never moving the local counter backwards."""
        async with self._lock:
            chain_number = await self._current_sequence_number()
            if not self._initialized:
                self._initialized = True
                self._current_number = chain_number
            elif chain_number > self._current_number:
                logging.info(
                    f"Sequence for {self._account} advanced on chain to {chain_number}"
                )
                self._current_number = chain_number

    async def reset(self):
        """Discards the local counter so the next number comes from chain."""
        async with self._lock:
            self._initialized = False

    async def _initialize(self):
        self._initialized = True
        self._current_number = await self._current_sequence_number()

    async def _current_sequence_number(self) -> int:
        return await self._client.account_sequence_number(self._account)


class Test(unittest.IsolatedAsyncioTestCase):
    async def test_common_path(self):
        from .async_client import RestClient

        patcher = unittest.mock.patch(
            "xion_sdk.async_client.RestClient.account_sequence_number", return_value=0
        )
        patcher.start()
        rest_client = RestClient("https://api.xion-testnet-2.burnt.com")
        account_sequence_number = AccountSequenceNumber(rest_client, "xion1abc")

        last_seq_num = 0
        for seq_num in range(5):
            last_seq_num = await account_sequence_number.next_sequence_number()
            self.assertEqual(last_seq_num, seq_num)
        patcher.stop()

        # A stale chain value never moves the counter backwards.
        patcher = unittest.mock.patch(
            "xion_sdk.async_client.RestClient.account_sequence_number", return_value=2
        )
        patcher.start()
        await account_sequence_number.synchronize()
        self.assertEqual(await account_sequence_number.next_sequence_number(), 5)
        patcher.stop()

        patcher = unittest.mock.patch(
            "xion_sdk.async_client.RestClient.account_sequence_number", return_value=9
        )
        patcher.start()
        await account_sequence_number.synchronize()
        self.assertEqual(await account_sequence_number.next_sequence_number(), 9)
        patcher.stop()
        await rest_client.close()

    async def test_reset(self):
        client = unittest.mock.MagicMock()
        client.account_sequence_number = unittest.mock.AsyncMock(side_effect=[4, 4])
        account_sequence_number = AccountSequenceNumber(client, "xion1abc")

        self.assertEqual(await account_sequence_number.next_sequence_number(), 4)
        self.assertEqual(await account_sequence_number.next_sequence_number(), 5)
        await account_sequence_number.reset()
        self.assertEqual(await account_sequence_number.next_sequence_number(), 4)
        self.assertEqual(client.account_sequence_number.await_count, 2)

    async def test_concurrent_callers_get_distinct_numbers(self):
        client = unittest.mock.MagicMock()
        client.account_sequence_number = unittest.mock.AsyncMock(return_value=10)
        account_sequence_number = AccountSequenceNumber(client, "xion1abc")

        numbers = await asyncio.gather(
            *[account_sequence_number.next_sequence_number() for _ in range(10)]
        )

        self.assertEqual(sorted(numbers), list(range(10, 20)))
        client.account_sequence_number.assert_awaited_once_with("xion1abc")


if __name__ == "__main__":
    unittest.main()
