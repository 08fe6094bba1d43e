# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Export file for transactions that are signed now and broadcast later.

The file is a UTF-8 JSON document::

    {
      "chainId": "xion-testnet-2",
      "accountAddress": "xion1...",
      "accountNumber": 42,
      "sequence": 7,
      "txType": "send-tokens",
      "description": "Send 1.0 XION to xion1...",
      "memo": "Send 1.0 XION",
      "fee": {"amount": [{"denom": "uxion", "amount": "5000"}], "gas": "200000"},
      "messages": [{"typeUrl": "/cosmos.bank.v1beta1.MsgSend", "value": {...}}],
      "signedTxBytes": [10, 150, 1, ...],
      "timestamp": "2024-01-01T00:00:00.000Z"
    }

``signedTxBytes`` holds the encoded ``TxRaw`` and is the only field needed to
broadcast; the rest describes it for humans. The signature commits to
``sequence``: if any other transaction from the same account lands first, the
chain rejects this one with a sequence mismatch.
"""

from __future__ import annotations

import datetime
import json
import os
import tempfile
import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List

from .exceptions import ValidationError
from .transactions import Coin, StdFee


def utc_timestamp() -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


@dataclass
class SignedTransactionFile:
    chain_id: str
    account_address: str
    account_number: int
    sequence: int
    tx_type: str
    description: str
    memo: str
    fee: StdFee
    messages: List[Dict[str, Any]]
    signed_tx_bytes: bytes
    timestamp: str = field(default_factory=utc_timestamp)

    def tx_bytes(self) -> bytes:
        return self.signed_tx_bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chainId": self.chain_id,
            "accountAddress": self.account_address,
            "accountNumber": self.account_number,
            "sequence": self.sequence,
            "txType": self.tx_type,
            "description": self.description,
            "memo": self.memo,
            "fee": self.fee.to_dict(),
            "messages": self.messages,
            "signedTxBytes": list(self.signed_tx_bytes),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SignedTransactionFile:
        try:
            signed_tx_bytes = bytes(data["signedTxBytes"])
            return cls(
                chain_id=data["chainId"],
                account_address=data["accountAddress"],
                account_number=int(data["accountNumber"]),
                sequence=int(data["sequence"]),
                tx_type=data.get("txType", ""),
                description=data.get("description", ""),
                memo=data.get("memo", ""),
                fee=StdFee(
                    [Coin.parse(coin) for coin in data["fee"]["amount"]],
                    int(data["fee"]["gas"]),
                ),
                messages=data.get("messages", []),
                signed_tx_bytes=signed_tx_bytes,
                timestamp=data.get("timestamp", ""),
            )
        except KeyError as e:
            raise ValidationError(f"Signed transaction file is missing {e}") from e
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Signed transaction file is malformed: {e}") from e

    @staticmethod
    def load(path: str) -> SignedTransactionFile:
        with open(path, encoding="utf-8") as file:
            try:
                data = json.load(file)
            except ValueError as e:
                raise ValidationError(f"{path} is not valid JSON: {e}", path) from e
        return SignedTransactionFile.from_dict(data)

    def store(self, path: str):
        """Writes the file atomically: readers see the old file or the new one."""
        directory = os.path.dirname(os.path.abspath(path))
        fd, temp_path = tempfile.mkstemp(
            dir=directory, prefix=".signed-tx-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as file:
                json.dump(self.to_dict(), file, indent=2)
                file.flush()
                os.fsync(file.fileno())
            os.replace(temp_path, path)
        except BaseException:
            os.unlink(temp_path)
            raise


class Test(unittest.TestCase):
    def sample(self) -> SignedTransactionFile:
        return SignedTransactionFile(
            chain_id="xion-testnet-2",
            account_address="xion1sender",
            account_number=42,
            sequence=7,
            tx_type="send-tokens",
            description="Send 1.0 XION to xion1to",
            memo="Send 1.0 XION",
            fee=StdFee([Coin("uxion", "5000")], 200000),
            messages=[{"typeUrl": "/cosmos.bank.v1beta1.MsgSend", "value": {}}],
            signed_tx_bytes=bytes([10, 2, 255, 0]),
            timestamp="2024-01-01T00:00:00.000Z",
        )

    def test_load_and_store(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "signed-tx.json")
            start = self.sample()
            start.store(path)
            load = SignedTransactionFile.load(path)

            self.assertEqual(start, load)
            self.assertEqual(load.tx_bytes(), bytes([10, 2, 255, 0]))
            self.assertEqual(os.listdir(directory), ["signed-tx.json"])

    def test_json_keys(self):
        data = self.sample().to_dict()
        self.assertEqual(
            list(data.keys()),
            [
                "chainId",
                "accountAddress",
                "accountNumber",
                "sequence",
                "txType",
                "description",
                "memo",
                "fee",
                "messages",
                "signedTxBytes",
                "timestamp",
            ],
        )
        self.assertEqual(data["signedTxBytes"], [10, 2, 255, 0])
        self.assertEqual(data["fee"]["gas"], "200000")

    def test_malformed(self):
        data = self.sample().to_dict()
        del data["signedTxBytes"]
        with self.assertRaises(ValidationError):
            SignedTransactionFile.from_dict(data)
        data = self.sample().to_dict()
        data["signedTxBytes"] = [256]
        with self.assertRaises(ValidationError):
            SignedTransactionFile.from_dict(data)

    def test_timestamp(self):
        timestamp = utc_timestamp()
        self.assertTrue(timestamp.endswith("Z"))
        self.assertEqual(len(timestamp), len("2024-01-01T00:00:00.000Z"))


if __name__ == "__main__":
    unittest.main()
