# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .transactions import Coin, StdFee


@dataclass
class AccountInfo:
    """On-chain account metadata from the auth module"""

    address: str
    account_number: int
    sequence: int
    pub_key: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AccountInfo:
        # Vesting and module accounts nest the fields inside a base account.
        base = data
        while "account_number" not in base:
            if "base_account" in base:
                base = base["base_account"]
            elif "base_vesting_account" in base:
                base = base["base_vesting_account"]
            else:
                raise KeyError("account_number")
        return cls(
            address=base.get("address", ""),
            account_number=int(base.get("account_number") or 0),
            sequence=int(base.get("sequence") or 0),
            pub_key=base.get("pub_key"),
        )


@dataclass
class TxEvent:
    type: str
    attributes: List[Dict[str, str]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TxEvent:
        return cls(
            type=data["type"],
            attributes=[
                {"key": attr.get("key", ""), "value": attr.get("value", "")}
                for attr in data.get("attributes", [])
            ],
        )

    def attribute(self, key: str) -> Optional[str]:
        for attr in self.attributes:
            if attr["key"] == key:
                return attr["value"]
        return None


@dataclass
class TxReceipt:
    """The chain's confirmation record for a transaction"""

    transaction_hash: str
    height: int
    code: int
    codespace: str = ""
    raw_log: str = ""
    gas_used: int = 0
    gas_wanted: int = 0
    events: List[TxEvent] = field(default_factory=list)
    tx: Optional[Dict[str, Any]] = None
    timestamp: str = ""

    @property
    def succeeded(self) -> bool:
        return self.code == 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TxReceipt:
        """Parses a ``tx_response`` object from the REST gateway."""
        events = data.get("events") or []
        if not events:
            # Chains before SDK 0.50 only report events per message log.
            events = [
                event
                for log in data.get("logs") or []
                for event in log.get("events", [])
            ]
        return cls(
            transaction_hash=data["txhash"],
            height=int(data.get("height") or 0),
            code=int(data.get("code") or 0),
            codespace=data.get("codespace") or "",
            raw_log=data.get("raw_log") or "",
            gas_used=int(data.get("gas_used") or 0),
            gas_wanted=int(data.get("gas_wanted") or 0),
            events=[TxEvent.from_dict(event) for event in events],
            tx=data.get("tx"),
            timestamp=data.get("timestamp") or "",
        )

    def find_attribute(self, event_type: str, key: str) -> Optional[str]:
        for event in self.events:
            if event.type == event_type:
                value = event.attribute(key)
                if value is not None:
                    return value
        return None

    def messages(self) -> List[Dict[str, Any]]:
        if not self.tx:
            return []
        return self.tx.get("body", {}).get("messages", [])

    def memo(self) -> str:
        if not self.tx:
            return ""
        return self.tx.get("body", {}).get("memo", "")

    def fee(self) -> Optional[StdFee]:
        if not self.tx:
            return None
        fee = self.tx.get("auth_info", {}).get("fee")
        if not fee:
            return None
        return StdFee(
            [Coin.parse(coin) for coin in fee.get("amount", [])],
            int(fee.get("gas_limit") or 0),
        )


@dataclass
class InstantiateResult:
    contract_address: str
    receipt: TxReceipt


class Test(unittest.TestCase):
    TX_RESPONSE = {
        "height": "1234",
        "txhash": "ABCD",
        "codespace": "",
        "code": 0,
        "raw_log": "",
        "gas_wanted": "200000",
        "gas_used": "150000",
        "timestamp": "2024-01-01T00:00:00Z",
        "events": [
            {
                "type": "instantiate",
                "attributes": [
                    {"key": "_contract_address", "value": "xion1contract", "index": True},
                    {"key": "code_id", "value": "525", "index": True},
                ],
            }
        ],
        "tx": {
            "body": {
                "messages": [{"@type": "/cosmos.bank.v1beta1.MsgSend"}],
                "memo": "hello",
            },
            "auth_info": {
                "fee": {
                    "amount": [{"denom": "uxion", "amount": "5000"}],
                    "gas_limit": "200000",
                }
            },
        },
    }

    def test_receipt(self):
        receipt = TxReceipt.from_dict(self.TX_RESPONSE)
        self.assertTrue(receipt.succeeded)
        self.assertEqual(receipt.height, 1234)
        self.assertEqual(receipt.gas_used, 150000)
        self.assertEqual(
            receipt.find_attribute("instantiate", "_contract_address"), "xion1contract"
        )
        self.assertIsNone(receipt.find_attribute("instantiate", "missing"))
        self.assertEqual(receipt.memo(), "hello")
        self.assertEqual(len(receipt.messages()), 1)
        self.assertEqual(receipt.fee(), StdFee([Coin("uxion", "5000")], 200000))

    def test_receipt_from_logs(self):
        data = {
            "txhash": "ABCD",
            "code": 5,
            "logs": [{"events": [{"type": "message", "attributes": []}]}],
        }
        receipt = TxReceipt.from_dict(data)
        self.assertFalse(receipt.succeeded)
        self.assertEqual(receipt.events[0].type, "message")
        self.assertIsNone(receipt.fee())
        self.assertEqual(receipt.messages(), [])

    def test_account_info(self):
        base = {
            "@type": "/cosmos.auth.v1beta1.BaseAccount",
            "address": "xion1abc",
            "account_number": "12",
            "sequence": "3",
        }
        self.assertEqual(
            AccountInfo.from_dict(base), AccountInfo("xion1abc", 12, 3, None)
        )
        vesting = {
            "@type": "/cosmos.vesting.v1beta1.ContinuousVestingAccount",
            "base_vesting_account": {"base_account": base},
        }
        self.assertEqual(AccountInfo.from_dict(vesting).account_number, 12)


if __name__ == "__main__":
    unittest.main()
