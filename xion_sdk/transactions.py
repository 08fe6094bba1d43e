# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Cosmos SDK transaction messages and the signed transaction envelope.

This module models the small subset of the Cosmos SDK and CosmWasm protobuf
schema needed to send tokens and drive CosmWasm contracts, and assembles them
into the ``SignDoc``/``TxRaw`` pair used by SIGN_MODE_DIRECT.

Transaction assembly:
    1. Wrap each message in ``Any`` (type URL + encoded bytes).
    2. Build ``TxBody`` (messages + memo) and ``AuthInfo`` (signer + fee).
    3. Sign the encoded ``SignDoc`` (body, auth info, chain id, account number).
    4. Broadcast ``TxRaw`` (body, auth info, signatures).

Examples:
    Build and sign a bank send::

        msg = MsgSend(sender, recipient, [Coin("uxion", "1000")])
        body = TxBody([msg.to_any()], memo="hello")
        auth_info = AuthInfo(
            [SignerInfo(account.public_key(), sequence)],
            StdFee([Coin("uxion", "5000")], 200000),
        )
        sign_doc = SignDoc(body.to_bytes(), auth_info.to_bytes(), chain_id, number)
        signature = account.sign_direct(sign_doc)
        tx_bytes = TxRaw(sign_doc.body_bytes, sign_doc.auth_info_bytes, [signature]).to_bytes()
"""

from __future__ import annotations

import base64
import hashlib
import json
import unittest
from typing import Any as AnyType
from typing import Dict, List, Optional

from .protobuf import Deserializer, Serializer, encoder
from .secp256k1_ecdsa import PrivateKey, PublicKey

PUBKEY_TYPE_URL = "/cosmos.crypto.secp256k1.PubKey"


class SignMode:
    UNSPECIFIED: int = 0
    DIRECT: int = 1
    LEGACY_AMINO_JSON: int = 127


class Coin:
    """cosmos.base.v1beta1.Coin, amounts are integer strings in base units."""

    denom: str
    amount: str

    def __init__(self, denom: str, amount: str):
        self.denom = denom
        self.amount = str(amount)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Coin):
            return NotImplemented
        return self.denom == other.denom and self.amount == other.amount

    def __str__(self) -> str:
        return f"{self.amount}{self.denom}"

    def __repr__(self) -> str:
        return self.__str__()

    @staticmethod
    def parse(data: Dict[str, str]) -> Coin:
        return Coin(data["denom"], data["amount"])

    def to_dict(self) -> Dict[str, str]:
        return {"denom": self.denom, "amount": self.amount}

    def serialize(self, serializer: Serializer):
        serializer.string(1, self.denom)
        serializer.string(2, self.amount)


class Any:
    """google.protobuf.Any"""

    type_url: str
    value: bytes

    def __init__(self, type_url: str, value: bytes):
        self.type_url = type_url
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Any):
            return NotImplemented
        return self.type_url == other.type_url and self.value == other.value

    @staticmethod
    def from_bytes(data: bytes) -> Any:
        fields = Deserializer(data).fields()
        type_url = fields.get(1, [b""])[-1]
        value = fields.get(2, [b""])[-1]
        return Any(bytes(type_url).decode("utf-8"), bytes(value))

    def serialize(self, serializer: Serializer):
        serializer.string(1, self.type_url)
        serializer.bytes(2, self.value)


class Message:
    """Base for transaction messages that can be wrapped into ``Any``."""

    TYPE_URL: str = ""

    def serialize(self, serializer: Serializer):
        raise NotImplementedError

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()

    def to_any(self) -> Any:
        return Any(self.TYPE_URL, self.to_bytes())

    def to_dict(self) -> Dict[str, AnyType]:
        raise NotImplementedError

    def to_encode_object(self) -> Dict[str, AnyType]:
        return {"typeUrl": self.TYPE_URL, "value": self.to_dict()}


class MsgSend(Message):
    TYPE_URL = "/cosmos.bank.v1beta1.MsgSend"

    from_address: str
    to_address: str
    amount: List[Coin]

    def __init__(self, from_address: str, to_address: str, amount: List[Coin]):
        self.from_address = from_address
        self.to_address = to_address
        self.amount = amount

    def serialize(self, serializer: Serializer):
        serializer.string(1, self.from_address)
        serializer.string(2, self.to_address)
        serializer.repeated_message(3, self.amount)

    def to_dict(self) -> Dict[str, AnyType]:
        return {
            "fromAddress": self.from_address,
            "toAddress": self.to_address,
            "amount": [coin.to_dict() for coin in self.amount],
        }


def encode_json(msg: Dict[str, AnyType]) -> bytes:
    """Compact JSON as carried in CosmWasm ``msg`` fields."""
    return json.dumps(msg, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class MsgExecuteContract(Message):
    TYPE_URL = "/cosmwasm.wasm.v1.MsgExecuteContract"

    sender: str
    contract: str
    msg: Dict[str, AnyType]
    funds: List[Coin]

    def __init__(
        self,
        sender: str,
        contract: str,
        msg: Dict[str, AnyType],
        funds: Optional[List[Coin]] = None,
    ):
        self.sender = sender
        self.contract = contract
        self.msg = msg
        self.funds = funds or []

    def serialize(self, serializer: Serializer):
        serializer.string(1, self.sender)
        serializer.string(2, self.contract)
        serializer.bytes(3, encode_json(self.msg))
        serializer.repeated_message(5, self.funds)

    def to_dict(self) -> Dict[str, AnyType]:
        return {
            "sender": self.sender,
            "contract": self.contract,
            "msg": self.msg,
            "funds": [coin.to_dict() for coin in self.funds],
        }


class MsgInstantiateContract(Message):
    TYPE_URL = "/cosmwasm.wasm.v1.MsgInstantiateContract"

    sender: str
    admin: Optional[str]
    code_id: int
    label: str
    msg: Dict[str, AnyType]
    funds: List[Coin]

    def __init__(
        self,
        sender: str,
        code_id: int,
        label: str,
        msg: Dict[str, AnyType],
        admin: Optional[str] = None,
        funds: Optional[List[Coin]] = None,
    ):
        self.sender = sender
        self.admin = admin
        self.code_id = code_id
        self.label = label
        self.msg = msg
        self.funds = funds or []

    def serialize(self, serializer: Serializer):
        serializer.string(1, self.sender)
        serializer.string(2, self.admin or "")
        serializer.uint64(3, self.code_id)
        serializer.string(4, self.label)
        serializer.bytes(5, encode_json(self.msg))
        serializer.repeated_message(6, self.funds)

    def to_dict(self) -> Dict[str, AnyType]:
        return {
            "sender": self.sender,
            "admin": self.admin or "",
            "codeId": str(self.code_id),
            "label": self.label,
            "msg": self.msg,
            "funds": [coin.to_dict() for coin in self.funds],
        }


class TxBody:
    messages: List[Any]
    memo: str

    def __init__(self, messages: List[Any], memo: str = ""):
        self.messages = messages
        self.memo = memo

    @staticmethod
    def from_bytes(data: bytes) -> TxBody:
        fields = Deserializer(data).fields()
        messages = [Any.from_bytes(bytes(value)) for value in fields.get(1, [])]
        memo = bytes(fields.get(2, [b""])[-1]).decode("utf-8")
        return TxBody(messages, memo)

    def serialize(self, serializer: Serializer):
        serializer.repeated_message(1, self.messages)
        serializer.string(2, self.memo)

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()


class StdFee:
    """Fee paid for a transaction: coins plus the gas limit they cover."""

    amount: List[Coin]
    gas: int

    def __init__(self, amount: List[Coin], gas: int):
        self.amount = amount
        self.gas = int(gas)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StdFee):
            return NotImplemented
        return self.amount == other.amount and self.gas == other.gas

    def __str__(self) -> str:
        coins = ",".join(str(coin) for coin in self.amount)
        return f"{coins} (gas {self.gas})"

    @staticmethod
    def parse(data: Dict[str, AnyType]) -> StdFee:
        return StdFee([Coin.parse(coin) for coin in data["amount"]], int(data["gas"]))

    def to_dict(self) -> Dict[str, AnyType]:
        return {
            "amount": [coin.to_dict() for coin in self.amount],
            "gas": str(self.gas),
        }

    def serialize(self, serializer: Serializer):
        serializer.repeated_message(1, self.amount)
        serializer.uint64(2, self.gas)


class _PubKey:
    key: bytes

    def __init__(self, key: bytes):
        self.key = key

    def serialize(self, serializer: Serializer):
        serializer.bytes(1, self.key)


class _ModeInfoSingle:
    mode: int

    def __init__(self, mode: int):
        self.mode = mode

    def serialize(self, serializer: Serializer):
        serializer.enum(1, self.mode)


class _ModeInfo:
    single: _ModeInfoSingle

    def __init__(self, mode: int):
        self.single = _ModeInfoSingle(mode)

    def serialize(self, serializer: Serializer):
        serializer.message(1, self.single)


class SignerInfo:
    public_key: PublicKey
    sequence: int
    mode: int

    def __init__(self, public_key: PublicKey, sequence: int, mode: int = SignMode.DIRECT):
        self.public_key = public_key
        self.sequence = sequence
        self.mode = mode

    def serialize(self, serializer: Serializer):
        pub_key = Any(
            PUBKEY_TYPE_URL,
            encoder(_PubKey(self.public_key.to_bytes()), Serializer.struct),
        )
        serializer.message(1, pub_key)
        serializer.message(2, _ModeInfo(self.mode))
        serializer.uint64(3, self.sequence)


class AuthInfo:
    signer_infos: List[SignerInfo]
    fee: StdFee

    def __init__(self, signer_infos: List[SignerInfo], fee: StdFee):
        self.signer_infos = signer_infos
        self.fee = fee

    def serialize(self, serializer: Serializer):
        serializer.repeated_message(1, self.signer_infos)
        serializer.message(2, self.fee)

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()


class SignDoc:
    body_bytes: bytes
    auth_info_bytes: bytes
    chain_id: str
    account_number: int

    def __init__(
        self,
        body_bytes: bytes,
        auth_info_bytes: bytes,
        chain_id: str,
        account_number: int,
    ):
        self.body_bytes = body_bytes
        self.auth_info_bytes = auth_info_bytes
        self.chain_id = chain_id
        self.account_number = account_number

    def serialize(self, serializer: Serializer):
        serializer.bytes(1, self.body_bytes)
        serializer.bytes(2, self.auth_info_bytes)
        serializer.string(3, self.chain_id)
        serializer.uint64(4, self.account_number)

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()


class TxRaw:
    body_bytes: bytes
    auth_info_bytes: bytes
    signatures: List[bytes]

    def __init__(
        self, body_bytes: bytes, auth_info_bytes: bytes, signatures: List[bytes]
    ):
        self.body_bytes = body_bytes
        self.auth_info_bytes = auth_info_bytes
        self.signatures = signatures

    @staticmethod
    def from_bytes(data: bytes) -> TxRaw:
        fields = Deserializer(data).fields()
        if 1 not in fields:
            raise ValueError("Transaction has no body")
        return TxRaw(
            bytes(fields[1][-1]),
            bytes(fields.get(2, [b""])[-1]),
            [bytes(sig) for sig in fields.get(3, [])],
        )

    def body(self) -> TxBody:
        return TxBody.from_bytes(self.body_bytes)

    def serialize(self, serializer: Serializer):
        serializer.bytes(1, self.body_bytes)
        serializer.bytes(2, self.auth_info_bytes)
        serializer.repeated_bytes(3, self.signatures)

    def to_bytes(self) -> bytes:
        ser = Serializer()
        self.serialize(ser)
        return ser.output()

    def to_base64(self) -> str:
        return base64.b64encode(self.to_bytes()).decode()

    def hash(self) -> str:
        """The transaction hash the chain will index this envelope under."""
        return hashlib.sha256(self.to_bytes()).hexdigest().upper()


class Test(unittest.TestCase):
    def test_coin(self):
        ser = Serializer()
        Coin("uxion", "1000").serialize(ser)
        self.assertEqual(ser.output().hex(), "0a057578696f6e120431303030")

    def test_msg_send(self):
        msg = MsgSend("a", "b", [Coin("uxion", "1000")])
        self.assertEqual(
            msg.to_bytes().hex(), "0a0161120162" + "1a0d0a057578696f6e120431303030"
        )
        self.assertEqual(msg.to_any().type_url, "/cosmos.bank.v1beta1.MsgSend")
        self.assertEqual(
            msg.to_encode_object()["value"],
            {
                "fromAddress": "a",
                "toAddress": "b",
                "amount": [{"denom": "uxion", "amount": "1000"}],
            },
        )

    def test_execute_contract_carries_json(self):
        msg = MsgExecuteContract("a", "c", {"transfer_nft": {"token_id": "1"}})
        fields = Deserializer(msg.to_bytes()).fields()
        self.assertEqual(fields[3], [b'{"transfer_nft":{"token_id":"1"}}'])
        self.assertNotIn(5, fields)

    def test_instantiate_contract(self):
        msg = MsgInstantiateContract("a", 525, "label", {"name": "n"}, admin="a")
        fields = Deserializer(msg.to_bytes()).fields()
        self.assertEqual(fields[2], [b"a"])
        self.assertEqual(fields[3], [525])
        self.assertEqual(fields[4], [b"label"])
        no_admin = Deserializer(
            MsgInstantiateContract("a", 525, "label", {}).to_bytes()
        ).fields()
        self.assertNotIn(2, no_admin)

    def test_fee(self):
        fee = StdFee([Coin("uxion", "5000")], 200000)
        fields = Deserializer(encoder(fee, Serializer.struct)).fields()
        self.assertEqual(fields[2], [200000])
        self.assertEqual(StdFee.parse(fee.to_dict()), fee)
        self.assertEqual(fee.to_dict()["gas"], "200000")

    def test_signer_info(self):
        public_key = PrivateKey.random().public_key()
        ser = Serializer()
        SignerInfo(public_key, 3).serialize(ser)
        fields = Deserializer(ser.output()).fields()
        pub_key = Any.from_bytes(bytes(fields[1][0]))
        self.assertEqual(pub_key.type_url, PUBKEY_TYPE_URL)
        self.assertEqual(pub_key.value, b"\x0a\x21" + public_key.to_bytes())
        # mode_info { single { mode: DIRECT } }
        self.assertEqual(fields[2], [bytes.fromhex("0a020801")])
        self.assertEqual(fields[3], [3])

    def test_tx_raw(self):
        body = TxBody([MsgSend("a", "b", [Coin("uxion", "1")]).to_any()], "memo")
        tx = TxRaw(body.to_bytes(), b"\x12\x00", [b"\x01" * 64])
        decoded = TxRaw.from_bytes(tx.to_bytes())
        self.assertEqual(decoded.signatures, [b"\x01" * 64])
        self.assertEqual(decoded.body().memo, "memo")
        self.assertEqual(decoded.body().messages[0].type_url, MsgSend.TYPE_URL)
        self.assertEqual(len(tx.hash()), 64)

    def test_simulation_envelope_keeps_empty_signature(self):
        tx = TxRaw(b"\x0a\x00", b"\x12\x00", [b""])
        self.assertEqual(tx.to_bytes().hex(), "0a020a0012021200" + "1a00")

    def test_sign_doc(self):
        sign_doc = SignDoc(b"\x01", b"\x02", "xion-testnet-2", 0)
        fields = Deserializer(sign_doc.to_bytes()).fields()
        self.assertEqual(fields[3], [b"xion-testnet-2"])
        self.assertNotIn(4, fields)


if __name__ == "__main__":
    unittest.main()
