# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
CW721 NFT client for the ``cw721-metadata-onchain`` contract.

CW721 is the CosmWasm NFT standard. The ``metadata-onchain`` variant stores an
OpenSea style metadata record as each token's ``extension``, so a token can be
fully described on chain, or only carry an image while its ``token_uri`` points
at off-chain (IPFS) metadata.

Messages are modelled as typed records rather than free-form dictionaries.
:class:`Metadata` keeps any fields it does not know in ``extra`` so that
metadata written by other tools survives a read.

Contract lifecycle:
    1. ``instantiate`` a collection from the pre-deployed code id
    2. ``mint`` tokens (only the minter may do this)
    3. ``transfer_nft`` tokens between owners
    4. query ``owner_of``, ``nft_info`` and ``tokens``

Examples:
    Mint with on-chain metadata::

        cw721 = Cw721Client(signing_client)
        metadata = Metadata(name="NFT #1", description="First", image="ipfs://...")
        receipt = await cw721.mint(
            contract, MintMsg("1", owner, "ipfs://...", metadata)
        )

    Check ownership::

        cw721 = Cw721Client(rest_client)
        try:
            owner = await cw721.owner_of(contract, "1")
        except TokenNotFound:
            print("no such token")
"""

from __future__ import annotations

import json
import unittest
import unittest.mock
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .async_client import RestClient, SigningClient
from .exceptions import ContractQueryError, TokenNotFound, ValidationError
from .transactions import MsgExecuteContract, MsgInstantiateContract
from .types import InstantiateResult, TxReceipt

METADATA_FIELDS = [
    "name",
    "description",
    "image",
    "image_data",
    "attributes",
    "animation_url",
    "external_url",
    "background_color",
    "youtube_url",
]


@dataclass
class Trait:
    trait_type: str
    value: Any
    display_type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Trait:
        return cls(
            trait_type=str(data.get("trait_type", "")),
            value=data.get("value"),
            display_type=data.get("display_type"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"trait_type": self.trait_type, "value": self.value}
        if self.display_type is not None:
            data["display_type"] = self.display_type
        return data


def parse_attributes(json_text: str) -> List[Trait]:
    """
    Parses a JSON array of traits, e.g. ``[{"trait_type": "Color", "value": "Red"}]``.

    :raises ValidationError: If the text is not a JSON array of objects.
    """
    try:
        parsed = json.loads(json_text)
    except ValueError as e:
        raise ValidationError(f"Could not parse attributes JSON: {e}", json_text) from e
    if not isinstance(parsed, list) or not all(isinstance(i, dict) for i in parsed):
        raise ValidationError("Attributes must be a JSON array of objects", json_text)
    return [Trait.from_dict(item) for item in parsed]


@dataclass
class Metadata:
    """Token extension of ``cw721-metadata-onchain``; unset fields are omitted."""

    name: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    image_data: Optional[str] = None
    attributes: Optional[List[Trait]] = None
    animation_url: Optional[str] = None
    external_url: Optional[str] = None
    background_color: Optional[str] = None
    youtube_url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Metadata:
        data = data or {}
        attributes = data.get("attributes")
        return cls(
            name=data.get("name"),
            description=data.get("description"),
            image=data.get("image"),
            image_data=data.get("image_data"),
            attributes=(
                [Trait.from_dict(a) for a in attributes]
                if isinstance(attributes, list)
                else None
            ),
            animation_url=data.get("animation_url"),
            external_url=data.get("external_url"),
            background_color=data.get("background_color"),
            youtube_url=data.get("youtube_url"),
            extra={k: v for k, v in data.items() if k not in METADATA_FIELDS},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for name in METADATA_FIELDS:
            value = getattr(self, name)
            if value is None:
                continue
            if name == "attributes":
                value = [trait.to_dict() for trait in value]
            data[name] = value
        data.update(self.extra)
        return data


@dataclass
class InstantiateMsg:
    name: str
    symbol: str
    minter: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "symbol": self.symbol, "minter": self.minter}


@dataclass
class MintMsg:
    token_id: str
    owner: str
    token_uri: Optional[str] = None
    extension: Optional[Metadata] = None

    def to_dict(self) -> Dict[str, Any]:
        mint: Dict[str, Any] = {"token_id": self.token_id, "owner": self.owner}
        if self.token_uri is not None:
            mint["token_uri"] = self.token_uri
        mint["extension"] = self.extension.to_dict() if self.extension else None
        return {"mint": mint}


@dataclass
class TransferNftMsg:
    recipient: str
    token_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {"transfer_nft": {"recipient": self.recipient, "token_id": self.token_id}}


@dataclass
class Approval:
    spender: str
    expires: Any

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Approval:
        return cls(spender=data["spender"], expires=data.get("expires"))


@dataclass
class OwnerOfResponse:
    owner: str
    approvals: List[Approval] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> OwnerOfResponse:
        return cls(
            owner=data["owner"],
            approvals=[Approval.from_dict(a) for a in data.get("approvals", [])],
        )


@dataclass
class NftInfoResponse:
    token_uri: Optional[str]
    extension: Optional[Metadata]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> NftInfoResponse:
        extension = data.get("extension")
        return cls(
            token_uri=data.get("token_uri"),
            extension=Metadata.from_dict(extension) if extension else None,
        )


@dataclass
class TokensResponse:
    tokens: List[str]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TokensResponse:
        return cls(tokens=list(data.get("tokens", [])))


class Cw721Client:
    """Typed access to a CW721 contract through a Rest or Signing client."""

    client: Union[RestClient, SigningClient]

    def __init__(self, client: Union[RestClient, SigningClient]):
        self.client = client

    def _signing_client(self) -> SigningClient:
        if not isinstance(self.client, SigningClient):
            raise TypeError("A SigningClient is required to send transactions")
        return self.client

    def instantiate_message(
        self,
        sender: str,
        code_id: int,
        msg: InstantiateMsg,
        label: str,
        admin: Optional[str] = None,
    ) -> MsgInstantiateContract:
        return MsgInstantiateContract(sender, code_id, label, msg.to_dict(), admin)

    def mint_message(self, sender: str, contract: str, msg: MintMsg) -> MsgExecuteContract:
        return MsgExecuteContract(sender, contract, msg.to_dict())

    def transfer_message(
        self, sender: str, contract: str, msg: TransferNftMsg
    ) -> MsgExecuteContract:
        return MsgExecuteContract(sender, contract, msg.to_dict())

    async def instantiate(
        self,
        code_id: int,
        msg: InstantiateMsg,
        label: str,
        admin: Optional[str] = None,
        memo: str = "",
    ) -> InstantiateResult:
        return await self._signing_client().instantiate(
            code_id, msg.to_dict(), label, admin, memo
        )

    async def mint(
        self, contract: str, msg: MintMsg, memo: Optional[str] = None
    ) -> TxReceipt:
        if memo is None:
            memo = f"Minted NFT #{msg.token_id}"
        return await self._signing_client().execute(contract, msg.to_dict(), memo)

    async def transfer_nft(
        self, contract: str, msg: TransferNftMsg, memo: Optional[str] = None
    ) -> TxReceipt:
        if memo is None:
            memo = f"Transferred NFT #{msg.token_id} to {msg.recipient}"
        return await self._signing_client().execute(contract, msg.to_dict(), memo)

    async def owner_of(self, contract: str, token_id: str) -> OwnerOfResponse:
        """
        Looks up the owner and approvals of a token.

        :raises TokenNotFound: If the contract has no such token.
        """
        data = await self._query_token(contract, token_id, {"owner_of": {"token_id": token_id}})
        return OwnerOfResponse.from_dict(data)

    async def nft_info(self, contract: str, token_id: str) -> NftInfoResponse:
        data = await self._query_token(contract, token_id, {"nft_info": {"token_id": token_id}})
        return NftInfoResponse.from_dict(data)

    async def tokens(self, contract: str, owner: str, limit: int = 100) -> TokensResponse:
        data = await self.client.query_contract_smart(
            contract, {"tokens": {"owner": owner, "limit": limit}}
        )
        return TokensResponse.from_dict(data)

    async def _query_token(
        self, contract: str, token_id: str, query: Dict[str, Any]
    ) -> Dict[str, Any]:
        try:
            return await self.client.query_contract_smart(contract, query)
        except ContractQueryError as e:
            if "not found" in str(e):
                raise TokenNotFound(str(e), token_id, contract) from e
            raise


class Test(unittest.IsolatedAsyncioTestCase):
    def test_parse_attributes(self):
        traits = parse_attributes(
            '[{"trait_type": "Color", "value": "Red"}, {"trait_type": "Level", "value": 5, "display_type": "number"}]'
        )
        self.assertEqual(traits[0], Trait("Color", "Red"))
        self.assertEqual(traits[1].to_dict()["display_type"], "number")
        with self.assertRaises(ValidationError):
            parse_attributes("{not json")
        with self.assertRaises(ValidationError):
            parse_attributes('{"trait_type": "Color"}')

    def test_metadata_passthrough(self):
        data = {"name": "NFT #1", "image": "ipfs://x", "rarity": "legendary"}
        metadata = Metadata.from_dict(data)
        self.assertEqual(metadata.extra, {"rarity": "legendary"})
        self.assertEqual(metadata.to_dict(), data)

    def test_mint_msg(self):
        msg = MintMsg(
            "1",
            "xion1owner",
            "ipfs://uri",
            Metadata(name="NFT #1", attributes=[Trait("Color", "Red")]),
        )
        self.assertEqual(
            msg.to_dict(),
            {
                "mint": {
                    "token_id": "1",
                    "owner": "xion1owner",
                    "token_uri": "ipfs://uri",
                    "extension": {
                        "name": "NFT #1",
                        "attributes": [{"trait_type": "Color", "value": "Red"}],
                    },
                }
            },
        )

    def test_transfer_message(self):
        cw721 = Cw721Client(unittest.mock.MagicMock())
        message = cw721.transfer_message(
            "xion1sender", "xion1contract", TransferNftMsg("xion1to", "7")
        )
        self.assertEqual(
            message.msg, {"transfer_nft": {"recipient": "xion1to", "token_id": "7"}}
        )
        self.assertEqual(message.contract, "xion1contract")

    async def test_owner_of(self):
        client = unittest.mock.MagicMock()
        client.query_contract_smart = unittest.mock.AsyncMock(
            return_value={
                "owner": "xion1owner",
                "approvals": [{"spender": "xion1spender", "expires": {"never": {}}}],
            }
        )
        owner = await Cw721Client(client).owner_of("xion1contract", "1")
        self.assertEqual(owner.owner, "xion1owner")
        self.assertEqual(owner.approvals[0].spender, "xion1spender")
        client.query_contract_smart.assert_awaited_once_with(
            "xion1contract", {"owner_of": {"token_id": "1"}}
        )

    async def test_owner_of_missing_token(self):
        client = unittest.mock.MagicMock()
        client.query_contract_smart = unittest.mock.AsyncMock(
            side_effect=ContractQueryError(
                "cw721_base::state::TokenInfo not found", 500, "xion1contract"
            )
        )
        with self.assertRaises(TokenNotFound) as context:
            await Cw721Client(client).owner_of("xion1contract", "9")
        self.assertEqual(context.exception.token_id, "9")

    async def test_other_query_errors_propagate(self):
        client = unittest.mock.MagicMock()
        client.query_contract_smart = unittest.mock.AsyncMock(
            side_effect=ContractQueryError("unknown variant", 400, "xion1contract")
        )
        with self.assertRaises(ContractQueryError):
            await Cw721Client(client).nft_info("xion1contract", "1")

    async def test_mint_requires_signing_client(self):
        cw721 = Cw721Client(unittest.mock.MagicMock(spec=RestClient))
        with self.assertRaises(TypeError):
            await cw721.mint("xion1contract", MintMsg("1", "xion1owner"))

    async def test_mint_default_memo(self):
        client = unittest.mock.MagicMock(spec=SigningClient)
        client.execute = unittest.mock.AsyncMock(return_value="receipt")
        self.assertEqual(
            await Cw721Client(client).mint("xion1contract", MintMsg("7", "xion1o")),
            "receipt",
        )
        self.assertEqual(client.execute.await_args.args[2], "Minted NFT #7")


if __name__ == "__main__":
    unittest.main()
