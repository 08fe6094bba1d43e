# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Asynchronous clients for the XION REST (LCD) gateway.

Two connection modes are provided:

- :class:`RestClient` is a read-only query connection. It reads accounts,
  balances and transactions, queries CosmWasm contracts, simulates and
  broadcasts already signed transactions.
- :class:`SigningClient` extends it with a wallet and a gas price. It builds,
  signs and broadcasts bank sends and CosmWasm execute/instantiate messages,
  estimating gas by simulation when no explicit fee is given.

Both speak JSON over HTTP to the Cosmos SDK gRPC gateway, and both hold an
``httpx.AsyncClient`` that must be released with :meth:`RestClient.close`, or
by using the client as an async context manager.

Transaction flow (SIGN_MODE_DIRECT):
    1. simulate the messages with an unsigned envelope to learn gas used
    2. multiply by the gas adjustment and price the fee
    3. sign the ``SignDoc`` with the next local sequence number
    4. broadcast in sync mode, raising :class:`BroadcastError` on CheckTx failure
    5. poll the transaction by hash until it is indexed

Examples:
    Query a contract::

        async with RestClient(network.rest_endpoint) as client:
            owner = await client.query_contract_smart(
                contract, {"owner_of": {"token_id": "1"}}
            )

    Execute a contract::

        client = SigningClient(network.rest_endpoint, account, network)
        try:
            receipt = await client.execute(contract, {"transfer_nft": {...}})
            print(receipt.transaction_hash)
        finally:
            await client.close()
"""

import base64
import json
import logging
import unittest
import unittest.mock
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import httpx

from .account import Account
from .account_sequence_number import AccountSequenceNumber
from .amounts import GasPrice, adjust_gas, calculate_fee
from .config import TESTNET, NetworkConfig
from .exceptions import (
    AccountNotFound,
    ApiError,
    BroadcastError,
    ContractQueryError,
    NotFoundError,
)
from .metadata import Metadata
from .transaction_poller import FixedBackoff, TransactionPoller
from .transactions import (
    AuthInfo,
    Coin,
    Message,
    MsgExecuteContract,
    MsgInstantiateContract,
    MsgSend,
    SignDoc,
    SignerInfo,
    SignMode,
    StdFee,
    TxBody,
    TxRaw,
)
from .types import AccountInfo, InstantiateResult, TxReceipt


@dataclass
class ClientConfig:
    """Transport and polling parameters shared by both clients.

    Attributes:
        transaction_wait_attempts: Lookups before giving up on a transaction (default: 20)
        transaction_wait_delay: Seconds between lookups (default: 1.0)
        broadcast_mode: Cosmos broadcast mode; sync returns after CheckTx
        http2: Enable HTTP/2 (default: True)
        api_key: Optional API key sent as a bearer token
    """

    transaction_wait_attempts: int = 20
    transaction_wait_delay: float = 1.0
    broadcast_mode: str = "BROADCAST_MODE_SYNC"
    http2: bool = True
    api_key: Optional[str] = None


@dataclass
class SignerData:
    """Account state to sign against instead of querying the chain."""

    account_number: int
    sequence: int
    chain_id: str


class RestClient:
    """Read-only client for the Cosmos REST gateway of a XION node."""

    _chain_id: Optional[str]
    client: httpx.AsyncClient
    client_config: ClientConfig
    base_url: str

    def __init__(self, base_url: str, client_config: ClientConfig = ClientConfig()):
        self.base_url = base_url.rstrip("/")
        # Default limits
        limits = httpx.Limits()
        # Default timeouts but do not set a pool timeout, since the idea is that jobs will wait as
        # long as progress is being made.
        timeout = httpx.Timeout(60.0, pool=None)
        # Default headers
        headers = {Metadata.XION_HEADER: Metadata.get_xion_header_val()}
        self.client = httpx.AsyncClient(
            http2=client_config.http2,
            limits=limits,
            timeout=timeout,
            headers=headers,
        )
        self.client_config = client_config
        self._chain_id = None
        if client_config.api_key:
            self.client.headers["Authorization"] = f"Bearer {client_config.api_key}"

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        await self.client.aclose()

    async def node_info(self) -> Dict[str, Any]:
        response = await self._get(endpoint="cosmos/base/tendermint/v1beta1/node_info")
        if response.status_code >= 400:
            raise ApiError(response.text, response.status_code)
        return response.json()

    async def chain_id(self) -> str:
        """
        Get the chain ID reported by the node, e.g. ``xion-testnet-2``.

        The value is fetched once and cached.
        """
        if not self._chain_id:
            info = await self.node_info()
            self._chain_id = info["default_node_info"]["network"]
        return self._chain_id

    #
    # Account accessors
    #

    async def account(self, address: str) -> AccountInfo:
        """
        Fetch the account number and sequence for an address.

        :raises AccountNotFound: If the chain has never seen the address.
        """
        response = await self._get(endpoint=f"cosmos/auth/v1beta1/accounts/{address}")
        if response.status_code == 404:
            raise AccountNotFound(f"Account {address} not found", address)
        if response.status_code >= 400:
            raise ApiError(f"{response.text} - {address}", response.status_code)
        return AccountInfo.from_dict(response.json()["account"])

    async def account_sequence_number(self, address: str) -> int:
        try:
            return (await self.account(address)).sequence
        except AccountNotFound:
            return 0

    async def balance(self, address: str, denom: str) -> Coin:
        response = await self._get(
            endpoint=f"cosmos/bank/v1beta1/balances/{address}/by_denom",
            params={"denom": denom},
        )
        if response.status_code >= 400:
            raise ApiError(f"{response.text} - {address}", response.status_code)
        balance = response.json().get("balance") or {"denom": denom, "amount": "0"}
        return Coin.parse(balance)

    async def all_balances(self, address: str) -> List[Coin]:
        response = await self._get(endpoint=f"cosmos/bank/v1beta1/balances/{address}")
        if response.status_code >= 400:
            raise ApiError(f"{response.text} - {address}", response.status_code)
        return [Coin.parse(coin) for coin in response.json().get("balances", [])]

    #
    # CosmWasm accessors
    #

    async def query_contract_smart(
        self, contract: str, query: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Run a smart query against a contract and return its JSON response.

        :param contract: Bech32 address of the contract.
        :param query: The query message, e.g. ``{"owner_of": {"token_id": "1"}}``.
        :raises ContractQueryError: If the contract rejected the query.
        """
        encoded = base64.b64encode(
            json.dumps(query, separators=(",", ":")).encode("utf-8")
        ).decode()
        response = await self._get(
            endpoint=f"cosmwasm/wasm/v1/contract/{contract}/smart/{encoded}"
        )
        if response.status_code >= 400:
            raise ContractQueryError(
                _error_message(response), response.status_code, contract
            )
        return response.json()["data"]

    async def contract_info(self, contract: str) -> Dict[str, Any]:
        response = await self._get(endpoint=f"cosmwasm/wasm/v1/contract/{contract}")
        if response.status_code == 404:
            raise NotFoundError(f"Contract {contract} not found", contract)
        if response.status_code >= 400:
            raise ApiError(_error_message(response), response.status_code)
        return response.json()["contract_info"]

    #
    # Transactions
    #

    async def simulate(self, tx_bytes: bytes) -> int:
        """Simulate an encoded transaction and return the gas it used."""
        response = await self._post(
            endpoint="cosmos/tx/v1beta1/simulate",
            data={"tx_bytes": base64.b64encode(tx_bytes).decode()},
        )
        if response.status_code >= 400:
            raise ApiError(_error_message(response), response.status_code)
        return int(response.json()["gas_info"]["gas_used"])

    async def broadcast_tx_sync(self, tx_bytes: bytes) -> str:
        """
        Submit signed transaction bytes and return the transaction hash.

        :raises BroadcastError: If the transaction failed CheckTx.
        """
        response = await self._post(
            endpoint="cosmos/tx/v1beta1/txs",
            data={
                "tx_bytes": base64.b64encode(tx_bytes).decode(),
                "mode": self.client_config.broadcast_mode,
            },
        )
        if response.status_code >= 400:
            raise ApiError(_error_message(response), response.status_code)
        tx_response = response.json()["tx_response"]
        code = int(tx_response.get("code") or 0)
        if code != 0:
            raise BroadcastError(
                code,
                tx_response.get("codespace", ""),
                tx_response.get("raw_log", ""),
                tx_response.get("txhash", ""),
            )
        logging.info(f"Broadcast transaction {tx_response['txhash']}")
        return tx_response["txhash"]

    async def broadcast_tx(self, tx_bytes: bytes) -> TxReceipt:
        """Submit signed transaction bytes and wait for the receipt."""
        txn_hash = await self.broadcast_tx_sync(tx_bytes)
        return await self.wait_for_transaction(txn_hash)

    async def transaction_by_hash(self, txn_hash: str) -> Optional[TxReceipt]:
        """
        Retrieve a transaction by its hash.

        :return: The receipt, or ``None`` if the transaction is not indexed (yet).
        :raises ApiError: For any other failed request.
        """
        response = await self._get(endpoint=f"cosmos/tx/v1beta1/txs/{txn_hash}")
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            if "not found" in response.text:
                return None
            raise ApiError(response.text, response.status_code)
        data = response.json()
        tx_response = data["tx_response"]
        if tx_response.get("tx") is None:
            tx_response["tx"] = data.get("tx")
        return TxReceipt.from_dict(tx_response)

    async def wait_for_transaction(
        self,
        txn_hash: str,
        max_attempts: Optional[int] = None,
        delay: Optional[float] = None,
    ) -> TxReceipt:
        """
        Poll until the transaction is indexed and return its receipt.

        A receipt with a non-zero code is returned as is.

        :raises TransactionNotIndexedError: If every attempt came back empty.
        """
        poller = TransactionPoller(
            self.transaction_by_hash,
            max_attempts or self.client_config.transaction_wait_attempts,
            FixedBackoff(
                self.client_config.transaction_wait_delay if delay is None else delay
            ),
        )
        return await poller.poll(txn_hash)

    async def _post(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        # format params:
        params = {} if params is None else params
        params = {key: val for key, val in params.items() if val is not None}
        return await self.client.post(
            url=f"{self.base_url}/{endpoint}",
            params=params,
            headers=headers,
            json=data,
        )

    async def _get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> httpx.Response:
        # format params:
        params = {} if params is None else params
        params = {key: val for key, val in params.items() if val is not None}
        return await self.client.get(
            url=f"{self.base_url}/{endpoint}",
            params=params,
        )


class SigningClient(RestClient):
    """A RestClient bound to a wallet and the network's gas price."""

    signer: Account
    network: NetworkConfig
    gas_price: GasPrice
    sequence_number: AccountSequenceNumber

    def __init__(
        self,
        base_url: str,
        account: Account,
        network: NetworkConfig = TESTNET,
        client_config: ClientConfig = ClientConfig(),
    ):
        super().__init__(base_url, client_config)
        self.signer = account
        self.network = network
        self.gas_price = GasPrice.from_str(network.gas_price)
        self.sequence_number = AccountSequenceNumber(self, self.sender)

    @property
    def sender(self) -> str:
        return str(self.signer.address())

    async def simulate_messages(self, messages: List[Message], memo: str = "") -> int:
        """
        Estimate gas for a batch of messages, already scaled by the gas adjustment.
        """
        info = await self.account(self.sender)
        body = TxBody([message.to_any() for message in messages], memo)
        auth_info = AuthInfo(
            [SignerInfo(self.signer.public_key(), info.sequence, SignMode.UNSPECIFIED)],
            StdFee([], 0),
        )
        # Simulation skips signature checks but still requires one entry per signer.
        tx = TxRaw(body.to_bytes(), auth_info.to_bytes(), [b""])
        gas_used = await self.simulate(tx.to_bytes())
        gas = adjust_gas(gas_used, self.network.gas_adjustment)
        logging.debug(f"Simulated {gas_used} gas, adjusted to {gas}")
        return gas

    async def estimate_fee(self, messages: List[Message], memo: str = "") -> StdFee:
        gas = await self.simulate_messages(messages, memo)
        return calculate_fee(gas, self.gas_price)

    async def sign(
        self,
        messages: List[Message],
        fee: StdFee,
        memo: str = "",
        explicit_signer_data: Optional[SignerData] = None,
    ) -> bytes:
        """
        Sign messages without broadcasting and return the encoded ``TxRaw``.

        Without ``explicit_signer_data`` the account number is read from chain
        and the sequence comes from the local sequence tracker.
        """
        if explicit_signer_data is None:
            info = await self.account(self.sender)
            sequence = await self.sequence_number.next_sequence_number()
            explicit_signer_data = SignerData(
                info.account_number, sequence, self.network.chain_id
            )
        body = TxBody([message.to_any() for message in messages], memo)
        auth_info = AuthInfo(
            [SignerInfo(self.signer.public_key(), explicit_signer_data.sequence)],
            fee,
        )
        sign_doc = SignDoc(
            body.to_bytes(),
            auth_info.to_bytes(),
            explicit_signer_data.chain_id,
            explicit_signer_data.account_number,
        )
        signature = self.signer.sign_direct(sign_doc)
        return TxRaw(sign_doc.body_bytes, sign_doc.auth_info_bytes, [signature]).to_bytes()

    async def sign_and_broadcast(
        self,
        messages: List[Message],
        fee: Union[StdFee, str] = "auto",
        memo: str = "",
    ) -> TxReceipt:
        if fee == "auto":
            fee = await self.estimate_fee(messages, memo)
        assert isinstance(fee, StdFee)
        tx_bytes = await self.sign(messages, fee, memo)
        try:
            return await self.broadcast_tx(tx_bytes)
        except BroadcastError:
            # The chain did not consume the sequence, start over from its value.
            await self.sequence_number.reset()
            raise

    async def execute(
        self,
        contract: str,
        msg: Dict[str, Any],
        memo: str = "",
        funds: Optional[List[Coin]] = None,
        fee: Union[StdFee, str] = "auto",
    ) -> TxReceipt:
        message = MsgExecuteContract(self.sender, contract, msg, funds)
        receipt = await self.sign_and_broadcast([message], fee, memo)
        _raise_if_failed(receipt)
        return receipt

    async def instantiate(
        self,
        code_id: int,
        msg: Dict[str, Any],
        label: str,
        admin: Optional[str] = None,
        memo: str = "",
        funds: Optional[List[Coin]] = None,
        fee: Union[StdFee, str] = "auto",
    ) -> InstantiateResult:
        message = MsgInstantiateContract(self.sender, code_id, label, msg, admin, funds)
        receipt = await self.sign_and_broadcast([message], fee, memo)
        _raise_if_failed(receipt)
        contract_address = receipt.find_attribute("instantiate", "_contract_address")
        if contract_address is None:
            raise ApiError(
                f"Transaction {receipt.transaction_hash} has no instantiate event", 200
            )
        return InstantiateResult(contract_address, receipt)

    async def send_tokens(
        self,
        recipient: str,
        amount: List[Coin],
        memo: str = "",
        fee: Union[StdFee, str] = "auto",
    ) -> TxReceipt:
        message = MsgSend(self.sender, recipient, amount)
        return await self.sign_and_broadcast([message], fee, memo)


def _error_message(response: httpx.Response) -> str:
    try:
        return response.json().get("message") or response.text
    except ValueError:
        return response.text


def _raise_if_failed(receipt: TxReceipt):
    if not receipt.succeeded:
        raise BroadcastError(
            receipt.code, receipt.codespace, receipt.raw_log, receipt.transaction_hash
        )


class Test(unittest.IsolatedAsyncioTestCase):
    MNEMONIC = (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )

    def setUp(self):
        self.requests: List[httpx.Request] = []
        self.routes: Dict[str, httpx.Response] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for prefix, response in self.routes.items():
            if request.url.path.startswith(prefix):
                return response
        return httpx.Response(404, json={"code": 5, "message": "not found"})

    def mock_client(self, client: RestClient):
        client.client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return client

    def tx_response(self, code: int = 0, events=None):
        return {
            "height": "10",
            "txhash": "ABCD",
            "code": code,
            "codespace": "wasm" if code else "",
            "raw_log": "failed" if code else "",
            "gas_used": "100",
            "gas_wanted": "130",
            "events": events or [],
        }

    async def test_chain_id(self):
        self.routes["/cosmos/base/tendermint"] = httpx.Response(
            200, json={"default_node_info": {"network": "xion-testnet-2"}}
        )
        client = self.mock_client(RestClient("http://node"))
        self.assertEqual(await client.chain_id(), "xion-testnet-2")
        self.assertEqual(await client.chain_id(), "xion-testnet-2")
        self.assertEqual(len(self.requests), 1)
        await client.close()

    async def test_account(self):
        self.routes["/cosmos/auth/v1beta1/accounts/xion1known"] = httpx.Response(
            200,
            json={
                "account": {
                    "@type": "/cosmos.auth.v1beta1.BaseAccount",
                    "address": "xion1known",
                    "account_number": "7",
                    "sequence": "3",
                }
            },
        )
        client = self.mock_client(RestClient("http://node"))
        self.assertEqual((await client.account("xion1known")).account_number, 7)
        self.assertEqual(await client.account_sequence_number("xion1known"), 3)
        with self.assertRaises(AccountNotFound):
            await client.account("xion1unknown")
        self.assertEqual(await client.account_sequence_number("xion1unknown"), 0)
        await client.close()

    async def test_balance(self):
        self.routes["/cosmos/bank/v1beta1/balances/xion1abc/by_denom"] = httpx.Response(
            200, json={"balance": {"denom": "uxion", "amount": "1500000"}}
        )
        client = self.mock_client(RestClient("http://node"))
        self.assertEqual(
            await client.balance("xion1abc", "uxion"), Coin("uxion", "1500000")
        )
        self.assertEqual(self.requests[0].url.params["denom"], "uxion")
        await client.close()

    async def test_all_balances(self):
        self.routes["/cosmos/bank/v1beta1/balances/xion1abc"] = httpx.Response(
            200,
            json={
                "balances": [
                    {"denom": "ibc/57097251", "amount": "10"},
                    {"denom": "uxion", "amount": "1500000"},
                ]
            },
        )
        client = self.mock_client(RestClient("http://node"))
        self.assertEqual(
            await client.all_balances("xion1abc"),
            [Coin("ibc/57097251", "10"), Coin("uxion", "1500000")],
        )
        await client.close()

    async def test_contract_info(self):
        self.routes["/cosmwasm/wasm/v1/contract/xion1nft"] = httpx.Response(
            200,
            json={
                "address": "xion1nft",
                "contract_info": {"code_id": "522", "creator": "xion1me", "label": "nft"},
            },
        )
        client = self.mock_client(RestClient("http://node"))
        self.assertEqual((await client.contract_info("xion1nft"))["code_id"], "522")
        with self.assertRaises(NotFoundError):
            await client.contract_info("xion1missing")
        await client.close()

    async def test_query_contract_smart(self):
        self.routes["/cosmwasm/wasm/v1/contract/xion1contract/smart/"] = httpx.Response(
            200, json={"data": {"owner": "xion1owner", "approvals": []}}
        )
        client = self.mock_client(RestClient("http://node"))
        result = await client.query_contract_smart(
            "xion1contract", {"owner_of": {"token_id": "1"}}
        )
        self.assertEqual(result["owner"], "xion1owner")
        encoded = self.requests[0].url.path.rsplit("/", 1)[1]
        self.assertEqual(
            json.loads(base64.b64decode(encoded)), {"owner_of": {"token_id": "1"}}
        )
        await client.close()

    async def test_query_contract_error(self):
        self.routes["/cosmwasm"] = httpx.Response(
            500, json={"code": 2, "message": "token_id not found: query wasm"}
        )
        client = self.mock_client(RestClient("http://node"))
        with self.assertRaises(ContractQueryError) as context:
            await client.query_contract_smart("xion1contract", {"nft_info": {}})
        self.assertIn("not found", str(context.exception))
        await client.close()

    async def test_transaction_by_hash_not_found(self):
        client = self.mock_client(RestClient("http://node"))
        self.assertIsNone(await client.transaction_by_hash("ABCD"))
        await client.close()

    async def test_transaction_by_hash(self):
        self.routes["/cosmos/tx/v1beta1/txs/ABCD"] = httpx.Response(
            200,
            json={"tx": {"body": {"memo": "m"}}, "tx_response": self.tx_response()},
        )
        client = self.mock_client(RestClient("http://node"))
        receipt = await client.transaction_by_hash("ABCD")
        self.assertEqual(receipt.height, 10)
        self.assertEqual(receipt.memo(), "m")
        await client.close()

    async def test_broadcast_error(self):
        self.routes["/cosmos/tx/v1beta1/txs"] = httpx.Response(
            200,
            json={
                "tx_response": {
                    "txhash": "ABCD",
                    "code": 32,
                    "codespace": "sdk",
                    "raw_log": "account sequence mismatch, expected 4, got 3",
                }
            },
        )
        client = self.mock_client(RestClient("http://node"))
        with self.assertRaises(BroadcastError) as context:
            await client.broadcast_tx_sync(b"\x0a\x00")
        self.assertEqual(context.exception.code, 32)
        body = json.loads(self.requests[0].content)
        self.assertEqual(body["mode"], "BROADCAST_MODE_SYNC")
        await client.close()

    async def test_simulate_messages(self):
        self.routes["/cosmos/auth/v1beta1/accounts/"] = httpx.Response(
            200,
            json={"account": {"address": "x", "account_number": "7", "sequence": "3"}},
        )
        self.routes["/cosmos/tx/v1beta1/simulate"] = httpx.Response(
            200, json={"gas_info": {"gas_used": "100000", "gas_wanted": "0"}}
        )
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        client = self.mock_client(SigningClient("http://node", account, TESTNET))

        self.assertEqual(
            await client.simulate_messages([MsgSend(client.sender, "xion1to", [])]),
            130000,
        )
        fee = await client.estimate_fee([MsgSend(client.sender, "xion1to", [])])
        self.assertEqual(fee, StdFee([Coin("uxion", "3250")], 130000))

        body = json.loads(self.requests[1].content)
        tx = TxRaw.from_bytes(base64.b64decode(body["tx_bytes"]))
        self.assertEqual(tx.signatures, [b""])
        await client.close()

    async def test_sequential_signing_uses_increasing_sequences(self):
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        client = SigningClient("http://node", account, TESTNET)
        with unittest.mock.patch.object(
            client,
            "account",
            return_value=AccountInfo(client.sender, 7, 3),
        ):
            fee = StdFee([Coin("uxion", "5000")], 200000)
            msg = MsgSend(client.sender, "xion1to", [Coin("uxion", "1")])
            first = TxRaw.from_bytes(await client.sign([msg], fee))
            second = TxRaw.from_bytes(await client.sign([msg], fee))
        self.assertNotEqual(first.auth_info_bytes, second.auth_info_bytes)
        self.assertEqual(await client.sequence_number.next_sequence_number(), 5)
        await client.close()

    async def test_stale_sequence_rejected(self):
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        client = SigningClient("http://node", account, TESTNET)
        client.account = unittest.mock.AsyncMock(
            return_value=AccountInfo(client.sender, 7, 3)
        )
        client.account_sequence_number = unittest.mock.AsyncMock(return_value=3)
        client.broadcast_tx = unittest.mock.AsyncMock(
            side_effect=BroadcastError(32, "sdk", "account sequence mismatch", "ABCD")
        )
        fee = StdFee([Coin("uxion", "5000")], 200000)
        with self.assertRaises(BroadcastError):
            await client.send_tokens("xion1to", [Coin("uxion", "1")], fee=fee)
        # The rejected sequence is handed out again after a reset.
        self.assertEqual(await client.sequence_number.next_sequence_number(), 3)
        await client.close()

    async def test_instantiate(self):
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        client = SigningClient("http://node", account, TESTNET)
        events = [
            {
                "type": "instantiate",
                "attributes": [{"key": "_contract_address", "value": "xion1new"}],
            }
        ]
        client.sign_and_broadcast = unittest.mock.AsyncMock(
            return_value=TxReceipt.from_dict(self.tx_response(events=events))
        )
        result = await client.instantiate(525, {"name": "n"}, "label", client.sender)
        self.assertEqual(result.contract_address, "xion1new")
        message = client.sign_and_broadcast.await_args.args[0][0]
        self.assertEqual(message.code_id, 525)
        self.assertEqual(message.admin, client.sender)
        await client.close()

    async def test_execute_failure(self):
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        client = SigningClient("http://node", account, TESTNET)
        client.sign_and_broadcast = unittest.mock.AsyncMock(
            return_value=TxReceipt.from_dict(self.tx_response(code=5))
        )
        with self.assertRaises(BroadcastError):
            await client.execute("xion1contract", {"transfer_nft": {}})
        await client.close()


if __name__ == "__main__":
    unittest.main()
