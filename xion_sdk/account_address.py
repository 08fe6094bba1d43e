# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Bech32 account addresses for Cosmos SDK chains.

A wallet address is ``bech32(prefix, RIPEMD160(SHA256(compressed_pubkey)))``,
20 bytes of payload behind a human readable prefix such as ``xion``. CosmWasm
contract addresses use the same encoding with a 32 byte payload, so parsing
accepts any payload length.

Examples:
    Derive and parse::

        address = AccountAddress.from_key(public_key, "xion")
        str(address)  # 'xion1...'
        AccountAddress.from_str(str(address), "xion") == address
"""

from __future__ import annotations

import unittest
from typing import Optional

from bip_utils import AtomAddrEncoder, Bech32Decoder, Bech32Encoder

from .secp256k1_ecdsa import PrivateKey, PublicKey

BECH32_SEPARATOR = "1"


class ParseAddressError(Exception):
    """
    There was an error parsing an address.
    """


class AccountAddress:
    prefix: str
    address: bytes

    def __init__(self, prefix: str, address: bytes):
        self.prefix = prefix
        self.address = address

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountAddress):
            return NotImplemented
        return self.prefix == other.prefix and self.address == other.address

    def __hash__(self):
        return hash((self.prefix, self.address))

    def __str__(self):
        return Bech32Encoder.Encode(self.prefix, self.address)

    def __repr__(self):
        return self.__str__()

    @staticmethod
    def from_str(address: str, prefix: Optional[str] = None) -> AccountAddress:
        """
        Parses a bech32 address, optionally requiring a specific prefix.

        :param address: A bech32 string such as ``xion1...``.
        :param prefix: When set, the address must carry exactly this prefix.
        :raises ParseAddressError: If the string is not valid bech32 or the prefix differs.
        """
        if BECH32_SEPARATOR not in address:
            raise ParseAddressError(f"{address} is not a bech32 address")
        hrp = address.rsplit(BECH32_SEPARATOR, 1)[0]
        if prefix is not None and hrp != prefix:
            raise ParseAddressError(
                f"{address} has prefix {hrp}, expected {prefix}"
            )
        try:
            data = Bech32Decoder.Decode(hrp, address)
        except Exception as e:
            raise ParseAddressError(f"{address} is not a valid address: {e}") from e
        return AccountAddress(hrp, bytes(data))

    @staticmethod
    def is_valid(address: str, prefix: Optional[str] = None) -> bool:
        try:
            AccountAddress.from_str(address, prefix)
        except ParseAddressError:
            return False
        return True

    @staticmethod
    def from_key(key: PublicKey, prefix: str) -> AccountAddress:
        encoded = AtomAddrEncoder.EncodeKey(key.to_bytes(), hrp=prefix)
        return AccountAddress.from_str(encoded, prefix)


class Test(unittest.TestCase):
    def test_from_key(self):
        public_key = PrivateKey.random().public_key()
        address = AccountAddress.from_key(public_key, "xion")
        self.assertTrue(str(address).startswith("xion1"))
        self.assertEqual(len(address.address), 20)
        self.assertEqual(address, AccountAddress.from_key(public_key, "xion"))

    def test_from_str(self):
        address = AccountAddress.from_key(PrivateKey.random().public_key(), "xion")
        self.assertEqual(AccountAddress.from_str(str(address)), address)
        self.assertEqual(AccountAddress.from_str(str(address), "xion"), address)

    def test_contract_address(self):
        address = AccountAddress("xion", bytes(range(32)))
        parsed = AccountAddress.from_str(str(address), "xion")
        self.assertEqual(len(parsed.address), 32)

    def test_invalid(self):
        address = str(AccountAddress.from_key(PrivateKey.random().public_key(), "xion"))
        corrupted = address[:-1] + ("q" if address[-1] != "q" else "p")
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str(corrupted)
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str(address, "cosmos")
        with self.assertRaises(ParseAddressError):
            AccountAddress.from_str("not-an-address")
        self.assertFalse(AccountAddress.is_valid("xion1"))
        self.assertTrue(AccountAddress.is_valid(address, "xion"))


if __name__ == "__main__":
    unittest.main()
