# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import unittest
from typing import Any, Dict, Optional

from bip_utils import (
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
    Bip44,
    Bip44Changes,
    Bip44Coins,
)

from . import amino
from .account_address import AccountAddress
from .exceptions import ConfigurationError
from .secp256k1_ecdsa import PrivateKey, PublicKey, Signature
from .transactions import SignDoc

ALGO = "secp256k1"
HD_PATH = "m/44'/118'/0'/0/0"

WORDS_NUM = {
    12: Bip39WordsNum.WORDS_NUM_12,
    15: Bip39WordsNum.WORDS_NUM_15,
    18: Bip39WordsNum.WORDS_NUM_18,
    21: Bip39WordsNum.WORDS_NUM_21,
    24: Bip39WordsNum.WORDS_NUM_24,
}


class Account:
    """Represents a Cosmos SDK wallet: a secp256k1 key and its bech32 address.

    The key is derived from a BIP39 mnemonic along the Cosmos HD path
    ``m/44'/118'/0'/0/0``. A generated mnemonic lives only on the returned
    object; nothing is written to disk, the operator must record it.

    Examples:
        Load the wallet configured for a script::

            account = Account.load_mnemonic(os.getenv("MNEMONIC"), "xion")
            print(account.address())

        Create a fresh wallet::

            account = Account.generate("xion")
            print(account.mnemonic)
    """

    account_address: AccountAddress
    private_key: PrivateKey
    mnemonic: Optional[str]
    algo: str = ALGO

    def __init__(
        self,
        account_address: AccountAddress,
        private_key: PrivateKey,
        mnemonic: Optional[str] = None,
    ):
        self.account_address = account_address
        self.private_key = private_key
        self.mnemonic = mnemonic

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.account_address == other.account_address
            and self.private_key == other.private_key
        )

    @staticmethod
    def from_private_key(private_key: PrivateKey, prefix: str) -> Account:
        address = AccountAddress.from_key(private_key.public_key(), prefix)
        return Account(address, private_key)

    @staticmethod
    def from_mnemonic(mnemonic: str, prefix: str) -> Account:
        """Derive the first account of a BIP39 mnemonic.

        :param mnemonic: Space separated BIP39 words.
        :param prefix: Bech32 prefix for the address, e.g. ``xion``.
        :raises ConfigurationError: If the phrase is not a valid BIP39 mnemonic.
        """
        mnemonic = " ".join(mnemonic.split())
        if not Bip39MnemonicValidator().IsValid(mnemonic):
            raise ConfigurationError("MNEMONIC is not a valid BIP39 phrase", "MNEMONIC")
        seed = Bip39SeedGenerator(mnemonic).Generate()
        derived = (
            Bip44.FromSeed(seed, Bip44Coins.COSMOS)
            .Purpose()
            .Coin()
            .Account(0)
            .Change(Bip44Changes.CHAIN_EXT)
            .AddressIndex(0)
        )
        private_key = PrivateKey.from_bytes(derived.PrivateKey().Raw().ToBytes())
        address = AccountAddress.from_key(private_key.public_key(), prefix)
        return Account(address, private_key, mnemonic)

    @staticmethod
    def generate(prefix: str, words: int = 24) -> Account:
        if words not in WORDS_NUM:
            raise ValueError(f"Unsupported mnemonic length: {words}")
        mnemonic = str(Bip39MnemonicGenerator().FromWordsNumber(WORDS_NUM[words]))
        return Account.from_mnemonic(mnemonic, prefix)

    @staticmethod
    def load_mnemonic(value: Optional[str], prefix: str) -> Account:
        """Load the wallet from a configured mnemonic, which must be present."""
        if not value or not value.strip():
            raise ConfigurationError(
                "MNEMONIC not found in environment variables", "MNEMONIC"
            )
        return Account.from_mnemonic(value, prefix)

    def address(self) -> AccountAddress:
        return self.account_address

    def public_key(self) -> PublicKey:
        return self.private_key.public_key()

    def sign(self, data: bytes) -> Signature:
        return self.private_key.sign(data)

    def sign_direct(self, sign_doc: SignDoc) -> bytes:
        """Sign a SIGN_MODE_DIRECT document, returning the raw 64 byte signature."""
        return self.sign(sign_doc.to_bytes()).data()

    def sign_amino(self, sign_doc: Dict[str, Any]) -> Dict[str, Any]:
        """Sign an amino JSON document and return the ``StdSignature`` JSON."""
        signature = self.sign(amino.serialize_sign_doc(sign_doc))
        return amino.encode_signature(self.public_key(), signature)


class Test(unittest.TestCase):
    MNEMONIC = (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )

    def test_from_mnemonic(self):
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        self.assertTrue(str(account.address()).startswith("xion1"))
        self.assertEqual(account, Account.from_mnemonic(self.MNEMONIC, "xion"))
        self.assertEqual(account.algo, "secp256k1")
        self.assertEqual(account.mnemonic, self.MNEMONIC)
        other = Account.from_mnemonic(self.MNEMONIC, "cosmos")
        self.assertEqual(account.address().address, other.address().address)

    def test_generate(self):
        account = Account.generate("xion")
        self.assertEqual(len(account.mnemonic.split()), 24)
        self.assertEqual(account, Account.from_mnemonic(account.mnemonic, "xion"))
        self.assertEqual(len(Account.generate("xion", 12).mnemonic.split()), 12)

    def test_load_mnemonic(self):
        with self.assertRaises(ConfigurationError):
            Account.load_mnemonic(None, "xion")
        with self.assertRaises(ConfigurationError):
            Account.load_mnemonic("  ", "xion")
        with self.assertRaises(ConfigurationError):
            Account.load_mnemonic("not a real mnemonic phrase", "xion")
        account = Account.load_mnemonic(f"  {self.MNEMONIC}\n", "xion")
        self.assertEqual(account.mnemonic, self.MNEMONIC)

    def test_key(self):
        message = b"test message"
        account = Account.generate("xion")
        signature = account.sign(message)
        self.assertTrue(account.public_key().verify(message, signature))

    def test_sign_direct(self):
        account = Account.from_mnemonic(self.MNEMONIC, "xion")
        sign_doc = SignDoc(b"\x0a\x00", b"\x12\x00", "xion-testnet-2", 7)
        signature = account.sign_direct(sign_doc)
        self.assertEqual(len(signature), 64)
        self.assertTrue(
            account.public_key().verify(sign_doc.to_bytes(), Signature(signature))
        )

    def test_sign_amino(self):
        account = Account.generate("xion")
        sign_doc = amino.make_adr36_sign_doc(str(account.address()), b"hello")
        std_signature = account.sign_amino(sign_doc)
        self.assertEqual(std_signature["pub_key"]["type"], amino.PUBKEY_AMINO_TYPE)
        self.assertTrue(
            amino.verify_adr36_signature(
                str(account.address()), b"hello", std_signature
            )
        )


if __name__ == "__main__":
    unittest.main()
