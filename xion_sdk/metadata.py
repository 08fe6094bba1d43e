# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client identification for HTTP requests made by the SDK.

Every request sent by :class:`xion_sdk.async_client.RestClient` carries an
``x-xion-client`` header of the form ``xion-python-sdk/<version>``, where the
version comes from the installed package metadata.
"""

import importlib.metadata as metadata
import unittest

# Package name constant for metadata lookup
PACKAGE_NAME = "xion-python-sdk"


class Metadata:
    XION_HEADER = "x-xion-client"

    @staticmethod
    def get_xion_header_val():
        """Header value naming this SDK and its installed version.

        A source checkout that was never installed reports version ``0.0.0``.
        """
        try:
            version = metadata.version(PACKAGE_NAME)
        except metadata.PackageNotFoundError:
            version = "0.0.0"
        return f"xion-python-sdk/{version}"


class Test(unittest.TestCase):
    def test_header_value(self):
        value = Metadata.get_xion_header_val()
        self.assertTrue(value.startswith("xion-python-sdk/"))
        self.assertGreater(len(value), len("xion-python-sdk/"))


if __name__ == "__main__":
    unittest.main()
