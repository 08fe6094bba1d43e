# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Command scripts for common XION tasks, built on :mod:`xion_sdk`.

Every script reads its parameters from environment variables first and
positional arguments second, so values from a ``.env`` file win over the
command line. Each one can be run on its own::

    python -m xion_scripts.mint_token 7 xion1owner... ipfs://Qm...

or through the combined ``xion`` command::

    xion mint-token 7 xion1owner... ipfs://Qm...

Environment Variables:
    MNEMONIC: Wallet phrase for scripts that sign
    XION_NETWORK: ``testnet`` (default) or ``mainnet``
    XION_REST_ENDPOINT: Override the REST gateway URL
    XION_RPC_ENDPOINT: Override the RPC URL printed in broadcast hints
    XION_CHAIN_ID: Override the chain id
    XION_LOG_LEVEL: Logging level, ``WARNING`` by default
    XION_DEBUG: Print tracebacks when a script fails

Exit status is 0 on success, 1 when the operation failed or stopped early,
and 2 when a required parameter is missing.
"""
