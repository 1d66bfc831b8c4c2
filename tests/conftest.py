import itertools
import logging

import pytest

from escrow_deploy.config import NETWORKS
from escrow_deploy.errors import TransactionFailedError, VerificationError
from escrow_deploy.ledger import TransactionReceipt, TransactionResponse, validate_bytecode
from escrow_deploy.models import ContractHandle, NetworkIdentity

SOURCE_NAME = "freelancer.sol"
CONTRACT_NAME = "EscrowMilestones"

# Runtime prologue of a minimal contract, 17 bytes
SAMPLE_BYTECODE = "6080604052348015600f57600080fd5b50"

SAMPLE_ABI = [
    {
        "inputs": [],
        "name": "jobCount",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    }
]

SAMPLE_SOURCE = """// SPDX-License-Identifier: MIT
pragma solidity ^0.8.0;

contract EscrowMilestones {
    uint256 public jobCount;
}
"""

TEST_PRIVATE_KEY = "0x" + "11" * 32

CONFIG_VARIABLES = [
    "CONTRACT_SOURCE", "CONTRACT_NAME", "ARTIFACT_DIR", "SOLC_VERSION", "OPTIMIZER_RUNS",
    "LEDGER_NETWORK", "LEDGER_RPC_URL", "LEDGER_ACCOUNT_ID", "LEDGER_PRIVATE_KEY",
    "DEPLOY_GAS", "DEPLOY_MAX_CHUNKS", "QUERY_FUNCTION", "QUERY_GAS", "RPC_TIMEOUT", "LOG_LEVEL",
]


def compiler_output(bytecode=SAMPLE_BYTECODE, abi=None, errors=None,
                    source_name=SOURCE_NAME, contract_name=CONTRACT_NAME):
    """Builds a solc standard-JSON output document"""
    output = {
        "contracts": {
            source_name: {
                contract_name: {
                    "abi": SAMPLE_ABI if abi is None else abi,
                    "evm": {"bytecode": {"object": bytecode}}
                }
            }
        },
        "sources": {source_name: {"id": 0}}
    }
    if errors is not None:
        output["errors"] = errors
    return output


def long_zero_address(num):
    return "0x" + format(num, "040x")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keeps the host environment and any .env file out of the tests"""
    for name in CONFIG_VARIABLES:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("escrow_deploy.config.load_dotenv", lambda *args, **kwargs: False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    package_logger = logging.getLogger("escrow_deploy")
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in list(package_logger.handlers):
        if handler not in handlers:
            package_logger.removeHandler(handler)
    package_logger.setLevel(level)


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / SOURCE_NAME
    path.write_text(SAMPLE_SOURCE, encoding="utf-8")
    return path


@pytest.fixture
def bytecode_file(tmp_path):
    path = tmp_path / "bytecode.bin"
    path.write_text(SAMPLE_BYTECODE, encoding="utf-8")
    return path


@pytest.fixture
def identity():
    return NetworkIdentity(account_id="0.0.7476256", private_key=TEST_PRIVATE_KEY)


@pytest.fixture
def testnet():
    return NETWORKS["testnet"]


class FakeLedgerClient:
    """
    In-memory stand-in for LedgerClient.

    Each created contract gets the next entity number, like a real network.
    """

    _entity_numbers = itertools.count(1000)

    def __init__(self, profile, fail_receipt=False, fail_query=False, query_value=0):
        self.profile = profile
        self.fail_receipt = fail_receipt
        self.fail_query = fail_query
        self.query_value = query_value
        self.identity = None
        self.submitted = []
        self.queries = []
        self.close_calls = 0

    @property
    def closed(self):
        return self.close_calls > 0

    @property
    def operator_id(self):
        return self.identity.account_id if self.identity else None

    def set_operator(self, identity):
        self.identity = identity
        return self

    def connect(self):
        return self.profile.chain_id

    def create_contract(self, bytecode, gas, max_chunks):
        validate_bytecode(bytecode)
        self.submitted.append({"bytecode": bytecode, "gas": gas, "max_chunks": max_chunks})
        return TransactionResponse(transaction_id="0x" + format(len(self.submitted), "064x"))

    def get_receipt(self, response):
        if self.fail_receipt:
            raise TransactionFailedError("INSUFFICIENT_GAS", response.transaction_id)
        address = long_zero_address(next(self._entity_numbers))
        return TransactionReceipt(
            transaction_id=response.transaction_id,
            status=1,
            contract=ContractHandle.from_address(address)
        )

    def call_uint256(self, contract, function, gas):
        self.queries.append({"contract": contract, "function": function, "gas": gas})
        if self.fail_query:
            raise VerificationError(f"Call to {function}() on {contract} failed: CONTRACT_REVERT_EXECUTED")
        return self.query_value

    def close(self):
        self.close_calls += 1


@pytest.fixture
def fake_client_factory():
    """Returns a factory that records every client it builds"""
    clients = []

    def factory(profile, **options):
        client = FakeLedgerClient(profile, **options)
        clients.append(client)
        return client

    factory.clients = clients
    return factory
