#!/usr/bin/env python3
"""
Client for the EVM JSON-RPC endpoint of the ledger network.

Wraps web3 with the handful of operations the deployment needs: contract
creation, receipt lookup and a read-only uint256 call.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Optional

import requests
from eth_abi import decode
from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from .errors import (
    BytecodeTooLargeError, InvalidBytecodeError, LedgerError,
    TransactionFailedError, VerificationError
)
from .models import ContractHandle, NetworkIdentity, NetworkProfile

# Contract bytecode is uploaded as hex text in chunks of this many bytes
CHUNK_SIZE = 4096
RECEIPT_TIMEOUT = 120

HEX_RE = re.compile(r"^[0-9a-fA-F]*$")


def count_chunks(bytecode: str) -> int:
    """Number of upload chunks needed for the hex bytecode"""
    return max(1, math.ceil(len(bytecode.encode("utf-8")) / CHUNK_SIZE))


def validate_bytecode(bytecode: str) -> str:
    """
    Checks that the bytecode is a non-empty, even-length hex string.

    Returns:
        The hex digits without a 0x prefix
    """
    digits = bytecode[2:] if bytecode[:2].lower() == "0x" else bytecode
    if not digits:
        raise InvalidBytecodeError("Bytecode is empty")
    if not HEX_RE.match(digits):
        raise InvalidBytecodeError("Bytecode is not a hex string")
    if len(digits) % 2:
        raise InvalidBytecodeError(f"Bytecode has odd length ({len(digits)} hex digits)")
    return digits


@dataclass
class TransactionReceipt:
    transaction_id: str
    status: int
    contract: Optional[ContractHandle]


@dataclass
class TransactionResponse:
    """Acknowledgement of a submitted transaction"""
    transaction_id: str

    def get_receipt(self, client: "LedgerClient") -> TransactionReceipt:
        """Waits for the transaction to reach finality"""
        return client.get_receipt(self)


class LedgerClient:
    """Connection to a ledger network operated by a single identity"""

    def __init__(self, web3, profile: NetworkProfile, session=None):
        self.web3 = web3
        self.profile = profile
        self.session = session
        self.identity = None
        self.operator = None
        self.closed = False
        self.logger = logging.getLogger("escrow_deploy.ledger")

    @classmethod
    def for_network(cls, profile: NetworkProfile, timeout: int = 30) -> "LedgerClient":
        """
        Creates a client bound to the network's RPC endpoint.

        Args:
            profile: Network to connect to
            timeout: HTTP timeout in seconds for each RPC request

        Returns:
            LedgerClient owning its HTTP session
        """
        session = requests.Session()
        provider = Web3.HTTPProvider(
            profile.rpc_url,
            request_kwargs={"timeout": timeout},
            session=session,
            exception_retry_configuration=None
        )
        return cls(Web3(provider), profile, session=session)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def set_operator(self, identity: NetworkIdentity) -> "LedgerClient":
        """Sets the account that signs and pays for transactions"""
        self.operator = self.web3.eth.account.from_key(identity.private_key)
        self.identity = identity
        return self

    @property
    def operator_id(self) -> Optional[str]:
        if self.identity is None:
            return None
        return self.identity.account_id or self.operator.address

    def connect(self) -> int:
        """
        Checks the endpoint is reachable.

        Returns:
            Chain ID reported by the network
        """
        if not self.web3.is_connected():
            raise LedgerError(f"Could not connect to {self.profile.name} at {self.profile.rpc_url}")

        chain_id = self.web3.eth.chain_id
        if chain_id != self.profile.chain_id:
            self.logger.warning(
                f"Network reports chain ID {chain_id}, expected {self.profile.chain_id} for {self.profile.name}"
            )
        self.logger.debug(f"Connected to {self.profile.name}. Chain ID: {chain_id}")
        return chain_id

    def _require_operator(self):
        if self.operator is None:
            raise LedgerError("Operator identity is not set")
        return self.operator

    def create_contract(self, bytecode: str, gas: int, max_chunks: int) -> TransactionResponse:
        """
        Submits a contract creation transaction.

        Args:
            bytecode: Contract bytecode as hex text
            gas: Gas limit of the transaction
            max_chunks: Maximum number of upload chunks allowed for the bytecode

        Returns:
            TransactionResponse with the transaction ID
        """
        account = self._require_operator()
        digits = validate_bytecode(bytecode)

        chunks = count_chunks(digits)
        if chunks > max_chunks:
            raise BytecodeTooLargeError(chunks, max_chunks)

        transaction = {
            'data': "0x" + digits,
            'gas': gas,
            'gasPrice': self.web3.eth.gas_price,
            'nonce': self.web3.eth.get_transaction_count(account.address),
            'chainId': self.web3.eth.chain_id,
            'value': 0
        }

        signed_txn = account.sign_transaction(transaction)
        try:
            txn_hash = self.web3.eth.send_raw_transaction(signed_txn.raw_transaction)
        except (Web3Exception, ValueError, requests.RequestException) as e:
            raise TransactionFailedError(f"Transaction rejected: {e}") from e

        transaction_id = self.web3.to_hex(txn_hash)
        self.logger.debug(f"Transaction sent: {transaction_id} ({chunks} chunk(s))")
        return TransactionResponse(transaction_id=transaction_id)

    def get_receipt(self, response: TransactionResponse,
                    timeout: int = RECEIPT_TIMEOUT) -> TransactionReceipt:
        """Waits for the receipt and checks the transaction succeeded"""
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(response.transaction_id, timeout=timeout)
        except TimeExhausted as e:
            raise TransactionFailedError(
                f"No receipt for {response.transaction_id} after {timeout}s", response.transaction_id
            ) from e

        if receipt.status != 1:
            raise TransactionFailedError(
                f"Transaction {response.transaction_id} failed with status {receipt.status}",
                response.transaction_id
            )
        if not receipt.contractAddress:
            raise TransactionFailedError(
                f"Transaction {response.transaction_id} did not create a contract",
                response.transaction_id
            )

        address = Web3.to_checksum_address(receipt.contractAddress)
        return TransactionReceipt(
            transaction_id=response.transaction_id,
            status=receipt.status,
            contract=ContractHandle.from_address(address)
        )

    def call_uint256(self, contract: ContractHandle, function: str, gas: int) -> int:
        """
        Calls a view function without arguments and decodes a uint256.

        Args:
            contract: Deployed contract
            function: Function name, e.g. "jobCount"
            gas: Gas allowance for the call

        Returns:
            The decoded integer
        """
        selector = Web3.keccak(text=f"{function}()")[:4]
        call = {
            'to': contract.address,
            'data': self.web3.to_hex(selector),
            'gas': gas
        }
        if self.operator is not None:
            call['from'] = self.operator.address

        try:
            result = self.web3.eth.call(call)
            (value,) = decode(["uint256"], bytes(result))
        except (Web3Exception, DecodingError, ValueError, requests.RequestException) as e:
            raise VerificationError(f"Call to {function}() on {contract} failed: {e}") from e
        return value

    def close(self) -> None:
        """Releases the HTTP session"""
        if self.closed:
            return
        if self.session is not None:
            self.session.close()
        self.closed = True
        self.logger.debug(f"Client for {self.profile.name} closed")
