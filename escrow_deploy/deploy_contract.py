#!/usr/bin/env python3
"""
Deploys the compiled contract to the ledger network and checks it responds.

Every run creates a new contract instance. A contract that was created is not
removed if the verification call afterwards fails.
"""
import argparse
import logging
import os
import sys
from typing import Callable, List, Optional

from .config import BYTECODE_FILE, Config
from .driver import configure_logging, run_driver
from .errors import BytecodeNotFoundError, DeploymentError
from .ledger import LedgerClient
from .models import (
    ContractHandle, DeploymentRecord, DeploymentState, NetworkIdentity, NetworkProfile
)

DEFAULT_GAS = 30_000_000
DEFAULT_MAX_CHUNKS = 30
DEFAULT_QUERY_FUNCTION = "jobCount"
DEFAULT_QUERY_GAS = 100_000

logger = logging.getLogger("escrow_deploy.deployer")


def read_bytecode(bytecode_path: str) -> str:
    """Reads the bytecode artifact exactly as written by the compiler"""
    try:
        with open(bytecode_path, 'r', encoding='utf-8', newline='') as f:
            return f.read()
    except OSError as e:
        raise BytecodeNotFoundError(bytecode_path, e.strerror or str(e)) from e


def explorer_link(profile: NetworkProfile, contract: ContractHandle) -> str:
    return profile.explorer_url.format(contract=contract)


def _advance(record: DeploymentRecord, state: DeploymentState) -> None:
    logger.debug(f"Deployment state: {record.state.name} -> {state.name}")
    record.state = state


def deploy_contract(bytecode_path: str, identity: NetworkIdentity, profile: NetworkProfile,
                    gas: int = DEFAULT_GAS, max_chunks: int = DEFAULT_MAX_CHUNKS,
                    query_function: str = DEFAULT_QUERY_FUNCTION,
                    query_gas: int = DEFAULT_QUERY_GAS,
                    client_factory: Callable[[NetworkProfile], LedgerClient] = LedgerClient.for_network
                    ) -> DeploymentRecord:
    """
    Deploys the contract and runs the verification call.

    The client is closed on every exit path.

    Args:
        bytecode_path: Path of bytecode.bin
        identity: Operator account paying for the deployment
        profile: Target network
        gas: Gas limit of the creation transaction
        max_chunks: Upload chunk limit for large bytecode
        query_function: View function returning uint256 used to check the contract
        query_gas: Gas allowance of the verification call
        client_factory: Builds the client for the network

    Returns:
        DeploymentRecord in state VERIFIED

    Raises:
        DeploymentError: Any step failed; the record shows where
    """
    record = DeploymentRecord(network=profile.name)

    client = client_factory(profile)
    try:
        client.set_operator(identity)
        logger.info(f"Deploying contract to {profile.name}...")
        logger.info(f"Account: {client.operator_id}")
        client.connect()
        _advance(record, DeploymentState.CONNECTED)

        bytecode = read_bytecode(bytecode_path)
        _advance(record, DeploymentState.BYTECODE_LOADED)

        logger.info("Creating contract...")
        response = client.create_contract(bytecode, gas=gas, max_chunks=max_chunks)
        record.transaction_id = response.transaction_id
        _advance(record, DeploymentState.SUBMITTED)

        receipt = response.get_receipt(client)
        record.contract = receipt.contract
        record.explorer_link = explorer_link(profile, receipt.contract)
        _advance(record, DeploymentState.CREATED)

        logger.info("Contract deployed successfully!")
        logger.info(f"Contract ID: {record.contract}")
        logger.info(f"Transaction ID: {record.transaction_id}")
        logger.info(f"View on explorer: {record.explorer_link}")

        _advance(record, DeploymentState.VERIFYING)
        logger.info("Testing contract...")
        record.verification_value = client.call_uint256(record.contract, query_function, gas=query_gas)
        logger.info(f"Initial {query_function}: {record.verification_value}")
        _advance(record, DeploymentState.VERIFIED)
    except Exception as e:
        record.failed_in = record.state
        record.state = DeploymentState.FAILED
        if record.contract is not None:
            logger.error(
                f"Contract {record.contract} exists on {profile.name} but was not verified: {e}"
            )
        else:
            logger.error(f"Deployment failed in state {record.failed_in.name}: {e}")
        logger.info(f"Deployment record: {record.to_dict()}")
        raise DeploymentError(record, e) from e
    finally:
        client.close()

    return record


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Deploy bytecode.bin to a ledger network and verify the new contract"
    )
    parser.add_argument("bytecode", nargs="?", help="Bytecode file (default: $ARTIFACT_DIR/bytecode.bin)")
    parser.add_argument("--network", help="Network name (default: $LEDGER_NETWORK)")
    parser.add_argument("--gas", type=int, help="Gas limit for contract creation (default: $DEPLOY_GAS)")
    parser.add_argument("--max-chunks", type=int, help="Upload chunk limit (default: $DEPLOY_MAX_CHUNKS)")
    parser.add_argument("--query-function", help="uint256 view function to call (default: $QUERY_FUNCTION)")
    parser.add_argument("--query-gas", type=int, help="Gas for the verification call (default: $QUERY_GAS)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _deploy_from_args(args: argparse.Namespace) -> DeploymentRecord:
    config = Config()
    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)

    profile = config.network_profile(args.network)
    identity = config.identity()
    bytecode_path = args.bytecode or os.path.join(config.ARTIFACT_DIR, BYTECODE_FILE)

    def client_factory(network):
        return LedgerClient.for_network(network, timeout=config.RPC_TIMEOUT)

    return deploy_contract(
        bytecode_path,
        identity,
        profile,
        gas=args.gas if args.gas is not None else config.DEPLOY_GAS,
        max_chunks=args.max_chunks if args.max_chunks is not None else config.DEPLOY_MAX_CHUNKS,
        query_function=args.query_function or config.QUERY_FUNCTION,
        query_gas=args.query_gas if args.query_gas is not None else config.QUERY_GAS,
        client_factory=client_factory
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    result = run_driver("Deployment", _deploy_from_args, args)
    if result.ok:
        print(f"\nDeployment complete! Contract ID: {result.value.contract}")
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
