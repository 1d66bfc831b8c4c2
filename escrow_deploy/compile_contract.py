#!/usr/bin/env python3
"""
Compiles the Solidity contract and saves its bytecode and ABI.

Writes `bytecode.bin` (raw hex) and `abi.json` into the output directory.
Nothing is written when the compiler reports an error.
"""
import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, Tuple

from solcx import compile_standard, get_installed_solc_versions, install_solc
from solcx.exceptions import SolcError

from .config import ABI_FILE, BYTECODE_FILE, Config
from .driver import configure_logging, run_driver
from .errors import (
    CompilationError, CompilationFailedError, ContractNotFoundError, SourceNotFoundError
)
from .models import CompilationInput, CompilationResult, Diagnostic


logger = logging.getLogger("escrow_deploy.compiler")


def read_source(source_path: str) -> str:
    """Reads the contract source as UTF-8 text"""
    try:
        with open(source_path, 'r', encoding='utf-8') as f:
            return f.read()
    except OSError as e:
        raise SourceNotFoundError(source_path, e.strerror or str(e)) from e


def build_compilation_input(source_name: str, source: str, optimizer_runs: int = 200,
                            optimizer_enabled: bool = True) -> CompilationInput:
    """Builds the compiler request for a single source file"""
    return CompilationInput(
        source_name=source_name,
        source=source,
        optimizer_enabled=optimizer_enabled,
        optimizer_runs=optimizer_runs
    )


def ensure_solc(solc_version: str) -> None:
    """Installs the requested solc version if it is not available yet"""
    installed = {str(v) for v in get_installed_solc_versions()}
    if solc_version not in installed:
        logger.info(f"Installing solc {solc_version}...")
        install_solc(solc_version)


def run_compiler(compilation_input: CompilationInput, solc_version: str) -> Dict[str, Any]:
    """
    Invokes solc with the standard-JSON request.

    solcx raises SolcError as soon as the output contains an error. The full
    compiler output travels on the exception, so it is recovered here and the
    diagnostics are handled like any other output.

    Args:
        compilation_input: Compiler request
        solc_version: Version of solc to run

    Returns:
        The parsed standard-JSON compiler output
    """
    try:
        return compile_standard(compilation_input.to_standard_json(), solc_version=solc_version)
    except SolcError as e:
        if e.stdout_data:
            try:
                output = json.loads(e.stdout_data)
            except ValueError:
                output = None
            if isinstance(output, dict) and output.get("errors"):
                return output
        return {"errors": [{"severity": "error", "formattedMessage": e.message}]}


def collect_diagnostics(output: Dict[str, Any]) -> List[Diagnostic]:
    return [Diagnostic.from_dict(entry) for entry in output.get("errors") or []]


def partition_diagnostics(diagnostics: List[Diagnostic]) -> Tuple[List[Diagnostic], List[Diagnostic]]:
    """Splits diagnostics into (errors, warnings and infos)"""
    errors = [d for d in diagnostics if d.is_error]
    others = [d for d in diagnostics if not d.is_error]
    return errors, others


def report_diagnostics(diagnostics: List[Diagnostic]) -> None:
    for diagnostic in diagnostics:
        if diagnostic.is_error:
            logger.error(diagnostic.message)
        else:
            logger.warning(diagnostic.message)


def extract_contract(output: Dict[str, Any], source_name: str,
                     contract_name: str) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Finds the compiled contract in the compiler output.

    Returns:
        (bytecode, abi) of the contract
    """
    contracts = output.get("contracts") or {}
    compiled = contracts.get(source_name) or {}
    if contract_name not in compiled:
        available = [name for units in contracts.values() for name in units]
        raise ContractNotFoundError(source_name, contract_name, available)

    contract_data = compiled[contract_name]
    abi = contract_data.get("abi", [])
    bytecode = contract_data.get("evm", {}).get("bytecode", {}).get("object", "")
    if not bytecode:
        raise CompilationError(
            f"Contract '{contract_name}' produced no bytecode (abstract contract or interface?)"
        )
    return bytecode, abi


def write_artifacts(result: CompilationResult, output_dir: str,
                    bytecode_file: str = BYTECODE_FILE, abi_file: str = ABI_FILE) -> Tuple[str, str]:
    """Saves the bytecode as raw hex and the ABI as indented JSON"""
    os.makedirs(output_dir, exist_ok=True)

    bytecode_path = os.path.join(output_dir, bytecode_file)
    with open(bytecode_path, 'w', encoding='utf-8') as f:
        f.write(result.bytecode)
    logger.info(f"Bytecode saved to {bytecode_path}")

    abi_path = os.path.join(output_dir, abi_file)
    with open(abi_path, 'w', encoding='utf-8') as f:
        json.dump(result.abi, f, indent=2)
    logger.info(f"ABI saved to {abi_path}")

    return bytecode_path, abi_path


def compile_contract(source_path: str, contract_name: str, output_dir: str = ".",
                     solc_version: str = "0.8.24", optimizer_runs: int = 200,
                     optimizer_enabled: bool = True) -> CompilationResult:
    """
    Compiles the contract and saves the bytecode and ABI.

    Args:
        source_path: Path of the Solidity source file
        contract_name: Contract to extract from the compiler output
        output_dir: Directory receiving bytecode.bin and abi.json
        solc_version: Version of solc to use
        optimizer_runs: Optimizer runs setting
        optimizer_enabled: Whether the optimizer is on

    Returns:
        CompilationResult of the named contract

    Raises:
        SourceNotFoundError: The source file cannot be read
        CompilationFailedError: The compiler reported errors
        ContractNotFoundError: The contract is not in the output
    """
    source_name = os.path.basename(source_path)
    logger.info(f"Compiling {contract_name} from {source_name}...")

    source = read_source(source_path)
    compilation_input = build_compilation_input(
        source_name, source, optimizer_runs=optimizer_runs, optimizer_enabled=optimizer_enabled
    )

    ensure_solc(solc_version)
    output = run_compiler(compilation_input, solc_version)

    diagnostics = collect_diagnostics(output)
    report_diagnostics(diagnostics)
    errors, others = partition_diagnostics(diagnostics)
    if errors:
        raise CompilationFailedError(errors)

    bytecode, abi = extract_contract(output, source_name, contract_name)
    result = CompilationResult(
        contract_name=contract_name,
        bytecode=bytecode,
        abi=abi,
        diagnostics=others
    )

    write_artifacts(result, output_dir)
    logger.info(f"Bytecode size: {result.bytecode_size} bytes")
    return result


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Compile a Solidity contract into bytecode.bin and abi.json"
    )
    parser.add_argument("source", nargs="?", help="Solidity source file (default: $CONTRACT_SOURCE)")
    parser.add_argument("output_dir", nargs="?", help="Output directory (default: $ARTIFACT_DIR)")
    parser.add_argument("--contract", help="Contract name (default: $CONTRACT_NAME)")
    parser.add_argument("--solc-version", help="solc version (default: $SOLC_VERSION)")
    parser.add_argument("--optimizer-runs", type=int, help="Optimizer runs (default: $OPTIMIZER_RUNS)")
    parser.add_argument("--no-optimizer", action="store_true", help="Disable the optimizer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def _compile_from_args(args: argparse.Namespace) -> CompilationResult:
    config = Config()
    configure_logging("DEBUG" if args.verbose else config.LOG_LEVEL)
    return compile_contract(
        source_path=args.source or config.CONTRACT_SOURCE,
        contract_name=args.contract or config.CONTRACT_NAME,
        output_dir=args.output_dir or config.ARTIFACT_DIR,
        solc_version=args.solc_version or config.SOLC_VERSION,
        optimizer_runs=args.optimizer_runs if args.optimizer_runs is not None else config.OPTIMIZER_RUNS,
        optimizer_enabled=not args.no_optimizer
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    result = run_driver("Compilation", _compile_from_args, args)
    if result.ok:
        print("\nCompilation successful!")
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
