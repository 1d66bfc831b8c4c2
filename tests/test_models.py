from escrow_deploy.models import (
    DEFAULT_OUTPUT_SELECTION, CompilationInput, CompilationResult, ContractHandle, DeploymentRecord,
    DeploymentState, Diagnostic, DriverResult
)


def test_standard_json_document():
    document = CompilationInput("freelancer.sol", "contract A {}").to_standard_json()

    assert document == {
        "language": "Solidity",
        "sources": {"freelancer.sol": {"content": "contract A {}"}},
        "settings": {
            "outputSelection": {"*": {"*": ["abi", "evm.bytecode"]}},
            "optimizer": {"enabled": True, "runs": 200}
        }
    }


def test_output_selection_is_not_shared():
    first = CompilationInput("a.sol", "")
    second = CompilationInput("b.sol", "")

    first.output_selection["*"]["*"].append("metadata")

    assert second.output_selection == {"*": {"*": ["abi", "evm.bytecode"]}}
    assert DEFAULT_OUTPUT_SELECTION == {"*": {"*": ["abi", "evm.bytecode"]}}


def test_diagnostic_falls_back_to_plain_message():
    diagnostic = Diagnostic.from_dict({"severity": "warning", "message": "Unreachable code."})

    assert diagnostic.message == "Unreachable code."
    assert not diagnostic.is_error


def test_bytecode_size():
    assert CompilationResult("A", "6080604052", []).bytecode_size == 5


def test_long_zero_address_has_entity_id():
    handle = ContractHandle.from_address("0x" + format(7476256, "040x"))

    assert handle.entity_id == "0.0.7476256"
    assert str(handle) == "0.0.7476256"


def test_regular_address_has_no_entity_id():
    address = "0x5B38Da6a701c568545dCfcB03FcB875f56beddC4"
    handle = ContractHandle.from_address(address)

    assert handle.entity_id is None
    assert str(handle) == address


def test_deployment_record_to_dict():
    record = DeploymentRecord(network="testnet")
    record.contract = ContractHandle.from_address("0x" + format(9, "040x"))
    record.failed_in = DeploymentState.VERIFYING
    record.state = DeploymentState.FAILED

    data = record.to_dict()

    assert data["state"] == "failed"
    assert data["failed_in"] == "verifying"
    assert data["contract"] == "0.0.9"


def test_driver_result_exit_codes():
    assert DriverResult.success("0.0.1").exit_code == 0
    failure = DriverResult.failure(RuntimeError("boom"))
    assert failure.exit_code == 1
    assert not failure.ok
