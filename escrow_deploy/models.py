"""
Data models for the compile and deploy procedures
"""
import copy
from enum import Enum
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, asdict, field

DEFAULT_OUTPUT_SELECTION = {"*": {"*": ["abi", "evm.bytecode"]}}

# Hedera long-zero addresses: 12 zero bytes followed by the entity number
LONG_ZERO_PREFIX = "0" * 24


@dataclass
class CompilationInput:
    """Standard-JSON compiler request for a single source file"""
    source_name: str
    source: str
    optimizer_enabled: bool = True
    optimizer_runs: int = 200
    output_selection: Dict[str, Dict[str, List[str]]] = field(
        default_factory=lambda: copy.deepcopy(DEFAULT_OUTPUT_SELECTION)
    )

    def to_standard_json(self) -> Dict[str, Any]:
        """Converts the request into the solc standard-JSON document"""
        return {
            "language": "Solidity",
            "sources": {
                self.source_name: {
                    "content": self.source
                }
            },
            "settings": {
                "outputSelection": self.output_selection,
                "optimizer": {
                    "enabled": self.optimizer_enabled,
                    "runs": self.optimizer_runs
                }
            }
        }


@dataclass
class Diagnostic:
    """A single compiler message"""
    severity: str
    message: str
    type: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == "error"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Diagnostic':
        """Creates a Diagnostic from a solc error entry"""
        message = data.get("formattedMessage") or data.get("message") or ""
        return cls(
            severity=data.get("severity", "error"),
            message=message.rstrip(),
            type=data.get("type")
        )


@dataclass
class CompilationResult:
    """Validated output of a successful compilation"""
    contract_name: str
    bytecode: str
    abi: List[Dict[str, Any]]
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def bytecode_size(self) -> int:
        """Size of the bytecode in bytes"""
        return len(self.bytecode) // 2


@dataclass
class NetworkProfile:
    """Connection settings for a named ledger network"""
    name: str
    rpc_url: str
    chain_id: int
    explorer_url: str

    def with_rpc_url(self, rpc_url: Optional[str]) -> 'NetworkProfile':
        if not rpc_url:
            return self
        return NetworkProfile(self.name, rpc_url, self.chain_id, self.explorer_url)


@dataclass(repr=False)
class NetworkIdentity:
    """Operator account used to sign the deployment transaction"""
    account_id: Optional[str]
    private_key: str

    def __repr__(self) -> str:
        return f"NetworkIdentity(account_id={self.account_id!r}, private_key='***')"


@dataclass(frozen=True)
class ContractHandle:
    """Identifier of a deployed contract"""
    address: str
    entity_id: Optional[str] = None

    @classmethod
    def from_address(cls, address: str) -> 'ContractHandle':
        """
        Builds a handle from an EVM address.

        Hedera long-zero addresses also carry the shard.realm.num entity id
        in their low 8 bytes.
        """
        digits = address[2:] if address.lower().startswith("0x") else address
        entity_id = None
        if len(digits) == 40 and digits.startswith(LONG_ZERO_PREFIX):
            entity_id = f"0.0.{int(digits[24:], 16)}"
        return cls(address=address, entity_id=entity_id)

    def __str__(self) -> str:
        return self.entity_id or self.address


class DeploymentState(Enum):
    """Steps of the deployment procedure"""
    UNINITIALIZED = "uninitialized"
    CONNECTED = "connected"
    BYTECODE_LOADED = "bytecode_loaded"
    SUBMITTED = "submitted"
    CREATED = "created"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"


@dataclass
class DeploymentRecord:
    """Progress and outcome of one deployment"""
    network: str
    state: DeploymentState = DeploymentState.UNINITIALIZED
    contract: Optional[ContractHandle] = None
    transaction_id: Optional[str] = None
    explorer_link: Optional[str] = None
    verification_value: Optional[int] = None
    failed_in: Optional[DeploymentState] = None

    def to_dict(self) -> Dict[str, Any]:
        """Converts the record into a dictionary"""
        data = asdict(self)
        data["state"] = self.state.value
        data["failed_in"] = self.failed_in.value if self.failed_in else None
        data["contract"] = str(self.contract) if self.contract else None
        return data


@dataclass
class DriverResult:
    """Outcome of a top-level procedure"""
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: Any = None) -> 'DriverResult':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException) -> 'DriverResult':
        return cls(ok=False, error=error)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1

