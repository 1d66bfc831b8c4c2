"""
Exceptions raised by the compile and deploy procedures.
"""


class EscrowDeployError(Exception):
    """Base exception for escrow_deploy."""
    pass


class ConfigurationError(EscrowDeployError):
    """Missing or invalid configuration."""
    pass


class ArtifactIOError(EscrowDeployError):
    """A file the procedure depends on could not be read or written."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class SourceNotFoundError(ArtifactIOError):
    """Contract source file is missing or unreadable."""
    pass


class BytecodeNotFoundError(ArtifactIOError):
    """Bytecode artifact is missing or unreadable."""
    pass


class CompilationError(EscrowDeployError):
    """Base class for compiler-side failures."""
    pass


class CompilationFailedError(CompilationError):
    """The compiler reported at least one error-severity diagnostic."""

    def __init__(self, diagnostics):
        self.diagnostics = list(diagnostics)
        count = len(self.diagnostics)
        super().__init__(f"compiler reported {count} error(s)")


class ContractNotFoundError(CompilationError):
    """The requested contract is not part of the compiler output."""

    def __init__(self, source_name, contract_name, available=None):
        self.source_name = source_name
        self.contract_name = contract_name
        self.available = sorted(available or [])
        message = f"Contract '{contract_name}' not found in {source_name}"
        if self.available:
            message += f" (compiled: {', '.join(self.available)})"
        super().__init__(message)


class LedgerError(EscrowDeployError):
    """Network or transaction failure."""
    pass


class InvalidBytecodeError(LedgerError):
    """Bytecode is empty or not a hex string."""
    pass


class BytecodeTooLargeError(LedgerError):
    """Bytecode does not fit in the allowed number of upload chunks."""

    def __init__(self, chunks, max_chunks):
        self.chunks = chunks
        self.max_chunks = max_chunks
        super().__init__(f"Bytecode needs {chunks} chunks, limit is {max_chunks}")


class TransactionFailedError(LedgerError):
    """The network rejected the transaction."""

    def __init__(self, message, transaction_id=None):
        self.transaction_id = transaction_id
        super().__init__(message)


class VerificationError(LedgerError):
    """The read-only verification call failed."""
    pass


class DeploymentError(LedgerError):
    """
    Failure inside the deployment state machine.

    Carries the partial deployment record so callers can tell how far the
    deployment got (a contract may already exist on-chain).
    """

    def __init__(self, record, cause):
        self.record = record
        self.cause = cause
        message = f"{cause} (failed in state {record.failed_in.name})"
        if record.contract is not None:
            message += f"; contract {record.contract} was created but not verified"
        super().__init__(message)
