# config.py
import os

from dotenv import load_dotenv

from .errors import ConfigurationError
from .models import NetworkProfile, NetworkIdentity

BYTECODE_FILE = 'bytecode.bin'
ABI_FILE = 'abi.json'

NETWORKS = {
    'testnet': NetworkProfile(
        name='testnet',
        rpc_url='https://testnet.hashio.io/api',
        chain_id=296,
        explorer_url='https://hashscan.io/testnet/contract/{contract}',
    ),
    'previewnet': NetworkProfile(
        name='previewnet',
        rpc_url='https://previewnet.hashio.io/api',
        chain_id=297,
        explorer_url='https://hashscan.io/previewnet/contract/{contract}',
    ),
    'mainnet': NetworkProfile(
        name='mainnet',
        rpc_url='https://mainnet.hashio.io/api',
        chain_id=295,
        explorer_url='https://hashscan.io/mainnet/contract/{contract}',
    ),
    'local': NetworkProfile(
        name='local',
        rpc_url='http://127.0.0.1:7545',
        chain_id=1337,
        explorer_url='http://127.0.0.1:7545/contract/{contract}',
    ),
}


def _int_env(name, default):
    value = os.environ.get(name)
    if value is None or value == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from None


class Config:
    """
    Settings read from the environment.

    Values are resolved when the instance is created, after loading a `.env`
    file from the working directory if there is one.
    """

    def __init__(self, load_env_file=True):
        if load_env_file:
            load_dotenv()

        # Compiler
        self.CONTRACT_SOURCE = os.environ.get('CONTRACT_SOURCE', 'freelancer.sol')
        self.CONTRACT_NAME = os.environ.get('CONTRACT_NAME', 'EscrowMilestones')
        self.ARTIFACT_DIR = os.environ.get('ARTIFACT_DIR', '.')
        self.SOLC_VERSION = os.environ.get('SOLC_VERSION', '0.8.24')
        self.OPTIMIZER_RUNS = _int_env('OPTIMIZER_RUNS', 200)

        # Deployment
        self.LEDGER_NETWORK = os.environ.get('LEDGER_NETWORK', 'testnet')
        self.LEDGER_RPC_URL = os.environ.get('LEDGER_RPC_URL')
        self.LEDGER_ACCOUNT_ID = os.environ.get('LEDGER_ACCOUNT_ID')
        self.LEDGER_PRIVATE_KEY = os.environ.get('LEDGER_PRIVATE_KEY')
        self.DEPLOY_GAS = _int_env('DEPLOY_GAS', 30_000_000)
        self.DEPLOY_MAX_CHUNKS = _int_env('DEPLOY_MAX_CHUNKS', 30)
        self.QUERY_FUNCTION = os.environ.get('QUERY_FUNCTION', 'jobCount')
        self.QUERY_GAS = _int_env('QUERY_GAS', 100_000)
        self.RPC_TIMEOUT = _int_env('RPC_TIMEOUT', 30)

        self.LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    def network_profile(self, name=None):
        """Returns the profile for `name` (or LEDGER_NETWORK) with the RPC override applied"""
        name = name or self.LEDGER_NETWORK
        try:
            profile = NETWORKS[name]
        except KeyError:
            known = ', '.join(sorted(NETWORKS))
            raise ConfigurationError(f"Unknown network '{name}' (known: {known})") from None
        return profile.with_rpc_url(self.LEDGER_RPC_URL)

    def identity(self):
        """Builds the operator identity; the private key is mandatory"""
        if not self.LEDGER_PRIVATE_KEY:
            raise ConfigurationError("LEDGER_PRIVATE_KEY is not set")
        return NetworkIdentity(
            account_id=self.LEDGER_ACCOUNT_ID or None,
            private_key=self.LEDGER_PRIVATE_KEY,
        )
