"""
Pool configuration for the shielded pool.

Defines the tree/window constants the state machine is bound to at genesis,
the withdraw fee policy, and the genesis file format used by the CLI.
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import dotenv_values
from pydantic import BaseModel, field_validator, model_validator

from shielded_pool.core.verifier.backends import BACKENDS
from shielded_pool.core.verifier.gate import VerifyingKeys
from shielded_pool.crypto import ACCOUNT_ID_SIZE, hex_to_bytes
from shielded_pool.utils.validation import MAX_AMOUNT

# Hard limits
MAX_TREE_DEPTH = 64

ENV_PREFIX = "SHIELDED_POOL_"


class FeePolicy(str, Enum):
    """Where the fee of a withdrawal is settled."""
    RECIPIENT = "recipient"  # recipient receives the full amount
    SINK = "sink"            # fee credited to the configured fee sink
    RELAYER = "relayer"      # fee credited to the submitting origin


@dataclass
class PoolConfig:
    """Pool-wide configuration parameters"""

    # Commitment tree
    tree_depth: int = 32  # 2^depth leaves
    root_history_size: int = 30  # W, distinct roots accepted by withdraw/transact

    # Sovereign reserve
    pallet_id: bytes = b"xorionct"  # reserve account = "modl" + pallet_id

    # Withdraw fee settlement
    fee_policy: FeePolicy = FeePolicy.RECIPIENT
    fee_sink: Optional[bytes] = None

    # Batch processing
    max_batch_size: int = 100
    verification_cache_size: int = 1024
    prevalidation_workers: int = 4

    def __post_init__(self):
        """Validate parameters"""
        self.fee_policy = FeePolicy(self.fee_policy)

        if not 1 <= self.tree_depth <= MAX_TREE_DEPTH:
            raise ValueError(f"tree_depth must be in 1..{MAX_TREE_DEPTH}, got {self.tree_depth}")
        if self.root_history_size < 1:
            raise ValueError(f"root_history_size must be >= 1, got {self.root_history_size}")
        if len(self.pallet_id) != 8:
            raise ValueError(f"pallet_id must be 8 bytes, got {len(self.pallet_id)}")
        if self.fee_policy == FeePolicy.SINK:
            if self.fee_sink is None or len(self.fee_sink) != ACCOUNT_ID_SIZE:
                raise ValueError("fee_policy 'sink' requires a 32-byte fee_sink account")
        if self.max_batch_size < 1:
            raise ValueError(f"max_batch_size must be >= 1, got {self.max_batch_size}")
        if self.verification_cache_size < 0:
            raise ValueError("verification_cache_size must be >= 0")
        if self.prevalidation_workers < 1:
            raise ValueError("prevalidation_workers must be >= 1")


# =============================================================================
# Genesis File
# =============================================================================


KeySource = Union[Dict[str, Any], str]


class GenesisConfig(BaseModel):
    """
    Chain genesis description.

    Verifying keys may be given inline as snarkjs JSON objects, as "0x" hex
    blobs, or as file paths (relative to the genesis file).
    """
    tree_depth: int = 32
    root_history_size: int = 30
    pallet_id: str = "xorionct"
    fee_policy: FeePolicy = FeePolicy.RECIPIENT
    fee_sink: Optional[str] = None
    max_batch_size: int = 100
    verification_cache_size: int = 1024
    prevalidation_workers: int = 4

    verifier: str = "groth16"
    deposit_vk: Optional[KeySource] = None
    transfer_vk: Optional[KeySource] = None

    endowments: List[Tuple[str, int]] = []

    @field_validator("verifier")
    @classmethod
    def known_backend(cls, v):
        if v not in BACKENDS:
            raise ValueError(f"verifier must be one of {sorted(BACKENDS)}")
        return v

    @field_validator("endowments")
    @classmethod
    def valid_endowments(cls, v):
        for account, amount in v:
            if len(hex_to_bytes(account)) != ACCOUNT_ID_SIZE:
                raise ValueError(f"endowment account must be {ACCOUNT_ID_SIZE} bytes: {account}")
            if not 0 <= amount <= MAX_AMOUNT:
                raise ValueError(f"endowment amount out of range: {amount}")
        return v

    @model_validator(mode="after")
    def valid_pool_config(self):
        self.to_pool_config()
        return self

    def to_pool_config(self) -> PoolConfig:
        return PoolConfig(
            tree_depth=self.tree_depth,
            root_history_size=self.root_history_size,
            pallet_id=self.pallet_id.encode("ascii"),
            fee_policy=self.fee_policy,
            fee_sink=hex_to_bytes(self.fee_sink) if self.fee_sink else None,
            max_batch_size=self.max_batch_size,
            verification_cache_size=self.verification_cache_size,
            prevalidation_workers=self.prevalidation_workers,
        )

    def endowment_accounts(self) -> List[Tuple[bytes, int]]:
        return [(hex_to_bytes(account), amount) for account, amount in self.endowments]

    def load_verifying_keys(self, base_dir: Optional[Path] = None) -> Optional[VerifyingKeys]:
        """
        Resolve both verifying keys to blobs.

        Returns:
            VerifyingKeys, or None if the genesis does not define both keys
        """
        if self.deposit_vk is None or self.transfer_vk is None:
            return None
        base = Path(base_dir) if base_dir is not None else Path(".")
        return VerifyingKeys(
            deposit=_key_blob(self.deposit_vk, base),
            transfer=_key_blob(self.transfer_vk, base),
        )


def _key_blob(source: KeySource, base_dir: Path) -> bytes:
    if isinstance(source, dict):
        return json.dumps(source, sort_keys=True, separators=(",", ":")).encode()
    if source.startswith("0x"):
        return hex_to_bytes(source)
    path = Path(source)
    if not path.is_absolute():
        path = base_dir / path
    return path.read_bytes()


# =============================================================================
# Loading
# =============================================================================


_ENV_FIELDS = (
    "tree_depth",
    "root_history_size",
    "pallet_id",
    "fee_policy",
    "fee_sink",
    "max_batch_size",
    "verification_cache_size",
    "prevalidation_workers",
    "verifier",
)


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    env_file: Optional[Union[str, Path]] = None,
) -> GenesisConfig:
    """
    Load a genesis configuration.

    Values come from the JSON file (if given), then are overridden by
    SHIELDED_POOL_* variables from `env_file` and the process environment
    (process environment wins).

    Args:
        config_path: Optional path to a JSON genesis file
        env_file: Optional .env file

    Returns:
        GenesisConfig instance
    """
    data: Dict[str, Any] = {}
    if config_path:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Genesis file root must be an object: {config_path}")

    env: Dict[str, Optional[str]] = {}
    if env_file and Path(env_file).exists():
        env.update(dotenv_values(env_file))
    env.update(os.environ)

    for field in _ENV_FIELDS:
        value = env.get(ENV_PREFIX + field.upper())
        if value is not None and value != "":
            data[field] = value

    return GenesisConfig.model_validate(data)
