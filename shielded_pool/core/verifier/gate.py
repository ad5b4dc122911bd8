"""
Proof Verification Gate.

Wraps a verifier backend behind a pure `verify(vk, field_elements, proof)`
contract:
- Never touches ledger state, so it may run speculatively and in parallel
  during admission.
- Returns False (never raises) for malformed proof encodings, off-curve
  points, wrong arity and failed pairing checks.

Loaded keys are cached per blob. Because the result is a pure function of
(key, inputs, proof), results are memoized in a bounded LRU so a proof
checked during pre-validation is not re-verified at application time.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Sequence

from shielded_pool.core.errors import MalformedVerifyingKey
from shielded_pool.core.verifier.backends import VerifierBackend
from shielded_pool.crypto import blake2_256, bytes_to_hex, int_to_bytes32
from shielded_pool.utils.logger import get_logger

logger = get_logger("verifier.gate")


# =============================================================================
# Verifying Keys
# =============================================================================


@dataclass(frozen=True)
class VerifyingKeys:
    """
    The two circuit keys installed at genesis.

    Attributes:
        deposit: Key blob for the deposit circuit
        transfer: Key blob for the transfer circuit (withdraw and transact)
    """
    deposit: bytes
    transfer: bytes

    def fingerprint(self) -> bytes:
        """Hash identifying this exact key pair."""
        return blake2_256(blake2_256(self.deposit) + blake2_256(self.transfer))


# =============================================================================
# Gate
# =============================================================================


class VerificationGate:
    """
    Pure proof verification front-end.

    Attributes:
        backend: Verifier backend doing the actual cryptography
        cache_size: Maximum memoized verification results
    """

    def __init__(self, backend: VerifierBackend, cache_size: int = 1024):
        self.backend = backend
        self.cache_size = cache_size

        self._keys: Dict[bytes, Any] = {}
        self._results: "OrderedDict[bytes, bool]" = OrderedDict()
        self._lock = threading.Lock()

        self.verifications = 0
        self.cache_hits = 0

    def load_key(self, vk: bytes) -> Any:
        """
        Load (and cache) a verifying key.

        Raises:
            MalformedVerifyingKey: If the backend cannot parse the blob
        """
        key_id = blake2_256(vk)
        with self._lock:
            loaded = self._keys.get(key_id)
        if loaded is not None:
            return loaded

        try:
            loaded = self.backend.load_key(vk)
        except Exception as e:
            raise MalformedVerifyingKey(f"{self.backend.name} key {bytes_to_hex(key_id)[:10]}...: {e}") from e

        with self._lock:
            self._keys[key_id] = loaded
        return loaded

    def verify(self, vk: bytes, field_elements: Sequence[int], proof: bytes) -> bool:
        """
        Verify a proof against a key and ordered public inputs.

        Args:
            vk: Verifying key blob
            field_elements: Public inputs as field elements, in circuit order
            proof: Proof bytes

        Returns:
            True if the proof is accepted
        """
        key = self.load_key(vk)
        memo_key = self._memo_key(vk, field_elements, proof)

        with self._lock:
            cached = self._results.get(memo_key)
            if cached is not None:
                self._results.move_to_end(memo_key)
                self.cache_hits += 1
                return cached

        try:
            accepted = bool(self.backend.verify(key, field_elements, proof))
        except Exception as e:
            logger.debug(f"Proof rejected by {self.backend.name}: {e}")
            accepted = False

        with self._lock:
            self.verifications += 1
            self._results[memo_key] = accepted
            while len(self._results) > self.cache_size:
                self._results.popitem(last=False)

        return accepted

    @staticmethod
    def _memo_key(vk: bytes, field_elements: Sequence[int], proof: bytes) -> bytes:
        data = blake2_256(vk) + len(field_elements).to_bytes(4, "big")
        for value in field_elements:
            data += int_to_bytes32(value)
        return blake2_256(data + blake2_256(bytes(proof)))

    def stats(self) -> dict:
        """Get verification statistics."""
        return {
            "backend": self.backend.name,
            "verifications": self.verifications,
            "cache_hits": self.cache_hits,
            "cached_results": len(self._results),
            "loaded_keys": len(self._keys),
        }
