"""
BatchProcessor - ordered application of pool calls.

A batch (a block's worth of calls) is applied strictly in order; each call
either commits completely or is rejected with no effect, and a rejection does
not disturb the calls before or after it. Every replica applying the same
batch to the same state reaches the same state.

Proof verification is the only work that may run ahead of ordering:
`prevalidate` checks proofs in a thread pool without reading or writing
pool state. The gate memoizes results, so the sequential pass does not pay
for the same pairing check twice, while still re-checking roots and
nullifiers against the state left by earlier calls.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from shielded_pool.core.errors import (
    BatchTooLarge,
    ConsistencyFault,
    InvalidParameter,
    ShieldedPoolError,
)
from shielded_pool.core.state.events import PoolEvent, event_to_dict
from shielded_pool.core.state.ledger import ShieldedPool
from shielded_pool.core.verifier.codec import (
    DEPOSIT_LAYOUT,
    TRANSACT_LAYOUT,
    WITHDRAW_LAYOUT,
    decode_public_inputs,
)
from shielded_pool.crypto import bytes_to_hex, hex_to_bytes, short_hex
from shielded_pool.utils.logger import get_logger
from shielded_pool.utils.validation import validate_call_data

logger = get_logger("batch")


# =============================================================================
# Calls
# =============================================================================


def _hex_list(values: Sequence[bytes]) -> List[str]:
    return [bytes_to_hex(v) for v in values]


@dataclass
class DepositCall:
    caller: bytes
    proof: bytes
    public_inputs: List[bytes]
    amount: int

    op = "deposit"
    layout = DEPOSIT_LAYOUT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op,
            "caller": bytes_to_hex(self.caller),
            "proof": bytes_to_hex(self.proof),
            "public_inputs": _hex_list(self.public_inputs),
            "amount": self.amount,
        }


@dataclass
class WithdrawCall:
    origin: bytes
    proof: bytes
    public_inputs: List[bytes]
    recipient: bytes
    amount: int

    op = "withdraw"
    layout = WITHDRAW_LAYOUT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op,
            "origin": bytes_to_hex(self.origin),
            "proof": bytes_to_hex(self.proof),
            "public_inputs": _hex_list(self.public_inputs),
            "recipient": bytes_to_hex(self.recipient),
            "amount": self.amount,
        }


@dataclass
class TransactCall:
    origin: bytes
    proof: bytes
    public_inputs: List[bytes]

    op = "transact"
    layout = TRANSACT_LAYOUT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "op": self.op,
            "origin": bytes_to_hex(self.origin),
            "proof": bytes_to_hex(self.proof),
            "public_inputs": _hex_list(self.public_inputs),
        }


PoolCall = Union[DepositCall, WithdrawCall, TransactCall]


def call_from_dict(data: Dict[str, Any]) -> PoolCall:
    """
    Parse a serialized call.

    Raises:
        InvalidParameter: If the dict is not a well-formed call
    """
    valid, err = validate_call_data(data)
    if not valid:
        raise InvalidParameter(err)

    proof = hex_to_bytes(data["proof"])
    inputs = [hex_to_bytes(v) for v in data["public_inputs"]]

    if data["op"] == "deposit":
        return DepositCall(
            caller=hex_to_bytes(data["caller"]),
            proof=proof,
            public_inputs=inputs,
            amount=data["amount"],
        )
    if data["op"] == "withdraw":
        return WithdrawCall(
            origin=hex_to_bytes(data["origin"]),
            proof=proof,
            public_inputs=inputs,
            recipient=hex_to_bytes(data["recipient"]),
            amount=data["amount"],
        )
    return TransactCall(
        origin=hex_to_bytes(data["origin"]),
        proof=proof,
        public_inputs=inputs,
    )


# =============================================================================
# Results
# =============================================================================


@dataclass
class CallOutcome:
    """Result of one call within a batch."""
    index: int
    op: str
    event: Optional[PoolEvent] = None
    error_code: Optional[str] = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.event is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"index": self.index, "op": self.op, "success": self.success}
        if self.event is not None:
            data["event"] = event_to_dict(self.event)
        else:
            data["error"] = self.error_code
            data["message"] = self.message
        return data


@dataclass
class BatchResult:
    """Outcome of a whole batch."""
    root_before: bytes
    root_after: bytes
    outcomes: List[CallOutcome] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def rejected(self) -> int:
        return len(self.outcomes) - self.applied

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root_before": bytes_to_hex(self.root_before),
            "root_after": bytes_to_hex(self.root_after),
            "applied": self.applied,
            "rejected": self.rejected,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


# =============================================================================
# Batch Processor
# =============================================================================


class BatchProcessor:
    """
    Applies ordered batches of calls to a ShieldedPool.

    Attributes:
        pool: Target pool
        max_batch_size: Maximum calls per batch
        workers: Threads used for proof pre-validation
    """

    def __init__(self, pool: ShieldedPool):
        self.pool = pool
        self.max_batch_size = pool.config.max_batch_size
        self.workers = pool.config.prevalidation_workers

        self.batches_applied = 0
        self.calls_applied = 0
        self.calls_rejected = 0

    def prevalidate(self, calls: Sequence[PoolCall]) -> List[bool]:
        """
        Check every call's proof in parallel, without touching pool state.

        A True result only means the proof matches its public inputs; root
        and nullifier freshness are decided during `apply_batch`.
        """
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            return list(executor.map(self._check_proof, calls))

    def _check_proof(self, call: PoolCall) -> bool:
        keys = self.pool.verifying_keys
        if keys is None:
            return False
        vk = keys.deposit if call.op == "deposit" else keys.transfer
        try:
            inputs = decode_public_inputs(call.layout, call.public_inputs)
            return self.pool.gate.verify(vk, inputs.elements, call.proof)
        except ShieldedPoolError as e:
            logger.debug(f"Pre-validation rejected {call.op}: {e.code}")
            return False

    def apply(self, call: PoolCall) -> PoolEvent:
        """Apply a single call (raises on rejection)."""
        if call.op == "deposit":
            return self.pool.deposit(call.caller, call.proof, call.public_inputs, call.amount)
        if call.op == "withdraw":
            return self.pool.withdraw(
                call.origin, call.proof, call.public_inputs, call.recipient, call.amount
            )
        return self.pool.transact(call.origin, call.proof, call.public_inputs)

    def apply_batch(self, calls: Sequence[PoolCall], prevalidate: bool = False) -> BatchResult:
        """
        Apply calls strictly in order, each atomically.

        Args:
            calls: Ordered calls
            prevalidate: Warm the verification cache in parallel first

        Returns:
            BatchResult with one outcome per call

        Raises:
            BatchTooLarge: If the batch exceeds max_batch_size
            ConsistencyFault: Halts the batch; earlier calls stay committed
        """
        if len(calls) > self.max_batch_size:
            raise BatchTooLarge(f"Batch of {len(calls)} exceeds limit {self.max_batch_size}")

        if prevalidate:
            self.prevalidate(calls)

        result = BatchResult(root_before=self.pool.current_root, root_after=self.pool.current_root)

        for i, call in enumerate(calls):
            try:
                event = self.apply(call)
            except ConsistencyFault:
                logger.critical(f"Batch halted at call {i} ({call.op})")
                result.root_after = self.pool.current_root
                raise
            except ShieldedPoolError as e:
                result.outcomes.append(CallOutcome(index=i, op=call.op, error_code=e.code, message=str(e)))
                self.calls_rejected += 1
                continue

            result.outcomes.append(CallOutcome(index=i, op=call.op, event=event))
            self.calls_applied += 1

        result.root_after = self.pool.current_root
        self.batches_applied += 1

        logger.info(
            f"Applied batch of {len(calls)}: {result.applied} ok, {result.rejected} rejected, "
            f"root={short_hex(result.root_after)}"
        )
        return result

    def get_stats(self) -> Dict[str, Any]:
        return {
            "batches_applied": self.batches_applied,
            "calls_applied": self.calls_applied,
            "calls_rejected": self.calls_rejected,
            "max_batch_size": self.max_batch_size,
            "workers": self.workers,
        }
