"""
Shielded Pool Ledger - deposit, withdraw and private transfer.

Conceptual Background:
---------------------
Value lives in two places:

1. **Transparent balances** (external balance module): ordinary accounts.
2. **Shielded notes**: hidden values, each represented on-chain only by a
   32-byte commitment leaf in the Commitment Tree.

The pool's sovereign reserve account holds exactly the transparent value
that backs all shielded notes.

Operations:
----------
- deposit:  caller -> reserve, one new commitment
- withdraw: reserve -> recipient, one nullifier spent
- transact: two nullifiers spent, two new commitments, no value moves

Each operation checks cheap preconditions (root freshness, nullifier
freshness, amount consistency) before the proof, then mutates state.

Atomicity:
---------
Every operation runs inside one StateStore transaction. Balance moves are
also journaled, so an injected balance module that keeps its own state is
compensated in reverse order when a later step fails. Events are emitted
only after the transaction commits.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from shielded_pool.core.balances import BalanceModule, Balances
from shielded_pool.core.config import FeePolicy, PoolConfig
from shielded_pool.core.errors import (
    AlreadyInitialized,
    AmountZero,
    ConsistencyFault,
    DuplicateNullifier,
    FeeExceedsAmount,
    GenesisMismatch,
    InsufficientReserve,
    InvalidParameter,
    InvalidProof,
    MismatchedPublicAmount,
    NullifierAlreadySpent,
    RecipientMismatch,
    ShieldedPoolError,
    UnknownMerkleRoot,
    VerifyingKeyNotSet,
)
from shielded_pool.core.state.events import Deposited, EventLog, PoolEvent, Transacted, Withdrawn
from shielded_pool.core.state.merkle import CommitmentTree
from shielded_pool.core.state.nullifiers import NullifierRegistry
from shielded_pool.core.state.roots import RootHistory
from shielded_pool.core.storage.state_store import META, StateStore
from shielded_pool.core.verifier.codec import (
    DEPOSIT_LAYOUT,
    TRANSACT_LAYOUT,
    WITHDRAW_LAYOUT,
    PublicInputs,
    decode_public_inputs,
)
from shielded_pool.core.verifier.gate import VerificationGate, VerifyingKeys
from shielded_pool.crypto import blake2_256, hash_account, short_hex, sovereign_account
from shielded_pool.utils.logger import get_logger
from shielded_pool.utils.validation import validate_account, validate_amount, validate_proof

logger = get_logger("ledger")

# Genesis metadata keys
_DEPOSIT_VK = b"deposit_vk"
_TRANSFER_VK = b"transfer_vk"
_KEYS_FINGERPRINT = b"keys_fingerprint"
_TREE_DEPTH = b"tree_depth"
_ROOT_HISTORY_SIZE = b"root_history_size"
_PALLET_ID = b"pallet_id"


# =============================================================================
# Pool State
# =============================================================================


@dataclass
class PoolSnapshot:
    """Summary of pool state at a point in the operation sequence."""
    root: bytes
    leaf_count: int
    nullifier_count: int
    reserve_balance: int
    window_size: int


class _BalanceJournal:
    """Records balance moves of one operation so they can be compensated."""

    def __init__(self, balances: BalanceModule):
        self.balances = balances
        self._moves: List[Tuple[Callable[[bytes, int], None], bytes, int]] = []

    def debit(self, account: bytes, amount: int):
        self.balances.debit(account, amount)
        self._moves.append((self.balances.credit, account, amount))

    def credit(self, account: bytes, amount: int):
        self.balances.credit(account, amount)
        self._moves.append((self.balances.debit, account, amount))

    def revert(self):
        while self._moves:
            undo, account, amount = self._moves.pop()
            undo(account, amount)


# =============================================================================
# Shielded Pool
# =============================================================================


class ShieldedPool:
    """
    State machine for the shielded value pool.

    Attributes:
        config: Pool configuration (depth, window, fee policy)
        store: Transactional state store
        gate: Proof verification gate
        balances: Transparent balance module
        tree: Commitment tree
        roots: Root history window
        nullifiers: Spent set
        events: Emitted events
    """

    def __init__(
        self,
        store: StateStore,
        gate: VerificationGate,
        config: Optional[PoolConfig] = None,
        balances: Optional[BalanceModule] = None,
        events: Optional[EventLog] = None,
    ):
        self.config = config or PoolConfig()
        self.store = store
        self.gate = gate
        self.reserve_account = sovereign_account(self.config.pallet_id)

        if balances is None:
            balances = Balances(store, self.reserve_account)
        elif balances.reserve_account != self.reserve_account:
            raise ValueError("balance module reserve account differs from the pool's sovereign account")
        self.balances = balances

        self.tree = CommitmentTree(store, self.config.tree_depth)
        self.roots = RootHistory(store, self.config.root_history_size)
        self.nullifiers = NullifierRegistry(store)
        self.events = events or EventLog()

        self._keys: Optional[VerifyingKeys] = None
        self._load_genesis()

    # =========================================================================
    # Genesis
    # =========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._keys is not None

    @property
    def verifying_keys(self) -> Optional[VerifyingKeys]:
        return self._keys

    def initialize(self, keys: VerifyingKeys):
        """
        Install the verifying keys and record the empty-tree root.

        Raises:
            AlreadyInitialized: If keys were installed before
            MalformedVerifyingKey: If the backend cannot parse a key
        """
        if self.is_initialized:
            raise AlreadyInitialized("Verifying keys are already set")

        self.gate.load_key(keys.deposit)
        self.gate.load_key(keys.transfer)

        with self.store.transaction():
            self.store.put(META, _DEPOSIT_VK, keys.deposit)
            self.store.put(META, _TRANSFER_VK, keys.transfer)
            self.store.put(META, _KEYS_FINGERPRINT, keys.fingerprint())
            self.store.put_int(META, _TREE_DEPTH, self.config.tree_depth, width=1)
            self.store.put_int(META, _ROOT_HISTORY_SIZE, self.config.root_history_size, width=4)
            self.store.put(META, _PALLET_ID, self.config.pallet_id)
            self.roots.record(self.tree.current_root())

        self._keys = keys
        logger.info(
            f"Pool initialized: depth={self.config.tree_depth}, window={self.config.root_history_size}, "
            f"keys={short_hex(keys.fingerprint())}, backend={self.gate.backend.name}"
        )

    def _load_genesis(self):
        """Restore keys from a persisted store and check it matches our config."""
        deposit_vk = self.store.get(META, _DEPOSIT_VK)
        if deposit_vk is None:
            return

        expected = {
            _TREE_DEPTH: self.config.tree_depth,
            _ROOT_HISTORY_SIZE: self.config.root_history_size,
        }
        for key, value in expected.items():
            stored = self.store.get_int(META, key)
            if stored != value:
                raise GenesisMismatch(f"{key.decode()} is {stored} in store, {value} in config")
        if self.store.get(META, _PALLET_ID) != self.config.pallet_id:
            raise GenesisMismatch("pallet_id differs from the persisted genesis")

        keys = VerifyingKeys(deposit=deposit_vk, transfer=self.store.get(META, _TRANSFER_VK))
        if keys.fingerprint() != self.store.get(META, _KEYS_FINGERPRINT):
            raise GenesisMismatch("Persisted verifying keys do not match their fingerprint")

        self.gate.load_key(keys.deposit)
        self.gate.load_key(keys.transfer)
        self._keys = keys
        logger.info(f"Pool restored: {self.tree.next_index} leaves, root={short_hex(self.current_root)}")

    def _require_keys(self) -> VerifyingKeys:
        if self._keys is None:
            raise VerifyingKeyNotSet("Pool has not been initialized with verifying keys")
        return self._keys

    # =========================================================================
    # State Access
    # =========================================================================

    @property
    def current_root(self) -> bytes:
        return self.tree.current_root()

    def reserve_balance(self) -> int:
        return self.balances.reserve_balance()

    def is_known_root(self, root: bytes) -> bool:
        return self.roots.is_valid(root)

    def is_spent(self, nullifier: bytes) -> bool:
        return self.nullifiers.is_spent(nullifier)

    def snapshot(self) -> PoolSnapshot:
        return PoolSnapshot(
            root=self.current_root,
            leaf_count=self.tree.next_index,
            nullifier_count=len(self.nullifiers),
            reserve_balance=self.reserve_balance(),
            window_size=len(self.roots),
        )

    def state_digest(self) -> bytes:
        """
        Hash of the consensus-relevant state.

        H(root || leaf_count || nullifier_count || sorted nullifiers || reserve)
        Two replicas that applied the same sequence produce the same digest.
        """
        nullifiers = self.nullifiers.all()
        data = self.current_root
        data += self.tree.next_index.to_bytes(8, "big")
        data += len(nullifiers).to_bytes(8, "big")
        data += b"".join(nullifiers)
        data += self.reserve_balance().to_bytes(16, "big")
        return blake2_256(data)

    # =========================================================================
    # Operations
    # =========================================================================

    def deposit(
        self,
        caller: bytes,
        proof: bytes,
        public_inputs: Sequence[bytes],
        amount: int,
    ) -> Deposited:
        """
        Move `amount` from the caller into the pool as a new note.

        Args:
            caller: Depositing account
            proof: Proof for the deposit circuit
            public_inputs: [amount:16, commitment:32]
            amount: Transparent amount to lock

        Returns:
            Deposited event
        """
        return self._execute("deposit", self._deposit, caller, proof, public_inputs, amount)

    def withdraw(
        self,
        origin: bytes,
        proof: bytes,
        public_inputs: Sequence[bytes],
        recipient: bytes,
        amount: int,
    ) -> Withdrawn:
        """
        Spend a note and pay `amount` out of the reserve.

        Args:
            origin: Submitting account (receives the fee under RELAYER policy)
            proof: Proof for the transfer circuit
            public_inputs: [root, nullifier, recipient_hash, amount:16, fee:16]
            recipient: Account receiving the funds
            amount: Amount leaving the pool

        Returns:
            Withdrawn event
        """
        return self._execute("withdraw", self._withdraw, origin, proof, public_inputs, recipient, amount)

    def transact(
        self,
        origin: bytes,
        proof: bytes,
        public_inputs: Sequence[bytes],
    ) -> Transacted:
        """
        Private 2-in/2-out transfer inside the pool.

        Args:
            origin: Submitting account
            proof: Proof for the transfer circuit
            public_inputs: [root, nullifier1, nullifier2, commitment1, commitment2]

        Returns:
            Transacted event
        """
        return self._execute("transact", self._transact, origin, proof, public_inputs)

    def _execute(self, operation: str, handler: Callable[..., PoolEvent], *args) -> PoolEvent:
        """Run one operation atomically and emit its event on success."""
        journal = _BalanceJournal(self.balances)
        try:
            with self.store.transaction():
                try:
                    event = handler(journal, *args)
                except Exception:
                    journal.revert()
                    raise
        except ConsistencyFault as e:
            logger.critical(f"{operation} hit consistency fault {e.code}: {e}")
            raise
        except ShieldedPoolError as e:
            logger.warning(f"{operation} rejected: {e.code}: {e}")
            raise

        self.events.emit(event)
        return event

    # =========================================================================
    # Deposit
    # =========================================================================

    def _deposit(
        self,
        journal: _BalanceJournal,
        caller: bytes,
        proof: bytes,
        public_inputs: Sequence[bytes],
        amount: int,
    ) -> Deposited:
        keys = self._require_keys()
        self._check_params(proof, amount, ("caller", caller))

        if amount == 0:
            raise AmountZero("Deposit amount must be greater than zero")

        inputs = decode_public_inputs(DEPOSIT_LAYOUT, public_inputs)
        if inputs.value("amount") != amount:
            raise MismatchedPublicAmount(
                f"public amount {inputs.value('amount')} != deposit amount {amount}"
            )

        journal.debit(caller, amount)
        journal.credit(self.reserve_account, amount)

        self._verify(keys.deposit, inputs, proof)

        commitment = inputs["commitment"]
        leaf_index = self.tree.append(commitment)
        self.roots.record(self.tree.current_root())

        logger.info(
            f"Deposit leaf={leaf_index} amount={amount} commitment={short_hex(commitment)} "
            f"root={short_hex(self.tree.current_root())}"
        )
        return Deposited(leaf_index=leaf_index, amount=amount, commitment=commitment)

    # =========================================================================
    # Withdraw
    # =========================================================================

    def _withdraw(
        self,
        journal: _BalanceJournal,
        origin: bytes,
        proof: bytes,
        public_inputs: Sequence[bytes],
        recipient: bytes,
        amount: int,
    ) -> Withdrawn:
        keys = self._require_keys()
        self._check_params(proof, amount, ("origin", origin), ("recipient", recipient))

        inputs = decode_public_inputs(WITHDRAW_LAYOUT, public_inputs)
        root = inputs["root"]
        nullifier = inputs["nullifier"]

        if not self.roots.is_valid(root):
            raise UnknownMerkleRoot(f"Root {short_hex(root)} is not in the last {self.roots.capacity} roots")
        if self.nullifiers.is_spent(nullifier):
            raise NullifierAlreadySpent(f"Nullifier {short_hex(nullifier)} already spent")
        if hash_account(recipient) != inputs["recipient_hash"]:
            raise RecipientMismatch(f"Proof is not bound to recipient {short_hex(recipient)}")

        public_amount = inputs.value("amount")
        fee = inputs.value("fee")
        if public_amount != amount:
            raise MismatchedPublicAmount(f"public amount {public_amount} != withdraw amount {amount}")
        if fee > amount:
            raise FeeExceedsAmount(f"fee {fee} exceeds amount {amount}")

        self._verify(keys.transfer, inputs, proof)

        self.nullifiers.mark_spent(nullifier)

        reserve = self.balances.reserve_balance()
        if reserve < amount:
            raise InsufficientReserve(f"Reserve holds {reserve}, withdrawal needs {amount}")

        journal.debit(self.reserve_account, amount)
        self._settle(journal, origin, recipient, amount, fee)

        logger.info(
            f"Withdraw amount={amount} fee={fee} recipient={short_hex(recipient)} "
            f"nullifier={short_hex(nullifier)}"
        )
        return Withdrawn(recipient=recipient, amount=amount, nullifier=nullifier)

    def _settle(self, journal: _BalanceJournal, origin: bytes, recipient: bytes, amount: int, fee: int):
        """Pay out a withdrawal according to the fee policy."""
        policy = self.config.fee_policy
        if policy == FeePolicy.RECIPIENT or fee == 0:
            journal.credit(recipient, amount)
            return

        fee_account = self.config.fee_sink if policy == FeePolicy.SINK else origin
        journal.credit(recipient, amount - fee)
        journal.credit(fee_account, fee)

    # =========================================================================
    # Transact
    # =========================================================================

    def _transact(
        self,
        journal: _BalanceJournal,
        origin: bytes,
        proof: bytes,
        public_inputs: Sequence[bytes],
    ) -> Transacted:
        keys = self._require_keys()
        self._check_params(proof, 0, ("origin", origin))

        inputs = decode_public_inputs(TRANSACT_LAYOUT, public_inputs)
        root = inputs["root"]
        nullifier1 = inputs["nullifier1"]
        nullifier2 = inputs["nullifier2"]

        if not self.roots.is_valid(root):
            raise UnknownMerkleRoot(f"Root {short_hex(root)} is not in the last {self.roots.capacity} roots")
        if self.nullifiers.is_spent(nullifier1):
            raise NullifierAlreadySpent(f"Nullifier {short_hex(nullifier1)} already spent")
        if nullifier1 == nullifier2:
            raise DuplicateNullifier(f"Both inputs spend nullifier {short_hex(nullifier1)}")
        if self.nullifiers.is_spent(nullifier2):
            raise NullifierAlreadySpent(f"Nullifier {short_hex(nullifier2)} already spent")

        self._verify(keys.transfer, inputs, proof)

        self.nullifiers.mark_spent(nullifier1)
        self.nullifiers.mark_spent(nullifier2)

        commitment1 = inputs["commitment1"]
        commitment2 = inputs["commitment2"]
        first = self.tree.append(commitment1)
        self.tree.append(commitment2)
        self.roots.record(self.tree.current_root())

        logger.info(
            f"Transact leaves={first},{first + 1} nullifiers={short_hex(nullifier1)},{short_hex(nullifier2)} "
            f"root={short_hex(self.tree.current_root())}"
        )
        return Transacted(
            nullifier1=nullifier1,
            nullifier2=nullifier2,
            commitment1=commitment1,
            commitment2=commitment2,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _check_params(self, proof: bytes, amount: int, *accounts: Tuple[str, bytes]):
        for name, account in accounts:
            valid, err = validate_account(account, name)
            if not valid:
                raise InvalidParameter(err)
        valid, err = validate_amount(amount)
        if not valid:
            raise InvalidParameter(err)
        valid, err = validate_proof(proof)
        if not valid:
            raise InvalidParameter(err)

    def _verify(self, vk: bytes, inputs: PublicInputs, proof: bytes):
        if not self.gate.verify(vk, inputs.elements, proof):
            raise InvalidProof(f"{inputs.layout.operation} proof rejected")
