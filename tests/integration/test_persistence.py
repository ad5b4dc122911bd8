import pytest

from shielded_pool.core.config import PoolConfig
from shielded_pool.core.errors import GenesisMismatch, InvalidProof, NullifierAlreadySpent
from shielded_pool.core.state import ShieldedPool
from shielded_pool.core.storage import StateStore
from shielded_pool.core.verifier import MockVerifier, VerificationGate, VerifyingKeys
from shielded_pool.crypto import hash_to_field

ALICE = b"\x01" * 32
BOB = b"\x02" * 32
RELAYER = b"\x03" * 32


@pytest.fixture
def temp_node_dir(tmp_path):
    """Create a temporary directory for node data."""
    data_dir = tmp_path / "node_data"
    data_dir.mkdir()
    return data_dir


def open_pool(data_dir, config=None):
    return ShieldedPool(StateStore.open(data_dir), VerificationGate(MockVerifier()), config or PoolConfig())


def test_pool_state_survives_restart(temp_node_dir, make_pool, prover):
    """Tree, roots, nullifiers and balances are restored from SQLite."""
    # 1. Start node A
    store_a = StateStore.open(temp_node_dir)
    pool_a = make_pool(store=store_a)

    commitments = [hash_to_field(b"persist-%d" % i) for i in range(3)]
    for c in commitments:
        proof, inputs = prover.deposit(100, c)
        pool_a.deposit(ALICE, proof, inputs, 100)

    root = pool_a.current_root
    proof, inputs = prover.withdraw(root, hash_to_field(b"persist-nf"), BOB, 50)
    pool_a.withdraw(RELAYER, proof, inputs, BOB, 50)
    digest = pool_a.state_digest()

    # 2. Stop node A
    store_a.close()
    del pool_a

    # 3. Start node B on the same database
    pool_b = open_pool(temp_node_dir)
    assert pool_b.is_initialized
    assert pool_b.verifying_keys == prover.keys
    assert pool_b.current_root == root
    assert pool_b.tree.next_index == 3
    assert pool_b.reserve_balance() == 250
    assert pool_b.balances.balance_of(BOB) == 1050
    assert pool_b.state_digest() == digest

    # 4. Replay is still rejected, and the tree keeps growing from the frontier
    with pytest.raises(NullifierAlreadySpent):
        pool_b.withdraw(RELAYER, proof, inputs, BOB, 50)

    proof, inputs = prover.deposit(100, hash_to_field(b"persist-after"))
    event = pool_b.deposit(ALICE, proof, inputs, 100)
    assert event.leaf_index == 3
    assert pool_b.is_known_root(root)


def test_rejected_operation_not_persisted(temp_node_dir, make_pool, prover):
    """A rolled-back operation leaves nothing on disk."""
    store = StateStore.open(temp_node_dir)
    pool = make_pool(store=store)

    proof, _ = prover.deposit(100, hash_to_field(b"a"))
    _, inputs = prover.deposit(100, hash_to_field(b"b"))
    with pytest.raises(InvalidProof):
        pool.deposit(ALICE, proof, inputs, 100)
    store.close()

    reopened = open_pool(temp_node_dir)
    assert reopened.tree.next_index == 0
    assert reopened.reserve_balance() == 0
    assert reopened.balances.balance_of(ALICE) == 10_000


def test_genesis_mismatch_on_restart(temp_node_dir, make_pool):
    """Reopening with different tree parameters is refused."""
    store = StateStore.open(temp_node_dir)
    make_pool(store=store)
    store.close()

    with pytest.raises(GenesisMismatch):
        open_pool(temp_node_dir, PoolConfig(tree_depth=20))

    assert open_pool(temp_node_dir).is_initialized


def test_uninitialized_store_reopens_empty(temp_node_dir):
    pool = open_pool(temp_node_dir)
    assert not pool.is_initialized

    pool.initialize(VerifyingKeys(deposit=b"dep", transfer=b"tr"))
    pool.store.close()

    assert open_pool(temp_node_dir).verifying_keys == VerifyingKeys(deposit=b"dep", transfer=b"tr")
