"""
Pool driven end-to-end through the real Groth16 backend.

Proofs come from the trapdoor test circuits (see conftest); the pool and
gate treat them exactly like snarkjs output.
"""

import json

import pytest

from shielded_pool.core.batch import BatchProcessor, DepositCall, WithdrawCall
from shielded_pool.core.errors import InvalidProof, MalformedVerifyingKey
from shielded_pool.core.verifier import VerifyingKeys
from shielded_pool.crypto import hash_to_field

ALICE = b"\x01" * 32
BOB = b"\x02" * 32
RELAYER = b"\x03" * 32


@pytest.fixture
def g16_pool(make_pool, groth16_prover):
    return make_pool(prover_=groth16_prover)


def test_deposit_withdraw_transact(g16_pool, groth16_prover):
    c1 = hash_to_field(b"g16-note-1")
    proof, inputs = groth16_prover.deposit(700, c1)
    g16_pool.deposit(ALICE, proof, inputs, 700)

    root = g16_pool.current_root
    proof, inputs = groth16_prover.withdraw(root, hash_to_field(b"g16-nf-1"), BOB, 200)
    g16_pool.withdraw(RELAYER, proof, inputs, BOB, 200)

    proof, inputs = groth16_prover.transact(
        root,
        hash_to_field(b"g16-nf-2"),
        hash_to_field(b"g16-nf-3"),
        hash_to_field(b"g16-note-2"),
        hash_to_field(b"g16-note-3"),
    )
    g16_pool.transact(RELAYER, proof, inputs)

    assert g16_pool.reserve_balance() == 500
    assert g16_pool.tree.next_index == 3
    assert len(g16_pool.nullifiers) == 3


def test_deposit_proof_rejected_for_transfer_circuit(g16_pool, groth16_prover):
    """A proof for one circuit does not satisfy the other key."""
    proof, inputs = groth16_prover.deposit(100, hash_to_field(b"g16-x"))
    foreign = groth16_prover.circuits[groth16_prover.keys.transfer].prove([1, 2, 3, 4, 5])
    with pytest.raises(InvalidProof):
        g16_pool.deposit(ALICE, foreign, inputs, 100)
    assert g16_pool.reserve_balance() == 0


def test_malformed_proof_is_invalid_not_crash(g16_pool, groth16_prover):
    _, inputs = groth16_prover.deposit(100, hash_to_field(b"g16-y"))
    for proof in (b"", b"{}", json.dumps({"pi_a": ["1", "2"]}).encode()):
        with pytest.raises(InvalidProof):
            g16_pool.deposit(ALICE, proof, inputs, 100)


def test_malformed_genesis_key(make_pool, groth16_prover):
    pool = make_pool(prover_=groth16_prover, initialize=False)
    with pytest.raises(MalformedVerifyingKey):
        pool.initialize(VerifyingKeys(deposit=b"not json", transfer=groth16_prover.keys.transfer))


def test_prevalidated_batch(g16_pool, groth16_prover):
    calls = []
    for i in range(3):
        proof, inputs = groth16_prover.deposit(100, hash_to_field(b"g16-batch-%d" % i))
        calls.append(DepositCall(caller=ALICE, proof=proof, public_inputs=inputs, amount=100))
    result = BatchProcessor(g16_pool).apply_batch(calls, prevalidate=True)
    assert result.applied == 3
    assert g16_pool.gate.cache_hits == 3
    root = g16_pool.current_root

    proof, inputs = groth16_prover.withdraw(root, hash_to_field(b"g16-batch-nf"), BOB, 50)
    call = WithdrawCall(origin=RELAYER, proof=proof, public_inputs=inputs, recipient=BOB, amount=50)
    result = BatchProcessor(g16_pool).apply_batch([call, call], prevalidate=True)
    assert [o.error_code for o in result.outcomes] == [None, "NullifierAlreadySpent"]
