"""
Shared fixtures: provers, pools and accounts.

Two provers produce proofs the pool accepts:
- MockProver: hash-bound proofs for the mock verifier backend
- Groth16Prover: real BN254 Groth16 proofs for test circuits whose
  trapdoor (alpha, beta, gamma, delta, IC scalars) is known, so a valid
  proof can be built for any public inputs without a circuit.
"""

import random

import pytest
from py_ecc.optimized_bn128 import G1, G2, curve_order, multiply

from shielded_pool.core.balances import Balances
from shielded_pool.core.config import PoolConfig
from shielded_pool.core.state import ShieldedPool
from shielded_pool.core.storage import StateStore
from shielded_pool.core.verifier import (
    DEPOSIT_LAYOUT,
    TRANSACT_LAYOUT,
    WITHDRAW_LAYOUT,
    Groth16Verifier,
    MockVerifier,
    VerificationGate,
    VerifyingKeys,
    decode_public_inputs,
    encode_public_inputs,
)
from shielded_pool.crypto import hash_account
from shielded_pool.crypto.groth16 import Proof, VerifyingKey, encode_proof, encode_verifying_key


ALICE = b"\x01" * 32
BOB = b"\x02" * 32
RELAYER = b"\x03" * 32
FEE_SINK = b"\x04" * 32

ALICE_ENDOWMENT = 10_000
BOB_ENDOWMENT = 1_000


# =============================================================================
# Provers
# =============================================================================


class _Prover:
    """Builds (proof, public_inputs) pairs for each pool operation."""

    keys: VerifyingKeys

    def backend(self):
        raise NotImplementedError

    def _proof(self, vk: bytes, elements) -> bytes:
        raise NotImplementedError

    def _prove(self, vk, layout, values):
        inputs = encode_public_inputs(layout, values)
        elements = decode_public_inputs(layout, inputs).elements
        return self._proof(vk, elements), inputs

    def deposit(self, amount, commitment, public_amount=None):
        public = amount if public_amount is None else public_amount
        return self._prove(self.keys.deposit, DEPOSIT_LAYOUT, [public, commitment])

    def withdraw(self, root, nullifier, recipient, amount, fee=0, public_amount=None):
        public = amount if public_amount is None else public_amount
        values = [root, nullifier, hash_account(recipient), public, fee]
        return self._prove(self.keys.transfer, WITHDRAW_LAYOUT, values)

    def transact(self, root, nullifier1, nullifier2, commitment1, commitment2):
        values = [root, nullifier1, nullifier2, commitment1, commitment2]
        return self._prove(self.keys.transfer, TRANSACT_LAYOUT, values)


class MockProver(_Prover):
    keys = VerifyingKeys(deposit=b"test-deposit-circuit", transfer=b"test-transfer-circuit")

    def backend(self):
        return MockVerifier()

    def _proof(self, vk, elements):
        return MockVerifier.prove(vk, elements)


class TrapdoorCircuit:
    """
    Groth16 verifying key with a known trapdoor.

    With A = a*G1, B = b*G2, vk_x = x*G1 the verifier checks
    a*b == alpha*beta + x*gamma + c*delta (mod r), so choosing a, b at
    random and solving for c yields a valid proof for any inputs.
    """

    def __init__(self, n_public: int, seed: int):
        self.rng = random.Random(seed)
        r = curve_order
        self.alpha, self.beta, self.gamma, self.delta = (self.rng.randrange(1, r) for _ in range(4))
        self.u = [self.rng.randrange(1, r) for _ in range(n_public + 1)]

        self.vk = VerifyingKey(
            alpha_1=multiply(G1, self.alpha),
            beta_2=multiply(G2, self.beta),
            gamma_2=multiply(G2, self.gamma),
            delta_2=multiply(G2, self.delta),
            ic=tuple(multiply(G1, u) for u in self.u),
        )
        self.vk_blob = encode_verifying_key(self.vk)

    def prove(self, elements) -> bytes:
        r = curve_order
        x = (self.u[0] + sum(e * u for e, u in zip(elements, self.u[1:]))) % r
        a = self.rng.randrange(1, r)
        b = self.rng.randrange(1, r)
        c = (a * b - self.alpha * self.beta - x * self.gamma) * pow(self.delta, -1, r) % r
        return encode_proof(Proof(a=multiply(G1, a), b=multiply(G2, b), c=multiply(G1, c)))


class Groth16Prover(_Prover):
    def __init__(self, deposit_circuit: TrapdoorCircuit, transfer_circuit: TrapdoorCircuit):
        self.circuits = {
            deposit_circuit.vk_blob: deposit_circuit,
            transfer_circuit.vk_blob: transfer_circuit,
        }
        self.keys = VerifyingKeys(deposit=deposit_circuit.vk_blob, transfer=transfer_circuit.vk_blob)

    def backend(self):
        return Groth16Verifier()

    def _proof(self, vk, elements):
        return self.circuits[vk].prove(elements)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def prover():
    return MockProver()


@pytest.fixture(scope="session")
def groth16_prover():
    """Deposit circuit (2 public inputs) and transfer circuit (5 public inputs)."""
    return Groth16Prover(TrapdoorCircuit(2, seed=1), TrapdoorCircuit(5, seed=2))


@pytest.fixture
def make_pool(prover):
    """
    Factory for initialized pools.

    Pools using the built-in balance module start with ALICE and BOB endowed.
    """
    def _make(config=None, store=None, balances=None, prover_=None, initialize=True):
        p = prover_ or prover
        store = store or StateStore.in_memory()
        pool = ShieldedPool(store, VerificationGate(p.backend()), config or PoolConfig(), balances=balances)
        if initialize:
            pool.initialize(p.keys)
        if isinstance(pool.balances, Balances) and pool.balances.store is store:
            with store.transaction():
                if pool.balances.balance_of(ALICE) == 0:
                    pool.balances.set_balance(ALICE, ALICE_ENDOWMENT)
                if pool.balances.balance_of(BOB) == 0:
                    pool.balances.set_balance(BOB, BOB_ENDOWMENT)
        return pool
    return _make


@pytest.fixture
def pool(make_pool):
    return make_pool()
