"""
Shielded Pool

On-chain verifier and ledger for a shielded-value pool:
- Append-only commitment tree with a bounded root history
- Nullifier registry for replay protection
- zk-SNARK (Groth16 / BN254) proof verification gate
- Atomic deposit / withdraw / transact state transitions
"""

__version__ = "0.1.0"
