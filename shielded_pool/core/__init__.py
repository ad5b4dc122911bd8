"""Core state machine: storage, verification, ledger and batches"""
