"""
Unit tests for parameter validators.
"""

from shielded_pool.utils.validation import (
    MAX_AMOUNT,
    MAX_PROOF_SIZE,
    validate_account,
    validate_amount,
    validate_call_data,
    validate_hex_string,
    validate_proof,
)


class TestScalarValidators:
    def test_account(self):
        assert validate_account(b"\x01" * 32) == (True, "")
        valid, err = validate_account(b"\x01" * 31, "caller")
        assert not valid
        assert "caller" in err
        assert not validate_account("01" * 32)[0]

    def test_amount(self):
        assert validate_amount(0)[0]
        assert validate_amount(MAX_AMOUNT)[0]
        assert not validate_amount(MAX_AMOUNT + 1)[0]
        assert not validate_amount(-1)[0]
        assert not validate_amount(True)[0]
        assert not validate_amount(1.5)[0]

    def test_proof_size(self):
        assert validate_proof(b"")[0]
        assert validate_proof(b"\x00" * MAX_PROOF_SIZE)[0]
        assert not validate_proof(b"\x00" * (MAX_PROOF_SIZE + 1))[0]

    def test_hex_string(self):
        assert validate_hex_string("0xabcd", "x", expected_bytes=2)[0]
        assert validate_hex_string("abcd", "x")[0]
        assert not validate_hex_string("0xabc", "x")[0]
        assert not validate_hex_string("0xzz", "x")[0]
        assert not validate_hex_string("0xabcd", "x", expected_bytes=3)[0]


class TestCallData:
    """Tests for serialized call validation."""

    def deposit(self, **overrides):
        data = {
            "op": "deposit",
            "caller": "0x" + "01" * 32,
            "proof": "0x00",
            "public_inputs": ["0x" + "00" * 16, "0x" + "11" * 32],
            "amount": 10,
        }
        data.update(overrides)
        return data

    def test_valid(self):
        assert validate_call_data(self.deposit()) == (True, "")

    def test_not_a_dict(self):
        assert not validate_call_data([])[0]

    def test_unknown_op(self):
        valid, err = validate_call_data(self.deposit(op="burn"))
        assert not valid
        assert "burn" in err

    def test_bad_inputs(self):
        assert not validate_call_data(self.deposit(public_inputs="0x00"))[0]
        assert not validate_call_data(self.deposit(public_inputs=["0x0"]))[0]
        assert not validate_call_data(self.deposit(public_inputs=["0x00"] * 17))[0]

    def test_bad_amount(self):
        assert not validate_call_data(self.deposit(amount=-5))[0]

    def test_transact_needs_no_amount(self):
        data = {
            "op": "transact",
            "origin": "0x" + "03" * 32,
            "proof": "0x",
            "public_inputs": [],
        }
        assert validate_call_data(data)[0]
