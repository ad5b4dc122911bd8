"""
Public Input Codec.

Circuits consume an ordered list of field elements; callers submit an
ordered list of fixed-width big-endian byte strings. The layout of each
operation (field order and widths) is part of the circuit interface:

    deposit:  [amount:16, commitment:32]
    withdraw: [root:32, nullifier:32, recipient_hash:32, amount:16, fee:16]
    transact: [root:32, nullifier1:32, nullifier2:32, commitment1:32, commitment2:32]

Nullifiers and commitments must be canonical field elements (below the
BN254 scalar field order): the pool stores them by byte value, so an
aliased encoding such as N + r would verify as N yet be recorded apart from
it. Roots and the recipient hash are chain-computed BLAKE2b digests that the
ledger compares byte for byte; they are reduced modulo the field for the
verifier only.
"""

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple, Union

from shielded_pool.core.errors import MalformedPublicInputs
from shielded_pool.crypto import FIELD_PRIME, bytes_to_field, is_canonical


# =============================================================================
# Layouts
# =============================================================================


@dataclass(frozen=True)
class FieldSpec:
    """One public input: its name and declared byte width."""
    name: str
    width: int
    canonical: bool = True


@dataclass(frozen=True)
class InputLayout:
    """Ordered public-input layout for one circuit operation."""
    operation: str
    fields: Tuple[FieldSpec, ...]

    @property
    def arity(self) -> int:
        return len(self.fields)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    def index(self, name: str) -> int:
        for i, f in enumerate(self.fields):
            if f.name == name:
                return i
        raise KeyError(f"{self.operation} has no public input '{name}'")


DEPOSIT_LAYOUT = InputLayout(
    operation="deposit",
    fields=(
        FieldSpec("amount", 16),
        FieldSpec("commitment", 32),
    ),
)

WITHDRAW_LAYOUT = InputLayout(
    operation="withdraw",
    fields=(
        FieldSpec("root", 32, canonical=False),
        FieldSpec("nullifier", 32),
        FieldSpec("recipient_hash", 32, canonical=False),
        FieldSpec("amount", 16),
        FieldSpec("fee", 16),
    ),
)

TRANSACT_LAYOUT = InputLayout(
    operation="transact",
    fields=(
        FieldSpec("root", 32, canonical=False),
        FieldSpec("nullifier1", 32),
        FieldSpec("nullifier2", 32),
        FieldSpec("commitment1", 32),
        FieldSpec("commitment2", 32),
    ),
)

LAYOUTS: Dict[str, InputLayout] = {
    layout.operation: layout
    for layout in (DEPOSIT_LAYOUT, WITHDRAW_LAYOUT, TRANSACT_LAYOUT)
}


# =============================================================================
# Decoded Inputs
# =============================================================================


@dataclass(frozen=True)
class PublicInputs:
    """
    Public inputs decoded against a layout.

    Attributes:
        layout: Layout used for decoding
        raw: Original byte strings, in layout order
        elements: Field elements, in layout order (what the verifier sees)
    """
    layout: InputLayout
    raw: Tuple[bytes, ...]
    elements: Tuple[int, ...]

    def __getitem__(self, name: str) -> bytes:
        """Raw bytes of a named field."""
        return self.raw[self.layout.index(name)]

    def value(self, name: str) -> int:
        """Unreduced big-endian integer value of a named field."""
        return int.from_bytes(self[name], byteorder="big")


# =============================================================================
# Codec
# =============================================================================


def decode_public_inputs(layout: InputLayout, raw: Sequence[bytes]) -> PublicInputs:
    """
    Decode caller-supplied byte strings into circuit field elements.

    Args:
        layout: Operation layout
        raw: Ordered byte strings

    Returns:
        PublicInputs

    Raises:
        MalformedPublicInputs: On count or width mismatch, or a nullifier or
            commitment at or above the field order
    """
    if len(raw) != layout.arity:
        raise MalformedPublicInputs(
            f"{layout.operation} expects {layout.arity} public inputs, got {len(raw)}"
        )

    values = []
    for spec, item in zip(layout.fields, raw):
        if not isinstance(item, (bytes, bytearray)):
            raise MalformedPublicInputs(f"{spec.name} must be bytes, got {type(item).__name__}")
        if len(item) != spec.width:
            raise MalformedPublicInputs(
                f"{spec.name} must be {spec.width} bytes, got {len(item)}"
            )
        if spec.canonical and not is_canonical(item):
            raise MalformedPublicInputs(f"{spec.name} is not a canonical field element")
        values.append(bytes(item))

    return PublicInputs(
        layout=layout,
        raw=tuple(values),
        elements=tuple(bytes_to_field(v) for v in values),
    )


def encode_public_inputs(
    layout: InputLayout,
    values: Sequence[Union[int, bytes]],
) -> List[bytes]:
    """
    Encode values into the byte strings a caller submits.

    Integers are written big-endian at the field's declared width; bytes are
    passed through after a width check.

    Raises:
        MalformedPublicInputs: On count mismatch or a value that does not fit
    """
    if len(values) != layout.arity:
        raise MalformedPublicInputs(
            f"{layout.operation} expects {layout.arity} values, got {len(values)}"
        )

    encoded = []
    for spec, value in zip(layout.fields, values):
        if isinstance(value, (bytes, bytearray)):
            if len(value) != spec.width:
                raise MalformedPublicInputs(
                    f"{spec.name} must be {spec.width} bytes, got {len(value)}"
                )
            if spec.canonical and not is_canonical(value):
                raise MalformedPublicInputs(f"{spec.name} is not a canonical field element")
            encoded.append(bytes(value))
            continue

        if value < 0 or value >= FIELD_PRIME or value.bit_length() > spec.width * 8:
            raise MalformedPublicInputs(f"{spec.name} value {value} does not fit {spec.width} bytes")
        encoded.append(value.to_bytes(spec.width, byteorder="big"))

    return encoded
