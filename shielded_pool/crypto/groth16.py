"""
Groth16 verification over BN254 (alt_bn128).

Keys and proofs use the snarkjs JSON layout, so artifacts produced by
`snarkjs groth16 setup/prove` can be fed in unchanged:

    verification_key.json: {protocol, curve, nPublic, vk_alpha_1, vk_beta_2,
                            vk_gamma_2, vk_delta_2, IC}
    proof.json:            {pi_a, pi_b, pi_c}

Points are projective triples of decimal strings; G2 coordinates are
[c0, c1] pairs over Fq2. The verifier checks

    e(A, B) == e(alpha, beta) * e(vk_x, gamma) * e(C, delta)

with vk_x = IC[0] + sum(input_i * IC[i + 1]).

Pairings come from py_ecc's optimized BN128 implementation. Parsing rejects
coordinates outside the base field and points that are not on the curve;
G1 has cofactor 1 so on-curve implies in-subgroup there.
"""

import json
from dataclasses import dataclass
from typing import Any, List, Mapping, Sequence, Tuple, Union

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    field_modulus,
    is_inf,
    is_on_curve,
    multiply,
    normalize,
    pairing,
)

G1Point = Tuple[FQ, FQ, FQ]
G2Point = Tuple[FQ2, FQ2, FQ2]


# =============================================================================
# Key / Proof Types
# =============================================================================


@dataclass(frozen=True)
class VerifyingKey:
    """
    Groth16 verifying key for one circuit.

    Attributes:
        alpha_1: alpha in G1
        beta_2: beta in G2
        gamma_2: gamma in G2
        delta_2: delta in G2
        ic: Input commitments, IC[0] plus one point per public input
    """
    alpha_1: G1Point
    beta_2: G2Point
    gamma_2: G2Point
    delta_2: G2Point
    ic: Tuple[G1Point, ...]

    @property
    def n_public(self) -> int:
        """Number of public inputs the circuit expects."""
        return len(self.ic) - 1


@dataclass(frozen=True)
class Proof:
    """A Groth16 proof (A in G1, B in G2, C in G1)."""
    a: G1Point
    b: G2Point
    c: G1Point


@dataclass(frozen=True)
class PreparedVerifyingKey:
    """Verifying key with e(alpha, beta) precomputed."""
    vk: VerifyingKey
    alpha_beta: FQ12


# =============================================================================
# JSON Parsing
# =============================================================================


def _coord(value: Any) -> int:
    """Parse one base-field coordinate."""
    if isinstance(value, bool):
        raise ValueError("Coordinate must be a number")
    n = int(value)
    if not 0 <= n < field_modulus:
        raise ValueError(f"Coordinate out of field range: {n}")
    return n


def _g1_from_json(point: Sequence[Any]) -> G1Point:
    """Parse [x, y] or [x, y, z] (z in {0, 1}) into a G1 point."""
    if len(point) not in (2, 3):
        raise ValueError(f"G1 point must have 2 or 3 coordinates, got {len(point)}")
    z = _coord(point[2]) if len(point) == 3 else 1
    if z == 0:
        return Z1
    if z != 1:
        raise ValueError("G1 point must be affine (z = 1)")

    pt = (FQ(_coord(point[0])), FQ(_coord(point[1])), FQ.one())
    if not is_on_curve(pt, b):
        raise ValueError("G1 point not on curve")
    return pt


def _g2_from_json(point: Sequence[Sequence[Any]]) -> G2Point:
    """Parse [[x0, x1], [y0, y1]] or with a trailing [z0, z1] into a G2 point."""
    if len(point) not in (2, 3):
        raise ValueError(f"G2 point must have 2 or 3 coordinates, got {len(point)}")
    for coord in point:
        if len(coord) != 2:
            raise ValueError("G2 coordinate must be an Fq2 pair")

    if len(point) == 3:
        z = (_coord(point[2][0]), _coord(point[2][1]))
        if z == (0, 0):
            return Z2
        if z != (1, 0):
            raise ValueError("G2 point must be affine (z = [1, 0])")

    x = FQ2([_coord(point[0][0]), _coord(point[0][1])])
    y = FQ2([_coord(point[1][0]), _coord(point[1][1])])
    pt = (x, y, FQ2.one())
    if not is_on_curve(pt, b2):
        raise ValueError("G2 point not on curve")
    return pt


def _load_json(blob: Union[bytes, str, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(blob, Mapping):
        return blob
    if isinstance(blob, (bytes, bytearray)):
        blob = bytes(blob).decode("utf-8")
    data = json.loads(blob)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def _check_scheme(data: Mapping[str, Any]) -> None:
    protocol = data.get("protocol", "groth16")
    curve = data.get("curve", "bn128")
    if protocol != "groth16":
        raise ValueError(f"Unsupported protocol: {protocol}")
    if curve not in ("bn128", "bn254", "alt_bn128"):
        raise ValueError(f"Unsupported curve: {curve}")


def parse_verifying_key(blob: Union[bytes, str, Mapping[str, Any]]) -> VerifyingKey:
    """
    Parse a snarkjs verification key.

    Args:
        blob: JSON bytes/str or an already-decoded dict

    Returns:
        VerifyingKey

    Raises:
        ValueError: On any structural or curve error
    """
    data = _load_json(blob)
    _check_scheme(data)

    try:
        ic = tuple(_g1_from_json(p) for p in data["IC"])
        vk = VerifyingKey(
            alpha_1=_g1_from_json(data["vk_alpha_1"]),
            beta_2=_g2_from_json(data["vk_beta_2"]),
            gamma_2=_g2_from_json(data["vk_gamma_2"]),
            delta_2=_g2_from_json(data["vk_delta_2"]),
            ic=ic,
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed verification key: {e}") from e

    if not vk.ic:
        raise ValueError("Verification key has no IC points")
    if "nPublic" in data and int(data["nPublic"]) != vk.n_public:
        raise ValueError(f"nPublic={data['nPublic']} but IC has {len(vk.ic)} points")
    return vk


def parse_proof(blob: Union[bytes, str, Mapping[str, Any]]) -> Proof:
    """
    Parse a snarkjs proof.

    Raises:
        ValueError: On any structural or curve error
    """
    data = _load_json(blob)
    _check_scheme(data)
    try:
        return Proof(
            a=_g1_from_json(data["pi_a"]),
            b=_g2_from_json(data["pi_b"]),
            c=_g1_from_json(data["pi_c"]),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed proof: {e}") from e


# =============================================================================
# JSON Encoding
# =============================================================================


def _g1_to_json(pt: G1Point) -> List[str]:
    if is_inf(pt):
        return ["0", "1", "0"]
    x, y = normalize(pt)
    return [str(int(x)), str(int(y)), "1"]


def _g2_to_json(pt: G2Point) -> List[List[str]]:
    if is_inf(pt):
        return [["0", "0"], ["1", "0"], ["0", "0"]]
    x, y = normalize(pt)
    return [
        [str(int(c)) for c in x.coeffs],
        [str(int(c)) for c in y.coeffs],
        ["1", "0"],
    ]


def encode_verifying_key(vk: VerifyingKey) -> bytes:
    """Serialize a verifying key to canonical snarkjs JSON bytes."""
    data = {
        "protocol": "groth16",
        "curve": "bn128",
        "nPublic": vk.n_public,
        "vk_alpha_1": _g1_to_json(vk.alpha_1),
        "vk_beta_2": _g2_to_json(vk.beta_2),
        "vk_gamma_2": _g2_to_json(vk.gamma_2),
        "vk_delta_2": _g2_to_json(vk.delta_2),
        "IC": [_g1_to_json(p) for p in vk.ic],
    }
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode()


def encode_proof(proof: Proof) -> bytes:
    """Serialize a proof to canonical snarkjs JSON bytes."""
    data = {
        "protocol": "groth16",
        "curve": "bn128",
        "pi_a": _g1_to_json(proof.a),
        "pi_b": _g2_to_json(proof.b),
        "pi_c": _g1_to_json(proof.c),
    }
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode()


# =============================================================================
# Verification
# =============================================================================


def prepare_verifying_key(vk: VerifyingKey) -> PreparedVerifyingKey:
    """Precompute e(alpha, beta), which is shared by every proof."""
    return PreparedVerifyingKey(vk=vk, alpha_beta=pairing(vk.beta_2, vk.alpha_1))


def linear_combination(vk: VerifyingKey, inputs: Sequence[int]) -> G1Point:
    """vk_x = IC[0] + sum(inputs[i] * IC[i + 1])"""
    acc = vk.ic[0]
    for value, point in zip(inputs, vk.ic[1:]):
        if value:
            acc = add(acc, multiply(point, value))
    return acc


def verify_proof(pvk: PreparedVerifyingKey, inputs: Sequence[int], proof: Proof) -> bool:
    """
    Check a Groth16 proof against public inputs.

    Args:
        pvk: Prepared verifying key
        inputs: Public inputs as field elements, in circuit order
        proof: Parsed proof

    Returns:
        True if the pairing equation holds
    """
    vk = pvk.vk
    if len(inputs) != vk.n_public:
        return False
    if any(not 0 <= x < curve_order for x in inputs):
        return False

    vk_x = linear_combination(vk, inputs)

    lhs = pairing(proof.b, proof.a)
    rhs = pvk.alpha_beta * pairing(vk.gamma_2, vk_x) * pairing(vk.delta_2, proof.c)
    return lhs == rhs
