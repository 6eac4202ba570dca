"""
완화된 R1CS 인스턴스와 위트니스 (Relaxed R1CS)
===============================================

엄격한 R1CS 인스턴스 두 개를 선형결합하면 교차항이 생겨 관계가 깨진다.
완화된(relaxed) R1CS 는 스칼라 u 와 오차 벡터 E 를 추가하여 이를 흡수한다:

  (A·z) ∘ (B·z) = u·(C·z) + E,    z = (u, X, W)

  | 구성                | 인스턴스 (공개)           | 위트니스 (비공개)          |
  |---------------------|---------------------------|----------------------------|
  | 엄격 (strict)       | C_W, X                    | W, ρ_W                     |
  | 완화 (relaxed)      | C_W, C_E, u, X            | W, E, ρ_W, ρ_E             |

**relax**: 엄격 인스턴스 → u = 1, E = 0, C_E = Com(0) 인 완화 인스턴스.
이미 완화된 신선한(fresh) 쌍은 그대로 돌려준다 (멱등성).

**identity**: 모든 값이 0 이고 u = 0 인 항목. 관계를 자명하게 만족하며
누산기 테이블의 모든 슬롯의 시작점이다.

사용 예시:
    >>> U, W = relax(shape, instance, witness, scheme)
    >>> is_satisfied(shape, U, W)
    True
"""

from zkp.supernova.errors import ShapeMismatchError


class StrictInstance:
    """엄격한 R1CS 인스턴스 (u = 1, E = 0)."""

    def __init__(self, shape_digest, commitment, public_inputs):
        self.shape_digest = shape_digest
        self.commitment = commitment
        self.public_inputs = list(public_inputs)

    def __eq__(self, other):
        if not isinstance(other, StrictInstance):
            return NotImplemented
        return (
            self.shape_digest == other.shape_digest
            and self.commitment == other.commitment
            and self.public_inputs == other.public_inputs
        )


class StrictWitness:
    def __init__(self, values, blinding=0):
        self.values = list(values)
        self.blinding = blinding


class RelaxedInstance:
    """완화된 R1CS 인스턴스.

    속성:
        shape_digest: 이 인스턴스가 속한 회로 형태의 다이제스트 (bytes)
        witness_commitment: C_W
        error_commitment: C_E
        u: 완화 스칼라
        public_inputs: X
    """

    def __init__(self, shape_digest, witness_commitment, error_commitment, u, public_inputs):
        self.shape_digest = shape_digest
        self.witness_commitment = witness_commitment
        self.error_commitment = error_commitment
        self.u = u
        self.public_inputs = list(public_inputs)

    def is_fresh(self, scheme):
        """relax 직후의 형태인지 (u = 1, C_E = Com(0))."""
        return self.u == 1 and scheme.equal(self.error_commitment, scheme.zero())

    def __eq__(self, other):
        if not isinstance(other, RelaxedInstance):
            return NotImplemented
        return (
            self.shape_digest == other.shape_digest
            and self.witness_commitment == other.witness_commitment
            and self.error_commitment == other.error_commitment
            and self.u == other.u
            and self.public_inputs == other.public_inputs
        )

    def __repr__(self):
        return (
            f"RelaxedInstance(shape={self.shape_digest.hex()[:12]}, u={int(self.u)}, "
            f"X={[int(x) for x in self.public_inputs]})"
        )


class RelaxedWitness:
    """완화된 R1CS 위트니스.

    속성:
        values: W
        error: E (제약 수와 같은 길이)
        blinding: C_W 의 블라인딩 ρ_W
        error_blinding: C_E 의 블라인딩 ρ_E
    """

    def __init__(self, values, error, blinding=0, error_blinding=0):
        self.values = list(values)
        self.error = list(error)
        self.blinding = blinding
        self.error_blinding = error_blinding


# ─────────────────────────────────────────────────────────────────────
# 생성
# ─────────────────────────────────────────────────────────────────────

def relax(shape, instance, witness, scheme):
    """엄격한 (인스턴스, 위트니스) 쌍을 완화된 쌍으로 올린다.

    Raises:
        ShapeMismatchError: 인스턴스가 다른 형태에 속하거나 길이가 맞지 않을 때
        ValueError: 이미 완화된 쌍이 신선하지 않을 때
    """
    field = shape.field
    if instance.shape_digest != shape.digest():
        raise ShapeMismatchError("인스턴스가 주어진 회로 형태에 속하지 않습니다")
    if len(instance.public_inputs) != shape.num_inputs or len(witness.values) != shape.num_vars:
        raise ShapeMismatchError("공개 입력/위트니스 길이가 회로 형태와 다릅니다")

    if isinstance(instance, RelaxedInstance):
        if not instance.is_fresh(scheme) or any(e != 0 for e in witness.error):
            raise ValueError("신선하지 않은 완화 인스턴스는 다시 relax 할 수 없습니다")
        return (
            RelaxedInstance(
                instance.shape_digest,
                instance.witness_commitment,
                instance.error_commitment,
                instance.u,
                instance.public_inputs,
            ),
            RelaxedWitness(witness.values, witness.error, witness.blinding, witness.error_blinding),
        )

    U = RelaxedInstance(
        instance.shape_digest,
        instance.commitment,
        scheme.zero(),
        field(1),
        instance.public_inputs,
    )
    W = RelaxedWitness(
        witness.values,
        [field(0)] * shape.num_constraints,
        witness.blinding,
        field(0),
    )
    return U, W


def identity(shape, scheme):
    """누산기 슬롯의 초기값: 모든 값 0, u = 0."""
    field = shape.field
    U = RelaxedInstance(
        shape.digest(),
        scheme.zero(),
        scheme.zero(),
        field(0),
        [field(0)] * shape.num_inputs,
    )
    W = RelaxedWitness(
        [field(0)] * shape.num_vars,
        [field(0)] * shape.num_constraints,
        field(0),
        field(0),
    )
    return U, W


# ─────────────────────────────────────────────────────────────────────
# 검사
# ─────────────────────────────────────────────────────────────────────

def is_satisfied(shape, U, W, workers=1):
    """(A·z)∘(B·z) = u·(C·z) + E 인지 검사한다. 길이/형태 불일치는 False."""
    if U.shape_digest != shape.digest():
        return False
    if (
        len(U.public_inputs) != shape.num_inputs
        or len(W.values) != shape.num_vars
        or len(W.error) != shape.num_constraints
    ):
        return False
    z = [U.u] + list(U.public_inputs) + list(W.values)
    az, bz, cz = shape.multiply(z, workers)
    return all(a * b == U.u * c + e for a, b, c, e in zip(az, bz, cz, W.error))


def opens(U, W, scheme):
    """두 커밋먼트가 위트니스로 열리는지 검사한다."""
    return scheme.equal(
        scheme.commit(W.values, W.blinding), U.witness_commitment
    ) and scheme.equal(
        scheme.commit(W.error, W.error_blinding), U.error_commitment
    )


def instance_terms(U, scheme):
    """인스턴스의 필드 원소 인코딩: limbs(C_W) + limbs(C_E) + [u] + X.

    트랜스크립트와 테이블 다이제스트가 모두 이 순서를 쓴다. 형태 다이제스트는
    포함하지 않는다 (슬롯 위치가 형태를 결정한다).
    """
    return (
        scheme.limbs(U.witness_commitment)
        + scheme.limbs(U.error_commitment)
        + [U.u]
        + list(U.public_inputs)
    )
