"""
R1CS 회로 형태와 제약 시스템 빌더
==================================

SuperNova의 각 명령어 회로는 R1CS(Rank-1 Constraint System)로 표현된다.

**R1CS 관계**:
  변수 벡터 z = (u, X, W) 에 대해 모든 행에서

    (A·z) ∘ (B·z) = u·(C·z)

  - z[0] = u : 상수 슬롯. 엄격(strict) 인스턴스에서는 1
  - X        : 공개 입력 (public inputs)
  - W        : 위트니스 (witness)

**구성 요소**:
  | 클래스              | 역할                                          |
  |---------------------|-----------------------------------------------|
  | LinearCombination   | 변수 → 계수의 희소 선형결합 (+, -, 스칼라 *)  |
  | ConstraintSystem    | 회로 합성 중 변수 할당과 제약 기록            |
  | R1CSShape           | 합성 결과의 불변 행렬 (A, B, C) 와 다이제스트 |

**구조 불변성**:
  회로의 구조(제약 개수, 변수 개수, 행렬 항)는 위트니스 값에 의존하지 않는다.
  그래서 setup 시점의 더미 합성으로 형태를 한 번 고정하고, 매 단계의 합성은
  같은 형태를 만들어야 한다.

사용 예시:
    >>> cs = ConstraintSystem(TOY_FIELD)
    >>> x = cs.alloc(3)
    >>> x2 = cs.mul(x, x)
    >>> y = cs.alloc_input(cs.value(x2))
    >>> cs.enforce(x2, cs.one(), y)
    >>> cs.is_satisfied()
    True
    >>> shape = cs.to_shape()
"""

import hashlib

from zkp.supernova.field import to_field, field_bytes
from zkp.supernova.parallel import parallel_map


# 변수 키: ("one", 0) / ("input", k) / ("aux", k)
ONE = ("one", 0)


# ─────────────────────────────────────────────────────────────────────
# 선형결합
# ─────────────────────────────────────────────────────────────────────

class LinearCombination:
    """변수들의 희소 선형결합 Σ c_k · v_k.

    계수가 0이 된 항은 즉시 제거하므로 같은 값의 선형결합은 같은 항을 가진다.
    선형결합끼리의 곱은 정의하지 않는다 (ConstraintSystem.mul 사용).
    """

    def __init__(self, field, terms=None):
        self.field = field
        self.terms = dict(terms or {})

    @classmethod
    def constant(cls, field, value):
        value = to_field(field, value)
        if value == 0:
            return cls(field)
        return cls(field, {ONE: value})

    def _coerce(self, other):
        if isinstance(other, LinearCombination):
            if other.field is not self.field:
                raise TypeError("서로 다른 필드의 선형결합은 더할 수 없습니다")
            return other
        return LinearCombination.constant(self.field, other)

    def __add__(self, other):
        other = self._coerce(other)
        terms = dict(self.terms)
        for var, coeff in other.terms.items():
            total = terms.get(var, self.field(0)) + coeff
            if total == 0:
                terms.pop(var, None)
            else:
                terms[var] = total
        return LinearCombination(self.field, terms)

    __radd__ = __add__

    def __neg__(self):
        return LinearCombination(
            self.field, {var: -coeff for var, coeff in self.terms.items()}
        )

    def __sub__(self, other):
        return self + (-self._coerce(other))

    def __rsub__(self, other):
        return self._coerce(other) - self

    def __mul__(self, scalar):
        if isinstance(scalar, LinearCombination):
            raise TypeError("선형결합끼리의 곱은 ConstraintSystem.mul을 사용하세요")
        scalar = to_field(self.field, scalar)
        if scalar == 0:
            return LinearCombination(self.field)
        return LinearCombination(
            self.field, {var: coeff * scalar for var, coeff in self.terms.items()}
        )

    __rmul__ = __mul__

    def __repr__(self):
        parts = [f"{int(c)}*{kind}[{idx}]" for (kind, idx), c in sorted(self.terms.items())]
        return "LC(" + " + ".join(parts) + ")"


# ─────────────────────────────────────────────────────────────────────
# 제약 시스템 빌더
# ─────────────────────────────────────────────────────────────────────

class ConstraintSystem:
    """회로 합성기. 값 할당과 제약 기록을 동시에 수행한다.

    속성:
        field: 회로의 필드 클래스
        inputs: 공개 입력 값 리스트 (X)
        aux: 위트니스 값 리스트 (W)
        constraints: (a, b, c) 선형결합 삼중쌍 리스트, 의미는 a·b = c
    """

    def __init__(self, field):
        self.field = field
        self.inputs = []
        self.aux = []
        self.constraints = []

    # ── 변수 ──────────────────────────────────────────────────────────

    def one(self):
        return LinearCombination(self.field, {ONE: self.field(1)})

    def constant(self, value):
        return LinearCombination.constant(self.field, value)

    def lc(self, value):
        """선형결합이면 그대로, 상수면 상수 선형결합으로."""
        if isinstance(value, LinearCombination):
            return value
        return self.constant(value)

    def alloc(self, value):
        """위트니스 변수를 할당하고 그 선형결합을 반환한다."""
        self.aux.append(to_field(self.field, value))
        return LinearCombination(self.field, {("aux", len(self.aux) - 1): self.field(1)})

    def alloc_input(self, value):
        """공개 입력 변수를 할당한다."""
        self.inputs.append(to_field(self.field, value))
        return LinearCombination(self.field, {("input", len(self.inputs) - 1): self.field(1)})

    # ── 제약 ──────────────────────────────────────────────────────────

    def enforce(self, a, b, c):
        """제약 a·b = c 를 추가한다."""
        self.constraints.append((self.lc(a), self.lc(b), self.lc(c)))

    def mul(self, a, b):
        """곱 a·b 를 새 변수로 할당하고 제약으로 묶는다."""
        a, b = self.lc(a), self.lc(b)
        product = self.alloc(self.value(a) * self.value(b))
        self.enforce(a, b, product)
        return product

    def enforce_equal(self, a, b):
        self.enforce(self.lc(a) - self.lc(b), self.one(), self.constant(0))

    # ── 값 ────────────────────────────────────────────────────────────

    def _var_value(self, var):
        kind, idx = var
        if kind == "one":
            return self.field(1)
        if kind == "input":
            return self.inputs[idx]
        return self.aux[idx]

    def value(self, lc):
        lc = self.lc(lc)
        acc = self.field(0)
        for var, coeff in lc.terms.items():
            acc = acc + coeff * self._var_value(var)
        return acc

    def which_is_unsatisfied(self):
        """처음으로 만족되지 않는 제약의 인덱스 (모두 만족하면 None)."""
        for row, (a, b, c) in enumerate(self.constraints):
            if self.value(a) * self.value(b) != self.value(c):
                return row
        return None

    def is_satisfied(self):
        return self.which_is_unsatisfied() is None

    @property
    def num_constraints(self):
        return len(self.constraints)

    def assignment(self):
        """(공개 입력, 위트니스) 값 리스트."""
        return list(self.inputs), list(self.aux)

    def to_shape(self):
        """기록된 제약을 열(column) 인덱스 기반 희소 행렬로 변환한다.

        열 배치: 0 → u, 1..n_in → X, 그 뒤 → W
        """
        num_inputs = len(self.inputs)

        def column(var):
            kind, idx = var
            if kind == "one":
                return 0
            if kind == "input":
                return 1 + idx
            return 1 + num_inputs + idx

        def row(lc):
            return tuple(sorted((column(var), coeff) for var, coeff in lc.terms.items()))

        return R1CSShape(
            self.field,
            num_constraints=len(self.constraints),
            num_inputs=num_inputs,
            num_vars=len(self.aux),
            A=[row(a) for a, _, _ in self.constraints],
            B=[row(b) for _, b, _ in self.constraints],
            C=[row(c) for _, _, c in self.constraints],
        )


# ─────────────────────────────────────────────────────────────────────
# 회로 형태 (Circuit Shape)
# ─────────────────────────────────────────────────────────────────────

class R1CSShape:
    """불변 R1CS 행렬 묶음.

    각 행렬은 행마다 (열, 계수) 튜플의 정렬된 튜플로 저장한다.

    속성:
        num_constraints: 제약(행) 수
        num_inputs: 공개 입력 수 |X|
        num_vars: 위트니스 수 |W|
    """

    def __init__(self, field, num_constraints, num_inputs, num_vars, A, B, C):
        self.field = field
        self.num_constraints = num_constraints
        self.num_inputs = num_inputs
        self.num_vars = num_vars
        self.A = tuple(tuple(r) for r in A)
        self.B = tuple(tuple(r) for r in B)
        self.C = tuple(tuple(r) for r in C)
        if not (len(self.A) == len(self.B) == len(self.C) == num_constraints):
            raise ValueError("행렬 행 수가 제약 수와 다릅니다")
        width = self.num_columns
        for matrix in (self.A, self.B, self.C):
            for r in matrix:
                for col, _ in r:
                    if not 0 <= col < width:
                        raise ValueError(f"열 인덱스 범위 밖: {col} (폭 {width})")
        self._digest = None

    @property
    def num_columns(self):
        return 1 + self.num_inputs + self.num_vars

    def digest(self):
        """정규 바이트 인코딩의 SHA-256 (32바이트). 형태의 신원(identity)으로 쓴다."""
        if self._digest is None:
            width = field_bytes(self.field)
            h = hashlib.sha256()
            h.update(b"supernova-r1cs")
            h.update(self.field.field_modulus.to_bytes(width, "big"))
            for n in (self.num_constraints, self.num_inputs, self.num_vars):
                h.update(n.to_bytes(4, "big"))
            for matrix in (self.A, self.B, self.C):
                for r in matrix:
                    h.update(len(r).to_bytes(4, "big"))
                    for col, coeff in r:
                        h.update(col.to_bytes(4, "big"))
                        h.update(int(coeff).to_bytes(width, "big"))
            self._digest = h.digest()
        return self._digest

    def digest_element(self):
        """다이제스트를 필드 원소로 축소한 값 (params 해시 입력용)."""
        return self.field(int.from_bytes(self.digest(), "big"))

    def _mat_vec(self, matrix, z):
        zero = self.field(0)
        out = []
        for r in matrix:
            acc = zero
            for col, coeff in r:
                acc = acc + coeff * z[col]
            out.append(acc)
        return out

    def multiply(self, z, workers=1):
        """(A·z, B·z, C·z) 를 계산한다.

        Raises:
            ValueError: z의 길이가 열 수와 다를 때
        """
        if len(z) != self.num_columns:
            raise ValueError(f"z 길이 {len(z)} != 열 수 {self.num_columns}")
        az, bz, cz = parallel_map(
            lambda m: self._mat_vec(m, z), (self.A, self.B, self.C), workers
        )
        return az, bz, cz

    def is_satisfied(self, public_inputs, witness):
        """엄격한 관계 (u = 1) 검사. 길이가 맞지 않으면 False."""
        if len(public_inputs) != self.num_inputs or len(witness) != self.num_vars:
            return False
        z = [self.field(1)] + list(public_inputs) + list(witness)
        az, bz, cz = self.multiply(z)
        return all(a * b == c for a, b, c in zip(az, bz, cz))

    def __eq__(self, other):
        if not isinstance(other, R1CSShape):
            return NotImplemented
        return self.field is other.field and self.digest() == other.digest()

    def __hash__(self):
        return hash(self.digest())

    def __repr__(self):
        return (
            f"R1CSShape(constraints={self.num_constraints}, inputs={self.num_inputs}, "
            f"vars={self.num_vars}, digest={self.digest().hex()[:16]})"
        )
