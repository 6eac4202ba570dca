"""
Augmented Circuit (명령어 회로 + fold 검증 회로)
=================================================

SuperNova 의 각 명령어는 자기 step 함수에 "이전 단계의 fold 를 검증하는 회로"를
덧붙인 augmented circuit 으로 증명된다. 단계 i (1부터) 에서 명령어 op 의 회로는
공개 입력 하나, 상태 해시

  h_i = H_io(params, i, op, next_pc, z0, z_i, D(T^{i-1}))

를 노출한다. T^{i-1} 은 단계 i-1 의 fold 가 끝난 뒤의 누산기 테이블이고,
D 는 테이블의 모든 인스턴스 항(instance_terms)에 대한 다이제스트다.

**회로가 강제하는 것**:
  1. 명령어 셀렉터: 할당된 pc 가 회로의 상수 op 와 같다
  2. 기저 플래그 b = (i == 1)
  3. b 가 아니면, 위트니스로 받은 T^{i-2} 로 다시 계산한 이전 상태 해시가
     이전 인스턴스의 공개 입력 h_{i-1} 과 같다
  4. fold 챌린지 r 을 회로 안에서 재계산 (AlgebraicTranscript 와 같은 순서)
  5. fold 의 스칼라 부분 (u' = u + r, X' = X + r·h_{i-1}) 과 이전 pc 슬롯의 갱신.
     접힌 커밋먼트는 limb 위트니스로 받아 출력 해시에 묶고, 그룹 연산은
     Verifier 가 네이티브로 O(1) 번 수행한다
  6. z_in = b ? z0 : z_{i-1} 위에서 명령어의 step 함수
  7. 출력 해시 h_i 를 공개 입력으로

**구조 불변성**:
  기저 단계와 fold 단계의 회로 구조는 같다 (플래그 b 로 분기를 산술화).
  그래서 setup 의 더미 합성 한 번으로 형태가 고정된다.

사용 예시:
    >>> circuit = AugmentedCircuit(0, AddConstant(1), 2, 1, scheme, hasher)
    >>> cs, output = circuit.synthesize(StepWitness.blank(scheme, 2, 1, 0))
"""

from enum import Enum

from zkp.supernova.errors import ConstraintViolationError
from zkp.supernova.field import to_field, to_field_list
from zkp.supernova.gadgets import (
    alloc_vector,
    is_equal,
    linear_sum,
    mimc_hash,
    one_hot,
    select,
)
from zkp.supernova.nifs import FOLD_LABEL, LABEL_PARAMS, LABEL_R, LABEL_T, LABEL_U1, LABEL_U2
from zkp.supernova.r1cs import ConstraintSystem
from zkp.supernova.relaxed import (
    RelaxedInstance,
    StrictInstance,
    StrictWitness,
    instance_terms,
)


IO_LABEL = b"supernova-io"
TABLE_LABEL = b"supernova-table"
PARAMS_LABEL = b"supernova-params"


# ─────────────────────────────────────────────────────────────────────
# 명령어 회로 계약
# ─────────────────────────────────────────────────────────────────────

class StepOutput:
    """명령어의 네이티브 실행 결과.

    속성:
        output: 다음 상태 z_{i} (필드 원소 리스트)
        next_instruction: 명령어가 지정하는 다음 pc (없으면 None, 트레이스가 결정)
    """

    def __init__(self, output, next_instruction=None):
        self.output = list(output)
        self.next_instruction = next_instruction


class StepCircuit:
    """명령어 회로의 기반 클래스.

    하위 클래스는 arity, execute, synthesize 를 구현한다. synthesize 의 제약 구조는
    z 와 step_input 의 값에 의존하면 안 된다 (step_input 은 None 일 수 있다).
    """

    name = "step"
    arity = 1

    def execute(self, step_input, z):
        raise NotImplementedError

    def synthesize(self, cs, z, step_input):
        raise NotImplementedError

    def __repr__(self):
        return f"{type(self).__name__}({self.name})"


class StepVariant(Enum):
    """augmented circuit 의 두 실행 경로."""

    BASE = "base"
    FOLDED = "folded"

    @classmethod
    def for_step(cls, i):
        return cls.BASE if i == 1 else cls.FOLDED


# ─────────────────────────────────────────────────────────────────────
# 네이티브 해시 (Verifier 와 회로가 공유하는 정의)
# ─────────────────────────────────────────────────────────────────────

def params_digest(hasher, shapes):
    """모든 명령어 회로 형태를 묶은 params 다이제스트."""
    return hasher.hash([s.digest_element() for s in shapes], iv=hasher.tag(PARAMS_LABEL))


def table_digest(hasher, scheme, instances):
    """D(T): 테이블 인스턴스 항 전체의 해시."""
    terms = []
    for U in instances:
        terms.extend(instance_terms(U, scheme))
    return hasher.hash(terms, iv=hasher.tag(TABLE_LABEL))


def state_hash(hasher, params, i, pc, next_pc, z0, z, digest):
    """h_i = H_io(params, i, pc, next_pc, z0, z_i, D)."""
    field = hasher.field
    elements = [params, field(i), field(pc), field(next_pc)] + list(z0) + list(z) + [digest]
    return hasher.hash(elements, iv=hasher.tag(IO_LABEL))


# ─────────────────────────────────────────────────────────────────────
# 단계 위트니스
# ─────────────────────────────────────────────────────────────────────

class StepWitness:
    """augmented circuit 한 번의 합성에 필요한 값 묶음.

    속성:
        params: params 다이제스트
        i: 단계 번호 (1부터)
        pc, next_pc: 이번 명령어와 다음 명령어 id
        prev_pc: 직전 단계의 명령어 id (기저 단계에서는 0)
        z0, z_prev: 초기 상태와 직전 출력
        step_input: 명령어가 쓰는 보조 입력 (advice)
        table: 직전 fold 전의 테이블 T^{i-2} (인스턴스 리스트)
        latest: 직전 단계의 신선한 인스턴스 u_{i-1}
        cross_term: 직전 fold 의 Com(T)
        folded: 직전 fold 결과 U'
    """

    def __init__(self, params, i, pc, next_pc, prev_pc, z0, z_prev, step_input,
                 table, latest, cross_term, folded):
        self.params = params
        self.i = i
        self.pc = pc
        self.next_pc = next_pc
        self.prev_pc = prev_pc
        self.z0 = list(z0)
        self.z_prev = list(z_prev)
        self.step_input = step_input
        self.table = list(table)
        self.latest = latest
        self.cross_term = cross_term
        self.folded = folded

    @classmethod
    def base(cls, params, pc, next_pc, z0, step_input, table, scheme):
        """단계 1 의 위트니스. fold 관련 값은 자리만 채우는 0 인스턴스다."""
        field = scheme.field
        placeholder = RelaxedInstance(b"", scheme.zero(), scheme.zero(), field(1), [field(0)])
        return cls(
            params, 1, pc, next_pc, 0, z0, z0, step_input,
            table, placeholder, scheme.zero(), table[0],
        )

    @classmethod
    def blank(cls, scheme, num_instructions, arity, pc):
        """setup 의 더미 합성용 위트니스 (params 와 형태가 아직 없을 때)."""
        field = scheme.field
        empty = RelaxedInstance(b"", scheme.zero(), scheme.zero(), field(0), [field(0)])
        zeros = [field(0)] * arity
        return cls.base(field(0), pc, pc, zeros, None, [empty] * num_instructions, scheme)


class StepExecution:
    """augmented circuit 실행 결과 (strict 인스턴스/위트니스, 다음 pc, 출력)."""

    def __init__(self, instance, witness, next_instruction, output):
        self.instance = instance
        self.witness = witness
        self.next_instruction = next_instruction
        self.output = output

    def __iter__(self):
        return iter((self.instance, self.witness, self.next_instruction, self.output))


# ─────────────────────────────────────────────────────────────────────
# Augmented Circuit
# ─────────────────────────────────────────────────────────────────────

class AugmentedCircuit:
    """명령어 하나의 augmented circuit.

    속성:
        index: 명령어 id (셀렉터 상수)
        step: StepCircuit
        num_instructions: 명령어 수 L
        arity: 상태 벡터 길이
    """

    def __init__(self, index, step, num_instructions, arity, scheme, hasher):
        self.index = index
        self.step = step
        self.num_instructions = num_instructions
        self.arity = arity
        self.scheme = scheme
        self.hasher = hasher
        self.field = scheme.field

    def synthesize(self, w):
        """제약을 합성한다.

        Returns:
            (ConstraintSystem, 출력 상태 리스트)

        Raises:
            ConstraintViolationError: 명령어 출력의 길이가 arity 와 다를 때
        """
        scheme = self.scheme
        hasher = self.hasher
        field = self.field
        tag = hasher.tag

        cs = ConstraintSystem(field)
        one = cs.one()

        params = cs.alloc(w.params)
        i = cs.alloc(w.i)
        pc = cs.alloc(w.pc)
        prev_pc = cs.alloc(w.prev_pc)
        next_pc = cs.alloc(w.next_pc)
        z0 = alloc_vector(cs, w.z0)
        z_prev = alloc_vector(cs, w.z_prev)

        # 명령어 셀렉터
        cs.enforce(pc, one, cs.constant(self.index))

        base = is_equal(cs, i, one)
        not_base = one - base

        # 위트니스: T^{i-2}, u_{i-1}, Com(T), U'
        table = [alloc_vector(cs, instance_terms(U, scheme)) for U in w.table]
        latest_cw = alloc_vector(cs, scheme.limbs(w.latest.witness_commitment))
        latest_h = cs.alloc(w.latest.public_inputs[0])
        comm_t = alloc_vector(cs, scheme.limbs(w.cross_term))
        folded_cw = alloc_vector(cs, scheme.limbs(w.folded.witness_commitment))
        folded_ce = alloc_vector(cs, scheme.limbs(w.folded.error_commitment))

        # 이전 상태 해시 검사 (기저 단계에서는 비활성)
        prev_digest = mimc_hash(cs, hasher, [t for row in table for t in row], tag(TABLE_LABEL))
        prev_hash = mimc_hash(
            cs, hasher,
            [params, i - 1, prev_pc, pc] + z0 + z_prev + [prev_digest],
            tag(IO_LABEL),
        )
        cs.enforce(not_base, prev_hash - latest_h, cs.constant(0))

        # 이전 pc 의 누산기 선택
        bits = one_hot(cs, prev_pc, self.num_instructions)
        width = len(table[0])
        selected = [
            linear_sum(cs, [cs.mul(bits[j], table[j][k]) for j in range(self.num_instructions)])
            for k in range(width)
        ]

        # fold 챌린지 r 재계산
        latest_terms = (
            latest_cw
            + [cs.constant(v) for v in scheme.limbs(scheme.zero())]
            + [one, latest_h]
        )
        r = mimc_hash(
            cs, hasher,
            [tag(LABEL_PARAMS), params, tag(LABEL_U1)] + selected
            + [tag(LABEL_U2)] + latest_terms
            + [tag(LABEL_T)] + comm_t
            + [tag(LABEL_R)],
            tag(FOLD_LABEL),
        )

        # fold 의 스칼라 부분: u' = u + r·1, X' = X + r·h_{i-1}
        u_index = len(folded_cw) + len(folded_ce)
        u_fold = selected[u_index] + r
        x_fold = selected[u_index + 1] + cs.mul(r, latest_h)
        folded_terms = folded_cw + folded_ce + [u_fold, x_fold]

        # 테이블 갱신: 이전 pc 슬롯만 U' 로 교체
        new_table = []
        for j in range(self.num_instructions):
            gate = cs.mul(bits[j], not_base)
            new_table.append([
                select(cs, gate, f, t) for t, f in zip(table[j], folded_terms)
            ])
        new_digest = mimc_hash(cs, hasher, [t for row in new_table for t in row], tag(TABLE_LABEL))

        # step 함수
        z_in = [select(cs, base, z0k, zp) for z0k, zp in zip(z0, z_prev)]
        z_out = self.step.synthesize(cs, z_in, w.step_input)
        if len(z_out) != self.arity:
            raise ConstraintViolationError(
                f"명령어 {self.index} 의 출력 길이 {len(z_out)} != arity {self.arity}"
            )

        h = mimc_hash(
            cs, hasher,
            [params, i, pc, next_pc] + z0 + list(z_out) + [new_digest],
            tag(IO_LABEL),
        )
        h_public = cs.alloc_input(cs.value(h))
        cs.enforce_equal(h, h_public)

        return cs, [cs.value(v) for v in z_out]

    def execute(self, shape, w, check=True):
        """합성 → 자기 제약 검사 → 위트니스 커밋.

        Returns:
            StepExecution (strict_instance, strict_witness, next_instruction, output)

        Raises:
            ConstraintViolationError: 제약을 만족하지 못하거나 구조가 형태와 다를 때
        """
        cs, output = self.synthesize(w)
        if (
            cs.num_constraints != shape.num_constraints
            or len(cs.inputs) != shape.num_inputs
            or len(cs.aux) != shape.num_vars
        ):
            raise ConstraintViolationError(
                f"명령어 {self.index} 회로의 구조가 setup 형태와 다릅니다"
            )
        if check:
            row = cs.which_is_unsatisfied()
            if row is not None:
                raise ConstraintViolationError(
                    f"명령어 {self.index} 단계 {w.i}: 제약 {row} 이 만족되지 않습니다"
                )
        inputs, values = cs.assignment()
        if check and not shape.is_satisfied(inputs, values):
            raise ConstraintViolationError(
                f"명령어 {self.index} 단계 {w.i}: 할당이 setup 형태의 제약을 만족하지 않습니다"
            )
        instance = StrictInstance(shape.digest(), self.scheme.commit(values), inputs)
        return StepExecution(instance, StrictWitness(values, self.field(0)), w.next_pc, output)

    def native_output(self, w):
        """명령어의 네이티브 실행 결과 (StepOutput)."""
        z_in = w.z0 if w.i == 1 else w.z_prev
        result = self.step.execute(w.step_input, list(z_in))
        result.output = to_field_list(self.field, result.output)
        return result


def normalize_state(field, value, arity):
    """정수, 필드 원소 또는 리스트를 길이 arity 의 상태 벡터로."""
    if isinstance(value, (list, tuple)):
        values = to_field_list(field, value)
    else:
        values = [to_field(field, value)]
    if len(values) > arity:
        raise ValueError(f"상태 길이 {len(values)} 가 arity {arity} 를 넘습니다")
    return values + [field(0)] * (arity - len(values))
