"""
SuperNova IVC 종단 간 테스트 (Prover → RunningProof → Verifier)
================================================================

테스트 범위:
  - toy VM 시나리오 [(0,3), (1,5), (0,7)] → 최종 출력 9
  - 잘못된 주장, 조작된 레코드, 재배열된 단계의 거부
  - 지연된 검사: opening 으로 의무 해소, 조작된 opening 거부
  - 트레이스 오류 (알 수 없는 명령어, initial_pc 불일치, 빈 트레이스)
  - 협조적 취소
  - 바이너리 코덱의 정규성과 바이트 변조 탐지
  - 두 회로 (cubic / square) 프로그램의 M31 실행
"""

import threading

import pytest

from zkp.supernova.augmented import StepCircuit, StepOutput, StepVariant
from zkp.supernova.errors import (
    AccumulatorError,
    ConstraintViolationError,
    ProvingCancelled,
    SerializationError,
    UnknownInstructionError,
    VerificationFailure,
)
from zkp.supernova.field import M31_FIELD, TOY_FIELD
from zkp.supernova.instructions import Double
from zkp.supernova.program import Program, setup
from zkp.supernova.proof import RunningProof
from zkp.supernova.prover import IVCProver, prove
from zkp.supernova.relaxed import RelaxedWitness
from zkp.supernova.verifier import IVCVerifier, verify


F = TOY_FIELD

# conftest 의 scenario fixture 와 같은 트레이스
SCENARIO_TRACE = [(0, 3), (1, 5), (0, 7)]
SCENARIO_OUTPUT = 9


def _copy(proof, scheme):
    """세션 fixture 를 건드리지 않도록 코덱으로 깊은 복사."""
    return RunningProof.from_bytes(proof.to_bytes(scheme), scheme)


# ─────────────────────────────────────────────────────────────────────
# 정상 경로
# ─────────────────────────────────────────────────────────────────────

class TestScenario:
    def test_outputs(self, scenario):
        _, proof = scenario
        assert len(proof) == 3
        assert [int(r.step_output[0]) for r in proof.records] == [4, 8, 9]
        assert [r.instruction for r in proof.records] == [0, 1, 0]
        assert [r.next_instruction for r in proof.records] == [1, 0, 0]
        assert proof.final_output == [F(SCENARIO_OUTPUT)]

    def test_verify_claimed_output(self, toy_pp, scenario):
        _, proof = scenario
        result = verify(toy_pp, proof, SCENARIO_OUTPUT)
        assert result
        assert result.failure is None
        assert len(result.obligations) == 2

    def test_claimed_output_forms(self, toy_pp, scenario):
        _, proof = scenario
        assert verify(toy_pp, proof, [SCENARIO_OUTPUT])
        assert verify(toy_pp, proof, F(SCENARIO_OUTPUT))

    def test_wrong_claim_rejected(self, toy_pp, scenario):
        _, proof = scenario
        result = verify(toy_pp, proof, 10)
        assert not result
        assert result.failure is VerificationFailure.HASH_CHAIN_BROKEN

    def test_prove_helper_matches_prover(self, toy_pp, scenario):
        _, proof = scenario
        assert prove(toy_pp, SCENARIO_TRACE, initial_pc=0) == proof

    def test_each_step_updates_one_slot(self, scenario):
        _, proof = scenario
        for record in proof.records:
            assert list(record.accumulators) == [record.instruction]

    def test_latest_instances_are_fresh(self, toy_pp, scenario):
        _, proof = scenario
        for record in proof.records:
            assert record.latest.is_fresh(toy_pp.scheme)


# ─────────────────────────────────────────────────────────────────────
# 지연된 검사
# ─────────────────────────────────────────────────────────────────────

class TestDeferredCheck:
    def test_obligations_cover_every_slot(self, toy_pp, scenario):
        _, proof = scenario
        obligations = IVCVerifier(toy_pp).obligations(proof)
        assert [o.instruction for o in obligations] == [0, 1]
        assert obligations[0].instance == proof.records[2].accumulators[0]
        assert obligations[1].instance == proof.records[1].accumulators[1]

    def test_opening_discharges_obligations(self, toy_pp, scenario):
        prover, proof = scenario
        result = verify(toy_pp, proof, SCENARIO_OUTPUT, opening=prover.opening())
        assert result
        assert result.obligations == []

    def test_each_obligation_discharges(self, toy_pp, scenario):
        prover, proof = scenario
        obligations = IVCVerifier(toy_pp).obligations(proof)
        for obligation, witness in zip(obligations, prover.opening()):
            assert obligation.discharge(witness, toy_pp.scheme)

    def test_tampered_opening_rejected(self, toy_pp, scenario):
        prover, proof = scenario
        opening = prover.opening()
        W = opening[0]
        bad = RelaxedWitness(
            [W.values[0] + 1] + W.values[1:], W.error, W.blinding, W.error_blinding,
        )
        result = verify(toy_pp, proof, SCENARIO_OUTPUT, opening=[bad, opening[1]])
        assert result.failure is VerificationFailure.DEFERRED_RELATION_FAILED

    def test_opening_length_checked(self, toy_pp, scenario):
        prover, proof = scenario
        result = verify(toy_pp, proof, SCENARIO_OUTPUT, opening=prover.opening()[:1])
        assert result.failure is VerificationFailure.DEFERRED_RELATION_FAILED

    def test_opening_requires_finished_proof(self, toy_pp):
        with pytest.raises(AccumulatorError):
            IVCProver(toy_pp).opening()


# ─────────────────────────────────────────────────────────────────────
# 트레이스 오류 / 취소
# ─────────────────────────────────────────────────────────────────────

class _CancelAfter:
    """is_set() 이 n 번째 확인부터 참이 된다."""

    def __init__(self, n):
        self.n = n
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls > self.n


class _Jump(StepCircuit):
    """다음 명령어를 항상 1 로 지정하는 명령어."""

    name = "jump"

    def execute(self, step_input, z):
        return StepOutput([z[0]], next_instruction=1)

    def synthesize(self, cs, z, step_input):
        out = cs.alloc(cs.value(z[0]))
        cs.enforce(z[0], cs.one(), out)
        return [out]


class TestProverErrors:
    def test_unknown_instruction(self, toy_pp):
        with pytest.raises(UnknownInstructionError) as info:
            IVCProver(toy_pp).prove([(0, 3), (2, 0)])
        assert info.value.instruction == 2
        assert info.value.num_instructions == 2

    def test_initial_pc_mismatch(self, toy_pp):
        with pytest.raises(ConstraintViolationError):
            IVCProver(toy_pp).prove(SCENARIO_TRACE, initial_pc=1)

    def test_empty_trace(self, toy_pp):
        with pytest.raises(ValueError):
            IVCProver(toy_pp).prove([])

    def test_instruction_chosen_next_pc_must_match_trace(self, toy_scheme):
        pp = setup(Program([_Jump(), Double()]), toy_scheme)
        with pytest.raises(ConstraintViolationError):
            IVCProver(pp).prove([(0, 1), (0, 1)])

    def test_instruction_chosen_next_pc_accepted(self, toy_scheme):
        pp = setup(Program([_Jump(), Double()]), toy_scheme)
        proof = IVCProver(pp).prove([(0, 3), (1, 0)])
        assert verify(pp, proof, 6)

    def test_cancel_before_first_step(self, toy_pp):
        event = threading.Event()
        event.set()
        with pytest.raises(ProvingCancelled) as info:
            IVCProver(toy_pp).prove(SCENARIO_TRACE, cancel=event)
        assert info.value.completed_steps == 0

    def test_cancel_between_steps(self, toy_pp):
        prover = IVCProver(toy_pp)
        with pytest.raises(ProvingCancelled) as info:
            prover.prove(SCENARIO_TRACE, cancel=_CancelAfter(2))
        assert info.value.completed_steps == 2
        # 누산기는 마지막 완료 단계 상태로 남고 finalize 되지 않는다
        assert not prover.table.finalized
        with pytest.raises(AccumulatorError):
            prover.opening()


# ─────────────────────────────────────────────────────────────────────
# 조작된 증명
# ─────────────────────────────────────────────────────────────────────

class TestTampering:
    def test_changed_step_output(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[1].step_output = [F(9)]
        result = verify(toy_pp, bad, SCENARIO_OUTPUT)
        assert result.failure is VerificationFailure.HASH_CHAIN_BROKEN
        assert result.step == 1

    def test_changed_public_input(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[0].latest.public_inputs[0] += 1
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.HASH_CHAIN_BROKEN

    def test_changed_cross_term(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        scheme = toy_pp.scheme
        bad.records[1].cross_term = scheme.add(bad.records[1].cross_term, scheme.commit([F(1)]))
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.HASH_CHAIN_BROKEN

    def test_changed_initial_pc(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.initial_pc = 1
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.HASH_CHAIN_BROKEN

    def test_reordered_steps(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[1], bad.records[2] = bad.records[2], bad.records[1]
        assert not verify(toy_pp, bad, SCENARIO_OUTPUT)

    def test_wrong_slot_updated(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        record = bad.records[1]
        record.accumulators = {0: record.accumulators[1]}
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.MALFORMED_PROOF

    def test_out_of_range_instruction(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[0].instruction = 7
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.MALFORMED_PROOF

    def test_bool_instruction_rejected(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[1].instruction = True
        result = verify(toy_pp, bad, SCENARIO_OUTPUT)
        assert result.failure is VerificationFailure.MALFORMED_PROOF
        assert result.step == 1
        assert IVCVerifier(toy_pp).obligations(bad) is None

    def test_bool_next_instruction_rejected(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[0].next_instruction = True
        result = verify(toy_pp, bad, SCENARIO_OUTPUT)
        assert result.failure is VerificationFailure.MALFORMED_PROOF
        assert result.step == 0

    def test_broken_record_fields_do_not_raise(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.records[1].latest = None
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.MALFORMED_PROOF
        bad = _copy(proof, toy_pp.scheme)
        bad.records[2].accumulators = {"0": bad.records[2].accumulators[0]}
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.MALFORMED_PROOF

    def test_not_a_proof(self, toy_pp):
        assert verify(toy_pp, "proof", 9).failure is VerificationFailure.MALFORMED_PROOF

    def test_empty_proof(self, toy_pp):
        empty = RunningProof(2, 0, [F(3)])
        assert verify(toy_pp, empty, 3).failure is VerificationFailure.MALFORMED_PROOF

    def test_instruction_count_mismatch(self, toy_pp, scenario):
        _, proof = scenario
        bad = _copy(proof, toy_pp.scheme)
        bad.num_instructions = 3
        assert verify(toy_pp, bad, SCENARIO_OUTPUT).failure is VerificationFailure.MALFORMED_PROOF


class TestStepVariants:
    def test_base_variant_only_at_first_step(self, toy_pp, scenario):
        _, proof = scenario
        table = [U for U, _ in toy_pp.identity_table()]
        table[0] = proof.records[0].accumulators[0]
        result = IVCVerifier(toy_pp).check_step(proof, 1, table, StepVariant.BASE)
        assert result.failure is VerificationFailure.MALFORMED_PROOF

    def test_folded_variant_needs_previous_step(self, toy_pp, scenario):
        _, proof = scenario
        table = [U for U, _ in toy_pp.identity_table()]
        result = IVCVerifier(toy_pp).check_step(proof, 0, table, StepVariant.FOLDED)
        assert result.failure is VerificationFailure.MALFORMED_PROOF

    def test_base_variant_needs_identity_table(self, toy_pp, scenario):
        _, proof = scenario
        table = [U for U, _ in toy_pp.identity_table()]
        table[0] = proof.records[0].accumulators[0]
        result = IVCVerifier(toy_pp).check_step(proof, 0, table, StepVariant.BASE)
        assert result.failure is VerificationFailure.MALFORMED_PROOF

    def test_single_step_trace(self, toy_pp):
        prover = IVCProver(toy_pp)
        proof = prover.prove([(0, 3)])
        assert len(proof) == 1
        assert proof.final_output == [F(4)]

        result = verify(toy_pp, proof, 4, opening=prover.opening())
        assert result
        assert result.obligations == []

        verifier = IVCVerifier(toy_pp)
        table = [U for U, _ in toy_pp.identity_table()]
        assert verifier.check_step(proof, 0, table, StepVariant.BASE)
        folded = verifier.check_step(proof, 0, table, StepVariant.FOLDED)
        assert folded.failure is VerificationFailure.MALFORMED_PROOF

    def test_each_step_checks_alone(self, toy_pp, scenario):
        _, proof = scenario
        verifier = IVCVerifier(toy_pp)
        table = [U for U, _ in toy_pp.identity_table()]
        for index, record in enumerate(proof.records):
            assert verifier.check_step(proof, index, table, StepVariant.for_step(index + 1))
            table[record.instruction] = record.accumulators[record.instruction]


# ─────────────────────────────────────────────────────────────────────
# 코덱
# ─────────────────────────────────────────────────────────────────────

class TestCodec:
    def test_roundtrip_is_canonical(self, toy_pp, scenario):
        _, proof = scenario
        data = proof.to_bytes(toy_pp.scheme)
        decoded = RunningProof.from_bytes(data, toy_pp.scheme)
        assert decoded == proof
        assert decoded.to_bytes(toy_pp.scheme) == data

    def test_trailing_bytes_rejected(self, toy_pp, scenario):
        _, proof = scenario
        with pytest.raises(SerializationError):
            RunningProof.from_bytes(proof.to_bytes(toy_pp.scheme) + b"\x00", toy_pp.scheme)

    def test_truncated_rejected(self, toy_pp, scenario):
        _, proof = scenario
        with pytest.raises(SerializationError):
            RunningProof.from_bytes(proof.to_bytes(toy_pp.scheme)[:-1], toy_pp.scheme)

    def test_bad_magic_rejected(self, toy_pp, scenario):
        _, proof = scenario
        data = proof.to_bytes(toy_pp.scheme)
        with pytest.raises(SerializationError):
            RunningProof.from_bytes(b"XNOVA\x01" + data[6:], toy_pp.scheme)

    @pytest.mark.parametrize("params, run", [("toy_pp", "scenario"), ("m31_pp", "m31_run")])
    def test_byte_flips_detected(self, request, params, run):
        pp = request.getfixturevalue(params)
        _, proof = request.getfixturevalue(run)
        scheme = pp.scheme
        data = proof.to_bytes(scheme)
        bound = [(r.latest, r.cross_term, r.accumulators) for r in proof.records]
        for position in range(len(data)):
            flipped = bytearray(data)
            flipped[position] ^= 0x01
            try:
                decoded = RunningProof.from_bytes(bytes(flipped), scheme)
            except SerializationError:
                continue
            if not verify(pp, decoded, proof.final_output):
                continue
            # 97원소 필드의 상태 해시는 충돌할 수 있다. 그때도 바뀐 값은
            # 해시로만 묶이는 단계 출력이나 next_instruction 이어야 한다
            assert pp.field is TOY_FIELD, position
            assert [(r.latest, r.cross_term, r.accumulators) for r in decoded.records] == bound, position


# ─────────────────────────────────────────────────────────────────────
# 두 회로 프로그램 (M31)
# ─────────────────────────────────────────────────────────────────────

class TestMultiCircuit:
    def test_outputs_match_native(self, m31_run):
        _, proof = m31_run
        p = 2 ** 31 - 1
        x = 2
        expected = []
        for op in (0, 1, 1, 0):
            x = (x ** 3 + x + 5) % p if op == 0 else (x * x) % p
            expected.append(x)
        assert [int(r.step_output[0]) for r in proof.records] == expected
        assert proof.final_output == [M31_FIELD(expected[-1])]

    def test_verifies_with_opening(self, m31_pp, m31_run):
        prover, proof = m31_run
        result = verify(m31_pp, proof, proof.final_output, opening=prover.opening())
        assert result
        assert result.obligations == []

    def test_rejects_other_program_params(self, toy_pp, m31_run):
        _, proof = m31_run
        result = verify(toy_pp, proof, proof.final_output)
        assert not result
