"""
SuperNova IVC Verifier
=======================

실행 증명을 단계별로 재생(replay)하며 다음을 확인한다.

**단계 검사 (위트니스 불필요)**:
  | 검사                                         | 실패 종류            |
  |----------------------------------------------|----------------------|
  | 명령어 id 범위, 출력 길이, 인스턴스 형태     | MALFORMED_PROOF      |
  | 신선한 인스턴스 (u = 1, C_E = Com(0))        | MALFORMED_PROOF      |
  | 갱신된 슬롯이 정확히 이번 명령어 하나        | MALFORMED_PROOF      |
  | 기저/fold 변형이 단계 위치와 맞음            | MALFORMED_PROOF      |
  | pc 체인 (initial_pc, 직전 next_instruction)  | HASH_CHAIN_BROKEN    |
  | 공개 입력 = H_io(params, i, pc, next, z0, z_i, D(T^{i-1})) | HASH_CHAIN_BROKEN |
  | 누산기 = NIFS.verify(슬롯, 인스턴스, Com(T)) | HASH_CHAIN_BROKEN    |
  | 최종 출력 = 주장한 출력                      | HASH_CHAIN_BROKEN    |

**지연된 검사 (Deferred check)**:
  재생이 끝난 뒤 최종 테이블의 인스턴스들은 "완화 관계를 만족하는 위트니스가
  존재한다" 는 의무(DeferredObligation)로 남는다. Prover 의 opening (최종 위트니스)
  이 주어지면 관계와 커밋먼트 열림을 직접 검사하고, 실패하면
  DEFERRED_RELATION_FAILED 를 반환한다. 이 검사는 간결(succinct)하지 않다.

Verifier 는 잘못된 증명에 대해 예외를 던지지 않고 VerificationResult 를 반환한다.

사용 예시:
    >>> result = verify(pp, proof, 9)
    >>> bool(result)
    True
    >>> verify(pp, proof, 10).failure
    <VerificationFailure.HASH_CHAIN_BROKEN: 'hash-chain-broken'>
"""

import logging

from zkp.supernova import nifs
from zkp.supernova.augmented import StepVariant, state_hash, table_digest
from zkp.supernova.errors import SupernovaError, VerificationFailure
from zkp.supernova.field import to_field_list
from zkp.supernova.proof import RunningProof
from zkp.supernova.relaxed import is_satisfied, opens


logger = logging.getLogger(__name__)


class VerificationResult:
    """검증 결과. 성공이면 참(truthy).

    속성:
        failure: VerificationFailure 또는 None
        reason: 사람이 읽을 수 있는 설명
        step: 실패한 단계 인덱스 (0부터, 해당 없으면 None)
        obligations: 남은 DeferredObligation 리스트
    """

    def __init__(self, failure=None, reason="", step=None, obligations=()):
        self.failure = failure
        self.reason = reason
        self.step = step
        self.obligations = list(obligations)

    @property
    def ok(self):
        return self.failure is None

    def __bool__(self):
        return self.ok

    def __repr__(self):
        if self.ok:
            return f"VerificationResult(ok, obligations={len(self.obligations)})"
        return f"VerificationResult({self.failure.value}, step={self.step}, reason={self.reason!r})"


def _fail(failure, reason, step=None):
    return VerificationResult(failure, reason, step)


def _is_instruction_id(value, num_instructions):
    """bool 은 int 의 하위 클래스지만 명령어 id 로 받지 않는다."""
    return (
        isinstance(value, int) and not isinstance(value, bool)
        and 0 <= value < num_instructions
    )


class DeferredObligation:
    """최종 누산기 인스턴스가 만족 가능하다는 의무."""

    def __init__(self, instruction, shape, instance):
        self.instruction = instruction
        self.shape = shape
        self.instance = instance

    def discharge(self, witness, scheme, workers=1):
        """위트니스로 관계와 커밋먼트 열림을 검사한다."""
        return is_satisfied(self.shape, self.instance, witness, workers) and opens(
            self.instance, witness, scheme
        )

    def __repr__(self):
        return f"DeferredObligation(instruction={self.instruction}, {self.instance!r})"


class IVCVerifier:
    def __init__(self, pp):
        self.pp = pp

    # ── 단계 검사 ─────────────────────────────────────────────────────

    def check_step(self, proof, index, table, variant):
        """레코드 index 를 테이블 T^{i-1} (인스턴스 리스트) 에 대해 검사한다.

        테이블은 바꾸지 않는다. 성공하면 ok 인 VerificationResult.
        """
        pp = self.pp
        scheme = pp.scheme
        record = proof.records[index]
        i = index + 1
        L = pp.num_instructions
        malformed = VerificationFailure.MALFORMED_PROOF
        broken = VerificationFailure.HASH_CHAIN_BROKEN

        op = record.instruction
        if not _is_instruction_id(op, L):
            return _fail(malformed, f"명령어 id {op!r} 가 범위 밖입니다", index)
        if not _is_instruction_id(record.next_instruction, L):
            return _fail(malformed, f"다음 명령어 id {record.next_instruction!r} 가 범위 밖입니다", index)
        if len(record.step_output) != pp.arity:
            return _fail(malformed, "단계 출력 길이가 arity 와 다릅니다", index)

        shape = pp.shape(op)
        latest = record.latest
        if latest.shape_digest != shape.digest() or len(latest.public_inputs) != 1:
            return _fail(malformed, "인스턴스가 명령어 회로 형태와 맞지 않습니다", index)
        if not latest.is_fresh(scheme):
            return _fail(malformed, "신선하지 않은 단계 인스턴스 (예상 밖의 교차항)", index)
        if set(record.accumulators) != {op}:
            return _fail(malformed, "갱신된 누산기 슬롯이 이번 명령어 하나가 아닙니다", index)
        updated = record.accumulators[op]
        if updated.shape_digest != shape.digest() or len(updated.public_inputs) != 1:
            return _fail(malformed, "누산기 인스턴스가 회로 형태와 맞지 않습니다", index)

        if variant is StepVariant.BASE:
            if index != 0:
                return _fail(malformed, "기저 변형은 첫 단계에서만 쓸 수 있습니다", index)
            identities = [U for U, _ in pp.identity_table()]
            if list(table) != identities:
                return _fail(malformed, "기저 단계 이전에 이미 접힌 인스턴스가 있습니다", index)
            if op != proof.initial_pc:
                return _fail(broken, "첫 명령어가 initial_pc 와 다릅니다", index)
        else:
            if index == 0:
                return _fail(malformed, "fold 변형은 직전 단계가 필요합니다", index)
            if proof.records[index - 1].next_instruction != op:
                return _fail(broken, "직전 단계의 next_instruction 과 명령어가 다릅니다", index)

        digest = table_digest(pp.hasher, scheme, table)
        expected = state_hash(
            pp.hasher, pp.params, i, op, record.next_instruction,
            proof.z0, record.step_output, digest,
        )
        if latest.public_inputs[0] != expected:
            return _fail(broken, "상태 해시가 이전 단계와 이어지지 않습니다", index)

        folded = nifs.verify(table[op], latest, record.cross_term, pp.fold_transcript(), scheme)
        if folded != updated:
            return _fail(broken, "누산기 갱신이 fold 결과와 다릅니다", index)
        return VerificationResult()

    # ── 전체 검증 ─────────────────────────────────────────────────────

    def _replay(self, proof, claimed_final_output):
        pp = self.pp
        malformed = VerificationFailure.MALFORMED_PROOF
        if not isinstance(proof, RunningProof):
            return _fail(malformed, "RunningProof 가 아닙니다"), None
        if proof.num_instructions != pp.num_instructions:
            return _fail(malformed, "명령어 수가 공개 파라미터와 다릅니다"), None
        if not proof.records:
            return _fail(malformed, "단계가 하나도 없습니다"), None
        if len(proof.z0) != pp.arity:
            return _fail(malformed, "z0 길이가 arity 와 다릅니다"), None

        table = [U for U, _ in pp.identity_table()]
        for index, record in enumerate(proof.records):
            result = self.check_step(proof, index, table, StepVariant.for_step(index + 1))
            if not result:
                return result, None
            table[record.instruction] = record.accumulators[record.instruction]
            logger.debug("verified step %d (instruction %d)", index + 1, record.instruction)

        claimed = claimed_final_output
        if not isinstance(claimed, (list, tuple)):
            claimed = [claimed]
        if to_field_list(pp.field, claimed) != proof.final_output:
            return _fail(VerificationFailure.HASH_CHAIN_BROKEN, "최종 출력이 주장과 다릅니다"), None
        return VerificationResult(), table

    def _checked_replay(self, proof, claimed_final_output):
        """_replay 와 같지만 구조 오류로 생긴 예외를 MALFORMED_PROOF 로 바꾼다."""
        try:
            return self._replay(proof, claimed_final_output)
        except (SupernovaError, TypeError, ValueError, AttributeError, LookupError) as exc:
            logger.info("malformed proof: %s", exc)
            return _fail(VerificationFailure.MALFORMED_PROOF, f"형식 오류: {exc}"), None

    def obligations(self, proof):
        """재생이 성공하면 최종 테이블의 지연 의무 리스트, 아니면 None."""
        result, table = self._checked_replay(proof, proof.final_output)
        if not result:
            return None
        return self._obligations(table)

    def _obligations(self, table):
        return [
            DeferredObligation(j, self.pp.shapes[j], U) for j, U in enumerate(table)
        ]

    def verify(self, proof, claimed_final_output, opening=None):
        """실행 증명을 검증한다.

        Args:
            proof: RunningProof
            claimed_final_output: 주장하는 최종 상태 (정수, 원소 또는 리스트)
            opening: Prover 의 최종 누산기 위트니스 리스트 (선택)

        Returns:
            VerificationResult
        """
        result, table = self._checked_replay(proof, claimed_final_output)
        if not result:
            logger.info("verification failed: %r", result)
            return result

        obligations = self._obligations(table)
        if opening is not None:
            opening = list(opening)
            if len(opening) != len(obligations):
                return _fail(
                    VerificationFailure.DEFERRED_RELATION_FAILED,
                    "opening 의 위트니스 수가 명령어 수와 다릅니다",
                )
            workers = self.pp.config.workers
            for obligation, witness in zip(obligations, opening):
                if not obligation.discharge(witness, self.pp.scheme, workers):
                    return _fail(
                        VerificationFailure.DEFERRED_RELATION_FAILED,
                        f"명령어 {obligation.instruction} 누산기가 완화 관계를 만족하지 않습니다",
                    )
            obligations = []
        return VerificationResult(obligations=obligations)


def verify(pp, proof, claimed_final_output, opening=None):
    """IVCVerifier(pp).verify(...) 의 단축형."""
    return IVCVerifier(pp).verify(proof, claimed_final_output, opening)
