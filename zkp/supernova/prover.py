"""
SuperNova IVC Prover
=====================

트레이스 [(명령어 id, 보조 입력), ...] 를 따라 단계마다 augmented circuit 을
실행하고, 그 인스턴스를 해당 명령어의 누산기 슬롯에 접는다.

**단계 i 의 흐름**:
  1. 취소 확인 (단계 사이에서만)
  2. StepWitness 구성: 직전 fold 의 (T^{i-2}, u_{i-1}, Com(T), U') 와 z_{i-1}
  3. augmented circuit 합성 → 자기 제약 검사 → 위트니스 커밋
  4. 네이티브 실행과 출력/다음 pc 대조
  5. relax 후 슬롯 op_i 와 fold (AlgebraicTranscript: params → U1 → U2 → Com(T) → r)
  6. StepRecord 추가

**트레이스 의미**:
  - z0 는 첫 항목의 보조 입력이다 (arity 에 맞게 0 으로 채움)
  - 이후 단계는 직전 출력 위에서 실행되고, 항목의 보조 입력은 명령어가 advice 로 쓴다
  - initial_pc 는 첫 항목의 명령어와 같아야 한다
  - 다음 pc 는 다음 항목의 명령어이다 (마지막 단계는 자기 자신)

사용 예시:
    >>> pp = setup(toy_vm(), SchnorrGroupCommitment(TOY_FIELD))
    >>> proof = prove(pp, [(0, 3), (1, 5), (0, 7)], initial_pc=0)
    >>> [int(v) for v in proof.final_output]
    [9]
"""

import logging

from zkp.supernova import nifs
from zkp.supernova.accumulator import AccumulatorTable
from zkp.supernova.augmented import StepWitness, normalize_state
from zkp.supernova.errors import (
    AccumulatorError,
    ConstraintViolationError,
    ProvingCancelled,
)
from zkp.supernova.field import to_field
from zkp.supernova.proof import RunningProof, StepRecord
from zkp.supernova.relaxed import relax


logger = logging.getLogger(__name__)


class _FoldContext:
    """직전 단계의 fold 정보 (다음 augmented circuit 의 위트니스)."""

    def __init__(self, table, latest, cross_term, folded, pc):
        self.table = table
        self.latest = latest
        self.cross_term = cross_term
        self.folded = folded
        self.pc = pc


class IVCProver:
    """트레이스를 실행하며 실행 증명을 만든다.

    속성:
        pp: PublicParams
        config: SupernovaConfig (기본값: pp.config)
        table: 마지막 prove 호출의 AccumulatorTable
    """

    def __init__(self, pp, config=None):
        self.pp = pp
        self.config = config or pp.config
        self.table = None

    def _normalize_trace(self, trace):
        entries = []
        for entry in trace:
            instruction, step_input = entry
            self.pp.program.check(instruction)
            if step_input is not None and not isinstance(step_input, (list, tuple)):
                step_input = to_field(self.pp.field, step_input)
            entries.append((instruction, step_input))
        if not entries:
            raise ValueError("트레이스가 비어 있습니다")
        return entries

    def prove(self, trace, initial_pc=0, cancel=None):
        """트레이스 전체의 실행 증명을 만든다.

        Args:
            trace: (명령어 id, 보조 입력) 리스트
            initial_pc: 첫 명령어 id
            cancel: is_set() 을 가진 객체 (threading.Event 등), 단계 사이에서 확인

        Returns:
            RunningProof

        Raises:
            UnknownInstructionError: 범위 밖의 명령어 id
            ConstraintViolationError: 회로가 자기 제약을 만족하지 못하거나 pc 전이가 맞지 않을 때
            ProvingCancelled: 취소되었을 때 (self.table 은 마지막 완료 단계 상태)
        """
        pp = self.pp
        entries = self._normalize_trace(trace)
        pp.program.check(initial_pc)
        if entries[0][0] != initial_pc:
            raise ConstraintViolationError(
                f"첫 명령어 {entries[0][0]} 이 initial_pc {initial_pc} 와 다릅니다"
            )

        z0 = normalize_state(pp.field, entries[0][1], pp.arity)
        proof = RunningProof(pp.num_instructions, initial_pc, z0)
        self.table = AccumulatorTable(pp)
        context = None
        z = z0

        for index, (instruction, step_input) in enumerate(entries):
            if cancel is not None and cancel.is_set():
                logger.info("proving cancelled after %d steps", index)
                raise ProvingCancelled(index)

            i = index + 1
            next_pc = entries[index + 1][0] if index + 1 < len(entries) else instruction
            witness = self._step_witness(i, instruction, next_pc, z0, z, step_input, context)
            record, context = self._step(witness)
            proof.append(record)
            z = record.step_output
            logger.info(
                "step %d: instruction %d (%s) -> %d, output %s",
                i, instruction, pp.program[instruction].name, next_pc,
                [int(v) for v in z],
            )

        self.table.finalize()
        return proof

    def _step_witness(self, i, instruction, next_pc, z0, z, step_input, context):
        pp = self.pp
        if context is None:
            return StepWitness.base(
                pp.params, instruction, next_pc, z0, step_input,
                self.table.instances(), pp.scheme,
            )
        return StepWitness(
            pp.params, i, instruction, next_pc, context.pc, z0, z, step_input,
            context.table, context.latest, context.cross_term, context.folded,
        )

    def _step(self, witness):
        pp = self.pp
        instruction = witness.pc
        circuit = pp.circuit(instruction)
        shape = pp.shape(instruction)

        native = circuit.native_output(witness)
        if native.next_instruction is not None and native.next_instruction != witness.next_pc:
            raise ConstraintViolationError(
                f"명령어 {instruction} 의 다음 명령어 {native.next_instruction} 가 "
                f"트레이스의 {witness.next_pc} 와 다릅니다"
            )

        execution = circuit.execute(shape, witness, check=self.config.check_steps)
        if execution.output != native.output:
            raise ConstraintViolationError(
                f"명령어 {instruction} 단계 {witness.i}: 회로 출력이 네이티브 실행과 다릅니다"
            )
        logger.debug(
            "step %d: %d constraints, h = %d",
            witness.i, shape.num_constraints, int(execution.instance.public_inputs[0]),
        )

        latest = relax(shape, execution.instance, execution.witness, pp.scheme)
        before = self.table.instances()
        self.table.begin_step()
        comm_T, folded = nifs.fold(
            shape, self.table.get(instruction), latest,
            pp.fold_transcript(), pp.scheme, self.config.workers,
        )
        self.table.update(instruction, folded)

        record = StepRecord(
            instruction, witness.next_pc, execution.output,
            latest[0], comm_T, {instruction: folded[0]},
        )
        context = _FoldContext(before, latest[0], comm_T, folded[0], instruction)
        return record, context

    def opening(self):
        """마지막 증명의 최종 누산기 위트니스 (지연된 검사용)."""
        if self.table is None or not self.table.finalized:
            raise AccumulatorError("완료된 증명이 없습니다")
        return self.table.witnesses()


def prove(pp, trace, initial_pc=0, config=None, cancel=None):
    """IVCProver(pp, config).prove(trace, initial_pc, cancel) 의 단축형."""
    return IVCProver(pp, config).prove(trace, initial_pc, cancel)
