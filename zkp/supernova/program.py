"""
프로그램과 공개 파라미터 (Program / Setup)
===========================================

**Program**: 닫힌 명령어 집합. 크기와 순서가 고정되며, 인덱스가 명령어 id 이다.

**setup**: 각 명령어의 augmented circuit 을 더미 위트니스로 한 번 합성하여
회로 형태(R1CSShape)를 고정하고, 모든 형태 다이제스트를 묶은 params 를 계산한다.
결과 PublicParams 는 Prover 와 Verifier 가 읽기 전용으로 공유한다.

  PublicParams
  ├── program    : Program
  ├── scheme     : 커밋먼트 스킴
  ├── hasher     : MiMCHash
  ├── circuits   : [AugmentedCircuit]   (명령어당 하나)
  ├── shapes     : [R1CSShape]          (명령어당 하나)
  └── params     : params 다이제스트 (모든 상태 해시에 들어감)

사용 예시:
    >>> pp = setup(toy_vm(), SchnorrGroupCommitment(TOY_FIELD))
    >>> pp.num_instructions
    2
"""

import logging

from zkp.supernova.augmented import AugmentedCircuit, StepWitness, params_digest
from zkp.supernova.config import SupernovaConfig
from zkp.supernova.errors import UnknownInstructionError
from zkp.supernova.mimc import MiMCHash
from zkp.supernova.nifs import FOLD_LABEL, LABEL_PARAMS
from zkp.supernova.relaxed import identity
from zkp.supernova.transcript import AlgebraicTranscript


logger = logging.getLogger(__name__)


class Program:
    """명령어 회로의 고정 크기 목록.

    Raises:
        ValueError: 명령어가 없거나 arity 가 서로 다를 때
    """

    def __init__(self, instructions, arity=None):
        self.instructions = list(instructions)
        if not self.instructions:
            raise ValueError("명령어가 하나 이상 필요합니다")
        if arity is None:
            arity = self.instructions[0].arity
        for step in self.instructions:
            if step.arity != arity:
                raise ValueError(f"{step!r} 의 arity {step.arity} != {arity}")
        self.arity = arity

    def __len__(self):
        return len(self.instructions)

    def __getitem__(self, instruction):
        return self.instructions[self.check(instruction)]

    def check(self, instruction):
        """명령어 id 가 범위 안인지 확인하고 그대로 돌려준다."""
        if isinstance(instruction, bool) or not isinstance(instruction, int) \
                or not 0 <= instruction < len(self.instructions):
            raise UnknownInstructionError(instruction, len(self.instructions))
        return instruction


class PublicParams:
    """setup 결과. 생성 후 변경하지 않는다."""

    def __init__(self, program, scheme, hasher, circuits, shapes, params, config):
        self.program = program
        self.scheme = scheme
        self.hasher = hasher
        self.circuits = circuits
        self.shapes = shapes
        self.params = params
        self.config = config

    @property
    def field(self):
        return self.scheme.field

    @property
    def num_instructions(self):
        return len(self.program)

    @property
    def arity(self):
        return self.program.arity

    def shape(self, instruction):
        return self.shapes[self.program.check(instruction)]

    def circuit(self, instruction):
        return self.circuits[self.program.check(instruction)]

    def fold_transcript(self):
        """IVC fold 용 트랜스크립트 (params 를 먼저 흡수). 호출마다 새 객체."""
        transcript = AlgebraicTranscript(self.hasher, FOLD_LABEL)
        transcript.absorb(LABEL_PARAMS, [self.params])
        return transcript

    def identity_table(self):
        """모든 슬롯이 identity 인 (인스턴스, 위트니스) 리스트."""
        return [identity(shape, self.scheme) for shape in self.shapes]


def setup(program, scheme, hasher=None, config=None):
    """명령어별 회로 형태와 params 를 계산한다.

    Args:
        program: Program
        scheme: 커밋먼트 스킴 (필드를 결정한다)
        hasher: MiMCHash (기본값: 스킴 필드 위의 MiMCHash)
        config: SupernovaConfig

    Returns:
        PublicParams
    """
    config = config or SupernovaConfig()
    hasher = hasher or MiMCHash(scheme.field)
    if hasher.field is not scheme.field:
        raise ValueError("해시와 커밋먼트 스킴의 필드가 다릅니다")

    circuits = [
        AugmentedCircuit(index, step, len(program), program.arity, scheme, hasher)
        for index, step in enumerate(program.instructions)
    ]
    shapes = []
    for circuit in circuits:
        blank = StepWitness.blank(scheme, len(program), program.arity, circuit.index)
        cs, _ = circuit.synthesize(blank)
        shape = cs.to_shape()
        logger.debug("instruction %d (%s): %r", circuit.index, circuit.step.name, shape)
        shapes.append(shape)

    params = params_digest(hasher, shapes)
    logger.info(
        "setup: %d instructions, field %d, %d constraints max",
        len(program), scheme.field.field_modulus, max(s.num_constraints for s in shapes),
    )
    return PublicParams(program, scheme, hasher, circuits, shapes, params, config)
