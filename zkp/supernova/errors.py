"""
SuperNova 오류 종류 (Error Kinds)
===================================

증명 엔진이 던지거나 반환하는 오류를 한곳에 모은다.

**던지는 오류 (치명적, 재시도 없음)**:
  - ShapeMismatchError: 서로 다른 회로 형태(shape)의 인스턴스를 접거나 검사하려 함
  - UnknownInstructionError: 트레이스가 설정된 명령어 집합 밖의 id를 참조함
  - ConstraintViolationError: 명령어 회로 실행이 자기 제약을 만족하지 못함 (Prover 버그)
  - AccumulatorError: 누산기 테이블의 단계당 1회 갱신 규칙 위반
  - SerializationError: 실행 증명(running proof) 바이트열이 정규 형식이 아님
  - ProvingCancelled: 단계 사이의 협조적 취소 지점에서 증명이 중단됨

**반환하는 실패 (Verifier)**:
  VerificationFailure 열거형으로 원인을 구분한다. Verifier는 예외를 던지지 않는다.

folding과 proving은 입력이 같으면 결과가 같으므로, 어느 곳에서도 자동 재시도를 하지 않는다.
"""

from enum import Enum


class SupernovaError(Exception):
    """SuperNova 엔진 오류의 기반 클래스."""


class ShapeMismatchError(SupernovaError, ValueError):
    """서로 다른 회로 형태 사이의 fold/검사 시도 (호출자 버그)."""


class UnknownInstructionError(SupernovaError, LookupError):
    """설정된 명령어 집합 밖의 명령어 id."""

    def __init__(self, instruction, num_instructions):
        super().__init__(
            f"알 수 없는 명령어 id {instruction!r} (설정된 명령어 수: {num_instructions})"
        )
        self.instruction = instruction
        self.num_instructions = num_instructions


class ConstraintViolationError(SupernovaError):
    """회로 실행이 자기 관계를 만족하지 못함. 해당 트레이스의 증명은 만들어지지 않는다."""


class AccumulatorError(SupernovaError):
    """누산기 테이블 수명 주기 위반."""


class SerializationError(SupernovaError, ValueError):
    """정규 형식이 아닌 직렬화 데이터."""


class ProvingCancelled(SupernovaError):
    """협조적 취소. 누산기는 마지막으로 완료된 단계의 상태로 남는다."""

    def __init__(self, completed_steps):
        super().__init__(f"{completed_steps}개 단계 이후 증명이 취소되었습니다")
        self.completed_steps = completed_steps


class VerificationFailure(Enum):
    """Verifier가 반환하는 실패 원인 (진단용, 위트니스 정보는 담지 않는다)."""

    MALFORMED_PROOF = "malformed-proof-shape"
    HASH_CHAIN_BROKEN = "hash-chain-broken"
    DEFERRED_RELATION_FAILED = "deferred-relation-failed"
