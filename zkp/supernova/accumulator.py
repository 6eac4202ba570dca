"""
누산기 테이블 (Accumulator Table)
==================================

명령어 id 로 인덱싱되는 고정 크기 목록. 슬롯 j 는 지금까지 명령어 j 로 실행된
모든 단계를 접은 완화 (인스턴스, 위트니스) 쌍이다.

**수명 주기**:
  - 생성 시 모든 슬롯은 identity (아무것도 접지 않은 상태)
  - begin_step() 이후 update 는 한 번만 허용 (한 단계에 한 슬롯만 바뀜)
  - finalize() 이후 update 불가

  ┌──────────┬──────────┬─────┬──────────┐
  │ slot 0   │ slot 1   │ ... │ slot L-1 │
  │ (U0, W0) │ (U1, W1) │     │          │
  └──────────┴──────────┴─────┴──────────┘

사용 예시:
    >>> table = AccumulatorTable(pp)
    >>> table.begin_step()
    >>> table.update(0, folded_pair)
"""

from zkp.supernova.augmented import table_digest
from zkp.supernova.errors import AccumulatorError
from zkp.supernova.nifs import check_shape


class AccumulatorTable:
    def __init__(self, pp):
        self.program = pp.program
        self.shapes = list(pp.shapes)
        self._entries = pp.identity_table()
        self._updated = None
        self._finalized = False

    def __len__(self):
        return len(self._entries)

    @property
    def finalized(self):
        return self._finalized

    def get(self, instruction):
        """슬롯의 (인스턴스, 위트니스) 쌍."""
        return self._entries[self.program.check(instruction)]

    def instances(self):
        return [U for U, _ in self._entries]

    def witnesses(self):
        return [W for _, W in self._entries]

    def begin_step(self):
        self._updated = None

    def update(self, instruction, pair):
        """슬롯을 접힌 쌍으로 교체한다.

        Raises:
            UnknownInstructionError: 범위 밖의 id
            AccumulatorError: 같은 단계의 두 번째 갱신, 또는 finalize 이후 갱신
            ShapeMismatchError: 쌍이 슬롯의 형태와 맞지 않을 때
        """
        instruction = self.program.check(instruction)
        if self._finalized:
            raise AccumulatorError("finalize 된 테이블은 갱신할 수 없습니다")
        if self._updated is not None:
            raise AccumulatorError(
                f"이번 단계에서 이미 슬롯 {self._updated} 이 갱신되었습니다"
            )
        U, W = pair
        check_shape(self.shapes[instruction], U, W)
        self._entries[instruction] = (U, W)
        self._updated = instruction

    def digest(self, hasher, scheme):
        return table_digest(hasher, scheme, self.instances())

    def finalize(self):
        self._finalized = True
