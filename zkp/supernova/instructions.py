"""
교육용 명령어 회로 (Toy VM Instructions)
=========================================

상태 길이 1 (arity = 1) 의 작은 명령어들. 예제와 테스트에서 사용한다.

  | 명령어          | step 함수           | 제약                             |
  |-----------------|---------------------|----------------------------------|
  | AddConstant(c)  | z + c               | (z + c)·1 = out                  |
  | Double()        | 2·z                 | (2z)·1 = out                     |
  | Square()        | z²                  | z·z = out                        |
  | Cubic()         | z³ + z + 5          | z·z = x2, x2·z = x3, (x3+z+5)·1 = out |
  | MulInput()      | z · a  (a: 보조 입력)| z·a = out                        |

**toy_vm()**: [AddConstant(1), Double()] 의 두 명령어 프로그램.
  트레이스 [(0, 3), (1, 5), (0, 7)] 는 z0 = 3 에서
  3 → 4 → 8 → 9 를 계산한다.

사용 예시:
    >>> program = toy_vm()
    >>> program[1].execute(None, [TOY_FIELD(4)]).output
    [8]
"""

from zkp.supernova.augmented import StepCircuit, StepOutput
from zkp.supernova.program import Program


class AddConstant(StepCircuit):
    def __init__(self, constant=1):
        self.constant = constant
        self.name = f"add{constant}"

    def execute(self, step_input, z):
        return StepOutput([z[0] + self.constant])

    def synthesize(self, cs, z, step_input):
        out = cs.alloc(cs.value(z[0]) + self.constant)
        cs.enforce(z[0] + self.constant, cs.one(), out)
        return [out]


class Double(StepCircuit):
    name = "double"

    def execute(self, step_input, z):
        return StepOutput([z[0] * 2])

    def synthesize(self, cs, z, step_input):
        out = cs.alloc(cs.value(z[0]) * 2)
        cs.enforce(z[0] * 2, cs.one(), out)
        return [out]


class Square(StepCircuit):
    name = "square"

    def execute(self, step_input, z):
        return StepOutput([z[0] * z[0]])

    def synthesize(self, cs, z, step_input):
        return [cs.mul(z[0], z[0])]


class Cubic(StepCircuit):
    """x³ + x + 5."""

    name = "cubic"

    def execute(self, step_input, z):
        x = z[0]
        return StepOutput([x * x * x + x + 5])

    def synthesize(self, cs, z, step_input):
        x = z[0]
        x2 = cs.mul(x, x)
        x3 = cs.mul(x2, x)
        out = cs.alloc(cs.value(x3 + x + 5))
        cs.enforce(x3 + x + 5, cs.one(), out)
        return [out]


class MulInput(StepCircuit):
    """상태에 단계 보조 입력을 곱한다 (step_input 이 None 이면 0)."""

    name = "mul_input"

    def execute(self, step_input, z):
        a = 0 if step_input is None else step_input
        return StepOutput([z[0] * a])

    def synthesize(self, cs, z, step_input):
        a = cs.alloc(0 if step_input is None else step_input)
        return [cs.mul(z[0], a)]


def toy_vm():
    """AddConstant(1) 과 Double() 두 명령어의 프로그램."""
    return Program([AddConstant(1), Double()])
