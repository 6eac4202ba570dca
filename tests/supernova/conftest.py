import os
import sys

import pytest

# 프로젝트 루트를 sys.path에 추가
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from zkp.supernova.commitment import SchnorrGroupCommitment
from zkp.supernova.field import M31_FIELD, TOY_FIELD
from zkp.supernova.instructions import Cubic, Square, toy_vm
from zkp.supernova.program import Program, setup
from zkp.supernova.prover import IVCProver
from zkp.supernova.r1cs import ConstraintSystem
from zkp.supernova.relaxed import StrictInstance, StrictWitness


# ── 테스트 상수 ──
SCENARIO_TRACE = [(0, 3), (1, 5), (0, 7)]
SCENARIO_OUTPUT = 9


def build_cubic(field, x, scheme):
    """x³ + x + 5 = y 회로를 합성하고 (shape, 엄격 인스턴스, 위트니스) 를 반환한다.

    공개 입력: y / 위트니스: x, x², x³
    """
    cs = ConstraintSystem(field)
    xv = cs.alloc(x)
    x2 = cs.mul(xv, xv)
    x3 = cs.mul(x2, xv)
    y = cs.alloc_input(cs.value(x3 + xv + 5))
    cs.enforce(x3 + xv + 5, cs.one(), y)
    shape = cs.to_shape()
    inputs, values = cs.assignment()
    instance = StrictInstance(shape.digest(), scheme.commit(values), inputs)
    return shape, instance, StrictWitness(values, field(0))


@pytest.fixture(scope="session")
def cubic_builder():
    return build_cubic


@pytest.fixture(scope="session")
def toy_scheme():
    return SchnorrGroupCommitment(TOY_FIELD)


@pytest.fixture(scope="session")
def m31_scheme():
    return SchnorrGroupCommitment(M31_FIELD)


@pytest.fixture(scope="session")
def toy_pp(toy_scheme):
    """add1 / double toy VM 의 공개 파라미터 (F_97)."""
    return setup(toy_vm(), toy_scheme)


@pytest.fixture(scope="session")
def m31_pp(m31_scheme):
    """cubic / square 두 회로 프로그램의 공개 파라미터 (F_{2^31-1})."""
    return setup(Program([Cubic(), Square()]), m31_scheme)


@pytest.fixture(scope="session")
def scenario(toy_pp):
    """[(0,3), (1,5), (0,7)] 트레이스의 (prover, proof)."""
    prover = IVCProver(toy_pp)
    proof = prover.prove(SCENARIO_TRACE, initial_pc=0)
    return prover, proof


@pytest.fixture(scope="session")
def m31_run(m31_pp):
    """cubic 과 square 를 섞은 트레이스의 (prover, proof)."""
    prover = IVCProver(m31_pp)
    proof = prover.prove([(0, 2), (1, 0), (1, 0), (0, 0)], initial_pc=0)
    return prover, proof
