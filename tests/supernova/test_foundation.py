"""
SuperNova 기반 모듈 테스트: 필드, R1CS, 가젯
==============================================

테스트 범위:
  - prime_field 캐시와 모듈러 산술
  - to_field 의 외부 필드 거부, 원소 인코딩의 정규성
  - LinearCombination 산술과 ConstraintSystem 합성
  - R1CSShape 다이제스트와 행렬 곱
  - 불리언 / is_zero / one_hot / select 가젯
  - SupernovaConfig 의 workers 기본값과 검증
"""

import pytest

from zkp.supernova.config import SupernovaConfig
from zkp.supernova.errors import SerializationError
from zkp.supernova.field import (
    FR,
    M31_FIELD,
    TOY_FIELD,
    element_from_bytes,
    element_to_bytes,
    field_bytes,
    prime_field,
    to_field,
)
from zkp.supernova.gadgets import boolean, is_equal, is_zero, one_hot, pow_alpha, select
from zkp.supernova.r1cs import ConstraintSystem, LinearCombination, R1CSShape


F = TOY_FIELD


# ─────────────────────────────────────────────────────────────────────
# Field
# ─────────────────────────────────────────────────────────────────────

class TestField:
    def test_prime_field_is_cached(self):
        assert prime_field(97) is TOY_FIELD
        assert prime_field(FR.field_modulus) is FR

    def test_arithmetic_mod_97(self):
        assert F(50) + F(60) == 13
        assert F(3) - F(5) == 95
        assert F(10) * F(10) == 3
        assert F(1) / F(3) * F(3) == 1

    def test_to_field_rejects_foreign_element(self):
        with pytest.raises(TypeError):
            to_field(F, M31_FIELD(3))

    def test_to_field_accepts_int_and_same_field(self):
        x = F(5)
        assert to_field(F, x) is x
        assert to_field(F, 102) == 5

    def test_element_bytes_fixed_width(self):
        assert field_bytes(F) == 1
        assert field_bytes(M31_FIELD) == 4
        assert element_to_bytes(M31_FIELD(1)) == b"\x00\x00\x00\x01"

    def test_non_canonical_element_rejected(self):
        with pytest.raises(SerializationError):
            element_from_bytes(F, bytes([97]))
        with pytest.raises(SerializationError):
            element_from_bytes(F, b"\x00\x01")


# ─────────────────────────────────────────────────────────────────────
# Linear combinations / constraint system
# ─────────────────────────────────────────────────────────────────────

class TestConstraintSystem:
    def test_lc_cancellation_removes_terms(self):
        cs = ConstraintSystem(F)
        x = cs.alloc(4)
        assert (x - x).terms == {}
        assert (x * 0).terms == {}

    def test_lc_constant_arithmetic(self):
        cs = ConstraintSystem(F)
        x = cs.alloc(4)
        assert cs.value(x * 3 + 5) == 17
        assert cs.value(10 - x) == 6

    def test_lc_product_not_allowed(self):
        cs = ConstraintSystem(F)
        x = cs.alloc(4)
        with pytest.raises(TypeError):
            x * x

    def test_mul_allocates_and_constrains(self):
        cs = ConstraintSystem(F)
        x = cs.alloc(7)
        y = cs.mul(x, x)
        assert cs.value(y) == 49
        assert cs.num_constraints == 1
        assert cs.is_satisfied()

    def test_unsatisfied_constraint_detected(self):
        cs = ConstraintSystem(F)
        x = cs.alloc(3)
        y = cs.alloc(10)
        cs.enforce(x, x, y)
        assert not cs.is_satisfied()
        assert cs.which_is_unsatisfied() == 0

    def test_shape_columns_follow_u_x_w_layout(self):
        cs = ConstraintSystem(F)
        x = cs.alloc(3)
        y = cs.alloc_input(9)
        cs.enforce(x, x, y)
        shape = cs.to_shape()
        assert (shape.num_inputs, shape.num_vars, shape.num_constraints) == (1, 1, 1)
        assert shape.A[0] == ((2, F(1)),)
        assert shape.C[0] == ((1, F(1)),)
        assert shape.is_satisfied([F(9)], [F(3)])
        assert not shape.is_satisfied([F(10)], [F(3)])


class TestShape:
    def _shape(self, coeff):
        cs = ConstraintSystem(F)
        x = cs.alloc(1)
        cs.enforce(x * coeff, cs.one(), x * coeff)
        return cs.to_shape()

    def test_digest_is_stable_and_structural(self):
        assert self._shape(2).digest() == self._shape(2).digest()
        assert self._shape(2).digest() != self._shape(3).digest()
        assert len(self._shape(2).digest()) == 32

    def test_multiply_rejects_wrong_length(self):
        with pytest.raises(ValueError):
            self._shape(2).multiply([F(1)])

    def test_multiply_with_workers_matches_sequential(self, cubic_builder, toy_scheme):
        shape, instance, witness = cubic_builder(F, 3, toy_scheme)
        z = [F(1)] + instance.public_inputs + witness.values
        assert shape.multiply(z, workers=3) == shape.multiply(z)

    def test_column_out_of_range_rejected(self):
        with pytest.raises(ValueError):
            R1CSShape(F, 1, 0, 1, [((5, F(1)),)], [()], [()])


# ─────────────────────────────────────────────────────────────────────
# Gadgets
# ─────────────────────────────────────────────────────────────────────

class TestGadgets:
    def test_boolean_rejects_two(self):
        cs = ConstraintSystem(F)
        boolean(cs, 2)
        assert not cs.is_satisfied()

    @pytest.mark.parametrize("value,expected", [(0, 1), (5, 0), (96, 0)])
    def test_is_zero(self, value, expected):
        cs = ConstraintSystem(F)
        flag = is_zero(cs, cs.alloc(value))
        assert cs.value(flag) == expected
        assert cs.is_satisfied()

    def test_is_zero_cannot_lie(self):
        cs = ConstraintSystem(F)
        flag = is_zero(cs, cs.alloc(5))
        # flag 변수를 1 로 조작
        (var,) = flag.terms
        cs.aux[var[1]] = F(1)
        assert not cs.is_satisfied()

    def test_is_equal(self):
        cs = ConstraintSystem(F)
        assert cs.value(is_equal(cs, cs.alloc(4), cs.constant(4))) == 1
        assert cs.value(is_equal(cs, cs.alloc(4), cs.constant(5))) == 0
        assert cs.is_satisfied()

    def test_one_hot(self):
        cs = ConstraintSystem(F)
        bits = one_hot(cs, cs.alloc(2), 4)
        assert [int(cs.value(b)) for b in bits] == [0, 0, 1, 0]
        assert cs.is_satisfied()

    def test_one_hot_out_of_range_is_unsatisfiable(self):
        cs = ConstraintSystem(F)
        one_hot(cs, cs.alloc(5), 4)
        assert not cs.is_satisfied()

    def test_select(self):
        cs = ConstraintSystem(F)
        a, b = cs.alloc(11), cs.alloc(22)
        assert cs.value(select(cs, boolean(cs, 1), a, b)) == 11
        assert cs.value(select(cs, boolean(cs, 0), a, b)) == 22
        assert cs.is_satisfied()

    @pytest.mark.parametrize("alpha", [3, 5, 17])
    def test_pow_alpha(self, alpha):
        cs = ConstraintSystem(F)
        assert cs.value(pow_alpha(cs, cs.alloc(7), alpha)) == F(7) ** alpha
        assert cs.is_satisfied()


# ─────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────

class TestConfig:
    def test_workers_from_environment(self, monkeypatch):
        monkeypatch.setenv("SUPERNOVA_WORKERS", "3")
        assert SupernovaConfig().workers == 3
        assert SupernovaConfig(workers=2).workers == 2

    def test_default_single_worker(self, monkeypatch):
        monkeypatch.delenv("SUPERNOVA_WORKERS", raising=False)
        config = SupernovaConfig()
        assert config.workers == 1
        assert config.check_steps is True

    def test_workers_must_be_positive(self):
        with pytest.raises(ValueError):
            SupernovaConfig(workers=0)
