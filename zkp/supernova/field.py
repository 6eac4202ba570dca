"""
SuperNova 기반 모듈: 유한체(Finite Field)
==========================================

folding 엔진의 모든 산술은 소수체 위에서 이루어진다.

**필드 클래스**:
  py_ecc의 bn128_FQ 를 상속하여 field_modulus만 바꾼 클래스를 만든다. +, -, *, /, ** 연산을 그대로 쓴다.

  | 이름       | 위수(modulus)        | 용도                                 |
  |------------|----------------------|--------------------------------------|
  | FR         | bn128.curve_order    | Pedersen(bn128 G1) 커밋먼트와 함께 사용 |
  | TOY_FIELD  | 97                   | 손으로 따라갈 수 있는 예제/테스트        |
  | M31_FIELD  | 2^31 - 1             | 충돌 확률이 무시할 만한 빠른 테스트      |

**직렬화**:
  원소는 고정 폭 빅엔디안 바이트열로 인코딩한다. 디코딩 시 값이 위수 이상이면
  정규 형식이 아니므로 거부한다 (바이트 단위 왕복 일치를 보장).

사용 예시:
    >>> F = prime_field(97)
    >>> F(50) + F(60)
    13
    >>> element_from_bytes(F, element_to_bytes(F(13))) == F(13)
    True
"""

from py_ecc.fields import bn128_FQ as FQ
from py_ecc import bn128

from zkp.supernova.errors import SerializationError


# ─────────────────────────────────────────────────────────────────────
# 필드 클래스
# ─────────────────────────────────────────────────────────────────────

class FR(FQ):
    """bn128 스칼라 필드 위의 유한체 원소."""
    field_modulus = bn128.curve_order


CURVE_ORDER = bn128.curve_order

_FIELDS = {CURVE_ORDER: FR}


def prime_field(modulus):
    """위수가 modulus인 소수체 클래스를 반환한다 (같은 위수면 같은 클래스).

    Args:
        modulus: 소수 위수 (소수성은 호출자가 보장한다)

    Returns:
        FQ 서브클래스
    """
    if modulus < 2:
        raise ValueError(f"필드 위수는 2 이상이어야 합니다: {modulus}")
    field = _FIELDS.get(modulus)
    if field is None:
        field = type(f"F{modulus}", (FQ,), {"field_modulus": modulus})
        _FIELDS[modulus] = field
    return field


TOY_FIELD = prime_field(97)

M31_FIELD = prime_field(2 ** 31 - 1)


# ─────────────────────────────────────────────────────────────────────
# 타원곡선 연산 (Pedersen 커밋먼트용)
# ─────────────────────────────────────────────────────────────────────

# G1 그룹 생성자 (generator)
G1 = bn128.G1

# bn128에서 G1의 항등원은 None으로 표현
Z1 = None


def ec_mul(point, scalar):
    """타원곡선 스칼라 곱셈: scalar · point (항등원 입력 허용)."""
    scalar = int(scalar) % CURVE_ORDER
    if point is None or scalar == 0:
        return None
    return bn128.multiply(point, scalar)


def ec_add(p1, p2):
    return bn128.add(p1, p2)


# ─────────────────────────────────────────────────────────────────────
# 변환 헬퍼
# ─────────────────────────────────────────────────────────────────────

def to_field(field, value):
    """정수 또는 같은 필드의 원소를 field 원소로 변환한다.

    다른 필드의 원소는 조용히 재해석하지 않고 TypeError를 던진다.
    """
    if type(value) is field:
        return value
    if isinstance(value, FQ):
        raise TypeError(
            f"다른 필드의 원소입니다: {type(value).__name__} (기대: {field.__name__})"
        )
    if isinstance(value, int):
        return field(value)
    raise TypeError(f"필드 원소로 변환할 수 없습니다: {value!r}")


def to_field_list(field, values):
    return [to_field(field, v) for v in values]


def field_bytes(field):
    """원소 하나의 고정 인코딩 폭 (바이트)."""
    return (field.field_modulus.bit_length() + 7) // 8


def element_to_bytes(element):
    return int(element).to_bytes(field_bytes(type(element)), "big")


def element_from_bytes(field, data):
    """고정 폭 빅엔디안 바이트열을 원소로 디코딩한다.

    Raises:
        SerializationError: 폭이 맞지 않거나 값이 위수 이상일 때
    """
    if len(data) != field_bytes(field):
        raise SerializationError(
            f"필드 원소 폭이 맞지 않습니다: {len(data)} != {field_bytes(field)}"
        )
    value = int.from_bytes(data, "big")
    if value >= field.field_modulus:
        raise SerializationError("정규 형식이 아닌 필드 원소 (값 >= 위수)")
    return field(value)
