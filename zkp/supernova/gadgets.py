"""
회로 가젯 (Circuit Gadgets)
============================

augmented circuit과 명령어 회로가 공유하는 작은 제약 묶음들.
모든 가젯은 ConstraintSystem 위에서 값을 할당하면서 제약을 추가하며,
제약의 구조는 입력 값과 무관하다.

  | 가젯        | 제약                                      |
  |-------------|-------------------------------------------|
  | boolean     | b·(b - 1) = 0                             |
  | is_zero     | x·inv = 1 - f,  x·f = 0                   |
  | one_hot     | s_j 불리언, Σ s_j = 1, Σ j·s_j = index     |
  | select      | out = f·(a - b) + b                       |
  | pow_alpha   | 좌→우 제곱-곱셈 (square-and-multiply)      |
  | mimc_hash   | MiMCHash.hash 와 같은 값을 회로에서 계산   |
"""


def boolean(cs, value):
    """불리언 변수를 할당하고 b·(b - 1) = 0 으로 제약한다."""
    b = cs.alloc(value)
    cs.enforce(b, b - 1, cs.constant(0))
    return b


def is_zero(cs, x):
    """x == 0 이면 1, 아니면 0 인 플래그.

    x ≠ 0 이면 inv = 1/x 로 첫 제약이 f = 0 을 강제하고,
    x = 0 이면 첫 제약에서 f = 1 이 된다.
    """
    x = cs.lc(x)
    v = cs.value(x)
    zero = v == 0
    inv = cs.alloc(0 if zero else cs.field(1) / v)
    flag = cs.alloc(1 if zero else 0)
    cs.enforce(x, inv, cs.one() - flag)
    cs.enforce(x, flag, cs.constant(0))
    return flag


def is_equal(cs, a, b):
    return is_zero(cs, cs.lc(a) - cs.lc(b))


def one_hot(cs, index, size):
    """index (0..size-1) 의 원-핫 비트 리스트.

    index가 범위 밖이면 Σ s_j = 1 제약이 만족되지 않는다.
    """
    index = cs.lc(index)
    value = int(cs.value(index))
    bits = [boolean(cs, 1 if j == value else 0) for j in range(size)]
    total = cs.constant(0)
    weighted = cs.constant(0)
    for j, bit in enumerate(bits):
        total = total + bit
        weighted = weighted + bit * j
    cs.enforce(total, cs.one(), cs.one())
    cs.enforce(weighted, cs.one(), index)
    return bits


def select(cs, flag, if_true, if_false):
    """flag ? if_true : if_false  (flag는 불리언이어야 한다)."""
    if_false = cs.lc(if_false)
    return if_false + cs.mul(flag, cs.lc(if_true) - if_false)


def linear_sum(cs, items):
    total = cs.constant(0)
    for item in items:
        total = total + item
    return total


def pow_alpha(cs, base, alpha):
    """base^alpha 를 좌→우 제곱-곱셈으로 계산한다 (alpha ≥ 2)."""
    base = cs.lc(base)
    acc = base
    for bit in bin(alpha)[3:]:
        acc = cs.mul(acc, acc)
        if bit == "1":
            acc = cs.mul(acc, base)
    return acc


def mimc_permute(cs, hasher, x, key):
    x = cs.lc(x)
    key = cs.lc(key)
    for c in hasher.constants:
        x = pow_alpha(cs, x + key + c, hasher.alpha)
    return x + key


def mimc_hash(cs, hasher, elements, iv):
    """회로 내 MiMC 해시. 결과 값은 hasher.hash(values, iv) 와 같다.

    Args:
        elements: 선형결합 또는 상수 리스트
        iv: 상수 초기값

    Returns:
        LinearCombination
    """
    h = cs.constant(iv)
    for m in elements:
        m = cs.lc(m)
        h = mimc_permute(cs, hasher, m, h) + h + m
    return h


def alloc_vector(cs, values):
    return [cs.alloc(v) for v in values]