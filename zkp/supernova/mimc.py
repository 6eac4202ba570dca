"""
MiMC 대수적 해시 (Algebraic Hash)
==================================

IVC의 상태 해시와 fold 챌린지는 회로 안에서도 다시 계산되어야 한다.
SHA-256은 R1CS로 표현하기에 너무 비싸므로, 필드 연산만으로 이루어진
MiMC 순열을 쓴다. 같은 구성이 gadgets.mimc_hash로도 제공되어
네이티브 해시와 회로 내 해시가 비트 단위로 일치한다.

**순열 (키 k)**:
  x ← (x + k + c_j)^α   (j = 0..rounds-1, c_0 = 0)
  E_k(x) = x + k

  - α: p - 1 과 서로소인 가장 작은 소수 (x ↦ x^α 가 필드 위의 순열이 되는 조건)
      | 필드        | α  |
      |-------------|----|
      | 97          | 5  |
      | 2^31 - 1    | 5  |
      | bn128 Fr    | 5  |
  - rounds: ceil(log_α p), 최소 3
  - c_j: SHA-256(seed || j) 에서 유도한 라운드 상수

**스펀지 (Miyaguchi-Preneel)**:
  h_0 = iv,  h ← E_h(m) + h + m

**도메인 분리**:
  tag(label) 은 레이블 바이트열을 필드 원소로 옮긴 값이다. 해시의 iv나
  트랜스크립트의 레이블 원소로 사용한다.

사용 예시:
    >>> hasher = MiMCHash(TOY_FIELD)
    >>> hasher.alpha
    5
    >>> h = hasher.hash([TOY_FIELD(1), TOY_FIELD(2)], iv=hasher.tag(b"io"))
"""

import hashlib
import math

from zkp.supernova.field import to_field


def _is_small_prime(n):
    return n >= 2 and all(n % d for d in range(2, int(n ** 0.5) + 1))


def choose_alpha(modulus):
    """p - 1 과 서로소인 3 이상의 가장 작은 소수 지수."""
    alpha = 3
    while True:
        if _is_small_prime(alpha) and math.gcd(alpha, modulus - 1) == 1:
            return alpha
        alpha += 2


class MiMCHash:
    """필드 위의 MiMC 해시.

    속성:
        field: 필드 클래스
        alpha: S-box 지수
        rounds: 라운드 수
        constants: 라운드 상수 리스트 (첫 상수는 0)
    """

    def __init__(self, field, rounds=None, seed=b"supernova-mimc"):
        self.field = field
        self.seed = seed
        modulus = field.field_modulus
        self.alpha = choose_alpha(modulus)
        if rounds is None:
            rounds = max(3, math.ceil(modulus.bit_length() / math.log2(self.alpha)))
        self.rounds = rounds
        self.constants = [field(0)]
        for j in range(1, rounds):
            digest = hashlib.sha256(seed + j.to_bytes(4, "big")).digest()
            self.constants.append(field(int.from_bytes(digest, "big")))

    def tag(self, label):
        """레이블 바이트열 → 필드 원소."""
        digest = hashlib.sha256(b"supernova-tag:" + label).digest()
        return self.field(int.from_bytes(digest, "big"))

    def permute(self, x, key):
        """E_key(x)."""
        x = to_field(self.field, x)
        key = to_field(self.field, key)
        for c in self.constants:
            x = (x + key + c) ** self.alpha
        return x + key

    def hash(self, elements, iv=None):
        """Miyaguchi-Preneel 스펀지로 원소 리스트를 해싱한다.

        Args:
            elements: 필드 원소 또는 정수 리스트
            iv: 초기 체이닝 값 (기본값 0)

        Returns:
            필드 원소
        """
        h = self.field(0) if iv is None else to_field(self.field, iv)
        for m in elements:
            m = to_field(self.field, m)
            h = self.permute(m, h) + h + m
        return h

    def __repr__(self):
        return f"MiMCHash(p={self.field.field_modulus}, alpha={self.alpha}, rounds={self.rounds})"
