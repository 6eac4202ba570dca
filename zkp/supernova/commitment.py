"""
벡터 커밋먼트 (Commitment Collaborator)
========================================

folding은 커밋먼트의 가법 준동형성에 의존한다:

  Com(a; ρ) + r·Com(b; σ) = Com(a + r·b; ρ + r·σ)

**백엔드**:
  | 클래스                  | 그룹                              | 필드                |
  |-------------------------|-----------------------------------|---------------------|
  | PedersenCommitment      | bn128 G1 (py_ecc)                 | FR (bn128 scalar)   |
  | SchnorrGroupCommitment  | Z_p^* 의 위수 q 부분군, p = k·q+1 | 임의의 소수체 F_q   |

  Schnorr 그룹 백엔드는 위수 97 같은 작은 교육용 필드에서도 준동형 커밋먼트를
  쓸 수 있게 해 준다. bn128 백엔드는 실제 곡선 연산을 사용한다.

**생성자 (Generators)**:
  seed 의 SHA-256 에서 결정론적으로 유도한다 (교육용, 신뢰 설정 없음).
  g_i 사이의 이산로그 관계는 아무도 모른다고 가정한다. 필요한 만큼만 지연 생성하여
  캐시한다. 캐시 확장은 락으로 직렬화하므로 스킴을 여러 스레드가 공유해도 된다.

**인코딩**:
  to_bytes / from_bytes 는 고정 폭 정규 인코딩이며, from_bytes 는 그룹 원소인지
  검사한다. limbs(c) 는 커밋먼트를 (비트길이(q) - 1) 비트 단위로 잘라 필드 원소
  num_limbs 개로 옮기는 단사(injective) 인코딩이다. 회로 안에서 커밋먼트를
  해시할 때 사용한다.

사용 예시:
    >>> scheme = SchnorrGroupCommitment(TOY_FIELD)
    >>> scheme.p, scheme.cofactor
    (389, 4)
    >>> c1 = scheme.commit([TOY_FIELD(1), TOY_FIELD(2)])
    >>> c2 = scheme.commit([TOY_FIELD(3), TOY_FIELD(4)])
    >>> scheme.add(c1, scheme.scale(c2, 5)) == scheme.commit([TOY_FIELD(16), TOY_FIELD(22)])
    True
"""

import hashlib
import logging
import threading

from py_ecc import bn128

from zkp.supernova.errors import SerializationError
from zkp.supernova.field import FR, G1, Z1, CURVE_ORDER, ec_add, ec_mul
from zkp.supernova.parallel import chunked, parallel_map


logger = logging.getLogger(__name__)


_MR_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37)


def is_probable_prime(n):
    """Miller-Rabin 소수 판정 (n < 3.3·10^24 에서 결정론적)."""
    if n < 2:
        return False
    for p in _MR_BASES:
        if n % p == 0:
            return n == p
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for a in _MR_BASES:
        x = pow(a, d, n)
        if x in (1, n - 1):
            continue
        for _ in range(s - 1):
            x = x * x % n
            if x == n - 1:
                break
        else:
            return False
    return True


def find_schnorr_modulus(q):
    """p = k·q + 1 이 소수인 가장 작은 짝수 k 를 찾는다.

    Returns:
        (p, k)
    """
    if q < 3 or not is_probable_prime(q):
        raise ValueError(f"q 는 홀수 소수여야 합니다: {q}")
    k = 2
    while not is_probable_prime(k * q + 1):
        k += 2
    return k * q + 1, k


def _seed_int(seed, label, counter):
    data = seed + b"/" + label + b"/" + counter.to_bytes(4, "big")
    return int.from_bytes(hashlib.sha256(data).digest(), "big")


# ─────────────────────────────────────────────────────────────────────
# 공통 인터페이스
# ─────────────────────────────────────────────────────────────────────

class CommitmentScheme:
    """준동형 벡터 커밋먼트의 공통 인터페이스.

    하위 클래스는 field, byte_length 와 group 연산을 제공한다.
    """

    field = None
    byte_length = None

    def commit(self, values, blinding=0):
        raise NotImplementedError

    def add(self, a, b):
        raise NotImplementedError

    def scale(self, c, scalar):
        raise NotImplementedError

    def zero(self):
        raise NotImplementedError

    def to_bytes(self, c):
        raise NotImplementedError

    def from_bytes(self, data):
        raise NotImplementedError

    def equal(self, a, b):
        return self.to_bytes(a) == self.to_bytes(b)

    @property
    def limb_bits(self):
        return self.field.field_modulus.bit_length() - 1

    @property
    def num_limbs(self):
        return -(-8 * self.byte_length // self.limb_bits)

    def limbs(self, c):
        """커밋먼트 → 필드 원소 num_limbs 개 (하위 limb 먼저)."""
        n = int.from_bytes(self.to_bytes(c), "big")
        bits = self.limb_bits
        mask = (1 << bits) - 1
        out = []
        for _ in range(self.num_limbs):
            out.append(self.field(n & mask))
            n >>= bits
        return out


# ─────────────────────────────────────────────────────────────────────
# Schnorr 그룹 Pedersen 커밋먼트
# ─────────────────────────────────────────────────────────────────────

class SchnorrGroupCommitment(CommitmentScheme):
    """Z_p^* 의 위수 q 부분군 위의 Pedersen 커밋먼트.

    Com(v; ρ) = h^ρ · Π g_i^{v_i}  (mod p)

    속성:
        field: 스칼라 필드 F_q
        p: 소수 p = k·q + 1
        cofactor: k
        byte_length: 그룹 원소 인코딩 폭
    """

    def __init__(self, field, seed=b"supernova-commit", workers=1):
        self.field = field
        self.seed = seed
        self.workers = workers
        self.q = field.field_modulus
        self.p, self.cofactor = find_schnorr_modulus(self.q)
        self.byte_length = (self.p.bit_length() + 7) // 8
        self._generators = []
        self._lock = threading.Lock()
        self.h = self._derive(b"blinding")
        logger.debug("Schnorr group: q=%d p=%d k=%d", self.q, self.p, self.cofactor)

    def _derive(self, label):
        counter = 0
        while True:
            g = pow(_seed_int(self.seed, label, counter) % self.p, self.cofactor, self.p)
            if g not in (0, 1):
                return g
            counter += 1

    def generators(self, n):
        """처음 n 개의 생성자 (부족하면 유도해서 캐시)."""
        with self._lock:
            while len(self._generators) < n:
                self._generators.append(self._derive(b"g%d" % len(self._generators)))
            return self._generators[:n]

    def _partial(self, pairs):
        acc = 1
        for g, v in pairs:
            if v:
                acc = acc * pow(g, v, self.p) % self.p
        return acc

    def commit(self, values, blinding=0):
        gens = self.generators(len(values))
        pairs = [(g, int(v) % self.q) for g, v in zip(gens, values)]
        parts = parallel_map(self._partial, chunked(pairs, self.workers), self.workers)
        acc = pow(self.h, int(blinding) % self.q, self.p)
        for part in parts:
            acc = acc * part % self.p
        return acc

    def add(self, a, b):
        return a * b % self.p

    def scale(self, c, scalar):
        return pow(c, int(scalar) % self.q, self.p)

    def zero(self):
        return 1

    def to_bytes(self, c):
        return c.to_bytes(self.byte_length, "big")

    def from_bytes(self, data):
        if len(data) != self.byte_length:
            raise SerializationError(
                f"커밋먼트 폭이 맞지 않습니다: {len(data)} != {self.byte_length}"
            )
        c = int.from_bytes(data, "big")
        if not 1 <= c < self.p or pow(c, self.q, self.p) != 1:
            raise SerializationError("부분군 원소가 아닌 커밋먼트")
        return c

    def __repr__(self):
        return f"SchnorrGroupCommitment(q={self.q}, p={self.p})"


# ─────────────────────────────────────────────────────────────────────
# bn128 G1 Pedersen 커밋먼트
# ─────────────────────────────────────────────────────────────────────

class PedersenCommitment(CommitmentScheme):
    """bn128 G1 위의 Pedersen 벡터 커밋먼트.

    Com(v; ρ) = ρ·H + Σ v_i·G_i

    생성자는 G_i = H(seed, i)·G1 으로 유도한다.
    무한원점은 64바이트의 0 으로 인코딩한다.
    """

    field = FR
    byte_length = 64

    def __init__(self, seed=b"supernova-pedersen", workers=1):
        self.seed = seed
        self.workers = workers
        self._generators = []
        self._lock = threading.Lock()
        self.h = self._derive(b"blinding")

    def _derive(self, label):
        scalar = _seed_int(self.seed, label, 0) % CURVE_ORDER
        return ec_mul(G1, scalar or 1)

    def generators(self, n):
        with self._lock:
            while len(self._generators) < n:
                self._generators.append(self._derive(b"g%d" % len(self._generators)))
            return self._generators[:n]

    def _partial(self, pairs):
        acc = Z1
        for g, v in pairs:
            acc = ec_add(acc, ec_mul(g, v))
        return acc

    def commit(self, values, blinding=0):
        gens = self.generators(len(values))
        pairs = [(g, int(v)) for g, v in zip(gens, values) if int(v) % CURVE_ORDER]
        parts = parallel_map(self._partial, chunked(pairs, self.workers), self.workers)
        acc = ec_mul(self.h, blinding)
        for part in parts:
            acc = ec_add(acc, part)
        return acc

    def add(self, a, b):
        return ec_add(a, b)

    def scale(self, c, scalar):
        return ec_mul(c, scalar)

    def zero(self):
        return Z1

    def to_bytes(self, c):
        if c is None:
            return b"\x00" * 64
        x, y = c
        return int(x).to_bytes(32, "big") + int(y).to_bytes(32, "big")

    def from_bytes(self, data):
        if len(data) != 64:
            raise SerializationError(f"G1 점 폭이 맞지 않습니다: {len(data)} != 64")
        if data == b"\x00" * 64:
            return Z1
        x = int.from_bytes(data[:32], "big")
        y = int.from_bytes(data[32:], "big")
        if x >= bn128.field_modulus or y >= bn128.field_modulus:
            raise SerializationError("정규 형식이 아닌 G1 좌표")
        point = (bn128.FQ(x), bn128.FQ(y))
        if not bn128.is_on_curve(point, bn128.b):
            raise SerializationError("G1 곡선 위의 점이 아닙니다")
        return point

    def __repr__(self):
        return "PedersenCommitment(bn128 G1)"


def default_scheme(field, config=None):
    """필드에 맞는 커밋먼트 스킴 (FR 이면 bn128 Pedersen, 아니면 Schnorr 그룹)."""
    if config is None:
        return PedersenCommitment() if field is FR else SchnorrGroupCommitment(field)
    if field is FR:
        return PedersenCommitment(seed=config.generator_seed, workers=config.workers)
    return SchnorrGroupCommitment(field, seed=config.generator_seed, workers=config.workers)
