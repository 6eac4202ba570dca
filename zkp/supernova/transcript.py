"""
SuperNova Fiat-Shamir Transcript
==================================

fold 챌린지 r 을 비대화식으로 만들기 위한 트랜스크립트.

**두 가지 변형**:
  | 클래스               | 챌린지 계산                          | 용도                        |
  |----------------------|--------------------------------------|-----------------------------|
  | Transcript           | SHA-256(누적 바이트열) mod p         | 단독 NIFS, 테스트           |
  | AlgebraicTranscript  | MiMC(마지막 챌린지 이후 흡수한 원소) | IVC (회로 안에서 재계산)    |

  IVC 에서는 다음 단계의 augmented circuit 이 r 을 다시 계산해야 하므로
  필드 연산만으로 이루어진 AlgebraicTranscript 를 사용한다.

**공통 인터페이스**:
  absorb(label, elements), append_scalar(label, x), challenge_scalar(label)

  Prover 와 Verifier 가 같은 순서로 같은 데이터를 흡수하면 같은 챌린지가 나온다.
  트랜스크립트는 숨은 난수를 갖지 않으며, 한 번에 한 소유자만 사용하는 가변 객체다.

사용 예시:
    >>> t = Transcript(TOY_FIELD, label=b"nifs")
    >>> t.absorb(b"U1", [TOY_FIELD(3), TOY_FIELD(4)])
    >>> r = t.challenge_scalar(b"r")
"""

import hashlib

from zkp.supernova.field import FR, field_bytes, to_field


class Transcript:
    """SHA-256 기반 Fiat-Shamir 트랜스크립트.

    해시 상태를 누적하여 결정론적이면서 예측 불가능한 챌린지를 생성한다.

    속성:
        field: 챌린지가 속하는 필드
        state: 현재까지 누적된 해시 입력 바이트열

    보안 주의:
        - 모든 데이터는 레이블(label)과 함께 추가하여 도메인 분리 보장
        - 트랜스크립트 순서가 다르면 다른 챌린지가 생성됨
    """

    def __init__(self, field=FR, label=b"supernova"):
        self.field = field
        self.state = bytearray()
        self.state.extend(label)

    def append_scalar(self, label, scalar):
        """필드 원소를 고정 폭 빅엔디안으로 추가한다."""
        self.state.extend(label)
        val = int(scalar) % self.field.field_modulus
        self.state.extend(val.to_bytes(field_bytes(self.field), "big"))

    def append_bytes(self, label, data):
        self.state.extend(label)
        self.state.extend(len(data).to_bytes(4, "big"))
        self.state.extend(data)

    def append_commitment(self, label, scheme, commitment):
        """커밋먼트를 정규 바이트 인코딩으로 추가한다."""
        self.append_bytes(label, scheme.to_bytes(commitment))

    def absorb(self, label, elements):
        elements = list(elements)
        self.state.extend(label)
        self.state.extend(len(elements).to_bytes(4, "big"))
        for e in elements:
            self.append_scalar(b"", e)

    def challenge_scalar(self, label):
        """현재 상태의 SHA-256 을 필드로 축소한 챌린지 (상태에 체이닝됨)."""
        self.state.extend(label)
        h = hashlib.sha256(bytes(self.state)).digest()
        challenge = self.field(int.from_bytes(h, "big"))
        self.state.extend(h)
        return challenge


class AlgebraicTranscript:
    """MiMC 기반 트랜스크립트.

    state 는 직전 챌린지 (처음에는 tag(label)) 이고, pending 은 그 뒤 흡수한 원소들이다.

      absorb(label, xs)      : pending += [tag(label)] + xs
      challenge_scalar(label): pending += [tag(label)]
                               c = MiMC(pending, iv=state); state = c; pending = []

    같은 계산을 gadgets.mimc_hash 로 회로 안에서 그대로 재현할 수 있다.
    """

    def __init__(self, hasher, label=b"supernova"):
        self.hasher = hasher
        self.field = hasher.field
        self.state = hasher.tag(label)
        self.pending = []

    def absorb(self, label, elements):
        self.pending.append(self.hasher.tag(label))
        self.pending.extend(to_field(self.field, e) for e in elements)

    def append_scalar(self, label, scalar):
        self.absorb(label, [scalar])

    def challenge_scalar(self, label):
        self.pending.append(self.hasher.tag(label))
        challenge = self.hasher.hash(self.pending, iv=self.state)
        self.state = challenge
        self.pending = []
        return challenge
