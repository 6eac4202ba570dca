"""
비대화식 폴딩 (NIFS, Non-Interactive Folding Scheme)
=====================================================

같은 회로 형태의 완화 인스턴스 두 개를 하나로 접는다.

**교차항 (cross term)**:
  T = (A·z1)∘(B·z2) + (A·z2)∘(B·z1) - u1·(C·z2) - u2·(C·z1)

**fold (챌린지 r)**:
  | 구성  | 결과                          |
  |-------|-------------------------------|
  | C_W'  | C_W1 + r·C_W2                 |
  | C_E'  | C_E1 + r·Com(T) + r²·C_E2     |
  | u'    | u1 + r·u2                     |
  | X'    | X1 + r·X2                     |
  | W'    | W1 + r·W2                     |
  | E'    | E1 + r·T + r²·E2              |

  두 번째 인스턴스가 신선하면 (u2 = 1, E2 = 0) r² 항은 0 이지만, 임의의
  완화 쌍을 접을 수 있도록 항상 포함한다.

**트랜스크립트 순서**:
  absorb(U1) → absorb(U2) → absorb(Com(T)) → challenge(r)

  Verifier 는 Com(T) 만 보고 같은 r 을 재계산하여 U' 을 얻는다. 전체 제약
  시스템은 검사하지 않는다 (지연된 검사).

사용 예시:
    >>> comm_T, (U, W) = fold(shape, (U1, W1), (U2, W2), Transcript(F), scheme)
    >>> verify(U1, U2, comm_T, Transcript(F), scheme) == U
    True
"""

from zkp.supernova.errors import ShapeMismatchError
from zkp.supernova.relaxed import RelaxedInstance, RelaxedWitness, instance_terms


# IVC fold 트랜스크립트 레이블 (augmented circuit 이 같은 순서로 재계산한다)
FOLD_LABEL = b"supernova-fold"
LABEL_PARAMS = b"params"
LABEL_U1 = b"U1"
LABEL_U2 = b"U2"
LABEL_T = b"comm_T"
LABEL_R = b"r"


def check_shape(shape, U, W=None):
    """U (와 W) 가 shape 에 속하는지 확인한다.

    Raises:
        ShapeMismatchError
    """
    if U.shape_digest != shape.digest():
        raise ShapeMismatchError("인스턴스의 형태 다이제스트가 회로 형태와 다릅니다")
    if len(U.public_inputs) != shape.num_inputs:
        raise ShapeMismatchError("공개 입력 길이가 회로 형태와 다릅니다")
    if W is not None and (
        len(W.values) != shape.num_vars or len(W.error) != shape.num_constraints
    ):
        raise ShapeMismatchError("위트니스/오차 벡터 길이가 회로 형태와 다릅니다")


def cross_term(shape, U1, W1, U2, W2, workers=1):
    """교차항 T 를 계산한다."""
    z1 = [U1.u] + list(U1.public_inputs) + list(W1.values)
    z2 = [U2.u] + list(U2.public_inputs) + list(W2.values)
    az1, bz1, cz1 = shape.multiply(z1, workers)
    az2, bz2, cz2 = shape.multiply(z2, workers)
    return [
        a1 * b2 + a2 * b1 - U1.u * c2 - U2.u * c1
        for a1, b1, c1, a2, b2, c2 in zip(az1, bz1, cz1, az2, bz2, cz2)
    ]


def challenge(transcript, U1, U2, comm_T, scheme):
    """트랜스크립트에 두 인스턴스와 Com(T) 를 흡수하고 r 을 뽑는다."""
    transcript.absorb(LABEL_U1, instance_terms(U1, scheme))
    transcript.absorb(LABEL_U2, instance_terms(U2, scheme))
    transcript.absorb(LABEL_T, scheme.limbs(comm_T))
    return transcript.challenge_scalar(LABEL_R)


def fold_instances(U1, U2, comm_T, r, scheme):
    """Verifier 측 fold: 커밋먼트와 공개 스칼라만 결합한다."""
    if U1.shape_digest != U2.shape_digest:
        raise ShapeMismatchError("서로 다른 회로 형태의 인스턴스는 접을 수 없습니다")
    if len(U1.public_inputs) != len(U2.public_inputs):
        raise ShapeMismatchError("공개 입력 길이가 다릅니다")
    r2 = r * r
    witness_commitment = scheme.add(U1.witness_commitment, scheme.scale(U2.witness_commitment, r))
    error_commitment = scheme.add(
        scheme.add(U1.error_commitment, scheme.scale(comm_T, r)),
        scheme.scale(U2.error_commitment, r2),
    )
    return RelaxedInstance(
        U1.shape_digest,
        witness_commitment,
        error_commitment,
        U1.u + r * U2.u,
        [x1 + r * x2 for x1, x2 in zip(U1.public_inputs, U2.public_inputs)],
    )


def fold_witnesses(W1, W2, T, r, cross_term_blinding=0):
    """Prover 측 fold: 위트니스, 오차 벡터, 두 블라인딩을 결합한다."""
    if len(W1.values) != len(W2.values) or not (len(W1.error) == len(W2.error) == len(T)):
        raise ShapeMismatchError("위트니스 길이가 다릅니다")
    r2 = r * r
    return RelaxedWitness(
        [a + r * b for a, b in zip(W1.values, W2.values)],
        [e1 + r * t + r2 * e2 for e1, t, e2 in zip(W1.error, T, W2.error)],
        W1.blinding + r * W2.blinding,
        W1.error_blinding + r * cross_term_blinding + r2 * W2.error_blinding,
    )


def fold(shape, pair1, pair2, transcript, scheme, workers=1):
    """두 완화 쌍을 접는다.

    Args:
        shape: 두 쌍이 공유하는 회로 형태
        pair1, pair2: (RelaxedInstance, RelaxedWitness)
        transcript: Transcript 또는 AlgebraicTranscript (호출자가 소유)
        scheme: 커밋먼트 스킴

    Returns:
        (comm_T, (U', W'))

    Raises:
        ShapeMismatchError: 형태가 다를 때
    """
    U1, W1 = pair1
    U2, W2 = pair2
    check_shape(shape, U1, W1)
    check_shape(shape, U2, W2)
    T = cross_term(shape, U1, W1, U2, W2, workers)
    comm_T = scheme.commit(T)
    r = challenge(transcript, U1, U2, comm_T, scheme)
    return comm_T, (fold_instances(U1, U2, comm_T, r, scheme), fold_witnesses(W1, W2, T, r))


def verify(U1, U2, comm_T, transcript, scheme):
    """Verifier 측: 같은 r 을 재계산해 접힌 인스턴스를 돌려준다."""
    r = challenge(transcript, U1, U2, comm_T, scheme)
    return fold_instances(U1, U2, comm_T, r, scheme)
