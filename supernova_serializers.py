"""
SuperNova 데이터 직렬화/역직렬화 헬퍼
=======================================

TinyDB 와 JSON 응답에 저장 가능한 형태로 SuperNova 객체를 변환한다.
필드 원소는 str(int), 커밋먼트와 다이제스트는 hex 문자열로 저장한다.
역직렬화는 바이너리 코덱과 같은 검증(위수 범위, 그룹 원소)을 거친다.
"""

from zkp.supernova.errors import SerializationError
from zkp.supernova.proof import RunningProof, StepRecord
from zkp.supernova.relaxed import RelaxedInstance, RelaxedWitness


# ─── 필드 원소 ───

def serialize_fr(val):
    """원소 → str(int)"""
    return str(int(val))


def deserialize_fr(field, s):
    """str(int) → 원소 (위수 이상이면 거부)"""
    value = int(s)
    if not 0 <= value < field.field_modulus:
        raise SerializationError(f"필드 범위 밖의 값: {s}")
    return field(value)


def serialize_fr_list(lst):
    return [serialize_fr(v) for v in lst]


def deserialize_fr_list(field, data):
    return [deserialize_fr(field, s) for s in data]


# ─── 커밋먼트 ───

def serialize_commitment(scheme, c):
    """커밋먼트 → 정규 바이트 인코딩의 hex"""
    return scheme.to_bytes(c).hex()


def deserialize_commitment(scheme, s):
    try:
        data = bytes.fromhex(s)
    except ValueError as exc:
        raise SerializationError(f"hex 가 아닌 커밋먼트: {s!r}") from exc
    return scheme.from_bytes(data)


# ─── 인스턴스 ───

def serialize_instance(scheme, U):
    return {
        "shape": U.shape_digest.hex(),
        "C_W": serialize_commitment(scheme, U.witness_commitment),
        "C_E": serialize_commitment(scheme, U.error_commitment),
        "u": serialize_fr(U.u),
        "X": serialize_fr_list(U.public_inputs),
    }


def deserialize_instance(scheme, data):
    field = scheme.field
    return RelaxedInstance(
        bytes.fromhex(data["shape"]),
        deserialize_commitment(scheme, data["C_W"]),
        deserialize_commitment(scheme, data["C_E"]),
        deserialize_fr(field, data["u"]),
        deserialize_fr_list(field, data["X"]),
    )


# ─── 실행 증명 ───

def serialize_record(scheme, record):
    return {
        "instruction": record.instruction,
        "next_instruction": record.next_instruction,
        "output": serialize_fr_list(record.step_output),
        "latest": serialize_instance(scheme, record.latest),
        "cross_term": serialize_commitment(scheme, record.cross_term),
        "accumulators": {
            str(k): serialize_instance(scheme, U) for k, U in sorted(record.accumulators.items())
        },
    }


def deserialize_record(scheme, data):
    return StepRecord(
        int(data["instruction"]),
        int(data["next_instruction"]),
        deserialize_fr_list(scheme.field, data["output"]),
        deserialize_instance(scheme, data["latest"]),
        deserialize_commitment(scheme, data["cross_term"]),
        {int(k): deserialize_instance(scheme, v) for k, v in data["accumulators"].items()},
    )


def serialize_proof(scheme, proof):
    """RunningProof → dict"""
    return {
        "num_instructions": proof.num_instructions,
        "initial_pc": proof.initial_pc,
        "z0": serialize_fr_list(proof.z0),
        "records": [serialize_record(scheme, r) for r in proof.records],
    }


def deserialize_proof(scheme, data):
    """dict → RunningProof

    Raises:
        SerializationError: 필드가 빠졌거나 값이 정규 형식이 아닐 때
    """
    try:
        return RunningProof(
            int(data["num_instructions"]),
            int(data["initial_pc"]),
            deserialize_fr_list(scheme.field, data["z0"]),
            [deserialize_record(scheme, r) for r in data["records"]],
        )
    except (KeyError, TypeError, ValueError) as exc:
        if isinstance(exc, SerializationError):
            raise
        raise SerializationError(f"실행 증명 데이터 형식 오류: {exc}") from exc


def fr_short(val):
    """긴 정수를 앞/뒤만 보여주는 짧은 문자열로"""
    s = str(int(val))
    if len(s) <= 12:
        return s
    return s[:6] + "..." + s[-4:]


# ─── 위트니스 (opening) ───

def serialize_witness(W):
    return {
        "W": serialize_fr_list(W.values),
        "E": serialize_fr_list(W.error),
        "blinding": serialize_fr(W.blinding),
        "error_blinding": serialize_fr(W.error_blinding),
    }


def deserialize_witness(field, data):
    return RelaxedWitness(
        deserialize_fr_list(field, data["W"]),
        deserialize_fr_list(field, data["E"]),
        deserialize_fr(field, data["blinding"]),
        deserialize_fr(field, data["error_blinding"]),
    )
