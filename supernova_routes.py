"""
SuperNova Flask Blueprint: IVC 엔드포인트
============================================

toy VM (add1, double) 위의 실행 증명을 만들고 검증하는 JSON API.
증명과 prover 의 opening 은 TinyDB 에 저장한다.

  | 메서드 | 경로                 | 내용                                 |
  |--------|----------------------|--------------------------------------|
  | GET    | /supernova/program   | 명령어 목록과 회로 형태              |
  | POST   | /supernova/prove     | 트레이스 → 실행 증명 (DB 저장)       |
  | GET    | /supernova/proof     | 저장된 실행 증명                     |
  | POST   | /supernova/verify    | 저장된 (또는 요청의) 증명 검증       |
  | POST   | /supernova/reset     | 저장 데이터 삭제                     |
"""

from flask import Blueprint, jsonify, request
from tinydb import Query

from zkp.supernova.commitment import default_scheme
from zkp.supernova.config import SupernovaConfig
from zkp.supernova.errors import (
    ConstraintViolationError,
    SerializationError,
    UnknownInstructionError,
)
from zkp.supernova.field import M31_FIELD, TOY_FIELD
from zkp.supernova.instructions import toy_vm
from zkp.supernova.program import setup
from zkp.supernova.prover import IVCProver
from zkp.supernova.verifier import verify

from supernova_serializers import (
    serialize_fr_list,
    serialize_proof, deserialize_proof,
    serialize_witness, deserialize_witness,
    fr_short,
)

supernova_bp = Blueprint('supernova', __name__, url_prefix='/supernova')

DATA = Query()

# DB 와 엔진 설정은 app.py에서 주입
DB = None
CONFIG = None

FIELDS = {"toy": TOY_FIELD, "m31": M31_FIELD}

# field 이름 → PublicParams (setup 은 비싸므로 한 번만)
_PARAMS = {}


def init_supernova_bp(db, config=None):
    """app.py에서 DB와 SupernovaConfig를 주입받는다 (설정이 바뀌면 params 캐시를 비운다)."""
    global DB, CONFIG
    DB = db
    CONFIG = config or SupernovaConfig()
    _PARAMS.clear()


# ─── DB 헬퍼 ───

def db_get(key):
    """DB에서 키로 데이터를 조회한다."""
    result = DB.search(DATA.type == key)
    if not result:
        return None
    return result[0].get("data")


def db_set(key, data):
    """DB에 키로 데이터를 저장한다."""
    DB.upsert({"type": key, "data": data}, DATA.type == key)


def db_remove_prefix(prefix):
    """prefix로 시작하는 모든 키를 삭제한다."""
    DB.remove(DATA.type.test(lambda t: t.startswith(prefix)))


def get_params(field_name):
    if field_name not in FIELDS:
        raise ValueError(f"지원하지 않는 필드: {field_name!r}")
    pp = _PARAMS.get(field_name)
    if pp is None:
        field = FIELDS[field_name]
        config = CONFIG or SupernovaConfig()
        pp = setup(toy_vm(), default_scheme(field, config), config=config)
        _PARAMS[field_name] = pp
    return pp


def _error(message, status):
    return jsonify({"error": message}), status


# ──────────────────────────────────────────────────────────────
# 엔드포인트
# ──────────────────────────────────────────────────────────────

@supernova_bp.route("/program")
def program_info():
    """명령어 목록과 회로 형태 요약."""
    field_name = request.args.get("field", "toy")
    try:
        pp = get_params(field_name)
    except ValueError as exc:
        return _error(str(exc), 400)
    return jsonify({
        "field": field_name,
        "modulus": str(pp.field.field_modulus),
        "params": fr_short(pp.params),
        "instructions": [
            {
                "id": index,
                "name": pp.program[index].name,
                "constraints": shape.num_constraints,
                "variables": shape.num_vars,
                "digest": shape.digest().hex(),
            }
            for index, shape in enumerate(pp.shapes)
        ],
    })


@supernova_bp.route("/prove", methods=["POST"])
def prove_trace():
    """트레이스를 증명하고 결과를 DB에 저장한다.

    요청: {"trace": [[id, input], ...], "initial_pc": 0, "field": "toy"}
    """
    body = request.get_json(silent=True) or {}
    field_name = body.get("field", "toy")
    try:
        pp = get_params(field_name)
        trace = [(int(op), int(value)) for op, value in body.get("trace", [])]
        initial_pc = int(body.get("initial_pc", 0))
    except (TypeError, ValueError) as exc:
        return _error(f"잘못된 요청: {exc}", 400)

    prover = IVCProver(pp)
    try:
        proof = prover.prove(trace, initial_pc=initial_pc)
    except UnknownInstructionError as exc:
        return _error(str(exc), 400)
    except ConstraintViolationError as exc:
        return _error(str(exc), 422)
    except ValueError as exc:
        return _error(str(exc), 400)

    db_set("supernova.field", field_name)
    db_set("supernova.proof", serialize_proof(pp.scheme, proof))
    db_set("supernova.opening", [serialize_witness(W) for W in prover.opening()])

    return jsonify({
        "steps": len(proof),
        "final_output": serialize_fr_list(proof.final_output),
        "outputs": [serialize_fr_list(r.step_output) for r in proof.records],
    })


@supernova_bp.route("/proof")
def get_proof():
    """저장된 실행 증명."""
    data = db_get("supernova.proof")
    if data is None:
        return _error("저장된 증명이 없습니다", 404)
    return jsonify({"field": db_get("supernova.field"), "proof": data})


@supernova_bp.route("/verify", methods=["POST"])
def verify_proof():
    """실행 증명을 검증한다.

    요청: {"claimed_final_output": 9, "proof": (선택), "field": (선택), "with_opening": false}
    """
    body = request.get_json(silent=True) or {}
    if "claimed_final_output" not in body:
        return _error("claimed_final_output 이 필요합니다", 400)

    field_name = body.get("field") or db_get("supernova.field") or "toy"
    proof_data = body.get("proof") or db_get("supernova.proof")
    if proof_data is None:
        return _error("검증할 증명이 없습니다", 404)

    try:
        pp = get_params(field_name)
        proof = deserialize_proof(pp.scheme, proof_data)
        claimed = body["claimed_final_output"]
        claimed = [int(v) for v in claimed] if isinstance(claimed, list) else int(claimed)
        opening = None
        if body.get("with_opening"):
            stored = db_get("supernova.opening") or []
            opening = [deserialize_witness(pp.field, w) for w in stored]
    except SerializationError as exc:
        return jsonify({"valid": False, "failure": "malformed-proof-shape", "reason": str(exc)})
    except (TypeError, ValueError, KeyError) as exc:
        return _error(f"잘못된 요청: {exc}", 400)

    result = verify(pp, proof, claimed, opening=opening)
    return jsonify({
        "valid": bool(result),
        "failure": result.failure.value if result.failure else None,
        "reason": result.reason,
        "step": result.step,
        "obligations": len(result.obligations),
    })


@supernova_bp.route("/reset", methods=["POST"])
def reset():
    """저장된 증명과 opening 을 삭제한다."""
    db_remove_prefix("supernova.")
    return jsonify({"ok": True})
