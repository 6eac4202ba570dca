"""
SuperNova E2E 데모: 두 명령어 toy VM
=====================================

이 스크립트는 SuperNova IVC 의 전체 흐름을 시연한다.

실행:
    python -m zkp.supernova.example

흐름:
    1. 명령어 집합 구성 (add1, double) 과 setup
    2. 트레이스 [(0, 3), (1, 5), (0, 7)] 증명 (3 → 4 → 8 → 9)
    3. 실행 증명 검증 (주장 9)
    4. 잘못된 주장 (10) 검증
    5. 직렬화 왕복과 지연된 검사
"""

import logging

from zkp.supernova.commitment import default_scheme
from zkp.supernova.config import SupernovaConfig
from zkp.supernova.field import TOY_FIELD
from zkp.supernova.instructions import toy_vm
from zkp.supernova.program import setup
from zkp.supernova.proof import RunningProof
from zkp.supernova.prover import IVCProver
from zkp.supernova.verifier import verify


def main():
    logging.basicConfig(level=logging.WARNING)
    print("=" * 60)
    print("  SuperNova Folding IVC Demo")
    print("  명령어: add1, double  /  필드: F_97")
    print("=" * 60)

    # ── 1. setup ──
    print("\n[1] 명령어 집합 setup...")
    config = SupernovaConfig()
    scheme = default_scheme(TOY_FIELD, config)
    pp = setup(toy_vm(), scheme, config=config)
    print(f"    커밋먼트: {scheme!r}, limb 수: {scheme.num_limbs}")
    for index, shape in enumerate(pp.shapes):
        print(f"    명령어 {index} ({pp.program[index].name}): "
              f"제약 {shape.num_constraints}, 변수 {shape.num_vars}")
    print(f"    params: {int(pp.params)}")

    # ── 2. 증명 ──
    trace = [(0, 3), (1, 5), (0, 7)]
    print(f"\n[2] 트레이스 증명: {trace}")
    prover = IVCProver(pp)
    proof = prover.prove(trace, initial_pc=0)
    for i, record in enumerate(proof.records, start=1):
        print(f"    단계 {i}: 명령어 {record.instruction} → 출력 "
              f"{[int(v) for v in record.step_output]}, "
              f"h = {int(record.latest.public_inputs[0])}")

    # ── 3. 검증 ──
    print("\n[3] 검증 (주장: 9)...")
    result = verify(pp, proof, 9)
    print(f"    검증 결과: {'성공 ✓' if result else '실패 ✗'}, "
          f"남은 지연 의무: {len(result.obligations)}")

    # ── 4. 잘못된 주장 ──
    print("\n[4] 잘못된 주장 (10) 검증...")
    wrong = verify(pp, proof, 10)
    print(f"    검증 결과: {'성공 ✓' if wrong else '실패 ✗ (예상대로 실패)'}, "
          f"원인: {wrong.failure.value if wrong.failure else '-'}")

    # ── 5. 직렬화와 지연된 검사 ──
    print("\n[5] 직렬화 왕복과 지연된 검사...")
    data = proof.to_bytes(scheme)
    decoded = RunningProof.from_bytes(data, scheme)
    print(f"    인코딩 크기: {len(data)} 바이트, 왕복 일치: {decoded.to_bytes(scheme) == data}")
    deferred = verify(pp, decoded, 9, opening=prover.opening())
    print(f"    opening 포함 검증: {'성공 ✓' if deferred else '실패 ✗'}")

    print("\n" + "=" * 60)
    if result and not wrong and deferred:
        print("  데모 완료: 모든 테스트 통과!")
    else:
        print("  데모 완료: 일부 테스트 실패")
    print("=" * 60)

    return bool(result and not wrong and deferred)


if __name__ == "__main__":
    main()
