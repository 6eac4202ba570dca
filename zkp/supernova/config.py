"""
엔진 설정
=========

  | 항목          | 기본값                          | 의미                                   |
  |---------------|---------------------------------|----------------------------------------|
  | workers       | $SUPERNOVA_WORKERS 또는 1       | 커밋먼트와 행렬 곱의 작업 스레드 수    |
  | check_steps   | True                            | 커밋 전에 각 단계 회로의 제약을 검사    |
  | generator_seed| b"supernova-commit"             | 커밋먼트 생성자 유도 seed              |
"""

import os


class SupernovaConfig:
    def __init__(self, workers=None, check_steps=True, generator_seed=b"supernova-commit"):
        if workers is None:
            workers = int(os.environ.get("SUPERNOVA_WORKERS", "1"))
        if workers < 1:
            raise ValueError(f"workers 는 1 이상이어야 합니다: {workers}")
        self.workers = workers
        self.check_steps = check_steps
        self.generator_seed = generator_seed

    def __repr__(self):
        return f"SupernovaConfig(workers={self.workers}, check_steps={self.check_steps})"
