"""
작업 스레드 헬퍼
================

커밋먼트 계산과 희소 행렬-벡터 곱을 여러 스레드로 나누어 수행한다.
결과는 항상 입력 순서대로 모이므로, 스레드 수와 무관하게 결정론적이다.
"""

from concurrent.futures import ThreadPoolExecutor


def parallel_map(fn, items, workers=1):
    """fn을 items에 적용한 결과 리스트 (workers <= 1이면 순차 실행)."""
    items = list(items)
    if workers <= 1 or len(items) <= 1:
        return [fn(item) for item in items]
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(fn, items))


def chunked(seq, parts):
    """seq를 최대 parts개의 연속 구간으로 나눈다 (빈 구간은 만들지 않음).

    예시:
        >>> chunked([1, 2, 3, 4, 5], 2)
        [[1, 2, 3], [4, 5]]
    """
    seq = list(seq)
    if not seq:
        return []
    parts = max(1, min(parts, len(seq)))
    size = -(-len(seq) // parts)
    return [seq[k:k + size] for k in range(0, len(seq), size)]
