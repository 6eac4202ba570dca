"""
실행 증명 (Running Proof) 과 바이너리 코덱
===========================================

실행 증명은 단계마다 StepRecord 하나를 쌓는다.

  StepRecord
  ├── instruction        : 이번 단계의 명령어 id
  ├── next_instruction   : 다음 단계의 명령어 id
  ├── step_output        : z_i
  ├── latest             : 이번 augmented circuit 의 신선한 완화 인스턴스 u_i
  ├── cross_term         : 이번 fold 의 Com(T)
  └── accumulators       : {instruction: 접힌 인스턴스}  (이번 단계에 갱신된 슬롯)

**바이너리 형식** (빅엔디안):
  MAGIC "SNOVA\\x01"
  u32 num_instructions | u32 initial_pc | u32 arity | z0 (arity 원소) | u32 num_records
  레코드마다:
    u32 instruction | u32 next_instruction | step_output (arity 원소)
    instance latest | commitment cross_term
    u32 k | k × (u32 id | instance)        (id 는 오름차순)
  instance:
    32바이트 형태 다이제스트 | commitment C_W | commitment C_E | 원소 u | u32 |X| | X

  필드 원소는 고정 폭이며 위수 이상이면 거부한다. 커밋먼트는 스킴이 검증한다.
  남는 바이트가 있으면 거부한다. 따라서 decode(encode(x)) 는 바이트 단위로 같다.

사용 예시:
    >>> data = proof.to_bytes(scheme)
    >>> RunningProof.from_bytes(data, scheme).to_bytes(scheme) == data
    True
"""

from zkp.supernova.errors import SerializationError
from zkp.supernova.field import element_from_bytes, element_to_bytes, field_bytes, to_field
from zkp.supernova.relaxed import RelaxedInstance


MAGIC = b"SNOVA\x01"

DIGEST_BYTES = 32


class StepRecord:
    def __init__(self, instruction, next_instruction, step_output, latest, cross_term, accumulators):
        self.instruction = instruction
        self.next_instruction = next_instruction
        self.step_output = list(step_output)
        self.latest = latest
        self.cross_term = cross_term
        self.accumulators = dict(accumulators)

    def __eq__(self, other):
        if not isinstance(other, StepRecord):
            return NotImplemented
        return (
            self.instruction == other.instruction
            and self.next_instruction == other.next_instruction
            and self.step_output == other.step_output
            and self.latest == other.latest
            and self.cross_term == other.cross_term
            and self.accumulators == other.accumulators
        )

    def __repr__(self):
        return (
            f"StepRecord({self.instruction} -> {self.next_instruction}, "
            f"out={[int(v) for v in self.step_output]})"
        )


class RunningProof:
    """IVC 실행 증명.

    속성:
        num_instructions: 명령어 수 L
        initial_pc: 첫 명령어 id
        z0: 초기 상태
        records: StepRecord 리스트
    """

    def __init__(self, num_instructions, initial_pc, z0, records=None):
        self.num_instructions = num_instructions
        self.initial_pc = initial_pc
        self.z0 = list(z0)
        self.records = list(records or [])

    def append(self, record):
        self.records.append(record)

    def __len__(self):
        return len(self.records)

    @property
    def final_output(self):
        if not self.records:
            return list(self.z0)
        return list(self.records[-1].step_output)

    def __eq__(self, other):
        if not isinstance(other, RunningProof):
            return NotImplemented
        return (
            self.num_instructions == other.num_instructions
            and self.initial_pc == other.initial_pc
            and self.z0 == other.z0
            and self.records == other.records
        )

    def to_bytes(self, scheme):
        writer = _Writer(scheme)
        writer.raw(MAGIC)
        writer.u32(self.num_instructions)
        writer.u32(self.initial_pc)
        writer.u32(len(self.z0))
        writer.elements(self.z0)
        writer.u32(len(self.records))
        for record in self.records:
            writer.record(record, len(self.z0))
        return bytes(writer.buf)

    @classmethod
    def from_bytes(cls, data, scheme):
        """정규 바이트열을 디코딩한다.

        Raises:
            SerializationError: 형식이 정규가 아닐 때
        """
        reader = _Reader(data, scheme)
        if reader.take(len(MAGIC)) != MAGIC:
            raise SerializationError("실행 증명 매직 바이트가 아닙니다")
        num_instructions = reader.u32()
        initial_pc = reader.u32()
        arity = reader.u32()
        z0 = reader.elements(arity)
        count = reader.u32()
        records = [reader.record(arity) for _ in range(count)]
        reader.done()
        return cls(num_instructions, initial_pc, z0, records)


# ─────────────────────────────────────────────────────────────────────
# 인코딩 헬퍼
# ─────────────────────────────────────────────────────────────────────

class _Writer:
    def __init__(self, scheme):
        self.scheme = scheme
        self.field = scheme.field
        self.buf = bytearray()

    def raw(self, data):
        self.buf.extend(data)

    def u32(self, n):
        if not 0 <= n < 2 ** 32:
            raise SerializationError(f"u32 범위 밖: {n}")
        self.buf.extend(n.to_bytes(4, "big"))

    def elements(self, values):
        for v in values:
            self.buf.extend(element_to_bytes(to_field(self.field, v)))

    def commitment(self, c):
        self.buf.extend(self.scheme.to_bytes(c))

    def instance(self, U):
        if len(U.shape_digest) != DIGEST_BYTES:
            raise SerializationError("형태 다이제스트는 32바이트여야 합니다")
        self.raw(U.shape_digest)
        self.commitment(U.witness_commitment)
        self.commitment(U.error_commitment)
        self.elements([U.u])
        self.u32(len(U.public_inputs))
        self.elements(U.public_inputs)

    def record(self, record, arity):
        if len(record.step_output) != arity:
            raise SerializationError("단계 출력 길이가 arity 와 다릅니다")
        self.u32(record.instruction)
        self.u32(record.next_instruction)
        self.elements(record.step_output)
        self.instance(record.latest)
        self.commitment(record.cross_term)
        self.u32(len(record.accumulators))
        for instruction in sorted(record.accumulators):
            self.u32(instruction)
            self.instance(record.accumulators[instruction])


class _Reader:
    def __init__(self, data, scheme):
        self.data = bytes(data)
        self.pos = 0
        self.scheme = scheme
        self.field = scheme.field

    def take(self, n):
        if self.pos + n > len(self.data):
            raise SerializationError("실행 증명 데이터가 잘렸습니다")
        chunk = self.data[self.pos:self.pos + n]
        self.pos += n
        return chunk

    def u32(self):
        return int.from_bytes(self.take(4), "big")

    def elements(self, n):
        width = field_bytes(self.field)
        return [element_from_bytes(self.field, self.take(width)) for _ in range(n)]

    def commitment(self):
        return self.scheme.from_bytes(self.take(self.scheme.byte_length))

    def instance(self):
        digest = self.take(DIGEST_BYTES)
        witness_commitment = self.commitment()
        error_commitment = self.commitment()
        (u,) = self.elements(1)
        public_inputs = self.elements(self.u32())
        return RelaxedInstance(digest, witness_commitment, error_commitment, u, public_inputs)

    def record(self, arity):
        instruction = self.u32()
        next_instruction = self.u32()
        step_output = self.elements(arity)
        latest = self.instance()
        cross_term = self.commitment()
        accumulators = {}
        previous = -1
        for _ in range(self.u32()):
            key = self.u32()
            if key <= previous:
                raise SerializationError("누산기 id 가 오름차순이 아닙니다")
            accumulators[key] = self.instance()
            previous = key
        return StepRecord(instruction, next_instruction, step_output, latest, cross_term, accumulators)

    def done(self):
        if self.pos != len(self.data):
            raise SerializationError(f"실행 증명 뒤에 {len(self.data) - self.pos} 바이트가 남았습니다")
