from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from .complexity import COMPLEXITY_NOTE
from .constant import Status

MAX_CODE_LENGTH = 50_000
MAX_CASE_COUNT = 100
MAX_CASE_TEXT_LENGTH = 64 * 1024


class TestCase(BaseModel):
    model_config = ConfigDict(frozen=True)
    # not a pytest test class
    __test__ = False

    input: str = Field(default="", max_length=MAX_CASE_TEXT_LENGTH)
    expectedOutput: str = Field(max_length=MAX_CASE_TEXT_LENGTH)


class ExecutionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    # membership is checked against the runtime registry by the dispatcher
    language: str = Field(min_length=1, max_length=32)
    code: str = Field(min_length=1, max_length=MAX_CODE_LENGTH)
    testCases: List[TestCase] = Field(min_length=1,
                                      max_length=MAX_CASE_COUNT)
    timeLimitMs: Optional[int] = Field(default=None, ge=100, le=30_000)
    memoryLimitMb: Optional[int] = Field(default=None, ge=64, le=1024)

    @field_validator("language", mode="before")
    @classmethod
    def _normalize_language(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class TestResult(BaseModel):
    model_config = ConfigDict(frozen=True)
    __test__ = False

    passed: bool
    status: Status
    input: str
    expected: str
    actual: Optional[str] = None
    error: Optional[str] = None
    executionTimeMs: float = 0
    memoryUsedMb: float = 0


class ExecutionSummary(BaseModel):
    success: bool = True
    allPassed: bool
    passedCount: int
    totalCount: int
    results: List[TestResult]
    totalTimeMs: float
    avgMemoryMb: float
    timeComplexity: str
    spaceComplexity: str
    complexityNote: str = COMPLEXITY_NOTE
