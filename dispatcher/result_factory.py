"""
Factory functions for creating standardized result objects.

This module provides consistent result structures for:
- Case results (one TestResult per TestCase)
- The execution summary aggregated over all case results
"""

from typing import List, Optional, Sequence

from . import complexity
from .comparator import normalize
from .constant import Status
from .meta import ExecutionSummary, TestCase, TestResult


def make_case_result(
    case: TestCase,
    status: Status,
    actual: Optional[str] = None,
    error: Optional[str] = None,
    exec_time: float = 0,
    mem_usage: float = 0,
) -> TestResult:
    """
    Build a single case result.

    Args:
        case: The test case this result resolves
        status: Result status ("AC", "WA", "CE", "TLE", "MLE", "RE", "JE")
        actual: Normalized program output, None if the program produced none
        error: Error message (compiler diagnostics, stderr, ...)
        exec_time: Execution time of the run step in ms
        mem_usage: Peak memory usage in MB

    Returns:
        TestResult
    """
    return TestResult(
        passed=status == Status.AC,
        status=status,
        input=case.input,
        expected=normalize(case.expectedOutput),
        actual=actual,
        error=error,
        executionTimeMs=round(max(exec_time, 0), 2),
        memoryUsedMb=round(max(mem_usage, 0), 2),
    )


def make_summary(
    cases: Sequence[TestCase],
    results: List[TestResult],
) -> ExecutionSummary:
    """
    Aggregate case results into the execution summary.

    Complexity is estimated over the results ordered by ascending input
    size; the results themselves stay in input order.

    Args:
        cases: The submitted test cases, in input order
        results: One result per case, in input order

    Returns:
        ExecutionSummary
    """
    if len(results) != len(cases):
        raise ValueError(
            f"expected {len(cases)} results, got {len(results)}")
    passed_count = sum(1 for r in results if r.passed)
    total_time = sum(r.executionTimeMs for r in results)
    avg_memory = (sum(r.memoryUsedMb for r in results) /
                  len(results)) if results else 0
    # only runs that completed say anything about growth
    by_size = sorted(
        (i for i, r in enumerate(results)
         if r.status in (Status.AC, Status.WA)),
        key=lambda i: len(cases[i].input),
    )
    time_label, space_label = complexity.estimate(
        times=[results[i].executionTimeMs for i in by_size],
        memories=[results[i].memoryUsedMb for i in by_size],
        sizes=[len(cases[i].input) for i in by_size],
    )
    return ExecutionSummary(
        success=True,
        allPassed=passed_count == len(results),
        passedCount=passed_count,
        totalCount=len(results),
        results=results,
        totalTimeMs=round(total_time, 2),
        avgMemoryMb=round(avg_memory, 2),
        timeComplexity=time_label,
        spaceComplexity=space_label,
    )
