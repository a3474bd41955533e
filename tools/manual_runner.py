"""Utility for manually judging a local source file.

Feeds a source file and a JSON list of test cases straight into
:class:`dispatcher.dispatcher.Dispatcher` and prints the execution summary,
including every per-case field (status, actual output, error, timing).

Example::

    python tools/manual_runner.py \
        --lang python \
        --code two_sum.py \
        --cases two_sum.json \
        --time-limit 2000

``two_sum.json`` holds ``[{"input": "[2,7,11,15], 9", "expectedOutput":
"[0,1]"}]``. Complexity labels in the summary are a rough estimate from
timing samples, not a proof.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

from dispatcher.dispatcher import Dispatcher
from dispatcher.exception import SandboxError
from dispatcher.meta import ExecutionRequest
from dispatcher.registry import load_registry


def load_cases(cases_path: Path) -> List[Dict[str, Any]]:
    """Return parsed test cases."""

    with cases_path.open() as handle:
        return json.load(handle)


def run_request(
    *,
    lang: str,
    code: str,
    cases: List[Dict[str, Any]],
    time_limit: int | None,
    mem_limit: int | None,
    config: Path | None,
) -> Dict[str, Any]:
    """Judge the code and return the summary as plain data."""

    request = ExecutionRequest(
        language=lang,
        code=code,
        testCases=cases,
        timeLimitMs=time_limit,
        memoryLimitMb=mem_limit,
    )
    dispatcher = Dispatcher(registry=load_registry(config))
    return dispatcher.execute(request).model_dump(mode="json")


def parse_args() -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--lang",
        required=True,
        help="language identifier (python, javascript, java, cpp)",
    )
    parser.add_argument(
        "--code",
        required=True,
        type=Path,
        help="path to the source file to judge",
    )
    parser.add_argument(
        "--cases",
        required=True,
        type=Path,
        help="path to a JSON list of {input, expectedOutput} objects",
    )
    parser.add_argument(
        "--time-limit",
        type=int,
        help="time limit in milliseconds",
    )
    parser.add_argument(
        "--mem-limit",
        type=int,
        help="memory limit in megabytes",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="path to runtime configuration file (image overrides)",
    )
    return parser.parse_args()


def main() -> None:
    """CLI entry point."""

    args = parse_args()
    try:
        summary = run_request(
            lang=args.lang,
            code=args.code.read_text(encoding="utf-8"),
            cases=load_cases(args.cases),
            time_limit=args.time_limit,
            mem_limit=args.mem_limit,
            config=args.config,
        )
    except SandboxError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(summary, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
