import json
import os
import shutil
import subprocess
import sys

import pytest

from dispatcher import harness

JS_FUNCTION = """
function twoSum(nums, target) {
    const seen = new Map();
    for (let i = 0; i < nums.length; i++) {
        if (seen.has(target - nums[i])) return [seen.get(target - nums[i]), i];
        seen.set(nums[i], i);
    }
}
"""

JS_ARROW = "const add = (a, b) => a + b;"

JS_PROGRAM = """
const lines = require('fs').readFileSync('/dev/stdin', 'utf8').split('\\n');
function solve(line) { return line; }
console.log(solve(lines[0]));
"""

PY_FUNCTION = """
def _helper(x):
    return x


def add(a, b):
    return _helper(a) + b
"""

PY_PROGRAM = """
def solve(a, b):
    return a + b


if __name__ == "__main__":
    print(solve(*map(int, input().split())))
"""


@pytest.mark.parametrize(
    "code, language, excepted",
    [
        (JS_FUNCTION, "javascript", "twoSum"),
        (JS_ARROW, "javascript", "add"),
        (JS_PROGRAM, "javascript", None),
        (PY_FUNCTION, "python", "add"),
        (PY_PROGRAM, "python", None),
        ("print(input())", "python", None),
        # no driver convention
        ("int main() {}", "cpp", None),
        ("public class Solution {}", "java", None),
    ],
)
def test_locate_entry_point(code, language, excepted):
    assert harness.locate_entry_point(code, language) == excepted


def test_earliest_declaration_wins():
    code = "function first() {}\nconst second = () => 1;\n"
    assert harness.locate_entry_point(code, "javascript") == "first"


def test_python_driver_wraps_function(registry):
    source = harness.prepare(PY_FUNCTION, "[1, 2], 3",
                             registry.profile_for("python"))

    assert source.startswith("def _helper")
    assert PY_FUNCTION.strip() in source
    assert "_raw = '[1, 2], 3'" in source
    assert "add(*_args)" in source
    assert "_json.dumps(_result" in source


def test_javascript_driver_wraps_function(registry):
    source = harness.prepare(JS_FUNCTION, "[2,7,11,15], 9",
                             registry.profile_for("javascript"))

    assert JS_FUNCTION.strip() in source
    assert "\"[2,7,11,15], 9\"" in source
    assert "twoSum(...__input)" in source
    assert "JSON.stringify(__result)" in source


def test_input_is_embedded_as_string_literal(registry):
    source = harness.prepare(PY_FUNCTION, 'a"b\n',
                             registry.profile_for("python"))
    assert "_raw = " + repr('a"b\n') in source


@pytest.mark.parametrize("language, code", [
    ("python", PY_PROGRAM),
    ("javascript", JS_PROGRAM),
    ("java", "public class Solution {}"),
    ("cpp", "int main() {}"),
])
def test_full_program_runs_unmodified(registry, language, code):
    assert harness.prepare(code, "1 2", registry.profile_for(language)) == code


PY_TWO_SUM = """
def twoSum(nums, target):
    seen = {}
    for i, n in enumerate(nums):
        if target - n in seen:
            return [seen[target - n], i]
        seen[n] = i
"""

NODE = shutil.which("node")


def _run_driver(tmp_path, registry, language, code, test_input):
    profile = registry.profile_for(language)
    path = tmp_path / profile.filename
    path.write_text(harness.prepare(code, test_input, profile),
                    encoding="utf-8")
    interpreter = sys.executable if language == "python" else NODE
    return subprocess.run(
        [interpreter, str(path)],
        input=test_input,
        capture_output=True,
        encoding="utf-8",
        env={
            **os.environ, "PYTHONIOENCODING": "utf-8"
        },
        timeout=30,
    )


@pytest.mark.parametrize("language, code", [
    ("python", PY_TWO_SUM),
    pytest.param("javascript",
                 JS_FUNCTION,
                 marks=pytest.mark.skipif(NODE is None,
                                          reason="node not installed")),
])
@pytest.mark.parametrize("test_input, excepted", [
    ("[2,7,11,15], 9", [0, 1]),
    ("[3,2,4], 6", [1, 2]),
])
def test_driver_prints_json_result(tmp_path, registry, language, code,
                                   test_input, excepted):
    res = _run_driver(tmp_path, registry, language, code, test_input)
    assert res.returncode == 0, res.stderr
    assert json.loads(res.stdout) == excepted


@pytest.mark.parametrize("language, code, message", [
    ("python", "def boom(x):\n    raise ValueError('bad')\n",
     "ValueError: bad"),
    pytest.param("javascript",
                 "function boom(x) { throw new Error('bad'); }\n",
                 "bad",
                 marks=pytest.mark.skipif(NODE is None,
                                          reason="node not installed")),
])
def test_driver_reports_errors(tmp_path, registry, language, code, message):
    res = _run_driver(tmp_path, registry, language, code, "1")
    assert res.returncode != 0
    assert message in res.stderr
    assert res.stdout == ""


@pytest.mark.parametrize("language, code", [
    ("python", "def echo(s):\n    return s\n"),
    pytest.param("javascript",
                 "function echo(s) { return s; }\n",
                 marks=pytest.mark.skipif(NODE is None,
                                          reason="node not installed")),
])
def test_driver_handles_astral_characters(tmp_path, registry, language,
                                          code):
    res = _run_driver(tmp_path, registry, language, code, '"😀 ok"')
    assert res.returncode == 0, res.stderr
    assert json.loads(res.stdout) == "😀 ok"
    assert res.stdout == '"😀 ok"'
