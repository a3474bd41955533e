"""
Driver harness preparation.

Submissions for languages with a harness may be a bare function instead of
a full program. For those, a short driver is appended that parses the test
input as comma-separated literals, calls the function and prints the
JSON-serialized return value. Everything else runs unmodified and is expected
to read stdin and write stdout itself.
"""

import json
import re
from typing import Optional

from .constant import Harness
from .registry import RuntimeProfile

_JS_ENTRY_PATTERNS = (
    re.compile(r"\bfunction\s+([A-Za-z_$][\w$]*)\s*\("),
    re.compile(r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*"
               r"(?:async\s+)?(?:function\b|\([^)]*\)\s*=>|[A-Za-z_$][\w$]*\s*=>)"),
)
_PY_ENTRY_PATTERNS = (re.compile(r"^def\s+([A-Za-z]\w*)\s*\(", re.MULTILINE), )

# code that already talks to stdin is a full program
_JS_PROGRAM_MARKERS = re.compile(r"process\.stdin|\breadline\b|/dev/stdin")
_PY_PROGRAM_MARKERS = re.compile(
    r"__name__\s*==|\binput\s*\(|sys\.stdin|\bfileinput\b")

_SCANNERS = {
    Harness.JAVASCRIPT: (_JS_ENTRY_PATTERNS, _JS_PROGRAM_MARKERS),
    Harness.PYTHON: (_PY_ENTRY_PATTERNS, _PY_PROGRAM_MARKERS),
}

_JS_DRIVER = """
{code}

// driver
try {{
    const __input = Function('"use strict"; return [' + {raw_input} + '];')();
    const __result = {entry}(...__input);
    const __output = JSON.stringify(__result);
    process.stdout.write(__output === undefined ? 'null' : __output);
}} catch (e) {{
    process.stderr.write(String(e && e.message ? e.message : e));
    process.exit(1);
}}
"""

_PY_DRIVER = """
{code}


# driver
import ast as _ast
import json as _json
import sys as _sys

try:
    _raw = {raw_input}
    _args = _ast.literal_eval('(' + _raw + ',)') if _raw.strip() else ()
    _result = {entry}(*_args)
    _sys.stdout.write(_json.dumps(_result, separators=(',', ':'),
                                  ensure_ascii=False))
except Exception as _exc:
    _sys.stderr.write(f'{{type(_exc).__name__}}: {{_exc}}')
    _sys.exit(1)
"""

_DRIVERS = {
    Harness.JAVASCRIPT: _JS_DRIVER,
    Harness.PYTHON: _PY_DRIVER,
}

# json escapes astral characters as surrogate pairs, which python string
# literals keep as lone surrogates
_LITERALS = {
    Harness.JAVASCRIPT: json.dumps,
    Harness.PYTHON: repr,
}


def _as_harness(language) -> Optional[Harness]:
    if language is None or isinstance(language, Harness):
        return language
    try:
        return Harness(str(language).lower())
    except ValueError:
        return None


def locate_entry_point(code: str, language) -> Optional[str]:
    """Best-effort lookup of the function a driver should call.

    Returns ``None`` when the language has no driver convention, when no
    function declaration is found, or when the code reads stdin on its own.
    """
    harness = _as_harness(language)
    if harness is None:
        return None
    patterns, program_markers = _SCANNERS[harness]
    if program_markers.search(code):
        return None
    matches = [m for m in (p.search(code) for p in patterns) if m]
    if not matches:
        return None
    return min(matches, key=lambda m: m.start()).group(1)


def prepare(code: str, test_input: str, profile: RuntimeProfile) -> str:
    entry = locate_entry_point(code, profile.harness)
    if entry is None:
        return code
    # the input is embedded as a string literal and parsed inside the sandbox
    return _DRIVERS[profile.harness].format(
        code=code,
        entry=entry,
        raw_input=_LITERALS[profile.harness](test_input),
    ).lstrip("\n")
