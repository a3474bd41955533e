from typing import Optional


def normalize(text: Optional[str]) -> str:
    if text is None:
        return ""
    return text.strip()


def compare(actual: Optional[str], expected: Optional[str]) -> bool:
    # strict: no numeric tolerance, no per-line leniency
    return normalize(actual) == normalize(expected)
