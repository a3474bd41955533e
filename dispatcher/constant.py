from enum import Enum


class Language(str, Enum):
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    JAVA = "java"
    CPP = "cpp"


class Status(str, Enum):
    AC = "AC"
    WA = "WA"
    CE = "CE"
    TLE = "TLE"
    MLE = "MLE"
    RE = "RE"
    JE = "JE"


class Harness(str, Enum):
    JAVASCRIPT = "javascript"
    PYTHON = "python"


class TimeComplexity(str, Enum):
    CONSTANT = "O(1)"
    LINEAR = "O(n)"
    LINEARITHMIC = "O(n log n)"
    QUADRATIC = "O(n²)"
