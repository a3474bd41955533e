"""
Language runtime registry.

Maps a language identifier to the container image and the commands needed
to compile and run a submission. Built once at process start and handed to
the components that need it; never mutated afterwards.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

from . import config
from .constant import Harness, Language
from .exception import UnsupportedLanguage

# sources are mounted read-only here
CODE_DIR = "/code"
# compile output, writable during the compile step only
BUILD_DIR = "/build"


@dataclass(frozen=True)
class RuntimeProfile:
    language: str
    image: str
    extension: str
    filename: str
    run_command: Tuple[str, ...]
    compile_command: Optional[Tuple[str, ...]] = None
    harness: Optional[Harness] = None

    @property
    def compile_need(self) -> bool:
        return self.compile_command is not None


DEFAULT_PROFILES = (
    RuntimeProfile(
        language=Language.PYTHON.value,
        image="python:3.12-slim",
        extension="py",
        filename="solution.py",
        run_command=("python3", f"{CODE_DIR}/solution.py"),
        harness=Harness.PYTHON,
    ),
    RuntimeProfile(
        language=Language.JAVASCRIPT.value,
        image="node:20-slim",
        extension="js",
        filename="solution.js",
        run_command=("node", f"{CODE_DIR}/solution.js"),
        harness=Harness.JAVASCRIPT,
    ),
    RuntimeProfile(
        language=Language.JAVA.value,
        image="eclipse-temurin:21-jdk",
        extension="java",
        filename="Solution.java",
        compile_command=("javac", "-d", BUILD_DIR,
                         f"{CODE_DIR}/Solution.java"),
        run_command=("java", "-cp", BUILD_DIR, "Solution"),
    ),
    RuntimeProfile(
        language=Language.CPP.value,
        image="gcc:13",
        extension="cpp",
        filename="solution.cpp",
        compile_command=("g++", "-O2", "-std=gnu++17",
                         f"{CODE_DIR}/solution.cpp", "-o",
                         f"{BUILD_DIR}/solution"),
        run_command=(f"{BUILD_DIR}/solution", ),
    ),
)


class RuntimeRegistry:

    def __init__(self, profiles):
        table = {}
        for profile in profiles:
            key = profile.language.lower()
            if key in table:
                raise ValueError(f"duplicated runtime profile: {key}")
            table[key] = profile
        self._profiles: Mapping[str, RuntimeProfile] = MappingProxyType(table)

    def profile_for(self, language) -> RuntimeProfile:
        key = language.value if isinstance(language, Language) else language
        if not isinstance(key, str):
            raise UnsupportedLanguage(language)
        try:
            return self._profiles[key.strip().lower()]
        except KeyError:
            raise UnsupportedLanguage(language) from None

    @property
    def languages(self) -> Tuple[str, ...]:
        return tuple(sorted(self._profiles))

    def __contains__(self, language) -> bool:
        try:
            self.profile_for(language)
        except UnsupportedLanguage:
            return False
        return True

    def __iter__(self) -> Iterator[RuntimeProfile]:
        return iter(self._profiles.values())

    def __len__(self) -> int:
        return len(self._profiles)


def load_registry(config_path: str | Path | None = None) -> RuntimeRegistry:
    """Default profiles with image overrides from config file and env.

    The runtime config may carry ``{"image": {"python": "judge-python"}}``;
    ``JUDGE_IMAGE_PYTHON`` style variables take precedence over it.
    """
    images = config.get_runtime_config(config_path).get("image", {})
    profiles = []
    for profile in DEFAULT_PROFILES:
        image = os.getenv(f"JUDGE_IMAGE_{profile.language.upper()}",
                          images.get(profile.language, profile.image))
        profiles.append(replace(profile, image=image))
    return RuntimeRegistry(profiles)
