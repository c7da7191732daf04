"""
Pytest configuration for the DartForge test suite.
"""
import sys
from pathlib import Path

import pytest

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

from dartforge.config import DEFAULT_SETTINGS, Settings  # noqa: E402


PERSON = """class Person {
  final String name;
  final int age;
}
"""


@pytest.fixture
def person_source():
    return PERSON


@pytest.fixture
def only():
    """Settings with every member generator disabled except the given keys."""
    def build(*keys, **extra):
        values = {k: (k in keys) for k in DEFAULT_SETTINGS if k.endswith(".enabled")}
        values.update(extra)
        return Settings.from_dict(values)
    return build
