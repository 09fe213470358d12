import pytest

from ripple import Runtime, use_runtime


@pytest.fixture(autouse=True)
def runtime():
    """Every test builds its graph on a fresh runtime."""
    with use_runtime(Runtime()) as rt:
        yield rt
