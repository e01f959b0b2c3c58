import itertools
from datetime import datetime

import pytest

from worktime.models import WorkSession


@pytest.fixture
def ids():
    counter = itertools.count(1)
    return lambda: f"s{next(counter)}"


def completed(sid: str, start: str, end: str) -> WorkSession:
    """Session from "YYYY-MM-DD HH:MM" strings."""
    fmt = "%Y-%m-%d %H:%M"
    return WorkSession(id=sid, start_time=datetime.strptime(start, fmt), end_time=datetime.strptime(end, fmt))
