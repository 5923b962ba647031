from datetime import datetime, timedelta, timezone

import pytest

from workout_gym.errors import InvalidInput
from workout_gym.utils.dates import parse_datetime, to_epoch


def test_parse_accepts_epoch_and_iso():
    expected = datetime(2030, 1, 1)
    assert parse_datetime(1893456000) == expected
    assert parse_datetime('1893456000') == expected
    assert parse_datetime('2030-01-01T00:00:00Z') == expected
    assert parse_datetime('2030-01-01T02:00:00+02:00') == expected
    assert parse_datetime(datetime(2030, 1, 1, 1, tzinfo=timezone(timedelta(hours=1)))) == expected


def test_parse_blank_is_none():
    assert parse_datetime(None) is None
    assert parse_datetime('') is None


@pytest.mark.parametrize('value', ['next tuesday', True, [1], {'at': 1}])
def test_parse_rejects_garbage(value):
    with pytest.raises(InvalidInput) as excinfo:
        parse_datetime(value, 'hard_deadline')
    assert 'hard_deadline' in excinfo.value.message


def test_to_epoch():
    assert to_epoch(None) is None
    assert to_epoch(datetime(2030, 1, 1)) == 1893456000
