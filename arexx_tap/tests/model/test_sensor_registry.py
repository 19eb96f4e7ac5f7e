from __future__ import annotations

from datetime import datetime, timezone

import pytest

from arexx_tap.model.reading import Reading
from arexx_tap.model.sensor import SensorConfig, SensorRegistry


def test_lookup_known_and_unknown_ids():
    reg = SensorRegistry([SensorConfig(1111, "Outdoors"), SensorConfig(2222, "Office")])

    assert reg.lookup(1111).name == "Outdoors"
    assert reg.lookup(3333) is None
    assert 2222 in reg
    assert len(reg) == 2
    assert [s.id for s in reg] == [1111, 2222]


def test_duplicate_ids_rejected():
    with pytest.raises(ValueError):
        SensorRegistry([SensorConfig(1, "a"), SensorConfig(1, "b")])


def test_registry_is_read_only():
    reg = SensorRegistry([SensorConfig(1, "a")])
    with pytest.raises(TypeError):
        reg._sensors[2] = SensorConfig(2, "b")  # type: ignore[index]


def test_reading_as_dict_omits_missing_signal_quality():
    r = Reading(
        sensor_id=1111,
        sensor_name="Outdoors",
        timestamp=datetime(2000, 1, 1, tzinfo=timezone.utc),
        raw_value=100,
        temperature=0.85,
    )

    assert r.as_dict() == {
        "sensor_id": 1111,
        "sensor_name": "Outdoors",
        "timestamp": "2000-01-01T00:00:00+00:00",
        "raw_value": 100,
        "temperature": 0.85,
    }


def test_reading_unix_ns_and_immutability():
    r = Reading(1, "x", datetime(2000, 1, 1, tzinfo=timezone.utc), 1, 1.0, signal_quality=5)

    assert r.unix_ns == 946_684_800 * 1_000_000_000
    assert r.as_dict()["signal_quality"] == 5
    with pytest.raises(AttributeError):
        r.temperature = 2.0  # type: ignore[misc]
