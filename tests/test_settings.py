import orjson
import pytest

from settings import DEFAULT_CONFIG, INVERTED_OVERRIDE, ConfigManager


def test_missing_file_yields_defaults(tmp_path):
    mgr = ConfigManager(str(tmp_path / "missing.json"), DEFAULT_CONFIG)
    assert mgr.data == DEFAULT_CONFIG
    assert mgr.data is not DEFAULT_CONFIG


def test_file_values_override_defaults(tmp_path):
    path = tmp_path / "redshift_config.json"
    path.write_bytes(orjson.dumps({"NIGHT_TEMP": 3400, "EXCLUDED_APPS": ["vlc"]}))
    mgr = ConfigManager(str(path), DEFAULT_CONFIG)
    assert mgr.get("NIGHT_TEMP") == 3400
    assert mgr.get("EXCLUDED_APPS") == ["vlc"]
    assert mgr.get("DAY_TEMP") == 6500


def test_corrupt_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "redshift_config.json"
    path.write_bytes(b"{not json")
    mgr = ConfigManager(str(path), DEFAULT_CONFIG)
    assert mgr.get("NIGHT_START") == "21:00"


def test_override_round_trips_through_the_file(tmp_path):
    path = str(tmp_path / "redshift_config.json")
    mgr = ConfigManager(path, DEFAULT_CONFIG)
    mgr.set(INVERTED_OVERRIDE, False)
    mgr.flush()

    reloaded = ConfigManager(path, DEFAULT_CONFIG)
    assert reloaded.get(INVERTED_OVERRIDE) is False

    reloaded.clear(INVERTED_OVERRIDE)
    reloaded.flush()
    assert INVERTED_OVERRIDE not in orjson.loads((tmp_path / "redshift_config.json").read_bytes())


def test_clear_of_missing_key_does_not_schedule_a_save(tmp_path):
    mgr = ConfigManager(str(tmp_path / "c.json"), DEFAULT_CONFIG)
    mgr.clear(INVERTED_OVERRIDE)
    mgr.flush()
    assert not (tmp_path / "c.json").exists()


@pytest.mark.parametrize("payload", [b"[]", b"null", b"42", b'"21:00"'])
def test_non_object_file_falls_back_to_defaults(tmp_path, payload):
    path = tmp_path / "redshift_config.json"
    path.write_bytes(payload)
    mgr = ConfigManager(str(path), DEFAULT_CONFIG)
    assert mgr.data == DEFAULT_CONFIG
