from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from strongbox import global_config as g
from strongbox.preferences import Preferences, default_preferences_path


@pytest.mark.unit
def test_default_path_follows_home_env(store_home: Path) -> None:
    assert default_preferences_path() == store_home / g.PREFERENCES_FILE_NAME
    assert Preferences().path == store_home / g.PREFERENCES_FILE_NAME


@pytest.mark.unit
def test_missing_file_returns_default(project_root: Path) -> None:
    prefs = Preferences(project_root / "prefs.yaml")

    assert prefs.get_bool("flag") is False
    assert prefs.get_bool("flag", True) is True
    assert not prefs.path.exists()


@pytest.mark.unit
def test_set_bool_persists_and_keeps_other_keys(project_root: Path) -> None:
    path = project_root / "nested" / "prefs.yaml"
    path.parent.mkdir()
    path.write_text("theme: dark\n", encoding="utf-8")
    prefs = Preferences(path)

    prefs.set_bool("flag", True)

    assert Preferences(path).get_bool("flag") is True
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert data == {"flag": True, "theme": "dark"}
    assert not path.with_name("prefs.yaml.tmp").exists()


@pytest.mark.unit
def test_non_boolean_value_falls_back(project_root: Path) -> None:
    path = project_root / "prefs.yaml"
    path.write_text("flag: 'yes please'\n", encoding="utf-8")

    assert Preferences(path).get_bool("flag", True) is True


@pytest.mark.unit
def test_non_mapping_file_is_rejected(project_root: Path) -> None:
    path = project_root / "prefs.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        Preferences(path).get_bool("flag")
