import json

from walkguide import Backend, JsonPreferenceStore


def test_missing_file_has_no_selection(tmp_path):
    store = JsonPreferenceStore(tmp_path / "prefs.json")
    assert store.get_selected_backend() is None


def test_round_trip_creates_parent_dirs(tmp_path):
    path = tmp_path / "nested" / "prefs.json"
    store = JsonPreferenceStore(path)
    store.set_selected_backend(Backend.CHATGPT)
    assert json.loads(path.read_text(encoding="utf-8")) == {"selected_backend": "chatgpt"}
    assert JsonPreferenceStore(path).get_selected_backend() is Backend.CHATGPT


def test_other_keys_are_preserved(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"volume": 0.8, "selected_backend": "gemini"}), encoding="utf-8")
    JsonPreferenceStore(path).set_selected_backend(Backend.CLAUDE)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"volume": 0.8, "selected_backend": "claude"}


def test_corrupt_or_unknown_values_are_ignored(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")
    assert JsonPreferenceStore(path).get_selected_backend() is None
    path.write_text(json.dumps({"selected_backend": "bard"}), encoding="utf-8")
    assert JsonPreferenceStore(path).get_selected_backend() is None
    path.write_text(json.dumps(["gemini"]), encoding="utf-8")
    assert JsonPreferenceStore(path).get_selected_backend() is None


def test_non_string_selection_is_ignored(tmp_path):
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"selected_backend": 1}), encoding="utf-8")
    assert JsonPreferenceStore(path).get_selected_backend() is None
