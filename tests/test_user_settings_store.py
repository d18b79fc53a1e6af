from time_tracking_app.config.user_settings_store import UserSettingsStore


def test_defaults_and_update_persist(tmp_path):
    store = UserSettingsStore(pointer_dir=tmp_path / "pointer")

    assert store.get("scan_cooldown_seconds") == 2.0
    assert store.get("recent_scan_limit") == 10
    assert store.get("continuous_mode") is True

    store.update(scan_cooldown_seconds=5, continuous_mode=False, unknown_key="ignored")

    reloaded = UserSettingsStore(pointer_dir=tmp_path / "pointer")
    assert reloaded.get("scan_cooldown_seconds") == 5.0
    assert reloaded.get("continuous_mode") is False
    assert reloaded.get("unknown_key") is None


def test_app_data_dir_can_move(tmp_path):
    store = UserSettingsStore(pointer_dir=tmp_path / "pointer")

    store.update(app_data_dir=str(tmp_path / "elsewhere"), recent_scan_limit=4)

    reloaded = UserSettingsStore(pointer_dir=tmp_path / "pointer")
    assert reloaded.app_data_dir == tmp_path / "elsewhere"
    assert reloaded.get("recent_scan_limit") == 4
    assert (tmp_path / "elsewhere" / "user_settings.json").exists()


def test_corrupt_settings_file_falls_back_to_defaults(tmp_path):
    pointer = tmp_path / "pointer"
    pointer.mkdir()
    (pointer / "user_settings.json").write_text("{not json", encoding="utf-8")

    store = UserSettingsStore(pointer_dir=pointer)

    assert store.get("recent_scan_limit") == 10
