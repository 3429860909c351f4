from chat_relay.config import StoreBackend, get_secret, load_settings


def test_defaults(monkeypatch, tmp_path):
    for name in ("STORE_BACKEND", "PORT", "RECONCILE_INTERVAL_SECONDS", "FIREBASE_API_KEY"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings(secrets_dir=tmp_path)

    assert settings.store_backend == StoreBackend.MEMORY
    assert settings.port == 8080
    assert settings.reconcile_interval_seconds == 0
    assert settings.firebase_api_key is None


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("STORE_BACKEND", "firebase")
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("RECONCILE_INTERVAL_SECONDS", "30")

    settings = load_settings(secrets_dir=tmp_path)

    assert settings.store_backend == StoreBackend.FIREBASE
    assert settings.port == 9000
    assert settings.reconcile_interval_seconds == 30


def test_secret_files_win_over_the_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("FIREBASE_API_KEY", "from-env")
    (tmp_path / "FIREBASE_API_KEY").write_text("from-file\n")

    assert get_secret("FIREBASE_API_KEY", secrets_dir=tmp_path) == "from-file"
    assert load_settings(secrets_dir=tmp_path).firebase_api_key == "from-file"
    assert get_secret("MISSING_SECRET", default="x", secrets_dir=tmp_path) == "x"
