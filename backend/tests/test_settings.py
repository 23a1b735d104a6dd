from app.settings import Settings


def test_defaults(monkeypatch):
    for name in ("ORIGIN", "TRICK_DELAY_SECONDS", "GAME_OVER_SCORE", "JACK_OF_DIAMONDS", "AUTO_START"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.allowed_origins() == ["http://localhost:5173"]
    config = settings.table_config()
    assert config.trick_delay_seconds == 2.0
    assert config.game_over_score == 100
    assert config.jack_of_diamonds is False
    assert config.auto_start is False


def test_origins_parsed_from_env(monkeypatch):
    monkeypatch.setenv("ORIGIN", " https://hearts.example.com ,, https://www.hearts.example.com")
    settings = Settings(_env_file=None)
    assert settings.allowed_origins() == [
        "http://localhost:5173",
        "https://hearts.example.com",
        "https://www.hearts.example.com",
    ]


def test_table_config_from_env(monkeypatch):
    monkeypatch.setenv("TRICK_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("GAME_OVER_SCORE", "50")
    monkeypatch.setenv("JACK_OF_DIAMONDS", "true")
    monkeypatch.setenv("AUTO_START", "1")
    config = Settings(_env_file=None).table_config()
    assert config.trick_delay_seconds == 0.5
    assert config.game_over_score == 50
    assert config.jack_of_diamonds is True
    assert config.auto_start is True


def test_log_status(caplog):
    caplog.set_level("INFO", logger="app.settings")
    Settings(_env_file=None).log_status()
    assert "Table settings" in caplog.text
