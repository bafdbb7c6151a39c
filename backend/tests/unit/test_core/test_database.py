from chat_history.core.database import engine, get_db, _engine_options


def test_engine_exists():
    assert hasattr(engine, "connect")


def test_sqlite_engine_skips_pool_options():
    options = _engine_options("sqlite://")
    assert "pool_size" not in options
    assert options["connect_args"] == {"check_same_thread": False}


def test_postgres_engine_uses_pool_options():
    options = _engine_options("postgresql+psycopg2://u:p@localhost:5432/db")
    assert options["pool_size"] == 10
    assert options["pool_pre_ping"] is True


def test_get_db_yields_and_closes(monkeypatch):
    calls = {"closed": False}

    class DummySession:
        def close(self):
            calls["closed"] = True

    monkeypatch.setattr("chat_history.core.database.SessionLocal", lambda: DummySession())

    gen = get_db()
    db = next(gen)
    assert isinstance(db, DummySession)

    try:
        next(gen)
    except StopIteration:
        pass

    assert calls["closed"] is True
