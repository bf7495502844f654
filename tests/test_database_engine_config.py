def test_get_engine_kwargs_sqlite_has_check_same_thread(monkeypatch):
    # Import lazily so monkeypatch can affect env usage deterministically.
    from recruitguard.database import database as db

    kwargs = db.get_engine_kwargs("sqlite:///./recruitguard.db")
    assert "connect_args" in kwargs
    assert kwargs["connect_args"]["check_same_thread"] is False
    # SQLite should not require pool sizing knobs.
    assert "pool_size" not in kwargs
    assert "max_overflow" not in kwargs
    assert kwargs["pool_pre_ping"] is True


def test_get_engine_kwargs_postgres_has_conservative_pooling(monkeypatch):
    from recruitguard.database import database as db

    monkeypatch.setenv("DB_POOL_SIZE", "8")
    monkeypatch.setenv("DB_MAX_OVERFLOW", "2")
    monkeypatch.setenv("DB_POOL_TIMEOUT_SEC", "15")

    kwargs = db.get_engine_kwargs("postgresql+psycopg://u:p@localhost:5432/recruitguard")
    assert "connect_args" not in kwargs
    assert kwargs["pool_pre_ping"] is True
    assert kwargs["pool_size"] == 8
    assert kwargs["max_overflow"] == 2
    assert kwargs["pool_timeout"] == 15


def test_debug_enables_echo(monkeypatch):
    from recruitguard.database import database as db

    monkeypatch.setenv("DEBUG", "true")
    assert db.get_engine_kwargs("sqlite:///./recruitguard.db")["echo"] is True


def test_sqlite_pragmas_listener_is_guarded():
    from recruitguard.database import database as db

    assert db._is_sqlite_url("sqlite:///./recruitguard.db") is True
    assert db._is_sqlite_url("postgresql+psycopg://u:p@localhost/db") is False


def test_ensure_legacy_schema_adds_soft_delete_markers_for_sqlite(tmp_path):
    """Legacy SQLite DBs get the soft-delete marker columns patched in place."""
    from sqlalchemy import create_engine, text
    from recruitguard.database import database as db

    db_path = tmp_path / "legacy.db"
    url = f"sqlite:///{db_path}"
    engine = create_engine(url, connect_args={"check_same_thread": False})

    # A pre-governance schema: jobs only had deleted_at, candidates had no markers.
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE jobs (id VARCHAR PRIMARY KEY, title VARCHAR, deleted_at DATETIME)"))
        conn.execute(text("CREATE TABLE candidates (id VARCHAR PRIMARY KEY, full_name VARCHAR)"))

    db.ensure_legacy_schema_compat(engine_override=engine, database_url_override=url)

    raw = engine.raw_connection()
    try:
        for table_name in ("jobs", "candidates"):
            for column_name in db.SOFT_DELETE_MARKER_COLUMNS:
                assert db._sqlite_table_has_column(raw, table_name, column_name) is True
        for column_name in db.CANDIDATE_ERASURE_COLUMNS:
            assert db._sqlite_table_has_column(raw, "candidates", column_name) is True
        # Tables that do not exist yet are left for create_all().
        assert db._sqlite_table_has_column(raw, "feedbacks", "deleted_at") is False
    finally:
        raw.close()
    engine.dispose()


def test_ensure_legacy_schema_is_noop_for_postgres():
    from recruitguard.database import database as db

    # Returns before touching the (bogus) engine.
    assert db.ensure_legacy_schema_compat(engine_override=object(), database_url_override="postgresql://u:p@h/db") is None
