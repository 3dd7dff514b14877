"""
Tests for database engine configuration.
"""

from podcast_translator.db.database import engine_options


class TestEngineOptions:

    def test_sqlite_allows_cross_thread_sessions(self) -> None:
        options = engine_options("sqlite:///./podcasts.db")

        assert options == {"connect_args": {"check_same_thread": False}}

    def test_postgres_checks_and_recycles_connections(self) -> None:
        options = engine_options("postgresql://postgres:postgres@db:5432/podcast_translator")

        assert options["pool_pre_ping"] is True
        assert options["pool_recycle"] == 300
        assert "connect_args" not in options
