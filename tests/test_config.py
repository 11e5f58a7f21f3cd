"""Tests for configuration and session files."""

import stat

from controltime.config import DATABASE_FILE, Config, Session, load_config


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "nope.conf")
        assert config == Config()
        assert config.database == DATABASE_FILE

    def test_parses_keys(self, tmp_path):
        path = tmp_path / "controltime.conf"
        path.write_text(
            "# Control Time\n"
            'GOOGLE_CLIENT_ID="abc.apps.googleusercontent.com"\n'
            "DATABASE_PATH=~/ct.db  # local\n"
            "LOG_LEVEL=debug\n"
            "TELEGRAM_ALLOWED_USERS=111, 222\n"
            "TELEGRAM_PLANNING_TIME=07:45\n"
            "UNKNOWN_KEY=ignored\n"
            "not a setting\n"
        )

        config = load_config(path)

        assert config.google_client_id == "abc.apps.googleusercontent.com"
        assert config.database_path == "~/ct.db"
        assert "~" not in str(config.database)
        assert config.log_level == "DEBUG"
        assert config.telegram_allowed_users == [111, 222]
        assert config.telegram_planning_time == "07:45"

    def test_invalid_allowed_users(self, tmp_path):
        path = tmp_path / "controltime.conf"
        path.write_text("TELEGRAM_ALLOWED_USERS=me\n")
        assert load_config(path).telegram_allowed_users == []


class TestSession:
    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config" / ".session.json"
        Session(user_id="u1", email="a@b.c", access_token="t", expires_at=5).save(path)

        loaded = Session.load(path)

        assert loaded.user_id == "u1"
        assert loaded.is_signed_in
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_corrupt_file_is_signed_out(self, tmp_path):
        path = tmp_path / ".session.json"
        path.write_text("{oops")
        assert not Session.load(path).is_signed_in

    def test_clear(self, tmp_path):
        path = tmp_path / ".session.json"
        Session(user_id="u1", access_token="t").save(path)
        assert Session.clear(path) is True
        assert Session.clear(path) is False
