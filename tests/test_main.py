"""Tests for the command-line front end."""

import json

import pytest

import main
from conftest import make_session
from core.storage import Storage
from utils.config import Config


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    """Keep CLI runs from installing global log handlers."""
    monkeypatch.setattr(main, "setup_logging", lambda verbose=False: None)


@pytest.fixture
def run(temp_db_path):
    def _run(*args):
        return main.main(["--db", str(temp_db_path), *args])
    return _run


@pytest.fixture
def attempt_file(tmp_path):
    path = tmp_path / "attempt.json"
    path.write_text(json.dumps({
        "id": "1700000000000-attempt01",
        "referenceText": "hello",
        "typedText": "helo",
        "keystrokes": [
            {"key": k, "keyDownTime": 1700000000000 + i * 200,
             "keyUpTime": 1700000000000 + i * 200 + 90, "duration": 90,
             "isCorrect": k != "o", "characterIndex": i}
            for i, k in enumerate("helo")
        ],
        "startTime": 1700000000000,
        "endTime": 1700000060000,
    }))
    return path


class TestHistory:
    """Test the history command."""

    def test_empty_history(self, run, capsys):
        assert run("history") == 0
        out = capsys.readouterr().out
        assert "Sessions: 0" in out
        assert "No typing sessions yet." in out

    def test_limit_from_config(self, run, capsys, temp_db_path):
        """Test the history_limit setting caps the listing."""
        Config(temp_db_path).set("history_limit", 1)
        storage = Storage(temp_db_path)
        storage.save_session(make_session("a-session", timestamp=1700000000000))
        storage.save_session(make_session("b-session", timestamp=1700000100000))

        assert run("history") == 0
        out = capsys.readouterr().out
        assert "b-session" in out
        assert "a-session" not in out

    @pytest.mark.parametrize("limit", ["0", "-1", "abc"])
    def test_rejects_non_positive_limit(self, run, limit):
        """Test --limit only accepts positive integers."""
        with pytest.raises(SystemExit) as exc_info:
            run("history", "--limit", limit)
        assert exc_info.value.code == 2

    def test_lists_sessions(self, run, capsys, temp_db_path):
        storage = Storage(temp_db_path)
        storage.save_session(make_session("a-session", timestamp=1700000000000, wpm=40, accuracy=90))
        storage.save_session(make_session("b-session", timestamp=1700000100000, wpm=45, accuracy=95))

        assert run("history") == 0
        out = capsys.readouterr().out
        assert "Sessions: 2" in out
        assert "Average WPM: 43" in out
        assert out.index("b-session") < out.index("a-session")


class TestShow:
    """Test the show command."""

    def test_unknown_session(self, run, capsys):
        assert run("show", "missing") == 1
        assert "No session with id missing" in capsys.readouterr().err

    def test_show_session(self, run, capsys, attempt_file):
        run("compute", str(attempt_file), "--save")
        capsys.readouterr()

        assert run("show", "1700000000000-attempt01") == 0
        out = capsys.readouterr().out
        assert "Accuracy:            75%" in out
        assert "4 (3 correct, 1 incorrect)" in out
        assert "'h'" in out


class TestCompute:
    """Test the compute command."""

    def test_compute_without_saving(self, run, capsys, attempt_file, temp_db_path):
        assert run("compute", str(attempt_file)) == 0
        out = capsys.readouterr().out
        assert "Error rate:          25%" in out
        assert Storage(temp_db_path).get_all_sessions() == []

    def test_compute_and_save(self, run, attempt_file, temp_db_path):
        assert run("compute", str(attempt_file), "--save") == 0
        assert Storage(temp_db_path).get_session("1700000000000-attempt01") is not None

    def test_bad_file(self, run, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text("{not json")
        assert run("compute", str(bad)) == 1

    def test_missing_file(self, run, tmp_path):
        assert run("compute", str(tmp_path / "nope.json")) == 1


class TestDelete:
    """Test the delete and clear commands."""

    def test_delete_with_yes(self, run, temp_db_path):
        Storage(temp_db_path).save_session(make_session("gone"))
        assert run("delete", "gone", "--yes") == 0
        assert Storage(temp_db_path).get_session("gone") is None

    def test_delete_cancelled(self, run, temp_db_path, monkeypatch, capsys):
        Storage(temp_db_path).save_session(make_session("kept"))
        monkeypatch.setattr("builtins.input", lambda prompt: "n")
        assert run("delete", "kept") == 0
        assert "Cancelled." in capsys.readouterr().out
        assert Storage(temp_db_path).get_session("kept") is not None

    def test_delete_confirmed(self, run, temp_db_path, monkeypatch):
        Storage(temp_db_path).save_session(make_session("gone"))
        monkeypatch.setattr("builtins.input", lambda prompt: "y")
        assert run("delete", "gone") == 0
        assert Storage(temp_db_path).get_session("gone") is None

    def test_delete_without_confirmation_setting(self, run, temp_db_path, monkeypatch):
        Config(temp_db_path).set("confirm_deletes", False)
        Storage(temp_db_path).save_session(make_session("gone"))

        def fail(prompt):
            raise AssertionError("should not prompt")

        monkeypatch.setattr("builtins.input", fail)
        assert run("delete", "gone") == 0

    def test_delete_unknown(self, run):
        assert run("delete", "missing", "--yes") == 1

    def test_clear(self, run, temp_db_path):
        storage = Storage(temp_db_path)
        storage.save_session(make_session("a", timestamp=1))
        storage.save_session(make_session("b", timestamp=2))
        assert run("clear", "--yes") == 0
        assert storage.get_all_sessions() == []


class TestExport:
    """Test the export command."""

    def test_export_csv(self, run, temp_db_path, tmp_path):
        Storage(temp_db_path).save_session(make_session())
        output = tmp_path / "sessions.csv"
        assert run("export", "csv", "-o", str(output)) == 0
        assert output.read_text().startswith("Session ID,")

    def test_export_json_to_configured_directory(self, run, temp_db_path, tmp_path):
        export_dir = tmp_path / "exports"
        export_dir.mkdir()
        Config(temp_db_path).set("export_directory", str(export_dir))
        Storage(temp_db_path).save_session(make_session())

        assert run("export", "json") == 0
        files = list(export_dir.glob("oncue-typing-data-*.json"))
        assert len(files) == 1
        assert json.loads(files[0].read_text())[0]["id"] == "1700000000000-abcdefghi"


    def test_export_to_missing_directory(self, run, temp_db_path, tmp_path):
        """Test an unwritable export path is reported with exit status 1."""
        Storage(temp_db_path).save_session(make_session())
        assert run("export", "csv", "-o", str(tmp_path / "nope" / "x.csv")) == 1

    def test_missing_export_directory_setting(self, run, temp_db_path, tmp_path):
        Config(temp_db_path).set("export_directory", str(tmp_path / "gone"))
        assert run("export", "json") == 1


class TestProfile:
    """Test the profile command."""

    def test_no_profile(self, run, capsys):
        assert run("profile") == 0
        assert "No profile stored." in capsys.readouterr().out

    def test_create_and_update(self, run, capsys, temp_db_path):
        assert run("profile", "--name", "Sam", "--age", "61") == 0
        assert run("profile", "--severity", "moderate") == 0
        profile = Storage(temp_db_path).get_profile()
        assert profile.name == "Sam"
        assert profile.age == 61
        assert profile.symptom_severity == "moderate"
        assert '"symptomSeverity": "moderate"' in capsys.readouterr().out

    def test_invalid_age(self, run, temp_db_path):
        assert run("profile", "--age", "-3") == 1
        assert Storage(temp_db_path).get_profile() is None


class TestReplay:
    """Test the replay command."""

    @pytest.fixture
    def key_log_file(self, tmp_path):
        path = tmp_path / "keys.json"
        path.write_text(json.dumps({
            "startTime": 0,
            "endTime": 12000,
            "events": [
                {"type": "keydown", "key": "h", "time": 100},
                {"type": "keyup", "key": "h", "time": 180},
                {"type": "keydown", "key": "i", "time": 300},
                {"type": "keyup", "key": "i", "time": 370},
            ],
        }))
        return path

    def test_uses_configured_reference(self, run, capsys, temp_db_path, key_log_file):
        Config(temp_db_path).set("reference_text", "hi there")
        assert run("replay", str(key_log_file)) == 0
        sessions = Storage(temp_db_path).get_all_sessions()
        assert len(sessions) == 1
        assert sessions[0].reference_text == "hi there"
        assert "Accuracy:            100%" in capsys.readouterr().out

    def test_text_option_and_dry_run(self, run, capsys, temp_db_path, key_log_file):
        assert run("replay", str(key_log_file), "--text", "ho", "--dry-run") == 0
        assert "Accuracy:            50%" in capsys.readouterr().out
        assert Storage(temp_db_path).get_all_sessions() == []

    def test_bad_key_log(self, run, tmp_path):
        bad = tmp_path / "keys.json"
        bad.write_text(json.dumps({"events": [{"type": "tap"}]}))
        assert run("replay", str(bad)) == 1
