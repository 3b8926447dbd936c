"""
Tests for the dictionary-ingest command line.
"""
import json

import pytest

from dictionary_ingest.cli import create_parser, main


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "dict.db"


@pytest.fixture
def batch_file(tmp_path, walk_document, make_document):
    path = tmp_path / "batch.json"
    path.write_text(
        json.dumps([
            walk_document,
            make_document("bear", fl="noun", id="bear:1", definitions=["a large animal"]),
        ]),
        encoding="utf-8",
    )
    return path


class TestParser:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "dictionary-ingest" in capsys.readouterr().out

    def test_defaults(self):
        args = create_parser().parse_args(["stats"])
        assert str(args.db) == "dictionary.db"
        assert args.config is None
        assert args.verbose == 0


class TestIngestCommand:

    def test_ingest_file(self, db_path, batch_file, capsys):
        assert main(["--db", str(db_path), "ingest", str(batch_file)]) == 0
        out = capsys.readouterr().out
        assert "[OK] walk: 1 definition(s), 2 candidate(s), 3 relationship(s)" in out
        assert "[OK] bear:" in out

    def test_missing_file(self, db_path, tmp_path, capsys):
        assert main(["--db", str(db_path), "ingest", str(tmp_path / "nope.json")]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_malformed_json(self, db_path, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        assert main(["--db", str(db_path), "ingest", str(path)]) == 1
        assert "[PARSE ERROR]" in capsys.readouterr().out

    def test_unparseable_document_fails_the_run(self, db_path, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([{"meta": {"id": "x"}}]), encoding="utf-8")
        assert main(["--db", str(db_path), "ingest", str(path)]) == 1
        assert "1 failed run(s) recorded" in capsys.readouterr().out


class TestReadCommands:

    @pytest.fixture(autouse=True)
    def _ingested(self, db_path, batch_file):
        assert main(["--db", str(db_path), "ingest", str(batch_file)]) == 0

    def test_show(self, db_path, capsys):
        capsys.readouterr()
        assert main(["--db", str(db_path), "show", "walk"]) == 0
        out = capsys.readouterr().out
        assert "Phonetic:  ˈwɑːk" in out
        assert "* to move with your legs" in out
        assert "-> synonym: stroll" in out

    def test_show_variant(self, db_path, capsys):
        capsys.readouterr()
        assert main(["--db", str(db_path), "show", "bear", "--variant", "1"]) == 0
        out = capsys.readouterr().out
        assert "bear [1]" in out
        assert "a large animal" in out

    def test_show_missing(self, db_path, capsys):
        assert main(["--db", str(db_path), "show", "nothing"]) == 1

    def test_history(self, db_path, capsys):
        capsys.readouterr()
        assert main(["--db", str(db_path), "history", "--word", "walk"]) == 0
        out = capsys.readouterr().out
        assert "COMMITTED" in out
        assert "bear" not in out

    def test_history_failed_only(self, db_path, capsys):
        capsys.readouterr()
        assert main(["--db", str(db_path), "history", "--failed"]) == 0
        assert "No ingestion runs found." in capsys.readouterr().out

    def test_validate(self, db_path, capsys):
        capsys.readouterr()
        assert main(["--db", str(db_path), "validate"]) == 0
        assert "[ERROR]" not in capsys.readouterr().out

    def test_stats(self, db_path, capsys):
        capsys.readouterr()
        assert main(["--db", str(db_path), "stats"]) == 0
        out = capsys.readouterr().out
        assert "words" in out
        assert "sense_relations" in out


class TestConfigOption:

    def test_missing_config(self, db_path, tmp_path, capsys):
        assert main(["--db", str(db_path), "--config", str(tmp_path / "none.yaml"), "stats"]) == 1
        assert "[ERROR]" in capsys.readouterr().out

    def test_bad_config(self, db_path, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("max_workers: many\n", encoding="utf-8")
        assert main(["--db", str(db_path), "--config", str(path), "stats"]) == 1
        assert "[CONFIG ERROR]" in capsys.readouterr().out

    def test_valid_config(self, db_path, tmp_path):
        path = tmp_path / "ingest.yaml"
        path.write_text("max_workers: 2\nlog_level: INFO\n", encoding="utf-8")
        assert main(["--db", str(db_path), "--config", str(path), "stats"]) == 0
