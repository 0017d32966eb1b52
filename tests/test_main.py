"""Testes do ponto de entrada de linha de comando."""

import pytest

import main
from blunder_puzzles import generator, recheck


def test_missing_input_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main.main([str(tmp_path / "missing.pgn")]) == 1


def test_invalid_config_exits_with_error(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "config.json"
    config_path.write_text('{"unknown": 1}', encoding="utf-8")
    assert main.main(["games.pgn", "--config", str(config_path)]) == 1


def test_arguments_reach_settings(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    captured = {}

    class Result:
        games_failed = 0

        def successful(self):
            return True

    def fake_generate(input_path, settings, resume=False, verbose=False, pgn_path=None):
        captured.update(input=input_path, settings=settings, resume=resume, pgn=pgn_path)
        return Result()

    monkeypatch.setattr(generator, "generate_puzzles", fake_generate)
    code = main.main(["club.pgn", "-d", "9", "-w", "3", "--verify-delta", "40", "--pgn", "out.pgn", "-r"])

    assert code == 0
    settings = captured["settings"]
    assert settings.shallow_depth == 9
    assert settings.workers == 3
    assert settings.verify_delta == 40
    assert settings.results_path.endswith("club_puzzles.json")
    assert captured["resume"] is True
    assert captured["pgn"] == "out.pgn"


@pytest.mark.parametrize("flag", ["--help", "-h"])
def test_help(flag, capsys):
    with pytest.raises(SystemExit):
        main.main([flag])
    assert "PGN" in capsys.readouterr().out


def test_verify_mode_rechecks_results(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    captured = {}

    def fake_verify(results_path, settings, report_path=None, session_factory=None):
        captured.update(results=results_path, settings=settings, report=report_path)
        return 2, 1, 0, 0

    def no_generate(*args, **kwargs):
        raise AssertionError("--verify não deve analisar partidas")

    monkeypatch.setattr(recheck, "verify_results", fake_verify)
    monkeypatch.setattr(generator, "generate_puzzles", no_generate)
    code = main.main(["club_puzzles.json", "--verify", "--verify-depth", "12", "--report", "report.json"])

    assert code == 0
    assert captured["results"] == "club_puzzles.json"
    assert captured["report"] == "report.json"
    assert captured["settings"].verify_depth == 12


def test_verify_mode_fails_on_invalid_puzzles(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(recheck, "verify_results", lambda *args, **kwargs: (3, 0, 1, 0))
    assert main.main(["club_puzzles.json", "--verify"]) == 1


def test_verify_mode_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert main.main([str(tmp_path / "missing.json"), "--verify"]) == 1
