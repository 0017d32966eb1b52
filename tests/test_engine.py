"""Testes de blunder_puzzles.engine: remontagem de linhas, disciplina de requisições, timeouts."""

import threading
import time

import pytest

from blunder_puzzles.engine import EngineSession, LineBuffer, find_engine_path, open_session
from blunder_puzzles.config import Settings
from blunder_puzzles.errors import (
    ConcurrentRequestViolation,
    EngineTerminated,
    ProtocolTimeout,
    SpawnFailure,
)


def wait_until(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


# ---------------------------------------------------------------------------
# Remontagem de linhas
# ---------------------------------------------------------------------------


class TestLineBuffer:

    def test_complete_lines(self):
        buf = LineBuffer()
        assert buf.feed(b"uciok\nreadyok\n") == ["uciok", "readyok"]

    def test_fragment_kept_until_terminator(self):
        buf = LineBuffer()
        assert buf.feed(b"info depth 1 sc") == []
        assert buf.feed(b"ore cp 20\nbest") == ["info depth 1 score cp 20"]
        assert buf.feed(b"move e2e4\n") == ["bestmove e2e4"]

    def test_crlf_terminators(self):
        buf = LineBuffer()
        assert buf.feed(b"uciok\r\nreadyok\r\n") == ["uciok", "readyok"]

    def test_multibyte_character_split_across_reads(self):
        buf = LineBuffer()
        data = "id author José\n".encode("utf-8")
        cut = data.index(b"\xc3") + 1
        assert buf.feed(data[:cut]) == []
        assert buf.feed(data[cut:]) == ["id author José"]

    def test_flush_returns_unterminated_rest(self):
        buf = LineBuffer()
        buf.feed(b"bestmove e2e4")
        assert buf.flush() == ["bestmove e2e4"]
        assert buf.flush() == []


# ---------------------------------------------------------------------------
# Localização do motor
# ---------------------------------------------------------------------------


class TestFindEnginePath:

    def test_explicit_missing_path_raises(self):
        with pytest.raises(FileNotFoundError):
            find_engine_path("/nonexistent/dir/stockfish")

    def test_explicit_existing_file(self, tmp_path):
        engine = tmp_path / "engine"
        engine.write_text("")
        assert find_engine_path(str(engine)) == str(engine)

    def test_open_session_wraps_missing_engine(self):
        settings = Settings(engine_path="/nonexistent/dir/stockfish")
        with pytest.raises(SpawnFailure):
            open_session(settings)


# ---------------------------------------------------------------------------
# Sessão
# ---------------------------------------------------------------------------


class TestEngineSession:

    def test_spawn_failure(self):
        with pytest.raises(SpawnFailure):
            EngineSession(["/nonexistent/dir/engine"])

    def test_handshake_and_transcript(self, fake_engine):
        with EngineSession(fake_engine()) as session:
            session.handshake({"Hash": 16})
            sent = [e.text for e in session.transcript if e.direction == ">"]
            received = [e.text for e in session.transcript if e.direction == "<"]
            assert sent[0] == "uci"
            assert "setoption name Hash value 16" in sent
            assert "uciok" in received
            assert received[-1] == "readyok"

    def test_request_returns_matching_line(self, fake_engine):
        with EngineSession(fake_engine()) as session:
            assert session.request("isready", "readyok", timeout=5) == "readyok"
            assert not session.pending

    def test_lines_for_epoch(self, fake_engine):
        with EngineSession(fake_engine()) as session:
            session.request("isready", "readyok", timeout=5)
            session.write("position startpos")
            line = session.request("go depth 3", "bestmove", timeout=5)
            lines = session.lines_for(session.epoch)
            assert line.startswith("bestmove")
            assert [l for l in lines if l.startswith("info")] == [
                "info depth 1 seldepth 1 multipv 1 score cp 0 nodes 100",
                "info depth 2 seldepth 2 multipv 1 score cp 0 nodes 200",
                "info depth 3 seldepth 3 multipv 1 score cp 0 nodes 300",
            ]
            assert "readyok" not in lines

    def test_fragmented_output(self, fake_engine):
        with EngineSession(fake_engine({"fragment": True})) as session:
            session.handshake()
            received = [e.text for e in session.transcript if e.direction == "<"]
            assert "id name FakeEngine" in received
            assert "uciok" in received

    def test_on_line_sees_every_line(self, fake_engine):
        seen = []
        with EngineSession(fake_engine(), on_line=seen.append) as session:
            session.request("uci", "uciok", timeout=5)
        assert seen[0] == "id name FakeEngine"
        assert "uciok" in seen

    def test_concurrent_request_rejected(self, fake_engine):
        session = EngineSession(fake_engine({"hang": True}))
        errors = []

        def search():
            try:
                session.request("go depth 10", "bestmove", timeout=10)
            except EngineTerminated as e:
                errors.append(e)

        worker = threading.Thread(target=search)
        worker.start()
        try:
            assert wait_until(lambda: session.pending)
            with pytest.raises(ConcurrentRequestViolation):
                session.request("isready", "readyok", timeout=1)
        finally:
            session.stop()
            worker.join(5)
        assert len(errors) == 1

    def test_timeout_releases_slot_and_resyncs(self, fake_engine):
        with EngineSession(fake_engine({"hang": True})) as session:
            session.write("position startpos")
            with pytest.raises(ProtocolTimeout) as info:
                session.request("go depth 10", "bestmove", timeout=0.2)
            assert info.value.prefix == "bestmove"
            assert not session.pending

            # A próxima requisição sincroniza antes (stop + isready) e funciona normalmente
            assert session.request("isready", "readyok", timeout=5) == "readyok"
            sent = [e.text for e in session.transcript if e.direction == ">"]
            assert sent[-3:] == ["stop", "isready", "isready"]

    def test_late_line_does_not_satisfy_new_request(self, fake_engine):
        with EngineSession(fake_engine({"hang": True})) as session:
            session.write("position startpos")
            with pytest.raises(ProtocolTimeout):
                session.request("go depth 10", "bestmove", timeout=0.2)
            # A resposta atrasada ("bestmove 0000") chega depois do stop, mas não resolve este go
            with pytest.raises(ProtocolTimeout):
                session.request("go depth 10", "bestmove", timeout=0.3)
            late = [e for e in session.transcript if e.text == "bestmove 0000"]
            assert late

    def test_engine_crash_fails_pending_request(self, fake_engine):
        with EngineSession(fake_engine({"crash_on_go": True})) as session:
            session.write("position startpos")
            with pytest.raises(EngineTerminated):
                session.request("go depth 5", "bestmove", timeout=5)

    def test_stop_is_idempotent(self, fake_engine):
        session = EngineSession(fake_engine())
        session.request("isready", "readyok", timeout=5)
        session.stop()
        session.stop()
        assert not session.alive
        with pytest.raises(EngineTerminated):
            session.request("isready", "readyok", timeout=1)
        with pytest.raises(EngineTerminated):
            session.write("isready")

    def test_alive_while_stop_clears_the_process(self):
        # stop() em outra thread pode zerar _proc entre duas leituras
        reads = []

        class RunningProc:
            def poll(self):
                return None

        class VanishingSession(EngineSession):
            @property
            def _proc(self):
                reads.append(1)
                return RunningProc() if len(reads) == 1 else None

        session = VanishingSession.__new__(VanishingSession)
        assert session.alive
        assert len(reads) == 1
