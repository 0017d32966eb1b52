"""Fixtures compartilhadas.

fake_engine   - fábrica de comandos para o motor UCI de mentira (tests/fake_engine.py).
scholar_game  - Mate do Pastor, com o roteiro que faz o motor enxergar o mate após 3...Nf6.
"""
import json
import sys
from pathlib import Path

import chess
import pytest

from blunder_puzzles.models import GameRecord

_FAKE_ENGINE = Path(__file__).resolve().parent / "fake_engine.py"

SCHOLAR_MOVES = ["e2e4", "e7e5", "d1h5", "b8c6", "f1c4", "g8f6", "h5f7"]
SCHOLAR_PGN = """[Event "Casual"]
[Site "https://example.org/game/1"]
[White "Alice"]
[Black "Bob"]
[Result "1-0"]

1. e4 e5 2. Qh5 Nc6 3. Bc4 Nf6 4. Qxf7# 1-0
"""
QUIET_PGN = """[Event "Casual"]
[Site "https://example.org/game/2"]
[White "Carol"]
[Black "Dave"]
[Result "*"]

1. d4 d5 2. c4 e6 *
"""


def board_after(moves):
    board = chess.Board()
    for uci in moves:
        board.push_uci(uci)
    return board


def scholar_script():
    """Roteiro: avaliação 0 em todo lugar, exceto o mate em 1 depois de 3...Nf6."""
    blunder = board_after(SCHOLAR_MOVES[:6])
    return {"positions": {blunder.epd(): {"mate": 1, "pv": ["h5f7"]}}}


@pytest.fixture
def fake_engine(tmp_path):
    """Devolve make(script=None) -> comando que inicia o motor de mentira com o roteiro."""
    counter = [0]

    def make(script=None):
        command = [sys.executable, str(_FAKE_ENGINE)]
        if script is not None:
            counter[0] += 1
            path = tmp_path / f"engine_script_{counter[0]}.json"
            path.write_text(json.dumps(script), encoding="utf-8")
            command.append(str(path))
        return command

    return make


@pytest.fixture
def scholar_game():
    board = chess.Board()
    return GameRecord(
        key="scholar#1",
        headers={"Event": "Casual", "Site": "https://example.org/game/1", "White": "Alice", "Black": "Bob"},
        fen=board.fen(),
        moves=tuple(chess.Move.from_uci(uci) for uci in SCHOLAR_MOVES),
    )
