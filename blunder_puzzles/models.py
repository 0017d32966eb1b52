"""Estruturas de dados compartilhadas entre as etapas do pipeline.

Todas as avaliações usam a mesma convenção de sinal: positivo é bom para as
brancas, negativo é bom para as pretas. Distâncias de mate são contadas em plies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import chess

from blunder_puzzles.config import MATE_SCORE


@dataclass(frozen=True)
class Evaluation:
    """Avaliação do motor convertida para o ponto de vista das brancas."""

    cp: Optional[int] = None
    mate: Optional[int] = None
    depth: int = 0
    pv: tuple = ()

    @property
    def is_mate(self) -> bool:
        return self.mate is not None

    @property
    def value(self) -> int:
        """Valor numérico para comparações; mates viram +-MATE_SCORE."""
        if self.mate is not None:
            return MATE_SCORE if self.mate > 0 else -MATE_SCORE
        return self.cp

    @property
    def sign(self) -> int:
        v = self.value
        return (v > 0) - (v < 0)

    @property
    def mate_moves(self) -> Optional[int]:
        """N de "mate em N" para o lado que dá o mate."""
        if self.mate is None:
            return None
        return (abs(self.mate) + 1) // 2

    def favors(self, color: chess.Color) -> bool:
        return self.sign == (1 if color == chess.WHITE else -1)

    def __str__(self) -> str:
        if self.mate is not None:
            return f"{'+' if self.mate > 0 else '-'}M{self.mate_moves}"
        return f"{self.cp / 100:+.2f}"


@dataclass(frozen=True)
class AnalysisEntry:
    fen_before: str
    move: Optional[chess.Move]
    evaluation: Evaluation
    turn: chess.Color


@dataclass(frozen=True)
class BlunderEvent:
    move: chess.Move
    before: Evaluation
    after: Evaluation
    fen_before: str
    expected_pv: tuple
    punish_pv: tuple
    horizon_effect: bool = False
    ply: int = 0

    @property
    def mover(self) -> chess.Color:
        return chess.Board(self.fen_before).turn


@dataclass(frozen=True)
class PuzzleCandidate:
    fen_before: str
    move: chess.Move
    line: tuple
    evaluation: Evaluation
    ply: int = 0

    def board_after(self) -> chess.Board:
        board = chess.Board(self.fen_before)
        board.push(self.move)
        return board


@dataclass(frozen=True)
class SingleMove:
    move: chess.Move


@dataclass(frozen=True)
class AlternativeFinalMoves:
    moves: tuple


SolutionStep = Union[SingleMove, AlternativeFinalMoves]


@dataclass(frozen=True)
class Verification:
    """Resultado da verificação: steps é None quando o candidato foi rejeitado."""

    steps: Optional[Tuple[SolutionStep, ...]] = None
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.steps is not None


@dataclass(frozen=True)
class GameRecord:
    key: str
    headers: dict
    fen: str
    moves: tuple

    @property
    def site(self) -> str:
        return self.headers.get("Site", "?")


@dataclass
class Puzzle:
    fen: str
    solution: list
    title: str
    side: str
    result: str
    source: dict
    mistake: str
    before_blunder_fen: str
    responses: list = field(default_factory=list)
    difficulty: str = "undetermined"

    def to_dict(self) -> dict:
        return {
            "fen": self.fen,
            "solution": self.solution,
            "responses": self.responses,
            "title": self.title,
            "side": self.side,
            "result": self.result,
            "difficulty": self.difficulty,
            "source": self.source,
            "mistake": self.mistake,
            "beforeBlunderFen": self.before_blunder_fen,
        }


@dataclass
class GameOutcome:
    key: str
    puzzles: list = field(default_factory=list)
    rejections: list = field(default_factory=list)
    blunders: int = 0
