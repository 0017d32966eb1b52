"""Testes de blunder_puzzles.ambiguity: unicidade da linha de solução."""

import chess
import pytest

from blunder_puzzles import ambiguity
from blunder_puzzles.models import AlternativeFinalMoves, Evaluation, SingleMove

from conftest import SCHOLAR_MOVES, board_after

M = chess.Move.from_uci


def scripted(evaluations, default=Evaluation(cp=0)):
    """Função de avaliação que responde por EPD e registra as posições consultadas."""
    calls = []

    def evaluate(board):
        calls.append(board.epd())
        return evaluations.get(board.epd(), default)

    evaluate.calls = calls
    return evaluate


def epd_after(moves):
    return board_after(moves).epd()


class TestPlayableLine:

    def test_drops_trailing_opponent_move(self):
        moves = ambiguity.playable_line(chess.Board(), ["e2e4", "e7e5", "g1f3", "b8c6"])
        assert moves == [M("e2e4"), M("e7e5"), M("g1f3")]

    def test_stops_at_illegal_move(self):
        moves = ambiguity.playable_line(chess.Board(), ["e2e4", "e7e5", "e4e5", "g8f6"])
        assert moves == [M("e2e4")]

    def test_garbage_token(self):
        assert ambiguity.playable_line(chess.Board(), ["e2e4", "(none)"]) == [M("e2e4")]


class TestTies:

    def test_expected_at_shortens_mate(self):
        assert ambiguity.expected_at(Evaluation(mate=5), 2).mate == 3
        assert ambiguity.expected_at(Evaluation(mate=-6), 2).mate == -4
        assert ambiguity.expected_at(Evaluation(cp=300), 4).cp == 300

    @pytest.mark.parametrize("competitor, tie", [
        (Evaluation(cp=290), True),
        (Evaluation(cp=276), True),
        (Evaluation(cp=275), False),
        (Evaluation(cp=450), True),
        (Evaluation(cp=-310), False),
        (Evaluation(mate=9), True),
    ])
    def test_numeric_target(self, competitor, tie):
        assert ambiguity.is_tie(Evaluation(cp=300), competitor, 25) is tie

    def test_mate_target_needs_same_distance(self):
        assert ambiguity.is_tie(Evaluation(mate=3), Evaluation(mate=3), 25)
        assert not ambiguity.is_tie(Evaluation(mate=3), Evaluation(mate=5), 25)
        assert not ambiguity.is_tie(Evaluation(mate=3), Evaluation(cp=2000), 25)

    def test_reply_to_checkmate_skips_engine(self):
        def fail(board):
            raise AssertionError("não deveria consultar o motor")

        assert ambiguity.evaluate_reply(board_after(SCHOLAR_MOVES), fail) == Evaluation(mate=1)

    def test_reply_mate_distance_counts_from_parent(self):
        board = chess.Board()
        assert ambiguity.evaluate_reply(board, lambda b: Evaluation(mate=2)).mate == 3
        assert ambiguity.evaluate_reply(board, lambda b: Evaluation(mate=-4)).mate == -5
        assert ambiguity.evaluate_reply(board, lambda b: Evaluation(cp=12)).cp == 12


class TestVerifySolution:

    def test_unique_mate_accepted(self):
        fen = board_after(SCHOLAR_MOVES[:6]).fen()
        evaluate = scripted({})
        result = ambiguity.verify_solution(fen, ("h5f7",), Evaluation(mate=1), evaluate, 25)
        assert result.accepted
        assert result.steps == (SingleMove(M("h5f7")),)
        # Todos os outros lances das brancas foram avaliados
        assert len(evaluate.calls) == board_after(SCHOLAR_MOVES[:6]).legal_moves.count() - 1

    def test_accepted_solution_replays_legally(self):
        evaluate = scripted({epd_after(["e2e4", "e7e5", "b1c3"]): Evaluation(cp=300)})
        result = ambiguity.verify_solution(
            chess.STARTING_FEN, ("e2e4", "e7e5", "g1f3", "b8c6"), Evaluation(cp=300), evaluate, 25
        )
        board = chess.Board()
        solver = board.turn
        for index, step in enumerate(result.steps):
            expected_turn = solver if index % 2 == 0 else not solver
            assert board.turn == expected_turn
            moves = step.moves if isinstance(step, AlternativeFinalMoves) else (step.move,)
            assert all(move in board.legal_moves for move in moves)
            board.push(moves[-1])

    def test_empty_line_rejected(self):
        result = ambiguity.verify_solution(chess.STARTING_FEN, ("e7e5",), Evaluation(cp=300), scripted({}), 25)
        assert result.reason == ambiguity.REASON_EMPTY_LINE

    def test_tie_on_first_move_rejected(self):
        evaluate = scripted({epd_after(["d2d4"]): Evaluation(cp=310)})
        result = ambiguity.verify_solution(chess.STARTING_FEN, ("e2e4",), Evaluation(cp=300), evaluate, 25)
        assert not result.accepted
        assert result.reason == ambiguity.REASON_AMBIGUOUS

    def test_tie_on_later_move_truncates(self):
        evaluate = scripted({epd_after(["e2e4", "e7e5", "b1c3"]): Evaluation(cp=305)})
        result = ambiguity.verify_solution(
            chess.STARTING_FEN, ("e2e4", "e7e5", "g1f3", "b8c6", "f1b5"), Evaluation(cp=300), evaluate, 25
        )
        assert result.accepted
        assert result.steps == (
            SingleMove(M("e2e4")),
            SingleMove(M("e7e5")),
            AlternativeFinalMoves((M("b1c3"), M("g1f3"))),
        )

    def test_too_many_alternatives_rejected(self):
        tied = ["b1c3", "d2d4", "f1c4", "f1b5"]
        evaluate = scripted({epd_after(["e2e4", "e7e5", uci]): Evaluation(cp=300) for uci in tied})
        result = ambiguity.verify_solution(
            chess.STARTING_FEN, ("e2e4", "e7e5", "g1f3"), Evaluation(cp=300), evaluate, 25, max_alternatives=5
        )
        assert result.reason == ambiguity.REASON_TOO_MANY

    def test_fewer_alternatives_than_limit_kept(self):
        tied = ["b1c3", "d2d4", "f1c4"]
        evaluate = scripted({epd_after(["e2e4", "e7e5", uci]): Evaluation(cp=300) for uci in tied})
        result = ambiguity.verify_solution(
            chess.STARTING_FEN, ("e2e4", "e7e5", "g1f3"), Evaluation(cp=300), evaluate, 25, max_alternatives=5
        )
        assert result.accepted
        assert set(result.steps[-1].moves) == {M("b1c3"), M("d2d4"), M("f1c4"), M("g1f3")}
        assert result.steps[-1].moves[-1] == M("g1f3")

    def test_mate_target_checked_against_shortened_distance(self):
        # Alvo: mate em 3 plies. No segundo lance do solver o esperado é mate em 1 ply
        evaluate = scripted({
            epd_after(["e2e4", "e7e5", "b1c3"]): Evaluation(mate=2),
            epd_after(["e2e4", "e7e5", "d2d4"]): Evaluation(mate=4),
        })
        result = ambiguity.verify_solution(
            chess.STARTING_FEN, ("e2e4", "e7e5", "g1f3"), Evaluation(mate=3), evaluate, 25
        )
        # b1c3 leva a mate em 2 a partir do filho, ou seja 3 a partir do pai: não é 1, não empata
        assert result.steps[-1] == SingleMove(M("g1f3"))
