import logging
from dataclasses import replace

import chess

from blunder_puzzles import config
from blunder_puzzles.models import AlternativeFinalMoves, Evaluation, SingleMove, Verification

logger = logging.getLogger(__name__)

REASON_EMPTY_LINE = "linha de solução vazia"
REASON_AMBIGUOUS = "múltiplas soluções no primeiro lance"
REASON_TOO_MANY = "alternativas demais no lance final"


def playable_line(board, line):
    """
    Converte a linha (UCI) em lances legais a partir de board, parando no primeiro lance inválido.
    Se a linha terminar com um lance do oponente, ele é removido: o puzzle termina no solver.
    """
    moves = []
    current = board.copy(stack=False)
    for uci in line:
        try:
            move = chess.Move.from_uci(uci)
        except ValueError:
            break
        if move not in current.legal_moves:
            break
        moves.append(move)
        current.push(move)

    if len(moves) % 2 == 0 and moves:
        moves.pop()
    return moves


def evaluate_reply(board, evaluate):
    """
    Avalia a posição após um lance concorrente, com a distância de mate contada a
    partir da posição anterior (a do solver). Posições terminais não vão ao motor.
    """
    if board.is_checkmate():
        return Evaluation(mate=1 if board.turn == chess.BLACK else -1)
    if board.is_game_over():
        return Evaluation(cp=0)

    evaluation = evaluate(board)
    if evaluation.is_mate:
        return replace(evaluation, mate=evaluation.mate + evaluation.sign)
    return evaluation


def expected_at(target, index):
    """Avaliação que a linha documentada deve manter no half-move index."""
    if target.is_mate and index:
        # Cada half-move jogado corretamente encurta o mate em um ply
        return replace(target, mate=target.mate - target.sign * index)
    return target


def is_tie(target, competitor, delta):
    """
    Um lance concorrente empata com a solução quando leva ao mesmo mate (mesma
    distância) ou, para alvos numéricos, mantém o sinal com magnitude maior ou igual
    ou dentro de delta.
    """
    if target.is_mate:
        return competitor.is_mate and competitor.mate == target.mate

    if competitor.sign != target.sign:
        return False
    return abs(competitor.value) >= abs(target.value) or abs(competitor.value - target.value) < delta


def verify_solution(fen, line, target, evaluate, delta, max_alternatives=config.MAX_ALTERNATIVES):
    """
    Confirma (ou rejeita) a linha de solução de um candidato.

    Args:
        fen: Posição logo após o erro, com o solver para jogar
        line: Lances da solução em UCI (solver nos índices pares)
        target: Avaliação esperada da solução (ponto de vista das brancas)
        evaluate: Função board -> Evaluation na profundidade de verificação
        delta: Tolerância para considerar um lance concorrente equivalente
        max_alternatives: A partir de quantas alternativas finais o puzzle é rejeitado

    Retorna Verification com os passos da solução, ou com o motivo da rejeição.
    """
    board = chess.Board(fen)
    moves = playable_line(board, line)
    if not moves:
        return Verification(reason=REASON_EMPTY_LINE)

    steps = []
    for index, move in enumerate(moves):
        # Lances do oponente são reproduzidos sem procurar alternativas
        if index % 2 == 1:
            steps.append(SingleMove(move))
            board.push(move)
            continue

        expected = expected_at(target, index)
        ties = []
        for competitor in list(board.legal_moves):
            if competitor == move:
                continue
            board.push(competitor)
            try:
                reply = evaluate_reply(board, evaluate)
            finally:
                board.pop()

            if not is_tie(expected, reply, delta):
                continue

            if index == 0:
                logger.debug("Rejeitado: em vez de %s poderia jogar %s (%s)", move.uci(), competitor.uci(), reply)
                return Verification(reason=REASON_AMBIGUOUS)

            ties.append(competitor)
            if len(ties) + 1 >= max_alternatives:
                logger.debug("Rejeitado: %d alternativas para %s", len(ties) + 1, move.uci())
                return Verification(reason=REASON_TOO_MANY)

        if ties:
            # Solução truncada aqui: o último passo aceita qualquer uma das alternativas
            steps.append(AlternativeFinalMoves(tuple(ties) + (move,)))
            return Verification(steps=tuple(steps))

        steps.append(SingleMove(move))
        board.push(move)

    return Verification(steps=tuple(steps))
