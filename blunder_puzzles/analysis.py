# blunder_puzzles/analysis.py
import logging
from collections import namedtuple
from dataclasses import replace

import chess

from blunder_puzzles import config
from blunder_puzzles import detector
from blunder_puzzles.errors import MalformedTelemetry
from blunder_puzzles.models import AnalysisEntry, Evaluation

logger = logging.getLogger(__name__)

REASON_NOT_CONFIRMED = "não confirmado em profundidade"

InfoLine = namedtuple("InfoLine", ["depth", "multipv", "score_kind", "score_value", "bound", "pv"])


def position_command(board):
    """Comando "position" a partir da posição raiz e da pilha de lances do tabuleiro."""
    root = board.root()
    command = f"position fen {root.fen()}"
    if board.move_stack:
        command += " moves " + " ".join(move.uci() for move in board.move_stack)
    return command


def parse_info_line(line):
    """
    Interpreta uma linha "info" do protocolo UCI.
    Retorna None para linhas que não são de busca (sem depth) ou que estão malformadas.
    """
    tokens = line.split()
    if not tokens or tokens[0] != "info":
        return None

    depth = None
    multipv = 1
    score_kind = None
    score_value = None
    bound = False
    pv = []

    try:
        i = 1
        while i < len(tokens):
            token = tokens[i]
            if token == "depth":
                depth = int(tokens[i + 1])
                i += 2
            elif token == "multipv":
                multipv = int(tokens[i + 1])
                i += 2
            elif token == "score":
                score_kind = tokens[i + 1]
                score_value = int(tokens[i + 2])
                i += 3
            elif token in ("lowerbound", "upperbound"):
                bound = True
                i += 1
            elif token == "pv":
                pv = tokens[i + 1:]
                break
            elif token == "string":
                break
            else:
                i += 1
    except (IndexError, ValueError):
        logger.debug("Linha info ignorada: %s", line)
        return None

    if depth is None:
        return None
    return InfoLine(depth, multipv, score_kind, score_value, bound, pv)


def _white_relative(kind, value, turn):
    # O motor reporta do ponto de vista de quem joga; aqui tudo vira ponto de vista das brancas
    stm = 1 if turn == chess.WHITE else -1
    if kind == "cp":
        return value * stm, None
    # "mate N": N > 0 quem joga dá mate em N lances (2N-1 plies), N < 0 quem joga leva mate (2N plies)
    if value > 0:
        return None, stm * (2 * value - 1)
    return None, -stm * (2 * -value)


def extract_evaluation(lines, depth, turn):
    """
    Extrai a avaliação de um trecho do transcript.

    A pontuação vem da primeira linha reportada exatamente na profundidade pedida.
    A PV é a mais longa vista em qualquer profundidade: a tabela de transposição pode
    encurtar a PV de uma iteração mais recente mesmo que uma linha mais profunda já
    tenha sido encontrada antes.
    """
    scored = None
    best_pv = ()

    for line in lines:
        info = parse_info_line(line)
        if info is None or info.multipv != 1:
            continue
        if len(info.pv) > len(best_pv):
            best_pv = tuple(info.pv)
        if scored is None and info.depth == depth and info.score_kind in ("cp", "mate") and not info.bound:
            if info.score_kind == "mate" and info.score_value == 0:
                continue
            scored = info

    if scored is None:
        raise MalformedTelemetry(f"Nenhuma avaliação na profundidade {depth} ({len(lines)} linhas analisadas)")

    cp, mate = _white_relative(scored.score_kind, scored.score_value, turn)
    return Evaluation(cp=cp, mate=mate, depth=depth, pv=best_pv)


def evaluate_position(session, board, depth, timeout=config.SEARCH_TIMEOUT):
    """Avalia a posição com uma busca de profundidade fixa."""
    session.write(position_command(board))
    session.request(f"go depth {depth}", "bestmove", timeout)
    return extract_evaluation(session.lines_for(session.epoch), depth, board.turn)


def analyze_game(session, fen, moves, depth, timeout=config.SEARCH_TIMEOUT):
    """
    Avalia a posição inicial e a posição após cada lance da partida.
    A varredura para na primeira posição terminal (mate, afogamento ou empate).
    """
    board = chess.Board(fen)
    if board.is_game_over():
        return []

    entries = [AnalysisEntry(fen, None, evaluate_position(session, board, depth, timeout), board.turn)]

    for move in moves:
        fen_before = board.fen()
        board.push(move)
        if board.is_game_over():
            break
        evaluation = evaluate_position(session, board, depth, timeout)
        entries.append(AnalysisEntry(fen_before, move, evaluation, board.turn))
        logger.debug("%d. %s: %s", len(entries) - 1, move.uci(), evaluation)

    return entries


def confirm_blunders(session, events, depth, magnitude, timeout=config.SEARCH_TIMEOUT):
    """
    Reavalia com mais profundidade a posição após cada blunder.
    Retorna (eventos mantidos, motivos de rejeição). Eventos com efeito horizonte
    passam direto: quem os descarta é o filtro de candidatos.
    """
    kept = []
    rejections = []

    for event in events:
        if event.horizon_effect:
            kept.append(event)
            continue

        board = chess.Board(event.fen_before)
        board.push(event.move)
        deep = evaluate_position(session, board, depth, timeout)

        is_blunder, horizon = detector.classify_transition(event.before, deep, event.mover, magnitude)
        if not is_blunder:
            logger.debug("Blunder %s não confirmado: %s -> %s", event.move.uci(), event.before, deep)
            rejections.append(REASON_NOT_CONFIRMED)
            continue

        kept.append(replace(event, after=deep, punish_pv=deep.pv, horizon_effect=horizon))

    return kept, rejections
