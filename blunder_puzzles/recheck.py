"""
recheck.py - Reverificação de um arquivo de puzzles já gerado.

Para cada puzzle, confere se a solução pode ser jogada no tabuleiro e procura, em
cada lance do solver, outros lances que empatam com o documentado na profundidade
de verificação. O relatório é o próprio array de puzzles com o campo
"otherSolutions" (ou "error") em cada um, regravado a cada puzzle concluído.
"""
import functools
import json
import logging
import os
from concurrent.futures import as_completed

import chess

from blunder_puzzles import analysis, visual
from blunder_puzzles.ambiguity import evaluate_reply, is_tie
from blunder_puzzles.errors import PuzzleExtractorError
from blunder_puzzles.generator import default_session_factory
from blunder_puzzles.resume import write_json_atomic
from blunder_puzzles.scheduler import TaskScheduler

logger = logging.getLogger(__name__)

ERROR_NOT_PLAYABLE = "a solução não pode ser jogada no tabuleiro"


def solution_moves(fen, solution):
    """
    Converte a solução (SAN) em lances, um grupo por passo. Um passo com
    alternativas vira uma tupla com todas elas; o lance documentado é o último.
    Retorna None se algum lance não puder ser jogado.
    """
    board = chess.Board(fen)
    steps = []
    for step in solution:
        sans = step if isinstance(step, list) else [step]
        try:
            moves = tuple(board.parse_san(san) for san in sans)
        except ValueError:
            return None
        steps.append(moves)
        board.push(moves[-1])
    return steps


def recheck_puzzle(session, puzzle, settings):
    """
    Devolve a lista de outras soluções por half-move (vazia nos lances do oponente),
    cada uma como {"move": uci, "eval": texto}, ou a mensagem de erro.
    """
    steps = solution_moves(puzzle["fen"], puzzle["solution"])
    if not steps:
        return ERROR_NOT_PLAYABLE

    session.new_game()
    evaluate = functools.partial(
        analysis.evaluate_position, session, depth=settings.verify_depth, timeout=settings.search_timeout
    )
    board = chess.Board(puzzle["fen"])
    other_solutions = []

    for index, moves in enumerate(steps):
        documented = moves[-1]
        if index % 2 == 1:
            other_solutions.append([])
            board.push(documented)
            continue

        board.push(documented)
        target = evaluate_reply(board, evaluate)
        board.pop()

        found = []
        for competitor in list(board.legal_moves):
            if competitor in moves:
                continue
            board.push(competitor)
            try:
                reply = evaluate_reply(board, evaluate)
            finally:
                board.pop()
            if is_tie(target, reply, settings.verify_delta):
                logger.debug("%s empata com %s (%s)", competitor.uci(), documented.uci(), reply)
                found.append({"move": competitor.uci(), "eval": str(reply)})

        other_solutions.append(found)
        board.push(documented)

    return other_solutions


def default_report_path(results_path):
    base, _ = os.path.splitext(results_path)
    return base + "_verify.json"


def verify_results(results_path, settings, report_path=None, session_factory=None):
    """
    Reverifica todos os puzzles de results_path e grava o relatório.
    Retorna (puzzles verificados, com outras soluções, inválidos, com falha).
    """
    report_path = report_path or default_report_path(results_path)
    with open(results_path, "r", encoding="utf-8") as f:
        puzzles = json.load(f)

    if session_factory is None:
        session_factory = default_session_factory(settings)

    report = [dict(puzzle) for puzzle in puzzles]
    checked = ambiguous = invalid = failed = 0
    scheduler = None
    try:
        with visual.create_progress() as progress:
            task_id = progress.add_task("[yellow]Verificando puzzles...", total=len(puzzles))

            def advance(task, future):
                progress.update(task_id, advance=1)

            scheduler = TaskScheduler(
                settings.workers,
                session_factory,
                functools.partial(recheck_puzzle, settings=settings),
                progress=advance,
            )
            futures = {scheduler.submit(puzzle): index for index, puzzle in enumerate(puzzles)}

            for future in as_completed(futures):
                index = futures[future]
                try:
                    result = future.result()
                except PuzzleExtractorError as e:
                    failed += 1
                    logger.error("Puzzle %d não verificado: %s", index + 1, e)
                    continue
                except Exception:
                    failed += 1
                    logger.exception("Erro inesperado no puzzle %d", index + 1)
                    continue

                checked += 1
                if isinstance(result, str):
                    invalid += 1
                    report[index]["error"] = result
                    logger.warning("Puzzle %d: %s", index + 1, result)
                else:
                    if any(result):
                        ambiguous += 1
                        logger.info("Puzzle %d tem outras soluções: %s", index + 1, report[index]["fen"])
                    report[index]["otherSolutions"] = result
                write_json_atomic(report_path, report)
    except KeyboardInterrupt:
        visual.print_error("\nInterrompido pelo usuário.")
    finally:
        if scheduler is not None:
            scheduler.terminate()

    write_json_atomic(report_path, report)
    visual.print_verification_summary(checked, ambiguous, invalid, failed, report_path)
    return checked, ambiguous, invalid, failed
