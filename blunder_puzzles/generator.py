"""
generator.py - Pipeline de extração de puzzles.

Cada partida passa, dentro de um worker com o seu próprio motor, por: análise rasa,
detecção de blunders, confirmação em profundidade, filtro de candidatos, verificação
da solução e formatação. A thread principal agrega os resultados e é a única que
grava o arquivo de resultados.
"""
import functools
import logging
from concurrent.futures import as_completed
from dataclasses import replace

from blunder_puzzles import ambiguity, analysis, candidates, detector, exporter, utils, visual
from blunder_puzzles.engine import find_engine_path, open_session
from blunder_puzzles.errors import PuzzleExtractorError, SpawnFailure
from blunder_puzzles.models import GameOutcome
from blunder_puzzles.resume import PuzzleStore
from blunder_puzzles.scheduler import TaskScheduler
from blunder_puzzles.statistics import AnalysisResult

logger = logging.getLogger(__name__)


def process_game(session, record, settings):
    """
    Executa o pipeline completo para uma partida e devolve um GameOutcome.
    Erros do motor e de telemetria propagam: a partida inteira é abortada.
    """
    outcome = GameOutcome(record.key)
    session.new_game()

    entries = analysis.analyze_game(session, record.fen, record.moves, settings.shallow_depth, settings.search_timeout)
    events = detector.find_blunders(entries, settings.blunder_magnitude)
    outcome.blunders = len(events)
    logger.debug("%s: %d posições analisadas, %d blunder(s)", record.key, len(entries), len(events))

    if events and settings.confirm_depth > 0:
        events, rejected = analysis.confirm_blunders(
            session, events, settings.deep_depth, settings.blunder_magnitude, settings.search_timeout
        )
        outcome.rejections.extend(rejected)

    candidate_list, rejected = candidates.generate_candidates(events, settings.winner_max, settings.decisive_min)
    outcome.rejections.extend(rejected)

    evaluate = functools.partial(
        analysis.evaluate_position, session, depth=settings.verify_depth, timeout=settings.search_timeout
    )
    for candidate in candidate_list:
        verification = ambiguity.verify_solution(
            candidate.board_after().fen(),
            candidate.line,
            candidate.evaluation,
            evaluate,
            settings.verify_delta,
            settings.max_alternatives,
        )
        if not verification.accepted:
            logger.debug("%s: candidato do lance %d rejeitado (%s)", record.key, candidate.ply, verification.reason)
            outcome.rejections.append(verification.reason)
            continue

        puzzle = exporter.format_puzzle(candidate, verification.steps, record)
        logger.debug("%s: puzzle no lance %d: %s", record.key, candidate.ply, puzzle.title)
        outcome.puzzles.append(puzzle)

    return outcome


def default_session_factory(settings):
    """Resolve o executável do motor uma vez e devolve a fábrica de sessões dos workers."""
    try:
        engine_path = find_engine_path(settings.engine_path)
    except FileNotFoundError as e:
        raise SpawnFailure(str(e)) from e
    visual.print_engine_info(engine_path)
    return functools.partial(open_session, replace(settings, engine_path=engine_path))


def generate_puzzles(input_path, settings, resume=False, verbose=False, pgn_path=None, session_factory=None):
    """
    Analisa as partidas de input_path (arquivo PGN ou diretório) e grava os puzzles
    em settings.results_path. Partidas já processadas são puladas com resume=True.
    """
    # Falha cedo (FileNotFoundError) antes de iniciar motores ou tocar nos resultados
    utils.list_pgn_files(input_path)

    if session_factory is None:
        session_factory = default_session_factory(settings)

    store = PuzzleStore(input_path, settings.results_path, resume=resume)
    stats = store.stats
    if resume:
        visual.print_resume_info(len(store.processed))

    records = []
    skipped = 0
    for record in utils.iterate_games(input_path):
        if store.is_processed(record.key):
            skipped += 1
            continue
        records.append(record)

    total_games = skipped + len(records)
    visual.print_initial_analysis_info(input_path, utils.format_size(input_path), total_games, len(records), settings.workers)

    was_interrupted = False
    scheduler = None
    try:
        with visual.create_progress(elapsed_offset=store.elapsed_offset) as progress:
            task_id = progress.add_task(visual.progress_description(stats, 0), total=total_games, completed=skipped)

            # Chamado pelo worker ao terminar cada partida
            def advance(record, future):
                progress.update(task_id, advance=1)

            scheduler = TaskScheduler(
                settings.workers,
                session_factory,
                functools.partial(process_game, settings=settings),
                progress=advance,
            )
            futures = {scheduler.submit(record): record for record in records}
            remaining = len(futures)

            for future in as_completed(futures):
                record = futures[future]
                remaining -= 1
                try:
                    outcome = future.result()
                except PuzzleExtractorError as e:
                    # Nada é gravado: a partida volta a ser analisada na próxima execução com --resume
                    stats.add_failed()
                    logger.error("Partida %s abortada: %s", record.key, e)
                    continue
                except Exception:
                    stats.add_failed()
                    logger.exception("Erro inesperado na partida %s", record.key)
                    continue

                stats.record_outcome(outcome)
                store.record_game(outcome.key, outcome.puzzles)

                first = stats.puzzles_found - len(outcome.puzzles) + 1
                for number, puzzle in enumerate(outcome.puzzles, start=first):
                    visual.print_puzzle_found(progress, number, puzzle)
                if verbose:
                    logger.info("%s concluída: %d blunder(s), %d puzzle(s)", record.key, outcome.blunders, len(outcome.puzzles))

                running = min(remaining, settings.workers)
                progress.update(task_id, description=visual.progress_description(stats, running), refresh=True)
    except KeyboardInterrupt:
        was_interrupted = True
    finally:
        if scheduler is not None:
            scheduler.terminate()

    if pgn_path:
        exporter.export_pgn(store.puzzles, pgn_path)
        logger.info("%d puzzle(s) exportados para %s", len(store.puzzles), pgn_path)

    result = AnalysisResult(stats, was_interrupted)
    result.display_statistics(visual, None if was_interrupted else settings.results_path)
    return result
