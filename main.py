import argparse
import json
import sys

from blunder_puzzles import config
from blunder_puzzles import generator
from blunder_puzzles import recheck
from blunder_puzzles import visual
from blunder_puzzles.errors import ConfigError, PuzzleExtractorError
from blunder_puzzles.logger import setup_logging
from blunder_puzzles.utils import get_default_output_path


def build_parser():
    parser = argparse.ArgumentParser(description="Extrair puzzles de xadrez a partir dos blunders de partidas em PGN")
    parser.add_argument("input", help="Arquivo PGN (ou diretório com arquivos .pgn) com as partidas; com --verify, o arquivo JSON de puzzles")
    parser.add_argument("--output", "-o", help="Arquivo JSON de resultados (padrão: puzzles/<nome_da_entrada>_puzzles.json)")
    parser.add_argument("--config", "-c", help="Arquivo JSON com configurações (os argumentos têm prioridade)")
    parser.add_argument("--engine", "-e", help="Caminho do executável UCI (padrão: Stockfish local ou do sistema)")
    parser.add_argument("--depth", "-d", type=int, help=f"Profundidade da varredura das partidas (padrão: {config.DEFAULT_DEPTH})")
    parser.add_argument("--confirm-depth", type=int, help=f"Plies extras para confirmar um blunder, 0 desativa (padrão: {config.DEFAULT_CONFIRM_DEPTH})")
    parser.add_argument("--verify-depth", type=int, help=f"Profundidade da verificação da solução (padrão: {config.DEFAULT_VERIFY_DEPTH})")
    parser.add_argument("--blunder", type=int, help=f"Variação mínima em centipawns para um blunder (padrão: {config.BLUNDER_MAGNITUDE})")
    parser.add_argument("--winner-max", type=int, help=f"Acima disso o lado já estava ganho (padrão: {config.WINNER_MAX})")
    parser.add_argument("--verify-delta", type=int, help=f"Tolerância em centipawns para lances equivalentes (padrão: {config.VERIFY_DELTA})")
    parser.add_argument("--workers", "-w", type=int, help=f"Número de workers, cada um com o seu motor (padrão: {config.DEFAULT_WORKERS})")
    parser.add_argument("--pgn", help="Exportar também os puzzles para este arquivo PGN")
    parser.add_argument("--verify", action="store_true", help="Reverificar um arquivo de puzzles já gerado em vez de analisar partidas")
    parser.add_argument("--report", help="Relatório da reverificação (padrão: <puzzles>_verify.json)")
    parser.add_argument("--log-file", help="Gravar o log completo (nível DEBUG) neste arquivo")
    parser.add_argument("--resume", "-r", action="store_true", help="Retomar a execução anterior sem reanalisar partidas já processadas")
    parser.add_argument("--verbose", "-v", action="store_true", help="Mostrar saída verbosa (detalhes da análise)")
    return parser


def run_verify(args, settings):
    """Reverifica os puzzles de args.input na profundidade de verificação."""
    visual.print_main_header()
    try:
        _, _, invalid, failed = recheck.verify_results(args.input, settings, report_path=args.report)
    except FileNotFoundError:
        visual.print_error(f"Erro: o arquivo de puzzles {args.input} não foi encontrado!")
        return 1
    except json.JSONDecodeError as e:
        visual.print_error(f"Erro: {args.input} não é um JSON válido ({e})")
        return 1
    except PuzzleExtractorError as e:
        visual.print_error(f"Erro durante a verificação: {e}")
        return 1
    return 1 if invalid or failed else 0


def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    try:
        settings = config.load_settings(
            args.config,
            results_path=args.output,
            engine_path=args.engine,
            shallow_depth=args.depth,
            confirm_depth=args.confirm_depth,
            verify_depth=args.verify_depth,
            blunder_magnitude=args.blunder,
            winner_max=args.winner_max,
            verify_delta=args.verify_delta,
            workers=args.workers,
        )
    except ConfigError as e:
        visual.print_error(f"Erro de configuração: {e}")
        return 1

    if args.verify:
        return run_verify(args, settings)

    # Sem -o nem results_path no arquivo de configuração: puzzles/<entrada>_puzzles.json
    if args.output is None and settings.results_path == config.DEFAULT_OUTPUT:
        settings.results_path = get_default_output_path(args.input)

    visual.print_main_header()
    visual.print_configurations(args.input, settings, args.verbose, args.resume, args.pgn)

    try:
        result = generator.generate_puzzles(
            args.input, settings, resume=args.resume, verbose=args.verbose, pgn_path=args.pgn
        )
    except FileNotFoundError:
        visual.print_error(f"Erro: a entrada {args.input} não foi encontrada!")
        return 1
    except PuzzleExtractorError as e:
        visual.print_error(f"Erro durante a execução: {e}")
        return 1

    if result.successful():
        visual.print_success("Processo concluído com sucesso!")
    elif result.games_failed:
        visual.print_warning(f"{result.games_failed} partida(s) falharam; rode de novo com --resume para refazê-las.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
