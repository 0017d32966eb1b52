"""
logger.py - Configuração do logging do extrator.

As mensagens passam pelo console compartilhado do rich, para não atropelar a
barra de progresso. Opcionalmente tudo (inclusive DEBUG) vai também para um arquivo.
"""
import logging

from rich.logging import RichHandler

from blunder_puzzles.visual import console

LOGGER_NAME = "blunder_puzzles"
FILE_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"


def setup_logging(verbose=False, log_file=None):
    """Configura o logger do pacote e devolve-o."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    rich_handler = RichHandler(console=console, show_path=False, markup=False, rich_tracebacks=True)
    rich_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
