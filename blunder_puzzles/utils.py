import logging
import os

import chess.pgn

from blunder_puzzles.models import GameRecord

logger = logging.getLogger(__name__)


# Lista os arquivos PGN de entrada: o próprio arquivo ou todos os .pgn de um diretório
def list_pgn_files(input_path):
    if os.path.isdir(input_path):
        return sorted(
            os.path.join(input_path, name)
            for name in os.listdir(input_path)
            if name.lower().endswith(".pgn")
        )
    if not os.path.isfile(input_path):
        raise FileNotFoundError(input_path)
    return [input_path]


# Converte uma partida lida pelo python-chess no registro usado pelo pipeline
def game_record(game, key):
    board = game.board()
    return GameRecord(
        key=key,
        headers=dict(game.headers),
        fen=board.fen(),
        moves=tuple(game.mainline_moves()),
    )


# Abre os arquivos PGN e gera uma partida por vez, com uma chave estável "<arquivo>#<índice>"
def iterate_games(input_path):
    for path in list_pgn_files(input_path):
        stem = os.path.splitext(os.path.basename(path))[0]
        with open(path, "r", encoding="utf-8", errors="ignore") as pgn_file:
            index = 0
            while True:
                game = chess.pgn.read_game(pgn_file)
                if game is None:
                    break
                index += 1
                key = f"{stem}#{index}"
                if game.errors:
                    logger.warning("Partida %s ignorada: %s", key, game.errors[0])
                    continue
                yield game_record(game, key)


# Retorna uma string com o tamanho da entrada formatado (soma dos arquivos, se for diretório)
def format_size(input_path: str) -> str:
    try:
        size = sum(os.path.getsize(path) for path in list_pgn_files(input_path))
    except OSError:
        return "0.00 B"
    if size < 1024:
        return f"{size} B"
    elif size < 1024 ** 2:
        return f"{size / 1024:.2f} KB"
    return f"{size / (1024 ** 2):.2f} MB"


# Determina o arquivo de resultados padrão ("puzzles/<nome_da_entrada>_puzzles.json") ou personalizado
def get_default_output_path(input_path: str, output: str = None, puzzles_dir: str = "puzzles") -> str:
    if output is None:
        base_name = os.path.splitext(os.path.basename(os.path.normpath(input_path)))[0]
        os.makedirs(puzzles_dir, exist_ok=True)
        return os.path.join(puzzles_dir, f"{base_name}_puzzles.json")
    return output
