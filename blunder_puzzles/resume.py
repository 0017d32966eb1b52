"""
resume.py - Armazenamento dos puzzles e do progresso da execução.

O arquivo de resultados é um array JSON de puzzles, reescrito por inteiro depois de
cada partida concluída. Ao lado dele fica o arquivo de resume (pasta .resume) com as
chaves das partidas já processadas, o tempo decorrido e as estatísticas acumuladas.
Só o agregador (thread principal) escreve nesses arquivos.
"""
import json
import logging
import os

from blunder_puzzles.statistics import PuzzleStatistics

logger = logging.getLogger(__name__)


def get_resume_file(input_path, results_path):
    # Constrói o caminho do arquivo de resume em <pasta dos resultados>/.resume com o nome base da entrada
    base_name = os.path.splitext(os.path.basename(os.path.normpath(input_path)))[0]
    resume_dir = os.path.join(os.path.dirname(os.path.abspath(results_path)), ".resume")
    os.makedirs(resume_dir, exist_ok=True)
    return os.path.join(resume_dir, base_name + ".json")


def write_json_atomic(path, data):
    """Escreve o JSON num arquivo temporário e troca de lugar: nunca fica um arquivo pela metade."""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    tmp = path + ".tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    os.replace(tmp, path)


def read_json(path, default):
    if not os.path.exists(path):
        return default
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError:
            logger.warning("Arquivo %s corrompido, ignorando o conteúdo", path)
            return default


def puzzle_game_key(puzzle):
    return puzzle.get("source", {}).get("game")


class PuzzleStore:
    """Resultados persistidos mais o progresso necessário para retomar a execução."""

    def __init__(self, input_path, results_path, resume=False):
        self.results_path = results_path
        self.resume_path = get_resume_file(input_path, results_path)

        if resume:
            resume_data = read_json(self.resume_path, {})
            puzzles = read_json(results_path, [])
            if not isinstance(puzzles, list):
                logger.warning("Resultados em %s não são uma lista, começando do zero", results_path)
                puzzles = []
            self.puzzles = puzzles
            self.processed = set(resume_data.get("processed", []))
            self.stats = PuzzleStatistics.from_resume_data(resume_data)
            self.elapsed_offset = resume_data.get("elapsed_time", 0)
        else:
            self.puzzles = []
            self.processed = set()
            self.stats = PuzzleStatistics()
            self.elapsed_offset = 0
            self.save()

    def is_processed(self, key):
        return key in self.processed

    def record_game(self, key, puzzles):
        """
        Registra os puzzles de uma partida concluída e grava tudo em disco.
        Puzzles já gravados para a mesma partida são substituídos, nunca duplicados.
        """
        kept = [p for p in self.puzzles if puzzle_game_key(p) != key]
        if len(kept) != len(self.puzzles):
            logger.debug("Substituindo %d puzzle(s) já gravados de %s", len(self.puzzles) - len(kept), key)
        self.puzzles = kept + [p.to_dict() if hasattr(p, "to_dict") else p for p in puzzles]
        self.processed.add(key)
        self.save()

    def save(self):
        # Resultados primeiro: se o processo morrer entre as duas escritas, a partida
        # é reprocessada e record_game substitui os puzzles dela
        write_json_atomic(self.results_path, self.puzzles)
        write_json_atomic(self.resume_path, {
            "processed": sorted(self.processed),
            "elapsed_time": self.stats.get_elapsed_time(),
            "stats": self.stats.to_dict(),
        })
