import time
from collections import defaultdict


class PuzzleStatistics:
    def __init__(self):
        self.start_time = time.time()
        self.total_games = 0
        self.games_failed = 0
        self.blunders_found = 0
        self.puzzles_found = 0
        self.puzzles_rejected = 0
        self.result_stats = defaultdict(int)
        self.rejection_reasons = defaultdict(int)

    @classmethod
    def from_resume_data(cls, resume_data):
        """Cria objeto PuzzleStatistics a partir dos dados carregados do resume."""
        obj = cls()
        stats = resume_data.get("stats", {})
        obj.total_games = stats.get("total_games", 0)
        obj.blunders_found = stats.get("blunders_found", 0)
        obj.puzzles_found = stats.get("puzzles_found", 0)
        obj.puzzles_rejected = stats.get("puzzles_rejected", 0)
        obj.result_stats = defaultdict(int, stats.get("result_stats", {}))
        obj.rejection_reasons = defaultdict(int, stats.get("rejection_reasons", {}))
        # Partidas que falharam não são persistidas: serão tentadas de novo
        elapsed_time = resume_data.get("elapsed_time", 0)
        obj.start_time = time.time() - elapsed_time
        return obj

    def to_dict(self):
        return {
            "total_games": self.total_games,
            "blunders_found": self.blunders_found,
            "puzzles_found": self.puzzles_found,
            "puzzles_rejected": self.puzzles_rejected,
            "result_stats": dict(self.result_stats),
            "rejection_reasons": dict(self.rejection_reasons),
        }

    def increment_games(self, count=1):
        self.total_games += count

    def add_failed(self, count=1):
        self.games_failed += count

    def add_blunders(self, count):
        self.blunders_found += count

    def add_found(self, count=1):
        self.puzzles_found += count

    def add_rejected(self, reason, count=1):
        self.puzzles_rejected += count
        self.rejection_reasons[reason] += count

    def update_result(self, result, count=1):
        self.result_stats[result] += count

    def record_outcome(self, outcome):
        """Acumula o resultado de uma partida processada por completo."""
        self.increment_games()
        self.add_blunders(outcome.blunders)
        for puzzle in outcome.puzzles:
            self.add_found()
            self.update_result(puzzle.result)
        for reason in outcome.rejections:
            self.add_rejected(reason)

    def get_elapsed_time(self):
        return time.time() - self.start_time

    def get_average_time_per_game(self):
        if self.total_games == 0:
            return 0
        return self.get_elapsed_time() / self.total_games


class AnalysisResult:
    """Encapsula o resultado completo de uma execução do extrator."""

    def __init__(self, stats, was_interrupted=False):
        self.total_games = stats.total_games
        self.games_failed = stats.games_failed
        self.blunders_found = stats.blunders_found
        self.puzzles_found = stats.puzzles_found
        self.puzzles_rejected = stats.puzzles_rejected
        self.rejection_reasons = dict(stats.rejection_reasons)

        # Metadados sobre a execução
        self.was_interrupted = was_interrupted
        self.elapsed_time = stats.get_elapsed_time()
        self.avg_time_per_game = stats.get_average_time_per_game()

        self.stats = stats

    def successful(self):
        """Verifica se a operação foi completada sem interrupção nem partidas com falha."""
        return not self.was_interrupted and self.games_failed == 0

    def display_statistics(self, visual_module, output_path=None):
        """Exibe estatísticas da análise."""
        visual_module.render_end_statistics(
            self.total_games, self.blunders_found, self.puzzles_found, self.puzzles_rejected,
            self.games_failed, self.elapsed_time, self.avg_time_per_game,
            self.rejection_reasons,
            dict(self.stats.result_stats),
            output_path,
        )

        if self.was_interrupted:
            visual_module.print_error("\nInterrompido pelo usuário.")
