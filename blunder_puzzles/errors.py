"""
errors.py - Hierarquia de exceções do extrator.

Rejeitar um candidato não é um erro: isso é fluxo normal e fica a cargo do pipeline.
"""


class PuzzleExtractorError(Exception):
    """Base de todos os erros do extrator."""


class ConfigError(PuzzleExtractorError):
    """Configuração inválida (arquivo ou argumentos)."""


class EngineError(PuzzleExtractorError):
    """Falha na comunicação com o processo do motor."""


class SpawnFailure(EngineError):
    """O processo do motor não pôde ser iniciado."""


class ProtocolTimeout(EngineError):
    """O prefixo esperado não apareceu dentro do tempo limite."""

    def __init__(self, command, prefix, timeout):
        super().__init__(f"'{command}' não recebeu '{prefix}' em {timeout:g}s")
        self.command = command
        self.prefix = prefix
        self.timeout = timeout


class ConcurrentRequestViolation(EngineError):
    """Uma segunda requisição foi feita enquanto outra ainda estava pendente."""


class EngineTerminated(EngineError):
    """O processo do motor terminou (ou foi parado) com uma requisição pendente."""


class MalformedTelemetry(PuzzleExtractorError):
    """A saída do motor não trouxe avaliação na profundidade pedida."""
