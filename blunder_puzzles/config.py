# blunder_puzzles/config.py
# Configurações centralizadas para o extrator de puzzles a partir de blunders
import json
import os
from dataclasses import dataclass, field, fields, replace

from blunder_puzzles.errors import ConfigError

# Configurações padrão para argumentos da linha de comando
DEFAULT_OUTPUT = "puzzles.json"    # Arquivo de resultados padrão
DEFAULT_DEPTH = 12                 # Profundidade rasa usada para varrer a partida
DEFAULT_CONFIRM_DEPTH = 4          # Plies adicionais para confirmar um blunder
DEFAULT_VERIFY_DEPTH = 14          # Profundidade usada na verificação de unicidade
DEFAULT_WORKERS = max(1, (os.cpu_count() or 2) // 2)

# Limiares de avaliação (em centipawns, sempre do ponto de vista das brancas)
BLUNDER_MAGNITUDE = 300            # Variação mínima para considerar um lance como blunder
WINNER_MAX = 500                   # Acima disso o lado já estava ganho, não há reviravolta
DECISIVE_ADVANTAGE = 150           # Vantagem mínima após o erro para valer um puzzle (1.5 peão)
VERIFY_DELTA = 25                  # Diferença máxima (em cp) para considerar lances equivalentes
MAX_ALTERNATIVES = 5               # A partir daqui a solução final é considerada sem restrição

# Pontuação usada para comparar mates com avaliações numéricas
MATE_SCORE = 100000

# Tempo limite (segundos) das requisições ao motor
HANDSHAKE_TIMEOUT = 10.0
SEARCH_TIMEOUT = 120.0

# Linhas mantidas no transcript de cada sessão do motor
TRANSCRIPT_LIMIT = 20000

# Cada worker tem o seu próprio processo, então uma thread por motor basta
DEFAULT_ENGINE_PARAMETERS = {
    "Threads": 1,
    "Hash": 128,
}


@dataclass
class Settings:
    shallow_depth: int = DEFAULT_DEPTH
    confirm_depth: int = DEFAULT_CONFIRM_DEPTH
    blunder_magnitude: int = BLUNDER_MAGNITUDE
    winner_max: int = WINNER_MAX
    decisive_min: int = DECISIVE_ADVANTAGE
    verify_depth: int = DEFAULT_VERIFY_DEPTH
    verify_delta: int = VERIFY_DELTA
    max_alternatives: int = MAX_ALTERNATIVES
    workers: int = DEFAULT_WORKERS
    results_path: str = DEFAULT_OUTPUT
    engine_path: str = None
    search_timeout: float = SEARCH_TIMEOUT
    engine_options: dict = field(default_factory=lambda: dict(DEFAULT_ENGINE_PARAMETERS))

    @property
    def deep_depth(self):
        return self.shallow_depth + self.confirm_depth


_POSITIVE_FIELDS = ("shallow_depth", "verify_depth", "workers", "max_alternatives")


def _normalize_key(key):
    # Aceita tanto "verify_depth" quanto "verify-depth" no arquivo de configuração
    return key.strip().replace("-", "_")


def read_config_file(path):
    """Lê um arquivo JSON de configuração e devolve um dicionário com chaves normalizadas."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Arquivo de configuração não encontrado: {path}")
    except json.JSONDecodeError as e:
        raise ConfigError(f"Arquivo de configuração inválido ({path}): {e}")

    if not isinstance(raw, dict):
        raise ConfigError(f"O arquivo de configuração {path} deve conter um objeto JSON")
    return {_normalize_key(k): v for k, v in raw.items()}


def load_settings(path=None, **overrides):
    """
    Monta as configurações finais: valores padrão, depois o arquivo JSON (se houver),
    depois os argumentos da linha de comando. Overrides com valor None são ignorados.
    """
    values = {}
    if path:
        values.update(read_config_file(path))
    values.update({_normalize_key(k): v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Chaves de configuração desconhecidas: {', '.join(unknown)}")

    settings = replace(Settings(), **values)

    for name in _POSITIVE_FIELDS:
        value = getattr(settings, name)
        if not isinstance(value, int) or value < 1:
            raise ConfigError(f"'{name}' deve ser um inteiro positivo (recebido: {value!r})")
    if settings.confirm_depth < 0:
        raise ConfigError("'confirm_depth' não pode ser negativo")

    return settings
