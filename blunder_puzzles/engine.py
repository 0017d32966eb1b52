"""
engine.py - Sessão com um processo de motor UCI.

Cada sessão é dona de um único subprocesso. A saída do motor chega como um
fluxo de bytes, é remontada em linhas, registrada no transcript e comparada com
o prefixo esperado pela requisição pendente. Só pode existir uma requisição
pendente por vez.
"""
import codecs
import logging
import os
import shutil
import subprocess
import threading
from collections import deque, namedtuple

from blunder_puzzles import config
from blunder_puzzles.errors import (
    ConcurrentRequestViolation,
    EngineTerminated,
    ProtocolTimeout,
    SpawnFailure,
)

logger = logging.getLogger(__name__)

# Caminhos onde o Stockfish costuma estar instalado, em ordem de prioridade
_STOCKFISH_PATHS = [
    "/opt/homebrew/bin/stockfish",
    "/usr/local/bin/stockfish",
    "/usr/bin/stockfish",
    "/usr/games/stockfish",
]

# direction: ">" para comandos enviados, "<" para linhas recebidas
TranscriptEntry = namedtuple("TranscriptEntry", ["epoch", "direction", "text"])


def find_engine_path(explicit=None):
    """Detecta o executável do motor: caminho explícito, binário local, instalações conhecidas ou PATH."""
    if explicit:
        if os.path.isfile(explicit) or shutil.which(explicit):
            return explicit
        raise FileNotFoundError(f"Motor não encontrado em '{explicit}'.")

    local_stockfish = os.path.abspath("stockfish")
    if os.path.isfile(local_stockfish):
        return local_stockfish

    for path in _STOCKFISH_PATHS:
        if os.path.isfile(path):
            return path

    found = shutil.which("stockfish")
    if found:
        return found

    raise FileNotFoundError("Nenhum executável do Stockfish foi encontrado. Compile ou instale o Stockfish.")


class LineBuffer:
    """Remonta linhas completas a partir de pedaços arbitrários de bytes."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._fragment = ""

    def feed(self, data):
        text = self._fragment + self._decoder.decode(data)
        lines = text.split("\n")
        # O último pedaço ainda não tem terminador: fica guardado para a próxima leitura
        self._fragment = lines.pop()
        return [line.rstrip("\r") for line in lines]

    def flush(self):
        rest = (self._fragment + self._decoder.decode(b"", final=True)).rstrip("\r")
        self._fragment = ""
        return [rest] if rest else []


class _PendingRequest:
    def __init__(self, command, prefix):
        self.command = command
        self.prefix = prefix
        self.epoch = 0
        self.line = None
        self.error = None
        self.event = threading.Event()


class EngineSession:
    """Processo do motor com disciplina de uma requisição pendente por vez."""

    def __init__(self, command, on_line=None, transcript_limit=config.TRANSCRIPT_LIMIT):
        if isinstance(command, str):
            command = [command]
        self.command = list(command)
        self.name = os.path.basename(self.command[0])
        self.on_line = on_line
        self.transcript = deque(maxlen=transcript_limit)
        self.epoch = 0

        self._lock = threading.Lock()
        self._pending = None
        self._stale = False
        self._buffer = LineBuffer()

        try:
            self._proc = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            raise SpawnFailure(f"Não foi possível iniciar o motor '{self.command[0]}': {e}") from e

        self._reader = threading.Thread(target=self._read_loop, args=(self._proc.stdout,), name=f"{self.name}-reader", daemon=True)
        self._reader.start()
        logger.debug("Motor %s iniciado (pid %s)", self.name, self._proc.pid)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()

    @property
    def alive(self):
        proc = self._proc
        return proc is not None and proc.poll() is None

    @property
    def pending(self):
        return self._pending is not None

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------

    def write(self, command):
        """Envia uma linha ao motor, registrando-a no transcript."""
        with self._lock:
            self.transcript.append(TranscriptEntry(self.epoch, ">", command))
        self._send(command)

    def _send(self, command):
        proc = self._proc
        if proc is None or proc.stdin is None:
            raise EngineTerminated(f"O motor {self.name} não está em execução")
        try:
            proc.stdin.write(f"{command}\n".encode("utf-8"))
            proc.stdin.flush()
        except (BrokenPipeError, ValueError, OSError) as e:
            raise EngineTerminated(f"Falha ao escrever para o motor {self.name}: {e}") from e

    # ------------------------------------------------------------------
    # Requisição / resposta
    # ------------------------------------------------------------------

    def request(self, command, prefix, timeout=config.SEARCH_TIMEOUT):
        """
        Envia o comando e espera por uma linha que comece com prefix, devolvendo essa linha.

        Depois de um timeout a sessão fica "suja": a próxima requisição primeiro
        sincroniza com o motor (stop + isready) numa época própria, para que linhas
        atrasadas da requisição cancelada não satisfaçam o prefixo de outra.
        """
        if self._pending is not None:
            raise ConcurrentRequestViolation(
                f"'{command}' enviado enquanto '{self._pending.command}' ainda aguarda resposta"
            )
        if self._stale:
            logger.debug("Sincronizando %s após timeout", self.name)
            self.write("stop")
            self._exchange("isready", "readyok", timeout)
            self._stale = False
        return self._exchange(command, prefix, timeout)

    def _exchange(self, command, prefix, timeout):
        pending = _PendingRequest(command, prefix)
        with self._lock:
            if self._pending is not None:
                raise ConcurrentRequestViolation(
                    f"'{command}' enviado enquanto '{self._pending.command}' ainda aguarda resposta"
                )
            if not self.alive:
                raise EngineTerminated(f"O motor {self.name} não está em execução")
            self.epoch += 1
            pending.epoch = self.epoch
            self._pending = pending
            self.transcript.append(TranscriptEntry(self.epoch, ">", command))

        try:
            self._send(command)
        except EngineTerminated:
            with self._lock:
                if self._pending is pending:
                    self._pending = None
            raise

        if not pending.event.wait(timeout):
            with self._lock:
                if self._pending is pending:
                    # Libera a vaga para que a sessão aceite uma nova requisição
                    self._pending = None
                    self._stale = True
                    raise ProtocolTimeout(command, prefix, timeout)

        if pending.error is not None:
            raise pending.error
        return pending.line

    def lines_for(self, epoch):
        """Linhas recebidas do motor durante a época informada."""
        with self._lock:
            return [e.text for e in self.transcript if e.epoch == epoch and e.direction == "<"]

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------

    def _read_loop(self, stdout):
        fd = stdout.fileno()
        try:
            while True:
                data = os.read(fd, 4096)
                if not data:
                    break
                self._dispatch(self._buffer.feed(data))
        except OSError as e:
            logger.debug("Leitura do motor %s encerrada: %s", self.name, e)
        finally:
            self._dispatch(self._buffer.flush())
            self._fail_pending(EngineTerminated(f"O motor {self.name} terminou"))

    def _dispatch(self, lines):
        for line in lines:
            with self._lock:
                epoch = self.epoch
                self.transcript.append(TranscriptEntry(epoch, "<", line))

            if self.on_line is not None:
                self.on_line(line)

            with self._lock:
                pending = self._pending
                if pending is not None and pending.epoch == epoch and line.startswith(pending.prefix):
                    pending.line = line
                    self._pending = None
                    pending.event.set()

    def _fail_pending(self, error):
        with self._lock:
            pending = self._pending
            self._pending = None
        if pending is not None:
            pending.error = error
            pending.event.set()

    # ------------------------------------------------------------------
    # Protocolo UCI
    # ------------------------------------------------------------------

    def handshake(self, options=None, timeout=config.HANDSHAKE_TIMEOUT):
        self.request("uci", "uciok", timeout)
        for name, value in (options or {}).items():
            self.write(f"setoption name {name} value {value}")
        self.request("isready", "readyok", timeout)

    def new_game(self, timeout=config.HANDSHAKE_TIMEOUT):
        self.write("ucinewgame")
        self.request("isready", "readyok", timeout)

    def stop(self):
        """Encerra o subprocesso e cancela qualquer requisição pendente."""
        proc = self._proc
        if proc is None:
            return

        try:
            self._send("quit")
        except EngineTerminated:
            pass
        self._proc = None

        try:
            proc.stdin.close()
        except OSError:
            pass
        try:
            proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            proc.terminate()
            try:
                proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait()

        self._fail_pending(EngineTerminated(f"O motor {self.name} foi parado"))
        if self._reader is not threading.current_thread():
            self._reader.join(timeout=2)
        proc.stdout.close()
        logger.debug("Motor %s parado", self.name)


def open_session(settings, on_line=None):
    """Inicia o motor configurado e executa o handshake UCI."""
    try:
        path = find_engine_path(settings.engine_path)
    except FileNotFoundError as e:
        raise SpawnFailure(str(e)) from e
    session = EngineSession(path, on_line=on_line)
    try:
        session.handshake(settings.engine_options)
    except Exception:
        session.stop()
        raise
    return session
