"""
scheduler.py - Pool fixo de workers, cada um dono de uma sessão do motor.

submit(task) devolve um Future. Se houver worker livre a tarefa é despachada na
hora; senão espera na fila (FIFO). Ao terminar, o worker pega a próxima tarefa
da fila ou volta para o conjunto de livres. Os workers só são encerrados por
terminate(): a fila vazia não significa que acabaram as submissões.
"""
import logging
import queue
import threading
from collections import deque
from concurrent.futures import Future

logger = logging.getLogger(__name__)

_SHUTDOWN = object()


class Worker:
    """Thread com uma sessão própria e longa; executa uma tarefa por vez."""

    def __init__(self, scheduler, index):
        self.scheduler = scheduler
        self.name = f"worker-{index}"
        self.session = None
        self._session_lock = threading.Lock()
        self._inbox = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)

    def start(self):
        self._thread.start()

    def assign(self, task, future):
        self._inbox.put((task, future))

    def shutdown(self):
        self._inbox.put(_SHUTDOWN)

    def join(self, timeout=None):
        self._thread.join(timeout)

    def stop_session(self):
        with self._session_lock:
            session, self.session = self.session, None
        if session is not None:
            session.stop()

    def _run(self):
        try:
            while True:
                item = self._inbox.get()
                if item is _SHUTDOWN:
                    break
                task, future = item
                if self.scheduler.terminated:
                    future.cancel()
                    continue
                self._execute(task, future)
                self.scheduler._task_done(self, task, future)
        finally:
            self.stop_session()

    def _open_session(self):
        """
        Devolve a sessão do worker, abrindo-a se preciso. Se terminate() começou
        enquanto a sessão abria, ela é parada e o retorno é None.
        """
        with self._session_lock:
            if self.session is None:
                self.session = self.scheduler.session_factory()
            if not self.scheduler.terminated:
                return self.session
            session, self.session = self.session, None
        session.stop()
        return None

    def _execute(self, task, future):
        try:
            session = self._open_session()
        except BaseException as e:
            logger.debug("%s: falha ao abrir a sessão (%s)", self.name, e)
            if future.set_running_or_notify_cancel():
                future.set_exception(e)
            return

        if session is None:
            future.cancel()
            return
        if not future.set_running_or_notify_cancel():
            return

        try:
            result = self.scheduler.handler(session, task)
        except BaseException as e:
            # Sessão em estado desconhecido: a próxima tarefa abre uma nova
            logger.debug("%s: tarefa falhou (%s)", self.name, e)
            self.stop_session()
            future.set_exception(e)
        else:
            future.set_result(result)


class TaskScheduler:
    """Pool de largura fixa que executa handler(session, task) para cada tarefa."""

    def __init__(self, width, session_factory, handler, progress=None):
        if width < 1:
            raise ValueError("O pool precisa de pelo menos um worker")
        self.width = width
        self.session_factory = session_factory
        self.handler = handler
        self.progress = progress

        self._lock = threading.Lock()
        self._queue = deque()
        self._terminated = False
        self._workers = [Worker(self, i + 1) for i in range(width)]
        self._idle = list(self._workers)
        for worker in self._workers:
            worker.start()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.terminate()

    @property
    def terminated(self):
        return self._terminated

    @property
    def queued(self):
        with self._lock:
            return len(self._queue)

    @property
    def idle(self):
        with self._lock:
            return len(self._idle)

    def submit(self, task):
        future = Future()
        with self._lock:
            if self._terminated:
                raise RuntimeError("O pool já foi encerrado")
            if self._idle:
                worker = self._idle.pop(0)
                worker.assign(task, future)
            else:
                self._queue.append((task, future))
        return future

    def _task_done(self, worker, task, future):
        if self.progress is not None:
            try:
                self.progress(task, future)
            except Exception:
                logger.exception("Falha no callback de progresso")

        with self._lock:
            if self._terminated:
                return
            if self._queue:
                next_task, next_future = self._queue.popleft()
                worker.assign(next_task, next_future)
            else:
                self._idle.append(worker)

    def terminate(self, wait=True):
        """Cancela as tarefas na fila, para as sessões e encerra os workers."""
        with self._lock:
            if self._terminated:
                return
            self._terminated = True
            pending = list(self._queue)
            self._queue.clear()

        for _, future in pending:
            future.cancel()

        for worker in self._workers:
            # Interrompe uma requisição em andamento: a tarefa falha com EngineTerminated
            worker.stop_session()
            worker.shutdown()

        if wait:
            for worker in self._workers:
                worker.join()
