"""
Thread utilities for the Word Stream Reader application.
Runs slow one-off jobs, such as converting a document, off the UI thread.
"""

import traceback
from typing import Callable

from PyQt6.QtCore import QObject, QRunnable, QThreadPool, pyqtSignal, pyqtSlot


class WorkerSignals(QObject):
    """
    Defines the signals available from a running worker.
    """
    started = pyqtSignal()
    finished = pyqtSignal()
    # Emitted with (exception, formatted traceback)
    error = pyqtSignal(object, str)
    result = pyqtSignal(object)


class Worker(QRunnable):
    """
    Runs a function on the thread pool and reports the outcome through signals.
    """

    def __init__(self, fn: Callable, *args, **kwargs):
        """
        Initialize the worker.

        Args:
            fn: The function to run.
            *args: Arguments to pass to the function.
            **kwargs: Keyword arguments to pass to the function.
        """
        super().__init__()
        self.fn = fn
        self.args = args
        self.kwargs = kwargs
        self.signals = WorkerSignals()

    @pyqtSlot()
    def run(self):
        """
        Run the worker function with the provided arguments.
        """
        self.signals.started.emit()
        try:
            result = self.fn(*self.args, **self.kwargs)
        except Exception as e:
            self.signals.error.emit(e, traceback.format_exc())
        else:
            self.signals.result.emit(result)
        finally:
            self.signals.finished.emit()


class ThreadManager:
    """
    Starts workers on a shared thread pool.
    """

    def __init__(self, max_threads: int = 2):
        """
        Initialize the thread manager.

        Args:
            max_threads: Maximum number of jobs running at once.
        """
        self.threadpool = QThreadPool()
        self.threadpool.setMaxThreadCount(max_threads)

    def start_worker(self, fn: Callable, *args, **kwargs) -> Worker:
        """
        Start a worker.

        Args:
            fn: The function to run.
            *args: Arguments to pass to the function.
            **kwargs: Keyword arguments to pass to the function.

        Returns:
            The worker instance. Connect to its signals before control returns to the event loop.
        """
        worker = Worker(fn, *args, **kwargs)
        self.threadpool.start(worker)
        return worker

    def wait_for_done(self, timeout_ms: int = -1) -> bool:
        """Wait for all started workers to finish."""
        return self.threadpool.waitForDone(timeout_ms)
