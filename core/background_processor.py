"""
Background processor for work that must not block playback:
prefetching word batches and writing reading progress.
"""

import queue
import threading
from typing import Any, Callable, Dict, Optional


class BackgroundTask:
    """A unit of work queued on the background processor."""

    def __init__(self, task_id: str, processor_func: Callable, args: tuple, kwargs: dict,
                 callback: Optional[Callable] = None, error_callback: Optional[Callable] = None):
        self.task_id = task_id
        self.processor_func = processor_func
        self.args = args
        self.kwargs = kwargs
        self.callback = callback
        self.error_callback = error_callback
        self.started = False
        self.cancelled = False
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self.done = threading.Event()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait until the task has run or was skipped. Returns False on timeout."""
        return self.done.wait(timeout)


class BackgroundProcessor:
    """
    Runs tasks one at a time, in submission order, on a single worker thread.

    A task id that is already queued and not yet started is not queued twice;
    the existing task is returned instead.
    """

    def __init__(self):
        """Initialize the background processor and start its worker thread."""
        # Task queue for background processing
        self.task_queue: "queue.Queue[BackgroundTask]" = queue.Queue()

        # Tasks that were queued and have not finished yet
        self.pending: Dict[str, BackgroundTask] = {}
        self.lock = threading.Lock()

        # Worker thread
        self.worker_thread = None
        self.stop_requested = False

        # Start the worker thread
        self.start_worker()

    def start_worker(self):
        """Start the worker thread."""
        if self.worker_thread is None or not self.worker_thread.is_alive():
            self.stop_requested = False
            self.worker_thread = threading.Thread(target=self._worker_loop, name="background-processor")
            self.worker_thread.daemon = True
            self.worker_thread.start()

    def stop_worker(self, timeout: float = 1.0):
        """Stop the worker thread. Queued tasks that did not start are dropped."""
        self.stop_requested = True
        if self.worker_thread and self.worker_thread.is_alive():
            self.worker_thread.join(timeout=timeout)

        with self.lock:
            tasks = list(self.pending.values())
            self.pending.clear()
        for task in tasks:
            task.cancelled = True
            task.done.set()

    def is_running(self) -> bool:
        return self.worker_thread is not None and self.worker_thread.is_alive() and not self.stop_requested

    def _worker_loop(self):
        """Worker thread loop."""
        while not self.stop_requested:
            try:
                task = self.task_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                if not task.cancelled:
                    self._run_task(task)
            finally:
                with self.lock:
                    if self.pending.get(task.task_id) is task:
                        del self.pending[task.task_id]
                task.done.set()
                self.task_queue.task_done()

    def _run_task(self, task: BackgroundTask):
        task.started = True
        try:
            task.result = task.processor_func(*task.args, **task.kwargs)
        except Exception as e:
            task.error = e
            print(f"Error processing task {task.task_id}: {str(e)}")
            if task.error_callback:
                task.error_callback(task.task_id, e)
            return

        if task.callback:
            try:
                task.callback(task.task_id, task.result)
            except Exception as e:
                print(f"Error in callback for task {task.task_id}: {str(e)}")

    def add_task(self, task_id: str, processor_func: Callable, *args,
                 callback: Optional[Callable] = None, error_callback: Optional[Callable] = None,
                 **kwargs) -> BackgroundTask:
        """
        Add a task to the processing queue.

        Args:
            task_id: Identifier for the task.
            processor_func: Function to process the task.
            *args: Arguments to pass to the processor function.
            callback: Function called with (task_id, result) when the task succeeds.
            error_callback: Function called with (task_id, exception) when the task fails.
            **kwargs: Keyword arguments to pass to the processor function.

        Returns:
            The queued task, or the already queued task with the same id.
        """
        with self.lock:
            existing = self.pending.get(task_id)
            if existing is not None and not existing.started and not existing.cancelled:
                return existing

            task = BackgroundTask(task_id, processor_func, args, kwargs, callback, error_callback)
            self.pending[task_id] = task

        if self.stop_requested:
            # Nothing will run it; release anyone waiting on it
            task.cancelled = True
            with self.lock:
                self.pending.pop(task_id, None)
            task.done.set()
            return task

        self.task_queue.put(task)
        return task

    def cancel(self, task_id: str) -> bool:
        """
        Cancel a task that has not started yet.

        Args:
            task_id: The task identifier.

        Returns:
            True if the task was cancelled, False if it is unknown or already running.
        """
        with self.lock:
            task = self.pending.get(task_id)
            if task is None or task.started:
                return False
            task.cancelled = True
            return True

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every task queued so far to finish.

        Args:
            timeout: Maximum time to wait per task, in seconds.

        Returns:
            True if all tasks finished, False on timeout.
        """
        with self.lock:
            tasks = list(self.pending.values())
        return all(task.wait(timeout) for task in tasks)
