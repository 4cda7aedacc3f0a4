import logging
import sys
import threading

from gauge_reader.config.models import LoggingConfig
from gauge_reader.infra import configure_logging, install_exception_hook, set_thread_context


def test_configure_logging_writes_rotating_file(tmp_path):
    log_path = tmp_path / "logs" / "app.log"
    root = logging.getLogger()
    previous = root.handlers[:]
    previous_level = root.level
    try:
        returned = configure_logging(
            LoggingConfig(level="DEBUG", filepath=log_path, console=False, loggers={"detector.yolo": "warning"})
        )
        logging.getLogger("pipeline.orchestrator").info("reading done")
        for handler in root.handlers:
            handler.flush()

        assert returned == log_path.resolve()
        assert "| INFO     | MainThread | pipeline.orchestrator | reading done" in log_path.read_text(encoding="utf-8")
        assert logging.getLogger("detector.yolo").level == logging.WARNING
        assert logging.getLogger("ultralytics").level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in previous:
            root.addHandler(handler)
        root.setLevel(previous_level)
        logging.getLogger("detector.yolo").setLevel(logging.NOTSET)


def test_exception_hook_install_and_uninstall():
    original_sys, original_thread = sys.excepthook, threading.excepthook

    hook = install_exception_hook()
    try:
        assert sys.excepthook == hook._handle_exception
        assert threading.excepthook == hook._handle_thread_exception
    finally:
        hook.uninstall()

    assert sys.excepthook is original_sys
    assert threading.excepthook is original_thread


def _crash_in_thread(target, name):
    calls = []
    original_thread = threading.excepthook
    hook = install_exception_hook()
    hook._previous_thread_excepthook = calls.append
    try:
        worker = threading.Thread(target=target, name=name)
        worker.start()
        worker.join()
    finally:
        hook.uninstall()
        threading.excepthook = original_thread
    return calls


def test_thread_exceptions_are_logged(caplog):
    calls = _crash_in_thread(lambda: 1 / 0, "CrashingWorker")

    assert "Thread CrashingWorker crashed: division by zero" in caplog.text
    assert len(calls) == 1


def test_thread_crash_reports_request_context(caplog):
    def _work():
        set_thread_context(request_id=7)
        raise RuntimeError("model vanished")

    _crash_in_thread(_work, "ReadingPipelineWorker")

    assert "Thread ReadingPipelineWorker crashed [request_id=7]: model vanished" in caplog.text


def test_keyboard_interrupt_is_not_logged_as_crash(caplog):
    calls = []
    original_sys = sys.excepthook
    hook = install_exception_hook()
    hook._previous_excepthook = lambda *exc_info: calls.append(exc_info[0])
    try:
        hook._handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)
    finally:
        hook.uninstall()
        sys.excepthook = original_sys

    assert calls == [KeyboardInterrupt]
    assert "Unhandled exception" not in caplog.text
