"""Command-line runner dispatch."""

from unittest.mock import patch

from helperhive import run


def test_api_is_default():
    with patch.object(run.uvicorn, "run") as uvicorn_run:
        assert run.main([]) == 0
    assert uvicorn_run.call_args.args == ("helperhive.main:app",)


def test_worker_consumes_notifications_queue():
    with patch.object(run.subprocess, "run") as subprocess_run:
        subprocess_run.return_value.returncode = 0
        assert run.main(["worker"]) == 0
    cmd = subprocess_run.call_args.args[0]
    assert cmd[-2:] == ["-Q", "notifications,celery"]
    assert "helperhive.tasks.celery_app" in cmd


def test_unknown_command():
    assert run.main(["migrate"]) == 2
