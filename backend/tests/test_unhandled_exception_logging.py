import logging
import os

from fastapi import FastAPI
from fastapi.testclient import TestClient

# Importing the app validates CORS settings at import time
os.environ.setdefault("ALLOW_CREDENTIALS", "false")
os.environ.setdefault("ALLOWED_ORIGINS", "http://testserver")
from livescore.exceptions import IllegalTransition
from livescore.main import domain_exception_handler, unhandled_exception_handler


def test_unhandled_exception_logs_traceback(caplog):
    app = FastAPI()
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.get("/boom")
    def boom():
        raise ValueError("boom")

    client = TestClient(app, raise_server_exceptions=False)
    with caplog.at_level(logging.ERROR):
        response = client.get("/boom")

    assert response.status_code == 500
    record = next((r for r in caplog.records if r.message == "Unhandled exception"), None)
    assert record is not None
    assert record.exc_info[0] is ValueError
    assert "ValueError: boom" in caplog.text


def test_scoring_errors_render_as_problem_details():
    app = FastAPI()
    app.add_exception_handler(IllegalTransition, domain_exception_handler)

    @app.get("/point")
    def point():
        raise IllegalTransition("match is already completed")

    response = TestClient(app).get("/point")

    assert response.status_code == 409
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["code"] == "illegal_transition"
    assert body["detail"] == "match is already completed"
    assert body["instance"] == "/point"
