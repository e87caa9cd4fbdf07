from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import ErrorType
from app.core.exceptions import AppException, app_exception_handler, catch_unhandled_exceptions


def build_app():
    app = FastAPI()
    app.add_exception_handler(AppException, app_exception_handler)
    app.middleware("http")(catch_unhandled_exceptions)

    @app.get("/boom")
    def boom():
        raise RuntimeError("database password is hunter2")

    @app.get("/conflict")
    def conflict():
        raise AppException(ErrorType.CONFLICT, "already there")

    return app


def test_unhandled_exception_becomes_generic_500(caplog):
    client = TestClient(build_app())

    response = client.get("/boom")

    assert response.status_code == 500
    body = response.json()
    assert body["errorType"] == "InternalError"
    assert "hunter2" not in body["message"]
    assert len(body["errorId"]) == 8
    assert body["errorId"] in caplog.text
    assert body["method"] == "GET"


def test_app_exception_maps_status_and_name():
    client = TestClient(build_app())

    response = client.get("/conflict")

    assert response.status_code == 409
    assert response.json()["errorType"] == "ConflictError"
    assert response.json()["message"] == "already there"
