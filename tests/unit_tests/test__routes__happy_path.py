import logging
import socket

import pydantic
from fastapi import status
from fastapi.testclient import TestClient

from env_api.config.settings import Settings
from env_api.main import create_app


def test__root__returns_welcome_page(client: TestClient):
    response = client.get("/")

    assert response.status_code == status.HTTP_200_OK
    assert response.headers["content-type"].startswith("text/html")
    assert "<title>Welcome Webpage</title>" in response.text
    assert "Welcome Enviroment Page!" in response.text
    assert '<a href="/env">' in response.text
    assert "bootstrap@5.3.0" in response.text


def test__env__returns_process_environment(client: TestClient, monkeypatch):
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("HOSTNAME", "stale-value")

    response = client.get("/env")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["APP_ENV"] == "dev"
    assert all(isinstance(value, str) for value in body.values())


def test__env__refreshes_hostname(client: TestClient, monkeypatch):
    monkeypatch.setenv("HOSTNAME", "stale-value")

    response = client.get("/env")

    assert response.json()["HOSTNAME"] == socket.gethostname()


def test__env__sets_hostname_when_missing(client: TestClient, monkeypatch):
    monkeypatch.delenv("HOSTNAME", raising=False)

    response = client.get("/env")

    assert response.json()["HOSTNAME"] == socket.gethostname()


def test__requests_are_logged(client: TestClient, caplog):
    caplog.set_level(logging.INFO)

    client.get("/")
    client.get("/env")

    messages = [record.getMessage() for record in caplog.records]
    assert "GET /" in messages
    assert "GET /env" in messages


def test__health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {
        "status": "ok",
        "app_name": "web-env-test",
        "version": "test",
        "ready": True,
    }


def test__unhandled_error__returns_json_500():
    app = create_app(Settings(_env_file=None))

    @app.get("/boom")
    async def boom():
        raise RuntimeError("kaboom")

    with TestClient(app) as test_client:
        response = test_client.get("/boom")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"detail": "Internal server error"}


def test__pydantic_validation_error__returns_422():
    app = create_app(Settings(_env_file=None))

    @app.get("/invalid")
    async def invalid():
        Settings(_env_file=None, port=0)

    with TestClient(app) as test_client:
        response = test_client.get("/invalid")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    assert response.json()["detail"][0]["input"] == 0


def test__unknown_route__404(client: TestClient):
    response = client.get("/nope")

    assert response.status_code == status.HTTP_404_NOT_FOUND
