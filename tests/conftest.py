"""
Fixtures compartilhadas: HTML de exemplo e fábricas de clientes HTTP mockados.
"""

import json
from pathlib import Path

import httpx
import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def load_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


def serp_response(markup: str, status_code: int = 200) -> httpx.Response:
    """Resposta no formato do provider SERP (results[].content)."""
    body = {"results": [{"content": markup, "status_code": 200}]}
    return httpx.Response(status_code, content=json.dumps(body).encode(), headers={"content-type": "application/json"})


@pytest.fixture()
def busy_html() -> str:
    return load_fixture("busy_popular_times.html")


@pytest.fixture()
def moderate_html() -> str:
    return load_fixture("moderate_popular_times.html")


@pytest.fixture()
def not_busy_html() -> str:
    return load_fixture("not_busy_popular_times.html")


@pytest.fixture()
def percentage_only_html() -> str:
    return load_fixture("percentage_only.html")


@pytest.fixture()
def no_popular_times_html() -> str:
    return load_fixture("no_popular_times.html")
