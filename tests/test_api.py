"""
Endpoints v2 com TestClient e serviços montados sobre mocks.
"""

import time

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from crowd_scraper.api.v2.router import router
from crowd_scraper.services.container import ServiceContainer
from crowd_scraper.services.crowd_data import InMemoryCrowdDataRepository
from crowd_scraper.services.scheduler import SchedulerConfig, ScrapingScheduler
from crowd_scraper.services.scraper import ScraperConfig, ScraperService
from tests.conftest import serp_response


@pytest.fixture()
def client(busy_html):
    serp = httpx.MockTransport(lambda request: serp_response(busy_html))
    scraper = ScraperService(
        config=ScraperConfig(
            retry_attempts=0,
            retry_delay=0,
            batch_pause=0,
            oxylabs_username="user",
            oxylabs_password="pass",
        ),
        client_factory=lambda proxy: httpx.AsyncClient(transport=serp),
    )
    repository = InMemoryCrowdDataRepository(ttl=3600)
    scheduler = ScrapingScheduler(
        scraper,
        repository=repository,
        config=SchedulerConfig(
            max_concurrent_jobs=2,
            high_priority_interval=3600,
            medium_priority_interval=3600,
            low_priority_interval=3600,
            popular_restaurants_interval=3600,
            max_retries=1,
            retry_delay_base=0,
            batch_size=5,
            max_proxy_usage_per_batch=10,
        ),
    )

    app = FastAPI()
    app.include_router(router, prefix="/v2")
    app.state.services = ServiceContainer(scraper=scraper, scheduler=scheduler, repository=repository)

    with TestClient(app) as test_client:
        yield test_client


TARGET = {"id": "joes-pizza", "name": "Joes Pizza", "location": "New York"}


def test_root_lists_endpoints(client):
    body = client.get("/v2/").json()

    assert body["version"] == "v2"
    assert "jobs_create" in body["endpoints"]


def test_scrape_and_read_back(client):
    response = client.post("/v2/crowd/scrape", json={"restaurant_name": "Joes Pizza"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["crowd_level"] == "busy"
    assert body["data"]["crowd_percentage"] == 82

    latest = client.get("/v2/crowd/joes-pizza")
    assert latest.status_code == 200
    assert latest.json()["crowd_level"] == "busy"


def test_unknown_restaurant_is_404(client):
    assert client.get("/v2/crowd/nowhere").status_code == 404


def test_scrape_request_validation(client):
    assert client.post("/v2/crowd/scrape", json={"restaurant_name": ""}).status_code == 422


def test_job_lifecycle(client):
    created = client.post("/v2/jobs", json={"target": TARGET, "priority": "low"})

    assert created.status_code == 201
    job = created.json()
    assert job["status"] == "pending"
    assert job["priority"] == "low"
    assert job["target"]["id"] == "joes-pizza"

    pending = client.get("/v2/jobs/pending").json()
    assert [j["id"] for j in pending] == [job["id"]]

    assert client.get(f"/v2/jobs/{job['id']}").json()["status"] == "pending"

    cancelled = client.delete(f"/v2/jobs/{job['id']}")
    assert cancelled.json() == {"job_id": job["id"], "cancelled": True}

    history = client.get("/v2/jobs/history", params={"limit": 10}).json()
    assert [j["status"] for j in history] == ["cancelled"]
    assert client.get("/v2/jobs/pending").json() == []


def test_batch_jobs(client):
    targets = [TARGET, {"id": "taco-stand", "name": "Taco Stand"}]

    response = client.post("/v2/jobs/batch", json={"targets": targets})

    assert response.status_code == 201
    assert [j["priority"] for j in response.json()] == ["medium", "medium"]
    assert len(client.get("/v2/jobs/pending").json()) == 2
    assert client.get("/v2/jobs/active").json() == []


def test_unknown_job_is_404(client):
    assert client.get("/v2/jobs/job_missing").status_code == 404
    assert client.delete("/v2/jobs/job_missing").status_code == 404


def test_invalid_priority_is_rejected(client):
    response = client.post("/v2/jobs", json={"target": TARGET, "priority": "urgent"})

    assert response.status_code == 422


def test_naive_scheduled_for_is_treated_as_utc(client):
    later = client.post(
        "/v2/jobs",
        json={"target": TARGET, "priority": "low", "scheduled_for": "2030-01-01T12:00:00"},
    )
    assert later.status_code == 201
    scheduled_for = later.json()["scheduled_for"]
    assert scheduled_for.startswith("2030-01-01T12:00:00")
    assert scheduled_for.endswith(("Z", "+00:00"))

    due = client.post(
        "/v2/jobs",
        json={"target": {"id": "taco-stand", "name": "Taco Stand"}, "priority": "high",
              "scheduled_for": "2020-01-01T00:00:00"},
    )
    assert due.status_code == 201
    job_id = due.json()["id"]

    status = None
    for _ in range(100):
        status = client.get(f"/v2/jobs/{job_id}").json()["status"]
        if status == "completed":
            break
        time.sleep(0.02)
    assert status == "completed"


def test_proxy_stats_without_pool(client):
    assert client.get("/v2/proxies/stats").json() == {
        "enabled": False,
        "pool_size": 0,
        "active_proxies": 0,
        "total_requests": 0,
        "successful_requests": 0,
        "failed_requests": 0,
        "average_response_time": 0.0,
    }


def test_health_before_startup():
    from crowd_scraper.main import app

    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "starting"}
