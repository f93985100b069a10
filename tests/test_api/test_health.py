"""Tests for the /health endpoint."""

import pytest


@pytest.mark.asyncio
async def test_health_check(client):
    """GET /health should return healthy status."""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "ok"
    assert data["redis"] == "ok"
    assert data["queued"] == 0


@pytest.mark.asyncio
async def test_health_counts_queued_jobs(client):
    await client.post("/jobs/", json={"type": "SYSTEM_NOTIFICATION", "payload": {"subject": "Údržba"}})

    data = (await client.get("/health")).json()
    assert data["queued"] == 1
