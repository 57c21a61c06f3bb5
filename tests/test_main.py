"""
Tests for the local JSON API.
"""

import httpx
import pytest
import pytest_asyncio

from brandforge import main
from brandforge.errors import ErrorKind, GenerationError
from brandforge.schemas import LocationValidation
from brandforge.session import IDENTITY_FAILED_NOTICE, MISSING_FIELDS_NOTICE

from conftest import PNG_BYTES, FakeGeminiClient

FORM = {
    "description": "A vegan bakery focusing on gluten-free wedding cakes",
    "location": "belgrade",
    "budget": 1000,
    "currency": "EUR",
}


@pytest.fixture
def fake_client(monkeypatch, identity):
    client = FakeGeminiClient(
        identity=identity,
        location=LocationValidation(is_valid=True, normalized_name="Belgrade, Serbia"),
    )
    monkeypatch.setattr("brandforge.session.llm_client", client)
    monkeypatch.setattr(main, "sessions", {})
    return client


@pytest_asyncio.fixture
async def api(fake_client):
    transport = httpx.ASGITransport(app=main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def new_session(api, form=None):
    resp = await api.post("/api/session")
    assert resp.status_code == 200
    session_id = resp.json()["session_id"]
    if form is not None:
        resp = await api.patch(f"/api/session/{session_id}/form", json=form)
        assert resp.status_code == 200
    return session_id


@pytest.mark.asyncio
async def test_unknown_session_is_404(api):
    resp = await api.get("/api/session/missing")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Session not found"


@pytest.mark.asyncio
async def test_form_update_accepts_camel_case(api):
    session_id = await new_session(api)

    resp = await api.patch(
        f"/api/session/{session_id}/form",
        json={"existingName": "Crumb & Co", "budget": 2500},
    )

    form = resp.json()["form"]
    assert form["existingName"] == "Crumb & Co"
    assert form["budget"] == 2500
    assert form["currency"] == "USD"


@pytest.mark.asyncio
@pytest.mark.parametrize("budget", [0, -50])
async def test_form_update_rejects_non_positive_budget(api, budget):
    session_id = await new_session(api)

    resp = await api.patch(f"/api/session/{session_id}/form", json={"budget": budget})

    assert resp.status_code == 422
    assert resp.json()["detail"][0]["loc"] == ["body", "budget"]

    resp = await api.get(f"/api/session/{session_id}")
    assert resp.json()["form"]["budget"] == 1000


@pytest.mark.asyncio
async def test_validate_location(api):
    session_id = await new_session(api, FORM)

    resp = await api.post(f"/api/session/{session_id}/location/validate")

    assert resp.json() == {"locationStatus": "valid", "location": "Belgrade, Serbia"}


@pytest.mark.asyncio
async def test_generate_with_missing_fields_is_400(api):
    session_id = await new_session(api, {"description": "Bakery"})

    resp = await api.post(f"/api/session/{session_id}/generate")

    assert resp.status_code == 400
    assert resp.json()["detail"] == MISSING_FIELDS_NOTICE


@pytest.mark.asyncio
async def test_generate_failure_is_502(api, fake_client):
    fake_client.identity_error = GenerationError("raw internal detail", kind=ErrorKind.FATAL)
    session_id = await new_session(api, FORM)

    resp = await api.post(f"/api/session/{session_id}/generate")

    assert resp.status_code == 502
    assert resp.json()["detail"] == IDENTITY_FAILED_NOTICE
    assert "raw internal detail" not in resp.text


@pytest.mark.asyncio
async def test_generate_then_fetch_images(api):
    session_id = await new_session(api, FORM)

    resp = await api.post(f"/api/session/{session_id}/generate")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ready"
    assert body["identity"]["companyName"] == "Crumb & Co"
    assert body["budgetSummary"]["topCosts"][0]["name"] == "Operations"
    assert len(body["slots"]) == 4

    await main.sessions[session_id].wait_for_images()

    resp = await api.get(f"/api/session/{session_id}")
    assert [slot["status"] for slot in resp.json()["slots"]] == ["ready"] * 4

    resp = await api.get(f"/api/session/{session_id}/images/logo")
    assert resp.status_code == 200
    assert resp.content == PNG_BYTES
    assert resp.headers["content-type"] == "image/png"


@pytest.mark.asyncio
async def test_image_not_ready_is_404(api):
    session_id = await new_session(api, FORM)

    resp = await api.get(f"/api/session/{session_id}/images/logo")

    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_retry_image(api, fake_client):
    fake_client.image_results["Offering 2"] = [GenerationError("boom", kind=ErrorKind.FATAL)]
    session_id = await new_session(api, FORM)
    await api.post(f"/api/session/{session_id}/generate")
    await main.sessions[session_id].wait_for_images()

    resp = await api.post(f"/api/session/{session_id}/images/product[2]/retry")

    assert resp.status_code == 200
    assert resp.json() == {"slotId": "product[2]", "status": "pending", "error": None, "hasImage": False, "mimeType": None}

    await main.sessions[session_id].wait_for_images()
    resp = await api.get(f"/api/session/{session_id}")
    assert resp.json()["slots"][3]["status"] == "ready"

    resp = await api.get(f"/api/session/{session_id}/images/product[2]")
    assert resp.content == PNG_BYTES

    resp = await api.post(f"/api/session/{session_id}/images/product[9]/retry")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_select_tab(api):
    session_id = await new_session(api, FORM)

    resp = await api.put(f"/api/session/{session_id}/tab/budget")
    assert resp.json()["activeTab"] == "budget"

    resp = await api.put(f"/api/session/{session_id}/tab/settings")
    assert resp.status_code == 422
