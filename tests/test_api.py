import random

import httpx
import pytest

from planit.config import settings
from planit.dependencies import Services
from planit.main import app
from planit.services.category_manager import CategoryManager
from planit.services.interaction_recorder import InteractionRecorder

from conftest import ORIGIN, FakePlaces, StubGenerator, category_json, make_place

UID = "firebase-uid-42"
USER = {"X-User-ID": UID}
FEED_PARAMS = {"lat": ORIGIN.lat, "lng": ORIGIN.lng}


@pytest.fixture
def places():
    results = {
        q: [make_place(f"{q}-{i}", 0.3 + i * 0.2) for i in range(2)]
        for q in ("q1", "q2", "q3", "cafe coffee shop near")
    }
    return FakePlaces(results)


@pytest.fixture
def services(session_factory, fingerprints, preferences, places):
    categories = CategoryManager(
        places=places,
        fingerprints=fingerprints,
        preferences=preferences,
        generate=StubGenerator([
            category_json("c1", "q1", 0.7),
            category_json("c2", "q2", 0.9, "cafes"),
            category_json("c3", "q3", 0.8, "bars"),
        ]),
        rng=random.Random(1),
    )
    services = Services(
        session_factory=session_factory,
        fingerprints=fingerprints,
        preferences=preferences,
        recorder=InteractionRecorder(fingerprints),
        categories=categories,
    )
    app.state.services = services
    yield services
    app.state.services = None


@pytest.fixture
async def client(services, monkeypatch):
    monkeypatch.setattr(settings, "service_token", "s3cret")
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://planit.test") as c:
        yield c


async def create_fingerprint(client):
    return await client.post(
        f"/users/{UID}/fingerprint",
        json={"onboarding_responses": [{"question_id": "vibe", "selected_options": ["cozy"]}]},
        headers={"X-Service-Token": "s3cret"},
    )


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_ready(client):
    resp = await client.get("/ready")
    assert resp.status_code == 200
    assert resp.json() == {"db": "ok"}


async def test_fingerprint_lifecycle(client):
    created = await create_fingerprint(client)
    assert created.status_code == 201
    assert created.json()["uid"] == UID

    again = await create_fingerprint(client)
    assert again.status_code == 200

    fetched = await client.get(f"/users/{UID}/fingerprint", headers=USER)
    assert fetched.status_code == 200
    assert fetched.json()["onboarding_responses"][0]["selected_options"] == ["cozy"]


async def test_fingerprint_creation_requires_service_token(client):
    resp = await client.post(
        f"/users/{UID}/fingerprint",
        json={"onboarding_responses": []},
        headers={"X-Service-Token": "wrong"},
    )
    assert resp.status_code == 401


async def test_missing_fingerprint_is_404(client):
    resp = await client.get(f"/users/{UID}/fingerprint", headers=USER)
    assert resp.status_code == 404


async def test_user_header_must_match_path(client):
    assert (await client.get(f"/users/{UID}/fingerprint", headers={"X-User-ID": "someone"})).status_code == 403
    assert (await client.get(f"/users/{UID}/fingerprint")).status_code == 422


async def test_radius_settings(client):
    assert (await client.get(f"/users/{UID}/settings/radius", headers=USER)).json() == {"radius_miles": 2.0}

    resp = await client.put(f"/users/{UID}/settings/radius", json={"radius_miles": 5}, headers=USER)
    assert resp.status_code == 200
    assert (await client.get(f"/users/{UID}/settings/radius", headers=USER)).json() == {"radius_miles": 5.0}

    bad = await client.put(f"/users/{UID}/settings/radius", json={"radius_miles": 0}, headers=USER)
    assert bad.status_code == 422


async def test_recommendation_feed(client):
    resp = await client.get(f"/recommendations/{UID}", params=FEED_PARAMS, headers=USER)

    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "ai"
    assert [c["id"] for c in body["categories"]] == ["c2", "c3", "c1"]
    assert all(c["places"] for c in body["categories"])
    assert all(p["is_demo"] is False for c in body["categories"] for p in c["places"])


async def test_demo_feed_marks_its_places(client, services, fingerprints, preferences):
    services.categories = CategoryManager(
        places=FakePlaces(),
        fingerprints=fingerprints,
        preferences=preferences,
        generate=StubGenerator("not json"),
        rng=random.Random(1),
    )

    resp = await client.get(f"/recommendations/{UID}", params=FEED_PARAMS, headers=USER)

    assert resp.status_code == 200
    body = resp.json()
    assert body["source"] == "demo"
    shown = [p for c in body["categories"] for p in c["places"]]
    assert len(shown) == 3
    assert all(p["is_demo"] is True and p["google_place_id"] is None for p in shown)


async def test_feed_requires_location(client):
    resp = await client.get(f"/recommendations/{UID}", headers=USER)
    assert resp.status_code == 422


async def test_more_places(client):
    missing = await client.get(f"/recommendations/{UID}/categories/c2/more", params=FEED_PARAMS, headers=USER)
    assert missing.status_code == 404

    await client.get(f"/recommendations/{UID}", params=FEED_PARAMS, headers=USER)
    resp = await client.get(f"/recommendations/{UID}/categories/c2/more", params=FEED_PARAMS, headers=USER)

    assert resp.status_code == 200
    body = resp.json()
    assert body["category_id"] == "c2"
    assert [p["name"] for p in body["places"]] == ["cafe coffee shop near-0", "cafe coffee shop near-1"]


async def test_interaction_is_accepted_and_recorded(client, fingerprints):
    await create_fingerprint(client)
    place = make_place("Joe's Pizza", 0.3)

    resp = await client.post(
        f"/recommendations/{UID}/interactions",
        json={"place": place.model_dump(mode="json"), "interaction": "liked"},
        headers=USER,
    )

    assert resp.status_code == 202
    fp = await fingerprints.get(UID)
    assert fp.likes == ["Joe's Pizza"]
    assert fp.like_count == 1


async def test_interaction_for_unknown_user_still_accepted(client):
    place = make_place("Joe's Pizza", 0.3)
    resp = await client.post(
        f"/recommendations/{UID}/interactions",
        json={"place": place.model_dump(mode="json"), "interaction": "viewed"},
        headers=USER,
    )
    assert resp.status_code == 202


async def test_unhandled_error_returns_machine_readable_500(client, services, monkeypatch):
    async def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(services.categories, "generate_feed", explode)
    resp = await client.get(f"/recommendations/{UID}", params=FEED_PARAMS, headers=USER)

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error", "code": "PLANIT_UNAVAILABLE"}
