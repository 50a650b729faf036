from __future__ import annotations

from uuid import uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError


async def _create_ad(c, city_id: str, **extra) -> dict:
    payload = {"note": "Je propose des cours de guitare", "city_id": city_id, **extra}
    r = await c.post("/api/ads/create", json=payload)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.anyio
async def test_create_ad_requires_existing_city(auth_client_a):
    r = await auth_client_a.post("/api/ads/create", json={"note": "Hello", "city_id": str(uuid4())})
    assert r.status_code == 404, r.text


@pytest.mark.anyio
async def test_create_ad_requires_auth(client, geo):
    r = await client.post("/api/ads/create", json={"note": "Hello", "city_id": geo["cities"][0]})
    assert r.status_code == 401


@pytest.mark.anyio
async def test_create_and_read_ad(client, auth_client_a, user_a, geo):
    ad = await _create_ad(
        auth_client_a,
        geo["cities"][0],
        generosity=40,
        demands=["plomberie", " ", "plomberie"],
        offers=["guitare"],
    )
    assert ad["user_id"] == user_a.id
    assert ad["generosity"] == 40
    assert ad["show"] is True
    assert ad["images"] is None

    r = await client.get(f"/api/ads/{ad['id']}")
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["ad_id"] == ad["id"]
    assert [d["demand"] for d in data["demands"]] == ["plomberie"]
    assert [o["offer"] for o in data["offers"]] == ["guitare"]
    assert data["city"]["id"] == geo["cities"][0]
    assert data["department"]["id"] == geo["departments"][0]
    assert data["hearts"] == 0
    assert " à " in data["created_at_label"]

    r = await client.get(f"/api/ads/{ad['id']}/city")
    assert r.status_code == 200
    assert r.json()["id"] == geo["cities"][0]

    r = await client.get(f"/api/ads/{ad['id']}/demands")
    assert [d["demand"] for d in r.json()] == ["plomberie"]
    r = await client.get(f"/api/ads/{ad['id']}/offers")
    assert [o["offer"] for o in r.json()] == ["guitare"]


@pytest.mark.anyio
async def test_unknown_ad_is_404(client):
    r = await client.get(f"/api/ads/{uuid4()}")
    assert r.status_code == 404


@pytest.mark.anyio
async def test_update_syncs_tags(auth_client_a, auth_client_b, geo):
    ad = await _create_ad(auth_client_a, geo["cities"][0], demands=["a", "b"], offers=["x"])

    payload = {
        "note": "Nouvelle note",
        "demands": ["b", "c", ""],
        "offers": [],
        "generosity": 90,
        "show": False,
        "city_id": geo["cities"][1],
    }
    # someone else's ad looks missing
    r = await auth_client_b.put(f"/api/ads/{ad['id']}/update", json=payload)
    assert r.status_code == 404

    r = await auth_client_a.put(f"/api/ads/{ad['id']}/update", json=payload)
    assert r.status_code == 200, r.text
    updated = r.json()
    assert updated["note"] == "Nouvelle note"
    assert updated["generosity"] == 90
    assert updated["show"] is False
    assert updated["city_id"] == geo["cities"][1]

    r = await auth_client_a.get(f"/api/ads/{ad['id']}/demands")
    assert sorted(d["demand"] for d in r.json()) == ["b", "c"]
    r = await auth_client_a.get(f"/api/ads/{ad['id']}/offers")
    assert r.json() == []


@pytest.mark.anyio
async def test_update_with_unknown_city(auth_client_a, geo):
    ad = await _create_ad(auth_client_a, geo["cities"][0])
    r = await auth_client_a.put(
        f"/api/ads/{ad['id']}/update",
        json={"note": "x", "demands": [], "offers": [], "city_id": str(uuid4())},
    )
    assert r.status_code == 404


@pytest.mark.anyio
async def test_like_toggles(client, auth_client_a, auth_client_b, geo):
    ad = await _create_ad(auth_client_a, geo["cities"][0])

    r = await auth_client_b.post(f"/api/ads/{ad['id']}/like")
    assert r.status_code == 200, r.text
    assert r.json() == {"liked": True}
    r = await client.get(f"/api/ads/{ad['id']}")
    assert r.json()["hearts"] == 1

    r = await auth_client_b.post(f"/api/ads/{ad['id']}/like")
    assert r.json() == {"liked": False}
    r = await client.get(f"/api/ads/{ad['id']}")
    assert r.json()["hearts"] == 0


@pytest.mark.anyio
async def test_own_ads(auth_client_a, auth_client_b, geo):
    r = await auth_client_b.get("/api/ads/self")
    assert r.status_code == 404

    ad = await _create_ad(auth_client_a, geo["cities"][0], offers=["jardinage"])
    r = await auth_client_a.get("/api/ads/self")
    assert r.status_code == 200, r.text
    data = r.json()
    assert [a["ad_id"] for a in data] == [ad["id"]]
    assert data[0]["offers"][0]["offer"] == "jardinage"
    assert data[0]["city"]["id"] == geo["cities"][0]


@pytest.mark.anyio
async def test_delete_ad_owner_only_then_cleanup(client, auth_client_a, auth_client_b, geo, no_bucket_deletes):
    ad = await _create_ad(auth_client_a, geo["cities"][0], demands=["a"], offers=["b"])
    r = await auth_client_a.post("/aws/image", json={"ad_id": ad["id"]})
    assert r.status_code == 201, r.text
    filename = r.json()["filename"]
    await auth_client_b.post(f"/api/ads/{ad['id']}/like")

    r = await auth_client_b.delete(f"/api/ads/delete/{ad['id']}")
    assert r.status_code == 403

    r = await auth_client_a.delete(f"/api/ads/delete/{ad['id']}")
    assert r.status_code == 204, r.text

    assert no_bucket_deletes == [filename]
    r = await client.get(f"/api/ads/{ad['id']}")
    assert r.status_code == 404
    r = await client.get(f"/api/cities/{geo['cities'][0]}/ads")
    assert ad["id"] not in {a["id"] for a in r.json()}


@pytest.mark.anyio
async def test_delete_ad_stops_at_failing_cleanup_step(client, auth_client_a, geo, monkeypatch):
    ad = await _create_ad(auth_client_a, geo["cities"][0], demands=["plomberie"], offers=["guitare"])

    async def failing(db, offer_ids):
        raise SQLAlchemyError("offers table locked")

    monkeypatch.setattr("mutual_help.crud._delete_offers", failing)

    r = await auth_client_a.delete(f"/api/ads/delete/{ad['id']}")
    assert r.status_code == 500, r.text
    assert r.json()["detail"] == f"Error with the deletion: offers of ad {ad['id']}"

    # the demands step was committed before the offers step failed
    r = await client.get(f"/api/ads/{ad['id']}/demands")
    assert r.status_code == 200, r.text
    assert r.json() == []
    r = await client.get(f"/api/ads/{ad['id']}/offers")
    assert [o["offer"] for o in r.json()] == ["guitare"]
    r = await client.get(f"/api/ads/{ad['id']}")
    assert r.status_code == 200, r.text


@pytest.mark.anyio
async def test_admin_can_delete_and_list_all(admin_client, auth_client_a, auth_client_b, user_a, geo):
    ad = await _create_ad(auth_client_a, geo["cities"][0])

    r = await auth_client_b.get("/api/ads/all")
    assert r.status_code == 403

    r = await admin_client.get("/api/ads/all")
    assert r.status_code == 200, r.text
    entry = next(e for e in r.json() if e["ad"]["id"] == ad["id"])
    assert entry["user"]["id"] == user_a.id
    assert entry["department"]["id"] == geo["departments"][0]

    r = await admin_client.delete(f"/api/ads/delete/{ad['id']}")
    assert r.status_code == 204, r.text
