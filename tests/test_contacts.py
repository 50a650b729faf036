from __future__ import annotations

from uuid import uuid4

import pytest


@pytest.fixture
async def ad_of_a(auth_client_a, geo) -> str:
    r = await auth_client_a.post("/api/ads/create", json={"note": "Aide aux devoirs", "city_id": geo["cities"][0]})
    assert r.status_code == 201, r.text
    return r.json()["id"]


@pytest.mark.anyio
async def test_own_ad_reveals_own_details(auth_client_a, user_a, ad_of_a):
    r = await auth_client_a.get(f"/api/users/{ad_of_a}/contacts")
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["contact_id"] == user_a.id
    assert data["email"] == user_a.email
    assert data["you_accepted"] is True
    assert data["other_accepted"] is True


@pytest.mark.anyio
async def test_stranger_sees_nothing(auth_client_b, user_a, ad_of_a):
    r = await auth_client_b.get(f"/api/users/{ad_of_a}/contacts")
    assert r.status_code == 200, r.text
    assert r.json() == {
        "contact_id": user_a.id,
        "firstname": None,
        "lastname": None,
        "email": None,
        "you_accepted": False,
        "other_accepted": False,
    }


@pytest.mark.anyio
async def test_request_accept_flow(auth_client_a, auth_client_b, user_a, user_b, ad_of_a):
    r = await auth_client_a.post(f"/api/users/{ad_of_a}/request/send")
    assert r.status_code == 400

    r = await auth_client_b.post(f"/api/users/{ad_of_a}/request/send")
    assert r.status_code == 201, r.text
    assert r.json()["are_contacts"] is False
    r = await auth_client_b.post(f"/api/users/{ad_of_a}/request/send")
    assert r.status_code == 409

    # pending, seen from the asker
    r = await auth_client_b.get(f"/api/users/{ad_of_a}/contacts")
    data = r.json()
    assert data["firstname"] == user_a.firstname
    assert data["email"] is None
    assert (data["you_accepted"], data["other_accepted"]) == (True, False)

    r = await auth_client_a.get("/api/users/contacts/requests")
    assert r.status_code == 200, r.text
    assert r.json() == [{"user_id": user_b.id, "firstname": user_b.firstname}]

    r = await auth_client_a.put(f"/api/users/{user_b.id}/contacts/requests/accept")
    assert r.status_code == 202, r.text
    assert r.json()["are_contacts"] is True

    r = await auth_client_b.get(f"/api/users/{ad_of_a}/contacts")
    data = r.json()
    assert data["email"] == user_a.email
    assert data["lastname"] == "Tester"
    assert (data["you_accepted"], data["other_accepted"]) == (True, True)

    r = await auth_client_a.get("/api/users/contacts/requests")
    assert r.json() == []

    # accepted contacts are listed on both sides, with their ads
    r = await auth_client_b.get("/api/users/contacts")
    assert r.status_code == 200, r.text
    [entry] = r.json()
    assert entry["contact"]["id"] == user_a.id
    assert [a["id"] for a in entry["ads"]] == [ad_of_a]

    r = await auth_client_a.get("/api/users/contacts")
    assert [e["contact"]["id"] for e in r.json()] == [user_b.id]


@pytest.mark.anyio
async def test_pending_request_seen_by_addressee(auth_client_a, auth_client_b, geo, user_a, user_b, ad_of_a):
    r = await auth_client_b.post("/api/ads/create", json={"note": "Bricolage", "city_id": geo["cities"][0]})
    ad_of_b = r.json()["id"]

    r = await auth_client_b.post(f"/api/users/{ad_of_a}/request/send")
    assert r.status_code == 201, r.text

    # a looks at b's ad: b asked, a has not answered yet
    r = await auth_client_a.get(f"/api/users/{ad_of_b}/contacts")
    data = r.json()
    assert data["contact_id"] == user_b.id
    assert data["firstname"] == user_b.firstname
    assert data["email"] is None
    assert (data["you_accepted"], data["other_accepted"]) == (False, True)


@pytest.mark.anyio
async def test_decline_request(auth_client_a, auth_client_b, user_b, ad_of_a):
    r = await auth_client_a.delete(f"/api/users/{user_b.id}/contacts/requests/decline")
    assert r.status_code == 404

    await auth_client_b.post(f"/api/users/{ad_of_a}/request/send")
    r = await auth_client_a.delete(f"/api/users/{user_b.id}/contacts/requests/decline")
    assert r.status_code == 204, r.text

    r = await auth_client_a.get("/api/users/contacts/requests")
    assert r.json() == []
    r = await auth_client_a.put(f"/api/users/{user_b.id}/contacts/requests/accept")
    assert r.status_code == 404


@pytest.mark.anyio
async def test_request_for_unknown_ad(auth_client_b):
    r = await auth_client_b.post(f"/api/users/{uuid4()}/request/send")
    assert r.status_code == 404
    r = await auth_client_b.get(f"/api/users/{uuid4()}/contacts")
    assert r.status_code == 404


@pytest.mark.anyio
async def test_user_deletion_removes_ads_and_edges(client, admin_client, auth_client_a, auth_client_b, user_a, ad_of_a):
    await auth_client_b.post(f"/api/users/{ad_of_a}/request/send")
    await auth_client_b.post(f"/api/ads/{ad_of_a}/like")

    r = await admin_client.delete(f"/api/users/delete/user/{user_a.id}")
    assert r.status_code == 204, r.text

    r = await client.get(f"/api/ads/{ad_of_a}")
    assert r.status_code == 404
    r = await auth_client_b.get("/api/users/contacts")
    assert r.json() == []


@pytest.mark.anyio
async def test_legacy_contacts(client, auth_client_a, admin_client):
    payload = {
        "ad_link": "https://example.com/ad/1",
        "facebook_link": "https://facebook.com/someone",
        "contact_name": "Someone",
    }
    r = await client.post("/api/contacts", json=payload)
    assert r.status_code == 401

    r = await auth_client_a.post("/api/contacts", json=payload)
    assert r.status_code == 201, r.text
    contact_id = r.json()["id"]

    r = await client.get("/api/contacts")
    assert contact_id in {c["id"] for c in r.json()}

    r = await auth_client_a.delete(f"/api/contacts/{contact_id}")
    assert r.status_code == 403
    r = await admin_client.delete(f"/api/contacts/{contact_id}")
    assert r.status_code == 204, r.text
    r = await admin_client.delete(f"/api/contacts/{contact_id}")
    assert r.status_code == 404
