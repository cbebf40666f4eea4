"""Tests for the deed (particulars) and history template stores."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_upsert_creates_then_replaces(client: AsyncClient):
    resp = await client.put(
        "/api/deed-templates",
        json={
            "deed_type": "Sale Deed",
            "preview_template": "{deedType} by {executedBy} of {extent}",
            "custom_placeholders": {"extent": "1 acre"},
        },
    )
    assert resp.status_code == 200
    created = resp.json()
    assert created["extra_keys"] == ["executedBy", "extent"]

    resp = await client.put(
        "/api/deed-templates",
        json={"deed_type": " sale deed ", "preview_template": "{deedType} at {village}"},
    )
    assert resp.status_code == 200
    replaced = resp.json()
    assert replaced["id"] == created["id"]
    assert replaced["deed_type"] == "Sale Deed"
    assert replaced["extra_keys"] == ["village"]

    listing = (await client.get("/api/deed-templates")).json()
    assert len(listing) == 1


@pytest.mark.asyncio
async def test_extra_keys_include_history_placeholders(client: AsyncClient):
    await client.put(
        "/api/history-templates",
        json={"deed_type": "Gift", "template_content": "{serialNo}. Gift of {surveyNo} dated {date}"},
    )
    resp = await client.put(
        "/api/deed-templates",
        json={"deed_type": "Gift", "preview_template": "{deedType} by {donor}"},
    )
    assert resp.json()["extra_keys"] == ["donor", "surveyNo"]


@pytest.mark.asyncio
async def test_blank_deed_type_rejected(client: AsyncClient):
    resp = await client.put("/api/deed-templates", json={"deed_type": "   "})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_get_and_delete_templates(client: AsyncClient):
    deed_tpl = (await client.put(
        "/api/deed-templates", json={"deed_type": "Lease", "preview_template": "{deedType}"}
    )).json()
    history_tpl = (await client.put(
        "/api/history-templates", json={"deed_type": "Lease", "template_content": "{serialNo}. Lease"}
    )).json()

    assert (await client.get(f"/api/deed-templates/{deed_tpl['id']}")).status_code == 200
    assert (await client.get(f"/api/history-templates/{history_tpl['id']}")).status_code == 200

    assert (await client.delete(f"/api/deed-templates/{deed_tpl['id']}")).status_code == 204
    assert (await client.delete(f"/api/history-templates/{history_tpl['id']}")).status_code == 204

    assert (await client.get(f"/api/deed-templates/{deed_tpl['id']}")).status_code == 404
    assert (await client.get(f"/api/history-templates/{history_tpl['id']}")).status_code == 404
