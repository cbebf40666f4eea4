"""Tests for extra columns of the deeds tables."""
import pytest
from httpx import AsyncClient


async def _add_column(client: AsyncClient, name: str, position: str, table: str = "table"):
    return await client.post(f"/api/tables/{table}/columns", json={"name": name, "position": position})


@pytest.mark.asyncio
async def test_add_and_list_in_insertion_order(client: AsyncClient):
    assert (await _add_column(client, "Location", "date")).status_code == 201
    assert (await _add_column(client, "Remarks", "nature")).status_code == 201
    assert (await _add_column(client, "Village", "date")).status_code == 201

    columns = (await client.get("/api/tables/table/columns")).json()
    assert [(c["name"], c["position"]) for c in columns] == [
        ("Location", "date"),
        ("Remarks", "nature"),
        ("Village", "date"),
    ]
    assert (await client.get("/api/tables/table2/columns")).json() == []


@pytest.mark.asyncio
async def test_duplicate_name_conflicts_within_table_only(client: AsyncClient):
    assert (await _add_column(client, "Location", "date")).status_code == 201

    resp = await _add_column(client, "location", "sno")
    assert resp.status_code == 409
    assert resp.json()["detail"] == "Column already exists"

    assert (await _add_column(client, "Location", "date", table="table2")).status_code == 201


@pytest.mark.asyncio
async def test_invalid_position_rejected(client: AsyncClient):
    resp = await _add_column(client, "Location", "footer")
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_set_value_replaces_previous(client: AsyncClient):
    await _add_column(client, "Location", "date")
    deed = (await client.post("/api/deeds", json={})).json()

    url = "/api/tables/table/columns/Location/values"
    assert (await client.put(url, json={"deed_id": deed["id"], "value": "Kolar"})).status_code == 200
    resp = await client.put(url, json={"deed_id": deed["id"], "value": "Mulbagal"})
    assert resp.status_code == 200

    values = (await client.get("/api/tables/table/columns/values")).json()
    assert [(v["deed_id"], v["column_name"], v["value"]) for v in values] == [
        (deed["id"], "Location", "Mulbagal")
    ]


@pytest.mark.asyncio
async def test_set_value_requires_column_and_deed(client: AsyncClient):
    await _add_column(client, "Location", "date")
    deed = (await client.post("/api/deeds", json={})).json()

    resp = await client.put("/api/tables/table/columns/Nope/values", json={"deed_id": deed["id"]})
    assert resp.status_code == 404
    resp = await client.put("/api/tables/table/columns/Location/values", json={"deed_id": 999999})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_remove_column_drops_values(client: AsyncClient):
    await _add_column(client, "Location", "date")
    deed = (await client.post("/api/deeds", json={})).json()
    await client.put("/api/tables/table/columns/Location/values", json={"deed_id": deed["id"], "value": "Kolar"})

    assert (await client.delete("/api/tables/table/columns/Location")).status_code == 204
    assert (await client.get("/api/tables/table/columns")).json() == []
    assert (await client.get("/api/tables/table/columns/values")).json() == []
    assert (await client.delete("/api/tables/table/columns/Location")).status_code == 404
