"""
Integration tests for the bridge.

These run the real bridge against a local Mongo test database. They are skipped
when no server answers at MONGODB_BRIDGE_TEST_URL.
"""

import os

import pytest
from httpx import AsyncClient, ASGITransport
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from mongodb_bridge import create_app
from mongodb_bridge.bridge import MongodbBridge
from mongodb_bridge.config import BridgeConfig

TEST_URL = os.getenv("MONGODB_BRIDGE_TEST_URL", "mongodb://localhost:27017")
TEST_DB = "bridge_integration"


@pytest.fixture
async def bridge_config():
    """
    Shared bridge test DB; dropped before and after each test.
    """
    client = AsyncIOMotorClient(TEST_URL, serverSelectionTimeoutMS=1000)
    try:
        await client.admin.command("ping")
    except PyMongoError:
        client.close()
        pytest.skip(f"MongoDB not reachable at {TEST_URL}")
    await client.drop_database(TEST_DB)
    cfg = BridgeConfig(
        connection_string=f"{TEST_URL.rstrip('/')}/{TEST_DB}",
        name=TEST_DB,
        cols={"users": "users_col", "orders": "orders_col"},
        tracking_code="integration",
    )
    yield cfg
    await client.drop_database(TEST_DB)
    client.close()


@pytest.fixture
async def bridge(bridge_config):
    bridge = MongodbBridge(bridge_config)
    yield bridge
    bridge.close()


@pytest.mark.integration
@pytest.mark.anyio
async def test_insert_fetch_update_delete(bridge):
    """
    A document should survive the round trip through every CRUD operation.
    """
    inserted = await bridge.insert_document("users_col", {"name": "alice", "role": "x"})

    fetched = await bridge.get_document_by_id("users_col", str(inserted["_id"]))
    assert fetched == inserted, "fetched document should equal the inserted one"

    result = await bridge.update_document("users_col", {"role": "x"}, {"role": "y"})
    assert result.get("nModified") == 1, "update should modify the matching document"

    found = await bridge.find_one_document("users_col", {"name": "alice"})
    assert found["role"] == "y"

    deleted = await bridge.delete_document("users_col", {"name": "alice"})
    assert deleted.get("n") == 1
    assert await bridge.count_documents("users_col") == 0


@pytest.mark.integration
@pytest.mark.anyio
async def test_hierarchy_chain(bridge):
    """
    A three-level parent chain should be walked from leaf to root.
    """
    root = await bridge.insert_document("nodes", {"name": "C"})
    middle = await bridge.insert_document("nodes", {"name": "B", "parentId": root["_id"]})
    leaf = await bridge.insert_document("nodes", {"name": "A", "parentId": str(middle["_id"])})

    chain = await bridge.get_hierarchical_documents_to_top("nodes", leaf["_id"])
    assert [doc["name"] for doc in chain] == ["A", "B", "C"]

    records = await bridge.get_chain_to_top_of_hierarchical_documents_by_ids("nodes", [middle["_id"]])
    assert len(records) == 1
    assert records[0]["document_object"]["name"] == "B"


@pytest.mark.integration
@pytest.mark.anyio
async def test_summary_and_paging(bridge):
    await bridge.insert_document("users_col", [{"n": i} for i in range(5)])

    summary = await bridge.get_document_summary()
    assert summary == {"label": {"users_col": "users_col"}, "count": {"users_col": 5}}, \
        "missing orders_col should be left out"

    page = await bridge.find_documents("users_col", {}, 2, 2)
    assert len(page) == 2

    docs = await bridge.get_documents_by_ids("users_col", [doc["_id"] for doc in page])
    assert {doc["n"] for doc in docs} == {doc["n"] for doc in page}


@pytest.mark.integration
@pytest.mark.anyio
async def test_app_summary_endpoint(bridge_config):
    bridge = MongodbBridge(bridge_config)
    await bridge.insert_document("orders_col", {"total": 3})
    app = create_app(bridge=bridge)

    transport = ASGITransport(app=app)
    async with app.router.lifespan_context(app):
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/api/bridge/summary")
            assert resp.status_code == 200
            assert resp.json()["count"] == {"orders_col": 1}

    assert bridge.connection.client is None, "bridge client should be closed after shutdown"
