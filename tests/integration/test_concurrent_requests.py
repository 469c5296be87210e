import asyncio

import httpx

from aisle.config import Settings
from aisle.main import create_app
from aisle.services.assets import ImageAssets
from aisle.services.inventory import InventoryService
from aisle.services.repo.memory_repo import InMemoryBlobStore, InMemoryInventoryRepo


class SlowRepo(InMemoryInventoryRepo):
    """Inserts take longer for some names, so overlapping requests finish out of order."""

    delays = {"Apples": 0.05, "Milk": 0.01}

    async def create(self, item):
        await asyncio.sleep(self.delays.get(item.name, 0))
        return await super().create(item)


def _app(tmp_path, repo):
    settings = Settings(
        store_backend="memory",
        data_dir=str(tmp_path),
        images_dir=str(tmp_path / "images"),
    )
    app = create_app(settings)
    app.state.inventory_service = InventoryService(repo, ImageAssets(InMemoryBlobStore()))
    return app


def test_overlapping_adds_all_reach_the_view(tmp_path):
    repo = SlowRepo()
    app = _app(tmp_path, repo)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            await client.get("/api/pantry")
            first, second = await asyncio.gather(
                client.post("/api/pantry/items", data={"name": "Apples", "quantity": "1"}),
                client.post("/api/pantry/items", data={"name": "Milk", "quantity": "1"}),
            )
            assert first.status_code == 200
            assert second.status_code == 200
            view = (await client.get("/api/pantry")).json()["items"]

            again = await client.post("/api/pantry/items", data={"name": "Milk", "quantity": "1"})
            assert again.status_code == 200
            return view, again.json()

    view, milk = asyncio.run(scenario())

    assert sorted(i["name"] for i in view) == ["Apples", "Milk"]
    # The second Milk merges into the existing record instead of inserting another
    assert milk["quantity"] == 2
    assert sorted((d["name"], d["quantity"]) for d in repo.docs.values()) == [("Apples", 1), ("Milk", 2)]


def test_overlapping_add_and_delete_keep_the_view_in_step(tmp_path):
    repo = SlowRepo()
    app = _app(tmp_path, repo)

    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
            milk = (await client.post("/api/pantry/items", data={"name": "Milk", "quantity": "1"})).json()
            added, deleted = await asyncio.gather(
                client.post("/api/pantry/items", data={"name": "Apples", "quantity": "2"}),
                client.delete(f"/api/pantry/items/{milk['id']}"),
            )
            assert added.status_code == 200
            assert deleted.status_code == 200
            return (await client.get("/api/pantry")).json()["items"]

    view = asyncio.run(scenario())

    assert [(i["name"], i["quantity"]) for i in view] == [("Apples", 2)]
    assert [d["name"] for d in repo.docs.values()] == ["Apples"]
