"""Integration tests for the HTTP API."""

import uuid


def _create_item(client, headers, **fields):
    payload = {"name": "Pasta", "sku": "FOOD-001", "category": "Food"}
    payload.update(fields)
    resp = client.post("/inventory/items", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _tracked_item(client, headers):
    return _create_item(
        client,
        headers,
        stock_locations=[
            {"location": "Shelf A", "quantity": 5},
            {"location": "Shelf B", "quantity": 5},
        ],
    )


class TestItems:
    def test_create_derives_stock_from_locations(self, client, headers):
        item = _tracked_item(client, headers)
        assert item["stock"] == 10
        assert item["revision"] == 0
        assert [loc["location"] for loc in item["stock_locations"]] == ["Shelf A", "Shelf B"]

    def test_create_registers_unknown_category(self, client, headers):
        _create_item(client, headers, category="Snacks")
        names = [c["name"] for c in client.get("/categories/").json()]
        assert names == ["Snacks"]

    def test_duplicate_sku(self, client, headers):
        _create_item(client, headers)
        resp = client.post("/inventory/items", json={"name": "Other", "sku": "FOOD-001"}, headers=headers)
        assert resp.status_code == 409

    def test_case_variant_locations_are_one_row(self, client, headers):
        item = _create_item(
            client,
            headers,
            stock_locations=[{"location": "Shelf A", "quantity": 3}, {"location": "shelf a", "quantity": 2}],
        )
        assert item["stock"] == 5
        assert [(loc["location"], loc["quantity"]) for loc in item["stock_locations"]] == [("Shelf A", 5)]

        resp = client.put(
            f"/inventory/items/{item['id']}/stock",
            json={"new_stock": 1, "location": "Shelf A", "action_type": "remove"},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        assert resp.json()["stock_locations"][0]["quantity"] == 1

    def test_negative_location_quantity_rejected(self, client, headers):
        resp = client.post(
            "/inventory/items",
            json={"name": "Pasta", "stock_locations": [{"location": "Shelf A", "quantity": -1}]},
            headers=headers,
        )
        assert resp.status_code == 422

    def test_blank_name_rejected(self, client, headers):
        resp = client.post("/inventory/items", json={"name": "  "}, headers=headers)
        assert resp.status_code == 422

    def test_list_filters(self, client, headers):
        _create_item(client, headers, name="Milk", sku="M-1", stock=1)
        _create_item(client, headers, name="Rice", sku="R-1", stock=40)

        names = [i["name"] for i in client.get("/inventory/items").json()]
        assert names == ["Milk", "Rice"]
        low = [i["name"] for i in client.get("/inventory/items", params={"low_stock": True}).json()]
        assert low == ["Milk"]
        found = [i["name"] for i in client.get("/inventory/items", params={"q": "r-1"}).json()]
        assert found == ["Rice"]

    def test_get_missing_item(self, client):
        assert client.get(f"/inventory/items/{uuid.uuid4()}").status_code == 404


class TestStockAdjustment:
    def test_remove_from_location(self, client, headers, bridge):
        item = _tracked_item(client, headers)

        resp = client.put(
            f"/inventory/items/{item['id']}/stock",
            json={"new_stock": 8, "location": "Shelf A", "action_type": "remove", "recipient": "Bob"},
            headers=headers,
        )

        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["stock"] == 8
        assert data["stock_locations"][0] == {"location": "Shelf A", "quantity": 3, "parent_location": None}
        assert data["revision"] == 1
        assert ("inventory", "UPDATE") in [(e.table, e.event) for e in bridge.published]

    def test_insufficient_location_stock(self, client, headers):
        item = _tracked_item(client, headers)
        resp = client.put(
            f"/inventory/items/{item['id']}/stock",
            json={"new_stock": 0, "location": "Shelf A", "action_type": "remove"},
            headers=headers,
        )
        assert resp.status_code == 409
        assert resp.json()["detail"]["message_key"] == "inventory.insufficientStock"
        assert client.get(f"/inventory/items/{item['id']}").json()["stock"] == 10

    def test_location_required(self, client, headers):
        item = _tracked_item(client, headers)
        resp = client.put(f"/inventory/items/{item['id']}/stock", json={"new_stock": 12}, headers=headers)
        assert resp.status_code == 422
        assert resp.json()["detail"]["message_key"] == "inventory.locationRequired"

    def test_revision_conflict(self, client, headers):
        item = _create_item(client, headers, stock=10)
        url = f"/inventory/items/{item['id']}/stock"
        assert client.put(url, json={"new_stock": 11, "expected_revision": 0}).status_code == 200
        resp = client.put(url, json={"new_stock": 12, "expected_revision": 0})
        assert resp.status_code == 409
        assert resp.json()["detail"]["message_key"] == "inventory.concurrentUpdate"

    def test_negative_stock_rejected(self, client, headers):
        item = _create_item(client, headers, stock=10)
        resp = client.put(f"/inventory/items/{item['id']}/stock", json={"new_stock": -1})
        assert resp.status_code == 422

    def test_missing_item(self, client):
        resp = client.put(f"/inventory/items/{uuid.uuid4()}/stock", json={"new_stock": 1})
        assert resp.status_code == 404

    def test_low_stock_alert(self, client, headers, notifier):
        item = _create_item(client, headers, stock=10, low_stock_threshold=3)
        client.put(f"/inventory/items/{item['id']}/stock", json={"new_stock": 3}, headers=headers)
        assert [(a.item_name, a.current_stock) for a in notifier.alerts] == [("Pasta", 3)]


class TestEdit:
    def test_bare_stock_edit_refused_on_tracked_item(self, client, headers):
        item = _tracked_item(client, headers)
        resp = client.patch(f"/inventory/items/{item['id']}", json={"stock": 3}, headers=headers)
        assert resp.status_code == 422

    def test_distribution_edit_sets_stock(self, client, headers):
        item = _tracked_item(client, headers)
        resp = client.patch(
            f"/inventory/items/{item['id']}",
            json={"stock_locations": [{"location": "Shelf A", "quantity": 7}], "description": "dry"},
            headers=headers,
        )
        assert resp.status_code == 200, resp.text
        data = resp.json()
        assert data["stock"] == 7
        assert [loc["location"] for loc in data["stock_locations"]] == ["Shelf A"]
        assert data["description"] == "dry"

        history = client.get(f"/inventory/items/{item['id']}/history").json()
        assert history[0]["icon"] == "edit"
        assert history[0]["stock_change"]["chip"] == "-3"

    def test_untracked_stock_edit(self, client, headers):
        item = _create_item(client, headers, stock=4)
        resp = client.patch(f"/inventory/items/{item['id']}", json={"stock": 9, "expected_revision": 0})
        assert resp.status_code == 200
        assert resp.json()["stock"] == 9
        assert resp.json()["revision"] == 1


class TestDeleteAndHistory:
    def test_history_survives_deletion(self, client, headers):
        item = _tracked_item(client, headers)
        client.put(
            f"/inventory/items/{item['id']}/stock",
            json={"new_stock": 12, "location": "Shelf B", "action_type": "add"},
            headers=headers,
        )

        assert client.delete(f"/inventory/items/{item['id']}", headers=headers).json() == {"ok": True}
        assert client.get(f"/inventory/items/{item['id']}").status_code == 404

        history = client.get(f"/inventory/items/{item['id']}/history").json()
        assert [h["icon"] for h in history] == ["delete", "trending_up", "add"]
        assert history[0]["narrative"] == "alice deleted Pasta"
        assert history[1]["narrative"] == "alice added 2 Pasta to Shelf B"
        assert history[1]["stock_change"]["delta_text"] == "10 → 12"

    def test_delete_missing_item(self, client):
        assert client.delete(f"/inventory/items/{uuid.uuid4()}").status_code == 404


class TestActivityEndpoint:
    def test_filters_and_paging(self, client, headers):
        item = _create_item(client, headers, stock=10)
        url = f"/inventory/items/{item['id']}/stock"
        client.put(url, json={"new_stock": 8, "action_type": "remove", "destination_location": "Office"}, headers=headers)
        client.put(url, json={"new_stock": 9, "action_type": "add"}, headers={"X-User-Id": "bob"})

        page = client.get("/activity/", params={"pageSize": 2}).json()
        assert page["total"] == 3
        assert len(page["items"]) == 2

        stock_only = client.get("/activity/", params={"actionFilter": "stock"}).json()
        assert stock_only["total"] == 2

        office = client.get("/activity/", params={"location": "Office"}).json()
        assert [i["user_id"] for i in office["items"]] == ["alice"]

        by_bob = client.get("/activity/", params={"searchTerm": "bob"}).json()
        assert [i["changes"]["action_type"] for i in by_bob["items"]] == ["add"]


class TestLocations:
    def test_parent_is_copied_onto_stock_rows(self, client, headers):
        kitchen = client.post("/locations/", json={"name": "Kitchen"}).json()
        pantry = client.post("/locations/", json={"name": "Pantry", "parent_id": kitchen["id"]}).json()
        assert pantry["parent_name"] == "Kitchen"

        item = _create_item(client, headers, stock_locations=[{"location": "Pantry", "quantity": 2}])
        assert item["stock_locations"][0]["parent_location"] == "Kitchen"

    def test_duplicate_name(self, client):
        client.post("/locations/", json={"name": "Garage"})
        assert client.post("/locations/", json={"name": "garage"}).status_code == 409

    def test_cannot_delete_location_with_children(self, client):
        kitchen = client.post("/locations/", json={"name": "Kitchen"}).json()
        pantry = client.post("/locations/", json={"name": "Pantry", "parent_id": kitchen["id"]}).json()

        assert client.delete(f"/locations/{kitchen['id']}").status_code == 409
        assert client.delete(f"/locations/{pantry['id']}").json() == {"ok": True}
        assert client.delete(f"/locations/{kitchen['id']}").json() == {"ok": True}
        assert client.get("/locations/").json() == []


class TestCategories:
    def test_threshold_update(self, client):
        created = client.post("/categories/", json={"name": "Food"}).json()
        resp = client.patch(f"/categories/{created['id']}", json={"low_stock_threshold": 4})
        assert resp.json()["low_stock_threshold"] == 4
        assert client.post("/categories/", json={"name": "food"}).status_code == 409


class TestRealtimeFeed:
    def test_other_users_changes_arrive_with_notification(self, client, headers):
        item = _create_item(client, headers, stock=10)
        url = f"/inventory/items/{item['id']}/stock"

        with client.websocket_connect("/realtime/ws?user_id=bob") as ws:
            own = client.put(url, json={"new_stock": 9, "action_type": "remove"}, headers={"X-User-Id": "bob"})
            assert own.status_code == 200, own.text
            other = client.put(url, json={"new_stock": 8, "action_type": "remove"}, headers=headers)
            assert other.status_code == 200, other.text

            update = ws.receive_json()
            activity = ws.receive_json()

        assert (update["table"], update["event"]) == ("inventory", "UPDATE")
        assert update["record"]["stock"] == 8
        assert update["record"]["user_id"] == "alice"
        assert update["notification"] is None

        assert (activity["table"], activity["event"]) == ("inventory_activity", "INSERT")
        assert activity["record"]["user_id"] == "alice"
        assert activity["notification"] == "Updated : Pasta"
