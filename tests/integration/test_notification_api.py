"""Integration tests for the Notifications API endpoints."""


class TestDeliveryStatsAPI:
    def test_queue_and_delivery_stats(self, client, create_order, wait_for):
        create_order()

        assert wait_for(lambda: client.get("/notifications/delivery-stats").json()["total"] == 1)

        delivery = client.get("/notifications/delivery-stats").json()
        assert delivery["success_rate"] == 100.0
        assert delivery["by_channel"]["email"]["sent"] == 1

        queue = client.get("/notifications/queue-stats").json()
        assert queue["total"] == 1
        assert queue["by_status"] == {"pending": 0, "sent": 1, "failed": 0}


class TestNotificationCenterAPI:
    def test_center_lists_newest_first(self, client, create_order):
        first = create_order()
        second = create_order()

        items = client.get("/notifications/center").json()
        assert [item["title"] for item in items[:2]] == [
            f"Order #{second['id']} Confirmed",
            f"Order #{first['id']} Confirmed",
        ]

    def test_filter_by_kind(self, client, create_order):
        create_order()

        assert len(client.get("/notifications/center", params={"kind": "success"}).json()) == 1
        assert client.get("/notifications/center", params={"kind": "error"}).json() == []

    def test_dismiss(self, client, create_order):
        create_order()
        notification_id = client.get("/notifications/center").json()[0]["id"]

        assert client.delete(f"/notifications/center/{notification_id}").status_code == 204
        assert client.get("/notifications/center").json() == []
        assert client.delete(f"/notifications/center/{notification_id}").status_code == 404

    def test_dismissal_leaves_delivery_jobs_alone(self, client, create_order, storefront_services, wait_for):
        order = create_order()
        assert wait_for(lambda: client.get("/notifications/queue-stats").json()["by_status"]["sent"] == 1)

        for item in client.get("/notifications/center").json():
            client.delete(f"/notifications/center/{item['id']}")

        jobs = storefront_services.queue.jobs_for_order(order["id"])
        assert [job.status for job in jobs] == ["sent"]

    def test_navigate_action(self, client, create_order, storefront_services):
        visited = []
        storefront_services.center.register_action("navigate", visited.append)
        order = create_order()
        notification_id = client.get("/notifications/center").json()[0]["id"]

        response = client.post(f"/notifications/center/{notification_id}/action")

        assert response.json() == {"success": True}
        assert visited == [f"/orders/{order['id']}"]

    def test_action_on_unknown_notification(self, client):
        assert client.post("/notifications/center/nope/action").status_code == 404
