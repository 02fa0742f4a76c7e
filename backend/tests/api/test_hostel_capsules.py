"""
胶囊管理 API 测试
"""


def _numbers(response):
    return [c["number"] for c in response.json()]


class TestCapsuleQueries:

    def test_list_capsules(self, client, admin_headers, seeded_capsules):
        response = client.get("/capsules", headers=admin_headers)
        assert response.status_code == 200
        assert _numbers(response) == ["C01", "C02", "C03", "C04", "C05", "C06"]
        assert response.json()[1]["effective_position"] == "bottom"

    def test_filter_by_section(self, client, admin_headers, seeded_capsules):
        response = client.get("/capsules", params={"section": "back"}, headers=admin_headers)
        assert _numbers(response) == ["C05", "C06"]

    def test_get_unknown_capsule(self, client, admin_headers, seeded_capsules):
        response = client.get("/capsules/Z99", headers=admin_headers)
        assert response.status_code == 404

    def test_requires_login(self, client, seeded_capsules):
        assert client.get("/capsules").status_code in (401, 403)


class TestCapsuleAdmin:

    def test_admin_creates_capsule(self, client, admin_headers, seeded_capsules):
        response = client.post("/capsules", json={"number": "c07", "section": "middle"}, headers=admin_headers)
        assert response.status_code == 201
        assert response.json()["number"] == "C07"
        assert response.json()["cleaning_status"] == "cleaned"

    def test_staff_cannot_create_capsule(self, client, staff_headers, seeded_capsules):
        response = client.post("/capsules", json={"number": "C07", "section": "middle"}, headers=staff_headers)
        assert response.status_code == 403

    def test_duplicate_capsule(self, client, admin_headers, seeded_capsules):
        response = client.post("/capsules", json={"number": "C01", "section": "front"}, headers=admin_headers)
        assert response.status_code == 400

    def test_update_rejects_cleaning_status(self, client, admin_headers, seeded_capsules):
        response = client.patch("/capsules/C01", json={"cleaning_status": "to_be_cleaned"}, headers=admin_headers)
        assert response.status_code == 422

    def test_disable_capsule(self, client, admin_headers, seeded_capsules):
        response = client.patch("/capsules/C01", json={"is_available": False}, headers=admin_headers)
        assert response.status_code == 200
        assert "C01" not in _numbers(client.get("/capsules/available", headers=admin_headers))

    def test_delete_occupied_capsule(self, client, admin_headers, seeded_capsules, payload):
        client.post("/guests/checkin", json=payload("C01"), headers=admin_headers)
        response = client.delete("/capsules/C01", headers=admin_headers)
        assert response.status_code == 409


class TestCleaning:

    def test_checkout_then_clean(self, client, staff_headers, seeded_capsules, payload):
        guest = client.post("/guests/checkin", json=payload("C02"), headers=staff_headers).json()
        client.post("/guests/checkout", json={"guest_id": guest["id"]}, headers=staff_headers)

        assert _numbers(client.get("/capsules/uncleaned", headers=staff_headers)) == ["C02"]
        assert "C02" not in _numbers(client.get("/capsules/available", headers=staff_headers))

        response = client.post("/capsules/C02/clean", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["cleaning_status"] == "cleaned"
        assert response.json()["last_cleaned_by"] == "staff1"
        assert "C02" in _numbers(client.get("/capsules/available", headers=staff_headers))

    def test_clean_all(self, client, staff_headers, seeded_capsules, payload):
        for number in ("C01", "C03"):
            guest = client.post("/guests/checkin", json=payload(number), headers=staff_headers).json()
            client.post("/guests/checkout", json={"guest_id": guest["id"]}, headers=staff_headers)

        response = client.post("/capsules/clean-all", headers=staff_headers)

        assert _numbers(response) == ["C01", "C03"]
        assert client.get("/capsules/uncleaned", headers=staff_headers).json() == []
