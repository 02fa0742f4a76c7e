"""
认证 API 测试
"""


class TestLogin:

    def test_login_success(self, client, admin_token):
        response = client.post("/auth/login", json={"username": "admin", "password": "123456"})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["access_token"]
        assert data["employee"]["username"] == "admin"
        assert data["employee"]["role"] == "admin"

    def test_wrong_password(self, client, admin_token):
        response = client.post("/auth/login", json={"username": "admin", "password": "wrong"})
        assert response.status_code == 401

    def test_unknown_user(self, client):
        response = client.post("/auth/login", json={"username": "ghost", "password": "123456"})
        assert response.status_code == 401

    def test_inactive_employee(self, client, db_session, staff_token):
        from hostel.models.tables import Employee
        staff = db_session.query(Employee).filter_by(username="staff1").one()
        staff.is_active = False
        db_session.commit()

        response = client.post("/auth/login", json={"username": "staff1", "password": "123456"})
        assert response.status_code == 401


class TestCurrentUser:

    def test_me(self, client, staff_headers):
        response = client.get("/auth/me", headers=staff_headers)
        assert response.status_code == 200
        assert response.json()["username"] == "staff1"

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_missing_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code in (401, 403)


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
