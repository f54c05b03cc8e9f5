"""
通知 API 测试（TestClient + 依赖覆盖）
"""
import pytest
from fastapi.testclient import TestClient

from fleet_notify.database import get_db
from fleet_notify.main import app
from fleet_notify.middleware.auth import get_current_user
from fleet_notify.models.notification import Notification


@pytest.fixture
def client_for(db):
    """返回以指定用户身份请求的 TestClient"""

    def override_get_db():
        yield db

    current = {}
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current["user"]

    def _client(user):
        current["user"] = user
        return client

    with TestClient(app) as client:
        yield _client
    app.dependency_overrides.clear()


def payload(**kwargs):
    data = {"title": "Route change", "message": "Using the east gate today"}
    data.update(kwargs)
    return data


class TestSendEndpoints:
    """测试发送接口"""

    def test_direct_send(self, client_for, fleet):
        resp = client_for(fleet.admin).post(
            "/api/notifications",
            json=payload(receiver_role="student", receiver_id=fleet.students[0].id),
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["receiver_id"] == fleet.students[0].id
        assert body["type"] == "info"
        assert body["priority"] == "medium"
        assert body["is_read"] is False
        assert body["metadata"] == {}
        assert body["sender"] == {"id": fleet.admin.id, "name": "Admin", "email": None, "role": "admin"}

    def test_listing_carries_sender(self, client_for, fleet):
        client_for(fleet.driver).post("/api/notifications", json=payload(receiver_role="student"))
        items = client_for(fleet.students[0]).get("/api/notifications").json()["items"]
        assert len(items) == 1
        assert items[0]["sender"]["name"] == "Driver"
        assert items[0]["sender"]["role"] == "driver"

    def test_direct_to_admin_by_driver_forbidden(self, client_for, fleet, db):
        resp = client_for(fleet.driver).post("/api/notifications", json=payload(receiver_role="admin"))
        assert resp.status_code == 403
        assert db.query(Notification).count() == 0

    def test_student_cannot_send(self, client_for, fleet):
        resp = client_for(fleet.students[0]).post("/api/notifications", json=payload(receiver_role="driver"))
        assert resp.status_code == 403

    def test_role_mismatch_is_400(self, client_for, fleet):
        resp = client_for(fleet.admin).post(
            "/api/notifications",
            json=payload(receiver_role="driver", receiver_id=fleet.students[0].id),
        )
        assert resp.status_code == 400

    def test_unknown_receiver_is_404(self, client_for, fleet):
        resp = client_for(fleet.admin).post(
            "/api/notifications",
            json=payload(receiver_role="student", receiver_id=12345),
        )
        assert resp.status_code == 404

    def test_targeted_students(self, client_for, fleet):
        resp = client_for(fleet.driver).post("/api/notifications/targeted", json=payload(target_type="students"))
        assert resp.status_code == 201
        body = resp.json()
        assert body["count"] == len(fleet.students) + 1
        assert "1 admin copy" in body["message"]

    def test_targeted_without_vehicle_is_404(self, client_for, fleet, db):
        resp = client_for(fleet.idle_driver).post(
            "/api/notifications/targeted", json=payload(target_type="students")
        )
        assert resp.status_code == 404
        assert db.query(Notification).count() == 0

    def test_broadcast(self, client_for, fleet):
        resp = client_for(fleet.admin).post(
            "/api/notifications/broadcast",
            json=payload(target_roles=["driver", "student"]),
        )
        assert resp.status_code == 201
        assert resp.json()["count"] == 2

    def test_broadcast_empty_roles_is_400(self, client_for, fleet):
        resp = client_for(fleet.admin).post("/api/notifications/broadcast", json=payload(target_roles=[]))
        assert resp.status_code == 400

    def test_broadcast_requires_admin(self, client_for, fleet):
        resp = client_for(fleet.driver).post(
            "/api/notifications/broadcast", json=payload(target_roles=["student"])
        )
        assert resp.status_code == 403


class TestReadEndpoints:
    """测试读取、已读、删除、统计接口"""

    @pytest.fixture
    def direct_id(self, client_for, fleet):
        resp = client_for(fleet.admin).post(
            "/api/notifications",
            json=payload(receiver_role="student", receiver_id=fleet.students[0].id, priority="high"),
        )
        return resp.json()["id"]

    def test_list_and_unread_count(self, client_for, fleet, direct_id):
        client = client_for(fleet.students[0])
        body = client.get("/api/notifications").json()
        assert [item["id"] for item in body["items"]] == [direct_id]
        assert body["unread_count"] == 1
        assert body["pagination"]["total"] == 1
        assert client.get("/api/notifications/unread-count").json() == {"count": 1}

        other = client_for(fleet.students[1]).get("/api/notifications").json()
        assert other["items"] == []

    def test_get_one_access(self, client_for, fleet, direct_id):
        assert client_for(fleet.students[0]).get(f"/api/notifications/{direct_id}").status_code == 200
        assert client_for(fleet.students[1]).get(f"/api/notifications/{direct_id}").status_code == 403
        assert client_for(fleet.driver).get(f"/api/notifications/{direct_id}").status_code == 403
        assert client_for(fleet.admin).get("/api/notifications/999").status_code == 404

    def test_mark_read_twice(self, client_for, fleet, direct_id):
        client = client_for(fleet.students[0])
        first = client.put(f"/api/notifications/{direct_id}/read").json()
        second = client.put(f"/api/notifications/{direct_id}/read").json()
        assert first["is_read"] is True
        assert second["is_read"] is True
        assert second["read_at"] == first["read_at"]

    def test_mark_all_read(self, client_for, fleet, direct_id):
        client = client_for(fleet.students[0])
        assert client.put("/api/notifications/mark-all-read").json()["count"] == 1
        assert client.get("/api/notifications/unread-count").json() == {"count": 0}

    def test_delete(self, client_for, fleet, direct_id):
        assert client_for(fleet.students[1]).delete(f"/api/notifications/{direct_id}").status_code == 403
        assert client_for(fleet.students[0]).delete(f"/api/notifications/{direct_id}").status_code == 200
        assert client_for(fleet.students[0]).delete(f"/api/notifications/{direct_id}").status_code == 404

    def test_stats(self, client_for, fleet, direct_id):
        body = client_for(fleet.students[0]).get("/api/notifications/stats").json()
        assert body["total"] == 1
        assert body["unread"] == 1
        assert body["by_type"] == {"info": {"total": 1, "unread": 1}}
        assert body["by_priority"] == {"high": {"total": 1, "unread": 1}}

    def test_invalid_type_filter_is_400(self, client_for, fleet):
        resp = client_for(fleet.driver).get("/api/notifications", params={"type": "bogus"})
        assert resp.status_code == 400
