"""
通知生命周期测试
"""
import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from fleet_notify.core.errors import (
    ForbiddenError,
    InternalError,
    NotFoundError,
    PartialFailureError,
)
from fleet_notify.models.notification import Notification, ReceiverRole
from fleet_notify.services.addressing import (
    BroadcastIntent,
    DirectIntent,
    NotificationContent,
    NotificationDraft,
    TargetedByDriverIntent,
)
from fleet_notify.services.notification_service import NotificationService


@pytest.fixture
def service(db):
    return NotificationService(db)


def content(**kwargs):
    data = {"title": "Pickup", "message": "Pickup moved to gate B"}
    data.update(kwargs)
    return NotificationContent(**data)


class TestCreate:
    """测试创建"""

    def test_create_applies_defaults(self, service, fleet):
        sender = fleet.identity(fleet.admin)
        n = service.create(NotificationDraft(title="t", message="m", receiver_role="driver"), sender)
        assert n.id is not None
        assert n.type.value == "info"
        assert n.priority.value == "medium"
        assert n.is_read is False
        assert n.read_at is None
        assert n.created_at is not None
        assert n.sender_id == fleet.admin.id
        assert n.sender_role.value == "admin"

    def test_targeted_students_persists_k_plus_one(self, service, fleet, db):
        """司机发给本车学生：写入 K + 1 条"""
        created = service.send_targeted(
            fleet.identity(fleet.driver),
            TargetedByDriverIntent(content(), target_type="students"),
        )
        k = len(fleet.students)
        assert len(created) == k + 1
        assert db.query(Notification).count() == k + 1
        assert db.query(Notification).filter(Notification.receiver_role == ReceiverRole.STUDENT).count() == k
        copies = [n for n in created if n.receiver_role.value == "all"]
        assert len(copies) == 1
        assert copies[0].meta["intendedRole"] == "admin"

    def test_driver_without_vehicle_creates_nothing(self, service, fleet, db):
        with pytest.raises(NotFoundError):
            service.send_targeted(
                fleet.identity(fleet.idle_driver),
                TargetedByDriverIntent(content(), target_type="students"),
            )
        assert db.query(Notification).count() == 0

    def test_non_admin_direct_to_admin_creates_nothing(self, service, fleet, db):
        with pytest.raises(ForbiddenError):
            service.send_direct(
                fleet.identity(fleet.driver),
                DirectIntent(content(), receiver_role="admin"),
            )
        assert db.query(Notification).count() == 0

    def test_broadcast_two_roles(self, service, fleet):
        created = service.send_broadcast(
            fleet.identity(fleet.admin),
            BroadcastIntent(content(), target_roles=["driver", "student"]),
        )
        assert len(created) == 2
        assert all(n.receiver_id is None for n in created)

    def test_partial_failure_keeps_persisted_drafts(self, service, fleet, db):
        """群发中途失败：已写入的保留，异常中报告成功数量"""
        sender = fleet.identity(fleet.driver)
        drafts = [
            NotificationDraft(title="a", message="m", receiver_role="student", receiver_id=fleet.students[0].id),
            NotificationDraft(title="b", message="m", receiver_role="student", receiver_id=fleet.students[1].id),
            NotificationDraft(title=None, message="m", receiver_role="student", receiver_id=fleet.students[2].id),
            NotificationDraft(title="d", message="m", receiver_role="all"),
        ]
        with pytest.raises(PartialFailureError) as exc_info:
            service.create_many(drafts, sender)

        err = exc_info.value
        assert err.created_count == 2
        assert err.total == 4
        assert err.failed_index == 2
        assert err.to_payload()["created_count"] == 2
        assert db.query(Notification).count() == 2

    def test_database_outage_mid_fan_out_reports_created_ids(self, service, fleet, db, engine):
        """数据库在第 3 条 INSERT 起不可用：仍抛出 PartialFailureError 并带出已写入的 id"""
        inserts = {"count": 0}

        def outage(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith("INSERT INTO NOTIFICATIONS"):
                inserts["count"] += 1
            if inserts["count"] >= 3:
                raise OperationalError(statement, parameters, Exception("db down"))

        sender = fleet.identity(fleet.admin)
        drafts = [
            NotificationDraft(title=f"n{i}", message="m", receiver_role="student", receiver_id=s.id)
            for i, s in enumerate(fleet.students)
        ]
        db.commit()
        event.listen(engine, "before_cursor_execute", outage)
        try:
            with pytest.raises(PartialFailureError) as exc_info:
                service.create_many(drafts, sender)
            err = exc_info.value
            payload = err.to_payload()
        finally:
            event.remove(engine, "before_cursor_execute", outage)

        assert err.created_count == 2
        assert err.failed_index == 2
        assert payload["created_ids"] == err.created_ids
        assert len(set(err.created_ids)) == 2
        stored = {n.id for n in db.query(Notification).all()}
        assert stored == set(err.created_ids)

    def test_single_failure_is_internal_error(self, service, fleet, db):
        with pytest.raises(InternalError):
            service.create_many(
                [NotificationDraft(title=None, message="m", receiver_role="driver")],
                fleet.identity(fleet.admin),
            )
        assert db.query(Notification).count() == 0


class TestReadAndDelete:
    """测试读取、标记已读与删除"""

    @pytest.fixture
    def direct(self, service, fleet):
        """管理员发给第一个学生的直达通知"""
        return service.send_direct(
            fleet.identity(fleet.admin),
            DirectIntent(content(), receiver_role="student", receiver_id=fleet.students[0].id),
        )

    def test_recipient_can_view_read_delete(self, service, fleet, direct, db):
        student = fleet.identity(fleet.students[0])
        assert service.get(direct.id, student).id == direct.id
        assert service.mark_read(direct.id, student).is_read is True
        service.delete(direct.id, student)
        assert db.query(Notification).filter(Notification.id == direct.id).first() is None

    def test_other_student_and_driver_denied(self, service, fleet, direct):
        for user in (fleet.students[1], fleet.driver):
            with pytest.raises(ForbiddenError):
                service.get(direct.id, fleet.identity(user))
            with pytest.raises(ForbiddenError):
                service.mark_read(direct.id, fleet.identity(user))
            with pytest.raises(ForbiddenError):
                service.delete(direct.id, fleet.identity(user))

    def test_admin_may_delete_but_not_read(self, service, fleet, direct, db):
        """管理员删除不受可见性限制，但读取仍受限"""
        admin = fleet.identity(fleet.admin2)
        with pytest.raises(ForbiddenError):
            service.get(direct.id, admin)
        service.delete(direct.id, admin)
        assert db.query(Notification).count() == 0

    def test_missing_notification(self, service, fleet):
        viewer = fleet.identity(fleet.admin)
        with pytest.raises(NotFoundError):
            service.get(404, viewer)
        with pytest.raises(NotFoundError):
            service.mark_read(404, viewer)
        with pytest.raises(NotFoundError):
            service.delete(404, viewer)

    def test_mark_read_is_idempotent(self, service, fleet, direct):
        """重复标记已读：保持已读，read_at 不变"""
        student = fleet.identity(fleet.students[0])
        first = service.mark_read(direct.id, student)
        first_read_at = first.read_at
        assert first.is_read is True
        assert first_read_at is not None

        second = service.mark_read(direct.id, student)
        assert second.is_read is True
        assert second.read_at == first_read_at

    def test_mark_all_read_shares_timestamp(self, service, fleet, db):
        admin = fleet.identity(fleet.admin)
        service.send_broadcast(admin, BroadcastIntent(content(), target_roles=["student", "all"]))
        service.send_direct(
            admin,
            DirectIntent(content(), receiver_role="student", receiver_id=fleet.students[0].id),
        )
        service.send_direct(
            admin,
            DirectIntent(content(), receiver_role="student", receiver_id=fleet.students[1].id),
        )

        student = fleet.identity(fleet.students[0])
        assert service.mark_all_read(student) == 3

        db.expire_all()
        read = db.query(Notification).filter(Notification.is_read.is_(True)).all()
        assert len(read) == 3
        assert len({n.read_at for n in read}) == 1
        # 其他学生的直达通知不受影响
        untouched = db.query(Notification).filter(Notification.receiver_id == fleet.students[1].id).one()
        assert untouched.is_read is False

        assert service.mark_all_read(student) == 0
