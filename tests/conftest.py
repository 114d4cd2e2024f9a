from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from types import SimpleNamespace
from typing import Optional

import pytest
from werkzeug.security import check_password_hash, generate_password_hash

from boarding_attendance.container import assemble_container
from boarding_attendance.core.enums import Role
from boarding_attendance.core.exceptions import StorageError
from boarding_attendance.duty.model import DutyEntry
from boarding_attendance.permissions.evaluator import resolve_permissions
from boarding_attendance.permissions.model import AppFeature, GroupPermission, PermissionGroup, UserPermission
from boarding_attendance.reports.model import ReportFilter
from boarding_attendance.students.model import ClassInfo, Student
from boarding_attendance.users.model import LoginRecord, Profile


class InMemoryStudents:
    def __init__(self, students=()):
        self._by_id = {s.student_id: s for s in students}
        self._next_id = max(self._by_id, default=0) + 1

    def list(self, *, class_id=None):
        return [s for s in self._by_id.values() if class_id is None or s.class_id == class_id]

    def get_by_id(self, student_id):
        return self._by_id.get(int(student_id))

    def insert(self, student):
        sid = self._next_id
        self._next_id += 1
        self._by_id[sid] = replace(student, student_id=sid)
        return sid

    def update(self, student):
        if student.student_id not in self._by_id:
            return False
        self._by_id[student.student_id] = student
        return True

    def delete(self, *, student_id):
        return self._by_id.pop(int(student_id), None) is not None


class InMemoryClasses:
    def __init__(self, classes=()):
        self._classes = list(classes)

    def list_all(self):
        return list(self._classes)


class InMemoryReports:
    def __init__(self):
        self.items = {}
        self._next_id = 1
        self._tick = 0
        self.fail_delete_ids: set[int] = set()

    def list(self, report_filter: ReportFilter):
        f = report_filter
        out = []
        for r in self.items.values():
            if f.start is not None and r.report_date < f.start:
                continue
            if f.end is not None and r.report_date > f.end:
                continue
            if f.report_type is not None and r.report_type != f.report_type:
                continue
            if f.session is not None and r.session != f.session:
                continue
            if f.meal_type is not None and r.meal_type != f.meal_type:
                continue
            if f.class_id and f.class_id not in r.referenced_class_ids():
                continue
            out.append(r)
        out.sort(key=lambda r: (r.created_at, r.report_id), reverse=True)
        return out[: f.limit] if f.limit else out

    def insert(self, report):
        rid = self._next_id
        self._next_id += 1
        self._tick += 1
        created_at = report.created_at or datetime(2024, 1, 1, 0, 0, 0).replace(microsecond=self._tick)
        self.items[rid] = replace(report, report_id=rid, created_at=created_at)
        return rid

    def delete(self, *, report_id):
        if int(report_id) in self.fail_delete_ids:
            raise StorageError("Lỗi truy cập cơ sở dữ liệu")
        return self.items.pop(int(report_id), None) is not None


class InMemoryDuties:
    def __init__(self, entries=()):
        self.items = {e.duty_id: e for e in entries}
        self._next_id = max(self.items, default=0) + 1

    def list_range(self, *, start, end):
        rows = [e for e in self.items.values() if start <= e.duty_date <= end]
        return sorted(rows, key=lambda e: (e.duty_date, e.teacher_name))

    def list_for_date(self, *, duty_date):
        return self.list_range(start=duty_date, end=duty_date)

    def get_by_id(self, duty_id):
        return self.items.get(int(duty_id))

    def insert(self, *, teacher_name, duty_date, notes=None, created_by=None):
        did = self._next_id
        self._next_id += 1
        self.items[did] = DutyEntry(did, teacher_name, duty_date, notes, created_by)
        return did

    def insert_if_absent(self, *, teacher_name, duty_date, created_by=None):
        if any(e.teacher_name == teacher_name and e.duty_date == duty_date for e in self.items.values()):
            return False
        self.insert(teacher_name=teacher_name, duty_date=duty_date, created_by=created_by)
        return True

    def update(self, *, duty_id, teacher_name, notes=None):
        e = self.items.get(int(duty_id))
        if not e:
            return False
        self.items[e.duty_id] = replace(e, teacher_name=teacher_name, notes=notes)
        return True

    def delete(self, *, duty_id):
        return self.items.pop(int(duty_id), None) is not None

    def delete_range(self, *, start, end):
        ids = [i for i, e in self.items.items() if start <= e.duty_date <= end]
        for i in ids:
            del self.items[i]
        return len(ids)


class InMemoryAccounts:
    """Profiles + auth gateway over the same in-memory rows."""

    def __init__(self):
        self.profiles: dict[int, Profile] = {}
        self.hashes: dict[int, str] = {}
        self.history: list[LoginRecord] = []
        self.reset_tokens: dict[str, int] = {}
        self._next_id = 1

    # ProfileRepository
    def get_by_id(self, user_id):
        return self.profiles.get(int(user_id))

    def _find(self, **kw) -> Optional[Profile]:
        for p in self.profiles.values():
            if all(getattr(p, k) == v for k, v in kw.items()):
                return p
        return None

    def get_by_email(self, email):
        return self._find(email=email.lower())

    def get_by_username(self, username):
        return self._find(username=username)

    def get_by_phone(self, phone):
        return self._find(phone=phone)

    def list_all(self):
        return list(self.profiles.values())

    def update(self, *, user_id, full_name, username, phone, class_id):
        p = self.profiles.get(int(user_id))
        if not p:
            return False
        self.profiles[p.user_id] = replace(p, full_name=full_name, username=username, phone=phone, class_id=class_id)
        return True

    def set_active(self, user_id, *, is_active):
        p = self.profiles.get(int(user_id))
        if not p:
            return False
        self.profiles[p.user_id] = replace(p, is_active=is_active)
        return True

    def delete_by_id(self, user_id):
        return self.profiles.pop(int(user_id), None) is not None

    def record_login(self, *, user_id, identifier, success):
        self.history.append(LoginRecord(user_id=user_id, identifier=identifier, success=success))

    def list_login_history(self, *, user_id=None, limit=50):
        rows = [r for r in reversed(self.history) if user_id is None or r.user_id == user_id]
        return rows[:limit]

    # AuthGateway
    def sign_in(self, *, email, password):
        p = self.get_by_email(email)
        if not p or not p.is_active or not check_password_hash(self.hashes[p.user_id], password):
            return None
        return p.user_id

    def sign_up(self, *, email, password, full_name, username=None, phone=None, class_id=None):
        uid = self._next_id
        self._next_id += 1
        self.profiles[uid] = Profile(uid, email.lower(), full_name, username, phone, class_id)
        self.hashes[uid] = generate_password_hash(password)
        return uid

    def resolve_login_identifier(self, identifier):
        p = self._find(username=identifier) or self._find(phone=identifier)
        return p.email if p else None

    def request_password_reset(self, *, email):
        p = self.get_by_email(email)
        if not p:
            return None
        token = f"token-{p.user_id}"
        self.reset_tokens[token] = p.user_id
        return token

    def complete_password_reset(self, *, token, password):
        uid = self.reset_tokens.pop(token, None)
        if uid is None:
            return False
        self.hashes[uid] = generate_password_hash(password)
        return True

    def set_password(self, *, user_id, password):
        if int(user_id) not in self.profiles:
            return False
        self.hashes[int(user_id)] = generate_password_hash(password)
        return True


class InMemoryPermissions:
    def __init__(self):
        self.roles: dict[int, set[Role]] = {}
        self.user_grants: dict[int, dict] = {}
        self.group_grants: dict[int, dict] = {}
        self.memberships: set[tuple[int, int]] = set()

    def list_roles(self, user_id):
        return sorted(self.roles.get(int(user_id), set()), key=lambda r: r.value)

    def set_roles(self, *, user_id, roles):
        self.roles[int(user_id)] = {Role(r) for r in roles}

    def list_user_permissions(self, user_id):
        return [UserPermission(user_id, c, g) for c, g in self.user_grants.get(int(user_id), {}).items()]

    def replace_user_permissions(self, *, user_id, grants):
        self.user_grants[int(user_id)] = dict(grants)

    def list_group_permissions(self, group_id):
        return [GroupPermission(group_id, c, g) for c, g in self.group_grants.get(int(group_id), {}).items()]

    def replace_group_permissions(self, *, group_id, grants):
        self.group_grants[int(group_id)] = dict(grants)

    def list_user_group_ids(self, user_id):
        return sorted(g for u, g in self.memberships if u == int(user_id))


class InMemoryGroups:
    def __init__(self, permissions: InMemoryPermissions):
        self._permissions = permissions
        self.groups: dict[int, PermissionGroup] = {}
        self._next_id = 1

    def list_all(self):
        return sorted(self.groups.values(), key=lambda g: g.name)

    def get_by_id(self, group_id):
        return self.groups.get(int(group_id))

    def get_by_name(self, name):
        return next((g for g in self.groups.values() if g.name == name), None)

    def create(self, *, name, description):
        gid = self._next_id
        self._next_id += 1
        self.groups[gid] = PermissionGroup(gid, name, description)
        return gid

    def update(self, *, group_id, name, description):
        if int(group_id) not in self.groups:
            return False
        self.groups[int(group_id)] = PermissionGroup(int(group_id), name, description)
        return True

    def delete(self, *, group_id):
        if self.groups.pop(int(group_id), None) is None:
            return False
        self._permissions.group_grants.pop(int(group_id), None)
        self._permissions.memberships = {m for m in self._permissions.memberships if m[1] != int(group_id)}
        return True

    def clear_memberships(self, *, user_id):
        self._permissions.memberships = {m for m in self._permissions.memberships if m[0] != int(user_id)}

    def add_membership(self, *, user_id, group_id):
        key = (int(user_id), int(group_id))
        if key in self._permissions.memberships:
            return False
        self._permissions.memberships.add(key)
        return True


class InMemoryFeatures:
    def __init__(self, permissions: InMemoryPermissions, features=()):
        self._permissions = permissions
        self.features = {f.feature_id: f for f in features}
        self._next_id = max(self.features, default=0) + 1

    def list_all(self, *, include_inactive=False):
        rows = [f for f in self.features.values() if include_inactive or f.is_active]
        return sorted(rows, key=lambda f: (f.display_order, f.code))

    def get_by_code(self, code):
        return next((f for f in self.features.values() if f.code == code), None)

    def create(self, *, code, label, icon_name, display_order):
        fid = self._next_id
        self._next_id += 1
        self.features[fid] = AppFeature(fid, code, label, icon_name, display_order, True)
        return fid

    def update(self, *, feature_id, label, icon_name, display_order):
        f = self.features.get(int(feature_id))
        if not f:
            return False
        self.features[f.feature_id] = replace(f, label=label, icon_name=icon_name, display_order=display_order)
        return True

    def set_active(self, *, feature_id, is_active):
        f = self.features.get(int(feature_id))
        if not f:
            return False
        self.features[f.feature_id] = replace(f, is_active=is_active)
        return True

    def delete_with_grants(self, *, feature_id):
        f = self.features.pop(int(feature_id), None)
        if not f:
            return False
        for grants in list(self._permissions.user_grants.values()) + list(self._permissions.group_grants.values()):
            grants.pop(f.code, None)
        return True


CLASSES = [
    ClassInfo("6a", "6A", 6),
    ClassInfo("6b", "6B", 6),
    ClassInfo("7a", "7A", 7),
]


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 10, 7, 30)


@pytest.fixture
def classes():
    return list(CLASSES)


@pytest.fixture
def roster():
    return [
        Student(1, "Lò Văn An", "6a", room="P101", meal_group="M1"),
        Student(2, "Giàng Thị Bình", "6a", room="P102", meal_group="M1"),
        Student(3, "Vàng Văn Cường", "6a", room="P101", meal_group="M2"),
        Student(4, "Sùng Thị Dung", "6b", room="P201", meal_group="M2"),
        Student(5, "Hoàng Văn Em", "6b", room="P202", meal_group="M3"),
        Student(6, "Nguyễn Văn Phú", "7a", room=None, meal_group=None, is_boarding=False),
    ]


@pytest.fixture
def admin_perms():
    return resolve_permissions(user_id=1, roles=[Role.ADMIN])


@pytest.fixture
def gvcn_perms():
    return resolve_permissions(user_id=2, roles=[Role.TEACHER, Role.CLASS_TEACHER], class_id="6a")


@pytest.fixture
def repos(roster, classes):
    permissions = InMemoryPermissions()
    return SimpleNamespace(
        students=InMemoryStudents(roster),
        classes=InMemoryClasses(classes),
        reports=InMemoryReports(),
        duties=InMemoryDuties(),
        accounts=InMemoryAccounts(),
        permissions=permissions,
        groups=InMemoryGroups(permissions),
        features=InMemoryFeatures(
            permissions,
            [
                AppFeature(1, "meals", "Báo cơm", display_order=1),
                AppFeature(2, "students", "Học sinh", display_order=2),
                AppFeature(3, "duty", "Lịch trực", display_order=3),
                AppFeature(4, "users", "Người dùng", display_order=4),
            ],
        ),
    )


@pytest.fixture
def container(repos, fixed_now):
    return assemble_container(
        students=repos.students,
        classes=repos.classes,
        reports=repos.reports,
        duties=repos.duties,
        profiles=repos.accounts,
        auth_gateway=repos.accounts,
        permissions=repos.permissions,
        groups=repos.groups,
        features=repos.features,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def app(container, monkeypatch):
    from boarding_attendance.main import create_app

    monkeypatch.setenv("APP_ENV", "testing")
    return create_app(container)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def accounts(repos):
    """Tạo sẵn admin và GVCN lớp 6A trong bộ nhớ."""
    admin_id = repos.accounts.sign_up(
        email="admin@school.edu.vn", password="admin123", full_name="Quản trị viên", username="admin"
    )
    repos.permissions.set_roles(user_id=admin_id, roles=[Role.ADMIN])
    gvcn_id = repos.accounts.sign_up(
        email="gvcn6a@school.edu.vn",
        password="teacher123",
        full_name="Nguyễn Thị Lan",
        username="gvcn6a",
        phone="0912345678",
        class_id="6a",
    )
    repos.permissions.set_roles(user_id=gvcn_id, roles=[Role.TEACHER, Role.CLASS_TEACHER])
    return SimpleNamespace(admin_id=admin_id, gvcn_id=gvcn_id)
