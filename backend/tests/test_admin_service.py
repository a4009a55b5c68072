import pytest
from bson import ObjectId

from config.constants import AUDIT_LOGS, ORDERS, SELLER_PROFILES, USERS
from fakes import actor_for, seed_order, seed_product, seed_seller, seed_user
from models.user import UserRole
from utils import admin_service
from utils.errors import AlreadyExists, Forbidden, InvalidState, NotFound
from utils.notifications import NotificationEvent


@pytest.fixture
def root(store):
    return actor_for(seed_user(store, role=UserRole.ADMIN.value, is_super_admin=True))


@pytest.fixture
def admin(store):
    return actor_for(seed_user(store, role=UserRole.ADMIN.value))


# ======================================================
# ADD ADMIN
# ======================================================

async def test_super_admin_adds_plain_admin(store, root):
    result = await admin_service.add_admin(
        store, root, {"email": "Mod@FanForge.io", "full_name": "Mod Squad"}
    )

    user = store.row(USERS, ObjectId(result["id"]))
    assert user["email"] == "mod@fanforge.io"
    assert user["role"] == UserRole.ADMIN.value
    assert user["is_super_admin"] is False
    assert user["is_deleted"] is False
    assert result["is_super_admin"] is False
    assert [a["action"] for a in store.rows(AUDIT_LOGS)] == ["ADMIN_ADDED"]


async def test_add_admin_rejects_registered_email(store, root):
    seed_user(store, email="taken@fanforge.io")
    before = store.snapshot()

    with pytest.raises(AlreadyExists):
        await admin_service.add_admin(
            store, root, {"email": "Taken@fanforge.io", "full_name": "Dup"}
        )

    assert store.snapshot() == before


async def test_plain_admin_cannot_add_admin(store, admin):
    before = store.snapshot()

    with pytest.raises(Forbidden):
        await admin_service.add_admin(store, admin, {"email": "x@fanforge.io", "full_name": "Nope"})

    assert store.snapshot() == before
    assert store.commits == 0


# ======================================================
# REMOVE ADMIN
# ======================================================

async def test_super_admin_removes_admin(store, root, admin):
    result = await admin_service.remove_admin(store, root, admin.user_id)

    assert store.row(USERS, admin.user_id)["is_deleted"] is True
    assert result["user_id"] == str(admin.user_id)
    audit = store.rows(AUDIT_LOGS)
    assert [a["action"] for a in audit] == [admin_service.REMOVE_ADMIN]


async def test_plain_admin_cannot_remove_admin(store, admin):
    other = seed_user(store, role=UserRole.ADMIN.value)

    with pytest.raises(Forbidden):
        await admin_service.remove_admin(store, admin, other["_id"])

    assert store.row(USERS, other["_id"])["is_deleted"] is False


async def test_remove_admin_targets_admins_only(store, root):
    buyer = seed_user(store)

    with pytest.raises(InvalidState):
        await admin_service.remove_admin(store, root, buyer["_id"])


async def test_super_admin_cannot_remove_another_super_admin(store, root):
    other_root = seed_user(store, role=UserRole.ADMIN.value, is_super_admin=True)

    with pytest.raises(Forbidden):
        await admin_service.remove_admin(store, root, other_root["_id"])

    assert store.writes == 0


# ======================================================
# RESTORE
# ======================================================

async def test_restore_lifts_only_the_user_soft_delete(store, root, admin, hooks):
    seller_user = seed_user(store, role=UserRole.SELLER.value, email="back@example.com")
    seller = seed_seller(store, seller_user)
    product = seed_product(store, seller)
    order = seed_order(store, seed_user(store), product, status="ACCEPTED")

    await admin_service.ban_user(store, admin, seller_user["_id"])
    result = await admin_service.restore_user(store, root, seller_user["_id"])

    user = store.row(USERS, seller_user["_id"])
    assert user["is_deleted"] is False
    assert user["deleted_at"] is None
    assert user["role"] == UserRole.BUYER.value
    assert result["role"] == UserRole.BUYER.value

    assert store.row(SELLER_PROFILES, seller["_id"])["is_deleted"] is True
    assert store.row(ORDERS, order["_id"])["status"] == "CANCELLED"

    assert store.rows(AUDIT_LOGS)[-1]["action"] == "USER_RESTORED"
    assert hooks.notifications[-1][:2] == (NotificationEvent.ACCOUNT_RESTORED, "back@example.com")


async def test_restore_requires_banned_user(store, root):
    user = seed_user(store)

    with pytest.raises(InvalidState):
        await admin_service.restore_user(store, root, user["_id"])


async def test_restore_requires_super_admin(store, admin):
    user = seed_user(store, is_deleted=True)

    with pytest.raises(Forbidden):
        await admin_service.restore_user(store, admin, user["_id"])


async def test_ban_unknown_user(store, admin):
    with pytest.raises(NotFound):
        await admin_service.ban_user(store, admin, ObjectId())
