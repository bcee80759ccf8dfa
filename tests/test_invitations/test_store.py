"""Tests for the invitation code store."""

import threading
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session, sessionmaker

from carpool.access.errors import AccessReason, DuplicateCodeError
from carpool.db.database import create_db_engine
from carpool.db.models import Base, InvitationCode
from carpool.invitations.store import InvitationStore

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def store(db: Session) -> InvitationStore:
    """Create an InvitationStore instance."""
    return InvitationStore(db)


class TestCreate:
    """Tests for InvitationStore.create."""

    def test_create_code(self, db: Session, store: InvitationStore):
        """Test a new code starts unused and unrevoked."""
        invitation = store.create("welcome1", "admin-1", max_uses=3)
        db.commit()

        assert invitation.id
        assert invitation.code == "WELCOME1"
        assert invitation.max_uses == 3
        assert invitation.current_uses == 0
        assert invitation.revoked_at is None
        assert invitation.used_by_user_id is None

    def test_create_duplicate_code(self, db: Session, store: InvitationStore):
        """Test creating a code that exists fails with DuplicateCode."""
        store.create("WELCOME1", "admin-1")
        db.commit()

        with pytest.raises(DuplicateCodeError) as exc_info:
            store.create("welcome1", "admin-1")
        assert exc_info.value.reason == AccessReason.DUPLICATE_CODE
        assert db.query(InvitationCode).count() == 1

    def test_find_by_code_ignores_case(self, db: Session, store: InvitationStore):
        """Test lookups normalize case and whitespace."""
        store.create("WELCOME1", "admin-1")
        db.commit()

        assert store.find_by_code(" welcome1 ") is not None
        assert store.find_by_code("OTHER") is None

    def test_list_all(self, db: Session, store: InvitationStore):
        """Test listing returns every code."""
        store.create("FIRST1", "admin-1")
        store.create("SECOND2", "admin-1")
        db.commit()

        codes = {invitation.code for invitation in store.list_all()}
        assert codes == {"FIRST1", "SECOND2"}


class TestRevoke:
    """Tests for InvitationStore.revoke."""

    def test_revoke(self, db: Session, store: InvitationStore):
        """Test revoking sets revoked_at."""
        invitation = store.create("WELCOME1", "admin-1")
        db.commit()

        revoked = store.revoke(invitation.id)
        db.commit()
        assert revoked.revoked_at is not None

    def test_revoke_is_idempotent(self, db: Session, store: InvitationStore):
        """Test revoking twice keeps the first timestamp."""
        invitation = store.create("WELCOME1", "admin-1")
        db.commit()

        first = store.revoke(invitation.id).revoked_at
        db.commit()
        second = store.revoke(invitation.id).revoked_at
        db.commit()
        assert first == second

    def test_revoke_missing(self, store: InvitationStore):
        """Test revoking an unknown ID returns None."""
        assert store.revoke("missing-id") is None

    def test_revoked_code_cannot_be_redeemed(self, db: Session, store: InvitationStore):
        """Test redemption skips revoked codes."""
        invitation = store.create("WELCOME1", "admin-1")
        store.revoke(invitation.id)
        db.commit()

        assert store.redeem(invitation.id, "user-1", NOW) is None


class TestRedeem:
    """Tests for InvitationStore.redeem."""

    def test_first_use_records_user(self, db: Session, store: InvitationStore):
        """Test the first redemption records the user and time."""
        invitation = store.create("WELCOME1", "admin-1", max_uses=3)
        db.commit()

        redeemed = store.redeem(invitation.id, "user-1", NOW)
        db.commit()

        assert redeemed.current_uses == 1
        assert redeemed.used_by_user_id == "user-1"
        assert redeemed.used_at == NOW.replace(tzinfo=None)

    def test_later_uses_keep_first_user(self, db: Session, store: InvitationStore):
        """Test later redemptions only move the counter."""
        invitation = store.create("WELCOME1", "admin-1", max_uses=3)
        db.commit()

        store.redeem(invitation.id, "user-1", NOW)
        store.redeem(invitation.id, "user-2", NOW + timedelta(hours=1))
        redeemed = store.redeem(invitation.id, "user-3", NOW + timedelta(hours=2))
        db.commit()

        assert redeemed.current_uses == 3
        assert redeemed.used_by_user_id == "user-1"
        assert redeemed.used_at == NOW.replace(tzinfo=None)

    def test_redeem_past_max_uses(self, db: Session, store: InvitationStore):
        """Test the counter never exceeds max_uses."""
        invitation = store.create("WELCOME1", "admin-1", max_uses=3)
        db.commit()

        for user_id in ("user-1", "user-2", "user-3"):
            assert store.redeem(invitation.id, user_id, NOW) is not None
        assert store.redeem(invitation.id, "user-4", NOW) is None
        db.commit()

        assert store.get(invitation.id).current_uses == 3

    def test_redeem_expired(self, db: Session, store: InvitationStore):
        """Test redemption skips codes whose expiry has been reached."""
        invitation = store.create("WELCOME1", "admin-1", expires_at=NOW)
        db.commit()

        assert store.redeem(invitation.id, "user-1", NOW) is None
        assert store.redeem(invitation.id, "user-1", NOW - timedelta(seconds=1)) is not None

    def test_redeem_missing(self, store: InvitationStore):
        """Test redeeming an unknown ID returns None."""
        assert store.redeem("missing-id", "user-1", NOW) is None


def test_concurrent_redemptions_of_single_use_code(tmp_path):
    """Test only one of several simultaneous redemptions succeeds."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    LocalSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    with LocalSession() as session:
        invitation = InvitationStore(session).create("RACE1", "admin-1", max_uses=1)
        session.commit()
        invitation_id = invitation.id

    workers = 8
    barrier = threading.Barrier(workers)
    results: list[bool] = []
    lock = threading.Lock()

    def redeem(user_id: str):
        with LocalSession() as session:
            barrier.wait()
            redeemed = InvitationStore(session).redeem(invitation_id, user_id, NOW)
            session.commit()
        with lock:
            results.append(redeemed is not None)

    threads = [
        threading.Thread(target=redeem, args=(f"user-{i}",)) for i in range(workers)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert len(results) == workers

    with LocalSession() as session:
        final = session.get(InvitationCode, invitation_id)
        assert final.current_uses == 1
        assert final.used_by_user_id is not None

    engine.dispose()
