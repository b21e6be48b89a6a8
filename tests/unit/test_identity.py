"""
Unit tests for the bundled identity store, bearer helpers and client address derivation.
"""

import pytest
from datetime import timedelta

from fmf.services.access.client_address import UNKNOWN_ADDRESS, client_address
from fmf.services.shared.auth import has_role
from fmf.services.shared.identity import MAX_PASSWORD_BYTES, DatabaseIdentityStore
from fmf.services.shared.models import Profile, StaffCredential, StaffRole, StaffSession

CS_EMAIL = "desk@fmf.gym"
PASSWORD = "correct-horse"


# ── DatabaseIdentityStore ──────────────────────────────────────────────────────

class TestIdentityStore:
    def test_password_is_hashed(self, db, cs):
        cred = db.query(StaffCredential).filter_by(id=cs.id).one()
        assert cred.password_hash != PASSWORD
        assert cred.password_hash.startswith("$2")

    def test_profile_shares_identity_handle(self, db, cs):
        cred = db.query(StaffCredential).filter_by(email=CS_EMAIL).one()
        assert cred.id == cs.id
        assert cs.role == "CS"
        assert cs.is_active is True

    def test_sign_in_mints_session(self, db, identity, cs):
        result = identity.sign_in(CS_EMAIL, PASSWORD)
        assert result.user.id == cs.id
        assert result.session.token_type == "bearer"
        assert identity.resolve_session(result.session.access_token) == cs.id
        # only the digest is stored
        stored = db.query(StaffSession).one()
        assert stored.token_hash != result.session.access_token
        assert len(stored.token_hash) == 64

    @pytest.mark.parametrize("email,password", [
        (CS_EMAIL, "wrong"),
        ("nobody@fmf.gym", PASSWORD),
        ("", PASSWORD),
        (CS_EMAIL, ""),
    ])
    def test_sign_in_rejected(self, db, identity, cs, email, password):
        assert identity.sign_in(email, password) is None
        assert db.query(StaffSession).count() == 0

    def test_unknown_token(self, identity, cs):
        assert identity.resolve_session("not-a-token") is None
        assert identity.resolve_session("") is None

    def test_expired_session(self, db, cs):
        store = DatabaseIdentityStore(db, session_ttl=timedelta(seconds=-1))
        result = store.sign_in(CS_EMAIL, PASSWORD)
        assert store.resolve_session(result.session.access_token) is None

    def test_sign_out_revokes(self, identity, cs):
        token = identity.sign_in(CS_EMAIL, PASSWORD).session.access_token
        assert identity.sign_out(token) is True
        assert identity.resolve_session(token) is None
        assert identity.sign_out(token) is False

    def test_rejects_unknown_role_at_provisioning(self, identity):
        with pytest.raises(ValueError):
            identity.create_staff("x@fmf.gym", PASSWORD, "X", "TRAINER")

    def test_overlong_password_is_a_failed_sign_in(self, db, identity, cs):
        assert identity.sign_in(CS_EMAIL, "x" * 100) is None
        assert identity.sign_in(CS_EMAIL, PASSWORD + "é" * 40) is None
        assert db.query(StaffSession).count() == 0

    def test_overlong_password_refused_at_provisioning(self, db, identity):
        with pytest.raises(ValueError, match="72 bytes"):
            identity.create_staff("x@fmf.gym", "x" * 73, "X", StaffRole.CS)
        assert db.query(StaffCredential).count() == 0

    def test_password_at_byte_limit_still_works(self, identity):
        password = "x" * MAX_PASSWORD_BYTES
        identity.create_staff("x@fmf.gym", password, "X", StaffRole.CS)
        assert identity.sign_in("x@fmf.gym", password) is not None


# ── has_role ───────────────────────────────────────────────────────────────────

class TestHasRole:
    def test_admin_satisfies_both(self):
        p = Profile(role="ADMIN")
        assert has_role(p, StaffRole.ADMIN) is True
        assert has_role(p, StaffRole.CS) is True

    def test_cs_satisfies_only_cs(self):
        p = Profile(role="CS")
        assert has_role(p, StaffRole.CS) is True
        assert has_role(p, StaffRole.ADMIN) is False

    def test_no_profile(self):
        assert has_role(None, StaffRole.CS) is False

    def test_unknown_role(self):
        assert has_role(Profile(role="TRAINER"), StaffRole.CS) is False


# ── client_address ─────────────────────────────────────────────────────────────

class TestClientAddress:
    def test_first_forwarded_entry(self):
        headers = {"x-forwarded-for": " 198.51.100.4 , 10.0.0.1", "x-real-ip": "10.0.0.2"}
        assert client_address(headers) == "198.51.100.4"

    def test_real_ip_fallback(self):
        assert client_address({"x-real-ip": "10.0.0.2"}) == "10.0.0.2"

    def test_empty_forwarded_falls_back(self):
        assert client_address({"x-forwarded-for": " , 10.0.0.1", "x-real-ip": "10.0.0.2"}) == "10.0.0.2"

    def test_unknown(self):
        assert client_address({}) == UNKNOWN_ADDRESS == "unknown"

    def test_not_validated(self):
        assert client_address({"x-forwarded-for": "not-an-ip"}) == "not-an-ip"
