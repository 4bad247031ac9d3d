from matprice.errors import AUTH_FAILED_MESSAGE, ErrorSlot
from matprice.providers.base import Identity
from matprice.session import SessionBootstrapper

from tests.conftest import GOOD_TOKEN, GOOD_UID, make_context


class TestSessionBootstrapper:
    def test_anonymous_sign_in_without_token(self, ctx):
        errors = ErrorSlot()
        session = SessionBootstrapper(ctx, errors)

        identity = session.start()

        assert identity is not None
        assert identity.is_anonymous is True
        assert session.identity == identity
        assert errors.message is None

    def test_token_sign_in(self):
        ctx = make_context(initial_auth_token=GOOD_TOKEN)
        session = SessionBootstrapper(ctx, ErrorSlot())

        identity = session.start()

        assert identity == Identity(uid=GOOD_UID, is_anonymous=False)

    def test_bad_token_sets_error_and_leaves_identity_unset(self):
        ctx = make_context(initial_auth_token="forged")
        errors = ErrorSlot()
        session = SessionBootstrapper(ctx, errors)

        assert session.start() is None
        assert session.identity is None
        assert errors.message == AUTH_FAILED_MESSAGE

    def test_listeners_see_current_state_then_changes(self, ctx):
        session = SessionBootstrapper(ctx, ErrorSlot())
        seen = []
        session.subscribe(seen.append)

        identity = session.start()
        session.sign_out()

        assert seen[0] is None
        assert seen[-2:] == [identity, None]
        assert session.identity is None

    def test_sessions_have_independent_identities(self, ctx):
        first = SessionBootstrapper(ctx, ErrorSlot()).start()
        second = SessionBootstrapper(ctx, ErrorSlot()).start()
        assert first.uid != second.uid

    def test_stop_unsubscribes(self, ctx):
        session = SessionBootstrapper(ctx, ErrorSlot())
        seen = []
        session.subscribe(seen.append)
        session.start()
        session.stop()
        count = len(seen)

        session.sign_out()

        assert len(seen) == count
