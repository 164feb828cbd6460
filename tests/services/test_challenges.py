import threading
import time

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.models.auth import AuthChallenge
from app.services import challenges

RACERS = 8


@pytest.fixture
def file_session_factory(tmp_path):
    """Sessions on a file backed database, so each thread gets its own connection"""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'challenges.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def _verify(db, wallet, challenge, signer=None):
    signer = signer or wallet
    return challenges.verify_and_consume(
        db, wallet.address, challenge, signer.sign(challenge), signer.public_key_b64
    )


class TestCreateChallenge:
    def test_challenge_is_stored_unused(self, db_session, wallet):
        challenge = challenges.create_challenge(db_session, wallet.address)
        row = db_session.query(AuthChallenge).filter(AuthChallenge.challenge == challenge).one()
        assert row.wallet_address == wallet.address
        assert row.used is False
        assert row.expires_at - row.created_at == 300

    def test_each_request_gets_a_new_challenge(self, db_session, wallet):
        first = challenges.create_challenge(db_session, wallet.address)
        second = challenges.create_challenge(db_session, wallet.address)
        assert first != second
        assert db_session.query(AuthChallenge).count() == 2


class TestVerifyAndConsume:
    def test_valid_signature_consumes_challenge(self, db_session, wallet):
        challenge = challenges.create_challenge(db_session, wallet.address)
        assert _verify(db_session, wallet, challenge)

        db_session.expire_all()
        row = db_session.query(AuthChallenge).filter(AuthChallenge.challenge == challenge).one()
        assert row.used is True

    def test_challenge_is_single_use(self, db_session, wallet):
        challenge = challenges.create_challenge(db_session, wallet.address)
        assert _verify(db_session, wallet, challenge)
        assert not _verify(db_session, wallet, challenge)

    def test_concurrent_redemptions_have_one_winner(self, file_session_factory, wallet):
        setup = file_session_factory()
        challenge = challenges.create_challenge(setup, wallet.address)
        setup.close()

        barrier = threading.Barrier(RACERS)
        results = []
        lock = threading.Lock()

        def redeem():
            db = file_session_factory()
            try:
                barrier.wait()
                outcome = _verify(db, wallet, challenge)
            except OperationalError:
                # a busy database counts as a failed redemption
                db.rollback()
                outcome = False
            finally:
                db.close()
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=redeem) for _ in range(RACERS)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert len(results) == RACERS
        assert results.count(True) == 1

    def test_bad_signature_leaves_challenge_usable(self, db_session, wallet, make_wallet):
        challenge = challenges.create_challenge(db_session, wallet.address)
        assert not _verify(db_session, wallet, challenge, signer=make_wallet())
        assert _verify(db_session, wallet, challenge)

    def test_expired_challenge_is_rejected(self, db_session, wallet):
        challenge = challenges.create_challenge(db_session, wallet.address)
        row = db_session.query(AuthChallenge).filter(AuthChallenge.challenge == challenge).one()
        row.expires_at = int(time.time()) - 1
        db_session.commit()

        assert not _verify(db_session, wallet, challenge)

    def test_challenge_is_bound_to_its_wallet(self, db_session, wallet, make_wallet):
        other = make_wallet()
        challenge = challenges.create_challenge(db_session, other.address)
        assert not _verify(db_session, wallet, challenge)

    def test_unknown_challenge_is_rejected(self, db_session, wallet):
        assert not _verify(db_session, wallet, "Sign this message to authenticate with Normie Nation: made-up")
