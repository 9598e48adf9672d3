from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.models.ebook import EBook
from app.models.payment import Payment
from app.models.subscription import Subscription
from app.models.user import User
from app.services.content_gate import is_accessible
from app.services.razorpay import sign_payment
from app.services.subscriptions import (
    confirm_payment,
    create_free_subscription,
    get_access_decision,
)


def main() -> None:
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        now = datetime.now(timezone.utc)
        user = User(id="user-1", email="viewer@example.com", name="Viewer")
        db.add(user)
        db.add(EBook(id="ebook-1", title="Premium", is_free=False))
        db.commit()
        premium = db.query(EBook).filter(EBook.id == "ebook-1").one()

        decision = get_access_decision(db, user.id, now=now)
        assert not decision.has_effective_plan
        assert not is_accessible(premium, decision.plan_type)

        create_free_subscription(db, user, now=now)
        decision = get_access_decision(db, user.id, now=now)
        assert decision.plan_type == "FOUR_DAY", decision.plan_type
        assert decision.should_show_four_day_plan
        assert not is_accessible(premium, decision.plan_type)

        later = now + timedelta(hours=49)
        assert not get_access_decision(db, user.id, now=later).should_show_four_day_plan

        db.add(Payment(razorpay_order_id="order_1", amount=699.0, plan_type="SIX_MONTH", user_id=user.id))
        db.commit()
        sig = sign_payment("order_1", "pay_1", "secret")
        confirm_payment(db, order_id="order_1", payment_id="pay_1", signature=sig, now=now, secret="secret")
        confirm_payment(db, order_id="order_1", payment_id="pay_1", signature=sig, now=now, secret="secret")
        assert db.query(Subscription).filter(Subscription.type == "SIX_MONTH").count() == 1

        decision = get_access_decision(db, user.id, now=now)
        assert decision.plan_type == "SIX_MONTH", decision.plan_type
        assert decision.is_premium_unlocked
        assert is_accessible(premium, decision.plan_type)
    finally:
        db.close()


if __name__ == "__main__":
    main()
    print("OK")
