"""
Tests for rate_cards.py - automatic pricing and manual overrides
"""
import pytest

from gayatri.core.errors import PermissionDeniedError, ServiceError
from gayatri.models.platform import RateCard, Service
from gayatri.services import rate_cards


class TestAutoPrice:
    """compute_auto_price = followers x 10 x clamp(engagement / 3.0, 0.5, 3.0)."""

    def test_baseline_engagement(self):
        assert rate_cards.compute_auto_price(50_000, 3.0) == 500_000

    def test_rounded_to_thousand(self):
        # 12,345 x 10 x 1.0 = 123,450
        assert rate_cards.compute_auto_price(12_345, 3.0) == 123_000

    def test_multiplier_clamped_high(self):
        assert rate_cards.compute_auto_price(100_000, 30.0) == 3_000_000

    def test_multiplier_clamped_low(self):
        assert rate_cards.compute_auto_price(100_000, 0.1) == 500_000

    def test_minimum_price(self):
        assert rate_cards.compute_auto_price(500, 3.0) == 100_000
        assert rate_cards.compute_auto_price(0, 0.0) == 100_000


class TestCreateIfNeeded:
    def test_only_missing_active_services(self, db, make):
        platform = make.platform("TikTok", services=("Feed Post", "Story", "Live"))
        live = db.query(Service).filter(Service.name == "Live").one()
        live.is_active = False
        db.commit()
        _, influencer = make.influencer()
        connection = make.connection(influencer, platform, followers=20_000, engagement_rate=3.0)
        story = db.query(Service).filter(Service.name == "Story").one()
        db.add(RateCard(influencer_platform_id=connection.id, service_id=story.id, price=1_000_000, currency="IDR"))
        db.commit()

        created = rate_cards.create_rate_cards_if_needed(db, connection)
        db.commit()

        assert len(created) == 1
        assert created[0].price == 200_000
        prices = {card["service"]: card["price"] for card in rate_cards.list_rate_cards(db, influencer.id)}
        assert prices == {"Feed Post": 200_000, "Story": 1_000_000}


class TestManualCards:
    def test_upsert_overrides_auto_card(self, db, make):
        platform = make.platform("TikTok")
        service = db.query(Service).one()
        user, influencer = make.influencer()
        connection = make.connection(influencer, platform)
        rate_cards.create_rate_cards_if_needed(db, connection)
        db.commit()

        card = rate_cards.upsert_rate_card(db, user, connection.id, service.id, 2_500_000, "Includes usage rights")

        assert card.price == 2_500_000
        assert card.is_auto_generated is False
        assert db.query(RateCard).count() == 1

    def test_service_must_match_platform(self, db, make):
        tiktok = make.platform("TikTok")
        make.platform("Instagram", services=("Reel",))
        reel = db.query(Service).filter(Service.name == "Reel").one()
        user, influencer = make.influencer()
        connection = make.connection(influencer, tiktok)

        with pytest.raises(ServiceError, match="does not belong"):
            rate_cards.upsert_rate_card(db, user, connection.id, reel.id, 100_000)

    def test_price_must_be_positive(self, db, make):
        user, influencer = make.influencer()
        connection = make.connection(influencer, make.platform())
        with pytest.raises(ServiceError):
            rate_cards.upsert_rate_card(db, user, connection.id, 1, 0)

    def test_other_influencer_cannot_edit(self, db, make):
        platform = make.platform()
        service = db.query(Service).one()
        _, owner = make.influencer()
        intruder, _ = make.influencer()
        connection = make.connection(owner, platform)

        with pytest.raises(PermissionDeniedError):
            rate_cards.upsert_rate_card(db, intruder, connection.id, service.id, 100_000)

    def test_admin_can_edit_and_delete(self, db, make):
        admin = make.admin()
        platform = make.platform()
        service = db.query(Service).one()
        _, influencer = make.influencer()
        connection = make.connection(influencer, platform)

        card = rate_cards.upsert_rate_card(db, admin, connection.id, service.id, 300_000)
        rate_cards.delete_rate_card(db, admin, card.id)

        assert db.query(RateCard).count() == 0
