"""
Reference data: achievement definitions, point values and default commissions.

Idempotent; existing rows are updated in place and unlocks are never touched.
Run as `python -m salesboard.seed` or at application startup.
"""
import logging

from sqlalchemy.orm import Session

from salesboard.database import Base, SessionLocal, engine
from salesboard import models  # noqa: F401  registers tables
from salesboard.repositories.achievement_repository import AchievementRepository
from salesboard.repositories.order_repository import CommissionRepository
from salesboard.repositories.points_repository import PointConfigurationRepository
from salesboard.constants import (
    ADD_ON_KEY, ADD_ON_POINTS, SALE_TYPE_POINTS,
    PLAN_FIBER_500, PLAN_FIBER_1GIG, PLAN_FIBER_2GIG, PLAN_FOUNDERS_CLUB,
    CATEGORY_MILESTONE, CATEGORY_STREAK, CATEGORY_POINTS, CATEGORY_SPECIAL,
    CONDITION_SALES_COUNT, CONDITION_SALES_STREAK, CONDITION_POINTS_TOTAL, CONDITION_CUSTOM
)

logger = logging.getLogger("salesboard.seed")


def _achievement(name, display_name, description, icon, category, points_reward,
                 condition_type, condition_value, sort_order, is_secret=False):
    return {
        "name": name,
        "display_name": display_name,
        "description": description,
        "icon": icon,
        "category": category,
        "points_reward": points_reward,
        "condition_type": condition_type,
        "condition_value": condition_value,
        "sort_order": sort_order,
        "is_secret": is_secret,
    }


ACHIEVEMENTS = [
    # Sales count milestones
    _achievement("first_sale", "First Sale", "Complete your first sale", "🎯",
                 CATEGORY_MILESTONE, 50, CONDITION_SALES_COUNT, 1, 1),
    _achievement("three_sales", "Hat Trick", "Complete 3 sales", "🎩",
                 CATEGORY_MILESTONE, 75, CONDITION_SALES_COUNT, 3, 2),
    _achievement("five_sales", "High Five", "Complete 5 sales", "🖐️",
                 CATEGORY_MILESTONE, 100, CONDITION_SALES_COUNT, 5, 3),
    _achievement("ten_sales", "Double Digits", "Complete 10 sales", "🔟",
                 CATEGORY_MILESTONE, 200, CONDITION_SALES_COUNT, 10, 4),
    _achievement("twenty_five_sales", "Quarter Century", "Complete 25 sales", "🏅",
                 CATEGORY_MILESTONE, 500, CONDITION_SALES_COUNT, 25, 5),
    _achievement("fifty_sales", "Half Century", "Complete 50 sales", "🥇",
                 CATEGORY_MILESTONE, 1000, CONDITION_SALES_COUNT, 50, 6),
    _achievement("hundred_sales", "Century Club", "Complete 100 sales", "💯",
                 CATEGORY_MILESTONE, 2500, CONDITION_SALES_COUNT, 100, 7),
    _achievement("two_fifty_sales", "Sales Legend", "Complete 250 sales", "🌟",
                 CATEGORY_MILESTONE, 5000, CONDITION_SALES_COUNT, 250, 8),
    _achievement("five_hundred_sales", "Sales Master", "Complete 500 sales", "👑",
                 CATEGORY_MILESTONE, 10000, CONDITION_SALES_COUNT, 500, 9),

    # Streaks
    _achievement("streak_3", "On a Roll", "3-day sales streak", "🔥",
                 CATEGORY_STREAK, 25, CONDITION_SALES_STREAK, 3, 20),
    _achievement("streak_5", "Heating Up", "5-day sales streak", "⚡",
                 CATEGORY_STREAK, 50, CONDITION_SALES_STREAK, 5, 21),
    _achievement("streak_7", "Week Warrior", "7-day sales streak", "💪",
                 CATEGORY_STREAK, 100, CONDITION_SALES_STREAK, 7, 22),
    _achievement("streak_14", "Fortnight Fighter", "14-day sales streak", "🗡️",
                 CATEGORY_STREAK, 250, CONDITION_SALES_STREAK, 14, 23),
    _achievement("streak_21", "Triple Week", "21-day sales streak", "🏆",
                 CATEGORY_STREAK, 500, CONDITION_SALES_STREAK, 21, 24),
    _achievement("streak_30", "Monthly Master", "30-day sales streak", "👑",
                 CATEGORY_STREAK, 1000, CONDITION_SALES_STREAK, 30, 25),

    # Lifetime points
    _achievement("points_100", "Point Starter", "Earn 100 total points", "⭐",
                 CATEGORY_POINTS, 25, CONDITION_POINTS_TOTAL, 100, 40),
    _achievement("points_500", "Point Collector", "Earn 500 total points", "🌟",
                 CATEGORY_POINTS, 50, CONDITION_POINTS_TOTAL, 500, 41),
    _achievement("points_1000", "Point Hoarder", "Earn 1,000 total points", "✨",
                 CATEGORY_POINTS, 100, CONDITION_POINTS_TOTAL, 1000, 42),
    _achievement("points_2500", "Point Expert", "Earn 2,500 total points", "💫",
                 CATEGORY_POINTS, 250, CONDITION_POINTS_TOTAL, 2500, 43),
    _achievement("points_5000", "Point Master", "Earn 5,000 total points", "🔮",
                 CATEGORY_POINTS, 500, CONDITION_POINTS_TOTAL, 5000, 44),
    _achievement("points_10000", "Point Legend", "Earn 10,000 total points", "💎",
                 CATEGORY_POINTS, 1000, CONDITION_POINTS_TOTAL, 10000, 45),

    # Special
    _achievement("daily_warrior", "Daily Warrior", "Make a sale every day for a week", "⚔️",
                 CATEGORY_SPECIAL, 150, CONDITION_SALES_STREAK, 7, 60),
    _achievement("early_bird", "Early Bird", "Make a sale before 9 AM", "🐦",
                 CATEGORY_SPECIAL, 25, CONDITION_CUSTOM, 0, 61),
    _achievement("night_owl", "Night Owl", "Make a sale after 8 PM", "🦉",
                 CATEGORY_SPECIAL, 25, CONDITION_CUSTOM, 0, 62),
    _achievement("weekend_warrior", "Weekend Warrior", "Make sales on both Saturday and Sunday", "🎉",
                 CATEGORY_SPECIAL, 50, CONDITION_CUSTOM, 0, 63),
    _achievement("single_day_sales", "Power Day", "Make 5 sales in a single day", "🚀",
                 CATEGORY_SPECIAL, 150, CONDITION_CUSTOM, 5, 64, is_secret=True),
    _achievement("founders_club_sales", "Founding Father", "Sell 5 Founders Club plans", "🏛️",
                 CATEGORY_SPECIAL, 200, CONDITION_CUSTOM, 5, 65),
    _achievement("high_tier_sales", "Speed Dealer", "Sell 10 Gig-tier or Founders Club plans", "🏎️",
                 CATEGORY_SPECIAL, 200, CONDITION_CUSTOM, 10, 66),
]

POINT_DESCRIPTIONS = {
    "standard": "New customer sale",
    "upgrade": "Existing customer upgrade",
    "multi_service": "Bundle of several services",
    ADD_ON_KEY: "Per add-on sold with the order",
}

DEFAULT_COMMISSIONS = {
    PLAN_FIBER_500: 50.0,
    PLAN_FIBER_1GIG: 75.0,
    PLAN_FIBER_2GIG: 100.0,
    PLAN_FOUNDERS_CLUB: 100.0,
}


def seed_achievements(db: Session) -> int:
    for definition in ACHIEVEMENTS:
        fields = dict(definition)
        name = fields.pop("name")
        AchievementRepository.upsert(db, name, is_active=True, **fields)
    return len(ACHIEVEMENTS)


def seed_point_configuration(db: Session) -> int:
    """Insert missing point values; values changed by an admin are kept"""
    values = dict(SALE_TYPE_POINTS)
    values[ADD_ON_KEY] = ADD_ON_POINTS

    created = 0
    for sale_type, points in values.items():
        if PointConfigurationRepository.get_by_sale_type(db, sale_type) is None:
            PointConfigurationRepository.upsert(db, sale_type, points, POINT_DESCRIPTIONS.get(sale_type))
            created += 1
    return created


def seed_commission_rates(db: Session) -> int:
    """Insert missing default commissions; existing amounts are kept"""
    created = 0
    for plan_type, amount in DEFAULT_COMMISSIONS.items():
        if CommissionRepository.get_default_rate(db, plan_type) is None:
            CommissionRepository.upsert_default_rate(db, plan_type, amount)
            created += 1
    return created


def seed_all(db: Session) -> dict:
    result = {
        "achievements": seed_achievements(db),
        "point_configurations": seed_point_configuration(db),
        "commission_rates": seed_commission_rates(db),
    }
    logger.info(f"Reference data seeded: {result}")
    return result


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_all(session)
    finally:
        session.close()
