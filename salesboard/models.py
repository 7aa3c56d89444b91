from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Date, ForeignKey, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime

from salesboard.database import Base
from salesboard.constants import (
    ROLE_SALESPERSON, ORDER_STATUS_NEW, SALE_TYPE_STANDARD, TEAM_ROLE_MEMBER,
    BATTLE_STATUS_UPCOMING, GOAL_STATUS_ACTIVE,
    DEFAULT_DAILY_GOAL, DEFAULT_WEEKLY_GOAL, DEFAULT_MONTHLY_GOAL,
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    role = Column(String, default=ROLE_SALESPERSON)  # admin, manager, salesperson or a custom role
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.now)


class AuthSession(Base):
    """Session token issued by the authentication provider"""
    __tablename__ = "auth_sessions"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String, nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=True)  # None = no expiry
    created_at = Column(DateTime, default=datetime.now)

    user = relationship("User")


class CommissionRate(Base):
    __tablename__ = "commission_rates"

    id = Column(Integer, primary_key=True, index=True)
    plan_type = Column(String, nullable=False, unique=True)
    amount = Column(Float, default=0.0)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class RoleCommissionRate(Base):
    __tablename__ = "role_commission_rates"
    __table_args__ = (
        UniqueConstraint("role_name", "plan_type", name="uq_role_commission_rate"),
    )

    id = Column(Integer, primary_key=True, index=True)
    role_name = Column(String, nullable=False, index=True)
    plan_type = Column(String, nullable=False)
    amount = Column(Float, default=0.0)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class PointConfiguration(Base):
    __tablename__ = "point_configurations"

    id = Column(Integer, primary_key=True, index=True)
    sale_type = Column(String, nullable=False, unique=True)  # standard, upgrade, multi_service, add_on
    points = Column(Integer, nullable=False)
    description = Column(String, nullable=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # Customer
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    customer_email = Column(String, nullable=True)
    service_address = Column(String, nullable=False)
    city = Column(String, nullable=False)
    state = Column(String, default="TX")
    zip = Column(String, nullable=False)

    # Plan and pricing
    plan_type = Column(String, nullable=False)  # fiber_500, fiber_1gig, fiber_2gig, founders_club
    pricing_tier = Column(String, nullable=False)  # voice_autopay, autopay_only, no_discounts
    monthly_price = Column(Float, nullable=False)

    # Installation
    install_date = Column(Date, nullable=False)
    install_time_slot = Column(String, nullable=False)
    access_notes = Column(String, nullable=True)
    promo_code = Column(String, nullable=True)

    # Gamification inputs
    sale_type = Column(String, default=SALE_TYPE_STANDARD)  # standard, upgrade, multi_service
    add_ons_count = Column(Integer, default=0)

    salesperson_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, default=ORDER_STATUS_NEW, index=True)  # new, scheduled, installed, completed, cancelled

    commission_amount = Column(Float, default=0.0)
    commission_paid = Column(Boolean, default=False)

    # Set once when the sale is rewarded; never recomputed
    points_awarded = Column(Integer, nullable=True)
    points_awarded_at = Column(DateTime, nullable=True)
    # Later reward steps; a retry resumes whichever is still unset
    goals_recorded_at = Column(DateTime, nullable=True)
    rewards_completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.now, index=True)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    salesperson = relationship("User")


class UserStats(Base):
    """Per-user gamification counters, only changed through atomic UPDATE statements"""
    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    total_points = Column(Integer, default=0)  # Spendable balance, admin adjustments apply here
    lifetime_points = Column(Integer, default=0)  # Only ever increases

    # Streak tracking (calendar days with at least one qualifying sale)
    current_streak = Column(Integer, default=0)
    longest_streak = Column(Integer, default=0)
    last_sale_date = Column(Date, nullable=True)
    streak_start_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class PointHistory(Base):
    """Append-only ledger of point awards"""
    __tablename__ = "point_history"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    points = Column(Integer, nullable=False)
    reason = Column(String, nullable=False)  # sale, achievement, adjustment
    source_type = Column(String, nullable=True)  # order, achievement, admin
    source_id = Column(Integer, nullable=True)
    description = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.now, index=True)


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    icon = Column(String, nullable=True)
    category = Column(String, nullable=False)  # milestone, streak, points, special, team
    points_reward = Column(Integer, default=0)

    condition_type = Column(String, nullable=False)  # sales_count, sales_streak, points_total, custom
    condition_value = Column(Integer, nullable=True)

    is_secret = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    sort_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.now)


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    achievement_id = Column(
        Integer, ForeignKey("achievements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    earned_at = Column(DateTime, default=datetime.now)
    notified = Column(Boolean, default=False)  # Popup shown to the user

    achievement = relationship("Achievement")


class LeaderboardSnapshot(Base):
    __tablename__ = "leaderboard_snapshots"
    __table_args__ = (
        UniqueConstraint("user_id", "period_type", "snapshot_date", name="uq_leaderboard_snapshot"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    period_type = Column(String, nullable=False)  # daily, weekly, monthly, all_time
    snapshot_date = Column(Date, nullable=False, index=True)
    rank = Column(Integer, nullable=False)
    total_points = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.now)


class UserGoals(Base):
    """Sales-count targets shown on the goals page"""
    __tablename__ = "user_goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    daily_goal = Column(Integer, default=DEFAULT_DAILY_GOAL)
    weekly_goal = Column(Integer, default=DEFAULT_WEEKLY_GOAL)
    monthly_goal = Column(Integer, default=DEFAULT_MONTHLY_GOAL)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class SalesGoal(Base):
    """Time-boxed goal on a single metric"""
    __tablename__ = "sales_goals"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_type = Column(String, nullable=False)  # daily, weekly, monthly, custom
    metric = Column(String, nullable=False)  # sales_count, points, commission
    target_value = Column(Float, nullable=False)
    current_value = Column(Float, default=0.0)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, default=GOAL_STATUS_ACTIVE)  # active, completed, failed, cancelled
    is_suggested = Column(Boolean, default=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    display_name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    color = Column(String, default="magenta")
    icon = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class TeamMembership(Base):
    __tablename__ = "team_memberships"

    id = Column(Integer, primary_key=True, index=True)
    # One team per user
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, default=TEAM_ROLE_MEMBER)  # captain, member
    joined_at = Column(DateTime, default=datetime.now)


class TeamBattle(Base):
    __tablename__ = "team_battles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    period_type = Column(String, nullable=False)  # daily, weekly, monthly, custom
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, default=BATTLE_STATUS_UPCOMING)  # upcoming, active, completed
    winner_team_id = Column(Integer, ForeignKey("teams.id"), nullable=True)
    prize_description = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.now)


class TeamBattleParticipant(Base):
    __tablename__ = "team_battle_participants"
    __table_args__ = (
        UniqueConstraint("battle_id", "team_id", name="uq_battle_participant"),
    )

    id = Column(Integer, primary_key=True, index=True)
    battle_id = Column(Integer, ForeignKey("team_battles.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False)
    total_points = Column(Integer, default=0)  # Frozen when the battle completes
    total_sales = Column(Integer, default=0)
    rank = Column(Integer, nullable=True)

    team = relationship("Team")


class ActivityEvent(Base):
    __tablename__ = "activity_feed"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    event_type = Column(String, nullable=False)  # new_sale, achievement_unlocked, streak_milestone, goal_completed
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    details = Column(Text, nullable=True)  # JSON payload
    is_global = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now, index=True)
