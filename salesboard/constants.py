"""
Application constants and environment configuration.
"""
import os

# ===== ENVIRONMENT =====

DATABASE_URL = os.getenv("SALESBOARD_DATABASE_URL", "sqlite:///./salesboard.db")

DEFAULT_LOG_DIRECTORY_PROD = "/var/log/salesboard"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"
LOG_DIR = os.getenv("SALESBOARD_LOG_DIR", DEFAULT_LOG_DIRECTORY_PROD)
LOG_FILE = os.getenv("SALESBOARD_LOG_FILE", "app.log")

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "SALESBOARD_CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]

SCHEDULER_ENABLED = os.getenv("SALESBOARD_SCHEDULER_ENABLED", "1") not in ("0", "false", "False")

SESSION_HEADER_NAME = "X-Session-Token"
SESSION_COOKIE_NAME = "session"

# ===== ROLES =====

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_SALESPERSON = "salesperson"
MANAGER_ROLES = (ROLE_ADMIN, ROLE_MANAGER)

# ===== ORDERS =====

PLAN_FIBER_500 = "fiber_500"
PLAN_FIBER_1GIG = "fiber_1gig"
PLAN_FIBER_2GIG = "fiber_2gig"
PLAN_FOUNDERS_CLUB = "founders_club"
PLAN_TYPES = (PLAN_FIBER_500, PLAN_FIBER_1GIG, PLAN_FIBER_2GIG, PLAN_FOUNDERS_CLUB)
HIGH_TIER_PLANS = (PLAN_FIBER_1GIG, PLAN_FIBER_2GIG, PLAN_FOUNDERS_CLUB)

TIER_VOICE_AUTOPAY = "voice_autopay"
TIER_AUTOPAY_ONLY = "autopay_only"
TIER_NO_DISCOUNTS = "no_discounts"

# Monthly price by plan and pricing tier
PLAN_PRICING = {
    PLAN_FIBER_500: {TIER_VOICE_AUTOPAY: 60, TIER_AUTOPAY_ONLY: 75, TIER_NO_DISCOUNTS: 80},
    PLAN_FIBER_1GIG: {TIER_VOICE_AUTOPAY: 75, TIER_AUTOPAY_ONLY: 90, TIER_NO_DISCOUNTS: 95},
    PLAN_FIBER_2GIG: {TIER_VOICE_AUTOPAY: 90, TIER_AUTOPAY_ONLY: 105, TIER_NO_DISCOUNTS: 110},
    PLAN_FOUNDERS_CLUB: {TIER_VOICE_AUTOPAY: 70, TIER_AUTOPAY_ONLY: 70, TIER_NO_DISCOUNTS: 70},
}

TIME_SLOTS = ("8-10", "10-12", "12-3", "3-5")

ORDER_STATUS_NEW = "new"
ORDER_STATUS_SCHEDULED = "scheduled"
ORDER_STATUS_INSTALLED = "installed"
ORDER_STATUS_COMPLETED = "completed"
ORDER_STATUS_CANCELLED = "cancelled"

# Allowed forward transitions; any non-final status may also be cancelled
ORDER_STATUS_TRANSITIONS = {
    ORDER_STATUS_NEW: (ORDER_STATUS_SCHEDULED, ORDER_STATUS_CANCELLED),
    ORDER_STATUS_SCHEDULED: (ORDER_STATUS_INSTALLED, ORDER_STATUS_CANCELLED),
    ORDER_STATUS_INSTALLED: (ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED),
    ORDER_STATUS_COMPLETED: (),
    ORDER_STATUS_CANCELLED: (),
}

# ===== POINTS =====

SALE_TYPE_STANDARD = "standard"
SALE_TYPE_UPGRADE = "upgrade"
SALE_TYPE_MULTI_SERVICE = "multi_service"
SALE_TYPES = (SALE_TYPE_STANDARD, SALE_TYPE_UPGRADE, SALE_TYPE_MULTI_SERVICE)
ADD_ON_KEY = "add_on"

SALE_TYPE_POINTS = {
    SALE_TYPE_STANDARD: 10,
    SALE_TYPE_UPGRADE: 20,
    SALE_TYPE_MULTI_SERVICE: 30,
}
ADD_ON_POINTS = 5

POINT_REASON_SALE = "sale"
POINT_REASON_ACHIEVEMENT = "achievement"
POINT_REASON_ADJUSTMENT = "adjustment"

POINT_SOURCE_ORDER = "order"
POINT_SOURCE_ACHIEVEMENT = "achievement"
POINT_SOURCE_ADMIN = "admin"

# ===== STREAKS =====

STREAK_MILESTONES = (3, 5, 7, 14, 21, 30)

# ===== ACHIEVEMENTS =====

CATEGORY_MILESTONE = "milestone"
CATEGORY_STREAK = "streak"
CATEGORY_POINTS = "points"
CATEGORY_SPECIAL = "special"
CATEGORY_TEAM = "team"
ACHIEVEMENT_CATEGORIES = (
    CATEGORY_MILESTONE, CATEGORY_STREAK, CATEGORY_POINTS, CATEGORY_SPECIAL, CATEGORY_TEAM
)

CONDITION_SALES_COUNT = "sales_count"
CONDITION_SALES_STREAK = "sales_streak"
CONDITION_POINTS_TOTAL = "points_total"
CONDITION_CUSTOM = "custom"

EARLY_BIRD_HOUR = 9
NIGHT_OWL_HOUR = 20

# ===== LEADERBOARD =====

TIME_RANGE_TODAY = "today"
TIME_RANGE_WEEK = "week"
TIME_RANGE_MONTH = "month"
TIME_RANGE_ALL_TIME = "all-time"
TIME_RANGES = (TIME_RANGE_TODAY, TIME_RANGE_WEEK, TIME_RANGE_MONTH, TIME_RANGE_ALL_TIME)

PERIOD_DAILY = "daily"
PERIOD_WEEKLY = "weekly"
PERIOD_MONTHLY = "monthly"
PERIOD_ALL_TIME = "all_time"

SNAPSHOT_PERIOD_BY_RANGE = {
    TIME_RANGE_TODAY: PERIOD_DAILY,
    TIME_RANGE_WEEK: PERIOD_WEEKLY,
    TIME_RANGE_MONTH: PERIOD_MONTHLY,
    TIME_RANGE_ALL_TIME: PERIOD_ALL_TIME,
}

LEADERBOARD_BADGE_LIMIT = 3
RANK_CHANGE_TIME_RANGE = TIME_RANGE_WEEK
TOP_RANK_THRESHOLD = 3

# ===== GOALS =====

GOAL_TYPE_DAILY = "daily"
GOAL_TYPE_WEEKLY = "weekly"
GOAL_TYPE_MONTHLY = "monthly"
GOAL_TYPE_CUSTOM = "custom"

GOAL_METRIC_SALES_COUNT = "sales_count"
GOAL_METRIC_POINTS = "points"
GOAL_METRIC_COMMISSION = "commission"

GOAL_STATUS_ACTIVE = "active"
GOAL_STATUS_COMPLETED = "completed"
GOAL_STATUS_FAILED = "failed"
GOAL_STATUS_CANCELLED = "cancelled"

DEFAULT_DAILY_GOAL = 2
DEFAULT_WEEKLY_GOAL = 10
DEFAULT_MONTHLY_GOAL = 40

SUGGESTION_LOOKBACK_DAYS = 30
SUGGESTION_IMPROVEMENT = 1.15
SUGGESTION_MIN_DAILY = 1
SUGGESTION_MIN_WEEKLY = 3
SUGGESTION_MIN_MONTHLY = 10

# ===== TEAMS =====

TEAM_ROLE_CAPTAIN = "captain"
TEAM_ROLE_MEMBER = "member"

BATTLE_STATUS_UPCOMING = "upcoming"
BATTLE_STATUS_ACTIVE = "active"
BATTLE_STATUS_COMPLETED = "completed"

# ===== ACTIVITY FEED =====

EVENT_NEW_SALE = "new_sale"
EVENT_ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
EVENT_STREAK_MILESTONE = "streak_milestone"
EVENT_GOAL_COMPLETED = "goal_completed"

DEFAULT_FEED_LIMIT = 50
LATEST_FEED_LIMIT = 20
