from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from datetime import datetime, date
from typing import Dict, Generic, List, Literal, Optional, TypeVar

T = TypeVar("T")

PlanType = Literal["fiber_500", "fiber_1gig", "fiber_2gig", "founders_club"]
PricingTier = Literal["voice_autopay", "autopay_only", "no_discounts"]
TimeSlot = Literal["8-10", "10-12", "12-3", "3-5"]
SaleType = Literal["standard", "upgrade", "multi_service"]
OrderStatus = Literal["new", "scheduled", "installed", "completed", "cancelled"]
TimeRange = Literal["today", "week", "month", "all-time"]
GoalType = Literal["daily", "weekly", "monthly", "custom"]
GoalMetric = Literal["sales_count", "points", "commission"]


class ActionResult(BaseModel, Generic[T]):
    """Envelope returned by every operation"""
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, data=None):
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, data=None):
        return cls(success=False, error=error, data=data)


class AuthenticatedUser(BaseModel):
    id: int
    email: str
    role: str


# ===== ORDERS =====

class OrderCreate(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_phone: str = Field(..., min_length=10, max_length=20)
    customer_email: Optional[str] = Field(None, max_length=254)
    service_address: str = Field(..., min_length=1, max_length=300)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(default="TX", min_length=2, max_length=2)
    zip: str = Field(..., pattern=r"^\d{5}$")
    plan_type: PlanType
    has_voice_line: bool = False
    has_autopay: bool = False
    install_date: date
    install_time_slot: TimeSlot
    access_notes: Optional[str] = Field(None, max_length=1000)
    promo_code: Optional[str] = Field(None, max_length=50)

    sale_type: SaleType = "standard"
    add_ons_count: int = Field(default=0, ge=0, le=20)

    @field_validator("customer_phone")
    @classmethod
    def phone_has_ten_digits(cls, value: str) -> str:
        digits = "".join(ch for ch in value if ch.isdigit())
        if len(digits) < 10:
            raise ValueError("phone number must contain at least 10 digits")
        return value

    @field_validator("customer_email")
    @classmethod
    def email_looks_valid(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if "@" not in value or "." not in value.split("@")[-1]:
            raise ValueError("invalid email address")
        return value


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    service_address: str
    city: str
    state: str
    zip: str
    plan_type: str
    pricing_tier: str
    monthly_price: float
    install_date: date
    install_time_slot: str
    access_notes: Optional[str] = None
    promo_code: Optional[str] = None
    sale_type: str
    add_ons_count: int
    salesperson_id: int
    status: str
    commission_amount: Optional[float] = None
    commission_paid: bool = False
    points_awarded: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AdminOrderResponse(OrderResponse):
    salesperson_name: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


# ===== POINTS & REWARDS =====

class PointsBreakdown(BaseModel):
    sale_type: str
    base_points: int
    addon_points: int


class PointsCalculationResult(BaseModel):
    total_points: int
    breakdown: PointsBreakdown


class StreakUpdateResult(BaseModel):
    current_streak: int
    longest_streak: int
    streak_broken: bool = False
    milestone_reached: Optional[int] = None
    bonus_points: int = 0


class AchievementUnlockResult(BaseModel):
    achievement_id: int
    achievement_name: str
    achievement_display_name: str
    category: str
    points_reward: int
    condition_type: str


class RankChangeResult(BaseModel):
    user_id: int
    old_rank: Optional[int] = None
    new_rank: Optional[int] = None
    change: int = 0  # Positive = moved up
    is_significant: bool = False


class OrderGamificationResult(BaseModel):
    points: PointsCalculationResult
    streak: StreakUpdateResult
    achievements: List[AchievementUnlockResult] = []
    rank_change: Optional[RankChangeResult] = None


class OrderCreateResult(BaseModel):
    order: OrderResponse
    gamification: Optional[OrderGamificationResult] = None
    gamification_error: Optional[str] = None


class UserPointsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    total_points: int
    lifetime_points: int
    current_streak: int
    longest_streak: int
    last_sale_date: Optional[date] = None
    streak_start_date: Optional[date] = None


class PointHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    points: int
    reason: str
    source_type: Optional[str] = None
    source_id: Optional[int] = None
    description: Optional[str] = None
    created_at: datetime


class PointAdjustment(BaseModel):
    user_id: int
    points: int
    description: str = Field(..., min_length=1, max_length=300)

    @field_validator("points")
    @classmethod
    def points_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("adjustment must not be zero")
        return value


class PointConfigurationUpdate(BaseModel):
    points: int = Field(..., ge=0, le=10000)
    description: Optional[str] = None


class PointConfigurationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    sale_type: str
    points: int
    description: Optional[str] = None


# ===== ACHIEVEMENTS =====

class AchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    category: str
    points_reward: int
    condition_type: str
    condition_value: Optional[int] = None
    is_secret: bool
    sort_order: int


class UserAchievementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    achievement_id: int
    earned_at: datetime
    notified: bool
    achievement: AchievementResponse


class CategoryStats(BaseModel):
    unlocked: int = 0
    total: int = 0


class AchievementStats(BaseModel):
    total_unlocked: int
    total_available: int
    total_points: int
    by_category: Dict[str, CategoryStats]


class UserAchievementsResponse(BaseModel):
    unlocked: List[UserAchievementResponse]
    available: List[AchievementResponse]
    stats: AchievementStats


class AchievementSeenRequest(BaseModel):
    achievement_ids: List[int] = Field(..., min_length=1)


class AchievementProgressResponse(BaseModel):
    sales_count: int
    streak_days: int
    total_points: int


# ===== LEADERBOARD =====

class LeaderboardBadge(BaseModel):
    id: int
    icon: Optional[str] = None
    name: str


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    user_name: str
    total_points: int
    order_count: int
    streak_days: int
    is_current_user: bool = False
    rank_change: Optional[int] = None
    badges: List[LeaderboardBadge] = []


class UserRankResponse(BaseModel):
    rank: int  # 0 = not ranked
    total: int
    points: int


# ===== GOALS =====

class UserGoalsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_goal: int
    weekly_goal: int
    monthly_goal: int


class UserGoalsUpdate(BaseModel):
    daily_goal: int = Field(..., ge=0, le=100)
    weekly_goal: int = Field(..., ge=0, le=500)
    monthly_goal: int = Field(..., ge=0, le=2000)


class UserStreakResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    last_sale_date: Optional[date] = None
    streak_start_date: Optional[date] = None


class GoalProgressResponse(BaseModel):
    goals: UserGoalsResponse
    streak: UserStreakResponse
    today_orders: int
    week_orders: int
    month_orders: int
    today_commission: float
    week_commission: float
    month_commission: float


class SalesGoalCreate(BaseModel):
    goal_type: GoalType
    metric: GoalMetric
    target_value: float = Field(..., gt=0)


class SalesGoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    goal_type: str
    metric: str
    target_value: float
    current_value: float
    start_date: datetime
    end_date: datetime
    status: str
    is_suggested: bool
    completed_at: Optional[datetime] = None


class GoalSuggestions(BaseModel):
    daily: int
    weekly: int
    monthly: int


# ===== TEAMS =====

class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    color: str = "magenta"
    icon: Optional[str] = None


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    color: str
    icon: Optional[str] = None
    is_active: bool


class TeamMemberStats(BaseModel):
    team_id: int
    user_id: int
    role: str
    joined_at: Optional[datetime] = None
    user_name: str
    user_email: str
    total_points: int
    streak_days: int
    total_sales: int


class TeamDetailResponse(TeamResponse):
    members: List[TeamMemberStats] = []


class TeamMemberAdd(BaseModel):
    user_id: int
    role: Literal["captain", "member"] = "member"


class TeamLeaderboardEntry(BaseModel):
    team_id: int
    name: str
    display_name: str
    color: str
    icon: Optional[str] = None
    member_count: int
    total_points: int
    lifetime_points: int
    rank: int


class BattleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    period_type: Literal["daily", "weekly", "monthly", "custom"] = "weekly"
    start_date: datetime
    end_date: datetime
    prize_description: Optional[str] = None
    team_ids: Optional[List[int]] = None  # None = all active teams

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class TeamBattleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    period_type: str
    start_date: datetime
    end_date: datetime
    status: str
    winner_team_id: Optional[int] = None
    prize_description: Optional[str] = None


class BattleStanding(BaseModel):
    team_id: int
    name: str
    display_name: str
    color: str
    total_points: int
    total_sales: int
    rank: int


class BattleDetailResponse(BaseModel):
    battle: TeamBattleResponse
    standings: List[BattleStanding]


# ===== REPORTS =====

class SaleBreakdown(BaseModel):
    standard: int = 0
    upgrade: int = 0
    multi_service: int = 0


class WeeklyReport(BaseModel):
    user_id: int
    user_name: str
    week_start: date
    week_end: date
    total_sales: int
    sales_change: int
    sales_change_percent: int
    sale_breakdown: SaleBreakdown
    total_points: int
    points_change: int
    achievements_unlocked: int
    current_streak: int
    best_streak: int
    current_rank: int  # 0 = not ranked this week
    rank_change: Optional[int] = None


class PersonalBests(BaseModel):
    daily_sales: int
    weekly_sales: int
    longest_streak: int


class PerformanceInsights(BaseModel):
    best_day: str
    best_time: str
    avg_sales_per_day: float
    top_sale_type: str
    personal_bests: PersonalBests


# ===== ACTIVITY FEED =====

class ActivityEventResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    user_name: Optional[str] = None
    event_type: str
    title: str
    description: Optional[str] = None
    details: dict = {}
    is_global: bool
    created_at: datetime


# ===== ADMIN =====

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: str
    is_active: bool
    created_at: datetime


class UserRoleUpdate(BaseModel):
    role: str = Field(..., min_length=1, max_length=50)


class CommissionRateUpdate(BaseModel):
    amount: float = Field(..., ge=0)


class CommissionRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    plan_type: str
    amount: float


class RoleCommissionRateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role_name: str
    plan_type: str
    amount: float
