"""
Team service.
Handles teams, memberships, the team leaderboard and team battles.
"""
import logging
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from salesboard.auth import ensure_role
from salesboard.models import Team, TeamBattle, TeamMembership
from salesboard.repositories.leaderboard_repository import LeaderboardRepository
from salesboard.repositories.order_repository import OrderRepository
from salesboard.repositories.points_repository import UserStatsRepository
from salesboard.repositories.team_repository import BattleRepository, TeamRepository
from salesboard.repositories.user_repository import UserRepository
from salesboard.exceptions import (
    NotFoundException, TeamNotFoundException, UserNotFoundException, ValidationException
)
from salesboard.schemas import (
    AuthenticatedUser,
    BattleCreate,
    BattleDetailResponse,
    BattleStanding,
    TeamBattleResponse,
    TeamCreate,
    TeamDetailResponse,
    TeamLeaderboardEntry,
    TeamMemberStats,
    TeamResponse
)
from salesboard.constants import (
    MANAGER_ROLES,
    TEAM_ROLE_MEMBER,
    BATTLE_STATUS_UPCOMING,
    BATTLE_STATUS_ACTIVE,
    BATTLE_STATUS_COMPLETED
)

logger = logging.getLogger("salesboard.teams")

MANAGER_REQUIRED = "Manager access required"


class TeamService:
    """Service for teams and team battles"""

    def __init__(self, db: Session):
        self.db = db
        self.team_repo = TeamRepository()
        self.battle_repo = BattleRepository()
        self.user_repo = UserRepository()
        self.stats_repo = UserStatsRepository()
        self.order_repo = OrderRepository()
        self.leaderboard_repo = LeaderboardRepository()

    # ===== TEAMS =====

    def get_teams(self) -> List[Team]:
        return self.team_repo.get_active(self.db)

    def get_team(self, team_id: int) -> TeamDetailResponse:
        """Team with its members' stats, best scorer first"""
        team = self.team_repo.get_by_id(self.db, team_id)
        if team is None:
            raise TeamNotFoundException(team_id)

        memberships = {m.user_id: m for m in self.team_repo.get_members(self.db, team_id)}
        member_ids = list(memberships)
        users = self.user_repo.get_by_ids(self.db, member_ids)
        stats = {s.user_id: s for s in self.stats_repo.get_by_users(self.db, member_ids)}
        sales = self.order_repo.count_sales_by_user(self.db, member_ids)

        members = []
        for user in users:
            user_stats = stats.get(user.id)
            members.append(TeamMemberStats(
                team_id=team_id,
                user_id=user.id,
                role=memberships[user.id].role or TEAM_ROLE_MEMBER,
                joined_at=memberships[user.id].joined_at,
                user_name=user.name,
                user_email=user.email,
                total_points=user_stats.total_points if user_stats else 0,
                streak_days=user_stats.current_streak if user_stats else 0,
                total_sales=sales.get(user.id, 0)
            ))
        members.sort(key=lambda member: (-member.total_points, member.user_id))

        return TeamDetailResponse(
            **TeamResponse.model_validate(team).model_dump(),
            members=members
        )

    def get_current_user_team(self, user_id: int) -> Optional[Team]:
        membership = self.team_repo.get_membership(self.db, user_id)
        if membership is None:
            return None
        return self.team_repo.get_by_id(self.db, membership.team_id)

    def get_team_leaderboard(self) -> List[TeamLeaderboardEntry]:
        """Active teams ranked by the summed balance of their members"""
        entries = []
        for team in self.team_repo.get_active(self.db):
            member_ids = [m.user_id for m in self.team_repo.get_members(self.db, team.id)]
            member_stats = self.stats_repo.get_by_users(self.db, member_ids)
            entries.append(TeamLeaderboardEntry(
                team_id=team.id,
                name=team.name,
                display_name=team.display_name,
                color=team.color,
                icon=team.icon,
                member_count=len(member_ids),
                total_points=sum(s.total_points or 0 for s in member_stats),
                lifetime_points=sum(s.lifetime_points or 0 for s in member_stats),
                rank=0
            ))

        entries.sort(key=lambda entry: (-entry.total_points, entry.team_id))
        for index, entry in enumerate(entries):
            entry.rank = index + 1
        return entries

    def create_team(self, user: AuthenticatedUser, data: TeamCreate) -> Team:
        ensure_role(user, MANAGER_ROLES, MANAGER_REQUIRED)
        if self.team_repo.get_by_name(self.db, data.name):
            raise ValidationException("name", f"team '{data.name}' already exists")

        team = Team(**data.model_dump(), is_active=True, created_by=user.id, created_at=datetime.now())
        team = self.team_repo.create(self.db, team)
        logger.info(f"Team {team.name} created by user {user.id}")
        return team

    def add_member(self, user: AuthenticatedUser, team_id: int, user_id: int, role: str) -> TeamMembership:
        """Assign a user to a team; users belong to at most one team"""
        ensure_role(user, MANAGER_ROLES, MANAGER_REQUIRED)
        if self.team_repo.get_by_id(self.db, team_id) is None:
            raise TeamNotFoundException(team_id)
        if self.user_repo.get_by_id(self.db, user_id) is None:
            raise UserNotFoundException(user_id)

        logger.info(f"User {user_id} assigned to team {team_id} as {role}")
        return self.team_repo.set_membership(self.db, user_id, team_id, role)

    def remove_member(self, user: AuthenticatedUser, team_id: int, user_id: int) -> None:
        ensure_role(user, MANAGER_ROLES, MANAGER_REQUIRED)
        membership = self.team_repo.get_membership(self.db, user_id)
        if membership is None or membership.team_id != team_id:
            raise NotFoundException("Team membership", user_id)

        self.team_repo.delete_membership(self.db, membership)
        logger.info(f"User {user_id} removed from team {team_id}")

    # ===== BATTLES =====

    def compute_standings(self, battle: TeamBattle, until: Optional[datetime] = None) -> List[BattleStanding]:
        """
        Rank a battle's teams by member points earned inside the battle window.

        Points come from the ledger, sales are non-cancelled orders in the
        window. Ties go to more sales, then the lower team id.
        """
        end = min(battle.end_date, until) if until else battle.end_date

        standings = []
        for participant in self.battle_repo.get_participants(self.db, battle.id):
            member_ids = [m.user_id for m in self.team_repo.get_members(self.db, participant.team_id)]
            points = self.leaderboard_repo.get_point_totals(
                self.db, battle.start_date, end, user_ids=member_ids
            )
            sales = self.order_repo.count_sales_by_user(self.db, member_ids, battle.start_date, end)
            standings.append(BattleStanding(
                team_id=participant.team_id,
                name=participant.team.name,
                display_name=participant.team.display_name,
                color=participant.team.color,
                total_points=sum(points.values()),
                total_sales=sum(sales.values()),
                rank=0
            ))

        standings.sort(key=lambda s: (-s.total_points, -s.total_sales, s.team_id))
        for index, standing in enumerate(standings):
            standing.rank = index + 1
        return standings

    def get_active_battle(self, now: Optional[datetime] = None) -> Optional[BattleDetailResponse]:
        battle = self.battle_repo.get_active(self.db)
        if battle is None:
            return None
        return BattleDetailResponse(
            battle=TeamBattleResponse.model_validate(battle),
            standings=self.compute_standings(battle, now or datetime.now())
        )

    def get_all_battles(self, limit: int = 10) -> List[TeamBattle]:
        return self.battle_repo.get_all(self.db, limit)

    def create_battle(self, user: AuthenticatedUser, data: BattleCreate, now: Optional[datetime] = None) -> TeamBattle:
        """Create a battle between the given teams, or every active team"""
        ensure_role(user, MANAGER_ROLES, MANAGER_REQUIRED)

        if data.team_ids:
            team_ids = list(dict.fromkeys(data.team_ids))
            for team_id in team_ids:
                if self.team_repo.get_by_id(self.db, team_id) is None:
                    raise TeamNotFoundException(team_id)
        else:
            team_ids = [team.id for team in self.team_repo.get_active(self.db)]
        if len(team_ids) < 2:
            raise ValidationException("team_ids", "a battle needs at least two teams")

        now = now or datetime.now()
        battle = TeamBattle(
            name=data.name,
            description=data.description,
            period_type=data.period_type,
            start_date=data.start_date,
            end_date=data.end_date,
            status=BATTLE_STATUS_ACTIVE if data.start_date <= now else BATTLE_STATUS_UPCOMING,
            prize_description=data.prize_description,
            created_by=user.id,
            created_at=now
        )
        battle = self.battle_repo.create(self.db, battle, team_ids)
        logger.info(f"Battle {battle.id} '{battle.name}' created with teams {team_ids}")
        return battle

    def finalize_battles(self, now: Optional[datetime] = None) -> dict:
        """
        Advance battle statuses.

        Upcoming battles that have started become active. Active battles past
        their end are completed: standings are frozen on the participant rows
        and the top team is recorded as winner.
        """
        now = now or datetime.now()
        started = 0
        completed = 0

        for battle in self.battle_repo.get_due_to_start(self.db, now):
            battle.status = BATTLE_STATUS_ACTIVE
            started += 1
        self.battle_repo.save(self.db)

        for battle in self.battle_repo.get_due_to_finish(self.db, now):
            standings = {s.team_id: s for s in self.compute_standings(battle)}
            for participant in self.battle_repo.get_participants(self.db, battle.id):
                standing = standings.get(participant.team_id)
                if standing:
                    participant.total_points = standing.total_points
                    participant.total_sales = standing.total_sales
                    participant.rank = standing.rank

            winner = next((s for s in standings.values() if s.rank == 1), None)
            battle.winner_team_id = winner.team_id if winner else None
            battle.status = BATTLE_STATUS_COMPLETED
            self.battle_repo.save(self.db)
            completed += 1
            logger.info(f"Battle {battle.id} completed, winner team {battle.winner_team_id}")

        return {"started": started, "completed": completed}
