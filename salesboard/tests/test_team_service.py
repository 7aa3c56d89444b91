"""
Tests for TeamService.

Tests cover:
1. Team creation and membership
2. Team leaderboard
3. Battles: creation, live standings and finalization
"""
import pytest
from datetime import datetime

from salesboard.models import PointHistory, TeamBattleParticipant
from salesboard.services.points_service import PointsService
from salesboard.services.team_service import TeamService
from salesboard.schemas import BattleCreate, TeamCreate
from salesboard.exceptions import (
    AccessDeniedException, NotFoundException, TeamNotFoundException, ValidationException
)

START = datetime(2025, 3, 9, 0, 0)
END = datetime(2025, 3, 15, 23, 59)


@pytest.fixture
def teams(db_session, manager_user, salesperson, other_salesperson, as_auth):
    """Two teams with one salesperson each"""
    service = TeamService(db_session)
    manager = as_auth(manager_user)
    red = service.create_team(manager, TeamCreate(name="red", display_name="Red Rockets", color="red"))
    blue = service.create_team(manager, TeamCreate(name="blue", display_name="Blue Bolts", color="blue"))
    service.add_member(manager, red.id, salesperson.id, "captain")
    service.add_member(manager, blue.id, other_salesperson.id, "member")
    return red, blue


class TestTeams:
    def test_salesperson_cannot_create_team(self, db_session, salesperson, as_auth):
        with pytest.raises(AccessDeniedException):
            TeamService(db_session).create_team(as_auth(salesperson), TeamCreate(name="x", display_name="X"))

    def test_duplicate_name_rejected(self, db_session, manager_user, teams, as_auth):
        with pytest.raises(ValidationException):
            TeamService(db_session).create_team(
                as_auth(manager_user), TeamCreate(name="red", display_name="Again")
            )

    def test_team_detail_sorted_by_points(self, db_session, manager_user, teams, salesperson,
                                          other_salesperson, as_auth):
        red, _ = teams
        service = TeamService(db_session)
        service.add_member(as_auth(manager_user), red.id, other_salesperson.id, "member")
        PointsService(db_session).award_points(other_salesperson.id, 50, "sale")
        PointsService(db_session).award_points(salesperson.id, 20, "sale")

        detail = service.get_team(red.id)

        assert [m.user_id for m in detail.members] == [other_salesperson.id, salesperson.id]
        assert detail.members[0].total_points == 50

    def test_user_belongs_to_one_team(self, db_session, manager_user, teams, salesperson, as_auth):
        red, blue = teams
        service = TeamService(db_session)

        service.add_member(as_auth(manager_user), blue.id, salesperson.id, "member")

        assert service.get_current_user_team(salesperson.id).id == blue.id
        assert [m.user_id for m in service.get_team(red.id).members] == []

    def test_remove_member(self, db_session, manager_user, teams, salesperson, as_auth):
        red, blue = teams
        service = TeamService(db_session)

        with pytest.raises(NotFoundException):
            service.remove_member(as_auth(manager_user), blue.id, salesperson.id)

        service.remove_member(as_auth(manager_user), red.id, salesperson.id)
        assert service.get_current_user_team(salesperson.id) is None

    def test_unknown_team(self, db_session):
        with pytest.raises(TeamNotFoundException):
            TeamService(db_session).get_team(99)

    def test_team_leaderboard(self, db_session, teams, salesperson, other_salesperson):
        red, blue = teams
        PointsService(db_session).award_points(salesperson.id, 10, "sale")
        PointsService(db_session).award_points(other_salesperson.id, 30, "sale")

        board = TeamService(db_session).get_team_leaderboard()

        assert [(e.team_id, e.rank, e.total_points) for e in board] == [(blue.id, 1, 30), (red.id, 2, 10)]


class TestBattles:
    def _battle(self, db_session, manager_user, as_auth, now, team_ids=None):
        return TeamService(db_session).create_battle(
            as_auth(manager_user),
            BattleCreate(name="March Madness", start_date=START, end_date=END, team_ids=team_ids),
            now=now
        )

    def test_needs_two_teams(self, db_session, manager_user, teams, as_auth):
        red, _ = teams
        with pytest.raises(ValidationException):
            self._battle(db_session, manager_user, as_auth, START, team_ids=[red.id])

    def test_defaults_to_all_teams_and_status(self, db_session, manager_user, teams, as_auth):
        upcoming = self._battle(db_session, manager_user, as_auth, datetime(2025, 3, 1))
        running = self._battle(db_session, manager_user, as_auth, datetime(2025, 3, 10))

        assert upcoming.status == "upcoming"
        assert running.status == "active"
        assert db_session.query(TeamBattleParticipant).filter(
            TeamBattleParticipant.battle_id == upcoming.id
        ).count() == 2

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            BattleCreate(name="Backwards", start_date=END, end_date=START)

    def test_standings_count_points_inside_window(
        self, db_session, manager_user, teams, salesperson, other_salesperson, make_order, as_auth
    ):
        red, blue = teams
        battle = self._battle(db_session, manager_user, as_auth, datetime(2025, 3, 10))
        db_session.add_all([
            PointHistory(user_id=salesperson.id, points=40, reason="sale", created_at=datetime(2025, 3, 10, 9)),
            PointHistory(user_id=salesperson.id, points=500, reason="sale", created_at=datetime(2025, 3, 1, 9)),
            PointHistory(user_id=other_salesperson.id, points=25, reason="sale", created_at=datetime(2025, 3, 11, 9)),
        ])
        db_session.commit()
        make_order(salesperson, created_at=datetime(2025, 3, 10, 9))

        standings = TeamService(db_session).compute_standings(battle)

        assert [(s.team_id, s.total_points, s.total_sales, s.rank) for s in standings] == [
            (red.id, 40, 1, 1), (blue.id, 25, 0, 2)
        ]

    def test_tie_goes_to_more_sales(
        self, db_session, manager_user, teams, salesperson, other_salesperson, make_order, as_auth
    ):
        red, blue = teams
        battle = self._battle(db_session, manager_user, as_auth, datetime(2025, 3, 10))
        db_session.add_all([
            PointHistory(user_id=salesperson.id, points=30, reason="sale", created_at=datetime(2025, 3, 10, 9)),
            PointHistory(user_id=other_salesperson.id, points=30, reason="sale", created_at=datetime(2025, 3, 10, 9)),
        ])
        db_session.commit()
        make_order(other_salesperson, created_at=datetime(2025, 3, 10, 9))

        standings = TeamService(db_session).compute_standings(battle)

        assert standings[0].team_id == blue.id

    def test_finalize_starts_and_completes(
        self, db_session, manager_user, teams, salesperson, as_auth
    ):
        red, _ = teams
        battle = self._battle(db_session, manager_user, as_auth, datetime(2025, 3, 1))
        db_session.add(PointHistory(user_id=salesperson.id, points=15, reason="sale",
                                    created_at=datetime(2025, 3, 12, 9)))
        db_session.commit()
        service = TeamService(db_session)

        assert service.finalize_battles(datetime(2025, 3, 10)) == {"started": 1, "completed": 0}
        assert service.get_active_battle(datetime(2025, 3, 12, 12)).battle.id == battle.id

        assert service.finalize_battles(datetime(2025, 3, 16)) == {"started": 0, "completed": 1}
        db_session.refresh(battle)
        assert battle.status == "completed"
        assert battle.winner_team_id == red.id
        winner_row = db_session.query(TeamBattleParticipant).filter(
            TeamBattleParticipant.battle_id == battle.id,
            TeamBattleParticipant.team_id == red.id
        ).one()
        assert (winner_row.total_points, winner_row.rank) == (15, 1)
        assert service.get_active_battle() is None
