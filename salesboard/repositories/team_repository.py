"""
Team repository - Data access layer for teams, memberships and battles.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload

from salesboard.models import Team, TeamBattle, TeamBattleParticipant, TeamMembership
from salesboard.constants import BATTLE_STATUS_ACTIVE, BATTLE_STATUS_UPCOMING


class TeamRepository:
    """Repository for Team and TeamMembership data access"""

    @staticmethod
    def get_by_id(db: Session, team_id: int) -> Optional[Team]:
        return db.query(Team).filter(Team.id == team_id).first()

    @staticmethod
    def get_by_name(db: Session, name: str) -> Optional[Team]:
        return db.query(Team).filter(Team.name == name).first()

    @staticmethod
    def get_active(db: Session) -> List[Team]:
        return db.query(Team).filter(Team.is_active == True).order_by(Team.display_name).all()

    @staticmethod
    def get_members(db: Session, team_id: int) -> List[TeamMembership]:
        return db.query(TeamMembership).filter(
            TeamMembership.team_id == team_id
        ).order_by(TeamMembership.joined_at).all()

    @staticmethod
    def get_membership(db: Session, user_id: int) -> Optional[TeamMembership]:
        return db.query(TeamMembership).filter(TeamMembership.user_id == user_id).first()

    @staticmethod
    def create(db: Session, team: Team) -> Team:
        db.add(team)
        db.commit()
        db.refresh(team)
        return team

    @staticmethod
    def set_membership(db: Session, user_id: int, team_id: int, role: str) -> TeamMembership:
        """Put a user on a team, moving them if they already belong to another"""
        membership = TeamRepository.get_membership(db, user_id)
        if membership is None:
            membership = TeamMembership(user_id=user_id)
            db.add(membership)
        membership.team_id = team_id
        membership.role = role
        membership.joined_at = datetime.now()
        db.commit()
        db.refresh(membership)
        return membership

    @staticmethod
    def delete_membership(db: Session, membership: TeamMembership) -> None:
        db.delete(membership)
        db.commit()


class BattleRepository:
    """Repository for TeamBattle and TeamBattleParticipant data access"""

    @staticmethod
    def get_by_id(db: Session, battle_id: int) -> Optional[TeamBattle]:
        return db.query(TeamBattle).filter(TeamBattle.id == battle_id).first()

    @staticmethod
    def get_active(db: Session) -> Optional[TeamBattle]:
        """The active battle that started most recently"""
        return db.query(TeamBattle).filter(
            TeamBattle.status == BATTLE_STATUS_ACTIVE
        ).order_by(TeamBattle.start_date.desc()).first()

    @staticmethod
    def get_all(db: Session, limit: int = 10) -> List[TeamBattle]:
        return db.query(TeamBattle).order_by(
            TeamBattle.start_date.desc()
        ).limit(limit).all()

    @staticmethod
    def get_due_to_start(db: Session, now: datetime) -> List[TeamBattle]:
        return db.query(TeamBattle).filter(
            TeamBattle.status == BATTLE_STATUS_UPCOMING,
            TeamBattle.start_date <= now
        ).all()

    @staticmethod
    def get_due_to_finish(db: Session, now: datetime) -> List[TeamBattle]:
        return db.query(TeamBattle).filter(
            TeamBattle.status == BATTLE_STATUS_ACTIVE,
            TeamBattle.end_date < now
        ).all()

    @staticmethod
    def get_participants(db: Session, battle_id: int) -> List[TeamBattleParticipant]:
        return db.query(TeamBattleParticipant).options(
            joinedload(TeamBattleParticipant.team)
        ).filter(
            TeamBattleParticipant.battle_id == battle_id
        ).order_by(TeamBattleParticipant.id).all()

    @staticmethod
    def create(db: Session, battle: TeamBattle, team_ids: List[int]) -> TeamBattle:
        """Create a battle together with its participant rows"""
        db.add(battle)
        db.flush()
        for team_id in team_ids:
            db.add(TeamBattleParticipant(battle_id=battle.id, team_id=team_id))
        db.commit()
        db.refresh(battle)
        return battle

    @staticmethod
    def save(db: Session) -> None:
        db.commit()
