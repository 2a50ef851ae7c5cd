import logging
from datetime import date
from typing import Callable, List

from ..errors import ConflictError, NotFoundError
from ..models import Member, MemberPatch
from .base import CrudManager

logger = logging.getLogger(__name__)


class MemberManager(CrudManager[Member]):
    resource = "Member"
    table = "members"

    def __init__(self, store, clock: Callable[[], date] = date.today) -> None:
        super().__init__(store)
        self.clock = clock

    def create(self, member: Member) -> Member:
        with self.store.transaction(immediate=True) as session:
            if session.members.exists(email=member.email):
                raise ConflictError(f"A member with email '{member.email}' already exists")
            member.id = None
            if member.membership_date is None:
                member.membership_date = self.clock()
            session.members.save(member)
        logger.info(f"Member created: id={member.id}, email={member.email}")
        return member

    def update(self, member_id: int, patch: MemberPatch) -> Member:
        with self.store.transaction(immediate=True) as session:
            member = self.require(session, member_id)
            if patch.email is not None and patch.email != member.email and session.members.exists(email=patch.email):
                raise ConflictError(f"A member with email '{patch.email}' already exists")
            patch.apply_to(member)
            session.members.save(member)
        return member

    def get_by_email(self, email: str) -> Member:
        with self.store.transaction() as session:
            member = session.members.find_one(email=email)
        if member is None:
            raise NotFoundError(f"Member with email '{email}' not found")
        return member

    def list_active(self) -> List[Member]:
        with self.store.transaction() as session:
            return session.members.find(active=True)

    def count_active(self) -> int:
        with self.store.transaction() as session:
            return session.members.count(active=True)

    def exists(self, email: str) -> bool:
        with self.store.transaction() as session:
            return session.members.exists(email=email)

    def suspend(self, member_id: int) -> Member:
        member = self._set_active(member_id, False)
        logger.info(f"Member {member_id} suspended")
        return member

    def activate(self, member_id: int) -> Member:
        member = self._set_active(member_id, True)
        logger.info(f"Member {member_id} activated")
        return member

    def _set_active(self, member_id: int, active: bool) -> Member:
        with self.store.transaction(immediate=True) as session:
            member = self.require(session, member_id)
            member.active = active
            session.members.save(member)
        return member
