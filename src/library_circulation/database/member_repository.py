"""Membership collaborator: member records and their status."""

from datetime import date

from sqlalchemy import select, update

from ..errors import DuplicateError, MemberNotFoundError
from ..models.member import Member, MemberCreate, MembershipStatus
from .repository import BaseRepository
from .schema import Member as MemberDB
from .schema import new_id
from .session import safe_flush, safe_query


class MemberRepository(BaseRepository[MemberDB, Member]):
    not_found_error = MemberNotFoundError

    @property
    def model_class(self) -> type[MemberDB]:
        return MemberDB

    @property
    def response_schema(self) -> type[Member]:
        return Member

    def get_status(self, member_id: str) -> MembershipStatus:
        """
        Read a member's membership status.

        Raises:
            MemberNotFoundError: unknown member
        """
        query = select(MemberDB.membership_status).where(MemberDB.id == member_id)
        status = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            "Failed to read membership status",
        )
        if status is None:
            raise MemberNotFoundError(member_id)
        return MembershipStatus(status)

    def create(self, data: MemberCreate) -> Member:
        existing = safe_query(
            self.session,
            lambda s: s.execute(
                select(MemberDB.id).where(MemberDB.email == data.email)
            ).scalar_one_or_none(),
            "Failed to check member email",
        )
        if existing is not None:
            raise DuplicateError(f"A member with email {data.email} already exists")

        member = MemberDB(
            id=new_id("member"),
            name=data.name,
            email=data.email,
            membership_status=data.membership_status,
            membership_date=data.membership_date or date.today(),
        )
        self.session.add(member)
        safe_flush(self.session, "create member")
        return self._to_response_model(member)

    def set_status(self, member_id: str, status: MembershipStatus) -> None:
        """Administrative status change. The circulation engine never calls this."""
        result = safe_query(
            self.session,
            lambda s: s.execute(
                update(MemberDB)
                .where(MemberDB.id == member_id)
                .values(membership_status=status)
            ),
            "Failed to update membership status",
        )
        if result.rowcount == 0:
            raise MemberNotFoundError(member_id)
